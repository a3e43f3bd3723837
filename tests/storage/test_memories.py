"""Tests for storage.memories."""

from storage.memories import clamp_importance


def test_store_and_get(memories):
    memories.store_memory("user_name", "The user's name is Ada", "personal", 90)
    fact = memories.get_memory("user_name")
    assert fact.content == "The user's name is Ada"
    assert fact.category == "personal"
    assert fact.importance == 90


def test_get_missing_returns_none(memories):
    assert memories.get_memory("nope") is None


def test_store_same_key_replaces(memories):
    memories.store_memory("drink", "likes coffee", "preference", 40)
    first = memories.get_memory("drink")
    memories.store_memory("drink", "likes tea", "preference", 70)
    second = memories.get_memory("drink")
    assert second.content == "likes tea"
    assert second.importance == 70
    assert second.id == first.id
    assert second.created_at == first.created_at
    assert len(memories.search_memories()) == 1


def test_importance_is_clamped(memories):
    memories.store_memory("hi", "x", importance=500)
    memories.store_memory("lo", "y", importance=-3)
    assert memories.get_memory("hi").importance == 100
    assert memories.get_memory("lo").importance == 0


def test_clamp_importance():
    assert clamp_importance(50) == 50
    assert clamp_importance(101) == 100
    assert clamp_importance(-1) == 0


def test_search_orders_by_importance(memories):
    memories.store_memory("a", "low", importance=20)
    memories.store_memory("b", "high", importance=90)
    memories.store_memory("c", "mid", importance=50)
    assert [m.key for m in memories.search_memories()] == ["b", "c", "a"]


def test_search_ties_break_newest_first(memories):
    memories.store_memory("first", "x", importance=50)
    memories.store_memory("second", "y", importance=50)
    assert [m.key for m in memories.search_memories()] == ["second", "first"]


def test_search_filters(memories):
    memories.store_memory("a", "x", "preference", 80)
    memories.store_memory("b", "y", "knowledge", 80)
    memories.store_memory("c", "z", "preference", 10)
    assert [m.key for m in memories.search_memories(category="preference")] == ["a", "c"]
    assert [m.key for m in memories.search_memories(category="preference", min_importance=30)] == ["a"]
    assert len(memories.search_memories(limit=2)) == 2


def test_to_dict(memories):
    memories.store_memory("k", "v", "general", 50)
    data = memories.get_memory("k").to_dict()
    assert data["key"] == "k"
    assert set(data) == {"id", "key", "content", "category", "created_at", "updated_at", "importance"}
