"""Tests for PromptAssembler caching and composition."""

from agent.prompt_assembler import DEFAULT_AGENT_IDENTITY, MAX_PROMPT_FACTS, PromptAssembler
from storage.memories import Memory
from tools.registry import ToolRegistry


def _fact(i, content="likes tea", category="preference"):
    return Memory(
        id=i,
        key=f"k{i}",
        content=content,
        category=category,
        created_at="2026-01-01T00:00:00Z",
        updated_at="2026-01-01T00:00:00Z",
        importance=50,
    )


def test_build_returns_cached(registry):
    pa = PromptAssembler()
    p1 = pa.build(registry=registry)
    p2 = pa.build(registry=registry, facts=[_fact(1)])
    assert p1 is p2


def test_invalidate_forces_rebuild(registry):
    pa = PromptAssembler()
    assert pa.is_cached is False
    p1 = pa.build(registry=registry)
    assert pa.is_cached is True
    pa.invalidate()
    assert pa.is_cached is False
    p2 = pa.build(registry=registry, facts=[_fact(1)])
    assert p1 != p2
    assert "likes tea" in p2


def test_prompt_sections(registry):
    prompt = PromptAssembler().build(registry=registry, facts=[_fact(1, "The user's name is Ada", "personal")])
    assert prompt.startswith(DEFAULT_AGENT_IDENTITY + "\n\nAvailable tools:\n")
    assert "- read_file: " in prompt
    assert '{"name": "tool_name", "arguments": {"arg1": "value1"}}' in prompt
    assert prompt.endswith("Things you remember about the user:\n- [personal] The user's name is Ada")


def test_tools_listed_in_name_order(registry):
    prompt = PromptAssembler().build(registry=registry)
    assert prompt.index("- allowed_dirs_add:") < prompt.index("- read_file:") < prompt.index("- write_file:")


def test_no_tools_no_instructions():
    prompt = PromptAssembler().build(registry=ToolRegistry())
    assert prompt == DEFAULT_AGENT_IDENTITY


def test_fact_count_is_capped(registry):
    facts = [_fact(i, f"fact {i}") for i in range(MAX_PROMPT_FACTS + 5)]
    prompt = PromptAssembler().build(registry=registry, facts=facts)
    assert prompt.count("- [preference] fact ") == MAX_PROMPT_FACTS


def test_custom_identity():
    assert PromptAssembler(identity="You are a test bot.").build(registry=ToolRegistry()) == "You are a test bot."
