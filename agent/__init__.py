"""Agent internals -- the tool-augmented conversation loop.

Module Overview
---------------
**call_detector.py**
    Recovers a (name, arguments) call from free-form model text. Three
    pure strategies tried in order: JSON object, tagged envelope,
    ``name(key="value")`` syntax.

**tool_executor.py**
    Looks a tool up in the registry, runs it, logs the attempt, and
    normalizes failures into ToolNotFoundError / ToolExecutionError.
    Also formats results into the text fed back to the model.

**prompt_assembler.py**
    Cached system preamble: identity, tool list, long-term facts.

**ollama_client.py**
    Streaming chat client for the Ollama HTTP API.

**session_persister.py**
    Mirrors turns into SQLite; failures are logged, never raised.

**orchestrator.py**
    The per-connection state machine tying the above together.

Architecture
------------
1. **Detection is separate from execution**: the detector never looks at
   the registry except to filter the loose function-call syntax.

2. **Shared state is read-mostly**: the registry is frozen after startup
   and the directory allow-list publishes immutable snapshots.

3. **One Orchestrator per connection**: turn history is never shared.
"""
