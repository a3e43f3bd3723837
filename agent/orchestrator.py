"""Per-connection conversation loop.

One Orchestrator owns one connection's turn history and drives it through

    IDLE -> AWAITING_MODEL -> DETECTING_CALL -> FINALIZING
                  ^                  |
                  |                  v
                  +--------- EXECUTING_TOOL

with at most ``max_rounds`` tool executions per user message. Output goes
out through an async ``emit(kind, content, request_id)`` callback with kind
one of chunk, assistant, system, tool_result, error.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional

from agent.call_detector import detect_tool_call
from agent.ollama_client import InferenceClient, InferenceError
from agent.prompt_assembler import MAX_PROMPT_FACTS, MIN_PROMPT_FACT_IMPORTANCE, PromptAssembler
from agent.session_persister import TurnPersister
from agent.tool_executor import ToolExecutor, format_tool_result, serialize_result
from nira_constants import MAX_TOOL_ROUNDS
from tools.base import ToolCall, ToolError, optional_bool
from tools.registry import ToolRegistry

logger = logging.getLogger(__name__)

Emit = Callable[[str, str, Optional[str]], Awaitable[None]]


class OrchestratorState(str, Enum):
    IDLE = "idle"
    AWAITING_MODEL = "awaiting_model"
    DETECTING_CALL = "detecting_call"
    EXECUTING_TOOL = "executing_tool"
    FINALIZING = "finalizing"


class TurnRole(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL_RESULT = "tool_result"


@dataclass
class Turn:
    role: TurnRole
    content: str
    tool_name: Optional[str] = None

    def to_model_message(self) -> Dict[str, str]:
        # The chat API has no tool role for free-text calls; results go back as user text
        role = "user" if self.role is TurnRole.TOOL_RESULT else self.role.value
        return {"role": role, "content": self.content}


async def _discard(kind: str, content: str, request_id: Optional[str] = None) -> None:
    return None


class Orchestrator:
    """Drives one connection's conversation.

    Args:
        registry: Shared, read-only tool registry.
        inference: Anything with ``async chat(messages, on_chunk) -> str``.
        emit: Async sink for outbound events.
        executor: Defaults to a ToolExecutor over *registry*.
        persister: Turn mirror; defaults to a no-op TurnPersister.
        prompt_assembler: Builds the cached system preamble.
        max_rounds: Tool executions allowed per user message.
    """

    def __init__(
        self,
        registry: ToolRegistry,
        inference: InferenceClient,
        *,
        emit: Emit = _discard,
        executor: Optional[ToolExecutor] = None,
        persister: Optional[TurnPersister] = None,
        prompt_assembler: Optional[PromptAssembler] = None,
        max_rounds: int = MAX_TOOL_ROUNDS,
    ):
        if max_rounds < 1:
            raise ValueError("max_rounds must be at least 1")
        self.registry = registry
        self.inference = inference
        self.executor = executor or ToolExecutor(registry)
        self.persister = persister or TurnPersister()
        self.prompt_assembler = prompt_assembler or PromptAssembler()
        self.max_rounds = max_rounds
        self._emit = emit
        self._turns: List[Turn] = []
        self._state = OrchestratorState.IDLE
        self._rounds = 0

    # -- Observable state ----------------------------------------------------

    @property
    def state(self) -> OrchestratorState:
        return self._state

    @property
    def rounds(self) -> int:
        """Tool executions performed for the current (or last) user message."""
        return self._rounds

    @property
    def turns(self) -> List[Turn]:
        return list(self._turns)

    # -- History -------------------------------------------------------------

    async def system_prompt(self) -> str:
        """The cached preamble. Facts are read from storage only on a cache miss."""
        if self.prompt_assembler.is_cached:
            return self.prompt_assembler.build(registry=self.registry)
        facts = await asyncio.to_thread(
            self.persister.load_facts, MIN_PROMPT_FACT_IMPORTANCE, MAX_PROMPT_FACTS
        )
        return self.prompt_assembler.build(registry=self.registry, facts=facts)

    async def history_messages(self) -> List[Dict[str, str]]:
        """System preamble followed by every turn, in the chat API's shape."""
        messages = [{"role": "system", "content": await self.system_prompt()}]
        messages.extend(turn.to_model_message() for turn in self._turns)
        return messages

    def load_history(self, limit: int) -> int:
        """Seed the turn list from the stored conversation. Returns turns loaded."""
        loaded = 0
        for msg in self.persister.load_history(limit):
            try:
                role = TurnRole(msg.role)
            except ValueError:
                continue
            if role is TurnRole.SYSTEM:
                continue
            tool_name = (msg.metadata or {}).get("tool_name")
            self._turns.append(Turn(role, msg.content, tool_name))
            loaded += 1
        return loaded

    async def _append(self, turn: Turn) -> None:
        self._turns.append(turn)
        metadata = {"tool_name": turn.tool_name} if turn.tool_name else None
        await self.persister.save(turn.role.value, turn.content, metadata)

    def reset(self) -> None:
        """Forget in-memory turns and start a fresh stored conversation."""
        self._turns.clear()
        self._rounds = 0
        self._state = OrchestratorState.IDLE
        self.persister.start_new_conversation()
        self.prompt_assembler.invalidate()

    # -- Conversation loop ---------------------------------------------------

    async def _await_model(self) -> str:
        self._state = OrchestratorState.AWAITING_MODEL
        chunks: List[str] = []

        async def on_chunk(text: str) -> None:
            chunks.append(text)
            await self._emit("chunk", text, None)

        returned = await self.inference.chat(await self.history_messages(), on_chunk)
        return "".join(chunks) or (returned or "")

    async def _execute(self, call: ToolCall) -> Any:
        self._state = OrchestratorState.EXECUTING_TOOL
        # The worker thread finishes even if this task is cancelled; its result is dropped
        return await asyncio.to_thread(self.executor.execute, call)

    async def handle_user_message(self, text: str) -> Optional[str]:
        """Run the loop for one user message.

        Returns the final answer, or None when the round ended in an error or
        hit the round limit.
        """
        self._rounds = 0
        try:
            await self._append(Turn(TurnRole.USER, text))
            while True:
                try:
                    buffer = await self._await_model()
                except InferenceError as e:
                    logger.error("Inference failed: %s", e)
                    await self._emit("error", f"Error: {e}", None)
                    return None

                self._state = OrchestratorState.DETECTING_CALL
                call = detect_tool_call(buffer, known_tools=self.registry.names())
                if call is None:
                    self._state = OrchestratorState.FINALIZING
                    await self._append(Turn(TurnRole.ASSISTANT, buffer))
                    await self._emit("assistant", buffer, None)
                    return buffer

                logger.info("Detected tool call: %s", call.name)
                try:
                    result = await self._execute(call)
                except ToolError as e:
                    await self._emit("error", f"Tool error: {e}", None)
                    return None

                result_text = format_tool_result(call.name, result, self.executor.config)
                await self._append(Turn(TurnRole.ASSISTANT, buffer))
                await self._append(Turn(TurnRole.TOOL_RESULT, result_text, call.name))
                await self._emit("system", f"Tool {call.name} executed: {result_text}", None)

                self._rounds += 1
                if self._rounds >= self.max_rounds:
                    logger.warning(
                        "Maximum tool call iterations reached (%d); ending round without a final answer",
                        self.max_rounds,
                    )
                    return None
        finally:
            self._state = OrchestratorState.IDLE

    async def handle_direct_call(
        self,
        name: str,
        arguments: Optional[Dict[str, Any]] = None,
        request_id: Optional[str] = None,
    ) -> Optional[Any]:
        """Execute a client-requested call without asking the model.

        ``arguments["_silent"]`` (stripped before execution) selects silent
        mode: exactly one ``tool_result`` or ``error`` event tagged with
        *request_id*. Otherwise a ``system`` event precedes the
        ``tool_result`` and the formatted result joins the turn history.
        """
        args = dict(arguments or {})
        try:
            silent = optional_bool(args, "_silent", False)
        except ToolError as e:
            await self._emit("error", f"Tool error: {e}", request_id)
            return None
        args.pop("_silent", None)

        try:
            result = await self._execute(ToolCall(name=name, arguments=args))
        except ToolError as e:
            await self._emit("error", f"Tool error: {e}", request_id)
            return None
        finally:
            self._state = OrchestratorState.IDLE

        try:
            payload = serialize_result(result)
        except (TypeError, ValueError):
            payload = str(result)

        if silent:
            await self._emit("tool_result", payload, request_id)
            return result

        result_text = format_tool_result(name, result, self.executor.config)
        await self._emit("system", f"Tool {name} executed: {result_text}", request_id)
        await self._emit("tool_result", payload, request_id)
        await self._append(Turn(TurnRole.TOOL_RESULT, result_text, name))
        return result
