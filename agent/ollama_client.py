"""Streaming chat client for the Ollama HTTP API.

POST ``<endpoint>/api/chat`` with ``stream: true`` answers with one JSON
object per line; each carries a ``message.content`` fragment and the last has
``done: true``.
"""

import json
import logging
from typing import Awaitable, Callable, Dict, List, Optional, Protocol

import httpx

from nira_constants import DEFAULT_MODEL, DEFAULT_OLLAMA_ENDPOINT

logger = logging.getLogger(__name__)

ChunkCallback = Callable[[str], Awaitable[None]]


class InferenceError(Exception):
    """The inference service could not be reached or produced an unusable stream."""


class InferenceClient(Protocol):
    async def chat(self, messages: List[Dict[str, str]], on_chunk: ChunkCallback) -> str:
        ...


class OllamaClient:
    """
    Args:
        endpoint: Base URL of the Ollama server.
        model: Model tag to run.
        timeout: Seconds to wait for connect and for each read.
        client: Optional preconfigured httpx.AsyncClient (tests use MockTransport).
            A client passed in is not closed by aclose().
    """

    def __init__(
        self,
        endpoint: str = DEFAULT_OLLAMA_ENDPOINT,
        model: str = DEFAULT_MODEL,
        timeout: float = 120.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.endpoint = endpoint.rstrip("/")
        self.model = model
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(timeout, connect=10.0))

    async def chat(self, messages: List[Dict[str, str]], on_chunk: ChunkCallback) -> str:
        """Stream a completion, awaiting *on_chunk* for every text fragment.

        Returns the concatenated text.

        Raises:
            InferenceError: on non-200 status, transport failure, or a line
                that is not valid JSON.
        """
        url = f"{self.endpoint}/api/chat"
        payload = {"model": self.model, "messages": messages, "stream": True}
        parts: List[str] = []

        logger.debug("Ollama request: model=%s messages=%d", self.model, len(messages))
        try:
            async with self._client.stream("POST", url, json=payload) as response:
                if response.status_code != 200:
                    body = (await response.aread()).decode("utf-8", errors="replace")
                    raise InferenceError(f"ollama API error ({response.status_code}): {body.strip()}")

                async for line in response.aiter_lines():
                    line = line.strip()
                    if not line:
                        continue
                    try:
                        chunk = json.loads(line)
                    except json.JSONDecodeError as e:
                        raise InferenceError(f"failed to decode chunk: {e}") from e
                    if not isinstance(chunk, dict):
                        raise InferenceError(f"unexpected chunk: {line[:200]}")
                    if chunk.get("error"):
                        raise InferenceError(f"ollama API error: {chunk['error']}")

                    content = (chunk.get("message") or {}).get("content") or ""
                    if content:
                        parts.append(content)
                        await on_chunk(content)
                    if chunk.get("done"):
                        break
        except httpx.HTTPError as e:
            raise InferenceError(f"failed to make request: {e}") from e

        return "".join(parts)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
