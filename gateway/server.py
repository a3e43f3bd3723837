"""
NIRA WebSocket gateway.

A FastAPI app with a single WebSocket endpoint. Each connection gets its own
Orchestrator (and so its own turn history); the database, the allow-list,
the tool registry and the inference client are shared.

    ws://<host>:<port>/ws      conversation channel
    GET /health                liveness + tool count
"""

import asyncio
import contextlib
import json
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, Optional

import httpx
from fastapi import FastAPI, WebSocket, WebSocketDisconnect

from agent.ollama_client import InferenceClient, OllamaClient
from agent.orchestrator import Orchestrator
from agent.session_persister import TurnPersister
from gateway.config import NiraConfig
from gateway.messages import (
    DirectCallRequest,
    FrameError,
    MessageType,
    OutboundMessage,
    ResetRequest,
    UserMessage,
    parse_inbound,
)
from storage.allowed_dirs import AllowedDirsStore
from storage.database import Database, StorageError
from storage.manager import MemoryManager
from storage.memories import MemoryStore
from storage.rag_index import RagIndex
from tools.registry import ToolRegistry, build_tool_registry

logger = logging.getLogger(__name__)


@dataclass
class GatewayServices:
    """Process-wide state shared by every connection."""

    config: NiraConfig
    db: Database
    allowed_dirs: AllowedDirsStore
    rag_index: RagIndex
    memories: MemoryStore
    registry: ToolRegistry
    inference: InferenceClient

    async def aclose(self) -> None:
        aclose = getattr(self.inference, "aclose", None)
        if aclose is not None:
            await aclose()
        self.db.close()


def build_services(
    config: NiraConfig,
    *,
    inference: Optional[InferenceClient] = None,
    http_client: Optional[httpx.Client] = None,
) -> GatewayServices:
    """Open the database, seed the allow-list and build the registry."""
    db = Database(config.database_path)
    allowed_dirs = AllowedDirsStore(db)
    allowed_dirs.ensure_seed(config.allowed_paths)
    rag_index = RagIndex(db)
    memories = MemoryStore(db)
    registry = build_tool_registry(
        allowed_dirs=allowed_dirs,
        rag_index=rag_index,
        memories=memories,
        enable_web=config.enable_web_search,
        http_client=http_client,
    )
    if inference is None:
        inference = OllamaClient(config.ollama_endpoint, config.model, timeout=config.request_timeout)
    logger.info(
        "Gateway services ready: db=%s model=%s allowed=%d",
        config.database_path, config.model, len(allowed_dirs.list()),
    )
    return GatewayServices(
        config=config,
        db=db,
        allowed_dirs=allowed_dirs,
        rag_index=rag_index,
        memories=memories,
        registry=registry,
        inference=inference,
    )


class ConnectionSession:
    """
    One WebSocket connection.

    The reader loop only moves frames into a queue; a single worker task
    processes them in order. Closing the socket cancels the worker, which
    abandons any model stream it is waiting on.
    """

    def __init__(self, websocket: WebSocket, services: GatewayServices):
        self.websocket = websocket
        self.services = services
        self.queue: "asyncio.Queue[str]" = asyncio.Queue()
        self._closed = False

        try:
            manager: Optional[MemoryManager] = MemoryManager(services.db)
        except StorageError as e:
            logger.warning("Conversation storage unavailable, continuing in memory only: %s", e)
            manager = None

        self.orchestrator = Orchestrator(
            services.registry,
            services.inference,
            emit=self.send,
            persister=TurnPersister(manager),
            max_rounds=services.config.max_tool_rounds,
        )

    async def send(self, kind: str, content: str, request_id: Optional[str] = None) -> None:
        if self._closed:
            return
        message = OutboundMessage(type=MessageType(kind), content=content, id=request_id)
        try:
            await self.websocket.send_json(message.to_wire())
        except (WebSocketDisconnect, RuntimeError) as e:
            # peer went away mid-round; drop this and later sends
            self._closed = True
            logger.debug("Dropping %s message for closed connection: %s", kind, e)

    async def handle_frame(self, raw: str) -> None:
        try:
            frame: Any = json.loads(raw)
        except ValueError:
            await self.send("error", "invalid message: not valid JSON")
            return
        try:
            message = parse_inbound(frame)
        except FrameError as e:
            await self.send("error", str(e), frame.get("id") if isinstance(frame, dict) else None)
            return

        if isinstance(message, UserMessage):
            await self.orchestrator.handle_user_message(message.content)
        elif isinstance(message, DirectCallRequest):
            await self.orchestrator.handle_direct_call(message.name, message.arguments, message.id)
        elif isinstance(message, ResetRequest):
            self.orchestrator.reset()
            await self.send("system", "Conversation reset")

    async def _worker(self) -> None:
        while True:
            raw = await self.queue.get()
            try:
                await self.handle_frame(raw)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.exception("Unhandled error while processing message: %s", e)
                await self.send("error", f"Error: {e}")

    async def run(self) -> None:
        loaded = self.orchestrator.load_history(self.services.config.history_limit)
        if loaded:
            logger.debug("Restored %d turns from storage", loaded)

        worker = asyncio.create_task(self._worker())
        try:
            while True:
                message = await self.websocket.receive()
                if message["type"] == "websocket.disconnect":
                    break
                raw = message.get("text")
                if raw is None:
                    raw = (message.get("bytes") or b"").decode("utf-8", errors="replace")
                await self.queue.put(raw)
        except WebSocketDisconnect:
            pass
        finally:
            self._closed = True
            worker.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await worker


def create_app(
    config: Optional[NiraConfig] = None,
    *,
    services: Optional[GatewayServices] = None,
    inference: Optional[InferenceClient] = None,
) -> FastAPI:
    """Build the FastAPI app.

    Args:
        config: Effective configuration; defaults to NiraConfig().
        services: Prebuilt shared state (tests); built from *config* otherwise.
        inference: Replacement inference client, used when building services.
    """
    if services is None:
        services = build_services(config or NiraConfig(), inference=inference)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        await services.aclose()

    app = FastAPI(
        title="NIRA Gateway",
        description="Local model agent over WebSocket",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.services = services

    @app.get("/health")
    async def health():
        return {"status": "ok", "tools": len(services.registry)}

    @app.websocket("/ws")
    async def websocket_endpoint(websocket: WebSocket):
        await websocket.accept()
        client = f"{websocket.client.host}:{websocket.client.port}" if websocket.client else "unknown"
        logger.info("WebSocket connected: %s", client)
        session = ConnectionSession(websocket, services)
        try:
            await session.run()
        finally:
            logger.info("WebSocket disconnected: %s", client)

    return app
