"""
FastAPI server — query API plus live WebSocket subscriptions.

create_app() builds the runtime (store, hub, analyzer, pipeline) once per app.
The lifespan starts ingestion on startup and stops it on shutdown (in-flight
items complete, then store and hub are closed). Subscriptions are served at
WS /subscriptions/{topic} for new-transaction, new-alert and analytics-updated.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager

from fastapi import FastAPI, WebSocket, WebSocketDisconnect

from backend_hyperchain import __version__
from backend_hyperchain.agent_worker.runtime import HyperchainRuntime, build_runtime
from backend_hyperchain.api_server.routes import router
from backend_hyperchain.api_server.schemas import payload_to_json
from backend_hyperchain.broadcast.hub import Subscription, Topic
from backend_hyperchain.config.settings import Settings, get_settings
from backend_hyperchain.hyperchain_logging import get_logger

logger = get_logger(__name__)

# WebSocket close code for an unknown topic (policy violation)
WS_CLOSE_UNKNOWN_TOPIC = 1008


async def _close_on_disconnect(websocket: WebSocket, sub: Subscription) -> None:
    """Close the subscription as soon as the client goes away."""
    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                return
    finally:
        sub.close()


def create_app(
    settings: Settings | None = None,
    *,
    runtime: HyperchainRuntime | None = None,
    start_ingestion: bool = True,
) -> FastAPI:
    """Build the ASGI app around a runtime (built from settings when not given)."""
    settings = settings or get_settings()
    runtime = runtime or build_runtime(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if start_ingestion:
            await runtime.start()
        logger.info("api_started", ingestion=start_ingestion)
        try:
            yield
        finally:
            await runtime.shutdown()
            logger.info("api_stopped")

    app = FastAPI(
        title="Hyperchain Insights API",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.runtime = runtime
    app.include_router(router)

    @app.websocket("/subscriptions/{topic}")
    async def subscribe(websocket: WebSocket, topic: str) -> None:
        try:
            topic_enum = Topic(topic)
        except ValueError:
            await websocket.close(code=WS_CLOSE_UNKNOWN_TOPIC)
            return
        sub = runtime.hub.subscribe(topic_enum)
        await websocket.accept()
        watcher = asyncio.create_task(_close_on_disconnect(websocket, sub))
        try:
            async for event in sub:
                if sub.closed:
                    break
                await websocket.send_json(
                    {
                        "topic": event.topic.value,
                        "emitted_at": event.emitted_at.isoformat(),
                        "payload": payload_to_json(event.payload),
                    }
                )
        except WebSocketDisconnect:
            logger.info("ws_client_disconnected", topic=topic_enum.value, subscription_id=sub.id)
        finally:
            watcher.cancel()
            runtime.hub.unsubscribe(sub)

    return app
