"""WebSocket feed of "notifications changed" signals.

Clients receive ``{"event": "connected"}`` on connect and then one
``{"event": "changed"}`` per feed mutation, and re-query the REST API.
"""

import asyncio
import logging

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from src.api.config import DEFAULT_WS_CONFIG
from src.api.dependencies import get_engine
from src.notifications import NotificationEngine

logger = logging.getLogger(__name__)
router = APIRouter(tags=["notifications-websocket"])


class WebSocketObserver:
    """Bridges broadcaster signals from its worker thread into an asyncio queue."""

    def __init__(self, loop: asyncio.AbstractEventLoop, maxsize: int) -> None:
        self._loop = loop
        self.signals: asyncio.Queue = asyncio.Queue(maxsize=maxsize)

    def on_changed(self) -> None:
        self._loop.call_soon_threadsafe(self._enqueue)

    def _enqueue(self) -> None:
        if self.signals.full():
            # Observers only need to know something changed
            return
        self.signals.put_nowait("changed")


async def _forward_signals(websocket: WebSocket, observer: WebSocketObserver) -> None:
    while True:
        event = await observer.signals.get()
        await websocket.send_json({"event": event})


async def _read_client(websocket: WebSocket) -> None:
    while True:
        text = await websocket.receive_text()
        if text.strip().lower() == "ping":
            await websocket.send_json({"event": "pong"})


@router.websocket("/ws/notifications")
async def notifications_websocket(
    websocket: WebSocket,
    engine: NotificationEngine = Depends(get_engine),
) -> None:
    await websocket.accept()
    observer = WebSocketObserver(asyncio.get_running_loop(), DEFAULT_WS_CONFIG.max_pending_signals)
    unsubscribe = engine.subscribe(observer)
    await websocket.send_json({"event": "connected"})
    logger.info("Feed WebSocket connected")

    tasks = [
        asyncio.create_task(_forward_signals(websocket, observer)),
        asyncio.create_task(_read_client(websocket)),
    ]
    try:
        done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        for task in done:
            exc = task.exception()
            if exc is not None and not isinstance(exc, WebSocketDisconnect):
                logger.warning("Feed WebSocket closed with error: %s", exc)
    finally:
        for task in tasks:
            task.cancel()
        unsubscribe()
        logger.info("Feed WebSocket disconnected")
