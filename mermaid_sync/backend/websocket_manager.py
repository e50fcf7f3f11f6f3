"""
WebSocket Manager - Pushes sync events to connected views.

The text view listens for `text_published` (a graph edit produced new text);
the graph view listens for `graph_replaced` (text was parsed into a new model).
Every client receives every event and filters on `type`.
"""
import asyncio
import json
import logging

from fastapi import WebSocket

logger = logging.getLogger(__name__)

SYNC_EVENTS = ("text_published", "graph_replaced")


class WebSocketManager:
    """Registry of open sockets plus the last event revision sent to them."""

    def __init__(self):
        self._clients: set[WebSocket] = set()
        self._lock = asyncio.Lock()
        self.last_revision = 0

    @property
    def connection_count(self) -> int:
        return len(self._clients)

    async def connect(self, websocket: WebSocket):
        await websocket.accept()
        async with self._lock:
            self._clients.add(websocket)
        logger.info("View connected (%d open)", self.connection_count)

    async def disconnect(self, websocket: WebSocket):
        async with self._lock:
            self._clients.discard(websocket)
        logger.info("View disconnected (%d open)", self.connection_count)

    async def broadcast(self, message: dict):
        """Send one JSON message to every client, dropping sockets that fail."""
        if not self._clients:
            return
        payload = json.dumps(message)
        async with self._lock:
            stale = set()
            for websocket in self._clients:
                try:
                    await websocket.send_text(payload)
                except Exception:
                    stale.add(websocket)
            self._clients -= stale
        if stale:
            logger.debug("Dropped %d unreachable views", len(stale))

    async def publish(self, event: dict):
        """Broadcast a sync event queued by the controller listeners."""
        if event.get("type") not in SYNC_EVENTS:
            logger.warning("Ignoring unknown sync event %r", event.get("type"))
            return
        self.last_revision = max(self.last_revision, event.get("revision", 0))
        await self.broadcast(event)

    async def notify_text_published(self, text: str, revision: int):
        await self.publish({"type": "text_published", "text": text, "revision": revision})

    async def notify_graph_replaced(self, version: int, revision: int):
        """Clients re-fetch the model via GET /api/diagram."""
        await self.publish({"type": "graph_replaced", "version": version, "revision": revision})
