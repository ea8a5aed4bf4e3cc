"""
Realtime Notifier - WebSocket Push to Dashboard Clients
========================================================

Fire-and-forget broadcast. Each event goes out as
    {"event": "<kind>", "data": <payload or null>}
Clients that connect late get nothing replayed; they poll /api/status.
"""

import logging
from typing import Any, Optional, Set

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class RealtimeNotifier:
    """Tracks open dashboard sockets and broadcasts session/message events."""

    def __init__(self):
        self._connections: Set[WebSocket] = set()

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    async def connect(self, websocket: WebSocket) -> None:
        await websocket.accept()
        self._connections.add(websocket)
        logger.info(f"Dashboard connected ({self.connection_count} open)")

    def disconnect(self, websocket: WebSocket) -> None:
        if websocket in self._connections:
            self._connections.discard(websocket)
            logger.info(f"Dashboard disconnected ({self.connection_count} open)")

    async def send_to(self, websocket: WebSocket, event: str, data: Optional[Any] = None) -> None:
        await websocket.send_json({"event": event, "data": data})

    async def publish(self, event: str, data: Optional[Any] = None) -> None:
        for websocket in list(self._connections):
            try:
                await self.send_to(websocket, event, data)
            except Exception as e:
                # A dead socket must not stop the broadcast
                logger.debug(f"Dropping dashboard socket after send failure: {e}")
                self.disconnect(websocket)

    # ── Event kinds ────────────────────────────────────────────────

    async def qr_code_updated(self, payload: Any) -> None:
        await self.publish("qr_code_updated", payload)

    async def authenticated(self) -> None:
        await self.publish("authenticated")

    async def ready(self) -> None:
        await self.publish("ready")

    async def disconnected(self) -> None:
        await self.publish("disconnected")

    async def message_exchanged(self, sender: str, inbound: str, outbound: str) -> None:
        await self.publish(
            "message_exchanged",
            {"sender": sender, "inbound": inbound, "outbound": outbound},
        )
