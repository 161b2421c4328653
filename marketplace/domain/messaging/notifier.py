"""
Live push of events to connected browser sessions.

The registry is owned by the application (``app.state.notifier``). There is
one connection per user; a new connection for the same user replaces the old
one. Events for users without an open connection are dropped, clients refetch
on reconnect.
"""

import logging
from typing import Any, Iterable

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class ConnectionRegistry:
    def __init__(self):
        self._connections: dict[str, WebSocket] = {}

    def connect(self, user_id: str, websocket: WebSocket) -> None:
        """Register an accepted socket for a user"""
        self._connections[user_id] = websocket
        logger.info(f"🔌 WebSocket client connected: {user_id}")

    def disconnect(self, user_id: str, websocket: WebSocket) -> None:
        """Remove the user's entry if it still points at this socket"""
        if self._connections.get(user_id) is websocket:
            del self._connections[user_id]
            logger.info(f"🔌 WebSocket client disconnected: {user_id}")

    def is_connected(self, user_id: str) -> bool:
        return user_id in self._connections

    async def send_to(self, user_id: str, payload: dict[str, Any]) -> bool:
        """Send a JSON event; returns False when the user is offline or the send fails"""
        websocket = self._connections.get(user_id)
        if websocket is None:
            return False
        try:
            await websocket.send_json(payload)
        except Exception as e:
            logger.warning(f"⚠️ Dropping WebSocket for {user_id} after send failure: {e}")
            self.disconnect(user_id, websocket)
            return False
        return True

    async def broadcast(self, user_ids: Iterable[str], payload: dict[str, Any]) -> int:
        """Send to each distinct user; returns how many deliveries succeeded"""
        delivered = 0
        for user_id in dict.fromkeys(user_ids):
            if await self.send_to(user_id, payload):
                delivered += 1
        return delivered
