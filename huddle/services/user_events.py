"""Personal event rooms keyed by user id."""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from typing import Any, Dict, Iterable, Set

from fastapi.websockets import WebSocket, WebSocketState

logger = logging.getLogger(__name__)


class UserEventHub:
    """Keeps track of every live connection of each user.

    Direct messages and presence updates are delivered through these rooms,
    so a user receives them on all of their open sessions.
    """

    def __init__(self) -> None:
        self._connections: Dict[int, Set[WebSocket]] = defaultdict(set)
        self._lock = asyncio.Lock()

    async def connect(self, user_id: int, websocket: WebSocket) -> int:
        async with self._lock:
            sockets = self._connections[user_id]
            sockets.add(websocket)
            return len(sockets)

    async def disconnect(self, user_id: int, websocket: WebSocket) -> int:
        async with self._lock:
            sockets = self._connections.get(user_id)
            if not sockets:
                return 0
            sockets.discard(websocket)
            remaining = len(sockets)
            if not sockets:
                self._connections.pop(user_id, None)
            return remaining

    def connection_count(self, user_id: int) -> int:
        return len(self._connections.get(user_id, ()))

    async def broadcast(self, payload: dict[str, Any], recipients: Iterable[int]) -> None:
        unique_recipients = set(recipients)
        if not unique_recipients:
            return
        async with self._lock:
            targets = [
                list(self._connections.get(recipient_id, set()))
                for recipient_id in unique_recipients
            ]
        for sockets in targets:
            for socket in sockets:
                if socket.application_state != WebSocketState.CONNECTED:
                    continue
                try:
                    await socket.send_json(payload)
                except RuntimeError:
                    logger.debug("Dropped %s event for a closing socket", payload.get("type"))
                    continue


user_event_hub = UserEventHub()
"""Singleton hub shared across modules."""
