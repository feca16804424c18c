"""Reference-counted presence for realtime connections.

A user is online while at least one authenticated connection is open. Only the
transition from zero to one connection marks the user online, and only the
close of the last connection marks them offline and stamps ``last_seen``.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Dict

from fastapi.websockets import WebSocket

from huddle.database import get_db_session
from huddle.models import PresenceStatus, User
from huddle.services.membership import shared_user_ids
from huddle.services.user_events import UserEventHub, user_event_hub

logger = logging.getLogger(__name__)


def presence_payload(user: User, *, online: bool) -> dict:
    return {
        "type": "presence:update",
        "user_id": user.id,
        "status": user.status.value,
        "online": online,
        "last_seen": user.last_seen.isoformat() if user.last_seen else None,
    }


class PresenceTracker:
    """Counts live connections per user and publishes online/offline edges."""

    def __init__(self, hub: UserEventHub) -> None:
        self._hub = hub
        self._counts: Dict[int, int] = {}
        self._lock = asyncio.Lock()

    def connection_count(self, user_id: int) -> int:
        return self._counts.get(user_id, 0)

    def is_online(self, user_id: int) -> bool:
        return self.connection_count(user_id) > 0

    async def acquire(self, user_id: int, websocket: WebSocket) -> bool:
        """Register a connection; returns ``True`` for the user's first one."""

        await self._hub.connect(user_id, websocket)
        async with self._lock:
            count = self._counts.get(user_id, 0) + 1
            self._counts[user_id] = count
            return count == 1

    async def release(self, user_id: int, websocket: WebSocket) -> bool:
        """Drop a connection; returns ``True`` when it was the user's last one."""

        await self._hub.disconnect(user_id, websocket)
        async with self._lock:
            count = self._counts.get(user_id, 0)
            if count <= 1:
                self._counts.pop(user_id, None)
                return count == 1
            self._counts[user_id] = count - 1
            return False

    async def connected(self, user_id: int, websocket: WebSocket) -> None:
        if not await self.acquire(user_id, websocket):
            return
        await self._publish(user_id, online=True)

    async def disconnected(self, user_id: int, websocket: WebSocket) -> None:
        if not await self.release(user_id, websocket):
            return
        await self._publish(user_id, online=False)

    async def _publish(self, user_id: int, *, online: bool) -> None:
        with get_db_session() as db:
            user = db.get(User, user_id)
            if user is None:
                return
            if online:
                user.status = PresenceStatus.ONLINE
            else:
                user.status = PresenceStatus.OFFLINE
                user.last_seen = datetime.now(timezone.utc)
            db.commit()
            db.refresh(user)
            payload = presence_payload(user, online=online)
            recipients = shared_user_ids(user_id, db)
        logger.info("User %s is now %s", user_id, "online" if online else "offline")
        await self._hub.broadcast(payload, recipients)


presence_tracker = PresenceTracker(user_event_hub)
"""Singleton presence tracker shared across modules."""
