"""In-process realtime managers for channel rooms and typing indicators."""

from __future__ import annotations

import asyncio
import logging
import time
from collections import defaultdict
from typing import Any, Dict, Iterable, Set, TYPE_CHECKING

from fastapi.websockets import WebSocket, WebSocketDisconnect, WebSocketState

from huddle.config import get_settings

if TYPE_CHECKING:  # pragma: no cover - typing helpers only
    from huddle.models import User


logger = logging.getLogger(__name__)


async def safe_send_json(websocket: WebSocket, data: dict[str, Any]) -> bool:
    """Safely send JSON data through websocket, handling disconnections gracefully.

    Returns True if message was sent successfully, False otherwise.
    """
    if websocket.application_state != WebSocketState.CONNECTED:
        return False
    try:
        await websocket.send_json(data)
        return True
    except (WebSocketDisconnect, RuntimeError) as e:
        logger.debug("Failed to send websocket message: %s", e)
        return False


# ---------------------------------------------------------------------------
# Typing state
# ---------------------------------------------------------------------------


class TypingStatusStore:
    """Stores transient typing indicators that expire after ``ttl_seconds``."""

    def __init__(self, ttl_seconds: float) -> None:
        self._ttl = ttl_seconds
        self._entries: Dict[int, Dict[int, tuple[str, float]]] = defaultdict(dict)
        self._lock = asyncio.Lock()

    @property
    def ttl(self) -> float:
        return self._ttl

    def _cleanup_expired(
        self, channel_id: int, bucket: Dict[int, tuple[str, float]], now: float
    ) -> list[int]:
        removed = [user_id for user_id, (_, ts) in bucket.items() if now - ts > self._ttl]
        for user_id in removed:
            bucket.pop(user_id, None)
        if not bucket and channel_id in self._entries:
            self._entries.pop(channel_id, None)
        return removed

    async def start(self, channel_id: int, user_id: int, display_name: str) -> bool:
        """Record that a user is typing; returns ``True`` if they were not already."""

        now = time.monotonic()
        async with self._lock:
            bucket = self._entries.setdefault(channel_id, {})
            self._cleanup_expired(channel_id, bucket, now)
            bucket = self._entries.setdefault(channel_id, {})
            was_typing = user_id in bucket
            bucket[user_id] = (display_name, now)
            return not was_typing

    async def stop(self, channel_id: int, user_id: int) -> bool:
        """Forget a typing user; returns ``True`` if they were typing."""

        async with self._lock:
            bucket = self._entries.get(channel_id)
            if not bucket or user_id not in bucket:
                return False
            bucket.pop(user_id, None)
            if not bucket:
                self._entries.pop(channel_id, None)
            return True

    async def snapshot(self, channel_id: int) -> list[dict[str, str | int]]:
        now = time.monotonic()
        async with self._lock:
            bucket = self._entries.get(channel_id)
            if not bucket:
                return []
            self._cleanup_expired(channel_id, bucket, now)
            entries: list[dict[str, str | int]] = [
                {"user_id": user_id, "display_name": display_name}
                for user_id, (display_name, _) in bucket.items()
            ]
        entries.sort(key=lambda item: str(item["display_name"]).lower())
        return entries


# ---------------------------------------------------------------------------
# Connection manager
# ---------------------------------------------------------------------------


class ChannelConnectionManager:
    """Track which live connections joined which channel rooms."""

    def __init__(self) -> None:
        self._connections: Dict[int, Set[WebSocket]] = defaultdict(set)
        self._rooms: Dict[WebSocket, Set[int]] = defaultdict(set)
        self._lock = asyncio.Lock()

    async def connect(self, channel_id: int, websocket: WebSocket) -> None:
        async with self._lock:
            self._connections.setdefault(channel_id, set()).add(websocket)
            self._rooms[websocket].add(channel_id)
        logger.debug("Socket joined channel room %s", channel_id)

    async def disconnect(self, channel_id: int, websocket: WebSocket) -> bool:
        async with self._lock:
            connections = self._connections.get(channel_id)
            if not connections or websocket not in connections:
                return False
            connections.remove(websocket)
            if not connections:
                self._connections.pop(channel_id, None)
            rooms = self._rooms.get(websocket)
            if rooms is not None:
                rooms.discard(channel_id)
                if not rooms:
                    self._rooms.pop(websocket, None)
        logger.debug("Socket left channel room %s", channel_id)
        return True

    async def disconnect_all(self, websocket: WebSocket) -> set[int]:
        """Remove a closing socket from every room; returns the rooms it was in."""

        async with self._lock:
            rooms = self._rooms.pop(websocket, set())
            for channel_id in rooms:
                connections = self._connections.get(channel_id)
                if connections is None:
                    continue
                connections.discard(websocket)
                if not connections:
                    self._connections.pop(channel_id, None)
        return rooms

    def is_in_room(self, channel_id: int, websocket: WebSocket) -> bool:
        return websocket in self._connections.get(channel_id, ())

    def room_size(self, channel_id: int) -> int:
        return len(self._connections.get(channel_id, ()))

    async def broadcast(
        self,
        channel_id: int,
        payload: dict[str, Any],
        *,
        exclude: Iterable[WebSocket] | None = None,
    ) -> int:
        """Send ``payload`` once to every socket in the room; returns deliveries."""

        connections: Iterable[WebSocket] = self._connections.get(channel_id, set()).copy()
        exclude_set = set(exclude or [])
        delivered = 0
        for connection in connections:
            if connection in exclude_set:
                continue
            if await safe_send_json(connection, payload):
                delivered += 1
        return delivered


# ---------------------------------------------------------------------------
# Typing manager
# ---------------------------------------------------------------------------


class TypingManager:
    """Broadcast typing start/stop edges to a channel room."""

    def __init__(self, connection_manager: ChannelConnectionManager, *, ttl_seconds: float) -> None:
        self._connections = connection_manager
        self._store = TypingStatusStore(ttl_seconds)

    @staticmethod
    def _display_name(user: "User") -> str:
        return user.name or user.email

    async def snapshot(self, channel_id: int) -> list[dict[str, str | int]]:
        return await self._store.snapshot(channel_id)

    async def set_status(
        self,
        channel_id: int,
        user: "User",
        is_typing: bool,
        *,
        source: WebSocket | None = None,
    ) -> None:
        if is_typing:
            changed = await self._store.start(channel_id, user.id, self._display_name(user))
        else:
            changed = await self._store.stop(channel_id, user.id)
        if not changed:
            return

        payload = {
            "type": "typing:start" if is_typing else "typing:stop",
            "channel_id": channel_id,
            "user_id": user.id,
            "display_name": self._display_name(user),
        }
        if is_typing:
            payload["expires_in"] = self._store.ttl
        exclude = {source} if source is not None else None
        await self._connections.broadcast(channel_id, payload, exclude=exclude)

    async def clear_user(self, channel_id: int, user_id: int) -> None:
        if not await self._store.stop(channel_id, user_id):
            return
        await self._connections.broadcast(
            channel_id,
            {"type": "typing:stop", "channel_id": channel_id, "user_id": user_id},
        )


settings = get_settings()

channel_manager = ChannelConnectionManager()
typing_manager = TypingManager(
    channel_manager,
    ttl_seconds=float(settings.realtime_typing_ttl_seconds),
)


# Convenience accessors exposed to the FastAPI layer ----------------------


def get_channel_manager() -> ChannelConnectionManager:
    return channel_manager


def get_typing_manager() -> TypingManager:
    return typing_manager


__all__ = [
    "ChannelConnectionManager",
    "TypingManager",
    "TypingStatusStore",
    "get_channel_manager",
    "get_typing_manager",
    "safe_send_json",
]
