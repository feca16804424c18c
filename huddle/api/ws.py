"""WebSocket endpoint for real-time chat communication."""

from __future__ import annotations

import asyncio
import json
import logging
import time
from collections.abc import AsyncIterator, Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Dict, TypeVar

from fastapi import APIRouter, WebSocket, status
from fastapi.exceptions import HTTPException
from fastapi.websockets import WebSocketDisconnect, WebSocketState

from huddle.api.deps import get_user_from_token
from huddle.api.serializers import serialize_direct_message, serialize_message
from huddle.config import get_settings
from huddle.core.errors import ChatError, InvalidInput, NotMember
from huddle.core.ids import is_entity_id
from huddle.database import get_db_session
from huddle.realtime import get_channel_manager, get_typing_manager, safe_send_json
from huddle.realtime.events import (
    publish_direct_message,
    publish_direct_typing,
    publish_message_created,
    publish_message_deleted,
    publish_message_updated,
)
from huddle.services import direct, presence_tracker
from huddle.services.membership import get_channel, require_channel_member
from huddle.services.messages import create_message
from huddle.services.threads import edit_message, reply, soft_delete_message

router = APIRouter(tags=["ws"])

settings = get_settings()

logger = logging.getLogger(__name__)

manager = get_channel_manager()
typing_manager = get_typing_manager()

T = TypeVar("T")


@dataclass(slots=True)
class SocketUser:
    """Identity bound to a connection at handshake time."""

    id: int
    email: str
    name: str


Handler = Callable[[WebSocket, SocketUser, Dict[str, Any]], Awaitable[None]]


async def iter_keepalive_messages(
    websocket: WebSocket,
    receiver: Callable[[], Awaitable[T]],
    *,
    timeout_seconds: float | int | None,
    ping_interval_seconds: float | int | None,
    ping_payload: Dict[str, Any] | None = None,
) -> AsyncIterator[T]:
    """Yield messages from *receiver* while sending keepalive pings when idle."""

    ping_payload = ping_payload or {"type": "ping"}
    timeout = float(timeout_seconds) if timeout_seconds else 0.0
    interval = float(ping_interval_seconds) if ping_interval_seconds else 0.0
    last_activity = time.monotonic()
    last_ping_sent: float | None = None

    while True:
        try:
            if timeout > 0:
                message = await asyncio.wait_for(receiver(), timeout=timeout)
            else:
                message = await receiver()
        except asyncio.TimeoutError:
            if websocket.application_state != WebSocketState.CONNECTED:
                break

            now = time.monotonic()
            should_ping = interval <= 0 or (
                now - last_activity >= interval
                and (last_ping_sent is None or now - last_ping_sent >= interval)
            )
            if should_ping:
                if not await safe_send_json(websocket, ping_payload):
                    break
                last_ping_sent = now
            continue
        except (RuntimeError, WebSocketDisconnect):
            break
        else:
            last_activity = time.monotonic()
            last_ping_sent = None
            yield message


async def _resolve_user(websocket: WebSocket) -> SocketUser | None:
    token = websocket.query_params.get("token")
    if not token:
        auth_header = websocket.headers.get("Authorization")
        if auth_header and auth_header.startswith("Bearer "):
            token = auth_header.removeprefix("Bearer ").strip()
    if not token:
        logger.info("Rejected websocket without token")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason="Missing token")
        return None

    try:
        with get_db_session() as db:
            user = get_user_from_token(token, db)
            return SocketUser(id=user.id, email=user.email, name=user.name)
    except HTTPException:
        logger.info("Rejected websocket with invalid token")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason="Invalid token")
        return None


async def _send_error(websocket: WebSocket, error: HTTPException, event: str | None = None) -> None:
    payload: Dict[str, Any] = {"type": "error", "detail": str(error.detail)}
    payload["code"] = error.code if isinstance(error, ChatError) else "error"
    if event is not None:
        payload["event"] = event
    await safe_send_json(websocket, payload)


def _require_int(payload: Dict[str, Any], key: str) -> int:
    value = payload.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, str)):
        raise InvalidInput(f"{key} must be an integer")
    try:
        number = int(value)
    except ValueError:
        raise InvalidInput(f"{key} must be an integer") from None
    if not is_entity_id(number):
        raise InvalidInput(f"{key} is out of range")
    return number


def _optional_int(payload: Dict[str, Any], key: str) -> int | None:
    if payload.get(key) is None:
        return None
    return _require_int(payload, key)


def _int_list(payload: Dict[str, Any], key: str) -> list[int]:
    values = payload.get(key) or []
    if not isinstance(values, list):
        raise InvalidInput(f"{key} must be a list of integers")
    return [_require_int({key: value}, key) for value in values]


async def _handle_join(websocket: WebSocket, user: SocketUser, payload: Dict[str, Any]) -> None:
    channel_id = _require_int(payload, "channel_id")
    with get_db_session() as db:
        get_channel(channel_id, db)
        require_channel_member(channel_id, user.id, db)
    await manager.connect(channel_id, websocket)
    await safe_send_json(
        websocket,
        {
            "type": "joined",
            "channel_id": channel_id,
            "typing": await typing_manager.snapshot(channel_id),
        },
    )


async def _handle_leave(websocket: WebSocket, user: SocketUser, payload: Dict[str, Any]) -> None:
    channel_id = _require_int(payload, "channel_id")
    await manager.disconnect(channel_id, websocket)
    await typing_manager.clear_user(channel_id, user.id)
    await safe_send_json(websocket, {"type": "left", "channel_id": channel_id})


async def _handle_message_send(
    websocket: WebSocket, user: SocketUser, payload: Dict[str, Any]
) -> None:
    channel_id = _require_int(payload, "channel_id")
    thread_id = _optional_int(payload, "thread_id")
    file_ids = _int_list(payload, "file_ids")
    with get_db_session() as db:
        if thread_id is not None:
            get_channel(channel_id, db)
            message = reply(
                db, thread_id, user.id, payload.get("content"), file_ids, channel_id=channel_id
            )
        else:
            message = create_message(db, channel_id, user.id, payload.get("content"), file_ids)
        serialized = serialize_message(db, message).model_dump(mode="json")
    await typing_manager.clear_user(channel_id, user.id)
    await publish_message_created(serialized)
    if not manager.is_in_room(channel_id, websocket):
        await safe_send_json(
            websocket, {"type": "message:new", "channel_id": channel_id, "message": serialized}
        )


async def _handle_message_edit(
    websocket: WebSocket, user: SocketUser, payload: Dict[str, Any]
) -> None:
    message_id = _require_int(payload, "message_id")
    with get_db_session() as db:
        message = edit_message(db, message_id, user.id, payload.get("content"))
        serialized = serialize_message(db, message).model_dump(mode="json")
    await publish_message_updated(serialized)


async def _handle_message_delete(
    websocket: WebSocket, user: SocketUser, payload: Dict[str, Any]
) -> None:
    message_id = _require_int(payload, "message_id")
    with get_db_session() as db:
        message = soft_delete_message(db, message_id, user.id)
        channel_id, thread_id = message.channel_id, message.thread_id
    await publish_message_deleted(channel_id, message_id, thread_id)


async def _handle_typing(
    websocket: WebSocket, user: SocketUser, payload: Dict[str, Any], *, is_typing: bool
) -> None:
    channel_id = _require_int(payload, "channel_id")
    if not manager.is_in_room(channel_id, websocket):
        raise NotMember("Join the channel before sending typing updates")
    await typing_manager.set_status(channel_id, user, is_typing, source=websocket)


async def _handle_typing_start(websocket: WebSocket, user: SocketUser, payload: Dict[str, Any]) -> None:
    await _handle_typing(websocket, user, payload, is_typing=True)


async def _handle_typing_stop(websocket: WebSocket, user: SocketUser, payload: Dict[str, Any]) -> None:
    await _handle_typing(websocket, user, payload, is_typing=False)


async def _handle_direct_send(
    websocket: WebSocket, user: SocketUser, payload: Dict[str, Any]
) -> None:
    recipient_id = _require_int(payload, "to_user_id")
    with get_db_session() as db:
        message = direct.send_direct_message(db, user.id, recipient_id, payload.get("content"))
        serialized = serialize_direct_message(message).model_dump(mode="json")
    await publish_direct_message(serialized)


async def _handle_direct_typing(
    websocket: WebSocket, user: SocketUser, payload: Dict[str, Any], *, is_typing: bool
) -> None:
    recipient_id = _require_int(payload, "to_user_id")
    if recipient_id == user.id:
        raise InvalidInput("Cannot send typing updates to yourself")
    await publish_direct_typing(user, recipient_id, is_typing)


async def _handle_direct_typing_start(
    websocket: WebSocket, user: SocketUser, payload: Dict[str, Any]
) -> None:
    await _handle_direct_typing(websocket, user, payload, is_typing=True)


async def _handle_direct_typing_stop(
    websocket: WebSocket, user: SocketUser, payload: Dict[str, Any]
) -> None:
    await _handle_direct_typing(websocket, user, payload, is_typing=False)


async def _handle_ping(websocket: WebSocket, user: SocketUser, payload: Dict[str, Any]) -> None:
    await safe_send_json(websocket, {"type": "pong"})


HANDLERS: Dict[str, Handler] = {
    "join": _handle_join,
    "leave": _handle_leave,
    "message:send": _handle_message_send,
    "message:edit": _handle_message_edit,
    "message:delete": _handle_message_delete,
    "typing:start": _handle_typing_start,
    "typing:stop": _handle_typing_stop,
    "dm:send": _handle_direct_send,
    "dm:typing:start": _handle_direct_typing_start,
    "dm:typing:stop": _handle_direct_typing_stop,
    "ping": _handle_ping,
}


@router.websocket("/ws")
async def realtime_socket(websocket: WebSocket) -> None:
    """Authenticate once, then dispatch client events until the socket closes."""

    user = await _resolve_user(websocket)
    if user is None:
        return

    await websocket.accept()
    try:
        await presence_tracker.connected(user.id, websocket)
        await safe_send_json(
            websocket,
            {"type": "ready", "user": {"id": user.id, "email": user.email, "name": user.name}},
        )

        async for raw_message in iter_keepalive_messages(
            websocket,
            websocket.receive_text,
            timeout_seconds=settings.websocket_receive_timeout_seconds,
            ping_interval_seconds=settings.websocket_ping_interval_seconds,
        ):
            try:
                payload = json.loads(raw_message)
            except json.JSONDecodeError:
                await _send_error(websocket, InvalidInput("Invalid message format"))
                continue
            if not isinstance(payload, dict):
                await _send_error(websocket, InvalidInput("Invalid message format"))
                continue

            event_type = payload.get("type")
            handler = HANDLERS.get(event_type) if isinstance(event_type, str) else None
            if handler is None:
                await _send_error(websocket, InvalidInput("Unsupported event type"), event_type)
                continue

            try:
                await handler(websocket, user, payload)
            except HTTPException as exc:
                await _send_error(websocket, exc, event_type)
    finally:
        rooms = await manager.disconnect_all(websocket)
        for channel_id in rooms:
            await typing_manager.clear_user(channel_id, user.id)
        await presence_tracker.disconnected(user.id, websocket)
