"""Helpers that publish chat mutations to connected clients."""

from __future__ import annotations

import logging
from typing import Any

from huddle.realtime.managers import get_channel_manager
from huddle.services.user_events import user_event_hub

logger = logging.getLogger(__name__)

MESSAGE_CREATED = "message:new"
MESSAGE_UPDATED = "message:updated"
MESSAGE_DELETED = "message:deleted"
DIRECT_MESSAGE_CREATED = "dm:new"
DIRECT_TYPING_STARTED = "dm:typing:start"
DIRECT_TYPING_STOPPED = "dm:typing:stop"


async def publish_message_created(message: dict[str, Any]) -> int:
    channel_id = int(message["channel_id"])
    delivered = await get_channel_manager().broadcast(
        channel_id,
        {"type": MESSAGE_CREATED, "channel_id": channel_id, "message": message},
    )
    logger.debug("Message %s delivered to %s sockets", message["id"], delivered)
    return delivered


async def publish_message_updated(message: dict[str, Any]) -> int:
    channel_id = int(message["channel_id"])
    return await get_channel_manager().broadcast(
        channel_id,
        {"type": MESSAGE_UPDATED, "channel_id": channel_id, "message": message},
    )


async def publish_message_deleted(channel_id: int, message_id: int, thread_id: int | None) -> int:
    return await get_channel_manager().broadcast(
        channel_id,
        {
            "type": MESSAGE_DELETED,
            "channel_id": channel_id,
            "message_id": message_id,
            "thread_id": thread_id,
        },
    )


async def publish_direct_message(message: dict[str, Any]) -> None:
    await user_event_hub.broadcast(
        {"type": DIRECT_MESSAGE_CREATED, "message": message},
        {int(message["sender_id"]), int(message["recipient_id"])},
    )


async def publish_direct_typing(user: Any, recipient_id: int, is_typing: bool) -> None:
    """Relay a typing edge to the recipient's sessions only; nothing is stored."""

    await user_event_hub.broadcast(
        {
            "type": DIRECT_TYPING_STARTED if is_typing else DIRECT_TYPING_STOPPED,
            "user_id": user.id,
            "display_name": user.name,
        },
        {recipient_id},
    )
