"""Message level endpoints: edits, deletes, threads, pins and reactions."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from huddle.api.deps import PageParams, get_current_user
from huddle.api.serializers import serialize_message, serialize_messages
from huddle.core.ids import PathId
from huddle.database import get_db
from huddle.models import User
from huddle.realtime.events import (
    publish_message_created,
    publish_message_deleted,
    publish_message_updated,
)
from huddle.schemas import (
    MessageRead,
    MessageReactionSummary,
    MessageUpdate,
    ReactionRead,
    ReactionRequest,
    ReplyCreate,
    ThreadRead,
)
from huddle.services import reactions as reaction_service
from huddle.services.membership import require_channel_member
from huddle.services.messages import get_visible_message
from huddle.services.threads import (
    edit_message,
    reply,
    set_pinned,
    soft_delete_message,
    thread_replies,
)

router = APIRouter(prefix="/messages", tags=["messages"])


@router.get("/{message_id}", response_model=MessageRead)
def read_message(
    message_id: PathId,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> MessageRead:
    message = get_visible_message(db, message_id)
    require_channel_member(message.channel_id, current_user.id, db)
    return serialize_message(db, message, current_user.id)


@router.patch("/{message_id}", response_model=MessageRead)
async def update_message(
    message_id: PathId,
    payload: MessageUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> MessageRead:
    message = edit_message(db, message_id, current_user.id, payload.content)
    serialized = serialize_message(db, message, current_user.id)
    await publish_message_updated(serialized.model_dump(mode="json"))
    return serialized


@router.delete("/{message_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_message(
    message_id: PathId,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> None:
    message = soft_delete_message(db, message_id, current_user.id)
    await publish_message_deleted(message.channel_id, message.id, message.thread_id)


@router.post("/{message_id}/reply", response_model=MessageRead, status_code=status.HTTP_201_CREATED)
async def reply_to_message(
    message_id: PathId,
    payload: ReplyCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> MessageRead:
    message = reply(db, message_id, current_user.id, payload.content, payload.file_ids)
    serialized = serialize_message(db, message, current_user.id)
    await publish_message_created(serialized.model_dump(mode="json"))
    return serialized


@router.get("/{message_id}/thread", response_model=ThreadRead)
def read_thread(
    message_id: PathId,
    page: PageParams = Depends(),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> ThreadRead:
    """Parent message and its visible replies, oldest first."""

    parent = get_visible_message(db, message_id)
    require_channel_member(parent.channel_id, current_user.id, db)
    result = thread_replies(db, parent.id, limit=page.limit, cursor=page.cursor)
    return ThreadRead(
        parent=serialize_message(db, parent, current_user.id),
        replies=serialize_messages(db, result.items, current_user.id),
        has_more=result.has_more,
        next_cursor=result.next_cursor,
    )


@router.post("/{message_id}/pin", response_model=MessageRead)
async def pin_message(
    message_id: PathId,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> MessageRead:
    message = set_pinned(db, message_id, current_user.id, True)
    serialized = serialize_message(db, message, current_user.id)
    await publish_message_updated(serialized.model_dump(mode="json"))
    return serialized


@router.delete("/{message_id}/pin", response_model=MessageRead)
async def unpin_message(
    message_id: PathId,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> MessageRead:
    message = set_pinned(db, message_id, current_user.id, False)
    serialized = serialize_message(db, message, current_user.id)
    await publish_message_updated(serialized.model_dump(mode="json"))
    return serialized


@router.get("/{message_id}/reactions", response_model=list[MessageReactionSummary])
def list_reactions(
    message_id: PathId,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> list[MessageReactionSummary]:
    message = get_visible_message(db, message_id)
    require_channel_member(message.channel_id, current_user.id, db)
    return [
        MessageReactionSummary(**entry)
        for entry in reaction_service.summarize(message.reactions, current_user.id)
    ]


@router.post(
    "/{message_id}/reactions",
    response_model=ReactionRead,
    status_code=status.HTTP_201_CREATED,
)
async def add_reaction(
    message_id: PathId,
    payload: ReactionRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> ReactionRead:
    reaction = reaction_service.add_reaction(db, message_id, current_user.id, payload.emoji)
    result = ReactionRead.model_validate(reaction)
    message = get_visible_message(db, message_id)
    await publish_message_updated(serialize_message(db, message).model_dump(mode="json"))
    return result


@router.delete("/{message_id}/reactions/{emoji}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_reaction(
    message_id: PathId,
    emoji: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> None:
    reaction_service.remove_reaction(db, message_id, current_user.id, emoji)
    message = get_visible_message(db, message_id)
    await publish_message_updated(serialize_message(db, message).model_dump(mode="json"))
