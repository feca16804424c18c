"""Direct message endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from huddle.api.deps import PageParams, get_current_user
from huddle.api.serializers import serialize_direct_message
from huddle.core.ids import PathId
from huddle.database import get_db
from huddle.models import User
from huddle.realtime.events import publish_direct_message
from huddle.schemas import (
    ConversationRead,
    DirectHistoryPage,
    DirectMessageCreate,
    DirectMessageRead,
    MarkedRead,
    PublicUser,
)
from huddle.services import direct

router = APIRouter(prefix="/dms", tags=["direct-messages"])


@router.post("", response_model=DirectMessageRead, status_code=status.HTTP_201_CREATED)
async def send_direct_message(
    payload: DirectMessageCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> DirectMessageRead:
    message = direct.send_direct_message(db, current_user.id, payload.to_user_id, payload.content)
    serialized = serialize_direct_message(message)
    await publish_direct_message(serialized.model_dump(mode="json"))
    return serialized


@router.get("", response_model=list[ConversationRead])
def list_conversations(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> list[ConversationRead]:
    return [
        ConversationRead(
            user=PublicUser.model_validate(conversation.partner),
            last_message=serialize_direct_message(conversation.last_message),
            unread_count=conversation.unread_count,
        )
        for conversation in direct.list_conversations(db, current_user.id)
    ]


@router.get("/{user_id}", response_model=DirectHistoryPage)
def read_conversation(
    user_id: PathId,
    page: PageParams = Depends(),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> DirectHistoryPage:
    result = direct.conversation_history(
        db, current_user.id, user_id, limit=page.limit, cursor=page.cursor
    )
    return DirectHistoryPage(
        messages=[serialize_direct_message(message) for message in result.items],
        has_more=result.has_more,
        next_cursor=result.next_cursor,
    )


@router.post("/{user_id}/read", response_model=MarkedRead)
def mark_conversation_read(
    user_id: PathId,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> MarkedRead:
    return MarkedRead(marked_as_read=direct.mark_conversation_read(db, current_user.id, user_id))


@router.delete("/messages/{message_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_direct_message(
    message_id: PathId,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> None:
    direct.delete_direct_message(db, message_id, current_user.id)
