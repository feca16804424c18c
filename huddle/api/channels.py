"""Channel, membership, history and read-state endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from huddle.api.deps import PageParams, get_current_user
from huddle.api.serializers import serialize_message, serialize_messages
from huddle.core.errors import AlreadyExists, Forbidden, InvalidInput
from huddle.core.ids import PathId
from huddle.database import get_db
from huddle.models import Channel, ChannelMember, User
from huddle.realtime.events import publish_message_created
from huddle.schemas import (
    ChannelCreate,
    ChannelMemberRead,
    ChannelRead,
    MarkReadRequest,
    MarkReadResponse,
    MessageCreate,
    MessageHistoryPage,
    MessageRead,
    PublicUser,
)
from huddle.services import read_state
from huddle.services.membership import (
    get_channel,
    get_channel_member,
    member_count,
    member_counts,
    require_channel_member,
)
from huddle.services.messages import channel_history, create_message, pinned_messages
from huddle.services.threads import reply

router = APIRouter(prefix="/channels", tags=["channels"])

logger = logging.getLogger(__name__)


def _serialize_channels(
    channels: list[Channel],
    db: Session,
    user_id: int,
    member_of: set[int],
) -> list[ChannelRead]:
    ids = [channel.id for channel in channels]
    counts = member_counts(ids, db)
    unread = read_state.unread_counts(db, user_id, [cid for cid in ids if cid in member_of])
    return [
        ChannelRead(
            id=channel.id,
            name=channel.name,
            description=channel.description,
            is_private=channel.is_private,
            created_by_id=channel.created_by_id,
            created_at=channel.created_at,
            member_count=counts.get(channel.id, 0),
            unread_count=unread.get(channel.id),
            is_member=channel.id in member_of,
        )
        for channel in channels
    ]


def _member_channel_ids(user_id: int, db: Session) -> set[int]:
    stmt = select(ChannelMember.channel_id).where(ChannelMember.user_id == user_id)
    return set(db.execute(stmt).scalars())


def _ensure_can_view(channel: Channel, user_id: int, db: Session) -> None:
    if channel.is_private:
        require_channel_member(channel.id, user_id, db)


@router.post("", response_model=ChannelRead, status_code=status.HTTP_201_CREATED)
def create_channel(
    payload: ChannelCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> ChannelRead:
    """Create a channel; the creator becomes its first member."""

    existing = db.execute(select(Channel.id).where(Channel.name == payload.name)).scalar_one_or_none()
    if existing is not None:
        raise AlreadyExists("Channel name already exists")

    channel = Channel(
        name=payload.name,
        description=payload.description,
        is_private=payload.is_private,
        created_by_id=current_user.id,
    )
    channel.members.append(ChannelMember(user_id=current_user.id))
    db.add(channel)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise AlreadyExists("Channel name already exists") from None
    db.refresh(channel)
    logger.info("User %s created channel %s (%s)", current_user.id, channel.id, channel.name)
    return _serialize_channels([channel], db, current_user.id, {channel.id})[0]


@router.get("", response_model=list[ChannelRead])
def list_my_channels(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> list[ChannelRead]:
    """Channels the caller belongs to, with unread counts."""

    member_of = _member_channel_ids(current_user.id, db)
    if not member_of:
        return []
    stmt = select(Channel).where(Channel.id.in_(member_of)).order_by(Channel.name.asc())
    channels = list(db.execute(stmt).scalars())
    return _serialize_channels(channels, db, current_user.id, member_of)


@router.get("/browse", response_model=list[ChannelRead])
def browse_channels(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> list[ChannelRead]:
    """Public channels, flagged with whether the caller already joined."""

    member_of = _member_channel_ids(current_user.id, db)
    stmt = select(Channel).where(Channel.is_private.is_(False)).order_by(Channel.name.asc())
    channels = list(db.execute(stmt).scalars())
    return _serialize_channels(channels, db, current_user.id, member_of)


@router.get("/{channel_id}", response_model=ChannelRead)
def read_channel(
    channel_id: PathId,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> ChannelRead:
    channel = get_channel(channel_id, db)
    _ensure_can_view(channel, current_user.id, db)
    member_of = {channel.id} if get_channel_member(channel.id, current_user.id, db) else set()
    return _serialize_channels([channel], db, current_user.id, member_of)[0]


@router.post("/{channel_id}/join", response_model=ChannelRead)
def join_channel(
    channel_id: PathId,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> ChannelRead:
    channel = get_channel(channel_id, db)
    if channel.is_private:
        raise Forbidden("Cannot join a private channel")
    if get_channel_member(channel.id, current_user.id, db) is not None:
        raise AlreadyExists("Already a member of this channel")

    db.add(ChannelMember(channel_id=channel.id, user_id=current_user.id))
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise AlreadyExists("Already a member of this channel") from None
    return _serialize_channels([channel], db, current_user.id, {channel.id})[0]


@router.post("/{channel_id}/leave", status_code=status.HTTP_204_NO_CONTENT)
def leave_channel(
    channel_id: PathId,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> None:
    """Leave a channel unless the caller is its last member."""

    get_channel(channel_id, db)
    membership = require_channel_member(channel_id, current_user.id, db)
    # read-then-act; two concurrent leaves can both pass this check
    if member_count(channel_id, db) <= 1:
        raise InvalidInput("The last member cannot leave the channel")
    db.delete(membership)
    db.commit()


@router.get("/{channel_id}/members", response_model=list[ChannelMemberRead])
def list_members(
    channel_id: PathId,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> list[ChannelMemberRead]:
    channel = get_channel(channel_id, db)
    _ensure_can_view(channel, current_user.id, db)
    stmt = (
        select(ChannelMember)
        .where(ChannelMember.channel_id == channel.id)
        .options(selectinload(ChannelMember.user))
        .order_by(ChannelMember.joined_at.asc(), ChannelMember.id.asc())
    )
    return [
        ChannelMemberRead(user=PublicUser.model_validate(member.user), joined_at=member.joined_at)
        for member in db.execute(stmt).scalars()
    ]


@router.get("/{channel_id}/messages", response_model=MessageHistoryPage)
def list_messages(
    channel_id: PathId,
    page: PageParams = Depends(),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> MessageHistoryPage:
    """Top-level messages, newest first. Viewing the newest page acknowledges it."""

    get_channel(channel_id, db)
    require_channel_member(channel_id, current_user.id, db)
    result = channel_history(db, channel_id, limit=page.limit, cursor=page.cursor)
    messages = serialize_messages(db, result.items, current_user.id)
    if page.cursor is None and result.items:
        read_state.advance_pointer(db, current_user.id, channel_id, result.items[0].id)
    return MessageHistoryPage(
        messages=messages,
        has_more=result.has_more,
        next_cursor=result.next_cursor,
    )


@router.post("/{channel_id}/messages", response_model=MessageRead, status_code=status.HTTP_201_CREATED)
async def post_message(
    channel_id: PathId,
    payload: MessageCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> MessageRead:
    get_channel(channel_id, db)
    if payload.thread_id is not None:
        message = reply(
            db,
            payload.thread_id,
            current_user.id,
            payload.content,
            payload.file_ids,
            channel_id=channel_id,
        )
    else:
        message = create_message(db, channel_id, current_user.id, payload.content, payload.file_ids)
    serialized = serialize_message(db, message, current_user.id)
    await publish_message_created(serialized.model_dump(mode="json"))
    return serialized


@router.get("/{channel_id}/pins", response_model=list[MessageRead])
def list_pins(
    channel_id: PathId,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> list[MessageRead]:
    get_channel(channel_id, db)
    require_channel_member(channel_id, current_user.id, db)
    return serialize_messages(db, pinned_messages(db, channel_id), current_user.id)


@router.post("/{channel_id}/read", response_model=MarkReadResponse)
def mark_channel_read(
    channel_id: PathId,
    payload: MarkReadRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> MarkReadResponse:
    get_channel(channel_id, db)
    pointer = read_state.mark_read(db, current_user.id, channel_id, payload.message_id)
    return MarkReadResponse(
        channel_id=channel_id,
        last_read_message_id=pointer.last_read_message_id,
        unread_count=read_state.unread_count(db, current_user.id, channel_id),
    )


