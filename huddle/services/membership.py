"""Channel lookup and membership checks."""

from __future__ import annotations

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from huddle.core.errors import ChannelNotFound, NotMember
from huddle.models import Channel, ChannelMember, DirectMessage


def get_channel(channel_id: int, db: Session) -> Channel:
    """Return the channel or raise ``ChannelNotFound``."""

    channel = db.get(Channel, channel_id)
    if channel is None:
        raise ChannelNotFound()
    return channel


def get_channel_member(channel_id: int, user_id: int, db: Session) -> ChannelMember | None:
    """Return membership entry for the given user and channel if it exists."""

    stmt = select(ChannelMember).where(
        ChannelMember.channel_id == channel_id,
        ChannelMember.user_id == user_id,
    )
    return db.execute(stmt).scalar_one_or_none()


def require_channel_member(channel_id: int, user_id: int, db: Session) -> ChannelMember:
    """Ensure the user belongs to the channel, raising ``NotMember`` otherwise."""

    membership = get_channel_member(channel_id, user_id, db)
    if membership is None:
        raise NotMember()
    return membership


def member_count(channel_id: int, db: Session) -> int:
    stmt = select(func.count(ChannelMember.id)).where(ChannelMember.channel_id == channel_id)
    return int(db.execute(stmt).scalar_one())


def member_counts(channel_ids: list[int], db: Session) -> dict[int, int]:
    if not channel_ids:
        return {}
    stmt = (
        select(ChannelMember.channel_id, func.count(ChannelMember.id))
        .where(ChannelMember.channel_id.in_(channel_ids))
        .group_by(ChannelMember.channel_id)
    )
    return {channel_id: int(count) for channel_id, count in db.execute(stmt)}


def shared_user_ids(user_id: int, db: Session) -> set[int]:
    """Users that share a channel or a direct conversation with ``user_id``."""

    my_channels = select(ChannelMember.channel_id).where(ChannelMember.user_id == user_id)
    channel_peers = select(ChannelMember.user_id).where(
        ChannelMember.channel_id.in_(my_channels),
        ChannelMember.user_id != user_id,
    )
    peers = set(db.execute(channel_peers).scalars())

    dm_stmt = (
        select(DirectMessage.sender_id, DirectMessage.recipient_id)
        .where(or_(DirectMessage.sender_id == user_id, DirectMessage.recipient_id == user_id))
        .distinct()
    )
    for sender_id, recipient_id in db.execute(dm_stmt):
        peers.add(recipient_id if sender_id == user_id else sender_id)
    peers.discard(user_id)
    return peers
