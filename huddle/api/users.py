"""User profile, status and presence endpoints."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from huddle.api.deps import get_current_user
from huddle.core.errors import UserNotFound
from huddle.core.ids import PathId
from huddle.core.pagination import resolve_limit
from huddle.database import get_db
from huddle.models import User
from huddle.schemas import PresenceRead, PublicUser, StatusUpdate, UserRead, UserUpdate
from huddle.services import presence_tracker

router = APIRouter(prefix="/users", tags=["users"])


def _get_user(user_id: int, db: Session) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise UserNotFound()
    return user


@router.get("/me", response_model=UserRead)
def read_me(current_user: User = Depends(get_current_user)) -> User:
    return current_user


@router.patch("/me", response_model=UserRead)
def update_me(
    payload: UserUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> User:
    """Update profile fields that were explicitly provided."""

    for field, value in payload.model_dump(exclude_unset=True).items():
        if field == "name" and value is None:
            continue
        if field == "status" and value is None:
            continue
        setattr(current_user, field, value)
    db.commit()
    db.refresh(current_user)
    return current_user


@router.put("/me/status", response_model=UserRead)
def update_my_status(
    payload: StatusUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> User:
    current_user.status = payload.status
    db.commit()
    db.refresh(current_user)
    return current_user


@router.get("", response_model=list[PublicUser])
def list_users(
    search: str | None = Query(default=None, max_length=128),
    limit: int | None = Query(default=None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> list[User]:
    stmt = select(User).where(User.id != current_user.id)
    if search:
        pattern = f"%{search.strip()}%"
        stmt = stmt.where(or_(User.name.ilike(pattern), User.email.ilike(pattern)))
    stmt = stmt.order_by(User.name.asc(), User.id.asc()).limit(resolve_limit(limit))
    return list(db.execute(stmt).scalars())


@router.get("/{user_id}", response_model=PublicUser)
def read_user(
    user_id: PathId,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> User:
    return _get_user(user_id, db)


@router.get("/{user_id}/presence", response_model=PresenceRead)
def read_presence(
    user_id: PathId,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> PresenceRead:
    user = _get_user(user_id, db)
    return PresenceRead(
        user_id=user.id,
        status=user.status,
        online=presence_tracker.is_online(user.id),
        connections=presence_tracker.connection_count(user.id),
        last_seen=user.last_seen,
    )
