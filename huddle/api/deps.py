"""FastAPI dependencies for the API layer."""

from fastapi import Depends, HTTPException, Query, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from huddle.core.ids import MAX_ENTITY_ID
from huddle.core.pagination import resolve_limit
from huddle.core.security import decode_access_token
from huddle.database import get_db
from huddle.models import User

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")


def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> User:
    """Retrieve the current user from the JWT token."""

    return get_user_from_token(token, db)


def get_user_from_token(token: str, db: Session) -> User:
    """Resolve a user from a JWT token or raise an HTTP 401 error."""

    payload = decode_access_token(token)
    sub = payload.get("sub")
    if sub is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        )

    try:
        user_id = int(sub)
    except (TypeError, ValueError):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        ) from None

    user = db.get(User, user_id)
    if user is None or user.email != payload.get("email", user.email):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        )
    return user


class PageParams:
    """``limit`` and ``cursor`` query parameters shared by listing endpoints."""

    def __init__(
        self,
        limit: int | None = Query(default=None, description="Page size; clamped to the maximum"),
        cursor: int | None = Query(
            default=None, ge=1, le=MAX_ENTITY_ID, description="Id of the last item seen"
        ),
    ) -> None:
        self.limit = resolve_limit(limit)
        self.cursor = cursor
