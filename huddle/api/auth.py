"""Authentication API endpoints."""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from huddle.core.errors import AlreadyExists
from huddle.core.security import create_user_token, get_password_hash, verify_password
from huddle.database import get_db
from huddle.models import User
from huddle.schemas import LoginRequest, Token, UserCreate, UserRead

router = APIRouter()

logger = logging.getLogger(__name__)


def _issue_token(user: User) -> Token:
    return Token(
        access_token=create_user_token(user.id, user.email),
        token_type="bearer",
        user=UserRead.model_validate(user),
    )


@router.post("/register", response_model=Token, status_code=status.HTTP_201_CREATED)
def register_user(user_in: UserCreate, db: Session = Depends(get_db)) -> Token:
    """Register a new user and sign them in."""

    existing_user = db.execute(select(User).where(User.email == user_in.email)).scalar_one_or_none()
    if existing_user is not None:
        raise AlreadyExists("Email is already registered")

    user = User(
        email=user_in.email,
        name=user_in.name,
        hashed_password=get_password_hash(user_in.password),
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise AlreadyExists("Email is already registered") from None
    db.refresh(user)
    logger.info("Registered user %s", user.id)
    return _issue_token(user)


@router.post("/login", response_model=Token)
def login_user(credentials: LoginRequest, db: Session = Depends(get_db)) -> Token:
    """Authenticate a user and return a JWT access token."""

    db_user = db.execute(select(User).where(User.email == credentials.email)).scalar_one_or_none()
    if db_user is None or not verify_password(credentials.password, db_user.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
        )
    return _issue_token(db_user)
