"""Shared pytest fixtures for backend tests."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from itertools import count
from typing import Callable, Iterator

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-that-is-long-enough-for-hs256")

import pytest
from fastapi.testclient import TestClient
from passlib.context import CryptContext
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from huddle import database
from huddle.config import get_settings
from huddle.core import security
from huddle.database import get_db
from huddle.main import app
from huddle.models import Base

security.pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


@dataclass
class Account:
    """A registered user together with its bearer token."""

    id: int
    email: str
    name: str
    token: str
    headers: dict[str, str] = field(default_factory=dict)


@pytest.fixture()
def test_engine() -> Iterator[Engine]:
    """Provide an in-memory SQLite engine for isolated tests."""

    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(engine)
        engine.dispose()


@pytest.fixture()
def session_factory(test_engine) -> sessionmaker[Session]:
    """Return a session factory bound to the test engine."""

    return sessionmaker(bind=test_engine, autoflush=False, future=True)


@pytest.fixture()
def db_session(session_factory) -> Iterator[Session]:
    """Yield a SQLAlchemy session for unit tests."""

    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def media_root(tmp_path, monkeypatch):
    """Point uploads at a temporary directory."""

    root = tmp_path / "media"
    monkeypatch.setattr(get_settings(), "media_root", root)
    return root


@pytest.fixture()
def client(session_factory, media_root, monkeypatch) -> Iterator[TestClient]:
    """Yield a FastAPI TestClient with the database dependency overridden.

    Websocket handlers open their own short-lived sessions, so the module level
    session factory is swapped as well.
    """

    def override_get_db() -> Iterator[Session]:
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    monkeypatch.setattr(database, "SessionLocal", session_factory)
    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture()
def make_user(client) -> Callable[..., Account]:
    """Register users through the API and return their credentials."""

    sequence = count(1)

    def _make_user(name: str | None = None, password: str = "password123") -> Account:
        index = next(sequence)
        display_name = name or f"User {index}"
        email = f"{display_name.split()[0].lower()}{index}@example.com"
        response = client.post(
            "/api/auth/register",
            json={"email": email, "password": password, "name": display_name},
        )
        assert response.status_code == 201, response.text
        body = response.json()
        token = body["access_token"]
        return Account(
            id=body["user"]["id"],
            email=email,
            name=display_name,
            token=token,
            headers={"Authorization": f"Bearer {token}"},
        )

    return _make_user


@pytest.fixture()
def make_channel(client) -> Callable[..., dict]:
    """Create a channel owned by ``owner`` and join ``members`` to it."""

    def _make_channel(owner: Account, name: str, *members: Account, is_private: bool = False) -> dict:
        response = client.post(
            "/api/channels",
            json={"name": name, "is_private": is_private},
            headers=owner.headers,
        )
        assert response.status_code == 201, response.text
        channel = response.json()
        for member in members:
            joined = client.post(f"/api/channels/{channel['id']}/join", headers=member.headers)
            assert joined.status_code == 200, joined.text
        return channel

    return _make_channel


@pytest.fixture()
def post_message(client) -> Callable[..., dict]:
    def _post_message(author: Account, channel_id: int, content: str, **extra) -> dict:
        response = client.post(
            f"/api/channels/{channel_id}/messages",
            json={"content": content, **extra},
            headers=author.headers,
        )
        assert response.status_code == 201, response.text
        return response.json()

    return _post_message
