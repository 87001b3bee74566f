# tests/conftest.py
from __future__ import annotations

import os
import tempfile
from collections.abc import Callable, Generator, Iterator
from itertools import count
from pathlib import Path

import pytest

os.environ.setdefault("SECRET_KEY", "test-secret-key-for-chat")
os.environ.setdefault("ENCRYPTION_SECRET", "test-encryption-secret")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("MEDIA_ROOT", tempfile.mkdtemp(prefix="lifehub-media-"))

from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from lifehub.api.v1.dependencies import get_media_storage, get_session_factory
from lifehub.core.security import create_access_token
from lifehub.db.session import Base
from lifehub.db.session import get_db as app_get_session
from lifehub.main import app as fastapi_app
from lifehub.models import User
from lifehub.services.connection_hub import ConnectionHub, get_hub
from lifehub.services.key_derivation import ConversationKeyDeriver
from lifehub.services.media_storage import MediaStorage
from lifehub.services.message_codec import MessageCodec

TEST_DB_URL = "sqlite://"

_USER_COUNTER = count(1)


@pytest.fixture(scope="session")
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def db_session(engine: Engine) -> Iterator[Session]:
    SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()

        # Services commit, so every table is emptied explicitly between tests.
        with engine.begin() as cleanup_conn:
            for table in reversed(Base.metadata.sorted_tables):
                cleanup_conn.execute(table.delete())


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture()
def hub() -> ConnectionHub:
    return ConnectionHub()


@pytest.fixture()
def media_storage(tmp_path: Path) -> MediaStorage:
    return MediaStorage(root=tmp_path / "media", url_prefix="/uploads/chat-media", max_bytes=1024)


@pytest.fixture(autouse=True)
def override_dependencies(
    app: FastAPI,
    db_session: Session,
    engine: Engine,
    hub: ConnectionHub,
    media_storage: MediaStorage,
) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[app_get_session] = _get_session_override
    app.dependency_overrides[get_session_factory] = lambda: sessionmaker(
        bind=engine, autocommit=False, autoflush=False
    )
    app.dependency_overrides[get_hub] = lambda: hub
    app.dependency_overrides[get_media_storage] = lambda: media_storage
    try:
        yield
    finally:
        app.dependency_overrides.pop(app_get_session, None)
        app.dependency_overrides.pop(get_session_factory, None)
        app.dependency_overrides.pop(get_hub, None)
        app.dependency_overrides.pop(get_media_storage, None)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


@pytest.fixture()
def codec() -> MessageCodec:
    return MessageCodec(ConversationKeyDeriver(b"test-encryption-secret"))


@pytest.fixture()
def make_user(db_session: Session) -> Callable[..., User]:
    """Return a factory persisting users with unique defaults."""

    def _make_user(
        username: str | None = None,
        first_name: str = "Test",
        last_name: str = "User",
        phone_number: str | None = None,
    ) -> User:
        n = next(_USER_COUNTER)
        user = User(
            username=username or f"user{n}",
            first_name=first_name,
            last_name=last_name,
            email=f"user{n}@example.com",
            phone_number=phone_number,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make_user


@pytest.fixture()
def alice(make_user: Callable[..., User]) -> User:
    return make_user("alice", "Alice", "Anders", phone_number="+15550001")


@pytest.fixture()
def bob(make_user: Callable[..., User]) -> User:
    return make_user("bob", "Bob", "Berg", phone_number="+15550002")


@pytest.fixture()
def carol(make_user: Callable[..., User]) -> User:
    return make_user("carol", "Carol", "Cruz", phone_number="+15550003")


def auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id, user.username)}"}


@pytest.fixture()
def alice_headers(alice: User) -> dict[str, str]:
    return auth_headers(alice)


@pytest.fixture()
def bob_headers(bob: User) -> dict[str, str]:
    return auth_headers(bob)


@pytest.fixture()
def carol_headers(carol: User) -> dict[str, str]:
    return auth_headers(carol)


@pytest.fixture()
def headers_for() -> Callable[[User], dict[str, str]]:
    return auth_headers
