# tests/conftest.py
from __future__ import annotations

import os
from collections.abc import Generator, Iterator

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("PYTEST_RUNNING", "true")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET", "test-access-secret-with-at-least-32-chars")
os.environ.setdefault("JWT_REFRESH_SECRET", "test-refresh-secret-with-at-least-32-chars")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("REDIS_URL", "")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

from inkwell.core.security import create_access_token  # noqa: E402
from inkwell.db.session import Base  # noqa: E402
from inkwell.db.session import get_db as app_get_session  # noqa: E402
from inkwell.main import app as fastapi_app  # noqa: E402
from inkwell.models import Post, User  # noqa: E402
from inkwell.schemas.post import PostCreate  # noqa: E402
from inkwell.services import user_service  # noqa: E402
from inkwell.services.cache import get_cache_service  # noqa: E402
from inkwell.services.post_service import PostService  # noqa: E402

TEST_DB_URL = "sqlite://"
TEST_PASSWORD = "Passw0rd!"


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
    connection = engine.connect()
    transaction = connection.begin()
    SessionLocal = sessionmaker(
        bind=connection,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )
    session = SessionLocal()
    session.begin_nested()

    @event.listens_for(session, "after_transaction_end")
    def restart_savepoint(sess: Session, trans) -> None:  # pragma: no cover - SQLAlchemy internals
        if trans.nested and not getattr(trans._parent, "nested", False):
            session.begin_nested()

    try:
        yield session
    finally:
        event.remove(session, "after_transaction_end", restart_savepoint)
        session.close()

        if transaction.is_active:
            transaction.rollback()
        connection.close()

        # Ensure each test sees a clean database even if commits occurred.
        with engine.begin() as cleanup_conn:
            for table in reversed(Base.metadata.sorted_tables):
                cleanup_conn.execute(table.delete())


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture(autouse=True)
def override_session_dependency(app: FastAPI, db_session: Session) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[app_get_session] = _get_session_override
    try:
        yield
    finally:
        app.dependency_overrides.pop(app_get_session, None)


@pytest.fixture(autouse=True)
def reset_cache() -> Iterator[None]:
    """Start every test with an empty cache; ids are reused between tests."""
    cache = get_cache_service()
    cache.reset()
    yield
    cache.reset()


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


def make_user(db: Session, username: str, *, role: str = "user") -> User:
    user = user_service.create_user(
        db,
        email=f"{username}@example.com",
        username=username,
        password=TEST_PASSWORD,
        display_name=username.title(),
        role=role,
    )
    db.commit()
    db.refresh(user)
    return user


def bearer(user: User) -> dict[str, str]:
    token = create_access_token(
        user.id, {"email": user.email, "username": user.username, "role": user.role}
    )
    return {"Authorization": f"Bearer {token}"}


def make_post(db: Session, author: User, **overrides) -> Post:
    fields = {
        "title": "A Post About Testing",
        "content": "<p>Some long enough body text for a post about testing.</p>",
        "status": "published",
        "category": "engineering",
        "tags": ["python", "testing"],
    }
    fields.update(overrides)
    return PostService(db).create(author, PostCreate(**fields))


@pytest.fixture()
def test_user(db_session: Session) -> User:
    """Create and return a persisted test user."""
    return make_user(db_session, "alice")


@pytest.fixture()
def other_user(db_session: Session) -> User:
    """Create and return a second persisted user."""
    return make_user(db_session, "bob")


@pytest.fixture()
def admin_user(db_session: Session) -> User:
    return make_user(db_session, "admin", role="admin")


@pytest.fixture()
def auth_token(test_user: User) -> dict[str, str]:
    """Return authorization headers for the primary test user."""
    return bearer(test_user)


@pytest.fixture()
def other_auth_token(other_user: User) -> dict[str, str]:
    """Return authorization headers for the secondary test user."""
    return bearer(other_user)


@pytest.fixture()
def admin_auth_token(admin_user: User) -> dict[str, str]:
    return bearer(admin_user)


@pytest.fixture()
def test_post(db_session: Session, test_user: User) -> Post:
    """Create a published post owned by ``test_user``."""
    return make_post(db_session, test_user)
