# tests/conftest.py
from __future__ import annotations

import os
from collections.abc import Callable, Generator, Iterator
from typing import Any

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("QUOTA_RESET_ENABLED", "false")
os.environ.setdefault("QUOTA_TIMEZONE", "UTC")

from meriter_core.core.security import create_access_token
from meriter_core.db.session import Base
from meriter_core.db.session import get_db as app_get_session
from meriter_core.main import app as fastapi_app
from meriter_core.models import Community, User
from meriter_core.models.community import (
    TYPE_TAG_CUSTOM,
    TYPE_TAG_FUTURE_VISION,
    TYPE_TAG_MARATHON_OF_GOOD,
    TYPE_TAG_TEAM,
)
from meriter_core.models.user import GLOBAL_ROLE_SUPERADMIN

TEST_DB_URL = "sqlite://"


@pytest.fixture()
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
def session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


@pytest.fixture()
def db_session(session_factory: sessionmaker[Session]) -> Iterator[Session]:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


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


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


@pytest.fixture()
def fail_inserts() -> Iterator[Callable[..., None]]:
    """Make flushes of matching rows fail the way a broken database would."""
    listeners: list[tuple[type, Callable[..., None]]] = []

    def _fail_inserts(model: type, when: Callable[[Any], bool] = lambda target: True) -> None:
        def before_insert(mapper: Any, connection: Any, target: Any) -> None:
            if when(target):
                raise OperationalError("INSERT", {}, Exception("disk I/O error"))

        event.listen(model, "before_insert", before_insert)
        listeners.append((model, before_insert))

    yield _fail_inserts
    for model, listener in listeners:
        event.remove(model, "before_insert", listener)


@pytest.fixture()
def make_user(db_session: Session) -> Callable[..., User]:
    """Return a factory persisting users."""

    def _make_user(name: str = "User", *, superadmin: bool = False) -> User:
        user = User(
            display_name=name,
            username=name.lower().replace(" ", "_"),
            global_role=GLOBAL_ROLE_SUPERADMIN if superadmin else None,
        )
        db_session.add(user)
        db_session.flush()
        return user

    return _make_user


@pytest.fixture()
def make_community(db_session: Session) -> Callable[..., Community]:
    """Return a factory persisting communities."""

    def _make_community(
        type_tag: str = TYPE_TAG_CUSTOM,
        *,
        name: str | None = None,
        daily_emission: int = 10,
        **columns: Any,
    ) -> Community:
        community = Community(
            name=name or f"{type_tag} community",
            type_tag=type_tag,
            daily_emission=daily_emission,
            **columns,
        )
        db_session.add(community)
        db_session.flush()
        return community

    return _make_community


@pytest.fixture()
def test_user(make_user: Callable[..., User]) -> User:
    return make_user("Test User")


@pytest.fixture()
def other_user(make_user: Callable[..., User]) -> User:
    return make_user("Other User")


@pytest.fixture()
def superadmin(make_user: Callable[..., User]) -> User:
    return make_user("Admin", superadmin=True)


@pytest.fixture()
def community(make_community: Callable[..., Community]) -> Community:
    """Create a default custom community."""
    return make_community(TYPE_TAG_CUSTOM, name="Test Community")


@pytest.fixture()
def marathon(make_community: Callable[..., Community]) -> Community:
    return make_community(TYPE_TAG_MARATHON_OF_GOOD, name="Marathon of Good")


@pytest.fixture()
def future_vision(make_community: Callable[..., Community]) -> Community:
    return make_community(TYPE_TAG_FUTURE_VISION, name="Future Vision")


@pytest.fixture()
def team(make_community: Callable[..., Community]) -> Community:
    return make_community(TYPE_TAG_TEAM, name="Test Team")


def auth_headers(user: User) -> dict[str, str]:
    """Return authorization headers for ``user``."""
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


@pytest.fixture()
def headers_for() -> Callable[[User], dict[str, str]]:
    return auth_headers


@pytest.fixture()
def auth_token(test_user: User) -> dict[str, str]:
    """Return authorization headers for the primary test user."""
    return auth_headers(test_user)


@pytest.fixture()
def other_auth_token(other_user: User) -> dict[str, str]:
    """Return authorization headers for the secondary test user."""
    return auth_headers(other_user)


@pytest.fixture()
def superadmin_token(superadmin: User) -> dict[str, str]:
    return auth_headers(superadmin)
