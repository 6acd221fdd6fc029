"""Shared pytest fixtures for backend tests."""

from __future__ import annotations

import os
import sys
import time
from pathlib import Path
from typing import Any, Callable, Iterator

import pytest
from fastapi.testclient import TestClient
from fastapi.websockets import WebSocketState
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

ROOT_DIR = Path(__file__).resolve().parents[1]
for path in (ROOT_DIR, ROOT_DIR / "src"):
    if str(path) not in sys.path:
        sys.path.insert(0, str(path))

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")

from app.config import get_settings
from app.core.security import create_access_token
from app.database import get_db
from app.main import app
from app.models import Base, User
from app.monitoring.registry import registry as metrics_registry
from app.services.realtime import RealtimeServices, build_realtime, get_realtime


class FakeWebSocket:
    """Records frames written by the realtime components."""

    def __init__(self, *, broken: bool = False) -> None:
        self.application_state = WebSocketState.CONNECTED
        self.sent: list[dict[str, Any]] = []
        self.closed: tuple[int, str | None] | None = None
        self.broken = broken

    async def send_json(self, data: dict[str, Any]) -> None:
        if self.broken:
            raise RuntimeError("socket is gone")
        self.sent.append(data)

    async def close(self, code: int = 1000, reason: str | None = None) -> None:
        self.closed = (code, reason)
        self.application_state = WebSocketState.DISCONNECTED

    def types(self) -> list[str]:
        return [frame["type"] for frame in self.sent]


@pytest.fixture()
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture(autouse=True)
def reset_metrics() -> Iterator[None]:
    for metric in metrics_registry._metrics.values():
        metric.reset()
    yield
    for metric in metrics_registry._metrics.values():
        metric.reset()


@pytest.fixture()
def make_socket() -> Callable[..., FakeWebSocket]:
    return FakeWebSocket


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

    return sessionmaker(bind=test_engine, future=True)


@pytest.fixture()
def db_session(session_factory) -> Iterator[Session]:
    """Yield a SQLAlchemy session for unit tests."""

    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def create_user(session_factory) -> Callable[..., int]:
    """Insert a user and return its id."""

    def _create(name: str, **fields: Any) -> int:
        with session_factory() as session:
            user = User(name=name, email=f"{name.lower()}@example.com", **fields)
            session.add(user)
            session.commit()
            return user.id

    return _create


def token_for(user_id: int) -> str:
    return create_access_token({"sub": str(user_id)})


def auth_headers(user_id: int) -> dict[str, str]:
    return {"Authorization": f"Bearer {token_for(user_id)}"}


def wait_for(predicate: Callable[[], bool], timeout: float = 2.0) -> bool:
    """Poll until the server side of a test socket has caught up."""

    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


@pytest.fixture()
def services(session_factory) -> RealtimeServices:
    """Realtime components wired to the test database."""

    return build_realtime(session_factory, get_settings())


@pytest.fixture()
def client(session_factory, services) -> Iterator[TestClient]:
    """Yield a FastAPI TestClient with database and realtime dependencies overridden."""

    def override_get_db() -> Iterator[Session]:
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_realtime] = lambda: services
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
