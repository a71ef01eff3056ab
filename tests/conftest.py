"""Shared fixtures."""

import os


os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("LOG_FORMAT", "console")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from collections.abc import AsyncGenerator, Generator  # noqa: E402
from contextlib import asynccontextmanager  # noqa: E402
from unittest.mock import AsyncMock, Mock  # noqa: E402
from uuid import uuid4  # noqa: E402

import fakeredis  # noqa: E402
import pytest  # noqa: E402
from cassandra.cluster import Session  # noqa: E402
from fastapi import FastAPI  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from src.auth.permissions import UserRole  # noqa: E402
from src.auth.schemas import UserResponse  # noqa: E402
from src.auth.security import create_access_token  # noqa: E402
from src.likes.store import RedisCounterStore  # noqa: E402
from src.main import create_app  # noqa: E402


# ==============================================================================
# App
# ==============================================================================


@asynccontextmanager
async def _no_lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    yield


@pytest.fixture
def app() -> FastAPI:
    """Fresh application without lifespan; tests wire app.state directly."""
    application = create_app()
    application.router.lifespan_context = _no_lifespan
    return application


@pytest.fixture
def client(app: FastAPI) -> Generator[TestClient, None, None]:
    """Client bound to one event loop for the whole test."""
    with TestClient(app) as test_client:
        yield test_client


# ==============================================================================
# Identity
# ==============================================================================


@pytest.fixture
def user() -> UserResponse:
    return UserResponse(
        id=uuid4(), email="mae@example.com", name="Mae Leitora", role=UserRole.USER
    )


@pytest.fixture
def other_user() -> UserResponse:
    return UserResponse(id=uuid4(), email="pai@example.com", role=UserRole.USER)


@pytest.fixture
def admin() -> UserResponse:
    return UserResponse(
        id=uuid4(), email="admin@example.com", name="Admin", role=UserRole.ADMIN
    )


def _bearer(user: UserResponse) -> dict[str, str]:
    token = create_access_token(
        {
            "sub": str(user.id),
            "email": user.email,
            "name": user.name,
            "role": user.role.value,
        }
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def user_headers(user: UserResponse) -> dict[str, str]:
    return _bearer(user)


@pytest.fixture
def admin_headers(admin: UserResponse) -> dict[str, str]:
    return _bearer(admin)


# ==============================================================================
# Stores
# ==============================================================================


@pytest.fixture
def redis() -> fakeredis.FakeAsyncRedis:
    """Isolated in-memory Redis with Lua scripting."""
    return fakeredis.FakeAsyncRedis(
        server=fakeredis.FakeServer(), decode_responses=True
    )


@pytest.fixture
def store(redis: fakeredis.FakeAsyncRedis) -> RedisCounterStore:
    return RedisCounterStore(redis, prefix="likes")


@pytest.fixture
def mock_session():
    """Mock Cassandra session.

    ``prepare`` returns the whitespace-normalized CQL, so tests can route
    ``aexecute`` calls by statement text.
    """
    session = Mock(spec=Session)
    session.prepare = Mock(side_effect=lambda cql: " ".join(cql.split()))
    session.aexecute = AsyncMock(return_value=[])
    return session


def _route(handlers: dict[str, object]):
    """Build an ``aexecute`` side effect from ``{cql fragment: result}``.

    The first fragment found in the statement wins; callables are invoked
    with the bound parameters. Unmatched statements return no rows.
    """

    async def aexecute(statement, params=None):
        for fragment, result in handlers.items():
            if fragment in statement:
                return result(params) if callable(result) else result
        return []

    return aexecute


@pytest.fixture
def route():
    """CQL fragment router for ``mock_session.aexecute`` side effects."""
    return _route
