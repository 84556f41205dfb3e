"""Pytest configuration and shared fixtures."""

import os

os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

from collections.abc import Iterator  # noqa: E402
from unittest.mock import AsyncMock, Mock  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from src.taskflow.auth.dependencies import (  # noqa: E402
    get_monitoring,
    get_rls_context_setter,
    get_user_directory,
    set_jwt_validator,
)
from src.taskflow.auth.jwt_validator import JWTValidator  # noqa: E402
from src.taskflow.features.users.directory import UserDirectory  # noqa: E402
from src.taskflow.main import app  # noqa: E402
from src.taskflow.services.database import get_db_session  # noqa: E402
from src.taskflow.services.rate_limiter import limiter  # noqa: E402
from src.taskflow.tests.fakes import (  # noqa: E402
    TEST_AUDIENCE,
    TEST_ISSUER,
    TEST_SECRET,
    InMemoryUserRepository,
    make_session,
)


@pytest.fixture(autouse=True)
def _reset_app_state() -> Iterator[None]:
    """Disable rate limiting and drop overrides left by a previous test."""
    limiter.enabled = False
    yield
    app.dependency_overrides.clear()
    set_jwt_validator(None)


@pytest.fixture
def jwt_validator() -> JWTValidator:
    """HS256 validator matching tokens built by fakes.make_token."""
    return JWTValidator(secret=TEST_SECRET, issuer=TEST_ISSUER, audience=TEST_AUDIENCE)


@pytest.fixture
def user_repository() -> InMemoryUserRepository:
    return InMemoryUserRepository()


@pytest.fixture
def db_session() -> AsyncMock:
    return make_session()


@pytest.fixture
def rls_setter() -> Mock:
    setter = Mock()
    setter.set_current_user = AsyncMock()
    return setter


@pytest.fixture
def monitoring() -> Mock:
    return Mock()


@pytest.fixture
def client(
    jwt_validator: JWTValidator,
    user_repository: InMemoryUserRepository,
    db_session: AsyncMock,
    rls_setter: Mock,
    monitoring: Mock,
) -> TestClient:
    """
    Provide FastAPI test client with the database replaced by in-memory fakes.

    Returns:
        TestClient instance for making API requests

    Example:
        >>> def test_health(client):
        >>>     response = client.get("/health")
        >>>     assert response.status_code == 200
    """
    set_jwt_validator(jwt_validator)
    app.dependency_overrides[get_db_session] = lambda: db_session
    app.dependency_overrides[get_user_directory] = lambda: UserDirectory(user_repository)
    app.dependency_overrides[get_rls_context_setter] = lambda: rls_setter
    app.dependency_overrides[get_monitoring] = lambda: monitoring
    return TestClient(app)
