"""Tests for the SQLAlchemy user repository."""

from unittest.mock import AsyncMock, Mock
from uuid import uuid4

import pytest
from sqlalchemy.dialects import postgresql
from sqlalchemy.exc import OperationalError

from src.taskflow.auth.providers import AuthProvider
from src.taskflow.features.users.entity import ExternalUserInfo
from src.taskflow.features.users.exceptions import DuplicateUserError, UserNotFoundError
from src.taskflow.features.users.repository import UserRepository
from src.taskflow.shared.errors import InfrastructureError


def session_returning(row) -> AsyncMock:
    result = Mock()
    result.scalar_one_or_none.return_value = row
    session = AsyncMock()
    session.execute = AsyncMock(return_value=result)
    return session


def executed_sql(session: AsyncMock) -> str:
    statement = session.execute.await_args.args[0]
    return str(statement.compile(dialect=postgresql.dialect()))


@pytest.fixture
def external_user() -> ExternalUserInfo:
    return ExternalUserInfo(
        external_id="google-oauth2|1234567890",
        provider=AuthProvider.GOOGLE,
        email="user@example.com",
        name="Test User",
    )


@pytest.mark.asyncio
class TestUserRepository:
    """Tests for UserRepository statements."""

    async def test_find_by_external_id_filters_on_identity(self):
        session = session_returning(None)

        user = await UserRepository(session).find_by_external_id("google-1", AuthProvider.GOOGLE)

        assert user is None
        sql = executed_sql(session)
        assert "users.external_id = " in sql
        assert "users.provider = " in sql

    async def test_create_ignores_conflicts(self, external_user):
        session = session_returning(None)

        with pytest.raises(DuplicateUserError):
            await UserRepository(session).create(external_user)

        assert "ON CONFLICT ON CONSTRAINT uq_users_external_id_provider DO NOTHING" in (
            executed_sql(session)
        )

    async def test_touch_login_sets_both_timestamps(self):
        session = session_returning(None)

        with pytest.raises(UserNotFoundError):
            await UserRepository(session).touch_login(uuid4())

        sql = executed_sql(session)
        assert "last_login_at=clock_timestamp()" in sql
        assert "updated_at=clock_timestamp()" in sql

    async def test_driver_error_becomes_infrastructure_error(self):
        session = AsyncMock()
        session.execute.side_effect = OperationalError("SELECT", {}, Exception("gone"))

        with pytest.raises(InfrastructureError):
            await UserRepository(session).find_by_external_id("google-1", AuthProvider.GOOGLE)
