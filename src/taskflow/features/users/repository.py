"""Data access for the users table."""

import logging
from typing import Protocol
from uuid import UUID, uuid4

from sqlalchemy import func, select, update
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.taskflow.auth.providers import AuthProvider
from src.taskflow.features.users.entity import ExternalUserInfo, User
from src.taskflow.features.users.exceptions import DuplicateUserError, UserNotFoundError
from src.taskflow.services.database.models import UserRow
from src.taskflow.shared.errors import InfrastructureError

logger = logging.getLogger(__name__)


class UserRepositoryProtocol(Protocol):
    """Storage operations UserDirectory depends on."""

    async def find_by_external_id(self, external_id: str, provider: AuthProvider) -> User | None: ...

    async def find_by_id(self, user_id: UUID) -> User | None: ...

    async def create(self, data: ExternalUserInfo) -> User: ...

    async def touch_login(self, user_id: UUID) -> User: ...


class UserRepository:
    """
    SQLAlchemy implementation bound to the request session.

    Each method is a single statement, so resolving a user costs one round
    trip. Driver errors are logged and re-raised as InfrastructureError.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def find_by_external_id(self, external_id: str, provider: AuthProvider) -> User | None:
        stmt = select(UserRow).where(
            UserRow.external_id == external_id, UserRow.provider == provider
        )
        try:
            row = (await self.session.execute(stmt)).scalar_one_or_none()
        except SQLAlchemyError as e:
            self._log_db_error("find_by_external_id", e)
            raise InfrastructureError() from e

        return User.model_validate(row) if row is not None else None

    async def find_by_id(self, user_id: UUID) -> User | None:
        try:
            row = await self.session.get(UserRow, user_id)
        except SQLAlchemyError as e:
            self._log_db_error("find_by_id", e)
            raise InfrastructureError() from e

        return User.model_validate(row) if row is not None else None

    async def create(self, data: ExternalUserInfo) -> User:
        """
        Insert a user with `last_login_at` NULL.

        Raises:
            DuplicateUserError: If (external_id, provider) already exists
        """
        stmt = (
            insert(UserRow)
            .values(
                id=uuid4(),
                external_id=data.external_id,
                provider=data.provider,
                email=data.email,
                name=data.name,
                avatar_url=data.avatar_url,
            )
            .on_conflict_do_nothing(constraint="uq_users_external_id_provider")
            .returning(UserRow)
        )
        try:
            row = (await self.session.execute(stmt)).scalar_one_or_none()
        except SQLAlchemyError as e:
            self._log_db_error("create", e)
            raise InfrastructureError() from e

        if row is None:
            raise DuplicateUserError(data.external_id, data.provider.value)

        logger.info(
            "User created",
            extra={"user_id": str(row.id), "provider": data.provider.value},
        )
        return User.model_validate(row)

    async def touch_login(self, user_id: UUID) -> User:
        # clock_timestamp() so a row created earlier in the same transaction
        # still gets a strictly later last_login_at.
        stmt = (
            update(UserRow)
            .where(UserRow.id == user_id)
            .values(last_login_at=func.clock_timestamp(), updated_at=func.clock_timestamp())
            .returning(UserRow)
            .execution_options(synchronize_session=False, populate_existing=True)
        )
        try:
            row = (await self.session.execute(stmt)).scalar_one_or_none()
        except SQLAlchemyError as e:
            self._log_db_error("touch_login", e)
            raise InfrastructureError() from e

        if row is None:
            raise UserNotFoundError()

        return User.model_validate(row)

    def _log_db_error(self, operation: str, error: Exception) -> None:
        logger.error(
            f"User repository {operation} failed: {error}",
            exc_info=True,
            extra={"error_type": "database_error", "operation": operation},
        )
