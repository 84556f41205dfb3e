"""User resolution and just-in-time provisioning."""

import logging
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from src.taskflow.auth.exceptions import UnsupportedProviderError
from src.taskflow.auth.providers import AuthProvider, is_supported_provider
from src.taskflow.features.users.entity import ExternalUserInfo, User
from src.taskflow.features.users.exceptions import DuplicateUserError
from src.taskflow.features.users.repository import UserRepository, UserRepositoryProtocol
from src.taskflow.shared.errors import InfrastructureError

logger = logging.getLogger(__name__)


def parse_provider(value: object) -> AuthProvider:
    """
    Validate a provider value against the allow-list.

    Raises:
        UnsupportedProviderError: If the value is not a supported provider
    """
    if isinstance(value, AuthProvider):
        return value
    if not is_supported_provider(value):
        raise UnsupportedProviderError(value)
    return AuthProvider(value)


class UserDirectory:
    """
    Maps external identities `(external_id, provider)` to internal users.

    `resolve_user` is a pure lookup and never mutates the row. Creation is
    idempotent: when a concurrent request wins the insert race, the existing
    row is returned instead of a second one being created.

    Example:
        >>> directory = UserDirectory.for_session(session)
        >>> user, is_new = await directory.provision(external_user)
    """

    def __init__(self, repository: UserRepositoryProtocol):
        self.repository = repository

    @classmethod
    def for_session(cls, session: AsyncSession) -> "UserDirectory":
        return cls(UserRepository(session))

    async def resolve_user(self, external_id: str, provider: object) -> User | None:
        """
        Look up a user by external identity.

        Raises:
            UnsupportedProviderError: Before any lookup, for unknown providers
        """
        checked = parse_provider(provider)
        return await self.repository.find_by_external_id(external_id, checked)

    async def find_by_id(self, user_id: UUID) -> User | None:
        return await self.repository.find_by_id(user_id)

    async def create_user(self, data: ExternalUserInfo) -> User:
        try:
            return await self.repository.create(data)
        except DuplicateUserError:
            logger.info(
                "Concurrent user creation detected, using existing row",
                extra={"provider": data.provider.value},
            )

        existing = await self.repository.find_by_external_id(data.external_id, data.provider)
        if existing is None:
            # Conflict reported but the row is not visible to this transaction.
            logger.error(
                "User insert conflicted but no row was found",
                extra={"error_type": "user_conflict_unresolved", "provider": data.provider.value},
            )
            raise InfrastructureError()
        return existing

    async def touch_login(self, user_id: UUID) -> User:
        """Set `last_login_at` and `updated_at` to now."""
        return await self.repository.touch_login(user_id)

    async def provision(self, data: ExternalUserInfo) -> tuple[User, bool]:
        """
        Resolve or create the user, then record the login.

        `is_new` is taken from `last_login_at` before the touch, so a user
        created by a concurrent request that has not logged in yet still
        counts as new.

        Returns:
            Tuple of (touched user, is_new)
        """
        user = await self.resolve_user(data.external_id, data.provider)
        if user is None:
            user = await self.create_user(data)

        is_new = user.is_first_login
        touched = await self.touch_login(user.id)

        logger.info(
            "User login recorded",
            extra={"user_id": str(touched.id), "is_new_user": is_new},
        )
        return touched, is_new
