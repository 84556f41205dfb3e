"""Tests for user resolution and just-in-time provisioning."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from src.taskflow.auth.exceptions import UnsupportedProviderError
from src.taskflow.auth.providers import AuthProvider
from src.taskflow.features.users.directory import UserDirectory, parse_provider
from src.taskflow.features.users.entity import ExternalUserInfo
from src.taskflow.features.users.exceptions import DuplicateUserError
from src.taskflow.shared.errors import InfrastructureError


@pytest.fixture
def directory(user_repository) -> UserDirectory:
    return UserDirectory(user_repository)


@pytest.fixture
def external_user() -> ExternalUserInfo:
    return ExternalUserInfo(
        external_id="google-oauth2|1234567890",
        provider=AuthProvider.GOOGLE,
        email="user@example.com",
        name="Test User",
        avatar_url="https://example.com/a.png",
    )


class TestParseProvider:
    def test_accepts_supported_values(self):
        assert parse_provider("google") is AuthProvider.GOOGLE
        assert parse_provider(AuthProvider.GOOGLE) is AuthProvider.GOOGLE

    @pytest.mark.parametrize("value", ["unknown-provider", "GOOGLE", "", None, 1])
    def test_rejects_other_values(self, value):
        with pytest.raises(UnsupportedProviderError):
            parse_provider(value)


@pytest.mark.asyncio
class TestUserDirectory:
    """Tests for UserDirectory."""

    async def test_resolve_user_is_pure_lookup(self, directory, user_repository):
        """Test that resolving a user leaves the row untouched."""
        user = user_repository.add()

        found = await directory.resolve_user(user.external_id, "google")

        assert found == user
        assert user_repository.users[user.id] == user

    async def test_resolve_unknown_user_returns_none(self, directory, user_repository):
        assert await directory.resolve_user("unknown", "google") is None
        assert user_repository.users == {}

    async def test_resolve_unsupported_provider_skips_lookup(self, directory, user_repository):
        with pytest.raises(UnsupportedProviderError):
            await directory.resolve_user("google-oauth2|1234567890", "unknown-provider")

        assert user_repository.find_calls == 0

    async def test_provision_creates_user_on_first_login(self, directory, external_user):
        # Act
        user, is_new = await directory.provision(external_user)

        # Assert
        assert is_new is True
        assert user.external_id == external_user.external_id
        assert user.email == "user@example.com"
        assert user.last_login_at is not None

    async def test_provision_returns_existing_user(self, directory, user_repository, external_user):
        first, _ = await directory.provision(external_user)

        second, is_new = await directory.provision(external_user)

        assert is_new is False
        assert second.id == first.id
        assert user_repository.count(external_user.external_id) == 1

    async def test_each_login_advances_timestamps(self, directory, external_user):
        """Test that last_login_at and updated_at move forward on every login."""
        first, _ = await directory.provision(external_user)

        second, _ = await directory.provision(external_user)

        assert second.last_login_at > first.last_login_at
        assert second.updated_at >= second.last_login_at
        assert second.created_at == first.created_at

    async def test_concurrent_first_logins_create_one_user(
        self, directory, user_repository, external_user
    ):
        """Test that parallel provisioning of one identity yields a single row."""
        # Arrange
        attempts = 5

        # Act
        results = await asyncio.gather(
            *(directory.provision(external_user) for _ in range(attempts))
        )

        # Assert
        assert user_repository.count(external_user.external_id) == 1
        assert len({user.id for user, _ in results}) == 1
        assert user_repository.conflicts == attempts - 1

    async def test_create_user_returns_winner_on_conflict(
        self, directory, user_repository, external_user
    ):
        winner = user_repository.add(external_id=external_user.external_id)

        user = await directory.create_user(external_user)

        assert user.id == winner.id
        assert user_repository.count(external_user.external_id) == 1

    async def test_unresolvable_conflict_is_infrastructure_error(self, external_user):
        repository = AsyncMock()
        repository.create.side_effect = DuplicateUserError(external_user.external_id, "google")
        repository.find_by_external_id.return_value = None
        directory = UserDirectory(repository)

        with pytest.raises(InfrastructureError):
            await directory.create_user(external_user)
