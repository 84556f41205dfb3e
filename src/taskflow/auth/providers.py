"""Supported authentication providers."""

from enum import Enum


class AuthProvider(str, Enum):
    """Identity providers a user record can be linked to."""

    GOOGLE = "google"
    APPLE = "apple"
    MICROSOFT = "microsoft"
    GITHUB = "github"
    FACEBOOK = "facebook"
    LINE = "line"


DEFAULT_PROVIDER = AuthProvider.GOOGLE


def is_supported_provider(value: object) -> bool:
    """Return True if value names a provider in the allow-list."""
    return isinstance(value, str) and value in supported_providers()


def supported_providers() -> list[str]:
    return [provider.value for provider in AuthProvider]
