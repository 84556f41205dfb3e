"""Sign-in providers for the client, selected through a registry."""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Protocol
from urllib.parse import urlparse

from supabase import AuthError, Client, create_client

from src.taskflow.auth.providers import AuthProvider
from src.taskflow.config import settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SignInResult:
    success: bool
    provider: str
    url: str | None = None
    error: str | None = None


@dataclass(frozen=True)
class ProviderUser:
    """User as reported by the identity provider, before /auth/verify."""

    external_id: str
    provider: str
    email: str
    name: str
    avatar_url: str | None = None


@dataclass(frozen=True)
class SessionInfo:
    access_token: str
    refresh_token: str | None
    expires_at: int | None


class AuthProviderClient(Protocol):
    """Capabilities every sign-in provider offers."""

    name: str

    def sign_in(self, redirect_to: str | None = None) -> SignInResult: ...

    def sign_out(self) -> SignInResult: ...

    def get_user(self) -> ProviderUser | None: ...

    def get_session(self) -> SessionInfo | None: ...


class UntrustedRedirectError(ValueError):
    """Raised when a sign-in redirect target is not an allowed host."""

    pass


def validate_redirect_url(redirect_to: str, trusted_domains: set[str]) -> None:
    """
    Allow http(s) URLs whose host is a trusted domain or one of its subdomains.

    Raises:
        UntrustedRedirectError: For malformed URLs, other schemes, or other hosts
    """
    parsed = urlparse(redirect_to)
    if parsed.scheme not in ("http", "https"):
        raise UntrustedRedirectError("許可されていないプロトコルです")
    if not parsed.hostname:
        raise UntrustedRedirectError("不正な URL 形式です")

    hostname = parsed.hostname.lower()
    for domain in trusted_domains:
        if hostname == domain or hostname.endswith(f".{domain}"):
            return

    raise UntrustedRedirectError("不正なリダイレクト先です")


class GoogleAuthProvider:
    """Google sign-in through Supabase Auth."""

    name = AuthProvider.GOOGLE.value

    def __init__(
        self,
        supabase_client: Client | None = None,
        trusted_domains: set[str] | None = None,
        site_url: str | None = None,
    ):
        self.supabase = supabase_client or create_client(
            settings.supabase_url, settings.supabase_anon_key
        )
        if trusted_domains is None:
            trusted_domains = {
                d.strip().lower() for d in settings.trusted_domains.split(",") if d.strip()
            }
        self.trusted_domains = trusted_domains
        self.site_url = site_url or settings.site_url

    def sign_in(self, redirect_to: str | None = None) -> SignInResult:
        """Start the OAuth flow; `url` is where the browser must be sent."""
        target = redirect_to or self.site_url
        try:
            validate_redirect_url(target, self.trusted_domains)
        except UntrustedRedirectError as e:
            logger.warning(f"Rejected sign-in redirect: {target}", extra={"reason": str(e)})
            return SignInResult(success=False, provider=self.name, error=str(e))

        try:
            response = self.supabase.auth.sign_in_with_oauth(
                {"provider": self.name, "options": {"redirect_to": target}}
            )
        except AuthError as e:
            logger.error(f"Google sign in failed: {e}")
            return SignInResult(success=False, provider=self.name, error=e.message)

        return SignInResult(success=True, provider=self.name, url=response.url)

    def sign_out(self) -> SignInResult:
        try:
            self.supabase.auth.sign_out()
        except AuthError as e:
            logger.error(f"Google sign out failed: {e}")
            return SignInResult(success=False, provider=self.name, error=e.message)
        return SignInResult(success=True, provider=self.name)

    def get_user(self) -> ProviderUser | None:
        try:
            response = self.supabase.auth.get_user()
        except AuthError as e:
            logger.error(f"Google get user failed: {e}")
            return None

        if response is None or response.user is None:
            return None

        user = response.user
        metadata: dict[str, Any] = user.user_metadata or {}
        return ProviderUser(
            external_id=user.id,
            provider=self.name,
            email=user.email or "",
            name=metadata.get("name") or metadata.get("full_name") or "Google User",
            avatar_url=metadata.get("avatar_url") or metadata.get("picture"),
        )

    def get_session(self) -> SessionInfo | None:
        session = self.supabase.auth.get_session()
        if session is None:
            return None
        return SessionInfo(
            access_token=session.access_token,
            refresh_token=session.refresh_token,
            expires_at=session.expires_at,
        )


ProviderFactory = Callable[[], AuthProviderClient]

_registry: dict[str, ProviderFactory] = {
    AuthProvider.GOOGLE.value: GoogleAuthProvider,
}


def register_provider(name: str, factory: ProviderFactory) -> None:
    """Add or replace the factory for a provider (e.g. a fake in tests)."""
    _registry[name] = factory


def get_provider(name: str) -> AuthProviderClient:
    """
    Build the sign-in provider registered under `name`.

    Raises:
        KeyError: If no provider is registered for `name`
    """
    try:
        factory = _registry[name]
    except KeyError:
        raise KeyError(f"No sign-in provider registered for '{name}'") from None
    return factory()


def available_providers() -> list[str]:
    return sorted(_registry)
