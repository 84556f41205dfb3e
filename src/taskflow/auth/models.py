"""Data models for authentication."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class UserMetadata(BaseModel):
    """Profile data the identity provider attaches to the token."""

    model_config = ConfigDict(extra="ignore")

    name: str | None = None
    full_name: str | None = None
    avatar_url: str | None = None
    email: str | None = None


class AppMetadata(BaseModel):
    """Provider information attached by the auth server."""

    model_config = ConfigDict(extra="ignore")

    provider: str | None = None
    providers: list[str] = Field(default_factory=list)


class ClaimsPayload(BaseModel):
    """
    Standardized claims extracted from a verified JWT.

    Field aliases match the registered claim names, so the model can be
    built straight from the decoded token:

    Example:
        >>> claims = ClaimsPayload.model_validate(
        ...     {"sub": "google-123", "email": "a@example.com", "exp": 9999999999, "iat": 1}
        ... )
        >>> claims.subject
        'google-123'
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    subject: str = Field(alias="sub")
    email: str | None = None
    issued_at: int | None = Field(default=None, alias="iat")
    expires_at: int = Field(alias="exp")
    issuer: str | None = Field(default=None, alias="iss")
    audience: str | list[str] | None = Field(default=None, alias="aud")
    user_metadata: UserMetadata = Field(default_factory=UserMetadata)
    app_metadata: AppMetadata = Field(default_factory=AppMetadata)

    @property
    def display_name(self) -> str | None:
        return self.user_metadata.name or self.user_metadata.full_name


class VerificationResult(BaseModel):
    """Outcome of TokenVerifier.verify_token; never raised, always returned."""

    valid: bool
    payload: ClaimsPayload | None = None
    error: str | None = None

    @classmethod
    def failure(cls, error: str) -> "VerificationResult":
        return cls(valid=False, error=error)


class AuthContext(BaseModel):
    """
    Per-request authentication state set by AuthMiddleware.

    Attributes:
        user_id: Internal users.id (UUID string), None for anonymous requests
        claims: Verified claims, kept for auditing
    """

    model_config = ConfigDict(frozen=True)

    user_id: str | None = None
    claims: ClaimsPayload | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None

    def audit_fields(self) -> dict[str, Any]:
        """Fields safe to put in logs."""
        return {
            "user_id": self.user_id,
            "provider": self.claims.app_metadata.provider if self.claims else None,
        }
