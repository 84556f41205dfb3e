"""Custom exceptions for authentication."""

from enum import Enum

from fastapi import status

from src.taskflow.shared.errors import ValidationError

AUTHENTICATION_REQUIRED_MESSAGE = "ログインが必要です"


class SigningKeyNotFoundError(ValueError):
    """Raised when a JWT names a key ID that the JWKS does not contain."""

    def __init__(self, kid: str, available: list[str]):
        super().__init__(f"Key ID '{kid}' not found in JWKS. Available keys: {available}")
        self.kid = kid


class UnsupportedProviderError(ValidationError):
    """Raised when app_metadata.provider is not in the allow-list."""

    code = "INVALID_PROVIDER"

    def __init__(self, provider: object):
        super().__init__(f"サポートされていないプロバイダー: {provider}")
        self.provider = provider


class RejectReason(str, Enum):
    """Terminal failure states of the authentication middleware."""

    MISSING_OR_MALFORMED = "missing_or_malformed"
    JWT_INVALID = "jwt_invalid"
    UNSUPPORTED_PROVIDER = "unsupported_provider"
    USER_NOT_FOUND = "user_not_found"
    INFRASTRUCTURE = "infrastructure"


class AuthRejected(Exception):
    """
    Raised by AuthMiddleware to short-circuit a request.

    Rendered by the application exception handler as
    `{success: false, error: {code, message}}` with `status_code`.
    """

    def __init__(
        self,
        reason: RejectReason,
        code: str = "AUTHENTICATION_REQUIRED",
        message: str = AUTHENTICATION_REQUIRED_MESSAGE,
        status_code: int = status.HTTP_401_UNAUTHORIZED,
    ):
        super().__init__(message)
        self.reason = reason
        self.code = code
        self.message = message
        self.status_code = status_code

    @property
    def headers(self) -> dict[str, str] | None:
        if self.status_code == status.HTTP_401_UNAUTHORIZED:
            return {"WWW-Authenticate": "Bearer"}
        return None
