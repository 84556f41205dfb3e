"""Error taxonomy shared by every layer.

Lower layers raise one of the typed errors below. Use cases let them
propagate and wrap anything else in InfrastructureError; HTTP adapters turn
the exception into a Failure and perform a single match on its kind.
"""

from dataclasses import dataclass
from enum import Enum


class ErrorKind(str, Enum):
    """Classification of a failure, independent of transport."""

    VALIDATION = "validation"
    AUTH = "auth"
    NOT_FOUND = "not_found"
    INFRASTRUCTURE = "infrastructure"


GENERIC_INFRASTRUCTURE_MESSAGE = "一時的にサービスが利用できません"


class AppError(Exception):
    """Base class for all classified application errors."""

    kind: ErrorKind = ErrorKind.INFRASTRUCTURE
    code: str = "INTERNAL_SERVER_ERROR"

    def __init__(self, message: str, code: str | None = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code


class ValidationError(AppError):
    """Raised when client input is malformed or missing."""

    kind = ErrorKind.VALIDATION
    code = "VALIDATION_ERROR"


class AuthenticationError(AppError):
    """Raised when credentials are missing, invalid or expired."""

    kind = ErrorKind.AUTH
    code = "AUTHENTICATION_REQUIRED"

    @classmethod
    def invalid_token(cls) -> "AuthenticationError":
        return cls("認証トークンが無効です", code="INVALID_TOKEN")

    @classmethod
    def invalid_format(cls) -> "AuthenticationError":
        return cls("認証トークンが無効です", code="INVALID_FORMAT")


class NotFoundError(AppError):
    """Raised when a resource does not exist for the authenticated user."""

    kind = ErrorKind.NOT_FOUND
    code = "NOT_FOUND"


class InfrastructureError(AppError):
    """Raised when the server fails (database, RLS, remote services)."""

    kind = ErrorKind.INFRASTRUCTURE
    code = "INTERNAL_SERVER_ERROR"

    def __init__(self, message: str = GENERIC_INFRASTRUCTURE_MESSAGE, code: str | None = None):
        super().__init__(message, code)


@dataclass(frozen=True)
class Failure:
    """Tagged failure variant produced at the use-case boundary."""

    kind: ErrorKind
    message: str
    code: str

    @classmethod
    def from_exception(cls, exc: BaseException) -> "Failure":
        """
        Classify an exception by type.

        Unclassified exceptions become infrastructure failures with a generic
        message so internal error text never reaches the client.
        """
        if isinstance(exc, AppError):
            return cls(kind=exc.kind, message=exc.message, code=exc.code)
        return cls(
            kind=ErrorKind.INFRASTRUCTURE,
            message=GENERIC_INFRASTRUCTURE_MESSAGE,
            code=InfrastructureError.code,
        )
