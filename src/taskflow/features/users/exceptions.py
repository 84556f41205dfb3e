"""Custom exceptions for the users feature."""

from src.taskflow.shared.errors import NotFoundError

USER_NOT_FOUND_MESSAGE = "ユーザーが見つかりません"


class UserNotFoundError(NotFoundError):
    """Raised when no user row exists for the requested ID."""

    code = "USER_NOT_FOUND"

    def __init__(self, message: str = USER_NOT_FOUND_MESSAGE):
        super().__init__(message)


class DuplicateUserError(Exception):
    """
    Raised by the repository when an insert hit the
    (external_id, provider) unique constraint.

    Never reaches HTTP adapters; UserDirectory resolves it with a lookup.
    """

    def __init__(self, external_id: str, provider: str):
        super().__init__(f"User already exists for {provider}:{external_id}")
        self.external_id = external_id
        self.provider = provider
