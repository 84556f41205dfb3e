"""Use cases for token exchange and profile retrieval."""

import logging
import re
import time
from dataclasses import dataclass
from uuid import UUID

from src.taskflow.auth.jwt_validator import JWTValidator
from src.taskflow.auth.models import ClaimsPayload
from src.taskflow.auth.providers import DEFAULT_PROVIDER
from src.taskflow.features.users.directory import UserDirectory, parse_provider
from src.taskflow.features.users.entity import ExternalUserInfo, User
from src.taskflow.features.users.exceptions import UserNotFoundError
from src.taskflow.services.database.rls import UUID_PATTERN
from src.taskflow.shared.errors import AppError, AuthenticationError, InfrastructureError, ValidationError

logger = logging.getLogger(__name__)

# header.payload.signature, signature may be empty
JWT_STRUCTURE = re.compile(r"^[A-Za-z0-9\-_]+\.[A-Za-z0-9\-_]+\.([A-Za-z0-9\-_]+)?$")

EXISTING_USER_TIME_LIMIT_MS = 1000
NEW_USER_TIME_LIMIT_MS = 2000

# Column limits of the users table
EXTERNAL_ID_MAX_LENGTH = 255
EMAIL_MAX_LENGTH = 320
NAME_MAX_LENGTH = 255
AVATAR_URL_PATTERN = re.compile(r"^https?://", re.IGNORECASE)


@dataclass(frozen=True)
class AuthenticateUserResult:
    user: User
    is_new_user: bool


def external_user_from_claims(claims: ClaimsPayload) -> ExternalUserInfo:
    """
    Build the provisioning input from verified claims.

    Values are fitted to the users table. The display name is trimmed and
    falls back to the email address when blank or absent. Avatar URLs that
    are not http(s) are dropped.

    Raises:
        ValidationError: Unsupported provider, or a subject or email longer
            than the users table accepts
    """
    email = claims.email or claims.user_metadata.email or ""
    if len(claims.subject) > EXTERNAL_ID_MAX_LENGTH or len(email) > EMAIL_MAX_LENGTH:
        logger.warning(
            "Identity exceeds users table limits",
            extra={"subject_length": len(claims.subject), "email_length": len(email)},
        )
        raise ValidationError("ユーザー情報が長すぎます")

    avatar_url = claims.user_metadata.avatar_url
    if not avatar_url or not AVATAR_URL_PATTERN.match(avatar_url):
        avatar_url = None

    provider = parse_provider(claims.app_metadata.provider or DEFAULT_PROVIDER.value)
    name = (claims.display_name or "").strip() or email
    return ExternalUserInfo(
        external_id=claims.subject,
        provider=provider,
        email=email,
        name=name[:NAME_MAX_LENGTH],
        avatar_url=avatar_url,
    )


class AuthenticateUserUseCase:
    """
    Exchanges a provider JWT for an application user.

    This is the only path that creates users. Order: structural check,
    signature verification, provisioning, login touch. Every verification
    failure is reported as the same invalid-token error.

    Example:
        >>> use_case = AuthenticateUserUseCase(validator, UserDirectory.for_session(session))
        >>> result = await use_case.execute(token)
        >>> result.is_new_user
        True
    """

    def __init__(self, validator: JWTValidator, directory: UserDirectory, max_length: int = 2048):
        self.validator = validator
        self.directory = directory
        self.max_length = max_length

    async def execute(self, token: str) -> AuthenticateUserResult:
        """
        Raises:
            ValidationError: Missing token or unsupported provider
            AuthenticationError: Malformed, invalid or expired token
            InfrastructureError: Database or unexpected failure
        """
        started = time.perf_counter()

        if not token:
            logger.warning("Authentication failed: missing JWT")
            raise ValidationError("JWTトークンが必要です")

        if len(token) > self.max_length or not JWT_STRUCTURE.match(token):
            logger.warning(
                "JWT structure validation failed",
                extra={"jwt_length": len(token)},
            )
            raise AuthenticationError.invalid_format()

        try:
            result = await self.validator.verify_token(token)
            if not result.valid or result.payload is None:
                logger.warning(
                    "User authentication failed",
                    extra={"reason": "invalid_jwt", "error_message": result.error},
                )
                raise AuthenticationError.invalid_token()

            external_user = external_user_from_claims(result.payload)
            user, is_new = await self.directory.provision(external_user)
        except AppError:
            raise
        except Exception as e:
            logger.error(
                f"User authentication error: {e}",
                exc_info=True,
                extra={"execution_ms": self._elapsed_ms(started)},
            )
            raise InfrastructureError() from e

        execution_ms = self._elapsed_ms(started)
        time_limit = NEW_USER_TIME_LIMIT_MS if is_new else EXISTING_USER_TIME_LIMIT_MS
        if execution_ms > time_limit:
            logger.warning(
                "Authentication exceeded its time limit",
                extra={"execution_ms": execution_ms, "time_limit_ms": time_limit, "is_new_user": is_new},
            )

        logger.info(
            "User authentication successful",
            extra={
                "user_id": str(user.id),
                "is_new_user": is_new,
                "provider": user.provider.value,
                "execution_ms": execution_ms,
            },
        )
        return AuthenticateUserResult(user=user, is_new_user=is_new)

    @staticmethod
    def _elapsed_ms(started: float) -> int:
        return int((time.perf_counter() - started) * 1000)


class GetUserProfileUseCase:
    """Loads the profile of the authenticated user."""

    def __init__(self, directory: UserDirectory):
        self.directory = directory

    async def execute(self, user_id: str) -> User:
        """
        Raises:
            ValidationError: user_id missing, blank or not a UUID
            UserNotFoundError: No row for user_id
            InfrastructureError: Database or unexpected failure
        """
        self._validate(user_id)

        logger.info("User profile retrieval started", extra={"user_id": user_id})
        try:
            user = await self.directory.find_by_id(UUID(user_id))
        except AppError:
            raise
        except Exception as e:
            logger.error(
                f"User profile retrieval error: {e}",
                exc_info=True,
                extra={"user_id": user_id},
            )
            raise InfrastructureError() from e

        if user is None:
            logger.warning("User not found", extra={"user_id": user_id})
            raise UserNotFoundError()

        return user

    def _validate(self, user_id: object) -> None:
        if not user_id:
            logger.warning("Profile request without user ID")
            raise ValidationError("ユーザーIDが必要です")
        if not isinstance(user_id, str) or not user_id.strip():
            logger.warning("Profile request with non-string user ID")
            raise ValidationError("ユーザーIDは有効な文字列である必要があります")
        if not UUID_PATTERN.match(user_id):
            logger.warning("Profile request with malformed user ID", extra={"user_id": user_id})
            raise ValidationError("ユーザーIDはUUID形式である必要があります")
