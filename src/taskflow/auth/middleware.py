"""Bearer-token authentication middleware, applied per route group."""

import logging

from fastapi import Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.taskflow.auth.dependencies import (
    get_jwt_validator,
    get_monitoring,
    get_rls_context_setter,
    get_user_directory,
)
from src.taskflow.auth.exceptions import AuthRejected, RejectReason
from src.taskflow.auth.jwt_validator import JWTValidator
from src.taskflow.auth.models import AuthContext, VerificationResult
from src.taskflow.auth.providers import DEFAULT_PROVIDER, is_supported_provider
from src.taskflow.features.users.directory import UserDirectory
from src.taskflow.features.users.exceptions import USER_NOT_FOUND_MESSAGE
from src.taskflow.services import PostHogService
from src.taskflow.services.database import RlsContextSetter, get_db_session
from src.taskflow.shared.errors import GENERIC_INFRASTRUCTURE_MESSAGE

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "


def extract_bearer_token(authorization: str | None) -> str | None:
    """
    Return the token from an `Authorization: Bearer <token>` header.

    Returns None for a missing header, any other scheme, or an empty token.
    """
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        return None

    token = authorization[len(BEARER_PREFIX):].strip()
    return token or None


class AuthMiddleware:
    """
    Authenticates a request and scopes its database transaction to the user.

    Used as a FastAPI dependency; the steps run strictly in order and any of
    them can short-circuit with AuthRejected:

    1. extract the bearer token (401 if missing or malformed)
    2. verify it (401 if invalid, expired or without subject)
    3. check the provider from app_metadata, defaulting to google (401)
    4. look up the internal user, never creating one (401, or
       `missing_user_status` for route groups that report a missing user as 404)
    5. bind the user to the transaction for RLS (500 on failure)

    On success `request.state.user_id` holds the internal UUID and
    `request.state.claims` the verified claims.

    Example:
        >>> require_auth = AuthMiddleware()
        >>> @router.get("/tasks")
        ... async def list_tasks(auth: AuthContext = Depends(require_auth)):
        ...     return auth.user_id
    """

    def __init__(
        self,
        optional: bool = False,
        missing_user_status: int = status.HTTP_401_UNAUTHORIZED,
    ):
        self.optional = optional
        self.missing_user_status = missing_user_status

    async def __call__(
        self,
        request: Request,
        validator: JWTValidator = Depends(get_jwt_validator),
        directory: UserDirectory = Depends(get_user_directory),
        rls: RlsContextSetter = Depends(get_rls_context_setter),
        session: AsyncSession = Depends(get_db_session),
        monitoring: PostHogService = Depends(get_monitoring),
    ) -> AuthContext:
        context = await self.authenticate(
            request.headers.get("Authorization"),
            validator=validator,
            directory=directory,
            rls=rls,
            session=session,
            monitoring=monitoring,
        )
        request.state.user_id = context.user_id
        request.state.claims = context.claims
        return context

    async def authenticate(
        self,
        authorization: str | None,
        *,
        validator: JWTValidator,
        directory: UserDirectory,
        rls: RlsContextSetter,
        session: AsyncSession,
        monitoring: PostHogService,
    ) -> AuthContext:
        token = extract_bearer_token(authorization)
        if token is None:
            if self.optional:
                return AuthContext()
            raise self._reject(monitoring, RejectReason.MISSING_OR_MALFORMED)

        try:
            result = await validator.verify_token(token)
        except Exception as e:
            logger.error(f"Token verifier raised: {e}", exc_info=True)
            result = VerificationResult.failure(str(e))

        claims = result.payload
        if not result.valid or claims is None or not claims.subject.strip():
            raise self._reject(monitoring, RejectReason.JWT_INVALID, detail=result.error)

        provider = claims.app_metadata.provider or DEFAULT_PROVIDER.value
        if not is_supported_provider(provider):
            raise self._reject(
                monitoring,
                RejectReason.UNSUPPORTED_PROVIDER,
                message=f"サポートされていないプロバイダー: {provider}",
                detail=provider,
            )

        try:
            user = await directory.resolve_user(claims.subject, provider)
        except Exception as e:
            logger.error(f"User lookup failed: {e}", exc_info=True)
            raise self._infrastructure_failure(monitoring) from e

        if user is None:
            if self.missing_user_status == status.HTTP_401_UNAUTHORIZED:
                # Generic 401; the caller must provision through /auth/verify.
                raise self._reject(
                    monitoring,
                    RejectReason.USER_NOT_FOUND,
                    detail="no user row; call /auth/verify first",
                )
            raise self._reject(
                monitoring,
                RejectReason.USER_NOT_FOUND,
                code="USER_NOT_FOUND",
                message=USER_NOT_FOUND_MESSAGE,
                status_code=self.missing_user_status,
            )

        user_id = str(user.id)
        try:
            await rls.set_current_user(session, user_id)
        except Exception as e:
            logger.error(
                f"RLS context could not be set for user {user_id}: {e}",
                extra={"error_type": "rls_failed", "user_id": user_id},
            )
            raise self._infrastructure_failure(monitoring, distinct_id=user_id) from e

        logger.info(f"User authenticated: {user_id}", extra={"provider": provider})
        monitoring.auth_succeeded(user_id, provider)
        return AuthContext(user_id=user_id, claims=claims)

    def _reject(
        self,
        monitoring: PostHogService,
        reason: RejectReason,
        *,
        detail: str | None = None,
        distinct_id: str = "anonymous",
        **kwargs,
    ) -> AuthRejected:
        logger.warning(
            f"Authentication rejected: {reason.value}",
            extra={"reason": reason.value, "detail": detail},
        )
        monitoring.auth_failed(reason.value, distinct_id=distinct_id)
        return AuthRejected(reason, **kwargs)

    def _infrastructure_failure(
        self, monitoring: PostHogService, distinct_id: str = "anonymous"
    ) -> AuthRejected:
        return self._reject(
            monitoring,
            RejectReason.INFRASTRUCTURE,
            distinct_id=distinct_id,
            code="INTERNAL_SERVER_ERROR",
            message=GENERIC_INFRASTRUCTURE_MESSAGE,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )


require_auth = AuthMiddleware()
optional_auth = AuthMiddleware(optional=True)
# /user/profile reports an authenticated caller without a user row as 404.
profile_auth = AuthMiddleware(missing_user_status=status.HTTP_404_NOT_FOUND)
