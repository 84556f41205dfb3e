"""Rate limiting service for API endpoints."""

import logging

from fastapi import Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from src.taskflow.config import settings
from src.taskflow.shared.responses import error_response

logger = logging.getLogger(__name__)


def get_user_id_or_ip(request: Request) -> str:
    """
    Key requests by internal user ID, falling back to the client IP.

    `request.state.user_id` is set by AuthMiddleware, which runs as a
    dependency before the rate-limited handler body.
    """
    user_id: str | None = getattr(request.state, "user_id", None)

    if user_id:
        return f"user:{user_id}"

    return f"ip:{get_remote_address(request)}"


limiter = Limiter(
    key_func=get_user_id_or_ip,
    default_limits=[],
    storage_uri="memory://",
    enabled=settings.rate_limit_enabled,
)


class RateLimitTiers:
    """
    Rate limit tiers for different endpoint categories.

    Authenticated endpoints are limited per user; /auth/verify runs before a
    user is known and is limited per IP.
    """

    # Reads (task list, profile)
    DEFAULT = ["100 per minute", "1000 per hour"]

    # Task create/update/delete
    WRITE = ["30 per minute", "200 per hour"]

    # Token exchange
    PUBLIC = ["20 per minute", "100 per hour"]


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    logger.warning(
        f"Rate limit exceeded: {exc.detail}",
        extra={"key": get_user_id_or_ip(request), "path": request.url.path},
    )
    return error_response("RATE_LIMIT_EXCEEDED", "リクエストが多すぎます", 429)


# These decorators require the endpoint to take a 'request: Request' parameter.
default_rate_limit = limiter.limit(";".join(RateLimitTiers.DEFAULT))
write_rate_limit = limiter.limit(";".join(RateLimitTiers.WRITE))
public_rate_limit = limiter.limit(";".join(RateLimitTiers.PUBLIC))
