"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.taskflow.auth import AuthRejected, JWKSCache, JWTValidator
from src.taskflow.auth.dependencies import set_jwt_validator
from src.taskflow.config import settings
from src.taskflow.features.tasks.handlers import router as tasks_router
from src.taskflow.features.users.handlers import router as users_router
from src.taskflow.services import PostHogService
from src.taskflow.services.database.connection import dispose_engine
from src.taskflow.services.rate_limiter import limiter, rate_limit_exceeded_handler
from src.taskflow.shared.errors import GENERIC_INFRASTRUCTURE_MESSAGE
from src.taskflow.shared.responses import error_response

logger = logging.getLogger(__name__)

# Global JWKS cache instance for cleanup
_jwks_cache: JWKSCache | None = None


def build_jwt_validator() -> JWTValidator | None:
    """
    Create the validator from settings.

    A shared secret selects HS256 verification; otherwise the Supabase JWKS
    endpoint is used. Returns None when neither is configured.
    """
    global _jwks_cache

    if settings.jwt_secret:
        logger.info("Initializing JWT validator with shared secret (HS256)")
        return JWTValidator(
            secret=settings.jwt_secret,
            issuer=settings.jwt_issuer,
            audience=settings.jwt_audience,
            leeway=settings.jwt_leeway_seconds,
        )

    if settings.jwks_url:
        _jwks_cache = JWKSCache(
            jwks_url=settings.jwks_url,
            cache_ttl=settings.jwks_cache_ttl_seconds,
            timeout=settings.jwks_timeout_seconds,
        )
        logger.info(
            "Initializing JWT validator with JWKS",
            extra={"jwks_url": settings.jwks_url, "cache_ttl": settings.jwks_cache_ttl_seconds},
        )
        return JWTValidator(
            jwks_cache=_jwks_cache,
            issuer=settings.jwt_issuer,
            audience=settings.jwt_audience,
            leeway=settings.jwt_leeway_seconds,
        )

    return None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle (startup and shutdown)."""
    # Startup
    settings.warn_missing_secrets()

    validator = build_jwt_validator()
    if validator is not None:
        set_jwt_validator(validator)
        logger.info("JWT validator initialized", extra={"issuer": settings.jwt_issuer})

    yield

    # Shutdown
    set_jwt_validator(None)
    if _jwks_cache is not None:
        await _jwks_cache.close()
    await dispose_engine()
    PostHogService().shutdown()


app = FastAPI(
    title="Taskflow API",
    description="Google OAuth authentication and task management API",
    version="0.1.0",
    debug=settings.debug,
    lifespan=lifespan,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

origins = [origin.strip() for origin in settings.cors_origins.split(",") if origin.strip()]
logger.info(f"Origins : {origins}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH"],
    allow_headers=["Content-Type", "Authorization"],
)


@app.exception_handler(AuthRejected)
async def auth_rejected_handler(request: Request, exc: AuthRejected):
    return error_response(exc.code, exc.message, exc.status_code, headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    message = errors[0]["msg"] if errors else "Invalid request"
    logger.info(
        f"Request validation failed: {message}",
        extra={"path": request.url.path, "error_count": len(errors)},
    )
    return error_response("VALIDATION_ERROR", message, status.HTTP_400_BAD_REQUEST)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    match exc.status_code:
        case status.HTTP_404_NOT_FOUND:
            return error_response("NOT_FOUND", "Endpoint not found", exc.status_code)
        case status.HTTP_405_METHOD_NOT_ALLOWED:
            return error_response("METHOD_NOT_ALLOWED", "Method not allowed", exc.status_code)
        case _:
            return error_response("HTTP_ERROR", str(exc.detail), exc.status_code, exc.headers)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(
        f"Unhandled error on {request.method} {request.url.path}: {exc}",
        exc_info=exc,
        extra={"error_type": "unhandled_exception"},
    )
    return error_response(
        "INTERNAL_SERVER_ERROR",
        GENERIC_INFRASTRUCTURE_MESSAGE,
        status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


app.include_router(users_router, prefix=settings.api_prefix)
app.include_router(tasks_router, prefix=settings.api_prefix)


class HealthCheckResponse(BaseModel):
    """Health check response."""

    status: str


@app.get("/health", response_model=HealthCheckResponse)
async def health_check() -> HealthCheckResponse:
    """Health check endpoint."""
    return HealthCheckResponse(status="healthy")
