"""FastAPI dependency providers used by the authentication middleware."""

import logging

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from src.taskflow.auth.jwt_validator import JWTValidator
from src.taskflow.features.users.directory import UserDirectory
from src.taskflow.services import PostHogService
from src.taskflow.services.database import RlsContextSetter, get_db_session

logger = logging.getLogger(__name__)

# Global JWT validator instance (initialized in main.py lifespan)
_jwt_validator: JWTValidator | None = None


def set_jwt_validator(validator: JWTValidator | None) -> None:
    """
    Set the global JWT validator instance.

    Called during application startup; tests pass None to reset it.
    """
    global _jwt_validator
    _jwt_validator = validator


def get_jwt_validator() -> JWTValidator:
    """
    Get the global JWT validator instance.

    Raises:
        RuntimeError: If JWT validator not initialized
    """
    if _jwt_validator is None:
        raise RuntimeError(
            "JWT validator not initialized. "
            "Ensure application lifespan calls set_jwt_validator()."
        )
    return _jwt_validator


def get_user_directory(session: AsyncSession = Depends(get_db_session)) -> UserDirectory:
    """UserDirectory bound to the request transaction."""
    return UserDirectory.for_session(session)


def get_rls_context_setter() -> RlsContextSetter:
    return RlsContextSetter()


def get_monitoring() -> PostHogService:
    return PostHogService()
