"""Async PostgreSQL connection management."""

import logging
from collections.abc import AsyncIterator
from functools import lru_cache

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from src.taskflow.config import settings

logger = logging.getLogger(__name__)


def _normalize_url(database_url: str) -> str:
    """Use the asyncpg driver for plain postgres:// URLs."""
    for prefix in ("postgres://", "postgresql://"):
        if database_url.startswith(prefix):
            return database_url.replace(prefix, "postgresql+asyncpg://", 1)
    return database_url


@lru_cache(maxsize=1)
def get_engine() -> AsyncEngine:
    """
    Get the async engine (singleton pattern).

    Connections are pooled and pre-pinged; the application role is subject
    to row-level security, so every request must bind the current user with
    RlsContextSetter before touching user-owned rows.
    """
    engine = create_async_engine(
        _normalize_url(settings.database_url),
        echo=settings.database_echo,
        pool_size=settings.database_pool_size,
        pool_pre_ping=True,
    )
    logger.info("Database engine created", extra={"pool_size": settings.database_pool_size})
    return engine


@lru_cache(maxsize=1)
def get_session_factory() -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(get_engine(), expire_on_commit=False, autoflush=False)


async def get_db_session() -> AsyncIterator[AsyncSession]:
    """
    FastAPI dependency yielding a session inside an open transaction.

    The transaction stays open until the request handler returns, so a
    transaction-local RLS setting applies to every query the handler runs.
    It commits on success and rolls back if the handler raises. Handlers that
    turn a server error into a response call `session.rollback()` themselves.

    Example:
        >>> @router.get("/tasks")
        ... async def list_tasks(session: AsyncSession = Depends(get_db_session)):
        ...     ...
    """
    session_factory = get_session_factory()
    async with session_factory() as session:
        async with session.begin():
            yield session


async def dispose_engine() -> None:
    """Close pooled connections; called during application shutdown."""
    if get_engine.cache_info().currsize:
        await get_engine().dispose()
        logger.info("Database engine disposed")
