"""Database connection, ORM models and RLS context."""

from src.taskflow.services.database.connection import get_db_session, get_engine, get_session_factory
from src.taskflow.services.database.rls import RlsContextError, RlsContextSetter

__all__ = [
    "get_db_session",
    "get_engine",
    "get_session_factory",
    "RlsContextError",
    "RlsContextSetter",
]
