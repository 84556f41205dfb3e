"""Row-level security context for the current transaction."""

import logging
import re

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.taskflow.shared.errors import InfrastructureError

logger = logging.getLogger(__name__)

RLS_SETTING = "app.current_user_id"

UUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE
)


class RlsContextError(InfrastructureError):
    """Raised when the RLS user binding cannot be applied."""

    pass


class RlsContextSetter:
    """
    Binds the internal user ID to the database transaction.

    Uses `set_config(..., is_local => true)`, the parameterized equivalent
    of `SET LOCAL`: the value is dropped at the end of the transaction, so it
    must be called on the same session (and inside the same transaction) that
    runs the scoped queries.
    """

    async def set_current_user(self, session: AsyncSession, user_id: str) -> None:
        """
        Scope subsequent queries in this transaction to `user_id`.

        Raises:
            RlsContextError: If user_id is not a UUID or the statement fails
        """
        if not isinstance(user_id, str) or not UUID_PATTERN.match(user_id):
            logger.error(
                "Refusing to set RLS context for a non-UUID user ID",
                extra={"error_type": "rls_invalid_user_id"},
            )
            raise RlsContextError()

        await self._execute(session, user_id)
        logger.debug("RLS context set", extra={"user_id": user_id})

    async def clear_current_user(self, session: AsyncSession) -> None:
        await self._execute(session, "")

    async def _execute(self, session: AsyncSession, value: str) -> None:
        try:
            await session.execute(
                text("SELECT set_config(:setting, :value, true)"),
                {"setting": RLS_SETTING, "value": value},
            )
        except SQLAlchemyError as e:
            logger.error(
                f"Failed to set RLS context: {e}",
                exc_info=True,
                extra={"error_type": "rls_statement_failed"},
            )
            raise RlsContextError() from e
