"""Tests for task repository statements."""

from unittest.mock import AsyncMock, Mock
from uuid import uuid4

import pytest
from sqlalchemy.dialects import postgresql

from src.taskflow.features.tasks.entity import TaskPriority, TaskSort, TaskStatus
from src.taskflow.features.tasks.repository import TaskRepository


def make_session(scalar=None, rows=()) -> AsyncMock:
    result = Mock()
    result.scalar_one_or_none.return_value = scalar
    result.scalars.return_value.all.return_value = list(rows)
    session = AsyncMock()
    session.execute = AsyncMock(return_value=result)
    return session


def executed_sql(session: AsyncMock) -> str:
    statement = session.execute.await_args.args[0]
    return str(statement.compile(dialect=postgresql.dialect()))


@pytest.mark.asyncio
class TestTaskRepository:
    """Every statement is scoped to the owner."""

    async def test_list_filters_and_orders(self):
        session = make_session()

        await TaskRepository(session).list_for_user(
            uuid4(),
            priority=TaskPriority.HIGH,
            statuses=[TaskStatus.IN_PROGRESS, TaskStatus.IN_REVIEW],
            sort=TaskSort.PRIORITY_DESC,
        )

        sql = executed_sql(session)
        assert "tasks.user_id = " in sql
        assert "tasks.priority = " in sql
        assert "tasks.status IN" in sql
        assert "ORDER BY CASE" in sql

    async def test_find_by_id_scoped_to_owner(self):
        session = make_session()

        assert await TaskRepository(session).find_by_id(uuid4(), uuid4()) is None
        assert "tasks.user_id = " in executed_sql(session)

    async def test_update_scoped_to_owner(self):
        session = make_session()

        result = await TaskRepository(session).update(
            uuid4(), uuid4(), {"status": TaskStatus.COMPLETED}
        )

        assert result is None
        sql = executed_sql(session)
        assert sql.startswith("UPDATE tasks")
        assert "tasks.user_id = " in sql
        assert "updated_at=now()" in sql

    async def test_delete_reports_missing_row(self):
        session = make_session()

        assert await TaskRepository(session).delete(uuid4(), uuid4()) is False
        assert "tasks.user_id = " in executed_sql(session)

    async def test_delete_reports_deleted_row(self):
        session = make_session(scalar=uuid4())

        assert await TaskRepository(session).delete(uuid4(), uuid4()) is True
