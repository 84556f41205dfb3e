"""Data access for the tasks table."""

from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import case, delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from src.taskflow.features.tasks.entity import Task, TaskPriority, TaskSort, TaskStatus
from src.taskflow.services.database.models import TaskRow

PRIORITY_RANK = case(
    (TaskRow.priority == TaskPriority.HIGH.value, 1),
    (TaskRow.priority == TaskPriority.MEDIUM.value, 2),
    else_=3,
)

ORDER_BY = {
    TaskSort.CREATED_AT_DESC: (TaskRow.created_at.desc(),),
    TaskSort.CREATED_AT_ASC: (TaskRow.created_at.asc(),),
    TaskSort.PRIORITY_DESC: (PRIORITY_RANK.asc(), TaskRow.created_at.desc()),
}


class TaskRepository:
    """
    Task queries for one request session.

    RLS already limits rows to the current user; every statement also
    filters on `user_id` explicitly.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_for_user(
        self,
        user_id: UUID,
        priority: TaskPriority | None = None,
        statuses: list[TaskStatus] | None = None,
        sort: TaskSort = TaskSort.CREATED_AT_DESC,
    ) -> list[Task]:
        stmt = select(TaskRow).where(TaskRow.user_id == user_id)
        if priority is not None:
            stmt = stmt.where(TaskRow.priority == priority.value)
        if statuses:
            stmt = stmt.where(TaskRow.status.in_([s.value for s in statuses]))
        stmt = stmt.order_by(*ORDER_BY[sort])

        rows = (await self.session.execute(stmt)).scalars().all()
        return [Task.model_validate(row) for row in rows]

    async def find_by_id(self, user_id: UUID, task_id: UUID) -> Task | None:
        stmt = select(TaskRow).where(TaskRow.id == task_id, TaskRow.user_id == user_id)
        row = (await self.session.execute(stmt)).scalar_one_or_none()
        return Task.model_validate(row) if row is not None else None

    async def create(
        self,
        user_id: UUID,
        title: str,
        description: str | None = None,
        priority: TaskPriority = TaskPriority.MEDIUM,
    ) -> Task:
        row = TaskRow(
            id=uuid4(),
            user_id=user_id,
            title=title,
            description=description,
            priority=priority.value,
            status=TaskStatus.NOT_STARTED.value,
        )
        self.session.add(row)
        await self.session.flush()
        await self.session.refresh(row)
        return Task.model_validate(row)

    async def update(self, user_id: UUID, task_id: UUID, changes: dict[str, Any]) -> Task | None:
        """Apply `changes` (column name to value) and return the updated task."""
        values = {
            key: value.value if isinstance(value, TaskPriority | TaskStatus) else value
            for key, value in changes.items()
        }
        stmt = (
            update(TaskRow)
            .where(TaskRow.id == task_id, TaskRow.user_id == user_id)
            .values(**values, updated_at=func.now())
            .returning(TaskRow)
            .execution_options(synchronize_session=False, populate_existing=True)
        )
        row = (await self.session.execute(stmt)).scalar_one_or_none()
        return Task.model_validate(row) if row is not None else None

    async def delete(self, user_id: UUID, task_id: UUID) -> bool:
        stmt = (
            delete(TaskRow)
            .where(TaskRow.id == task_id, TaskRow.user_id == user_id)
            .returning(TaskRow.id)
            .execution_options(synchronize_session=False)
        )
        deleted = (await self.session.execute(stmt)).scalar_one_or_none()
        return deleted is not None
