"""Task use cases."""

import logging
from typing import Any, Protocol
from uuid import UUID

from src.taskflow.features.tasks.entity import (
    Task,
    TaskPriority,
    TaskSort,
    TaskStatus,
    normalize_title,
    parse_status_filter,
)
from src.taskflow.features.tasks.exceptions import TaskNotFoundError
from src.taskflow.shared.errors import AppError, InfrastructureError

logger = logging.getLogger(__name__)


class TaskStore(Protocol):
    async def list_for_user(
        self,
        user_id: UUID,
        priority: TaskPriority | None = None,
        statuses: list[TaskStatus] | None = None,
        sort: TaskSort = TaskSort.CREATED_AT_DESC,
    ) -> list[Task]: ...

    async def find_by_id(self, user_id: UUID, task_id: UUID) -> Task | None: ...

    async def create(
        self,
        user_id: UUID,
        title: str,
        description: str | None = None,
        priority: TaskPriority = TaskPriority.MEDIUM,
    ) -> Task: ...

    async def update(self, user_id: UUID, task_id: UUID, changes: dict[str, Any]) -> Task | None: ...

    async def delete(self, user_id: UUID, task_id: UUID) -> bool: ...


class TaskService:
    """
    Task operations for the authenticated user.

    Typed errors (TaskNotFoundError, InvalidTaskDataError) propagate; any
    other failure is logged and raised as InfrastructureError.
    """

    def __init__(self, store: TaskStore):
        self.store = store

    async def list_tasks(
        self,
        user_id: UUID,
        priority: TaskPriority | None = None,
        status: str | None = None,
        sort: TaskSort = TaskSort.CREATED_AT_DESC,
    ) -> list[Task]:
        statuses = parse_status_filter(status)
        return await self._run(
            "list_tasks",
            self.store.list_for_user(user_id, priority=priority, statuses=statuses, sort=sort),
        )

    async def get_task(self, user_id: UUID, task_id: UUID) -> Task:
        task = await self._run("get_task", self.store.find_by_id(user_id, task_id))
        if task is None:
            raise TaskNotFoundError(task_id)
        return task

    async def create_task(
        self,
        user_id: UUID,
        title: str,
        description: str | None = None,
        priority: TaskPriority = TaskPriority.MEDIUM,
    ) -> Task:
        task = await self._run(
            "create_task",
            self.store.create(user_id, normalize_title(title), description, priority),
        )
        logger.info("Task created", extra={"user_id": str(user_id), "task_id": str(task.id)})
        return task

    async def update_task(self, user_id: UUID, task_id: UUID, changes: dict[str, Any]) -> Task:
        """
        Update title, description and/or priority.

        An empty `changes` returns the task unchanged.
        """
        if "title" in changes:
            changes = {**changes, "title": normalize_title(changes["title"])}
        if not changes:
            return await self.get_task(user_id, task_id)

        task = await self._run("update_task", self.store.update(user_id, task_id, changes))
        if task is None:
            raise TaskNotFoundError(task_id)
        return task

    async def change_status(self, user_id: UUID, task_id: UUID, status: TaskStatus) -> Task:
        task = await self._run(
            "change_status", self.store.update(user_id, task_id, {"status": status})
        )
        if task is None:
            raise TaskNotFoundError(task_id)
        return task

    async def delete_task(self, user_id: UUID, task_id: UUID) -> None:
        deleted = await self._run("delete_task", self.store.delete(user_id, task_id))
        if not deleted:
            raise TaskNotFoundError(task_id)
        logger.info("Task deleted", extra={"user_id": str(user_id), "task_id": str(task_id)})

    async def _run(self, operation: str, awaitable):
        try:
            return await awaitable
        except AppError:
            raise
        except Exception as e:
            logger.error(
                f"Task {operation} failed: {e}",
                exc_info=True,
                extra={"error_type": "task_store_error", "operation": operation},
            )
            raise InfrastructureError() from e
