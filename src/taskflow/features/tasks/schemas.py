"""Pydantic request and response models for task endpoints."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel
from pydantic_core import PydanticCustomError

from src.taskflow.features.tasks.entity import Task, TaskPriority, TaskStatus, normalize_title
from src.taskflow.features.tasks.exceptions import InvalidTaskDataError


def _validate_title(value: str) -> str:
    try:
        return normalize_title(value)
    except InvalidTaskDataError as e:
        raise PydanticCustomError("task_title", e.message) from e


class CreateTaskRequest(BaseModel):
    """Request body for POST /api/tasks."""

    title: str
    description: str | None = None
    priority: TaskPriority = TaskPriority.MEDIUM

    @field_validator("title")
    @classmethod
    def check_title(cls, value: str) -> str:
        return _validate_title(value)


class UpdateTaskRequest(BaseModel):
    """Request body for PUT /api/tasks/{id}; omitted fields are left unchanged."""

    title: str | None = None
    description: str | None = None
    priority: TaskPriority | None = None

    @field_validator("title")
    @classmethod
    def check_title(cls, value: str | None) -> str | None:
        return None if value is None else _validate_title(value)

    def changes(self) -> dict:
        """Fields the client actually sent; `description` may be set to null."""
        sent = self.model_dump(include=self.model_fields_set)
        return {
            key: value
            for key, value in sent.items()
            if value is not None or key == "description"
        }


class ChangeTaskStatusRequest(BaseModel):
    """Request body for PATCH /api/tasks/{id}/status."""

    status: TaskStatus


class TaskResponse(BaseModel):
    """Task as returned to the client (camelCase keys)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: UUID
    user_id: UUID
    title: str
    description: str | None
    priority: TaskPriority
    status: TaskStatus
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_task(cls, task: Task) -> "TaskResponse":
        return cls.model_validate(task.model_dump())

    def to_json(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)
