"""Task entity and its value types."""

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from src.taskflow.features.tasks.exceptions import InvalidTaskDataError

TITLE_MAX_LENGTH = 100
TITLE_REQUIRED_MESSAGE = "タイトルを入力してください"
TITLE_TOO_LONG_MESSAGE = f"タイトルは{TITLE_MAX_LENGTH}文字以内で入力してください"
INVALID_STATUS_FILTER_MESSAGE = "ステータスは有効な値のカンマ区切りである必要があります"


class TaskPriority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class TaskStatus(str, Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    IN_REVIEW = "in_review"
    COMPLETED = "completed"


class TaskSort(str, Enum):
    CREATED_AT_DESC = "created_at_desc"
    CREATED_AT_ASC = "created_at_asc"
    PRIORITY_DESC = "priority_desc"


def normalize_title(title: object) -> str:
    """
    Trim a task title and check its length.

    Raises:
        InvalidTaskDataError: If the title is blank or longer than 100 characters
    """
    if not isinstance(title, str) or not title.strip():
        raise InvalidTaskDataError(TITLE_REQUIRED_MESSAGE)

    trimmed = title.strip()
    if len(trimmed) > TITLE_MAX_LENGTH:
        raise InvalidTaskDataError(TITLE_TOO_LONG_MESSAGE)
    return trimmed


def parse_status_filter(value: str | None) -> list[TaskStatus]:
    """
    Parse a comma-separated status filter such as "in_progress,in_review".

    Raises:
        InvalidTaskDataError: If any entry is not a task status
    """
    if not value:
        return []

    try:
        return [TaskStatus(part.strip()) for part in value.split(",")]
    except ValueError as e:
        raise InvalidTaskDataError(INVALID_STATUS_FILTER_MESSAGE) from e


class Task(BaseModel):
    """A task owned by one user."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: UUID
    user_id: UUID
    title: str
    description: str | None = None
    priority: TaskPriority
    status: TaskStatus
    created_at: datetime
    updated_at: datetime
