"""Custom exceptions for the tasks feature."""

from src.taskflow.shared.errors import NotFoundError, ValidationError


class TaskNotFoundError(NotFoundError):
    """Raised when a task does not exist for the current user."""

    def __init__(self, task_id: object):
        super().__init__(f"タスクが見つかりません: {task_id}")
        self.task_id = task_id


class InvalidTaskDataError(ValidationError):
    """Raised when task input fails validation."""

    pass
