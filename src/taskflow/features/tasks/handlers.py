"""API handlers for task CRUD endpoints."""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, Response, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from src.taskflow.auth.middleware import require_auth
from src.taskflow.auth.models import AuthContext
from src.taskflow.features.tasks.entity import TaskPriority, TaskSort
from src.taskflow.features.tasks.repository import TaskRepository
from src.taskflow.features.tasks.schemas import (
    ChangeTaskStatusRequest,
    CreateTaskRequest,
    TaskResponse,
    UpdateTaskRequest,
)
from src.taskflow.features.tasks.service import TaskService
from src.taskflow.services.database import get_db_session
from src.taskflow.services.rate_limiter import default_rate_limit, write_rate_limit
from src.taskflow.shared.errors import ErrorKind, Failure
from src.taskflow.shared.responses import error_response, success_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tasks", tags=["tasks"])

INTERNAL_ERROR_MESSAGE = "サーバーエラーが発生しました"


def get_task_service(session: AsyncSession = Depends(get_db_session)) -> TaskService:
    return TaskService(TaskRepository(session))


async def task_error_response(
    exc: Exception, user_id: str | None, session: AsyncSession
) -> JSONResponse:
    """Map a task failure to its response, rolling back on server errors."""
    failure = Failure.from_exception(exc)
    match failure.kind:
        case ErrorKind.NOT_FOUND:
            return error_response("NOT_FOUND", failure.message, status.HTTP_404_NOT_FOUND)
        case ErrorKind.VALIDATION:
            return error_response("VALIDATION_ERROR", failure.message, status.HTTP_400_BAD_REQUEST)
        case _:
            logger.error(
                f"Task request failed for user {user_id}: {exc}",
                exc_info=exc,
                extra={"error_type": "task_request_failed"},
            )
            await session.rollback()
            return error_response(
                "INTERNAL_ERROR", INTERNAL_ERROR_MESSAGE, status.HTTP_500_INTERNAL_SERVER_ERROR
            )


@router.get("")
@default_rate_limit
async def list_tasks(
    request: Request,
    priority: TaskPriority | None = Query(None),
    status_filter: str | None = Query(None, alias="status"),
    sort: TaskSort = Query(TaskSort.CREATED_AT_DESC),
    auth: AuthContext = Depends(require_auth),
    service: TaskService = Depends(get_task_service),
    session: AsyncSession = Depends(get_db_session),
) -> JSONResponse:
    """
    List the user's tasks.

    Query Parameters:
        priority: high | medium | low
        status: comma-separated statuses, e.g. "in_progress,in_review"
        sort: created_at_desc (default) | created_at_asc | priority_desc
    """
    try:
        tasks = await service.list_tasks(
            UUID(auth.user_id), priority=priority, status=status_filter, sort=sort
        )
    except Exception as e:
        return await task_error_response(e, auth.user_id, session)

    return success_response([TaskResponse.from_task(task).to_json() for task in tasks])


@router.post("")
@write_rate_limit
async def create_task(
    request: Request,
    body: CreateTaskRequest,
    auth: AuthContext = Depends(require_auth),
    service: TaskService = Depends(get_task_service),
    session: AsyncSession = Depends(get_db_session),
) -> JSONResponse:
    """Create a task with status not_started; returns 201."""
    try:
        task = await service.create_task(
            UUID(auth.user_id), body.title, body.description, body.priority
        )
    except Exception as e:
        return await task_error_response(e, auth.user_id, session)

    return success_response(TaskResponse.from_task(task).to_json(), status.HTTP_201_CREATED)


@router.get("/{task_id}")
@default_rate_limit
async def get_task(
    request: Request,
    task_id: UUID,
    auth: AuthContext = Depends(require_auth),
    service: TaskService = Depends(get_task_service),
    session: AsyncSession = Depends(get_db_session),
) -> JSONResponse:
    try:
        task = await service.get_task(UUID(auth.user_id), task_id)
    except Exception as e:
        return await task_error_response(e, auth.user_id, session)

    return success_response(TaskResponse.from_task(task).to_json())


@router.put("/{task_id}")
@write_rate_limit
async def update_task(
    request: Request,
    task_id: UUID,
    body: UpdateTaskRequest,
    auth: AuthContext = Depends(require_auth),
    service: TaskService = Depends(get_task_service),
    session: AsyncSession = Depends(get_db_session),
) -> JSONResponse:
    """Update title, description and/or priority; omitted fields are kept."""
    try:
        task = await service.update_task(UUID(auth.user_id), task_id, body.changes())
    except Exception as e:
        return await task_error_response(e, auth.user_id, session)

    return success_response(TaskResponse.from_task(task).to_json())


@router.patch("/{task_id}/status")
@write_rate_limit
async def change_task_status(
    request: Request,
    task_id: UUID,
    body: ChangeTaskStatusRequest,
    auth: AuthContext = Depends(require_auth),
    service: TaskService = Depends(get_task_service),
    session: AsyncSession = Depends(get_db_session),
) -> JSONResponse:
    try:
        task = await service.change_status(UUID(auth.user_id), task_id, body.status)
    except Exception as e:
        return await task_error_response(e, auth.user_id, session)

    return success_response(TaskResponse.from_task(task).to_json())


@router.delete("/{task_id}")
@write_rate_limit
async def delete_task(
    request: Request,
    task_id: UUID,
    auth: AuthContext = Depends(require_auth),
    service: TaskService = Depends(get_task_service),
    session: AsyncSession = Depends(get_db_session),
) -> Response:
    """Delete a task; returns 204 with no body."""
    try:
        await service.delete_task(UUID(auth.user_id), task_id)
    except Exception as e:
        return await task_error_response(e, auth.user_id, session)

    return Response(status_code=status.HTTP_204_NO_CONTENT)
