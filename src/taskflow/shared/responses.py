"""JSON response helpers for the uniform error shape."""

from typing import Any

from fastapi import status
from fastapi.responses import JSONResponse

from src.taskflow.shared.errors import ErrorKind, Failure


def status_for_kind(kind: ErrorKind) -> int:
    match kind:
        case ErrorKind.VALIDATION:
            return status.HTTP_400_BAD_REQUEST
        case ErrorKind.AUTH:
            return status.HTTP_401_UNAUTHORIZED
        case ErrorKind.NOT_FOUND:
            return status.HTTP_404_NOT_FOUND
        case ErrorKind.INFRASTRUCTURE:
            return status.HTTP_500_INTERNAL_SERVER_ERROR


def error_body(code: str, message: str) -> dict[str, Any]:
    """Build `{success: false, error: {code, message}}`."""
    return {"success": False, "error": {"code": code, "message": message}}


def error_response(
    code: str,
    message: str,
    status_code: int,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code, content=error_body(code, message), headers=headers
    )


def failure_response(failure: Failure) -> JSONResponse:
    """Render a tagged failure with the status code for its kind."""
    return error_response(failure.code, failure.message, status_for_kind(failure.kind))


def legacy_error_response(message: str, status_code: int) -> JSONResponse:
    """Render `{success: false, error: "<message>"}` used by /auth/verify."""
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


def success_response(data: Any, status_code: int = status.HTTP_200_OK) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": True, "data": data})
