"""Request checks for POST /auth/verify.

Each check returns a RequestCheckFailure or None; the handler stops at the
first failure and renders it in the legacy `{success, error}` shape.
"""

import json
from dataclasses import dataclass
from typing import Any, Callable

from fastapi import Request, status

ALLOWED_METHODS = ("POST",)
REQUIRED_CONTENT_TYPE = "application/json"
VERIFY_PATH = "/auth/verify"
MAX_TOKEN_LENGTH = 5000


@dataclass(frozen=True)
class RequestCheckFailure:
    message: str
    status_code: int = status.HTTP_400_BAD_REQUEST


def check_method(request: Request) -> RequestCheckFailure | None:
    if request.method not in ALLOWED_METHODS:
        return RequestCheckFailure("Method not allowed", status.HTTP_405_METHOD_NOT_ALLOWED)
    return None


def check_content_type(request: Request) -> RequestCheckFailure | None:
    # A missing header is accepted; the body is still parsed as JSON.
    content_type = request.headers.get("content-type")
    if content_type and REQUIRED_CONTENT_TYPE not in content_type:
        return RequestCheckFailure(
            f"Content-Type must be {REQUIRED_CONTENT_TYPE}",
            status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
        )
    return None


def check_path(request: Request) -> RequestCheckFailure | None:
    if not request.url.path.rstrip("/").endswith(VERIFY_PATH):
        return RequestCheckFailure("Endpoint not found", status.HTTP_404_NOT_FOUND)
    return None


HTTP_CHECKS: tuple[Callable[[Request], RequestCheckFailure | None], ...] = (
    check_method,
    check_content_type,
    check_path,
)


def validate_http_request(request: Request) -> RequestCheckFailure | None:
    for check in HTTP_CHECKS:
        failure = check(request)
        if failure is not None:
            return failure
    return None


def parse_json_body(raw: bytes) -> tuple[Any, RequestCheckFailure | None]:
    try:
        return json.loads(raw), None
    except (ValueError, UnicodeDecodeError):
        return None, RequestCheckFailure("Invalid JSON format")


def validate_token_field(body: Any) -> RequestCheckFailure | None:
    """Check presence, type, emptiness and length of `token`, in that order."""
    if not isinstance(body, dict) or "token" not in body:
        return RequestCheckFailure("Token is required")

    token = body["token"]
    if not isinstance(token, str):
        return RequestCheckFailure("Token must be a string")
    if token == "":
        return RequestCheckFailure("Token cannot be empty")
    if len(token) > MAX_TOKEN_LENGTH:
        return RequestCheckFailure("Token is too long")
    return None
