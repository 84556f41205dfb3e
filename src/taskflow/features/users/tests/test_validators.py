"""Tests for /auth/verify request checks."""

import pytest
from starlette.requests import Request

from src.taskflow.features.users.validators import (
    MAX_TOKEN_LENGTH,
    check_content_type,
    check_method,
    check_path,
    parse_json_body,
    validate_http_request,
    validate_token_field,
)


def make_request(
    method: str = "POST",
    path: str = "/api/auth/verify",
    content_type: str | None = "application/json",
) -> Request:
    headers = [(b"content-type", content_type.encode())] if content_type else []
    return Request(
        {
            "type": "http",
            "method": method,
            "path": path,
            "headers": headers,
            "query_string": b"",
            "scheme": "http",
            "server": ("testserver", 80),
        }
    )


class TestHttpChecks:
    def test_valid_request_passes(self):
        assert validate_http_request(make_request()) is None

    @pytest.mark.parametrize("method", ["GET", "PUT", "PATCH", "DELETE"])
    def test_non_post_is_405(self, method):
        failure = check_method(make_request(method=method))

        assert failure.status_code == 405
        assert failure.message == "Method not allowed"

    def test_other_content_type_is_415(self):
        failure = check_content_type(make_request(content_type="text/plain"))

        assert failure.status_code == 415

    def test_json_with_charset_passes(self):
        assert check_content_type(make_request(content_type="application/json; charset=utf-8")) is None

    def test_missing_content_type_passes(self):
        assert check_content_type(make_request(content_type=None)) is None

    def test_other_path_is_404(self):
        failure = check_path(make_request(path="/api/auth/other"))

        assert failure.status_code == 404
        assert failure.message == "Endpoint not found"

    def test_method_checked_before_content_type(self):
        failure = validate_http_request(make_request(method="GET", content_type="text/plain"))

        assert failure.status_code == 405


class TestParseJsonBody:
    def test_valid_json(self):
        body, failure = parse_json_body(b'{"token": "a.b.c"}')

        assert failure is None
        assert body == {"token": "a.b.c"}

    @pytest.mark.parametrize("raw", [b"", b"{bad", b"\xff\xfe"])
    def test_invalid_json(self, raw):
        body, failure = parse_json_body(raw)

        assert body is None
        assert failure.message == "Invalid JSON format"
        assert failure.status_code == 400


class TestValidateTokenField:
    @pytest.mark.parametrize(
        "body,message",
        [
            ({}, "Token is required"),
            ([], "Token is required"),
            ("token", "Token is required"),
            ({"token": None}, "Token must be a string"),
            ({"token": 42}, "Token must be a string"),
            ({"token": ""}, "Token cannot be empty"),
            ({"token": "x" * (MAX_TOKEN_LENGTH + 1)}, "Token is too long"),
        ],
    )
    def test_rejects(self, body, message):
        failure = validate_token_field(body)

        assert failure.message == message
        assert failure.status_code == 400

    def test_accepts_string_token(self):
        assert validate_token_field({"token": "a.b.c"}) is None
