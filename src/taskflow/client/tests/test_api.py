"""Tests for the async API client."""

import asyncio
import json

import httpx
import pytest

from src.taskflow.client.api import ApiClient, ApiError
from src.taskflow.client.token_store import AuthTokenStore

BASE_URL = "http://testserver/api"


def make_api(handler, token_store: AuthTokenStore, on_unauthorized=None) -> ApiClient:
    http = httpx.AsyncClient(base_url=BASE_URL, transport=httpx.MockTransport(handler))
    return ApiClient(BASE_URL, token_store, on_unauthorized=on_unauthorized, http_client=http)


class TestApiError:
    def test_uniform_error_shape(self):
        response = httpx.Response(
            404, json={"success": False, "error": {"code": "NOT_FOUND", "message": "missing"}}
        )

        error = ApiError.from_response(response)

        assert error.status_code == 404
        assert error.code == "NOT_FOUND"
        assert error.message == "missing"

    def test_legacy_error_shape(self):
        response = httpx.Response(401, json={"success": False, "error": "認証トークンが無効です"})

        error = ApiError.from_response(response)

        assert error.is_authentication_error
        assert error.code is None
        assert error.message == "認証トークンが無効です"

    def test_non_json_body(self):
        error = ApiError.from_response(httpx.Response(502, text="Bad Gateway"))

        assert error.status_code == 502


@pytest.mark.asyncio
class TestApiClient:
    """Tests for ApiClient."""

    async def test_bearer_token_attached(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["authorization"] = request.headers.get("Authorization")
            seen["path"] = request.url.path
            return httpx.Response(200, json={"success": True, "data": {"id": "u1"}})

        async with make_api(handler, AuthTokenStore("a.b.c")) as api:
            profile = await api.get_profile()

        assert profile == {"id": "u1"}
        assert seen == {"authorization": "Bearer a.b.c", "path": "/api/user/profile"}

    async def test_no_token_no_header(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["authorization"] = request.headers.get("Authorization")
            return httpx.Response(200, json={"success": True, "data": []})

        async with make_api(handler, AuthTokenStore()) as api:
            await api.list_tasks()

        assert seen["authorization"] is None

    async def test_concurrent_401s_run_handler_once(self):
        """Test that a burst of 401 responses signs the user out once."""
        # Arrange
        store = AuthTokenStore("expired.jwt.token")
        calls = 0

        async def on_unauthorized() -> None:
            nonlocal calls
            calls += 1
            await asyncio.sleep(0.05)

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                401,
                json={"success": False, "error": {"code": "AUTHENTICATION_REQUIRED", "message": ""}},
            )

        # Act
        async with make_api(handler, store, on_unauthorized) as api:
            results = await asyncio.gather(
                api.get_profile(), api.list_tasks(), api.get_task("t1"), return_exceptions=True
            )

        # Assert
        assert calls == 1
        assert not store.has_token
        assert all(isinstance(r, ApiError) and r.is_authentication_error for r in results)

    async def test_401_without_token_does_not_run_handler(self):
        calls = 0

        async def on_unauthorized() -> None:
            nonlocal calls
            calls += 1

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(401, json={"success": False, "error": "Token is required"})

        async with make_api(handler, AuthTokenStore(), on_unauthorized) as api:
            with pytest.raises(ApiError):
                await api.get_profile()

        assert calls == 0

    async def test_verify_token_sends_token_body(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["method"] = request.method
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"success": True, "user": {}, "isNewUser": True})

        async with make_api(handler, AuthTokenStore()) as api:
            result = await api.verify_token("a.b.c")

        assert result["isNewUser"] is True
        assert seen == {"method": "POST", "body": {"token": "a.b.c"}}

    async def test_list_tasks_query_parameters(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["params"] = dict(request.url.params)
            return httpx.Response(200, json={"success": True, "data": []})

        async with make_api(handler, AuthTokenStore("a.b.c")) as api:
            await api.list_tasks(priority="high", status=["in_progress", "in_review"])

        assert seen["params"] == {"priority": "high", "status": "in_progress,in_review"}

    async def test_delete_task_returns_none_on_204(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(204)

        async with make_api(handler, AuthTokenStore("a.b.c")) as api:
            assert await api.delete_task("t1") is None
