"""Async HTTP client for the taskflow API."""

import logging
from collections.abc import Awaitable, Callable
from typing import Any

import httpx

from src.taskflow.client.token_store import AuthTokenStore
from src.taskflow.config import settings

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """
    Non-2xx response from the API.

    `code` and `message` come from the `{success: false, error: ...}` body;
    /auth/verify returns the error as a plain string, which becomes `message`.
    """

    def __init__(self, status_code: int, message: str, code: str | None = None):
        super().__init__(f"{status_code} {code or ''} {message}".strip())
        self.status_code = status_code
        self.code = code
        self.message = message

    @classmethod
    def from_response(cls, response: httpx.Response) -> "ApiError":
        try:
            error = response.json().get("error")
        except ValueError:
            error = None

        if isinstance(error, dict):
            return cls(response.status_code, error.get("message", ""), error.get("code"))
        if isinstance(error, str):
            return cls(response.status_code, error)
        return cls(response.status_code, response.reason_phrase)

    @property
    def is_authentication_error(self) -> bool:
        return self.status_code == 401


class ApiClient:
    """
    Attaches the stored bearer token to every request.

    On a 401 the token is cleared and `on_unauthorized` (e.g. sign out and
    redirect to login) runs once for all requests failing concurrently.

    Example:
        >>> store = AuthTokenStore()
        >>> async with ApiClient("http://localhost:8000/api", store) as api:
        ...     store.set(session.access_token)
        ...     profile = await api.get_profile()
    """

    def __init__(
        self,
        base_url: str,
        token_store: AuthTokenStore,
        on_unauthorized: Callable[[], Awaitable[None]] | None = None,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
    ):
        self.token_store = token_store
        self.on_unauthorized = on_unauthorized
        self._http = http_client or httpx.AsyncClient(
            base_url=base_url.rstrip("/"), timeout=httpx.Timeout(timeout)
        )

    @classmethod
    def from_settings(
        cls,
        token_store: AuthTokenStore,
        on_unauthorized: Callable[[], Awaitable[None]] | None = None,
    ) -> "ApiClient":
        """Client for the API at `settings.api_base_url`."""
        return cls(settings.api_base_url, token_store, on_unauthorized=on_unauthorized)

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def close(self) -> None:
        await self._http.aclose()

    async def request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        headers = dict(kwargs.pop("headers", None) or {})
        token = self.token_store.get()
        if token:
            headers["Authorization"] = f"Bearer {token}"

        response = await self._http.request(method, path, headers=headers, **kwargs)

        if response.status_code == 401 and token:
            await self._handle_unauthorized()
        return response

    async def _handle_unauthorized(self) -> None:
        self.token_store.clear()
        if self.on_unauthorized is None:
            return

        logger.info("Received 401, running unauthorized handler")
        await self.token_store.unauthorized.do(self.on_unauthorized)

    async def _json(self, method: str, path: str, **kwargs: Any) -> Any:
        response = await self.request(method, path, **kwargs)
        if response.is_error:
            raise ApiError.from_response(response)
        if response.status_code == 204:
            return None
        return response.json()

    async def verify_token(self, access_token: str) -> dict[str, Any]:
        """
        Exchange the provider access token for the application user.

        Returns:
            `{"success": True, "user": {...}, "isNewUser": bool}`
        """
        return await self._json("POST", "/auth/verify", json={"token": access_token})

    async def get_profile(self) -> dict[str, Any]:
        return (await self._json("GET", "/user/profile"))["data"]

    async def list_tasks(
        self,
        priority: str | None = None,
        status: list[str] | None = None,
        sort: str | None = None,
    ) -> list[dict[str, Any]]:
        params: dict[str, str] = {}
        if priority:
            params["priority"] = priority
        if status:
            params["status"] = ",".join(status)
        if sort:
            params["sort"] = sort
        return (await self._json("GET", "/tasks", params=params))["data"]

    async def get_task(self, task_id: str) -> dict[str, Any]:
        return (await self._json("GET", f"/tasks/{task_id}"))["data"]

    async def create_task(
        self, title: str, description: str | None = None, priority: str | None = None
    ) -> dict[str, Any]:
        body: dict[str, Any] = {"title": title}
        if description is not None:
            body["description"] = description
        if priority is not None:
            body["priority"] = priority
        return (await self._json("POST", "/tasks", json=body))["data"]

    async def update_task(self, task_id: str, **changes: Any) -> dict[str, Any]:
        return (await self._json("PUT", f"/tasks/{task_id}", json=changes))["data"]

    async def change_task_status(self, task_id: str, status: str) -> dict[str, Any]:
        return (await self._json("PATCH", f"/tasks/{task_id}/status", json={"status": status}))[
            "data"
        ]

    async def delete_task(self, task_id: str) -> None:
        await self._json("DELETE", f"/tasks/{task_id}")
