"""Client-side bearer token state."""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Generic, TypeVar

T = TypeVar("T")


class SingleFlight(Generic[T]):
    """
    Collapses concurrent calls into one execution.

    Callers that arrive while a call is in flight await the same result;
    the next call after it finishes starts a fresh execution.

    Example:
        >>> flight = SingleFlight()
        >>> await asyncio.gather(flight.do(redirect_to_login), flight.do(redirect_to_login))
        # redirect_to_login ran once
    """

    def __init__(self) -> None:
        self._inflight: asyncio.Future[T] | None = None

    @property
    def in_flight(self) -> bool:
        return self._inflight is not None

    async def do(self, fn: Callable[[], Awaitable[T]]) -> T:
        if self._inflight is None:
            self._inflight = asyncio.ensure_future(self._execute(fn))
        # A cancelled waiter must not cancel the shared call.
        return await asyncio.shield(self._inflight)

    async def _execute(self, fn: Callable[[], Awaitable[T]]) -> T:
        try:
            return await fn()
        finally:
            self._inflight = None


class AuthTokenStore:
    """
    Holds the current access token for one client session.

    Passed to ApiClient explicitly; `clear()` is called on logout and on 401
    responses. `unauthorized` guards the 401 side effect so that a burst of
    failing requests triggers it once.
    """

    def __init__(self, token: str | None = None) -> None:
        self._token = token
        self.unauthorized: SingleFlight[None] = SingleFlight()

    def get(self) -> str | None:
        return self._token

    def set(self, token: str | None) -> None:
        self._token = token or None

    def clear(self) -> None:
        self._token = None

    @property
    def has_token(self) -> bool:
        return self._token is not None
