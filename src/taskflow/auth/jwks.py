"""JWKS (JSON Web Key Set) fetching and caching for JWT verification."""

import asyncio
import logging
from datetime import datetime, timezone

import httpx
from jose import jwk
from jose.backends.base import Key
from jose.exceptions import JOSEError

from src.taskflow.auth.exceptions import SigningKeyNotFoundError

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class JWKSCache:
    """
    Process-wide cache of the identity provider's signing keys.

    Keys are fetched lazily and kept for `cache_ttl` seconds. A token that
    names an unknown key ID triggers one refresh (key rotation); repeated
    unknown IDs inside `refresh_cooldown` seconds reuse the last fetch, so
    clients guessing key IDs cannot turn verification into a stream of JWKS requests.
    Concurrent refreshes are serialized by a lock.

    Attributes:
        jwks_url: URL to fetch JWKS from (typically /.well-known/jwks.json)
        cache_ttl: Cache time-to-live in seconds
        refresh_cooldown: Minimum seconds between unknown-kid refreshes
        _keys: Cached keys by kid (RSA or EC)
        _last_refresh: Timestamp of last successful fetch

    Example:
        >>> cache = JWKSCache("https://project.supabase.co/auth/v1/.well-known/jwks.json")
        >>> key = await cache.get_signing_key("key-id-123")
    """

    def __init__(
        self,
        jwks_url: str,
        cache_ttl: int = 600,
        timeout: float = 5.0,
        refresh_cooldown: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.jwks_url = jwks_url
        self.cache_ttl = cache_ttl
        self.refresh_cooldown = refresh_cooldown
        self._keys: dict[str, Key] = {}
        self._last_refresh: datetime | None = None
        self._lock = asyncio.Lock()
        self._http_client = http_client or httpx.AsyncClient(timeout=httpx.Timeout(timeout))

    async def get_signing_key(self, kid: str) -> Key:
        """
        Get signing key by key ID (kid).

        Refreshes the key set when the cache has expired, and once more when
        the kid is unknown (outside the cooldown window).

        Raises:
            SigningKeyNotFoundError: If the kid is still unknown after refresh
            httpx.HTTPError: If the JWKS fetch fails, times out or returns a bad body
        """
        if self._needs_refresh():
            await self._refresh_if_stale()

        key = self._keys.get(kid)
        if key is None and self._may_refresh_for_unknown_kid():
            logger.warning(
                f"Key ID '{kid}' not found in cache, refreshing JWKS",
                extra={"kid": kid, "cached_kids": list(self._keys.keys())},
            )
            await self.refresh_keys()
            key = self._keys.get(kid)

        if key is None:
            raise SigningKeyNotFoundError(kid, list(self._keys.keys()))

        return key

    async def _refresh_if_stale(self) -> None:
        async with self._lock:
            # Another request may have refreshed while we waited.
            if self._needs_refresh():
                await self._fetch()

    async def refresh_keys(self) -> None:
        """Fetch JWKS and replace the cached key set."""
        async with self._lock:
            await self._fetch()

    async def _fetch(self) -> None:
        try:
            logger.info(f"Fetching JWKS from {self.jwks_url}")
            response = await self._http_client.get(self.jwks_url)
            response.raise_for_status()
            keys_list = self._parse_keys(response)
        except httpx.HTTPError as e:
            logger.error(
                f"Failed to fetch JWKS from {self.jwks_url}: {e}",
                extra={"error_type": "jwks_fetch_failed"},
            )
            raise

        if not keys_list:
            logger.warning(
                "JWKS response contains no keys; token verification will fail "
                "until the provider publishes signing keys",
                extra={"jwks_url": self.jwks_url},
            )

        new_keys: dict[str, Key] = {}
        for key_data in keys_list:
            if not isinstance(key_data, dict) or not key_data.get("kid"):
                logger.warning("JWKS key missing 'kid', skipping")
                continue

            kid = key_data["kid"]
            kty = key_data.get("kty")
            if kty == "EC":
                algorithm = "ES256"
            elif kty == "RSA":
                algorithm = "RS256"
            else:
                algorithm = key_data.get("alg", "RS256")

            try:
                new_keys[kid] = jwk.construct(key_data, algorithm=algorithm)
            except JOSEError as e:
                logger.warning(
                    f"Unusable JWKS key '{kid}', skipping: {e}",
                    extra={"kid": kid, "kty": kty},
                )

        self._keys = new_keys
        self._last_refresh = _utcnow()

        logger.info(
            "JWKS cache refreshed",
            extra={"key_count": len(new_keys), "key_ids": list(new_keys.keys())},
        )

    @staticmethod
    def _parse_keys(response: httpx.Response) -> list:
        """
        Extract the `keys` array from a JWKS response.

        Raises:
            httpx.DecodingError: If the body is not a JSON object with a keys list
        """
        try:
            body = response.json()
        except ValueError as e:
            raise httpx.DecodingError(f"JWKS response is not JSON: {e}") from e

        keys_list = body.get("keys", []) if isinstance(body, dict) else None
        if not isinstance(keys_list, list):
            raise httpx.DecodingError("JWKS response has no 'keys' list")
        return keys_list

    def _needs_refresh(self) -> bool:
        if self._last_refresh is None:
            return True

        age = (_utcnow() - self._last_refresh).total_seconds()
        return age >= self.cache_ttl

    def _may_refresh_for_unknown_kid(self) -> bool:
        if self._last_refresh is None:
            return True

        age = (_utcnow() - self._last_refresh).total_seconds()
        return age >= self.refresh_cooldown

    async def close(self) -> None:
        """Close the HTTP client; called during application shutdown."""
        await self._http_client.aclose()
        logger.info("JWKS cache closed")
