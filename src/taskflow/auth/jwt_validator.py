"""Local JWT verification using JWKS or a shared secret."""

import logging
from typing import Any

import httpx
from jose import ExpiredSignatureError, JWTError, jwt
from jose.exceptions import JOSEError, JWTClaimsError
from pydantic import ValidationError as PydanticValidationError

from src.taskflow.auth.exceptions import SigningKeyNotFoundError
from src.taskflow.auth.jwks import JWKSCache
from src.taskflow.auth.models import ClaimsPayload, VerificationResult

logger = logging.getLogger(__name__)

TOKEN_REQUIRED = "Token is required"
INVALID_TOKEN_FORMAT = "Invalid token format"
INVALID_SIGNATURE = "Invalid signature"
INVALID_CLAIMS = "Invalid token claims"
TOKEN_EXPIRED = "Token expired"
JWKS_FETCH_FAILED = "Failed to fetch JWKS"

REQUIRED_CLAIMS = ("sub", "email")


def missing_field(field: str) -> str:
    return f"Missing required field: {field}"


class JWTValidator:
    """
    Verifies bearer tokens and extracts a standardized claims payload.

    Two key sources are supported: the provider's JWKS (RS256/ES256, keys
    cached in a shared JWKSCache) or a shared secret (HS256). Verification
    never raises; every failure is returned as `VerificationResult(valid=False)`.

    Checks run in order: segment count, header, signing key, signature and
    expiry (with `leeway` seconds of clock skew), required claims.

    Example:
        >>> validator = JWTValidator(jwks_cache=cache, issuer="https://project.supabase.co/auth/v1")
        >>> result = await validator.verify_token(token)
        >>> if result.valid:
        ...     print(result.payload.subject)
    """

    def __init__(
        self,
        jwks_cache: JWKSCache | None = None,
        issuer: str | None = None,
        audience: str | None = "authenticated",
        leeway: int = 30,
        secret: str | None = None,
    ):
        if jwks_cache is None and not secret:
            raise ValueError("JWTValidator requires a JWKS cache or a shared secret")

        self.jwks_cache = jwks_cache
        self.issuer = issuer
        self.audience = audience
        self.leeway = leeway
        self.secret = secret

    @property
    def algorithms(self) -> list[str]:
        return ["HS256"] if self.secret else ["RS256", "ES256"]

    async def verify_token(self, token: str) -> VerificationResult:
        """
        Verify a JWT (without the "Bearer " prefix).

        Returns:
            VerificationResult with the parsed ClaimsPayload on success,
            or the failure reason in `error`
        """
        if not token or not token.strip():
            return VerificationResult.failure(TOKEN_REQUIRED)

        if len(token.split(".")) != 3:
            return VerificationResult.failure(INVALID_TOKEN_FORMAT)

        try:
            header = jwt.get_unverified_header(token)
        except JWTError:
            return VerificationResult.failure(INVALID_TOKEN_FORMAT)

        try:
            key = await self._resolve_key(header)
        except SigningKeyNotFoundError as e:
            self._log_failure("unknown_kid", e)
            return VerificationResult.failure(INVALID_SIGNATURE)
        except httpx.HTTPError as e:
            # Timeouts land here too and are treated as a failed verification.
            self._log_failure("jwks_fetch_failed", e)
            return VerificationResult.failure(JWKS_FETCH_FAILED)
        except JWTError as e:
            self._log_failure("invalid_header", e)
            return VerificationResult.failure(INVALID_TOKEN_FORMAT)
        except JOSEError as e:
            # Key material the backend cannot load.
            self._log_failure("jwks_key_unusable", e)
            return VerificationResult.failure(JWKS_FETCH_FAILED)

        try:
            claims = jwt.decode(
                token,
                key,
                algorithms=self.algorithms,
                audience=self.audience,
                issuer=self.issuer,
                options={
                    "verify_signature": True,
                    "verify_exp": True,
                    "verify_nbf": True,
                    "verify_iat": True,
                    "verify_aud": self.audience is not None,
                    "verify_iss": self.issuer is not None,
                    "require_exp": True,
                    "leeway": self.leeway,
                },
            )
        except ExpiredSignatureError as e:
            self._log_failure("token_expired", e)
            return VerificationResult.failure(TOKEN_EXPIRED)
        except JWTClaimsError as e:
            self._log_failure("invalid_claims", e)
            return VerificationResult.failure(INVALID_CLAIMS)
        except JOSEError as e:
            self._log_failure("invalid_signature", e)
            return VerificationResult.failure(INVALID_SIGNATURE)

        for field in REQUIRED_CLAIMS:
            if not claims.get(field):
                self._log_failure("missing_claim", field)
                return VerificationResult.failure(missing_field(field))

        try:
            payload = ClaimsPayload.model_validate(claims)
        except PydanticValidationError as e:
            self._log_failure("malformed_claims", e)
            return VerificationResult.failure(INVALID_CLAIMS)

        logger.debug(
            "JWT verified successfully",
            extra={"subject": payload.subject, "kid": header.get("kid"), "exp": payload.expires_at},
        )
        return VerificationResult(valid=True, payload=payload)

    async def _resolve_key(self, header: dict[str, Any]) -> Any:
        if self.secret:
            return self.secret

        kid = header.get("kid")
        if not kid:
            raise JWTError("JWT header missing 'kid' (key ID)")

        return await self.jwks_cache.get_signing_key(kid)

    def _log_failure(self, reason: str, error: object) -> None:
        logger.warning(
            f"JWT verification failed: {error}",
            extra={
                "error_type": "jwt_verification_failed",
                "reason": reason,
                "issuer": self.issuer,
                "audience": self.audience,
            },
        )
