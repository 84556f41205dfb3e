"""Authentication module for JWT-based authentication.

The FastAPI dependencies live in `auth.middleware` and `auth.dependencies`
and are imported from there directly.
"""

from src.taskflow.auth.exceptions import AuthRejected, RejectReason, UnsupportedProviderError
from src.taskflow.auth.jwks import JWKSCache
from src.taskflow.auth.jwt_validator import JWTValidator
from src.taskflow.auth.models import AuthContext, ClaimsPayload, VerificationResult
from src.taskflow.auth.providers import AuthProvider, is_supported_provider

__all__ = [
    "AuthContext",
    "AuthProvider",
    "AuthRejected",
    "ClaimsPayload",
    "JWKSCache",
    "JWTValidator",
    "RejectReason",
    "UnsupportedProviderError",
    "VerificationResult",
    "is_supported_provider",
]
