"""Python client for the taskflow API and provider sign-in."""

from src.taskflow.client.api import ApiClient, ApiError
from src.taskflow.client.token_store import AuthTokenStore, SingleFlight

__all__ = ["ApiClient", "ApiError", "AuthTokenStore", "SingleFlight"]
