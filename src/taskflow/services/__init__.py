"""Infrastructure services: database, analytics and rate limiting."""

from src.taskflow.services.analytics import PostHogService

__all__ = ["PostHogService"]
