"""Analytics and monitoring sinks."""

from src.taskflow.services.analytics.posthog import PostHogService

__all__ = ["PostHogService"]
