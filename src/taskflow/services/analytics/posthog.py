"""PostHog analytics service used as the monitoring sink for auth events."""

import posthog

from src.taskflow.config import settings

ANONYMOUS_ID = "anonymous"


class PostHogService:
    """
    Service for tracking authentication events via PostHog.

    Calls are no-ops when no API key is configured, so local development and
    tests never reach the network.
    """

    def __init__(self) -> None:
        if settings.posthog_api_key:
            posthog.api_key = settings.posthog_api_key
            posthog.host = settings.posthog_host

    @property
    def enabled(self) -> bool:
        return bool(settings.posthog_api_key)

    def capture(self, distinct_id: str, event: str, properties: dict | None = None) -> None:
        """
        Track an event.

        Args:
            distinct_id: Internal user ID, or "anonymous" before resolution
            event: Event name (e.g., "user_authenticated", "authentication_failed")
            properties: Optional event properties

        Example:
            >>> service = PostHogService()
            >>> service.capture("anonymous", "authentication_failed", {"reason": "jwt_invalid"})
        """
        if not self.enabled:
            return

        posthog.capture(distinct_id=distinct_id, event=event, properties=properties or {})

    def auth_failed(self, reason: str, distinct_id: str = ANONYMOUS_ID, **properties) -> None:
        self.capture(distinct_id, "authentication_failed", {"reason": reason, **properties})

    def auth_succeeded(self, user_id: str, provider: str | None = None) -> None:
        self.capture(user_id, "user_authenticated", {"provider": provider})

    def shutdown(self) -> None:
        """Flush queued events; called during application shutdown."""
        if self.enabled:
            posthog.shutdown()
