"""Endpoint health tracking."""

from __future__ import annotations

from datetime import datetime

from hookcast.models import Endpoint

DEFAULT_FAILURE_THRESHOLD = 10


class HealthTracker:
    """Applies delivery outcomes to an endpoint's failure counter.

    Deactivation when the threshold is reached is the only automatic state
    change; nothing here ever reactivates an endpoint.
    """

    def __init__(self, failure_threshold: int = DEFAULT_FAILURE_THRESHOLD) -> None:
        if failure_threshold < 1:
            raise ValueError("failure_threshold must be at least 1")
        self.failure_threshold = failure_threshold

    def on_success(self, endpoint: Endpoint, now: datetime) -> None:
        endpoint.consecutive_failures = 0
        endpoint.last_used_at = now

    def on_failure(self, endpoint: Endpoint) -> bool:
        """Count a failed delivery.

        Returns:
            True if this failure deactivated the endpoint.
        """
        endpoint.consecutive_failures += 1
        if endpoint.active and endpoint.consecutive_failures >= self.failure_threshold:
            endpoint.active = False
            return True
        return False
