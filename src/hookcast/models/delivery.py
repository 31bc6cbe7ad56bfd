"""Delivery models: live tasks, archived ledger entries and statistics."""

from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from .base import generate_id

# Live task status
DeliveryStatus = Literal["pending", "sent", "failed", "retrying"]

# Archived outcome status
OutcomeStatus = Literal["sent", "failed"]


class DeliveryTask(BaseModel):
    """One event being delivered to one endpoint, across all its attempts.

    Attributes:
        id: Unique identifier, also sent as the X-Webhook-ID header.
        event_type: Type of the published event.
        payload: Opaque event data, never inspected.
        payload_text: The payload serialized once at publish time. This is
            the text that is signed and sent as the body's ``data``.
        endpoint_id: Target endpoint (not owned by the task).
        status: pending, sent, failed or retrying.
        attempts: HTTP attempts made so far.
        max_attempts: Attempt limit for this task.
        created_at: Publish time, sent as the body timestamp.
        next_retry_at: When the next attempt is due (retrying only).
        completed_at: When the task became terminal.
        last_error: Error from the most recent failed attempt.
        last_response_code: HTTP status from the most recent attempt.
    """

    model_config = ConfigDict(extra="forbid")

    id: str = Field(default_factory=lambda: generate_id("dlv"))
    event_type: str
    payload: Any = None
    payload_text: str | None = None
    endpoint_id: str
    status: DeliveryStatus = "pending"
    attempts: int = Field(default=0, ge=0)
    max_attempts: int = Field(default=3, ge=1)
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    next_retry_at: datetime | None = None
    completed_at: datetime | None = None
    last_error: str | None = None
    last_response_code: int | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in ("sent", "failed")

    @property
    def can_retry(self) -> bool:
        return self.attempts < self.max_attempts

    def mark_sent(self, response_code: int, now: datetime) -> "DeliveryTask":
        """Mark delivery as successful."""
        self.status = "sent"
        self.completed_at = now
        self.next_retry_at = None
        self.last_response_code = response_code
        self.last_error = None
        return self

    def mark_failed(
        self,
        error: str,
        now: datetime,
        response_code: int | None = None,
    ) -> "DeliveryTask":
        """Mark delivery as failed (no more retries)."""
        self.status = "failed"
        self.completed_at = now
        self.next_retry_at = None
        self.last_error = error
        if response_code is not None:
            self.last_response_code = response_code
        return self

    def mark_retrying(
        self,
        next_retry_at: datetime,
        error: str,
        response_code: int | None = None,
    ) -> "DeliveryTask":
        """Mark delivery for retry."""
        self.status = "retrying"
        self.next_retry_at = next_retry_at
        self.last_error = error
        self.last_response_code = response_code
        return self


class LedgerEntry(BaseModel):
    """Immutable record of a terminal delivery outcome."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    id: str = Field(default_factory=lambda: generate_id("log"))
    sequence: int = Field(default=0, ge=0, description="Position in the ledger")
    task_id: str
    endpoint_id: str
    url: str | None = Field(default=None, description="Target URL at delivery time")
    event_type: str
    payload: Any = None
    status: OutcomeStatus
    attempts: int = Field(ge=0)
    response_code: int | None = None
    error: str | None = None
    created_at: datetime
    recorded_at: datetime

    @classmethod
    def from_task(
        cls,
        task: DeliveryTask,
        url: str | None,
        recorded_at: datetime,
    ) -> "LedgerEntry":
        """Archive a terminal task."""
        if task.status not in ("sent", "failed"):
            raise ValueError(f"Cannot archive task {task.id} in status {task.status}")
        return cls(
            task_id=task.id,
            endpoint_id=task.endpoint_id,
            url=url,
            event_type=task.event_type,
            payload=task.payload,
            status=task.status,
            attempts=task.attempts,
            response_code=task.last_response_code,
            error=task.last_error,
            created_at=task.created_at,
            recorded_at=recorded_at,
        )


class DeliveryStats(BaseModel):
    """Aggregate counts surfaced to operators."""

    model_config = ConfigDict(extra="forbid")

    total_endpoints: int = 0
    active_endpoints: int = 0
    total_events: int = 0
    successful_events: int = 0
    failed_events: int = 0


__all__ = [
    "DeliveryStats",
    "DeliveryStatus",
    "DeliveryTask",
    "LedgerEntry",
    "OutcomeStatus",
]
