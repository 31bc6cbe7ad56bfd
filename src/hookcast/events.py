"""Predefined domain events published by the exchange application.

The event set is open: any non-empty string is a valid event type. The
constants and builders here cover the events the application emits today
and fix the shape of their payloads.
"""

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

USER_REGISTERED = "user.registered"
USER_SUSPENDED = "user.suspended"
KYC_STATUS_CHANGED = "kyc.status_changed"
TRANSACTION_COMPLETED = "transaction.completed"
TRANSACTION_FAILED = "transaction.failed"
EXCHANGE_RATE_UPDATED = "exchange_rate.updated"
TEST_WEBHOOK = "test.webhook"

DEFAULT_TEST_MESSAGE = "Test webhook from Hookcast"

# Event types offered when registering an endpoint
ALL_EVENT_TYPES: list[str] = [
    USER_REGISTERED,
    USER_SUSPENDED,
    KYC_STATUS_CHANGED,
    TRANSACTION_COMPLETED,
    TRANSACTION_FAILED,
    EXCHANGE_RATE_UPDATED,
    TEST_WEBHOOK,
]


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()


def _iso(value: datetime | str | None) -> str | None:
    if isinstance(value, datetime):
        return value.isoformat()
    return value


class Event(BaseModel):
    """A domain event ready to publish.

    Attributes:
        type: Event type, e.g. "transaction.completed".
        data: Event payload delivered as the body's ``data`` field.
    """

    model_config = ConfigDict(extra="forbid")

    type: str = Field(min_length=1)
    data: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def for_test_webhook(cls, message: str = DEFAULT_TEST_MESSAGE) -> "Event":
        """Create a test event used to check a receiver is wired up."""
        return cls(type=TEST_WEBHOOK, data={"message": message, "timestamp": _now_iso()})

    @classmethod
    def for_user_registered(
        cls,
        user_id: str,
        email: str,
        country: str | None = None,
        registered_at: datetime | str | None = None,
    ) -> "Event":
        """Create event for a new user account."""
        return cls(
            type=USER_REGISTERED,
            data={
                "userId": user_id,
                "email": email,
                "country": country,
                "registeredAt": _iso(registered_at) or _now_iso(),
            },
        )

    @classmethod
    def for_user_suspended(
        cls,
        user_id: str,
        reason: str,
        suspended_by: str | None = None,
    ) -> "Event":
        """Create event for a suspended user account."""
        return cls(
            type=USER_SUSPENDED,
            data={
                "userId": user_id,
                "reason": reason,
                "suspendedAt": _now_iso(),
                "suspendedBy": suspended_by,
            },
        )

    @classmethod
    def for_kyc_status_changed(
        cls,
        user_id: str,
        status: str,
        previous_status: str | None = None,
    ) -> "Event":
        """Create event for a KYC review decision."""
        return cls(
            type=KYC_STATUS_CHANGED,
            data={
                "userId": user_id,
                "status": status,
                "previousStatus": previous_status,
                "changedAt": _now_iso(),
            },
        )

    @classmethod
    def for_transaction_completed(
        cls,
        transaction_id: str,
        user_id: str,
        type: str,
        amount: float | str,
        currency: str,
        status: str = "completed",
        completed_at: datetime | str | None = None,
    ) -> "Event":
        """Create event for a completed transaction."""
        return cls(
            type=TRANSACTION_COMPLETED,
            data={
                "transactionId": transaction_id,
                "userId": user_id,
                "type": type,
                "amount": amount,
                "currency": currency,
                "status": status,
                "completedAt": _iso(completed_at) or _now_iso(),
            },
        )

    @classmethod
    def for_transaction_failed(
        cls,
        transaction_id: str,
        user_id: str,
        type: str,
        amount: float | str,
        currency: str,
        failure_reason: str,
    ) -> "Event":
        """Create event for a failed transaction."""
        return cls(
            type=TRANSACTION_FAILED,
            data={
                "transactionId": transaction_id,
                "userId": user_id,
                "type": type,
                "amount": amount,
                "currency": currency,
                "failureReason": failure_reason,
                "failedAt": _now_iso(),
            },
        )

    @classmethod
    def for_exchange_rate_updated(
        cls,
        from_currency: str,
        to_currency: str,
        rate: float | str,
        previous_rate: float | str | None = None,
    ) -> "Event":
        """Create event for a new exchange rate."""
        return cls(
            type=EXCHANGE_RATE_UPDATED,
            data={
                "fromCurrency": from_currency,
                "toCurrency": to_currency,
                "rate": rate,
                "previousRate": previous_rate,
                "updatedAt": _now_iso(),
            },
        )


__all__ = [
    "ALL_EVENT_TYPES",
    "DEFAULT_TEST_MESSAGE",
    "EXCHANGE_RATE_UPDATED",
    "KYC_STATUS_CHANGED",
    "TEST_WEBHOOK",
    "TRANSACTION_COMPLETED",
    "TRANSACTION_FAILED",
    "USER_REGISTERED",
    "USER_SUSPENDED",
    "Event",
]
