"""Hookcast exception hierarchy.

Management operations raise these synchronously. Delivery failures never
reach the publisher: DeliveryError is raised and handled inside the worker
and only shows up as a failed ledger entry.
"""

from __future__ import annotations


class HookcastError(Exception):
    """Base exception for all Hookcast errors.

    Attributes:
        message: Human-readable error description.
        code: Machine-readable error code for API responses.
    """

    code: str = "hookcast_error"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def details(self) -> dict[str, object]:
        """Extra fields included in the API error body."""
        return {}

    def to_dict(self) -> dict[str, object]:
        """Convert exception to API-friendly dictionary."""
        return {"error": {"code": self.code, **self.details(), "message": self.message}}


class ValidationError(HookcastError):
    """Invalid input to a management operation. Never retried.

    Attributes:
        field: The field that failed validation.
    """

    code: str = "validation_error"

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        super().__init__(f"{field}: {message}")

    def details(self) -> dict[str, object]:
        return {"field": self.field}


class InvalidURLError(ValidationError):
    """Endpoint URL is not a well-formed http(s) URL."""

    code: str = "invalid_url"

    def __init__(self, url: str) -> None:
        self.url = url
        super().__init__("url", f"not a valid http(s) URL: {url!r}")


class EmptyEventSetError(ValidationError):
    """Endpoint must subscribe to at least one event type."""

    code: str = "empty_event_set"

    def __init__(self) -> None:
        super().__init__("events", "at least one event type is required")


class NotFoundError(HookcastError):
    """No resource with the given id.

    Attributes:
        resource_type: Kind of resource, e.g. "endpoint".
        resource_id: The id that was looked up.
    """

    code: str = "not_found"

    def __init__(self, resource_type: str, resource_id: str) -> None:
        self.resource_type = resource_type
        self.resource_id = resource_id
        super().__init__(f"{resource_type} not found: {resource_id}")

    def details(self) -> dict[str, object]:
        return {"resource_type": self.resource_type, "resource_id": self.resource_id}


class ConfigurationError(HookcastError):
    """Invalid settings, or a registration that conflicts with them.

    Raised for duplicate endpoint URLs unless duplicates are allowed.
    """

    code: str = "configuration_error"


class DeliveryError(HookcastError):
    """One delivery attempt failed.

    Covers non-2xx responses, timeouts and transport errors. Every kind is
    retried until the task runs out of attempts.

    Attributes:
        status_code: HTTP status if a response was received.
    """

    code: str = "delivery_error"

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)

    def details(self) -> dict[str, object]:
        return {"status_code": self.status_code}


class StorageError(HookcastError):
    """The endpoint registry or delivery ledger could not be persisted."""

    code: str = "storage_error"
