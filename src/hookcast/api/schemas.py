"""Pydantic schemas for API request/response models."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class EndpointCreateRequest(BaseModel):
    """Request body for registering a webhook endpoint.

    Attributes:
        url: Destination URL.
        events: Event types to subscribe to.
        secret: Optional shared secret; generated when omitted.
    """

    model_config = ConfigDict(extra="forbid")

    url: str = Field(min_length=1, description="Destination URL")
    events: list[str] = Field(description="Event types to subscribe to")
    secret: str | None = Field(default=None, min_length=1, description="Shared signing secret")


class EndpointUpdateRequest(BaseModel):
    """Request body for a partial endpoint update."""

    model_config = ConfigDict(extra="forbid")

    url: str | None = None
    events: list[str] | None = None
    active: bool | None = None
    secret: str | None = Field(default=None, min_length=1)


class EndpointResponse(BaseModel):
    """Response model for a registered endpoint. The secret is never listed."""

    model_config = ConfigDict(extra="forbid")

    id: str
    url: str
    events: list[str]
    active: bool
    consecutive_failures: int
    created_at: str
    updated_at: str
    last_used_at: str | None = None


class EndpointCreatedResponse(EndpointResponse):
    """Response for a new endpoint, including its secret exactly once."""

    secret: str


class EndpointListResponse(BaseModel):
    """Response model for the endpoint list."""

    model_config = ConfigDict(extra="forbid")

    endpoints: list[EndpointResponse]
    count: int


class PublishRequest(BaseModel):
    """Request body for publishing an event.

    Attributes:
        event: Event type, e.g. "transaction.completed".
        data: Opaque payload delivered as the body's "data" field.
    """

    model_config = ConfigDict(extra="forbid")

    event: str = Field(min_length=1, description="Event type")
    data: Any = Field(default=None, description="Event payload")


class PublishResponse(BaseModel):
    """Response for a published event."""

    model_config = ConfigDict(extra="forbid")

    event: str
    task_ids: list[str]
    deliveries: int


class LedgerEntryResponse(BaseModel):
    """Response model for one delivery outcome."""

    model_config = ConfigDict(extra="forbid")

    id: str
    task_id: str
    endpoint_id: str
    url: str | None
    event: str
    data: Any = None
    status: Literal["sent", "failed"]
    attempts: int
    response_code: int | None = None
    error: str | None = None
    created_at: str
    recorded_at: str


class EventLogResponse(BaseModel):
    """Response model for the delivery log."""

    model_config = ConfigDict(extra="forbid")

    entries: list[LedgerEntryResponse]
    count: int


class StatsResponse(BaseModel):
    """Aggregate delivery statistics."""

    model_config = ConfigDict(extra="forbid")

    total_endpoints: int
    active_endpoints: int
    total_events: int
    successful_events: int
    failed_events: int


class HealthResponse(BaseModel):
    """Response for health check endpoint.

    Attributes:
        status: Service status (healthy, unhealthy).
        version: API version.
        running: Whether delivery workers are running.
    """

    model_config = ConfigDict(extra="forbid")

    status: Literal["healthy", "unhealthy"]
    version: str
    running: bool
