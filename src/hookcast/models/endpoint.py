"""Endpoint models: registered webhook targets and their partial updates."""

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from .base import generate_id


class Endpoint(BaseModel):
    """A registered delivery target.

    Attributes:
        id: Unique identifier, immutable after creation.
        url: Destination URL receiving POSTed events.
        events: Event types this endpoint subscribes to.
        secret: Shared secret used to sign deliveries.
        active: Inactive endpoints receive no new deliveries.
        consecutive_failures: Terminal failures since the last success.
        created_at: When the endpoint was registered.
        updated_at: When the endpoint was last modified.
        last_used_at: When a delivery last succeeded.
    """

    model_config = ConfigDict(extra="forbid")

    id: str = Field(default_factory=lambda: generate_id("whk"))
    url: str = Field(description="Destination URL")
    events: set[str] = Field(description="Subscribed event types")
    secret: str = Field(description="Shared secret for HMAC-SHA256 signatures")
    active: bool = Field(default=True, description="Whether the endpoint receives events")
    consecutive_failures: int = Field(default=0, ge=0)
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    last_used_at: datetime | None = Field(default=None)

    @field_serializer("events")
    def _serialize_events(self, events: set[str]) -> list[str]:
        return sorted(events)

    def subscribes_to(self, event_type: str) -> bool:
        """Check if this endpoint is active and subscribed to the event type."""
        return self.active and event_type in self.events


class EndpointUpdate(BaseModel):
    """Partial update of an endpoint. Unset fields are left unchanged.

    Setting ``active=True`` resets the endpoint's failure counter.
    """

    model_config = ConfigDict(extra="forbid")

    url: str | None = None
    events: list[str] | None = None
    active: bool | None = None
    secret: str | None = Field(default=None, min_length=1)


__all__ = ["Endpoint", "EndpointUpdate"]
