"""API helper functions converting models to response objects."""

from __future__ import annotations

from typing import TYPE_CHECKING

from .schemas import EndpointCreatedResponse, EndpointResponse, LedgerEntryResponse

if TYPE_CHECKING:
    from hookcast.models import Endpoint, LedgerEntry


def endpoint_to_response(endpoint: Endpoint) -> EndpointResponse:
    """Convert an Endpoint to an EndpointResponse (without its secret)."""
    return EndpointResponse(
        id=endpoint.id,
        url=endpoint.url,
        events=sorted(endpoint.events),
        active=endpoint.active,
        consecutive_failures=endpoint.consecutive_failures,
        created_at=endpoint.created_at.isoformat(),
        updated_at=endpoint.updated_at.isoformat(),
        last_used_at=endpoint.last_used_at.isoformat() if endpoint.last_used_at else None,
    )


def endpoint_to_created_response(endpoint: Endpoint) -> EndpointCreatedResponse:
    """Convert a newly registered Endpoint, including its secret."""
    return EndpointCreatedResponse(
        **endpoint_to_response(endpoint).model_dump(),
        secret=endpoint.secret,
    )


def entry_to_response(entry: LedgerEntry) -> LedgerEntryResponse:
    """Convert a LedgerEntry to a LedgerEntryResponse."""
    return LedgerEntryResponse(
        id=entry.id,
        task_id=entry.task_id,
        endpoint_id=entry.endpoint_id,
        url=entry.url,
        event=entry.event_type,
        data=entry.payload,
        status=entry.status,
        attempts=entry.attempts,
        response_code=entry.response_code,
        error=entry.error,
        created_at=entry.created_at.isoformat(),
        recorded_at=entry.recorded_at.isoformat(),
    )
