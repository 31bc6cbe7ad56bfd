"""FastAPI router for the webhook management API."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Query, Request, status

from hookcast import __version__
from hookcast.events import TEST_WEBHOOK
from hookcast.exceptions import NotFoundError
from hookcast.models import EndpointUpdate
from hookcast.service import WebhookService

from .helpers import endpoint_to_created_response, endpoint_to_response, entry_to_response
from .schemas import (
    EndpointCreatedResponse,
    EndpointCreateRequest,
    EndpointListResponse,
    EndpointResponse,
    EndpointUpdateRequest,
    EventLogResponse,
    HealthResponse,
    PublishRequest,
    PublishResponse,
    StatsResponse,
)

router = APIRouter()


def set_service(app: FastAPI, service: WebhookService | None) -> None:
    """Attach the service instance to ``app`` (set by app lifespan)."""
    app.state.service = service


def _current_service(request: Request) -> WebhookService | None:
    return getattr(request.app.state, "service", None)


async def get_service(request: Request) -> WebhookService:
    """Dependency to get the WebhookService of the serving app."""
    service = _current_service(request)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service not initialized",
        )
    return service


ServiceDep = Annotated[WebhookService, Depends(get_service)]


@router.get("/health", response_model=HealthResponse, tags=["system"])
async def health_check(request: Request) -> HealthResponse:
    """Check service health.

    Healthy once the service exists and its delivery workers are running.
    """
    service = _current_service(request)
    running = service is not None and service.is_running
    return HealthResponse(
        status="healthy" if running else "unhealthy",
        version=__version__,
        running=running,
    )


@router.post(
    "/webhooks/endpoints",
    response_model=EndpointCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["endpoints"],
)
async def create_endpoint(
    request: EndpointCreateRequest,
    service: ServiceDep,
) -> EndpointCreatedResponse:
    """Register a webhook endpoint.

    The response is the only place the endpoint's secret is returned;
    receivers need it to verify X-Webhook-Signature.
    """
    endpoint = await service.add_endpoint(request.url, request.events, request.secret)
    return endpoint_to_created_response(endpoint)


@router.get("/webhooks/endpoints", response_model=EndpointListResponse, tags=["endpoints"])
async def list_endpoints(service: ServiceDep) -> EndpointListResponse:
    """List registered endpoints."""
    endpoints = [endpoint_to_response(e) for e in service.list_endpoints()]
    return EndpointListResponse(endpoints=endpoints, count=len(endpoints))


@router.get(
    "/webhooks/endpoints/{endpoint_id}",
    response_model=EndpointResponse,
    tags=["endpoints"],
)
async def get_endpoint(endpoint_id: str, service: ServiceDep) -> EndpointResponse:
    """Get a single endpoint."""
    endpoint = service.get_endpoint(endpoint_id)
    if endpoint is None:
        raise NotFoundError("endpoint", endpoint_id)
    return endpoint_to_response(endpoint)


@router.patch(
    "/webhooks/endpoints/{endpoint_id}",
    response_model=EndpointResponse,
    tags=["endpoints"],
)
async def update_endpoint(
    endpoint_id: str,
    request: EndpointUpdateRequest,
    service: ServiceDep,
) -> EndpointResponse:
    """Partially update an endpoint.

    Setting ``active`` to true reactivates an endpoint disabled after
    repeated failures and resets its failure counter.
    """
    patch = EndpointUpdate(**request.model_dump(exclude_unset=True))
    endpoint = await service.update_endpoint(endpoint_id, patch)
    return endpoint_to_response(endpoint)


@router.delete(
    "/webhooks/endpoints/{endpoint_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    tags=["endpoints"],
)
async def delete_endpoint(endpoint_id: str, service: ServiceDep) -> None:
    """Remove an endpoint. Retries still scheduled for it are cancelled."""
    await service.remove_endpoint(endpoint_id)


@router.post(
    "/webhooks/endpoints/{endpoint_id}/test",
    response_model=PublishResponse,
    status_code=status.HTTP_202_ACCEPTED,
    tags=["endpoints"],
)
async def send_test_delivery(endpoint_id: str, service: ServiceDep) -> PublishResponse:
    """Send a test.webhook event to this endpoint only.

    The endpoint need not subscribe to test.webhook, but it must be active.
    """
    task_id = service.send_test(endpoint_id)
    return PublishResponse(event=TEST_WEBHOOK, task_ids=[task_id], deliveries=1)


@router.post(
    "/webhooks/events",
    response_model=PublishResponse,
    status_code=status.HTTP_202_ACCEPTED,
    tags=["events"],
)
async def publish_event(request: PublishRequest, service: ServiceDep) -> PublishResponse:
    """Publish an event to every subscribed endpoint.

    Accepted immediately; delivery results appear in the event log.
    """
    task_ids = service.publish(request.event, request.data)
    return PublishResponse(event=request.event, task_ids=task_ids, deliveries=len(task_ids))


@router.get("/webhooks/events", response_model=EventLogResponse, tags=["events"])
async def get_event_log(
    service: ServiceDep,
    limit: Annotated[int, Query(ge=1, le=1000)] = 50,
) -> EventLogResponse:
    """Most recent delivery outcomes, newest first."""
    entries = [entry_to_response(e) for e in service.get_event_log(limit)]
    return EventLogResponse(entries=entries, count=len(entries))


@router.get("/webhooks/stats", response_model=StatsResponse, tags=["events"])
async def get_stats(service: ServiceDep) -> StatsResponse:
    """Aggregate delivery statistics."""
    return StatsResponse(**service.get_stats().model_dump())
