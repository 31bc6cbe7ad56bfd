"""Event fan-out: one delivery task per matching endpoint."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from hookcast.clock import Clock, SystemClock
from hookcast.exceptions import NotFoundError, ValidationError
from hookcast.models import DeliveryTask

from .signing import canonical_payload

if TYPE_CHECKING:
    from datetime import datetime

    from hookcast.models import Endpoint

    from .registry import EndpointRegistry

logger = logging.getLogger(__name__)


class EventDispatcher:
    """Expands published events into delivery tasks.

    Fan-out is a snapshot: only endpoints active and subscribed at the
    moment of publishing receive the event.

    Example:
        ```python
        dispatcher = EventDispatcher(registry, enqueue=queue.put_nowait)
        task_ids = dispatcher.publish("kyc.status_changed", {"userId": "u1"})
        ```
    """

    def __init__(
        self,
        registry: EndpointRegistry,
        enqueue: Callable[[DeliveryTask], None],
        clock: Clock | None = None,
        max_attempts: int = 3,
    ) -> None:
        self._registry = registry
        self._enqueue = enqueue
        self._clock = clock or SystemClock()
        self._max_attempts = max_attempts

    def publish(self, event_type: str, payload: Any = None) -> list[str]:
        """Queue an event for every matching endpoint and return immediately.

        The payload is serialized once here and the same text is signed and
        sent on every attempt. Delivery outcomes are never reported back to
        the caller.

        Args:
            event_type: Type of the event, e.g. "transaction.completed".
            payload: Opaque JSON-compatible event data, or its UTF-8 JSON
                serialization as str or bytes.

        Returns:
            IDs of the delivery tasks created (empty if nothing matched).

        Raises:
            ValidationError: If the event type is blank or the payload cannot
                be serialized as JSON.
        """
        _check_event_type(event_type)
        text = canonical_payload(payload)

        endpoints = self._registry.matching_active_endpoints(event_type)
        if not endpoints:
            logger.debug("No webhook endpoints subscribed to %s", event_type)
            return []

        now = self._clock.now()
        task_ids = [self._enqueue_for(e, event_type, payload, text, now) for e in endpoints]

        logger.debug("Published %s to %d endpoints", event_type, len(task_ids))
        return task_ids

    def publish_to(self, endpoint_id: str, event_type: str, payload: Any = None) -> str:
        """Queue an event for one endpoint, ignoring its subscriptions.

        Used to send test deliveries to a freshly configured receiver.

        Returns:
            ID of the delivery task created.

        Raises:
            NotFoundError: If no endpoint has this id.
            ValidationError: If the endpoint is inactive, the event type is
                blank or the payload cannot be serialized as JSON.
        """
        _check_event_type(event_type)
        text = canonical_payload(payload)

        endpoint = self._registry.get_endpoint(endpoint_id)
        if endpoint is None:
            raise NotFoundError("endpoint", endpoint_id)
        if not endpoint.active:
            raise ValidationError("endpoint", f"endpoint is inactive: {endpoint_id}")

        task_id = self._enqueue_for(endpoint, event_type, payload, text, self._clock.now())
        logger.debug("Published %s to endpoint %s", event_type, endpoint_id)
        return task_id

    def _enqueue_for(
        self,
        endpoint: Endpoint,
        event_type: str,
        payload: Any,
        text: str,
        now: datetime,
    ) -> str:
        task = DeliveryTask(
            event_type=event_type,
            payload=payload,
            payload_text=text,
            endpoint_id=endpoint.id,
            max_attempts=self._max_attempts,
            created_at=now,
        )
        self._enqueue(task)
        return task.id


def _check_event_type(event_type: str) -> None:
    if not isinstance(event_type, str) or not event_type.strip():
        raise ValidationError("event", "event type must be a non-empty string")
