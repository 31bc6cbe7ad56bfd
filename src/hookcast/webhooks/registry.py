"""Webhook endpoint registry.

Stores endpoint subscriptions and is the single writer of endpoint state
(``active``, ``consecutive_failures``). The full set of endpoints is kept in
memory and written through to the Store on every change.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable
from typing import TYPE_CHECKING

from hookcast.clock import Clock, SystemClock
from hookcast.exceptions import ConfigurationError, NotFoundError
from hookcast.models import Endpoint, EndpointUpdate, validate_events, validate_url
from hookcast.storage import ENDPOINTS_NAMESPACE

from .health import HealthTracker
from .signing import generate_secret

if TYPE_CHECKING:
    from hookcast.storage import Store

logger = logging.getLogger(__name__)


class EndpointRegistry:
    """CRUD store of webhook endpoints.

    Readers always receive copies; mutations go through the registry and
    are serialized by a lock so delivery outcomes from concurrent workers
    never interleave with management updates.

    Example:
        ```python
        registry = EndpointRegistry(InMemoryStore())
        endpoint = await registry.add_endpoint(
            "https://partner.example.com/hooks",
            events=["transaction.completed"],
        )
        registry.matching_active_endpoints("transaction.completed")
        ```
    """

    def __init__(
        self,
        store: Store,
        clock: Clock | None = None,
        health: HealthTracker | None = None,
        allow_duplicate_urls: bool = False,
        secret_factory: Callable[[], str] = generate_secret,
    ) -> None:
        self._store = store
        self._clock = clock or SystemClock()
        self._health = health or HealthTracker()
        self._allow_duplicate_urls = allow_duplicate_urls
        self._secret_factory = secret_factory
        self._endpoints: dict[str, Endpoint] = {}
        self._lock = asyncio.Lock()

    @property
    def health(self) -> HealthTracker:
        return self._health

    async def load(self) -> int:
        """Restore endpoints from the store.

        Returns:
            Number of endpoints loaded.
        """
        records = await self._store.list(ENDPOINTS_NAMESPACE)
        async with self._lock:
            self._endpoints = {}
            for record in records:
                endpoint = Endpoint.model_validate(record)
                self._endpoints[endpoint.id] = endpoint
        logger.info("Loaded %d webhook endpoints", len(self._endpoints))
        return len(self._endpoints)

    async def add_endpoint(
        self,
        url: str,
        events: Iterable[str],
        secret: str | None = None,
    ) -> Endpoint:
        """Register a new endpoint.

        Args:
            url: Destination URL.
            events: Event types to subscribe to (at least one).
            secret: Shared signing secret. Generated when omitted.

        Returns:
            The stored endpoint.

        Raises:
            InvalidURLError: If the URL is malformed.
            EmptyEventSetError: If no event types are given.
            ConfigurationError: If the URL is already registered and
                duplicates are not allowed.
        """
        url = validate_url(url)
        event_set = validate_events(events)

        async with self._lock:
            self._check_duplicate(url)
            now = self._clock.now()
            endpoint = Endpoint(
                url=url,
                events=event_set,
                secret=secret or self._secret_factory(),
                created_at=now,
                updated_at=now,
            )
            await self._persist(endpoint)
            self._endpoints[endpoint.id] = endpoint

        logger.info("Registered webhook endpoint %s for %s", endpoint.id, url)
        return endpoint.model_copy(deep=True)

    async def remove_endpoint(self, endpoint_id: str) -> Endpoint:
        """Delete an endpoint.

        Returns:
            The removed endpoint.

        Raises:
            NotFoundError: If no endpoint has this id.
        """
        async with self._lock:
            endpoint = self._require(endpoint_id)
            await self._store.delete(ENDPOINTS_NAMESPACE, endpoint_id)
            del self._endpoints[endpoint_id]

        logger.info("Removed webhook endpoint %s (%s)", endpoint_id, endpoint.url)
        return endpoint

    async def update_endpoint(self, endpoint_id: str, patch: EndpointUpdate) -> Endpoint:
        """Apply a partial update.

        Reactivating an endpoint resets its failure counter.

        Raises:
            NotFoundError: If no endpoint has this id.
            InvalidURLError, EmptyEventSetError: On invalid new values.
            ConfigurationError: If the new URL is already registered.
        """
        url = validate_url(patch.url) if patch.url is not None else None
        event_set = validate_events(patch.events) if patch.events is not None else None

        async with self._lock:
            current = self._require(endpoint_id)
            updated = current.model_copy(deep=True)

            if url is not None and url != current.url:
                self._check_duplicate(url)
                updated.url = url
            if event_set is not None:
                updated.events = event_set
            if patch.secret is not None:
                updated.secret = patch.secret
            if patch.active is not None:
                if patch.active:
                    updated.consecutive_failures = 0
                updated.active = patch.active
            updated.updated_at = self._clock.now()

            await self._persist(updated)
            self._endpoints[endpoint_id] = updated

        logger.info("Updated webhook endpoint %s", endpoint_id)
        return updated.model_copy(deep=True)

    def get_endpoint(self, endpoint_id: str) -> Endpoint | None:
        endpoint = self._endpoints.get(endpoint_id)
        return endpoint.model_copy(deep=True) if endpoint else None

    def list_endpoints(self) -> list[Endpoint]:
        return [e.model_copy(deep=True) for e in self._endpoints.values()]

    def matching_active_endpoints(self, event_type: str) -> list[Endpoint]:
        """Endpoints that are active and subscribed to ``event_type``.

        Order is unspecified.
        """
        return [
            e.model_copy(deep=True) for e in self._endpoints.values() if e.subscribes_to(event_type)
        ]

    async def record_success(self, endpoint_id: str) -> None:
        """Apply a successful delivery to the endpoint's health."""
        async with self._lock:
            endpoint = self._endpoints.get(endpoint_id)
            if endpoint is None:
                return
            updated = endpoint.model_copy(deep=True)
            self._health.on_success(updated, self._clock.now())
            await self._persist(updated)
            self._endpoints[endpoint_id] = updated

    async def record_failure(self, endpoint_id: str) -> bool:
        """Apply a terminally failed delivery to the endpoint's health.

        Returns:
            True if the endpoint was deactivated by this failure.
        """
        async with self._lock:
            endpoint = self._endpoints.get(endpoint_id)
            if endpoint is None:
                return False
            updated = endpoint.model_copy(deep=True)
            deactivated = self._health.on_failure(updated)
            if deactivated:
                updated.updated_at = self._clock.now()
            await self._persist(updated)
            self._endpoints[endpoint_id] = updated

        if deactivated:
            logger.warning(
                "Deactivated webhook endpoint %s after %d consecutive failures",
                endpoint_id,
                updated.consecutive_failures,
            )
        return deactivated

    def __len__(self) -> int:
        return len(self._endpoints)

    def _require(self, endpoint_id: str) -> Endpoint:
        endpoint = self._endpoints.get(endpoint_id)
        if endpoint is None:
            raise NotFoundError("endpoint", endpoint_id)
        return endpoint

    def _check_duplicate(self, url: str) -> None:
        if self._allow_duplicate_urls:
            return
        for existing in self._endpoints.values():
            if existing.url == url:
                raise ConfigurationError(
                    f"Endpoint URL already registered by {existing.id}: {url}"
                )

    async def _persist(self, endpoint: Endpoint) -> None:
        await self._store.put(ENDPOINTS_NAMESPACE, endpoint.id, endpoint.model_dump(mode="json"))
