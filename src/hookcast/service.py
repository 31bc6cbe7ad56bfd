"""Hookcast service layer.

This module provides the WebhookService that wires the endpoint registry,
dispatcher, retry scheduler, delivery workers and ledger together behind
the management API used by the rest of the application.

Example:
    ```python
    from hookcast.service import WebhookService

    async with WebhookService.create() as hooks:
        endpoint = await hooks.add_endpoint(
            "https://partner.example.com/hooks",
            events=["kyc.status_changed"],
        )
        hooks.publish("kyc.status_changed", {"userId": "u1", "status": "approved"})
        await hooks.wait_idle()
        print(hooks.get_stats())
    ```
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable
from dataclasses import dataclass, field
from functools import partial
from typing import Any

import httpx

from hookcast.clock import Clock, SystemClock
from hookcast.config import Settings
from hookcast.events import DEFAULT_TEST_MESSAGE, Event
from hookcast.logging import get_logger
from hookcast.models import DeliveryStats, DeliveryTask, Endpoint, EndpointUpdate, LedgerEntry
from hookcast.storage import Store, create_store
from hookcast.webhooks import (
    DeliveryLedger,
    DeliveryWorker,
    EndpointRegistry,
    EventDispatcher,
    HealthTracker,
    RetryScheduler,
    abandon_task,
    exponential_backoff,
)

logger = get_logger(__name__)

DEFAULT_LOG_LIMIT = 50


@dataclass
class WebhookService:
    """Outbound webhook dispatch with an explicit lifecycle.

    This service provides:
    - add_endpoint() / update_endpoint() / remove_endpoint() / list_endpoints()
    - publish(): fire-and-forget fan-out of a domain event
    - get_event_log() / get_stats(): delivery history for operators

    Uses dependency injection for storage, time and HTTP, so several
    isolated instances can run side by side (e.g. in tests).

    Attributes:
        settings: Configuration settings.
        store: Persistence for endpoints and the delivery ledger.
        clock: Time source for timestamps and retry scheduling.
        http_client: Client used for deliveries. Created on start if None.
    """

    settings: Settings
    store: Store
    clock: Clock = field(default_factory=SystemClock)
    http_client: httpx.AsyncClient | None = None

    registry: EndpointRegistry = field(init=False, repr=False)
    ledger: DeliveryLedger = field(init=False, repr=False)
    scheduler: RetryScheduler = field(init=False, repr=False)
    dispatcher: EventDispatcher = field(init=False, repr=False)

    _queue: asyncio.Queue[DeliveryTask] = field(init=False, repr=False)
    _tasks: list[asyncio.Task[None]] = field(default_factory=list, init=False, repr=False)
    _owns_client: bool = field(default=False, init=False, repr=False)
    _owns_store: bool = field(default=False, init=False, repr=False)
    _running: bool = field(default=False, init=False, repr=False)

    def __post_init__(self) -> None:
        self._queue = asyncio.Queue()
        self.registry = EndpointRegistry(
            self.store,
            clock=self.clock,
            health=HealthTracker(self.settings.failure_threshold),
            allow_duplicate_urls=self.settings.allow_duplicate_urls,
        )
        self.ledger = DeliveryLedger(self.store, capacity=self.settings.ledger_capacity)
        self.scheduler = RetryScheduler(self.clock, release=self._queue.put_nowait)
        self.dispatcher = EventDispatcher(
            self.registry,
            enqueue=self._queue.put_nowait,
            clock=self.clock,
            max_attempts=self.settings.max_attempts,
        )

    @classmethod
    def create(
        cls,
        settings: Settings | None = None,
        *,
        store: Store | None = None,
        clock: Clock | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> WebhookService:
        """Create a WebhookService with default dependencies.

        Args:
            settings: Optional settings. Uses environment if None.
            store: Optional store. Built from settings if None.
            clock: Optional clock. Wall clock if None.
            http_client: Optional HTTP client. Created on start if None.

        Returns:
            Configured, not yet started, WebhookService.
        """
        if settings is None:
            settings = Settings()
        owns_store = store is None
        service = cls(
            settings=settings,
            store=store if store is not None else create_store(settings),
            clock=clock or SystemClock(),
            http_client=http_client,
        )
        service._owns_store = owns_store
        return service

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Load persisted state and start the scheduler and workers."""
        if self._running:
            logger.warning("WebhookService already running")
            return

        await self.registry.load()
        await self.ledger.load()

        if self.http_client is None:
            self.http_client = httpx.AsyncClient(timeout=self.settings.request_timeout_seconds)
            self._owns_client = True

        backoff = partial(exponential_backoff, base_seconds=self.settings.retry_base_delay_seconds)
        self._tasks = [asyncio.create_task(self.scheduler.run(), name="hookcast-scheduler")]
        for i in range(self.settings.worker_count):
            worker = DeliveryWorker(
                self.registry,
                self.ledger,
                self.scheduler,
                self.http_client,
                clock=self.clock,
                timeout_seconds=self.settings.request_timeout_seconds,
                backoff=backoff,
                name=f"worker-{i}",
            )
            self._tasks.append(asyncio.create_task(worker.run(self._queue), name=f"hookcast-{i}"))

        self._running = True
        logger.info(
            "WebhookService started",
            endpoints=len(self.registry),
            ledger_entries=len(self.ledger),
            workers=self.settings.worker_count,
        )

    async def stop(self) -> None:
        """Stop workers and the scheduler and release owned resources.

        Queued tasks and scheduled retries are dropped; they are not
        archived because they never reached a terminal state.
        """
        if not self._running:
            return

        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []

        dropped = len(self.scheduler.drain())
        while not self._queue.empty():
            self._queue.get_nowait()
            self._queue.task_done()
            dropped += 1
        if dropped:
            logger.warning("WebhookService stopped with undelivered tasks", dropped=dropped)

        if self._owns_client and self.http_client is not None:
            await self.http_client.aclose()
            self.http_client = None
            self._owns_client = False
        if self._owns_store:
            await self.store.close()

        self._running = False
        logger.info("WebhookService stopped")

    async def __aenter__(self) -> WebhookService:
        """Async context manager entry."""
        await self.start()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        await self.stop()

    async def add_endpoint(
        self,
        url: str,
        events: Iterable[str],
        secret: str | None = None,
    ) -> Endpoint:
        """Register a webhook endpoint. See EndpointRegistry.add_endpoint."""
        return await self.registry.add_endpoint(url, events, secret)

    async def remove_endpoint(self, endpoint_id: str) -> None:
        """Remove an endpoint and cancel retries scheduled for it.

        Raises:
            NotFoundError: If no endpoint has this id.
        """
        endpoint = await self.registry.remove_endpoint(endpoint_id)
        await self._cancel_retries(endpoint, reason="Endpoint removed")

    async def update_endpoint(self, endpoint_id: str, patch: EndpointUpdate) -> Endpoint:
        """Apply a partial update. Deactivation cancels scheduled retries.

        Raises:
            NotFoundError: If no endpoint has this id.
        """
        endpoint = await self.registry.update_endpoint(endpoint_id, patch)
        if not endpoint.active:
            await self._cancel_retries(endpoint, reason="Endpoint inactive")
        return endpoint

    def list_endpoints(self) -> list[Endpoint]:
        return self.registry.list_endpoints()

    def get_endpoint(self, endpoint_id: str) -> Endpoint | None:
        return self.registry.get_endpoint(endpoint_id)

    def publish(self, event_type: str, payload: Any = None) -> list[str]:
        """Fan an event out to every active subscribed endpoint.

        Returns immediately; delivery happens on the background workers and
        its outcome is only visible through the event log and stats.

        Returns:
            IDs of the delivery tasks created.
        """
        return self.dispatcher.publish(event_type, payload)

    def publish_event(self, event: Event) -> list[str]:
        """Publish a predefined domain event."""
        return self.publish(event.type, event.data)

    def send_test(self, endpoint_id: str, message: str = DEFAULT_TEST_MESSAGE) -> str:
        """Queue a test.webhook event for one endpoint, whatever it subscribes to.

        Returns:
            ID of the delivery task created.

        Raises:
            NotFoundError: If no endpoint has this id.
            ValidationError: If the endpoint is inactive.
        """
        event = Event.for_test_webhook(message)
        return self.dispatcher.publish_to(endpoint_id, event.type, event.data)

    def get_event_log(self, limit: int = DEFAULT_LOG_LIMIT) -> list[LedgerEntry]:
        """Most recent delivery outcomes, newest first."""
        return self.ledger.query(limit)

    def get_stats(self) -> DeliveryStats:
        return self.ledger.stats(self.registry.list_endpoints())

    async def wait_idle(self) -> None:
        """Wait until the queue is drained and no scheduled retry is due.

        Retries scheduled for the future do not block; advance the clock
        (or wait) and call again to let them run.
        """
        while True:
            await self._queue.join()
            if not self.scheduler.has_due():
                return
            await asyncio.sleep(0)

    async def _cancel_retries(self, endpoint: Endpoint, reason: str) -> None:
        for task in self.scheduler.cancel_for_endpoint(endpoint.id):
            await abandon_task(self.ledger, task, reason, now=self.clock.now(), url=endpoint.url)


__all__ = ["WebhookService"]
