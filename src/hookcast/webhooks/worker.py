"""Webhook delivery with HMAC signatures and exponential backoff retry.

A DeliveryWorker takes tasks off the shared queue and drives each one
through its state machine:

    pending -> attempting -> sent
                          -> retrying -> attempting ...
                          -> failed

Terminal tasks are archived in the ledger and reported to the registry so
endpoint health stays current.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

import httpx

from hookcast.clock import Clock, SystemClock
from hookcast.exceptions import DeliveryError
from hookcast.logging import bind_context, get_logger
from hookcast.models import DeliveryTask, Endpoint, LedgerEntry

from .signing import build_body, build_headers

if TYPE_CHECKING:
    from .ledger import DeliveryLedger
    from .registry import EndpointRegistry
    from .scheduler import RetryScheduler

logger = get_logger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0


def exponential_backoff(attempt: int, base_seconds: float = 1.0) -> float:
    """Delay after the given (1-indexed) failed attempt: 1s, 2s, 4s, ..."""
    return base_seconds * (2 ** (attempt - 1))


async def abandon_task(
    ledger: DeliveryLedger,
    task: DeliveryTask,
    reason: str,
    now: datetime,
    url: str | None = None,
) -> None:
    """Terminate a task without attempting delivery and archive it.

    Used when the target endpoint was removed or deactivated after the
    task was created. Endpoint health is left untouched.
    """
    task.mark_failed(error=reason, now=now)
    await ledger.append(LedgerEntry.from_task(task, url=url, recorded_at=now))
    logger.info(
        "Webhook delivery abandoned",
        task_id=task.id,
        endpoint_id=task.endpoint_id,
        event_type=task.event_type,
        reason=reason,
        attempts=task.attempts,
    )


class DeliveryWorker:
    """Performs delivery attempts for queued tasks.

    Several workers may share one queue; all endpoint state changes go
    through the registry.
    """

    def __init__(
        self,
        registry: EndpointRegistry,
        ledger: DeliveryLedger,
        scheduler: RetryScheduler,
        client: httpx.AsyncClient,
        clock: Clock | None = None,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        backoff: Callable[[int], float] = exponential_backoff,
        name: str = "worker-0",
    ) -> None:
        self._registry = registry
        self._ledger = ledger
        self._scheduler = scheduler
        self._client = client
        self._clock = clock or SystemClock()
        self._timeout = timeout_seconds
        self._backoff = backoff
        self.name = name

    async def run(self, queue: asyncio.Queue[DeliveryTask]) -> None:
        """Process tasks from ``queue`` in FIFO order until cancelled."""
        bind_context(worker=self.name)
        while True:
            task = await queue.get()
            try:
                await self.process(task)
            except Exception as e:
                logger.exception("Delivery worker error", task_id=task.id)
                await self._archive_crashed(task, e)
            finally:
                queue.task_done()

    async def process(self, task: DeliveryTask) -> None:
        """Make the next attempt for ``task`` and route its outcome."""
        endpoint = self._registry.get_endpoint(task.endpoint_id)
        if endpoint is None or not endpoint.active:
            reason = "Endpoint removed" if endpoint is None else "Endpoint inactive"
            await abandon_task(
                self._ledger,
                task,
                reason,
                now=self._clock.now(),
                url=endpoint.url if endpoint else None,
            )
            return

        task.attempts += 1
        try:
            response_code = await self._send(task, endpoint)
        except DeliveryError as e:
            await self._handle_failure(task, endpoint, e)
        except Exception as e:
            task.mark_failed(error=f"Unexpected error: {e}", now=self._clock.now())
            logger.exception(
                "Webhook delivery error",
                task_id=task.id,
                endpoint_id=endpoint.id,
                event_type=task.event_type,
            )
            await self._finish(task, endpoint)
        else:
            task.mark_sent(response_code=response_code, now=self._clock.now())
            logger.info(
                "Webhook delivered",
                task_id=task.id,
                endpoint_id=endpoint.id,
                url=endpoint.url,
                event_type=task.event_type,
                status_code=response_code,
                attempt=task.attempts,
            )
            await self._finish(task, endpoint)

    async def _send(self, task: DeliveryTask, endpoint: Endpoint) -> int:
        """POST the task to its endpoint.

        Returns:
            The 2xx response status code.

        Raises:
            DeliveryError: On non-2xx responses, timeouts and transport errors.
        """
        try:
            response = await self._client.post(
                endpoint.url,
                content=build_body(task),
                headers=build_headers(task, endpoint.secret),
                timeout=self._timeout,
            )
        except httpx.TimeoutException as e:
            raise DeliveryError("Request timeout") from e
        except httpx.HTTPError as e:
            raise DeliveryError(f"Request error: {e}") from e

        if 200 <= response.status_code < 300:
            return response.status_code
        raise DeliveryError(
            f"HTTP {response.status_code}: {response.text[:200]}",
            status_code=response.status_code,
        )

    async def _handle_failure(
        self, task: DeliveryTask, endpoint: Endpoint, error: DeliveryError
    ) -> None:
        now = self._clock.now()
        if task.can_retry:
            next_retry = now + timedelta(seconds=self._backoff(task.attempts))
            task.mark_retrying(
                next_retry_at=next_retry,
                error=error.message,
                response_code=error.status_code,
            )
            self._scheduler.schedule(task, next_retry)
            logger.info(
                "Webhook scheduled for retry",
                task_id=task.id,
                endpoint_id=endpoint.id,
                event_type=task.event_type,
                attempt=task.attempts,
                next_retry_at=next_retry.isoformat(),
                error=error.message,
            )
            return

        task.mark_failed(error=error.message, now=now, response_code=error.status_code)
        logger.warning(
            "Webhook max attempts exceeded",
            task_id=task.id,
            endpoint_id=endpoint.id,
            url=endpoint.url,
            event_type=task.event_type,
            attempts=task.attempts,
            error=error.message,
        )
        await self._finish(task, endpoint)

    async def _finish(self, task: DeliveryTask, endpoint: Endpoint) -> None:
        entry = LedgerEntry.from_task(task, url=endpoint.url, recorded_at=self._clock.now())
        await self._ledger.append(entry)
        if task.status == "sent":
            await self._registry.record_success(endpoint.id)
        else:
            await self._registry.record_failure(endpoint.id)

    async def _archive_crashed(self, task: DeliveryTask, error: Exception) -> None:
        """Make a task that raised mid-flight terminal and archive it.

        Tasks that already reached a terminal state keep it. Health counters
        are not touched, since the failure was not the endpoint's.
        """
        self._scheduler.cancel(task)
        if task.is_terminal:
            return
        endpoint = self._registry.get_endpoint(task.endpoint_id)
        try:
            await abandon_task(
                self._ledger,
                task,
                f"Unexpected error: {error}",
                now=self._clock.now(),
                url=endpoint.url if endpoint else None,
            )
        except Exception:
            logger.exception("Could not archive failed delivery", task_id=task.id)
