"""Retry scheduling: a delay queue keyed by ``next_retry_at``.

Retrying tasks wait in a heap until the clock reaches their due time and are
then put back on the delivery queue they came from.
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
from collections.abc import Callable
from datetime import datetime

from hookcast.clock import Clock
from hookcast.models import DeliveryTask


class RetryScheduler:
    """Holds retrying tasks until they are due.

    Only one ``run`` loop should be active per scheduler. ``schedule`` and
    ``cancel_for_endpoint`` are synchronous and may be called from any
    coroutine on the same event loop.
    """

    def __init__(self, clock: Clock, release: Callable[[DeliveryTask], None]) -> None:
        self._clock = clock
        self._release = release
        self._heap: list[tuple[datetime, int, DeliveryTask]] = []
        self._counter = itertools.count()
        self._wakeup = asyncio.Event()

    def schedule(self, task: DeliveryTask, due_at: datetime) -> None:
        heapq.heappush(self._heap, (due_at, next(self._counter), task))
        self._wakeup.set()

    def cancel_for_endpoint(self, endpoint_id: str) -> list[DeliveryTask]:
        """Drop every scheduled retry addressed to ``endpoint_id``.

        Returns:
            The cancelled tasks.
        """
        cancelled = [t for _, _, t in self._heap if t.endpoint_id == endpoint_id]
        if cancelled:
            self._heap = [item for item in self._heap if item[2].endpoint_id != endpoint_id]
            heapq.heapify(self._heap)
            self._wakeup.set()
        return cancelled

    def cancel(self, task: DeliveryTask) -> bool:
        """Drop ``task`` if it is scheduled. Returns whether it was."""
        kept = [item for item in self._heap if item[2] is not task]
        if len(kept) == len(self._heap):
            return False
        self._heap = kept
        heapq.heapify(self._heap)
        self._wakeup.set()
        return True

    def pending(self) -> list[DeliveryTask]:
        """Scheduled tasks ordered by due time."""
        return [t for _, _, t in sorted(self._heap, key=lambda item: item[:2])]

    def has_due(self) -> bool:
        return bool(self._heap) and self._heap[0][0] <= self._clock.now()

    def drain(self) -> list[DeliveryTask]:
        """Remove and return every scheduled task."""
        tasks = self.pending()
        self._heap.clear()
        return tasks

    def __len__(self) -> int:
        return len(self._heap)

    async def run(self) -> None:
        """Release tasks as they become due. Runs until cancelled."""
        while True:
            if not self._heap:
                self._wakeup.clear()
                await self._wakeup.wait()
                continue

            due_at = self._heap[0][0]
            delay = (due_at - self._clock.now()).total_seconds()
            if delay <= 0:
                _, _, task = heapq.heappop(self._heap)
                self._release(task)
                continue

            # Sleep until the earliest task is due or the heap changes
            self._wakeup.clear()
            sleeper = asyncio.ensure_future(self._clock.sleep(delay))
            waiter = asyncio.ensure_future(self._wakeup.wait())
            try:
                await asyncio.wait({sleeper, waiter}, return_when=asyncio.FIRST_COMPLETED)
            finally:
                sleeper.cancel()
                waiter.cancel()
