"""Time sources for delivery scheduling.

The worker and retry scheduler never call ``datetime.now`` or
``asyncio.sleep`` directly; they go through a Clock so that retry timing
can be driven deterministically in tests with ManualClock.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from datetime import UTC, datetime, timedelta
from typing import Protocol


class Clock(Protocol):
    """Source of the current time and of timed waits."""

    def now(self) -> datetime:
        """Current UTC time."""
        ...

    def sleep(self, seconds: float) -> Awaitable[None]:
        """Awaitable that completes once ``seconds`` have elapsed on this clock."""
        ...


class SystemClock:
    """Wall-clock time backed by the running event loop."""

    def now(self) -> datetime:
        return datetime.now(UTC)

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(max(0.0, seconds))


class ManualClock:
    """Clock that only moves when told to.

    The deadline of a sleep is fixed when ``sleep`` is called, not when the
    returned future is first awaited. Sleepers are released by ``advance``
    once their deadline is reached.

    Example:
        ```python
        clock = ManualClock()
        waiter = clock.sleep(2)
        clock.advance(1)  # waiter still pending
        clock.advance(1)  # waiter done
        ```
    """

    def __init__(self, start: datetime | None = None) -> None:
        self._now = start or datetime(2024, 1, 1, tzinfo=UTC)
        self._sleepers: list[tuple[datetime, asyncio.Future[None]]] = []

    def now(self) -> datetime:
        return self._now

    def sleep(self, seconds: float) -> asyncio.Future[None]:
        future: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        if seconds <= 0:
            future.set_result(None)
            return future
        self._sleepers.append((self._now + timedelta(seconds=seconds), future))
        future.add_done_callback(self._forget)
        return future

    def advance(self, seconds: float) -> None:
        """Move time forward and wake every sleeper whose deadline has passed."""
        self._now += timedelta(seconds=seconds)
        for deadline, future in list(self._sleepers):
            if deadline <= self._now and not future.done():
                future.set_result(None)

    @property
    def sleeping(self) -> int:
        """Number of pending sleepers."""
        return sum(1 for _, f in self._sleepers if not f.done())

    def _forget(self, future: asyncio.Future[None]) -> None:
        self._sleepers = [(d, f) for d, f in self._sleepers if f is not future]
