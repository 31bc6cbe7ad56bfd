"""Shared test utilities."""

from __future__ import annotations

import asyncio
import json
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any

import httpx

from hookcast.clock import Clock, ManualClock
from hookcast.config import Settings
from hookcast.service import WebhookService
from hookcast.storage import Store


class Receiver:
    """Fake webhook receiver for httpx.MockTransport.

    Records every request with the clock time it arrived at and answers
    with queued outcomes (status codes or exceptions to raise), falling
    back to ``status_code`` once the queue is empty.
    """

    def __init__(self, clock: Clock, status_code: int = 200) -> None:
        self.clock = clock
        self.status_code = status_code
        self.outcomes: list[int | Exception] = []
        self.requests: list[httpx.Request] = []
        self.times: list[datetime] = []

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        self.times.append(self.clock.now())
        outcome: int | Exception = self.outcomes.pop(0) if self.outcomes else self.status_code
        if isinstance(outcome, Exception):
            raise outcome
        return httpx.Response(outcome, text="ok" if outcome < 400 else "error")

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handle))

    def bodies(self) -> list[dict[str, Any]]:
        return [json.loads(r.content) for r in self.requests]

    def offsets(self, start: datetime) -> list[float]:
        """Arrival times in seconds relative to ``start``."""
        return [(t - start).total_seconds() for t in self.times]


async def settle(rounds: int = 50) -> None:
    """Let pending callbacks and woken tasks run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@asynccontextmanager
async def running_service(
    settings: Settings,
    store: Store,
    clock: Clock,
    receiver: Receiver,
) -> AsyncIterator[WebhookService]:
    """Start a service delivering to ``receiver``; stop it on exit."""
    client = receiver.client()
    hooks = WebhookService.create(settings, store=store, clock=clock, http_client=client)
    try:
        async with hooks:
            yield hooks
    finally:
        await client.aclose()


async def drive(hooks: WebhookService, clock: ManualClock, seconds: int, step: float = 1.0) -> None:
    """Advance the clock in steps, letting due retries run after each one."""
    await hooks.wait_idle()
    elapsed = 0.0
    while elapsed < seconds:
        clock.advance(step)
        elapsed += step
        await hooks.wait_idle()
