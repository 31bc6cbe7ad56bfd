"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import sys
from collections.abc import AsyncIterator
from pathlib import Path

import pytest

# Add tests directory to path so helpers can be imported
tests_dir = Path(__file__).parent
if str(tests_dir) not in sys.path:
    sys.path.insert(0, str(tests_dir))

from helpers import Receiver, running_service  # noqa: E402

from hookcast.clock import ManualClock  # noqa: E402
from hookcast.config import Settings  # noqa: E402
from hookcast.service import WebhookService  # noqa: E402
from hookcast.storage import InMemoryStore  # noqa: E402


@pytest.fixture
def settings() -> Settings:
    """Test settings with the documented delivery defaults."""
    return Settings(
        env="test",
        store_backend="memory",
        max_attempts=3,
        retry_base_delay_seconds=1.0,
        failure_threshold=10,
        ledger_capacity=1000,
        worker_count=1,
    )


@pytest.fixture
def clock() -> ManualClock:
    """Clock that only moves when advanced."""
    return ManualClock()


@pytest.fixture
def store() -> InMemoryStore:
    """Fresh in-memory store."""
    return InMemoryStore()


@pytest.fixture
def receiver(clock: ManualClock) -> Receiver:
    """Fake endpoint answering 200 unless told otherwise."""
    return Receiver(clock)


@pytest.fixture
async def service(
    settings: Settings,
    store: InMemoryStore,
    clock: ManualClock,
    receiver: Receiver,
) -> AsyncIterator[WebhookService]:
    """Started service delivering to the fake receiver."""
    async with running_service(settings, store, clock, receiver) as hooks:
        yield hooks
