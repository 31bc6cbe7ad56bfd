"""Tests for the delivery ledger."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from hookcast.models import DeliveryTask, Endpoint, LedgerEntry
from hookcast.storage import LEDGER_NAMESPACE, InMemoryStore
from hookcast.webhooks import DeliveryLedger

NOW = datetime(2024, 1, 1, tzinfo=UTC)


def make_entry(status: str = "sent", event_type: str = "user.registered") -> LedgerEntry:
    task = DeliveryTask(event_type=event_type, payload={"n": 1}, endpoint_id="whk_1", attempts=1)
    if status == "sent":
        task.mark_sent(response_code=200, now=NOW)
    else:
        task.mark_failed(error="HTTP 500: error", now=NOW, response_code=500)
    return LedgerEntry.from_task(task, url="https://example.com/hook", recorded_at=NOW)


class TestAppend:
    """Tests for recording outcomes."""

    @pytest.mark.asyncio
    async def test_append_assigns_sequence(self, store: InMemoryStore) -> None:
        """Entries get increasing sequence numbers."""
        ledger = DeliveryLedger(store)
        first = await ledger.append(make_entry())
        second = await ledger.append(make_entry())

        assert first.sequence == 1
        assert second.sequence == 2
        assert len(ledger) == 2

    @pytest.mark.asyncio
    async def test_append_persists(self, store: InMemoryStore) -> None:
        """Entries are written through to the store."""
        ledger = DeliveryLedger(store)
        entry = await ledger.append(make_entry())

        record = await store.get(LEDGER_NAMESPACE, entry.id)
        assert record["task_id"] == entry.task_id
        assert record["sequence"] == 1

    @pytest.mark.asyncio
    async def test_eviction_at_capacity(self, store: InMemoryStore) -> None:
        """Oldest entries are evicted once capacity is exceeded."""
        ledger = DeliveryLedger(store, capacity=3)
        entries = [await ledger.append(make_entry()) for _ in range(5)]

        assert len(ledger) == 3
        assert [e.id for e in ledger.query()] == [e.id for e in reversed(entries[2:])]
        assert await store.get(LEDGER_NAMESPACE, entries[0].id) is None
        assert len(await store.list(LEDGER_NAMESPACE)) == 3

    @pytest.mark.asyncio
    async def test_invalid_capacity(self, store: InMemoryStore) -> None:
        """Capacity must be positive."""
        with pytest.raises(ValueError):
            DeliveryLedger(store, capacity=0)


class TestQuery:
    """Tests for reading the log."""

    @pytest.mark.asyncio
    async def test_newest_first(self, store: InMemoryStore) -> None:
        """Query returns most recent entries first."""
        ledger = DeliveryLedger(store)
        entries = [await ledger.append(make_entry()) for _ in range(3)]

        assert [e.id for e in ledger.query()] == [e.id for e in reversed(entries)]

    @pytest.mark.asyncio
    async def test_limit(self, store: InMemoryStore) -> None:
        """Limit bounds the number of returned entries."""
        ledger = DeliveryLedger(store)
        for _ in range(5):
            await ledger.append(make_entry())

        assert len(ledger.query(2)) == 2
        assert len(ledger.query(50)) == 5
        assert ledger.query(0) == []

    @pytest.mark.asyncio
    async def test_empty(self, store: InMemoryStore) -> None:
        """An empty ledger returns an empty list."""
        assert DeliveryLedger(store).query(10) == []


class TestStats:
    """Tests for aggregate counts."""

    @pytest.mark.asyncio
    async def test_stats(self, store: InMemoryStore) -> None:
        """Counts combine endpoint state and retained outcomes."""
        ledger = DeliveryLedger(store)
        await ledger.append(make_entry("sent"))
        await ledger.append(make_entry("sent"))
        await ledger.append(make_entry("failed"))
        endpoints = [
            Endpoint(url="https://example.com/a", events={"a"}, secret="s"),
            Endpoint(url="https://example.com/b", events={"a"}, secret="s", active=False),
        ]

        stats = ledger.stats(endpoints)

        assert stats.total_endpoints == 2
        assert stats.active_endpoints == 1
        assert stats.total_events == 3
        assert stats.successful_events == 2
        assert stats.failed_events == 1

    @pytest.mark.asyncio
    async def test_stats_after_eviction(self, store: InMemoryStore) -> None:
        """Counts only cover retained entries."""
        ledger = DeliveryLedger(store, capacity=2)
        await ledger.append(make_entry("failed"))
        await ledger.append(make_entry("sent"))
        await ledger.append(make_entry("sent"))

        stats = ledger.stats([])
        assert stats.total_events == 2
        assert stats.successful_events == 2
        assert stats.failed_events == 0


class TestLoad:
    """Tests for restoring the ledger."""

    @pytest.mark.asyncio
    async def test_load_restores_order_and_sequence(self, store: InMemoryStore) -> None:
        """Reloaded entries keep their order and new entries continue the sequence."""
        first = DeliveryLedger(store)
        entries = [await first.append(make_entry()) for _ in range(3)]

        second = DeliveryLedger(store)
        assert await second.load() == 3
        assert [e.id for e in second.query()] == [e.id for e in reversed(entries)]

        appended = await second.append(make_entry())
        assert appended.sequence == 4

    @pytest.mark.asyncio
    async def test_load_with_smaller_capacity(self, store: InMemoryStore) -> None:
        """Loading into a smaller ledger keeps only the newest entries."""
        first = DeliveryLedger(store)
        entries = [await first.append(make_entry()) for _ in range(4)]

        second = DeliveryLedger(store, capacity=2)
        await second.load()

        assert [e.id for e in second.query()] == [entries[3].id, entries[2].id]
        assert len(await store.list(LEDGER_NAMESPACE)) == 2
