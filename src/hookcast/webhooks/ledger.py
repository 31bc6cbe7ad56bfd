"""Delivery ledger: bounded, append-only history of delivery outcomes."""

from __future__ import annotations

import logging
from collections import Counter, deque
from collections.abc import Iterable
from itertools import islice
from typing import TYPE_CHECKING

from hookcast.models import DeliveryStats, LedgerEntry
from hookcast.storage import LEDGER_NAMESPACE

if TYPE_CHECKING:
    from hookcast.models import Endpoint
    from hookcast.storage import Store

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 1000


class DeliveryLedger:
    """Keeps the most recent ``capacity`` delivery outcomes.

    Entries are held in a deque for O(1) appends and evictions and written
    through to the store; evicted entries are deleted from the store too.
    Outcome counts are maintained incrementally over the retained entries.
    """

    def __init__(self, store: Store, capacity: int = DEFAULT_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self._store = store
        self._capacity = capacity
        self._entries: deque[LedgerEntry] = deque()
        self._counts: Counter[str] = Counter()
        self._next_sequence = 1

    @property
    def capacity(self) -> int:
        return self._capacity

    async def load(self) -> int:
        """Restore retained entries from the store, oldest first.

        Entries beyond capacity (e.g. after lowering it) are dropped.

        Returns:
            Number of entries loaded.
        """
        records = await self._store.list(LEDGER_NAMESPACE)
        entries = sorted(
            (LedgerEntry.model_validate(r) for r in records),
            key=lambda e: e.sequence,
        )
        self._entries.clear()
        self._counts.clear()
        self._next_sequence = entries[-1].sequence + 1 if entries else 1
        for entry in entries:
            self._entries.append(entry)
            self._counts[entry.status] += 1
        await self._evict()
        logger.info("Loaded %d delivery ledger entries", len(self._entries))
        return len(self._entries)

    async def append(self, entry: LedgerEntry) -> LedgerEntry:
        """Record an outcome, evicting the oldest entries beyond capacity.

        Returns:
            The stored entry with its ledger sequence number assigned.
        """
        entry = entry.model_copy(update={"sequence": self._next_sequence})
        self._next_sequence += 1
        await self._store.put(LEDGER_NAMESPACE, entry.id, entry.model_dump(mode="json"))
        self._entries.append(entry)
        self._counts[entry.status] += 1
        await self._evict()
        return entry

    def query(self, limit: int | None = None) -> list[LedgerEntry]:
        """Most recent ``limit`` entries, newest first."""
        if limit is not None and limit <= 0:
            return []
        return list(islice(reversed(self._entries), limit))

    def stats(self, endpoints: Iterable[Endpoint]) -> DeliveryStats:
        """Aggregate counts from the registry's endpoints and retained entries.

        ``total_events`` counts archived delivery tasks, so an event fanned
        out to three endpoints contributes three.
        """
        endpoint_list = list(endpoints)
        return DeliveryStats(
            total_endpoints=len(endpoint_list),
            active_endpoints=sum(1 for e in endpoint_list if e.active),
            total_events=len(self._entries),
            successful_events=self._counts["sent"],
            failed_events=self._counts["failed"],
        )

    def __len__(self) -> int:
        return len(self._entries)

    async def _evict(self) -> None:
        while len(self._entries) > self._capacity:
            oldest = self._entries.popleft()
            self._counts[oldest.status] -= 1
            await self._store.delete(LEDGER_NAMESPACE, oldest.id)
