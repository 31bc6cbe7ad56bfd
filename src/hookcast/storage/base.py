"""Persistence abstraction for the endpoint registry and delivery ledger.

Values are JSON-compatible dictionaries grouped by namespace. Hookcast uses
two namespaces: ``endpoints`` and ``ledger``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

ENDPOINTS_NAMESPACE = "endpoints"
LEDGER_NAMESPACE = "ledger"


class Store(ABC):
    """Async key-value store for Hookcast's own records."""

    @abstractmethod
    async def put(self, namespace: str, key: str, value: dict[str, Any]) -> None:
        """Insert or replace a value."""

    @abstractmethod
    async def get(self, namespace: str, key: str) -> dict[str, Any] | None:
        """Fetch a value, or None if absent."""

    @abstractmethod
    async def list(self, namespace: str) -> list[dict[str, Any]]:
        """Return every value in the namespace. Order is unspecified."""

    @abstractmethod
    async def delete(self, namespace: str, key: str) -> bool:
        """Remove a value. Returns True if it existed."""

    async def close(self) -> None:
        """Release resources held by the store."""
        return None
