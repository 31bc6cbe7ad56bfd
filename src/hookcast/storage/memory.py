"""In-memory store. Contents are lost when the process exits."""

from __future__ import annotations

import copy
from typing import Any

from .base import Store


class InMemoryStore(Store):
    """Dictionary-backed store, one dict per namespace.

    Values are deep-copied on the way in and out so callers can never
    mutate stored state by accident.
    """

    def __init__(self) -> None:
        self._data: dict[str, dict[str, dict[str, Any]]] = {}

    async def put(self, namespace: str, key: str, value: dict[str, Any]) -> None:
        self._data.setdefault(namespace, {})[key] = copy.deepcopy(value)

    async def get(self, namespace: str, key: str) -> dict[str, Any] | None:
        value = self._data.get(namespace, {}).get(key)
        return copy.deepcopy(value) if value is not None else None

    async def list(self, namespace: str) -> list[dict[str, Any]]:
        return [copy.deepcopy(v) for v in self._data.get(namespace, {}).values()]

    async def delete(self, namespace: str, key: str) -> bool:
        return self._data.get(namespace, {}).pop(key, None) is not None
