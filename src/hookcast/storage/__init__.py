"""Persistence backends for Hookcast.

Example:
    ```python
    from hookcast.storage import JsonFileStore

    store = JsonFileStore("/var/lib/hookcast")
    await store.put("endpoints", endpoint.id, endpoint.model_dump(mode="json"))
    ```
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from hookcast.exceptions import ConfigurationError

from .base import ENDPOINTS_NAMESPACE, LEDGER_NAMESPACE, Store
from .file import JsonFileStore
from .memory import InMemoryStore

if TYPE_CHECKING:
    from hookcast.config import Settings


def create_store(settings: Settings) -> Store:
    """Build the store selected by ``settings.store_backend``.

    Raises:
        ConfigurationError: If the file backend is selected without a path.
    """
    if settings.store_backend == "file":
        if settings.store_path is None:
            raise ConfigurationError("store_path is required for the file store backend")
        return JsonFileStore(settings.store_path)
    return InMemoryStore()


__all__ = [
    "ENDPOINTS_NAMESPACE",
    "LEDGER_NAMESPACE",
    "InMemoryStore",
    "JsonFileStore",
    "Store",
    "create_store",
]
