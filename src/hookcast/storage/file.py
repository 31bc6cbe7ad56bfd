"""JSON file store: one document per key under ``<root>/<namespace>/``.

Writes go to a temporary file that is then renamed over the target, so a
crash mid-write never leaves a truncated record behind.
"""

from __future__ import annotations

import asyncio
import json
import os
import re
from pathlib import Path
from typing import Any

from hookcast.exceptions import StorageError

from .base import Store
from .retry import store_retry

_SAFE_NAME = re.compile(r"^[A-Za-z0-9_.-]+$")


class JsonFileStore(Store):
    """Durable store writing each record as a JSON file.

    Blocking file I/O runs in a worker thread; transient ``OSError``s are
    retried with backoff before surfacing as StorageError.
    """

    def __init__(self, root: str | Path) -> None:
        self._root = Path(root)

    @property
    def root(self) -> Path:
        return self._root

    def _path(self, namespace: str, key: str | None = None) -> Path:
        for part in (namespace, key):
            if part is not None and (not _SAFE_NAME.match(part) or part in (".", "..")):
                raise StorageError(f"Invalid store name: {part!r}")
        directory = self._root / namespace
        return directory if key is None else directory / f"{key}.json"

    @store_retry
    def _write(self, path: Path, value: dict[str, Any]) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(".json.tmp")
        tmp.write_text(json.dumps(value, sort_keys=True), encoding="utf-8")
        os.replace(tmp, path)

    @store_retry
    def _read(self, path: Path) -> dict[str, Any] | None:
        try:
            return json.loads(path.read_text(encoding="utf-8"))  # type: ignore[no-any-return]
        except FileNotFoundError:
            return None

    @store_retry
    def _read_all(self, directory: Path) -> list[dict[str, Any]]:
        if not directory.is_dir():
            return []
        values = []
        for path in sorted(directory.glob("*.json")):
            try:
                values.append(json.loads(path.read_text(encoding="utf-8")))
            except FileNotFoundError:
                # Deleted between glob and read
                continue
        return values

    @store_retry
    def _unlink(self, path: Path) -> bool:
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        return True

    async def put(self, namespace: str, key: str, value: dict[str, Any]) -> None:
        path = self._path(namespace, key)
        try:
            await asyncio.to_thread(self._write, path, value)
        except OSError as e:
            raise StorageError(f"Failed to write {namespace}/{key}: {e}") from e

    async def get(self, namespace: str, key: str) -> dict[str, Any] | None:
        path = self._path(namespace, key)
        try:
            return await asyncio.to_thread(self._read, path)
        except (OSError, ValueError) as e:
            raise StorageError(f"Failed to read {namespace}/{key}: {e}") from e

    async def list(self, namespace: str) -> list[dict[str, Any]]:
        directory = self._path(namespace)
        try:
            return await asyncio.to_thread(self._read_all, directory)
        except (OSError, ValueError) as e:
            raise StorageError(f"Failed to list {namespace}: {e}") from e

    async def delete(self, namespace: str, key: str) -> bool:
        path = self._path(namespace, key)
        try:
            return await asyncio.to_thread(self._unlink, path)
        except OSError as e:
            raise StorageError(f"Failed to delete {namespace}/{key}: {e}") from e
