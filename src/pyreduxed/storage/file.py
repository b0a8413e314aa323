"""Durable JSON-file storage backend.

Each area is one JSON document ``<root>/<area>.json`` mapping keys to
values. Writes are atomic (temp file + rename), so a crash never leaves a
half-written document behind. Change events reach listeners registered on
the same ``FileNamespace`` instance; other processes see the new value on
their next load.
"""

from __future__ import annotations

import asyncio
import copy
import json
import logging
import os
import tempfile
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import aiofiles
import aiofiles.os

from pyreduxed.exceptions import ReduxedConfigError, ReduxedStorageError, ReduxedStorageLimitError
from pyreduxed.storage.base import ChangeListener, StorageChange, serialized_size

_logger = logging.getLogger(__name__)


async def _read_json(path: Path) -> dict[str, Any]:
    if not await aiofiles.os.path.exists(path):
        return {}
    async with aiofiles.open(path, encoding="utf-8") as f:
        content = await f.read()
    if not content.strip():
        return {}
    data = json.loads(content)
    if not isinstance(data, dict):
        raise ValueError(f"{path} does not contain a JSON object")
    return data


async def _write_json_atomic(path: Path, data: dict[str, Any]) -> None:
    await aiofiles.os.makedirs(path.parent, exist_ok=True)
    fd, temp_path = tempfile.mkstemp(dir=path.parent, prefix=".tmp_", suffix=".json")
    try:
        os.close(fd)
        async with aiofiles.open(temp_path, "w", encoding="utf-8") as f:
            await f.write(json.dumps(data, ensure_ascii=False))
            await f.flush()
        await aiofiles.os.replace(temp_path, path)
    except BaseException:
        try:
            await aiofiles.os.remove(temp_path)
        except OSError:
            pass
        raise


class FileStorageArea:
    """One area persisted as a JSON document."""

    def __init__(self, namespace: FileNamespace, name: str, path: Path, *, quota_bytes_per_item: int | None) -> None:
        self._namespace = namespace
        self.name = name
        self.path = path
        self.quota_bytes_per_item = quota_bytes_per_item
        self._lock = asyncio.Lock()

    async def get(self, key: str | None = None) -> dict[str, Any]:
        try:
            items = await _read_json(self.path)
        except (OSError, ValueError) as exc:
            raise ReduxedStorageError(
                f"Failed to read storage area {self.name!r} from {self.path}: {exc}",
                area=self.name,
                key=key or "",
            ) from exc
        if key is None:
            return items
        return {key: items[key]} if key in items else {}

    async def set(self, items: Mapping[str, Any]) -> None:
        quota = self.quota_bytes_per_item
        if quota is not None:
            for key, value in items.items():
                size = serialized_size(key, value)
                if size > quota:
                    raise ReduxedStorageLimitError(
                        f"Storage limit exceeded: {size} bytes for {key!r} in area {self.name!r} (quota {quota})",
                        area=self.name,
                        key=key,
                        size=size,
                        quota=quota,
                    )

        async with self._lock:
            current = await self.get()
            changes = {
                key: StorageChange(old_value=current.get(key), new_value=copy.deepcopy(value))
                for key, value in items.items()
            }
            current.update(copy.deepcopy(dict(items)))
            try:
                await _write_json_atomic(self.path, current)
            except OSError as exc:
                raise ReduxedStorageError(
                    f"Failed to write storage area {self.name!r} to {self.path}: {exc}",
                    area=self.name,
                ) from exc
        _logger.debug("Storage area written area=%s path=%s keys=%s", self.name, self.path, list(items))
        self._namespace.notify(changes, self.name)


class FileNamespace:
    """JSON-file backend rooted at a directory.

    Parameters
    ----------
    root : path
        Directory holding one ``<area>.json`` per area (created on first write).
    areas : iterable of str
        Area names to expose. Defaults to ``sync``, ``local`` and ``session``.
    quotas : mapping, optional
        Per-item byte quota per area. No quota by default.
    """

    def __init__(
        self,
        root: str | os.PathLike[str],
        *,
        areas: tuple[str, ...] = ("sync", "local", "session"),
        quotas: Mapping[str, int | None] | None = None,
    ) -> None:
        self.root = Path(root)
        limits = dict(quotas or {})
        self._areas = {
            name: FileStorageArea(self, name, self.root / f"{name}.json", quota_bytes_per_item=limits.get(name))
            for name in areas
        }
        self._listeners: list[ChangeListener] = []

    def area(self, name: str) -> FileStorageArea:
        try:
            return self._areas[name]
        except KeyError:
            raise ReduxedConfigError(f"Unknown storage area: {name!r}") from None

    def add_change_listener(self, listener: ChangeListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def remove_change_listener(self, listener: ChangeListener) -> None:
        self._listeners = [fn for fn in self._listeners if fn != listener]

    def notify(self, changes: Mapping[str, StorageChange], area_name: str) -> None:
        asyncio.get_running_loop().call_soon(self._deliver, dict(changes), area_name)

    def _deliver(self, changes: dict[str, StorageChange], area_name: str) -> None:
        for listener in list(self._listeners):
            try:
                listener(changes, area_name)
            except Exception:
                _logger.exception("Storage change listener failed area=%s", area_name)
