"""In-process storage backend.

Several wrapped storages (and therefore several engines) sharing one
``MemoryNamespace`` behave like independent consumers of the same storage:
each write is announced to every change listener, the writer's own included.
"""

from __future__ import annotations

import asyncio
import copy
import logging
from collections.abc import Mapping
from typing import Any

from pyreduxed._constants import SYNC_QUOTA_BYTES_PER_ITEM
from pyreduxed.exceptions import ReduxedConfigError, ReduxedStorageLimitError
from pyreduxed.storage.base import ChangeListener, StorageChange, serialized_size

_logger = logging.getLogger(__name__)

_DEFAULT_QUOTAS: dict[str, int | None] = {
    "sync": SYNC_QUOTA_BYTES_PER_ITEM,
    "local": None,
    "session": None,
}


class MemoryStorageArea:
    """One named key-value area of a ``MemoryNamespace``."""

    def __init__(
        self,
        namespace: MemoryNamespace,
        name: str,
        *,
        quota_bytes_per_item: int | None = None,
        items: Mapping[str, Any] | None = None,
    ) -> None:
        self._namespace = namespace
        self.name = name
        self.quota_bytes_per_item = quota_bytes_per_item
        self._items: dict[str, Any] = copy.deepcopy(dict(items or {}))
        self.set_count = 0

    async def get(self, key: str | None = None) -> dict[str, Any]:
        if key is None:
            return copy.deepcopy(self._items)
        if key not in self._items:
            return {}
        return {key: copy.deepcopy(self._items[key])}

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

        changes: dict[str, StorageChange] = {}
        for key, value in items.items():
            old_value = self._items.get(key)
            self._items[key] = copy.deepcopy(value)
            changes[key] = StorageChange(old_value=old_value, new_value=copy.deepcopy(value))
        self.set_count += 1
        self._namespace.notify(changes, self.name)

    async def remove(self, key: str) -> None:
        if key not in self._items:
            return
        old_value = self._items.pop(key)
        self._namespace.notify({key: StorageChange(old_value=old_value)}, self.name)

    def peek(self, key: str) -> Any:
        """Synchronous read of the stored value (``None`` if absent)."""
        return copy.deepcopy(self._items.get(key))


class MemoryNamespace:
    """In-memory backend exposing ``sync``, ``local`` and ``session`` areas.

    Parameters
    ----------
    data : mapping, optional
        Seed content per area, e.g. ``{"local": {"reduxed": {...}}}``.
        Seeding does not emit change events or count as a write.
    quotas : mapping, optional
        Per-item byte quota per area; overrides the defaults.
    """

    def __init__(
        self,
        data: Mapping[str, Mapping[str, Any]] | None = None,
        *,
        quotas: Mapping[str, int | None] | None = None,
    ) -> None:
        area_quotas = dict(_DEFAULT_QUOTAS)
        if quotas:
            area_quotas.update(quotas)
        seed = data or {}
        unknown = set(seed) - set(area_quotas)
        if unknown:
            raise ReduxedConfigError(f"Unknown storage areas in seed data: {sorted(unknown)}")
        self._areas = {
            name: MemoryStorageArea(self, name, quota_bytes_per_item=quota, items=seed.get(name))
            for name, quota in area_quotas.items()
        }
        self._listeners: list[ChangeListener] = []

    def area(self, name: str) -> MemoryStorageArea:
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
        """Announce *changes* to all listeners on a later loop iteration."""
        asyncio.get_running_loop().call_soon(self._deliver, dict(changes), area_name)

    def _deliver(self, changes: dict[str, StorageChange], area_name: str) -> None:
        for listener in list(self._listeners):
            try:
                listener(changes, area_name)
            except Exception:
                _logger.exception("Storage change listener failed area=%s", area_name)
