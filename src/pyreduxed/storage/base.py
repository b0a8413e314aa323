"""Storage backend protocols and the uniform wrapped-storage facade."""

from __future__ import annotations

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from typing import Any, Protocol, TypeAlias

from pydantic import BaseModel, ConfigDict

from pyreduxed._constants import DEFAULT_STORAGE_AREA, DEFAULT_STORAGE_KEY
from pyreduxed.exceptions import (
    ReduxedConfigError,
    ReduxedPersistenceError,
    ReduxedStorageError,
    ReduxedStorageLimitError,
)
from pyreduxed.types import Unsubscribe

_logger = logging.getLogger(__name__)


class StorageChange(BaseModel):
    """One key's change as reported by a backend's change event."""

    model_config = ConfigDict(frozen=True)

    old_value: Any = None
    new_value: Any = None


ChangeListener: TypeAlias = Callable[[Mapping[str, StorageChange], str], None]
ValueListener: TypeAlias = Callable[[Any], None]


class AsyncStorageArea(Protocol):
    """Awaitable key-value area (``local``, ``sync``, ...)."""

    quota_bytes_per_item: int | None

    async def get(self, key: str) -> dict[str, Any]:
        ...

    async def set(self, items: Mapping[str, Any]) -> None:
        ...


class AsyncStorageNamespace(Protocol):
    def area(self, name: str) -> AsyncStorageArea:
        ...

    def add_change_listener(self, listener: ChangeListener) -> None:
        ...

    def remove_change_listener(self, listener: ChangeListener) -> None:
        ...


class CallbackStorageArea(Protocol):
    """Key-value area reporting completion through callbacks."""

    quota_bytes_per_item: int | None

    def get(self, key: str, callback: Callable[[dict[str, Any]], None]) -> None:
        ...

    def set(self, items: Mapping[str, Any], callback: Callable[[], None] | None = None) -> None:
        ...


class CallbackStorageNamespace(Protocol):
    """Callback-style backend; failures are read from ``last_error`` inside callbacks."""

    last_error: str | None

    def area(self, name: str) -> CallbackStorageArea:
        ...

    def add_change_listener(self, listener: ChangeListener) -> None:
        ...

    def remove_change_listener(self, listener: ChangeListener) -> None:
        ...


def serialized_size(key: str, value: Any) -> int:
    """Bytes a key/value pair occupies once JSON-encoded."""
    encoded = json.dumps(value, separators=(",", ":"), ensure_ascii=False)
    return len(key.encode("utf-8")) + len(encoded.encode("utf-8"))


class WrappedStorage(ABC):
    """Uniform facade over one key of one storage area.

    Subclasses adapt a concrete backend API; this class owns the value
    listeners, the quota check and the bookkeeping of in-flight writes.
    """

    def __init__(self, *, area: str = DEFAULT_STORAGE_AREA, key: str = DEFAULT_STORAGE_KEY) -> None:
        if not area:
            raise ReduxedConfigError("storage area must be non-empty")
        if not key:
            raise ReduxedConfigError("storage key must be non-empty")
        self.area_name = area
        self.key = key
        self._listeners: list[ValueListener] = []
        self._pending: set[asyncio.Future[None]] = set()
        self._failures: list[BaseException] = []
        self._inited = False

    # ------------------------------------------------------------------
    # Backend hooks
    # ------------------------------------------------------------------

    @property
    @abstractmethod
    def quota_bytes_per_item(self) -> int | None:
        """Per-item byte quota of the wrapped area, ``None`` if unlimited."""

    @abstractmethod
    def _add_change_listener(self, listener: ChangeListener) -> None:
        ...

    @abstractmethod
    def _remove_change_listener(self, listener: ChangeListener) -> None:
        ...

    @abstractmethod
    async def _read(self) -> dict[str, Any]:
        ...

    @abstractmethod
    async def _write(self, items: dict[str, Any]) -> None:
        ...

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def init(self) -> None:
        """Start relaying backend change events to subscribers."""
        if self._inited:
            return
        self._add_change_listener(self._on_changed)
        self._inited = True

    def close(self) -> None:
        if not self._inited:
            return
        self._remove_change_listener(self._on_changed)
        self._inited = False

    async def load(self) -> Any:
        """Return the persisted value, or ``None`` when nothing is stored."""
        try:
            items = await self._read()
        except ReduxedStorageError:
            raise
        except Exception as exc:
            raise ReduxedStorageError(
                f"Failed to load {self.key!r} from storage area {self.area_name!r}: {exc}",
                area=self.area_name,
                key=self.key,
            ) from exc
        return items.get(self.key) if items else None

    def save(self, value: Any) -> None:
        """Persist *value* under the wrapped key.

        Raises ``ReduxedStorageLimitError`` right away when the value does
        not fit the area quota; the backend write itself runs as a task on
        the running loop (see ``flush()``).
        """
        size = serialized_size(self.key, value)
        quota = self.quota_bytes_per_item
        if quota is not None and size > quota:
            raise ReduxedStorageLimitError(
                f"Storage limit exceeded: {size} bytes for {self.key!r} in area {self.area_name!r} (quota {quota})",
                area=self.area_name,
                key=self.key,
                size=size,
                quota=quota,
            )

        task = asyncio.get_running_loop().create_task(self._write({self.key: value}))
        self._pending.add(task)
        task.add_done_callback(self._on_write_done)
        _logger.debug("Storage write scheduled area=%s key=%s bytes=%d", self.area_name, self.key, size)

    def subscribe(self, listener: ValueListener) -> Unsubscribe:
        """Call *listener* with the new value whenever the key changes."""
        if not callable(listener):
            raise ReduxedConfigError("storage listener must be callable")
        self._listeners.append(listener)

        def unsubscribe() -> None:
            self._listeners = [fn for fn in self._listeners if fn is not listener]

        return unsubscribe

    async def flush(self) -> None:
        """Wait for scheduled writes; raise the first failure, if any."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
        if self._failures:
            failure = self._failures[0]
            self._failures.clear()
            if isinstance(failure, ReduxedPersistenceError):
                raise failure
            raise ReduxedPersistenceError(
                f"Failed to write {self.key!r} to storage area {self.area_name!r}: {failure}",
                area=self.area_name,
                key=self.key,
            ) from failure

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _on_write_done(self, task: asyncio.Future[None]) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            _logger.error(
                "Storage write failed area=%s key=%s",
                self.area_name,
                self.key,
                exc_info=exc,
            )
            self._failures.append(exc)

    def _on_changed(self, changes: Mapping[str, StorageChange], area_name: str) -> None:
        if area_name != self.area_name or self.key not in changes:
            return
        new_value = changes[self.key].new_value
        _logger.debug("Storage change received area=%s key=%s", area_name, self.key)
        for listener in list(self._listeners):
            try:
                listener(new_value)
            except Exception:
                _logger.exception("Storage listener failed area=%s key=%s", area_name, self.key)
