"""Concrete wrappers normalizing awaitable and callback-style backends."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from typing import Any

from pyreduxed._constants import DEFAULT_STORAGE_AREA, DEFAULT_STORAGE_KEY
from pyreduxed.exceptions import ReduxedPersistenceError, ReduxedStorageError
from pyreduxed.storage.base import (
    AsyncStorageArea,
    AsyncStorageNamespace,
    CallbackStorageArea,
    CallbackStorageNamespace,
    ChangeListener,
    StorageChange,
    WrappedStorage,
)

_logger = logging.getLogger(__name__)


class AsyncStorage(WrappedStorage):
    """Wraps a backend whose ``get``/``set`` are coroutines."""

    def __init__(
        self,
        namespace: AsyncStorageNamespace,
        *,
        area: str = DEFAULT_STORAGE_AREA,
        key: str = DEFAULT_STORAGE_KEY,
    ) -> None:
        super().__init__(area=area, key=key)
        self._namespace = namespace
        self._area: AsyncStorageArea = namespace.area(area)

    @property
    def quota_bytes_per_item(self) -> int | None:
        return getattr(self._area, "quota_bytes_per_item", None)

    def _add_change_listener(self, listener: ChangeListener) -> None:
        self._namespace.add_change_listener(listener)

    def _remove_change_listener(self, listener: ChangeListener) -> None:
        self._namespace.remove_change_listener(listener)

    async def _read(self) -> dict[str, Any]:
        return await self._area.get(self.key)

    async def _write(self, items: dict[str, Any]) -> None:
        await self._area.set(items)


class CallbackStorage(WrappedStorage):
    """Wraps a backend reporting results through callbacks.

    Callbacks and change events may run on a foreign thread; both are
    handed back to the owning event loop with ``call_soon_threadsafe``.
    ``init()`` must therefore be called from the running loop.
    """

    def __init__(
        self,
        namespace: CallbackStorageNamespace,
        *,
        area: str = DEFAULT_STORAGE_AREA,
        key: str = DEFAULT_STORAGE_KEY,
    ) -> None:
        super().__init__(area=area, key=key)
        self._namespace = namespace
        self._area: CallbackStorageArea = namespace.area(area)
        self._loop: asyncio.AbstractEventLoop | None = None

    @property
    def quota_bytes_per_item(self) -> int | None:
        return getattr(self._area, "quota_bytes_per_item", None)

    def init(self) -> None:
        self._loop = asyncio.get_running_loop()
        super().init()

    def _add_change_listener(self, listener: ChangeListener) -> None:
        self._namespace.add_change_listener(listener)

    def _remove_change_listener(self, listener: ChangeListener) -> None:
        self._namespace.remove_change_listener(listener)

    def _on_changed(self, changes: Mapping[str, StorageChange], area_name: str) -> None:
        loop = self._loop
        if loop is None or loop.is_closed():
            _logger.debug("Storage change dropped area=%s key=%s (no loop)", area_name, self.key)
            return
        loop.call_soon_threadsafe(super()._on_changed, dict(changes), area_name)

    async def _read(self) -> dict[str, Any]:
        loop = asyncio.get_running_loop()
        future: asyncio.Future[dict[str, Any]] = loop.create_future()

        def on_items(items: dict[str, Any]) -> None:
            error = self._namespace.last_error
            if error:
                exc = ReduxedStorageError(
                    f"Failed to load {self.key!r} from storage area {self.area_name!r}: {error}",
                    area=self.area_name,
                    key=self.key,
                )
                loop.call_soon_threadsafe(_settle, future, None, exc)
            else:
                loop.call_soon_threadsafe(_settle, future, dict(items or {}), None)

        self._area.get(self.key, on_items)
        return await future

    async def _write(self, items: dict[str, Any]) -> None:
        loop = asyncio.get_running_loop()
        future: asyncio.Future[None] = loop.create_future()

        def on_written() -> None:
            error = self._namespace.last_error
            if error:
                exc = ReduxedPersistenceError(
                    f"Failed to write {self.key!r} to storage area {self.area_name!r}: {error}",
                    area=self.area_name,
                    key=self.key,
                )
                loop.call_soon_threadsafe(_settle, future, None, exc)
            else:
                loop.call_soon_threadsafe(_settle, future, None, None)

        self._area.set(items, on_written)
        await future


def _settle(future: asyncio.Future[Any], result: Any, exc: BaseException | None) -> None:
    if future.done():
        return
    if exc is not None:
        future.set_exception(exc)
    else:
        future.set_result(result)
