"""Store-creator factory.

``create_store_creator()`` returns a function that stands in for a
synchronous ``configure_store``: it checks its arguments on the spot and
returns a task resolving to a ``ReduxedStore`` once the persisted state
has been restored.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any, TypeAlias

from pyreduxed.config import ReduxedConfig
from pyreduxed.exceptions import ReduxedConfigError
from pyreduxed.state.store import ReduxedStore
from pyreduxed.storage.adapters import AsyncStorage, CallbackStorage
from pyreduxed.storage.base import AsyncStorageNamespace, CallbackStorageNamespace, WrappedStorage
from pyreduxed.types import Enhancer, ReducerLike, StoreFactory, is_reducer_like

_logger = logging.getLogger(__name__)

StoreCreator: TypeAlias = Callable[..., asyncio.Task[ReduxedStore]]


def _build_storage(
    config: ReduxedConfig,
    namespace: AsyncStorageNamespace | None,
    callback_namespace: CallbackStorageNamespace | None,
) -> WrappedStorage:
    if namespace is not None:
        return AsyncStorage(namespace, area=config.storage_area, key=config.storage_key)
    if callback_namespace is not None:
        return CallbackStorage(callback_namespace, area=config.storage_area, key=config.storage_key)
    raise ReduxedConfigError("Missing storage: pass 'storage', 'namespace' or 'callback_namespace'")


def create_store_creator(
    store_factory: StoreFactory,
    *,
    namespace: AsyncStorageNamespace | None = None,
    callback_namespace: CallbackStorageNamespace | None = None,
    storage: WrappedStorage | None = None,
    config: ReduxedConfig | None = None,
) -> StoreCreator:
    """Build an async store creator bound to one storage key.

    Parameters
    ----------
    store_factory : callable
        Reducer-store factory, called as
        ``store_factory(reducer=..., preloaded_state=..., enhancer=...)``.
    namespace : AsyncStorageNamespace, optional
        Backend with awaitable ``get``/``set``.
    callback_namespace : CallbackStorageNamespace, optional
        Backend with callback-style ``get``/``set``. Ignored when
        *namespace* is given.
    storage : WrappedStorage, optional
        Ready-made adapter; takes precedence over both namespaces. Shared by
        every store the creator builds and initialized by the first of them.
    config : ReduxedConfig, optional
        Storage area, key and buffer lifetime. Defaults to ``ReduxedConfig()``.

    Returns
    -------
    callable
        ``create_store(reducer, initial_state=None, enhancer=None)``: checks
        its arguments right away, then returns the store's ``init()`` task,
        which resolves to the initialized ``ReduxedStore``. Must be called
        from the running event loop.
    """
    if not callable(store_factory):
        raise ReduxedConfigError("Missing 'store_factory' parameter")
    config = config or ReduxedConfig()
    wrapped = storage if storage is not None else _build_storage(config, namespace, callback_namespace)
    _logger.debug("Store creator bound area=%s key=%s", wrapped.area_name, wrapped.key)

    def create_store(
        reducer: ReducerLike,
        initial_state: Any = None,
        enhancer: Enhancer | None = None,
    ) -> asyncio.Task[ReduxedStore]:
        if not is_reducer_like(reducer):
            raise ReduxedConfigError("Missing 'reducer' parameter")
        if callable(initial_state) and callable(enhancer):
            raise ReduxedConfigError("Multiple 'enhancer' parameters unallowed")
        if callable(initial_state) and enhancer is None:
            enhancer = initial_state
            initial_state = None
        store = ReduxedStore(
            store_factory=store_factory,
            reducer=reducer,
            storage=wrapped,
            buffer_life=config.buffer_life,
            initial_state=initial_state,
            enhancer=enhancer,
        )
        return store.init()

    return create_store
