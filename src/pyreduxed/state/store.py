"""Reducer store mirrored into a key-value storage backend.

``ReduxedStore`` is the only component allowed to write the state to
storage. Its own snapshot changes exclusively through the storage change
feed, so every process sharing the storage converges on the last written
value.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from pyreduxed._redact import redact_for_log
from pyreduxed.config import clamp_buffer_life
from pyreduxed.exceptions import (
    ReduxedConfigError,
    ReduxedConstructionError,
    ReduxedError,
    ReduxedPersistenceError,
)
from pyreduxed.state.buffer import PendingWrite, WriteBuffer
from pyreduxed.state.merge import clone, is_equal, merge_or_replace
from pyreduxed.state.observable import StateObservable
from pyreduxed.storage.base import WrappedStorage
from pyreduxed.types import (
    Action,
    Enhancer,
    Listener,
    ReducerLike,
    Store,
    StoreFactory,
    Unsubscribe,
    is_reducer_like,
)

_logger = logging.getLogger(__name__)


class ReduxedStore:
    """Store-shaped handle whose state lives in storage.

    Usage::

        store = await ReduxedStore(
            store_factory=configure_store,
            reducer=reducer,
            storage=AsyncStorage(namespace, area="local"),
        ).init()
        store.dispatch({"type": "increment"})

    Dispatches are routed to a short-lived reducer store (the write buffer)
    and persisted at most once per buffer lifetime. ``get_state()`` reflects
    a dispatch only after the write has come back through the storage
    change feed.
    """

    def __init__(
        self,
        *,
        store_factory: StoreFactory,
        reducer: ReducerLike,
        storage: WrappedStorage,
        buffer_life: float | None = None,
        initial_state: Any = None,
        enhancer: Enhancer | None = None,
    ) -> None:
        if not callable(store_factory):
            raise ReduxedConfigError("Missing 'store_factory' parameter")
        if not is_reducer_like(reducer):
            raise ReduxedConfigError("Missing 'reducer' parameter")
        if storage is None:
            raise ReduxedConfigError("Missing 'storage' parameter")
        self._store_factory = store_factory
        self._reducer = reducer
        self._storage = storage
        self._enhancer = enhancer
        self._buffer_life = clamp_buffer_life(buffer_life)
        self._initial_state = initial_state
        self._state: Any = None
        self._last_state: Any = None
        self._listeners: list[Listener] = []
        self._buffer = WriteBuffer(self._buffer_life, self._on_buffer_expired)
        self._loop: asyncio.AbstractEventLoop | None = None
        self._init_task: asyncio.Task[ReduxedStore] | None = None
        self._storage_unsubscribe: Unsubscribe | None = None
        self._deferred_error: ReduxedPersistenceError | None = None

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> ReduxedStore:
        return await self.init()

    async def __aexit__(self, *exc: Any) -> None:
        await self.flush()

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def buffer_life(self) -> float:
        """Write-buffer lifetime in milliseconds (clamped)."""
        return self._buffer_life

    @property
    def storage(self) -> WrappedStorage:
        return self._storage

    @property
    def is_initialized(self) -> bool:
        task = self._init_task
        return task is not None and task.done() and not task.cancelled() and task.exception() is None

    # ------------------------------------------------------------------
    # Initialization
    # ------------------------------------------------------------------

    def init(self) -> asyncio.Task[ReduxedStore]:
        """Restore the persisted state; resolves to ``self`` once ready.

        Every call returns the same task, so awaiting it again after
        initialization completes immediately without touching storage.
        Must be called from a running event loop.
        """
        if self._init_task is not None:
            return self._init_task

        loop = asyncio.get_running_loop()
        # The seed state must not leak into the reducer defaults.
        default_state = self._configure_store(None).get_state()
        self._storage.init()
        self._storage_unsubscribe = self._storage.subscribe(self._on_storage_change)
        self._loop = loop
        self._init_task = loop.create_task(self._restore(default_state, self._initial_state))
        return self._init_task

    async def _restore(self, default_state: Any, initial_state: Any) -> ReduxedStore:
        stored_state = await self._storage.load()
        _logger.debug("Loaded persisted state key=%s state=%s", self._storage.key, redact_for_log(stored_state))

        state = merge_or_replace(default_state, stored_state) if stored_state is not None else default_state
        if initial_state is not None:
            state = merge_or_replace(state, initial_state)
        self._set_state(state)
        if not is_equal(state, stored_state):
            self._send_to_storage(state)
        self._last_state = clone(state)
        _logger.debug("Store initialized key=%s state=%s", self._storage.key, redact_for_log(state))
        return self

    # ------------------------------------------------------------------
    # Store-shaped contract
    # ------------------------------------------------------------------

    def get_state(self) -> Any:
        return self._state

    def subscribe(self, listener: Listener) -> Unsubscribe:
        """Register *listener*; returns an idempotent unsubscribe function."""
        if not callable(listener):
            raise ReduxedConfigError("Expected the listener to be callable")
        self._listeners.append(listener)

        def unsubscribe() -> None:
            self._listeners = [fn for fn in self._listeners if fn is not listener]

        return unsubscribe

    def dispatch(self, action: Action) -> Any:
        """Forward *action* to the write buffer's store and return its result."""
        loop = self._require_loop()
        if not self._buffer.is_active:
            store = self._configure_store(self._state)
            self._last_state = clone(store.get_state())
            self._buffer.activate(store, loop)

        pending = PendingWrite(store=self._buffer.store)
        assert pending.store is not None  # noqa: S101
        pending.unsubscribe = pending.store.subscribe(lambda: self._on_dispatch_change(pending))
        return pending.store.dispatch(action)

    def replace_reducer(self, next_reducer: ReducerLike) -> ReduxedStore:
        """Use *next_reducer* for reducer stores created from now on."""
        if not is_reducer_like(next_reducer):
            raise ReduxedConfigError("Expected the next reducer to be a callable or a mapping of reducers")
        self._reducer = next_reducer
        return self

    def observable(self) -> StateObservable:
        return StateObservable(self.get_state, self.subscribe)

    async def flush(self) -> None:
        """Persist a pending buffered change now and wait for storage writes.

        Raises ``ReduxedPersistenceError`` for a write that failed since the
        last flush.
        """
        store = self._buffer.take_dirty()
        if store is not None:
            self._persist_from(store)
        await self._storage.flush()
        if self._deferred_error is not None:
            error = self._deferred_error
            self._deferred_error = None
            raise error

    async def close(self) -> None:
        """Flush, then stop reconciling external storage changes."""
        try:
            await self.flush()
        finally:
            unsubscribe = self._storage_unsubscribe
            self._storage_unsubscribe = None
            if unsubscribe is not None:
                unsubscribe()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _require_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            raise ReduxedError("Store not initialized. Await 'store.init()' first")
        return self._loop

    def _configure_store(self, preloaded_state: Any) -> Store:
        try:
            return self._store_factory(
                reducer=self._reducer,
                preloaded_state=preloaded_state,
                enhancer=self._enhancer,
            )
        except Exception as exc:
            raise ReduxedConstructionError(f"store_factory() call failed: {exc}") from exc

    def _set_state(self, data: Any) -> None:
        if data is not None:
            self._state = clone(data)

    def _send_to_storage(self, data: Any) -> None:
        try:
            self._storage.save(data)
        except ReduxedPersistenceError:
            raise
        except Exception as exc:
            raise ReduxedPersistenceError(
                f"Failed to persist state to {self._storage.key!r} in area {self._storage.area_name!r}: {exc}",
                area=self._storage.area_name,
                key=self._storage.key,
            ) from exc
        _logger.debug("State persisted key=%s", self._storage.key)

    def _persist_from(self, store: Store) -> bool:
        state = store.get_state()
        if is_equal(state, self._last_state):
            return False
        self._send_to_storage(state)
        self._last_state = clone(state)
        return True

    def _on_dispatch_change(self, pending: PendingWrite) -> None:
        captured = pending.store
        if captured is None:
            return
        # An async action may settle after its buffer expired.
        current = self._buffer.store if self._buffer.is_active else captured
        assert current is not None  # noqa: S101
        if is_equal(current.get_state(), self._last_state):
            return
        pending.release()
        if self._buffer.is_active:
            self._buffer.mark_dirty()
        else:
            self._persist_from(current)

    def _on_buffer_expired(self, store: Store) -> None:
        try:
            self._persist_from(store)
        except ReduxedPersistenceError as exc:
            _logger.error("Buffered state could not be persisted key=%s", self._storage.key, exc_info=exc)
            self._deferred_error = exc

    def _on_storage_change(self, data: Any) -> None:
        if data is None:
            _logger.debug("Storage change ignored key=%s (removed)", self._storage.key)
            return
        if is_equal(data, self._state):
            _logger.debug("Storage change ignored key=%s (unchanged)", self._storage.key)
            return
        self._set_state(data)
        for listener in list(self._listeners):
            try:
                listener()
            except Exception:
                _logger.exception("Store listener failed key=%s", self._storage.key)

