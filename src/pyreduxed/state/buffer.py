"""Write buffer: the short-lived store that coalesces a burst of dispatches.

The buffer is a two-state machine::

    EMPTY --activate()--> ACTIVE(store, deadline) --timer--> EMPTY

Exactly one timer is armed per activation and it is never cancelled; it
simply hands a dirty store to the expiry callback and empties the slot.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum

from pyreduxed.types import Store, Unsubscribe

_logger = logging.getLogger(__name__)


class BufferState(StrEnum):
    EMPTY = "empty"
    ACTIVE = "active"


class WriteBuffer:
    """Slot holding at most one active reducer store.

    Parameters
    ----------
    lifetime_ms : float
        How long an activated store stays the dispatch target.
    on_expire : callable
        Called with the expiring store when it was marked dirty during
        its lifetime.
    """

    def __init__(self, lifetime_ms: float, on_expire: Callable[[Store], None]) -> None:
        self._lifetime_s = lifetime_ms / 1000.0
        self._on_expire = on_expire
        self._store: Store | None = None
        self._deadline: float | None = None
        self._dirty = False

    @property
    def state(self) -> BufferState:
        return BufferState.ACTIVE if self._store is not None else BufferState.EMPTY

    @property
    def is_active(self) -> bool:
        return self._store is not None

    @property
    def store(self) -> Store | None:
        return self._store

    @property
    def deadline(self) -> float | None:
        """Loop time at which the active store expires."""
        return self._deadline

    @property
    def dirty(self) -> bool:
        return self._dirty

    def activate(self, store: Store, loop: asyncio.AbstractEventLoop) -> Store:
        """Make *store* the dispatch target for one lifetime."""
        if self._store is not None:
            raise RuntimeError("write buffer is already active")
        self._store = store
        self._dirty = False
        self._deadline = loop.time() + self._lifetime_s
        loop.call_later(self._lifetime_s, self._expire, store)
        _logger.debug("Write buffer activated lifetime=%.3fs", self._lifetime_s)
        return store

    def mark_dirty(self) -> None:
        if self._store is not None:
            self._dirty = True

    def take_dirty(self) -> Store | None:
        """Return the active store if dirty, clearing the flag."""
        if self._store is None or not self._dirty:
            return None
        self._dirty = False
        return self._store

    def _expire(self, store: Store) -> None:
        if self._store is not store:
            return
        dirty = self._dirty
        self._store = None
        self._deadline = None
        self._dirty = False
        _logger.debug("Write buffer expired dirty=%s", dirty)
        if dirty:
            self._on_expire(store)


@dataclass(slots=True)
class PendingWrite:
    """Per-dispatch handle on the store an action was dispatched against.

    Outlives the buffer slot, so an action completing after expiry still
    knows which store to read from.
    """

    store: Store | None
    unsubscribe: Unsubscribe | None = None

    @property
    def released(self) -> bool:
        return self.store is None

    def release(self) -> None:
        unsubscribe = self.unsubscribe
        self.store = None
        self.unsubscribe = None
        if unsubscribe is not None:
            unsubscribe()
