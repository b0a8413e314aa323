"""State/sync layer.

This package owns the in-memory snapshot and is the single place where
dispatched actions are turned into storage writes and storage changes are
turned back into state.
"""

from pyreduxed.state.buffer import BufferState, PendingWrite, WriteBuffer
from pyreduxed.state.merge import StateTree, clone, is_equal, merge_or_replace
from pyreduxed.state.observable import StateObservable, Subscription
from pyreduxed.state.store import ReduxedStore

__all__ = [
    "BufferState",
    "PendingWrite",
    "ReduxedStore",
    "StateObservable",
    "StateTree",
    "Subscription",
    "WriteBuffer",
    "clone",
    "is_equal",
    "merge_or_replace",
]
