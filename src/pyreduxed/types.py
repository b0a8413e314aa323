"""Structural interfaces for the collaborators the engine is built from.

The reducer store itself is supplied by the caller through a store factory;
pyreduxed only relies on the shapes declared here, which keeps any
redux-like implementation (or a test double) pluggable.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any, Protocol, TypeAlias

Action: TypeAlias = Any
Reducer: TypeAlias = Callable[[Any, Action], Any]
ReducerLike: TypeAlias = Reducer | Mapping[str, Reducer]
Listener: TypeAlias = Callable[[], None]
Unsubscribe: TypeAlias = Callable[[], None]
Enhancer: TypeAlias = Callable[..., Any]


class Store(Protocol):
    """Minimal reducer-store interface produced by a store factory."""

    def get_state(self) -> Any:
        ...

    def dispatch(self, action: Action) -> Any:
        ...

    def subscribe(self, listener: Listener) -> Unsubscribe:
        ...


class StoreFactory(Protocol):
    """Builds a reducer store, e.g. a ``configure_store`` function.

    Any exception raised here is treated as a fatal construction failure.
    """

    def __call__(
        self,
        *,
        reducer: ReducerLike,
        preloaded_state: Any = None,
        enhancer: Enhancer | None = None,
    ) -> Store:
        ...


class Observer(Protocol):
    """Receiver of state pushes from ``StateObservable``."""

    def next(self, value: Any) -> None:
        ...


def is_reducer_like(value: Any) -> bool:
    """Whether *value* can be handed to a store factory as a reducer."""
    return callable(value) or isinstance(value, Mapping)
