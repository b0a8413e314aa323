"""Observable-protocol view over a store's state."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from pyreduxed.exceptions import ReduxedObserverError
from pyreduxed.types import Listener, Observer, Unsubscribe

_NON_OBJECT_TYPES = (str, bytes, bytearray, int, float, complex)


class Subscription:
    """Handle returned by ``StateObservable.subscribe``."""

    def __init__(self, unsubscribe: Unsubscribe) -> None:
        self._unsubscribe: Unsubscribe | None = unsubscribe

    @property
    def closed(self) -> bool:
        return self._unsubscribe is None

    def unsubscribe(self) -> None:
        unsubscribe = self._unsubscribe
        self._unsubscribe = None
        if unsubscribe is not None:
            unsubscribe()


class StateObservable:
    """Pushes the current state, then every subsequent state, to observers."""

    def __init__(
        self,
        get_state: Callable[[], Any],
        subscribe: Callable[[Listener], Unsubscribe],
    ) -> None:
        self._get_state = get_state
        self._subscribe = subscribe

    def subscribe(self, observer: Observer) -> Subscription:
        if observer is None or isinstance(observer, _NON_OBJECT_TYPES):
            raise ReduxedObserverError("Expected the observer to be an object.")

        def observe_state() -> None:
            push = getattr(observer, "next", None)
            if callable(push):
                push(self._get_state())

        observe_state()
        return Subscription(self._subscribe(observe_state))

    def observable(self) -> StateObservable:
        return self
