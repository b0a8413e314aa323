from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

import pytest

from pyreduxed.storage.adapters import AsyncStorage
from pyreduxed.storage.memory import MemoryNamespace

INIT_ACTION = {"type": "@@test/INIT"}


class SimpleStore:
    """Tiny redux-like store: pure reducer, sync listeners, thunk support."""

    def __init__(self, reducer: Callable[[Any, Any], Any], preloaded_state: Any = None) -> None:
        self._reducer = reducer
        self._listeners: list[Callable[[], None]] = []
        self._state = reducer(preloaded_state, INIT_ACTION)

    def get_state(self) -> Any:
        return self._state

    def subscribe(self, listener: Callable[[], None]) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def dispatch(self, action: Any) -> Any:
        if callable(action):
            return action(self.dispatch, self.get_state)
        self._state = self._reducer(self._state, action)
        for listener in list(self._listeners):
            listener()
        return action


def combine_reducers(reducers: Mapping[str, Callable[[Any, Any], Any]]) -> Callable[[Any, Any], Any]:
    def combined(state: Any, action: Any) -> dict[str, Any]:
        state = state or {}
        return {key: reducer(state.get(key), action) for key, reducer in reducers.items()}

    return combined


class StoreFactorySpy:
    """Store factory counting how many reducer stores were built."""

    def __init__(self) -> None:
        self.calls: list[dict[str, Any]] = []
        self.fail = False

    def __call__(self, *, reducer: Any, preloaded_state: Any = None, enhancer: Any = None) -> SimpleStore:
        self.calls.append({"reducer": reducer, "preloaded_state": preloaded_state, "enhancer": enhancer})
        if self.fail:
            raise RuntimeError("factory exploded")
        if isinstance(reducer, Mapping):
            reducer = combine_reducers(reducer)
        if enhancer is not None:
            return enhancer(SimpleStore)(reducer, preloaded_state)
        return SimpleStore(reducer, preloaded_state)


class CountingStorage(AsyncStorage):
    """AsyncStorage recording loads and saved values."""

    def __init__(self, namespace: MemoryNamespace, **kwargs: Any) -> None:
        super().__init__(namespace, **kwargs)
        self.load_calls = 0
        self.saved: list[Any] = []

    async def load(self) -> Any:
        self.load_calls += 1
        return await super().load()

    def save(self, value: Any) -> None:
        super().save(value)
        self.saved.append(value)


def counter_reducer(state: Any, action: Any) -> Any:
    if state is None:
        state = {"a": 1, "b": 2}
    kind = action.get("type") if isinstance(action, Mapping) else None
    if kind == "increment":
        return {**state, "count": state.get("count", 0) + 1}
    if kind == "set":
        return {**state, **action["payload"]}
    if kind == "explode":
        raise ValueError("bad action")
    return state


@pytest.fixture
def store_factory() -> StoreFactorySpy:
    return StoreFactorySpy()


@pytest.fixture
def namespace() -> MemoryNamespace:
    return MemoryNamespace()


@pytest.fixture
def storage(namespace: MemoryNamespace) -> CountingStorage:
    wrapped = CountingStorage(namespace, area="local")
    wrapped.init()
    return wrapped
