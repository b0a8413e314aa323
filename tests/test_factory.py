from __future__ import annotations

import asyncio
from typing import Any

import pytest

from pyreduxed.config import ReduxedConfig
from pyreduxed.exceptions import ReduxedConfigError
from pyreduxed.factory import create_store_creator
from pyreduxed.state.store import ReduxedStore
from pyreduxed.storage.adapters import AsyncStorage, CallbackStorage
from pyreduxed.storage.memory import MemoryNamespace

from conftest import SimpleStore, StoreFactorySpy, counter_reducer


def _logging_enhancer(log: list[Any]) -> Any:
    def enhancer(create_store: Any) -> Any:
        def create(reducer: Any, preloaded_state: Any = None) -> SimpleStore:
            def logged(state: Any, action: Any) -> Any:
                log.append(action)
                return reducer(state, action)

            return create_store(logged, preloaded_state)

        return create

    return enhancer


def test_missing_store_factory_is_rejected() -> None:
    with pytest.raises(ReduxedConfigError):
        create_store_creator(None, namespace=MemoryNamespace())  # type: ignore[arg-type]


def test_missing_storage_is_rejected() -> None:
    with pytest.raises(ReduxedConfigError):
        create_store_creator(StoreFactorySpy())


@pytest.mark.asyncio
async def test_creator_resolves_to_initialized_store() -> None:
    namespace = MemoryNamespace()
    create_store = create_store_creator(
        StoreFactorySpy(),
        namespace=namespace,
        config=ReduxedConfig(storage_area="local", storage_key="app", buffer_life=20),
    )

    store = await create_store(counter_reducer, {"b": 7})
    await store.flush()

    assert isinstance(store, ReduxedStore)
    assert isinstance(store.storage, AsyncStorage)
    assert store.is_initialized
    assert store.buffer_life == 20.0
    assert store.get_state() == {"a": 1, "b": 7}
    assert namespace.area("local").peek("app") == {"a": 1, "b": 7}


@pytest.mark.asyncio
async def test_creator_accepts_reducer_mapping() -> None:
    namespace = MemoryNamespace()
    create_store = create_store_creator(StoreFactorySpy(), namespace=namespace, config=ReduxedConfig(storage_area="local"))

    store = await create_store({"counter": counter_reducer})

    assert store.get_state() == {"counter": {"a": 1, "b": 2}}


@pytest.mark.asyncio
async def test_callable_initial_state_is_treated_as_enhancer() -> None:
    log: list[Any] = []
    factory = StoreFactorySpy()
    create_store = create_store_creator(factory, namespace=MemoryNamespace(), config=ReduxedConfig(storage_area="local"))

    store = await create_store(counter_reducer, _logging_enhancer(log))

    assert factory.calls[0]["enhancer"] is not None
    assert log
    assert store.get_state() == {"a": 1, "b": 2}


def test_two_enhancers_are_rejected_before_any_storage_work() -> None:
    namespace = MemoryNamespace()
    create_store = create_store_creator(StoreFactorySpy(), namespace=namespace)

    with pytest.raises(ReduxedConfigError, match="Multiple 'enhancer'"):
        create_store(counter_reducer, _logging_enhancer([]), _logging_enhancer([]))
    assert namespace.area("sync").set_count == 0


@pytest.mark.parametrize("reducer", [None, "reducer", 42])
def test_non_reducer_is_rejected_without_awaiting(reducer: Any) -> None:
    create_store = create_store_creator(StoreFactorySpy(), namespace=MemoryNamespace())

    with pytest.raises(ReduxedConfigError, match="Missing 'reducer'"):
        create_store(reducer)


@pytest.mark.asyncio
async def test_create_store_returns_init_task() -> None:
    create_store = create_store_creator(StoreFactorySpy(), namespace=MemoryNamespace())

    pending = create_store(counter_reducer)

    assert isinstance(pending, asyncio.Task)
    store = await pending
    assert store.is_initialized


@pytest.mark.asyncio
async def test_stores_from_one_creator_share_storage() -> None:
    namespace = MemoryNamespace()
    create_store = create_store_creator(
        StoreFactorySpy(),
        namespace=namespace,
        config=ReduxedConfig(storage_area="local", buffer_life=10),
    )
    first = await create_store(counter_reducer)
    second = await create_store(counter_reducer)

    first.dispatch({"type": "increment"})
    await asyncio.sleep(0.1)

    assert first.storage is second.storage
    assert second.get_state()["count"] == 1


@pytest.mark.asyncio
async def test_callback_namespace_selects_callback_storage() -> None:
    class SyncOnlyNamespace:
        last_error = None

        def __init__(self) -> None:
            self.items: dict[str, Any] = {}

        def area(self, name: str) -> Any:
            return self

        def get(self, key: str, callback: Any) -> None:
            callback({key: self.items[key]} if key in self.items else {})

        def set(self, items: Any, callback: Any = None) -> None:
            self.items.update(items)
            if callback is not None:
                callback()

        def add_change_listener(self, listener: Any) -> None:
            pass

        def remove_change_listener(self, listener: Any) -> None:
            pass

    backend = SyncOnlyNamespace()
    create_store = create_store_creator(StoreFactorySpy(), callback_namespace=backend)

    store = await create_store(counter_reducer)
    await store.flush()

    assert isinstance(store.storage, CallbackStorage)
    assert backend.items == {"reduxed": {"a": 1, "b": 2}}


@pytest.mark.asyncio
async def test_failing_subscriber_does_not_starve_other_stores() -> None:
    namespace = MemoryNamespace()
    create_store = create_store_creator(
        StoreFactorySpy(),
        namespace=namespace,
        config=ReduxedConfig(storage_area="local", buffer_life=10),
    )
    first = await create_store(counter_reducer)
    second = await create_store(counter_reducer)
    await asyncio.sleep(0.05)
    seen: list[Any] = []

    def explode() -> None:
        raise RuntimeError("subscriber failed")

    first.subscribe(explode)
    first.subscribe(lambda: seen.append(first.get_state()))

    await namespace.area("local").set({"reduxed": {"a": 9}})
    await asyncio.sleep(0.05)

    assert seen == [{"a": 9}]
    assert second.get_state() == {"a": 9}
