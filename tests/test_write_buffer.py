from __future__ import annotations

import asyncio
from typing import Any

import pytest

from pyreduxed.state.buffer import BufferState, PendingWrite, WriteBuffer

from conftest import SimpleStore, counter_reducer


@pytest.mark.asyncio
async def test_buffer_expires_after_lifetime() -> None:
    expired: list[Any] = []
    buffer = WriteBuffer(10, expired.append)
    store = SimpleStore(counter_reducer)

    buffer.activate(store, asyncio.get_running_loop())
    assert buffer.state == BufferState.ACTIVE
    assert buffer.store is store
    assert buffer.deadline is not None

    await asyncio.sleep(0.05)

    assert buffer.state == BufferState.EMPTY
    assert buffer.store is None
    assert expired == []


@pytest.mark.asyncio
async def test_dirty_buffer_hands_store_to_expiry_callback() -> None:
    expired: list[Any] = []
    buffer = WriteBuffer(10, expired.append)
    store = SimpleStore(counter_reducer)

    buffer.activate(store, asyncio.get_running_loop())
    buffer.mark_dirty()
    await asyncio.sleep(0.05)

    assert expired == [store]


@pytest.mark.asyncio
async def test_take_dirty_clears_flag() -> None:
    expired: list[Any] = []
    buffer = WriteBuffer(10, expired.append)
    store = SimpleStore(counter_reducer)
    buffer.activate(store, asyncio.get_running_loop())
    buffer.mark_dirty()

    assert buffer.take_dirty() is store
    assert buffer.take_dirty() is None
    await asyncio.sleep(0.05)
    assert expired == []


@pytest.mark.asyncio
async def test_activate_twice_is_rejected() -> None:
    buffer = WriteBuffer(10, lambda store: None)
    loop = asyncio.get_running_loop()
    buffer.activate(SimpleStore(counter_reducer), loop)

    with pytest.raises(RuntimeError):
        buffer.activate(SimpleStore(counter_reducer), loop)


def test_mark_dirty_on_empty_buffer_is_ignored() -> None:
    buffer = WriteBuffer(10, lambda store: None)
    buffer.mark_dirty()
    assert not buffer.dirty


def test_pending_write_release_unsubscribes_once() -> None:
    store = SimpleStore(counter_reducer)
    calls: list[int] = []
    pending = PendingWrite(store=store)
    pending.unsubscribe = store.subscribe(lambda: calls.append(1))

    pending.release()
    pending.release()
    store.dispatch({"type": "increment"})

    assert pending.released
    assert calls == []
