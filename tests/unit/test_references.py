from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from alchemy_fixtures.exceptions import ReferenceNotFoundError
from alchemy_fixtures.references import ReferenceStore


def test_set_then_lookup() -> None:
    store = ReferenceStore()
    value = object()

    store.set("k", value)

    assert store.lookup("k") == (value, True)
    assert store.get("k") is value
    assert store.require("k") is value
    assert "k" in store


def test_lookup_missing_key() -> None:
    store = ReferenceStore()

    assert store.lookup("missing") == (None, False)
    assert store.get("missing", "default") == "default"
    assert "missing" not in store


def test_stored_none_is_found() -> None:
    store = ReferenceStore()
    store.set("nothing", None)

    assert store.lookup("nothing") == (None, True)
    assert store.require("nothing") is None


def test_set_overwrites() -> None:
    store = ReferenceStore()
    store.set("k", 1)
    store.set("k", 2)

    assert store.require("k") == 2
    assert len(store) == 1


def test_require_missing_raises_recoverable_error() -> None:
    store = ReferenceStore()

    with pytest.raises(ReferenceNotFoundError) as exc_info:
        store.require("user:alice")

    assert exc_info.value.key == "user:alice"
    assert isinstance(exc_info.value, LookupError)


def test_as_dict_is_a_snapshot() -> None:
    store = ReferenceStore()
    store.set("a", 1)

    snapshot = store.as_dict()
    store.set("b", 2)

    assert snapshot == {"a": 1}
    assert sorted(store.keys()) == ["a", "b"]


def test_concurrent_writers_do_not_lose_updates() -> None:
    store = ReferenceStore()
    writers = 16
    keys_per_writer = 250
    barrier = threading.Barrier(writers)

    def write(writer: int) -> None:
        barrier.wait()
        for index in range(keys_per_writer):
            store.set(f"{writer}:{index}", index)
            assert store.require(f"{writer}:{index}") == index

    with ThreadPoolExecutor(max_workers=writers) as pool:
        list(pool.map(write, range(writers)))

    assert len(store) == writers * keys_per_writer
    assert all(store.lookup(f"{writer}:{keys_per_writer - 1}") == (keys_per_writer - 1, True) for writer in range(writers))


def test_concurrent_readers_and_writers_on_one_key() -> None:
    store = ReferenceStore()
    store.set("counter", 0)
    lock = threading.Lock()

    def increment(_: int) -> None:
        for _ in range(200):
            with lock:
                store.set("counter", store.require("counter") + 1)
            value, found = store.lookup("counter")
            assert found
            assert isinstance(value, int)

    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(increment, range(8)))

    assert store.require("counter") == 1600
