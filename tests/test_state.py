"""Tests for the runtime state stores."""

from __future__ import annotations

import pytest

from atelier_client.state import DiskStateStore, MemoryStateStore


@pytest.fixture()
def disk_store(tmp_path):
    """Create a DiskStateStore rooted at tmp_path."""
    s = DiskStateStore(tmp_path)
    yield s
    s.close()


@pytest.fixture(params=["memory", "disk"])
def any_store(request, tmp_path):
    if request.param == "memory":
        yield MemoryStateStore()
    else:
        s = DiskStateStore(tmp_path)
        yield s
        s.close()


# ------------------------------------------------------------------ #
# Shared behaviour
# ------------------------------------------------------------------ #


class TestGetUpdate:
    def test_missing_key_returns_default(self, any_store) -> None:
        assert any_store.get("dev:apiVersion") is None
        assert any_store.get("dev:apiVersion", 1) == 1

    def test_update_and_get(self, any_store) -> None:
        any_store.update("dev:apiVersion", 6)
        assert any_store.get("dev:apiVersion") == 6

    def test_none_deletes(self, any_store) -> None:
        any_store.update("dev:host", "iris")
        any_store.update("dev:host", None)
        assert any_store.get("dev:host", "gone") == "gone"

    def test_delete_missing_is_noop(self, any_store) -> None:
        any_store.update("dev:port", None)
        assert any_store.get("dev:port") is None

    def test_lists_round_trip(self, any_store) -> None:
        any_store.update("API:h:1:cookies", ["a=1", "b=2"])
        assert any_store.get("API:h:1:cookies") == ["a=1", "b=2"]

    def test_keys_by_prefix(self, any_store) -> None:
        any_store.update("dev:port", 1)
        any_store.update("dev:host", "h")
        any_store.update("prod:host", "p")
        assert any_store.keys("dev:") == ["dev:host", "dev:port"]

    def test_clear(self, any_store) -> None:
        any_store.update("dev:host", "h")
        any_store.clear()
        assert any_store.keys() == []


# ------------------------------------------------------------------ #
# Disk persistence
# ------------------------------------------------------------------ #


class TestDiskStateStore:
    def test_directory(self, disk_store, tmp_path) -> None:
        assert disk_store.directory == tmp_path / "state"
        assert disk_store.directory.is_dir()

    def test_survives_reopen(self, tmp_path) -> None:
        first = DiskStateStore(tmp_path)
        first.update("dev:apiVersion", 5)
        first.close()

        second = DiskStateStore(tmp_path)
        try:
            assert second.get("dev:apiVersion") == 5
        finally:
            second.close()


def test_memory_store_initial_values() -> None:
    store = MemoryStateStore({"dev:port": 52773})
    assert store.get("dev:port") == 52773
