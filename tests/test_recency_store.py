"""
Tests for the recently viewed clients store.
"""

import json

import pytest

from wealth_rm.clients.recency_store import (
    JsonFileStorage,
    MemoryStorage,
    RecencyStore,
    decode_recency,
    get_default_store,
    prune,
    touch_recent,
)


class _FailingStorage:
    def read(self):
        raise OSError("disk gone")

    def write(self, payload):
        raise OSError("disk full")


class TestDecode:
    def test_empty_payload(self):
        assert decode_recency(None) == {}
        assert decode_recency("") == {}

    def test_malformed_json_is_empty(self):
        assert decode_recency("{not json") == {}

    def test_non_object_is_empty(self):
        assert decode_recency("[1, 2, 3]") == {}
        assert decode_recency('"client"') == {}

    def test_non_numeric_values_dropped(self):
        payload = json.dumps({"1": 100, "2": "yesterday", "3": None, "4": True, "5": 2.5})
        assert decode_recency(payload) == {"1": 100, "5": 2}


class TestPrune:
    def test_keeps_latest(self):
        entries = {"a": 1, "b": 3, "c": 2}
        assert list(prune(entries, 2)) == ["b", "c"]

    def test_equal_timestamps_keep_incoming_order(self):
        entries = {"new": 5, "old": 5, "older": 5}
        assert list(prune(entries, 2)) == ["new", "old"]

    def test_zero_capacity(self):
        assert prune({"a": 1}, 0) == {}


class TestTouch:
    def test_records_client(self, store):
        result = store.touch(7, now_ms=1000)
        assert result == {"7": 1000}
        assert store.snapshot() == {"7": 1000}
        assert 7 in store
        assert "7" in store

    def test_uses_clock_when_no_time_given(self):
        store = RecencyStore(MemoryStorage(), clock=lambda: 4242)
        assert store.touch("c1") == {"c1": 4242}

    def test_retouch_refreshes_without_growing(self, store):
        store.touch("a", now_ms=1)
        store.touch("b", now_ms=2)
        store.touch("a", now_ms=3)
        snapshot = store.snapshot()
        assert len(snapshot) == 2
        assert snapshot["a"] == 3
        assert list(snapshot) == ["a", "b"]

    def test_capacity_bound(self):
        store = RecencyStore(MemoryStorage(), capacity=50)
        for i in range(60):
            store.touch(f"c{i}", now_ms=1000 + i)
        snapshot = store.snapshot()
        assert len(snapshot) == 50
        assert set(snapshot) == {f"c{i}" for i in range(10, 60)}

    def test_capacity_bound_with_identical_timestamps(self):
        store = RecencyStore(MemoryStorage(), capacity=50, clock=lambda: 1000)
        for i in range(60):
            store.touch(f"c{i}")
        snapshot = store.snapshot()
        assert len(snapshot) == 50
        assert "c59" in snapshot
        assert "c0" not in snapshot

    def test_existing_entries_survive_touch(self):
        storage = MemoryStorage(json.dumps({"x": 10, "y": 20}))
        store = RecencyStore(storage)
        store.touch("z", now_ms=30)
        assert store.snapshot() == {"z": 30, "y": 20, "x": 10}

    def test_malformed_storage_recovers_on_touch(self):
        store = RecencyStore(MemoryStorage("garbage"))
        assert store.snapshot() == {}
        assert store.touch("a", now_ms=5) == {"a": 5}

    def test_clear(self, store):
        store.touch("a")
        store.clear()
        assert len(store) == 0


class TestFailSoft:
    def test_unreadable_storage_is_empty(self):
        store = RecencyStore(_FailingStorage())
        assert store.snapshot() == {}

    def test_failed_write_does_not_raise(self):
        store = RecencyStore(_FailingStorage())
        assert store.touch("a", now_ms=9) == {"a": 9}


class TestJsonFileStorage:
    def test_round_trip_on_disk(self, tmp_path):
        path = tmp_path / "nested" / "recent.json"
        store = RecencyStore(JsonFileStorage(path))
        store.touch("a", now_ms=1)
        store.touch("b", now_ms=2)

        assert json.loads(path.read_text()) == {"b": 2, "a": 1}
        # a fresh store over the same file sees the persisted map
        assert RecencyStore(JsonFileStorage(path)).snapshot() == {"b": 2, "a": 1}

    def test_missing_file_reads_none(self, tmp_path):
        assert JsonFileStorage(tmp_path / "absent.json").read() is None

    def test_no_temp_files_left_behind(self, tmp_path):
        path = tmp_path / "recent.json"
        RecencyStore(JsonFileStorage(path)).touch("a", now_ms=1)
        assert [p.name for p in tmp_path.iterdir()] == ["recent.json"]

    def test_corrupt_file_is_empty(self, tmp_path):
        path = tmp_path / "recent.json"
        path.write_text("{{{")
        assert RecencyStore(JsonFileStorage(path)).snapshot() == {}


class TestDefaultStore:
    def test_default_store_lives_under_app_home(self, isolated_home):
        touch_recent("c1")
        assert (isolated_home / "data" / "recent_clients_v1.json").exists()

    def test_env_override(self, tmp_path, monkeypatch):
        target = tmp_path / "elsewhere.json"
        monkeypatch.setenv("WEALTH_RM_RECENCY_FILE", str(target))
        from wealth_rm.clients.recency_store import reset_default_store

        reset_default_store()
        get_default_store().touch("c1", now_ms=1)
        assert json.loads(target.read_text()) == {"c1": 1}

    def test_default_store_is_cached(self):
        assert get_default_store() is get_default_store()


@pytest.mark.parametrize("client_id", [42, "42"])
def test_int_and_str_ids_share_a_key(store, client_id):
    store.touch(42, now_ms=1)
    store.touch(client_id, now_ms=2)
    assert store.snapshot() == {"42": 2}
