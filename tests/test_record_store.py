"""Record store: atomic saves, collection document shape, locking"""

import json
import os
import threading
import time

import pytest

from timin.core.locks import acquire_lock, clear_stale_locks, is_stale, lock_key_collection
from timin.services.record_store import COLLECTIONS, JsonRecordStore, MemoryRecordStore
from timin.utils.exceptions import StorageError


def test_missing_collection_loads_empty(store):
    assert store.load("shifts") == []


def test_save_then_load_preserves_order(store):
    records = [{"id": "a"}, {"id": "b"}, {"id": "c"}]
    store.save("shifts", records)
    assert store.load("shifts") == records


def test_document_is_a_bare_array(store):
    store.save("users", [{"id": "usr_1"}])
    data = json.loads(store.path_for("users").read_text(encoding="utf-8"))
    assert data == [{"id": "usr_1"}]


def test_wrapped_documents_are_read(store):
    store.data_dir.mkdir(parents=True, exist_ok=True)
    store.path_for("reviews").write_text('{"reviews": [{"id": "rev_1"}]}', encoding="utf-8")
    assert store.load("reviews") == [{"id": "rev_1"}]


def test_empty_file_loads_empty(store):
    store.data_dir.mkdir(parents=True, exist_ok=True)
    store.path_for("users").write_text("", encoding="utf-8")
    assert store.load("users") == []


def test_corrupt_file_raises_instead_of_wiping(store):
    store.data_dir.mkdir(parents=True, exist_ok=True)
    store.path_for("users").write_text("{not json", encoding="utf-8")
    with pytest.raises(StorageError):
        store.load("users")


def test_save_leaves_no_temp_files(store):
    store.save("shifts", [{"id": "a"}])
    store.save("shifts", [{"id": "b"}])
    leftovers = [p.name for p in store.data_dir.iterdir() if p.suffix == ".tmp"]
    assert leftovers == []


def test_ensure_collections_creates_all_files(store):
    store.ensure_collections()
    for collection in COLLECTIONS:
        assert store.path_for(collection).exists()
        assert store.load(collection) == []


def test_ensure_collections_keeps_existing_data(store):
    store.save("users", [{"id": "usr_1"}])
    store.ensure_collections()
    assert store.load("users") == [{"id": "usr_1"}]


def test_mutate_saves_on_success(store):
    with store.mutate("shifts") as records:
        records.append({"id": "sft_1"})
    assert store.load("shifts") == [{"id": "sft_1"}]


def test_mutate_discards_changes_on_error(store):
    store.save("shifts", [{"id": "sft_1"}])
    with pytest.raises(RuntimeError):
        with store.mutate("shifts") as records:
            records.append({"id": "sft_2"})
            raise RuntimeError("boom")
    assert store.load("shifts") == [{"id": "sft_1"}]


def test_mutate_releases_lock_after_error(store):
    with pytest.raises(RuntimeError):
        with store.mutate("shifts"):
            raise RuntimeError("boom")
    with store.mutate("shifts") as records:
        records.append({"id": "sft_1"})
    assert len(store.load("shifts")) == 1


def test_lock_timeout_raises_storage_error(tmp_path):
    store = JsonRecordStore(tmp_path / "data", lock_timeout_seconds=0.05)
    with acquire_lock(store.locks_dir, lock_key_collection("shifts")):
        with pytest.raises(StorageError):
            with store.mutate("shifts"):
                pass
    # other collections are independent
    with store.mutate("users"):
        pass


def test_timed_out_waiter_does_not_remove_holders_lock(tmp_path):
    store = JsonRecordStore(tmp_path / "data", lock_timeout_seconds=0.05)
    key = lock_key_collection("shifts")
    with acquire_lock(store.locks_dir, key):
        with pytest.raises(StorageError):
            with acquire_lock(store.locks_dir, key, timeout_seconds=0.05):
                pass
        assert list(store.locks_dir.glob("*.lock"))


@pytest.mark.parametrize("make_store", [
    lambda tmp_path: JsonRecordStore(tmp_path / "data", lock_timeout_seconds=30),
    lambda tmp_path: MemoryRecordStore(),
])
def test_concurrent_mutations_are_not_lost(tmp_path, make_store):
    store = make_store(tmp_path)
    per_thread = 15

    def writer(n: int) -> None:
        for i in range(per_thread):
            with store.mutate("shifts") as records:
                records.append({"id": f"{n}-{i}"})

    threads = [threading.Thread(target=writer, args=(n,)) for n in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    ids = {r["id"] for r in store.load("shifts")}
    assert len(ids) == 4 * per_thread


def test_memory_store_hands_out_copies():
    store = MemoryRecordStore()
    store.save("users", [{"id": "usr_1", "profile": {}}])
    loaded = store.load("users")
    loaded[0]["profile"]["bio"] = "changed"
    assert store.load("users") == [{"id": "usr_1", "profile": {}}]


def _dead_pid() -> int:
    pid = 999_999
    while True:
        try:
            os.kill(pid, 0)
        except ProcessLookupError:
            return pid
        except OSError:
            pass
        pid -= 1


def _leave_lock(store, collection, holder):
    path = store.locks_dir / f"{lock_key_collection(collection).replace(':', '_')}.lock"
    store.locks_dir.mkdir(parents=True, exist_ok=True)
    path.write_text(holder, encoding="utf-8")
    return path


def test_lock_of_dead_holder_is_broken(tmp_path):
    store = JsonRecordStore(tmp_path / "data", lock_timeout_seconds=0.2)
    path = _leave_lock(store, "shifts", str(_dead_pid()))
    with store.mutate("shifts") as records:
        records.append({"id": "sft_1"})
    assert store.load("shifts") == [{"id": "sft_1"}]
    assert not path.exists()


def test_expired_lock_is_broken(tmp_path):
    store = JsonRecordStore(tmp_path / "data", lock_timeout_seconds=0.2)
    path = _leave_lock(store, "shifts", str(os.getpid()))
    old = time.time() - 3600
    os.utime(path, (old, old))
    assert is_stale(path)
    with store.mutate("shifts"):
        pass


def test_live_holder_lock_is_kept(tmp_path):
    store = JsonRecordStore(tmp_path / "data")
    path = _leave_lock(store, "shifts", str(os.getppid()))
    assert not is_stale(path)
    assert clear_stale_locks(store.locks_dir) == []
    assert path.exists()


def test_own_pid_lock_counts_as_leftover_at_startup(tmp_path):
    # pids repeat across container restarts
    store = JsonRecordStore(tmp_path / "data")
    path = _leave_lock(store, "shifts", str(os.getpid()))
    assert not is_stale(path)
    assert clear_stale_locks(store.locks_dir) == [path]


def test_startup_clears_leftover_locks(tmp_path):
    store = JsonRecordStore(tmp_path / "data", lock_timeout_seconds=0.2)
    leftovers = [
        _leave_lock(store, "shifts", ""),
        _leave_lock(store, "users", str(_dead_pid())),
    ]
    store.ensure_collections()
    assert not any(p.exists() for p in leftovers)
    with store.mutate("shifts") as records:
        records.append({"id": "sft_1"})
    with store.mutate("users"):
        pass
