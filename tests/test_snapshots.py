from datetime import date

import pytest

from medicore.models import Patient
from medicore.services.backups import backup_filename, list_backups, restore_backup, write_backup
from medicore.services.errors import StorageQuotaExceeded, StoreCorrupt
from medicore.services.seed import seed_defaults
from medicore.services.snapshots import SNAPSHOT_KEY, FileByteStore, SnapshotPersister
from medicore.services.store import RecordStore


def _open(byte_store):
    return RecordStore(SnapshotPersister(byte_store), seed=seed_defaults).open()


def test_first_boot_seeds_and_persists(byte_store):
    store = _open(byte_store)
    try:
        assert byte_store.read(SNAPSHOT_KEY) is not None
        assert store.recovered_from_corruption is False
    finally:
        store.close()


def test_reopen_hydrates_from_durable_copy(byte_store):
    first = _open(byte_store)
    first.upsert("patients", "p3", Patient(id="p3", name="Persisted"))
    first.delete("patients", "p2")
    first.close()

    second = _open(byte_store)
    try:
        assert [p.id for p in second.get_all("patients")] == ["p1", "p3"]
    finally:
        second.close()


def test_corrupt_snapshot_reseeds_and_quarantines(byte_store):
    byte_store.blobs[SNAPSHOT_KEY] = b"\x00garbage\x00"
    store = _open(byte_store)
    try:
        assert store.recovered_from_corruption is True
        assert len(store.get_all("doctors")) == 3
        quarantined = [key for key in byte_store.blobs if key.startswith(f"{SNAPSHOT_KEY}.corrupt-")]
        assert len(quarantined) == 1
        assert byte_store.blobs[quarantined[0]] == b"\x00garbage\x00"
        assert byte_store.read(SNAPSHOT_KEY) != b"\x00garbage\x00"
    finally:
        store.close()


def test_quota_exceeded_keeps_memory_and_can_retry(byte_store):
    store = _open(byte_store)
    try:
        byte_store.quota_bytes = 10
        with pytest.raises(StorageQuotaExceeded):
            store.upsert("patients", "p3", Patient(id="p3", name="Unpersisted"))
        assert store.get("patients", "p3").name == "Unpersisted"
        assert store.flush_pending is True

        byte_store.quota_bytes = None
        store.flush()
        assert store.flush_pending is False
    finally:
        store.close()

    reopened = _open(byte_store)
    try:
        assert reopened.get("patients", "p3") is not None
    finally:
        reopened.close()


def test_file_byte_store_round_trip(tmp_path):
    byte_store = FileByteStore(tmp_path / "data")
    store = _open(byte_store)
    store.upsert("patients", "p3", Patient(id="p3", name="On Disk"))
    store.close()

    assert (tmp_path / "data" / f"{SNAPSHOT_KEY}.sqlite").exists()
    assert not list((tmp_path / "data").glob("*.tmp"))

    reopened = _open(FileByteStore(tmp_path / "data"))
    try:
        assert reopened.get("patients", "p3").name == "On Disk"
    finally:
        reopened.close()


def test_file_byte_store_quota(tmp_path):
    byte_store = FileByteStore(tmp_path, quota_bytes=1)
    with pytest.raises(StorageQuotaExceeded):
        byte_store.write(SNAPSHOT_KEY, b"too large")
    assert byte_store.read(SNAPSHOT_KEY) is None


def test_backup_filename_is_dated():
    assert backup_filename(date(2024, 6, 10)) == "medicore_backup_2024-06-10.sqlite"


def test_write_and_restore_backup(store, tmp_path):
    path = write_backup(store, tmp_path / "backups", today=date(2024, 6, 10))
    assert path.name == "medicore_backup_2024-06-10.sqlite"

    store.delete("patients", "p1")
    counts = restore_backup(store, path.read_bytes(), tmp_path / "backups")
    assert counts["patients"] == 2
    assert store.get("patients", "p1") is not None
    names = [p.name for p in list_backups(tmp_path / "backups")]
    assert any(name.startswith("medicore-before-restore-") for name in names)


def test_restore_rejects_invalid_backup_without_safety_copy(store, tmp_path):
    with pytest.raises(StoreCorrupt):
        restore_backup(store, b"nope", tmp_path / "backups")
    assert list_backups(tmp_path / "backups") == []
