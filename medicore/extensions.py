"""Application extensions: the record store handle owned by the Flask app."""

from __future__ import annotations

from pathlib import Path

from flask import Flask, current_app

from medicore.services.seed import seed_defaults
from medicore.services.snapshots import FileByteStore, SnapshotPersister
from medicore.services.store import RecordStore


def init_store(app: Flask) -> RecordStore:
    """Open the store for ``app``; the app owns it until :func:`close_store`."""

    byte_store = FileByteStore(
        Path(app.config["DATA_ROOT"]),
        quota_bytes=app.config.get("SNAPSHOT_QUOTA_BYTES"),
    )
    store = RecordStore(SnapshotPersister(byte_store), seed=seed_defaults).open()
    if store.recovered_from_corruption:
        app.logger.warning("Clinic data was re-seeded after an unreadable snapshot; restore a backup if needed")
    app.extensions["store"] = store
    return store


def close_store(app: Flask) -> None:
    store = app.extensions.pop("store", None)
    if store is not None:
        store.close()


def get_store() -> RecordStore:
    store = current_app.extensions.get("store")
    if store is None or not store.is_open:
        raise RuntimeError("Record store is not initialised")
    return store
