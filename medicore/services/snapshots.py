"""Durable storage for whole-store snapshot images.

The record store lives in memory; after every mutation its full SQLite image
is handed to a :class:`SnapshotPersister`, which overwrites a single key in a
byte store. There is no versioning and no append log: the last write wins.
"""

from __future__ import annotations

import errno
import logging
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Protocol

from medicore.services.errors import StorageQuotaExceeded

logger = logging.getLogger(__name__)

SNAPSHOT_KEY = "medicore_sqlite_db_binary"

_QUOTA_ERRNOS = {errno.ENOSPC, errno.EFBIG, getattr(errno, "EDQUOT", errno.ENOSPC)}


class ByteStore(Protocol):
    def read(self, key: str) -> bytes | None: ...

    def write(self, key: str, data: bytes) -> None: ...


class MemoryByteStore:
    """Dict-backed byte store, used for tests and throwaway previews."""

    def __init__(self, quota_bytes: int | None = None) -> None:
        self.quota_bytes = quota_bytes
        self.blobs: dict[str, bytes] = {}
        self.writes = 0

    def read(self, key: str) -> bytes | None:
        return self.blobs.get(key)

    def write(self, key: str, data: bytes) -> None:
        if self.quota_bytes is not None and len(data) > self.quota_bytes:
            raise StorageQuotaExceeded(f"snapshot_too_large:{len(data)}>{self.quota_bytes}")
        self.blobs[key] = bytes(data)
        self.writes += 1


class FileByteStore:
    """Byte store writing one ``<key>.sqlite`` file per key under ``root``."""

    def __init__(self, root: Path | str, quota_bytes: int | None = None) -> None:
        self.root = Path(root)
        self.quota_bytes = quota_bytes

    def path_for(self, key: str) -> Path:
        if not key or "/" in key or "\\" in key:
            raise ValueError(f"invalid_key:{key}")
        return self.root / f"{key}.sqlite"

    def read(self, key: str) -> bytes | None:
        path = self.path_for(key)
        if not path.exists():
            return None
        return path.read_bytes()

    def write(self, key: str, data: bytes) -> None:
        if self.quota_bytes is not None and len(data) > self.quota_bytes:
            raise StorageQuotaExceeded(f"snapshot_too_large:{len(data)}>{self.quota_bytes}")
        path = self.path_for(key)
        self.root.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{key}-", suffix=".tmp", dir=self.root)
        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(data)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, path)
        except OSError as exc:
            Path(tmp_name).unlink(missing_ok=True)
            if exc.errno in _QUOTA_ERRNOS:
                raise StorageQuotaExceeded(f"disk_full:{path}") from exc
            raise


class SnapshotPersister:
    """Bridge between the in-memory store and a durable byte store."""

    def __init__(self, byte_store: ByteStore, key: str = SNAPSHOT_KEY) -> None:
        self.byte_store = byte_store
        self.key = key

    def load(self) -> bytes | None:
        return self.byte_store.read(self.key)

    def save(self, image: bytes) -> None:
        try:
            self.byte_store.write(self.key, image)
        except StorageQuotaExceeded:
            logger.error("Snapshot write failed (%d bytes): storage quota exceeded", len(image))
            raise

    def quarantine(self, image: bytes) -> str | None:
        """Keep an unreadable snapshot aside before it gets overwritten."""

        stamp = datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")
        key = f"{self.key}.corrupt-{stamp}"
        try:
            self.byte_store.write(key, image)
        except (OSError, StorageQuotaExceeded) as exc:
            logger.error("Could not quarantine corrupt snapshot: %s", exc)
            return None
        return key
