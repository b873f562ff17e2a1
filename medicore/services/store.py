"""Embedded record store backed by an in-memory SQLite database.

Each table holds ``(id, data)`` rows where ``data`` is a JSON-serialized typed
record from :mod:`medicore.models`. Every mutation flushes the complete SQLite
image through a :class:`~medicore.services.snapshots.SnapshotPersister`.

The store is an explicit handle: open it once at startup, pass it to the
services that need it, and close it at shutdown.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import threading
from contextlib import contextmanager
from typing import Any, Callable, Iterable, Iterator

import sqlalchemy as sa
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

from medicore.models import SCHEMA_VERSION, TABLE_MODELS, Record
from medicore.services.errors import StorageQuotaExceeded, StoreCorrupt, StoreError
from medicore.services.snapshots import SnapshotPersister

logger = logging.getLogger(__name__)

metadata = sa.MetaData()

TABLES: dict[str, sa.Table] = {
    name: sa.Table(
        name,
        metadata,
        sa.Column("id", sa.String, primary_key=True),
        sa.Column("data", sa.Text, nullable=False),
    )
    for name in TABLE_MODELS
}

Seeder = Callable[["RecordStore"], None]


def _serialize(record: Record) -> str:
    return json.dumps(record.to_dict(), ensure_ascii=False)


def decode_image(image: bytes) -> dict[str, int]:
    """Check that ``image`` is a readable store snapshot.

    Returns the row count per table. Raises :class:`StoreCorrupt` when the
    image is not SQLite, carries another schema version, misses a table or
    holds a row that does not decode into its record type.
    """

    scratch = sqlite3.connect(":memory:")
    try:
        scratch.deserialize(image)
        version = scratch.execute("PRAGMA user_version").fetchone()[0]
        if version != SCHEMA_VERSION:
            raise StoreCorrupt(f"schema_version:{version}")
        names = {
            row[0]
            for row in scratch.execute("SELECT name FROM sqlite_master WHERE type='table'")
        }
        missing = sorted(set(TABLE_MODELS) - names)
        if missing:
            raise StoreCorrupt("missing_tables:" + ",".join(missing))
        counts: dict[str, int] = {}
        for table, model in TABLE_MODELS.items():
            count = 0
            for record_id, data in scratch.execute(f"SELECT id, data FROM {table}"):
                record = model.from_dict(json.loads(data))
                if record.id != record_id:
                    raise StoreCorrupt(f"id_mismatch:{table}:{record_id}")
                count += 1
            counts[table] = count
        return counts
    except StoreCorrupt:
        raise
    except (sqlite3.Error, ValueError, KeyError, TypeError, OverflowError) as exc:
        raise StoreCorrupt(f"unreadable_snapshot:{exc}") from exc
    finally:
        scratch.close()


class RecordStore:
    """Typed key -> record tables with whole-image snapshot persistence."""

    def __init__(
        self,
        persister: SnapshotPersister | None = None,
        *,
        seed: Seeder | None = None,
    ) -> None:
        self._persister = persister
        self._seed = seed
        self._engine: Engine | None = None
        self._lock = threading.RLock()
        self._suspended = 0
        self.flush_pending = False
        self.recovered_from_corruption = False

    # -- lifecycle -----------------------------------------------------

    def open(self) -> "RecordStore":
        """Create the in-memory database and hydrate it from durable storage."""

        with self._lock:
            if self._engine is not None:
                return self
            self._engine = sa.create_engine(
                "sqlite://",
                poolclass=StaticPool,
                connect_args={"check_same_thread": False},
            )
            image = self._persister.load() if self._persister else None
            if image is None:
                self._initialise()
                return self
            try:
                self._deserialize(image)
            except StoreCorrupt as exc:
                logger.warning("Stored snapshot is unreadable (%s); starting from a fresh seeded store", exc)
                self.recovered_from_corruption = True
                if self._persister is not None:
                    quarantined = self._persister.quarantine(image)
                    if quarantined:
                        logger.warning("Corrupt snapshot kept as %s", quarantined)
                self._initialise()
            return self

    def close(self) -> None:
        with self._lock:
            if self._engine is None:
                return
            if self.flush_pending:
                try:
                    self.flush()
                except StorageQuotaExceeded:
                    logger.error("Closing store with unpersisted changes")
            self._engine.dispose()
            self._engine = None

    def __enter__(self) -> "RecordStore":
        return self.open()

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    @property
    def is_open(self) -> bool:
        return self._engine is not None

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            raise StoreError("store_closed")
        return self._engine

    @contextmanager
    def locked(self) -> Iterator["RecordStore"]:
        """Hold the store lock across a read-check-write sequence."""

        with self._lock:
            yield self

    @contextmanager
    def deferred_flush(self) -> Iterator["RecordStore"]:
        """Group several mutations behind a single snapshot flush."""

        with self._lock:
            self._suspended += 1
            try:
                yield self
            finally:
                self._suspended -= 1
            if not self._suspended and self.flush_pending:
                self.flush()

    def reset(self) -> None:
        """Drop every table and start again from the seed data."""

        with self._lock:
            metadata.drop_all(self.engine)
            self._initialise()

    # -- reads ---------------------------------------------------------

    def get_all(self, table: str) -> list[Any]:
        tbl, model = self._resolve(table)
        with self.engine.connect() as conn:
            rows = conn.execute(
                sa.select(tbl.c.data).order_by(sa.literal_column("rowid"))
            ).scalars().all()
        return [model.from_dict(json.loads(data)) for data in rows]

    def get(self, table: str, record_id: str) -> Any | None:
        tbl, model = self._resolve(table)
        with self.engine.connect() as conn:
            data = conn.execute(sa.select(tbl.c.data).where(tbl.c.id == record_id)).scalar_one_or_none()
        if data is None:
            return None
        return model.from_dict(json.loads(data))

    # -- writes --------------------------------------------------------

    def upsert(self, table: str, record_id: str, record: Record) -> None:
        self._write([(table, record_id, record)])

    def upsert_many(self, items: Iterable[tuple[str, Record]]) -> None:
        """Write several records in one transaction, then flush once."""

        self._write([(table, record.id, record) for table, record in items])

    def delete(self, table: str, record_id: str) -> bool:
        tbl, _ = self._resolve(table)
        with self._lock:
            with self.engine.begin() as conn:
                result = conn.execute(sa.delete(tbl).where(tbl.c.id == record_id))
            self._after_mutation()
        return bool(result.rowcount)

    # -- snapshots -----------------------------------------------------

    def export_snapshot(self) -> bytes:
        with self._lock, self._driver_connection() as conn:
            return conn.serialize()

    def import_snapshot(self, image: bytes) -> dict[str, int]:
        """Replace the whole store with ``image``. This is a reset, not a merge."""

        with self._lock:
            counts = self._deserialize(image)
            self._after_mutation()
        logger.info("Store replaced from snapshot: %s", counts)
        return counts

    def flush(self) -> None:
        """Write the full image to durable storage; safe to retry."""

        with self._lock:
            if self._persister is None:
                self.flush_pending = False
                return
            self._persister.save(self.export_snapshot())
            self.flush_pending = False

    # -- internals -----------------------------------------------------

    def _resolve(self, table: str) -> tuple[sa.Table, Any]:
        if table not in TABLES:
            raise StoreError(f"unknown_table:{table}")
        return TABLES[table], TABLE_MODELS[table]

    @contextmanager
    def _driver_connection(self) -> Iterator[sqlite3.Connection]:
        raw = self.engine.raw_connection()
        try:
            yield raw.driver_connection
        finally:
            raw.close()

    def _deserialize(self, image: bytes) -> dict[str, int]:
        counts = decode_image(image)
        with self._driver_connection() as conn:
            conn.deserialize(image)
        return counts

    def _initialise(self) -> None:
        metadata.create_all(self.engine)
        with self.engine.begin() as conn:
            conn.exec_driver_sql(f"PRAGMA user_version = {SCHEMA_VERSION}")
        try:
            with self.deferred_flush():
                self.flush_pending = True
                if self._seed is not None:
                    self._seed(self)
        except StorageQuotaExceeded:
            logger.error("Seeded store could not be persisted; continuing in memory")

    def _write(self, items: list[tuple[str, str, Record]]) -> None:
        rows = []
        for table, record_id, record in items:
            tbl, model = self._resolve(table)
            if not isinstance(record, model):
                raise StoreError(f"record_type:{table}:{type(record).__name__}")
            if record.id != record_id:
                raise StoreError(f"id_mismatch:{table}:{record_id}")
            rows.append((tbl, record_id, _serialize(record)))
        with self._lock:
            with self.engine.begin() as conn:
                for tbl, record_id, data in rows:
                    stmt = sqlite_insert(tbl).values(id=record_id, data=data)
                    stmt = stmt.on_conflict_do_update(
                        index_elements=[tbl.c.id],
                        set_={"data": stmt.excluded.data},
                    )
                    conn.execute(stmt)
            self._after_mutation()

    def _after_mutation(self) -> None:
        self.flush_pending = True
        if self._suspended:
            return
        self.flush()
