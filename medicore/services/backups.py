"""Binary backup files for the whole store."""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from pathlib import Path

from medicore.services.store import RecordStore, decode_image

logger = logging.getLogger(__name__)

BACKUP_PREFIX = "medicore_backup_"
BACKUP_SUFFIX = ".sqlite"


def backup_filename(today: date | None = None) -> str:
    """``medicore_backup_YYYY-MM-DD.sqlite``"""
    return f"{BACKUP_PREFIX}{(today or date.today()).isoformat()}{BACKUP_SUFFIX}"


def write_backup(store: RecordStore, backups_dir: Path, *, today: date | None = None) -> Path:
    backups_dir.mkdir(parents=True, exist_ok=True)
    path = backups_dir / backup_filename(today)
    path.write_bytes(store.export_snapshot())
    logger.info("Backup written to %s", path)
    return path


def list_backups(backups_dir: Path) -> list[Path]:
    if not backups_dir.exists():
        return []
    return sorted(backups_dir.glob(f"*{BACKUP_SUFFIX}"), reverse=True)


def restore_backup(store: RecordStore, image: bytes, backups_dir: Path | None = None) -> dict[str, int]:
    """Replace the store with ``image`` after saving a safety copy.

    Nothing is touched when ``image`` is not a valid snapshot. The consuming
    application has to reload after a successful restore.
    """

    decode_image(image)
    if backups_dir is not None:
        backups_dir.mkdir(parents=True, exist_ok=True)
        ts = datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")
        safety_path = backups_dir / f"medicore-before-restore-{ts}{BACKUP_SUFFIX}"
        safety_path.write_bytes(store.export_snapshot())
        logger.info("Safety copy written to %s", safety_path)
    return store.import_snapshot(image)
