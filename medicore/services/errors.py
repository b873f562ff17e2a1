"""Error taxonomy for the clinic core plus lightweight error logging."""

from __future__ import annotations

from datetime import datetime, UTC
from pathlib import Path
import traceback

from flask import current_app


class ClinicError(Exception):
    """Base class for recoverable clinic core errors."""


class StoreError(ClinicError):
    """Raised for misuse of the record store (closed handle, unknown table)."""


class RecordNotFound(ClinicError):
    """Raised when a referenced record does not exist."""


class SlotUnavailable(ClinicError):
    """Raised when a booking time is no longer free at commit time."""


class InvalidTransition(ClinicError):
    """Raised when a status change is not allowed from the current status."""


class MissingJustification(ClinicError):
    """Raised when a partial payment is saved without a payment note."""


class StoreCorrupt(ClinicError):
    """Raised when a snapshot image cannot be decoded into a valid store."""


class StorageQuotaExceeded(ClinicError):
    """Raised when the durable snapshot write fails for size reasons."""


def record_exception(context: str, exc: BaseException) -> None:
    """Append exception details to data/logs/app_errors.log for offline inspection."""

    try:
        root = Path(current_app.config["DATA_ROOT"]) / "logs"
        root.mkdir(parents=True, exist_ok=True)
        log_path = root / "app_errors.log"
        with log_path.open("a", encoding="utf-8") as handle:
            handle.write(f"[{datetime.now(UTC).isoformat()}Z] {context}\n")
            handle.write("".join(traceback.format_exception(exc)))
            handle.write("\n")
    except Exception:
        # Never let logging failures break the request cycle.
        pass
