"""JSON error mapping shared by the blueprints."""

from __future__ import annotations

from flask import jsonify

from medicore.services.appointments import AppointmentError
from medicore.services.errors import (
    InvalidTransition,
    MissingJustification,
    RecordNotFound,
    SlotUnavailable,
    StorageQuotaExceeded,
    StoreCorrupt,
)

_MESSAGES = {
    SlotUnavailable: (409, "Slot unavailable. Please refresh and pick another time."),
    InvalidTransition: (409, "This status change is not allowed."),
    MissingJustification: (400, "Please provide a reason for partial payment."),
    RecordNotFound: (404, "Record not found."),
    StorageQuotaExceeded: (507, "Saved in memory but the durable copy could not be written."),
    StoreCorrupt: (400, "The uploaded file is not a valid clinic backup."),
}


def error_response(exc: Exception):
    for exc_type, (status, message) in _MESSAGES.items():
        if isinstance(exc, exc_type):
            return jsonify({"success": False, "error": message, "code": str(exc)}), status
    if isinstance(exc, (AppointmentError, ValueError)):
        return jsonify({"success": False, "error": str(exc), "code": str(exc)}), 400
    raise exc


HANDLED_ERRORS = (
    AppointmentError,
    ValueError,
    SlotUnavailable,
    InvalidTransition,
    MissingJustification,
    RecordNotFound,
    StorageQuotaExceeded,
    StoreCorrupt,
)
