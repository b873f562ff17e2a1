"""Daily queue number allocation."""

from __future__ import annotations

from medicore.services.store import RecordStore

QUEUE_SCOPES = ("doctor", "clinic")


def next_queue_number(store: RecordStore, doctor_id: str | None, day: str, *, scope: str = "doctor") -> int:
    """Return ``max(queue_number) + 1`` for the day, starting at 1.

    With ``scope="doctor"`` the run is per ``(doctor_id, day)``; ``"clinic"``
    numbers every appointment of the day together. Cancelled appointments keep
    their number, so numbers are never handed out twice.
    """
    if scope not in QUEUE_SCOPES:
        raise ValueError(f"invalid_queue_scope:{scope}")
    if scope == "doctor" and not doctor_id:
        raise ValueError("doctor_id_required")
    highest = 0
    for appt in store.get_all("appointments"):
        if appt.date != day:
            continue
        if scope == "doctor" and appt.doctor_id != doctor_id:
            continue
        highest = max(highest, appt.queue_number or 0)
    return highest + 1
