"""Slot generation and booking collision checks."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import Iterable

from medicore.models import WEEKDAYS, Appointment, AppointmentStatus, Doctor
from medicore.services.errors import RecordNotFound, SlotUnavailable
from medicore.services.store import RecordStore

SLOT_MINUTES = 30
FULL_DAY = (0, 24 * 60)

_CLOCK_RE = re.compile(r"^([01]\d|2[0-4]):([0-5]\d)$")


def parse_day(day: str | date) -> date:
    if isinstance(day, date):
        return day
    try:
        return datetime.strptime(day, "%Y-%m-%d").date()
    except ValueError as exc:
        raise ValueError(f"invalid_date:{day}") from exc


def weekday_label(day: str | date) -> str:
    """``Mon``..``Sun`` without depending on the process locale."""
    return WEEKDAYS[parse_day(day).weekday()]


def clock_to_minutes(value: str) -> int:
    m = _CLOCK_RE.match(value or "")
    if not m:
        raise ValueError(f"invalid_time:{value}")
    minutes = int(m.group(1)) * 60 + int(m.group(2))
    if minutes > 24 * 60:
        raise ValueError(f"invalid_time:{value}")
    return minutes


def minutes_to_clock(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def working_window(doctor: Doctor, day: str | date, *, emergency: bool = False) -> tuple[int, int] | None:
    """Return the ``(start, end)`` minutes the doctor works on ``day``, or None."""

    if emergency:
        return FULL_DAY
    entry = doctor.schedule_for(weekday_label(day))
    if entry is None or not entry.is_working:
        return None
    return clock_to_minutes(entry.start_time), clock_to_minutes(entry.end_time)


def candidate_slots(start: int, end: int, step: int = SLOT_MINUTES) -> list[str]:
    """Enumerate ``[start, end)`` in fixed steps as ``HH:MM`` strings."""
    return [minutes_to_clock(minute) for minute in range(start, end, step)]


def find_collision(
    appointments: Iterable[Appointment],
    doctor_id: str,
    day: str,
    time: str,
    *,
    exclude_id: str | None = None,
) -> Appointment | None:
    for appt in appointments:
        if (
            appt.doctor_id == doctor_id
            and appt.date == day
            and appt.time == time
            and appt.status is not AppointmentStatus.CANCELLED
            and appt.id != exclude_id
        ):
            return appt
    return None


def _get_doctor(store: RecordStore, doctor_id: str) -> Doctor:
    doctor = store.get("doctors", doctor_id)
    if doctor is None:
        raise RecordNotFound(f"doctor:{doctor_id}")
    return doctor


@dataclass
class Availability:
    slots: list[str]
    # "not_working", "fully_booked" or None
    reason: str | None = None


def check_availability(
    store: RecordStore,
    doctor_id: str,
    day: str | date,
    *,
    emergency: bool = False,
    exclude_id: str | None = None,
) -> Availability:
    doctor = _get_doctor(store, doctor_id)
    day_str = parse_day(day).isoformat()
    window = working_window(doctor, day_str, emergency=emergency)
    if window is None:
        return Availability(slots=[], reason="not_working")

    taken = {
        appt.time
        for appt in store.get_all("appointments")
        if appt.doctor_id == doctor_id
        and appt.date == day_str
        and appt.status is not AppointmentStatus.CANCELLED
        and appt.id != exclude_id
    }
    slots = [slot for slot in candidate_slots(*window) if slot not in taken]
    return Availability(slots=slots, reason=None if slots else "fully_booked")


def available_slots(
    store: RecordStore,
    doctor_id: str,
    day: str | date,
    *,
    emergency: bool = False,
    exclude_id: str | None = None,
) -> list[str]:
    """Free slot start times for ``doctor_id`` on ``day``; may be empty."""

    return check_availability(store, doctor_id, day, emergency=emergency, exclude_id=exclude_id).slots


def is_on_grid(doctor: Doctor, day: str, time: str, *, emergency: bool = False) -> bool:
    """Whether ``time`` is a slot start inside the doctor's window on ``day``."""
    window = working_window(doctor, day, emergency=emergency)
    if window is None:
        return False
    return time in candidate_slots(*window)


def validate_booking(
    store: RecordStore,
    doctor_id: str,
    day: str | date,
    time: str,
    exclude_id: str | None = None,
) -> None:
    """Commit-time collision check; raises :class:`SlotUnavailable`."""

    day_str = parse_day(day).isoformat()
    clock_to_minutes(time)
    conflict = find_collision(
        store.get_all("appointments"), doctor_id, day_str, time, exclude_id=exclude_id
    )
    if conflict:
        raise SlotUnavailable(f"conflict_with:{conflict.id}")
