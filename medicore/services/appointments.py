"""Appointment booking and in-place updates."""

from __future__ import annotations

import logging
import uuid
from dataclasses import replace
from datetime import date

from medicore.models import Appointment, AppointmentStatus, AppointmentType, Doctor
from medicore.services.errors import ClinicError, RecordNotFound, SlotUnavailable
from medicore.services.lifecycle import apply_payment, transition
from medicore.services.queue import next_queue_number
from medicore.services.scheduling import clock_to_minutes, is_on_grid, parse_day, validate_booking
from medicore.services.store import RecordStore

logger = logging.getLogger(__name__)


class AppointmentError(ClinicError):
    """Base exception for appointment operations."""


class AppointmentNotFound(AppointmentError, RecordNotFound):
    """Raised when an appointment cannot be located."""


def _doctor(store: RecordStore, doctor_id: str) -> Doctor:
    doctor = store.get("doctors", doctor_id)
    if doctor is None:
        raise RecordNotFound(f"doctor:{doctor_id}")
    return doctor


def _require_patient(store: RecordStore, patient_id: str) -> None:
    if store.get("patients", patient_id) is None:
        raise RecordNotFound(f"patient:{patient_id}")


def _check_slot(
    store: RecordStore,
    doctor: Doctor,
    day: str,
    time: str,
    *,
    emergency: bool,
    exclude_id: str | None = None,
) -> None:
    if not is_on_grid(doctor, day, time, emergency=emergency):
        raise SlotUnavailable(f"outside_schedule:{doctor.id}:{day}:{time}")
    validate_booking(store, doctor.id, day, time, exclude_id=exclude_id)


def get_appointment(store: RecordStore, appt_id: str) -> Appointment:
    appt = store.get("appointments", appt_id)
    if appt is None:
        raise AppointmentNotFound(appt_id)
    return appt


def _status(value: AppointmentStatus | str) -> AppointmentStatus:
    try:
        return AppointmentStatus(value)
    except ValueError as exc:
        raise AppointmentError("invalid_status") from exc


def list_appointments(
    store: RecordStore,
    *,
    day: str | None = None,
    doctor_id: str | None = None,
    status: AppointmentStatus | str | None = None,
) -> list[Appointment]:
    wanted = _status(status) if status else None
    rows = [
        appt
        for appt in store.get_all("appointments")
        if (day is None or appt.date == day)
        and (doctor_id is None or appt.doctor_id == doctor_id)
        and (wanted is None or appt.status is wanted)
    ]
    return sorted(rows, key=lambda appt: (appt.date, appt.time))


def book_appointment(
    store: RecordStore,
    *,
    doctor_id: str,
    patient_id: str,
    day: str | date,
    time: str,
    appointment_type: AppointmentType | str = AppointmentType.CONSULTATION,
    total_fee: float | None = None,
    amount_paid: float = 0,
    payment_note: str | None = None,
    notes: str | None = None,
    emergency: bool = False,
    queue_scope: str = "doctor",
) -> Appointment:
    """Create and persist a new appointment.

    The slot is re-validated under the store lock right before the write, so
    a slot listed earlier may still fail here with :class:`SlotUnavailable`.
    Emergency bookings may use any slot of the day and get no queue number.
    """

    day_str = parse_day(day).isoformat()
    clock_to_minutes(time)
    try:
        kind = AppointmentType(appointment_type)
    except ValueError as exc:
        raise AppointmentError("invalid_type") from exc

    with store.locked():
        doctor = _doctor(store, doctor_id)
        _require_patient(store, patient_id)
        _check_slot(store, doctor, day_str, time, emergency=emergency)

        appt = Appointment(
            id=str(uuid.uuid4()),
            doctor_id=doctor_id,
            patient_id=patient_id,
            date=day_str,
            time=time,
            type=kind,
            total_fee=doctor.consultation_fee if total_fee is None else total_fee,
            notes=(notes or "").strip() or None,
            emergency=emergency,
        )
        appt = apply_payment(appt, amount_paid, payment_note)
        if not emergency:
            appt.queue_number = next_queue_number(store, doctor_id, day_str, scope=queue_scope)
        store.upsert("appointments", appt.id, appt)

    logger.info(
        "Booked %s for doctor %s on %s at %s (queue %s)",
        appt.id, doctor_id, day_str, time, appt.queue_number,
    )
    return appt


def update_appointment(
    store: RecordStore,
    appt_id: str,
    *,
    doctor_id: str | None = None,
    patient_id: str | None = None,
    day: str | date | None = None,
    time: str | None = None,
    appointment_type: AppointmentType | str | None = None,
    notes: str | None = None,
    total_fee: float | None = None,
    amount_paid: float | None = None,
    payment_note: str | None = None,
    queue_scope: str = "doctor",
) -> Appointment:
    """Edit an appointment in place.

    A time-only change keeps the queue number. Moving to another queue run
    (another doctor or day for ``queue_scope="doctor"``, another day for
    ``"clinic"``) draws a fresh number there; the old one stays used.
    """

    with store.locked():
        existing = get_appointment(store, appt_id)
        new_doctor = doctor_id or existing.doctor_id
        new_day = parse_day(day).isoformat() if day else existing.date
        new_time = time or existing.time
        clock_to_minutes(new_time)

        moved = (new_doctor, new_day, new_time) != (existing.doctor_id, existing.date, existing.time)
        if moved and existing.status is not AppointmentStatus.CANCELLED:
            _check_slot(
                store,
                _doctor(store, new_doctor),
                new_day,
                new_time,
                emergency=existing.emergency,
                exclude_id=appt_id,
            )
        elif moved:
            _doctor(store, new_doctor)
        if patient_id:
            _require_patient(store, patient_id)

        try:
            kind = AppointmentType(appointment_type) if appointment_type else existing.type
        except ValueError as exc:
            raise AppointmentError("invalid_type") from exc

        if queue_scope == "clinic":
            new_run = new_day != existing.date
        else:
            new_run = (new_doctor, new_day) != (existing.doctor_id, existing.date)
        queue_number = existing.queue_number
        if new_run and not existing.emergency:
            queue_number = next_queue_number(store, new_doctor, new_day, scope=queue_scope)

        updated = replace(
            existing,
            doctor_id=new_doctor,
            patient_id=patient_id or existing.patient_id,
            date=new_day,
            time=new_time,
            type=kind,
            notes=existing.notes if notes is None else (notes.strip() or None),
            queue_number=queue_number,
        )
        updated = apply_payment(
            updated,
            existing.amount_paid if amount_paid is None else amount_paid,
            existing.payment_note if payment_note is None else payment_note,
            total_fee=total_fee,
        )
        store.upsert("appointments", appt_id, updated)
    return updated


def change_status(store: RecordStore, appt_id: str, status: AppointmentStatus | str) -> Appointment:
    """Apply one state machine step; re-activation re-checks the slot."""

    target = _status(status)
    with store.locked():
        existing = get_appointment(store, appt_id)
        updated = transition(existing, target)
        if existing.status is AppointmentStatus.CANCELLED and target is not AppointmentStatus.CANCELLED:
            validate_booking(store, existing.doctor_id, existing.date, existing.time, exclude_id=appt_id)
        if updated != existing:
            store.upsert("appointments", appt_id, updated)
    logger.info("Appointment %s: %s -> %s", appt_id, existing.status.value, target.value)
    return updated


def cancel_appointment(store: RecordStore, appt_id: str) -> Appointment:
    return change_status(store, appt_id, AppointmentStatus.CANCELLED)


def record_payment(
    store: RecordStore,
    appt_id: str,
    amount_paid: float,
    payment_note: str | None = None,
    *,
    total_fee: float | None = None,
) -> Appointment:
    with store.locked():
        existing = get_appointment(store, appt_id)
        updated = apply_payment(existing, amount_paid, payment_note, total_fee=total_fee)
        store.upsert("appointments", appt_id, updated)
    return updated
