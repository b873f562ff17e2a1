"""Outgoing notifications and the automatic reminder sweep.

Delivery is a log line on the ``medicore.mailer`` logger plus an append-only
:class:`~medicore.models.NotificationLog` row; nothing leaves the process.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import replace
from datetime import date, datetime, timedelta, timezone

from medicore.models import AppointmentStatus, NotificationLog, NotificationType
from medicore.services.clinic_settings import get_settings
from medicore.services.errors import RecordNotFound
from medicore.services.store import RecordStore

logger = logging.getLogger(__name__)
mailer = logging.getLogger("medicore.mailer")

PLACEHOLDERS = ("patient_name", "doctor_name", "date", "time", "clinic_name")


def render_template(template: str, **values: object) -> str:
    """Literal ``{name}`` substitution of every occurrence; no template engine."""
    body = template
    for key, value in values.items():
        body = body.replace("{" + key + "}", str(value))
    return body


def _log_entry(recipient: str, subject: str, body: str, kind: NotificationType) -> NotificationLog:
    return NotificationLog(
        id=str(uuid.uuid4()),
        date=datetime.now(timezone.utc).isoformat(),
        recipient_email=recipient,
        subject=subject,
        message=body,
        type=kind,
    )


def _deliver(entry: NotificationLog) -> None:
    mailer.info("[MAILER] To %s: %s", entry.recipient_email, entry.subject)


def send_email(
    store: RecordStore,
    recipient: str,
    subject: str,
    body: str,
    kind: NotificationType = NotificationType.MANUAL,
) -> NotificationLog:
    entry = _log_entry(recipient, subject, body, kind)
    _deliver(entry)
    store.upsert("notifications", entry.id, entry)
    return entry


def list_notifications(store: RecordStore) -> list[NotificationLog]:
    """Newest first; entries with the same timestamp keep reverse insertion order."""
    return sorted(reversed(store.get_all("notifications")), key=lambda entry: entry.date, reverse=True)


def send_followup(
    store: RecordStore,
    patient_id: str,
    *,
    doctor_id: str | None = None,
    subject: str = "Appointment Follow-up",
) -> NotificationLog:
    """Manual follow-up message built from the follow-up template."""

    patient = store.get("patients", patient_id)
    if patient is None:
        raise RecordNotFound(f"patient:{patient_id}")
    if not patient.email:
        raise ValueError(f"patient_without_email:{patient_id}")
    doctor = store.get("doctors", doctor_id) if doctor_id else None
    settings = get_settings(store)
    body = render_template(
        settings.email_templates.followup,
        patient_name=patient.name,
        doctor_name=doctor.name if doctor else "your doctor",
        clinic_name=settings.clinic_name,
    )
    return send_email(store, patient.email, subject, body, NotificationType.MANUAL)


def run_reminder_sweep(store: RecordStore, *, today: date | None = None) -> list[NotificationLog]:
    """Send one reminder per Scheduled appointment dated tomorrow.

    ``reminder_sent`` is the only de-duplication state. The log row and the
    latched appointment are written in one transaction, so an appointment is
    never reminded twice once its log exists.
    """

    settings = get_settings(store)
    if not settings.enable_auto_reminders:
        return []

    tomorrow = ((today or date.today()) + timedelta(days=1)).isoformat()
    doctors = {doctor.id: doctor for doctor in store.get_all("doctors")}
    patients = {patient.id: patient for patient in store.get_all("patients")}
    sent: list[NotificationLog] = []

    for appt in store.get_all("appointments"):
        if appt.reminder_sent or appt.status is not AppointmentStatus.SCHEDULED or appt.date != tomorrow:
            continue
        patient = patients.get(appt.patient_id)
        doctor = doctors.get(appt.doctor_id)
        if patient is None or doctor is None or not patient.email:
            logger.debug("Skipping reminder for %s: missing patient, doctor or email", appt.id)
            continue

        with store.locked():
            # Re-read: the appointment may have been edited since the scan.
            current = store.get("appointments", appt.id)
            if (
                current is None
                or current.reminder_sent
                or current.status is not AppointmentStatus.SCHEDULED
                or current.date != tomorrow
                or current.doctor_id != appt.doctor_id
                or current.patient_id != appt.patient_id
            ):
                continue
            body = render_template(
                settings.email_templates.reminder,
                patient_name=patient.name,
                doctor_name=doctor.name,
                date=current.date,
                time=current.time,
                clinic_name=settings.clinic_name,
            )
            entry = _log_entry(patient.email, f"Appointment Reminder: {current.date}", body, NotificationType.AUTO)
            _deliver(entry)
            store.upsert_many(
                [
                    ("notifications", entry),
                    ("appointments", replace(current, reminder_sent=True)),
                ]
            )
        sent.append(entry)

    if sent:
        logger.info("Reminder sweep sent %d reminder(s) for %s", len(sent), tomorrow)
    return sent
