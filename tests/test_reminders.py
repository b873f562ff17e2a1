import logging
from contextlib import contextmanager
from dataclasses import replace
from datetime import date

import pytest

from conftest import MONDAY
from medicore.models import AppointmentStatus, NotificationType, Patient
from medicore.services.appointments import book_appointment, cancel_appointment, change_status
from medicore.services.clinic_settings import get_settings, save_settings
from medicore.services.errors import RecordNotFound
from medicore.services.reminders import (
    list_notifications,
    render_template,
    run_reminder_sweep,
    send_email,
    send_followup,
)

SUNDAY = date(2024, 6, 9)


def _book(store, patient_id="p1", time="09:00", day=MONDAY):
    return book_appointment(store, doctor_id="d1", patient_id=patient_id, day=day, time=time)


def test_render_template_replaces_every_occurrence():
    body = render_template("{name} / {name} / {missing}", name="Ann")
    assert body == "Ann / Ann / {missing}"


def test_sweep_sends_once(store):
    appt = _book(store)
    sent = run_reminder_sweep(store, today=SUNDAY)
    assert len(sent) == 1
    entry = sent[0]
    assert entry.recipient_email == "john@example.com"
    assert entry.subject == f"Appointment Reminder: {MONDAY}"
    assert entry.type is NotificationType.AUTO
    assert "John Doe" in entry.message
    assert "Dr. Sarah Smith" in entry.message
    assert "09:00" in entry.message
    assert "{" not in entry.message
    assert store.get("appointments", appt.id).reminder_sent is True

    assert run_reminder_sweep(store, today=SUNDAY) == []
    assert len(store.get_all("notifications")) == 1


def test_sweep_only_reminds_tomorrow(store):
    _book(store)
    assert run_reminder_sweep(store, today=date(2024, 6, 10)) == []
    assert run_reminder_sweep(store, today=date(2024, 6, 8)) == []


def test_sweep_skips_non_scheduled(store):
    cancelled = _book(store)
    cancel_appointment(store, cancelled.id)
    checked_in = _book(store, time="09:30")
    change_status(store, checked_in.id, "Checked In")
    assert run_reminder_sweep(store, today=SUNDAY) == []
    assert store.get("appointments", cancelled.id).reminder_sent is False


def test_sweep_skips_patient_without_email(store):
    store.upsert("patients", "p9", Patient(id="p9", name="No Email"))
    appt = _book(store, patient_id="p9")
    assert run_reminder_sweep(store, today=SUNDAY) == []
    assert store.get("appointments", appt.id).reminder_sent is False


def test_sweep_respects_disabled_setting(store):
    settings = get_settings(store)
    settings.enable_auto_reminders = False
    save_settings(store, settings)
    _book(store)
    assert run_reminder_sweep(store, today=SUNDAY) == []


def test_sweep_uses_custom_template(store):
    settings = get_settings(store)
    settings.clinic_name = "Nile Clinic"
    settings.email_templates.reminder = "{clinic_name}: {patient_name} at {time}"
    save_settings(store, settings)
    _book(store)
    (entry,) = run_reminder_sweep(store, today=SUNDAY)
    assert entry.message == "Nile Clinic: John Doe at 09:00"


def test_delivery_is_logged(store, caplog):
    _book(store)
    with caplog.at_level(logging.INFO, logger="medicore.mailer"):
        run_reminder_sweep(store, today=SUNDAY)
    assert any("[MAILER] To john@example.com" in record.getMessage() for record in caplog.records)


def test_manual_email_and_listing(store):
    first = send_email(store, "a@example.com", "Hello", "Body")
    second = send_email(store, "b@example.com", "Again", "Body")
    assert first.type is NotificationType.MANUAL
    assert [n.id for n in list_notifications(store)] == [second.id, first.id]


def test_followup(store):
    entry = send_followup(store, "p1", doctor_id="d1")
    assert entry.recipient_email == "john@example.com"
    assert "Dr. Sarah Smith" in entry.message
    assert entry.type is NotificationType.MANUAL

    store.upsert("patients", "p9", Patient(id="p9", name="No Email"))
    with pytest.raises(ValueError, match="patient_without_email"):
        send_followup(store, "p9")
    with pytest.raises(RecordNotFound):
        send_followup(store, "ghost")


def _cancel_when_locked(store, monkeypatch, appt_id):
    original = store.locked

    @contextmanager
    def locked():
        with original():
            current = store.get("appointments", appt_id)
            store.upsert("appointments", appt_id, replace(current, status=AppointmentStatus.CANCELLED))
            yield store

    monkeypatch.setattr(store, "locked", locked)


def test_sweep_rechecks_status_before_sending(store, monkeypatch):
    appt = _book(store)
    _cancel_when_locked(store, monkeypatch, appt.id)
    assert run_reminder_sweep(store, today=SUNDAY) == []
    current = store.get("appointments", appt.id)
    assert current.status is AppointmentStatus.CANCELLED
    assert current.reminder_sent is False
    assert store.get_all("notifications") == []


def test_sweep_uses_time_as_of_sending(store, monkeypatch):
    appt = _book(store)
    original = store.locked

    @contextmanager
    def locked():
        with original():
            store.upsert("appointments", appt.id, replace(store.get("appointments", appt.id), time="11:30"))
            yield store

    monkeypatch.setattr(store, "locked", locked)
    (entry,) = run_reminder_sweep(store, today=SUNDAY)
    assert "11:30" in entry.message
