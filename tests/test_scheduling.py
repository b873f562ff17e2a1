from datetime import date

import pytest

from conftest import MONDAY, TUESDAY
from medicore.models import Appointment, AppointmentStatus
from medicore.services.errors import RecordNotFound, SlotUnavailable
from medicore.services.scheduling import (
    available_slots,
    candidate_slots,
    check_availability,
    clock_to_minutes,
    find_collision,
    is_on_grid,
    validate_booking,
    weekday_label,
)


def _appt(store, appt_id, doctor_id, day, time, status=AppointmentStatus.SCHEDULED):
    appt = Appointment(id=appt_id, doctor_id=doctor_id, patient_id="p1", date=day, time=time, status=status)
    store.upsert("appointments", appt_id, appt)
    return appt


def test_weekday_label_is_locale_free():
    assert weekday_label(MONDAY) == "Mon"
    assert weekday_label(date(2024, 6, 16)) == "Sun"


def test_clock_parsing():
    assert clock_to_minutes("09:30") == 570
    assert clock_to_minutes("24:00") == 1440
    for bad in ("9:30", "24:30", "ab:cd", ""):
        with pytest.raises(ValueError):
            clock_to_minutes(bad)


def test_candidate_slots_are_half_open():
    assert candidate_slots(540, 600) == ["09:00", "09:30"]
    assert candidate_slots(540, 540) == []


def test_one_hour_window_gives_two_slots(store, monday_doctor):
    assert available_slots(store, "dm", MONDAY) == ["09:00", "09:30"]


def test_booked_slot_is_hidden(store, monday_doctor):
    _appt(store, "a1", "dm", MONDAY, "09:00")
    assert available_slots(store, "dm", MONDAY) == ["09:30"]


def test_cancelled_appointment_frees_its_slot(store, monday_doctor):
    _appt(store, "a1", "dm", MONDAY, "09:00", AppointmentStatus.CANCELLED)
    assert available_slots(store, "dm", MONDAY) == ["09:00", "09:30"]


def test_exclude_id_lists_own_slot_when_editing(store, monday_doctor):
    _appt(store, "a1", "dm", MONDAY, "09:00")
    assert available_slots(store, "dm", MONDAY, exclude_id="a1") == ["09:00", "09:30"]


def test_non_working_day_is_reported(store, monday_doctor):
    result = check_availability(store, "dm", TUESDAY)
    assert result.slots == []
    assert result.reason == "not_working"


def test_fully_booked_day_is_reported(store, monday_doctor):
    _appt(store, "a1", "dm", MONDAY, "09:00")
    _appt(store, "a2", "dm", MONDAY, "09:30")
    result = check_availability(store, "dm", MONDAY)
    assert result.slots == []
    assert result.reason == "fully_booked"


def test_emergency_uses_whole_day(store, monday_doctor):
    slots = available_slots(store, "dm", TUESDAY, emergency=True)
    assert len(slots) == 48
    assert slots[0] == "00:00"
    assert slots[-1] == "23:30"


def test_other_doctors_do_not_block(store, monday_doctor):
    _appt(store, "a1", "d1", MONDAY, "09:00")
    assert available_slots(store, "dm", MONDAY) == ["09:00", "09:30"]


def test_seeded_doctor_windows(store):
    slots = available_slots(store, "d2", MONDAY)
    assert slots[0] == "10:00"
    assert slots[-1] == "15:30"
    assert check_availability(store, "d3", MONDAY).reason == "not_working"


def test_unknown_doctor(store):
    with pytest.raises(RecordNotFound):
        available_slots(store, "nobody", MONDAY)


def test_validate_booking_detects_conflict(store, monday_doctor):
    _appt(store, "a1", "dm", MONDAY, "09:00")
    with pytest.raises(SlotUnavailable, match="conflict_with:a1"):
        validate_booking(store, "dm", MONDAY, "09:00")
    validate_booking(store, "dm", MONDAY, "09:00", exclude_id="a1")
    validate_booking(store, "dm", MONDAY, "09:30")


def test_find_collision_ignores_cancelled():
    rows = [
        Appointment(id="x", doctor_id="dm", patient_id="p1", date=MONDAY, time="09:00",
                    status=AppointmentStatus.CANCELLED),
    ]
    assert find_collision(rows, "dm", MONDAY, "09:00") is None


def test_is_on_grid(monday_doctor):
    assert is_on_grid(monday_doctor, MONDAY, "09:30")
    assert not is_on_grid(monday_doctor, MONDAY, "09:15")
    assert not is_on_grid(monday_doctor, MONDAY, "10:00")
    assert not is_on_grid(monday_doctor, TUESDAY, "09:00")
    assert is_on_grid(monday_doctor, TUESDAY, "23:30", emergency=True)
