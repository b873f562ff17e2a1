import pytest

from conftest import MONDAY, TUESDAY
from medicore.services.appointments import book_appointment, cancel_appointment
from medicore.services.queue import next_queue_number


def _book(store, doctor_id, time, day=MONDAY, **kwargs):
    return book_appointment(store, doctor_id=doctor_id, patient_id="p1", day=day, time=time, **kwargs)


def test_first_number_of_the_day_is_one(store):
    assert next_queue_number(store, "d1", MONDAY) == 1


def test_numbers_are_never_reused_after_cancel(store, monday_doctor):
    first = _book(store, "dm", "09:00")
    assert first.queue_number == 1
    cancel_appointment(store, first.id)
    second = _book(store, "dm", "09:30")
    assert second.queue_number == 2


def test_numbers_run_per_doctor_and_day(store, everyday_doctor):
    assert _book(store, "de", "09:00").queue_number == 1
    assert _book(store, "de", "09:30").queue_number == 2
    assert _book(store, "d1", "09:00").queue_number == 1
    assert _book(store, "de", "09:00", day=TUESDAY).queue_number == 1


def test_clinic_scope_numbers_the_whole_day(store, everyday_doctor):
    assert _book(store, "de", "09:00", queue_scope="clinic").queue_number == 1
    assert _book(store, "d1", "09:00", queue_scope="clinic").queue_number == 2


def test_numbers_stay_contiguous(store, everyday_doctor):
    times = ["09:00", "09:30", "10:00", "10:30", "11:00"]
    numbers = [_book(store, "de", t).queue_number for t in times]
    assert numbers == [1, 2, 3, 4, 5]


def test_emergency_bookings_get_no_number(store, everyday_doctor):
    emergency = _book(store, "de", "02:00", emergency=True)
    assert emergency.queue_number is None
    assert _book(store, "de", "09:00").queue_number == 1


def test_invalid_scope(store):
    with pytest.raises(ValueError, match="invalid_queue_scope"):
        next_queue_number(store, "d1", MONDAY, scope="ward")
    with pytest.raises(ValueError, match="doctor_id_required"):
        next_queue_number(store, None, MONDAY)
