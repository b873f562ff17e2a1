"""Dashboard refresh tick: reminder sweep plus headline counts."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date

from medicore.models import Appointment
from medicore.services.appointments import list_appointments
from medicore.services.reminders import run_reminder_sweep
from medicore.services.store import RecordStore


@dataclass
class DashboardSummary:
    day: str
    patient_count: int
    doctor_count: int
    todays_appointments: list[Appointment] = field(default_factory=list)
    today_revenue: float = 0
    reminders_sent: int = 0

    def to_dict(self) -> dict:
        return {
            "day": self.day,
            "patient_count": self.patient_count,
            "doctor_count": self.doctor_count,
            "todays_appointments": [appt.to_dict() for appt in self.todays_appointments],
            "today_revenue": self.today_revenue,
            "reminders_sent": self.reminders_sent,
        }


def dashboard_tick(
    store: RecordStore,
    *,
    today: date | None = None,
    doctor_id: str | None = None,
    run_reminders: bool = True,
) -> DashboardSummary:
    """One UI polling cycle. Safe to call as often as the UI likes."""

    today = today or date.today()
    sent = run_reminder_sweep(store, today=today) if run_reminders else []
    day = today.isoformat()
    todays = list_appointments(store, day=day, doctor_id=doctor_id)
    return DashboardSummary(
        day=day,
        patient_count=len(store.get_all("patients")),
        doctor_count=len(store.get_all("doctors")),
        todays_appointments=todays,
        today_revenue=sum(appt.amount_paid for appt in todays),
        reminders_sent=len(sent),
    )
