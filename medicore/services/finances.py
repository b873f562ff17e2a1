"""Revenue breakdowns over a date range, per doctor or per specialty."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, timedelta

from medicore.models import AppointmentStatus
from medicore.services.payments import balance_due
from medicore.services.scheduling import parse_day
from medicore.services.store import RecordStore

PERIODS = ("today", "7d", "30d", "all", "custom")
GROUPINGS = ("doctor", "specialty")

UNKNOWN_DOCTOR = "Unknown"
DEFAULT_SPECIALTY = "General"


def period_range(
    period: str,
    *,
    today: date | None = None,
    start: str | date | None = None,
    end: str | date | None = None,
) -> tuple[str | None, str | None]:
    """Resolve a named period to an inclusive ``(start, end)`` pair of ISO days.

    ``"all"`` gives ``(None, None)``; ``"custom"`` needs both ``start`` and ``end``.
    """

    today = today or date.today()
    if period == "all":
        return None, None
    if period == "today":
        return today.isoformat(), today.isoformat()
    if period == "7d":
        return (today - timedelta(days=7)).isoformat(), today.isoformat()
    if period == "30d":
        return (today - timedelta(days=30)).isoformat(), today.isoformat()
    if period == "custom":
        if not start or not end:
            raise ValueError("custom_range_requires_start_and_end")
        first, last = parse_day(start), parse_day(end)
        if first > last:
            raise ValueError("invalid_range")
        return first.isoformat(), last.isoformat()
    raise ValueError(f"invalid_period:{period}")


@dataclass
class FinanceRow:
    key: str
    name: str
    count: int = 0
    billed: float = 0
    paid: float = 0
    pending: float = 0
    specialty: str | None = None

    def to_dict(self) -> dict:
        data = {
            "key": self.key,
            "name": self.name,
            "count": self.count,
            "billed": self.billed,
            "paid": self.paid,
            "pending": self.pending,
        }
        if self.specialty is not None:
            data["specialty"] = self.specialty
        return data


@dataclass
class FinanceSummary:
    start: str | None
    end: str | None
    by: str
    appointment_count: int = 0
    total_revenue: float = 0
    pending_revenue: float = 0
    monthly: list[tuple[str, float]] = field(default_factory=list)
    rows: list[FinanceRow] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "start": self.start,
            "end": self.end,
            "by": self.by,
            "appointment_count": self.appointment_count,
            "total_revenue": self.total_revenue,
            "pending_revenue": self.pending_revenue,
            "monthly": [{"month": month, "amount": amount} for month, amount in self.monthly],
            "rows": [row.to_dict() for row in self.rows],
        }


def finance_summary(
    store: RecordStore,
    start: str | date | None = None,
    end: str | date | None = None,
    *,
    by: str = "doctor",
) -> FinanceSummary:
    """Billed, paid and outstanding amounts for appointments dated in ``[start, end]``.

    Paid money counts whatever the status. Outstanding balances of Cancelled
    appointments are not pending. Rows are ordered by amount paid, highest first.
    """

    if by not in GROUPINGS:
        raise ValueError(f"invalid_grouping:{by}")
    first = parse_day(start).isoformat() if start else None
    last = parse_day(end).isoformat() if end else None
    if first and last and first > last:
        raise ValueError("invalid_range")

    doctors = {doctor.id: doctor for doctor in store.get_all("doctors")}
    summary = FinanceSummary(start=first, end=last, by=by)
    rows: dict[str, FinanceRow] = {}
    months: dict[str, float] = {}

    for appt in store.get_all("appointments"):
        if (first and appt.date < first) or (last and appt.date > last):
            continue
        doctor = doctors.get(appt.doctor_id)
        name = doctor.name if doctor else UNKNOWN_DOCTOR
        specialty = (doctor.specialty if doctor else "") or DEFAULT_SPECIALTY
        pending = 0 if appt.status is AppointmentStatus.CANCELLED else balance_due(appt.total_fee, appt.amount_paid)

        if by == "doctor":
            row = rows.setdefault(appt.doctor_id, FinanceRow(key=appt.doctor_id, name=name, specialty=specialty))
        else:
            row = rows.setdefault(specialty, FinanceRow(key=specialty, name=specialty))
        row.count += 1
        row.billed += appt.total_fee
        row.paid += appt.amount_paid
        row.pending += pending

        summary.appointment_count += 1
        summary.total_revenue += appt.amount_paid
        summary.pending_revenue += pending
        if appt.amount_paid > 0:
            month = appt.date[:7]
            months[month] = months.get(month, 0) + appt.amount_paid

    summary.monthly = sorted(months.items())
    summary.rows = sorted(rows.values(), key=lambda row: (-row.paid, row.name))
    return summary
