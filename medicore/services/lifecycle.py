"""Appointment status state machine and payment status derivation."""

from __future__ import annotations

from dataclasses import replace

from medicore.models import Appointment, AppointmentStatus, PaymentStatus
from medicore.services.errors import InvalidTransition, MissingJustification
from medicore.services.payments import money_guard

TRANSITIONS: dict[AppointmentStatus, frozenset[AppointmentStatus]] = {
    AppointmentStatus.SCHEDULED: frozenset({AppointmentStatus.CHECKED_IN, AppointmentStatus.CANCELLED}),
    AppointmentStatus.CHECKED_IN: frozenset(
        {AppointmentStatus.IN_PROGRESS, AppointmentStatus.SCHEDULED, AppointmentStatus.CANCELLED}
    ),
    AppointmentStatus.IN_PROGRESS: frozenset({AppointmentStatus.COMPLETED, AppointmentStatus.CHECKED_IN}),
    # re-open
    AppointmentStatus.COMPLETED: frozenset({AppointmentStatus.IN_PROGRESS}),
    # re-activate
    AppointmentStatus.CANCELLED: frozenset({AppointmentStatus.SCHEDULED}),
}


def valid_transitions(status: AppointmentStatus) -> list[AppointmentStatus]:
    """Statuses reachable in one step, in declaration order."""
    allowed = TRANSITIONS.get(status, frozenset())
    return [candidate for candidate in AppointmentStatus if candidate in allowed]


def is_valid_transition(current: AppointmentStatus, target: AppointmentStatus) -> bool:
    # Re-selecting the current status is a no-op, not an edge.
    return current == target or target in TRANSITIONS.get(current, frozenset())


def ensure_transition(current: AppointmentStatus, target: AppointmentStatus) -> None:
    if not is_valid_transition(current, target):
        raise InvalidTransition(f"invalid_transition:{current.value}->{target.value}")


def transition(appointment: Appointment, target: AppointmentStatus | str) -> Appointment:
    """Return a copy of ``appointment`` moved to ``target``."""
    target = AppointmentStatus(target)
    ensure_transition(appointment.status, target)
    return replace(appointment, status=target)


def derive_payment_status(total_fee: float, amount_paid: float) -> PaymentStatus:
    """Pure derivation; overpayment clamps to ``Paid``."""
    if total_fee > 0 and amount_paid >= total_fee:
        return PaymentStatus.PAID
    if amount_paid > 0:
        return PaymentStatus.PARTIAL
    return PaymentStatus.PENDING


def apply_payment(
    appointment: Appointment,
    amount_paid: float,
    payment_note: str | None = None,
    *,
    total_fee: float | None = None,
) -> Appointment:
    """Return a copy with new payment figures and the derived payment status.

    A partial payment must carry a non-blank ``payment_note``.
    """
    total = appointment.total_fee if total_fee is None else total_fee
    money_guard(total, "total_fee")
    money_guard(amount_paid, "amount_paid")
    status = derive_payment_status(total, amount_paid)
    note = (payment_note or "").strip() or None
    if status is PaymentStatus.PARTIAL and not note:
        raise MissingJustification("payment_note_required")
    return replace(
        appointment,
        total_fee=total,
        amount_paid=amount_paid,
        payment_status=status,
        payment_note=note,
    )
