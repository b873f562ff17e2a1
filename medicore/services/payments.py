"""Money parsing and guards shared by the booking API and CLI."""

from __future__ import annotations

import re

MAX_MONEY = 10_000_000


def parse_money(txt: str | float | int | None) -> float:
    """Parse ``"1,250.50"`` style input; blank means zero."""
    if isinstance(txt, (int, float)):
        return money_guard(txt, "amount")
    txt = (txt or "").strip().replace(",", "")
    if txt == "":
        return 0
    m = re.match(r"^\s*([0-9]+(?:\.[0-9]{1,2})?)\s*$", txt)
    if not m:
        raise ValueError(f"invalid_amount:{txt}")
    value = float(m.group(1))
    return money_guard(int(value) if value.is_integer() else value, "amount")


def money_guard(value: float, label: str) -> float:
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{label} must be a number.")
    if value < 0:
        raise ValueError(f"{label} must not be negative.")
    if value > MAX_MONEY:
        raise ValueError(f"{label} too large (max 10,000,000.00).")
    return value


def money(value: float | None) -> str:
    return f"{(value or 0):.2f}"


def balance_due(total_fee: float, amount_paid: float) -> float:
    """Outstanding amount, never negative (overpayment is tolerated)."""
    return max(total_fee - amount_paid, 0)
