#!/usr/bin/env python3

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Literal

from payslip_auditor.core import CENT, as_decimal

PayFrequency = Literal["weekly", "biweekly", "four_weekly", "monthly"]

PAY_FREQUENCIES: tuple[str, ...] = ("weekly", "biweekly", "four_weekly", "monthly")
PERIODS_PER_YEAR: dict[str, int] = {"weekly": 52, "biweekly": 26, "four_weekly": 13, "monthly": 12}
FREQUENCY_ALIASES: dict[str, str] = {
    "fortnightly": "biweekly",
    "bi-weekly": "biweekly",
    "4-weekly": "four_weekly",
    "four-weekly": "four_weekly",
    "fourweekly": "four_weekly",
    "month": "monthly",
    "week": "weekly",
}

# Average weeks per month used for monthly to weekly conversion.
WEEKS_PER_MONTH = Decimal("4.345")

WEEKLY_DIVISORS: dict[str, Decimal] = {
    "weekly": Decimal("1"),
    "biweekly": Decimal("2"),
    "four_weekly": Decimal("4"),
    "monthly": WEEKS_PER_MONTH,
}

DEFAULT_PERIODS = 12


def round2(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def clamp_non_negative(value: Any) -> Decimal:
    parsed = as_decimal(value)
    if parsed is None or parsed < 0:
        return Decimal("0")
    return parsed


def normalize_pay_frequency(value: str | None) -> str | None:
    if not value or not isinstance(value, str):
        return None
    key = value.strip().lower().replace(" ", "_")
    if key in PERIODS_PER_YEAR:
        return key
    return FREQUENCY_ALIASES.get(key)


def periods_per_year(frequency: str | None) -> int:
    normalized = normalize_pay_frequency(frequency)
    if normalized is None:
        return DEFAULT_PERIODS
    return PERIODS_PER_YEAR[normalized]


def weeks_per_period(frequency: str | None) -> Decimal:
    """Weeks covered by one pay period; 1 when the frequency is unknown."""
    normalized = normalize_pay_frequency(frequency)
    if normalized is None:
        return Decimal("1")
    return WEEKLY_DIVISORS[normalized]


def derive_weekly_earnings(gross: Any, frequency: str | None = None, override: Any = None) -> Decimal:
    override_value = as_decimal(override)
    if override_value is not None:
        return max(Decimal("0"), override_value)
    pay = clamp_non_negative(gross)
    return pay / weeks_per_period(frequency)
