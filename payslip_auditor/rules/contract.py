#!/usr/bin/env python3

from __future__ import annotations

from decimal import Decimal

from payslip_auditor.calculators.common import normalize_pay_frequency, periods_per_year, round2
from payslip_auditor.core import as_float, format_money
from payslip_auditor.rules.base import COUNTRY_ALL, ContractProfile, RuleDefinition, RuleEvaluationContext, RuleOutcome

SALARY_PERIOD_MULTIPLIERS: dict[str, int] = {
    "annual": 1,
    "annually": 1,
    "yearly": 1,
    "year": 1,
    "monthly": 12,
    "weekly": 52,
    "biweekly": 26,
    "four_weekly": 13,
}
WEEKS_PER_YEAR = Decimal("52")


def annual_salary(profile: ContractProfile) -> Decimal | None:
    """Annual contracted pay from a salary, or from hourly rate times standard weekly hours."""
    if profile.salary_amount is not None and profile.salary_amount > 0:
        period = (profile.salary_period or "annual").strip().lower()
        multiplier = SALARY_PERIOD_MULTIPLIERS.get(period)
        if multiplier is None:
            frequency = normalize_pay_frequency(period)
            multiplier = periods_per_year(frequency) if frequency else None
        if multiplier is None:
            return None
        return profile.salary_amount * multiplier
    if profile.hourly_rate is not None and profile.standard_hours_per_week is not None:
        return profile.hourly_rate * profile.standard_hours_per_week * WEEKS_PER_YEAR
    return None


def resolve_contract_frequency(context: RuleEvaluationContext) -> str | None:
    candidates = [context.contract.pay_frequency if context.contract else None]
    if context.ie is not None:
        candidates.append(context.ie.pay_frequency)
    if context.uk is not None:
        candidates.append(context.uk.pay_frequency)
    for candidate in candidates:
        frequency = normalize_pay_frequency(candidate)
        if frequency is not None:
            return frequency
    return None


def evaluate_contract_gross(context: RuleEvaluationContext) -> RuleOutcome | None:
    if context.contract is None:
        return None
    gross = context.current.gross_pay
    frequency = resolve_contract_frequency(context)
    annual = annual_salary(context.contract)
    if gross is None or frequency is None or annual is None or annual <= 0:
        return None

    expected = round2(annual / periods_per_year(frequency))
    difference = gross - expected
    percent = abs(difference) / expected * Decimal("100")
    if percent <= Decimal(str(context.config.contract_gross_tolerance_percent)):
        return None
    currency = "£" if context.country.upper() == "UK" else "€"
    return RuleOutcome(
        description=(
            f"Gross pay {format_money(gross, currency)} differs from contracted "
            f"{format_money(expected, currency)} per {frequency.replace('_', '-')} period by {percent:.1f}%"
        ),
        data={
            "expected": as_float(expected),
            "actual": as_float(gross),
            "difference": as_float(difference),
            "percent_difference": as_float(percent),
            "annual_salary": as_float(annual),
            "pay_frequency": frequency,
        },
    )


CONTRACT_RULES: tuple[RuleDefinition, ...] = (
    RuleDefinition(
        code="CONTRACT_GROSS_MISMATCH",
        description_template="Gross pay differs from contracted pay by {percent_difference}%",
        severity="warning",
        categories=("gross", "contract"),
        countries=COUNTRY_ALL,
        evaluate=evaluate_contract_gross,
    ),
)
