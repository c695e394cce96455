#!/usr/bin/env python3

from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from payslip_auditor.calculators.common import (
    clamp_non_negative,
    derive_weekly_earnings,
    periods_per_year,
    round2,
)
from payslip_auditor.tax_config import UkNicCategory, UkTaxYearConfig

ZERO = Decimal("0")
TAX_CODE_NUMBER = re.compile(r"(\d{1,4})")
BASIC_RATE_CODE = "BR"
DEFAULT_NIC_CATEGORY = "A"
POSTGRAD_PLAN = "Postgrad"


@dataclass(frozen=True)
class UkPayeBandUsage:
    label: str
    rate: Decimal
    annual_amount: Decimal
    period_amount: Decimal
    period_tax: Decimal


@dataclass(frozen=True)
class UkPayeResult:
    tax_code: str
    periods: int
    allowance_per_period: Decimal
    taxable_per_period: Decimal
    tax_due: Decimal
    band_usage: tuple[UkPayeBandUsage, ...] = ()


@dataclass(frozen=True)
class UkNicResult:
    category: str
    weekly_earnings: Decimal
    employee_charge: Decimal
    employer_charge: Decimal
    employee_lower_rate_used: Decimal
    employee_upper_rate_used: Decimal
    employer_rate_used: Decimal


@dataclass(frozen=True)
class UkStudentLoanResult:
    plan: str | None
    postgrad_applied: bool
    plan_charge: Decimal
    postgrad_charge: Decimal
    total_charge: Decimal
    plan_threshold_per_period: Decimal | None
    postgrad_threshold_per_period: Decimal | None


def is_basic_rate_code(tax_code: str | None) -> bool:
    return bool(tax_code) and tax_code.strip().upper() == BASIC_RATE_CODE


def parse_tax_code_allowance(tax_code: str | None, default_allowance: Decimal) -> Decimal:
    """Annual allowance from a tax code: 1257L -> 12570. BR carries no allowance."""
    if not tax_code:
        return default_allowance
    cleaned = tax_code.strip().upper()
    if cleaned == BASIC_RATE_CODE:
        return ZERO
    match = TAX_CODE_NUMBER.search(cleaned)
    if not match:
        return default_allowance
    return Decimal(match.group(1)) * 10


def calc_uk_paye(gross: Any, config: UkTaxYearConfig, tax_code: str, pay_frequency: str | None) -> UkPayeResult:
    gross_pay = clamp_non_negative(gross)
    periods = periods_per_year(pay_frequency)

    annual_allowance = parse_tax_code_allowance(tax_code, config.personal_allowance)
    allowance_per_period = annual_allowance / periods
    taxable_per_period = max(ZERO, gross_pay - allowance_per_period)

    usage: list[UkPayeBandUsage] = []
    if is_basic_rate_code(tax_code):
        basic_rate = config.paye_bands[0].rate
        tax_due = taxable_per_period * basic_rate
    else:
        taxable_annual = taxable_per_period * periods
        remaining = taxable_annual
        previous_cap = ZERO
        tax_due = ZERO
        for band in config.paye_bands:
            if remaining <= 0:
                break
            upper_cap = taxable_annual if band.up_to is None else band.up_to
            used = max(ZERO, min(remaining, upper_cap - previous_cap))
            per_period = used / periods
            band_tax = per_period * band.rate
            tax_due += band_tax
            usage.append(
                UkPayeBandUsage(
                    label=band.label,
                    rate=band.rate,
                    annual_amount=round2(used),
                    period_amount=round2(per_period),
                    period_tax=round2(band_tax),
                )
            )
            remaining -= used
            previous_cap = upper_cap

    return UkPayeResult(
        tax_code=(tax_code or "").strip().upper(),
        periods=periods,
        allowance_per_period=round2(allowance_per_period),
        taxable_per_period=round2(taxable_per_period),
        tax_due=round2(tax_due),
        band_usage=tuple(usage),
    )


def normalize_nic_category(category: Any) -> str | None:
    if not category or not isinstance(category, str):
        return None
    cleaned = category.strip().upper()
    return cleaned[0] if cleaned and cleaned[0].isalpha() else None


def resolve_nic_category(config: UkTaxYearConfig, category: Any) -> UkNicCategory:
    letter = normalize_nic_category(category) or DEFAULT_NIC_CATEGORY
    return config.nic_categories.get(letter) or config.nic_categories[DEFAULT_NIC_CATEGORY]


def calc_uk_nic(
    gross: Any, config: UkTaxYearConfig, category: str | None = None, pay_frequency: str | None = None
) -> UkNicResult:
    """Weekly Class 1 NIC for both sides, using category overrides where configured."""
    cat = resolve_nic_category(config, category)
    weekly = derive_weekly_earnings(gross, pay_frequency)
    thresholds = config.nic_thresholds
    rates = config.nic_rates

    lower_rate = cat.employee_lower_rate if cat.employee_lower_rate is not None else rates.employee_lower_rate
    upper_rate = cat.employee_upper_rate if cat.employee_upper_rate is not None else rates.employee_upper_rate
    employer_rate = cat.employer_rate if cat.employer_rate is not None else rates.employer_rate

    primary = thresholds.primary_threshold_weekly
    uel = thresholds.upper_earnings_limit_weekly
    above_primary = max(ZERO, weekly - primary)
    lower_slice = min(above_primary, uel - primary)
    upper_slice = max(ZERO, weekly - uel)
    employee_charge = lower_slice * lower_rate + upper_slice * upper_rate

    employer_base = max(ZERO, weekly - thresholds.secondary_threshold_weekly)
    relief_ceiling = (
        cat.upper_secondary_threshold_weekly
        or thresholds.upper_secondary_threshold_weekly
        or thresholds.upper_earnings_limit_weekly
    )
    if cat.employer_rate_below_upper_secondary is not None and weekly <= relief_ceiling:
        employer_rate = cat.employer_rate_below_upper_secondary
    employer_charge = employer_base * employer_rate

    return UkNicResult(
        category=cat.letter,
        weekly_earnings=round2(weekly),
        employee_charge=round2(employee_charge),
        employer_charge=round2(employer_charge),
        employee_lower_rate_used=lower_rate,
        employee_upper_rate_used=upper_rate,
        employer_rate_used=employer_rate,
    )


def calc_uk_student_loan(
    gross: Any,
    config: UkTaxYearConfig,
    plan: str | None = None,
    has_postgrad_loan: bool = False,
    pay_frequency: str | None = None,
) -> UkStudentLoanResult:
    pay = clamp_non_negative(gross)
    periods = periods_per_year(pay_frequency)
    plan_config = config.student_loan_plan(plan)
    if plan_config is not None and plan_config.plan == POSTGRAD_PLAN:
        plan_config = None
    postgrad_config = config.student_loan_plan(POSTGRAD_PLAN) if has_postgrad_loan else None

    plan_threshold = plan_config.threshold_annual / periods if plan_config else None
    postgrad_threshold = postgrad_config.threshold_annual / periods if postgrad_config else None

    plan_charge = ZERO
    if plan_config is not None and plan_threshold is not None:
        plan_charge = round2(max(ZERO, pay - plan_threshold) * plan_config.rate)
    postgrad_charge = ZERO
    if postgrad_config is not None and postgrad_threshold is not None:
        postgrad_charge = round2(max(ZERO, pay - postgrad_threshold) * postgrad_config.rate)

    return UkStudentLoanResult(
        plan=plan_config.plan if plan_config else None,
        postgrad_applied=postgrad_config is not None,
        plan_charge=plan_charge,
        postgrad_charge=postgrad_charge,
        total_charge=round2(plan_charge + postgrad_charge),
        plan_threshold_per_period=round2(plan_threshold) if plan_threshold is not None else None,
        postgrad_threshold_per_period=round2(postgrad_threshold) if postgrad_threshold is not None else None,
    )
