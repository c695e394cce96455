#!/usr/bin/env python3

from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from payslip_auditor.calculators.common import clamp_non_negative, derive_weekly_earnings, round2
from payslip_auditor.core import PayslipLike, as_decimal, coerce_payslip
from payslip_auditor.tax_config import IePrsiCredit, IeTaxYearConfig

ZERO = Decimal("0")
PRSI_CLASS_PATTERN = re.compile(r"^([A-Z])")


@dataclass(frozen=True)
class IePayeInputs:
    tax_credits: Decimal
    standard_rate_cutoff: Decimal | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> IePayeInputs:
        cutoff = data.get("standard_rate_cutoff")
        return cls(
            tax_credits=clamp_non_negative(data.get("tax_credits")),
            standard_rate_cutoff=None if cutoff is None else clamp_non_negative(cutoff),
        )


@dataclass(frozen=True)
class IePayeBreakdown:
    standard_band_used: Decimal
    higher_band_used: Decimal
    standard_rate: Decimal
    higher_rate: Decimal
    standard_tax: Decimal
    higher_tax: Decimal
    gross_tax: Decimal
    credits_applied: Decimal
    net_tax: Decimal


@dataclass(frozen=True)
class IeUscBandUsage:
    rate: Decimal
    amount: Decimal
    charge: Decimal
    upper_limit: Decimal | None


@dataclass(frozen=True)
class IeUscResult:
    band_usage: tuple[IeUscBandUsage, ...]
    total_charge: Decimal


@dataclass(frozen=True)
class IePrsiProfile:
    expected_class: str | None = None
    is_pensioner: bool = False
    age: int | None = None
    is_self_employed: bool = False
    low_pay_role: bool = False
    pay_frequency: str | None = None
    weekly_earnings_override: Decimal | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> IePrsiProfile:
        return cls(
            expected_class=data.get("expected_class"),
            is_pensioner=bool(data.get("is_pensioner", False)),
            age=data.get("age"),
            is_self_employed=bool(data.get("is_self_employed", False)),
            low_pay_role=bool(data.get("low_pay_role", False)),
            pay_frequency=data.get("pay_frequency"),
            weekly_earnings_override=as_decimal(data.get("weekly_earnings_override")),
        )


@dataclass(frozen=True)
class IePrsiResult:
    class_code: str
    weekly_earnings: Decimal
    subject_earnings: Decimal
    employee_rate: Decimal
    employer_rate: Decimal
    employee_credit: Decimal
    employee_charge: Decimal
    employer_charge: Decimal


def calc_ie_paye(gross: Any, config: IeTaxYearConfig, inputs: IePayeInputs) -> IePayeBreakdown:
    """
    Split gross into the standard-rate slice (up to the cutoff) and the higher-rate
    remainder, then subtract tax credits. Net tax never goes below zero.

    The cutoff and credits are taken as given for the pay period; callers
    de-annualize them before calling.
    """
    gross_pay = clamp_non_negative(gross)
    cutoff = clamp_non_negative(inputs.standard_rate_cutoff)
    credits = clamp_non_negative(inputs.tax_credits)

    standard_used = min(gross_pay, cutoff)
    higher_used = max(ZERO, gross_pay - standard_used)

    standard_tax = standard_used * config.standard_rate
    higher_tax = higher_used * config.higher_rate
    gross_tax = standard_tax + higher_tax

    return IePayeBreakdown(
        standard_band_used=standard_used,
        higher_band_used=higher_used,
        standard_rate=config.standard_rate,
        higher_rate=config.higher_rate,
        standard_tax=round2(standard_tax),
        higher_tax=round2(higher_tax),
        gross_tax=round2(gross_tax),
        credits_applied=credits,
        net_tax=round2(max(ZERO, gross_tax - credits)),
    )


def calc_ie_usc(income: Any, config: IeTaxYearConfig) -> IeUscResult:
    """Consume income band by band; the unbounded last band takes whatever is left."""
    usc_income = clamp_non_negative(income)
    remaining = usc_income
    previous_upper = ZERO
    usage: list[IeUscBandUsage] = []

    for band in config.usc_bands:
        if remaining <= 0:
            break
        if band.up_to is None:
            available = remaining
        else:
            available = max(ZERO, min(remaining, band.up_to - previous_upper))
            previous_upper = band.up_to
        usage.append(
            IeUscBandUsage(
                rate=band.rate,
                amount=available,
                charge=available * band.rate,
                upper_limit=band.up_to,
            )
        )
        remaining -= available

    total = sum((entry.charge for entry in usage), ZERO)
    return IeUscResult(band_usage=tuple(usage), total_charge=round2(total))


def normalize_prsi_class(value: Any) -> str | None:
    if not value or not isinstance(value, str):
        return None
    match = PRSI_CLASS_PATTERN.match(value.strip().upper())
    return match.group(1) if match else None


def calculate_prsi_credit(earnings: Decimal, threshold: Decimal, credit: IePrsiCredit | None) -> Decimal:
    if credit is None or earnings <= threshold:
        return ZERO
    if earnings >= credit.tapers_to_zero_at:
        return ZERO
    taper_range = credit.tapers_to_zero_at - threshold
    if taper_range <= 0:
        return ZERO
    progress = (earnings - threshold) / taper_range
    return max(ZERO, credit.max_weekly_credit * (1 - progress))


def calc_ie_prsi(
    payslip: PayslipLike, config: IeTaxYearConfig, profile: IePrsiProfile | None = None
) -> IePrsiResult | None:
    """
    Weekly PRSI charge for the payslip's class (falling back to the profile's expected class).

    Returns None when no class can be resolved to a configured one.
    """
    slip = coerce_payslip(payslip)
    if slip is None:
        raise ValueError("Payslip is required to calculate PRSI")
    class_code = normalize_prsi_class(slip.prsi_or_ni_category)
    if class_code is None and profile is not None:
        class_code = normalize_prsi_class(profile.expected_class)
    class_config = config.prsi_classes.get(class_code) if class_code else None
    if class_config is None:
        return None

    weekly = derive_weekly_earnings(
        slip.gross_pay,
        profile.pay_frequency if profile else None,
        profile.weekly_earnings_override if profile else None,
    )
    threshold = class_config.weekly_threshold
    subject = ZERO if weekly <= threshold else weekly

    employee_base = subject * class_config.employee_rate
    employer_base = subject * class_config.employer_rate
    credit = ZERO
    if class_config.class_code == "A":
        credit = calculate_prsi_credit(subject, threshold, config.prsi_credit)

    return IePrsiResult(
        class_code=class_config.class_code,
        weekly_earnings=round2(weekly),
        subject_earnings=round2(subject),
        employee_rate=class_config.employee_rate,
        employer_rate=class_config.employer_rate,
        employee_credit=round2(credit),
        employee_charge=round2(max(ZERO, employee_base - credit)),
        employer_charge=round2(employer_base),
    )
