#!/usr/bin/env python3

from __future__ import annotations

import dataclasses
from decimal import Decimal

from payslip_auditor.calculators.common import normalize_pay_frequency, periods_per_year, round2, weeks_per_period
from payslip_auditor.calculators.ireland import (
    IePayeInputs,
    IePrsiProfile,
    calc_ie_paye,
    calc_ie_prsi,
    calc_ie_usc,
    normalize_prsi_class,
)
from payslip_auditor.core import as_float, format_money
from payslip_auditor.rules.base import RuleDefinition, RuleEvaluationContext, RuleOutcome

IE_ONLY: frozenset[str] = frozenset({"IE"})
MISMATCH_TOLERANCE = Decimal("1.00")
PENSIONER_AGE = 66


def resolve_period_paye_inputs(context: RuleEvaluationContext) -> IePayeInputs | None:
    """
    Period cutoff and credits for the PAYE check.

    An explicit cutoff is used as given; otherwise the filing category's annual cutoff
    is spread over the pay periods. Without either, PAYE cannot be verified.
    """
    ie = context.ie
    config = context.config.ie_config
    if ie is None or ie.paye is None or config is None:
        return None
    if ie.paye.standard_rate_cutoff is not None:
        return ie.paye
    frequency = normalize_pay_frequency(ie.pay_frequency)
    annual_cutoff = config.standard_rate_cutoff(ie.paye_category)
    if frequency is None or annual_cutoff is None:
        return None
    return IePayeInputs(
        tax_credits=ie.paye.tax_credits,
        standard_rate_cutoff=annual_cutoff / periods_per_year(frequency),
    )


def evaluate_ie_paye(context: RuleEvaluationContext) -> RuleOutcome | None:
    config = context.config.ie_config
    actual = context.current.paye
    gross = context.current.gross_pay
    inputs = resolve_period_paye_inputs(context)
    if config is None or inputs is None or actual is None or gross is None:
        return None

    breakdown = calc_ie_paye(gross, config, inputs)
    difference = actual - breakdown.net_tax
    if abs(difference) <= MISMATCH_TOLERANCE:
        return None
    return RuleOutcome(
        description=(
            f"PAYE deducted {format_money(actual)} but expected {format_money(breakdown.net_tax)} "
            f"(standard band {format_money(breakdown.standard_band_used)} @ {breakdown.standard_rate * 100:.0f}%, "
            f"higher band {format_money(breakdown.higher_band_used)} @ {breakdown.higher_rate * 100:.0f}%, "
            f"credits {format_money(breakdown.credits_applied)})"
        ),
        data={
            "expected": as_float(breakdown.net_tax),
            "actual": as_float(actual),
            "difference": as_float(difference),
            "standard_band_used": as_float(breakdown.standard_band_used),
            "higher_band_used": as_float(breakdown.higher_band_used),
            "standard_rate": float(breakdown.standard_rate),
            "higher_rate": float(breakdown.higher_rate),
            "gross_tax": as_float(breakdown.gross_tax),
            "tax_credits": as_float(breakdown.credits_applied),
            "standard_rate_cutoff": as_float(inputs.standard_rate_cutoff),
        },
    )


def evaluate_ie_usc(context: RuleEvaluationContext) -> RuleOutcome | None:
    config = context.config.ie_config
    actual = context.current.usc_or_ni
    gross = context.current.gross_pay
    if config is None or actual is None or gross is None:
        return None

    frequency = normalize_pay_frequency(context.ie.pay_frequency) if context.ie else None
    if frequency is None:
        result = calc_ie_usc(gross, config)
        expected = result.total_charge
    else:
        periods = periods_per_year(frequency)
        result = calc_ie_usc(gross * periods, config)
        expected = round2(result.total_charge / periods)

    difference = actual - expected
    if abs(difference) <= MISMATCH_TOLERANCE:
        return None
    return RuleOutcome(
        description=f"USC deducted {format_money(actual)} but expected {format_money(expected)}",
        data={
            "expected": as_float(expected),
            "actual": as_float(actual),
            "difference": as_float(difference),
            "annualized": frequency is not None,
            "bands": [
                {
                    "rate": float(band.rate),
                    "amount": as_float(band.amount),
                    "charge": as_float(band.charge),
                    "upper_limit": as_float(band.upper_limit),
                }
                for band in result.band_usage
            ],
        },
    )


def resolve_prsi_profile(context: RuleEvaluationContext) -> IePrsiProfile | None:
    """PRSI profile with the context pay frequency filled in when the profile has none."""
    if context.ie is None or context.ie.prsi is None:
        return None
    profile = context.ie.prsi
    if profile.pay_frequency is None and context.ie.pay_frequency is not None:
        profile = dataclasses.replace(profile, pay_frequency=context.ie.pay_frequency)
    return profile


def evaluate_ie_prsi(context: RuleEvaluationContext) -> RuleOutcome | None:
    config = context.config.ie_config
    profile = resolve_prsi_profile(context)
    if config is None or profile is None or context.current.gross_pay is None:
        return None
    result = calc_ie_prsi(context.current, config, profile)
    if result is None:
        return None

    employee_actual = context.current.nic_employee
    employer_actual = context.current.nic_employer
    if employee_actual is None and employer_actual is None:
        return None

    factor = weeks_per_period(profile.pay_frequency)
    expected_employee = round2(result.employee_charge * factor)
    expected_employer = round2(result.employer_charge * factor)

    mismatches = []
    data: dict[str, object] = {
        "class_code": result.class_code,
        "weekly_earnings": as_float(result.weekly_earnings),
        "employee_credit": as_float(result.employee_credit),
    }
    if employee_actual is not None:
        employee_difference = employee_actual - expected_employee
        data.update(
            expected_employee=as_float(expected_employee),
            actual_employee=as_float(employee_actual),
            employee_difference=as_float(employee_difference),
        )
        if abs(employee_difference) > MISMATCH_TOLERANCE:
            mismatches.append(
                f"employee {format_money(employee_actual)} vs expected {format_money(expected_employee)}"
            )
    if employer_actual is not None:
        employer_difference = employer_actual - expected_employer
        data.update(
            expected_employer=as_float(expected_employer),
            actual_employer=as_float(employer_actual),
            employer_difference=as_float(employer_difference),
        )
        if abs(employer_difference) > MISMATCH_TOLERANCE:
            mismatches.append(
                f"employer {format_money(employer_actual)} vs expected {format_money(expected_employer)}"
            )

    if not mismatches:
        return None
    return RuleOutcome(
        description=f"PRSI class {result.class_code} mismatch: " + "; ".join(mismatches),
        data=data,
    )


def detect_unusual_prsi_class(context: RuleEvaluationContext) -> tuple[str, str | None] | None:
    """First matching reason a payslip's PRSI class looks wrong for the employee's profile."""
    profile = resolve_prsi_profile(context)
    if profile is None:
        return None
    class_code = normalize_prsi_class(context.current.prsi_or_ni_category)
    if class_code is None:
        return "PRSI class missing from payslip", None

    expected = normalize_prsi_class(profile.expected_class)
    if expected and expected != class_code:
        return f"PRSI class {class_code} differs from expected class {expected}", class_code

    is_pensioner = profile.is_pensioner or (profile.age is not None and profile.age >= PENSIONER_AGE)
    if is_pensioner and class_code != "J":
        return f"Pensioner on PRSI class {class_code}; class J expected", class_code

    if profile.is_self_employed and class_code != "S":
        return f"Self-employed earner on PRSI class {class_code}; class S expected", class_code

    config = context.config.ie_config
    class_a = config.prsi_classes.get("A") if config else None
    gross = context.current.gross_pay
    if profile.low_pay_role and class_a is not None and gross is not None and class_code != "J":
        result = calc_ie_prsi(context.current, config, profile) if config else None
        if result is not None and result.weekly_earnings < class_a.weekly_threshold:
            return (
                f"Low-pay role earning {format_money(result.weekly_earnings)} a week on PRSI class {class_code}; "
                "class J expected",
                class_code,
            )
    return None


def evaluate_ie_prsi_class(context: RuleEvaluationContext) -> RuleOutcome | None:
    if context.ie is None or context.ie.prsi is None:
        return None
    finding = detect_unusual_prsi_class(context)
    if finding is None:
        return None
    reason, class_code = finding
    return RuleOutcome(
        description=reason,
        data={
            "reason": reason,
            "class_code": class_code,
            "expected_class": normalize_prsi_class(context.ie.prsi.expected_class),
        },
    )


IRELAND_RULES: tuple[RuleDefinition, ...] = (
    RuleDefinition(
        code="IE_PAYE_MISMATCH",
        description_template="PAYE deducted {actual} but expected {expected}",
        severity="critical",
        categories=("tax", "ie"),
        countries=IE_ONLY,
        evaluate=evaluate_ie_paye,
    ),
    RuleDefinition(
        code="IE_USC_MISMATCH",
        description_template="USC deducted {actual} but expected {expected}",
        severity="critical",
        categories=("tax", "ie"),
        countries=IE_ONLY,
        evaluate=evaluate_ie_usc,
    ),
    RuleDefinition(
        code="IE_PRSI_MISMATCH",
        description_template="PRSI deductions do not match class {class_code}",
        severity="critical",
        categories=("prsi", "ie"),
        countries=IE_ONLY,
        evaluate=evaluate_ie_prsi,
    ),
    RuleDefinition(
        code="IE_PRSI_CLASS_UNUSUAL",
        description_template="PRSI class {class_code} looks unusual",
        severity="warning",
        categories=("prsi", "compliance", "ie"),
        countries=IE_ONLY,
        evaluate=evaluate_ie_prsi_class,
    ),
)
