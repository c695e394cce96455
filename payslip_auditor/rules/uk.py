#!/usr/bin/env python3

from __future__ import annotations

from decimal import Decimal

from payslip_auditor.calculators.common import normalize_pay_frequency, round2, weeks_per_period
from payslip_auditor.calculators.uk import (
    calc_uk_nic,
    calc_uk_paye,
    calc_uk_student_loan,
    normalize_nic_category,
)
from payslip_auditor.core import as_float, format_money
from payslip_auditor.rules.base import RuleDefinition, RuleEvaluationContext, RuleOutcome

UK_ONLY: frozenset[str] = frozenset({"UK"})
MISMATCH_TOLERANCE = Decimal("1.00")
PENSIONER_AGE = 66
APPRENTICE_AGE_LIMIT = 25
UNDER_21_AGE_LIMIT = 21
UNDER_21_CATEGORIES = ("M", "Z")


def money(value: Decimal) -> str:
    return format_money(value, symbol="£")


def evaluate_uk_paye(context: RuleEvaluationContext) -> RuleOutcome | None:
    config = context.config.uk_config
    uk = context.uk
    actual = context.current.paye
    gross = context.current.gross_pay
    if config is None or uk is None or actual is None or gross is None:
        return None
    if not uk.tax_code or normalize_pay_frequency(uk.pay_frequency) is None:
        return None

    result = calc_uk_paye(gross, config, uk.tax_code, uk.pay_frequency)
    difference = actual - result.tax_due
    if abs(difference) <= MISMATCH_TOLERANCE:
        return None
    return RuleOutcome(
        description=(
            f"PAYE deducted {money(actual)} but expected {money(result.tax_due)} "
            f"for tax code {result.tax_code} (allowance {money(result.allowance_per_period)} per period)"
        ),
        data={
            "expected": as_float(result.tax_due),
            "actual": as_float(actual),
            "difference": as_float(difference),
            "tax_code": result.tax_code,
            "periods": result.periods,
            "allowance_per_period": as_float(result.allowance_per_period),
            "taxable_per_period": as_float(result.taxable_per_period),
            "bands": [
                {
                    "label": band.label,
                    "rate": float(band.rate),
                    "period_amount": as_float(band.period_amount),
                    "period_tax": as_float(band.period_tax),
                }
                for band in result.band_usage
            ],
        },
    )


def evaluate_uk_nic(context: RuleEvaluationContext) -> RuleOutcome | None:
    config = context.config.uk_config
    uk = context.uk
    if config is None or uk is None or context.current.gross_pay is None:
        return None
    employee_actual = context.current.nic_employee
    if employee_actual is None:
        employee_actual = context.current.usc_or_ni
    employer_actual = context.current.nic_employer
    if employee_actual is None and employer_actual is None:
        return None

    category = context.current.prsi_or_ni_category or uk.expected_category
    result = calc_uk_nic(context.current.gross_pay, config, category, uk.pay_frequency)
    factor = weeks_per_period(uk.pay_frequency)
    expected_employee = round2(result.employee_charge * factor)
    expected_employer = round2(result.employer_charge * factor)

    mismatches = []
    data: dict[str, object] = {
        "category": result.category,
        "weekly_earnings": as_float(result.weekly_earnings),
    }
    if employee_actual is not None:
        employee_difference = employee_actual - expected_employee
        data.update(
            expected_employee=as_float(expected_employee),
            actual_employee=as_float(employee_actual),
            employee_difference=as_float(employee_difference),
        )
        if abs(employee_difference) > MISMATCH_TOLERANCE:
            mismatches.append(f"employee {money(employee_actual)} vs expected {money(expected_employee)}")
    if employer_actual is not None:
        employer_difference = employer_actual - expected_employer
        data.update(
            expected_employer=as_float(expected_employer),
            actual_employer=as_float(employer_actual),
            employer_difference=as_float(employer_difference),
        )
        if abs(employer_difference) > MISMATCH_TOLERANCE:
            mismatches.append(f"employer {money(employer_actual)} vs expected {money(expected_employer)}")

    if not mismatches:
        return None
    return RuleOutcome(
        description=f"NIC category {result.category} mismatch: " + "; ".join(mismatches),
        data=data,
    )


def evaluate_uk_student_loan(context: RuleEvaluationContext) -> list[RuleOutcome] | None:
    config = context.config.uk_config
    uk = context.uk
    gross = context.current.gross_pay
    if config is None or uk is None or gross is None:
        return None
    if not uk.student_loan_plan and not uk.has_postgrad_loan:
        return None

    result = calc_uk_student_loan(gross, config, uk.student_loan_plan, uk.has_postgrad_loan, uk.pay_frequency)
    outcomes = []
    checks = (
        (result.plan, result.plan_charge, context.current.student_loan, result.plan_threshold_per_period),
        (
            "Postgrad" if result.postgrad_applied else None,
            result.postgrad_charge,
            context.current.postgrad_loan,
            result.postgrad_threshold_per_period,
        ),
    )
    for plan, expected, actual, threshold in checks:
        if plan is None or actual is None:
            continue
        difference = actual - expected
        if abs(difference) <= MISMATCH_TOLERANCE:
            continue
        outcomes.append(
            RuleOutcome(
                description=f"{plan} student loan deducted {money(actual)} but expected {money(expected)}",
                data={
                    "plan": plan,
                    "expected": as_float(expected),
                    "actual": as_float(actual),
                    "difference": as_float(difference),
                    "threshold_per_period": as_float(threshold),
                },
            )
        )
    return outcomes or None


def detect_unusual_nic_category(context: RuleEvaluationContext) -> tuple[str, str | None] | None:
    """First matching reason a NIC category letter looks wrong for the employee's circumstances."""
    uk = context.uk
    if uk is None:
        return None
    category = normalize_nic_category(context.current.prsi_or_ni_category)
    if category is None:
        return "NIC category missing from payslip", None

    expected = normalize_nic_category(uk.expected_category)
    if expected and expected != category:
        return f"NIC category {category} differs from expected category {expected}", category

    age = uk.age
    is_pensioner = uk.is_pensioner or (age is not None and age >= PENSIONER_AGE)
    if is_pensioner and category != "C":
        return f"Employee over State Pension age on NIC category {category}; category C expected", category

    if uk.is_apprentice and age is not None and age < APPRENTICE_AGE_LIMIT and category != "H":
        return f"Apprentice under {APPRENTICE_AGE_LIMIT} on NIC category {category}; category H expected", category

    if not uk.is_apprentice and age is not None and age < UNDER_21_AGE_LIMIT and category not in UNDER_21_CATEGORIES:
        return f"Employee under {UNDER_21_AGE_LIMIT} on NIC category {category}; category M or Z expected", category
    return None


def evaluate_uk_nic_category(context: RuleEvaluationContext) -> RuleOutcome | None:
    if context.uk is None:
        return None
    finding = detect_unusual_nic_category(context)
    if finding is None:
        return None
    reason, category = finding
    return RuleOutcome(
        description=reason,
        data={
            "reason": reason,
            "category": category,
            "expected_category": normalize_nic_category(context.uk.expected_category),
            "age": context.uk.age,
        },
    )


UK_RULES: tuple[RuleDefinition, ...] = (
    RuleDefinition(
        code="UK_PAYE_MISMATCH",
        description_template="PAYE deducted {actual} but expected {expected} for tax code {tax_code}",
        severity="critical",
        categories=("tax", "uk"),
        countries=UK_ONLY,
        evaluate=evaluate_uk_paye,
    ),
    RuleDefinition(
        code="UK_NIC_MISMATCH",
        description_template="NIC deductions do not match category {category}",
        severity="critical",
        categories=("nic", "uk"),
        countries=UK_ONLY,
        evaluate=evaluate_uk_nic,
    ),
    RuleDefinition(
        code="UK_STUDENT_LOAN_MISMATCH",
        description_template="{plan} student loan deducted {actual} but expected {expected}",
        severity="warning",
        categories=("student_loan", "uk"),
        countries=UK_ONLY,
        evaluate=evaluate_uk_student_loan,
    ),
    RuleDefinition(
        code="UK_NIC_CATEGORY_UNUSUAL",
        description_template="NIC category {category} looks unusual",
        severity="warning",
        categories=("nic", "compliance", "uk"),
        countries=UK_ONLY,
        evaluate=evaluate_uk_nic_category,
    ),
)
