#!/usr/bin/env python3

from __future__ import annotations

from decimal import Decimal

from payslip_auditor.calculators.ireland import normalize_prsi_class
from payslip_auditor.core import as_float, format_money, format_percent
from payslip_auditor.diff import DiffEntry
from payslip_auditor.rules.base import COUNTRY_ALL, RuleDefinition, RuleEvaluationContext, RuleOutcome

YTD_FIELDS: tuple[str, ...] = ("ytd_gross", "ytd_net", "ytd_tax", "ytd_usc_or_ni")
YTD_LABELS: dict[str, str] = {
    "ytd_gross": "YTD gross",
    "ytd_net": "YTD net",
    "ytd_tax": "YTD tax",
    "ytd_usc_or_ni": "YTD USC/NI",
}


def as_threshold(value: float) -> Decimal:
    return Decimal(str(value))


def exceeds(entry: DiffEntry, threshold: float) -> bool:
    if not entry.has_previous or entry.percent_change is None:
        return False
    return abs(entry.percent_change) >= as_threshold(threshold)


def gross_within(entry: DiffEntry, limit: float) -> bool:
    return entry.percent_change is None or abs(entry.percent_change) <= as_threshold(limit)


def describe_gross_movement(percent: Decimal | None) -> str:
    if percent is None or abs(percent) < Decimal("0.01"):
        return "stayed flat"
    direction = "increased" if percent > 0 else "decreased"
    return f"{direction} by {format_percent(percent, signed=True)}"


def change_payload(entry: DiffEntry) -> dict[str, float | None]:
    return {
        "previous": as_float(entry.previous),
        "current": as_float(entry.current),
        "delta": as_float(entry.delta),
        "percent_change": as_float(entry.percent_change),
    }


def evaluate_net_change(context: RuleEvaluationContext) -> RuleOutcome | None:
    entry = context.diff["net_pay"]
    if not exceeds(entry, context.config.large_net_change_percent):
        return None
    return RuleOutcome(
        description=(
            f"Net pay changed by {format_percent(entry.percent_change)} "
            f"({format_money(entry.previous)} → {format_money(entry.current)})"
        ),
        data=change_payload(entry),
    )


def evaluate_gross_change(context: RuleEvaluationContext) -> RuleOutcome | None:
    entry = context.diff["gross_pay"]
    if not exceeds(entry, context.config.large_gross_change_percent):
        return None
    return RuleOutcome(
        description=(
            f"Gross pay changed by {format_percent(entry.percent_change)} "
            f"({format_money(entry.previous)} → {format_money(entry.current)})"
        ),
        data=change_payload(entry),
    )


def evaluate_tax_spike(context: RuleEvaluationContext) -> RuleOutcome | None:
    entry = context.diff["paye"]
    gross = context.diff["gross_pay"]
    if not exceeds(entry, context.config.paye_spike_percent):
        return None
    if not gross_within(gross, context.config.max_gross_delta_percent):
        return None
    return RuleOutcome(
        description=(
            f"PAYE changed by {format_percent(entry.percent_change, signed=True)} "
            f"({format_money(entry.previous)} → {format_money(entry.current)}) "
            f"while gross pay {describe_gross_movement(gross.percent_change)}"
        ),
        data={**change_payload(entry), "gross_percent_change": as_float(gross.percent_change)},
    )


def evaluate_usc_spike(context: RuleEvaluationContext) -> RuleOutcome | None:
    entry = context.diff["usc_or_ni"]
    gross = context.diff["gross_pay"]
    if not exceeds(entry, context.config.usc_spike_percent):
        return None
    if not gross_within(gross, context.config.max_gross_delta_for_usc_percent):
        return None
    return RuleOutcome(
        description=(
            f"USC/NI changed by {format_percent(entry.percent_change, signed=True)} "
            f"({format_money(entry.previous)} → {format_money(entry.current)}) "
            f"while gross pay {describe_gross_movement(gross.percent_change)}"
        ),
        data={**change_payload(entry), "gross_percent_change": as_float(gross.percent_change)},
    )


def evaluate_ytd_regression(context: RuleEvaluationContext) -> list[RuleOutcome] | None:
    outcomes = []
    for name in YTD_FIELDS:
        entry = context.diff[name]
        if entry.previous is None or entry.current is None:
            continue
        if entry.current < entry.previous:
            outcomes.append(
                RuleOutcome(
                    description=(
                        f"{YTD_LABELS[name]} decreased "
                        f"({format_money(entry.previous)} → {format_money(entry.current)})"
                    ),
                    data={"field": name, **change_payload(entry)},
                )
            )
    return outcomes or None


def normalize_category_code(value: str | None) -> str | None:
    if not value or not isinstance(value, str):
        return None
    return value.strip().upper() or None


def evaluate_category_change(context: RuleEvaluationContext) -> RuleOutcome | None:
    if context.previous is None:
        return None
    previous = normalize_category_code(context.previous.prsi_or_ni_category)
    current = normalize_category_code(context.current.prsi_or_ni_category)
    if previous is None or current is None or previous == current:
        return None
    data: dict[str, str | None] = {"previous_category": previous, "current_category": current}
    if context.country.upper() == "IE":
        data["previous_class"] = normalize_prsi_class(previous)
        data["current_class"] = normalize_prsi_class(current)
    return RuleOutcome(description=f"PRSI/NI category changed {previous} → {current}", data=data)


def _pension_outcome(context: RuleEvaluationContext, field_name: str, label: str, ceiling: float) -> RuleOutcome | None:
    gross = context.current.gross_pay
    if gross is None or gross == 0:
        return None
    contribution = context.current.amount(field_name)
    if contribution is None:
        return None
    percent = contribution / gross * Decimal("100")
    if percent < as_threshold(ceiling):
        return None
    return RuleOutcome(
        description=(
            f"{label} is {format_percent(percent)} of gross pay "
            f"({format_money(contribution)} / {format_money(gross)})"
        ),
        data={
            "contribution": as_float(contribution),
            "gross_pay": as_float(gross),
            "percent": as_float(percent),
            "ceiling_percent": ceiling,
        },
    )


def evaluate_pension_employee(context: RuleEvaluationContext) -> RuleOutcome | None:
    return _pension_outcome(
        context, "pension_employee", "Employee pension contribution", context.config.pension_employee_percent
    )


def evaluate_pension_employer(context: RuleEvaluationContext) -> RuleOutcome | None:
    return _pension_outcome(
        context, "pension_employer", "Employer pension contribution", context.config.pension_employer_percent
    )


BASELINE_RULES: tuple[RuleDefinition, ...] = (
    RuleDefinition(
        code="NET_CHANGE_LARGE",
        description_template="Net pay changed by {percent_change}%",
        severity="warning",
        categories=("net",),
        countries=COUNTRY_ALL,
        evaluate=evaluate_net_change,
    ),
    RuleDefinition(
        code="GROSS_CHANGE_LARGE",
        description_template="Gross pay changed by {percent_change}%",
        severity="warning",
        categories=("gross",),
        countries=COUNTRY_ALL,
        evaluate=evaluate_gross_change,
    ),
    RuleDefinition(
        code="TAX_SPIKE_WITHOUT_GROSS",
        description_template="PAYE spike without gross movement",
        severity="warning",
        categories=("tax",),
        countries=COUNTRY_ALL,
        evaluate=evaluate_tax_spike,
    ),
    RuleDefinition(
        code="USC_SPIKE_WITHOUT_GROSS",
        description_template="USC/NI spike without gross movement",
        severity="warning",
        categories=("tax",),
        countries=COUNTRY_ALL,
        evaluate=evaluate_usc_spike,
    ),
    RuleDefinition(
        code="YTD_REGRESSION",
        description_template="{field} decreased",
        severity="critical",
        categories=("ytd",),
        countries=COUNTRY_ALL,
        evaluate=evaluate_ytd_regression,
    ),
    RuleDefinition(
        code="PRSI_CATEGORY_CHANGE",
        description_template="PRSI/NI category changed {previous_category} → {current_category}",
        severity="info",
        categories=("compliance",),
        countries=COUNTRY_ALL,
        evaluate=evaluate_category_change,
    ),
    RuleDefinition(
        code="PENSION_EMPLOYEE_HIGH",
        description_template="Employee pension contribution is {percent}% of gross pay",
        severity="warning",
        categories=("pension",),
        countries=COUNTRY_ALL,
        evaluate=evaluate_pension_employee,
    ),
    RuleDefinition(
        code="PENSION_EMPLOYER_HIGH",
        description_template="Employer pension contribution is {percent}% of gross pay",
        severity="info",
        categories=("pension",),
        countries=COUNTRY_ALL,
        evaluate=evaluate_pension_employer,
    ),
)
