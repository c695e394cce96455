#!/usr/bin/env python3

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any

from payslip_auditor.core import SEVERITIES, IssueCandidate, PayslipLike, coerce_payslip
from payslip_auditor.diff import PayslipDiff, calculate_diff
from payslip_auditor.rules.base import (
    ContractProfile,
    IeRuleContext,
    RuleDefinition,
    RuleEvaluationContext,
    RuleOutcome,
    RuleSet,
    UkRuleContext,
    normalize_outcomes,
)
from payslip_auditor.rules.baseline import BASELINE_RULES
from payslip_auditor.rules.config import RuleConfig
from payslip_auditor.rules.contract import CONTRACT_RULES
from payslip_auditor.rules.ireland import IRELAND_RULES
from payslip_auditor.rules.uk import UK_RULES

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def baseline_rule_set() -> RuleSet:
    """The production rule set, built once."""
    return RuleSet(BASELINE_RULES + IRELAND_RULES + UK_RULES + CONTRACT_RULES)


def resolve_severity(
    code: str, outcome: RuleOutcome, rule: RuleDefinition, overrides: dict[str, str] | None = None
) -> str:
    """
    Final severity for an outcome: config override, then outcome severity, then rule default.

    Override values that are not a known severity are ignored.
    """
    override = (overrides or {}).get(code)
    if override is not None:
        if override in SEVERITIES:
            return override
        logger.warning(f"Ignoring invalid severity override {override!r} for rule {code}.")
    if outcome.severity is not None and outcome.severity in SEVERITIES:
        return outcome.severity
    return rule.severity


class _TemplateValues(dict[str, Any]):
    def __missing__(self, key: str) -> str:
        return "n/a"


def render_description(template: str, data: dict[str, Any] | None) -> str:
    values = _TemplateValues({k: ("n/a" if v is None else v) for k, v in (data or {}).items()})
    try:
        return template.format_map(values)
    except (ValueError, IndexError, AttributeError):
        return template


def run_rules(
    current: PayslipLike,
    previous: PayslipLike | None,
    diff: PayslipDiff | None,
    *,
    country: str,
    tax_year: int | None,
    config: RuleConfig,
    ie_context: IeRuleContext | None = None,
    uk_context: UkRuleContext | None = None,
    contract_profile: ContractProfile | None = None,
    rule_set: RuleSet | None = None,
) -> list[IssueCandidate]:
    """
    Evaluate every applicable rule against one payslip and return issue candidates.

    The diff is recomputed when not supplied. Candidates are not deduplicated by code.
    """
    current_slip = coerce_payslip(current)
    if current_slip is None:
        raise ValueError("Current payslip is required to run rules")
    previous_slip = coerce_payslip(previous)
    if diff is None:
        diff = calculate_diff(previous_slip, current_slip)

    rules = rule_set if rule_set is not None else baseline_rule_set()
    context = RuleEvaluationContext(
        current=current_slip,
        previous=previous_slip,
        diff=diff,
        country=(country or "").upper(),
        tax_year=tax_year,
        config=config,
        ie=ie_context,
        uk=uk_context,
        contract=contract_profile,
    )

    issues: list[IssueCandidate] = []
    applicable = rules.applicable(context.country, tax_year, config.enabled_rule_packs)
    for rule in applicable:
        for outcome in normalize_outcomes(rule.evaluate(context)):
            issues.append(
                IssueCandidate(
                    rule_code=rule.code,
                    severity=resolve_severity(rule.code, outcome, rule, config.severity_overrides),
                    description=outcome.description or render_description(rule.description_template, outcome.data),
                    data=outcome.data,
                )
            )

    logger.debug(
        f"Evaluated {len(applicable)} rules for employee {current_slip.employee_id or 'n/a'} "
        f"({context.country} {tax_year}); {len(issues)} issue(s)."
    )
    return issues
