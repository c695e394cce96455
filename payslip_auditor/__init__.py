from payslip_auditor.core import (
    IssueCandidate,
    Payslip,
    as_decimal,
    as_float,
    format_money,
)
from payslip_auditor.diff import DiffEntry, calculate_diff
from payslip_auditor.reconciliation import (
    GlPosting,
    PaymentRecord,
    RegisterEntry,
    SubmissionSummary,
    reconcile_batch,
    reconcile_gl_to_payslips,
    reconcile_payments_to_payslips,
    reconcile_register,
    reconcile_submission_totals,
)
from payslip_auditor.rules import (
    ContractProfile,
    IeRuleContext,
    RuleConfig,
    RuleSet,
    UkRuleContext,
    baseline_rule_set,
    get_default_rule_config,
    merge_rule_config,
    run_rules,
)
from payslip_auditor.tax_config import get_ie_config_for_year, get_uk_config_for_year

__all__ = [
    "ContractProfile",
    "DiffEntry",
    "GlPosting",
    "IeRuleContext",
    "IssueCandidate",
    "PaymentRecord",
    "Payslip",
    "RegisterEntry",
    "RuleConfig",
    "RuleSet",
    "SubmissionSummary",
    "UkRuleContext",
    "as_decimal",
    "as_float",
    "baseline_rule_set",
    "calculate_diff",
    "format_money",
    "get_default_rule_config",
    "get_ie_config_for_year",
    "get_uk_config_for_year",
    "merge_rule_config",
    "reconcile_batch",
    "reconcile_gl_to_payslips",
    "reconcile_payments_to_payslips",
    "reconcile_register",
    "reconcile_submission_totals",
    "run_rules",
]
