from payslip_auditor.rules.base import (
    ContractProfile,
    IeRuleContext,
    RuleDefinition,
    RuleEvaluationContext,
    RuleOutcome,
    RuleSet,
    UkRuleContext,
)
from payslip_auditor.rules.config import Enrichment, RuleConfig, get_default_rule_config, merge_rule_config
from payslip_auditor.rules.engine import baseline_rule_set, resolve_severity, run_rules

__all__ = [
    "ContractProfile",
    "Enrichment",
    "IeRuleContext",
    "RuleConfig",
    "RuleDefinition",
    "RuleEvaluationContext",
    "RuleOutcome",
    "RuleSet",
    "UkRuleContext",
    "baseline_rule_set",
    "get_default_rule_config",
    "merge_rule_config",
    "resolve_severity",
    "run_rules",
]
