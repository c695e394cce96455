#!/usr/bin/env python3

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass, field
from typing import Any, Mapping

from payslip_auditor.core import SEVERITIES
from payslip_auditor.tax_config import (
    IeTaxYearConfig,
    TaxConfigError,
    UkTaxYearConfig,
    get_ie_config_for_year,
    get_uk_config_for_year,
    parse_ie_config,
    parse_uk_config,
)
from payslip_auditor.utils.migration import normalize_rule_config_keys

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Enrichment:
    """Presentation toggles for how much structured data a reviewer sees."""

    include_evidence: bool = True
    include_band_breakdown: bool = True
    include_golden_context: bool = False

    @classmethod
    def from_value(cls, value: Enrichment | Mapping[str, Any] | None) -> Enrichment:
        if value is None:
            return cls()
        if isinstance(value, Enrichment):
            return value
        known = {f.name for f in dataclasses.fields(cls)}
        return cls(**{k: bool(v) for k, v in value.items() if k in known})


@dataclass(frozen=True)
class RuleConfig:
    large_net_change_percent: float = 15.0
    large_gross_change_percent: float = 15.0
    paye_spike_percent: float = 20.0
    usc_spike_percent: float = 20.0
    max_gross_delta_percent: float = 5.0
    max_gross_delta_for_usc_percent: float = 5.0
    pension_employee_percent: float = 10.0
    pension_employer_percent: float = 12.0
    contract_gross_tolerance_percent: float = 5.0
    ie_config: IeTaxYearConfig | None = None
    uk_config: UkTaxYearConfig | None = None
    severity_overrides: dict[str, str] = field(default_factory=dict)
    enabled_rule_packs: tuple[str, ...] | None = None
    enrichment: Enrichment = field(default_factory=Enrichment)

    def to_dict(self) -> dict[str, Any]:
        """Serializable view; tax tables are reported by year only."""
        return {
            "large_net_change_percent": self.large_net_change_percent,
            "large_gross_change_percent": self.large_gross_change_percent,
            "paye_spike_percent": self.paye_spike_percent,
            "usc_spike_percent": self.usc_spike_percent,
            "max_gross_delta_percent": self.max_gross_delta_percent,
            "max_gross_delta_for_usc_percent": self.max_gross_delta_for_usc_percent,
            "pension_employee_percent": self.pension_employee_percent,
            "pension_employer_percent": self.pension_employer_percent,
            "contract_gross_tolerance_percent": self.contract_gross_tolerance_percent,
            "ie_tax_year": self.ie_config.year if self.ie_config else None,
            "uk_tax_year": self.uk_config.year if self.uk_config else None,
            "severity_overrides": dict(self.severity_overrides),
            "enabled_rule_packs": list(self.enabled_rule_packs) if self.enabled_rule_packs is not None else None,
            "enrichment": dataclasses.asdict(self.enrichment),
        }


THRESHOLD_FIELDS: tuple[str, ...] = (
    "large_net_change_percent",
    "large_gross_change_percent",
    "paye_spike_percent",
    "usc_spike_percent",
    "max_gross_delta_percent",
    "max_gross_delta_for_usc_percent",
    "pension_employee_percent",
    "pension_employer_percent",
    "contract_gross_tolerance_percent",
)

# Both countries currently share the same threshold defaults.
COUNTRY_DEFAULTS: dict[str, RuleConfig] = {
    "IE": RuleConfig(),
    "UK": RuleConfig(),
}


def get_default_rule_config(country: str = "IE", tax_year: int | None = None) -> RuleConfig:
    """
    Country threshold defaults carrying the resolved tax-year table for that country.

    A missing tax year is logged, not raised: the country table is left as None so that
    recalculation rules stay silent instead of reporting false mismatches.
    """
    code = (country or "IE").upper()
    base = COUNTRY_DEFAULTS.get(code)
    if base is None:
        logger.warning(f"No rule defaults for country {country!r}; using IE thresholds without a tax table.")
        return COUNTRY_DEFAULTS["IE"]

    if code == "IE":
        try:
            return dataclasses.replace(base, ie_config=get_ie_config_for_year(tax_year))
        except TaxConfigError as e:
            logger.warning(f"IE tax config unavailable for {tax_year}: {e}")
            return base
    try:
        return dataclasses.replace(base, uk_config=get_uk_config_for_year(tax_year))
    except TaxConfigError as e:
        logger.warning(f"UK tax config unavailable for {tax_year}: {e}")
        return base


TAX_TABLE_PARSERS: dict[str, tuple[type, Any]] = {
    "ie_config": (IeTaxYearConfig, parse_ie_config),
    "uk_config": (UkTaxYearConfig, parse_uk_config),
}


def _coerce_override_value(key: str, value: Any) -> Any:
    if key in THRESHOLD_FIELDS:
        return float(value)
    if key == "severity_overrides":
        overrides = dict(value or {})
        for code, severity in overrides.items():
            if severity not in SEVERITIES:
                logger.warning(f"Severity override {severity!r} for {code} is not a known severity.")
        return overrides
    if key == "enabled_rule_packs":
        return None if value is None else tuple(value)
    if key == "enrichment":
        return Enrichment.from_value(value)
    if key in TAX_TABLE_PARSERS and value is not None:
        table_type, parse = TAX_TABLE_PARSERS[key]
        if isinstance(value, Mapping):
            return parse(dict(value))
        if not isinstance(value, table_type):
            raise TaxConfigError(f"{key} override must be a tax-year table, got {type(value).__name__}")
    return value


def merge_rule_config(base: RuleConfig, override: RuleConfig | Mapping[str, Any] | None = None) -> RuleConfig:
    """
    Shallow merge: every key present in the override replaces the base value.

    Mapping overrides may use legacy camelCase keys; unknown keys are logged and ignored.
    Tax-table values given as mappings are parsed and validated like the bundled year files.
    """
    if override is None:
        return base
    if isinstance(override, RuleConfig):
        return override

    known = {f.name for f in dataclasses.fields(RuleConfig)}
    changes: dict[str, Any] = {}
    for key, value in normalize_rule_config_keys(dict(override)).items():
        if key not in known:
            logger.warning(f"Ignoring unknown rule-config key {key!r}.")
            continue
        changes[key] = _coerce_override_value(key, value)
    if not changes:
        return base
    return dataclasses.replace(base, **changes)
