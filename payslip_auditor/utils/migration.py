from __future__ import annotations

import logging
from typing import Any

logger = logging.getLogger(__name__)

# Rule-config overrides stored before keys were renamed to snake_case.
LEGACY_RULE_CONFIG_KEYS: dict[str, str] = {
    "largeNetChangePercent": "large_net_change_percent",
    "largeGrossChangePercent": "large_gross_change_percent",
    "payeSpikePercent": "paye_spike_percent",
    "uscSpikePercent": "usc_spike_percent",
    "maxGrossDeltaPercent": "max_gross_delta_percent",
    "maxGrossDeltaForUscPercent": "max_gross_delta_for_usc_percent",
    "pensionEmployeePercent": "pension_employee_percent",
    "pensionEmployerPercent": "pension_employer_percent",
    "contractGrossTolerancePercent": "contract_gross_tolerance_percent",
    "ieConfig": "ie_config",
    "ukConfig": "uk_config",
    "severityOverrides": "severity_overrides",
    "enabledRulePacks": "enabled_rule_packs",
    "enrichment": "enrichment",
}

LEGACY_ENRICHMENT_KEYS: dict[str, str] = {
    "includeEvidence": "include_evidence",
    "includeBandBreakdown": "include_band_breakdown",
    "includeGoldenContext": "include_golden_context",
}


def migrate_enrichment_keys(enrichment: dict[str, Any]) -> dict[str, Any]:
    migrated: dict[str, Any] = {}
    for key, value in enrichment.items():
        migrated[LEGACY_ENRICHMENT_KEYS.get(key, key)] = value
    return migrated


def normalize_rule_config_keys(override: dict[str, Any]) -> dict[str, Any]:
    """
    Rename legacy camelCase rule-config keys to their snake_case names.

    When both spellings are present the snake_case value wins. A warning is logged
    once per call listing the keys that were migrated.
    """
    migrated: dict[str, Any] = {}
    renamed: list[str] = []
    for key, value in override.items():
        if key in LEGACY_RULE_CONFIG_KEYS and LEGACY_RULE_CONFIG_KEYS[key] != key:
            target = LEGACY_RULE_CONFIG_KEYS[key]
            renamed.append(key)
            if target in override:
                continue
            migrated[target] = value
        else:
            migrated[key] = value

    if isinstance(migrated.get("enrichment"), dict):
        migrated["enrichment"] = migrate_enrichment_keys(migrated["enrichment"])

    if renamed:
        logger.warning(
            f"Migrating legacy rule-config keys {sorted(renamed)} to snake_case. "
            "Please update stored overrides to suppress this warning."
        )
    return migrated
