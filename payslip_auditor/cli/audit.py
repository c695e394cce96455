"""
CLI Entry Point: payslip-audit

Run the payslip rule set and batch reconciliations over a payroll batch file.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from collections import Counter
from pathlib import Path
from typing import Any

from payslip_auditor.core import IssueCandidate, Payslip
from payslip_auditor.parsers import (
    contracts_by_employee,
    parse_contract_csv,
    parse_date,
    parse_gl_csv,
    parse_payment_csv,
    parse_register_csv,
    parse_submission_csv,
)
from payslip_auditor.reconciliation import reconcile_batch
from payslip_auditor.rules.base import ContractProfile, IeRuleContext, UkRuleContext
from payslip_auditor.rules.config import RuleConfig, get_default_rule_config, merge_rule_config
from payslip_auditor.rules.engine import run_rules
from payslip_auditor.tax_config import TaxConfigError
from payslip_auditor.utils.console import print_error, print_success, print_table, print_warning, severity_label
from payslip_auditor.utils.contracts import ContractError, validate_payload

SCHEMA_VERSION = "1.0.0"
SEVERITY_ORDER = {"critical": 0, "warning": 1, "info": 2}


def read_json(path: Path) -> dict[str, Any]:
    with path.open("r", encoding="utf-8") as handle:
        data: dict[str, Any] = json.load(handle)
        return data


def read_text(path: Path | None) -> str | None:
    if path is None:
        return None
    if not path.exists():
        sys.exit(f"Error: file not found: {path}")
    return path.read_text(encoding="utf-8")


def resolve_config(batch: dict[str, Any], rule_config_path: Path | None) -> RuleConfig:
    config = get_default_rule_config(batch["country"], batch.get("tax_year"))
    config = merge_rule_config(config, batch.get("rule_config"))
    if rule_config_path is not None:
        config = merge_rule_config(config, read_json(rule_config_path))
    return config


def evaluate_batch(
    batch: dict[str, Any], config: RuleConfig, contracts: dict[str, ContractProfile] | None = None
) -> tuple[list[Payslip], list[dict[str, Any]]]:
    country = batch["country"]
    tax_year = batch.get("tax_year")
    payslips: list[Payslip] = []
    results: list[dict[str, Any]] = []

    for item in batch["payslips"]:
        current = Payslip.from_dict(item["current"])
        previous = Payslip.from_dict(item["previous"]) if item.get("previous") else None
        payslips.append(current)

        contract = None
        if item.get("contract"):
            contract = ContractProfile.from_dict(item["contract"])
        elif contracts and current.employee_id:
            contract = contracts.get(current.employee_id)

        issues = run_rules(
            current,
            previous,
            None,
            country=country,
            tax_year=tax_year,
            config=config,
            ie_context=IeRuleContext.from_dict(item["ie_context"]) if item.get("ie_context") else None,
            uk_context=UkRuleContext.from_dict(item["uk_context"]) if item.get("uk_context") else None,
            contract_profile=contract,
        )
        for issue in issues:
            results.append(issue_to_row(issue, current.employee_id, "payslip"))
    return payslips, results


def issue_to_row(issue: IssueCandidate, employee_id: str | None, source: str) -> dict[str, Any]:
    row = issue.to_dict()
    row["employee_id"] = employee_id
    row["source"] = source
    return row


def summarize(rows: list[dict[str, Any]]) -> dict[str, int]:
    counts = Counter(row["severity"] for row in rows)
    return {severity: counts.get(severity, 0) for severity in SEVERITY_ORDER}


def output_human(report: dict[str, Any]) -> None:
    rows = sorted(report["issues"], key=lambda r: (SEVERITY_ORDER[r["severity"]], r["rule_code"]))
    print_table(
        f"Payroll audit: {report.get('batch_id') or 'batch'} ({report['country']} {report['tax_year'] or 'latest'})",
        ["Severity", "Rule", "Employee", "Description"],
        [
            [severity_label(r["severity"]), r["rule_code"], r["employee_id"] or "-", r["description"]]
            for r in rows
        ],
    )
    summary = report["summary"]
    line = f"{summary['critical']} critical, {summary['warning']} warning, {summary['info']} info"
    if summary["critical"]:
        print_warning(line)
    else:
        print_success(line)


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        description="Detect payslip anomalies and reconcile a payroll batch against its artefacts."
    )
    parser.add_argument("batch", type=Path, help="Batch JSON with payslips and optional contexts.")
    parser.add_argument("--register", type=Path, default=None, help="Payroll register CSV.")
    parser.add_argument("--gl", type=Path, default=None, help="General-ledger export CSV.")
    parser.add_argument("--payments", type=Path, default=None, help="Bank payments CSV.")
    parser.add_argument("--submission", type=Path, default=None, help="Statutory submission summary CSV.")
    parser.add_argument("--contracts", type=Path, default=None, help="Employee contract CSV.")
    parser.add_argument("--rule-config", type=Path, default=None, help="Rule-config override JSON.")
    parser.add_argument("--json", action="store_true", help="Print the report as JSON.")
    parser.add_argument(
        "--fail-on-critical", action="store_true", help="Exit with status 1 when any critical issue is found."
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging.")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if not args.batch.exists():
        print_error(f"Batch file not found: {args.batch}", exit_code=2)
    try:
        batch = read_json(args.batch)
    except json.JSONDecodeError as e:
        print_error(f"Batch file is not valid JSON: {e}", exit_code=2)
    try:
        validate_payload(batch, "batch_input")
    except ContractError as e:
        print_error(f"Invalid batch input: {e}", exit_code=2)

    try:
        config = resolve_config(batch, args.rule_config)
    except TaxConfigError as e:
        print_error(f"Invalid rule config: {e}", exit_code=2)

    contracts_text = read_text(args.contracts)
    contracts = None
    if contracts_text is not None:
        contracts = contracts_by_employee(parse_contract_csv(contracts_text), parse_date(batch.get("pay_date")))

    payslips, rows = evaluate_batch(batch, config, contracts)

    register_text = read_text(args.register)
    gl_text = read_text(args.gl)
    payments_text = read_text(args.payments)
    submission_text = read_text(args.submission)
    reconciliation = reconcile_batch(
        payslips,
        register=parse_register_csv(register_text) if register_text is not None else None,
        gl=parse_gl_csv(gl_text) if gl_text is not None else None,
        payments=parse_payment_csv(payments_text) if payments_text is not None else None,
        submission=parse_submission_csv(submission_text) if submission_text is not None else None,
    )
    for issue in reconciliation:
        employee_id = issue.data.get("employee_id") if issue.data else None
        rows.append(issue_to_row(issue, employee_id, "reconciliation"))

    report = {
        "schema_version": SCHEMA_VERSION,
        "batch_id": batch.get("batch_id"),
        "country": batch["country"],
        "tax_year": batch.get("tax_year"),
        "payslip_count": len(payslips),
        "rule_config": config.to_dict(),
        "issues": rows,
        "summary": summarize(rows),
    }

    if args.json:
        print(json.dumps(report, indent=2))
    else:
        output_human(report)

    if args.fail_on_critical and report["summary"]["critical"]:
        sys.exit(1)


if __name__ == "__main__":
    main()
