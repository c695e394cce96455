import json
from unittest.mock import patch

import pytest

from payslip_auditor.cli.audit import main as audit_main


@pytest.fixture
def batch_file(tmp_path):
    batch = {
        "batch_id": "2025-04",
        "country": "IE",
        "tax_year": 2025,
        "payslips": [
            {
                "current": {"employee_id": "E1", "gross_pay": 3000, "net_pay": 2600, "paye": 600, "usc_or_ni": 15},
                "previous": {"employee_id": "E1", "gross_pay": 3000, "net_pay": 2100, "paye": 600, "usc_or_ni": 15},
            },
            {
                "current": {"employee_id": "E2", "gross_pay": "4000", "net_pay": "2900", "paye": "400", "usc_or_ni": "20"},
                "ie_context": {"paye": {"tax_credits": 300, "standard_rate_cutoff": 3500}},
            },
        ],
    }
    path = tmp_path / "batch.json"
    path.write_text(json.dumps(batch), encoding="utf-8")
    return path


@pytest.fixture
def artefacts(tmp_path):
    gl = tmp_path / "gl.csv"
    gl.write_text("wages,employer_taxes,pensions\n6800,0,0\n", encoding="utf-8")
    payments = tmp_path / "payments.csv"
    payments.write_text("employee_id,amount\nE1,2600\nE2,2900\n", encoding="utf-8")
    submission = tmp_path / "submission.csv"
    submission.write_text("paye_total,usc_or_ni_total,employee_count\n1000,35,3\n", encoding="utf-8")
    return {"gl": gl, "payments": payments, "submission": submission}


def run_cli(args):
    """Invoke the CLI and return its exit code."""
    with patch("sys.argv", ["payslip-audit", *args]):
        try:
            audit_main()
        except SystemExit as e:
            return e.code
    return 0


@pytest.mark.e2e
def test_audit_pipeline_json(batch_file, artefacts, capsys):
    """
    E2E Pipeline Test.
    Rules run per payslip, then the GL, payment and submission files are reconciled
    against the batch, and the combined report is printed as JSON.
    """
    code = run_cli(
        [
            str(batch_file),
            "--gl",
            str(artefacts["gl"]),
            "--payments",
            str(artefacts["payments"]),
            "--submission",
            str(artefacts["submission"]),
            "--json",
        ]
    )
    assert code == 0

    report = json.loads(capsys.readouterr().out)
    assert report["batch_id"] == "2025-04"
    assert report["payslip_count"] == 2
    assert report["rule_config"]["ie_tax_year"] == 2025

    found = {(issue["rule_code"], issue["employee_id"]) for issue in report["issues"]}
    assert found == {
        ("NET_CHANGE_LARGE", "E1"),
        ("IE_PAYE_MISMATCH", "E2"),
        ("GL_PAYROLL_TOTAL_MISMATCH", None),
        ("SUBMISSION_EMPLOYEE_COUNT_MISMATCH", None),
    }
    assert report["summary"] == {"critical": 2, "warning": 2, "info": 0}

    gl_issue = next(i for i in report["issues"] if i["rule_code"] == "GL_PAYROLL_TOTAL_MISMATCH")
    assert gl_issue["source"] == "reconciliation"
    assert gl_issue["data"] == {"payslip_wages": 7000.0, "gl_wages": 6800.0, "difference": 200.0}


@pytest.mark.e2e
def test_fail_on_critical(batch_file, capsys):
    assert run_cli([str(batch_file), "--json", "--fail-on-critical"]) == 1


@pytest.mark.e2e
def test_rule_config_file_overrides_batch(batch_file, tmp_path, capsys):
    override = tmp_path / "rules.json"
    override.write_text(json.dumps({"largeNetChangePercent": 30}), encoding="utf-8")

    assert run_cli([str(batch_file), "--rule-config", str(override), "--json"]) == 0
    report = json.loads(capsys.readouterr().out)
    assert [issue["rule_code"] for issue in report["issues"]] == ["IE_PAYE_MISMATCH"]
    assert report["rule_config"]["large_net_change_percent"] == 30.0


@pytest.mark.e2e
def test_contracts_csv_applies_by_employee(batch_file, tmp_path, capsys):
    contracts = tmp_path / "contracts.csv"
    contracts.write_text(
        "employee_id,salary_amount,salary_period,pay_frequency\nE1,36000,annual,monthly\nE2,36000,annual,monthly\n",
        encoding="utf-8",
    )
    assert run_cli([str(batch_file), "--contracts", str(contracts), "--json"]) == 0
    report = json.loads(capsys.readouterr().out)
    mismatches = [i for i in report["issues"] if i["rule_code"] == "CONTRACT_GROSS_MISMATCH"]
    assert [i["employee_id"] for i in mismatches] == ["E2"]


@pytest.mark.e2e
def test_contract_in_effect_on_pay_date(batch_file, tmp_path, capsys):
    batch = json.loads(batch_file.read_text(encoding="utf-8"))
    batch["pay_date"] = "2025-04-30"
    batch_file.write_text(json.dumps(batch), encoding="utf-8")
    contracts = tmp_path / "contracts.csv"
    contracts.write_text(
        "employee_id,salary_amount,salary_period,pay_frequency,effective_from,effective_to\n"
        "E1,36000,annual,monthly,2024-01-01,2025-12-31\n"
        "E1,48000,annual,monthly,2026-01-01,\n",
        encoding="utf-8",
    )
    assert run_cli([str(batch_file), "--contracts", str(contracts), "--json"]) == 0
    report = json.loads(capsys.readouterr().out)
    assert not [i for i in report["issues"] if i["rule_code"] == "CONTRACT_GROSS_MISMATCH"]


@pytest.mark.e2e
def test_malformed_tax_table_override_exits(batch_file, tmp_path, capsys):
    override = tmp_path / "rules.json"
    override.write_text(json.dumps({"ie_config": {"year": 2031}}), encoding="utf-8")
    assert run_cli([str(batch_file), "--rule-config", str(override)]) == 2
    assert "Invalid rule config" in capsys.readouterr().err


@pytest.mark.e2e
def test_human_report(batch_file, capsys):
    assert run_cli([str(batch_file)]) == 0
    captured = capsys.readouterr()
    assert "Payroll audit: 2025-04 (IE 2025)" in captured.out
    assert "1 critical, 1 warning, 0 info" in captured.err


@pytest.mark.e2e
def test_invalid_batch_exits(tmp_path, capsys):
    path = tmp_path / "batch.json"
    path.write_text(json.dumps({"country": "FR", "payslips": []}), encoding="utf-8")
    assert run_cli([str(path)]) == 2
    assert "Invalid batch input" in capsys.readouterr().err


@pytest.mark.e2e
def test_missing_batch_file(tmp_path, capsys):
    assert run_cli([str(tmp_path / "missing.json")]) == 2
    assert "Batch file not found" in capsys.readouterr().err
