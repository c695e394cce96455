import copy
import logging

import pytest

from payslip_auditor.utils.contracts import ContractError, load_schema, validate_payload

VALID_BATCH = {
    "batch_id": "2025-04",
    "country": "IE",
    "tax_year": 2025,
    "rule_config": {"large_net_change_percent": 20},
    "payslips": [
        {
            "current": {"employee_id": "E1", "gross_pay": 3000, "net_pay": "2100.00", "prsi_or_ni_category": "A1"},
            "previous": None,
            "ie_context": {
                "pay_frequency": "monthly",
                "paye": {"tax_credits": 333.33, "standard_rate_cutoff": 3500},
                "prsi": {"expected_class": "A1", "age": 40},
            },
            "contract": {"salary_amount": 36000, "salary_period": "annual", "pay_frequency": "monthly"},
        }
    ],
}


def test_validate_batch_valid():
    """Should pass for a well-formed batch."""
    validate_payload(VALID_BATCH, "batch_input")


def test_validate_batch_unknown_country():
    invalid = copy.deepcopy(VALID_BATCH)
    invalid["country"] = "FR"
    with pytest.raises(ContractError) as excinfo:
        validate_payload(invalid, "batch_input")
    assert "Data Contract Violation (batch_input)" in str(excinfo.value)


def test_validate_batch_missing_current():
    invalid = copy.deepcopy(VALID_BATCH)
    invalid["payslips"] = [{"previous": None}]
    with pytest.raises(ContractError):
        validate_payload(invalid, "batch_input")


def test_validate_batch_bad_frequency():
    invalid = copy.deepcopy(VALID_BATCH)
    invalid["payslips"][0]["ie_context"]["pay_frequency"] = "quarterly"
    with pytest.raises(ContractError):
        validate_payload(invalid, "batch_input")


def test_validate_batch_paye_requires_credits():
    invalid = copy.deepcopy(VALID_BATCH)
    del invalid["payslips"][0]["ie_context"]["paye"]["tax_credits"]
    with pytest.raises(ContractError):
        validate_payload(invalid, "batch_input")


def test_review_mode_logs_instead_of_raising(caplog):
    invalid = copy.deepcopy(VALID_BATCH)
    invalid["country"] = "FR"
    with caplog.at_level(logging.WARNING):
        validate_payload(invalid, "batch_input", mode="REVIEW")
    assert "Data Contract Violation (batch_input)" in caplog.text


def test_unknown_schema():
    with pytest.raises(FileNotFoundError):
        load_schema("no_such_schema")
    with pytest.raises(ContractError, match="Schema not found"):
        validate_payload({}, "no_such_schema")
