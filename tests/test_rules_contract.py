import dataclasses
from decimal import Decimal

import pytest

from payslip_auditor.core import Payslip
from payslip_auditor.rules.base import ContractProfile, IeRuleContext, UkRuleContext
from payslip_auditor.rules.contract import annual_salary
from payslip_auditor.rules.engine import run_rules


def contract_issues(current, config, contract, country="IE", **contexts):
    issues = run_rules(
        current, None, None, country=country, tax_year=2025, config=config, contract_profile=contract, **contexts
    )
    return [issue for issue in issues if issue.rule_code == "CONTRACT_GROSS_MISMATCH"]


MONTHLY_SALARY = ContractProfile(salary_amount=Decimal("36000"), salary_period="annual", pay_frequency="monthly")


@pytest.mark.unit
def test_annual_salary_sources():
    assert annual_salary(ContractProfile(salary_amount=Decimal("36000"))) == Decimal("36000")
    assert annual_salary(ContractProfile(salary_amount=Decimal("3000"), salary_period="Monthly")) == Decimal("36000")
    assert annual_salary(ContractProfile(salary_amount=Decimal("1500"), salary_period="fortnightly")) == Decimal("39000")
    assert annual_salary(
        ContractProfile(hourly_rate=Decimal("20"), standard_hours_per_week=Decimal("37.5"))
    ) == Decimal("39000")
    assert annual_salary(ContractProfile(salary_amount=Decimal("1"), salary_period="decade")) is None
    assert annual_salary(ContractProfile()) is None


@pytest.mark.unit
def test_gross_on_contract(ie_config):
    slip = Payslip(employee_id="E1", gross_pay=3000)
    assert contract_issues(slip, ie_config, MONTHLY_SALARY) == []


@pytest.mark.unit
def test_gross_off_contract(ie_config):
    slip = Payslip(employee_id="E1", gross_pay=3300)
    issues = contract_issues(slip, ie_config, MONTHLY_SALARY)

    assert len(issues) == 1
    issue = issues[0]
    assert issue.severity == "warning"
    assert issue.description == "Gross pay €3,300.00 differs from contracted €3,000.00 per monthly period by 10.0%"
    assert issue.data["expected"] == 3000.0
    assert issue.data["difference"] == 300.0
    assert issue.data["percent_difference"] == 10.0
    assert issue.data["pay_frequency"] == "monthly"


@pytest.mark.unit
def test_tolerance_is_configurable(ie_config):
    config = dataclasses.replace(ie_config, contract_gross_tolerance_percent=15.0)
    slip = Payslip(employee_id="E1", gross_pay=3300)
    assert contract_issues(slip, config, MONTHLY_SALARY) == []


@pytest.mark.unit
def test_frequency_from_country_context(ie_config, uk_config):
    contract = ContractProfile(hourly_rate=Decimal("20"), standard_hours_per_week=Decimal("37.5"))
    slip = Payslip(employee_id="E1", gross_pay=1000)

    ie = contract_issues(slip, ie_config, contract, ie_context=IeRuleContext(pay_frequency="fortnightly"))
    assert ie[0].data["expected"] == 1500.0
    assert ie[0].data["pay_frequency"] == "biweekly"

    uk = contract_issues(slip, uk_config, contract, country="UK", uk_context=UkRuleContext(pay_frequency="weekly"))
    assert uk[0].data["expected"] == 750.0
    assert "£1,000.00" in uk[0].description
    assert "per weekly period" in uk[0].description


@pytest.mark.unit
def test_no_frequency_no_issue(ie_config):
    contract = ContractProfile(salary_amount=Decimal("36000"))
    slip = Payslip(employee_id="E1", gross_pay=9000)
    assert contract_issues(slip, ie_config, contract) == []


@pytest.mark.unit
def test_no_contract_no_issue(ie_config):
    slip = Payslip(employee_id="E1", gross_pay=9000)
    assert contract_issues(slip, ie_config, None) == []


@pytest.mark.unit
def test_contract_from_dict():
    profile = ContractProfile.from_dict({"salary_amount": "36,000", "salary_period": "annual", "pay_frequency": "monthly"})
    assert profile.salary_amount == Decimal("36000")
    assert profile.hourly_rate is None
