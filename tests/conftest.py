import pytest
from decimal import Decimal
from typing import Any

from payslip_auditor.core import Payslip
from payslip_auditor.rules.config import RuleConfig, get_default_rule_config
from payslip_auditor.tax_config import IeTaxYearConfig, UkTaxYearConfig, get_ie_config_for_year, get_uk_config_for_year


@pytest.fixture
def ie2025() -> IeTaxYearConfig:
    return get_ie_config_for_year(2025)


@pytest.fixture
def uk2025() -> UkTaxYearConfig:
    return get_uk_config_for_year(2025)


@pytest.fixture
def ie_config() -> RuleConfig:
    return get_default_rule_config("IE", 2025)


@pytest.fixture
def uk_config() -> RuleConfig:
    return get_default_rule_config("UK", 2025)


@pytest.fixture
def ie_previous() -> Payslip:
    """A quiet IE monthly payslip used as the prior period in most rule tests."""
    return Payslip(
        employee_id="EMP001",
        gross_pay=Decimal("3000"),
        net_pay=Decimal("2100"),
        paye=Decimal("600"),
        usc_or_ni=Decimal("15"),
        pension_employee=Decimal("0"),
        pension_employer=Decimal("0"),
        prsi_or_ni_category="A1",
    )


@pytest.fixture
def ie_tables_dict() -> dict[str, Any]:
    """Minimal IE tax-year table in its on-disk shape."""
    return {
        "year": 2031,
        "paye": {
            "standard_rate": 0.2,
            "higher_rate": 0.4,
            "bands": [{"category": "single", "standard_rate_cutoff": 50000}],
        },
        "usc": {
            "bands": [
                {"up_to": 10000, "rate": 0.01},
                {"up_to": None, "rate": 0.05},
            ]
        },
        "prsi": {
            "classes": {
                "A": {"employee_rate": 0.05, "employer_rate": 0.12, "weekly_threshold": 400},
            }
        },
    }
