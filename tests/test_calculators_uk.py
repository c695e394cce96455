import unittest
from decimal import Decimal

import pytest

from payslip_auditor.calculators.uk import (
    calc_uk_nic,
    calc_uk_paye,
    calc_uk_student_loan,
    is_basic_rate_code,
    normalize_nic_category,
    parse_tax_code_allowance,
)
from payslip_auditor.tax_config import get_uk_config_for_year


@pytest.mark.unit
class UkPayeTests(unittest.TestCase):
    def setUp(self) -> None:
        self.config = get_uk_config_for_year(2025)

    def test_tax_code_allowance(self) -> None:
        self.assertEqual(parse_tax_code_allowance("1257L", Decimal("12570")), Decimal("12570"))
        self.assertEqual(parse_tax_code_allowance("s1100l", Decimal("12570")), Decimal("11000"))
        self.assertEqual(parse_tax_code_allowance("BR", Decimal("12570")), Decimal("0"))
        self.assertEqual(parse_tax_code_allowance("NT", Decimal("12570")), Decimal("12570"))
        self.assertTrue(is_basic_rate_code(" br "))
        self.assertFalse(is_basic_rate_code(None))

    def test_monthly_1257l(self) -> None:
        result = calc_uk_paye(Decimal("3000"), self.config, "1257L", "monthly")
        self.assertEqual(result.periods, 12)
        self.assertEqual(result.allowance_per_period, Decimal("1047.50"))
        self.assertEqual(result.taxable_per_period, Decimal("1952.50"))
        self.assertEqual(result.tax_due, Decimal("390.50"))
        self.assertEqual([band.label for band in result.band_usage], ["basic_rate"])

    def test_basic_rate_code_taxes_everything(self) -> None:
        result = calc_uk_paye(Decimal("1000"), self.config, "br", "monthly")
        self.assertEqual(result.tax_code, "BR")
        self.assertEqual(result.tax_due, Decimal("200.00"))
        self.assertEqual(result.band_usage, ())

    def test_higher_rate_band_used(self) -> None:
        result = calc_uk_paye(Decimal("6000"), self.config, "1257L", "monthly")
        self.assertEqual([band.label for band in result.band_usage], ["basic_rate", "higher_rate"])
        # band limits apply to annualized taxable pay: 50270 at 20%, 9160 at 40%
        self.assertEqual(result.tax_due, Decimal("1143.17"))

    def test_tax_never_decreases_as_gross_rises(self) -> None:
        for code, frequency in [("1257L", "monthly"), ("1257L", "weekly"), ("BR", "monthly")]:
            previous = Decimal("0")
            for gross in range(0, 20001, 7):
                tax = calc_uk_paye(Decimal(gross), self.config, code, frequency).tax_due
                self.assertGreaterEqual(tax, previous, f"{code} {frequency} gross {gross}")
                previous = tax


@pytest.mark.unit
class UkNicTests(unittest.TestCase):
    def setUp(self) -> None:
        self.config = get_uk_config_for_year(2025)

    def test_category_normalization(self) -> None:
        self.assertEqual(normalize_nic_category(" a "), "A")
        self.assertIsNone(normalize_nic_category("1"))
        self.assertIsNone(normalize_nic_category(""))

    def test_category_a_weekly(self) -> None:
        result = calc_uk_nic(Decimal("500"), self.config, "A", "weekly")
        self.assertEqual(result.employee_charge, Decimal("20.64"))
        self.assertEqual(result.employer_charge, Decimal("44.85"))

    def test_earnings_above_upper_limit(self) -> None:
        result = calc_uk_nic(Decimal("1200"), self.config, "A", "weekly")
        self.assertEqual(result.employee_charge, Decimal("62.66"))
        self.assertEqual(result.employer_charge, Decimal("141.45"))

    def test_category_c_pays_no_employee_nic(self) -> None:
        result = calc_uk_nic(Decimal("500"), self.config, "C", "weekly")
        self.assertEqual(result.employee_charge, Decimal("0.00"))
        self.assertEqual(result.employer_charge, Decimal("44.85"))

    def test_apprentice_relief_below_ceiling_only(self) -> None:
        below = calc_uk_nic(Decimal("500"), self.config, "H", "weekly")
        above = calc_uk_nic(Decimal("1200"), self.config, "H", "weekly")
        self.assertEqual(below.employer_charge, Decimal("0.00"))
        self.assertEqual(above.employer_charge, Decimal("141.45"))

    def test_unknown_category_falls_back_to_a(self) -> None:
        result = calc_uk_nic(Decimal("500"), self.config, "Q", "weekly")
        self.assertEqual(result.category, "A")
        self.assertEqual(result.employee_charge, Decimal("20.64"))

    def test_category_x_is_exempt(self) -> None:
        result = calc_uk_nic(Decimal("500"), self.config, "X", "weekly")
        self.assertEqual(result.employee_charge, Decimal("0.00"))
        self.assertEqual(result.employer_charge, Decimal("0.00"))


@pytest.mark.unit
class UkStudentLoanTests(unittest.TestCase):
    def setUp(self) -> None:
        self.config = get_uk_config_for_year(2025)

    def test_plan_and_postgrad(self) -> None:
        result = calc_uk_student_loan(Decimal("3000"), self.config, "Plan2", True, "monthly")
        self.assertEqual(result.plan, "Plan2")
        self.assertTrue(result.postgrad_applied)
        self.assertEqual(result.plan_threshold_per_period, Decimal("2416.58"))
        self.assertEqual(result.plan_charge, Decimal("52.51"))
        self.assertEqual(result.postgrad_threshold_per_period, Decimal("2083.33"))
        self.assertEqual(result.postgrad_charge, Decimal("55.00"))
        self.assertEqual(result.total_charge, Decimal("107.51"))

    def test_below_threshold_is_zero(self) -> None:
        result = calc_uk_student_loan(Decimal("1500"), self.config, "plan 1", False, "monthly")
        self.assertEqual(result.plan, "Plan1")
        self.assertEqual(result.plan_charge, Decimal("0.00"))

    def test_postgrad_as_plan_is_ignored(self) -> None:
        result = calc_uk_student_loan(Decimal("3000"), self.config, "Postgrad", False, "monthly")
        self.assertIsNone(result.plan)
        self.assertEqual(result.total_charge, Decimal("0.00"))

    def test_unknown_plan(self) -> None:
        result = calc_uk_student_loan(Decimal("3000"), self.config, "Plan9")
        self.assertIsNone(result.plan)
        self.assertFalse(result.postgrad_applied)
        self.assertIsNone(result.plan_threshold_per_period)
