import unittest
from decimal import Decimal

import pytest

from payslip_auditor.core import (
    IssueCandidate,
    Payslip,
    as_decimal,
    as_float,
    coerce_payslip,
    format_money,
    format_percent,
    sum_amounts,
)


@pytest.mark.unit
class AmountNormalizationTests(unittest.TestCase):
    def test_numbers_and_strings_become_decimals(self) -> None:
        self.assertEqual(as_decimal(3000), Decimal("3000"))
        self.assertEqual(as_decimal(12.5), Decimal("12.5"))
        self.assertEqual(as_decimal(" 1,250.40 "), Decimal("1250.40"))

    def test_non_numeric_values_read_as_not_reported(self) -> None:
        for value in (None, "", "abc", float("nan"), float("inf"), True, [1]):
            self.assertIsNone(as_decimal(value), value)

    def test_as_float_rounds_to_cents(self) -> None:
        self.assertEqual(as_float(Decimal("10.005")), 10.01)
        self.assertIsNone(as_float(None))

    def test_money_and_percent_formatting(self) -> None:
        self.assertEqual(format_money(Decimal("7500")), "€7,500.00")
        self.assertEqual(format_money(Decimal("12.345"), symbol="£"), "£12.35")
        self.assertEqual(format_money(None), "n/a")
        self.assertEqual(format_percent(Decimal("23.81")), "23.8%")
        self.assertEqual(format_percent(Decimal("5"), signed=True), "+5.0%")
        self.assertEqual(format_percent(Decimal("-5"), signed=True), "-5.0%")


@pytest.mark.unit
class PayslipTests(unittest.TestCase):
    def test_from_dict_ignores_unknown_keys_and_normalizes_amounts(self) -> None:
        slip = Payslip.from_dict(
            {"employee_id": " E1 ", "gross_pay": "3,000.00", "net_pay": None, "paye": "n/a", "notes": "x"}
        )
        self.assertEqual(slip.employee_id, "E1")
        self.assertEqual(slip.gross_pay, Decimal("3000.00"))
        self.assertIsNone(slip.net_pay)
        self.assertIsNone(slip.paye)

    def test_blank_employee_id_is_none(self) -> None:
        self.assertIsNone(Payslip(employee_id="  ").employee_id)

    def test_amount_rejects_unknown_field(self) -> None:
        with self.assertRaises(ValueError):
            Payslip().amount("bonus")

    def test_to_dict_reports_floats(self) -> None:
        payload = Payslip(employee_id="E1", gross_pay=Decimal("100.456")).to_dict()
        self.assertEqual(payload["gross_pay"], 100.46)
        self.assertIsNone(payload["net_pay"])

    def test_coerce_payslip(self) -> None:
        slip = Payslip(gross_pay=1)
        self.assertIs(coerce_payslip(slip), slip)
        self.assertEqual(coerce_payslip({"gross_pay": 2}).gross_pay, Decimal("2"))
        self.assertIsNone(coerce_payslip(None))
        with self.assertRaises(TypeError):
            coerce_payslip(42)  # type: ignore[arg-type]

    def test_sum_amounts_skips_missing(self) -> None:
        slips = [Payslip(paye=100), Payslip(paye=None), Payslip(paye="50.5")]
        self.assertEqual(sum_amounts(slips, "paye"), Decimal("150.5"))


def test_issue_candidate_rejects_unknown_severity():
    with pytest.raises(ValueError):
        IssueCandidate(rule_code="X", severity="fatal", description="bad")


def test_issue_candidate_to_dict_omits_missing_data():
    issue = IssueCandidate(rule_code="X", severity="info", description="ok")
    assert issue.to_dict() == {"rule_code": "X", "severity": "info", "description": "ok"}
