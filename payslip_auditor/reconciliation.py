#!/usr/bin/env python3

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Iterable

from payslip_auditor.core import (
    ZERO,
    IssueCandidate,
    Payslip,
    PayslipLike,
    as_decimal,
    as_float,
    coerce_payslip,
    format_money,
    sum_amounts,
)

TOLERANCE = Decimal("1.00")


def _amount(value: Any) -> Decimal:
    parsed = as_decimal(value)
    return ZERO if parsed is None else parsed


@dataclass(frozen=True)
class GlPosting:
    wages: Decimal = ZERO
    employer_taxes: Decimal = ZERO
    pensions: Decimal = ZERO
    other: Decimal = ZERO
    currency: str | None = None

    def __post_init__(self) -> None:
        for name in ("wages", "employer_taxes", "pensions", "other"):
            object.__setattr__(self, name, _amount(getattr(self, name)))


@dataclass(frozen=True)
class PaymentRecord:
    employee_id: str | None
    amount: Decimal
    currency: str | None = None
    reference: str | None = None
    employee_ref: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "amount", _amount(self.amount))


@dataclass(frozen=True)
class RegisterEntry:
    employee_id: str | None
    gross_pay: Decimal = ZERO
    net_pay: Decimal = ZERO
    paye: Decimal = ZERO
    usc_or_ni: Decimal | None = None
    nic_employee: Decimal | None = None
    nic_employer: Decimal | None = None
    student_loan: Decimal | None = None
    postgrad_loan: Decimal | None = None

    def __post_init__(self) -> None:
        employee_id = str(self.employee_id).strip() if self.employee_id is not None else ""
        object.__setattr__(self, "employee_id", employee_id or None)
        for name in ("gross_pay", "net_pay", "paye"):
            object.__setattr__(self, name, _amount(getattr(self, name)))
        for name in ("usc_or_ni", "nic_employee", "nic_employer", "student_loan", "postgrad_loan"):
            object.__setattr__(self, name, as_decimal(getattr(self, name)))

    @property
    def entry_type(self) -> str:
        """Rows without an employee id carry batch totals."""
        return "employee" if self.employee_id else "batch_total"


@dataclass(frozen=True)
class SubmissionSummary:
    paye_total: Decimal = ZERO
    usc_or_ni_total: Decimal = ZERO
    employee_count: int | None = None
    tax_year: int | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "paye_total", _amount(self.paye_total))
        object.__setattr__(self, "usc_or_ni_total", _amount(self.usc_or_ni_total))


def _coerce_all(payslips: Iterable[PayslipLike]) -> list[Payslip]:
    coerced = []
    for payslip in payslips:
        slip = coerce_payslip(payslip)
        if slip is not None:
            coerced.append(slip)
    return coerced


def reconcile_register(payslips: Iterable[PayslipLike], register: Iterable[RegisterEntry] | None) -> list[IssueCandidate]:
    """Match payslips to register rows by employee id and compare gross and net pay."""
    if register is None:
        return []
    slips = _coerce_all(payslips)
    by_employee: dict[str, RegisterEntry] = {}
    for entry in register:
        if entry.entry_type == "employee" and entry.employee_id:
            by_employee[entry.employee_id] = entry

    issues: list[IssueCandidate] = []
    for slip in slips:
        employee_id = slip.employee_id
        if not employee_id:
            continue
        match = by_employee.get(employee_id)
        if match is None:
            issues.append(
                IssueCandidate(
                    rule_code="MISSING_REGISTER_ENTRY",
                    severity="warning",
                    description=f"No register entry for employee {employee_id}",
                    data={"employee_id": employee_id},
                )
            )
            continue
        payslip_gross = slip.gross_pay or ZERO
        payslip_net = slip.net_pay or ZERO
        gross_delta = payslip_gross - match.gross_pay
        net_delta = payslip_net - match.net_pay
        if abs(gross_delta) > TOLERANCE or abs(net_delta) > TOLERANCE:
            issues.append(
                IssueCandidate(
                    rule_code="REGISTER_PAYSPLIP_TOTAL_MISMATCH",
                    severity="warning",
                    description=(
                        f"Payslip vs register mismatch for {employee_id}: gross "
                        f"{format_money(payslip_gross)} vs {format_money(match.gross_pay)}, net "
                        f"{format_money(payslip_net)} vs {format_money(match.net_pay)}"
                    ),
                    data={
                        "employee_id": employee_id,
                        "payslip_gross": as_float(payslip_gross),
                        "register_gross": as_float(match.gross_pay),
                        "payslip_net": as_float(payslip_net),
                        "register_net": as_float(match.net_pay),
                        "gross_difference": as_float(gross_delta),
                        "net_difference": as_float(net_delta),
                    },
                )
            )

    payslip_ids = {slip.employee_id for slip in slips if slip.employee_id}
    for employee_id in by_employee:
        if employee_id not in payslip_ids:
            issues.append(
                IssueCandidate(
                    rule_code="MISSING_PAYSLIP",
                    severity="warning",
                    description=f"Register contains employee {employee_id} without payslip",
                    data={"employee_id": employee_id},
                )
            )
    return issues


def _total_mismatch(
    rule_code: str, description: str, payslip_key: str, payslip_total: Decimal, gl_key: str, gl_total: Decimal
) -> IssueCandidate | None:
    difference = payslip_total - gl_total
    if abs(difference) <= TOLERANCE:
        return None
    return IssueCandidate(
        rule_code=rule_code,
        severity="warning",
        description=f"{description} ({format_money(payslip_total)} on payslips, {format_money(gl_total)} in GL)",
        data={
            payslip_key: as_float(payslip_total),
            gl_key: as_float(gl_total),
            "difference": as_float(difference),
        },
    )


def reconcile_gl_to_payslips(gl: GlPosting | None, payslips: Iterable[PayslipLike]) -> list[IssueCandidate]:
    if gl is None:
        return []
    slips = _coerce_all(payslips)
    checks = (
        _total_mismatch(
            "GL_PAYROLL_TOTAL_MISMATCH",
            "GL wages total does not match payslips",
            "payslip_wages",
            sum_amounts(slips, "gross_pay"),
            "gl_wages",
            gl.wages,
        ),
        _total_mismatch(
            "GL_EMPLOYER_TAX_MISMATCH",
            "GL employer taxes do not match payslips",
            "payslip_employer_taxes",
            sum_amounts(slips, "nic_employer"),
            "gl_employer_taxes",
            gl.employer_taxes,
        ),
        _total_mismatch(
            "GL_PENSION_TOTAL_MISMATCH",
            "GL pension total does not match employer pension on payslips",
            "payslip_pensions",
            sum_amounts(slips, "pension_employer"),
            "gl_pensions",
            gl.pensions,
        ),
    )
    return [issue for issue in checks if issue is not None]


def reconcile_payments_to_payslips(
    payments: Iterable[PaymentRecord] | None, payslips: Iterable[PayslipLike]
) -> list[IssueCandidate]:
    if payments is None:
        return []
    by_employee: dict[str, list[PaymentRecord]] = {}
    for payment in payments:
        if not payment.employee_id:
            continue
        by_employee.setdefault(payment.employee_id, []).append(payment)

    slips = [slip for slip in _coerce_all(payslips) if slip.employee_id]
    issues: list[IssueCandidate] = []
    for slip in slips:
        employee_id = slip.employee_id
        if employee_id is None:
            continue
        net_pay = slip.net_pay or ZERO
        employee_payments = by_employee.get(employee_id, [])
        if not employee_payments:
            issues.append(
                IssueCandidate(
                    rule_code="PAYSLIP_WITHOUT_PAYMENT",
                    severity="warning",
                    description=f"No payment found for payslip employee {employee_id}",
                    data={"employee_id": employee_id, "payslip_net": as_float(net_pay)},
                )
            )
            continue
        paid_total = sum((payment.amount for payment in employee_payments), ZERO)
        difference = net_pay - paid_total
        if abs(difference) > TOLERANCE:
            issues.append(
                IssueCandidate(
                    rule_code="BANK_NETPAY_MISMATCH",
                    severity="critical",
                    description=(
                        f"Net pay mismatch for employee {employee_id}: payslip {format_money(net_pay)}, "
                        f"paid {format_money(paid_total)}"
                    ),
                    data={
                        "employee_id": employee_id,
                        "payslip_net": as_float(net_pay),
                        "paid_total": as_float(paid_total),
                        "payment_count": len(employee_payments),
                        "difference": as_float(difference),
                    },
                )
            )

    payslip_ids = {slip.employee_id for slip in slips}
    for employee_id, employee_payments in by_employee.items():
        if employee_id not in payslip_ids:
            issues.append(
                IssueCandidate(
                    rule_code="BANK_PAYMENT_WITHOUT_PAYSLIP",
                    severity="warning",
                    description=f"Payment exists without payslip for employee {employee_id}",
                    data={
                        "employee_id": employee_id,
                        "paid_total": as_float(sum((p.amount for p in employee_payments), ZERO)),
                    },
                )
            )
    return issues


def reconcile_submission_totals(
    submission: SubmissionSummary | None, payslips: Iterable[PayslipLike]
) -> list[IssueCandidate]:
    if submission is None:
        return []
    slips = _coerce_all(payslips)
    paye_total = sum_amounts(slips, "paye")
    usc_total = sum_amounts(slips, "usc_or_ni")
    employee_count = len({slip.employee_id for slip in slips if slip.employee_id})

    issues: list[IssueCandidate] = []
    paye_delta = paye_total - submission.paye_total
    usc_delta = usc_total - submission.usc_or_ni_total
    if abs(paye_delta) > TOLERANCE or abs(usc_delta) > TOLERANCE:
        issues.append(
            IssueCandidate(
                rule_code="SUBMISSION_TOTAL_MISMATCH",
                severity="critical",
                description=(
                    f"Submission totals do not match payslip totals (PAYE {format_money(paye_total)} vs "
                    f"{format_money(submission.paye_total)}, USC/NI {format_money(usc_total)} vs "
                    f"{format_money(submission.usc_or_ni_total)})"
                ),
                data={
                    "payslip_paye": as_float(paye_total),
                    "submission_paye": as_float(submission.paye_total),
                    "paye_difference": as_float(paye_delta),
                    "payslip_usc_or_ni": as_float(usc_total),
                    "submission_usc_or_ni": as_float(submission.usc_or_ni_total),
                    "usc_or_ni_difference": as_float(usc_delta),
                },
            )
        )

    declared = submission.employee_count
    if declared is not None and declared > 0 and declared != employee_count:
        issues.append(
            IssueCandidate(
                rule_code="SUBMISSION_EMPLOYEE_COUNT_MISMATCH",
                severity="critical",
                description=(
                    f"Submission declares {declared} employees but payslips cover {employee_count}"
                ),
                data={
                    "submission_employee_count": declared,
                    "payslip_employee_count": employee_count,
                },
            )
        )
    return issues


def reconcile_batch(
    payslips: Iterable[PayslipLike],
    register: Iterable[RegisterEntry] | None = None,
    gl: GlPosting | None = None,
    payments: Iterable[PaymentRecord] | None = None,
    submission: SubmissionSummary | None = None,
) -> list[IssueCandidate]:
    """Run every reconciliation for which an artefact was supplied."""
    slips = _coerce_all(payslips)
    issues: list[IssueCandidate] = []
    issues.extend(reconcile_register(slips, register))
    issues.extend(reconcile_gl_to_payslips(gl, slips))
    issues.extend(reconcile_payments_to_payslips(payments, slips))
    issues.extend(reconcile_submission_totals(submission, slips))
    return issues
