#!/usr/bin/env python3

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from payslip_auditor.core import DIFF_FIELDS, Payslip, PayslipLike, coerce_payslip


@dataclass(frozen=True)
class DiffEntry:
    previous: Decimal | None
    current: Decimal | None
    delta: Decimal | None
    percent_change: Decimal | None

    @property
    def has_previous(self) -> bool:
        return self.previous is not None


PayslipDiff = dict[str, DiffEntry]


def calculate_delta(current: Decimal | None, previous: Decimal | None) -> Decimal | None:
    if current is not None and previous is not None:
        return current - previous
    if current is not None:
        return current
    if previous is not None:
        return -previous
    return None


def calculate_percent_change(delta: Decimal | None, previous: Decimal | None) -> Decimal | None:
    if delta is None or previous is None or previous == 0:
        return None
    percent = delta / abs(previous) * Decimal("100")
    if not percent.is_finite():
        return None
    return percent


def calculate_diff(previous: PayslipLike | None, current: PayslipLike | None) -> PayslipDiff:
    """
    Field-level deltas between two payslips for the fixed set of payroll fields.

    A missing previous payslip is allowed (first period for an employee); a missing
    current payslip is a caller error.
    """
    current_slip = coerce_payslip(current)
    if current_slip is None:
        raise ValueError("Current payslip is required to calculate diff")
    previous_slip = coerce_payslip(previous) or Payslip()

    diff: PayslipDiff = {}
    for name in DIFF_FIELDS:
        prev_value = previous_slip.amount(name)
        curr_value = current_slip.amount(name)
        delta = calculate_delta(curr_value, prev_value)
        diff[name] = DiffEntry(
            previous=prev_value,
            current=curr_value,
            delta=delta,
            percent_change=calculate_percent_change(delta, prev_value),
        )
    return diff
