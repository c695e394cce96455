#!/usr/bin/env python3

from __future__ import annotations

from dataclasses import dataclass, fields
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Literal, Mapping

Severity = Literal["critical", "warning", "info"]
SEVERITIES: tuple[str, ...] = ("critical", "warning", "info")

CENT = Decimal("0.01")
ZERO = Decimal("0.00")

DIFF_FIELDS: tuple[str, ...] = (
    "gross_pay",
    "net_pay",
    "paye",
    "usc_or_ni",
    "pension_employee",
    "pension_employer",
    "ytd_gross",
    "ytd_net",
    "ytd_tax",
    "ytd_usc_or_ni",
)
AMOUNT_FIELDS: tuple[str, ...] = DIFF_FIELDS + (
    "nic_employee",
    "nic_employer",
    "student_loan",
    "postgrad_loan",
)


def as_decimal(value: Any) -> Decimal | None:
    """Normalize a reported amount; anything that is not a finite number reads as not reported."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        return value if value.is_finite() else None
    if isinstance(value, (int, float)):
        parsed = Decimal(str(value))
    elif isinstance(value, str):
        cleaned = value.strip().replace(",", "")
        if not cleaned:
            return None
        try:
            parsed = Decimal(cleaned)
        except InvalidOperation:
            return None
    else:
        return None
    return parsed if parsed.is_finite() else None


def as_float(value: Decimal | None) -> float | None:
    if value is None:
        return None
    return float(value.quantize(CENT, rounding=ROUND_HALF_UP))


def format_money(value: Decimal | None, symbol: str = "€") -> str:
    if value is None:
        return "n/a"
    return f"{symbol}{value.quantize(CENT, rounding=ROUND_HALF_UP):,.2f}"


def format_percent(value: Decimal | None, signed: bool = False) -> str:
    if value is None:
        return "n/a"
    rounded = value.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)
    if signed and rounded >= 0:
        return f"+{rounded}%"
    return f"{rounded}%"


@dataclass(frozen=True)
class Payslip:
    employee_id: str | None = None
    gross_pay: Decimal | None = None
    net_pay: Decimal | None = None
    paye: Decimal | None = None
    usc_or_ni: Decimal | None = None
    nic_employee: Decimal | None = None
    nic_employer: Decimal | None = None
    pension_employee: Decimal | None = None
    pension_employer: Decimal | None = None
    ytd_gross: Decimal | None = None
    ytd_net: Decimal | None = None
    ytd_tax: Decimal | None = None
    ytd_usc_or_ni: Decimal | None = None
    student_loan: Decimal | None = None
    postgrad_loan: Decimal | None = None
    prsi_or_ni_category: str | None = None

    def __post_init__(self) -> None:
        # Frozen, so normalization has to bypass __setattr__.
        for name in AMOUNT_FIELDS:
            object.__setattr__(self, name, as_decimal(getattr(self, name)))
        employee_id = self.employee_id
        if employee_id is not None:
            employee_id = str(employee_id).strip() or None
        object.__setattr__(self, "employee_id", employee_id)
        category = self.prsi_or_ni_category
        if category is not None and not isinstance(category, str):
            category = str(category)
        object.__setattr__(self, "prsi_or_ni_category", category)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Payslip:
        known = {f.name for f in fields(cls)}
        return cls(**{key: value for key, value in data.items() if key in known})

    def amount(self, name: str) -> Decimal | None:
        if name not in AMOUNT_FIELDS:
            raise ValueError(f"Unsupported payslip field: {name}")
        value: Decimal | None = getattr(self, name)
        return value

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"employee_id": self.employee_id}
        for name in AMOUNT_FIELDS:
            payload[name] = as_float(getattr(self, name))
        payload["prsi_or_ni_category"] = self.prsi_or_ni_category
        return payload


PayslipLike = Payslip | Mapping[str, Any]


def coerce_payslip(value: PayslipLike | None) -> Payslip | None:
    if value is None:
        return None
    if isinstance(value, Payslip):
        return value
    if isinstance(value, Mapping):
        return Payslip.from_dict(value)
    raise TypeError(f"Expected a Payslip or mapping, got {type(value).__name__}")


@dataclass(frozen=True)
class IssueCandidate:
    rule_code: str
    severity: str
    description: str
    data: dict[str, Any] | None = None

    def __post_init__(self) -> None:
        if self.severity not in SEVERITIES:
            raise ValueError(f"Unknown severity `{self.severity}` for {self.rule_code}")

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "rule_code": self.rule_code,
            "severity": self.severity,
            "description": self.description,
        }
        if self.data is not None:
            payload["data"] = dict(self.data)
        return payload


def sum_amounts(payslips: list[Payslip], name: str) -> Decimal:
    total = ZERO
    for payslip in payslips:
        value = payslip.amount(name)
        if value is not None:
            total += value
    return total
