#!/usr/bin/env python3

from __future__ import annotations

import csv
import io
import logging
import re
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Iterable

from payslip_auditor.reconciliation import GlPosting, PaymentRecord, RegisterEntry, SubmissionSummary
from payslip_auditor.rules.base import ContractProfile

logger = logging.getLogger(__name__)

NON_NUMERIC = re.compile(r"[^0-9.\-]")


@dataclass(frozen=True)
class ContractRecord:
    employee_id: str
    profile: ContractProfile
    effective_from: date | None = None
    effective_to: date | None = None

    def in_effect(self, on: date) -> bool:
        if self.effective_from is not None and on < self.effective_from:
            return False
        return self.effective_to is None or on <= self.effective_to


def read_rows(text: str) -> list[dict[str, str]]:
    """Header row plus data rows; header names are lower-cased and blank lines skipped."""
    reader = csv.reader(io.StringIO(text.strip()))
    rows = [row for row in reader if any(cell.strip() for cell in row)]
    if not rows:
        return []
    headers = [header.strip().lower() for header in rows[0]]
    records = []
    for row in rows[1:]:
        records.append({header: (row[idx].strip() if idx < len(row) else "") for idx, header in enumerate(headers)})
    return records


def pick(record: dict[str, str], *names: str) -> str | None:
    for name in names:
        if name in record:
            return record[name]
    return None


def parse_number(value: str | None) -> Decimal | None:
    if value is None:
        return None
    cleaned = NON_NUMERIC.sub("", value)
    if not cleaned:
        if value.strip():
            logger.debug(f"Unparseable amount {value!r}; reading as zero.")
        return None
    try:
        return Decimal(cleaned)
    except InvalidOperation:
        logger.debug(f"Unparseable amount {value!r}; reading as zero.")
        return None


def parse_amount(value: str | None) -> Decimal:
    parsed = parse_number(value)
    return parsed if parsed is not None else Decimal("0")


def parse_date(value: str | None) -> date | None:
    if not value:
        return None
    try:
        return date.fromisoformat(value.strip()[:10])
    except ValueError:
        logger.debug(f"Unparseable date {value!r}; ignoring.")
        return None


def parse_register_csv(text: str) -> list[RegisterEntry]:
    entries = []
    for record in read_rows(text):
        entries.append(
            RegisterEntry(
                employee_id=pick(record, "employee_id", "employee") or None,
                gross_pay=parse_amount(pick(record, "gross_pay", "gross")),
                net_pay=parse_amount(pick(record, "net_pay", "net")),
                paye=parse_amount(pick(record, "paye", "tax")),
                usc_or_ni=parse_number(pick(record, "usc_or_ni", "usc", "ni")),
                nic_employee=parse_number(pick(record, "nic_employee", "ee_ni")),
                nic_employer=parse_number(pick(record, "nic_employer", "er_ni")),
                student_loan=parse_number(pick(record, "student_loan", "sl")),
                postgrad_loan=parse_number(pick(record, "postgrad_loan", "pg")),
            )
        )
    return entries


def parse_gl_csv(text: str) -> GlPosting:
    """Sum every GL line into one posting; the first currency seen wins."""
    wages = employer_taxes = pensions = other = Decimal("0")
    currency: str | None = None
    for record in read_rows(text):
        wages += parse_amount(pick(record, "wages", "gross"))
        employer_taxes += parse_amount(pick(record, "employer_taxes", "er_taxes", "ni_er"))
        pensions += parse_amount(pick(record, "pensions", "er_pension"))
        other += parse_amount(pick(record, "other"))
        if currency is None:
            currency = pick(record, "currency") or None
    return GlPosting(wages=wages, employer_taxes=employer_taxes, pensions=pensions, other=other, currency=currency)


def parse_payment_csv(text: str) -> list[PaymentRecord]:
    return [
        PaymentRecord(
            employee_id=pick(record, "employee_id", "employee") or None,
            employee_ref=pick(record, "employee_ref") or None,
            amount=parse_amount(pick(record, "amount", "net_pay")),
            currency=pick(record, "currency") or None,
            reference=pick(record, "reference", "ref") or None,
        )
        for record in read_rows(text)
    ]


def parse_submission_csv(text: str) -> SubmissionSummary:
    """Statutory submissions carry a single summary row."""
    records = read_rows(text)
    if not records:
        return SubmissionSummary(employee_count=0)
    record = records[0]
    count = parse_number(pick(record, "employee_count", "employees"))
    tax_year = parse_number(pick(record, "tax_year", "year"))
    return SubmissionSummary(
        paye_total=parse_amount(pick(record, "paye_total", "paye")),
        usc_or_ni_total=parse_amount(pick(record, "usc_or_ni_total", "usc", "ni")),
        employee_count=int(count) if count is not None else 0,
        tax_year=int(tax_year) if tax_year is not None else None,
    )


def parse_contract_csv(text: str) -> list[ContractRecord]:
    contracts = []
    for record in read_rows(text):
        employee_id = pick(record, "employee_id", "employee")
        if not employee_id:
            continue
        contracts.append(
            ContractRecord(
                employee_id=employee_id,
                profile=ContractProfile(
                    salary_amount=parse_number(pick(record, "salary_amount", "salary")),
                    salary_period=pick(record, "salary_period") or None,
                    hourly_rate=parse_number(pick(record, "hourly_rate")),
                    standard_hours_per_week=parse_number(pick(record, "standard_hours_per_week", "hours")),
                    pay_frequency=pick(record, "pay_frequency") or None,
                ),
                effective_from=parse_date(pick(record, "effective_from")),
                effective_to=parse_date(pick(record, "effective_to")),
            )
        )
    return contracts


def contracts_by_employee(records: Iterable[ContractRecord], on: date | None = None) -> dict[str, ContractProfile]:
    """
    One contract per employee.

    With a date, only contracts in effect on that date are candidates; among candidates the
    latest effective_from wins, and a later row wins a tie.
    """
    chosen: dict[str, ContractRecord] = {}
    for record in records:
        if on is not None and not record.in_effect(on):
            continue
        current = chosen.get(record.employee_id)
        if current is None or (record.effective_from or date.min) >= (current.effective_from or date.min):
            chosen[record.employee_id] = record
    return {employee_id: record.profile for employee_id, record in chosen.items()}
