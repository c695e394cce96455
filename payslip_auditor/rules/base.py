#!/usr/bin/env python3

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Callable, Iterable, Iterator, Union

from payslip_auditor.calculators.ireland import IePayeInputs, IePrsiProfile
from payslip_auditor.core import SEVERITIES, Payslip, as_decimal
from payslip_auditor.diff import PayslipDiff

if TYPE_CHECKING:
    from payslip_auditor.rules.config import RuleConfig

COUNTRY_ALL: frozenset[str] = frozenset({"IE", "UK"})


@dataclass(frozen=True)
class IeRuleContext:
    paye: IePayeInputs | None = None
    prsi: IePrsiProfile | None = None
    paye_category: str | None = None
    pay_frequency: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> IeRuleContext:
        paye = data.get("paye")
        prsi = data.get("prsi")
        return cls(
            paye=IePayeInputs.from_dict(paye) if paye else None,
            prsi=IePrsiProfile.from_dict(prsi) if prsi else None,
            paye_category=data.get("paye_category"),
            pay_frequency=data.get("pay_frequency"),
        )


@dataclass(frozen=True)
class UkRuleContext:
    tax_code: str | None = None
    pay_frequency: str | None = None
    expected_category: str | None = None
    age: int | None = None
    is_pensioner: bool = False
    is_apprentice: bool = False
    student_loan_plan: str | None = None
    has_postgrad_loan: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> UkRuleContext:
        return cls(
            tax_code=data.get("tax_code"),
            pay_frequency=data.get("pay_frequency"),
            expected_category=data.get("expected_category"),
            age=data.get("age"),
            is_pensioner=bool(data.get("is_pensioner", False)),
            is_apprentice=bool(data.get("is_apprentice", False)),
            student_loan_plan=data.get("student_loan_plan"),
            has_postgrad_loan=bool(data.get("has_postgrad_loan", False)),
        )


@dataclass(frozen=True)
class ContractProfile:
    salary_amount: Decimal | None = None
    salary_period: str | None = None
    hourly_rate: Decimal | None = None
    standard_hours_per_week: Decimal | None = None
    pay_frequency: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ContractProfile:
        return cls(
            salary_amount=as_decimal(data.get("salary_amount")),
            salary_period=data.get("salary_period"),
            hourly_rate=as_decimal(data.get("hourly_rate")),
            standard_hours_per_week=as_decimal(data.get("standard_hours_per_week")),
            pay_frequency=data.get("pay_frequency"),
        )


@dataclass(frozen=True)
class RuleEvaluationContext:
    current: Payslip
    previous: Payslip | None
    diff: PayslipDiff
    country: str
    tax_year: int | None
    config: RuleConfig
    ie: IeRuleContext | None = None
    uk: UkRuleContext | None = None
    contract: ContractProfile | None = None


@dataclass(frozen=True)
class RuleOutcome:
    description: str | None = None
    severity: str | None = None
    data: dict[str, Any] | None = None


RuleResult = Union[None, RuleOutcome, list[RuleOutcome]]
RuleEvaluator = Callable[[RuleEvaluationContext], RuleResult]


@dataclass(frozen=True)
class RuleDefinition:
    code: str
    description_template: str
    severity: str
    categories: tuple[str, ...]
    evaluate: RuleEvaluator
    countries: frozenset[str] = field(default_factory=frozenset)
    tax_years: frozenset[int] = field(default_factory=frozenset)

    def __post_init__(self) -> None:
        if self.severity not in SEVERITIES:
            raise ValueError(f"Unknown default severity `{self.severity}` for rule {self.code}")

    def applies_to(self, country: str | None, tax_year: int | None) -> bool:
        """Empty country or tax-year filters match everything."""
        if self.countries and (not country or country.upper() not in self.countries):
            return False
        if self.tax_years and (tax_year is None or tax_year not in self.tax_years):
            return False
        return True


class RuleSet:
    """Ordered, immutable collection of rule definitions handed to the evaluator."""

    def __init__(self, definitions: Iterable[RuleDefinition] = ()) -> None:
        self._definitions: tuple[RuleDefinition, ...] = tuple(definitions)

    def __iter__(self) -> Iterator[RuleDefinition]:
        return iter(self._definitions)

    def __len__(self) -> int:
        return len(self._definitions)

    def __repr__(self) -> str:
        return f"RuleSet({[d.code for d in self._definitions]!r})"

    @property
    def codes(self) -> list[str]:
        return [definition.code for definition in self._definitions]

    def applicable(
        self, country: str | None, tax_year: int | None, categories: Iterable[str] | None = None
    ) -> list[RuleDefinition]:
        enabled = set(categories) if categories is not None else None
        selected = []
        for definition in self._definitions:
            if not definition.applies_to(country, tax_year):
                continue
            if enabled is not None and not enabled.intersection(definition.categories):
                continue
            selected.append(definition)
        return selected

    def extend(self, definitions: Iterable[RuleDefinition]) -> RuleSet:
        return RuleSet(self._definitions + tuple(definitions))

    def without(self, *codes: str) -> RuleSet:
        return RuleSet(d for d in self._definitions if d.code not in codes)


def normalize_outcomes(result: RuleResult) -> list[RuleOutcome]:
    if result is None:
        return []
    if isinstance(result, RuleOutcome):
        return [result]
    return list(result)
