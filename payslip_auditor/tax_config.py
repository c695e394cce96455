#!/usr/bin/env python3

from __future__ import annotations

import json
from dataclasses import dataclass, field
from decimal import Decimal
from functools import lru_cache
from pathlib import Path
from typing import Any

import jsonschema
from jsonschema.exceptions import ValidationError

TAX_YEARS_DIR = Path(__file__).parent / "tax_years"
SCHEMAS_DIR = Path(__file__).parent / "schemas"

COUNTRIES: tuple[str, ...] = ("IE", "UK")


class TaxConfigError(ValueError):
    """Raised when a tax-year table is missing or malformed."""


@dataclass(frozen=True)
class IePayeBand:
    category: str
    standard_rate_cutoff: Decimal
    notes: str | None = None


@dataclass(frozen=True)
class IeUscBand:
    up_to: Decimal | None
    rate: Decimal


@dataclass(frozen=True)
class IeUscSurcharge:
    rate: Decimal
    applies_above: Decimal
    note: str | None = None


@dataclass(frozen=True)
class IeUscReducedRate:
    label: str
    rate: Decimal
    applies_up_to: Decimal


@dataclass(frozen=True)
class IePrsiClass:
    class_code: str
    employee_rate: Decimal
    employer_rate: Decimal
    weekly_threshold: Decimal
    note: str | None = None


@dataclass(frozen=True)
class IePrsiCredit:
    max_weekly_credit: Decimal
    tapers_to_zero_at: Decimal


@dataclass(frozen=True)
class IeTaxYearConfig:
    year: int
    standard_rate: Decimal
    higher_rate: Decimal
    paye_bands: tuple[IePayeBand, ...]
    usc_bands: tuple[IeUscBand, ...]
    prsi_classes: dict[str, IePrsiClass]
    prsi_credit: IePrsiCredit | None = None
    usc_surcharge: IeUscSurcharge | None = None
    usc_reduced_rates: tuple[IeUscReducedRate, ...] = ()
    references: tuple[str, ...] = ()

    def standard_rate_cutoff(self, category: str | None) -> Decimal | None:
        if not category:
            return None
        wanted = category.strip().lower()
        for band in self.paye_bands:
            if band.category == wanted:
                return band.standard_rate_cutoff
        return None


@dataclass(frozen=True)
class UkPayeBand:
    label: str
    rate: Decimal
    up_to: Decimal | None


@dataclass(frozen=True)
class UkNicThresholds:
    primary_threshold_weekly: Decimal
    secondary_threshold_weekly: Decimal
    upper_earnings_limit_weekly: Decimal
    upper_secondary_threshold_weekly: Decimal | None = None
    freeport_upper_weekly: Decimal | None = None


@dataclass(frozen=True)
class UkNicRates:
    employee_lower_rate: Decimal
    employee_upper_rate: Decimal
    employer_rate: Decimal
    employer_freeport_rate: Decimal | None = None


@dataclass(frozen=True)
class UkNicCategory:
    """Per-letter overrides; None means fall back to the general rate or threshold."""

    letter: str
    employee_lower_rate: Decimal | None = None
    employee_upper_rate: Decimal | None = None
    employer_rate: Decimal | None = None
    employer_rate_below_upper_secondary: Decimal | None = None
    upper_secondary_threshold_weekly: Decimal | None = None


@dataclass(frozen=True)
class UkStudentLoanPlan:
    plan: str
    threshold_annual: Decimal
    rate: Decimal


@dataclass(frozen=True)
class UkTaxYearConfig:
    year: int
    personal_allowance: Decimal
    paye_bands: tuple[UkPayeBand, ...]
    nic_thresholds: UkNicThresholds
    nic_rates: UkNicRates
    nic_categories: dict[str, UkNicCategory] = field(default_factory=dict)
    student_loans: tuple[UkStudentLoanPlan, ...] = ()
    references: tuple[str, ...] = ()

    def student_loan_plan(self, plan: str | None) -> UkStudentLoanPlan | None:
        if not plan:
            return None
        wanted = plan.strip().lower().replace(" ", "")
        for entry in self.student_loans:
            if entry.plan.lower() == wanted:
                return entry
        return None


def _load_json(path: Path) -> dict[str, Any]:
    try:
        with open(path, "r") as f:
            return dict(json.load(f, parse_float=Decimal))
    except FileNotFoundError as e:
        raise TaxConfigError(f"Tax-year file not found: {path}") from e
    except json.JSONDecodeError as e:
        raise TaxConfigError(f"Tax-year file is not valid JSON: {path}: {e}") from e


def _validate(data: dict[str, Any], schema_name: str) -> None:
    with open(SCHEMAS_DIR / f"{schema_name}.json", "r") as f:
        schema = json.load(f)
    try:
        jsonschema.validate(instance=data, schema=schema)
    except ValidationError as e:
        raise TaxConfigError(f"Invalid {schema_name} table: {e.message}") from e


def _dec(value: Any) -> Decimal:
    return value if isinstance(value, Decimal) else Decimal(str(value))


def _opt_dec(value: Any) -> Decimal | None:
    return None if value is None else _dec(value)


def _check_ascending_bands(bands: list[Decimal | None], label: str) -> None:
    """Only the last band may be unbounded, and bounded limits must strictly ascend."""
    if not bands:
        raise TaxConfigError(f"{label}: at least one band is required")
    if bands[-1] is not None:
        raise TaxConfigError(f"{label}: last band must be unbounded (up_to null)")
    previous = Decimal("0")
    for index, up_to in enumerate(bands[:-1]):
        if up_to is None:
            raise TaxConfigError(f"{label}: only the last band may be unbounded (band {index})")
        if up_to <= previous:
            raise TaxConfigError(f"{label}: band limits must be strictly ascending (band {index})")
        previous = up_to


def parse_ie_config(data: dict[str, Any]) -> IeTaxYearConfig:
    _validate(data, "ie_tax_year")
    paye = data["paye"]
    usc = data["usc"]
    prsi = data["prsi"]

    usc_bands = tuple(IeUscBand(up_to=_opt_dec(b["up_to"]), rate=_dec(b["rate"])) for b in usc["bands"])
    _check_ascending_bands([band.up_to for band in usc_bands], f"IE {data['year']} USC")

    surcharge = None
    if usc.get("surcharge"):
        raw = usc["surcharge"]
        surcharge = IeUscSurcharge(
            rate=_dec(raw["rate"]), applies_above=_dec(raw["applies_above"]), note=raw.get("note")
        )

    credit = None
    if prsi.get("credit"):
        credit = IePrsiCredit(
            max_weekly_credit=_dec(prsi["credit"]["max_weekly_credit"]),
            tapers_to_zero_at=_dec(prsi["credit"]["tapers_to_zero_at"]),
        )

    return IeTaxYearConfig(
        year=int(data["year"]),
        standard_rate=_dec(paye["standard_rate"]),
        higher_rate=_dec(paye["higher_rate"]),
        paye_bands=tuple(
            IePayeBand(
                category=b["category"].strip().lower(),
                standard_rate_cutoff=_dec(b["standard_rate_cutoff"]),
                notes=b.get("notes"),
            )
            for b in paye["bands"]
        ),
        usc_bands=usc_bands,
        usc_surcharge=surcharge,
        usc_reduced_rates=tuple(
            IeUscReducedRate(label=r["label"], rate=_dec(r["rate"]), applies_up_to=_dec(r["applies_up_to"]))
            for r in usc.get("reduced_rates", [])
        ),
        prsi_classes={
            code: IePrsiClass(
                class_code=code,
                employee_rate=_dec(c["employee_rate"]),
                employer_rate=_dec(c["employer_rate"]),
                weekly_threshold=_dec(c["weekly_threshold"]),
                note=c.get("note"),
            )
            for code, c in prsi["classes"].items()
        },
        prsi_credit=credit,
        references=tuple(data.get("references", [])),
    )


def parse_uk_config(data: dict[str, Any]) -> UkTaxYearConfig:
    _validate(data, "uk_tax_year")
    paye = data["paye"]
    nic = data["nic"]

    paye_bands = tuple(
        UkPayeBand(label=b["label"], rate=_dec(b["rate"]), up_to=_opt_dec(b["up_to"])) for b in paye["bands"]
    )
    _check_ascending_bands([band.up_to for band in paye_bands], f"UK {data['year']} PAYE")

    t = nic["thresholds"]
    r = nic["rates"]
    categories = {
        letter: UkNicCategory(
            letter=letter,
            employee_lower_rate=_opt_dec(c.get("employee_lower_rate")),
            employee_upper_rate=_opt_dec(c.get("employee_upper_rate")),
            employer_rate=_opt_dec(c.get("employer_rate")),
            employer_rate_below_upper_secondary=_opt_dec(c.get("employer_rate_below_upper_secondary")),
            upper_secondary_threshold_weekly=_opt_dec(c.get("upper_secondary_threshold_weekly")),
        )
        for letter, c in nic.get("categories", {}).items()
    }
    categories.setdefault("A", UkNicCategory(letter="A"))

    return UkTaxYearConfig(
        year=int(data["year"]),
        personal_allowance=_dec(paye["personal_allowance"]),
        paye_bands=paye_bands,
        nic_thresholds=UkNicThresholds(
            primary_threshold_weekly=_dec(t["primary_threshold_weekly"]),
            secondary_threshold_weekly=_dec(t["secondary_threshold_weekly"]),
            upper_earnings_limit_weekly=_dec(t["upper_earnings_limit_weekly"]),
            upper_secondary_threshold_weekly=_opt_dec(t.get("upper_secondary_threshold_weekly")),
            freeport_upper_weekly=_opt_dec(t.get("freeport_upper_weekly")),
        ),
        nic_rates=UkNicRates(
            employee_lower_rate=_dec(r["employee_lower_rate"]),
            employee_upper_rate=_dec(r["employee_upper_rate"]),
            employer_rate=_dec(r["employer_rate"]),
            employer_freeport_rate=_opt_dec(r.get("employer_freeport_rate")),
        ),
        nic_categories=categories,
        student_loans=tuple(
            UkStudentLoanPlan(plan=s["plan"], threshold_annual=_dec(s["threshold_annual"]), rate=_dec(s["rate"]))
            for s in data["student_loans"]
        ),
        references=tuple(data.get("references", [])),
    )


# Runtime registrations take precedence over bundled files for the same year.
_IE_REGISTERED: dict[int, IeTaxYearConfig] = {}
_UK_REGISTERED: dict[int, UkTaxYearConfig] = {}


def _bundled_years(country: str) -> list[int]:
    folder = TAX_YEARS_DIR / country.lower()
    if not folder.is_dir():
        return []
    return sorted(int(p.stem) for p in folder.glob("*.json") if p.stem.isdigit())


@lru_cache(maxsize=None)
def _load_bundled_ie(year: int) -> IeTaxYearConfig:
    return parse_ie_config(_load_json(TAX_YEARS_DIR / "ie" / f"{year}.json"))


@lru_cache(maxsize=None)
def _load_bundled_uk(year: int) -> UkTaxYearConfig:
    return parse_uk_config(_load_json(TAX_YEARS_DIR / "uk" / f"{year}.json"))


def available_years(country: str) -> list[int]:
    registered = _IE_REGISTERED if country.upper() == "IE" else _UK_REGISTERED
    return sorted(set(_bundled_years(country)) | set(registered))


def _resolve_year(country: str, tax_year: int | None) -> int:
    years = available_years(country)
    if not years:
        raise TaxConfigError(f"No {country.upper()} tax config registered")
    return years[-1] if tax_year is None else int(tax_year)


def register_ie_config(config: IeTaxYearConfig | dict[str, Any]) -> IeTaxYearConfig:
    parsed = config if isinstance(config, IeTaxYearConfig) else parse_ie_config(config)
    _IE_REGISTERED[parsed.year] = parsed
    return parsed


def register_uk_config(config: UkTaxYearConfig | dict[str, Any]) -> UkTaxYearConfig:
    parsed = config if isinstance(config, UkTaxYearConfig) else parse_uk_config(config)
    _UK_REGISTERED[parsed.year] = parsed
    return parsed


def get_ie_config_for_year(tax_year: int | None = None) -> IeTaxYearConfig:
    """Resolve the Ireland table for a year; None selects the latest available year."""
    year = _resolve_year("IE", tax_year)
    if year in _IE_REGISTERED:
        return _IE_REGISTERED[year]
    if year not in _bundled_years("IE"):
        raise TaxConfigError(f"No IE tax config found for year {year}")
    return _load_bundled_ie(year)


def get_uk_config_for_year(tax_year: int | None = None) -> UkTaxYearConfig:
    """Resolve the UK table for a year; None selects the latest available year."""
    year = _resolve_year("UK", tax_year)
    if year in _UK_REGISTERED:
        return _UK_REGISTERED[year]
    if year not in _bundled_years("UK"):
        raise TaxConfigError(f"No UK tax config found for year {year}")
    return _load_bundled_uk(year)
