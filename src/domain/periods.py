"""Date windows used by the tax and VAT calculations.

All comparisons happen in UTC. Registration dates are taken to start at
midnight UTC of the given day.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone

from .records import TaxStatus

ROLLING_WINDOW = timedelta(days=365)
MAX_YEAR = 9999

# Stagger 1 quarters: (start month, start day, end month, end day)
_STAGGER_ONE: dict[int, tuple[int, int, int, int]] = {
    1: (4, 1, 6, 30),
    2: (7, 1, 9, 30),
    3: (10, 1, 12, 31),
    4: (1, 1, 3, 31),
}


class InvalidPeriodError(ValueError):
    """Raised for a missing or malformed year/quarter request."""


def start_of_day(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


def is_vat_applicable(timestamp: datetime, tax_status: TaxStatus) -> bool:
    registered = tax_status.vat_registration_date
    if registered is None:
        return False
    if timestamp < start_of_day(registered):
        return False
    deregistered = tax_status.vat_deregistration_date
    return deregistered is None or timestamp < start_of_day(deregistered)


@dataclass(frozen=True)
class TaxYear:
    """Calendar tax year, half-open ``[start, end)``."""

    year: int

    @property
    def start(self) -> datetime:
        return datetime(self.year, 1, 1, tzinfo=timezone.utc)

    @property
    def end(self) -> datetime:
        return datetime(self.year + 1, 1, 1, tzinfo=timezone.utc)

    def contains(self, timestamp: datetime) -> bool:
        return self.start <= timestamp < self.end


@dataclass(frozen=True)
class VatQuarter:
    year: int
    quarter: int
    start: date
    end: date

    @property
    def label(self) -> str:
        return f"{self.start.isoformat()} to {self.end.isoformat()}"

    def contains(self, timestamp: datetime) -> bool:
        return self.start <= timestamp.astimezone(timezone.utc).date() <= self.end


def _parse_int(name: str, value: int | str | None) -> int:
    if value is None or value == "":
        raise InvalidPeriodError(f"{name} is required")
    if isinstance(value, bool):
        raise InvalidPeriodError(f"{name} must be an integer, got {value!r}")
    if isinstance(value, int):
        return value
    text = str(value).strip()
    if not (text.isascii() and text.isdecimal()):
        raise InvalidPeriodError(f"{name} must be an integer, got {value!r}")
    return int(text)


def _parse_year(value: int | str | None, upper: int) -> int:
    year = _parse_int("year", value)
    if not 1 <= year <= upper:
        raise InvalidPeriodError(f"year must be between 1 and {upper}, got {value!r}")
    return year


def tax_year(year: int | str | None) -> TaxYear:
    # The window ends on Jan 1 of the following year, which must exist too.
    return TaxYear(_parse_year(year, MAX_YEAR - 1))


def vat_quarter(year: int | str | None, quarter: int | str | None) -> VatQuarter:
    """Resolve a Stagger 1 quarter.

    Q4 is January to March of the *given* year, not of the following one.
    Raises InvalidPeriodError before anything is computed when either value is
    missing or the quarter is outside 1-4.
    """
    quarter_num = _parse_int("quarter", quarter)
    if quarter_num not in _STAGGER_ONE:
        raise InvalidPeriodError(f"quarter must be one of 1-4, got {quarter!r}")
    year_num = _parse_year(year, MAX_YEAR)

    start_month, start_day, end_month, end_day = _STAGGER_ONE[quarter_num]
    return VatQuarter(
        year=year_num,
        quarter=quarter_num,
        start=date(year_num, start_month, start_day),
        end=date(year_num, end_month, end_day),
    )


def rolling_window(now: datetime) -> tuple[datetime, datetime]:
    return now - ROLLING_WINDOW, now
