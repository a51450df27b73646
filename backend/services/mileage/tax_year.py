"""
Mileage Ledger - UK Tax Year Helpers

A UK tax year runs 6 April to 5 April and is written "YYYY-YY",
e.g. "2025-26" covers 6 April 2025 00:00 to 5 April 2026 23:59:59.999.
Boundaries are naive UK wall-clock datetimes; timezone-aware values are
converted to Europe/London local time before they are compared.
"""

import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional, Union
from zoneinfo import ZoneInfo

from services.mileage.errors import DateRangeError, InvalidTaxYearError

TAX_YEAR_PATTERN = re.compile(r"^(\d{4})-(\d{2})$")

TAX_YEAR_START_MONTH = 4
TAX_YEAR_START_DAY = 6

UK_TZ = ZoneInfo("Europe/London")


def to_uk_wall_clock(moment: Optional[datetime]) -> Optional[datetime]:
    """
    Convert an aware datetime to naive UK local time.
    Naive values are taken as UK wall-clock already and returned unchanged.
    """
    if moment is None or moment.tzinfo is None:
        return moment
    return moment.astimezone(UK_TZ).replace(tzinfo=None)


@dataclass(frozen=True)
class DateRange:
    """Window of trip start times for one aggregation run."""
    start: datetime
    end: datetime
    end_inclusive: bool = False
    tax_year: Optional[str] = None

    def contains(self, moment: datetime) -> bool:
        moment = to_uk_wall_clock(moment)
        if moment < self.start:
            return False
        if self.end_inclusive:
            return moment <= self.end
        return moment < self.end

    def label(self) -> str:
        if self.tax_year:
            return f"Tax Year {self.tax_year}"
        return f"{self.start.strftime('%d/%m/%Y')} - {self.end.strftime('%d/%m/%Y')}"


def parse_tax_year(tax_year: str) -> DateRange:
    """
    Parse a UK tax year string (e.g. "2025-26") into its date range.

    Raises:
        InvalidTaxYearError: malformed string, or suffix not (YYYY + 1) mod 100
    """
    if not isinstance(tax_year, str):
        raise InvalidTaxYearError(tax_year)

    match = TAX_YEAR_PATTERN.match(tax_year)
    if not match:
        raise InvalidTaxYearError(tax_year)

    start_year = int(match.group(1))
    end_year = start_year + 1

    if int(match.group(2)) != end_year % 100:
        raise InvalidTaxYearError(tax_year)

    return DateRange(
        start=datetime(start_year, TAX_YEAR_START_MONTH, TAX_YEAR_START_DAY),
        end=datetime(end_year, TAX_YEAR_START_MONTH, TAX_YEAR_START_DAY - 1, 23, 59, 59, 999000),
        end_inclusive=True,
        tax_year=tax_year,
    )


def get_tax_year(moment: Union[date, datetime]) -> str:
    """
    Get the UK tax year string for a date (e.g. "2025-26").
    Dates before 6 April belong to the previous tax year.
    """
    if isinstance(moment, datetime):
        moment = to_uk_wall_clock(moment)
    year = moment.year
    if (moment.month, moment.day) < (TAX_YEAR_START_MONTH, TAX_YEAR_START_DAY):
        year -= 1
    return f"{year}-{(year + 1) % 100:02d}"


def resolve_date_range(
    tax_year: Optional[str] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> DateRange:
    """
    Resolve the aggregation window from exactly one of a tax year or an
    explicit [start, end) range.

    Raises:
        DateRangeError: neither or both supplied, half a range, or start >= end
        InvalidTaxYearError: malformed tax year
    """
    has_range = start is not None or end is not None

    if tax_year is not None and has_range:
        raise DateRangeError("Provide either tax_year or start+end, not both")

    if tax_year is not None:
        return parse_tax_year(tax_year)

    if not has_range:
        raise DateRangeError(
            "Either tax_year or start+end must be provided",
            parameter="tax_year",
            missing=True,
        )

    if start is None:
        raise DateRangeError("start is required with end", parameter="start", missing=True)
    if end is None:
        raise DateRangeError("end is required with start", parameter="end", missing=True)

    start = to_uk_wall_clock(start)
    end = to_uk_wall_clock(end)
    if start >= end:
        raise DateRangeError("start must be before end", parameter="end")

    return DateRange(start=start, end=end, end_inclusive=False)
