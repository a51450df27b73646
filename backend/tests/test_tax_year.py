"""
Unit Tests for Tax Year Parsing and Date Range Resolution

Run with: pytest tests/test_tax_year.py -v
"""

from datetime import date, datetime, timezone

import pytest

from services.mileage import (
    DateRangeError,
    InvalidExportRequestError,
    InvalidTaxYearError,
    get_tax_year,
    parse_tax_year,
    resolve_date_range,
)
from services.mileage.tax_year import to_uk_wall_clock


class TestParseTaxYear:
    """UK tax year strings"""

    def test_valid_tax_year(self):
        date_range = parse_tax_year("2025-26")
        assert date_range.start == datetime(2025, 4, 6, 0, 0, 0)
        assert date_range.end == datetime(2026, 4, 5, 23, 59, 59, 999000)
        assert date_range.end_inclusive is True
        assert date_range.tax_year == "2025-26"

    def test_century_rollover(self):
        date_range = parse_tax_year("2099-00")
        assert date_range.start == datetime(2099, 4, 6)
        assert date_range.end.year == 2100

    @pytest.mark.parametrize("bad", ["2025-27", "2025/26", "25-26", "2025-2026", "2025-6", "", " 2025-26", "abcd-ef"])
    def test_malformed_tax_year_rejected(self, bad):
        with pytest.raises(InvalidTaxYearError) as exc:
            parse_tax_year(bad)
        assert str(exc.value) == f"Invalid tax year format: {bad}"

    def test_non_string_rejected(self):
        with pytest.raises(InvalidTaxYearError):
            parse_tax_year(2025)

    def test_error_body(self):
        with pytest.raises(InvalidTaxYearError) as exc:
            parse_tax_year("2025-27")
        body = exc.value.to_dict()
        assert body["error"] == "invalid_parameter"
        assert body["parameter"] == "tax_year"
        assert body["received_value"] == "2025-27"

    def test_boundaries_are_inclusive(self):
        date_range = parse_tax_year("2025-26")
        assert date_range.contains(datetime(2025, 4, 6, 0, 0))
        assert date_range.contains(datetime(2026, 4, 5, 23, 59, 59, 999000))
        assert not date_range.contains(datetime(2025, 4, 5, 23, 59, 59))
        assert not date_range.contains(datetime(2026, 4, 6, 0, 0))

    def test_label(self):
        assert parse_tax_year("2025-26").label() == "Tax Year 2025-26"


class TestGetTaxYear:
    """Tax year for a date"""

    def test_dates_around_the_boundary(self):
        assert get_tax_year(date(2025, 4, 5)) == "2024-25"
        assert get_tax_year(date(2025, 4, 6)) == "2025-26"
        assert get_tax_year(datetime(2026, 1, 15, 12, 0)) == "2025-26"
        assert get_tax_year(date(2100, 1, 1)) == "2099-00"

    def test_round_trips_through_parse(self):
        moment = datetime(2024, 11, 3, 17, 30)
        assert parse_tax_year(get_tax_year(moment)).contains(moment)


class TestResolveDateRange:
    """Exactly one of tax year or explicit range"""

    def test_tax_year_only(self):
        assert resolve_date_range(tax_year="2024-25").tax_year == "2024-25"

    def test_explicit_range_is_half_open(self):
        start = datetime(2025, 6, 1)
        end = datetime(2025, 7, 1)
        date_range = resolve_date_range(start=start, end=end)
        assert date_range.tax_year is None
        assert date_range.contains(start)
        assert not date_range.contains(end)
        assert date_range.label() == "01/06/2025 - 01/07/2025"

    def test_neither_supplied(self):
        with pytest.raises(DateRangeError) as exc:
            resolve_date_range()
        assert exc.value.to_dict()["error"] == "missing_parameter"

    def test_both_supplied(self):
        with pytest.raises(DateRangeError):
            resolve_date_range("2025-26", datetime(2025, 6, 1), datetime(2025, 7, 1))

    def test_half_range(self):
        with pytest.raises(DateRangeError) as exc:
            resolve_date_range(start=datetime(2025, 6, 1))
        assert exc.value.parameter == "end"

        with pytest.raises(DateRangeError) as exc:
            resolve_date_range(end=datetime(2025, 6, 1))
        assert exc.value.parameter == "start"

    def test_empty_range_rejected(self):
        moment = datetime(2025, 6, 1)
        with pytest.raises(DateRangeError):
            resolve_date_range(start=moment, end=moment)

    def test_invalid_tax_year_is_a_request_error(self):
        with pytest.raises(InvalidExportRequestError):
            resolve_date_range(tax_year="2025-30")

    def test_empty_tax_year_is_malformed(self):
        with pytest.raises(InvalidTaxYearError):
            resolve_date_range(tax_year="")

    def test_empty_tax_year_with_range_is_ambiguous(self):
        with pytest.raises(DateRangeError):
            resolve_date_range("", datetime(2025, 6, 1), datetime(2025, 7, 1))

    def test_aware_range_converted_to_uk_time(self):
        date_range = resolve_date_range(
            start=datetime(2025, 6, 1, 11, 0, tzinfo=timezone.utc),
            end=datetime(2025, 12, 1, 11, 0, tzinfo=timezone.utc),
        )
        assert date_range.start == datetime(2025, 6, 1, 12, 0)
        assert date_range.end == datetime(2025, 12, 1, 11, 0)


class TestUkWallClock:
    """Aware instants against naive UK boundaries"""

    def test_summer_and_winter_offsets(self):
        assert to_uk_wall_clock(datetime(2025, 7, 1, 7, 0, tzinfo=timezone.utc)) == datetime(2025, 7, 1, 8, 0)
        assert to_uk_wall_clock(datetime(2026, 1, 10, 7, 0, tzinfo=timezone.utc)) == datetime(2026, 1, 10, 7, 0)

    def test_naive_and_missing_values_unchanged(self):
        moment = datetime(2025, 7, 1, 7, 0)
        assert to_uk_wall_clock(moment) is moment
        assert to_uk_wall_clock(None) is None

    def test_contains_accepts_aware_instants(self):
        date_range = parse_tax_year("2025-26")
        assert date_range.contains(datetime(2025, 4, 5, 23, 30, tzinfo=timezone.utc))
        assert not date_range.contains(datetime(2026, 4, 5, 23, 30, tzinfo=timezone.utc))

    def test_tax_year_of_aware_instant(self):
        assert get_tax_year(datetime(2026, 4, 5, 23, 30, tzinfo=timezone.utc)) == "2026-27"
