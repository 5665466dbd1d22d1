"""
Unit tests for number and date coercion (appraisal_ingest.transforms.numbers).

Tests currency/comma stripping, trailing-unit tolerance, integer truncation
and the date formats appraisal documents use.
"""

from __future__ import annotations

from datetime import date, datetime

import pytest

from appraisal_ingest.transforms.numbers import parse_date, parse_int, parse_number


class TestParseNumber:
    """Tests for parse_number()."""

    # -----------------------------------------------------------------
    # Core numeric parsing
    # -----------------------------------------------------------------

    def test_currency_and_commas(self):
        """Dollar signs and thousand separators are stripped."""
        assert parse_number("$425,000") == 425000.0

    def test_decimal_values(self):
        assert parse_number("2.5") == pytest.approx(2.5)

    def test_whitespace_stripping(self):
        assert parse_number("  1,850  ") == 1850.0

    def test_negative_amounts(self):
        assert parse_number("-5,000") == -5000.0
        assert parse_number("$-2,500") == -2500.0

    def test_trailing_units_ignored(self):
        """A leading number followed by units still parses."""
        assert parse_number("1,850 sq ft") == 1850.0
        assert parse_number("2.5 baths") == pytest.approx(2.5)

    def test_numbers_pass_through(self):
        assert parse_number(3) == 3.0
        assert parse_number(2.5) == pytest.approx(2.5)

    # -----------------------------------------------------------------
    # Values that are not numbers
    # -----------------------------------------------------------------

    @pytest.mark.parametrize("value", [None, "", "   ", "N/A", "abc123", True])
    def test_non_numeric_is_none(self, value):
        assert parse_number(value) is None

    def test_nan_and_inf_are_none(self):
        assert parse_number(float("nan")) is None
        assert parse_number(float("inf")) is None


class TestParseInt:
    """Tests for parse_int()."""

    def test_truncates_fraction(self):
        assert parse_int("3.7") == 3

    def test_year(self):
        assert parse_int("1989") == 1989

    def test_none_for_text(self):
        assert parse_int("three") is None


class TestParseDate:
    """Tests for parse_date()."""

    def test_iso(self):
        assert parse_date("2024-03-15") == date(2024, 3, 15)

    def test_us_format(self):
        assert parse_date("03/15/2024") == date(2024, 3, 15)

    def test_long_form(self):
        assert parse_date("March 15, 2024") == date(2024, 3, 15)

    def test_date_and_datetime_pass_through(self):
        assert parse_date(date(2024, 1, 2)) == date(2024, 1, 2)
        assert parse_date(datetime(2024, 1, 2, 13, 30)) == date(2024, 1, 2)

    @pytest.mark.parametrize("value", [None, "", "not a date"])
    def test_unparseable_is_none(self, value):
        assert parse_date(value) is None
