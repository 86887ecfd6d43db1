#!/usr/bin/env python3
"""Tests for age, expiry and date helper functions."""
import pytest
from datetime import date, datetime
from biomed.calculations import (
    age_in_years,
    format_age,
    format_display_date,
    is_before_yesterday,
    is_expired,
    months_between,
    to_date,
    yesterday,
)


class TestToDate:
    """Tests for to_date helper function."""

    def test_iso_string(self):
        assert to_date("2024-03-20") == date(2024, 3, 20)

    def test_iso_timestamp_drops_time(self):
        """Time and offset parts are ignored."""
        assert to_date("2024-03-20T23:15:00+00:00") == date(2024, 3, 20)

    def test_date_and_datetime_objects(self):
        assert to_date(date(2024, 3, 20)) == date(2024, 3, 20)
        assert to_date(datetime(2024, 3, 20, 8, 30)) == date(2024, 3, 20)

    def test_blank_is_none(self):
        assert to_date(None) is None
        assert to_date("") is None
        assert to_date("   ") is None

    def test_invalid_string_raises(self):
        with pytest.raises(ValueError):
            to_date("not a date")


class TestMonthsBetween:
    """Tests for months_between helper function."""

    def test_whole_months(self):
        assert months_between(date(2020, 1, 15), date(2024, 3, 20)) == 50

    def test_ignores_day_of_month(self):
        """Jan 31 to Feb 1 counts as a full month."""
        assert months_between(date(2024, 1, 31), date(2024, 2, 1)) == 1
        assert months_between(date(2024, 1, 1), date(2024, 1, 31)) == 0

    def test_negated_when_swapped(self):
        """months_between(a, b) == -months_between(b, a)."""
        pairs = [
            (date(2020, 1, 15), date(2024, 3, 20)),
            (date(2023, 12, 31), date(2024, 1, 1)),
            (date(2024, 5, 5), date(2024, 5, 30)),
        ]
        for a, b in pairs:
            assert months_between(a, b) == -months_between(b, a)


class TestFormatAge:
    """Tests for format_age helper function."""

    def test_zero_months(self):
        assert format_age("2024-03-01", today=date(2024, 3, 20)) == "0 months"

    def test_exact_year_has_no_month_segment(self):
        assert format_age("2023-03-01", today=date(2024, 3, 20)) == "1 year"

    def test_year_and_months(self):
        assert format_age("2023-01-10", today=date(2024, 3, 20)) == "1 year 2 months"

    def test_months_only(self):
        assert format_age("2024-01-10", today=date(2024, 3, 20)) == "2 months"

    def test_singular_month(self):
        assert format_age("2022-02-10", today=date(2024, 3, 20)) == "2 years 1 month"

    def test_installation_scenario(self):
        """Installed 2020-01-15, evaluated on 2024-03-20."""
        assert format_age("2020-01-15", today=date(2024, 3, 20)) == "4 years 2 months"

    def test_future_installation_is_zero(self):
        assert format_age("2024-06-01", today=date(2024, 3, 20)) == "0 months"

    def test_missing_date_is_dash(self):
        assert format_age(None) == "-"
        assert format_age("") == "-"

    def test_invalid_date_raises(self):
        with pytest.raises(ValueError):
            format_age("15/01/2020")


class TestAgeInYears:
    """Tests for age_in_years helper function."""

    def test_fractional_years(self):
        assert age_in_years("2023-03-01", today=date(2024, 9, 1)) == 1.5

    def test_missing_date(self):
        assert age_in_years(None) is None


class TestIsExpired:
    """Tests for is_expired helper function."""

    def test_ends_today_not_expired(self):
        today = date(2024, 3, 20)
        assert is_expired("2024-03-20", today) is False

    def test_ended_yesterday_not_expired(self):
        """Yesterday baseline: the day after the end date is still active."""
        today = date(2024, 3, 20)
        assert is_expired("2024-03-19", today) is False

    def test_ended_two_days_ago_expired(self):
        today = date(2024, 3, 20)
        assert is_expired("2024-03-18", today) is True

    def test_future_end_not_expired(self):
        assert is_expired("2025-01-01", date(2024, 3, 20)) is False

    def test_missing_end_never_expires(self):
        assert is_expired(None, date(2024, 3, 20)) is False
        assert is_expired("", date(2024, 3, 20)) is False

    def test_across_month_boundary(self):
        assert is_expired("2024-02-28", date(2024, 3, 1)) is True
        assert is_expired("2024-02-29", date(2024, 3, 1)) is False


class TestYesterday:
    """Tests for yesterday and is_before_yesterday."""

    def test_yesterday(self):
        assert yesterday(date(2024, 3, 1)) == date(2024, 2, 29)

    def test_is_before_yesterday(self):
        today = date(2024, 3, 20)
        assert is_before_yesterday("2024-03-18", today) is True
        assert is_before_yesterday("2024-03-19", today) is False
        assert is_before_yesterday(None, today) is False


class TestFormatDisplayDate:
    """Tests for format_display_date."""

    def test_formats_date(self):
        assert format_display_date("2024-03-05") == "Mar 5, 2024"

    def test_none_returns_dash(self):
        assert format_display_date(None) == "-"
