"""Unit tests for the MonthKey value type."""

from datetime import date, datetime

import pytest

from ottalika.models import MonthKey


class TestMonthKeyParse:
    """Parsing months from strings and dates."""

    def test_parse_year_month(self):
        assert MonthKey.parse("2024-01") == MonthKey(2024, 1)

    def test_parse_ignores_day(self):
        assert MonthKey.parse("2024-03-17") == MonthKey(2024, 3)

    def test_parse_single_digit_month(self):
        assert MonthKey.parse("2024-7") == MonthKey(2024, 7)

    def test_parse_date_and_datetime(self):
        assert MonthKey.parse(date(2025, 11, 30)) == MonthKey(2025, 11)
        assert MonthKey.parse(datetime(2025, 2, 1, 12, 30)) == MonthKey(2025, 2)

    def test_parse_returns_same_key(self):
        key = MonthKey(2024, 5)
        assert MonthKey.parse(key) is key

    @pytest.mark.parametrize("value", ["2024-13", "2024-00", "January 2024", "", "24-01", None])
    def test_parse_rejects_malformed(self, value):
        with pytest.raises(ValueError):
            MonthKey.parse(value)


class TestMonthKeyArithmetic:
    """Ordering, shifting and due dates."""

    def test_ordering(self):
        assert MonthKey(2023, 12) < MonthKey(2024, 1) < MonthKey(2024, 2)

    def test_shift_across_year_boundary(self):
        assert MonthKey(2024, 1).shift(-1) == MonthKey(2023, 12)
        assert MonthKey(2024, 11).shift(3) == MonthKey(2025, 2)
        assert MonthKey(2024, 6).shift(0) == MonthKey(2024, 6)

    def test_due_date_adds_grace_days(self):
        assert MonthKey(2024, 2).due_date(5) == date(2024, 2, 6)
        assert MonthKey(2024, 2).due_date(0) == date(2024, 2, 1)

    def test_string_and_label(self):
        key = MonthKey(2024, 1)
        assert str(key) == "2024-01"
        assert key.label() == "January 2024"

    def test_hashable_for_grouping(self):
        counts = {MonthKey(2024, 1): 1}
        counts[MonthKey.parse("2024-01-15")] += 1
        assert counts == {MonthKey(2024, 1): 2}
