"""Tests for month parsing and rounding helpers."""

import pytest
from datetime import datetime
from decimal import Decimal

from finsight.errors import InvalidArgumentError
from finsight.periods import days_in_month, month_range, parse_month, previous_month, round2


class TestParseMonth:

    def test_valid_month(self):
        assert parse_month("2024-06") == (2024, 6)

    @pytest.mark.parametrize("month", ["0000-01", "9999-01", "9999-12", "2024-00", "2024-13"])
    def test_out_of_range_is_a_typed_error(self, month):
        with pytest.raises(InvalidArgumentError):
            parse_month(month)

    def test_widest_months_have_ranges(self):
        assert month_range("0001-01") == (datetime(1, 1, 1), datetime(1, 2, 1))
        assert month_range("9998-12") == (datetime(9998, 12, 1), datetime(9999, 1, 1))


class TestPreviousMonth:

    def test_january_rolls_back_a_year(self):
        assert previous_month("2024-01") == "2023-12"

    def test_nothing_before_year_one(self):
        assert previous_month("0001-01") is None


class TestHelpers:

    def test_days_in_month_counts_leap_days(self):
        assert days_in_month("2024-02") == 29

    def test_round2_half_up(self):
        assert round2(Decimal("2.345")) == Decimal("2.35")
        assert round2(None) == Decimal("0.00")
