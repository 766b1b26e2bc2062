"""Tests for the Budget Calculator."""

import asyncio
import pytest
from datetime import datetime
from decimal import Decimal

from finsight.budget import BudgetCalculator
from finsight.budget.calculator import percentage_of
from finsight.errors import InvalidArgumentError
from finsight.models.ledger import BudgetStatus
from finsight.validation import ExpenseClassifier


INCOME = Decimal("50000")


def add(storage, owner_id, amount, bucket, category="Misc", day=datetime(2024, 6, 10)):
    expense = ExpenseClassifier().classify(owner_id, amount, category, bucket, date=day)
    return asyncio.run(storage.add_expense(expense))


class TestPercentages:

    def test_zero_income_guard(self):
        assert percentage_of(Decimal("100"), Decimal("0")) == Decimal("0")

    def test_plain_ratio(self):
        assert percentage_of(Decimal("12500"), INCOME) == Decimal("25")


class TestBudgetCalculator:
    """50/30/20 status derivation over one month."""

    def calculate(self, storage, owner_id, settings, month="2024-06", income=INCOME):
        calculator = BudgetCalculator(storage, settings)
        return asyncio.run(calculator.calculate(owner_id, income, month))

    def test_empty_month_is_on_track(self, storage, owner_id, settings):
        result = self.calculate(storage, owner_id, settings)

        assert result.total_spent == Decimal("0.00")
        assert result.needs.percentage == Decimal("0.00")
        assert result.wants.percentage == Decimal("0.00")
        assert result.savings.percentage == Decimal("0.00")
        assert result.status == BudgetStatus.ON_TRACK
        assert result.warnings is None

    def test_limits_and_target_follow_income(self, storage, owner_id, settings):
        result = self.calculate(storage, owner_id, settings)

        assert result.needs.limit == Decimal("25000.00")
        assert result.wants.limit == Decimal("15000.00")
        assert result.savings.target == Decimal("10000.00")

    def test_heavy_needs_month_is_off_track(self, storage, owner_id, settings):
        add(storage, owner_id, 30000, "needs", "Rent")

        result = self.calculate(storage, owner_id, settings)

        assert result.needs.percentage == Decimal("60.00")
        assert result.status == BudgetStatus.OFF_TRACK
        assert "Needs spending exceeds 50%" in result.warnings

    def test_needs_above_band_alone_is_off_track(self, storage, owner_id, settings):
        add(storage, owner_id, 31000, "needs")
        add(storage, owner_id, 10000, "savings")

        result = self.calculate(storage, owner_id, settings)

        assert result.status == BudgetStatus.OFF_TRACK
        assert result.warnings == ["Needs spending exceeds 50%"]

    def test_balanced_month_is_on_track(self, storage, owner_id, settings):
        add(storage, owner_id, 20000, "needs")
        add(storage, owner_id, 10000, "wants")
        add(storage, owner_id, 10000, "savings")

        result = self.calculate(storage, owner_id, settings)

        assert result.total_spent == Decimal("40000.00")
        assert result.status == BudgetStatus.ON_TRACK
        assert result.warnings is None

    def test_wants_in_warning_band(self, storage, owner_id, settings):
        add(storage, owner_id, 16000, "wants")
        add(storage, owner_id, 10000, "savings")

        result = self.calculate(storage, owner_id, settings)

        assert result.status == BudgetStatus.WARNING
        assert result.warnings == ["Wants spending exceeds 30%"]

    def test_savings_shortfall_warning(self, storage, owner_id, settings):
        add(storage, owner_id, 20000, "needs")
        add(storage, owner_id, 7500, "savings")

        result = self.calculate(storage, owner_id, settings)

        assert result.savings.percentage == Decimal("15.00")
        assert result.status == BudgetStatus.WARNING
        assert result.warnings == ["Savings below 20%"]

    def test_warning_never_downgrades_off_track(self, storage, owner_id, settings):
        add(storage, owner_id, 35000, "needs")
        add(storage, owner_id, 16000, "wants")
        add(storage, owner_id, 7500, "savings")

        result = self.calculate(storage, owner_id, settings)

        assert result.status == BudgetStatus.OFF_TRACK
        assert len(result.warnings) == 3

    def test_percentages_are_not_normalized(self, storage, owner_id, settings):
        """Spending beyond income shows up as percentages over 100 in total."""
        add(storage, owner_id, 40000, "needs")
        add(storage, owner_id, 20000, "wants")
        add(storage, owner_id, 5000, "savings")

        result = self.calculate(storage, owner_id, settings)

        total_pct = result.needs.percentage + result.wants.percentage + result.savings.percentage
        assert total_pct == Decimal("130.00")

    def test_only_the_requested_month_counts(self, storage, owner_id, settings):
        add(storage, owner_id, 1000, "needs", day=datetime(2024, 5, 31, 23, 59))
        add(storage, owner_id, 2000, "needs", day=datetime(2024, 6, 1, 0, 0))
        add(storage, owner_id, 4000, "needs", day=datetime(2024, 7, 1, 0, 0))

        result = self.calculate(storage, owner_id, settings)

        assert result.needs.amount == Decimal("2000.00")

    def test_other_owners_are_ignored(self, storage, owner_id, other_owner_id, settings):
        add(storage, other_owner_id, 45000, "wants")

        result = self.calculate(storage, owner_id, settings)

        assert result.total_spent == Decimal("0.00")

    @pytest.mark.parametrize("month", ["2024-6", "June", "2024-13", "0000-06", "9999-12", "", None])
    def test_rejects_malformed_month(self, storage, owner_id, settings, month):
        with pytest.raises(InvalidArgumentError):
            self.calculate(storage, owner_id, settings, month=month)
