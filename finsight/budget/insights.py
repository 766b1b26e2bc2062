"""
Insight Calculator

Secondary metrics over the same month the budget calculator looks at.
Re-fetches expenses independently so it can run in parallel with it.

- safe_to_spend:      income - needs spent - savings target, floored at 0
- remaining_cash:     income - total spent (ephemeral, may be negative)
- top_categories:     largest categories by total, ties in first-seen order
- daily_average:      total / calendar days in the month
- monthly_comparison: change vs. the previous calendar month
- expense_streak:     running count of within-budget days, see below
"""

from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Callable, Optional
from uuid import UUID

from finsight.config import AppSettings, get_settings
from finsight.models.ledger import Bucket, Expense
from finsight.models.results import CategoryTotal, InsightResult, MonthlyComparison
from finsight.periods import (
    days_in_month,
    month_range,
    previous_month,
    round2,
    to_decimal,
    utcnow,
)
from finsight.services.storage import LedgerStorageInterface, OwnerScopedLedger


HUNDRED = Decimal("100")


def total_of(expenses: list[Expense]) -> Decimal:
    return sum((e.amount for e in expenses), Decimal("0"))


def top_categories(expenses: list[Expense], count: int = 3) -> list[CategoryTotal]:
    """
    Largest categories by summed amount.

    Categories are grouped by their exact (trimmed) text. sorted() is
    stable, so ties keep the order in which categories were first seen.
    """
    totals: dict[str, Decimal] = {}
    for expense in expenses:
        totals[expense.category] = totals.get(expense.category, Decimal("0")) + expense.amount

    ranked = sorted(totals.items(), key=lambda item: item[1], reverse=True)
    return [
        CategoryTotal(category=category, amount=round2(amount))
        for category, amount in ranked[:count]
    ]


def change_percentage(current: Decimal, previous: Decimal) -> Decimal:
    """(current - previous) / previous * 100, or 0 without a previous total."""
    if previous <= 0:
        return Decimal("0")
    return (current - previous) / previous * HUNDRED


def expense_streak(
    expenses: list[Expense],
    month_start: datetime,
    month_days: int,
    monthly_income: Decimal,
    today: date,
) -> int:
    """
    Walk each day from the first of the month through min(today, month end).

    A day at or under income / days_in_month increments the counter; a day
    over it resets the counter to 0. The result is therefore the length of
    the run of good days ending at the last day walked, counting empty days
    as good. Days after today are never walked, so a future month yields 0.
    """
    daily_budget = to_decimal(monthly_income) / month_days

    spent_by_day: dict[date, Decimal] = {}
    for expense in expenses:
        day = expense.date.date()
        spent_by_day[day] = spent_by_day.get(day, Decimal("0")) + expense.amount

    streak = 0
    first_day = month_start.date()
    for offset in range(month_days):
        day = first_day + timedelta(days=offset)
        if day > today:
            break
        if spent_by_day.get(day, Decimal("0")) <= daily_budget:
            streak += 1
        else:
            streak = 0
    return streak


class InsightCalculator:
    """
    Derives the secondary monthly metrics for one owner.

    Read-only and idempotent.
    """

    def __init__(
        self,
        storage: LedgerStorageInterface,
        settings: Optional[AppSettings] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._storage = storage
        self._settings = settings or get_settings().app
        self._clock = clock

    def safe_to_spend(self, monthly_income: Decimal, needs_spent: Decimal) -> Decimal:
        income = to_decimal(monthly_income)
        savings_reserve = income * to_decimal(self._settings.savings_target_pct) / HUNDRED
        return max(Decimal("0"), income - needs_spent - savings_reserve)

    async def calculate(
        self,
        owner_id: UUID,
        monthly_income: Decimal,
        month: str,
    ) -> InsightResult:
        """
        Insights for ``month``.

        Raises:
            InvalidArgumentError: If month is not YYYY-MM
        """
        income = to_decimal(monthly_income)
        start, end = month_range(month)
        before = previous_month(month)
        ledger = OwnerScopedLedger(self._storage, owner_id)

        expenses = await ledger.expenses(date_from=start, date_to=end)
        previous = []
        if before is not None:
            prev_start, prev_end = month_range(before)
            previous = await ledger.expenses(date_from=prev_start, date_to=prev_end)

        month_days = days_in_month(month)
        current_total = total_of(expenses)
        previous_total = total_of(previous)
        needs_spent = total_of([e for e in expenses if e.bucket == Bucket.NEEDS])

        return InsightResult(
            month=month,
            safe_to_spend=round2(self.safe_to_spend(income, needs_spent)),
            remaining_cash=round2(income - current_total),
            top_categories=top_categories(expenses, self._settings.top_category_count),
            daily_average=round2(current_total / month_days),
            monthly_comparison=MonthlyComparison(
                current_month=round2(current_total),
                previous_month=round2(previous_total),
                change_percentage=round2(change_percentage(current_total, previous_total)),
            ),
            expense_streak=expense_streak(
                expenses, start, month_days, income, self._clock().date()
            ),
        )
