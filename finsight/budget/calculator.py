"""
Budget Calculator

Aggregates one month of a user's expenses into the 50/30/20 picture:
needs / wants / savings totals, their share of income, and an overall
on_track / warning / off_track verdict.

Status derivation is ordered and only ever escalates:

    needs   > limit        -> warning, > off-track band -> off_track
    wants   > limit        -> off_track above the band, else warning
                              (warning only upgrades on_track)
    savings < target       -> off_track below the band, else warning
                              (warning only upgrades on_track)

The savings check needs a month that has any spending at all; an empty
month reports on_track with no warnings.

Read-only over the ledger; safe to run concurrently with the insight
calculator and the net worth aggregator.
"""

from decimal import Decimal
from typing import Optional
from uuid import UUID

from finsight.config import AppSettings, get_settings
from finsight.models.ledger import Bucket, BudgetStatus, Expense
from finsight.models.results import BucketSpend, BudgetResult, SavingsProgress
from finsight.periods import month_range, round2, to_decimal
from finsight.services.storage import LedgerStorageInterface, OwnerScopedLedger


HUNDRED = Decimal("100")


def bucket_totals(expenses: list[Expense]) -> dict[Bucket, Decimal]:
    """Sum amounts per bucket at full precision."""
    totals = {bucket: Decimal("0") for bucket in Bucket}
    for expense in expenses:
        totals[expense.bucket] += expense.amount
    return totals


def percentage_of(amount: Decimal, income: Decimal) -> Decimal:
    """amount / income * 100, or 0 when there is no income."""
    if income <= 0:
        return Decimal("0")
    return amount / income * HUNDRED


def _escalate(current: BudgetStatus, candidate: BudgetStatus) -> BudgetStatus:
    if current == BudgetStatus.OFF_TRACK:
        return current
    if candidate == BudgetStatus.OFF_TRACK:
        return candidate
    if current == BudgetStatus.ON_TRACK:
        return candidate
    return current


class BudgetCalculator:
    """
    Computes the monthly 50/30/20 budget for one owner.

    The calculator does not check whether income is set; callers are
    expected to refuse summary requests for users without income
    (see SummaryFlow). With zero income all percentages are zero.
    """

    def __init__(
        self,
        storage: LedgerStorageInterface,
        settings: Optional[AppSettings] = None,
    ):
        self._storage = storage
        self._settings = settings or get_settings().app

    def derive_status(
        self,
        needs_pct: Decimal,
        wants_pct: Decimal,
        savings_pct: Decimal,
        income: Decimal,
        total_spent: Decimal,
    ) -> tuple[BudgetStatus, list[str]]:
        """
        Apply the threshold rules in order.

        Returns:
            (status, warnings)
        """
        s = self._settings
        status = BudgetStatus.ON_TRACK
        warnings: list[str] = []

        if needs_pct > to_decimal(s.needs_limit_pct):
            candidate = (
                BudgetStatus.OFF_TRACK
                if needs_pct > to_decimal(s.needs_off_track_pct)
                else BudgetStatus.WARNING
            )
            status = _escalate(status, candidate)
            warnings.append(f"Needs spending exceeds {s.needs_limit_pct:g}%")

        if wants_pct > to_decimal(s.wants_limit_pct):
            candidate = (
                BudgetStatus.OFF_TRACK
                if wants_pct > to_decimal(s.wants_off_track_pct)
                else BudgetStatus.WARNING
            )
            status = _escalate(status, candidate)
            warnings.append(f"Wants spending exceeds {s.wants_limit_pct:g}%")

        if (
            income > 0
            and total_spent > 0
            and savings_pct < to_decimal(s.savings_target_pct)
        ):
            candidate = (
                BudgetStatus.OFF_TRACK
                if savings_pct < to_decimal(s.savings_off_track_pct)
                else BudgetStatus.WARNING
            )
            status = _escalate(status, candidate)
            warnings.append(f"Savings below {s.savings_target_pct:g}%")

        return status, warnings

    def summarize(
        self,
        expenses: list[Expense],
        monthly_income: Decimal,
        month: str,
    ) -> BudgetResult:
        """Build the budget result from an already-fetched month of expenses."""
        income = to_decimal(monthly_income)
        totals = bucket_totals(expenses)
        needs_total = totals[Bucket.NEEDS]
        wants_total = totals[Bucket.WANTS]
        savings_total = totals[Bucket.SAVINGS]
        total_spent = needs_total + wants_total + savings_total

        needs_pct = percentage_of(needs_total, income)
        wants_pct = percentage_of(wants_total, income)
        savings_pct = percentage_of(savings_total, income)

        status, warnings = self.derive_status(
            needs_pct, wants_pct, savings_pct, income, total_spent
        )

        s = self._settings
        return BudgetResult(
            month=month,
            income=round2(income),
            total_spent=round2(total_spent),
            needs=BucketSpend(
                amount=round2(needs_total),
                percentage=round2(needs_pct),
                limit=round2(income * to_decimal(s.needs_limit_pct) / HUNDRED),
            ),
            wants=BucketSpend(
                amount=round2(wants_total),
                percentage=round2(wants_pct),
                limit=round2(income * to_decimal(s.wants_limit_pct) / HUNDRED),
            ),
            savings=SavingsProgress(
                amount=round2(savings_total),
                percentage=round2(savings_pct),
                target=round2(income * to_decimal(s.savings_target_pct) / HUNDRED),
            ),
            status=status,
            warnings=warnings or None,
        )

    async def calculate(
        self,
        owner_id: UUID,
        monthly_income: Decimal,
        month: str,
    ) -> BudgetResult:
        """
        50/30/20 analysis for ``month``.

        Raises:
            InvalidArgumentError: If month is not YYYY-MM
        """
        start, end = month_range(month)
        ledger = OwnerScopedLedger(self._storage, owner_id)
        expenses = await ledger.expenses(date_from=start, date_to=end)
        return self.summarize(expenses, monthly_income, month)
