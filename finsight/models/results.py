"""
Engine Result Models

What the calculators hand back to the calling boundary. Field names are
snake_case in Python; ``model_dump(by_alias=True)`` produces the camelCase
wire names the clients expect (``totalSpent``, ``safeToSpend``...).

All monetary values in these models are already rounded to 2 places.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from finsight.models.ledger import (
    Asset,
    BudgetStatus,
    Bucket,
    Debt,
    NetWorthSnapshot,
    TrendDirection,
)


class ResultModel(BaseModel):
    """Base for boundary results: camelCase aliases, constructible by name."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


# =============================================================================
# BUDGET
# =============================================================================

class BucketSpend(ResultModel):
    """Spend in a capped bucket (needs, wants)."""
    amount: Decimal
    percentage: Decimal
    limit: Decimal


class SavingsProgress(ResultModel):
    """Savings are a floor, so they carry a target instead of a limit."""
    amount: Decimal
    percentage: Decimal
    target: Decimal


class BudgetResult(ResultModel):
    """
    50/30/20 analysis for one month.

    Percentages are amount / income * 100 with no normalization, so they
    need not add up to 100.
    """
    month: str
    income: Decimal
    total_spent: Decimal
    needs: BucketSpend
    wants: BucketSpend
    savings: SavingsProgress
    status: BudgetStatus
    warnings: Optional[list[str]] = Field(
        default=None,
        description="Human-readable breaches, None when there are none"
    )

    @property
    def is_on_track(self) -> bool:
        return self.status == BudgetStatus.ON_TRACK


# =============================================================================
# INSIGHTS
# =============================================================================

class CategoryTotal(ResultModel):
    category: str
    amount: Decimal


class MonthlyComparison(ResultModel):
    current_month: Decimal
    previous_month: Decimal
    change_percentage: Decimal


class InsightResult(ResultModel):
    """
    Secondary metrics derived from the same month of expenses.

    remaining_cash is ephemeral: it is reported, never stored, never
    carried into another month, never counted in net worth.
    """
    month: str
    safe_to_spend: Decimal
    remaining_cash: Decimal
    top_categories: list[CategoryTotal] = Field(default_factory=list)
    daily_average: Decimal
    monthly_comparison: MonthlyComparison
    expense_streak: int = Field(ge=0)


# =============================================================================
# EMI PAYMENTS
# =============================================================================

class PaymentDebtSummary(ResultModel):
    id: UUID
    name: str
    previous_balance: Decimal
    new_balance: Decimal
    fully_paid: bool


class PaymentExpenseSummary(ResultModel):
    id: UUID
    amount: Decimal
    category: str
    bucket: Bucket
    date: datetime


class PaymentBreakdown(ResultModel):
    total_emi: Decimal = Field(alias="totalEMI")
    interest_component: Decimal
    principal_component: Decimal


class PaymentResult(ResultModel):
    """Outcome of one EMI payment."""
    debt: PaymentDebtSummary
    expense: PaymentExpenseSummary
    breakdown: PaymentBreakdown


# =============================================================================
# NET WORTH
# =============================================================================

class AssetBreakdown(ResultModel):
    cash: Decimal = Decimal("0.00")
    investment: Decimal = Decimal("0.00")
    property: Decimal = Decimal("0.00")
    other: Decimal = Decimal("0.00")


class NetWorthResult(ResultModel):
    """Live net worth. Never read from a snapshot."""
    total_assets: Decimal
    total_debts: Decimal
    net_worth: Decimal
    asset_breakdown: AssetBreakdown
    asset_count: int
    debt_count: int
    # Stored snapshot for a requested month, for display only
    snapshot: Optional[NetWorthSnapshot] = None


class NetWorthTrend(ResultModel):
    change: Decimal
    percentage_change: Decimal
    direction: TrendDirection


class NetWorthHistory(ResultModel):
    snapshots: list[NetWorthSnapshot] = Field(default_factory=list)
    trend: Optional[NetWorthTrend] = None

    @property
    def count(self) -> int:
        return len(self.snapshots)


# =============================================================================
# LISTINGS
# =============================================================================

class AssetSummary(ResultModel):
    total_assets: Decimal
    by_type: AssetBreakdown


class AssetListResult(ResultModel):
    assets: list[Asset] = Field(default_factory=list)
    summary: AssetSummary

    @property
    def count(self) -> int:
        return len(self.assets)


class DebtSummary(ResultModel):
    total_principal: Decimal
    total_remaining_balance: Decimal
    total_monthly_emi: Decimal = Field(alias="totalMonthlyEMI")
    debt_count: int


class DebtListResult(ResultModel):
    debts: list[Debt] = Field(default_factory=list)
    summary: DebtSummary

    @property
    def count(self) -> int:
        return len(self.debts)


# =============================================================================
# MONTHLY SUMMARY
# =============================================================================

class MonthlySummary(ResultModel):
    """Everything the dashboard shows for one month."""
    month: str
    budget: BudgetResult
    insights: InsightResult
    net_worth: NetWorthResult
    snapshot_saved: bool = Field(
        ...,
        description="False when the best-effort snapshot write failed"
    )
