"""
Ledger Record Models

These are the raw records a user manages: expenses, assets, debts, plus the
derived net worth snapshot cache. Everything the engine reports is computed
from these.

DESIGN DECISION: Money is Decimal everywhere. Repeated aggregation over
floats drifts; Decimal sums are exact and rounding happens only at the
output boundary.

CRITICAL: There is deliberately no model for "remaining cash". It is a pure
month-scoped computation and must never be persisted or turned into an
Asset.
"""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    model_validator,
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class Bucket(str, Enum):
    """
    The 50/30/20 budget buckets.

    Every expense lands in exactly one bucket.
    """
    NEEDS = "needs"
    WANTS = "wants"
    SAVINGS = "savings"


class AssetType(str, Enum):
    """Kinds of asset a user can record."""
    CASH = "cash"
    INVESTMENT = "investment"
    PROPERTY = "property"
    OTHER = "other"


class DebtStatus(str, Enum):
    """
    Debt lifecycle.

    PAID_OFF is terminal for EMI payments.
    """
    ACTIVE = "active"
    PAID_OFF = "paid_off"


class BudgetStatus(str, Enum):
    """Overall verdict of a month against the 50/30/20 rule."""
    ON_TRACK = "on_track"
    WARNING = "warning"
    OFF_TRACK = "off_track"


class TrendDirection(str, Enum):
    UP = "up"
    DOWN = "down"


# =============================================================================
# VALIDATION ISSUES
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_value', 'invalid_format')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        default="error",
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )


# =============================================================================
# LEDGER RECORDS
# =============================================================================

class User(BaseModel):
    """
    Account holder.

    monthly_income is the sole driver of the budget percentage targets.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    name: str = Field(..., min_length=1, max_length=200)
    email: str = Field(..., min_length=3, max_length=320)
    monthly_income: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        description="Monthly take-home income"
    )
    created_at: datetime = Field(default_factory=_utcnow)

    @property
    def has_income(self) -> bool:
        return self.monthly_income > 0


class Expense(BaseModel):
    """
    A single spend recorded against a bucket.

    Created by the user, or internally by the EMI engine
    (category "EMI", bucket needs).
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    owner_id: UUID
    amount: Decimal = Field(
        ...,
        gt=0,
        description="Amount spent, always positive"
    )
    category: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Free-text category"
    )
    bucket: Bucket
    note: Optional[str] = Field(default=None, max_length=1000)
    date: datetime = Field(
        default_factory=_utcnow,
        description="When the money was spent (naive UTC)"
    )
    created_at: datetime = Field(default_factory=_utcnow)


class Asset(BaseModel):
    """
    Something the user owns.

    CRITICAL: Assets are strictly user-managed. No derived calculation may
    create, modify or delete one.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    owner_id: UUID
    type: AssetType
    name: str = Field(..., min_length=1, max_length=200)
    current_value: Decimal = Field(default=Decimal("0"), ge=0)
    description: Optional[str] = Field(default=None, max_length=1000)
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)


class Debt(BaseModel):
    """
    A loan repaid by fixed monthly instalments.

    Invariant: 0 <= remaining_balance <= principal.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    owner_id: UUID
    name: str = Field(..., min_length=1, max_length=200)
    principal: Decimal = Field(..., ge=0)
    remaining_balance: Decimal = Field(..., ge=0)
    interest_rate: Decimal = Field(
        ...,
        ge=0,
        le=100,
        description="Annual interest rate in percent"
    )
    monthly_emi: Decimal = Field(..., ge=0)
    description: Optional[str] = Field(default=None, max_length=1000)
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    @model_validator(mode='after')
    def validate_balance(self) -> 'Debt':
        if self.remaining_balance > self.principal:
            raise ValueError("Remaining balance cannot exceed principal amount")
        return self

    @property
    def status(self) -> DebtStatus:
        # Exact zero only; see DebtAmortizationEngine.pay_emi
        if self.remaining_balance == 0:
            return DebtStatus.PAID_OFF
        return DebtStatus.ACTIVE


class NetWorthSnapshot(BaseModel):
    """
    Point-in-time copy of the net worth figures for one owner and month.

    Write-only cache. Live net worth is always recomputed from current
    assets and debts; a snapshot is never read back as a source of truth.
    """

    id: UUID = Field(default_factory=uuid4)
    owner_id: UUID
    month: str = Field(..., pattern=r"^\d{4}-(0[1-9]|1[0-2])$")
    total_assets: Decimal = Field(default=Decimal("0"))
    total_debts: Decimal = Field(default=Decimal("0"))
    net_worth: Decimal = Field(default=Decimal("0"))
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    @property
    def key(self) -> tuple[UUID, str]:
        return self.owner_id, self.month

    @property
    def figures(self) -> tuple[Decimal, Decimal, Decimal]:
        return self.total_assets, self.total_debts, self.net_worth

    def replacing(self, existing: "NetWorthSnapshot") -> "NetWorthSnapshot":
        """
        This snapshot as the new version of ``existing``.

        Keeps the existing id and created_at. updated_at only moves when the
        figures change, so re-saving unchanged figures yields an identical record.
        """
        update = {"id": existing.id, "created_at": existing.created_at}
        if self.figures == existing.figures:
            update["updated_at"] = existing.updated_at
        return self.model_copy(update=update)
