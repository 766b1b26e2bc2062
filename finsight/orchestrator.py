"""
Main Orchestrator for FinSight

This module ties together all the components and defines the
end-to-end flows for:
1. Ledger management (income, expenses, assets, debts, EMI payments)
2. Summaries (budget, insights, net worth, history, monthly summary)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Every call is scoped to one authenticated owner
- Derived figures are always recomputed from the ledger, never from a cache
- Every mutation is audited
- The monthly snapshot is best-effort and never fails a summary

Callers (an HTTP layer, a CLI, tests) map the typed errors from
finsight.errors onto their own responses; nothing here formats output.
"""

import asyncio
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Optional
from uuid import UUID

import structlog

from finsight.audit import AuditLogger, create_correlation_id
from finsight.budget import BudgetCalculator, InsightCalculator
from finsight.config import AppSettings, get_settings
from finsight.debts import DebtAmortizationEngine
from finsight.errors import InvalidArgumentError, PreconditionFailedError
from finsight.models.audit import AuditEventType
from finsight.models.ledger import Asset, Bucket, Debt, Expense, NetWorthSnapshot, User
from finsight.models.results import (
    AssetListResult,
    AssetSummary,
    BudgetResult,
    DebtListResult,
    DebtSummary,
    InsightResult,
    MonthlySummary,
    NetWorthHistory,
    NetWorthResult,
    PaymentResult,
)
from finsight.networth import NetWorthAggregator
from finsight.networth.aggregator import asset_breakdown
from finsight.periods import month_range, parse_month, round2, utcnow
from finsight.services.storage import (
    InMemoryAuditStorage,
    InMemoryLedgerStorage,
    LedgerStorageInterface,
    OwnerScopedLedger,
)
from finsight.validation import ExpenseClassifier, RecordValidator


logger = structlog.get_logger(__name__)


class LedgerFlow:
    """
    Orchestrates user-managed ledger changes.

    Expenses go through the Expense Classifier, assets and debts through
    the record validator. EMI payments are delegated to the Debt
    Amortization Engine, which is the only place that writes an expense
    and a debt together.
    """

    def __init__(
        self,
        storage: LedgerStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
        classifier: Optional[ExpenseClassifier] = None,
        record_validator: Optional[RecordValidator] = None,
        amortization: Optional[DebtAmortizationEngine] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._storage = storage
        self._audit_logger = audit_logger
        self._classifier = classifier or ExpenseClassifier()
        self._records = record_validator or RecordValidator()
        self._amortization = amortization or DebtAmortizationEngine(
            storage,
            classifier=self._classifier,
            audit_logger=audit_logger,
            clock=clock,
        )
        self._clock = clock

    def _ledger(self, owner_id: UUID) -> OwnerScopedLedger:
        return OwnerScopedLedger(self._storage, owner_id)

    async def _audit_change(
        self,
        event_type: AuditEventType,
        owner_id: UUID,
        entity_type: str,
        entity_id: UUID,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        if self._audit_logger:
            await self._audit_logger.log_record_changed(
                event_type=event_type,
                owner_id=owner_id,
                entity_type=entity_type,
                entity_id=entity_id,
                details=details,
                correlation_id=correlation_id,
            )

    # -------------------------------------------------------------------------
    # User
    # -------------------------------------------------------------------------

    async def get_profile(self, owner_id: UUID) -> User:
        return await self._ledger(owner_id).get_user()

    async def update_income(
        self,
        owner_id: UUID,
        monthly_income: Any,
        correlation_id: Optional[UUID] = None,
    ) -> User:
        """
        Set the user's monthly income.

        Raises:
            ValidationError: Missing or negative income
            NotFoundError: Unknown user
        """
        income = self._records.validate_income(monthly_income)
        ledger = self._ledger(owner_id)
        user = await ledger.get_user()
        user = await ledger.save_user(user.model_copy(update={"monthly_income": income}))

        if self._audit_logger:
            await self._audit_logger.log_income_updated(
                owner_id=owner_id,
                monthly_income=income,
                correlation_id=correlation_id,
            )
        return user

    # -------------------------------------------------------------------------
    # Expenses
    # -------------------------------------------------------------------------

    async def add_expense(
        self,
        owner_id: UUID,
        amount: Any,
        category: Any,
        bucket: Any,
        note: Any = None,
        date: Any = None,
        correlation_id: Optional[UUID] = None,
    ) -> Expense:
        """
        Record an expense.

        Raises:
            ValidationError: Amount, category, bucket or date invalid
        """
        expense = self._classifier.classify(
            owner_id=owner_id,
            amount=amount,
            category=category,
            bucket=bucket,
            note=note,
            date=date,
            now=self._clock(),
        )
        expense = await self._ledger(owner_id).add_expense(expense)
        await self._audit_change(
            AuditEventType.EXPENSE_CREATED, owner_id, "expense", expense.id,
            {"amount": str(expense.amount), "bucket": expense.bucket.value},
            correlation_id,
        )
        return expense

    async def update_expense(
        self,
        owner_id: UUID,
        expense_id: UUID,
        changes: dict[str, Any],
        correlation_id: Optional[UUID] = None,
    ) -> Expense:
        ledger = self._ledger(owner_id)
        current = await ledger.get_expense(expense_id)
        updated = await ledger.update_expense(
            self._classifier.apply_update(current, changes)
        )
        await self._audit_change(
            AuditEventType.EXPENSE_UPDATED, owner_id, "expense", expense_id,
            {"fields": sorted(changes)}, correlation_id,
        )
        return updated

    async def delete_expense(
        self,
        owner_id: UUID,
        expense_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self._ledger(owner_id).delete_expense(expense_id)
        await self._audit_change(
            AuditEventType.EXPENSE_DELETED, owner_id, "expense", expense_id,
            correlation_id=correlation_id,
        )

    async def list_expenses(
        self,
        owner_id: UUID,
        month: Optional[str] = None,
        bucket: Optional[str] = None,
        category: Optional[str] = None,
    ) -> list[Expense]:
        """
        Owner's expenses, newest first.

        Raises:
            InvalidArgumentError: Malformed month or unknown bucket
        """
        date_from = date_to = None
        if month is not None:
            date_from, date_to = month_range(month)

        bucket_filter = None
        if bucket:
            try:
                bucket_filter = Bucket(bucket.strip().lower())
            except ValueError:
                raise InvalidArgumentError(
                    "bucket",
                    f"Bucket must be one of: {', '.join(b.value for b in Bucket)}",
                )

        return await self._ledger(owner_id).expenses(
            date_from=date_from,
            date_to=date_to,
            bucket=bucket_filter,
            category=category.strip() if category and category.strip() else None,
        )

    # -------------------------------------------------------------------------
    # Assets
    # -------------------------------------------------------------------------

    async def add_asset(
        self,
        owner_id: UUID,
        data: dict[str, Any],
        correlation_id: Optional[UUID] = None,
    ) -> Asset:
        asset = await self._ledger(owner_id).add_asset(
            self._records.build_asset(owner_id, data)
        )
        await self._audit_change(
            AuditEventType.ASSET_CREATED, owner_id, "asset", asset.id,
            {"type": asset.type.value, "current_value": str(asset.current_value)},
            correlation_id,
        )
        return asset

    async def update_asset(
        self,
        owner_id: UUID,
        asset_id: UUID,
        changes: dict[str, Any],
        correlation_id: Optional[UUID] = None,
    ) -> Asset:
        ledger = self._ledger(owner_id)
        current = await ledger.get_asset(asset_id)
        updated = await ledger.update_asset(
            self._records.apply_asset_update(current, changes)
        )
        await self._audit_change(
            AuditEventType.ASSET_UPDATED, owner_id, "asset", asset_id,
            {"fields": sorted(changes)}, correlation_id,
        )
        return updated

    async def delete_asset(
        self,
        owner_id: UUID,
        asset_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self._ledger(owner_id).delete_asset(asset_id)
        await self._audit_change(
            AuditEventType.ASSET_DELETED, owner_id, "asset", asset_id,
            correlation_id=correlation_id,
        )

    async def list_assets(self, owner_id: UUID) -> AssetListResult:
        assets = await self._ledger(owner_id).assets()
        total = sum((a.current_value for a in assets), Decimal("0"))
        return AssetListResult(
            assets=assets,
            summary=AssetSummary(
                total_assets=round2(total),
                by_type=asset_breakdown(assets),
            ),
        )

    # -------------------------------------------------------------------------
    # Debts
    # -------------------------------------------------------------------------

    async def add_debt(
        self,
        owner_id: UUID,
        data: dict[str, Any],
        correlation_id: Optional[UUID] = None,
    ) -> Debt:
        """
        Raises:
            ValidationError: Missing fields or remaining balance above principal
        """
        debt = await self._ledger(owner_id).add_debt(
            self._records.build_debt(owner_id, data)
        )
        await self._audit_change(
            AuditEventType.DEBT_CREATED, owner_id, "debt", debt.id,
            {"principal": str(debt.principal), "remaining_balance": str(debt.remaining_balance)},
            correlation_id,
        )
        return debt

    async def update_debt(
        self,
        owner_id: UUID,
        debt_id: UUID,
        changes: dict[str, Any],
        correlation_id: Optional[UUID] = None,
    ) -> Debt:
        ledger = self._ledger(owner_id)
        current = await ledger.get_debt(debt_id)
        updated = await ledger.update_debt(
            self._records.apply_debt_update(current, changes)
        )
        await self._audit_change(
            AuditEventType.DEBT_UPDATED, owner_id, "debt", debt_id,
            {"fields": sorted(changes)}, correlation_id,
        )
        return updated

    async def delete_debt(
        self,
        owner_id: UUID,
        debt_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self._ledger(owner_id).delete_debt(debt_id)
        await self._audit_change(
            AuditEventType.DEBT_DELETED, owner_id, "debt", debt_id,
            correlation_id=correlation_id,
        )

    async def list_debts(self, owner_id: UUID) -> DebtListResult:
        debts = await self._ledger(owner_id).debts()
        zero = Decimal("0")
        return DebtListResult(
            debts=debts,
            summary=DebtSummary(
                total_principal=round2(sum((d.principal for d in debts), zero)),
                total_remaining_balance=round2(sum((d.remaining_balance for d in debts), zero)),
                total_monthly_emi=round2(sum((d.monthly_emi for d in debts), zero)),
                debt_count=len(debts),
            ),
        )

    async def pay_emi(
        self,
        owner_id: UUID,
        debt_id: UUID,
        month: Optional[str] = None,
        note: Optional[str] = None,
        payment_date: Optional[datetime] = None,
        correlation_id: Optional[UUID] = None,
    ) -> PaymentResult:
        """Pay one EMI; see DebtAmortizationEngine.pay_emi."""
        return await self._amortization.pay_emi(
            debt_id=debt_id,
            owner_id=owner_id,
            month=month,
            note=note,
            payment_date=payment_date,
            correlation_id=correlation_id or create_correlation_id(),
        )


class SummaryFlow:
    """
    Orchestrates the derived, read-mostly views.

    Budget and insight summaries need a monthly income; they refuse with
    PreconditionFailedError until one is set. Net worth doesn't.
    """

    def __init__(
        self,
        storage: LedgerStorageInterface,
        settings: Optional[AppSettings] = None,
        audit_logger: Optional[AuditLogger] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        settings = settings or get_settings().app
        self._storage = storage
        self._audit_logger = audit_logger
        self._budget = BudgetCalculator(storage, settings)
        self._insights = InsightCalculator(storage, settings, clock=clock)
        self._net_worth = NetWorthAggregator(storage, settings, audit_logger)

    async def _monthly_income(self, owner_id: UUID) -> Decimal:
        user = await OwnerScopedLedger(self._storage, owner_id).get_user()
        if not user.has_income:
            raise PreconditionFailedError("Please set your monthly income first")
        return user.monthly_income

    async def get_budget_summary(self, owner_id: UUID, month: str) -> BudgetResult:
        """
        Raises:
            InvalidArgumentError: Malformed month
            PreconditionFailedError: Monthly income not set
        """
        parse_month(month)
        income = await self._monthly_income(owner_id)
        return await self._budget.calculate(owner_id, income, month)

    async def get_insights(self, owner_id: UUID, month: str) -> InsightResult:
        parse_month(month)
        income = await self._monthly_income(owner_id)
        return await self._insights.calculate(owner_id, income, month)

    async def get_net_worth(
        self,
        owner_id: UUID,
        month: Optional[str] = None,
    ) -> NetWorthResult:
        return await self._net_worth.calculate_net_worth(owner_id, month)

    async def get_net_worth_history(
        self,
        owner_id: UUID,
        limit: Optional[int] = None,
    ) -> NetWorthHistory:
        return await self._net_worth.get_net_worth_history(owner_id, limit)

    async def save_snapshot(
        self,
        owner_id: UUID,
        month: str,
        correlation_id: Optional[UUID] = None,
    ) -> NetWorthSnapshot:
        return await self._net_worth.save_snapshot(owner_id, month, correlation_id)

    async def get_monthly_summary(
        self,
        owner_id: UUID,
        month: str,
        correlation_id: Optional[UUID] = None,
    ) -> MonthlySummary:
        """
        Budget, insights and live net worth for one month.

        The three computations are independent reads and run concurrently.
        The snapshot write afterwards is best-effort: a failure is audited
        and reported as snapshot_saved=False, never raised.

        Raises:
            InvalidArgumentError: Malformed month
            PreconditionFailedError: Monthly income not set
        """
        correlation_id = correlation_id or create_correlation_id()
        parse_month(month)
        income = await self._monthly_income(owner_id)

        budget, insights, net_worth = await asyncio.gather(
            self._budget.calculate(owner_id, income, month),
            self._insights.calculate(owner_id, income, month),
            self._net_worth.calculate_net_worth(owner_id),
        )

        snapshot_saved = True
        try:
            await self._net_worth.save_snapshot(owner_id, month, correlation_id)
        except Exception as e:
            snapshot_saved = False
            if self._audit_logger:
                await self._audit_logger.log_snapshot_failed(
                    owner_id=owner_id,
                    month=month,
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            else:
                logger.warning("snapshot_failed", month=month, error=str(e))

        if self._audit_logger:
            await self._audit_logger.log_summary_generated(
                owner_id=owner_id,
                month=month,
                status=budget.status.value,
                correlation_id=correlation_id,
            )

        return MonthlySummary(
            month=month,
            budget=budget,
            insights=insights,
            net_worth=net_worth,
            snapshot_saved=snapshot_saved,
        )


def create_app_components(
    use_storage: bool = True,
) -> tuple[LedgerFlow, SummaryFlow, LedgerStorageInterface]:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to use the configured storage backend.
                    Set to False to force in-memory storage (tests, demos).

    Returns:
        (ledger_flow, summary_flow, ledger_storage)
    """
    settings = get_settings().app
    ledger_storage = None
    audit_logger = None

    if use_storage and settings.storage_backend == "google_sheets":
        try:
            from finsight.services.storage.google_sheets import (
                GoogleSheetsAuditStorage,
                GoogleSheetsClient,
                GoogleSheetsLedgerStorage,
            )

            sheets_client = GoogleSheetsClient()
            sheets_client.get_spreadsheet()
            ledger_storage = GoogleSheetsLedgerStorage(sheets_client)
            audit_logger = AuditLogger(GoogleSheetsAuditStorage(sheets_client))
        except Exception as e:
            # Storage not configured - continue in memory
            logger.warning("storage_not_configured", error=str(e))
            ledger_storage = None
            audit_logger = None

    if ledger_storage is None:
        ledger_storage = InMemoryLedgerStorage()
        audit_logger = AuditLogger(InMemoryAuditStorage())

    ledger_flow = LedgerFlow(ledger_storage, audit_logger=audit_logger)
    summary_flow = SummaryFlow(ledger_storage, settings=settings, audit_logger=audit_logger)

    return ledger_flow, summary_flow, ledger_storage
