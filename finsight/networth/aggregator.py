"""
Net Worth Aggregator

    total_assets = sum(asset.current_value)
    total_debts  = sum(debt.remaining_balance)
    net_worth    = total_assets - total_debts

Always recomputed from the current asset and debt records. Snapshots are a
write-only cache for the history view: nothing here ever reads one back to
produce the live figure.

Expenses play no part in net worth. Recording a "savings" expense or paying
an EMI does not touch assets; only the debt balance moves.
"""

from decimal import Decimal
from typing import Optional
from uuid import UUID

from finsight.audit import AuditLogger
from finsight.config import AppSettings, get_settings
from finsight.errors import InvalidArgumentError
from finsight.models.ledger import (
    Asset,
    AssetType,
    Debt,
    NetWorthSnapshot,
    TrendDirection,
)
from finsight.models.results import (
    AssetBreakdown,
    NetWorthHistory,
    NetWorthResult,
    NetWorthTrend,
)
from finsight.periods import parse_month, round2
from finsight.services.storage import LedgerStorageInterface, OwnerScopedLedger


MAX_HISTORY_LIMIT = 120


def asset_breakdown(assets: list[Asset]) -> AssetBreakdown:
    """Per-type totals, rounded. Types without assets report 0.00."""
    totals = {asset_type: Decimal("0") for asset_type in AssetType}
    for asset in assets:
        totals[asset.type] += asset.current_value
    return AssetBreakdown(**{t.value: round2(v) for t, v in totals.items()})


def compute_totals(assets: list[Asset], debts: list[Debt]) -> tuple[Decimal, Decimal, Decimal]:
    """(total_assets, total_debts, net_worth) at full precision."""
    total_assets = sum((a.current_value for a in assets), Decimal("0"))
    total_debts = sum((d.remaining_balance for d in debts), Decimal("0"))
    return total_assets, total_debts, total_assets - total_debts


def trend_between(latest: NetWorthSnapshot, older: NetWorthSnapshot) -> NetWorthTrend:
    """
    Compare the two most recent snapshots.

    percentage_change is 0 when the older net worth is 0. The older value is
    taken by magnitude so a debt shrinking from -100 to -50 reads as +50%.
    """
    change = latest.net_worth - older.net_worth
    if older.net_worth == 0:
        percentage = Decimal("0")
    else:
        percentage = change / abs(older.net_worth) * Decimal("100")
    return NetWorthTrend(
        change=round2(change),
        percentage_change=round2(percentage),
        direction=TrendDirection.UP if change >= 0 else TrendDirection.DOWN,
    )


class NetWorthAggregator:
    """Live net worth, monthly snapshots, and snapshot history."""

    def __init__(
        self,
        storage: LedgerStorageInterface,
        settings: Optional[AppSettings] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._storage = storage
        self._settings = settings or get_settings().app
        self._audit_logger = audit_logger

    async def calculate_net_worth(
        self,
        owner_id: UUID,
        month: Optional[str] = None,
    ) -> NetWorthResult:
        """
        Live net worth for an owner.

        Args:
            owner_id: Owner to aggregate
            month: When given, the stored snapshot for that month is
                   attached for display. It never affects the totals.

        Raises:
            InvalidArgumentError: If month is given and malformed
        """
        if month is not None:
            parse_month(month)

        ledger = OwnerScopedLedger(self._storage, owner_id)
        assets = await ledger.assets()
        debts = await ledger.debts()
        total_assets, total_debts, net_worth = compute_totals(assets, debts)

        snapshot = await ledger.get_snapshot(month) if month is not None else None

        return NetWorthResult(
            total_assets=round2(total_assets),
            total_debts=round2(total_debts),
            net_worth=round2(net_worth),
            asset_breakdown=asset_breakdown(assets),
            asset_count=len(assets),
            debt_count=len(debts),
            snapshot=snapshot,
        )

    async def save_snapshot(
        self,
        owner_id: UUID,
        month: str,
        correlation_id: Optional[UUID] = None,
    ) -> NetWorthSnapshot:
        """
        Recompute and upsert the (owner, month) snapshot.

        Idempotent: with unchanged assets and debts, repeated calls leave a
        single identical record.

        Raises:
            InvalidArgumentError: If month is not a valid YYYY-MM (01-12)
        """
        parse_month(month, strict=True)

        ledger = OwnerScopedLedger(self._storage, owner_id)
        assets = await ledger.assets()
        debts = await ledger.debts()
        total_assets, total_debts, net_worth = compute_totals(assets, debts)

        snapshot = await ledger.upsert_snapshot(NetWorthSnapshot(
            owner_id=owner_id,
            month=month,
            total_assets=round2(total_assets),
            total_debts=round2(total_debts),
            net_worth=round2(net_worth),
        ))

        if self._audit_logger:
            await self._audit_logger.log_snapshot_saved(
                owner_id=owner_id,
                snapshot_id=snapshot.id,
                month=month,
                net_worth=snapshot.net_worth,
                correlation_id=correlation_id,
            )

        return snapshot

    async def get_net_worth_history(
        self,
        owner_id: UUID,
        limit: Optional[int] = None,
    ) -> NetWorthHistory:
        """
        Up to ``limit`` most recent snapshots, month descending.

        The trend block is only present with at least two snapshots.

        Raises:
            InvalidArgumentError: If limit is not an int in 1..120
        """
        if limit is None:
            limit = self._settings.default_history_limit
        if isinstance(limit, bool) or not isinstance(limit, int) or not 1 <= limit <= MAX_HISTORY_LIMIT:
            raise InvalidArgumentError(
                "limit", f"Limit must be an integer between 1 and {MAX_HISTORY_LIMIT}"
            )

        ledger = OwnerScopedLedger(self._storage, owner_id)
        snapshots = await ledger.snapshots(limit=limit)

        trend = None
        if len(snapshots) >= 2:
            trend = trend_between(snapshots[0], snapshots[1])

        return NetWorthHistory(snapshots=snapshots, trend=trend)
