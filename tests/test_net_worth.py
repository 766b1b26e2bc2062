"""Tests for the Net Worth Aggregator."""

import asyncio
import pytest
from decimal import Decimal

from finsight.errors import InvalidArgumentError
from finsight.models.audit import AuditEventType
from finsight.models.ledger import Asset, AssetType, Debt, NetWorthSnapshot, TrendDirection
from finsight.networth import NetWorthAggregator
from finsight.validation import ExpenseClassifier


def add_asset(storage, owner_id, value, asset_type=AssetType.CASH, name="Bank"):
    return asyncio.run(storage.add_asset(Asset(
        owner_id=owner_id,
        type=asset_type,
        name=name,
        current_value=Decimal(str(value)),
    )))


def add_debt(storage, owner_id, balance, principal=None):
    return asyncio.run(storage.add_debt(Debt(
        owner_id=owner_id,
        name="Loan",
        principal=Decimal(str(principal or balance)),
        remaining_balance=Decimal(str(balance)),
        interest_rate=Decimal("10"),
        monthly_emi=Decimal("500"),
    )))


def put_snapshot(storage, owner_id, month, net_worth):
    return asyncio.run(storage.upsert_snapshot(NetWorthSnapshot(
        owner_id=owner_id,
        month=month,
        net_worth=Decimal(str(net_worth)),
    )))


class TestCalculateNetWorth:

    def test_assets_minus_debts(self, storage, owner_id, settings):
        add_asset(storage, owner_id, 50000)
        add_debt(storage, owner_id, 20000)
        aggregator = NetWorthAggregator(storage, settings)

        result = asyncio.run(aggregator.calculate_net_worth(owner_id))

        assert result.total_assets == Decimal("50000.00")
        assert result.total_debts == Decimal("20000.00")
        assert result.net_worth == Decimal("30000.00")
        assert result.asset_count == 1
        assert result.debt_count == 1

    def test_expenses_do_not_change_net_worth(self, storage, owner_id, settings):
        add_asset(storage, owner_id, 50000)
        add_debt(storage, owner_id, 20000)
        aggregator = NetWorthAggregator(storage, settings)
        before = asyncio.run(aggregator.calculate_net_worth(owner_id))

        expense = ExpenseClassifier().classify(owner_id, 10000, "Mutual fund", "savings")
        asyncio.run(storage.add_expense(expense))
        after = asyncio.run(aggregator.calculate_net_worth(owner_id))

        assert after.net_worth == before.net_worth == Decimal("30000.00")

    def test_rounds_only_at_the_end(self, storage, owner_id, settings):
        add_asset(storage, owner_id, "0.004", name="a")
        add_asset(storage, owner_id, "0.004", name="b")
        aggregator = NetWorthAggregator(storage, settings)

        result = asyncio.run(aggregator.calculate_net_worth(owner_id))

        assert result.total_assets == Decimal("0.01")

    def test_breakdown_by_type(self, storage, owner_id, settings):
        add_asset(storage, owner_id, 1000, AssetType.CASH)
        add_asset(storage, owner_id, 2500, AssetType.INVESTMENT)
        add_asset(storage, owner_id, 500, AssetType.INVESTMENT)
        aggregator = NetWorthAggregator(storage, settings)

        result = asyncio.run(aggregator.calculate_net_worth(owner_id))

        assert result.asset_breakdown.cash == Decimal("1000.00")
        assert result.asset_breakdown.investment == Decimal("3000.00")
        assert result.asset_breakdown.property == Decimal("0.00")

    def test_can_be_negative(self, storage, owner_id, settings):
        add_debt(storage, owner_id, 1000)
        aggregator = NetWorthAggregator(storage, settings)

        result = asyncio.run(aggregator.calculate_net_worth(owner_id))

        assert result.net_worth == Decimal("-1000.00")

    def test_never_reads_snapshots(self, storage, owner_id, settings):
        add_asset(storage, owner_id, 100)
        put_snapshot(storage, owner_id, "2024-06", 999999)
        aggregator = NetWorthAggregator(storage, settings)

        result = asyncio.run(aggregator.calculate_net_worth(owner_id, month="2024-06"))

        assert result.net_worth == Decimal("100.00")
        assert result.snapshot.net_worth == Decimal("999999")

    def test_other_owners_are_ignored(self, storage, owner_id, other_owner_id, settings):
        add_asset(storage, other_owner_id, 5000)
        aggregator = NetWorthAggregator(storage, settings)

        result = asyncio.run(aggregator.calculate_net_worth(owner_id))

        assert result.net_worth == Decimal("0.00")
        assert result.asset_count == 0


class TestSaveSnapshot:

    def test_upsert_is_idempotent(self, storage, owner_id, settings):
        add_asset(storage, owner_id, 50000)
        add_debt(storage, owner_id, 20000)
        aggregator = NetWorthAggregator(storage, settings)

        first = asyncio.run(aggregator.save_snapshot(owner_id, "2024-06"))
        second = asyncio.run(aggregator.save_snapshot(owner_id, "2024-06"))

        snapshots = asyncio.run(storage.list_snapshots(owner_id))
        assert len(snapshots) == 1
        assert second == first
        assert snapshots[0] == first
        assert second.net_worth == Decimal("30000.00")

    def test_last_write_wins(self, storage, owner_id, settings):
        asset = add_asset(storage, owner_id, 1000)
        aggregator = NetWorthAggregator(storage, settings)
        asyncio.run(aggregator.save_snapshot(owner_id, "2024-06"))

        asyncio.run(storage.update_asset(asset.model_copy(update={"current_value": Decimal("1500")})))
        asyncio.run(aggregator.save_snapshot(owner_id, "2024-06"))

        stored = asyncio.run(storage.get_snapshot(owner_id, "2024-06"))
        assert stored.net_worth == Decimal("1500.00")

    @pytest.mark.parametrize("month", ["2024-00", "2024-13", "2024-6", "latest"])
    def test_rejects_invalid_month(self, storage, owner_id, settings, month):
        aggregator = NetWorthAggregator(storage, settings)

        with pytest.raises(InvalidArgumentError):
            asyncio.run(aggregator.save_snapshot(owner_id, month))

    def test_is_audited(self, storage, owner_id, settings, audit_logger, audit_storage):
        aggregator = NetWorthAggregator(storage, settings, audit_logger)

        asyncio.run(aggregator.save_snapshot(owner_id, "2024-06"))

        assert [e.event_type for e in audit_storage.events] == [AuditEventType.SNAPSHOT_SAVED]


class TestNetWorthHistory:

    def test_no_trend_with_a_single_snapshot(self, storage, owner_id, settings):
        put_snapshot(storage, owner_id, "2024-06", 1000)
        aggregator = NetWorthAggregator(storage, settings)

        history = asyncio.run(aggregator.get_net_worth_history(owner_id))

        assert history.count == 1
        assert history.trend is None

    def test_month_descending_with_trend(self, storage, owner_id, settings):
        put_snapshot(storage, owner_id, "2024-04", 800)
        put_snapshot(storage, owner_id, "2024-06", 1200)
        put_snapshot(storage, owner_id, "2024-05", 1000)
        aggregator = NetWorthAggregator(storage, settings)

        history = asyncio.run(aggregator.get_net_worth_history(owner_id))

        assert [s.month for s in history.snapshots] == ["2024-06", "2024-05", "2024-04"]
        assert history.trend.change == Decimal("200.00")
        assert history.trend.percentage_change == Decimal("20.00")
        assert history.trend.direction == TrendDirection.UP

    def test_downward_trend(self, storage, owner_id, settings):
        put_snapshot(storage, owner_id, "2024-05", 1000)
        put_snapshot(storage, owner_id, "2024-06", 750)
        aggregator = NetWorthAggregator(storage, settings)

        trend = asyncio.run(aggregator.get_net_worth_history(owner_id)).trend

        assert trend.change == Decimal("-250.00")
        assert trend.percentage_change == Decimal("-25.00")
        assert trend.direction == TrendDirection.DOWN

    def test_zero_previous_net_worth(self, storage, owner_id, settings):
        put_snapshot(storage, owner_id, "2024-05", 0)
        put_snapshot(storage, owner_id, "2024-06", 500)
        aggregator = NetWorthAggregator(storage, settings)

        trend = asyncio.run(aggregator.get_net_worth_history(owner_id)).trend

        assert trend.percentage_change == Decimal("0.00")
        assert trend.direction == TrendDirection.UP

    def test_limit(self, storage, owner_id, settings):
        for month in range(1, 13):
            put_snapshot(storage, owner_id, f"2023-{month:02d}", month)
        put_snapshot(storage, owner_id, "2024-01", 13)
        aggregator = NetWorthAggregator(storage, settings)

        default = asyncio.run(aggregator.get_net_worth_history(owner_id))
        limited = asyncio.run(aggregator.get_net_worth_history(owner_id, limit=2))

        assert default.count == 12
        assert default.snapshots[0].month == "2024-01"
        assert [s.month for s in limited.snapshots] == ["2024-01", "2023-12"]

    @pytest.mark.parametrize("limit", [0, -1, 121, "5", True])
    def test_rejects_bad_limit(self, storage, owner_id, settings, limit):
        aggregator = NetWorthAggregator(storage, settings)

        with pytest.raises(InvalidArgumentError):
            asyncio.run(aggregator.get_net_worth_history(owner_id, limit=limit))
