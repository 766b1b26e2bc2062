"""Tests for the in-memory ledger store and the owner-scoped wrapper."""

import asyncio
import pytest
from datetime import datetime
from decimal import Decimal
from uuid import uuid4

from finsight.errors import ForbiddenError, NotFoundError
from finsight.models.ledger import Bucket, Debt, Expense, NetWorthSnapshot, User
from finsight.services.storage import (
    ConcurrentModificationError,
    DuplicateError,
    InMemoryLedgerStorage,
    OwnerScopedLedger,
)


def expense(owner_id, amount=100, category="Food", bucket=Bucket.WANTS, day=datetime(2024, 6, 10)):
    return Expense(
        owner_id=owner_id,
        amount=Decimal(str(amount)),
        category=category,
        bucket=bucket,
        date=day,
    )


def debt(owner_id, balance="1000"):
    return Debt(
        owner_id=owner_id,
        name="Loan",
        principal=Decimal("1000"),
        remaining_balance=Decimal(balance),
        interest_rate=Decimal("12"),
        monthly_emi=Decimal("100"),
    )


class TestInMemoryLedgerStorage:

    def test_records_are_copied_in_and_out(self, storage, owner_id):
        record = expense(owner_id)
        asyncio.run(storage.add_expense(record))

        record.note = "changed after save"
        fetched = asyncio.run(storage.get_expense(record.id))
        fetched.category = "changed after read"

        stored = asyncio.run(storage.get_expense(record.id))
        assert stored.note is None
        assert stored.category == "Food"

    def test_duplicate_insert(self, storage, owner_id):
        record = expense(owner_id)
        asyncio.run(storage.add_expense(record))

        with pytest.raises(DuplicateError):
            asyncio.run(storage.add_expense(record))

    def test_update_missing_record(self, storage, owner_id):
        with pytest.raises(NotFoundError):
            asyncio.run(storage.update_expense(expense(owner_id)))

    def test_list_expenses_filters(self, storage, owner_id):
        asyncio.run(storage.add_expense(expense(owner_id, category="Groceries", bucket=Bucket.NEEDS)))
        asyncio.run(storage.add_expense(expense(owner_id, category="Dining out", day=datetime(2024, 6, 20))))
        asyncio.run(storage.add_expense(expense(owner_id, category="Dining in", day=datetime(2024, 7, 1))))

        june = asyncio.run(storage.list_expenses(
            owner_id, date_from=datetime(2024, 6, 1), date_to=datetime(2024, 7, 1)
        ))
        dining = asyncio.run(storage.list_expenses(owner_id, category="DINING"))
        needs = asyncio.run(storage.list_expenses(owner_id, bucket=Bucket.NEEDS))

        assert [e.category for e in june] == ["Dining out", "Groceries"]
        assert {e.category for e in dining} == {"Dining out", "Dining in"}
        assert [e.category for e in needs] == ["Groceries"]

    def test_emi_payment_writes_both_records(self, storage, owner_id):
        original = asyncio.run(storage.add_debt(debt(owner_id)))
        payment = expense(owner_id, amount=100, category="EMI", bucket=Bucket.NEEDS)
        updated = original.model_copy(update={"remaining_balance": Decimal("910")})

        asyncio.run(storage.apply_emi_payment(payment, updated, Decimal("1000")))

        assert asyncio.run(storage.get_expense(payment.id)) is not None
        assert asyncio.run(storage.get_debt(original.id)).remaining_balance == Decimal("910")

    def test_emi_payment_with_stale_balance_writes_nothing(self, storage, owner_id):
        original = asyncio.run(storage.add_debt(debt(owner_id, balance="900")))
        payment = expense(owner_id, amount=100, category="EMI", bucket=Bucket.NEEDS)
        updated = original.model_copy(update={"remaining_balance": Decimal("810")})

        with pytest.raises(ConcurrentModificationError):
            asyncio.run(storage.apply_emi_payment(payment, updated, Decimal("1000")))

        assert asyncio.run(storage.get_expense(payment.id)) is None
        assert asyncio.run(storage.get_debt(original.id)).remaining_balance == Decimal("900")

    def test_snapshot_upsert_keeps_identity(self, storage, owner_id):
        first = asyncio.run(storage.upsert_snapshot(
            NetWorthSnapshot(owner_id=owner_id, month="2024-06", net_worth=Decimal("1"))
        ))
        second = asyncio.run(storage.upsert_snapshot(
            NetWorthSnapshot(owner_id=owner_id, month="2024-06", net_worth=Decimal("2"))
        ))

        assert second.id == first.id
        assert second.created_at == first.created_at
        assert asyncio.run(storage.get_snapshot(owner_id, "2024-06")).net_worth == Decimal("2")
        assert len(asyncio.run(storage.list_snapshots(owner_id))) == 1

    def test_snapshots_are_per_owner(self, storage, owner_id, other_owner_id):
        asyncio.run(storage.upsert_snapshot(NetWorthSnapshot(owner_id=owner_id, month="2024-06")))
        asyncio.run(storage.upsert_snapshot(NetWorthSnapshot(owner_id=other_owner_id, month="2024-06")))

        assert len(asyncio.run(storage.list_snapshots(owner_id))) == 1


class TestOwnerScopedLedger:
    """Ownership is enforced at the data-access boundary."""

    def test_missing_record_is_not_found(self, storage, owner_id):
        ledger = OwnerScopedLedger(storage, owner_id)

        with pytest.raises(NotFoundError, match="Expense not found"):
            asyncio.run(ledger.get_expense(uuid4()))

    def test_foreign_record_is_forbidden(self, storage, owner_id, other_owner_id):
        record = asyncio.run(storage.add_debt(debt(other_owner_id)))
        ledger = OwnerScopedLedger(storage, owner_id)

        with pytest.raises(ForbiddenError, match="Not authorized to access this debt"):
            asyncio.run(ledger.get_debt(record.id))

    def test_cannot_delete_foreign_record(self, storage, owner_id, other_owner_id):
        record = asyncio.run(storage.add_expense(expense(other_owner_id)))
        ledger = OwnerScopedLedger(storage, owner_id)

        with pytest.raises(ForbiddenError):
            asyncio.run(ledger.delete_expense(record.id))

        assert asyncio.run(storage.get_expense(record.id)) is not None

    def test_cannot_write_records_for_someone_else(self, storage, owner_id, other_owner_id):
        ledger = OwnerScopedLedger(storage, owner_id)

        with pytest.raises(ForbiddenError):
            asyncio.run(ledger.add_expense(expense(other_owner_id)))

    def test_cannot_save_another_user(self, storage, owner_id):
        ledger = OwnerScopedLedger(storage, owner_id)

        with pytest.raises(ForbiddenError):
            asyncio.run(ledger.save_user(User(name="Someone", email="x@example.com")))

    def test_listings_only_show_own_records(self, storage, owner_id, other_owner_id):
        asyncio.run(storage.add_expense(expense(owner_id)))
        asyncio.run(storage.add_expense(expense(other_owner_id)))
        ledger = OwnerScopedLedger(storage, owner_id)

        assert len(asyncio.run(ledger.expenses())) == 1
