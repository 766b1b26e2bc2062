"""
Owner-Scoped Ledger Access

DESIGN DECISION: Ownership is checked at the data-access boundary, not in
each operation. Every flow and engine talks to the store through an
OwnerScopedLedger bound to the authenticated owner, so a cross-owner read
or write is impossible to forget:

- reading a record by id that doesn't exist   -> NotFoundError
- reading a record by id owned by someone else -> ForbiddenError
- every write is stamped with (and checked against) the bound owner
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from finsight.errors import ForbiddenError, NotFoundError
from finsight.models.ledger import (
    Asset,
    Bucket,
    Debt,
    Expense,
    NetWorthSnapshot,
    User,
)
from finsight.services.storage.interface import LedgerStorageInterface


class OwnerScopedLedger:
    """
    Capability over one owner's slice of the ledger store.

    Holding an instance is the permission; there is no way to reach another
    owner's records through it.
    """

    def __init__(self, storage: LedgerStorageInterface, owner_id: UUID):
        self._storage = storage
        self._owner_id = owner_id

    @property
    def owner_id(self) -> UUID:
        return self._owner_id

    def _check(self, record, entity_type: str, record_id: UUID):
        if record is None:
            raise NotFoundError(entity_type, record_id)
        if record.owner_id != self._owner_id:
            raise ForbiddenError(entity_type, record_id)
        return record

    def _claim(self, record, entity_type: str):
        """Writes may only carry the bound owner."""
        if record.owner_id != self._owner_id:
            raise ForbiddenError(entity_type, record.id)
        return record

    # -------------------------------------------------------------------------
    # User
    # -------------------------------------------------------------------------

    async def get_user(self) -> User:
        user = await self._storage.get_user(self._owner_id)
        if user is None:
            raise NotFoundError("user", self._owner_id)
        return user

    async def save_user(self, user: User) -> User:
        if user.id != self._owner_id:
            raise ForbiddenError("user", user.id)
        return await self._storage.save_user(user)

    # -------------------------------------------------------------------------
    # Expenses
    # -------------------------------------------------------------------------

    async def get_expense(self, expense_id: UUID) -> Expense:
        record = await self._storage.get_expense(expense_id)
        return self._check(record, "expense", expense_id)

    async def add_expense(self, expense: Expense) -> Expense:
        return await self._storage.add_expense(self._claim(expense, "expense"))

    async def update_expense(self, expense: Expense) -> Expense:
        await self.get_expense(expense.id)
        return await self._storage.update_expense(self._claim(expense, "expense"))

    async def delete_expense(self, expense_id: UUID) -> None:
        await self.get_expense(expense_id)
        await self._storage.delete_expense(expense_id)

    async def expenses(
        self,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
        bucket: Optional[Bucket] = None,
        category: Optional[str] = None,
    ) -> list[Expense]:
        return await self._storage.list_expenses(
            owner_id=self._owner_id,
            date_from=date_from,
            date_to=date_to,
            bucket=bucket,
            category=category,
        )

    # -------------------------------------------------------------------------
    # Assets
    # -------------------------------------------------------------------------

    async def get_asset(self, asset_id: UUID) -> Asset:
        record = await self._storage.get_asset(asset_id)
        return self._check(record, "asset", asset_id)

    async def add_asset(self, asset: Asset) -> Asset:
        return await self._storage.add_asset(self._claim(asset, "asset"))

    async def update_asset(self, asset: Asset) -> Asset:
        await self.get_asset(asset.id)
        return await self._storage.update_asset(self._claim(asset, "asset"))

    async def delete_asset(self, asset_id: UUID) -> None:
        await self.get_asset(asset_id)
        await self._storage.delete_asset(asset_id)

    async def assets(self) -> list[Asset]:
        return await self._storage.list_assets(self._owner_id)

    # -------------------------------------------------------------------------
    # Debts
    # -------------------------------------------------------------------------

    async def get_debt(self, debt_id: UUID) -> Debt:
        record = await self._storage.get_debt(debt_id)
        return self._check(record, "debt", debt_id)

    async def add_debt(self, debt: Debt) -> Debt:
        return await self._storage.add_debt(self._claim(debt, "debt"))

    async def update_debt(self, debt: Debt) -> Debt:
        await self.get_debt(debt.id)
        return await self._storage.update_debt(self._claim(debt, "debt"))

    async def delete_debt(self, debt_id: UUID) -> None:
        await self.get_debt(debt_id)
        await self._storage.delete_debt(debt_id)

    async def debts(self) -> list[Debt]:
        return await self._storage.list_debts(self._owner_id)

    async def apply_emi_payment(
        self,
        expense: Expense,
        debt: Debt,
        expected_balance: Decimal,
    ) -> tuple[Expense, Debt]:
        self._claim(expense, "expense")
        self._claim(debt, "debt")
        return await self._storage.apply_emi_payment(expense, debt, expected_balance)

    # -------------------------------------------------------------------------
    # Snapshots
    # -------------------------------------------------------------------------

    async def upsert_snapshot(self, snapshot: NetWorthSnapshot) -> NetWorthSnapshot:
        return await self._storage.upsert_snapshot(self._claim(snapshot, "snapshot"))

    async def get_snapshot(self, month: str) -> Optional[NetWorthSnapshot]:
        return await self._storage.get_snapshot(self._owner_id, month)

    async def snapshots(self, limit: int = 12) -> list[NetWorthSnapshot]:
        return await self._storage.list_snapshots(self._owner_id, limit=limit)
