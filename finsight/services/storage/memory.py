"""
In-Memory Storage Implementation

Dict-backed ledger store. Used for tests, local development and as the
default backend when Google Sheets isn't configured.

Records are copied on the way in and on the way out so callers can never
mutate stored state by holding a reference.

A single asyncio.Lock serialises writes, which gives us the per-record
atomic upsert and the compare-and-swap EMI write the interface requires.
"""

import asyncio
from datetime import datetime
from decimal import Decimal
from typing import Optional, TypeVar
from uuid import UUID

from pydantic import BaseModel

from finsight.models.audit import AuditEvent
from finsight.models.ledger import (
    Asset,
    Bucket,
    Debt,
    Expense,
    NetWorthSnapshot,
    User,
)
from finsight.services.storage.interface import (
    AuditStorageInterface,
    ConcurrentModificationError,
    DuplicateError,
    LedgerStorageInterface,
    NotFoundError,
)


RecordT = TypeVar("RecordT", bound=BaseModel)


def _copy(record: RecordT) -> RecordT:
    return record.model_copy(deep=True)


class InMemoryLedgerStorage(LedgerStorageInterface):
    """In-memory implementation of the ledger store."""

    def __init__(self):
        self._users: dict[UUID, User] = {}
        self._expenses: dict[UUID, Expense] = {}
        self._assets: dict[UUID, Asset] = {}
        self._debts: dict[UUID, Debt] = {}
        self._snapshots: dict[tuple[UUID, str], NetWorthSnapshot] = {}
        self._lock = asyncio.Lock()

    # -------------------------------------------------------------------------
    # Generic helpers
    # -------------------------------------------------------------------------

    async def _insert(self, table: dict, record: RecordT, entity: str) -> RecordT:
        async with self._lock:
            if record.id in table:
                raise DuplicateError(f"{entity.capitalize()} already exists: {record.id}")
            table[record.id] = _copy(record)
        return _copy(record)

    async def _replace(self, table: dict, record: RecordT, entity: str) -> RecordT:
        async with self._lock:
            if record.id not in table:
                raise NotFoundError(entity, record.id)
            table[record.id] = _copy(record)
        return _copy(record)

    async def _remove(self, table: dict, record_id: UUID) -> bool:
        async with self._lock:
            return table.pop(record_id, None) is not None

    @staticmethod
    def _fetch(table: dict, record_id: UUID):
        record = table.get(record_id)
        return _copy(record) if record is not None else None

    @staticmethod
    def _owned(table: dict, owner_id: UUID) -> list:
        records = [_copy(r) for r in table.values() if r.owner_id == owner_id]
        records.sort(key=lambda r: r.created_at, reverse=True)
        return records

    # -------------------------------------------------------------------------
    # Users
    # -------------------------------------------------------------------------

    async def get_user(self, user_id: UUID) -> Optional[User]:
        return self._fetch(self._users, user_id)

    async def save_user(self, user: User) -> User:
        async with self._lock:
            self._users[user.id] = _copy(user)
        return _copy(user)

    # -------------------------------------------------------------------------
    # Expenses
    # -------------------------------------------------------------------------

    async def add_expense(self, expense: Expense) -> Expense:
        return await self._insert(self._expenses, expense, "expense")

    async def get_expense(self, expense_id: UUID) -> Optional[Expense]:
        return self._fetch(self._expenses, expense_id)

    async def update_expense(self, expense: Expense) -> Expense:
        return await self._replace(self._expenses, expense, "expense")

    async def delete_expense(self, expense_id: UUID) -> bool:
        return await self._remove(self._expenses, expense_id)

    async def list_expenses(
        self,
        owner_id: UUID,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
        bucket: Optional[Bucket] = None,
        category: Optional[str] = None,
    ) -> list[Expense]:
        needle = category.lower() if category else None
        expenses = []
        for expense in self._expenses.values():
            if expense.owner_id != owner_id:
                continue
            if date_from and expense.date < date_from:
                continue
            if date_to and expense.date >= date_to:
                continue
            if bucket and expense.bucket != bucket:
                continue
            if needle and needle not in expense.category.lower():
                continue
            expenses.append(_copy(expense))

        # Newest first
        expenses.sort(key=lambda e: e.date, reverse=True)
        return expenses

    # -------------------------------------------------------------------------
    # Assets
    # -------------------------------------------------------------------------

    async def add_asset(self, asset: Asset) -> Asset:
        return await self._insert(self._assets, asset, "asset")

    async def get_asset(self, asset_id: UUID) -> Optional[Asset]:
        return self._fetch(self._assets, asset_id)

    async def update_asset(self, asset: Asset) -> Asset:
        return await self._replace(self._assets, asset, "asset")

    async def delete_asset(self, asset_id: UUID) -> bool:
        return await self._remove(self._assets, asset_id)

    async def list_assets(self, owner_id: UUID) -> list[Asset]:
        return self._owned(self._assets, owner_id)

    # -------------------------------------------------------------------------
    # Debts
    # -------------------------------------------------------------------------

    async def add_debt(self, debt: Debt) -> Debt:
        return await self._insert(self._debts, debt, "debt")

    async def get_debt(self, debt_id: UUID) -> Optional[Debt]:
        return self._fetch(self._debts, debt_id)

    async def update_debt(self, debt: Debt) -> Debt:
        return await self._replace(self._debts, debt, "debt")

    async def delete_debt(self, debt_id: UUID) -> bool:
        return await self._remove(self._debts, debt_id)

    async def list_debts(self, owner_id: UUID) -> list[Debt]:
        return self._owned(self._debts, owner_id)

    async def apply_emi_payment(
        self,
        expense: Expense,
        debt: Debt,
        expected_balance: Decimal,
    ) -> tuple[Expense, Debt]:
        async with self._lock:
            current = self._debts.get(debt.id)
            if current is None:
                raise NotFoundError("debt", debt.id)
            if current.remaining_balance != expected_balance:
                raise ConcurrentModificationError(
                    f"Debt {debt.id} balance changed from {expected_balance} "
                    f"to {current.remaining_balance} during payment"
                )
            if expense.id in self._expenses:
                raise DuplicateError(f"Expense already exists: {expense.id}")

            # Both checks passed; neither write can fail from here on
            self._expenses[expense.id] = _copy(expense)
            self._debts[debt.id] = _copy(debt)

        return _copy(expense), _copy(debt)

    # -------------------------------------------------------------------------
    # Net worth snapshots
    # -------------------------------------------------------------------------

    async def upsert_snapshot(self, snapshot: NetWorthSnapshot) -> NetWorthSnapshot:
        async with self._lock:
            existing = self._snapshots.get(snapshot.key)
            if existing is not None:
                snapshot = snapshot.replacing(existing)
            self._snapshots[snapshot.key] = _copy(snapshot)
        return _copy(snapshot)

    async def get_snapshot(
        self,
        owner_id: UUID,
        month: str,
    ) -> Optional[NetWorthSnapshot]:
        return self._fetch(self._snapshots, (owner_id, month))

    async def list_snapshots(
        self,
        owner_id: UUID,
        limit: int = 12,
    ) -> list[NetWorthSnapshot]:
        snapshots = [
            _copy(s) for (owner, _), s in self._snapshots.items()
            if owner == owner_id
        ]
        snapshots.sort(key=lambda s: s.month, reverse=True)
        return snapshots[:limit]


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only in-memory audit log."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    @property
    def events(self) -> list[AuditEvent]:
        return list(self._events)

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        events = [
            e for e in self._events
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        events = sorted(self._events, key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
