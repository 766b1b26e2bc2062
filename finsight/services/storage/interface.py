"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for the ledger store.
This allows us to:
1. Swap Google Sheets for a real database later
2. Use in-memory storage for testing
3. Keep the derivation engine decoupled from persistence

The interface is intentionally simple - we're not building a full ORM.

REQUIRED CAPABILITIES of any implementation:
- upsert_snapshot must be atomic per (owner, month): last write wins and
  there is never more than one row for a key.
- apply_emi_payment must make the expense insert and the debt update
  visible together or not at all, and must refuse the write when the
  stored balance no longer matches the balance the payment was computed
  from (compare-and-swap). The engine relies on this; it does not retry.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from finsight.errors import InternalError, NotFoundError
from finsight.models.audit import AuditEvent
from finsight.models.ledger import (
    Asset,
    Bucket,
    Debt,
    Expense,
    NetWorthSnapshot,
    User,
)


class LedgerStorageInterface(ABC):
    """
    Abstract interface for ledger storage operations.

    Records are looked up by id without any owner filter here; ownership
    is enforced one level up by OwnerScopedLedger.
    """

    # -------------------------------------------------------------------------
    # Users
    # -------------------------------------------------------------------------

    @abstractmethod
    async def get_user(self, user_id: UUID) -> Optional[User]:
        """Retrieve a user, or None."""
        pass

    @abstractmethod
    async def save_user(self, user: User) -> User:
        """Insert or replace a user."""
        pass

    # -------------------------------------------------------------------------
    # Expenses
    # -------------------------------------------------------------------------

    @abstractmethod
    async def add_expense(self, expense: Expense) -> Expense:
        """
        Save a new expense.

        Raises:
            DuplicateError: If an expense with this id already exists
            StorageError: If save fails
        """
        pass

    @abstractmethod
    async def get_expense(self, expense_id: UUID) -> Optional[Expense]:
        pass

    @abstractmethod
    async def update_expense(self, expense: Expense) -> Expense:
        """
        Replace an existing expense.

        Raises:
            NotFoundError: If the expense doesn't exist
        """
        pass

    @abstractmethod
    async def delete_expense(self, expense_id: UUID) -> bool:
        """Delete an expense. Returns False if it did not exist."""
        pass

    @abstractmethod
    async def list_expenses(
        self,
        owner_id: UUID,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
        bucket: Optional[Bucket] = None,
        category: Optional[str] = None,
    ) -> list[Expense]:
        """
        List an owner's expenses, newest first.

        Args:
            owner_id: Whose expenses
            date_from: Inclusive lower bound
            date_to: Exclusive upper bound
            bucket: Only this bucket
            category: Case-insensitive substring match on category
        """
        pass

    # -------------------------------------------------------------------------
    # Assets
    # -------------------------------------------------------------------------

    @abstractmethod
    async def add_asset(self, asset: Asset) -> Asset:
        pass

    @abstractmethod
    async def get_asset(self, asset_id: UUID) -> Optional[Asset]:
        pass

    @abstractmethod
    async def update_asset(self, asset: Asset) -> Asset:
        pass

    @abstractmethod
    async def delete_asset(self, asset_id: UUID) -> bool:
        pass

    @abstractmethod
    async def list_assets(self, owner_id: UUID) -> list[Asset]:
        """All of an owner's assets, newest first."""
        pass

    # -------------------------------------------------------------------------
    # Debts
    # -------------------------------------------------------------------------

    @abstractmethod
    async def add_debt(self, debt: Debt) -> Debt:
        pass

    @abstractmethod
    async def get_debt(self, debt_id: UUID) -> Optional[Debt]:
        pass

    @abstractmethod
    async def update_debt(self, debt: Debt) -> Debt:
        pass

    @abstractmethod
    async def delete_debt(self, debt_id: UUID) -> bool:
        pass

    @abstractmethod
    async def list_debts(self, owner_id: UUID) -> list[Debt]:
        """All of an owner's debts, newest first."""
        pass

    @abstractmethod
    async def apply_emi_payment(
        self,
        expense: Expense,
        debt: Debt,
        expected_balance: Decimal,
    ) -> tuple[Expense, Debt]:
        """
        Record an EMI expense and the reduced debt balance as one unit.

        Args:
            expense: The EMI expense to insert
            debt: The debt carrying its new remaining_balance
            expected_balance: Balance the payment was computed from

        Raises:
            ConcurrentModificationError: If the stored balance changed
            NotFoundError: If the debt no longer exists
            StorageError: If the write fails (nothing is left applied)
        """
        pass

    # -------------------------------------------------------------------------
    # Net worth snapshots
    # -------------------------------------------------------------------------

    @abstractmethod
    async def upsert_snapshot(self, snapshot: NetWorthSnapshot) -> NetWorthSnapshot:
        """
        Insert or replace the snapshot for (owner, month).

        The existing row keeps its id and created_at, and its updated_at
        too when the figures are unchanged (see NetWorthSnapshot.replacing).
        """
        pass

    @abstractmethod
    async def get_snapshot(
        self,
        owner_id: UUID,
        month: str,
    ) -> Optional[NetWorthSnapshot]:
        pass

    @abstractmethod
    async def list_snapshots(
        self,
        owner_id: UUID,
        limit: int = 12,
    ) -> list[NetWorthSnapshot]:
        """Most recent snapshots first (month descending)."""
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        """Events for one entity in chronological order."""
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Most recent events, newest first."""
        pass


class StorageError(InternalError):
    """Base exception for storage operations."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class StorageConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass


class ConcurrentModificationError(StorageError):
    """A compare-and-swap write found the record already changed."""
    pass


__all__ = [
    "AuditStorageInterface",
    "ConcurrentModificationError",
    "DuplicateError",
    "LedgerStorageInterface",
    "NotFoundError",
    "StorageConnectionError",
    "StorageError",
]
