"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is offered as a storage backend because:
1. Users can view their ledger directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)
4. Easy to export/migrate later

TRADEOFFS:
- Not suitable for high-volume data (we're fine for personal use)
- No transactions: apply_emi_payment writes the expense first and undoes
  both writes if the debt update fails (compensating rollback)
- Limited query capabilities (we filter in Python)

One worksheet per record type, one record per row, columns named after the
model fields. Values are written with model_dump(mode="json") so Decimal
amounts round-trip as exact strings.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional, TypeVar
from uuid import UUID

import gspread
import structlog
from google.oauth2.service_account import Credentials
from pydantic import BaseModel
from tenacity import retry, stop_after_attempt, wait_exponential

from finsight.config import get_settings
from finsight.models.audit import AuditEvent, AuditEventType, AuditSeverity
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
    StorageConnectionError,
    StorageError,
)


RecordT = TypeVar("RecordT", bound=BaseModel)

USER_COLUMNS = list(User.model_fields)
EXPENSE_COLUMNS = list(Expense.model_fields)
ASSET_COLUMNS = list(Asset.model_fields)
DEBT_COLUMNS = list(Debt.model_fields)
SNAPSHOT_COLUMNS = list(NetWorthSnapshot.model_fields)

# Column order of AuditEvent.to_sheets_row
AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "owner_id",
    "entity_type",
    "entity_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
    "is_user_action",
]

logger = structlog.get_logger(__name__)


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._worksheets: dict[str, gspread.Worksheet] = {}
        self._settings = get_settings().google_sheets

    @property
    def settings(self):
        return self._settings

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise StorageConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise StorageConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise StorageConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def get_worksheet(self, title: str, columns: list[str]) -> gspread.Worksheet:
        """Get or create a worksheet with the given header row."""
        if title in self._worksheets:
            return self._worksheets[title]

        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=1000,
                cols=len(columns),
            )
            sheet.append_row(columns)
        self._worksheets[title] = sheet
        return sheet


class _RecordSheet:
    """Row <-> model mapping for one worksheet."""

    def __init__(
        self,
        client: GoogleSheetsClient,
        title: str,
        model: type[RecordT],
        columns: list[str],
    ):
        self._client = client
        self._title = title
        self._model = model
        self._columns = columns

    @property
    def sheet(self) -> gspread.Worksheet:
        return self._client.get_worksheet(self._title, self._columns)

    def to_row(self, record: BaseModel) -> list[str]:
        data = record.model_dump(mode="json")
        return ["" if data.get(col) is None else str(data[col]) for col in self._columns]

    def from_row(self, row: list[str]):
        data = {
            col: value
            for col, value in zip(self._columns, row)
            if value != ""
        }
        return self._model.model_validate(data)

    def records(self) -> list:
        """All parseable records. Malformed rows are skipped and logged."""
        records = []
        for idx, row in enumerate(self.sheet.get_all_values()[1:], start=2):
            if not row or not row[0]:
                continue
            try:
                records.append(self.from_row(row))
            except Exception as e:
                logger.warning(
                    "sheet_row_skipped",
                    sheet=self._title,
                    row=idx,
                    error=str(e),
                )
        return records

    def find(self, record_id: UUID) -> tuple[Optional[int], Optional[list[str]]]:
        """Locate a row by id. Returns (1-based row index, row)."""
        for idx, row in enumerate(self.sheet.get_all_values()[1:], start=2):
            if row and row[0] == str(record_id):
                return idx, row
        return None, None

    def get(self, record_id: UUID):
        _, row = self.find(record_id)
        return self.from_row(row) if row else None

    def append(self, record: BaseModel) -> None:
        self.sheet.append_row(self.to_row(record), value_input_option="RAW")

    def write(self, idx: int, record: BaseModel) -> None:
        """Replace row ``idx`` in a single API call so it never ends up half-written."""
        self.sheet.update(
            range_name=f"A{idx}",
            values=[self.to_row(record)],
            value_input_option="RAW",
        )

    def delete(self, idx: int) -> None:
        self.sheet.delete_rows(idx)


class GoogleSheetsLedgerStorage(LedgerStorageInterface):
    """
    Google Sheets implementation of the ledger store.

    Reads fetch the whole sheet and filter in Python; that's fine at
    personal-ledger volumes.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()
        names = self._client.settings
        self._users = _RecordSheet(self._client, names.users_sheet_name, User, USER_COLUMNS)
        self._expenses = _RecordSheet(
            self._client, names.expenses_sheet_name, Expense, EXPENSE_COLUMNS
        )
        self._assets = _RecordSheet(self._client, names.assets_sheet_name, Asset, ASSET_COLUMNS)
        self._debts = _RecordSheet(self._client, names.debts_sheet_name, Debt, DEBT_COLUMNS)
        self._snapshots = _RecordSheet(
            self._client, names.snapshots_sheet_name, NetWorthSnapshot, SNAPSHOT_COLUMNS
        )

    # -------------------------------------------------------------------------
    # Generic helpers
    # -------------------------------------------------------------------------

    def _insert(self, table: _RecordSheet, record: RecordT, entity: str) -> RecordT:
        try:
            idx, _ = table.find(record.id)
            if idx is not None:
                raise DuplicateError(f"{entity.capitalize()} already exists: {record.id}")
            table.append(record)
            return record
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to save {entity}: {e}")

    def _replace(self, table: _RecordSheet, record: RecordT, entity: str) -> RecordT:
        try:
            idx, _ = table.find(record.id)
            if idx is None:
                raise NotFoundError(entity, record.id)
            table.write(idx, record)
            return record
        except (NotFoundError, StorageError):
            raise
        except Exception as e:
            raise StorageError(f"Failed to update {entity}: {e}")

    def _remove(self, table: _RecordSheet, record_id: UUID, entity: str) -> bool:
        try:
            idx, _ = table.find(record_id)
            if idx is None:
                return False
            table.delete(idx)
            return True
        except Exception as e:
            raise StorageError(f"Failed to delete {entity}: {e}")

    def _fetch(self, table: _RecordSheet, record_id: UUID, entity: str):
        try:
            return table.get(record_id)
        except Exception as e:
            raise StorageError(f"Failed to get {entity}: {e}")

    def _owned(self, table: _RecordSheet, owner_id: UUID, entity: str) -> list:
        try:
            records = [r for r in table.records() if r.owner_id == owner_id]
        except Exception as e:
            raise StorageError(f"Failed to list {entity}s: {e}")
        records.sort(key=lambda r: r.created_at, reverse=True)
        return records

    # -------------------------------------------------------------------------
    # Users
    # -------------------------------------------------------------------------

    async def get_user(self, user_id: UUID) -> Optional[User]:
        return self._fetch(self._users, user_id, "user")

    async def save_user(self, user: User) -> User:
        try:
            idx, _ = self._users.find(user.id)
            if idx is None:
                self._users.append(user)
            else:
                self._users.write(idx, user)
            return user
        except Exception as e:
            raise StorageError(f"Failed to save user: {e}")

    # -------------------------------------------------------------------------
    # Expenses
    # -------------------------------------------------------------------------

    async def add_expense(self, expense: Expense) -> Expense:
        return self._insert(self._expenses, expense, "expense")

    async def get_expense(self, expense_id: UUID) -> Optional[Expense]:
        return self._fetch(self._expenses, expense_id, "expense")

    async def update_expense(self, expense: Expense) -> Expense:
        return self._replace(self._expenses, expense, "expense")

    async def delete_expense(self, expense_id: UUID) -> bool:
        return self._remove(self._expenses, expense_id, "expense")

    async def list_expenses(
        self,
        owner_id: UUID,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
        bucket: Optional[Bucket] = None,
        category: Optional[str] = None,
    ) -> list[Expense]:
        needle = category.lower() if category else None
        try:
            rows = self._expenses.records()
        except Exception as e:
            raise StorageError(f"Failed to list expenses: {e}")

        expenses = []
        for expense in rows:
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
            expenses.append(expense)

        # Sort by date descending (newest first)
        expenses.sort(key=lambda e: e.date, reverse=True)
        return expenses

    # -------------------------------------------------------------------------
    # Assets
    # -------------------------------------------------------------------------

    async def add_asset(self, asset: Asset) -> Asset:
        return self._insert(self._assets, asset, "asset")

    async def get_asset(self, asset_id: UUID) -> Optional[Asset]:
        return self._fetch(self._assets, asset_id, "asset")

    async def update_asset(self, asset: Asset) -> Asset:
        return self._replace(self._assets, asset, "asset")

    async def delete_asset(self, asset_id: UUID) -> bool:
        return self._remove(self._assets, asset_id, "asset")

    async def list_assets(self, owner_id: UUID) -> list[Asset]:
        return self._owned(self._assets, owner_id, "asset")

    # -------------------------------------------------------------------------
    # Debts
    # -------------------------------------------------------------------------

    async def add_debt(self, debt: Debt) -> Debt:
        return self._insert(self._debts, debt, "debt")

    async def get_debt(self, debt_id: UUID) -> Optional[Debt]:
        return self._fetch(self._debts, debt_id, "debt")

    async def update_debt(self, debt: Debt) -> Debt:
        return self._replace(self._debts, debt, "debt")

    async def delete_debt(self, debt_id: UUID) -> bool:
        return self._remove(self._debts, debt_id, "debt")

    async def list_debts(self, owner_id: UUID) -> list[Debt]:
        return self._owned(self._debts, owner_id, "debt")

    async def apply_emi_payment(
        self,
        expense: Expense,
        debt: Debt,
        expected_balance: Decimal,
    ) -> tuple[Expense, Debt]:
        """
        Expense first, then the debt row.

        If the debt update fails the previous debt row is written back and
        the expense row is deleted again, so the payment is either fully
        visible or not at all.
        """
        try:
            idx, row = self._debts.find(debt.id)
        except Exception as e:
            raise StorageError(f"Failed to read debt: {e}")
        if idx is None:
            raise NotFoundError("debt", debt.id)

        current = self._debts.from_row(row)
        if current.remaining_balance != expected_balance:
            raise ConcurrentModificationError(
                f"Debt {debt.id} balance changed from {expected_balance} "
                f"to {current.remaining_balance} during payment"
            )

        self._insert(self._expenses, expense, "expense")

        try:
            self._debts.write(idx, debt)
        except Exception as e:
            logger.error(
                "emi_debt_update_failed",
                debt_id=str(debt.id),
                expense_id=str(expense.id),
                error=str(e),
            )
            try:
                self._debts.write(idx, current)
                self._remove(self._expenses, expense.id, "expense")
            except Exception as rollback_error:
                logger.critical(
                    "emi_rollback_failed",
                    debt_id=str(debt.id),
                    expense_id=str(expense.id),
                    error=str(rollback_error),
                )
                raise StorageError(
                    f"EMI payment for debt {debt.id} could not be rolled back: {rollback_error}"
                ) from e
            raise StorageError(f"Failed to update debt balance: {e}") from e

        return expense, debt

    # -------------------------------------------------------------------------
    # Net worth snapshots
    # -------------------------------------------------------------------------

    def _find_snapshot(
        self,
        owner_id: UUID,
        month: str,
    ) -> tuple[Optional[int], Optional[NetWorthSnapshot]]:
        owner_col = SNAPSHOT_COLUMNS.index("owner_id")
        month_col = SNAPSHOT_COLUMNS.index("month")
        rows = self._snapshots.sheet.get_all_values()[1:]
        for idx, row in enumerate(rows, start=2):
            if (
                len(row) > max(owner_col, month_col)
                and row[owner_col] == str(owner_id)
                and row[month_col] == month
            ):
                return idx, self._snapshots.from_row(row)
        return None, None

    async def upsert_snapshot(self, snapshot: NetWorthSnapshot) -> NetWorthSnapshot:
        try:
            idx, existing = self._find_snapshot(snapshot.owner_id, snapshot.month)
            if existing is None:
                self._snapshots.append(snapshot)
                return snapshot
            snapshot = snapshot.replacing(existing)
            self._snapshots.write(idx, snapshot)
            return snapshot
        except Exception as e:
            raise StorageError(f"Failed to save snapshot: {e}")

    async def get_snapshot(
        self,
        owner_id: UUID,
        month: str,
    ) -> Optional[NetWorthSnapshot]:
        try:
            _, snapshot = self._find_snapshot(owner_id, month)
            return snapshot
        except Exception as e:
            raise StorageError(f"Failed to get snapshot: {e}")

    async def list_snapshots(
        self,
        owner_id: UUID,
        limit: int = 12,
    ) -> list[NetWorthSnapshot]:
        try:
            snapshots = [
                s for s in self._snapshots.records() if s.owner_id == owner_id
            ]
        except Exception as e:
            raise StorageError(f"Failed to list snapshots: {e}")
        snapshots.sort(key=lambda s: s.month, reverse=True)
        return snapshots[:limit]


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _sheet(self) -> gspread.Worksheet:
        return self._client.get_worksheet(
            self._client.settings.audit_sheet_name, AUDIT_COLUMNS
        )

    def _row_to_event(self, row: list) -> AuditEvent:
        """Convert a spreadsheet row to an AuditEvent."""
        import json

        def safe_get(index: int, default: str = "") -> str:
            try:
                return row[index] if row[index] else default
            except IndexError:
                return default

        return AuditEvent(
            event_id=UUID(safe_get(0)),
            timestamp=datetime.fromisoformat(safe_get(1)),
            event_type=AuditEventType(safe_get(2)),
            severity=AuditSeverity(safe_get(3)),
            owner_id=UUID(safe_get(4)) if safe_get(4) else None,
            entity_type=safe_get(5) or None,
            entity_id=UUID(safe_get(6)) if safe_get(6) else None,
            correlation_id=UUID(safe_get(7)) if safe_get(7) else None,
            description=safe_get(8),
            details=json.loads(safe_get(9)) if safe_get(9) else {},
            error_message=safe_get(10) or None,
            is_user_action=safe_get(11).lower() == "true",
        )

    def _events(self) -> list[AuditEvent]:
        events = []
        for row in self._sheet().get_all_values()[1:]:
            if not row or not row[0]:
                continue
            try:
                events.append(self._row_to_event(row))
            except Exception:
                continue
        return events

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        self._sheet().append_row(event.to_sheets_row(), value_input_option="RAW")
        return True

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        try:
            events = [
                e for e in self._events()
                if e.entity_type == entity_type and e.entity_id == entity_id
            ]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        try:
            events = self._events()
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")
        # Sort newest first
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
