"""
Ledger Input Validation

Two layers, same as everywhere else in the engine:

LAYER 1 - INPUT SHAPE (this module):
- Amount is a real positive number (not a string, not a bool)
- Category present after trimming
- Bucket one of needs / wants / savings (case-insensitive)
- Dates parseable

LAYER 2 - RECORD INVARIANTS (pydantic models):
- remaining_balance <= principal
- interest rate within 0-100
- value ranges

Pydantic errors from layer 2 are converted into our ValidationError here so
raw pydantic exceptions never leave the core.

IMPORTANT: Validation NEVER silently fixes issues beyond normalization
(trimming, lower-casing). Everything else is reported.
"""

import math
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional, TypeVar
from uuid import UUID

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from finsight.errors import ValidationError
from finsight.models.ledger import (
    Asset,
    Bucket,
    Debt,
    Expense,
    ValidationIssue,
)
from finsight.periods import to_naive_utc, utcnow


RecordT = TypeVar("RecordT", bound=BaseModel)

BUCKET_VALUES = [b.value for b in Bucket]

DEBT_REQUIRED_FIELDS = (
    "name",
    "principal",
    "remaining_balance",
    "interest_rate",
    "monthly_emi",
)
ASSET_REQUIRED_FIELDS = ("type", "name", "current_value")


def _issue(field: str, issue_type: str, message: str) -> ValidationIssue:
    return ValidationIssue(
        field=field,
        issue_type=issue_type,
        message=message,
        severity="error",
    )


def _as_number(value: Any) -> Optional[Decimal]:
    """Decimal for real numbers, None for anything else (bool, str, nan)."""
    if isinstance(value, bool):
        return None
    if isinstance(value, float):
        if not math.isfinite(value):
            return None
        return Decimal(str(value))
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, Decimal):
        return value if value.is_finite() else None
    return None


def _as_datetime(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return to_naive_utc(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, str):
        try:
            return to_naive_utc(datetime.fromisoformat(value.strip()))
        except ValueError:
            return None
    return None


def build_record(model: type[RecordT], data: dict, entity: str) -> RecordT:
    """
    Construct a model, converting pydantic failures into ValidationError.
    """
    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        issues = []
        for error in e.errors():
            field = ".".join(str(part) for part in error.get("loc", ())) or entity
            message = error.get("msg", "Invalid value").removeprefix("Value error, ")
            issues.append(_issue(field, error.get("type", "invalid_value"), message))
        summary = issues[0].message if len(issues) == 1 else f"Invalid {entity}"
        raise ValidationError(summary, issues=issues) from e


def _raise_if_any(issues: list[ValidationIssue], entity: str) -> None:
    if issues:
        summary = issues[0].message if len(issues) == 1 else f"Invalid {entity}"
        raise ValidationError(summary, issues=issues)


class ExpenseClassifier:
    """
    Validates and normalizes a single expense entry.

    No side effects: persistence is the ledger store's job.
    """

    def _check_amount(self, amount: Any, issues: list) -> Optional[Decimal]:
        value = _as_number(amount)
        if value is None or value <= 0:
            issues.append(_issue(
                "amount", "invalid_value", "Amount must be a positive number"
            ))
            return None
        return value

    def _check_category(self, category: Any, issues: list) -> Optional[str]:
        if not isinstance(category, str) or not category.strip():
            issues.append(_issue("category", "missing", "Category is required"))
            return None
        return category.strip()

    def _check_bucket(self, bucket: Any, issues: list) -> Optional[Bucket]:
        if isinstance(bucket, Bucket):
            return bucket
        if isinstance(bucket, str) and bucket.strip().lower() in BUCKET_VALUES:
            return Bucket(bucket.strip().lower())
        issues.append(_issue(
            "bucket",
            "invalid_value",
            f"Bucket must be one of: {', '.join(BUCKET_VALUES)}",
        ))
        return None

    def _check_date(self, value: Any, issues: list) -> Optional[datetime]:
        parsed = _as_datetime(value)
        if parsed is None:
            issues.append(_issue("date", "invalid_format", "Date is not a valid date"))
        return parsed

    @staticmethod
    def _normalize_note(note: Any) -> Optional[str]:
        if note is None:
            return None
        note = str(note).strip()
        return note or None

    def classify(
        self,
        owner_id: UUID,
        amount: Any,
        category: Any,
        bucket: Any,
        note: Any = None,
        date: Any = None,
        now: Optional[datetime] = None,
    ) -> Expense:
        """
        Validate raw expense input and return a normalized Expense.

        Args:
            owner_id: Owner the expense will belong to
            amount: Positive number
            category: Free text, trimmed
            bucket: needs / wants / savings, any case
            note: Optional, trimmed; blank becomes None
            date: datetime, date or ISO string; defaults to submission time
            now: Submission time override (tests)

        Raises:
            ValidationError: Listing every problem found
        """
        issues: list[ValidationIssue] = []

        value = self._check_amount(amount, issues)
        clean_category = self._check_category(category, issues)
        clean_bucket = self._check_bucket(bucket, issues)
        when = self._check_date(date, issues) if date is not None else (now or utcnow())

        _raise_if_any(issues, "expense")

        return build_record(Expense, {
            "owner_id": owner_id,
            "amount": value,
            "category": clean_category,
            "bucket": clean_bucket,
            "note": self._normalize_note(note),
            "date": when,
        }, "expense")

    def apply_update(self, expense: Expense, changes: dict[str, Any]) -> Expense:
        """
        Apply a partial update with the same rules as classify.

        Only keys present in ``changes`` are touched. A blank category is
        ignored rather than clearing the field; a None note clears it.
        """
        issues: list[ValidationIssue] = []
        update: dict[str, Any] = {}

        if "amount" in changes and changes["amount"] is not None:
            update["amount"] = self._check_amount(changes["amount"], issues)
        if changes.get("category"):
            update["category"] = self._check_category(changes["category"], issues)
        if changes.get("bucket"):
            update["bucket"] = self._check_bucket(changes["bucket"], issues)
        if "note" in changes:
            update["note"] = self._normalize_note(changes["note"])
        if changes.get("date"):
            update["date"] = self._check_date(changes["date"], issues)

        _raise_if_any(issues, "expense")

        return build_record(
            Expense, {**expense.model_dump(), **update}, "expense"
        )


class RecordValidator:
    """
    Validation for user-managed assets, debts and income.

    The record models enforce the invariants; this class checks required
    fields, merges partial updates, and normalizes errors.
    """

    @staticmethod
    def _missing(data: dict, required: tuple[str, ...]) -> list[ValidationIssue]:
        return [
            _issue(field, "missing", f"{field} is required")
            for field in required
            if data.get(field) is None or data.get(field) == ""
        ]

    def build_debt(self, owner_id: UUID, data: dict[str, Any]) -> Debt:
        """
        Raises:
            ValidationError: Missing fields, out-of-range values, or
                remaining_balance above principal
        """
        _raise_if_any(self._missing(data, DEBT_REQUIRED_FIELDS), "debt")
        fields = {k: data[k] for k in (*DEBT_REQUIRED_FIELDS, "description") if k in data}
        return build_record(Debt, {**fields, "owner_id": owner_id}, "debt")

    def apply_debt_update(self, debt: Debt, changes: dict[str, Any]) -> Debt:
        """Merge allowed fields and re-check remaining_balance <= principal."""
        allowed = {*DEBT_REQUIRED_FIELDS, "description"}
        update = {
            k: v for k, v in changes.items()
            if k in allowed and v is not None and not (k == "name" and v == "")
        }
        update["updated_at"] = utcnow()
        return build_record(Debt, {**debt.model_dump(), **update}, "debt")

    def build_asset(self, owner_id: UUID, data: dict[str, Any]) -> Asset:
        _raise_if_any(self._missing(data, ASSET_REQUIRED_FIELDS), "asset")
        fields = {k: data[k] for k in (*ASSET_REQUIRED_FIELDS, "description") if k in data}
        return build_record(Asset, {**fields, "owner_id": owner_id}, "asset")

    def apply_asset_update(self, asset: Asset, changes: dict[str, Any]) -> Asset:
        allowed = {*ASSET_REQUIRED_FIELDS, "description"}
        update = {
            k: v for k, v in changes.items()
            if k in allowed and v is not None and v != ""
        }
        update["updated_at"] = utcnow()
        return build_record(Asset, {**asset.model_dump(), **update}, "asset")

    def validate_income(self, monthly_income: Any) -> Decimal:
        """Income must be a number >= 0."""
        if monthly_income is None:
            raise ValidationError(
                "Please provide monthlyIncome",
                issues=[_issue("monthly_income", "missing", "Please provide monthlyIncome")],
            )
        value = _as_number(monthly_income)
        if value is None or value < 0:
            message = "Monthly income must be a positive number"
            raise ValidationError(
                message,
                issues=[_issue("monthly_income", "invalid_value", message)],
            )
        return value
