"""Tests for the Expense Classifier and record validation."""

import pytest
from datetime import date, datetime, timezone
from decimal import Decimal
from uuid import uuid4

from finsight.errors import ValidationError
from finsight.models.ledger import AssetType, Bucket, Debt
from finsight.validation import ExpenseClassifier, RecordValidator


NOW = datetime(2024, 6, 15, 12, 0, 0)


class TestExpenseClassifier:
    """Layer 1: input shape of a single expense."""

    def setup_method(self):
        self.classifier = ExpenseClassifier()
        self.owner = uuid4()

    def test_valid_expense_is_normalized(self):
        expense = self.classifier.classify(
            owner_id=self.owner,
            amount=250,
            category="  Groceries ",
            bucket="NEEDS",
            note="   ",
            now=NOW,
        )
        assert expense.amount == Decimal("250")
        assert expense.category == "Groceries"
        assert expense.bucket == Bucket.NEEDS
        assert expense.note is None
        assert expense.date == NOW
        assert expense.owner_id == self.owner

    def test_float_amount_keeps_its_decimal_text(self):
        expense = self.classifier.classify(self.owner, 10.1, "Tea", "wants", now=NOW)
        assert expense.amount == Decimal("10.1")

    @pytest.mark.parametrize("amount", [0, -5, "100", True, float("nan"), None])
    def test_rejects_bad_amounts(self, amount):
        with pytest.raises(ValidationError, match="Amount must be a positive number") as exc:
            self.classifier.classify(self.owner, amount, "Food", "wants", now=NOW)
        assert exc.value.fields == ["amount"]

    def test_rejects_blank_category(self):
        with pytest.raises(ValidationError, match="Category is required"):
            self.classifier.classify(self.owner, 10, "   ", "wants", now=NOW)

    def test_rejects_unknown_bucket(self):
        with pytest.raises(ValidationError, match="Bucket must be one of: needs, wants, savings"):
            self.classifier.classify(self.owner, 10, "Food", "luxuries", now=NOW)

    def test_reports_every_issue_at_once(self):
        with pytest.raises(ValidationError) as exc:
            self.classifier.classify(self.owner, -1, "", "nope", now=NOW)
        assert exc.value.fields == ["amount", "category", "bucket"]
        assert str(exc.value) == "Invalid expense"

    def test_accepts_iso_string_and_date(self):
        from_string = self.classifier.classify(
            self.owner, 10, "Food", "wants", date="2024-05-31T23:30:00+00:00", now=NOW
        )
        from_date = self.classifier.classify(
            self.owner, 10, "Food", "wants", date=date(2024, 5, 31), now=NOW
        )
        assert from_string.date == datetime(2024, 5, 31, 23, 30)
        assert from_date.date == datetime(2024, 5, 31)

    def test_aware_datetime_is_stored_as_naive_utc(self):
        aware = datetime(2024, 6, 1, 5, 30, tzinfo=timezone.utc)
        expense = self.classifier.classify(self.owner, 10, "Food", "wants", date=aware, now=NOW)
        assert expense.date.tzinfo is None
        assert expense.date == datetime(2024, 6, 1, 5, 30)

    def test_rejects_unparseable_date(self):
        with pytest.raises(ValidationError, match="Date is not a valid date"):
            self.classifier.classify(self.owner, 10, "Food", "wants", date="yesterday", now=NOW)

    def test_apply_update_only_touches_given_fields(self):
        expense = self.classifier.classify(self.owner, 10, "Food", "wants", note="lunch", now=NOW)
        updated = self.classifier.apply_update(expense, {"amount": 25, "bucket": "Needs"})
        assert updated.id == expense.id
        assert updated.amount == Decimal("25")
        assert updated.bucket == Bucket.NEEDS
        assert updated.category == "Food"
        assert updated.note == "lunch"

    def test_apply_update_validates_like_create(self):
        expense = self.classifier.classify(self.owner, 10, "Food", "wants", now=NOW)
        with pytest.raises(ValidationError, match="Amount must be a positive number"):
            self.classifier.apply_update(expense, {"amount": -3})


class TestRecordValidator:
    """Assets, debts and income."""

    def setup_method(self):
        self.validator = RecordValidator()
        self.owner = uuid4()

    def test_build_debt(self):
        debt = self.validator.build_debt(self.owner, {
            "name": "Home loan",
            "principal": 100000,
            "remaining_balance": 100000,
            "interest_rate": 12,
            "monthly_emi": 2000,
        })
        assert isinstance(debt, Debt)
        assert debt.owner_id == self.owner
        assert debt.remaining_balance == Decimal("100000")

    def test_build_debt_requires_fields(self):
        with pytest.raises(ValidationError) as exc:
            self.validator.build_debt(self.owner, {"name": "Loan", "principal": 100})
        assert set(exc.value.fields) == {"remaining_balance", "interest_rate", "monthly_emi"}

    def test_build_debt_balance_above_principal(self):
        with pytest.raises(ValidationError, match="Remaining balance cannot exceed principal amount"):
            self.validator.build_debt(self.owner, {
                "name": "Loan",
                "principal": 100,
                "remaining_balance": 200,
                "interest_rate": 5,
                "monthly_emi": 10,
            })

    def test_debt_update_rechecks_balance(self):
        debt = self.validator.build_debt(self.owner, {
            "name": "Loan",
            "principal": 1000,
            "remaining_balance": 800,
            "interest_rate": 5,
            "monthly_emi": 50,
        })
        with pytest.raises(ValidationError, match="Remaining balance cannot exceed principal amount"):
            self.validator.apply_debt_update(debt, {"principal": 500})

        updated = self.validator.apply_debt_update(debt, {"remaining_balance": 700, "name": ""})
        assert updated.remaining_balance == Decimal("700")
        assert updated.name == "Loan"

    def test_build_asset(self):
        asset = self.validator.build_asset(self.owner, {
            "type": "investment",
            "name": "Index fund",
            "current_value": "25000.50",
        })
        assert asset.type == AssetType.INVESTMENT
        assert asset.current_value == Decimal("25000.50")

    def test_build_asset_rejects_unknown_type(self):
        with pytest.raises(ValidationError):
            self.validator.build_asset(self.owner, {
                "type": "crypto-art",
                "name": "Thing",
                "current_value": 1,
            })

    def test_validate_income(self):
        assert self.validator.validate_income(0) == Decimal("0")
        assert self.validator.validate_income(Decimal("50000")) == Decimal("50000")

    def test_validate_income_missing(self):
        with pytest.raises(ValidationError, match="Please provide monthlyIncome"):
            self.validator.validate_income(None)

    @pytest.mark.parametrize("value", [-1, "50000", False])
    def test_validate_income_rejects(self, value):
        with pytest.raises(ValidationError, match="Monthly income must be a positive number"):
            self.validator.validate_income(value)
