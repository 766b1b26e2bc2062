"""
Debt Amortization Engine

Applies one monthly EMI to a debt:

    monthly_rate        = interest_rate / 12 / 100
    interest_component  = remaining_balance * monthly_rate
    principal_component = monthly_emi - interest_component
    new_balance         = max(0, remaining_balance - principal_component)

The FULL EMI is recorded as a needs expense (category "EMI"); only the
principal component reduces the debt. No asset is ever created for the
repaid principal: net worth rises because the debt balance falls.

CRITICAL: The expense insert and the balance update are handed to the
store as one unit (apply_emi_payment). Either both are visible or neither.

Known edge cases, kept deliberately:
- Only an exact zero balance blocks payment.
- If the EMI doesn't cover the interest, principal_component is negative
  and the balance grows. It is capped at principal so the debt invariant
  still holds, and a warning is audited.
"""

from datetime import datetime
from decimal import Decimal
from typing import Callable, Optional
from uuid import UUID

from finsight.audit import AuditLogger
from finsight.errors import AlreadyPaidOffError, InvalidArgumentError, ValidationError
from finsight.models.ledger import Bucket, Debt, ValidationIssue
from finsight.models.results import (
    PaymentBreakdown,
    PaymentDebtSummary,
    PaymentExpenseSummary,
    PaymentResult,
)
from finsight.periods import month_of, month_range, round2, utcnow
from finsight.services.storage import LedgerStorageInterface, OwnerScopedLedger
from finsight.validation import ExpenseClassifier


EMI_CATEGORY = "EMI"
MONTHS_PER_YEAR = Decimal("12")
HUNDRED = Decimal("100")


def split_emi(debt: Debt) -> tuple[Decimal, Decimal]:
    """
    Split the debt's EMI into (interest_component, principal_component)
    at full precision.
    """
    monthly_rate = debt.interest_rate / MONTHS_PER_YEAR / HUNDRED
    interest = debt.remaining_balance * monthly_rate
    principal = debt.monthly_emi - interest
    return interest, principal


def next_balance(debt: Debt, principal_component: Decimal) -> Decimal:
    """Balance after paying ``principal_component``, kept within [0, principal]."""
    balance = max(Decimal("0"), debt.remaining_balance - principal_component)
    return min(balance, debt.principal)


class DebtAmortizationEngine:
    """
    Pays EMIs against a user's debts.

    Every call goes through an OwnerScopedLedger, so paying someone else's
    debt fails with ForbiddenError before anything is computed.
    """

    def __init__(
        self,
        storage: LedgerStorageInterface,
        classifier: Optional[ExpenseClassifier] = None,
        audit_logger: Optional[AuditLogger] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._storage = storage
        self._classifier = classifier or ExpenseClassifier()
        self._audit_logger = audit_logger
        self._clock = clock

    def _payment_date(
        self,
        payment_date: Optional[datetime],
        month: Optional[str],
    ) -> Optional[datetime]:
        """
        Resolve the expense date against an optional target month.

        With a month and no date: now if now falls inside the month,
        otherwise the first instant of the month.
        """
        if month is None:
            return payment_date

        start, end = month_range(month)
        if payment_date is None:
            now = self._clock()
            return now if start <= now < end else start

        if month_of(payment_date) != month:
            raise InvalidArgumentError(
                "date", f"Payment date {payment_date.date()} is outside {month}"
            )
        return payment_date

    async def pay_emi(
        self,
        debt_id: UUID,
        owner_id: UUID,
        month: Optional[str] = None,
        note: Optional[str] = None,
        payment_date: Optional[datetime] = None,
        correlation_id: Optional[UUID] = None,
    ) -> PaymentResult:
        """
        Pay one EMI.

        Args:
            debt_id: Debt to pay
            owner_id: Authenticated owner
            month: Optional YYYY-MM the payment belongs to
            note: Expense note; defaults to "EMI payment for <debt name>"
            payment_date: Expense date; defaults to now
            correlation_id: Request correlation for audit events

        Raises:
            NotFoundError: Debt doesn't exist
            ForbiddenError: Debt belongs to another owner
            AlreadyPaidOffError: Balance is exactly zero
            ValidationError: EMI amount is zero or the date is invalid
            InvalidArgumentError: Malformed month or date outside it
            ConcurrentModificationError: Balance changed mid-payment
        """
        ledger = OwnerScopedLedger(self._storage, owner_id)
        debt = await ledger.get_debt(debt_id)

        if debt.remaining_balance == 0:
            raise AlreadyPaidOffError(debt.id, debt.name)

        if debt.monthly_emi <= 0:
            raise ValidationError(
                "Monthly EMI must be greater than zero to record a payment",
                issues=[ValidationIssue(
                    field="monthly_emi",
                    issue_type="invalid_value",
                    message="Monthly EMI must be greater than zero to record a payment",
                )],
            )

        when = self._payment_date(payment_date, month)

        interest_component, principal_component = split_emi(debt)
        previous_balance = debt.remaining_balance
        new_balance = next_balance(debt, principal_component)

        expense = self._classifier.classify(
            owner_id=owner_id,
            amount=debt.monthly_emi,
            category=EMI_CATEGORY,
            bucket=Bucket.NEEDS,
            note=note or f"EMI payment for {debt.name}",
            date=when,
            now=self._clock(),
        )
        updated = debt.model_copy(update={
            "remaining_balance": new_balance,
            "updated_at": self._clock(),
        })

        try:
            expense, updated = await ledger.apply_emi_payment(
                expense, updated, expected_balance=previous_balance
            )
        except Exception as e:
            if self._audit_logger:
                await self._audit_logger.log_emi_payment_failed(
                    owner_id=owner_id,
                    debt_id=debt.id,
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            raise

        if self._audit_logger:
            await self._audit_logger.log_emi_paid(
                owner_id=owner_id,
                debt_id=debt.id,
                expense_id=expense.id,
                previous_balance=round2(previous_balance),
                new_balance=round2(new_balance),
                correlation_id=correlation_id,
            )
            if principal_component < 0:
                await self._audit_logger.log_negative_amortization(
                    owner_id=owner_id,
                    debt_id=debt.id,
                    monthly_emi=debt.monthly_emi,
                    interest_component=round2(interest_component),
                    correlation_id=correlation_id,
                )

        return PaymentResult(
            debt=PaymentDebtSummary(
                id=updated.id,
                name=updated.name,
                previous_balance=round2(previous_balance),
                new_balance=round2(updated.remaining_balance),
                fully_paid=updated.remaining_balance == 0,
            ),
            expense=PaymentExpenseSummary(
                id=expense.id,
                amount=expense.amount,
                category=expense.category,
                bucket=expense.bucket,
                date=expense.date,
            ),
            breakdown=PaymentBreakdown(
                total_emi=debt.monthly_emi,
                interest_component=round2(interest_component),
                principal_component=round2(principal_component),
            ),
        )
