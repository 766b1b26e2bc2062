"""
Error Taxonomy

Every failure the core can raise is one of these types. The calling
boundary (HTTP layer, UI) maps them to status codes; the core never
formats a response itself.

    FinSightError
    ├── ValidationError            malformed input shape or range
    │   └── InvalidArgumentError   malformed argument (e.g. month string)
    ├── NotFoundError              referenced record does not exist
    ├── ForbiddenError             record exists but belongs to someone else
    ├── PreconditionFailedError    operation needs prior state (income unset)
    ├── AlreadyPaidOffError        EMI payment on a zero-balance debt
    └── InternalError              store or unexpected failure
"""

from typing import Optional

from finsight.models.ledger import ValidationIssue


class FinSightError(Exception):
    """Base exception for the derivation engine."""
    pass


class ValidationError(FinSightError):
    """
    Input failed validation.

    Carries the individual issues so callers can show every problem at once
    instead of one per round trip.
    """

    def __init__(
        self,
        message: str,
        issues: Optional[list[ValidationIssue]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.issues = issues or []

    @property
    def fields(self) -> list[str]:
        return [issue.field for issue in self.issues]


class InvalidArgumentError(ValidationError):
    """A call argument (not a record field) is malformed."""

    def __init__(self, argument: str, message: str):
        super().__init__(
            message,
            issues=[ValidationIssue(
                field=argument,
                issue_type="invalid_format",
                message=message,
                severity="error",
            )],
        )
        self.argument = argument


class NotFoundError(FinSightError):
    """Referenced expense, asset, debt or user does not exist."""

    def __init__(self, entity_type: str, entity_id: object):
        super().__init__(f"{entity_type.capitalize()} not found: {entity_id}")
        self.entity_type = entity_type
        self.entity_id = entity_id


class ForbiddenError(FinSightError):
    """Record exists but is owned by a different user."""

    def __init__(self, entity_type: str, entity_id: object):
        super().__init__(f"Not authorized to access this {entity_type}")
        self.entity_type = entity_type
        self.entity_id = entity_id


class PreconditionFailedError(FinSightError):
    """Operation requires state the user has not set up yet."""
    pass


class AlreadyPaidOffError(FinSightError):
    """EMI payment attempted on a debt whose balance is already zero."""

    def __init__(self, debt_id: object, debt_name: str):
        super().__init__(f"Debt is already fully paid: {debt_name}")
        self.debt_id = debt_id
        self.debt_name = debt_name


class InternalError(FinSightError):
    """Store failure or anything else the caller cannot fix."""
    pass
