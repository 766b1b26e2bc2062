"""
Audit Models for FinSight

Every ledger mutation and every derived write is logged for audit purposes.
This provides:
1. Complete traceability of balance changes (who paid which EMI, when)
2. Debugging information when a snapshot write fails
3. A trail for partial-failure situations

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # User profile
    INCOME_UPDATED = "income_updated"

    # Expenses
    EXPENSE_CREATED = "expense_created"
    EXPENSE_UPDATED = "expense_updated"
    EXPENSE_DELETED = "expense_deleted"

    # Assets
    ASSET_CREATED = "asset_created"
    ASSET_UPDATED = "asset_updated"
    ASSET_DELETED = "asset_deleted"

    # Debts
    DEBT_CREATED = "debt_created"
    DEBT_UPDATED = "debt_updated"
    DEBT_DELETED = "debt_deleted"

    # EMI payments
    EMI_PAID = "emi_paid"
    EMI_PAYMENT_FAILED = "emi_payment_failed"
    NEGATIVE_AMORTIZATION = "negative_amortization"

    # Derived writes
    SNAPSHOT_SAVED = "snapshot_saved"
    SNAPSHOT_FAILED = "snapshot_failed"
    SUMMARY_GENERATED = "summary_generated"

    # System events
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc).replace(tzinfo=None),
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType
    severity: AuditSeverity = Field(default=AuditSeverity.INFO)

    # Whose ledger this touched
    owner_id: Optional[UUID] = None

    # What entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'expense', 'debt', 'snapshot')"
    )
    entity_id: Optional[UUID] = None

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., all events of one request)"
    )

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)

    # Error information (if applicable)
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "owner_id": str(self.owner_id) if self.owner_id else None,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, owner_id, entity_type,
         entity_id, correlation_id, description, details_json, error_message,
         is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            str(self.owner_id) if self.owner_id else "",
            self.entity_type or "",
            str(self.entity_id) if self.entity_id else "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details, default=str) if self.details else "",
            self.error_message or "",
            str(self.is_user_action),
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.expense_created(owner_id, expense_id, ...)
        event = AuditEventBuilder.emi_paid(owner_id, debt_id, ...)
    """

    @staticmethod
    def income_updated(
        owner_id: UUID,
        monthly_income: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INCOME_UPDATED,
            owner_id=owner_id,
            entity_type="user",
            entity_id=owner_id,
            correlation_id=correlation_id,
            description="Monthly income updated",
            details={"monthly_income": monthly_income},
            is_user_action=True,
        )

    @staticmethod
    def record_changed(
        event_type: AuditEventType,
        owner_id: UUID,
        entity_type: str,
        entity_id: UUID,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        action = event_type.value.rsplit("_", 1)[-1]
        return AuditEvent(
            event_type=event_type,
            owner_id=owner_id,
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id,
            description=f"{entity_type.capitalize()} {action}",
            details=details or {},
            is_user_action=True,
        )

    @staticmethod
    def emi_paid(
        owner_id: UUID,
        debt_id: UUID,
        expense_id: UUID,
        previous_balance: str,
        new_balance: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EMI_PAID,
            owner_id=owner_id,
            entity_type="debt",
            entity_id=debt_id,
            correlation_id=correlation_id,
            description=f"EMI paid: balance {previous_balance} -> {new_balance}",
            details={
                "expense_id": str(expense_id),
                "previous_balance": previous_balance,
                "new_balance": new_balance,
            },
            is_user_action=True,
        )

    @staticmethod
    def emi_payment_failed(
        owner_id: UUID,
        debt_id: UUID,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EMI_PAYMENT_FAILED,
            severity=AuditSeverity.ERROR,
            owner_id=owner_id,
            entity_type="debt",
            entity_id=debt_id,
            correlation_id=correlation_id,
            description="EMI payment failed, no changes applied",
            error_message=error_message,
        )

    @staticmethod
    def negative_amortization(
        owner_id: UUID,
        debt_id: UUID,
        monthly_emi: str,
        interest_component: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.NEGATIVE_AMORTIZATION,
            severity=AuditSeverity.WARNING,
            owner_id=owner_id,
            entity_type="debt",
            entity_id=debt_id,
            correlation_id=correlation_id,
            description="EMI does not cover interest; balance is growing",
            details={
                "monthly_emi": monthly_emi,
                "interest_component": interest_component,
            },
        )

    @staticmethod
    def snapshot_saved(
        owner_id: UUID,
        snapshot_id: UUID,
        month: str,
        net_worth: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SNAPSHOT_SAVED,
            owner_id=owner_id,
            entity_type="snapshot",
            entity_id=snapshot_id,
            correlation_id=correlation_id,
            description=f"Net worth snapshot saved for {month}",
            details={"month": month, "net_worth": net_worth},
        )

    @staticmethod
    def snapshot_failed(
        owner_id: UUID,
        month: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SNAPSHOT_FAILED,
            severity=AuditSeverity.WARNING,
            owner_id=owner_id,
            entity_type="snapshot",
            correlation_id=correlation_id,
            description=f"Net worth snapshot for {month} could not be saved",
            details={"month": month},
            error_message=error_message,
        )

    @staticmethod
    def summary_generated(
        owner_id: UUID,
        month: str,
        status: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SUMMARY_GENERATED,
            owner_id=owner_id,
            correlation_id=correlation_id,
            description=f"Monthly summary generated for {month}",
            details={"month": month, "status": status},
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
