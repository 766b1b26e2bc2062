"""
Audit Logger

DESIGN DECISION: Every ledger mutation and every derived write is logged.
This provides:
1. Complete traceability of debt balance changes
2. Visibility into best-effort writes that failed (snapshots)
3. A warning trail for suspicious states (negative amortization)

The audit logger:
- Is async to not block main flow
- Gracefully handles failures (doesn't crash the app if logging fails)
- Supports correlation IDs to trace related events
"""

from decimal import Decimal
from typing import Optional
from uuid import UUID, uuid4

import structlog

from finsight.models.audit import AuditEvent, AuditEventBuilder, AuditEventType
from finsight.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage, when one is configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("finsight.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_income_updated(
        self,
        owner_id: UUID,
        monthly_income: Decimal,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.income_updated(
            owner_id=owner_id,
            monthly_income=str(monthly_income),
            correlation_id=correlation_id,
        ))

    async def log_record_changed(
        self,
        event_type: AuditEventType,
        owner_id: UUID,
        entity_type: str,
        entity_id: UUID,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a create/update/delete of an expense, asset or debt."""
        await self.log(AuditEventBuilder.record_changed(
            event_type=event_type,
            owner_id=owner_id,
            entity_type=entity_type,
            entity_id=entity_id,
            details=details,
            correlation_id=correlation_id,
        ))

    async def log_emi_paid(
        self,
        owner_id: UUID,
        debt_id: UUID,
        expense_id: UUID,
        previous_balance: Decimal,
        new_balance: Decimal,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.emi_paid(
            owner_id=owner_id,
            debt_id=debt_id,
            expense_id=expense_id,
            previous_balance=str(previous_balance),
            new_balance=str(new_balance),
            correlation_id=correlation_id,
        ))

    async def log_emi_payment_failed(
        self,
        owner_id: UUID,
        debt_id: UUID,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.emi_payment_failed(
            owner_id=owner_id,
            debt_id=debt_id,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_negative_amortization(
        self,
        owner_id: UUID,
        debt_id: UUID,
        monthly_emi: Decimal,
        interest_component: Decimal,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.negative_amortization(
            owner_id=owner_id,
            debt_id=debt_id,
            monthly_emi=str(monthly_emi),
            interest_component=str(interest_component),
            correlation_id=correlation_id,
        ))

    async def log_snapshot_saved(
        self,
        owner_id: UUID,
        snapshot_id: UUID,
        month: str,
        net_worth: Decimal,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.snapshot_saved(
            owner_id=owner_id,
            snapshot_id=snapshot_id,
            month=month,
            net_worth=str(net_worth),
            correlation_id=correlation_id,
        ))

    async def log_snapshot_failed(
        self,
        owner_id: UUID,
        month: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.snapshot_failed(
            owner_id=owner_id,
            month=month,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_summary_generated(
        self,
        owner_id: UUID,
        month: str,
        status: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.summary_generated(
            owner_id=owner_id,
            month=month,
            status=status,
            correlation_id=correlation_id,
        ))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        await self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a request (e.g., an EMI payment).
    Pass it through all subsequent operations.
    """
    return uuid4()
