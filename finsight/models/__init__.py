"""
Data Models Package

This package contains all Pydantic models used in FinSight.
All data flowing through the engine must conform to these schemas.
"""

from finsight.models.ledger import (
    Asset,
    AssetType,
    Bucket,
    BudgetStatus,
    Debt,
    DebtStatus,
    Expense,
    NetWorthSnapshot,
    TrendDirection,
    User,
    ValidationIssue,
)
from finsight.models.results import (
    AssetBreakdown,
    AssetListResult,
    AssetSummary,
    BucketSpend,
    BudgetResult,
    CategoryTotal,
    DebtListResult,
    DebtSummary,
    InsightResult,
    MonthlyComparison,
    MonthlySummary,
    NetWorthHistory,
    NetWorthResult,
    NetWorthTrend,
    PaymentBreakdown,
    PaymentDebtSummary,
    PaymentExpenseSummary,
    PaymentResult,
    SavingsProgress,
)
from finsight.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "Asset",
    "AssetType",
    "Bucket",
    "BudgetStatus",
    "Debt",
    "DebtStatus",
    "Expense",
    "NetWorthSnapshot",
    "TrendDirection",
    "User",
    "ValidationIssue",
    # Result models
    "AssetBreakdown",
    "AssetListResult",
    "AssetSummary",
    "BucketSpend",
    "BudgetResult",
    "CategoryTotal",
    "DebtListResult",
    "DebtSummary",
    "InsightResult",
    "MonthlyComparison",
    "MonthlySummary",
    "NetWorthHistory",
    "NetWorthResult",
    "NetWorthTrend",
    "PaymentBreakdown",
    "PaymentDebtSummary",
    "PaymentExpenseSummary",
    "PaymentResult",
    "SavingsProgress",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
