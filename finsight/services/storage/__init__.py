"""
Storage Services Package

Provides the abstract ledger store interface, the owner-scoped capability
wrapper the engine talks through, and concrete backends (in-memory and
Google Sheets).
"""

from finsight.services.storage.interface import (
    AuditStorageInterface,
    ConcurrentModificationError,
    DuplicateError,
    LedgerStorageInterface,
    NotFoundError,
    StorageConnectionError,
    StorageError,
)
from finsight.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryLedgerStorage,
)
from finsight.services.storage.scoped import OwnerScopedLedger

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "LedgerStorageInterface",
    "OwnerScopedLedger",
    # Exceptions
    "ConcurrentModificationError",
    "DuplicateError",
    "NotFoundError",
    "StorageConnectionError",
    "StorageError",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryLedgerStorage",
]
