"""Services package."""

from finsight.services.storage import (
    AuditStorageInterface,
    ConcurrentModificationError,
    DuplicateError,
    InMemoryAuditStorage,
    InMemoryLedgerStorage,
    LedgerStorageInterface,
    NotFoundError,
    OwnerScopedLedger,
    StorageConnectionError,
    StorageError,
)

__all__ = [
    "AuditStorageInterface",
    "ConcurrentModificationError",
    "DuplicateError",
    "InMemoryAuditStorage",
    "InMemoryLedgerStorage",
    "LedgerStorageInterface",
    "NotFoundError",
    "OwnerScopedLedger",
    "StorageConnectionError",
    "StorageError",
]
