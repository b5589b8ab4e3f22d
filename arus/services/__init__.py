"""
Services package.

FinanceService lives in arus.services.finance; it is not re-exported
here because it depends on the audit package, which depends on storage.
"""

from arus.services.storage import (
    AuditStorageInterface,
    DuplicateError,
    InMemoryAuditStorage,
    InMemoryUserStorage,
    NotFoundError,
    StorageError,
    UserStorageInterface,
)

__all__ = [
    # Storage services
    "AuditStorageInterface",
    "DuplicateError",
    "InMemoryAuditStorage",
    "InMemoryUserStorage",
    "NotFoundError",
    "StorageError",
    "UserStorageInterface",
]
