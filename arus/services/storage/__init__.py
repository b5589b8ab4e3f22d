"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
Currently implements an in-memory backend, but designed to be swappable.
"""

from arus.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    NotFoundError,
    StorageError,
    UserStorageInterface,
)
from arus.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryUserStorage,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "UserStorageInterface",
    # Exceptions
    "DuplicateError",
    "NotFoundError",
    "StorageError",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryUserStorage",
]
