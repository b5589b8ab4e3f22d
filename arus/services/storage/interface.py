"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Keep the ledger engine ignorant of where users live
2. Use in-memory storage for testing and the demo app
3. Add a durable backend later without touching business logic

The interface is intentionally narrow: the service layer only ever
loads a whole user and saves a whole user back.
"""

from abc import ABC, abstractmethod
from uuid import UUID

from arus.models.audit import AuditEvent
from arus.models.ledger import User


class UserStorageInterface(ABC):
    """
    Abstract interface for user storage.

    The User aggregate is the unit of persistence: categories,
    rules and both transaction logs are saved together.
    """

    @abstractmethod
    async def get_user_by_id(self, user_id: str) -> User:
        """
        Retrieve a user by ID.

        Args:
            user_id: The user's identifier

        Returns:
            The stored user

        Raises:
            NotFoundError: If no user has this ID
        """
        pass

    @abstractmethod
    async def save_user(self, user: User) -> bool:
        """
        Insert or replace a user.

        Returns:
            True if saved successfully

        Raises:
            StorageError: If save fails
        """
        pass

    @abstractmethod
    async def user_exists(self, user_id: str) -> bool:
        pass

    @abstractmethod
    async def list_user_ids(self) -> list[str]:
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """Get all events of one service call, in chronological order."""
        pass

    @abstractmethod
    async def get_events_by_user(self, user_id: str) -> list[AuditEvent]:
        """Get all events for one user, in chronological order."""
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get the most recent audit events (newest first)."""
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass
