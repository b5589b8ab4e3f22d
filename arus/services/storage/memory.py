"""
In-Memory Storage Implementation

Suitable for single-process use, tests and the demo app.
All state is lost when the process exits.

DESIGN DECISION: Users go in and come out as deep copies. A caller
that mutates a loaded user changes nothing in the store until it
calls save_user(), so a failed ledger operation whose save is
skipped leaves the stored user exactly as it was.

DESIGN DECISION: One lock for the whole store, held for writes.
Reads of a single key need no lock on a single event loop.
Serializing load-modify-save of the same user is the service
layer's job (see FinanceService).
"""

import asyncio
from uuid import UUID

from arus.models.audit import AuditEvent
from arus.models.ledger import User
from arus.services.storage.interface import (
    AuditStorageInterface,
    NotFoundError,
    UserStorageInterface,
)


class InMemoryUserStorage(UserStorageInterface):
    """Keyed user store guarded by a single asyncio lock."""

    def __init__(self) -> None:
        self._users: dict[str, User] = {}
        self._lock = asyncio.Lock()

    async def get_user_by_id(self, user_id: str) -> User:
        user = self._users.get(user_id)
        if user is None:
            raise NotFoundError(f"User not found: {user_id}")
        return user.model_copy(deep=True)

    async def save_user(self, user: User) -> bool:
        async with self._lock:
            self._users[user.id] = user.model_copy(deep=True)
        return True

    async def user_exists(self, user_id: str) -> bool:
        return user_id in self._users

    async def list_user_ids(self) -> list[str]:
        return sorted(self._users)


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only list of audit events."""

    def __init__(self) -> None:
        self._events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event.model_copy(deep=True))
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        return [e for e in self._events if e.correlation_id == correlation_id]

    async def get_events_by_user(self, user_id: str) -> list[AuditEvent]:
        return [e for e in self._events if e.user_id == user_id]

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        return list(reversed(self._events[-limit:])) if limit > 0 else []
