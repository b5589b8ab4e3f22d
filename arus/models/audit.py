"""
Audit Models for the Ledger

Every operation that changes a user's ledger is logged for audit purposes.
This provides:
1. Traceability of every credit and debit
2. Debugging information when an operation is rejected
3. A history the user can read back

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """
    Types of events we audit.

    Every ledger operation has its own event type.
    """
    # Users
    USER_CREATED = "user_created"
    USER_SAVED = "user_saved"
    ALLOCATION_PLAN_UPDATED = "allocation_plan_updated"
    ALLOCATION_PLAN_REJECTED = "allocation_plan_rejected"

    # Income
    INCOME_ALLOCATED = "income_allocated"
    INCOME_REJECTED = "income_rejected"

    # Expenses
    EXPENSE_PROCESSED = "expense_processed"
    EXPENSE_REJECTED = "expense_rejected"
    RESERVES_TOUCHED = "reserves_touched"

    # Statements
    STATEMENT_PROCESSED = "statement_processed"
    STATEMENT_REJECTED = "statement_rejected"

    # Reporting
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

    This is the core unit of our audit trail.
    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(tz=timezone.utc),
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - which user's ledger is this about?
    user_id: Optional[str] = Field(
        default=None,
        description="ID of the user whose ledger changed"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., all events of one statement)"
    )

    # Event details
    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )

    # Additional data (event-specific)
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "user_id": self.user_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.income_allocated(user_id, "1000.00 USD", allocations, cid)
        event = AuditEventBuilder.expense_rejected(user_id, error, cid)
    """

    @staticmethod
    def user_created(user_id: str, currency: str, correlation_id: UUID) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.USER_CREATED,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"User created: {user_id}",
            details={"currency": currency},
        )

    @staticmethod
    def user_saved(user_id: str, correlation_id: UUID) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.USER_SAVED,
            severity=AuditSeverity.DEBUG,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"User saved: {user_id}",
        )

    @staticmethod
    def allocation_plan_updated(
        user_id: str,
        rules: list[dict],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ALLOCATION_PLAN_UPDATED,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Allocation plan updated with {len(rules)} rules",
            details={"rules": rules},
        )

    @staticmethod
    def income_allocated(
        user_id: str,
        amount: str,
        allocations: dict[str, str],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INCOME_ALLOCATED,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Income allocated: {amount}",
            details={
                "amount": amount,
                "allocations": allocations,
            },
        )

    @staticmethod
    def expense_processed(
        user_id: str,
        amount: str,
        deductions: dict[str, str],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_PROCESSED,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Expense processed: {amount}",
            details={
                "amount": amount,
                "deductions": deductions,
            },
        )

    @staticmethod
    def reserves_touched(
        user_id: str,
        reserves: list[str],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RESERVES_TOUCHED,
            severity=AuditSeverity.WARNING,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Expense paid from reserves: {', '.join(reserves)}",
            details={"reserves": reserves},
        )

    @staticmethod
    def statement_processed(
        user_id: str,
        account_number: str,
        expense_count: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STATEMENT_PROCESSED,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Statement for {account_number} processed: {expense_count} expenses",
            details={
                "account_number": account_number,
                "expense_count": expense_count,
            },
        )

    @staticmethod
    def operation_rejected(
        event_type: AuditEventType,
        user_id: str,
        error,
        correlation_id: UUID,
    ) -> AuditEvent:
        """Build the event for a ledger operation that raised a LedgerError."""
        return AuditEvent(
            event_type=event_type,
            severity=AuditSeverity.WARNING,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"{event_type.value.replace('_', ' ').capitalize()}: {error}",
            details=error.to_details(),
            error_code=error.code,
            error_message=str(error),
        )

    @staticmethod
    def summary_generated(
        user_id: str,
        period: str,
        income_count: int,
        expense_count: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SUMMARY_GENERATED,
            severity=AuditSeverity.DEBUG,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Summary generated for {period}",
            details={
                "income_count": income_count,
                "expense_count": expense_count,
            },
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
        user_id: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            user_id=user_id,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
