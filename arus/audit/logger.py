"""
Audit Logger

DESIGN DECISION: Every ledger operation is logged, accepted or rejected.
This provides:
1. Complete traceability of every credit and debit
2. Debugging capability when an expense bounces
3. A history the user can read back

The audit logger:
- Is async so it can sit in the service layer's await chain
- Gracefully handles storage failures (the ledger never fails because auditing did)
- Supports correlation IDs to trace the events of one service call
"""

import logging
import sys
from typing import Optional
from uuid import UUID, uuid4

import structlog

from arus.config import get_settings
from arus.models.audit import AuditEvent, AuditEventBuilder, AuditEventType
from arus.services.storage import AuditStorageInterface


def configure_logging(level: Optional[str] = None, json_output: Optional[bool] = None) -> None:
    """
    Configure structlog on top of the standard library logger.

    Arguments override the ARUS_LOG_* settings.
    """
    log_settings = get_settings().logging
    level = level or log_settings.level
    if json_output is None:
        json_output = log_settings.json_output

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level),
    )
    logging.getLogger().setLevel(getattr(logging, level))

    renderer = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer()
    )

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
            renderer,
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
    2. Audit storage (for persistence and user visibility), if configured
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
        self._logger = structlog.get_logger("arus.audit")

    @property
    def storage(self) -> Optional[AuditStorageInterface]:
        return self._storage

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
        elif event.severity.value == "debug":
            self._logger.debug("audit_event", **log_dict)
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

    async def log_user_created(self, user_id: str, currency: str, correlation_id: UUID) -> None:
        await self.log(AuditEventBuilder.user_created(user_id, currency, correlation_id))

    async def log_user_saved(self, user_id: str, correlation_id: UUID) -> None:
        await self.log(AuditEventBuilder.user_saved(user_id, correlation_id))

    async def log_allocation_plan_updated(
        self,
        user_id: str,
        rules: list[dict],
        correlation_id: UUID,
    ) -> None:
        await self.log(
            AuditEventBuilder.allocation_plan_updated(user_id, rules, correlation_id)
        )

    async def log_income_allocated(
        self,
        user_id: str,
        amount: str,
        allocations: dict[str, str],
        correlation_id: UUID,
    ) -> None:
        """Log a successful income allocation."""
        event = AuditEventBuilder.income_allocated(
            user_id=user_id,
            amount=amount,
            allocations=allocations,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_expense_processed(
        self,
        user_id: str,
        amount: str,
        deductions: dict[str, str],
        correlation_id: UUID,
    ) -> None:
        """Log a paid expense and, when reserves paid part of it, a warning."""
        event = AuditEventBuilder.expense_processed(
            user_id=user_id,
            amount=amount,
            deductions=deductions,
            correlation_id=correlation_id,
        )
        await self.log(event)

        reserves = [name for name in deductions if name != "expense"]
        if reserves:
            await self.log(
                AuditEventBuilder.reserves_touched(user_id, reserves, correlation_id)
            )

    async def log_statement_processed(
        self,
        user_id: str,
        account_number: str,
        expense_count: int,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.statement_processed(
            user_id=user_id,
            account_number=account_number,
            expense_count=expense_count,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_rejected(
        self,
        event_type: AuditEventType,
        user_id: str,
        error: Exception,
        correlation_id: UUID,
    ) -> None:
        """Log a ledger operation that raised a LedgerError."""
        event = AuditEventBuilder.operation_rejected(
            event_type=event_type,
            user_id=user_id,
            error=error,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_summary_generated(
        self,
        user_id: str,
        period: str,
        income_count: int,
        expense_count: int,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.summary_generated(
            user_id=user_id,
            period=period,
            income_count=income_count,
            expense_count=expense_count,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
        user_id: Optional[str] = None,
    ) -> None:
        """Log an error."""
        event = AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
            user_id=user_id,
        )
        await self.log(event)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a service call and pass it through
    all subsequent operations.
    """
    return uuid4()
