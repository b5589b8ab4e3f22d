"""
Finance Service

This module ties the ledger engine to storage and the audit trail.
Every mutating operation follows the same shape:

    load user → run ledger operation → save user

DESIGN DECISION: A ledger error propagates to the caller unchanged and
the save is skipped. Because the store hands out copies, a rejected
operation never reaches storage, whatever it did to the loaded copy.
The one exception is non-atomic deduction (ARUS_ATOMIC_DEDUCTION=false):
there the debits made before the failure are saved, as they would be
with a store that shares its objects.

DESIGN DECISION: Operations on the same user are serialized with a
per-user asyncio lock, so a concurrent allocate_income and
process_expense cannot both load the same old balances and have the
later save overwrite the earlier one. Unrelated users never wait on
each other. A user's lock is dropped once no operation holds or waits
for it, so the lock table only holds users with calls in flight.

Any other failure inside an operation (a storage outage, a bug) is
audited as a system error and re-raised.
"""

import asyncio
from collections import Counter
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional
from uuid import UUID

from arus.audit import AuditLogger, configure_logging, create_correlation_id
from arus.config import LedgerSettings, get_settings
from arus.errors import (
    AllocationPlanRejectedError,
    InsufficientFundsAcrossCategoriesError,
    LedgerError,
)
from arus.ledger import (
    apply_allocations,
    check_income_status,
    compute_allocations,
    get_period_summary,
    process_account_statement,
    process_expense,
)
from arus.models.audit import AuditEvent, AuditEventType
from arus.models.ledger import (
    AccountStatement,
    AllocationRule,
    DeductionPlan,
    IncomeStatusReport,
    Period,
    PeriodSummary,
    Transaction,
    User,
)
from arus.models.money import Money
from arus.models.validation import ValidationResult
from arus.services.storage import (
    DuplicateError,
    InMemoryAuditStorage,
    InMemoryUserStorage,
    UserStorageInterface,
)
from arus.validation import AllocationPlanValidator


def _deductions_dict(plans: list[DeductionPlan]) -> dict[str, str]:
    totals: dict[str, Money] = {}
    for plan in plans:
        for deduction in plan.deductions:
            key = deduction.category.value
            if key in totals:
                totals[key] = totals[key].add(deduction.amount)
            else:
                totals[key] = deduction.amount
    return {key: str(amount) for key, amount in totals.items()}


class FinanceService:
    """
    Application entry point for ledger operations.

    Holds no ledger state itself: users live in storage.
    """

    def __init__(
        self,
        user_storage: UserStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[LedgerSettings] = None,
        validator: Optional[AllocationPlanValidator] = None,
    ):
        self._storage = user_storage
        self._audit_logger = audit_logger
        self._settings = settings or get_settings().ledger
        self._validator = validator or AllocationPlanValidator()
        self._user_locks: dict[str, asyncio.Lock] = {}
        self._lock_holders: Counter[str] = Counter()

    @property
    def settings(self) -> LedgerSettings:
        return self._settings

    # -------------------------------------------------------------------------
    # Users
    # -------------------------------------------------------------------------

    async def create_user(
        self,
        user_id: str,
        currency: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> User:
        """
        Create a user with the starter categories and store it.

        Raises:
            DuplicateError: If the user already exists
        """
        correlation_id = correlation_id or create_correlation_id()
        currency = currency or self._settings.default_currency

        async with self._user_lock(user_id):
            if await self._storage.user_exists(user_id):
                raise DuplicateError(f"User already exists: {user_id}")

            user = User.new(user_id, currency=currency)
            await self._save(user, correlation_id)

        if self._audit_logger:
            await self._audit_logger.log_user_created(user_id, currency, correlation_id)
        return user

    async def get_user(self, user_id: str) -> User:
        """Load a user. Raises NotFoundError if missing."""
        return await self._storage.get_user_by_id(user_id)

    def validate_allocation_rules(
        self,
        user: User,
        rules: list[AllocationRule],
        expected_income: Optional[Money] = None,
    ) -> ValidationResult:
        return self._validator.validate(user, rules, expected_income)

    def summarize_validation(self, result: ValidationResult) -> str:
        return self._validator.get_user_friendly_summary(result)

    async def set_allocation_rules(
        self,
        user_id: str,
        rules: list[AllocationRule],
        expected_income: Optional[Money] = None,
        correlation_id: Optional[UUID] = None,
    ) -> ValidationResult:
        """
        Replace a user's allocation plan.

        The plan is validated first; a plan with errors is not stored.

        Raises:
            AllocationPlanRejectedError: If validation found errors
            NotFoundError: If the user does not exist
        """
        correlation_id = correlation_id or create_correlation_id()

        async with self._user_lock(user_id):
            user = await self._storage.get_user_by_id(user_id)
            result = self._validator.validate(user, rules, expected_income)

            if result.has_errors:
                error = AllocationPlanRejectedError(result)
                await self._log_rejected(
                    AuditEventType.ALLOCATION_PLAN_REJECTED, user_id, error, correlation_id
                )
                raise error

            user.allocation_rules = list(rules)
            await self._save(user, correlation_id)

        if self._audit_logger:
            await self._audit_logger.log_allocation_plan_updated(
                user_id,
                [rule.model_dump(mode="json") for rule in rules],
                correlation_id,
            )
        return result

    # -------------------------------------------------------------------------
    # Income and expenses
    # -------------------------------------------------------------------------

    async def allocate_income(
        self,
        user_id: str,
        income: Money,
        date: Optional[datetime] = None,
        description: str = "",
        correlation_id: Optional[UUID] = None,
    ) -> Transaction:
        """Split income across the user's categories and persist the result."""
        correlation_id = correlation_id or create_correlation_id()

        async with self._user_lock(user_id):
            user = await self._storage.get_user_by_id(user_id)
            try:
                allocations = compute_allocations(user, income)
                transaction = apply_allocations(
                    user, income, allocations, date, description
                )
                await self._save(user, correlation_id)
            except LedgerError as e:
                await self._log_rejected(
                    AuditEventType.INCOME_REJECTED, user_id, e, correlation_id
                )
                raise
            except Exception as e:
                await self._log_error(e, user_id, correlation_id)
                raise

        if self._audit_logger:
            credited: dict[str, Money] = {}
            for category, amount in allocations:
                key = category.kind.value
                credited[key] = credited[key].add(amount) if key in credited else amount
            await self._audit_logger.log_income_allocated(
                user_id=user_id,
                amount=str(income),
                allocations={key: str(amount) for key, amount in credited.items()},
                correlation_id=correlation_id,
            )
        return transaction

    async def process_expense(
        self,
        user_id: str,
        expense: Transaction,
        correlation_id: Optional[UUID] = None,
    ) -> DeductionPlan:
        """Pay an expense through the waterfall and persist the result."""
        correlation_id = correlation_id or create_correlation_id()

        async with self._user_lock(user_id):
            user = await self._storage.get_user_by_id(user_id)
            try:
                plan = process_expense(
                    user, expense, atomic=self._settings.atomic_deduction
                )
                await self._save(user, correlation_id)
            except LedgerError as e:
                await self._keep_partial_debits(user, e, correlation_id)
                await self._log_rejected(
                    AuditEventType.EXPENSE_REJECTED, user_id, e, correlation_id
                )
                raise
            except Exception as e:
                await self._log_error(e, user_id, correlation_id)
                raise

        if self._audit_logger:
            await self._audit_logger.log_expense_processed(
                user_id=user_id,
                amount=str(expense.amount),
                deductions=_deductions_dict([plan]),
                correlation_id=correlation_id,
            )
        return plan

    async def process_account_statement(
        self,
        user_id: str,
        statement: AccountStatement,
        correlation_id: Optional[UUID] = None,
    ) -> list[DeductionPlan]:
        """
        Replay a bank statement's expenses.

        The first failing expense aborts the batch and nothing is saved.
        """
        correlation_id = correlation_id or create_correlation_id()

        async with self._user_lock(user_id):
            user = await self._storage.get_user_by_id(user_id)
            try:
                plans = process_account_statement(
                    user, statement, atomic=self._settings.atomic_deduction
                )
                await self._save(user, correlation_id)
            except LedgerError as e:
                await self._keep_partial_debits(user, e, correlation_id)
                await self._log_rejected(
                    AuditEventType.STATEMENT_REJECTED, user_id, e, correlation_id
                )
                raise
            except Exception as e:
                await self._log_error(e, user_id, correlation_id)
                raise

        if self._audit_logger:
            await self._audit_logger.log_statement_processed(
                user_id=user_id,
                account_number=statement.bank_account.account_number,
                expense_count=len(statement.expenses),
                correlation_id=correlation_id,
            )
            for expense, plan in zip(statement.expenses, plans):
                await self._audit_logger.log_expense_processed(
                    user_id=user_id,
                    amount=str(expense.amount),
                    deductions=_deductions_dict([plan]),
                    correlation_id=correlation_id,
                )
        return plans

    # -------------------------------------------------------------------------
    # Reporting
    # -------------------------------------------------------------------------

    async def get_period_summary(
        self,
        user_id: str,
        period: Period,
        correlation_id: Optional[UUID] = None,
    ) -> PeriodSummary:
        correlation_id = correlation_id or create_correlation_id()
        user = await self._storage.get_user_by_id(user_id)
        summary = get_period_summary(user, period)

        if self._audit_logger:
            await self._audit_logger.log_summary_generated(
                user_id=user_id,
                period=f"{period.start_date.date()}..{period.end_date.date()}",
                income_count=len(summary.incomes),
                expense_count=len(summary.expenses),
                correlation_id=correlation_id,
            )
        return summary

    async def check_income_status(self, user_id: str, period: Period) -> IncomeStatusReport:
        user = await self._storage.get_user_by_id(user_id)
        return check_income_status(user, period)

    async def get_audit_history(
        self,
        user_id: str,
        limit: Optional[int] = None,
    ) -> list[AuditEvent]:
        """A user's audit events, newest first."""
        if not self._audit_logger or not self._audit_logger.storage:
            return []
        limit = limit or self._settings.recent_events_limit
        events = await self._audit_logger.storage.get_events_by_user(user_id)
        return list(reversed(events))[:limit]

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    @asynccontextmanager
    async def _user_lock(self, user_id: str):
        """Hold the user's lock. It is dropped when nobody holds or waits for it."""
        lock = self._user_locks.get(user_id)
        if lock is None:
            lock = self._user_locks[user_id] = asyncio.Lock()
        self._lock_holders[user_id] += 1
        try:
            async with lock:
                yield
        finally:
            self._lock_holders[user_id] -= 1
            if not self._lock_holders[user_id]:
                del self._lock_holders[user_id]
                del self._user_locks[user_id]

    async def _save(self, user: User, correlation_id: UUID) -> None:
        await self._storage.save_user(user)
        if self._audit_logger:
            await self._audit_logger.log_user_saved(user.id, correlation_id)

    async def _keep_partial_debits(
        self,
        user: User,
        error: LedgerError,
        correlation_id: UUID,
    ) -> None:
        """In non-atomic mode, persist whatever the failed operation already did."""
        if self._settings.atomic_deduction:
            return
        if isinstance(error, InsufficientFundsAcrossCategoriesError):
            await self._save(user, correlation_id)

    async def _log_rejected(
        self,
        event_type: AuditEventType,
        user_id: str,
        error: LedgerError,
        correlation_id: UUID,
    ) -> None:
        if self._audit_logger:
            await self._audit_logger.log_rejected(event_type, user_id, error, correlation_id)

    async def _log_error(
        self,
        error: Exception,
        user_id: str,
        correlation_id: UUID,
    ) -> None:
        if self._audit_logger:
            await self._audit_logger.log_error(
                error_type=type(error).__name__,
                error_message=str(error),
                user_id=user_id,
                correlation_id=correlation_id,
            )


def create_finance_service(
    user_storage: Optional[UserStorageInterface] = None,
    audit: bool = True,
) -> FinanceService:
    """
    Factory function to create a fully wired FinanceService.

    Args:
        user_storage: Storage for users. Defaults to a fresh in-memory store.
        audit: Whether to keep an in-memory audit trail.
               Events are always written to the structured log.

    Returns:
        The service. Create it once at startup and share it.
    """
    configure_logging()
    settings = get_settings()

    audit_logger = AuditLogger(InMemoryAuditStorage() if audit else None)

    return FinanceService(
        user_storage=user_storage or InMemoryUserStorage(),
        audit_logger=audit_logger,
        settings=settings.ledger,
    )
