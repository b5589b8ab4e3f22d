"""
Data Models Package

This package contains all Pydantic models used by the ledger.
All data flowing through the system must conform to these schemas.
"""

from arus.models.money import CurrencyMismatchError, Money, sum_money
from arus.models.ledger import (
    STARTER_ACCOUNTS,
    AccountStatement,
    AllocationKind,
    AllocationRule,
    BankAccount,
    Category,
    CategoryKind,
    Deduction,
    DeductionPlan,
    IncomeStatus,
    IncomeStatusReport,
    Period,
    PeriodSummary,
    Statement,
    Transaction,
    User,
)
from arus.models.validation import ValidationIssue, ValidationResult
from arus.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Money
    "CurrencyMismatchError",
    "Money",
    "sum_money",
    # Ledger models
    "STARTER_ACCOUNTS",
    "AccountStatement",
    "AllocationKind",
    "AllocationRule",
    "BankAccount",
    "Category",
    "CategoryKind",
    "Deduction",
    "DeductionPlan",
    "IncomeStatus",
    "IncomeStatusReport",
    "Period",
    "PeriodSummary",
    "Statement",
    "Transaction",
    "User",
    # Validation models
    "ValidationIssue",
    "ValidationResult",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
