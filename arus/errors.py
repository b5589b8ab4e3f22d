"""
Ledger Errors

Every failure of a ledger operation is a LedgerError subclass.
They are all recoverable by the caller: nothing here ends the process.

DESIGN DECISION: Errors carry the values that caused them as attributes,
not just a message, so the service layer can audit them as structured data.
"""

from decimal import Decimal
from typing import Any, Optional


class LedgerError(Exception):
    """Base exception for ledger operations."""

    code = "ledger_error"

    def to_details(self) -> dict[str, Any]:
        """Structured attributes for the audit trail."""
        return {}


class NegativeAmountError(LedgerError, ValueError):
    """An income or expense was given a negative amount."""

    code = "negative_amount"

    def __init__(self, kind: str, amount):
        self.kind = kind
        self.amount = amount
        super().__init__(f"{kind.capitalize()} amount cannot be negative: {amount}")

    def to_details(self) -> dict[str, Any]:
        return {"kind": self.kind, "amount": str(self.amount)}


class NoAllocationPlannedError(LedgerError):
    """Income arrived but the user has no allocation rules."""

    code = "no_allocation_planned"

    def __init__(self, user_id: Optional[str] = None):
        self.user_id = user_id
        super().__init__("User does not have an allocation planned")


class PercentageOverflowError(LedgerError):
    """Percentage rules add up to more than 100%."""

    code = "percentage_overflow"

    def __init__(self, total_percentage: Decimal):
        self.total_percentage = total_percentage
        super().__init__(
            f"Total allocation percentages exceed 100% ({total_percentage * 100}%)"
        )

    def to_details(self) -> dict[str, Any]:
        return {"total_percentage": str(self.total_percentage)}


class AllocationExceedsIncomeError(LedgerError):
    """Fixed-amount rules ask for more than the income provides."""

    code = "allocation_exceeds_income"

    def __init__(self, total_fixed, income):
        self.total_fixed = total_fixed
        self.income = income
        super().__init__(
            f"Fixed allocations ({total_fixed}) exceed income ({income})"
        )

    def to_details(self) -> dict[str, Any]:
        return {"total_fixed": str(self.total_fixed), "income": str(self.income)}


class UnknownCategoryError(LedgerError):
    """A rule names a category the user does not have."""

    code = "unknown_category"

    def __init__(self, category):
        self.category = category
        super().__init__(f"Category {_label(category)} does not exist")

    def to_details(self) -> dict[str, Any]:
        return {"category": _label(self.category)}


class InsufficientFundsError(LedgerError):
    """A single category cannot cover a debit."""

    code = "insufficient_funds"

    def __init__(self, category, balance, requested):
        self.category = category
        self.balance = balance
        self.requested = requested
        super().__init__(f"Insufficient funds in category {_label(category)}")

    def to_details(self) -> dict[str, Any]:
        return {
            "category": _label(self.category),
            "balance": str(self.balance),
            "requested": str(self.requested),
        }


class InsufficientFundsAcrossCategoriesError(LedgerError):
    """The waterfall ran dry before the expense was covered."""

    code = "insufficient_funds_across_categories"

    def __init__(self, requested, shortfall, partially_applied: bool = False):
        self.requested = requested
        self.shortfall = shortfall
        self.partially_applied = partially_applied
        super().__init__(
            f"Insufficient funds across all categories: {shortfall} short of {requested}"
        )

    def to_details(self) -> dict[str, Any]:
        return {
            "requested": str(self.requested),
            "shortfall": str(self.shortfall),
            "partially_applied": self.partially_applied,
        }


class UnknownBankAccountError(LedgerError):
    """A statement's bank account is not linked to any category."""

    code = "unknown_bank_account"

    def __init__(self, account_number: str, bank_name: str):
        self.account_number = account_number
        self.bank_name = bank_name
        super().__init__(
            f"No category associated with bank account {account_number} at {bank_name}"
        )

    def to_details(self) -> dict[str, Any]:
        return {"account_number": self.account_number, "bank_name": self.bank_name}


class AllocationPlanRejectedError(LedgerError):
    """An allocation plan failed validation and was not stored."""

    code = "allocation_plan_rejected"

    def __init__(self, result):
        self.result = result
        messages = [issue.message for issue in result.issues if issue.severity == "error"]
        super().__init__("Allocation plan rejected: " + "; ".join(messages))

    def to_details(self) -> dict[str, Any]:
        return {
            "issues": [
                {"field": i.field, "type": i.issue_type, "message": i.message}
                for i in self.result.issues
            ]
        }


def _label(category) -> str:
    # CategoryKind or a plain string
    return getattr(category, "label", None) or str(category)
