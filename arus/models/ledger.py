"""
Core Data Models for the Ledger

These models define the schemas of everything a user owns:
categories, allocation rules and the two transaction logs.
They are designed to:
1. Validate on construction (bad rules never reach the engine)
2. Serialize to JSON with stable field names
3. Round-trip through storage unchanged

DESIGN DECISION: Category identity is a closed enum, not free text.
The waterfall order and the starter categories depend on exactly
these three kinds.
"""

import calendar
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)

from arus.errors import InsufficientFundsError
from arus.models.money import Money, sum_money


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC so comparisons never mix the two."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def utc_now() -> datetime:
    return datetime.now(tz=timezone.utc)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class CategoryKind(str, Enum):
    """
    The three spending categories every user has.

    Declaration order is also the waterfall deduction order.
    """
    EXPENSE = "expense"
    EMERGENCY = "emergency"
    SAVINGS = "savings"

    @property
    def label(self) -> str:
        return self.value.capitalize()

    @property
    def is_reserve(self) -> bool:
        """Reserves are only touched once the Expense category is empty."""
        return self is not CategoryKind.EXPENSE


class AllocationKind(str, Enum):
    """How an allocation rule takes its share of income."""
    FIXED_AMOUNT = "fixed_amount"
    PERCENTAGE = "percentage"


class IncomeStatus(str, Enum):
    """Classification produced by the income status check."""
    RESERVES_USED = "reserves_used"
    INCOME_COVERS_EXPENSES = "income_covers_expenses"
    EXPENSES_EXCEED_INCOME = "expenses_exceed_income"


# =============================================================================
# CATEGORIES
# =============================================================================

class BankAccount(BaseModel):
    """The bank account that backs a category."""
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    account_number: str = Field(
        ...,
        min_length=1,
        max_length=50,
        description="Account number at the bank"
    )
    bank_name: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Name of the bank"
    )


STARTER_ACCOUNTS: dict[CategoryKind, BankAccount] = {
    CategoryKind.EXPENSE: BankAccount(account_number="EXP123", bank_name="Expense Bank"),
    CategoryKind.EMERGENCY: BankAccount(account_number="EMG123", bank_name="Emergency Bank"),
    CategoryKind.SAVINGS: BankAccount(account_number="SAV123", bank_name="Savings Bank"),
}


class Category(BaseModel):
    """
    A bucket of money owned by one user.

    credit() and debit() are the only ways the balance changes.
    The balance currency is fixed when the category is created.
    """

    kind: CategoryKind
    balance: Money
    bank_account: BankAccount

    def credit(self, amount: Money) -> None:
        """Add funds. Never fails (apart from a currency mismatch)."""
        self.balance = self.balance.add(amount)

    def debit(self, amount: Money) -> None:
        """
        Remove funds.

        Raises:
            InsufficientFundsError: If the balance is smaller than amount
        """
        if self.balance < amount:
            raise InsufficientFundsError(
                category=self.kind,
                balance=self.balance,
                requested=amount,
            )
        self.balance = self.balance.subtract(amount)


# =============================================================================
# ALLOCATION RULES
# =============================================================================

class AllocationRule(BaseModel):
    """
    How incoming funds flow into one category.

    Fixed rules are taken off the top of the income first.
    Percentage rules then split what is left.
    """
    model_config = ConfigDict(frozen=True)

    category: CategoryKind = Field(
        ...,
        description="Category credited by this rule"
    )
    kind: AllocationKind = Field(
        ...,
        description="Fixed amount or percentage of remaining income"
    )
    amount: Optional[Money] = Field(
        default=None,
        description="Amount for fixed rules"
    )
    percentage: Optional[Decimal] = Field(
        default=None,
        ge=0,
        le=1,
        description="Fraction (0-1) of remaining income for percentage rules"
    )

    @model_validator(mode='after')
    def validate_kind_fields(self) -> 'AllocationRule':
        if self.kind == AllocationKind.FIXED_AMOUNT:
            if self.amount is None:
                raise ValueError("Fixed amount rule requires an amount")
            if self.amount.is_negative():
                raise ValueError("Fixed amount cannot be negative")
            if self.percentage is not None:
                raise ValueError("Fixed amount rule cannot have a percentage")
        else:
            if self.percentage is None:
                raise ValueError("Percentage rule requires a percentage")
            if self.amount is not None:
                raise ValueError("Percentage rule cannot have an amount")
        return self

    @classmethod
    def fixed(cls, category: CategoryKind, amount: Money) -> "AllocationRule":
        return cls(category=category, kind=AllocationKind.FIXED_AMOUNT, amount=amount)

    @classmethod
    def percent(cls, category: CategoryKind, percentage) -> "AllocationRule":
        return cls(
            category=category,
            kind=AllocationKind.PERCENTAGE,
            percentage=Decimal(str(percentage)),
        )


# =============================================================================
# TRANSACTIONS AND PERIODS
# =============================================================================

class Transaction(BaseModel):
    """
    One income or expense.

    Created once and appended to a log. Never mutated or removed.
    Expenses are recorded with positive amounts; which log a
    transaction sits in says whether it is income or expense.
    """
    model_config = ConfigDict(frozen=True)

    amount: Money
    date: datetime = Field(default_factory=utc_now)
    description: str = Field(default="", max_length=500)

    @field_validator('date')
    @classmethod
    def normalize_date(cls, v: datetime) -> datetime:
        return as_utc(v)


class Period(BaseModel):
    """An inclusive date range used to bucket transactions."""
    model_config = ConfigDict(frozen=True)

    start_date: datetime
    end_date: datetime

    @field_validator('start_date', 'end_date')
    @classmethod
    def normalize_dates(cls, v: datetime) -> datetime:
        return as_utc(v)

    @model_validator(mode='after')
    def validate_range(self) -> 'Period':
        if self.end_date < self.start_date:
            raise ValueError("Period end cannot be before start")
        return self

    def contains(self, moment: datetime) -> bool:
        """True when moment falls inside the period, both ends included."""
        moment = as_utc(moment)
        return self.start_date <= moment <= self.end_date

    @classmethod
    def for_month(cls, year: int, month: int) -> "Period":
        """The whole calendar month, up to the last microsecond of its last day."""
        start = datetime(year, month, 1, tzinfo=timezone.utc)
        last_day = calendar.monthrange(year, month)[1]
        end = datetime(year, month, last_day, tzinfo=timezone.utc)
        return cls(
            start_date=start,
            end_date=end + timedelta(days=1) - timedelta(microseconds=1),
        )


# =============================================================================
# STATEMENTS
# =============================================================================

class AccountStatement(BaseModel):
    """A batch of expenses reported by one bank account."""

    bank_account: BankAccount
    expenses: list[Transaction] = Field(default_factory=list)


class Statement(BaseModel):
    """
    A single bank-side statement line.

    Amount is in minor units (cents). Empty fields are left out
    of the JSON form.
    """

    id: str = ""
    bank_id: str = ""
    amount: int = 0

    def to_json(self) -> str:
        return self.model_dump_json(exclude_defaults=True)


# =============================================================================
# USER (the unit of persistence)
# =============================================================================

class User(BaseModel):
    """
    A user's whole ledger.

    Owns its categories exclusively. The income and expense logs
    are append-only.
    """

    id: str = Field(..., min_length=1, max_length=100)
    categories: dict[CategoryKind, Category] = Field(default_factory=dict)
    allocation_rules: list[AllocationRule] = Field(default_factory=list)
    incomes: list[Transaction] = Field(default_factory=list)
    expenses: list[Transaction] = Field(default_factory=list)

    @classmethod
    def new(cls, user_id: str, currency: str = "USD") -> "User":
        """Create a user with the starter Expense, Emergency and Savings categories."""
        return cls(
            id=user_id,
            categories={
                kind: Category(
                    kind=kind,
                    balance=Money.zero(currency),
                    bank_account=account,
                )
                for kind, account in STARTER_ACCOUNTS.items()
            },
        )

    @property
    def currency(self) -> str:
        expense = self.categories.get(CategoryKind.EXPENSE)
        if expense is not None:
            return expense.balance.currency
        for category in self.categories.values():
            return category.balance.currency
        return "USD"

    def category(self, kind: CategoryKind) -> Optional[Category]:
        return self.categories.get(kind)

    def balances(self) -> dict[CategoryKind, Money]:
        return {kind: category.balance for kind, category in self.categories.items()}

    def total_balance(self) -> Money:
        return sum_money(
            (category.balance for category in self.categories.values()),
            self.currency,
        )


# =============================================================================
# RESULT MODELS
# =============================================================================

class Deduction(BaseModel):
    """One step of a waterfall deduction."""
    model_config = ConfigDict(frozen=True)

    category: CategoryKind
    amount: Money


class DeductionPlan(BaseModel):
    """
    The debits needed to cover an expense, in waterfall order.

    A positive shortfall means the categories cannot cover it.
    """

    requested: Money
    deductions: list[Deduction] = Field(default_factory=list)
    shortfall: Money

    @property
    def is_covered(self) -> bool:
        return not self.shortfall.is_positive()

    @property
    def total_deducted(self) -> Money:
        return sum_money((d.amount for d in self.deductions), self.requested.currency)

    def amount_for(self, kind: CategoryKind) -> Money:
        for deduction in self.deductions:
            if deduction.category == kind:
                return deduction.amount
        return Money.zero(self.requested.currency)


class PeriodSummary(BaseModel):
    """Transactions and totals for one period."""

    period: Period
    incomes: list[Transaction] = Field(default_factory=list)
    expenses: list[Transaction] = Field(default_factory=list)
    total_income: Money
    total_expense: Money

    @property
    def net(self) -> Money:
        return self.total_income.subtract(self.total_expense)


class IncomeStatusReport(BaseModel):
    """Result of checking whether income covered a period's expenses."""

    status: IncomeStatus
    message: str
    reserves_used: list[CategoryKind] = Field(default_factory=list)
    total_income: Money
    total_expense: Money
