"""
Income Allocation

Splits incoming money across a user's categories according to the
user's allocation rules.

DESIGN DECISION: Two passes. The first pass totals the rules and
checks them against the income; the second pass credits categories.
Nothing is credited until every check has passed, so a rejected
income leaves all balances untouched.

Fixed amounts come off the top. Percentage rules are applied to
what remains after the fixed carve-outs.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from arus.errors import (
    AllocationExceedsIncomeError,
    NegativeAmountError,
    NoAllocationPlannedError,
    PercentageOverflowError,
    UnknownCategoryError,
)
from arus.models.ledger import (
    AllocationKind,
    AllocationRule,
    Category,
    Transaction,
    User,
    utc_now,
)
from arus.models.money import CurrencyMismatchError, Money, sum_money


def total_fixed(rules: list[AllocationRule], currency: str) -> Money:
    return sum_money(
        (rule.amount for rule in rules if rule.kind == AllocationKind.FIXED_AMOUNT),
        currency,
    )


def total_percentage(rules: list[AllocationRule]) -> Decimal:
    return sum(
        (rule.percentage for rule in rules if rule.kind == AllocationKind.PERCENTAGE),
        Decimal("0"),
    )


def compute_allocations(
    user: User,
    income: Money,
) -> list[tuple[Category, Money]]:
    """
    Work out what each rule credits, without touching any balance.

    Returns (category, amount) pairs in rule order.

    Raises:
        NegativeAmountError: The income is below zero
        CurrencyMismatchError: The income is not in the user's currency
        NoAllocationPlannedError: The user has no rules
        AllocationExceedsIncomeError: Fixed rules ask for more than the income
        PercentageOverflowError: Percentage rules add up to more than 1
        UnknownCategoryError: A rule names a category the user lacks
    """
    if income.is_negative():
        raise NegativeAmountError("income", income)
    if income.currency != user.currency:
        raise CurrencyMismatchError(user.currency, income.currency)

    rules = user.allocation_rules
    if not rules:
        raise NoAllocationPlannedError(user.id)

    fixed = total_fixed(rules, income.currency)
    percentage = total_percentage(rules)

    if fixed > income:
        raise AllocationExceedsIncomeError(total_fixed=fixed, income=income)
    if percentage > 1:
        raise PercentageOverflowError(percentage)

    remaining = income.subtract(fixed)

    allocations = []
    for rule in rules:
        category = user.category(rule.category)
        if category is None:
            raise UnknownCategoryError(rule.category)

        if rule.kind == AllocationKind.FIXED_AMOUNT:
            amount = rule.amount
        else:
            amount = remaining.multiply(rule.percentage)
        allocations.append((category, amount))

    return allocations


def apply_allocations(
    user: User,
    income: Money,
    allocations: list[tuple[Category, Money]],
    date: Optional[datetime] = None,
    description: str = "",
) -> Transaction:
    """
    Credit allocations from compute_allocations() and record the income.

    The categories must belong to user, as returned by compute_allocations().
    """
    for category, amount in allocations:
        category.credit(amount)

    transaction = Transaction(
        amount=income,
        date=date or utc_now(),
        description=description,
    )
    user.incomes.append(transaction)
    return transaction


def allocate_income(
    user: User,
    income: Money,
    date: Optional[datetime] = None,
    description: str = "",
) -> Transaction:
    """
    Split income across the user's categories and record it.

    Args:
        user: The user receiving the income (mutated in place)
        income: Amount received
        date: When it was received (defaults to now)
        description: Free text, e.g. "September salary"

    Returns:
        The income transaction appended to user.incomes
    """
    allocations = compute_allocations(user, income)
    return apply_allocations(user, income, allocations, date, description)
