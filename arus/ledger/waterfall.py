"""
Waterfall Deduction

Expenses are paid from categories in a fixed priority order:
Expense first, then Emergency, then Savings.

A category is drained to zero before the next one is touched.
So an expense only reaches the Emergency fund once the Expense
category is empty, and only reaches Savings once both are empty.

DESIGN DECISION: Planning is separate from applying. plan_deduction()
is pure; process_expense() applies a plan. With atomic=True (the
default) an expense that cannot be covered changes nothing. With
atomic=False the categories are debited one by one as they are
reached, so a failed expense leaves the earlier debits in place.
"""

from arus.errors import InsufficientFundsAcrossCategoriesError, NegativeAmountError
from arus.models.ledger import (
    CategoryKind,
    Deduction,
    DeductionPlan,
    Transaction,
    User,
)
from arus.models.money import CurrencyMismatchError, Money


DEDUCTION_ORDER: tuple[CategoryKind, ...] = (
    CategoryKind.EXPENSE,
    CategoryKind.EMERGENCY,
    CategoryKind.SAVINGS,
)


def plan_deduction(user: User, amount: Money) -> DeductionPlan:
    """
    Work out which categories pay for amount, without debiting anything.

    Categories the user does not have are skipped. Empty (or negative)
    categories contribute nothing.

    Raises:
        CurrencyMismatchError: amount is not in the user's currency,
            whatever the balances are
    """
    if amount.currency != user.currency:
        raise CurrencyMismatchError(user.currency, amount.currency)

    remaining = amount
    deductions = []

    for kind in DEDUCTION_ORDER:
        if not remaining.is_positive():
            break
        category = user.category(kind)
        if category is None or not category.balance.is_positive():
            continue

        if category.balance >= remaining:
            take = remaining
        else:
            take = category.balance
        deductions.append(Deduction(category=kind, amount=take))
        remaining = remaining.subtract(take)

    if remaining.is_negative():
        remaining = Money.zero(amount.currency)

    return DeductionPlan(requested=amount, deductions=deductions, shortfall=remaining)


def process_expense(
    user: User,
    expense: Transaction,
    atomic: bool = True,
) -> DeductionPlan:
    """
    Pay an expense from the user's categories and record it.

    Args:
        user: The paying user (mutated in place)
        expense: The expense; its amount is positive
        atomic: If False, debits already made stay applied when
                the expense turns out to be uncoverable

    Returns:
        The deduction plan that was applied

    Raises:
        InsufficientFundsAcrossCategoriesError: All categories together
            cannot cover the expense. The expense is not recorded.
        NegativeAmountError: The expense amount is below zero
        CurrencyMismatchError: The expense is in another currency
    """
    if expense.amount.is_negative():
        raise NegativeAmountError("expense", expense.amount)

    plan = plan_deduction(user, expense.amount)

    if not plan.is_covered and atomic:
        raise InsufficientFundsAcrossCategoriesError(
            requested=expense.amount,
            shortfall=plan.shortfall,
        )

    for deduction in plan.deductions:
        user.categories[deduction.category].debit(deduction.amount)

    if not plan.is_covered:
        raise InsufficientFundsAcrossCategoriesError(
            requested=expense.amount,
            shortfall=plan.shortfall,
            partially_applied=bool(plan.deductions),
        )

    user.expenses.append(expense)
    return plan
