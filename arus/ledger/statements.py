"""
Account Statement Replay

A statement is a batch of expenses reported by one bank account.
The account must be linked to one of the user's categories; the
expenses are then replayed through the waterfall in list order.

The first failing expense aborts the rest of the batch. Expenses
processed before it stay processed.
"""

from arus.errors import UnknownBankAccountError
from arus.ledger.waterfall import process_expense
from arus.models.ledger import (
    AccountStatement,
    BankAccount,
    Category,
    DeductionPlan,
    User,
)


def find_category_for_account(user: User, bank_account: BankAccount) -> Category:
    """
    Find the category backed by bank_account.

    Both the account number and the bank name must match.

    Raises:
        UnknownBankAccountError: No category uses this account
    """
    for category in user.categories.values():
        if (
            category.bank_account.account_number == bank_account.account_number
            and category.bank_account.bank_name == bank_account.bank_name
        ):
            return category
    raise UnknownBankAccountError(bank_account.account_number, bank_account.bank_name)


def process_account_statement(
    user: User,
    statement: AccountStatement,
    atomic: bool = True,
) -> list[DeductionPlan]:
    """Replay a statement's expenses. Returns the plans applied, in order."""
    find_category_for_account(user, statement.bank_account)

    plans = []
    for expense in statement.expenses:
        plans.append(process_expense(user, expense, atomic=atomic))
    return plans
