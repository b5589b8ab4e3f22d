"""
Period Reporting

Totals are always re-derived from the transaction logs; nothing is
cached. get_period_summary() is a pure function of the logs and the
period, so calling it twice gives the same answer.
"""

from arus.models.ledger import (
    CategoryKind,
    IncomeStatus,
    IncomeStatusReport,
    Period,
    PeriodSummary,
    User,
)
from arus.models.money import sum_money


RESERVE_CATEGORIES = (CategoryKind.EMERGENCY, CategoryKind.SAVINGS)


def get_period_summary(user: User, period: Period) -> PeriodSummary:
    """Filter both logs by period and total them."""
    currency = user.currency
    incomes = [t for t in user.incomes if period.contains(t.date)]
    expenses = [t for t in user.expenses if period.contains(t.date)]

    return PeriodSummary(
        period=period,
        incomes=incomes,
        expenses=expenses,
        total_income=sum_money((t.amount for t in incomes), currency),
        total_expense=sum_money((t.amount for t in expenses), currency),
    )


def reserves_below_baseline(user: User) -> list[CategoryKind]:
    """Reserve categories whose balance has dropped below zero."""
    used = []
    for kind in RESERVE_CATEGORIES:
        category = user.category(kind)
        if category is not None and category.balance.is_negative():
            used.append(kind)
    return used


def _reserves_warning(used: list[CategoryKind]) -> str:
    funds = " and ".join(f"{kind.label} funds" for kind in used)
    return (
        f"Warning: You have used {funds} to cover your expenses. "
        "Consider adjusting your lifestyle or increasing your income."
    )


def check_income_status(user: User, period: Period) -> IncomeStatusReport:
    """
    Classify the period.

    Reserves below their zero baseline win over everything else.
    Otherwise income is compared with expenses for the period.
    """
    summary = get_period_summary(user, period)
    used = reserves_below_baseline(user)

    if used:
        status = IncomeStatus.RESERVES_USED
        message = _reserves_warning(used)
    elif summary.total_income >= summary.total_expense:
        status = IncomeStatus.INCOME_COVERS_EXPENSES
        message = "Your income covers your expenses."
    else:
        status = IncomeStatus.EXPENSES_EXCEED_INCOME
        message = "Your expenses exceed your income."

    return IncomeStatusReport(
        status=status,
        message=message,
        reserves_used=used,
        total_income=summary.total_income,
        total_expense=summary.total_expense,
    )
