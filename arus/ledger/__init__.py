"""Ledger engine: allocation, waterfall deduction, statements and reporting."""

from arus.ledger.allocation import allocate_income, apply_allocations, compute_allocations
from arus.ledger.reporting import check_income_status, get_period_summary
from arus.ledger.statements import find_category_for_account, process_account_statement
from arus.ledger.waterfall import DEDUCTION_ORDER, plan_deduction, process_expense

__all__ = [
    "DEDUCTION_ORDER",
    "allocate_income",
    "apply_allocations",
    "check_income_status",
    "compute_allocations",
    "find_category_for_account",
    "get_period_summary",
    "plan_deduction",
    "process_account_statement",
    "process_expense",
]
