"""
Arus - Source Package

A personal budgeting ledger. Income is split across spending categories
by allocation rules; expenses drain the categories in a fixed priority
order (Expense, then Emergency, then Savings).

DESIGN PRINCIPLES:
1. Exact decimal money, never floats
2. Validate everything before mutating anything
3. Append-only transaction logs
4. Every ledger change is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Arus Team"
