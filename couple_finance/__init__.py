"""
Couple Finance - Source Package

Personal-finance tracking for two people sharing expenses:
income/expense entry, category analytics, monthly comparisons,
bulk import and a proportional expense-splitting calculator.

DESIGN PRINCIPLES:
1. Derived views are pure functions of the transaction list
2. Validate before accepting, never re-validate inside the engine
3. Edge cases resolve to documented fallbacks, not exceptions
4. Every mutation is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Couple Finance Team"
