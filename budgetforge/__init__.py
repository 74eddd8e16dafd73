"""
BudgetForge - Source Package

A personal finance tracker: income and expense entries, user-owned
categories, hutang/piutang loans, and the dashboard summaries built
from them.

DESIGN PRINCIPLES:
1. Every record belongs to exactly one user, passed explicitly
2. Fail early, fail visibly
3. No silent corrections
4. Every write must be auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "BudgetForge Team"
