"""
Data Models Package

This package contains all Pydantic models used in BudgetForge.
All data flowing through the system must conform to these schemas.
"""

from budgetforge.models.ledger import (
    DEFAULT_CATEGORIES,
    Category,
    CategoryDraft,
    EntryDraft,
    EntryFigures,
    EntryKind,
    LedgerEntry,
    LoanDraft,
    LoanFigures,
    LoanKind,
    LoanRecord,
    ValidationIssue,
    ValidationResult,
)
from budgetforge.models.summary import (
    AnalysisSummary,
    CategoryTotal,
    DashboardSummary,
    LoanSummary,
    MonthlyTrendPoint,
    RankedCategory,
    Totals,
)
from budgetforge.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "DEFAULT_CATEGORIES",
    "Category",
    "CategoryDraft",
    "EntryDraft",
    "EntryFigures",
    "EntryKind",
    "LedgerEntry",
    "LoanDraft",
    "LoanFigures",
    "LoanKind",
    "LoanRecord",
    "ValidationIssue",
    "ValidationResult",
    # Summary models
    "AnalysisSummary",
    "CategoryTotal",
    "DashboardSummary",
    "LoanSummary",
    "MonthlyTrendPoint",
    "RankedCategory",
    "Totals",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
