"""Aggregation package."""

from budgetforge.aggregation.charts import (
    DEFAULT_PALETTE,
    format_currency,
    format_month_label,
    percentage_of,
    rank_categories,
)
from budgetforge.aggregation.engine import (
    coerce_entries,
    coerce_loans,
    compute_category_breakdown,
    compute_loan_summary,
    compute_monthly_trend,
    compute_totals,
    select_recent_entries,
)

__all__ = [
    "DEFAULT_PALETTE",
    "coerce_entries",
    "coerce_loans",
    "compute_category_breakdown",
    "compute_loan_summary",
    "compute_monthly_trend",
    "compute_totals",
    "format_currency",
    "format_month_label",
    "percentage_of",
    "rank_categories",
    "select_recent_entries",
]
