"""
Aggregation Engine

Turns a user's ledger entries into display-ready summaries:
running totals, a monthly income/expense trend and a per-category
distribution. Loans get their own summary and are never mixed in.

DESIGN DECISION: Aggregation is PURE and DETERMINISTIC.
It never touches storage and never reads the current user from ambient
state. Callers pass the already-fetched records in explicitly.

MALFORMED RECORDS: a record whose kind, amount or date cannot be parsed
(non-numeric or negative amount, unparseable date, unknown kind) is
EXCLUDED from every sum and logged. It never aborts the rest of the batch.
Other fields are not read here, so a missing owner or an over-long note
does not drop a row, and an unreadable category_id is uncategorized.
"""

from decimal import Decimal
from typing import Any, Iterable, Optional, TypeVar, Union
from uuid import UUID

import structlog
from pydantic import BaseModel, ValidationError

from budgetforge.aggregation.charts import format_month_label, month_abbreviations
from budgetforge.models.ledger import (
    Category,
    EntryFigures,
    EntryKind,
    LedgerEntry,
    LoanFigures,
    LoanKind,
    LoanRecord,
)
from budgetforge.models.summary import (
    ZERO,
    CategoryTotal,
    LoanSummary,
    MonthlyTrendPoint,
    Totals,
)


logger = structlog.get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

EntryInput = Union[LedgerEntry, EntryFigures, dict[str, Any]]
LoanInput = Union[LoanRecord, LoanFigures, dict[str, Any]]


def _coerce(
    records: Iterable[Any],
    model: type[ModelT],
) -> tuple[list[ModelT], int]:
    """Parse records into `model`, dropping the ones that don't fit."""
    parsed: list[ModelT] = []
    skipped = 0

    for record in records:
        if isinstance(record, model):
            parsed.append(record)
            continue
        try:
            parsed.append(model.model_validate(record, from_attributes=True))
        except ValidationError as e:
            skipped += 1
            logger.warning(
                "ledger_record_skipped",
                record_type=model.__name__,
                record_id=_record_id(record),
                errors=[error["loc"] for error in e.errors()],
            )

    return parsed, skipped


def _record_id(record: Any) -> Optional[str]:
    if isinstance(record, dict):
        record_id = record.get("id")
    else:
        record_id = getattr(record, "id", None)
    return str(record_id) if record_id is not None else None


def coerce_entries(records: Iterable[EntryInput]) -> tuple[list[EntryFigures], int]:
    """
    Parse raw rows or entries into the figures aggregation reads.

    Returns:
        (entries, skipped_count)
    """
    return _coerce(records, EntryFigures)


def coerce_loans(records: Iterable[LoanInput]) -> tuple[list[LoanFigures], int]:
    """Parse raw rows or loans into the figures the loan summary reads."""
    return _coerce(records, LoanFigures)


def compute_totals(entries: Iterable[EntryInput]) -> Totals:
    """
    Sum income and expense and derive the balance.

    Empty input gives zero for all three values.
    """
    parsed, _ = coerce_entries(entries)

    total_income = sum(
        (entry.amount for entry in parsed if entry.kind == EntryKind.INCOME), ZERO
    )
    total_expense = sum(
        (entry.amount for entry in parsed if entry.kind == EntryKind.EXPENSE), ZERO
    )

    return Totals(
        total_income=total_income,
        total_expense=total_expense,
        balance=total_income - total_expense,
    )


def compute_monthly_trend(
    entries: Iterable[EntryInput],
    locale: str = "en",
) -> list[MonthlyTrendPoint]:
    """
    Income and expense per calendar month.

    Entries are grouped by the (year, month) of their date. The label is
    only formatted for display, so "Mar 2023" and "Mar 2024" never merge.

    Points come out in the order their month was first seen. Pass entries
    sorted ascending by date (the store does) for a chronological trend.
    """
    month_abbreviations(locale)
    parsed, _ = coerce_entries(entries)

    months: dict[tuple[int, int], dict[EntryKind, Decimal]] = {}
    for entry in parsed:
        key = (entry.occurred_on.year, entry.occurred_on.month)
        if key not in months:
            months[key] = {EntryKind.INCOME: ZERO, EntryKind.EXPENSE: ZERO}
        months[key][entry.kind] += entry.amount

    return [
        MonthlyTrendPoint(
            year=year,
            month=month,
            period_label=format_month_label(year, month, locale),
            income=sums[EntryKind.INCOME],
            expense=sums[EntryKind.EXPENSE],
        )
        for (year, month), sums in months.items()
    ]


def compute_category_breakdown(
    entries: Iterable[EntryInput],
    categories: Iterable[Category] = (),
    kind_filter: EntryKind = EntryKind.EXPENSE,
    uncategorized_label: str = "Uncategorized",
) -> list[CategoryTotal]:
    """
    Sum entries of one kind per category.

    Entries without a category, or pointing at a category that is not in
    `categories` (deleted or dangling), share one synthetic bucket with
    category_id=None.

    Buckets come out in the order they were first seen; use
    charts.rank_categories to sort and truncate for display.
    """
    names: dict[UUID, str] = {category.id: category.name for category in categories}
    parsed, _ = coerce_entries(entries)

    buckets: dict[Optional[UUID], CategoryTotal] = {}
    for entry in parsed:
        if entry.kind != kind_filter:
            continue

        key = entry.category_id if entry.category_id in names else None
        bucket = buckets.get(key)
        if bucket is None:
            bucket = CategoryTotal(
                category_id=key,
                category_name=names[key] if key is not None else uncategorized_label,
            )
            buckets[key] = bucket

        bucket.total += entry.amount
        bucket.entry_count += 1

    return list(buckets.values())


def compute_loan_summary(loans: Iterable[LoanInput]) -> LoanSummary:
    """Totals over hutang (owed) and piutang (receivable) records."""
    parsed, _ = coerce_loans(loans)

    total_owed = sum(
        (loan.amount for loan in parsed if loan.kind == LoanKind.HUTANG), ZERO
    )
    total_receivable = sum(
        (loan.amount for loan in parsed if loan.kind == LoanKind.PIUTANG), ZERO
    )

    return LoanSummary(
        total_owed=total_owed,
        total_receivable=total_receivable,
        net_position=total_receivable - total_owed,
        loan_count=len(parsed),
    )


def select_recent_entries(
    entries: Iterable[EntryInput],
    limit: int = 5,
) -> list[LedgerEntry]:
    """Newest entries first (by date, then creation time)."""
    if limit <= 0:
        return []

    parsed, _ = _coerce(entries, LedgerEntry)
    parsed.sort(key=lambda entry: (entry.occurred_on, entry.created_at), reverse=True)
    return parsed[:limit]
