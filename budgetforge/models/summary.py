"""
Summary Models

Display-ready shapes produced by the aggregation engine and consumed by
the presentation layer (cards and charts).
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from budgetforge.models.ledger import EntryKind, LedgerEntry


ZERO = Decimal("0")


class Totals(BaseModel):
    """Running totals over a set of entries."""

    total_income: Decimal = ZERO
    total_expense: Decimal = ZERO
    balance: Decimal = Field(
        default=ZERO,
        description="total_income - total_expense, may be negative"
    )

    @property
    def is_surplus(self) -> bool:
        return self.balance >= 0


class MonthlyTrendPoint(BaseModel):
    """Income and expense for one calendar month."""

    year: int
    month: int = Field(ge=1, le=12)
    period_label: str = Field(
        ...,
        description="Display label such as 'Jan 2024'. Never used as a grouping key."
    )
    income: Decimal = ZERO
    expense: Decimal = ZERO

    @property
    def net(self) -> Decimal:
        return self.income - self.expense


class CategoryTotal(BaseModel):
    """Sum of one category bucket."""

    category_id: Optional[UUID] = Field(
        default=None,
        description="None for the synthetic uncategorized bucket"
    )
    category_name: str
    total: Decimal = ZERO
    entry_count: int = Field(default=0, ge=0)


class RankedCategory(BaseModel):
    """A category bucket prepared for a distribution chart."""

    category_id: Optional[UUID] = None
    category_name: str
    total: Decimal
    percentage: int = Field(ge=0, le=100)
    color: str
    rank: int = Field(ge=1)


class LoanSummary(BaseModel):
    """Totals over the hutang/piutang ledger."""

    total_owed: Decimal = ZERO
    total_receivable: Decimal = ZERO
    net_position: Decimal = Field(
        default=ZERO,
        description="total_receivable - total_owed"
    )
    loan_count: int = 0


class DashboardSummary(BaseModel):
    """Everything the dashboard page renders."""

    user_id: UUID
    generated_at: datetime = Field(default_factory=datetime.utcnow)
    date_from: Optional[date] = None
    date_to: Optional[date] = None

    totals: Totals
    monthly_trend: list[MonthlyTrendPoint] = Field(default_factory=list)
    top_categories: list[RankedCategory] = Field(default_factory=list)
    recent_entries: list[LedgerEntry] = Field(default_factory=list)
    loans: LoanSummary = Field(default_factory=LoanSummary)
    skipped_records: int = 0


class AnalysisSummary(BaseModel):
    """Everything the analysis page renders."""

    user_id: UUID
    generated_at: datetime = Field(default_factory=datetime.utcnow)
    kind: EntryKind = EntryKind.EXPENSE
    monthly_trend: list[MonthlyTrendPoint] = Field(default_factory=list)
    categories: list[RankedCategory] = Field(default_factory=list)
