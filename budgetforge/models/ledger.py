"""
Core Data Models for BudgetForge

These models define the strict schemas for all ledger data flowing through the system.
They are designed to:
1. Enforce type safety at runtime
2. Provide clear validation error messages
3. Be serializable for storage and logging
4. Keep every record tied to exactly one owning user

DESIGN DECISION: Amounts are always stored as non-negative magnitudes.
The sign of a transaction is derived from its kind, never from the amount.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, Optional
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class EntryKind(str, Enum):
    """
    Kind of a ledger entry (and of the categories it may reference).
    """
    INCOME = "income"
    EXPENSE = "expense"


class LoanKind(str, Enum):
    """
    Kind of an informal loan record.

    HUTANG is money the user owes, PIUTANG is money owed to the user.
    """
    HUTANG = "hutang"
    PIUTANG = "piutang"


AMOUNT_MAX_DIGITS = 15
AMOUNT_DECIMAL_PLACES = 2

Amount = Annotated[
    Decimal,
    Field(
        ge=0,
        max_digits=AMOUNT_MAX_DIGITS,
        decimal_places=AMOUNT_DECIMAL_PLACES,
        description="Non-negative magnitude",
    ),
]


# =============================================================================
# LEDGER RECORDS
# =============================================================================

class LedgerEntry(BaseModel):
    """
    A single income or expense transaction.

    CRITICAL: category_id may point at a category that no longer exists.
    Consumers must treat such references as uncategorized.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(
        default_factory=uuid4,
        description="Unique entry ID (owned by the store)"
    )
    user_id: UUID = Field(
        ...,
        description="Owning user"
    )
    kind: EntryKind
    amount: Amount
    category_id: Optional[UUID] = Field(
        default=None,
        description="Category reference; None means uncategorized"
    )
    note: Optional[str] = Field(
        default=None,
        max_length=500,
        description="Free-text description"
    )
    occurred_on: date = Field(
        ...,
        description="Calendar date the entry is attributed to"
    )
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def signed_amount(self) -> Decimal:
        """Amount with the sign implied by the kind."""
        if self.kind == EntryKind.EXPENSE:
            return -self.amount
        return self.amount


class Category(BaseModel):
    """
    A user-owned label for ledger entries.

    A category only applies to entries of the same kind.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    user_id: UUID
    name: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Display label"
    )
    kind: EntryKind
    icon: Optional[str] = Field(
        default=None,
        max_length=50,
        description="Icon name used by the front end"
    )
    created_at: datetime = Field(default_factory=datetime.utcnow)


class LoanRecord(BaseModel):
    """
    One hutang (owed) or piutang (receivable) record.

    Loans live in their own ledger and are never mixed with income/expense entries.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    user_id: UUID
    kind: LoanKind
    amount: Amount
    note: Optional[str] = Field(default=None, max_length=500)
    occurred_on: date
    created_at: datetime = Field(default_factory=datetime.utcnow)


# =============================================================================
# AGGREGATION INPUTS - only the fields the sums depend on
# =============================================================================

class EntryFigures(BaseModel):
    """
    The part of a ledger entry that aggregation reads.

    A row is only rejected for its kind, amount or date. Ownership, notes
    and timestamps play no part in any sum, and an unreadable category
    reference counts as uncategorized.
    """
    model_config = ConfigDict(extra="ignore", from_attributes=True)

    kind: EntryKind
    amount: Annotated[Decimal, Field(ge=0)]
    occurred_on: date
    category_id: Optional[UUID] = None

    @field_validator("category_id", mode="before")
    @classmethod
    def unreadable_category_is_uncategorized(cls, v: Any) -> Optional[UUID]:
        if v is None or isinstance(v, UUID):
            return v
        try:
            return UUID(str(v))
        except ValueError:
            return None


class LoanFigures(BaseModel):
    """The part of a loan record that the loan summary reads."""
    model_config = ConfigDict(extra="ignore", from_attributes=True)

    kind: LoanKind
    amount: Annotated[Decimal, Field(ge=0)]


# Cloned for every new user (name, kind, icon)
DEFAULT_CATEGORIES: list[tuple[str, EntryKind, str]] = [
    ("Gaji", EntryKind.INCOME, "Banknote"),
    ("Investasi", EntryKind.INCOME, "TrendingUp"),
    ("Makanan", EntryKind.EXPENSE, "Utensils"),
    ("Transport", EntryKind.EXPENSE, "Car"),
    ("Belanja", EntryKind.EXPENSE, "ShoppingBag"),
    ("Tagihan", EntryKind.EXPENSE, "Receipt"),
]


# =============================================================================
# DRAFTS - proposed values coming from a form, not yet trusted
# =============================================================================

class EntryDraft(BaseModel):
    """
    Proposed values for creating or editing a ledger entry.

    All fields are optional so that an incomplete form can still be
    validated and reported on, field by field.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    kind: EntryKind = EntryKind.EXPENSE
    amount: Optional[Decimal] = None
    category_id: Optional[UUID] = None
    note: Optional[str] = Field(default=None, max_length=500)
    occurred_on: Optional[date] = None


class CategoryDraft(BaseModel):
    """Proposed values for a category."""
    model_config = ConfigDict(str_strip_whitespace=True)

    name: Optional[str] = None
    kind: EntryKind = EntryKind.EXPENSE
    icon: Optional[str] = None


class LoanDraft(BaseModel):
    """Proposed values for a loan record."""
    model_config = ConfigDict(str_strip_whitespace=True)

    kind: LoanKind = LoanKind.HUTANG
    amount: Optional[Decimal] = None
    note: Optional[str] = Field(default=None, max_length=500)
    occurred_on: Optional[date] = None


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_value', 'kind_mismatch')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = None


class ValidationResult(BaseModel):
    """
    Result of the two-stage validation.

    Stage 1: Schema validation (required fields, basic ranges)
    Stage 2: Semantic validation (category ownership and kind, suspicious values)
    """

    record_type: str = Field(
        ...,
        pattern="^(entry|category|loan)$",
        description="What kind of record was validated"
    )
    validated_at: datetime = Field(default_factory=datetime.utcnow)

    schema_valid: bool
    semantic_valid: bool
    is_valid: bool

    issues: list[ValidationIssue] = Field(default_factory=list)
    warnings: list[str] = Field(
        default_factory=list,
        description="Non-blocking warnings"
    )

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")
