"""
Two-Stage Validation Pipeline

DESIGN DECISION: Every form submission is validated in two stages
BEFORE anything is written to the ledger store.

STAGE 1 - SCHEMA VALIDATION:
- Required field presence
- Positive amounts
- Non-empty names
- This catches incomplete or nonsensical forms

STAGE 2 - SEMANTIC VALIDATION:
- The chosen category belongs to the user and matches the entry kind
- Category names are unique per kind
- Future date detection
- Absurd amount detection
- This catches logically impossible or suspicious data

Stage 2 only runs when stage 1 passes, and needs the store for lookups.

IMPORTANT: Validation NEVER silently fixes issues.
It reports them and lets the caller decide.
"""

from datetime import date, timedelta
from decimal import Decimal
from typing import Optional
from uuid import UUID

from budgetforge.config import get_settings
from budgetforge.models.ledger import (
    AMOUNT_DECIMAL_PLACES,
    AMOUNT_MAX_DIGITS,
    CategoryDraft,
    EntryDraft,
    LoanDraft,
    ValidationIssue,
    ValidationResult,
)
from budgetforge.services.storage import LedgerStoreInterface


# Largest whole part that still fits the stored amount column
AMOUNT_LIMIT = Decimal(10) ** (AMOUNT_MAX_DIGITS - AMOUNT_DECIMAL_PLACES)
ICON_MAX_LENGTH = 50


class RecordValidator:
    """
    Validates entry, category and loan drafts.

    Stage 1: Schema validation (can run without storage)
    Stage 2: Semantic validation (uses storage for category lookups)
    """

    def __init__(
        self,
        store: Optional[LedgerStoreInterface] = None,
    ):
        """
        Initialize validator.

        Args:
            store: Ledger store for category lookups.
                   If None, checks that need storage are skipped.
        """
        self._store = store
        self._settings = get_settings().app

    # -------------------------------------------------------------------------
    # Shared checks
    # -------------------------------------------------------------------------

    @staticmethod
    def _check_amount(amount: Optional[Decimal], issues: list[ValidationIssue]) -> None:
        if amount is None:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="missing",
                message="Amount is required",
                severity="error",
            ))
        elif not amount.is_finite() or amount <= 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Amount must be greater than zero",
                severity="error",
                suggested_fix="Enter the amount as a positive number",
            ))
        elif amount >= AMOUNT_LIMIT:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Amount is too large",
                severity="error",
                suggested_fix=f"Enter an amount below {AMOUNT_LIMIT:,.0f}",
            ))
        elif amount.as_tuple().exponent < -AMOUNT_DECIMAL_PLACES:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_format",
                message="Amount can have at most two decimal places",
                severity="error",
            ))

    @staticmethod
    def _check_date(occurred_on: Optional[date], issues: list[ValidationIssue]) -> None:
        if occurred_on is None:
            issues.append(ValidationIssue(
                field="occurred_on",
                issue_type="missing",
                message="Date is required",
                severity="error",
            ))

    def _check_plausibility(
        self,
        amount: Decimal,
        occurred_on: date,
        issues: list[ValidationIssue],
    ) -> None:
        max_future_date = date.today() + timedelta(
            days=self._settings.future_date_tolerance_days
        )
        if occurred_on > max_future_date:
            issues.append(ValidationIssue(
                field="occurred_on",
                issue_type="future_date",
                message=f"Date ({occurred_on}) is in the future",
                severity="warning",
                suggested_fix="Please verify the date is correct",
            ))

        max_amount = Decimal(str(self._settings.max_entry_amount))
        if amount > max_amount:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="suspicious_value",
                message=f"Amount ({amount:,.2f}) seems unusually high",
                severity="warning",
                suggested_fix="Please verify this amount is correct",
            ))

    @staticmethod
    def _build_result(
        record_type: str,
        schema_issues: list[ValidationIssue],
        semantic_issues: list[ValidationIssue],
    ) -> ValidationResult:
        schema_valid = not any(i.severity == "error" for i in schema_issues)
        semantic_valid = schema_valid and not any(
            i.severity == "error" for i in semantic_issues
        )
        all_issues = schema_issues + semantic_issues

        return ValidationResult(
            record_type=record_type,
            schema_valid=schema_valid,
            semantic_valid=semantic_valid,
            is_valid=schema_valid and semantic_valid,
            issues=all_issues,
            warnings=[i.message for i in all_issues if i.severity == "warning"],
        )

    # -------------------------------------------------------------------------
    # Entries
    # -------------------------------------------------------------------------

    async def validate_entry(
        self,
        user_id: UUID,
        draft: EntryDraft,
    ) -> ValidationResult:
        """Validate a ledger entry draft for the given user."""
        schema_issues: list[ValidationIssue] = []
        self._check_amount(draft.amount, schema_issues)
        self._check_date(draft.occurred_on, schema_issues)

        semantic_issues: list[ValidationIssue] = []
        if not any(i.severity == "error" for i in schema_issues):
            self._check_plausibility(draft.amount, draft.occurred_on, semantic_issues)

            if draft.category_id and self._store is not None:
                category = await self._store.get_category(user_id, draft.category_id)
                if category is None:
                    semantic_issues.append(ValidationIssue(
                        field="category_id",
                        issue_type="not_found",
                        message="Selected category does not exist",
                        severity="error",
                        suggested_fix="Pick another category or leave it empty",
                    ))
                elif category.kind != draft.kind:
                    semantic_issues.append(ValidationIssue(
                        field="category_id",
                        issue_type="kind_mismatch",
                        message=(
                            f"Category '{category.name}' is for {category.kind.value} "
                            f"entries, not {draft.kind.value}"
                        ),
                        severity="error",
                        suggested_fix=f"Pick a {draft.kind.value} category",
                    ))

        return self._build_result("entry", schema_issues, semantic_issues)

    # -------------------------------------------------------------------------
    # Categories
    # -------------------------------------------------------------------------

    async def validate_category(
        self,
        user_id: UUID,
        draft: CategoryDraft,
        category_id: Optional[UUID] = None,
    ) -> ValidationResult:
        """
        Validate a category draft.

        Args:
            category_id: ID of the category being edited, so it doesn't
                         collide with its own name.
        """
        schema_issues: list[ValidationIssue] = []
        if not draft.name:
            schema_issues.append(ValidationIssue(
                field="name",
                issue_type="missing",
                message="Category name is required",
                severity="error",
            ))
        elif len(draft.name) > 100:
            schema_issues.append(ValidationIssue(
                field="name",
                issue_type="invalid_value",
                message="Category name must be at most 100 characters",
                severity="error",
            ))
        if draft.icon and len(draft.icon) > ICON_MAX_LENGTH:
            schema_issues.append(ValidationIssue(
                field="icon",
                issue_type="invalid_value",
                message=f"Icon name must be at most {ICON_MAX_LENGTH} characters",
                severity="error",
            ))

        semantic_issues: list[ValidationIssue] = []
        if not schema_issues and self._store is not None:
            existing = await self._store.list_categories(user_id, kind=draft.kind)
            if any(
                c.name.lower() == draft.name.lower() and c.id != category_id
                for c in existing
            ):
                semantic_issues.append(ValidationIssue(
                    field="name",
                    issue_type="duplicate",
                    message=f"A {draft.kind.value} category named '{draft.name}' already exists",
                    severity="error",
                ))

        return self._build_result("category", schema_issues, semantic_issues)

    # -------------------------------------------------------------------------
    # Loans
    # -------------------------------------------------------------------------

    async def validate_loan(
        self,
        user_id: UUID,
        draft: LoanDraft,
    ) -> ValidationResult:
        """Validate a hutang/piutang draft."""
        schema_issues: list[ValidationIssue] = []
        self._check_amount(draft.amount, schema_issues)
        self._check_date(draft.occurred_on, schema_issues)

        semantic_issues: list[ValidationIssue] = []
        if not any(i.severity == "error" for i in schema_issues):
            self._check_plausibility(draft.amount, draft.occurred_on, semantic_issues)

        return self._build_result("loan", schema_issues, semantic_issues)

    def get_user_friendly_summary(
        self,
        result: ValidationResult,
    ) -> str:
        """
        Generate a user-friendly summary of validation results.
        """
        if result.is_valid and not result.warnings:
            return "✅ All checks passed."

        lines = []

        if result.has_errors:
            lines.append("❌ Please fix the following:")
            for issue in result.issues:
                if issue.severity == "error":
                    lines.append(f"   • {issue.message}")
                    if issue.suggested_fix:
                        lines.append(f"     💡 {issue.suggested_fix}")

        if result.warnings:
            lines.append("")
            lines.append("⚠️ Please verify the following:")
            for warning in result.warnings:
                lines.append(f"   • {warning}")

        return "\n".join(lines).strip()
