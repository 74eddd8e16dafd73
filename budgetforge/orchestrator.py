"""
Main Orchestrator for BudgetForge

This module ties together all the components and defines the
end-to-end flows for:
1. Ledger entries (draft → validate → save/update → audit)
2. Categories (including per-user default seeding)
3. Loans (hutang / piutang)
4. Dashboard and analysis (fetch → aggregate → summary)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Nothing is written without passing validation first
- Every call names the owning user explicitly; no ambient session state
- Every write is audited

Each write returns (record_or_None, ValidationResult) so callers get an
explicit outcome instead of inspecting form state.
"""

from datetime import date
from typing import Optional
from uuid import UUID

import structlog

from budgetforge.aggregation import (
    coerce_entries,
    compute_category_breakdown,
    compute_loan_summary,
    compute_monthly_trend,
    compute_totals,
    rank_categories,
    select_recent_entries,
)
from budgetforge.audit import AuditLogger, create_correlation_id
from budgetforge.config import AppSettings, get_settings
from budgetforge.models.ledger import (
    DEFAULT_CATEGORIES,
    Category,
    CategoryDraft,
    EntryDraft,
    EntryKind,
    LedgerEntry,
    LoanDraft,
    LoanKind,
    LoanRecord,
    ValidationResult,
)
from budgetforge.models.summary import AnalysisSummary, DashboardSummary
from budgetforge.services.storage import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsLedgerStore,
    InMemoryAuditStorage,
    InMemoryLedgerStore,
    LedgerStoreInterface,
    NotFoundError,
    StorageError,
)
from budgetforge.validation import RecordValidator


logger = structlog.get_logger(__name__)


class _BaseFlow:
    """Shared wiring for flows that validate and write records."""

    def __init__(
        self,
        store: LedgerStoreInterface,
        validator: Optional[RecordValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._validator = validator or RecordValidator(store)
        self._audit_logger = audit_logger

    async def _audit_validation(
        self,
        user_id: UUID,
        result: ValidationResult,
        correlation_id: UUID,
    ) -> None:
        if self._audit_logger and not result.is_valid:
            issues = [
                {"field": i.field, "type": i.issue_type, "message": i.message}
                for i in result.issues
            ]
            stage = "schema" if not result.schema_valid else "semantic"
            await self._audit_logger.log_validation_failed(
                record_type=result.record_type,
                user_id=user_id,
                stage=stage,
                issues=issues,
                correlation_id=correlation_id,
            )

    async def _audit_save_failed(
        self,
        record_type: str,
        user_id: UUID,
        error: Exception,
        correlation_id: UUID,
    ) -> None:
        if self._audit_logger:
            await self._audit_logger.log_save_failed(
                record_type=record_type,
                user_id=user_id,
                error_message=str(error),
                correlation_id=correlation_id,
            )


class EntryFlow(_BaseFlow):
    """
    Create, edit, delete and list income/expense entries.
    """

    async def save_entry(
        self,
        user_id: UUID,
        draft: EntryDraft,
        entry_id: Optional[UUID] = None,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[Optional[LedgerEntry], ValidationResult]:
        """
        Validate a draft and create (entry_id=None) or update an entry.

        Returns:
            (saved_entry, validation_result); saved_entry is None when
            validation failed.

        Raises:
            NotFoundError: If entry_id doesn't belong to the user
            StorageError: If the store write fails
        """
        correlation_id = correlation_id or create_correlation_id()

        result = await self._validator.validate_entry(user_id, draft)
        if not result.is_valid:
            await self._audit_validation(user_id, result, correlation_id)
            return None, result

        fields = {
            "kind": draft.kind,
            "amount": draft.amount,
            "category_id": draft.category_id,
            "note": draft.note or None,
            "occurred_on": draft.occurred_on,
        }

        try:
            if entry_id is None:
                entry = LedgerEntry(user_id=user_id, **fields)
                await self._store.save_entry(entry)
            else:
                existing = await self._store.get_entry(user_id, entry_id)
                if existing is None:
                    raise NotFoundError(f"Entry not found: {entry_id}")
                entry = existing.model_copy(update=fields)
                await self._store.update_entry(entry)
        except StorageError as e:
            await self._audit_save_failed("entry", user_id, e, correlation_id)
            raise

        if self._audit_logger:
            await self._audit_logger.log_entry_saved(
                entry_id=entry.id,
                user_id=user_id,
                kind=entry.kind.value,
                amount=str(entry.amount),
                created=entry_id is None,
                correlation_id=correlation_id,
            )

        return entry, result

    async def delete_entry(
        self,
        user_id: UUID,
        entry_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        """Delete one of the user's entries. Returns False if it didn't exist."""
        correlation_id = correlation_id or create_correlation_id()

        deleted = await self._store.delete_entry(user_id, entry_id)
        if deleted and self._audit_logger:
            await self._audit_logger.log_entry_deleted(
                entry_id=entry_id,
                user_id=user_id,
                correlation_id=correlation_id,
            )
        return deleted

    async def list_entries(
        self,
        user_id: UUID,
        kind: Optional[EntryKind] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        newest_first: bool = True,
    ) -> list[LedgerEntry]:
        """List the user's entries; the transactions page shows newest first."""
        entries = await self._store.list_entries(
            user_id, kind=kind, date_from=date_from, date_to=date_to
        )
        if newest_first:
            entries.reverse()
        return entries


class CategoryFlow(_BaseFlow):
    """
    Manage a user's categories.

    Deleting a category leaves its entries in place, uncategorized.
    """

    async def save_category(
        self,
        user_id: UUID,
        draft: CategoryDraft,
        category_id: Optional[UUID] = None,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[Optional[Category], ValidationResult]:
        """Validate a draft and create or update a category."""
        correlation_id = correlation_id or create_correlation_id()

        result = await self._validator.validate_category(user_id, draft, category_id)
        if not result.is_valid:
            await self._audit_validation(user_id, result, correlation_id)
            return None, result

        fields = {"name": draft.name, "kind": draft.kind, "icon": draft.icon}

        try:
            if category_id is None:
                category = Category(user_id=user_id, **fields)
                await self._store.save_category(category)
            else:
                existing = await self._store.get_category(user_id, category_id)
                if existing is None:
                    raise NotFoundError(f"Category not found: {category_id}")
                category = existing.model_copy(update=fields)
                await self._store.update_category(category)
        except StorageError as e:
            await self._audit_save_failed("category", user_id, e, correlation_id)
            raise

        if self._audit_logger:
            await self._audit_logger.log_category_saved(
                category_id=category.id,
                user_id=user_id,
                name=category.name,
                kind=category.kind.value,
                created=category_id is None,
                correlation_id=correlation_id,
            )

        return category, result

    async def delete_category(
        self,
        user_id: UUID,
        category_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        """Delete a category; its entries become uncategorized."""
        correlation_id = correlation_id or create_correlation_id()

        deleted = await self._store.delete_category(user_id, category_id)
        if deleted and self._audit_logger:
            await self._audit_logger.log_category_deleted(
                category_id=category_id,
                user_id=user_id,
                correlation_id=correlation_id,
            )
        return deleted

    async def list_categories(
        self,
        user_id: UUID,
        kind: Optional[EntryKind] = None,
    ) -> list[Category]:
        return await self._store.list_categories(user_id, kind=kind)

    async def seed_default_categories(
        self,
        user_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> list[Category]:
        """
        Give a new user their own copy of the default categories.

        Only seeds when the user has no categories yet, so calling it on
        every start-up is safe.
        """
        correlation_id = correlation_id or create_correlation_id()

        if await self._store.list_categories(user_id):
            return []

        seeded = []
        for name, kind, icon in DEFAULT_CATEGORIES:
            category = Category(user_id=user_id, name=name, kind=kind, icon=icon)
            await self._store.save_category(category)
            seeded.append(category)

        if self._audit_logger:
            await self._audit_logger.log_default_categories_seeded(
                user_id=user_id,
                names=[c.name for c in seeded],
                correlation_id=correlation_id,
            )

        return seeded


class LoanFlow(_BaseFlow):
    """
    Manage hutang (owed) and piutang (receivable) records.
    """

    async def save_loan(
        self,
        user_id: UUID,
        draft: LoanDraft,
        loan_id: Optional[UUID] = None,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[Optional[LoanRecord], ValidationResult]:
        """Validate a draft and create or update a loan record."""
        correlation_id = correlation_id or create_correlation_id()

        result = await self._validator.validate_loan(user_id, draft)
        if not result.is_valid:
            await self._audit_validation(user_id, result, correlation_id)
            return None, result

        fields = {
            "kind": draft.kind,
            "amount": draft.amount,
            "note": draft.note or None,
            "occurred_on": draft.occurred_on,
        }

        try:
            if loan_id is None:
                loan = LoanRecord(user_id=user_id, **fields)
                await self._store.save_loan(loan)
            else:
                existing = await self._store.get_loan(user_id, loan_id)
                if existing is None:
                    raise NotFoundError(f"Loan not found: {loan_id}")
                loan = existing.model_copy(update=fields)
                await self._store.update_loan(loan)
        except StorageError as e:
            await self._audit_save_failed("loan", user_id, e, correlation_id)
            raise

        if self._audit_logger:
            await self._audit_logger.log_loan_saved(
                loan_id=loan.id,
                user_id=user_id,
                kind=loan.kind.value,
                amount=str(loan.amount),
                created=loan_id is None,
                correlation_id=correlation_id,
            )

        return loan, result

    async def delete_loan(
        self,
        user_id: UUID,
        loan_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        correlation_id = correlation_id or create_correlation_id()

        deleted = await self._store.delete_loan(user_id, loan_id)
        if deleted and self._audit_logger:
            await self._audit_logger.log_loan_deleted(
                loan_id=loan_id,
                user_id=user_id,
                correlation_id=correlation_id,
            )
        return deleted

    async def list_loans(
        self,
        user_id: UUID,
        kind: Optional[LoanKind] = None,
    ) -> list[LoanRecord]:
        return await self._store.list_loans(user_id, kind=kind)


class DashboardFlow:
    """
    Fetches a user's records and runs the aggregation engine over them.

    Storage is only touched here; the engine itself stays pure.
    """

    def __init__(
        self,
        store: LedgerStoreInterface,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[AppSettings] = None,
    ):
        self._store = store
        self._audit_logger = audit_logger
        self._settings = settings or get_settings().app

    async def build_dashboard(
        self,
        user_id: UUID,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        correlation_id: Optional[UUID] = None,
    ) -> DashboardSummary:
        """
        Totals, monthly trend, top categories, recent entries and loans.

        Without a date range the summary covers all time.
        """
        correlation_id = correlation_id or create_correlation_id()

        raw_entries = await self._store.list_entries(
            user_id, date_from=date_from, date_to=date_to
        )
        categories = await self._store.list_categories(user_id)
        loans = await self._store.list_loans(user_id)

        figures, skipped = coerce_entries(raw_entries)
        breakdown = compute_category_breakdown(
            figures,
            categories,
            kind_filter=EntryKind.EXPENSE,
            uncategorized_label=self._settings.uncategorized_label,
        )

        summary = DashboardSummary(
            user_id=user_id,
            date_from=date_from,
            date_to=date_to,
            totals=compute_totals(figures),
            monthly_trend=compute_monthly_trend(
                figures, locale=self._settings.month_label_locale
            ),
            top_categories=rank_categories(
                breakdown, top_n=self._settings.dashboard_top_categories
            ),
            recent_entries=select_recent_entries(
                raw_entries, limit=self._settings.recent_entries_limit
            ),
            loans=compute_loan_summary(loans),
            skipped_records=skipped,
        )

        if self._audit_logger:
            await self._audit_logger.log_summary_computed(
                user_id=user_id,
                summary_type="dashboard",
                entry_count=len(figures),
                skipped=skipped,
                correlation_id=correlation_id,
            )

        return summary

    async def build_analysis(
        self,
        user_id: UUID,
        kind: EntryKind = EntryKind.EXPENSE,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AnalysisSummary:
        """Monthly trend plus the full (untruncated) category distribution."""
        correlation_id = correlation_id or create_correlation_id()

        raw_entries = await self._store.list_entries(
            user_id, date_from=date_from, date_to=date_to
        )
        categories = await self._store.list_categories(user_id)
        figures, skipped = coerce_entries(raw_entries)

        summary = AnalysisSummary(
            user_id=user_id,
            kind=kind,
            monthly_trend=compute_monthly_trend(
                figures, locale=self._settings.month_label_locale
            ),
            categories=rank_categories(
                compute_category_breakdown(
                    figures,
                    categories,
                    kind_filter=kind,
                    uncategorized_label=self._settings.uncategorized_label,
                )
            ),
        )

        if self._audit_logger:
            await self._audit_logger.log_summary_computed(
                user_id=user_id,
                summary_type="analysis",
                entry_count=len(figures),
                skipped=skipped,
                correlation_id=correlation_id,
            )

        return summary


class AppComponents:
    """Flows sharing one store and one audit logger."""

    def __init__(
        self,
        store: LedgerStoreInterface,
        audit_logger: AuditLogger,
        backend: str,
    ):
        self.store = store
        self.audit_logger = audit_logger
        self.backend = backend
        self.entries = EntryFlow(store, audit_logger=audit_logger)
        self.categories = CategoryFlow(store, audit_logger=audit_logger)
        self.loans = LoanFlow(store, audit_logger=audit_logger)
        self.dashboard = DashboardFlow(store, audit_logger=audit_logger)


def create_app_components(
    use_storage: bool = True,
) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to use the Google Sheets store.
                    Falls back to the in-memory store when False or when
                    Sheets isn't configured.
    """
    if use_storage:
        try:
            sheets_client = GoogleSheetsClient()
            store = GoogleSheetsLedgerStore(sheets_client)
            audit_logger = AuditLogger(GoogleSheetsAuditStorage(sheets_client))
            return AppComponents(store, audit_logger, backend="google_sheets")
        except Exception as e:
            # Storage not configured - continue with an in-memory store
            logger.warning("storage_not_configured", error=str(e))

    return AppComponents(
        InMemoryLedgerStore(),
        AuditLogger(InMemoryAuditStorage()),
        backend="memory",
    )
