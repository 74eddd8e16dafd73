"""
Integration tests for the orchestrator flows.

All flows run against the in-memory store with an in-memory audit log.
"""

import asyncio
from datetime import date
from decimal import Decimal
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest

from budgetforge.audit import AuditLogger
from budgetforge.config import AppSettings
from budgetforge.models.audit import AuditEventType
from budgetforge.models.ledger import (
    DEFAULT_CATEGORIES,
    CategoryDraft,
    EntryDraft,
    EntryKind,
    LedgerEntry,
    LoanDraft,
    LoanKind,
)
from budgetforge.orchestrator import (
    CategoryFlow,
    DashboardFlow,
    EntryFlow,
    LoanFlow,
    create_app_components,
)
from budgetforge.services.storage import (
    InMemoryAuditStorage,
    InMemoryLedgerStore,
    NotFoundError,
    StorageError,
)


def make_flows(settings=None):
    store = InMemoryLedgerStore()
    audit_storage = InMemoryAuditStorage()
    audit_logger = AuditLogger(audit_storage)
    return {
        "store": store,
        "audit": audit_storage,
        "entries": EntryFlow(store, audit_logger=audit_logger),
        "categories": CategoryFlow(store, audit_logger=audit_logger),
        "loans": LoanFlow(store, audit_logger=audit_logger),
        "dashboard": DashboardFlow(store, audit_logger=audit_logger, settings=settings or AppSettings()),
    }


def event_types(audit_storage):
    events = asyncio.run(audit_storage.get_recent_events())
    return [e.event_type for e in events]


class TestEntryFlow:
    """Tests for EntryFlow."""

    def test_create_entry(self):
        flows = make_flows()
        user_id = uuid4()
        draft = EntryDraft(kind=EntryKind.INCOME, amount=Decimal("1000"), occurred_on=date(2024, 1, 5))

        entry, result = asyncio.run(flows["entries"].save_entry(user_id, draft))

        assert result.is_valid is True
        assert entry.user_id == user_id
        assert asyncio.run(flows["store"].get_entry(user_id, entry.id)) is not None
        assert AuditEventType.ENTRY_CREATED in event_types(flows["audit"])

    def test_invalid_entry_is_not_saved(self):
        flows = make_flows()
        user_id = uuid4()

        entry, result = asyncio.run(flows["entries"].save_entry(user_id, EntryDraft()))

        assert entry is None
        assert result.is_valid is False
        assert asyncio.run(flows["store"].list_entries(user_id)) == []
        assert AuditEventType.SCHEMA_VALIDATION_FAILED in event_types(flows["audit"])

    def test_semantic_failure_is_audited(self):
        flows = make_flows()
        draft = EntryDraft(amount=Decimal("10"), occurred_on=date(2024, 1, 1), category_id=uuid4())

        entry, _ = asyncio.run(flows["entries"].save_entry(uuid4(), draft))

        assert entry is None
        assert AuditEventType.SEMANTIC_VALIDATION_FAILED in event_types(flows["audit"])

    def test_amount_too_large_to_store_is_rejected(self):
        flows = make_flows()
        user_id = uuid4()
        draft = EntryDraft(amount=Decimal("10000000000000000"), occurred_on=date(2024, 1, 1))

        entry, result = asyncio.run(flows["entries"].save_entry(user_id, draft))

        assert entry is None
        assert result.is_valid is False
        assert asyncio.run(flows["store"].list_entries(user_id)) == []

    def test_update_entry_keeps_created_at(self):
        flows = make_flows()
        user_id = uuid4()
        draft = EntryDraft(amount=Decimal("10"), occurred_on=date(2024, 1, 1))
        created, _ = asyncio.run(flows["entries"].save_entry(user_id, draft))

        edit = EntryDraft(amount=Decimal("25"), occurred_on=date(2024, 1, 2), note="Bakso")
        updated, _ = asyncio.run(flows["entries"].save_entry(user_id, edit, entry_id=created.id))
        stored = asyncio.run(flows["store"].get_entry(user_id, created.id))

        assert updated.id == created.id
        assert stored.amount == Decimal("25")
        assert stored.note == "Bakso"
        assert stored.created_at == created.created_at
        assert AuditEventType.ENTRY_UPDATED in event_types(flows["audit"])

    def test_update_of_other_users_entry(self):
        flows = make_flows()
        draft = EntryDraft(amount=Decimal("10"), occurred_on=date(2024, 1, 1))
        created, _ = asyncio.run(flows["entries"].save_entry(uuid4(), draft))

        with pytest.raises(NotFoundError):
            asyncio.run(flows["entries"].save_entry(uuid4(), draft, entry_id=created.id))

    def test_store_failure_is_audited_and_raised(self):
        store = InMemoryLedgerStore()
        store.save_entry = AsyncMock(side_effect=StorageError("sheet unavailable"))
        audit_storage = InMemoryAuditStorage()
        flow = EntryFlow(store, audit_logger=AuditLogger(audit_storage))
        draft = EntryDraft(amount=Decimal("10"), occurred_on=date(2024, 1, 1))

        with pytest.raises(StorageError):
            asyncio.run(flow.save_entry(uuid4(), draft))

        assert AuditEventType.SAVE_FAILED in event_types(audit_storage)

    def test_delete_and_list(self):
        flows = make_flows()
        user_id = uuid4()
        for day in (1, 2, 3):
            draft = EntryDraft(amount=Decimal("10"), occurred_on=date(2024, 1, day))
            asyncio.run(flows["entries"].save_entry(user_id, draft))

        listed = asyncio.run(flows["entries"].list_entries(user_id))
        assert [e.occurred_on.day for e in listed] == [3, 2, 1]

        assert asyncio.run(flows["entries"].delete_entry(user_id, listed[0].id)) is True
        assert asyncio.run(flows["entries"].delete_entry(user_id, listed[0].id)) is False
        assert len(asyncio.run(flows["entries"].list_entries(user_id))) == 2


class TestCategoryFlow:
    """Tests for CategoryFlow."""

    def test_seed_default_categories_once(self):
        flows = make_flows()
        user_id = uuid4()

        seeded = asyncio.run(flows["categories"].seed_default_categories(user_id))
        again = asyncio.run(flows["categories"].seed_default_categories(user_id))

        assert len(seeded) == len(DEFAULT_CATEGORIES)
        assert again == []
        assert all(c.user_id == user_id for c in seeded)
        assert len(asyncio.run(flows["categories"].list_categories(user_id))) == len(DEFAULT_CATEGORIES)

    def test_defaults_are_per_user(self):
        flows = make_flows()
        first, second = uuid4(), uuid4()
        asyncio.run(flows["categories"].seed_default_categories(first))
        asyncio.run(flows["categories"].seed_default_categories(second))

        first_ids = {c.id for c in asyncio.run(flows["categories"].list_categories(first))}
        second_ids = {c.id for c in asyncio.run(flows["categories"].list_categories(second))}
        assert first_ids.isdisjoint(second_ids)

    def test_create_rename_and_reject_duplicate(self):
        flows = make_flows()
        user_id = uuid4()

        food, result = asyncio.run(flows["categories"].save_category(user_id, CategoryDraft(name="Food")))
        assert result.is_valid is True

        duplicate, result = asyncio.run(flows["categories"].save_category(user_id, CategoryDraft(name="FOOD")))
        assert duplicate is None
        assert result.is_valid is False

        renamed, _ = asyncio.run(
            flows["categories"].save_category(user_id, CategoryDraft(name="Makan"), category_id=food.id)
        )
        assert renamed.id == food.id
        assert asyncio.run(flows["store"].get_category(user_id, food.id)).name == "Makan"

    def test_delete_category_keeps_entries(self):
        flows = make_flows()
        user_id = uuid4()
        food, _ = asyncio.run(flows["categories"].save_category(user_id, CategoryDraft(name="Food")))
        draft = EntryDraft(amount=Decimal("10"), occurred_on=date(2024, 1, 1), category_id=food.id)
        entry, _ = asyncio.run(flows["entries"].save_entry(user_id, draft))

        assert asyncio.run(flows["categories"].delete_category(user_id, food.id)) is True

        stored = asyncio.run(flows["store"].get_entry(user_id, entry.id))
        assert stored.category_id is None
        assert AuditEventType.CATEGORY_DELETED in event_types(flows["audit"])

    def test_long_icon_is_rejected(self):
        flows = make_flows()
        user_id = uuid4()

        category, result = asyncio.run(
            flows["categories"].save_category(user_id, CategoryDraft(name="Food", icon="i" * 51))
        )

        assert category is None
        assert result.is_valid is False
        assert asyncio.run(flows["store"].list_categories(user_id)) == []


class TestLoanFlow:
    """Tests for LoanFlow."""

    def test_save_list_delete(self):
        flows = make_flows()
        user_id = uuid4()
        draft = LoanDraft(kind=LoanKind.PIUTANG, amount=Decimal("75000"), occurred_on=date(2024, 1, 1))

        loan, result = asyncio.run(flows["loans"].save_loan(user_id, draft))
        assert result.is_valid is True
        assert asyncio.run(flows["loans"].list_loans(user_id)) == [loan]

        assert asyncio.run(flows["loans"].delete_loan(user_id, loan.id)) is True
        assert asyncio.run(flows["loans"].list_loans(user_id)) == []
        assert AuditEventType.LOAN_DELETED in event_types(flows["audit"])

    def test_edit_loan(self):
        flows = make_flows()
        user_id = uuid4()
        draft = LoanDraft(amount=Decimal("5000"), occurred_on=date(2024, 1, 1), note="Budi")
        loan, _ = asyncio.run(flows["loans"].save_loan(user_id, draft))

        edit = LoanDraft(kind=LoanKind.PIUTANG, amount=Decimal("7500"), occurred_on=date(2024, 1, 2))
        updated, result = asyncio.run(flows["loans"].save_loan(user_id, edit, loan_id=loan.id))

        assert result.is_valid is True
        assert updated.id == loan.id
        assert asyncio.run(flows["loans"].list_loans(user_id)) == [updated]
        assert updated.amount == Decimal("7500")
        assert updated.note is None

    def test_invalid_loan(self):
        flows = make_flows()
        loan, result = asyncio.run(flows["loans"].save_loan(uuid4(), LoanDraft()))

        assert loan is None
        assert result.is_valid is False

    def test_loan_too_large_to_store_is_rejected(self):
        flows = make_flows()
        user_id = uuid4()
        draft = LoanDraft(amount=Decimal("10000000000000000"), occurred_on=date(2024, 1, 1))

        loan, result = asyncio.run(flows["loans"].save_loan(user_id, draft))

        assert loan is None
        assert result.is_valid is False
        assert asyncio.run(flows["loans"].list_loans(user_id)) == []


class TestDashboardFlow:
    """Tests for DashboardFlow."""

    def seed(self, flows, user_id):
        food, _ = asyncio.run(flows["categories"].save_category(user_id, CategoryDraft(name="Food")))
        drafts = [
            EntryDraft(kind=EntryKind.INCOME, amount=Decimal("1000"), occurred_on=date(2024, 1, 5)),
            EntryDraft(amount=Decimal("300"), occurred_on=date(2024, 1, 20), category_id=food.id),
            EntryDraft(amount=Decimal("200"), occurred_on=date(2024, 2, 1), category_id=food.id),
        ]
        for draft in drafts:
            asyncio.run(flows["entries"].save_entry(user_id, draft))
        return food

    def test_dashboard_summary(self):
        flows = make_flows()
        user_id = uuid4()
        self.seed(flows, user_id)
        asyncio.run(flows["loans"].save_loan(
            user_id, LoanDraft(amount=Decimal("50"), occurred_on=date(2024, 1, 1))
        ))

        summary = asyncio.run(flows["dashboard"].build_dashboard(user_id))

        assert summary.totals.total_income == Decimal("1000")
        assert summary.totals.total_expense == Decimal("500")
        assert summary.totals.balance == Decimal("500")
        assert [p.period_label for p in summary.monthly_trend] == ["Jan 2024", "Feb 2024"]
        assert [(c.category_name, c.total, c.percentage) for c in summary.top_categories] == [
            ("Food", Decimal("500"), 100)
        ]
        assert summary.recent_entries[0].occurred_on == date(2024, 2, 1)
        assert summary.loans.total_owed == Decimal("50")
        assert summary.skipped_records == 0
        assert AuditEventType.SUMMARY_COMPUTED in event_types(flows["audit"])

    def test_dashboard_is_scoped_to_user(self):
        flows = make_flows()
        self.seed(flows, uuid4())

        summary = asyncio.run(flows["dashboard"].build_dashboard(uuid4()))

        assert summary.totals.balance == Decimal("0")
        assert summary.monthly_trend == []
        assert summary.top_categories == []

    def test_dashboard_date_range(self):
        flows = make_flows()
        user_id = uuid4()
        self.seed(flows, user_id)

        summary = asyncio.run(flows["dashboard"].build_dashboard(
            user_id, date_from=date(2024, 2, 1), date_to=date(2024, 2, 29)
        ))

        assert summary.totals.total_expense == Decimal("200")
        assert summary.totals.total_income == Decimal("0")

    def test_dashboard_uses_settings(self):
        flows = make_flows(AppSettings(month_label_locale="id", uncategorized_label="Lainnya"))
        user_id = uuid4()
        draft = EntryDraft(amount=Decimal("5"), occurred_on=date(2024, 5, 1))
        asyncio.run(flows["entries"].save_entry(user_id, draft))

        summary = asyncio.run(flows["dashboard"].build_dashboard(user_id))

        assert summary.monthly_trend[0].period_label == "Mei 2024"
        assert summary.top_categories[0].category_name == "Lainnya"

    def test_dashboard_counts_skipped_records(self):
        store = InMemoryLedgerStore()
        user_id = uuid4()
        good = LedgerEntry(user_id=user_id, kind=EntryKind.INCOME, amount=Decimal("10"), occurred_on=date(2024, 1, 1))
        malformed = {"id": str(uuid4()), "user_id": str(user_id), "kind": "income", "amount": "n/a"}
        store.list_entries = AsyncMock(return_value=[good, malformed])
        audit_storage = InMemoryAuditStorage()
        flow = DashboardFlow(store, audit_logger=AuditLogger(audit_storage), settings=AppSettings())

        summary = asyncio.run(flow.build_dashboard(user_id))

        assert summary.skipped_records == 1
        assert summary.totals.total_income == Decimal("10")
        assert AuditEventType.RECORDS_SKIPPED in event_types(audit_storage)

    def test_dashboard_keeps_rows_with_unused_bad_fields(self):
        store = InMemoryLedgerStore()
        user_id = uuid4()
        rows = [
            {"id": str(uuid4()), "user_id": str(user_id), "kind": "income", "amount": "2000",
             "occurred_on": "2024-01-05", "note": "x" * 501},
            {"id": str(uuid4()), "user_id": str(user_id), "kind": "expense", "amount": "300",
             "occurred_on": "2024-01-06", "category_id": "deleted-cat"},
        ]
        store.list_entries = AsyncMock(return_value=rows)
        flow = DashboardFlow(store, settings=AppSettings())

        summary = asyncio.run(flow.build_dashboard(user_id))

        assert summary.skipped_records == 0
        assert summary.totals.balance == Decimal("1700")
        assert summary.top_categories[0].category_name == "Uncategorized"

    def test_analysis_is_not_truncated(self):
        flows = make_flows()
        user_id = uuid4()
        for i in range(8):
            category, _ = asyncio.run(
                flows["categories"].save_category(user_id, CategoryDraft(name=f"C{i}"))
            )
            draft = EntryDraft(amount=Decimal("10"), occurred_on=date(2024, 1, 1), category_id=category.id)
            asyncio.run(flows["entries"].save_entry(user_id, draft))

        dashboard = asyncio.run(flows["dashboard"].build_dashboard(user_id))
        analysis = asyncio.run(flows["dashboard"].build_analysis(user_id))

        assert len(dashboard.top_categories) == 6
        assert len(analysis.categories) == 8

    def test_income_analysis(self):
        flows = make_flows()
        user_id = uuid4()
        self.seed(flows, user_id)

        analysis = asyncio.run(flows["dashboard"].build_analysis(user_id, kind=EntryKind.INCOME))

        assert analysis.kind == EntryKind.INCOME
        assert [c.category_name for c in analysis.categories] == ["Uncategorized"]
        assert analysis.categories[0].total == Decimal("1000")


class TestCreateAppComponents:
    """Tests for create_app_components."""

    def test_in_memory_backend(self):
        components = create_app_components(use_storage=False)

        assert components.backend == "memory"
        assert isinstance(components.store, InMemoryLedgerStore)
