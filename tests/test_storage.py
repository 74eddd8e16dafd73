"""
Tests for the ledger stores.

The in-memory store is exercised directly; the Google Sheets store is
exercised against a mocked worksheet so no network calls are made.
"""

import asyncio
from datetime import date, datetime
from decimal import Decimal
from unittest.mock import MagicMock
from uuid import uuid4

import pytest

from budgetforge.models.audit import AuditEventBuilder
from budgetforge.models.ledger import (
    Category,
    EntryKind,
    LedgerEntry,
    LoanKind,
    LoanRecord,
)
from budgetforge.services.storage import (
    DuplicateError,
    GoogleSheetsLedgerStore,
    InMemoryAuditStorage,
    InMemoryLedgerStore,
    NotFoundError,
)
from budgetforge.services.storage.google_sheets import TRANSACTION_COLUMNS


def make_entry(user_id, kind=EntryKind.EXPENSE, amount="100", occurred_on=date(2024, 1, 1), **kwargs):
    return LedgerEntry(
        user_id=user_id,
        kind=kind,
        amount=Decimal(amount),
        occurred_on=occurred_on,
        **kwargs,
    )


class TestInMemoryEntries:
    """Entry CRUD on the in-memory store."""

    def test_save_and_get(self):
        store = InMemoryLedgerStore()
        user_id = uuid4()
        entry = make_entry(user_id)

        asyncio.run(store.save_entry(entry))

        assert asyncio.run(store.get_entry(user_id, entry.id)) == entry

    def test_save_twice_is_duplicate(self):
        store = InMemoryLedgerStore()
        entry = make_entry(uuid4())
        asyncio.run(store.save_entry(entry))

        with pytest.raises(DuplicateError):
            asyncio.run(store.save_entry(entry))

    def test_other_users_cannot_see_entry(self):
        store = InMemoryLedgerStore()
        owner, stranger = uuid4(), uuid4()
        entry = make_entry(owner)
        asyncio.run(store.save_entry(entry))

        assert asyncio.run(store.get_entry(stranger, entry.id)) is None
        assert asyncio.run(store.list_entries(stranger)) == []
        assert asyncio.run(store.delete_entry(stranger, entry.id)) is False
        assert asyncio.run(store.get_entry(owner, entry.id)) is not None

    def test_update_requires_existing_entry(self):
        store = InMemoryLedgerStore()
        with pytest.raises(NotFoundError):
            asyncio.run(store.update_entry(make_entry(uuid4())))

    def test_update_refreshes_updated_at(self):
        store = InMemoryLedgerStore()
        user_id = uuid4()
        entry = make_entry(user_id, updated_at=datetime(2020, 1, 1))
        asyncio.run(store.save_entry(entry))

        changed = entry.model_copy(update={"amount": Decimal("250")})
        asyncio.run(store.update_entry(changed))
        stored = asyncio.run(store.get_entry(user_id, entry.id))

        assert stored.amount == Decimal("250")
        assert stored.updated_at > datetime(2020, 1, 1)
        assert stored.created_at == entry.created_at

    def test_returned_entries_are_copies(self):
        store = InMemoryLedgerStore()
        user_id = uuid4()
        entry = make_entry(user_id)
        asyncio.run(store.save_entry(entry))

        fetched = asyncio.run(store.get_entry(user_id, entry.id))
        fetched.amount = Decimal("1")

        assert asyncio.run(store.get_entry(user_id, entry.id)).amount == Decimal("100")

    def test_list_filters_and_sorts_ascending(self):
        store = InMemoryLedgerStore()
        user_id = uuid4()
        entries = [
            make_entry(user_id, occurred_on=date(2024, 3, 1)),
            make_entry(user_id, kind=EntryKind.INCOME, occurred_on=date(2024, 1, 1)),
            make_entry(user_id, occurred_on=date(2024, 2, 1)),
        ]
        for entry in entries:
            asyncio.run(store.save_entry(entry))

        listed = asyncio.run(store.list_entries(user_id))
        assert [e.occurred_on.month for e in listed] == [1, 2, 3]

        expenses = asyncio.run(store.list_entries(user_id, kind=EntryKind.EXPENSE))
        assert len(expenses) == 2

        ranged = asyncio.run(
            store.list_entries(user_id, date_from=date(2024, 2, 1), date_to=date(2024, 2, 28))
        )
        assert [e.occurred_on for e in ranged] == [date(2024, 2, 1)]


class TestInMemoryCategories:
    """Category CRUD on the in-memory store."""

    def test_delete_category_uncategorizes_entries(self):
        store = InMemoryLedgerStore()
        user_id = uuid4()
        food = Category(user_id=user_id, name="Food", kind=EntryKind.EXPENSE)
        entry = make_entry(user_id, category_id=food.id)
        asyncio.run(store.save_category(food))
        asyncio.run(store.save_entry(entry))

        assert asyncio.run(store.delete_category(user_id, food.id)) is True

        stored = asyncio.run(store.get_entry(user_id, entry.id))
        assert stored is not None
        assert stored.category_id is None

    def test_delete_category_of_other_user(self):
        store = InMemoryLedgerStore()
        food = Category(user_id=uuid4(), name="Food", kind=EntryKind.EXPENSE)
        asyncio.run(store.save_category(food))

        assert asyncio.run(store.delete_category(uuid4(), food.id)) is False

    def test_list_categories_sorted_by_kind_and_name(self):
        store = InMemoryLedgerStore()
        user_id = uuid4()
        for name, kind in [
            ("Transport", EntryKind.EXPENSE),
            ("Salary", EntryKind.INCOME),
            ("belanja", EntryKind.EXPENSE),
        ]:
            asyncio.run(store.save_category(Category(user_id=user_id, name=name, kind=kind)))

        listed = asyncio.run(store.list_categories(user_id))
        assert [c.name for c in listed] == ["belanja", "Transport", "Salary"]

        income = asyncio.run(store.list_categories(user_id, kind=EntryKind.INCOME))
        assert [c.name for c in income] == ["Salary"]


class TestInMemoryLoans:
    """Loan CRUD on the in-memory store."""

    def test_list_loans_newest_first(self):
        store = InMemoryLedgerStore()
        user_id = uuid4()
        older = LoanRecord(user_id=user_id, kind=LoanKind.HUTANG, amount=Decimal("1"), occurred_on=date(2024, 1, 1))
        newer = LoanRecord(user_id=user_id, kind=LoanKind.PIUTANG, amount=Decimal("2"), occurred_on=date(2024, 2, 1))
        asyncio.run(store.save_loan(older))
        asyncio.run(store.save_loan(newer))

        assert [l.id for l in asyncio.run(store.list_loans(user_id))] == [newer.id, older.id]
        assert [l.id for l in asyncio.run(store.list_loans(user_id, kind=LoanKind.HUTANG))] == [older.id]

    def test_update_and_delete_loan(self):
        store = InMemoryLedgerStore()
        user_id = uuid4()
        loan = LoanRecord(user_id=user_id, kind=LoanKind.HUTANG, amount=Decimal("1"), occurred_on=date(2024, 1, 1))
        asyncio.run(store.save_loan(loan))

        asyncio.run(store.update_loan(loan.model_copy(update={"note": "Budi"})))
        assert asyncio.run(store.get_loan(user_id, loan.id)).note == "Budi"

        assert asyncio.run(store.delete_loan(user_id, loan.id)) is True
        assert asyncio.run(store.get_loan(user_id, loan.id)) is None


class TestInMemoryAuditStorage:
    """Tests for the in-memory audit log."""

    def test_events_by_correlation_id(self):
        storage = InMemoryAuditStorage()
        correlation_id = uuid4()
        user_id = uuid4()
        first = AuditEventBuilder.entry_deleted(uuid4(), user_id, correlation_id)
        second = AuditEventBuilder.entry_deleted(uuid4(), user_id, uuid4())
        asyncio.run(storage.append_event(first))
        asyncio.run(storage.append_event(second))

        events = asyncio.run(storage.get_events_by_correlation_id(correlation_id))
        assert [e.event_id for e in events] == [first.event_id]
        assert len(asyncio.run(storage.get_recent_events(limit=1))) == 1


class TestGoogleSheetsLedgerStore:
    """Google Sheets store against a mocked worksheet."""

    def make_store(self, rows):
        client = MagicMock()
        sheet = MagicMock()
        sheet.get_all_values.return_value = [TRANSACTION_COLUMNS] + rows
        client.get_transactions_sheet.return_value = sheet
        return GoogleSheetsLedgerStore(client), sheet

    def test_entry_row_round_trip(self):
        entry = make_entry(uuid4(), category_id=uuid4(), note="Lunch")
        row = GoogleSheetsLedgerStore._entry_to_row(entry)

        assert len(row) == len(TRANSACTION_COLUMNS)
        assert GoogleSheetsLedgerStore._row_to_entry(row) == entry

    def test_list_entries_skips_malformed_and_foreign_rows(self):
        user_id = uuid4()
        good = GoogleSheetsLedgerStore._entry_to_row(make_entry(user_id, amount="75"))
        bad_amount = GoogleSheetsLedgerStore._entry_to_row(make_entry(user_id))
        bad_amount[3] = "seventy"
        foreign = GoogleSheetsLedgerStore._entry_to_row(make_entry(uuid4()))

        store, _ = self.make_store([good, bad_amount, foreign, []])
        entries = asyncio.run(store.list_entries(user_id))

        assert len(entries) == 1
        assert entries[0].amount == Decimal("75")

    def test_duplicate_save_is_not_retried(self):
        entry = make_entry(uuid4())
        store, sheet = self.make_store([])
        sheet.col_values.return_value = ["id", str(entry.id)]

        with pytest.raises(DuplicateError):
            asyncio.run(store.save_entry(entry))

        assert sheet.col_values.call_count == 1
        sheet.append_row.assert_not_called()
