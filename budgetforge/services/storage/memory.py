"""
In-Memory Storage Implementation

Dict-backed ledger and audit storage. Used by the test suite and as the
fallback backend when Google Sheets is not configured (data lives only
as long as the process).
"""

from datetime import date, datetime
from typing import Optional
from uuid import UUID

from budgetforge.models.audit import AuditEvent
from budgetforge.models.ledger import (
    Category,
    EntryKind,
    LedgerEntry,
    LoanKind,
    LoanRecord,
)
from budgetforge.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    LedgerStoreInterface,
    NotFoundError,
)


class InMemoryLedgerStore(LedgerStoreInterface):
    """
    In-memory implementation of the ledger store.

    Records are copied on the way in and on the way out so callers
    can't mutate stored state behind the store's back.
    """

    def __init__(self):
        self._entries: dict[UUID, LedgerEntry] = {}
        self._categories: dict[UUID, Category] = {}
        self._loans: dict[UUID, LoanRecord] = {}

    # Ledger entries

    async def save_entry(self, entry: LedgerEntry) -> bool:
        if entry.id in self._entries:
            raise DuplicateError(f"Entry already exists: {entry.id}")
        self._entries[entry.id] = entry.model_copy(deep=True)
        return True

    async def get_entry(self, user_id: UUID, entry_id: UUID) -> Optional[LedgerEntry]:
        entry = self._entries.get(entry_id)
        if entry is None or entry.user_id != user_id:
            return None
        return entry.model_copy(deep=True)

    async def update_entry(self, entry: LedgerEntry) -> bool:
        existing = self._entries.get(entry.id)
        if existing is None or existing.user_id != entry.user_id:
            raise NotFoundError(f"Entry not found: {entry.id}")
        self._entries[entry.id] = entry.model_copy(
            update={"updated_at": datetime.utcnow()}, deep=True
        )
        return True

    async def delete_entry(self, user_id: UUID, entry_id: UUID) -> bool:
        entry = self._entries.get(entry_id)
        if entry is None or entry.user_id != user_id:
            return False
        del self._entries[entry_id]
        return True

    async def list_entries(
        self,
        user_id: UUID,
        kind: Optional[EntryKind] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        category_id: Optional[UUID] = None,
    ) -> list[LedgerEntry]:
        entries = []
        for entry in self._entries.values():
            if entry.user_id != user_id:
                continue
            if kind and entry.kind != kind:
                continue
            if date_from and entry.occurred_on < date_from:
                continue
            if date_to and entry.occurred_on > date_to:
                continue
            if category_id and entry.category_id != category_id:
                continue
            entries.append(entry.model_copy(deep=True))

        entries.sort(key=lambda e: (e.occurred_on, e.created_at))
        return entries

    # Categories

    async def save_category(self, category: Category) -> bool:
        if category.id in self._categories:
            raise DuplicateError(f"Category already exists: {category.id}")
        self._categories[category.id] = category.model_copy(deep=True)
        return True

    async def get_category(self, user_id: UUID, category_id: UUID) -> Optional[Category]:
        category = self._categories.get(category_id)
        if category is None or category.user_id != user_id:
            return None
        return category.model_copy(deep=True)

    async def update_category(self, category: Category) -> bool:
        existing = self._categories.get(category.id)
        if existing is None or existing.user_id != category.user_id:
            raise NotFoundError(f"Category not found: {category.id}")
        self._categories[category.id] = category.model_copy(deep=True)
        return True

    async def delete_category(self, user_id: UUID, category_id: UUID) -> bool:
        category = self._categories.get(category_id)
        if category is None or category.user_id != user_id:
            return False
        del self._categories[category_id]

        # Set-null, never cascade
        for entry_id, entry in self._entries.items():
            if entry.user_id == user_id and entry.category_id == category_id:
                self._entries[entry_id] = entry.model_copy(
                    update={"category_id": None, "updated_at": datetime.utcnow()}
                )
        return True

    async def list_categories(
        self,
        user_id: UUID,
        kind: Optional[EntryKind] = None,
    ) -> list[Category]:
        categories = [
            category.model_copy(deep=True)
            for category in self._categories.values()
            if category.user_id == user_id and (kind is None or category.kind == kind)
        ]
        categories.sort(key=lambda c: (c.kind.value, c.name.lower()))
        return categories

    # Loans

    async def save_loan(self, loan: LoanRecord) -> bool:
        if loan.id in self._loans:
            raise DuplicateError(f"Loan already exists: {loan.id}")
        self._loans[loan.id] = loan.model_copy(deep=True)
        return True

    async def get_loan(self, user_id: UUID, loan_id: UUID) -> Optional[LoanRecord]:
        loan = self._loans.get(loan_id)
        if loan is None or loan.user_id != user_id:
            return None
        return loan.model_copy(deep=True)

    async def update_loan(self, loan: LoanRecord) -> bool:
        existing = self._loans.get(loan.id)
        if existing is None or existing.user_id != loan.user_id:
            raise NotFoundError(f"Loan not found: {loan.id}")
        self._loans[loan.id] = loan.model_copy(deep=True)
        return True

    async def delete_loan(self, user_id: UUID, loan_id: UUID) -> bool:
        loan = self._loans.get(loan_id)
        if loan is None or loan.user_id != user_id:
            return False
        del self._loans[loan_id]
        return True

    async def list_loans(
        self,
        user_id: UUID,
        kind: Optional[LoanKind] = None,
    ) -> list[LoanRecord]:
        loans = [
            loan.model_copy(deep=True)
            for loan in self._loans.values()
            if loan.user_id == user_id and (kind is None or loan.kind == kind)
        ]
        loans.sort(key=lambda l: (l.occurred_on, l.created_at), reverse=True)
        return loans


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only in-memory audit log."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = [e for e in self._events if e.correlation_id == correlation_id]
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        events = [
            e for e in self._events
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        events = sorted(self._events, key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
