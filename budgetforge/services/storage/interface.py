"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for the ledger store.
This allows us to:
1. Swap Google Sheets for a real database later
2. Use in-memory storage for testing
3. Keep business logic decoupled from storage implementation

Every operation takes the owning user's ID explicitly. A store never
returns or modifies records that belong to another user.
"""

from abc import ABC, abstractmethod
from datetime import date
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


class LedgerStoreInterface(ABC):
    """
    Abstract interface for ledger storage operations.

    Any storage implementation (Google Sheets, PostgreSQL, etc.)
    must implement these methods.
    """

    # -------------------------------------------------------------------------
    # Ledger entries
    # -------------------------------------------------------------------------

    @abstractmethod
    async def save_entry(self, entry: LedgerEntry) -> bool:
        """
        Save a new ledger entry.

        Raises:
            DuplicateError: If an entry with this ID already exists
            StorageError: If save fails
        """
        pass

    @abstractmethod
    async def get_entry(self, user_id: UUID, entry_id: UUID) -> Optional[LedgerEntry]:
        """Retrieve one of the user's entries, or None."""
        pass

    @abstractmethod
    async def update_entry(self, entry: LedgerEntry) -> bool:
        """
        Replace an existing entry in place and refresh its updated_at.

        Raises:
            NotFoundError: If the user has no entry with this ID
            StorageError: If update fails
        """
        pass

    @abstractmethod
    async def delete_entry(self, user_id: UUID, entry_id: UUID) -> bool:
        """
        Delete one of the user's entries.

        Returns:
            True if deleted, False if there was nothing to delete
        """
        pass

    @abstractmethod
    async def list_entries(
        self,
        user_id: UUID,
        kind: Optional[EntryKind] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        category_id: Optional[UUID] = None,
    ) -> list[LedgerEntry]:
        """
        List the user's entries with optional filters.

        Returns:
            Matching entries sorted ascending by date, then creation time
        """
        pass

    # -------------------------------------------------------------------------
    # Categories
    # -------------------------------------------------------------------------

    @abstractmethod
    async def save_category(self, category: Category) -> bool:
        """Save a new category."""
        pass

    @abstractmethod
    async def get_category(self, user_id: UUID, category_id: UUID) -> Optional[Category]:
        """Retrieve one of the user's categories, or None."""
        pass

    @abstractmethod
    async def update_category(self, category: Category) -> bool:
        """
        Replace an existing category.

        Raises:
            NotFoundError: If the user has no category with this ID
        """
        pass

    @abstractmethod
    async def delete_category(self, user_id: UUID, category_id: UUID) -> bool:
        """
        Delete one of the user's categories.

        Entries that referenced it are NOT deleted; their category
        reference is cleared so they become uncategorized.
        """
        pass

    @abstractmethod
    async def list_categories(
        self,
        user_id: UUID,
        kind: Optional[EntryKind] = None,
    ) -> list[Category]:
        """List the user's categories sorted by kind, then name."""
        pass

    # -------------------------------------------------------------------------
    # Loans (hutang / piutang)
    # -------------------------------------------------------------------------

    @abstractmethod
    async def save_loan(self, loan: LoanRecord) -> bool:
        """Save a new loan record."""
        pass

    @abstractmethod
    async def get_loan(self, user_id: UUID, loan_id: UUID) -> Optional[LoanRecord]:
        """Retrieve one of the user's loan records, or None."""
        pass

    @abstractmethod
    async def update_loan(self, loan: LoanRecord) -> bool:
        """
        Replace an existing loan record.

        Raises:
            NotFoundError: If the user has no loan with this ID
        """
        pass

    @abstractmethod
    async def delete_loan(self, user_id: UUID, loan_id: UUID) -> bool:
        """Delete one of the user's loan records."""
        pass

    @abstractmethod
    async def list_loans(
        self,
        user_id: UUID,
        kind: Optional[LoanKind] = None,
    ) -> list[LoanRecord]:
        """List the user's loan records, newest first."""
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """Get all events for a correlation ID, in chronological order."""
        pass

    @abstractmethod
    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        """Get all events for a specific entity, in chronological order."""
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get the most recent audit events (newest first)."""
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class StoreConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
