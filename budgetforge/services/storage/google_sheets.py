"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is used as the hosted ledger store because:
1. Users can view their data directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)
4. Easy to export/migrate later

TRADEOFFS:
- Not suitable for high-volume data (we're fine for personal use)
- No transactions (we handle this with careful ordering)
- No row-level security: every read and write filters on user_id in Python

The implementation follows the abstract interface, so we can swap
to PostgreSQL/SQLite later without changing business logic.
"""

import json
from datetime import date, datetime
from typing import Any, Callable, Optional, TypeVar
from uuid import UUID

import gspread
import structlog
from google.oauth2.service_account import Credentials
from pydantic import BaseModel, ValidationError
from tenacity import (
    retry,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from budgetforge.config import get_settings
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
    StorageError,
    StoreConnectionError,
)


logger = structlog.get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

# Column mappings for each worksheet
TRANSACTION_COLUMNS = [
    "id",
    "user_id",
    "type",
    "amount",
    "category_id",
    "description",
    "date",
    "created_at",
    "updated_at",
]

CATEGORY_COLUMNS = [
    "id",
    "user_id",
    "name",
    "type",
    "icon",
    "created_at",
]

LOAN_COLUMNS = [
    "id",
    "user_id",
    "type",
    "amount",
    "description",
    "date",
    "created_at",
]

AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "user_id",
    "entity_type",
    "entity_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
    "is_user_action",
]

# Row number of the first data row (row 1 is the header)
FIRST_DATA_ROW = 2


def _safe_get(row: list, index: int, default: str = "") -> str:
    """Read a cell, tolerating short rows."""
    try:
        return row[index] if row[index] else default
    except IndexError:
        return default


def _parse_rows(
    rows: list[list],
    user_id: UUID,
    parse: Callable[[list], ModelT],
) -> list[ModelT]:
    """Parse the user's rows, skipping malformed ones."""
    owner = str(user_id)
    records = []
    for row in rows:
        if not row or not row[0] or _safe_get(row, 1) != owner:
            continue
        try:
            records.append(parse(row))
        except (ValidationError, ValueError) as e:
            logger.warning("sheet_row_skipped", row_id=row[0], error=str(e))
    return records


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = get_settings().google_sheets

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise StoreConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise StoreConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise StoreConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def _get_or_create_sheet(
        self,
        title: str,
        columns: list[str],
        rows: int = 1000,
    ) -> gspread.Worksheet:
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            # Create the sheet with headers
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet

    def get_transactions_sheet(self) -> gspread.Worksheet:
        return self._get_or_create_sheet(
            self._settings.transactions_sheet_name, TRANSACTION_COLUMNS
        )

    def get_categories_sheet(self) -> gspread.Worksheet:
        return self._get_or_create_sheet(
            self._settings.categories_sheet_name, CATEGORY_COLUMNS
        )

    def get_loans_sheet(self) -> gspread.Worksheet:
        return self._get_or_create_sheet(
            self._settings.loans_sheet_name, LOAN_COLUMNS
        )

    def get_audit_sheet(self) -> gspread.Worksheet:
        # More rows for audit log
        return self._get_or_create_sheet(
            self._settings.audit_sheet_name, AUDIT_COLUMNS, rows=5000
        )


class GoogleSheetsLedgerStore(LedgerStoreInterface):
    """
    Google Sheets implementation of the ledger store.

    Entries, categories and loans each live in their own worksheet,
    one record per row.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    # -------------------------------------------------------------------------
    # Row conversion
    # -------------------------------------------------------------------------

    @staticmethod
    def _entry_to_row(entry: LedgerEntry) -> list:
        return [
            str(entry.id),
            str(entry.user_id),
            entry.kind.value,
            str(entry.amount),
            str(entry.category_id) if entry.category_id else "",
            entry.note or "",
            entry.occurred_on.isoformat(),
            entry.created_at.isoformat(),
            entry.updated_at.isoformat(),
        ]

    @staticmethod
    def _row_to_entry(row: list) -> LedgerEntry:
        return LedgerEntry(
            id=UUID(_safe_get(row, 0)),
            user_id=UUID(_safe_get(row, 1)),
            kind=_safe_get(row, 2),
            amount=_safe_get(row, 3),
            category_id=_safe_get(row, 4) or None,
            note=_safe_get(row, 5) or None,
            occurred_on=_safe_get(row, 6),
            created_at=datetime.fromisoformat(_safe_get(row, 7)),
            updated_at=datetime.fromisoformat(_safe_get(row, 8) or _safe_get(row, 7)),
        )

    @staticmethod
    def _category_to_row(category: Category) -> list:
        return [
            str(category.id),
            str(category.user_id),
            category.name,
            category.kind.value,
            category.icon or "",
            category.created_at.isoformat(),
        ]

    @staticmethod
    def _row_to_category(row: list) -> Category:
        return Category(
            id=UUID(_safe_get(row, 0)),
            user_id=UUID(_safe_get(row, 1)),
            name=_safe_get(row, 2),
            kind=_safe_get(row, 3),
            icon=_safe_get(row, 4) or None,
            created_at=datetime.fromisoformat(_safe_get(row, 5)),
        )

    @staticmethod
    def _loan_to_row(loan: LoanRecord) -> list:
        return [
            str(loan.id),
            str(loan.user_id),
            loan.kind.value,
            str(loan.amount),
            loan.note or "",
            loan.occurred_on.isoformat(),
            loan.created_at.isoformat(),
        ]

    @staticmethod
    def _row_to_loan(row: list) -> LoanRecord:
        return LoanRecord(
            id=UUID(_safe_get(row, 0)),
            user_id=UUID(_safe_get(row, 1)),
            kind=_safe_get(row, 2),
            amount=_safe_get(row, 3),
            note=_safe_get(row, 4) or None,
            occurred_on=_safe_get(row, 5),
            created_at=datetime.fromisoformat(_safe_get(row, 6)),
        )

    # -------------------------------------------------------------------------
    # Generic row helpers
    # -------------------------------------------------------------------------

    @staticmethod
    def _find_row_index(
        all_rows: list[list],
        record_id: UUID,
        user_id: UUID,
    ) -> Optional[int]:
        """Sheet row number of a user's record, or None."""
        for idx, row in enumerate(all_rows[1:], start=FIRST_DATA_ROW):
            if row and row[0] == str(record_id) and _safe_get(row, 1) == str(user_id):
                return idx
        return None

    def _append(self, sheet: gspread.Worksheet, record_id: UUID, row: list) -> bool:
        ids = sheet.col_values(1)[1:]
        if str(record_id) in ids:
            raise DuplicateError(f"Record already exists: {record_id}")
        sheet.append_row(row, value_input_option="RAW")
        return True

    def _replace(
        self,
        sheet: gspread.Worksheet,
        record_id: UUID,
        user_id: UUID,
        row: list,
    ) -> bool:
        idx = self._find_row_index(sheet.get_all_values(), record_id, user_id)
        if idx is None:
            raise NotFoundError(f"Record not found: {record_id}")
        sheet.update(range_name=f"A{idx}", values=[row], value_input_option="RAW")
        return True

    def _remove(self, sheet: gspread.Worksheet, record_id: UUID, user_id: UUID) -> bool:
        idx = self._find_row_index(sheet.get_all_values(), record_id, user_id)
        if idx is None:
            return False
        sheet.delete_rows(idx)
        return True

    # -------------------------------------------------------------------------
    # Ledger entries
    # -------------------------------------------------------------------------

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_not_exception_type(DuplicateError),
        reraise=True,
    )
    async def save_entry(self, entry: LedgerEntry) -> bool:
        """Append a ledger entry to the Transactions sheet."""
        try:
            sheet = self._client.get_transactions_sheet()
            return self._append(sheet, entry.id, self._entry_to_row(entry))
        except DuplicateError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to save entry: {e}")

    async def get_entry(self, user_id: UUID, entry_id: UUID) -> Optional[LedgerEntry]:
        entries = await self._list_all_entries(user_id)
        for entry in entries:
            if entry.id == entry_id:
                return entry
        return None

    async def update_entry(self, entry: LedgerEntry) -> bool:
        try:
            sheet = self._client.get_transactions_sheet()
            entry.updated_at = datetime.utcnow()
            return self._replace(sheet, entry.id, entry.user_id, self._entry_to_row(entry))
        except NotFoundError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update entry: {e}")

    async def delete_entry(self, user_id: UUID, entry_id: UUID) -> bool:
        try:
            sheet = self._client.get_transactions_sheet()
            return self._remove(sheet, entry_id, user_id)
        except Exception as e:
            raise StorageError(f"Failed to delete entry: {e}")

    async def _list_all_entries(self, user_id: UUID) -> list[LedgerEntry]:
        try:
            sheet = self._client.get_transactions_sheet()
            all_rows = sheet.get_all_values()[1:]  # Skip header
        except Exception as e:
            raise StorageError(f"Failed to list entries: {e}")
        return _parse_rows(all_rows, user_id, self._row_to_entry)

    async def list_entries(
        self,
        user_id: UUID,
        kind: Optional[EntryKind] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        category_id: Optional[UUID] = None,
    ) -> list[LedgerEntry]:
        entries = []
        for entry in await self._list_all_entries(user_id):
            if kind and entry.kind != kind:
                continue
            if date_from and entry.occurred_on < date_from:
                continue
            if date_to and entry.occurred_on > date_to:
                continue
            if category_id and entry.category_id != category_id:
                continue
            entries.append(entry)

        entries.sort(key=lambda e: (e.occurred_on, e.created_at))
        return entries

    # -------------------------------------------------------------------------
    # Categories
    # -------------------------------------------------------------------------

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_not_exception_type(DuplicateError),
        reraise=True,
    )
    async def save_category(self, category: Category) -> bool:
        try:
            sheet = self._client.get_categories_sheet()
            return self._append(sheet, category.id, self._category_to_row(category))
        except DuplicateError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to save category: {e}")

    async def get_category(self, user_id: UUID, category_id: UUID) -> Optional[Category]:
        for category in await self.list_categories(user_id):
            if category.id == category_id:
                return category
        return None

    async def update_category(self, category: Category) -> bool:
        try:
            sheet = self._client.get_categories_sheet()
            return self._replace(
                sheet, category.id, category.user_id, self._category_to_row(category)
            )
        except NotFoundError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update category: {e}")

    async def delete_category(self, user_id: UUID, category_id: UUID) -> bool:
        try:
            sheet = self._client.get_categories_sheet()
            if not self._remove(sheet, category_id, user_id):
                return False
            self._clear_category_references(user_id, category_id)
            return True
        except Exception as e:
            raise StorageError(f"Failed to delete category: {e}")

    def _clear_category_references(self, user_id: UUID, category_id: UUID) -> None:
        """Uncategorize every entry of the user that pointed at the category."""
        sheet = self._client.get_transactions_sheet()
        category_col = TRANSACTION_COLUMNS.index("category_id") + 1
        updated_col = TRANSACTION_COLUMNS.index("updated_at") + 1
        now = datetime.utcnow().isoformat()

        all_rows = sheet.get_all_values()
        for idx, row in enumerate(all_rows[1:], start=FIRST_DATA_ROW):
            if (
                row
                and _safe_get(row, 1) == str(user_id)
                and _safe_get(row, category_col - 1) == str(category_id)
            ):
                sheet.update_cell(idx, category_col, "")
                sheet.update_cell(idx, updated_col, now)

    async def list_categories(
        self,
        user_id: UUID,
        kind: Optional[EntryKind] = None,
    ) -> list[Category]:
        try:
            sheet = self._client.get_categories_sheet()
            all_rows = sheet.get_all_values()[1:]
        except Exception as e:
            raise StorageError(f"Failed to list categories: {e}")

        categories = [
            category
            for category in _parse_rows(all_rows, user_id, self._row_to_category)
            if kind is None or category.kind == kind
        ]
        categories.sort(key=lambda c: (c.kind.value, c.name.lower()))
        return categories

    # -------------------------------------------------------------------------
    # Loans
    # -------------------------------------------------------------------------

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_not_exception_type(DuplicateError),
        reraise=True,
    )
    async def save_loan(self, loan: LoanRecord) -> bool:
        try:
            sheet = self._client.get_loans_sheet()
            return self._append(sheet, loan.id, self._loan_to_row(loan))
        except DuplicateError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to save loan: {e}")

    async def get_loan(self, user_id: UUID, loan_id: UUID) -> Optional[LoanRecord]:
        for loan in await self.list_loans(user_id):
            if loan.id == loan_id:
                return loan
        return None

    async def update_loan(self, loan: LoanRecord) -> bool:
        try:
            sheet = self._client.get_loans_sheet()
            return self._replace(sheet, loan.id, loan.user_id, self._loan_to_row(loan))
        except NotFoundError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update loan: {e}")

    async def delete_loan(self, user_id: UUID, loan_id: UUID) -> bool:
        try:
            sheet = self._client.get_loans_sheet()
            return self._remove(sheet, loan_id, user_id)
        except Exception as e:
            raise StorageError(f"Failed to delete loan: {e}")

    async def list_loans(
        self,
        user_id: UUID,
        kind: Optional[LoanKind] = None,
    ) -> list[LoanRecord]:
        try:
            sheet = self._client.get_loans_sheet()
            all_rows = sheet.get_all_values()[1:]
        except Exception as e:
            raise StorageError(f"Failed to list loans: {e}")

        loans = [
            loan
            for loan in _parse_rows(all_rows, user_id, self._row_to_loan)
            if kind is None or loan.kind == kind
        ]
        loans.sort(key=lambda l: (l.occurred_on, l.created_at), reverse=True)
        return loans


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_event(self, row: list) -> AuditEvent:
        """Convert a spreadsheet row to an AuditEvent."""
        details: dict[str, Any] = json.loads(_safe_get(row, 9)) if _safe_get(row, 9) else {}
        return AuditEvent(
            event_id=UUID(_safe_get(row, 0)),
            timestamp=datetime.fromisoformat(_safe_get(row, 1)),
            event_type=_safe_get(row, 2),
            severity=_safe_get(row, 3),
            user_id=_safe_get(row, 4) or None,
            entity_type=_safe_get(row, 5) or None,
            entity_id=_safe_get(row, 6) or None,
            correlation_id=_safe_get(row, 7) or None,
            description=_safe_get(row, 8),
            details=details,
            error_message=_safe_get(row, 10) or None,
            is_user_action=_safe_get(row, 11).lower() == "true",
        )

    def _read_events(self, keep: Callable[[list], bool]) -> list[AuditEvent]:
        try:
            sheet = self._client.get_audit_sheet()
            all_rows = sheet.get_all_values()[1:]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

        events = []
        for row in all_rows:
            if not row or not row[0] or not keep(row):
                continue
            try:
                events.append(self._row_to_event(row))
            except (ValidationError, ValueError):
                continue
        return events

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            sheet = self._client.get_audit_sheet()
            sheet.append_row(event.to_sheets_row(), value_input_option="RAW")
            return True
        except Exception as e:
            # Don't raise - audit logging should not break the main flow
            logger.warning("audit_event_write_failed", error=str(e))
            return False

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = self._read_events(lambda row: _safe_get(row, 7) == str(correlation_id))
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        events = self._read_events(
            lambda row: _safe_get(row, 5) == entity_type and _safe_get(row, 6) == str(entity_id)
        )
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        events = self._read_events(lambda row: True)
        # Sort newest first
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
