"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is used as the hosted backend because:
1. The owner can inspect and export expense history directly
2. No database setup required
3. Built-in backup (Google's infrastructure)

TRADEOFFS:
- Not suitable for high-volume data (fine for a personal dashboard)
- No transactions (history is append-only, so we rarely need them)
- Limited query capabilities (we filter in Python)

Unlike a best-effort import, a history row that cannot be parsed stops the
read with HistoryDataError. Skipping it would silently change every total
after that row's date.
"""

from datetime import date, datetime
from typing import Optional
from uuid import UUID

import gspread
from google.oauth2.service_account import Credentials
from pydantic import ValidationError
from tenacity import retry, stop_after_attempt, wait_exponential

from finance_dashboard.config import GoogleSheetsSettings, get_settings
from finance_dashboard.models.audit import AuditEvent, AuditEventType, AuditSeverity
from finance_dashboard.models.expense import Expense, ExpenseEvent
from finance_dashboard.models.income import (
    DEFAULT_SOURCE_COLOR,
    IncomeAmount,
    IncomeEntry,
    IncomeSource,
)
from finance_dashboard.models.net_worth import NetWorthEntry
from finance_dashboard.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    ExpenseStorageInterface,
    HistoryDataError,
    IncomeStorageInterface,
    NetWorthStorageInterface,
    StorageError,
)


# Column mappings for Expenses sheet
EXPENSE_COLUMNS = [
    "id",
    "name",
    "amount",
    "frequency",
    "expense_type",
    "category",
    "is_active",
    "effective_date",
    "notes",
    "deleted_at",
    "created_at",
    "updated_at",
]

# Column mappings for ExpenseHistory sheet
HISTORY_COLUMNS = [
    "id",
    "expense_id",
    "event_type",
    "amount",
    "frequency",
    "is_active",
    "changed_at",
    "notes",
]

# Column mappings for income sheets
INCOME_SOURCE_COLUMNS = [
    "id",
    "name",
    "slug",
    "color",
    "sort_order",
    "is_active",
    "deleted_at",
    "created_at",
    "updated_at",
]

INCOME_ENTRY_COLUMNS = [
    "id",
    "month",
    "notes",
    "deleted_at",
    "created_at",
    "updated_at",
]

INCOME_AMOUNT_COLUMNS = [
    "id",
    "entry_id",
    "source_id",
    "amount",
    "created_at",
    "updated_at",
]

# Column mappings for NetWorth sheet
NET_WORTH_COLUMNS = [
    "id",
    "date",
    "amount",
    "notes",
    "deleted_at",
    "created_at",
    "updated_at",
]

# Column mappings for Audit sheet
AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "entity_type",
    "entity_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
    "is_user_action",
]


def _cell(row: list, index: int) -> str:
    """Cell value, or '' for missing trailing cells."""
    try:
        return row[index] if row[index] else ""
    except IndexError:
        return ""


def _bool_cell(row: list, index: int) -> bool:
    """
    Parse a TRUE/FALSE cell.

    Blank or other values raise ValueError. Reading them as False would
    silently drop the expense from every later total.
    """
    value = _cell(row, index).strip().lower()
    if value not in ("true", "false"):
        raise ValueError(f"Expected TRUE or FALSE in column {index + 1}, got {value!r}")
    return value == "true"


def _optional_datetime(row: list, index: int) -> Optional[datetime]:
    value = _cell(row, index)
    return datetime.fromisoformat(value) if value else None


def _upsert_row(sheet: gspread.Worksheet, new_row: list) -> None:
    """Overwrite the row whose first cell matches `new_row[0]`, or append."""
    all_rows = sheet.get_all_values()
    for idx, row in enumerate(all_rows[1:], start=2):  # Row 1 is header
        if row and row[0] == new_row[0]:
            for col_idx, value in enumerate(new_row, start=1):
                sheet.update_cell(idx, col_idx, value)
            return
    sheet.append_row(new_row, value_input_option="RAW")


def _parse_rows(rows: list[list], parse, label: str) -> list:
    """
    Parse every non-empty data row (header already removed) with `parse`.

    A row that fails to parse raises StorageError naming its sheet row.
    """
    items = []
    for row_number, row in enumerate(rows, start=2):
        if not row or not row[0]:  # Skip empty rows
            continue
        try:
            items.append(parse(row))
        except (ValidationError, ValueError) as e:
            raise StorageError(f"Malformed {label} row {row_number}: {e}")
    return items


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = settings or get_settings().google_sheets

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
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}")

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
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def _get_or_create_sheet(
        self,
        title: str,
        columns: list[str],
        rows: int,
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

    def get_expenses_sheet(self) -> gspread.Worksheet:
        """Get or create the Expenses worksheet."""
        return self._get_or_create_sheet(
            self._settings.expenses_sheet_name, EXPENSE_COLUMNS, rows=500
        )

    def get_history_sheet(self) -> gspread.Worksheet:
        """Get or create the ExpenseHistory worksheet."""
        return self._get_or_create_sheet(
            self._settings.history_sheet_name, HISTORY_COLUMNS, rows=5000
        )

    def get_income_sources_sheet(self) -> gspread.Worksheet:
        """Get or create the IncomeSources worksheet."""
        return self._get_or_create_sheet(
            self._settings.income_sources_sheet_name, INCOME_SOURCE_COLUMNS, rows=100
        )

    def get_income_entries_sheet(self) -> gspread.Worksheet:
        """Get or create the IncomeEntries worksheet."""
        return self._get_or_create_sheet(
            self._settings.income_entries_sheet_name, INCOME_ENTRY_COLUMNS, rows=500
        )

    def get_income_amounts_sheet(self) -> gspread.Worksheet:
        """Get or create the IncomeAmounts worksheet."""
        return self._get_or_create_sheet(
            self._settings.income_amounts_sheet_name, INCOME_AMOUNT_COLUMNS, rows=5000
        )

    def get_net_worth_sheet(self) -> gspread.Worksheet:
        """Get or create the NetWorth worksheet."""
        return self._get_or_create_sheet(
            self._settings.net_worth_sheet_name, NET_WORTH_COLUMNS, rows=500
        )

    def get_audit_sheet(self) -> gspread.Worksheet:
        """Get or create the Audit worksheet."""
        return self._get_or_create_sheet(
            self._settings.audit_sheet_name, AUDIT_COLUMNS, rows=5000
        )


class GoogleSheetsExpenseStorage(ExpenseStorageInterface):
    """
    Google Sheets implementation of expense storage.

    Expenses are one row each and are updated in place. History events are
    appended and never touched again.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    # -------------------------------------------------------------------------
    # Row conversion
    # -------------------------------------------------------------------------

    @staticmethod
    def expense_to_row(expense: Expense) -> list:
        """Convert an Expense to a spreadsheet row."""
        return [
            str(expense.id),
            expense.name,
            str(expense.amount),
            expense.frequency.value,
            expense.expense_type.value,
            expense.category.value if expense.category else "",
            str(expense.is_active),
            expense.effective_date.isoformat(),
            expense.notes or "",
            expense.deleted_at.isoformat() if expense.deleted_at else "",
            expense.created_at.isoformat(),
            expense.updated_at.isoformat(),
        ]

    @staticmethod
    def row_to_expense(row: list) -> Expense:
        """Convert a spreadsheet row to an Expense."""
        return Expense(
            id=UUID(_cell(row, 0)),
            name=_cell(row, 1),
            amount=_cell(row, 2),
            frequency=_cell(row, 3),
            expense_type=_cell(row, 4),
            category=_cell(row, 5) or None,
            is_active=_bool_cell(row, 6),
            effective_date=date.fromisoformat(_cell(row, 7)),
            notes=_cell(row, 8) or None,
            deleted_at=datetime.fromisoformat(_cell(row, 9)) if _cell(row, 9) else None,
            created_at=datetime.fromisoformat(_cell(row, 10)),
            updated_at=datetime.fromisoformat(_cell(row, 11)),
        )

    @staticmethod
    def event_to_row(event: ExpenseEvent) -> list:
        """Convert an ExpenseEvent to a spreadsheet row."""
        return [
            str(event.id),
            str(event.expense_id),
            event.event_type.value,
            str(event.amount),
            event.frequency.value,
            str(event.is_active),
            event.changed_at.isoformat(),
            event.notes or "",
        ]

    @staticmethod
    def row_to_event(row: list) -> ExpenseEvent:
        """
        Convert a spreadsheet row to an ExpenseEvent.

        Validation is left to the model, so an unknown frequency or a bad
        timestamp raises instead of being coerced.
        """
        return ExpenseEvent.model_validate({
            "id": _cell(row, 0),
            "expense_id": _cell(row, 1),
            "event_type": _cell(row, 2),
            "amount": _cell(row, 3),
            "frequency": _cell(row, 4),
            "is_active": _bool_cell(row, 5),
            "changed_at": _cell(row, 6),
            "notes": _cell(row, 7) or None,
        })

    # -------------------------------------------------------------------------
    # Expenses
    # -------------------------------------------------------------------------

    async def list_expenses(self, include_deleted: bool = False) -> list[Expense]:
        """List expense rows."""
        try:
            sheet = self._client.get_expenses_sheet()
            all_rows = sheet.get_all_values()[1:]  # Skip header
        except Exception as e:
            raise StorageError(f"Failed to list expenses: {e}")

        expenses = [
            e for e in _parse_rows(all_rows, self.row_to_expense, "expense")
            if include_deleted or not e.is_deleted
        ]
        expenses.sort(key=lambda e: e.name.lower())
        return expenses

    async def get_expense(self, expense_id: UUID) -> Optional[Expense]:
        """Retrieve an expense by its ID."""
        for expense in await self.list_expenses(include_deleted=True):
            if expense.id == expense_id:
                return expense
        return None

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def save_expense(self, expense: Expense) -> bool:
        """Insert a new expense row, or overwrite the existing one."""
        try:
            _upsert_row(self._client.get_expenses_sheet(), self.expense_to_row(expense))
            return True
        except Exception as e:
            raise StorageError(f"Failed to save expense: {e}")

    # -------------------------------------------------------------------------
    # History
    # -------------------------------------------------------------------------

    async def list_history(
        self,
        expense_id: Optional[UUID] = None,
    ) -> list[ExpenseEvent]:
        """List history events, failing on the first malformed row."""
        try:
            sheet = self._client.get_history_sheet()
            all_rows = sheet.get_all_values()[1:]  # Skip header
        except Exception as e:
            raise StorageError(f"Failed to read expense history: {e}")

        events = []
        for row_number, row in enumerate(all_rows, start=2):
            if not any(row):  # Skip blank rows
                continue
            if expense_id is not None and _cell(row, 1) != str(expense_id):
                continue
            try:
                events.append(self.row_to_event(row))
            except (ValidationError, ValueError) as e:
                raise HistoryDataError(
                    f"Malformed expense history row {row_number}: {e}"
                )
        return events

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def append_history_event(self, event: ExpenseEvent) -> bool:
        """Append a history event."""
        try:
            sheet = self._client.get_history_sheet()
            sheet.append_row(self.event_to_row(event), value_input_option="RAW")
            return True
        except Exception as e:
            raise StorageError(f"Failed to append history event: {e}")


class GoogleSheetsIncomeStorage(IncomeStorageInterface):
    """
    Google Sheets implementation of income storage.

    Sources, entries and amounts live on three sheets. Amounts reference
    entries and sources by ID.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    # -------------------------------------------------------------------------
    # Row conversion
    # -------------------------------------------------------------------------

    @staticmethod
    def source_to_row(source: IncomeSource) -> list:
        return [
            str(source.id),
            source.name,
            source.slug,
            source.color,
            str(source.sort_order),
            str(source.is_active),
            source.deleted_at.isoformat() if source.deleted_at else "",
            source.created_at.isoformat(),
            source.updated_at.isoformat(),
        ]

    @staticmethod
    def row_to_source(row: list) -> IncomeSource:
        return IncomeSource(
            id=UUID(_cell(row, 0)),
            name=_cell(row, 1),
            slug=_cell(row, 2),
            color=_cell(row, 3) or DEFAULT_SOURCE_COLOR,
            sort_order=int(_cell(row, 4) or 0),
            is_active=_bool_cell(row, 5),
            deleted_at=_optional_datetime(row, 6),
            created_at=datetime.fromisoformat(_cell(row, 7)),
            updated_at=datetime.fromisoformat(_cell(row, 8)),
        )

    @staticmethod
    def entry_to_row(entry: IncomeEntry) -> list:
        return [
            str(entry.id),
            entry.month.isoformat(),
            entry.notes or "",
            entry.deleted_at.isoformat() if entry.deleted_at else "",
            entry.created_at.isoformat(),
            entry.updated_at.isoformat(),
        ]

    @staticmethod
    def row_to_entry(row: list) -> IncomeEntry:
        return IncomeEntry(
            id=UUID(_cell(row, 0)),
            month=_cell(row, 1),
            notes=_cell(row, 2) or None,
            deleted_at=_optional_datetime(row, 3),
            created_at=datetime.fromisoformat(_cell(row, 4)),
            updated_at=datetime.fromisoformat(_cell(row, 5)),
        )

    @staticmethod
    def amount_to_row(amount: IncomeAmount) -> list:
        return [
            str(amount.id),
            str(amount.entry_id),
            str(amount.source_id),
            str(amount.amount),
            amount.created_at.isoformat(),
            amount.updated_at.isoformat(),
        ]

    @staticmethod
    def row_to_amount(row: list) -> IncomeAmount:
        return IncomeAmount(
            id=UUID(_cell(row, 0)),
            entry_id=UUID(_cell(row, 1)),
            source_id=UUID(_cell(row, 2)),
            amount=_cell(row, 3),
            created_at=datetime.fromisoformat(_cell(row, 4)),
            updated_at=datetime.fromisoformat(_cell(row, 5)),
        )

    # -------------------------------------------------------------------------
    # Sources and entries
    # -------------------------------------------------------------------------

    async def list_sources(self, include_deleted: bool = False) -> list[IncomeSource]:
        try:
            all_rows = self._client.get_income_sources_sheet().get_all_values()[1:]
        except Exception as e:
            raise StorageError(f"Failed to list income sources: {e}")

        sources = [
            s for s in _parse_rows(all_rows, self.row_to_source, "income source")
            if include_deleted or not s.is_deleted
        ]
        sources.sort(key=lambda s: (s.sort_order, s.name.lower()))
        return sources

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def save_source(self, source: IncomeSource) -> bool:
        try:
            _upsert_row(self._client.get_income_sources_sheet(), self.source_to_row(source))
            return True
        except Exception as e:
            raise StorageError(f"Failed to save income source: {e}")

    async def list_entries(self, include_deleted: bool = False) -> list[IncomeEntry]:
        try:
            all_rows = self._client.get_income_entries_sheet().get_all_values()[1:]
        except Exception as e:
            raise StorageError(f"Failed to list income entries: {e}")

        entries = [
            e for e in _parse_rows(all_rows, self.row_to_entry, "income entry")
            if include_deleted or not e.is_deleted
        ]
        entries.sort(key=lambda e: e.month, reverse=True)
        return entries

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def save_entry(self, entry: IncomeEntry) -> bool:
        try:
            _upsert_row(self._client.get_income_entries_sheet(), self.entry_to_row(entry))
            return True
        except Exception as e:
            raise StorageError(f"Failed to save income entry: {e}")

    # -------------------------------------------------------------------------
    # Amounts
    # -------------------------------------------------------------------------

    async def list_amounts(self, entry_id: Optional[UUID] = None) -> list[IncomeAmount]:
        try:
            all_rows = self._client.get_income_amounts_sheet().get_all_values()[1:]
        except Exception as e:
            raise StorageError(f"Failed to list income amounts: {e}")

        amounts = _parse_rows(all_rows, self.row_to_amount, "income amount")
        if entry_id is None:
            return amounts
        return [a for a in amounts if a.entry_id == entry_id]

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def save_amount(self, amount: IncomeAmount) -> IncomeAmount:
        """Replace the amount for the same entry and source, or append."""
        try:
            sheet = self._client.get_income_amounts_sheet()
            for row in sheet.get_all_values()[1:]:
                if (
                    row and row[0]
                    and _cell(row, 1) == str(amount.entry_id)
                    and _cell(row, 2) == str(amount.source_id)
                ):
                    amount = amount.model_copy(update={
                        "id": UUID(row[0]),
                        "created_at": datetime.fromisoformat(_cell(row, 4)),
                    })
                    break
            _upsert_row(sheet, self.amount_to_row(amount))
            return amount
        except Exception as e:
            raise StorageError(f"Failed to save income amount: {e}")


class GoogleSheetsNetWorthStorage(NetWorthStorageInterface):
    """Google Sheets implementation of net worth storage. One row per snapshot."""

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    @staticmethod
    def entry_to_row(entry: NetWorthEntry) -> list:
        return [
            str(entry.id),
            entry.date.isoformat(),
            str(entry.amount),
            entry.notes or "",
            entry.deleted_at.isoformat() if entry.deleted_at else "",
            entry.created_at.isoformat(),
            entry.updated_at.isoformat(),
        ]

    @staticmethod
    def row_to_entry(row: list) -> NetWorthEntry:
        return NetWorthEntry(
            id=UUID(_cell(row, 0)),
            date=date.fromisoformat(_cell(row, 1)),
            amount=_cell(row, 2),
            notes=_cell(row, 3) or None,
            deleted_at=_optional_datetime(row, 4),
            created_at=datetime.fromisoformat(_cell(row, 5)),
            updated_at=datetime.fromisoformat(_cell(row, 6)),
        )

    async def list_entries(self, include_deleted: bool = False) -> list[NetWorthEntry]:
        try:
            all_rows = self._client.get_net_worth_sheet().get_all_values()[1:]
        except Exception as e:
            raise StorageError(f"Failed to list net worth entries: {e}")

        entries = [
            e for e in _parse_rows(all_rows, self.row_to_entry, "net worth")
            if include_deleted or not e.is_deleted
        ]
        entries.sort(key=lambda e: e.date, reverse=True)
        return entries

    async def get_entry(self, entry_id: UUID) -> Optional[NetWorthEntry]:
        for entry in await self.list_entries(include_deleted=True):
            if entry.id == entry_id:
                return entry
        return None

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def save_entry(self, entry: NetWorthEntry) -> bool:
        try:
            _upsert_row(self._client.get_net_worth_sheet(), self.entry_to_row(entry))
            return True
        except Exception as e:
            raise StorageError(f"Failed to save net worth entry: {e}")


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_event(self, row: list) -> AuditEvent:
        """Convert a spreadsheet row to an AuditEvent."""
        import json

        return AuditEvent(
            event_id=UUID(_cell(row, 0)),
            timestamp=datetime.fromisoformat(_cell(row, 1)),
            event_type=AuditEventType(_cell(row, 2)),
            severity=AuditSeverity(_cell(row, 3)),
            entity_type=_cell(row, 4) or None,
            entity_id=UUID(_cell(row, 5)) if _cell(row, 5) else None,
            correlation_id=UUID(_cell(row, 6)) if _cell(row, 6) else None,
            description=_cell(row, 7),
            details=json.loads(_cell(row, 8)) if _cell(row, 8) else {},
            error_message=_cell(row, 9) or None,
            is_user_action=_cell(row, 10).lower() == "true",
        )

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
            raise StorageError(f"Failed to write audit event: {e}")

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get recent events."""
        try:
            sheet = self._client.get_audit_sheet()
            all_rows = sheet.get_all_values()[1:]

            events = []
            for row in all_rows:
                if row and row[0]:
                    try:
                        events.append(self._row_to_event(row))
                    except (ValidationError, ValueError):
                        continue  # audit rows are informational only

            # Sort newest first
            events.sort(key=lambda e: e.timestamp, reverse=True)
            return events[:limit]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")
