"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets works as a storage backend because:
1. The couple can view and fix their data directly in Sheets
2. No database setup required
3. Easy to export/migrate later

TRADEOFFS:
- Not suitable for high-volume data (fine for one household)
- No transactions: writes are single append/update/delete calls
- No server-side queries: everything is read and filtered in Python

The implementation follows the abstract interface, so the hosted
database can replace it without touching the aggregation engine.
"""

import json
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Optional
from uuid import UUID, uuid4

import gspread
import structlog
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from couple_finance.config import get_settings
from couple_finance.models.audit import AuditEvent, AuditEventType, AuditSeverity
from couple_finance.models.transaction import (
    PaymentMethod,
    RecurrenceType,
    Transaction,
    TransactionCreate,
    TransactionType,
)
from couple_finance.services.storage.interface import (
    AuditStorageInterface,
    NotFoundError,
    StorageConnectionError,
    StorageError,
    TransactionStorageInterface,
)


logger = structlog.get_logger(__name__)


# Column mappings for Transactions sheet
TRANSACTION_COLUMNS = [
    "id",
    "type",
    "category",
    "description",
    "tag",
    "amount",
    "person",
    "date",
    "recurrence",
    "include_in_split",
    "payment_method",
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
                raise StorageConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise StorageConnectionError(f"Failed to connect to Google Sheets: {e}")

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
                raise StorageConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def _get_or_create_sheet(self, title: str, columns: list[str], rows: int) -> gspread.Worksheet:
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
        """Get or create the Transactions worksheet."""
        return self._get_or_create_sheet(
            self._settings.transactions_sheet_name, TRANSACTION_COLUMNS, rows=2000
        )

    def get_audit_sheet(self) -> gspread.Worksheet:
        """Get or create the Audit worksheet."""
        return self._get_or_create_sheet(
            self._settings.audit_sheet_name, AUDIT_COLUMNS, rows=5000
        )


def _utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class GoogleSheetsTransactionStorage(TransactionStorageInterface):
    """
    Google Sheets implementation of transaction storage.

    One transaction per row. Dates are written as YYYY-MM-DD so they
    read back as the same civil date everywhere.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _transaction_to_row(self, transaction: Transaction, created_at: Optional[str] = None) -> list:
        """Convert a Transaction to a spreadsheet row."""
        now = _utcnow_iso()
        return [
            str(transaction.id),
            transaction.type.value,
            transaction.category,
            transaction.description,
            transaction.tag or "",
            str(transaction.amount),
            transaction.person,
            transaction.date.isoformat(),
            transaction.recurrence.to_storage(),
            str(transaction.include_in_split),
            transaction.payment_method.value if transaction.payment_method else "",
            created_at or now,
            now,
        ]

    def _row_to_transaction(self, row: list) -> Transaction:
        """Convert a spreadsheet row to a Transaction."""
        # Handle missing columns gracefully
        def safe_get(index: int, default: str = "") -> str:
            try:
                return row[index] if row[index] else default
            except IndexError:
                return default

        return Transaction(
            id=UUID(safe_get(0)),
            type=TransactionType(safe_get(1)),
            category=safe_get(2),
            description=safe_get(3),
            tag=safe_get(4) or None,
            amount=Decimal(safe_get(5)),
            person=safe_get(6),
            date=date.fromisoformat(safe_get(7)[:10]),
            recurrence=RecurrenceType.from_storage(safe_get(8) or None),
            include_in_split=safe_get(9).lower() == "true",
            payment_method=PaymentMethod(safe_get(10)) if safe_get(10) else None,
        )

    def _find_row_index(self, all_rows: list[list], transaction_id: UUID) -> Optional[int]:
        """1-based sheet row of a transaction (row 1 is the header)."""
        for idx, row in enumerate(all_rows[1:], start=2):
            if row and row[0] == str(transaction_id):
                return idx
        return None

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def list_transactions(self) -> list[Transaction]:
        """List every transaction, newest first. Malformed rows are skipped."""
        try:
            sheet = self._client.get_transactions_sheet()
            all_rows = sheet.get_all_values()[1:]  # Skip header
        except Exception as e:
            raise StorageError(f"Failed to list transactions: {e}")

        transactions = []
        for line, row in enumerate(all_rows, start=2):
            if not row or not row[0]:  # Skip empty rows
                continue
            try:
                transactions.append(self._row_to_transaction(row))
            except Exception as e:
                logger.warning("skipped_malformed_row", sheet_row=line, error=str(e))

        transactions.sort(key=lambda t: t.date, reverse=True)
        return transactions

    async def get_transaction(self, transaction_id: UUID) -> Optional[Transaction]:
        """Retrieve a transaction by its ID."""
        try:
            sheet = self._client.get_transactions_sheet()
            all_rows = sheet.get_all_values()
        except Exception as e:
            raise StorageError(f"Failed to get transaction: {e}")

        idx = self._find_row_index(all_rows, transaction_id)
        if idx is None:
            return None
        try:
            return self._row_to_transaction(all_rows[idx - 1])
        except Exception as e:
            logger.warning("malformed_row", sheet_row=idx, error=str(e))
            raise StorageError(f"Malformed transaction row {idx}: {e}")

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def create_transaction(self, data: TransactionCreate) -> Transaction:
        """Append a new transaction row."""
        transaction = Transaction.from_create(uuid4(), data)
        try:
            sheet = self._client.get_transactions_sheet()
            sheet.append_row(self._transaction_to_row(transaction), value_input_option="RAW")
        except Exception as e:
            raise StorageError(f"Failed to save transaction: {e}")
        return transaction

    async def create_transactions(
        self,
        items: list[TransactionCreate],
    ) -> list[Transaction]:
        """Append all rows in a single API call."""
        transactions = [Transaction.from_create(uuid4(), item) for item in items]
        if not transactions:
            return []
        try:
            sheet = self._client.get_transactions_sheet()
            sheet.append_rows(
                [self._transaction_to_row(t) for t in transactions],
                value_input_option="RAW",
            )
        except Exception as e:
            raise StorageError(f"Failed to save transactions: {e}")
        return transactions

    async def update_transaction(self, transaction: Transaction) -> bool:
        """Overwrite the row holding this transaction's id."""
        try:
            sheet = self._client.get_transactions_sheet()
            all_rows = sheet.get_all_values()

            idx = self._find_row_index(all_rows, transaction.id)
            if idx is None:
                raise NotFoundError(f"Transaction not found: {transaction.id}")

            existing = all_rows[idx - 1]
            created_at = existing[11] if len(existing) > 11 and existing[11] else None
            sheet.update(
                values=[self._transaction_to_row(transaction, created_at=created_at)],
                range_name=f"A{idx}",
                value_input_option="RAW",
            )
            return True
        except NotFoundError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update transaction: {e}")

    async def delete_transaction(self, transaction_id: UUID) -> bool:
        """Delete a transaction by ID."""
        try:
            sheet = self._client.get_transactions_sheet()
            all_rows = sheet.get_all_values()

            idx = self._find_row_index(all_rows, transaction_id)
            if idx is None:
                return False
            sheet.delete_rows(idx)
            return True
        except Exception as e:
            raise StorageError(f"Failed to delete transaction: {e}")


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_event(self, row: list) -> AuditEvent:
        """Convert a spreadsheet row to an AuditEvent."""
        def safe_get(index: int, default: str = "") -> str:
            try:
                return row[index] if row[index] else default
            except IndexError:
                return default

        return AuditEvent(
            event_id=UUID(safe_get(0)),
            timestamp=datetime.fromisoformat(safe_get(1)),
            event_type=AuditEventType(safe_get(2)),
            severity=AuditSeverity(safe_get(3)),
            entity_type=safe_get(4) or None,
            entity_id=UUID(safe_get(5)) if safe_get(5) else None,
            correlation_id=UUID(safe_get(6)) if safe_get(6) else None,
            description=safe_get(7),
            details=json.loads(safe_get(8)) if safe_get(8) else {},
            error_message=safe_get(9) or None,
            is_user_action=safe_get(10).lower() == "true",
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
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

        events = []
        for row in all_rows:
            if row and row[0]:
                try:
                    events.append(self._row_to_event(row))
                except Exception as e:
                    logger.warning("skipped_malformed_audit_row", error=str(e))

        # Sort newest first
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
