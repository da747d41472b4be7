"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is used as the hosted storage backend because:
1. Household users can open their ledger directly in Sheets
2. No database setup required
3. Easy to export/migrate later

TRADEOFFS:
- No transactions and no unique constraints (we re-check after writes)
- Limited query capabilities (we filter and sum in Python)

Writes are never retried: a retried append after a timeout could record
the same expense twice. Only connection setup and reads are retried.
"""

import asyncio
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Optional
from uuid import uuid4

import gspread
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from smsbudget.config import get_settings
from smsbudget.models.audit import AuditEvent
from smsbudget.models.command import (
    AccountRef,
    BudgetStatus,
    CategoryRef,
    TransactionKind,
    to_money,
)
from smsbudget.services.storage.interface import (
    AccountDirectoryInterface,
    AuditStorageInterface,
    ConnectionError,
    DuplicateError,
    LedgerStorageInterface,
    NotFoundError,
    StorageError,
)


ACCOUNT_COLUMNS = ["user_id", "phone", "account_id", "display_name"]

CATEGORY_COLUMNS = ["category_id", "account_id", "name", "created_at"]

TRANSACTION_COLUMNS = [
    "transaction_id",
    "account_id",
    "category_id",
    "kind",
    "amount",
    "description",
    "merchant",
    "occurred_on",
    "created_at",
]

# month is stored as YYYY-MM
BUDGET_COLUMNS = ["account_id", "category_id", "month", "allocated"]

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

_read_retry = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=0.5, min=0.5, max=2),
    reraise=True,
)


def _cell(row: list, index: int, default: str = "") -> str:
    """Read a cell, tolerating short rows."""
    try:
        return row[index] if row[index] else default
    except IndexError:
        return default


def _to_decimal(value: str) -> Decimal:
    try:
        return Decimal(value or "0")
    except InvalidOperation:
        return Decimal("0")


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and creates missing worksheets with headers.
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

    def get_worksheet(self, title: str, columns: list[str], rows: int = 1000) -> gspread.Worksheet:
        """Get a worksheet, creating it with a header row if missing."""
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet

    def get_accounts_sheet(self) -> gspread.Worksheet:
        return self.get_worksheet(self._settings.accounts_sheet_name, ACCOUNT_COLUMNS)

    def get_categories_sheet(self) -> gspread.Worksheet:
        return self.get_worksheet(self._settings.categories_sheet_name, CATEGORY_COLUMNS)

    def get_transactions_sheet(self) -> gspread.Worksheet:
        return self.get_worksheet(
            self._settings.transactions_sheet_name, TRANSACTION_COLUMNS, rows=5000
        )

    def get_budgets_sheet(self) -> gspread.Worksheet:
        return self.get_worksheet(self._settings.budgets_sheet_name, BUDGET_COLUMNS)

    def get_audit_sheet(self) -> gspread.Worksheet:
        return self.get_worksheet(
            self._settings.audit_sheet_name, AUDIT_COLUMNS, rows=5000
        )


class GoogleSheetsLedgerStorage(AccountDirectoryInterface, LedgerStorageInterface):
    """
    Google Sheets implementation of the account directory and ledger.

    One row per account link, category, transaction and monthly
    allocation. Amounts are stored as plain decimal strings.
    """

    def __init__(
        self,
        client: Optional[GoogleSheetsClient] = None,
        default_category_name: Optional[str] = None,
    ):
        self._client = client or GoogleSheetsClient()
        self._default_category_name = (
            default_category_name or get_settings().sms.default_category_name
        )
        self._category_lock = asyncio.Lock()

    def _account_categories(self, account_id: str) -> list[CategoryRef]:
        """Categories for one account, in sheet order."""
        sheet = self._client.get_categories_sheet()
        return [
            CategoryRef(category_id=_cell(row, 0), name=_cell(row, 2))
            for row in sheet.get_all_values()[1:]
            if _cell(row, 1) == account_id and _cell(row, 0) and _cell(row, 2)
        ]

    def _delete_category_row(self, category_id: str) -> bool:
        """
        Delete the category row with this id.

        The row number is looked up right before deleting, since other
        writers may have shifted rows since the last read.
        """
        sheet = self._client.get_categories_sheet()
        for idx, row in enumerate(sheet.get_all_values()[1:], start=2):
            if _cell(row, 0) == category_id:
                sheet.delete_rows(idx)
                return True
        return False

    # ------------------------------------------------------------------
    # AccountDirectoryInterface
    # ------------------------------------------------------------------

    @_read_retry
    async def resolve_account(self, phone: str) -> Optional[AccountRef]:
        """Find the account linked to a phone, with its categories."""
        try:
            sheet = self._client.get_accounts_sheet()
            for row in sheet.get_all_values()[1:]:
                if _cell(row, 1) == phone and _cell(row, 2):
                    account_id = _cell(row, 2)
                    categories = self._account_categories(account_id)
                    return AccountRef(
                        account_id=account_id,
                        user_id=_cell(row, 0),
                        display_name=_cell(row, 3) or None,
                        categories=tuple(categories),
                    )
            return None
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to resolve account: {e}")

    @_read_retry
    async def find_user_id_by_phone(self, phone: str) -> Optional[str]:
        try:
            sheet = self._client.get_accounts_sheet()
            for row in sheet.get_all_values()[1:]:
                if _cell(row, 1) == phone:
                    return _cell(row, 0)
            return None
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to look up phone: {e}")

    async def link_phone(self, user_id: str, phone: str) -> bool:
        """Set the phone column on the user's row."""
        owner = await self.find_user_id_by_phone(phone)
        if owner and owner != user_id:
            raise DuplicateError("Phone number already linked to another user")

        try:
            sheet = self._client.get_accounts_sheet()
            for idx, row in enumerate(sheet.get_all_values()[1:], start=2):
                if _cell(row, 0) == user_id:
                    sheet.update_cell(idx, ACCOUNT_COLUMNS.index("phone") + 1, phone)
                    return True
        except Exception as e:
            raise StorageError(f"Failed to link phone: {e}")

        raise NotFoundError(f"User not found: {user_id}")

    # ------------------------------------------------------------------
    # LedgerStorageInterface
    # ------------------------------------------------------------------

    async def find_or_create_default_category(self, account_id: str) -> CategoryRef:
        """
        Find or create the default category.

        Sheets has no unique constraint, so after appending we re-read:
        the earliest matching row wins and a later duplicate of ours is
        deleted. Concurrent writers all converge on the same row.
        """
        wanted = self._default_category_name.lower()

        async with self._category_lock:
            try:
                for category in self._account_categories(account_id):
                    if category.name.lower() == wanted:
                        return category

                created = CategoryRef(
                    category_id=uuid4().hex,
                    name=self._default_category_name,
                )
                sheet = self._client.get_categories_sheet()
                sheet.append_row(
                    [
                        created.category_id,
                        account_id,
                        created.name,
                        datetime.utcnow().isoformat(),
                    ],
                    value_input_option="RAW",
                )

                matches = [
                    category
                    for category in self._account_categories(account_id)
                    if category.name.lower() == wanted
                ]
                winner = matches[0] if matches else created
                if winner.category_id != created.category_id:
                    self._delete_category_row(created.category_id)
                return winner
            except Exception as e:
                raise StorageError(f"Failed to find or create default category: {e}")

    async def insert_transaction(
        self,
        account_id: str,
        category_id: str,
        amount: Decimal,
        kind: TransactionKind,
        description: str,
        occurred_on: date,
        merchant: Optional[str] = None,
    ) -> str:
        """Append one transaction row. Never retried."""
        transaction_id = uuid4().hex
        try:
            sheet = self._client.get_transactions_sheet()
            sheet.append_row(
                [
                    transaction_id,
                    account_id,
                    category_id,
                    TransactionKind(kind).value,
                    str(to_money(amount)),
                    description,
                    merchant or "",
                    occurred_on.isoformat(),
                    datetime.utcnow().isoformat(),
                ],
                value_input_option="RAW",
            )
            return transaction_id
        except Exception as e:
            raise StorageError(f"Failed to insert transaction: {e}")

    @_read_retry
    async def get_budget_status(
        self,
        account_id: str,
        category_id: Optional[str],
        month: date,
    ) -> BudgetStatus:
        """Sum allocations and expenses for the month in Python."""
        month_key = month.strftime("%Y-%m")
        try:
            allocated = Decimal("0")
            for row in self._client.get_budgets_sheet().get_all_values()[1:]:
                if (
                    _cell(row, 0) == account_id
                    and (category_id is None or _cell(row, 1) == category_id)
                    and _cell(row, 2) == month_key
                ):
                    allocated += _to_decimal(_cell(row, 3))

            spent = Decimal("0")
            for row in self._client.get_transactions_sheet().get_all_values()[1:]:
                if (
                    _cell(row, 1) == account_id
                    and (category_id is None or _cell(row, 2) == category_id)
                    and _cell(row, 3) == TransactionKind.EXPENSE.value
                    and _cell(row, 7).startswith(month_key)
                ):
                    spent += _to_decimal(_cell(row, 4))

            return BudgetStatus(allocated=to_money(allocated), spent=to_money(spent))
        except Exception as e:
            raise StorageError(f"Failed to read budget status: {e}")


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event. Failures are reported, not raised."""
        try:
            sheet = self._client.get_audit_sheet()
            sheet.append_row(event.to_sheets_row(), value_input_option="RAW")
            return True
        except Exception:
            return False
