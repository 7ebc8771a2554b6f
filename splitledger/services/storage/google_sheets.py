"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is used as the hosted storage backend because:
1. Group members can look at the raw ledger directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)
4. Easy to export/migrate later

LAYOUT:
- Groups sheet: one row per group, members as a JSON column
- Transactions sheet: one row per expense or settlement, keyed by group_id

Transactions get their own rows because a group's history grows without
bound and a single cell holds at most 50,000 characters. Members stay
in the group row; a group never has enough of them to approach that.

TRADEOFFS:
- No transactions (last writer wins, which the ledger already assumes)
- Filtering happens in Python

The implementation follows the abstract interface, so we can swap
to a document database later without changing ledger logic.
"""

import json
from datetime import datetime
from typing import Optional

import gspread
from gspread.utils import rowcol_to_a1
from google.oauth2.service_account import Credentials
from tenacity import (
    retry,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from splitledger.config import get_settings
from splitledger.models.ledger import (
    Group,
    GroupKind,
    Member,
    SplitMode,
    TransactionKind,
    TransactionRecord,
)
from splitledger.services.storage.interface import (
    ConnectionError,
    DuplicateError,
    GroupStorageInterface,
    NotFoundError,
    StorageError,
)


# Column mappings for Groups sheet
GROUP_COLUMNS = [
    "id",
    "name",
    "description",
    "created_at",
    "created_by",
    "kind",
    "is_settled",
    "budget",
    "member_emails",
    "members_json",
]

# Column mappings for Transactions sheet
TRANSACTION_COLUMNS = [
    "id",
    "group_id",
    "payer_id",
    "amount",
    "note",
    "created_at",
    "kind",
    "split_mode",
    "splits_json",
    "counterparty_id",
    "category_id",
    "receipt_url",
]

# Google Sheets rejects any cell longer than this
MAX_CELL_LENGTH = 50000


class CellLimitError(StorageError):
    """A value is too long for one Google Sheets cell."""
    pass


# Not-found, duplicate and cell-limit answers are final; everything else is retried.
_retry_storage = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    retry=retry_if_not_exception_type((NotFoundError, DuplicateError, CellLimitError)),
    reraise=True,
)


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

    def _get_or_create_sheet(self, title: str, columns: list[str]) -> gspread.Worksheet:
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=1000,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet

    def get_groups_sheet(self) -> gspread.Worksheet:
        """Get or create the Groups worksheet."""
        return self._get_or_create_sheet(self._settings.groups_sheet_name, GROUP_COLUMNS)

    def get_transactions_sheet(self) -> gspread.Worksheet:
        """Get or create the Transactions worksheet."""
        return self._get_or_create_sheet(
            self._settings.transactions_sheet_name, TRANSACTION_COLUMNS
        )


def _check_cell_lengths(row: list, columns: list[str]) -> None:
    for name, value in zip(columns, row):
        if len(value) > MAX_CELL_LENGTH:
            raise CellLimitError(
                f"Column '{name}' is {len(value)} characters; "
                f"Google Sheets cells hold at most {MAX_CELL_LENGTH}"
            )


def group_to_row(group: Group) -> list:
    """Convert a Group to a Groups sheet row. Transactions are stored separately."""
    return [
        group.id,
        group.name,
        group.description,
        group.created_at.isoformat(),
        group.created_by,
        group.kind.value,
        str(group.is_settled),
        str(group.budget) if group.budget is not None else "",
        ",".join(group.member_emails),
        json.dumps([m.model_dump(mode="json") for m in group.members]),
    ]


def transaction_to_row(group_id: str, transaction: TransactionRecord) -> list:
    """Convert a TransactionRecord to a Transactions sheet row."""
    return [
        transaction.id,
        group_id,
        transaction.payer_id,
        str(transaction.amount),
        transaction.note,
        transaction.created_at.isoformat(),
        transaction.kind.value,
        transaction.split_mode.value if transaction.split_mode else "",
        json.dumps(transaction.splits) if transaction.splits is not None else "",
        transaction.counterparty_id or "",
        transaction.category_id or "",
        transaction.receipt_url or "",
    ]


def _safe_getter(row: list):
    # Handle missing trailing columns gracefully
    def safe_get(index: int, default: str = "") -> str:
        try:
            return row[index] if row[index] else default
        except IndexError:
            return default
    return safe_get


def row_to_transaction(row: list) -> TransactionRecord:
    """Convert a Transactions sheet row to a TransactionRecord."""
    safe_get = _safe_getter(row)
    splits_json = safe_get(8)

    return TransactionRecord(
        id=safe_get(0),
        payer_id=safe_get(2),
        amount=float(safe_get(3)),
        note=safe_get(4),
        created_at=datetime.fromisoformat(safe_get(5)),
        kind=TransactionKind(safe_get(6, TransactionKind.EXPENSE.value)),
        split_mode=SplitMode(safe_get(7)) if safe_get(7) else None,
        splits=json.loads(splits_json) if splits_json else None,
        counterparty_id=safe_get(9) or None,
        category_id=safe_get(10) or None,
        receipt_url=safe_get(11) or None,
    )


def row_to_group(
    row: list,
    transactions: Optional[list[TransactionRecord]] = None,
) -> Group:
    """Convert a Groups sheet row, plus its transactions, to a Group."""
    safe_get = _safe_getter(row)
    members_json = safe_get(9)

    return Group(
        id=safe_get(0),
        name=safe_get(1),
        description=safe_get(2),
        created_at=datetime.fromisoformat(safe_get(3)),
        created_by=safe_get(4),
        kind=GroupKind(safe_get(5, GroupKind.TRIP.value)),
        is_settled=safe_get(6).lower() == "true",
        budget=float(safe_get(7)) if safe_get(7) else None,
        members=[
            Member.model_validate(item)
            for item in (json.loads(members_json) if members_json else [])
        ],
        transactions=transactions or [],
    )


def _padded(row: list) -> list:
    return list(row) + [""] * (len(TRANSACTION_COLUMNS) - len(row))


class GoogleSheetsGroupStorage(GroupStorageInterface):
    """
    Google Sheets implementation of group storage.

    Groups are stored as rows in a Groups worksheet, and each of their
    transactions as a row in a Transactions worksheet.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _find_row_index(self, sheet: gspread.Worksheet, group_id: str) -> Optional[int]:
        """1-based sheet row of a group, skipping the header."""
        ids = sheet.col_values(1)
        for idx, value in enumerate(ids[1:], start=2):
            if value == group_id:
                return idx
        return None

    def _transaction_rows(self, sheet: gspread.Worksheet, group_id: str) -> list[tuple[int, list]]:
        """(1-based sheet row, row) for every transaction of a group, in sheet order."""
        return [
            (idx, row)
            for idx, row in enumerate(sheet.get_all_values()[1:], start=2)
            if len(row) > 1 and row[1] == group_id
        ]

    def _group_row(self, group: Group) -> list:
        row = group_to_row(group)
        _check_cell_lengths(row, GROUP_COLUMNS)
        return row

    def _write_transactions(self, group: Group) -> None:
        """
        Bring the group's transaction rows in line with group.transactions.

        Changed rows are rewritten in place, removed ones deleted from the
        bottom up so earlier indices stay valid, and new ones appended.
        """
        sheet = self._client.get_transactions_sheet()
        existing = {
            row[0]: (idx, _padded(row))
            for idx, row in self._transaction_rows(sheet, group.id)
        }

        new_rows = []
        for transaction in group.transactions:
            row = transaction_to_row(group.id, transaction)
            _check_cell_lengths(row, TRANSACTION_COLUMNS)

            if transaction.id not in existing:
                new_rows.append(row)
                continue

            idx, stored = existing[transaction.id]
            if stored != row:
                last_column = rowcol_to_a1(idx, len(TRANSACTION_COLUMNS))
                sheet.update(
                    range_name=f"A{idx}:{last_column}",
                    values=[row],
                    value_input_option="RAW",
                )

        kept_ids = {t.id for t in group.transactions}
        stale = sorted(
            (idx for txn_id, (idx, _) in existing.items() if txn_id not in kept_ids),
            reverse=True,
        )
        for idx in stale:
            sheet.delete_rows(idx)

        if new_rows:
            sheet.append_rows(new_rows, value_input_option="RAW")

    @_retry_storage
    async def save_group(self, group: Group) -> bool:
        """Append a new group row and its transaction rows."""
        try:
            sheet = self._client.get_groups_sheet()
            if self._find_row_index(sheet, group.id) is not None:
                raise DuplicateError(f"Group already exists: {group.id}")
            row = self._group_row(group)
            sheet.append_row(row, value_input_option="RAW")
            self._write_transactions(group)
            return True
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to save group: {e}")

    @_retry_storage
    async def get_group(self, group_id: str) -> Optional[Group]:
        """Retrieve a group by its ID, with its transactions in recorded order."""
        try:
            sheet = self._client.get_groups_sheet()
            for row in sheet.get_all_values()[1:]:
                if row and row[0] == group_id:
                    transactions_sheet = self._client.get_transactions_sheet()
                    transactions = [
                        row_to_transaction(txn_row)
                        for _, txn_row in self._transaction_rows(transactions_sheet, group_id)
                    ]
                    return row_to_group(row, transactions)
            return None
        except Exception as e:
            raise StorageError(f"Failed to get group: {e}")

    @_retry_storage
    async def update_group(self, group: Group) -> bool:
        """Overwrite the group row and sync its transaction rows."""
        try:
            sheet = self._client.get_groups_sheet()
            idx = self._find_row_index(sheet, group.id)
            if idx is None:
                raise NotFoundError(f"Group not found: {group.id}")

            row = self._group_row(group)
            last_column = rowcol_to_a1(idx, len(GROUP_COLUMNS))
            sheet.update(
                range_name=f"A{idx}:{last_column}",
                values=[row],
                value_input_option="RAW",
            )
            self._write_transactions(group)
            return True
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update group: {e}")

    @_retry_storage
    async def delete_group(self, group_id: str) -> bool:
        """Delete a group and its transactions by ID."""
        try:
            sheet = self._client.get_groups_sheet()
            idx = self._find_row_index(sheet, group_id)
            if idx is None:
                return False

            transactions_sheet = self._client.get_transactions_sheet()
            rows = self._transaction_rows(transactions_sheet, group_id)
            for txn_idx, _ in reversed(rows):
                transactions_sheet.delete_rows(txn_idx)

            sheet.delete_rows(idx)
            return True
        except Exception as e:
            raise StorageError(f"Failed to delete group: {e}")

    @_retry_storage
    async def list_groups(
        self,
        created_by: Optional[str] = None,
        member_email: Optional[str] = None,
    ) -> list[Group]:
        """List groups with optional filters."""
        try:
            sheet = self._client.get_groups_sheet()
            all_rows = sheet.get_all_values()[1:]  # Skip header

            matching = []
            for row in all_rows:
                if not row or not row[0]:  # Skip empty rows
                    continue

                if created_by and (len(row) < 5 or row[4] != created_by):
                    continue
                if member_email:
                    emails = row[8].lower().split(",") if len(row) > 8 else []
                    if member_email.lower() not in emails:
                        continue
                matching.append(row)

            if not matching:
                return []

            # One read of the Transactions sheet serves every group
            by_group: dict[str, list[list]] = {}
            for txn_row in self._client.get_transactions_sheet().get_all_values()[1:]:
                if len(txn_row) > 1 and txn_row[1]:
                    by_group.setdefault(txn_row[1], []).append(txn_row)

            groups = []
            for row in matching:
                try:
                    transactions = [
                        row_to_transaction(txn_row) for txn_row in by_group.get(row[0], [])
                    ]
                    groups.append(row_to_group(row, transactions))
                except Exception:
                    continue  # Skip malformed rows

            groups.sort(key=lambda g: g.created_at, reverse=True)
            return groups
        except Exception as e:
            raise StorageError(f"Failed to list groups: {e}")
