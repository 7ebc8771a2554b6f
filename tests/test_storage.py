"""
Tests for group storage.

Google Sheets is never contacted: GoogleSheetsGroupStorage is driven
through a mocked client and worksheet.
"""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Optional
from unittest.mock import MagicMock

import pytest
from tenacity import wait_none

from splitledger.models.ledger import (
    Group,
    GroupKind,
    Member,
    SplitMode,
    TransactionKind,
    TransactionRecord,
)
from splitledger.services.storage import (
    GROUP_COLUMNS,
    TRANSACTION_COLUMNS,
    CellLimitError,
    DuplicateError,
    GoogleSheetsGroupStorage,
    InMemoryGroupStorage,
    NotFoundError,
    StorageError,
    group_to_row,
    row_to_group,
    row_to_transaction,
    transaction_to_row,
)


@pytest.fixture
def group(trio) -> Group:
    return Group(
        name="Goa",
        description="Beach week",
        created_by="user-a",
        members=trio,
        budget=2500.0,
        transactions=[
            TransactionRecord(
                payer_id="A",
                amount=90.0,
                note="Dinner",
                split_mode=SplitMode.UNEQUAL,
                splits={"A": 30.0, "B": 60.0},
            ),
            TransactionRecord(
                payer_id="B",
                counterparty_id="A",
                amount=20.0,
                kind=TransactionKind.SETTLEMENT,
            ),
        ],
    )


class TestInMemoryStorage:
    """Tests for InMemoryGroupStorage."""

    def test_save_and_get(self, group):
        storage = InMemoryGroupStorage()
        asyncio.run(storage.save_group(group))
        assert asyncio.run(storage.get_group(group.id)) == group

    def test_get_missing(self):
        assert asyncio.run(InMemoryGroupStorage().get_group("nope")) is None

    def test_save_twice_is_duplicate(self, group):
        storage = InMemoryGroupStorage()
        asyncio.run(storage.save_group(group))
        with pytest.raises(DuplicateError):
            asyncio.run(storage.save_group(group))

    def test_update_missing(self, group):
        with pytest.raises(NotFoundError):
            asyncio.run(InMemoryGroupStorage().update_group(group))

    def test_returned_groups_are_copies(self, group):
        """Test callers can't change stored state without update_group."""
        storage = InMemoryGroupStorage()
        asyncio.run(storage.save_group(group))

        loaded = asyncio.run(storage.get_group(group.id))
        loaded.members.clear()
        group.name = "Changed"

        stored = asyncio.run(storage.get_group(group.id))
        assert len(stored.members) == 3
        assert stored.name == "Goa"

    def test_delete(self, group):
        storage = InMemoryGroupStorage()
        asyncio.run(storage.save_group(group))

        assert asyncio.run(storage.delete_group(group.id)) is True
        assert asyncio.run(storage.delete_group(group.id)) is False

    def test_list_filters_and_order(self, trio):
        """Test filters and newest-first ordering."""
        now = datetime.now(timezone.utc)
        older = Group(name="Old", created_by="user-a", members=trio,
                      created_at=now - timedelta(days=3))
        newer = Group(name="New", created_by="user-a", created_at=now)
        other = Group(name="Other", created_by="user-b", members=trio)

        storage = InMemoryGroupStorage()
        for g in (older, newer, other):
            asyncio.run(storage.save_group(g))

        by_creator = asyncio.run(storage.list_groups(created_by="user-a"))
        assert [g.name for g in by_creator] == ["New", "Old"]

        by_email = asyncio.run(storage.list_groups(member_email="ALICE@example.com"))
        assert {g.name for g in by_email} == {"Old", "Other"}

        assert len(asyncio.run(storage.list_groups())) == 3


class TestRowConversion:
    """Tests for the sheet row converters."""

    def test_group_row_layout(self, group):
        """Test the group row carries no transactions."""
        row = group_to_row(group)

        assert len(row) == len(GROUP_COLUMNS)
        assert row[0] == group.id
        assert row[4] == "user-a"
        assert row[5] == "trip"
        assert row[6] == "False"
        assert row[7] == "2500.0"
        assert row[8] == "alice@example.com"
        assert "Dinner" not in "".join(row)

    def test_transaction_row_layout(self, group):
        expense, settlement = group.transactions

        row = transaction_to_row(group.id, expense)
        assert len(row) == len(TRANSACTION_COLUMNS)
        assert row[:4] == [expense.id, group.id, "A", "90.0"]
        assert row[7] == "unequal"
        assert row[9] == ""

        row = transaction_to_row(group.id, settlement)
        assert row[6] == "settlement"
        assert row[8] == ""
        assert row[9] == "A"

    def test_transaction_round_trip(self, group):
        for transaction in group.transactions:
            assert row_to_transaction(transaction_to_row(group.id, transaction)) == transaction

    def test_group_round_trip(self, group):
        """Test a group survives its group row plus transaction rows."""
        rows = [transaction_to_row(group.id, t) for t in group.transactions]
        restored = row_to_group(group_to_row(group), [row_to_transaction(r) for r in rows])
        assert restored == group

    def test_missing_trailing_columns(self):
        """Test rows written before members existed."""
        now = datetime.now(timezone.utc).isoformat()
        restored = row_to_group(["g1", "Flat", "", now, "user-a", "household"])

        assert restored.kind == GroupKind.HOUSEHOLD
        assert restored.members == []
        assert restored.transactions == []
        assert restored.budget is None
        assert restored.is_settled is False


class FakeWorksheet:
    """Worksheet double holding rows in memory, header first."""

    def __init__(self, columns: list[str], rows: Optional[list[list]] = None):
        self.rows = [list(columns)] + [list(r) for r in rows or []]
        self.update = MagicMock(side_effect=self._update)
        self.delete_rows = MagicMock(side_effect=self._delete_rows)
        self.append_row = MagicMock(side_effect=self._append_row)
        self.get_all_values = MagicMock(side_effect=self._get_all_values)

    def _get_all_values(self) -> list[list]:
        return [list(r) for r in self.rows]

    def col_values(self, col: int) -> list:
        return [r[col - 1] if len(r) >= col else "" for r in self.rows]

    def _append_row(self, values, value_input_option=None):
        self.rows.append(list(values))

    def append_rows(self, values, value_input_option=None):
        self.rows.extend(list(v) for v in values)

    def _update(self, range_name, values, value_input_option=None):
        idx = int(range_name.split(":")[0][1:])
        self.rows[idx - 1] = list(values[0])

    def _delete_rows(self, idx):
        del self.rows[idx - 1]


def sheets(groups: Optional[list[Group]] = None) -> tuple[FakeWorksheet, FakeWorksheet]:
    groups = groups or []
    return (
        FakeWorksheet(GROUP_COLUMNS, [group_to_row(g) for g in groups]),
        FakeWorksheet(
            TRANSACTION_COLUMNS,
            [transaction_to_row(g.id, t) for g in groups for t in g.transactions],
        ),
    )


def storage_with(groups_sheet, transactions_sheet) -> GoogleSheetsGroupStorage:
    client = MagicMock()
    client.get_groups_sheet.return_value = groups_sheet
    client.get_transactions_sheet.return_value = transactions_sheet
    return GoogleSheetsGroupStorage(client=client)


@pytest.fixture
def no_retry_wait(monkeypatch):
    """Retry immediately instead of backing off."""
    for method in ("save_group", "get_group", "update_group", "delete_group", "list_groups"):
        monkeypatch.setattr(getattr(GoogleSheetsGroupStorage, method).retry, "wait", wait_none())


class TestGoogleSheetsStorage:
    """Tests for GoogleSheetsGroupStorage against in-memory worksheets."""

    def test_save_writes_one_row_per_transaction(self, group):
        groups_sheet, transactions_sheet = sheets()
        asyncio.run(storage_with(groups_sheet, transactions_sheet).save_group(group))

        assert groups_sheet.rows[1:] == [group_to_row(group)]
        assert [r[1] for r in transactions_sheet.rows[1:]] == [group.id, group.id]
        assert [r[0] for r in transactions_sheet.rows[1:]] == [t.id for t in group.transactions]

    def test_save_duplicate(self, group):
        groups_sheet, transactions_sheet = sheets([group])
        with pytest.raises(DuplicateError):
            asyncio.run(storage_with(groups_sheet, transactions_sheet).save_group(group))
        groups_sheet.append_row.assert_not_called()

    def test_get_group_collects_its_transactions(self, group):
        other = Group(
            name="Other",
            created_by="user-b",
            members=[Member(id="Z", name="Zed")],
            transactions=[TransactionRecord(payer_id="Z", amount=5.0)],
        )
        storage = storage_with(*sheets([other, group]))

        assert asyncio.run(storage.get_group(group.id)) == group
        assert asyncio.run(storage.get_group(other.id)) == other
        assert asyncio.run(storage.get_group("nope")) is None

    def test_update_syncs_transaction_rows(self, group):
        """Test edits land in place, removals are deleted and additions appended."""
        groups_sheet, transactions_sheet = sheets([group])
        storage = storage_with(groups_sheet, transactions_sheet)

        expense, settlement = group.transactions
        edited = expense.model_copy(update={"note": "Dinner and dessert"})
        added = TransactionRecord(payer_id="C", amount=12.5, note="Water")
        group.transactions = [edited, added]
        group.is_settled = True

        asyncio.run(storage.update_group(group))

        assert groups_sheet.rows[1] == group_to_row(group)
        assert transactions_sheet.rows[1:] == [
            transaction_to_row(group.id, edited),
            transaction_to_row(group.id, added),
        ]
        transactions_sheet.update.assert_called_once()
        assert transactions_sheet.update.call_args.kwargs["range_name"] == "A2:L2"
        transactions_sheet.delete_rows.assert_called_once_with(3)
        assert asyncio.run(storage.get_group(group.id)) == group

    def test_unchanged_update_leaves_transactions_alone(self, group):
        groups_sheet, transactions_sheet = sheets([group])
        asyncio.run(storage_with(groups_sheet, transactions_sheet).update_group(group))

        transactions_sheet.update.assert_not_called()
        transactions_sheet.delete_rows.assert_not_called()
        assert len(transactions_sheet.rows) == 3

    def test_long_history_stays_out_of_the_group_row(self, trio):
        """Test a group keeps growing well past what one cell could hold."""
        group = Group(name="Flat", created_by="user-a", members=trio)
        groups_sheet, transactions_sheet = sheets()
        storage = storage_with(groups_sheet, transactions_sheet)
        asyncio.run(storage.save_group(group))

        group.transactions = [
            TransactionRecord(payer_id="A", amount=10.0 + i, note=f"Groceries week {i}")
            for i in range(400)
        ]
        asyncio.run(storage.update_group(group))

        assert len(transactions_sheet.rows) == 401
        assert max(len(cell) for cell in groups_sheet.rows[1]) < 1000
        assert asyncio.run(storage.get_group(group.id)) == group

    def test_oversized_cell_rejected_before_write(self, no_retry_wait):
        """Test a value too long for a cell fails clearly and is not retried."""
        members = [
            Member(name=f"Member {i:04d} " + "x" * 80, email=f"member{i}@example.com")
            for i in range(400)
        ]
        group = Group(name="Huge", created_by="user-a", members=members)
        groups_sheet, transactions_sheet = sheets()

        with pytest.raises(CellLimitError, match="members_json"):
            asyncio.run(storage_with(groups_sheet, transactions_sheet).save_group(group))

        groups_sheet.append_row.assert_not_called()
        assert groups_sheet.get_all_values.call_count == 0

    def test_update_missing(self, group):
        with pytest.raises(NotFoundError):
            asyncio.run(storage_with(*sheets()).update_group(group))

    def test_delete_removes_group_and_its_transactions(self, group):
        other = Group(
            name="Other",
            created_by="user-b",
            members=[Member(id="Z", name="Zed")],
            transactions=[TransactionRecord(payer_id="Z", amount=5.0)],
        )
        groups_sheet, transactions_sheet = sheets([group, other])
        storage = storage_with(groups_sheet, transactions_sheet)

        assert asyncio.run(storage.delete_group(group.id)) is True
        assert [r[0] for r in groups_sheet.rows[1:]] == [other.id]
        assert [r[1] for r in transactions_sheet.rows[1:]] == [other.id]
        assert asyncio.run(storage.delete_group("nope")) is False

    def test_list_filters_and_skips_malformed_rows(self, group):
        other = Group(name="Other", created_by="user-b",
                      members=[Member(name="Zed", email="zed@example.com")])
        groups_sheet, transactions_sheet = sheets([group, other])
        groups_sheet.rows.append([])
        groups_sheet.rows.append(["broken", "x", "", "not-a-date", "user-a"])
        storage = storage_with(groups_sheet, transactions_sheet)

        mine = asyncio.run(storage.list_groups(created_by="user-a"))
        assert [g.name for g in mine] == ["Goa"]
        assert mine[0].transactions == group.transactions
        assert [g.name for g in asyncio.run(storage.list_groups(member_email="zed@example.com"))] == ["Other"]

    def test_sheet_errors_become_storage_errors(self, group, no_retry_wait):
        """Test API failures are retried, then surface as StorageError."""
        groups_sheet, transactions_sheet = sheets()
        groups_sheet.get_all_values.side_effect = RuntimeError("quota exceeded")

        with pytest.raises(StorageError, match="quota exceeded"):
            asyncio.run(storage_with(groups_sheet, transactions_sheet).get_group(group.id))
        assert groups_sheet.get_all_values.call_count == 3


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
