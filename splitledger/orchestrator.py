"""
Main Orchestrator for SplitLedger

This module ties together storage, validation, the balance engine and
event logging, and defines the end-to-end flows for:
1. Group management (create → add members → settle → delete)
2. Transactions (validate → record/edit/remove → persist)
3. Reads (load snapshot → balances → transfers → stats)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Nothing is stored without passing validation
- Balances are never stored - every read recomputes them
- Every change is logged

The engine below this layer is pure and lenient; this layer is where
bad requests are turned away.
"""

from datetime import date
from typing import Optional, Sequence
from uuid import UUID

import structlog

from splitledger.config import get_settings
from splitledger.engine import BalanceEngine, SettlementPlanner
from splitledger.events import EventLogger, configure_logging, create_correlation_id
from splitledger.models.events import LedgerEventBuilder
from splitledger.models.ledger import (
    Group,
    GroupKind,
    LedgerSummary,
    Member,
    SplitMode,
    TransactionKind,
    TransactionRecord,
    ValidationResult,
)
from splitledger.models.stats import BudgetStatus, UserStats
from splitledger.queries import SpendingStats
from splitledger.services.storage import (
    GoogleSheetsClient,
    GoogleSheetsGroupStorage,
    GroupStorageInterface,
    InMemoryGroupStorage,
    StorageError,
)
from splitledger.validation import LedgerValidator


class LedgerOperationError(Exception):
    """A ledger request was rejected."""
    pass


class ValidationFailedError(LedgerOperationError):
    """Request failed validation; `result` lists the issues."""

    def __init__(self, result: ValidationResult):
        self.result = result
        messages = "; ".join(result.error_messages) or "validation failed"
        super().__init__(f"Invalid {result.subject}: {messages}")


class DuplicateMemberError(ValidationFailedError):
    """A member with the same name (ignoring case) already exists."""
    pass


class GroupNotFoundError(LedgerOperationError):
    """No group with the given id."""
    pass


class MemberNotFoundError(LedgerOperationError):
    """No member with the given id in the group."""
    pass


class TransactionNotFoundError(LedgerOperationError):
    """No transaction with the given id in the group."""
    pass


class GroupLedgerFlow:
    """
    Orchestrates every operation on a group's ledger.

    Flow for a change:
    1. Load → Read the current group snapshot from storage
    2. Validate → Reject bad requests before anything changes
    3. Apply → Build the new snapshot
    4. Save → Persist the whole group (last writer wins)
    5. Log → Emit a ledger event

    Flow for a read:
    1. Load → Read the current group snapshot
    2. Compute → Balances, then transfers, then stats
    """

    def __init__(
        self,
        storage: GroupStorageInterface,
        validator: Optional[LedgerValidator] = None,
        balance_engine: Optional[BalanceEngine] = None,
        planner: Optional[SettlementPlanner] = None,
        stats: Optional[SpendingStats] = None,
        event_logger: Optional[EventLogger] = None,
    ):
        settings = get_settings().app
        self._storage = storage
        self._validator = validator or LedgerValidator()
        self._engine = balance_engine or BalanceEngine()
        self._planner = planner or SettlementPlanner(
            tolerance=settings.settled_tolerance,
            precision=settings.currency_precision,
        )
        self._stats = stats or SpendingStats()
        self._events = event_logger or EventLogger()

    # -------------------------------------------------------------------------
    # Internal helpers
    # -------------------------------------------------------------------------

    async def _load(self, group_id: str) -> Group:
        group = await self._storage.get_group(group_id)
        if group is None:
            raise GroupNotFoundError(f"Group not found: {group_id}")
        return group

    async def _save(
        self,
        group: Group,
        operation: str,
        correlation_id: UUID,
    ) -> None:
        try:
            await self._storage.update_group(group)
        except StorageError as e:
            self._events.log_storage_error(
                operation=operation,
                error_message=str(e),
                group_id=group.id,
                correlation_id=correlation_id,
            )
            raise

    def _require_valid(
        self,
        result: ValidationResult,
        group_id: Optional[str],
        correlation_id: UUID,
    ) -> None:
        if result.is_valid:
            return

        issues = [
            {"field": i.field, "type": i.issue_type, "message": i.message}
            for i in result.issues
            if i.severity == "error"
        ]
        self._events.log(LedgerEventBuilder.validation_failed(
            group_id=group_id,
            subject=result.subject,
            issues=issues,
            correlation_id=correlation_id,
        ))

        if any(i.issue_type == "duplicate" for i in result.issues):
            raise DuplicateMemberError(result)
        raise ValidationFailedError(result)

    # -------------------------------------------------------------------------
    # Groups
    # -------------------------------------------------------------------------

    async def create_group(
        self,
        name: str,
        created_by: str,
        kind: GroupKind = GroupKind.TRIP,
        description: str = "",
        creator_name: Optional[str] = None,
        creator_email: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> Group:
        """
        Create a group with its creator as the first member.

        The creator's display name falls back to the local part of their
        email, then to "Me".
        """
        correlation_id = correlation_id or create_correlation_id()

        display_name = (creator_name or "").strip()
        if not display_name and creator_email:
            display_name = creator_email.split("@")[0]
        display_name = display_name or "Me"

        group = Group(
            name=name,
            description=description,
            created_by=created_by,
            kind=kind,
            members=[
                Member(
                    name=display_name,
                    email=creator_email,
                    user_id=created_by,
                ),
            ],
        )

        try:
            await self._storage.save_group(group)
        except StorageError as e:
            self._events.log_storage_error(
                operation="create_group",
                error_message=str(e),
                group_id=group.id,
                correlation_id=correlation_id,
            )
            raise

        self._events.log(LedgerEventBuilder.group_created(
            group_id=group.id,
            name=group.name,
            kind=group.kind.value,
            correlation_id=correlation_id,
        ))
        return group

    async def get_group(self, group_id: str) -> Group:
        """Load a group or raise GroupNotFoundError."""
        return await self._load(group_id)

    async def list_groups(
        self,
        created_by: Optional[str] = None,
        member_email: Optional[str] = None,
    ) -> list[Group]:
        """Groups visible to an account, newest first."""
        return await self._storage.list_groups(
            created_by=created_by,
            member_email=member_email,
        )

    async def delete_group(
        self,
        group_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        correlation_id = correlation_id or create_correlation_id()

        deleted = await self._storage.delete_group(group_id)
        if not deleted:
            raise GroupNotFoundError(f"Group not found: {group_id}")

        self._events.log(LedgerEventBuilder.group_deleted(
            group_id=group_id,
            correlation_id=correlation_id,
        ))

    async def set_settled(
        self,
        group_id: str,
        is_settled: bool,
        correlation_id: Optional[UUID] = None,
    ) -> Group:
        """Mark a group settled (archived) or reopen it."""
        correlation_id = correlation_id or create_correlation_id()
        group = await self._load(group_id)

        group.is_settled = is_settled
        await self._save(group, "set_settled", correlation_id)

        self._events.log(LedgerEventBuilder.group_status_changed(
            group_id=group_id,
            is_settled=is_settled,
            correlation_id=correlation_id,
        ))
        return group

    async def set_budget(
        self,
        group_id: str,
        budget: Optional[float],
        correlation_id: Optional[UUID] = None,
    ) -> Group:
        """Set or clear (None) the monthly budget of a group."""
        correlation_id = correlation_id or create_correlation_id()
        group = await self._load(group_id)

        self._require_valid(
            self._validator.validate_budget(budget), group_id, correlation_id
        )

        group.budget = budget
        await self._save(group, "set_budget", correlation_id)

        self._events.log(LedgerEventBuilder.budget_updated(
            group_id=group_id,
            budget=budget,
            correlation_id=correlation_id,
        ))
        return group

    # -------------------------------------------------------------------------
    # Members
    # -------------------------------------------------------------------------

    async def add_member(
        self,
        group_id: str,
        name: str,
        email: Optional[str] = None,
        payout_identifier: Optional[str] = None,
        user_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> Member:
        """
        Add a member to a group.

        Raises:
            DuplicateMemberError: A member with this name already exists
            ValidationFailedError: The name is blank
        """
        correlation_id = correlation_id or create_correlation_id()
        group = await self._load(group_id)

        self._require_valid(
            self._validator.validate_member(group, name, email),
            group_id,
            correlation_id,
        )

        member = Member(
            name=name.strip(),
            email=email or None,
            payout_identifier=payout_identifier or None,
            user_id=user_id,
        )
        group.members.append(member)
        await self._save(group, "add_member", correlation_id)

        self._events.log(LedgerEventBuilder.member_added(
            group_id=group_id,
            member_id=member.id,
            name=member.name,
            correlation_id=correlation_id,
        ))
        return member

    async def remove_member(
        self,
        group_id: str,
        member_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> Group:
        """
        Remove a member and every transaction they paid.

        Settlements the member received are kept; the engine treats
        their now-unknown counterparty as a no-op.
        """
        correlation_id = correlation_id or create_correlation_id()
        group = await self._load(group_id)

        if group.find_member(member_id) is None:
            raise MemberNotFoundError(f"Member not found: {member_id}")

        kept = [t for t in group.transactions if t.payer_id != member_id]
        removed_count = len(group.transactions) - len(kept)

        group.members = [m for m in group.members if m.id != member_id]
        group.transactions = kept
        await self._save(group, "remove_member", correlation_id)

        self._events.log(LedgerEventBuilder.member_removed(
            group_id=group_id,
            member_id=member_id,
            removed_transactions=removed_count,
            correlation_id=correlation_id,
        ))
        return group

    # -------------------------------------------------------------------------
    # Transactions
    # -------------------------------------------------------------------------

    async def record_expense(
        self,
        group_id: str,
        payer_id: str,
        amount: float,
        note: str = "",
        split_mode: Optional[SplitMode] = None,
        splits: Optional[dict[str, float]] = None,
        category_id: Optional[str] = None,
        receipt_url: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> TransactionRecord:
        """
        Record an expense paid by one member.

        Unequal splits must add up to the amount. They are stored with
        the expense; balances still use the pooled equal share.
        """
        correlation_id = correlation_id or create_correlation_id()
        group = await self._load(group_id)

        self._require_valid(
            self._validator.validate_expense(
                group, payer_id, amount, note, split_mode, splits
            ),
            group_id,
            correlation_id,
        )

        expense = TransactionRecord(
            payer_id=payer_id,
            amount=amount,
            note=note.strip(),
            kind=TransactionKind.EXPENSE,
            split_mode=split_mode,
            splits=dict(splits) if splits else None,
            category_id=category_id,
            receipt_url=receipt_url,
        )
        group.transactions.append(expense)
        await self._save(group, "record_expense", correlation_id)

        self._events.log(LedgerEventBuilder.expense_recorded(
            group_id=group_id,
            transaction_id=expense.id,
            payer_id=payer_id,
            amount=amount,
            split_mode=split_mode.value if split_mode else None,
            correlation_id=correlation_id,
        ))
        return expense

    async def edit_expense(
        self,
        group_id: str,
        transaction_id: str,
        payer_id: str,
        amount: float,
        note: str,
        split_mode: Optional[SplitMode] = None,
        splits: Optional[dict[str, float]] = None,
        correlation_id: Optional[UUID] = None,
    ) -> TransactionRecord:
        """
        Change the payer, amount and note of an expense.

        The split is kept unless a new one is given; a kept unequal split
        must still add up to the new amount.
        """
        correlation_id = correlation_id or create_correlation_id()
        group = await self._load(group_id)

        existing = group.find_transaction(transaction_id)
        if existing is None:
            raise TransactionNotFoundError(f"Transaction not found: {transaction_id}")
        if not existing.is_expense:
            raise LedgerOperationError("Settlements cannot be edited; remove and re-record them")

        if split_mode is None and splits is None:
            split_mode, splits = existing.split_mode, existing.splits

        self._require_valid(
            self._validator.validate_expense(
                group, payer_id, amount, note, split_mode, splits
            ),
            group_id,
            correlation_id,
        )

        updated = TransactionRecord.model_validate({
            **existing.model_dump(),
            "payer_id": payer_id,
            "amount": amount,
            "note": note.strip(),
            "split_mode": split_mode,
            "splits": dict(splits) if splits else None,
        })
        group.transactions = [
            updated if t.id == transaction_id else t for t in group.transactions
        ]
        await self._save(group, "edit_expense", correlation_id)

        self._events.log(LedgerEventBuilder.expense_edited(
            group_id=group_id,
            transaction_id=transaction_id,
            payer_id=payer_id,
            amount=amount,
            correlation_id=correlation_id,
        ))
        return updated

    async def record_settlement(
        self,
        group_id: str,
        payer_id: str,
        counterparty_id: str,
        amount: float,
        note: str = "Settlement",
        correlation_id: Optional[UUID] = None,
    ) -> TransactionRecord:
        """
        Record that payer paid counterparty directly.

        Typically called with a TransferInstruction's from/to/amount once
        the payment has been made outside the app.
        """
        correlation_id = correlation_id or create_correlation_id()
        group = await self._load(group_id)

        self._require_valid(
            self._validator.validate_settlement(group, payer_id, counterparty_id, amount),
            group_id,
            correlation_id,
        )

        settlement = TransactionRecord(
            payer_id=payer_id,
            counterparty_id=counterparty_id,
            amount=amount,
            note=note.strip(),
            kind=TransactionKind.SETTLEMENT,
        )
        group.transactions.append(settlement)
        await self._save(group, "record_settlement", correlation_id)

        self._events.log(LedgerEventBuilder.settlement_recorded(
            group_id=group_id,
            transaction_id=settlement.id,
            payer_id=payer_id,
            counterparty_id=counterparty_id,
            amount=amount,
            correlation_id=correlation_id,
        ))
        return settlement

    async def remove_transaction(
        self,
        group_id: str,
        transaction_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        correlation_id = correlation_id or create_correlation_id()
        group = await self._load(group_id)

        existing = group.find_transaction(transaction_id)
        if existing is None:
            raise TransactionNotFoundError(f"Transaction not found: {transaction_id}")

        group.transactions = [t for t in group.transactions if t.id != transaction_id]
        await self._save(group, "remove_transaction", correlation_id)

        self._events.log(LedgerEventBuilder.transaction_removed(
            group_id=group_id,
            transaction_id=transaction_id,
            kind=existing.kind.value,
            correlation_id=correlation_id,
        ))

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def summarize(
        self,
        members: Sequence[Member],
        transactions: Sequence[TransactionRecord],
        group_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> LedgerSummary:
        """
        Compute balances, transfers and spending from a snapshot.

        Pure apart from the debug log line; no storage access.
        """
        balances = self._engine.net_balances(members, transactions)
        transfers = self._planner.plan(balances)

        self._events.log(LedgerEventBuilder.balances_computed(
            group_id=group_id,
            member_count=len(members),
            transaction_count=len(transactions),
            transfer_count=len(transfers),
            correlation_id=correlation_id,
        ))

        return LedgerSummary(
            group_id=group_id,
            balances=balances,
            transfers=transfers,
            total_spent=self._stats.total_spent(transactions),
            spending_by_member=self._stats.spending_by_member(members, transactions),
        )

    async def get_summary(
        self,
        group_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> LedgerSummary:
        """Load a group and compute its ledger summary."""
        group = await self._load(group_id)
        return self.summarize(
            group.members,
            group.transactions,
            group_id=group.id,
            correlation_id=correlation_id,
        )

    async def get_budget_status(
        self,
        group_id: str,
        today: Optional[date] = None,
    ) -> BudgetStatus:
        group = await self._load(group_id)
        return self._stats.budget_status(group, today)

    async def get_user_stats(
        self,
        user_id: str,
        email: Optional[str] = None,
        today: Optional[date] = None,
    ) -> UserStats:
        """Dashboard figures across the groups an account created."""
        groups = await self._storage.list_groups(created_by=user_id)
        return self._stats.user_stats(groups, user_id=user_id, email=email, today=today)


def create_app_components(use_storage: bool = True) -> GroupLedgerFlow:
    """
    Factory function to create the ledger flow.

    Args:
        use_storage: Whether to use Google Sheets storage.
                    Falls back to in-memory storage when Sheets isn't
                    configured or use_storage is False.
    """
    configure_logging(get_settings().app.log_level)
    logger = structlog.get_logger("splitledger")
    storage: GroupStorageInterface

    if use_storage:
        try:
            storage = GoogleSheetsGroupStorage(GoogleSheetsClient())
        except Exception as e:
            # Storage not configured - continue without it
            logger.warning("storage_not_configured", error=str(e))
            storage = InMemoryGroupStorage()
    else:
        storage = InMemoryGroupStorage()

    return GroupLedgerFlow(storage=storage)
