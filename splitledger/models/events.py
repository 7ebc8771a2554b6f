"""
Ledger Event Models

Significant ledger actions are described as structured events and
written to the local structured log. They give:
1. Traceability of what changed in a group and when
2. Debugging information when balances look wrong
3. A single place to see which actions were user-initiated

DESIGN DECISION: Events are log records only. They are not persisted and
nothing is ever replayed from them - the ledger is always recomputed from
the current group snapshot.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class LedgerEventType(str, Enum):
    """Types of events we log."""
    # Groups
    GROUP_CREATED = "group_created"
    GROUP_DELETED = "group_deleted"
    GROUP_SETTLED = "group_settled"
    GROUP_REOPENED = "group_reopened"
    BUDGET_UPDATED = "budget_updated"

    # Members
    MEMBER_ADDED = "member_added"
    MEMBER_REMOVED = "member_removed"

    # Transactions
    EXPENSE_RECORDED = "expense_recorded"
    EXPENSE_EDITED = "expense_edited"
    SETTLEMENT_RECORDED = "settlement_recorded"
    TRANSACTION_REMOVED = "transaction_removed"

    # Computation
    BALANCES_COMPUTED = "balances_computed"

    # Failures
    VALIDATION_FAILED = "validation_failed"
    STORAGE_ERROR = "storage_error"


class LedgerEventSeverity(str, Enum):
    """Severity level for ledger events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class LedgerEvent(BaseModel):
    """
    A single ledger event.

    Every mutating operation on a group creates one of these.
    """

    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )

    event_type: LedgerEventType
    severity: LedgerEventSeverity = LedgerEventSeverity.INFO

    # Context - which group and which entity inside it
    group_id: Optional[str] = None
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'member', 'transaction')"
    )
    entity_id: Optional[str] = None

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = None

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(default_factory=dict)

    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "group_id": self.group_id,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class LedgerEventBuilder:
    """
    Helper class to build ledger events with common patterns.

    Usage:
        event = LedgerEventBuilder.member_added(group_id, member_id, name)
        event = LedgerEventBuilder.expense_recorded(group_id, txn_id, payer, amount)
    """

    @staticmethod
    def group_created(
        group_id: str,
        name: str,
        kind: str,
        correlation_id: Optional[UUID] = None,
    ) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.GROUP_CREATED,
            group_id=group_id,
            entity_type="group",
            entity_id=group_id,
            correlation_id=correlation_id,
            description=f"Group created: {name}",
            details={"name": name, "kind": kind},
            is_user_action=True,
        )

    @staticmethod
    def group_deleted(
        group_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.GROUP_DELETED,
            group_id=group_id,
            entity_type="group",
            entity_id=group_id,
            correlation_id=correlation_id,
            description="Group deleted",
            is_user_action=True,
        )

    @staticmethod
    def group_status_changed(
        group_id: str,
        is_settled: bool,
        correlation_id: Optional[UUID] = None,
    ) -> LedgerEvent:
        return LedgerEvent(
            event_type=(
                LedgerEventType.GROUP_SETTLED
                if is_settled
                else LedgerEventType.GROUP_REOPENED
            ),
            group_id=group_id,
            entity_type="group",
            entity_id=group_id,
            correlation_id=correlation_id,
            description="Group marked settled" if is_settled else "Group reopened",
            is_user_action=True,
        )

    @staticmethod
    def budget_updated(
        group_id: str,
        budget: Optional[float],
        correlation_id: Optional[UUID] = None,
    ) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.BUDGET_UPDATED,
            group_id=group_id,
            entity_type="group",
            entity_id=group_id,
            correlation_id=correlation_id,
            description="Group budget updated",
            details={"budget": budget},
            is_user_action=True,
        )

    @staticmethod
    def member_added(
        group_id: str,
        member_id: str,
        name: str,
        correlation_id: Optional[UUID] = None,
    ) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.MEMBER_ADDED,
            group_id=group_id,
            entity_type="member",
            entity_id=member_id,
            correlation_id=correlation_id,
            description=f"Member added: {name}",
            details={"name": name},
            is_user_action=True,
        )

    @staticmethod
    def member_removed(
        group_id: str,
        member_id: str,
        removed_transactions: int,
        correlation_id: Optional[UUID] = None,
    ) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.MEMBER_REMOVED,
            group_id=group_id,
            entity_type="member",
            entity_id=member_id,
            correlation_id=correlation_id,
            description=f"Member removed with {removed_transactions} paid transactions",
            details={"removed_transactions": removed_transactions},
            is_user_action=True,
        )

    @staticmethod
    def expense_recorded(
        group_id: str,
        transaction_id: str,
        payer_id: str,
        amount: float,
        split_mode: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.EXPENSE_RECORDED,
            group_id=group_id,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Expense recorded: {amount:.2f}",
            details={
                "payer_id": payer_id,
                "amount": amount,
                "split_mode": split_mode,
            },
            is_user_action=True,
        )

    @staticmethod
    def expense_edited(
        group_id: str,
        transaction_id: str,
        payer_id: str,
        amount: float,
        correlation_id: Optional[UUID] = None,
    ) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.EXPENSE_EDITED,
            group_id=group_id,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Expense edited: {amount:.2f}",
            details={"payer_id": payer_id, "amount": amount},
            is_user_action=True,
        )

    @staticmethod
    def settlement_recorded(
        group_id: str,
        transaction_id: str,
        payer_id: str,
        counterparty_id: str,
        amount: float,
        correlation_id: Optional[UUID] = None,
    ) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.SETTLEMENT_RECORDED,
            group_id=group_id,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Settlement recorded: {amount:.2f}",
            details={
                "payer_id": payer_id,
                "counterparty_id": counterparty_id,
                "amount": amount,
            },
            is_user_action=True,
        )

    @staticmethod
    def transaction_removed(
        group_id: str,
        transaction_id: str,
        kind: str,
        correlation_id: Optional[UUID] = None,
    ) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.TRANSACTION_REMOVED,
            group_id=group_id,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Transaction removed ({kind})",
            details={"kind": kind},
            is_user_action=True,
        )

    @staticmethod
    def balances_computed(
        group_id: Optional[str],
        member_count: int,
        transaction_count: int,
        transfer_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.BALANCES_COMPUTED,
            severity=LedgerEventSeverity.DEBUG,
            group_id=group_id,
            entity_type="group",
            entity_id=group_id,
            correlation_id=correlation_id,
            description=f"Balances computed: {transfer_count} transfers needed",
            details={
                "member_count": member_count,
                "transaction_count": transaction_count,
                "transfer_count": transfer_count,
            },
        )

    @staticmethod
    def validation_failed(
        group_id: Optional[str],
        subject: str,
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.VALIDATION_FAILED,
            severity=LedgerEventSeverity.WARNING,
            group_id=group_id,
            correlation_id=correlation_id,
            description=f"{subject.capitalize()} validation failed with {len(issues)} issues",
            details={
                "subject": subject,
                "issues": issues,
            },
        )

    @staticmethod
    def storage_error(
        operation: str,
        error_message: str,
        group_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.STORAGE_ERROR,
            severity=LedgerEventSeverity.ERROR,
            group_id=group_id,
            correlation_id=correlation_id,
            description=f"Storage error during {operation}",
            error_message=error_message,
            details={"operation": operation},
        )
