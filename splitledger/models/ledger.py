"""
Core Data Models for SplitLedger

These models define the schemas for everything flowing into and out of
the balance engine. They are designed to:
1. Reject structurally broken input at the point of entry
2. Be serializable for storage and logging
3. Stay free of behaviour - the engine owns the arithmetic

DESIGN DECISION: Amounts are plain floats. The ledger is currency-agnostic
and every comparison against zero goes through SETTLED_TOLERANCE, so
Decimal precision would buy nothing the tolerance doesn't already absorb.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    model_validator,
)


# Balances and transfers within this distance of zero are "settled".
SETTLED_TOLERANCE = 0.01

# Transfer amounts are rounded to this many decimal places.
CURRENCY_PRECISION = 2


def _new_id() -> str:
    return str(uuid4())


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TransactionKind(str, Enum):
    """
    What a transaction record represents.

    Expenses create group cost. Settlements only move money between
    two members and never change the pooled cost.
    """
    EXPENSE = "expense"
    SETTLEMENT = "settlement"


class SplitMode(str, Enum):
    """How an expense is meant to be divided."""
    EQUAL = "equal"
    UNEQUAL = "unequal"


class GroupKind(str, Enum):
    """Groups are either one-off trips or ongoing households."""
    TRIP = "trip"
    HOUSEHOLD = "household"


# =============================================================================
# LEDGER INPUTS
# =============================================================================

class Member(BaseModel):
    """
    A person taking part in a group.

    The id is stable for the member's lifetime. Name uniqueness is only
    checked when a member is added, never retroactively.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(
        default_factory=_new_id,
        min_length=1,
        description="Opaque member identifier"
    )
    name: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Display name, unique within a group (case-insensitive)"
    )
    email: Optional[str] = Field(
        default=None,
        max_length=254,
        description="Email used to associate the member with an account"
    )
    user_id: Optional[str] = Field(
        default=None,
        description="Linked account id, if the member has registered"
    )
    payout_identifier: Optional[str] = Field(
        default=None,
        max_length=100,
        description="Payment handle (e.g. UPI id); never used in calculation"
    )


class TransactionRecord(BaseModel):
    """
    A single monetary event in a group.

    For expenses, `splits` records who owes what when the split is
    unequal. The balance engine keeps this data but does not apply it;
    see BalanceEngine for the pooled model.

    For settlements, `counterparty_id` is the member who RECEIVED the money.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(
        default_factory=_new_id,
        min_length=1,
        description="Opaque transaction identifier"
    )
    payer_id: str = Field(
        ...,
        min_length=1,
        description="Member who paid"
    )
    amount: float = Field(
        ...,
        gt=0,
        allow_inf_nan=False,
        description="Amount paid, currency-agnostic"
    )
    note: str = Field(
        default="",
        max_length=500,
        description="Free text description"
    )
    created_at: datetime = Field(
        default_factory=_utc_now,
        description="When the transaction was recorded"
    )
    kind: TransactionKind = Field(
        default=TransactionKind.EXPENSE,
        description="Expense or settlement"
    )

    # Expense-only
    split_mode: Optional[SplitMode] = None
    splits: Optional[dict[str, float]] = Field(
        default=None,
        description="Member id -> owed amount, for unequal splits"
    )

    # Settlement-only
    counterparty_id: Optional[str] = Field(
        default=None,
        description="Member who received a settlement payment"
    )

    # Presentation-only metadata
    category_id: Optional[str] = None
    receipt_url: Optional[str] = None

    @model_validator(mode='after')
    def validate_kind_fields(self) -> 'TransactionRecord':
        """Settlements need a receiver and carry no split data."""
        if self.kind == TransactionKind.SETTLEMENT:
            if not self.counterparty_id:
                raise ValueError("Settlement requires a counterparty")
            if self.split_mode is not None or self.splits:
                raise ValueError("Settlements cannot carry split data")
        elif self.counterparty_id is not None:
            raise ValueError("Only settlements have a counterparty")
        return self

    @property
    def is_expense(self) -> bool:
        return self.kind == TransactionKind.EXPENSE

    @property
    def is_settlement(self) -> bool:
        return self.kind == TransactionKind.SETTLEMENT

    @property
    def uses_unequal_split(self) -> bool:
        return self.split_mode == SplitMode.UNEQUAL and bool(self.splits)


class Group(BaseModel):
    """
    A trip or household: the unit a ledger is computed for.

    Members and transactions are embedded so that one read yields a
    consistent snapshot for the engine.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(default_factory=_new_id)
    name: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Group name"
    )
    description: str = Field(default="", max_length=500)
    created_at: datetime = Field(default_factory=_utc_now)
    created_by: str = Field(
        ...,
        min_length=1,
        description="Account id of the creator"
    )
    kind: GroupKind = Field(default=GroupKind.TRIP)
    members: list[Member] = Field(default_factory=list)
    transactions: list[TransactionRecord] = Field(default_factory=list)
    is_settled: bool = False
    budget: Optional[float] = Field(
        default=None,
        ge=0,
        allow_inf_nan=False,
        description="Monthly spending target (households)"
    )

    @property
    def member_emails(self) -> list[str]:
        """Emails of members, used to find groups a user belongs to."""
        return [m.email for m in self.members if m.email]

    def find_member(self, member_id: str) -> Optional[Member]:
        for member in self.members:
            if member.id == member_id:
                return member
        return None

    def find_member_by_name(self, name: str) -> Optional[Member]:
        wanted = name.strip().lower()
        for member in self.members:
            if member.name.lower() == wanted:
                return member
        return None

    def find_transaction(self, transaction_id: str) -> Optional[TransactionRecord]:
        for transaction in self.transactions:
            if transaction.id == transaction_id:
                return transaction
        return None

    def find_account_member(
        self,
        user_id: Optional[str] = None,
        email: Optional[str] = None,
    ) -> Optional[Member]:
        """Find the member linked to an account, by user id or email."""
        for member in self.members:
            if user_id and member.user_id == user_id:
                return member
            if email and member.email and member.email.lower() == email.lower():
                return member
        return None


# =============================================================================
# LEDGER OUTPUTS - derived, never persisted
# =============================================================================

class NetBalance(BaseModel):
    """
    A member's net position.

    Positive: the member is owed money (creditor).
    Negative: the member owes money (debtor).
    """

    member_id: str
    member_name: str = ""
    amount: float

    def is_settled(self, tolerance: float = SETTLED_TOLERANCE) -> bool:
        return abs(self.amount) <= tolerance


class TransferInstruction(BaseModel):
    """One payment from a debtor to a creditor."""

    from_member_id: str
    from_member_name: str = ""
    to_member_id: str
    to_member_name: str = ""
    amount: float = Field(..., gt=0)

    @model_validator(mode='after')
    def validate_distinct_members(self) -> 'TransferInstruction':
        if self.from_member_id == self.to_member_id:
            raise ValueError("A member cannot pay themselves")
        return self


class MemberSpending(BaseModel):
    """Total of expenses a member has paid for."""

    member_id: str
    member_name: str
    amount: float = Field(ge=0)


class LedgerSummary(BaseModel):
    """Everything the presentation layer needs for one group."""

    group_id: Optional[str] = None
    computed_at: datetime = Field(default_factory=_utc_now)
    balances: list[NetBalance] = Field(default_factory=list)
    transfers: list[TransferInstruction] = Field(default_factory=list)
    total_spent: float = 0.0
    spending_by_member: list[MemberSpending] = Field(default_factory=list)

    @property
    def is_all_settled(self) -> bool:
        return not self.transfers


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'unknown_member', 'split_mismatch')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="Suggested fix if available"
    )


class ValidationResult(BaseModel):
    """
    Result of validating a caller request before it reaches the ledger.

    Errors block the request. Warnings and info are shown but don't block.
    """

    subject: str = Field(
        ...,
        description="What was validated (e.g., 'expense', 'member')"
    )
    validated_at: datetime = Field(default_factory=_utc_now)
    is_valid: bool
    issues: list[ValidationIssue] = Field(default_factory=list)
    warnings: list[str] = Field(
        default_factory=list,
        description="Non-blocking warnings"
    )

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")

    @property
    def error_messages(self) -> list[str]:
        return [issue.message for issue in self.issues if issue.severity == "error"]
