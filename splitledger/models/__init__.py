"""
Data Models Package

This package contains all Pydantic models used in SplitLedger.
All data flowing into and out of the ledger must conform to these schemas.
"""

from splitledger.models.ledger import (
    CURRENCY_PRECISION,
    SETTLED_TOLERANCE,
    Group,
    GroupKind,
    LedgerSummary,
    Member,
    MemberSpending,
    NetBalance,
    SplitMode,
    TransactionKind,
    TransactionRecord,
    TransferInstruction,
    ValidationIssue,
    ValidationResult,
)
from splitledger.models.stats import (
    BudgetStatus,
    GroupSpending,
    MonthlyTotal,
    UserStats,
)
from splitledger.models.events import (
    LedgerEvent,
    LedgerEventBuilder,
    LedgerEventSeverity,
    LedgerEventType,
)

__all__ = [
    # Ledger models
    "CURRENCY_PRECISION",
    "SETTLED_TOLERANCE",
    "Group",
    "GroupKind",
    "LedgerSummary",
    "Member",
    "MemberSpending",
    "NetBalance",
    "SplitMode",
    "TransactionKind",
    "TransactionRecord",
    "TransferInstruction",
    "ValidationIssue",
    "ValidationResult",
    # Stats models
    "BudgetStatus",
    "GroupSpending",
    "MonthlyTotal",
    "UserStats",
    # Event models
    "LedgerEvent",
    "LedgerEventBuilder",
    "LedgerEventSeverity",
    "LedgerEventType",
]
