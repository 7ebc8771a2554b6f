"""
Storage Services Package

Provides the abstract group storage port and its implementations:
in-memory (tests, local runs) and Google Sheets (hosted).
"""

from splitledger.services.storage.interface import (
    ConnectionError,
    DuplicateError,
    GroupStorageInterface,
    NotFoundError,
    StorageError,
)
from splitledger.services.storage.memory import InMemoryGroupStorage
from splitledger.services.storage.google_sheets import (
    GROUP_COLUMNS,
    MAX_CELL_LENGTH,
    TRANSACTION_COLUMNS,
    CellLimitError,
    GoogleSheetsClient,
    GoogleSheetsGroupStorage,
    group_to_row,
    row_to_group,
    row_to_transaction,
    transaction_to_row,
)

__all__ = [
    # Interface
    "GroupStorageInterface",
    # Exceptions
    "ConnectionError",
    "DuplicateError",
    "NotFoundError",
    "StorageError",
    # In-memory implementation
    "InMemoryGroupStorage",
    # Google Sheets implementation
    "GROUP_COLUMNS",
    "MAX_CELL_LENGTH",
    "TRANSACTION_COLUMNS",
    "CellLimitError",
    "GoogleSheetsClient",
    "GoogleSheetsGroupStorage",
    "group_to_row",
    "row_to_group",
    "row_to_transaction",
    "transaction_to_row",
]
