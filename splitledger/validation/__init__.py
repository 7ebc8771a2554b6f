"""Input validation package."""

from splitledger.validation.validator import LedgerValidator

__all__ = ["LedgerValidator"]
