"""Spending statistics package."""

from splitledger.queries.stats import SpendingStats

__all__ = ["SpendingStats"]
