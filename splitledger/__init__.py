"""
SplitLedger - Source Package

A shared-expense ledger for trips and households: members record
what they paid, and the ledger works out who owes whom.

DESIGN PRINCIPLES:
1. The balance engine is a pure function of the current snapshot
2. Nothing is derived incrementally - balances are recomputed on every read
3. Validation reports problems, it never silently corrects them
4. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "SplitLedger Team"
