"""
Balance Engine

Turns a group's members and transaction history into one net balance
per member. Positive means the member is owed money, negative means
they owe money.

DESIGN DECISION: The engine is a pure function of its inputs.
It keeps no state between calls, performs no I/O and never mutates
the records it is given. Callers recompute from the full snapshot on
every read; nothing is maintained incrementally.

POOLED MODEL:
Every expense, whatever its split mode, goes into one pooled group cost
that is divided equally across all members. The payer of every
transaction is credited the full amount, and settlement receivers are
debited what they received:

    balance(m) = paid_by(m) - group_cost / len(members) - received_by(m)

Unequal split data stays on the record for display but does not change
the computed balance. This matches the behaviour users already have;
see DESIGN.md before changing it.

The engine is deliberately lenient. A transaction whose payer or
counterparty is no longer a member is not an error: an expense still
counts towards the group cost, but its credit or debit has nowhere to
land and is skipped.
"""

from typing import Iterable, Sequence

from splitledger.models.ledger import (
    Member,
    NetBalance,
    TransactionRecord,
)


class BalanceEngine:
    """
    Computes per-member net balances for one group.

    Stateless; one instance can be shared freely across threads.
    """

    def compute(
        self,
        members: Sequence[Member],
        transactions: Iterable[TransactionRecord],
    ) -> dict[str, float]:
        """
        Compute net balances keyed by member id.

        Args:
            members: Current members of the group
            transactions: Every expense and settlement, in any order

        Returns:
            Member id -> unrounded net balance, in member order.
            Empty if there are no members. An id listed twice gets one
            balance but still counts twice when dividing the group cost.
        """
        balances = {member.id: 0.0 for member in members}
        if not balances:
            return {}

        transactions = list(transactions)
        expenses = [t for t in transactions if t.is_expense]
        settlements = [t for t in transactions if t.is_settlement]

        # Settlements move money between members; they never create cost
        group_cost = sum(t.amount for t in expenses)
        # One share per member entry, as given
        equal_share = group_cost / len(members)

        for transaction in transactions:
            if transaction.payer_id in balances:
                balances[transaction.payer_id] += transaction.amount

        for member_id in balances:
            balances[member_id] -= equal_share

        for settlement in settlements:
            if settlement.counterparty_id in balances:
                balances[settlement.counterparty_id] -= settlement.amount

        return balances

    def net_balances(
        self,
        members: Sequence[Member],
        transactions: Iterable[TransactionRecord],
    ) -> list[NetBalance]:
        """
        Compute net balances as NetBalance records.

        Returns one entry per member, in the order members were given.
        """
        balances = self.compute(members, transactions)
        return [
            NetBalance(
                member_id=member.id,
                member_name=member.name,
                amount=balances[member.id],
            )
            for member in members
        ]


_default_engine = BalanceEngine()


def compute_balances(
    members: Sequence[Member],
    transactions: Iterable[TransactionRecord],
) -> dict[str, float]:
    """Net balances keyed by member id. See BalanceEngine.compute."""
    return _default_engine.compute(members, transactions)


def net_balances(
    members: Sequence[Member],
    transactions: Iterable[TransactionRecord],
) -> list[NetBalance]:
    """Net balances in member order. See BalanceEngine.net_balances."""
    return _default_engine.net_balances(members, transactions)
