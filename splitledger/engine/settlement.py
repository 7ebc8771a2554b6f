"""
Settlement Planner

Turns net balances into a short list of payments that brings every
member back to (approximately) zero.

ALGORITHM: greedy largest-debtor / largest-creditor matching.
1. Split members into debtors and creditors, ignoring anyone within
   tolerance of zero.
2. Sort both sides by amount, largest first. The sort is stable, so
   ties keep their input order.
3. Walk both lists with one cursor each. Every step pays
   min(debt, credit) from the current debtor to the current creditor
   and moves past whichever side is now (nearly) cleared.

This produces at most len(debtors) + len(creditors) - 1 payments.
It is not always the global minimum - that is a subset-sum problem -
but it is deterministic for a given input order and fast.
"""

from dataclasses import dataclass
from typing import Sequence

from splitledger.models.ledger import (
    CURRENCY_PRECISION,
    SETTLED_TOLERANCE,
    NetBalance,
    TransferInstruction,
)


@dataclass
class _Position:
    """Working copy of one side of a balance; `owed` is always positive."""
    member_id: str
    member_name: str
    owed: float


class SettlementPlanner:
    """
    Plans the payments needed to settle a group.

    Stateless apart from its thresholds; safe to share.
    """

    def __init__(
        self,
        tolerance: float = SETTLED_TOLERANCE,
        precision: int = CURRENCY_PRECISION,
    ):
        """
        Args:
            tolerance: Amounts at or below this are treated as zero
            precision: Decimal places transfer amounts are rounded to
        """
        self._tolerance = tolerance
        self._precision = precision

    def _split_positions(
        self,
        balances: Sequence[NetBalance],
    ) -> tuple[list[_Position], list[_Position]]:
        debtors = []
        creditors = []

        for balance in balances:
            if balance.amount < -self._tolerance:
                debtors.append(
                    _Position(balance.member_id, balance.member_name, -balance.amount)
                )
            elif balance.amount > self._tolerance:
                creditors.append(
                    _Position(balance.member_id, balance.member_name, balance.amount)
                )

        debtors.sort(key=lambda p: p.owed, reverse=True)
        creditors.sort(key=lambda p: p.owed, reverse=True)

        return debtors, creditors

    def plan(self, balances: Sequence[NetBalance]) -> list[TransferInstruction]:
        """
        Plan settlement transfers.

        Args:
            balances: Net balance per member, in display order

        Returns:
            Transfers in the order they were matched. Empty when
            everyone is already settled.
        """
        debtors, creditors = self._split_positions(balances)

        transfers = []
        i = j = 0
        while i < len(debtors) and j < len(creditors):
            debtor = debtors[i]
            creditor = creditors[j]
            amount = min(debtor.owed, creditor.owed)

            if amount > self._tolerance:
                transfers.append(TransferInstruction(
                    from_member_id=debtor.member_id,
                    from_member_name=debtor.member_name,
                    to_member_id=creditor.member_id,
                    to_member_name=creditor.member_name,
                    amount=round(amount, self._precision),
                ))

            debtor.owed -= amount
            creditor.owed -= amount

            # Both advance when the amounts matched exactly
            if debtor.owed < self._tolerance:
                i += 1
            if creditor.owed < self._tolerance:
                j += 1

        return transfers


_default_planner = SettlementPlanner()


def plan_settlements(balances: Sequence[NetBalance]) -> list[TransferInstruction]:
    """Plan transfers with the default tolerance. See SettlementPlanner.plan."""
    return _default_planner.plan(balances)
