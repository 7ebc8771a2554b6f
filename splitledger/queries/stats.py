"""
Spending Statistics

DESIGN DECISION: Statistics are computed DETERMINISTICALLY from the same
group snapshots the balance engine sees. Nothing here is cached or
stored; every figure is a plain aggregation over transactions.

Settlements are never spending: they move money between members, so
every expense total below filters them out. The one exception is the
per-user monthly figure, which nets settlements received against what
the user paid out.
"""

from datetime import date, datetime
from typing import Iterable, Optional, Sequence

from splitledger.config import get_settings
from splitledger.models.ledger import (
    CURRENCY_PRECISION,
    Group,
    GroupKind,
    Member,
    MemberSpending,
    TransactionRecord,
)
from splitledger.models.stats import (
    BudgetStatus,
    GroupSpending,
    MonthlyTotal,
    UserStats,
)


def _same_month(moment: datetime, day: date) -> bool:
    return moment.year == day.year and moment.month == day.month


def _expenses(transactions: Iterable[TransactionRecord]) -> list[TransactionRecord]:
    return [t for t in transactions if t.is_expense]


class SpendingStats:
    """
    Computes spending statistics for groups and accounts.

    GUARANTEES:
    - Only aggregates the data it is given
    - Settlements never count as spending
    - Months with no expenses appear as zero, not as gaps
    """

    def __init__(self, budget_warning_ratio: Optional[float] = None):
        if budget_warning_ratio is None:
            budget_warning_ratio = get_settings().app.budget_warning_ratio
        self._budget_warning_ratio = budget_warning_ratio

    def total_spent(self, transactions: Iterable[TransactionRecord]) -> float:
        """Sum of all expenses."""
        return sum(t.amount for t in _expenses(transactions))

    def spending_by_member(
        self,
        members: Sequence[Member],
        transactions: Iterable[TransactionRecord],
    ) -> list[MemberSpending]:
        """Expenses paid by each member, in member order."""
        paid: dict[str, float] = {}
        for transaction in _expenses(transactions):
            paid[transaction.payer_id] = paid.get(transaction.payer_id, 0.0) + transaction.amount

        return [
            MemberSpending(
                member_id=member.id,
                member_name=member.name,
                amount=paid.get(member.id, 0.0),
            )
            for member in members
        ]

    def monthly_totals(
        self,
        transactions: Iterable[TransactionRecord],
    ) -> list[MonthlyTotal]:
        """
        Expense totals per calendar month.

        Covers every month from the first expense to the last one,
        zero-filled, oldest first. Empty if there are no expenses.
        """
        expenses = _expenses(transactions)
        if not expenses:
            return []

        totals: dict[tuple[int, int], float] = {}
        for expense in expenses:
            key = (expense.created_at.year, expense.created_at.month)
            totals[key] = totals.get(key, 0.0) + expense.amount

        first = min(totals)
        last = max(totals)

        result = []
        year, month = first
        while (year, month) <= last:
            result.append(MonthlyTotal(
                month=date(year, month, 1).strftime("%b %Y"),
                year=year,
                month_number=month,
                amount=round(totals.get((year, month), 0.0), CURRENCY_PRECISION),
            ))
            month += 1
            if month > 12:
                year, month = year + 1, 1

        return result

    def budget_status(self, group: Group, today: Optional[date] = None) -> BudgetStatus:
        """
        This month's spending against the group budget.

        A group without a budget reports zero percentage and is never
        over or near budget.
        """
        today = today or date.today()
        spent = sum(
            t.amount for t in _expenses(group.transactions)
            if _same_month(t.created_at, today)
        )
        budget = group.budget or 0.0

        if budget > 0:
            percentage = min(spent / budget * 100, 100.0)
        else:
            percentage = 0.0

        return BudgetStatus(
            spent=spent,
            budget=budget,
            percentage=percentage,
            remaining=budget - spent,
            is_over_budget=budget > 0 and spent > budget,
            is_near_budget=budget > 0 and spent > budget * self._budget_warning_ratio,
        )

    def user_stats(
        self,
        groups: Sequence[Group],
        user_id: Optional[str] = None,
        email: Optional[str] = None,
        today: Optional[date] = None,
    ) -> UserStats:
        """
        Dashboard figures for one account.

        total_this_month is what the user paid out this month (expenses
        and settlements) minus settlements they received this month.
        """
        today = today or date.today()
        total = 0.0

        for group in groups:
            member = group.find_account_member(user_id=user_id, email=email)
            if member is None:
                continue

            for transaction in group.transactions:
                if not _same_month(transaction.created_at, today):
                    continue
                if transaction.payer_id == member.id:
                    total += transaction.amount
                elif transaction.is_settlement and transaction.counterparty_id == member.id:
                    total -= transaction.amount

        return UserStats(
            total_this_month=total,
            active_trips=sum(
                1 for g in groups if not g.is_settled and g.kind == GroupKind.TRIP
            ),
            active_households=sum(
                1 for g in groups if not g.is_settled and g.kind == GroupKind.HOUSEHOLD
            ),
            total_groups=len(groups),
        )

    def spending_by_group(
        self,
        groups: Sequence[Group],
        user_id: Optional[str] = None,
        email: Optional[str] = None,
    ) -> list[GroupSpending]:
        """
        Expenses the user paid for, per group.

        Groups where the user paid nothing are left out. Largest first.
        """
        result = []
        for group in groups:
            member = group.find_account_member(user_id=user_id, email=email)
            if member is None:
                continue

            paid = sum(
                t.amount for t in _expenses(group.transactions)
                if t.payer_id == member.id
            )
            if paid > 0:
                result.append(GroupSpending(
                    group_id=group.id,
                    group_name=group.name,
                    amount=paid,
                ))

        result.sort(key=lambda item: item.amount, reverse=True)
        return result
