"""
Tests for spending statistics.
"""

from datetime import date, datetime, timezone

import pytest

from splitledger.models.ledger import (
    Group,
    GroupKind,
    Member,
    TransactionKind,
    TransactionRecord,
)
from splitledger.queries import SpendingStats


def at(year: int, month: int, day: int = 15) -> datetime:
    return datetime(year, month, day, 12, 0, tzinfo=timezone.utc)


def expense(payer_id: str, amount: float, when: datetime) -> TransactionRecord:
    return TransactionRecord(payer_id=payer_id, amount=amount, created_at=when)


def settlement(payer_id: str, to: str, amount: float, when: datetime) -> TransactionRecord:
    return TransactionRecord(
        payer_id=payer_id,
        counterparty_id=to,
        amount=amount,
        kind=TransactionKind.SETTLEMENT,
        created_at=when,
    )


@pytest.fixture
def stats() -> SpendingStats:
    return SpendingStats(budget_warning_ratio=0.9)


class TestTotals:
    """Tests for total_spent and spending_by_member."""

    def test_total_excludes_settlements(self, stats):
        transactions = [
            expense("A", 100, at(2025, 3)),
            settlement("B", "A", 40, at(2025, 3)),
            expense("B", 25.5, at(2025, 3)),
        ]
        assert stats.total_spent(transactions) == pytest.approx(125.5)

    def test_total_of_nothing(self, stats):
        assert stats.total_spent([]) == 0

    def test_spending_by_member_in_member_order(self, stats, trio):
        """Test every member appears, including those who paid nothing."""
        transactions = [
            expense("C", 30, at(2025, 3)),
            expense("A", 10, at(2025, 3)),
            expense("C", 5, at(2025, 3)),
            settlement("B", "A", 99, at(2025, 3)),
        ]
        result = stats.spending_by_member(trio, transactions)

        assert [s.member_id for s in result] == ["A", "B", "C"]
        assert [s.amount for s in result] == [10.0, 0.0, 35.0]


class TestMonthlyTotals:
    """Tests for monthly_totals."""

    def test_empty(self, stats):
        assert stats.monthly_totals([]) == []

    def test_gaps_are_zero_filled(self, stats):
        """Test months without expenses appear as zero."""
        transactions = [
            expense("A", 100, at(2024, 11)),
            expense("A", 50, at(2025, 2)),
            expense("B", 25, at(2025, 2)),
            settlement("B", "A", 500, at(2025, 1)),
        ]
        totals = stats.monthly_totals(transactions)

        assert [t.month for t in totals] == ["Nov 2024", "Dec 2024", "Jan 2025", "Feb 2025"]
        assert [t.amount for t in totals] == [100.0, 0.0, 0.0, 75.0]
        assert totals[-1].year == 2025
        assert totals[-1].month_number == 2

    def test_order_independent(self, stats):
        transactions = [
            expense("A", 10, at(2025, 5)),
            expense("A", 20, at(2025, 3)),
        ]
        assert [t.month_number for t in stats.monthly_totals(transactions)] == [3, 4, 5]

    def test_amounts_rounded(self, stats):
        transactions = [
            expense("A", 0.1, at(2025, 1)),
            expense("A", 0.2, at(2025, 1)),
        ]
        assert stats.monthly_totals(transactions)[0].amount == 0.3


class TestBudgetStatus:
    """Tests for budget_status."""

    def make_group(self, budget, amounts, when=None) -> Group:
        when = when or at(2025, 3, 10)
        return Group(
            name="Flat",
            created_by="user-a",
            kind=GroupKind.HOUSEHOLD,
            members=[Member(id="A", name="Alice")],
            transactions=[expense("A", amount, when) for amount in amounts],
            budget=budget,
        )

    def test_under_budget(self, stats):
        status = stats.budget_status(self.make_group(1000, [200, 100]), today=date(2025, 3, 20))

        assert status.spent == 300
        assert status.percentage == pytest.approx(30.0)
        assert status.remaining == 700
        assert status.is_near_budget is False
        assert status.is_over_budget is False
        assert status.has_budget is True

    def test_near_budget(self, stats):
        status = stats.budget_status(self.make_group(1000, [950]), today=date(2025, 3, 20))
        assert status.is_near_budget is True
        assert status.is_over_budget is False

    def test_over_budget_caps_percentage(self, stats):
        """Test percentage stops at 100 while remaining goes negative."""
        status = stats.budget_status(self.make_group(1000, [1500]), today=date(2025, 3, 20))

        assert status.percentage == 100.0
        assert status.remaining == -500
        assert status.is_over_budget is True

    def test_only_current_month_counts(self, stats):
        group = self.make_group(1000, [800], when=at(2025, 2, 27))
        status = stats.budget_status(group, today=date(2025, 3, 1))
        assert status.spent == 0

    def test_no_budget(self, stats):
        status = stats.budget_status(self.make_group(None, [500]), today=date(2025, 3, 20))

        assert status.has_budget is False
        assert status.percentage == 0.0
        assert status.is_over_budget is False
        assert status.is_near_budget is False

    def test_warning_ratio_from_settings(self, monkeypatch):
        monkeypatch.setenv("BUDGET_WARNING_RATIO", "0.5")
        group = self.make_group(1000, [600])
        status = SpendingStats().budget_status(group, today=date(2025, 3, 20))
        assert status.is_near_budget is True


class TestUserStats:
    """Tests for user_stats and spending_by_group."""

    @pytest.fixture
    def groups(self, alice, bob) -> list[Group]:
        march = at(2025, 3)
        return [
            Group(
                name="Goa",
                created_by="user-a",
                members=[alice, bob],
                transactions=[
                    expense("A", 300, march),
                    expense("B", 50, march),
                    settlement("B", "A", 100, march),
                    expense("A", 999, at(2025, 1)),
                ],
            ),
            Group(
                name="Flat",
                created_by="user-a",
                kind=GroupKind.HOUSEHOLD,
                members=[alice],
                transactions=[expense("A", 40, march)],
            ),
            Group(
                name="Old trip",
                created_by="user-a",
                is_settled=True,
                members=[bob],
                transactions=[expense("B", 70, march)],
            ),
        ]

    def test_user_stats(self, stats, groups):
        """Test paid minus received this month, plus active group counts."""
        result = stats.user_stats(groups, user_id="user-a", today=date(2025, 3, 31))

        assert result.total_this_month == pytest.approx(300 - 100 + 40)
        assert result.active_trips == 1
        assert result.active_households == 1
        assert result.total_groups == 3

    def test_user_stats_by_email(self, stats, groups):
        result = stats.user_stats(groups, email="alice@example.com", today=date(2025, 3, 1))
        assert result.total_this_month == pytest.approx(240)

    def test_unknown_account(self, stats, groups):
        result = stats.user_stats(groups, user_id="nobody", today=date(2025, 3, 1))
        assert result.total_this_month == 0.0

    def test_spending_by_group(self, stats, groups):
        """Test only groups the user paid in, largest first."""
        result = stats.spending_by_group(groups, user_id="user-a")

        assert [g.group_name for g in result] == ["Goa", "Flat"]
        assert result[0].amount == pytest.approx(1299)
        assert result[1].amount == pytest.approx(40)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
