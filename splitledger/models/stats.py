"""
Statistics Models

Result shapes for the spending statistics in splitledger.queries.
All of these are derived on demand and never stored.
"""

from pydantic import BaseModel, Field


class MonthlyTotal(BaseModel):
    """Expense total for one calendar month."""

    month: str = Field(
        ...,
        description="Month label, e.g. 'Mar 2025'"
    )
    year: int
    month_number: int = Field(ge=1, le=12)
    amount: float = Field(ge=0)


class BudgetStatus(BaseModel):
    """Current-month spending against a household budget."""

    spent: float = Field(ge=0)
    budget: float = Field(ge=0)
    percentage: float = Field(
        ge=0,
        le=100,
        description="Share of the budget used, capped at 100"
    )
    remaining: float = Field(
        ...,
        description="Budget minus spent; negative when over budget"
    )
    is_over_budget: bool
    is_near_budget: bool

    @property
    def has_budget(self) -> bool:
        return self.budget > 0


class UserStats(BaseModel):
    """Dashboard figures for one account across all of its groups."""

    total_this_month: float = Field(
        ...,
        description="Paid this month minus settlements received this month"
    )
    active_trips: int = Field(ge=0)
    active_households: int = Field(ge=0)
    total_groups: int = Field(ge=0)


class GroupSpending(BaseModel):
    """Expenses one account paid for within one group."""

    group_id: str
    group_name: str
    amount: float = Field(ge=0)
