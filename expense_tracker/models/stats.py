"""
Derived statistics models.

A StatsSnapshot has no lifecycle of its own. It is recomputed from the
current expense list whenever it is needed and is never persisted.
"""

from decimal import Decimal

from pydantic import BaseModel, Field

from expense_tracker.models.expense import Expense


class StatsSnapshot(BaseModel):
    """Aggregate view over the current expense list."""

    total_expenses: Decimal = Field(
        default=Decimal("0"),
        description="Sum of every expense amount"
    )
    monthly_total: Decimal = Field(
        default=Decimal("0"),
        description="Sum of amounts dated in the current calendar month"
    )
    category_totals: dict[str, Decimal] = Field(
        default_factory=dict,
        description="Summed amount per category name referenced by a record"
    )
    recent_expenses: list[Expense] = Field(
        default_factory=list,
        description="Most recently created records, newest first"
    )


class CategoryShare(BaseModel):
    """One row of the per-category breakdown shown on the stats screen."""

    category: str
    amount: Decimal
    percentage: Decimal = Field(
        ...,
        description="Share of the lifetime total, one fractional digit"
    )
