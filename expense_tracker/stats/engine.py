"""
Statistics Engine

Pure, deterministic aggregation over an expense list as returned by
ExpenseRecordStore.list_expenses(). The engine never mutates its input and
holds no state, so any number of readers may call it concurrently.

Money is summed as Decimal. Rounding to cents happens only in
format_amount, at presentation time.
"""

from collections import defaultdict
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Sequence

from expense_tracker.models.expense import Expense
from expense_tracker.models.stats import CategoryShare, StatsSnapshot


RECENT_EXPENSES_LIMIT = 5

_ZERO = Decimal("0")
_ONE_PLACE = Decimal("0.1")
_CENTS = Decimal("0.01")


def compute_stats(
    expenses: Sequence[Expense],
    now: Optional[datetime] = None,
    recent_limit: int = RECENT_EXPENSES_LIMIT,
) -> StatsSnapshot:
    """
    Build a fresh snapshot from the current expense list.

    Args:
        expenses: Records, most recently added first
        now: Reference local time for the monthly total (defaults to now)
        recent_limit: How many records go into the recent list

    Returns:
        StatsSnapshot; an empty input gives an all-zero snapshot
    """
    now = now or datetime.now()

    total = _ZERO
    monthly = _ZERO
    category_totals: dict[str, Decimal] = defaultdict(lambda: _ZERO)

    for expense in expenses:
        total += expense.amount
        if (expense.date.month, expense.date.year) == (now.month, now.year):
            monthly += expense.amount
        category_totals[expense.category] += expense.amount

    return StatsSnapshot(
        total_expenses=total,
        monthly_total=monthly,
        category_totals=dict(category_totals),
        # Recency is the store's insertion order; no re-sorting here
        recent_expenses=list(expenses[:recent_limit]),
    )


def percentage_of_total(amount: Decimal, total: Decimal) -> Decimal:
    """
    Share of the total as a percentage with one fractional digit.

    A zero total gives 0.0 rather than a division error.
    """
    if total == 0:
        return Decimal("0.0")
    return (Decimal(amount) / Decimal(total) * 100).quantize(
        _ONE_PLACE, rounding=ROUND_HALF_UP
    )


def category_breakdown(snapshot: StatsSnapshot) -> list[CategoryShare]:
    """
    Per-category rows for the stats screen.

    Only categories with a positive total, largest first (ties by name).
    """
    rows = [
        (name, amount)
        for name, amount in snapshot.category_totals.items()
        if amount > 0
    ]
    rows.sort(key=lambda row: (-row[1], row[0]))
    return [
        CategoryShare(
            category=name,
            amount=amount,
            percentage=percentage_of_total(amount, snapshot.total_expenses),
        )
        for name, amount in rows
    ]


def format_amount(amount: Decimal, symbol: str = "$") -> str:
    """Display form of an amount, rounded to cents: $1,234.50"""
    rounded = Decimal(amount).quantize(_CENTS, rounding=ROUND_HALF_UP)
    sign = "-" if rounded < 0 else ""
    return f"{sign}{symbol}{abs(rounded):,.2f}"
