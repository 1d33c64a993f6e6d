"""Statistics engine package."""

from expense_tracker.stats.engine import (
    RECENT_EXPENSES_LIMIT,
    category_breakdown,
    compute_stats,
    format_amount,
    percentage_of_total,
)

__all__ = [
    "RECENT_EXPENSES_LIMIT",
    "category_breakdown",
    "compute_stats",
    "format_amount",
    "percentage_of_total",
]
