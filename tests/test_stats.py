"""Tests for the statistics engine."""

import time

import pytest
from datetime import date, datetime, timedelta
from decimal import Decimal

from expense_tracker.models.expense import Expense
from expense_tracker.models.stats import StatsSnapshot
from expense_tracker.stats import (
    category_breakdown,
    compute_stats,
    format_amount,
    percentage_of_total,
)


NOW = datetime(2024, 6, 15, 9, 30)


def _expense(n: int, amount, category: str, day: date) -> Expense:
    return Expense(
        id=str(n),
        amount=Decimal(str(amount)),
        description=f"Expense {n}",
        category=category,
        date=day,
        created_at=NOW - timedelta(minutes=n),
    )


class TestComputeStats:

    def test_empty_list_gives_zero_snapshot(self):
        snapshot = compute_stats([], now=NOW)
        assert snapshot.total_expenses == 0
        assert snapshot.monthly_total == 0
        assert snapshot.category_totals == {}
        assert snapshot.recent_expenses == []

    def test_totals(self):
        """10 Food this month, 5 Food last month, 20 Travel this month."""
        expenses = [
            _expense(1, 10, "Food", date(2024, 6, 3)),
            _expense(2, 5, "Food", date(2024, 5, 28)),
            _expense(3, 20, "Travel", date(2024, 6, 10)),
        ]
        snapshot = compute_stats(expenses, now=NOW)
        assert snapshot.total_expenses == Decimal("35")
        assert snapshot.monthly_total == Decimal("30")
        assert snapshot.category_totals == {"Food": Decimal("15"), "Travel": Decimal("20")}

    def test_same_month_other_year_excluded(self):
        expenses = [_expense(1, 7, "Food", date(2023, 6, 15))]
        snapshot = compute_stats(expenses, now=NOW)
        assert snapshot.monthly_total == 0
        assert snapshot.total_expenses == Decimal("7")

    def test_decimal_sums_do_not_drift(self):
        expenses = [_expense(i, "0.10", "Food", date(2024, 6, 1)) for i in range(1000)]
        snapshot = compute_stats(expenses, now=NOW)
        assert snapshot.total_expenses == Decimal("100.00")

    def test_only_referenced_categories_appear(self):
        expenses = [_expense(1, 3, "Shopping", date(2024, 6, 1))]
        assert list(compute_stats(expenses, now=NOW).category_totals) == ["Shopping"]

    @pytest.mark.parametrize("count", [0, 1, 4, 5, 6, 12])
    def test_recent_length(self, count):
        expenses = [_expense(i, 1, "Other", date(2024, 6, 1)) for i in range(count)]
        snapshot = compute_stats(expenses, now=NOW)
        assert len(snapshot.recent_expenses) == min(5, count)

    def test_recent_keeps_store_order(self):
        """The list is already newest first; the engine does not re-sort."""
        expenses = [_expense(i, 1, "Other", date(2024, 1, 1 + i)) for i in range(7)]
        snapshot = compute_stats(expenses, now=NOW)
        assert [e.id for e in snapshot.recent_expenses] == ["0", "1", "2", "3", "4"]

    def test_custom_recent_limit(self):
        expenses = [_expense(i, 1, "Other", date(2024, 6, 1)) for i in range(4)]
        assert len(compute_stats(expenses, now=NOW, recent_limit=2).recent_expenses) == 2

    def test_input_is_not_mutated(self):
        expenses = [_expense(i, 1, "Other", date(2024, 6, 1)) for i in range(6)]
        copy = list(expenses)
        compute_stats(expenses, now=NOW)
        assert expenses == copy


@pytest.fixture
def tokyo_time(monkeypatch):
    """Run the test with the local zone pinned to UTC+9."""
    if not hasattr(time, "tzset"):
        pytest.skip("time.tzset is not available on this platform")
    monkeypatch.setenv("TZ", "JST-9")
    time.tzset()
    yield
    monkeypatch.undo()
    time.tzset()


class TestLocalCalendarMonth:

    def test_utc_timestamp_counts_in_local_month(self, tokyo_time):
        """20:00 UTC on May 31 is already June 1 in Tokyo."""
        expense = Expense.model_validate({
            "id": "1",
            "amount": 10,
            "description": "Dinner",
            "category": "Food",
            "date": "2024-05-31T20:00:00.000Z",
            "createdAt": "2024-05-31T20:00:01",
        })
        assert expense.date == date(2024, 6, 1)

        snapshot = compute_stats([expense], now=datetime(2024, 6, 15))
        assert snapshot.monthly_total == Decimal("10")

    def test_naive_timestamp_keeps_its_date(self, tokyo_time):
        expense = _expense(1, 10, "Food", date(2024, 5, 31))
        parsed = Expense.model_validate(
            {**expense.to_storage_dict(), "date": "2024-05-31T20:00:00"}
        )
        assert parsed.date == date(2024, 5, 31)


class TestPercentages:

    def test_rounded_to_one_digit(self):
        assert percentage_of_total(Decimal("1"), Decimal("3")) == Decimal("33.3")
        assert percentage_of_total(Decimal("2"), Decimal("3")) == Decimal("66.7")

    def test_zero_total(self):
        assert percentage_of_total(Decimal("0"), Decimal("0")) == Decimal("0.0")

    def test_breakdown_sorted_largest_first(self):
        snapshot = StatsSnapshot(
            total_expenses=Decimal("40"),
            category_totals={
                "Food": Decimal("10"),
                "Travel": Decimal("30"),
                "Empty": Decimal("0"),
            },
        )
        rows = category_breakdown(snapshot)
        assert [r.category for r in rows] == ["Travel", "Food"]
        assert [r.percentage for r in rows] == [Decimal("75.0"), Decimal("25.0")]

    def test_breakdown_of_empty_snapshot(self):
        assert category_breakdown(StatsSnapshot()) == []


class TestFormatAmount:

    def test_two_digits(self):
        assert format_amount(Decimal("12.5")) == "$12.50"

    def test_rounds_half_up(self):
        assert format_amount(Decimal("0.125")) == "$0.13"

    def test_thousands_and_symbol(self):
        assert format_amount(Decimal("1234.5"), symbol="€") == "€1,234.50"
