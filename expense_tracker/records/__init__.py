"""Record store package."""

from expense_tracker.records.store import ExpenseRecordStore, PersistenceError

__all__ = ["ExpenseRecordStore", "PersistenceError"]
