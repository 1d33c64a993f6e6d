"""
Main Orchestrator for Expense Tracker

This module ties the record store and the statistics engine together for
presentation surfaces:
1. Mutate through the record store (which persists before returning)
2. Reload the expense and category lists
3. Recompute the statistics snapshot
4. Notify subscribers with the fresh state

DESIGN DECISION: There is no process-wide provider. An ExpenseTracker is
built explicitly (see create_app_components) and handed to whatever needs
it. Surfaces subscribe to changes instead of reading ambient state.
"""

import asyncio
import inspect
import logging
from decimal import Decimal
from typing import Any, Awaitable, Callable, Mapping, Optional, Union

from pydantic import BaseModel, Field

from expense_tracker.audit import AuditLogger
from expense_tracker.config import AppSettings, get_settings
from expense_tracker.models.expense import Category, Expense, ExpenseDraft, ExpenseUpdate
from expense_tracker.models.stats import CategoryShare, StatsSnapshot
from expense_tracker.records import ExpenseRecordStore
from expense_tracker.services.storage import (
    InMemoryStorage,
    JsonFileStorage,
    KeyValueAuditStorage,
    KeyValueStorageInterface,
)
from expense_tracker.stats import category_breakdown, compute_stats, format_amount
from expense_tracker.validation import ExpenseValidator


class TrackerState(BaseModel):
    """Everything a presentation surface renders."""

    expenses: list[Expense] = Field(default_factory=list)
    categories: list[Category] = Field(default_factory=list)
    stats: StatsSnapshot = Field(default_factory=StatsSnapshot)


Listener = Callable[[TrackerState], Union[None, Awaitable[None]]]


class ExpenseTracker:
    """
    Orchestrates CRUD and derived views for presentation surfaces.

    Every successful mutation is followed by a refresh, so subscribers always
    receive a snapshot computed from what was actually persisted.
    """

    def __init__(
        self,
        store: ExpenseRecordStore,
        settings: Optional[AppSettings] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._settings = settings or get_settings()
        self._audit = audit_logger or AuditLogger()
        self._state = TrackerState()
        self._listeners: list[Listener] = []

    @property
    def store(self) -> ExpenseRecordStore:
        return self._store

    @property
    def state(self) -> TrackerState:
        return self._state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Register a change listener (plain function or coroutine function).

        Returns a callable that removes the listener again.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                result = listener(self._state)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                # Listener failures never reach the caller of a mutation
                await self._audit.log_error(
                    error_type="listener_failed",
                    error_message=str(e),
                    details={"listener": getattr(listener, "__qualname__", repr(listener))},
                )

    async def refresh(self) -> TrackerState:
        """Reload lists, recompute the snapshot and notify subscribers."""
        expenses, categories = await asyncio.gather(
            self._store.list_expenses(),
            self._store.list_categories(),
        )
        self._state = TrackerState(
            expenses=expenses,
            categories=categories,
            stats=compute_stats(
                expenses,
                recent_limit=self._settings.recent_expenses_limit,
            ),
        )
        await self._notify()
        return self._state

    async def add_expense(
        self,
        draft: Union[ExpenseDraft, Mapping[str, Any]],
    ) -> Expense:
        expense = await self._store.add_expense(draft)
        await self.refresh()
        return expense

    async def update_expense(
        self,
        expense_id: str,
        updates: Union[ExpenseUpdate, Mapping[str, Any]],
    ) -> None:
        await self._store.update_expense(expense_id, updates)
        await self.refresh()

    async def delete_expense(self, expense_id: str) -> None:
        await self._store.delete_expense(expense_id)
        await self.refresh()

    def category_breakdown(self) -> list[CategoryShare]:
        """Per-category rows for the current snapshot."""
        return category_breakdown(self._state.stats)

    def format_amount(self, amount: Decimal) -> str:
        return format_amount(amount, self._settings.currency_symbol)


def create_storage(settings: AppSettings) -> KeyValueStorageInterface:
    """Build the key-value substrate selected in settings."""
    if settings.storage_backend == "memory":
        return InMemoryStorage()
    return JsonFileStorage(
        settings.data_dir,
        write_attempts=settings.storage_write_attempts,
    )


def create_app_components(
    settings: Optional[AppSettings] = None,
    storage: Optional[KeyValueStorageInterface] = None,
) -> tuple[ExpenseTracker, KeyValueStorageInterface]:
    """
    Factory function to create all application components.

    Args:
        settings: Application settings (loaded from the environment if omitted)
        storage: Substrate override, mainly for tests

    Returns:
        (tracker, storage)
    """
    settings = settings or get_settings()
    logging.getLogger("expense_tracker").setLevel(
        logging.DEBUG if settings.debug_mode else logging.INFO
    )
    storage = storage or create_storage(settings)

    audit_storage = None
    if settings.persist_audit_log:
        audit_storage = KeyValueAuditStorage(
            storage,
            key=settings.audit_log_key,
            max_events=settings.audit_log_max_events,
        )
    audit_logger = AuditLogger(audit_storage)

    store = ExpenseRecordStore(
        storage,
        validator=ExpenseValidator(settings),
        audit_logger=audit_logger,
        settings=settings,
    )
    tracker = ExpenseTracker(store, settings=settings, audit_logger=audit_logger)
    return tracker, storage
