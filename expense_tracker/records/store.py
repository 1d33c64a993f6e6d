"""
Expense Record Store

The record store exclusively owns the durable expense list and category
list. It is the only writer of persisted state.

GUARANTEES:
- Every mutation is one full read-modify-write of the whole document
- Mutations are serialized through a single asyncio.Lock per store, since
  the substrate offers no compare-and-swap
- A mutation has been persisted before it returns (read-after-write)
- Reads never raise; on failure they serve fallback data and report to the
  audit logger
- Writes never fail silently; substrate failures surface as PersistenceError

DESIGN DECISION: Update and delete of an unknown id are silent no-ops by
default (the lenient behaviour). Setting strict_missing_ids makes both raise
NotFoundError instead.
"""

import asyncio
from datetime import datetime
from typing import Any, Callable, Mapping, Optional, Union

import simplejson
from pydantic import ValidationError as PydanticValidationError

from expense_tracker.audit import AuditLogger
from expense_tracker.config import AppSettings, get_settings
from expense_tracker.models.expense import (
    DEFAULT_CATEGORIES,
    FALLBACK_CATEGORY_NAME,
    Category,
    Expense,
    ExpenseDraft,
    ExpenseUpdate,
)
from expense_tracker.services.storage import (
    KeyValueStorageInterface,
    NotFoundError,
    StorageError,
)
from expense_tracker.validation import ExpenseValidator, ValidationError


class PersistenceError(Exception):
    """
    The storage substrate failed during a mutating operation.

    Nothing is retried here; retry policy belongs to the caller.
    """

    def __init__(self, operation: str, message: str):
        self.operation = operation
        super().__init__(f"Failed to {operation}: {message}")


def _dumps(rows: list[dict]) -> str:
    # Decimal amounts are written as JSON numbers with their exact digits
    return simplejson.dumps(rows, use_decimal=True, ensure_ascii=False)


def _loads_list(text: str, key: str) -> list:
    # Numbers come back as Decimal so amounts never pass through float math
    rows = simplejson.loads(text, use_decimal=True)
    if not isinstance(rows, list):
        raise ValueError(f"Document under '{key}' is not a list")
    return rows


class ExpenseRecordStore:
    """
    Durable CRUD over expense records and categories.

    Usage:
        store = ExpenseRecordStore(JsonFileStorage(Path("data")))
        expense = await store.add_expense({"amount": "12.50", ...})
        expenses = await store.list_expenses()
    """

    def __init__(
        self,
        storage: KeyValueStorageInterface,
        validator: Optional[ExpenseValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[AppSettings] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Args:
            storage: Key-value substrate holding the documents
            validator: Draft validator (built from settings if omitted)
            audit_logger: Observability sink (local-only logger if omitted)
            settings: Application settings
            clock: Returns the current local time; injectable for tests
        """
        self._storage = storage
        self._settings = settings or get_settings()
        self._validator = validator or ExpenseValidator(self._settings)
        self._audit = audit_logger or AuditLogger()
        self._clock = clock or datetime.now
        self._write_lock = asyncio.Lock()
        self._last_id = 0
        self._known_categories: Optional[list[Category]] = None

    @property
    def expenses_key(self) -> str:
        return self._settings.expenses_key

    @property
    def categories_key(self) -> str:
        return self._settings.categories_key

    # =========================================================================
    # Codec
    # =========================================================================

    def _decode_expenses(self, text: Optional[str], strict: bool) -> list[Expense]:
        """
        Parse the expense document.

        Strict mode (used before a write) refuses the whole document if any
        row is malformed, so a rewrite never drops records. Lenient mode
        (used for display) skips malformed rows.
        """
        if not text:
            return []
        expenses = []
        for row in _loads_list(text, self.expenses_key):
            try:
                expenses.append(Expense.model_validate(row))
            except PydanticValidationError:
                if strict:
                    raise
        return expenses

    def _decode_categories(self, text: str) -> list[Category]:
        return [
            Category.model_validate(row)
            for row in _loads_list(text, self.categories_key)
        ]

    # =========================================================================
    # Reads
    # =========================================================================

    async def list_expenses(self) -> list[Expense]:
        """
        All records, most recently added first.

        Never raises: a failed or corrupt read yields an empty list and an
        audit event.
        """
        try:
            text = await self._storage.get(self.expenses_key)
            return self._decode_expenses(text, strict=False)
        except (StorageError, ValueError) as e:
            await self._audit.log_read_failed(self.expenses_key, str(e))
            return []

    async def get_expense(self, expense_id: str) -> Optional[Expense]:
        """Look up a single record by id."""
        for expense in await self.list_expenses():
            if expense.id == expense_id:
                return expense
        return None

    async def list_categories(self) -> list[Category]:
        """
        The persisted category set.

        Seeds and persists the eight defaults when no category document
        exists yet. Never raises: on failure the defaults are served and the
        failure goes to the audit logger.
        """
        try:
            text = await self._storage.get(self.categories_key)
            if text is None:
                categories = await self._seed_categories()
            else:
                categories = self._decode_categories(text)
        except (StorageError, ValueError) as e:
            await self._audit.log_read_failed(self.categories_key, str(e))
            categories = list(DEFAULT_CATEGORIES)

        self._known_categories = categories
        return list(categories)

    async def _seed_categories(self) -> list[Category]:
        async with self._write_lock:
            # Another task may have seeded while we waited for the lock
            text = await self._storage.get(self.categories_key)
            if text is not None:
                return self._decode_categories(text)

            categories = list(DEFAULT_CATEGORIES)
            await self._storage.set(
                self.categories_key,
                _dumps([c.to_storage_dict() for c in categories]),
            )
        await self._audit.log_categories_seeded(len(categories))
        return categories

    async def find_category(self, name: str) -> Optional[Category]:
        for category in await self.list_categories():
            if category.name == name:
                return category
        return None

    async def resolve_category(self, name: str) -> Category:
        """
        Category to display for a record's category name.

        Records keep whatever name they were created with. If that category
        no longer exists the "Other" category is shown instead; the record
        itself is never changed.
        """
        categories = await self.list_categories()
        by_name = {c.name: c for c in categories}
        if name in by_name:
            return by_name[name]
        if FALLBACK_CATEGORY_NAME in by_name:
            return by_name[FALLBACK_CATEGORY_NAME]
        return DEFAULT_CATEGORIES[-1]

    # =========================================================================
    # Writes
    # =========================================================================

    async def _load_for_write(self, operation: str) -> list[Expense]:
        try:
            text = await self._storage.get(self.expenses_key)
            return self._decode_expenses(text, strict=True)
        except (StorageError, ValueError) as e:
            await self._audit.log_save_failed(operation, self.expenses_key, str(e))
            raise PersistenceError(operation, str(e))

    async def _save(
        self,
        expenses: list[Expense],
        operation: str,
        expense_id: Optional[str] = None,
    ) -> None:
        try:
            await self._storage.set(
                self.expenses_key,
                _dumps([e.to_storage_dict() for e in expenses]),
            )
        except StorageError as e:
            await self._audit.log_save_failed(
                operation, self.expenses_key, str(e), expense_id=expense_id
            )
            raise PersistenceError(operation, str(e))

    def _next_id(self, now: datetime, existing: set[str]) -> str:
        """Creation-timestamp derived id, strictly increasing in this process."""
        candidate = max(int(now.timestamp() * 1000), self._last_id + 1)
        while str(candidate) in existing:
            candidate += 1
        self._last_id = candidate
        return str(candidate)

    async def _reject(
        self,
        error: ValidationError,
        operation: str,
        expense_id: Optional[str] = None,
    ) -> None:
        await self._audit.log_validation_failed(
            operation=operation,
            issues=[
                {"field": i.field, "type": i.issue_type, "message": i.message}
                for i in error.issues
            ],
            expense_id=expense_id,
        )
        raise error

    async def add_expense(
        self,
        draft: Union[ExpenseDraft, Mapping[str, Any]],
    ) -> Expense:
        """
        Validate a draft, store it as the newest record and return it.

        Raises:
            ValidationError: The draft breaks an invariant (nothing is written)
            PersistenceError: The substrate failed
        """
        try:
            if not isinstance(draft, ExpenseDraft):
                draft = ExpenseDraft.model_validate(draft)
            now = self._clock()
            self._validator.ensure_valid(
                draft, categories=self._known_categories, today=now.date()
            )
        except PydanticValidationError as e:
            await self._reject(ValidationError.from_pydantic(e), "add")
        except ValidationError as e:
            await self._reject(e, "add")

        async with self._write_lock:
            expenses = await self._load_for_write("add expense")
            now = self._clock()
            expense = Expense(
                id=self._next_id(now, {e.id for e in expenses}),
                amount=draft.amount,
                description=draft.description,
                category=draft.category,
                date=draft.date or now.date(),
                created_at=now,
            )
            expenses.insert(0, expense)
            await self._save(expenses, "add expense", expense.id)

        await self._audit.log_expense_added(
            expense_id=expense.id,
            amount=str(expense.amount),
            category=expense.category,
        )
        return expense

    async def _handle_missing(self, expense_id: str, operation: str) -> None:
        await self._audit.log_expense_not_found(expense_id, operation)
        if self._settings.strict_missing_ids:
            raise NotFoundError(f"Expense not found: {expense_id}")

    async def update_expense(
        self,
        expense_id: str,
        updates: Union[ExpenseUpdate, Mapping[str, Any]],
    ) -> None:
        """
        Merge the provided fields over an existing record.

        id and created_at never change. An unknown id is a no-op unless
        strict_missing_ids is set.

        Raises:
            ValidationError: The changes break an invariant (nothing is written)
            PersistenceError: The substrate failed
            NotFoundError: Unknown id in strict mode
        """
        try:
            if not isinstance(updates, ExpenseUpdate):
                updates = ExpenseUpdate.model_validate(updates)
            self._validator.ensure_valid_changes(
                updates,
                categories=self._known_categories,
                today=self._clock().date(),
            )
        except PydanticValidationError as e:
            await self._reject(ValidationError.from_pydantic(e), "update", expense_id)
        except ValidationError as e:
            await self._reject(e, "update", expense_id)

        changes = updates.changes()

        async with self._write_lock:
            expenses = await self._load_for_write("update expense")
            index = next(
                (i for i, e in enumerate(expenses) if e.id == expense_id), None
            )
            if index is None:
                await self._handle_missing(expense_id, "update")
                return

            existing = expenses[index]
            merged = existing.model_dump()
            merged.update(changes)
            expenses[index] = Expense.model_validate(merged)
            await self._save(expenses, "update expense", expense_id)

        await self._audit.log_expense_updated(expense_id, sorted(changes))

    async def delete_expense(self, expense_id: str) -> None:
        """
        Remove the record with this id.

        An unknown id leaves the list unchanged and is not an error unless
        strict_missing_ids is set.

        Raises:
            PersistenceError: The substrate failed
            NotFoundError: Unknown id in strict mode
        """
        async with self._write_lock:
            expenses = await self._load_for_write("delete expense")
            remaining = [e for e in expenses if e.id != expense_id]
            if len(remaining) == len(expenses):
                await self._handle_missing(expense_id, "delete")
                return
            await self._save(remaining, "delete expense", expense_id)

        await self._audit.log_expense_deleted(expense_id)
