"""
Shared fixtures.

Async code is driven with asyncio.run, one event loop per test, so every
test builds its own store.
"""

from datetime import date, datetime, timedelta

import pytest

from expense_tracker.audit import AuditLogger
from expense_tracker.config import AppSettings
from expense_tracker.models.audit import AuditEvent
from expense_tracker.records import ExpenseRecordStore
from expense_tracker.services.storage import AuditStorageInterface, InMemoryStorage


class RecordingAuditStorage(AuditStorageInterface):
    """Keeps audit events in a list so tests can assert on them."""

    def __init__(self):
        self.events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self.events.append(event)
        return True

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        return list(reversed(self.events))[:limit]

    def types(self) -> list[str]:
        return [e.event_type.value for e in self.events]


class TickingClock:
    """Deterministic clock that advances one second per call."""

    def __init__(self, start: datetime):
        self.current = start

    def __call__(self) -> datetime:
        self.current += timedelta(seconds=1)
        return self.current


@pytest.fixture
def settings(tmp_path):
    return AppSettings(_env_file=None, data_dir=tmp_path / "data")


@pytest.fixture
def storage():
    return InMemoryStorage()


@pytest.fixture
def audit_storage():
    return RecordingAuditStorage()


@pytest.fixture
def clock():
    return TickingClock(datetime.now().replace(microsecond=0))


@pytest.fixture
def store(storage, settings, audit_storage, clock):
    return ExpenseRecordStore(
        storage,
        audit_logger=AuditLogger(audit_storage),
        settings=settings,
        clock=clock,
    )


@pytest.fixture
def today():
    return date.today()


@pytest.fixture
def make_draft():
    """Factory for valid add_expense payloads."""
    def _make(**overrides) -> dict:
        draft = {
            "amount": "12.50",
            "description": "Lunch",
            "category": "Food & Dining",
            "date": date.today(),
        }
        draft.update(overrides)
        return draft
    return _make
