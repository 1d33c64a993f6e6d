"""
In-memory storage substrate.

Used for tests and for throwaway sessions (storage_backend="memory").
Failures can be injected per operation to exercise the error paths of the
record store.
"""

from typing import Optional

from expense_tracker.services.storage.interface import (
    KeyValueStorageInterface,
    StorageReadError,
    StorageWriteError,
)


class InMemoryStorage(KeyValueStorageInterface):
    """Dict-backed key-value store."""

    def __init__(self, initial: Optional[dict[str, str]] = None):
        self._data: dict[str, str] = dict(initial or {})
        self.fail_reads = False
        self.fail_writes = False
        self.write_count = 0

    async def get(self, key: str) -> Optional[str]:
        if self.fail_reads:
            raise StorageReadError(f"Simulated read failure for '{key}'")
        return self._data.get(key)

    async def set(self, key: str, text: str) -> None:
        if self.fail_writes:
            raise StorageWriteError(f"Simulated write failure for '{key}'")
        self._data[key] = text
        self.write_count += 1

    def snapshot(self) -> dict[str, str]:
        """Copy of everything currently stored."""
        return dict(self._data)
