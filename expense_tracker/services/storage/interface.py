"""
Abstract Storage Interface

DESIGN DECISION: The core only ever talks to an opaque asynchronous
key-value substrate with two operations, get and set. This allows us to:
1. Swap the JSON file store for any other on-device store later
2. Use in-memory storage for testing
3. Keep business logic decoupled from storage implementation

Each key holds one whole JSON document. The unit of persistence is the
whole document, never a single record.
"""

from abc import ABC, abstractmethod
from typing import Optional

from expense_tracker.models.audit import AuditEvent


class KeyValueStorageInterface(ABC):
    """
    Abstract interface for the key-value storage substrate.

    Any storage implementation must implement these methods.
    """

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """
        Read the document stored under a key.

        Args:
            key: The document key

        Returns:
            The stored text, or None if the key was never written

        Raises:
            StorageReadError: If the substrate could not be read
        """
        pass

    @abstractmethod
    async def set(self, key: str, text: str) -> None:
        """
        Replace the document stored under a key.

        Args:
            key: The document key
            text: The full new document

        Raises:
            StorageWriteError: If the write did not complete
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Args:
            limit: Maximum number of events to return

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class StorageReadError(StorageError):
    """The substrate could not be read."""
    pass


class StorageWriteError(StorageError):
    """The substrate could not be written."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass
