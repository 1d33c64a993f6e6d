"""Services package."""

from expense_tracker.services.storage import (
    AuditStorageInterface,
    InMemoryStorage,
    JsonFileStorage,
    KeyValueAuditStorage,
    KeyValueStorageInterface,
    NotFoundError,
    StorageError,
    StorageReadError,
    StorageWriteError,
)

__all__ = [
    "AuditStorageInterface",
    "InMemoryStorage",
    "JsonFileStorage",
    "KeyValueAuditStorage",
    "KeyValueStorageInterface",
    "NotFoundError",
    "StorageError",
    "StorageReadError",
    "StorageWriteError",
]
