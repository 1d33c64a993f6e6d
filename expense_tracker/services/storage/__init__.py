"""
Storage Services Package

Provides the abstract key-value interface and concrete implementations.
Currently implements JSON files as the on-device backend, but designed to be
swappable.
"""

from expense_tracker.services.storage.interface import (
    AuditStorageInterface,
    KeyValueStorageInterface,
    NotFoundError,
    StorageError,
    StorageReadError,
    StorageWriteError,
)
from expense_tracker.services.storage.json_file import JsonFileStorage
from expense_tracker.services.storage.memory import InMemoryStorage
from expense_tracker.services.storage.audit_log import KeyValueAuditStorage

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "KeyValueStorageInterface",
    # Exceptions
    "NotFoundError",
    "StorageError",
    "StorageReadError",
    "StorageWriteError",
    # Implementations
    "InMemoryStorage",
    "JsonFileStorage",
    "KeyValueAuditStorage",
]
