"""
Audit log storage on top of the key-value substrate.

Audit events are appended to a capped JSON list kept under a single key.
Appends are serialized with a lock since each one is a read-modify-write
of the whole list.
"""

import asyncio
import json
from datetime import datetime
from uuid import UUID

import structlog

from expense_tracker.models.audit import AuditEvent, AuditEventType, AuditSeverity
from expense_tracker.services.storage.interface import (
    AuditStorageInterface,
    KeyValueStorageInterface,
    StorageError,
)


class KeyValueAuditStorage(AuditStorageInterface):
    """
    Persists audit events as one JSON document.

    The oldest events are dropped once max_events is exceeded.
    """

    def __init__(
        self,
        storage: KeyValueStorageInterface,
        key: str = "audit_log",
        max_events: int = 500,
    ):
        self._storage = storage
        self._key = key
        self._max_events = max_events
        self._lock = asyncio.Lock()
        self._logger = structlog.get_logger(__name__)

    def _row_to_event(self, row: dict) -> AuditEvent:
        return AuditEvent(
            event_id=UUID(row["event_id"]),
            timestamp=datetime.fromisoformat(row["timestamp"]),
            event_type=AuditEventType(row["event_type"]),
            severity=AuditSeverity(row["severity"]),
            entity_type=row.get("entity_type"),
            entity_id=row.get("entity_id"),
            description=row["description"],
            details=row.get("details") or {},
            error_message=row.get("error_message"),
            is_user_action=bool(row.get("is_user_action", False)),
        )

    async def _load_rows(self) -> list[dict]:
        text = await self._storage.get(self._key)
        if not text:
            return []
        rows = json.loads(text)
        if not isinstance(rows, list):
            raise ValueError(f"Audit log under '{self._key}' is not a list")
        return rows

    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        async with self._lock:
            try:
                rows = await self._load_rows()
                rows.append(event.to_log_dict())
                rows = rows[-self._max_events:]
                await self._storage.set(self._key, json.dumps(rows, default=str))
                return True
            except (StorageError, ValueError) as e:
                # Don't raise - audit logging should not break the main flow
                self._logger.warning(
                    "audit_append_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get recent events, newest first."""
        rows = await self._load_rows()

        events = []
        for row in rows:
            try:
                events.append(self._row_to_event(row))
            except (KeyError, TypeError, ValueError):
                continue  # Skip malformed rows

        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
