"""
Audit Logger

Every mutation and every degraded read goes through here. This provides:
1. Traceability of user-initiated writes
2. The observability sink for read failures, which never raise
3. Optional persistence of the trail through the storage substrate

The audit logger:
- Is async so it can share the storage substrate
- Gracefully handles failures (doesn't crash the app if logging fails)
"""

from typing import Optional

import structlog

from expense_tracker.models.audit import AuditEvent, AuditEventBuilder
from expense_tracker.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. The audit storage, when one is configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("expense_tracker.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_expense_added(
        self,
        expense_id: str,
        amount: str,
        category: str,
    ) -> None:
        """Log a new expense."""
        await self.log(AuditEventBuilder.expense_added(
            expense_id=expense_id,
            amount=amount,
            category=category,
        ))

    async def log_expense_updated(
        self,
        expense_id: str,
        fields: list[str],
    ) -> None:
        await self.log(AuditEventBuilder.expense_updated(
            expense_id=expense_id,
            fields=fields,
        ))

    async def log_expense_deleted(self, expense_id: str) -> None:
        await self.log(AuditEventBuilder.expense_deleted(expense_id))

    async def log_expense_not_found(
        self,
        expense_id: str,
        operation: str,
    ) -> None:
        """Log an update or delete aimed at an unknown id."""
        await self.log(AuditEventBuilder.expense_not_found(
            expense_id=expense_id,
            operation=operation,
        ))

    async def log_categories_seeded(self, count: int) -> None:
        await self.log(AuditEventBuilder.categories_seeded(count))

    async def log_validation_failed(
        self,
        operation: str,
        issues: list[dict],
        expense_id: Optional[str] = None,
    ) -> None:
        """Log a rejected draft or update."""
        await self.log(AuditEventBuilder.validation_failed(
            operation=operation,
            issues=issues,
            expense_id=expense_id,
        ))

    async def log_read_failed(
        self,
        key: str,
        error_message: str,
    ) -> None:
        """Log a read that degraded to fallback data."""
        await self.log(AuditEventBuilder.storage_read_failed(
            key=key,
            error_message=error_message,
        ))

    async def log_save_failed(
        self,
        operation: str,
        key: str,
        error_message: str,
        expense_id: Optional[str] = None,
    ) -> None:
        await self.log(AuditEventBuilder.save_failed(
            operation=operation,
            key=key,
            error_message=error_message,
            expense_id=expense_id,
        ))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
    ) -> None:
        """Log an error."""
        await self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
        ))
