"""
Data Models Package

This package contains all Pydantic models used in the Expense Tracker.
All data flowing through the system must conform to these schemas.
"""

from expense_tracker.models.expense import (
    DEFAULT_CATEGORIES,
    FALLBACK_CATEGORY_NAME,
    Category,
    Expense,
    ExpenseDraft,
    ExpenseUpdate,
    ValidationIssue,
    ValidationResult,
)
from expense_tracker.models.stats import CategoryShare, StatsSnapshot
from expense_tracker.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Expense models
    "DEFAULT_CATEGORIES",
    "FALLBACK_CATEGORY_NAME",
    "Category",
    "Expense",
    "ExpenseDraft",
    "ExpenseUpdate",
    "ValidationIssue",
    "ValidationResult",
    # Stats models
    "CategoryShare",
    "StatsSnapshot",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
