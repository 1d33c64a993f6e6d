"""
Core Data Models for Expense Tracker

These models define the schemas for all data flowing through the system.
They are designed to:
1. Enforce type safety at runtime
2. Be serializable to the JSON documents kept by the storage substrate
3. Keep money as Decimal end to end

DESIGN DECISION: Drafts and updates are permissive. The validator reports
every problem with a draft at once instead of failing on the first one.
Stored records (Expense, Category) are strict.
"""

import datetime as dt
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)


def _parse_iso_date(v: Any) -> Any:
    """
    Accept plain dates as well as full ISO timestamps for a calendar date.

    Timestamps with an offset (such as a trailing Z) are converted to local
    time first, so the calendar date is the one the user saw.
    """
    if isinstance(v, str) and len(v) > 10:
        v = datetime.fromisoformat(v.replace("Z", "+00:00"))
    if isinstance(v, datetime):
        if v.tzinfo is not None:
            v = v.astimezone()
        return v.date()
    return v


# =============================================================================
# CATEGORIES
# =============================================================================

class Category(BaseModel):
    """
    A user-facing spending bucket.

    Expenses reference categories by display name only. Removing or renaming
    a category never touches existing expenses.
    """
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    id: str = Field(
        ...,
        min_length=1,
        description="Unique category identifier"
    )
    name: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Display name, unique within the active set"
    )
    icon: str = Field(
        ...,
        min_length=1,
        description="Symbolic icon name understood by the presentation layer"
    )
    color: str = Field(
        ...,
        pattern="^#[0-9A-Fa-f]{6}$",
        description="Display color as #RRGGBB"
    )

    def to_storage_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "icon": self.icon,
            "color": self.color,
        }


FALLBACK_CATEGORY_NAME = "Other"

DEFAULT_CATEGORIES: tuple[Category, ...] = (
    Category(id="1", name="Food & Dining", icon="restaurant", color="#FF6B6B"),
    Category(id="2", name="Transportation", icon="directions-car", color="#4ECDC4"),
    Category(id="3", name="Shopping", icon="shopping-cart", color="#45B7D1"),
    Category(id="4", name="Entertainment", icon="movie", color="#96CEB4"),
    Category(id="5", name="Bills & Utilities", icon="receipt", color="#FFEAA7"),
    Category(id="6", name="Healthcare", icon="local-hospital", color="#DDA0DD"),
    Category(id="7", name="Education", icon="school", color="#98D8C8"),
    Category(id="8", name=FALLBACK_CATEGORY_NAME, icon="more-horiz", color="#A8A8A8"),
)


# =============================================================================
# EXPENSES
# =============================================================================

class ExpenseDraft(BaseModel):
    """
    Caller input for a new expense.

    Nothing is enforced here beyond types. Run it through ExpenseValidator
    before it becomes an Expense.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    amount: Optional[Decimal] = Field(
        default=None,
        description="Amount spent"
    )
    description: str = Field(
        default="",
        description="What the money was spent on"
    )
    category: str = Field(
        default="",
        description="Category display name"
    )
    date: Optional[dt.date] = Field(
        default=None,
        description="Expenditure date (defaults to today)"
    )

    @field_validator('date', mode='before')
    @classmethod
    def accept_timestamps(cls, v: Any) -> Any:
        return _parse_iso_date(v)


class ExpenseUpdate(BaseModel):
    """
    Partial update for an existing expense.

    Only the fields explicitly set are applied. The identifier and the
    creation timestamp are not updatable, so unknown keys are rejected.
    """
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    amount: Optional[Decimal] = None
    description: Optional[str] = None
    category: Optional[str] = None
    date: Optional[dt.date] = None

    @field_validator('date', mode='before')
    @classmethod
    def accept_timestamps(cls, v: Any) -> Any:
        return _parse_iso_date(v)

    def changes(self) -> dict[str, Any]:
        """Fields the caller actually provided."""
        return self.model_dump(exclude_unset=True)


class Expense(BaseModel):
    """
    A single logged expenditure.

    CRITICAL: id and created_at are assigned once by the record store and
    never change afterwards.
    """
    model_config = ConfigDict(str_strip_whitespace=True, populate_by_name=True)

    id: str = Field(
        ...,
        min_length=1,
        description="Opaque unique identifier"
    )
    amount: Decimal = Field(
        ...,
        gt=0,
        description="Amount spent"
    )
    description: str = Field(
        ...,
        min_length=1,
        description="What the money was spent on"
    )
    category: str = Field(
        ...,
        min_length=1,
        description="Category display name at time of entry"
    )
    date: dt.date = Field(
        ...,
        description="Expenditure date"
    )
    created_at: datetime = Field(
        ...,
        alias="createdAt",
        description="When the record was created"
    )

    @field_validator('date', mode='before')
    @classmethod
    def accept_timestamps(cls, v: Any) -> Any:
        return _parse_iso_date(v)

    def to_storage_dict(self) -> dict:
        """
        Convert to the persisted document shape.

        Amount stays a Decimal; the record store writes it as an exact JSON
        number and reads numbers back as Decimal.
        """
        return {
            "id": self.id,
            "amount": self.amount,
            "description": self.description,
            "category": self.category,
            "date": self.date.isoformat(),
            "createdAt": self.created_at.isoformat(),
        }


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_value', 'unknown_category')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="Suggested fix if available"
    )


class ValidationResult(BaseModel):
    """
    Result of validating a draft.

    Stage 1: Schema validation (required fields, positive amount)
    Stage 2: Semantic validation (dates, suspicious amounts, category set)
    """

    validated_at: datetime = Field(
        default_factory=datetime.now
    )
    schema_valid: bool = Field(
        ...,
        description="Did schema validation pass?"
    )
    semantic_valid: bool = Field(
        ...,
        description="Did semantic validation pass?"
    )
    is_valid: bool = Field(
        ...,
        description="Overall validation result"
    )
    issues: list[ValidationIssue] = Field(
        default_factory=list,
        description="All validation issues found"
    )
    warnings: list[str] = Field(
        default_factory=list,
        description="Non-blocking warnings"
    )

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")

    @property
    def error_fields(self) -> list[str]:
        return [issue.field for issue in self.issues if issue.severity == "error"]
