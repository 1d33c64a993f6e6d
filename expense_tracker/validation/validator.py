"""
Two-Stage Expense Validation

STAGE 1 - SCHEMA VALIDATION:
- Amount present, finite and greater than zero
- Description non-empty after trimming
- Category non-empty
- An update may not clear the date

STAGE 2 - SEMANTIC VALIDATION:
- Expenditure date not in the future (beyond the configured tolerance)
- Unusually large amounts
- Amounts with sub-cent precision
- Category names that are not in the current category set

Stage 2 only runs when stage 1 passes. Errors block the write; warnings are
reported but the record is still accepted. An unknown category is only a
warning; records reference categories by name.

IMPORTANT: Validation NEVER silently fixes issues.
"""

from datetime import date, timedelta
from decimal import Decimal
from typing import Any, Iterable, Optional

from pydantic import ValidationError as PydanticValidationError

from expense_tracker.config import AppSettings, get_settings
from expense_tracker.models.expense import (
    Category,
    ExpenseDraft,
    ExpenseUpdate,
    ValidationIssue,
    ValidationResult,
)


class ValidationError(Exception):
    """
    A draft or update violates an expense invariant.

    Raised before any storage I/O happens. Carries the full ValidationResult
    so callers can point the user at every offending field.
    """

    def __init__(self, result: ValidationResult):
        self.result = result
        messages = [i.message for i in result.issues if i.severity == "error"]
        super().__init__("; ".join(messages) or "Invalid expense")

    @property
    def issues(self) -> list[ValidationIssue]:
        return [i for i in self.result.issues if i.severity == "error"]

    @classmethod
    def from_pydantic(cls, exc: PydanticValidationError) -> "ValidationError":
        """Wrap a model parsing failure (bad types, unknown keys)."""
        issues = [
            ValidationIssue(
                field=".".join(str(part) for part in err["loc"]) or "draft",
                issue_type=err["type"],
                message=err["msg"],
                severity="error",
            )
            for err in exc.errors()
        ]
        return cls(ValidationResult(
            schema_valid=False,
            semantic_valid=False,
            is_valid=False,
            issues=issues,
        ))


class ExpenseValidator:
    """
    Validates expense drafts through a two-stage pipeline.

    Works on whole drafts (new expenses) and on partial updates, where only
    the fields being changed are checked.
    """

    def __init__(self, settings: Optional[AppSettings] = None):
        self._settings = settings or get_settings()

    def _validate_schema(
        self,
        values: dict[str, Any],
    ) -> tuple[bool, list[ValidationIssue]]:
        """
        Stage 1: Schema validation.

        Returns: (is_valid, list_of_issues)
        """
        issues = []

        if "amount" in values:
            amount = values["amount"]
            if amount is None:
                issues.append(ValidationIssue(
                    field="amount",
                    issue_type="missing",
                    message="Amount is required",
                    severity="error",
                    suggested_fix="Enter how much was spent",
                ))
            elif not amount.is_finite() or amount <= 0:
                issues.append(ValidationIssue(
                    field="amount",
                    issue_type="invalid_value",
                    message="Amount must be greater than zero",
                    severity="error",
                    suggested_fix="Enter a valid amount greater than 0",
                ))

        if "description" in values and not values["description"]:
            issues.append(ValidationIssue(
                field="description",
                issue_type="missing",
                message="Description is required",
                severity="error",
                suggested_fix="Describe what the money was spent on",
            ))

        if "category" in values and not values["category"]:
            issues.append(ValidationIssue(
                field="category",
                issue_type="missing",
                message="Category is required",
                severity="error",
                suggested_fix="Pick a category",
            ))

        if "date" in values and values["date"] is None:
            issues.append(ValidationIssue(
                field="date",
                issue_type="missing",
                message="Date cannot be cleared",
                severity="error",
                suggested_fix="Pick the day the money was spent",
            ))

        is_valid = not any(issue.severity == "error" for issue in issues)
        return is_valid, issues

    def _validate_semantic(
        self,
        values: dict[str, Any],
        categories: Optional[list[Category]],
        today: date,
    ) -> tuple[bool, list[ValidationIssue]]:
        """
        Stage 2: Semantic validation.

        Returns: (is_valid, list_of_issues)
        """
        issues = []

        expense_date = values.get("date")
        max_date = today + timedelta(days=self._settings.future_date_tolerance_days)
        if expense_date and expense_date > max_date:
            issues.append(ValidationIssue(
                field="date",
                issue_type="future_date",
                message=f"Expense date ({expense_date}) is in the future",
                severity="error",
                suggested_fix="Pick today or an earlier date",
            ))

        amount = values.get("amount")
        if amount is not None:
            max_amount = Decimal(str(self._settings.max_expense_amount))
            if amount > max_amount:
                issues.append(ValidationIssue(
                    field="amount",
                    issue_type="suspicious_value",
                    message=f"Amount ({amount:,.2f}) seems unusually high",
                    severity="warning",
                    suggested_fix="Please verify this amount is correct",
                ))

            if amount.as_tuple().exponent < -2:
                issues.append(ValidationIssue(
                    field="amount",
                    issue_type="precision",
                    message=f"Amount ({amount}) has more than two decimal places",
                    severity="warning",
                    suggested_fix="It will be displayed rounded to cents",
                ))

        category = values.get("category")
        if category and categories:
            if category not in {c.name for c in categories}:
                issues.append(ValidationIssue(
                    field="category",
                    issue_type="unknown_category",
                    message=f"Category '{category}' is not in the category list",
                    severity="warning",
                    suggested_fix="It will be shown as 'Other' until the category exists",
                ))

        is_valid = not any(issue.severity == "error" for issue in issues)
        return is_valid, issues

    def _run(
        self,
        values: dict[str, Any],
        categories: Optional[Iterable[Category]],
        today: Optional[date],
    ) -> ValidationResult:
        all_issues = []
        category_list = list(categories) if categories is not None else None

        schema_valid, schema_issues = self._validate_schema(values)
        all_issues.extend(schema_issues)

        # Only run stage 2 if stage 1 passes
        semantic_valid = False
        if schema_valid:
            semantic_valid, semantic_issues = self._validate_semantic(
                values, category_list, today or date.today()
            )
            all_issues.extend(semantic_issues)

        return ValidationResult(
            schema_valid=schema_valid,
            semantic_valid=semantic_valid,
            is_valid=schema_valid and semantic_valid,
            issues=all_issues,
            warnings=[i.message for i in all_issues if i.severity == "warning"],
        )

    def validate(
        self,
        draft: ExpenseDraft,
        categories: Optional[Iterable[Category]] = None,
        today: Optional[date] = None,
    ) -> ValidationResult:
        """
        Run full two-stage validation on a new expense.

        Args:
            draft: The draft to validate
            categories: Current category set; enables the unknown-category check
            today: Reference date for the future-date check (defaults to today)

        Returns:
            ValidationResult with all issues found
        """
        values = draft.model_dump()
        if values["date"] is None:
            # Defaults to today when the record is created
            del values["date"]
        return self._run(values, categories, today)

    def validate_changes(
        self,
        update: ExpenseUpdate,
        categories: Optional[Iterable[Category]] = None,
        today: Optional[date] = None,
    ) -> ValidationResult:
        """Validate only the fields a partial update actually sets."""
        return self._run(update.changes(), categories, today)

    def ensure_valid(
        self,
        draft: ExpenseDraft,
        categories: Optional[Iterable[Category]] = None,
        today: Optional[date] = None,
    ) -> ValidationResult:
        """
        Validate and raise on any error-level issue.

        Returns the result (possibly with warnings) when the draft is usable.
        """
        result = self.validate(draft, categories=categories, today=today)
        if not result.is_valid:
            raise ValidationError(result)
        return result

    def ensure_valid_changes(
        self,
        update: ExpenseUpdate,
        categories: Optional[Iterable[Category]] = None,
        today: Optional[date] = None,
    ) -> ValidationResult:
        result = self.validate_changes(update, categories=categories, today=today)
        if not result.is_valid:
            raise ValidationError(result)
        return result
