"""
Two-Stage Event Validation

DESIGN DECISION: Validation happens in two distinct stages:

STAGE 1 - SCHEMA VALIDATION:
- Required field presence (title)
- This catches an incomplete form

STAGE 2 - SEMANTIC VALIDATION:
- Category rules (appointments need a location)
- Repeat settings (occurrence count)
- This catches input that is complete but doesn't make sense

Stage 2 is skipped when stage 1 fails, so the user fixes the obvious
problem first.

IMPORTANT: Validation NEVER silently fixes issues. An unusable
occurrence count is still defaulted to 1 by the expander, but the
validator reports it as a warning so the form can say so.
"""

from typing import Optional

from pawplanner.calendar.recurrence import occurrence_count_is_valid
from pawplanner.models.event import EventCategory, EventRecord, EventSkeleton, RepeatMode
from pawplanner.models.validation import ValidationIssue, ValidationResult


class EventValidationError(ValueError):
    """Raised when an event definition fails validation; nothing was written."""

    def __init__(self, result: ValidationResult):
        self.result = result
        super().__init__("; ".join(result.error_messages) or "Invalid event")


class EventValidator:
    """
    Validates an event definition before it is expanded and saved.

    Stage 1: Schema validation
    Stage 2: Semantic validation
    """

    def _validate_schema(
        self,
        skeleton: EventSkeleton,
    ) -> tuple[bool, list[ValidationIssue]]:
        """
        Stage 1: Schema validation.

        Returns: (is_valid, list_of_issues)
        """
        issues = []

        if not skeleton.title:
            issues.append(ValidationIssue(
                field="title",
                issue_type="missing",
                message="Title is required",
                severity="error",
                suggested_fix="Give the event a short name, e.g. 'Vet Checkup'",
            ))

        is_valid = not any(issue.severity == "error" for issue in issues)

        return is_valid, issues

    @staticmethod
    def _check_location(
        category: EventCategory,
        location: Optional[str],
    ) -> list[ValidationIssue]:
        if category.requires_location and not location:
            return [ValidationIssue(
                field="location",
                issue_type="missing",
                message=f"Location is required for {category.value} events",
                severity="error",
                suggested_fix="Enter the clinic, salon or training ground",
            )]
        return []

    def _validate_semantic(
        self,
        skeleton: EventSkeleton,
    ) -> tuple[bool, list[ValidationIssue]]:
        """
        Stage 2: Semantic validation.

        Checks:
        - Location present for Vet, Grooming and Training
        - Occurrence count usable for Daily/Weekly repeats

        Returns: (is_valid, list_of_issues)
        """
        issues = self._check_location(skeleton.category, skeleton.location)

        finite_repeat = skeleton.repeat_mode in (RepeatMode.DAILY, RepeatMode.WEEKLY)
        if finite_repeat and not occurrence_count_is_valid(skeleton.occurrence_count):
            issues.append(ValidationIssue(
                field="occurrence_count",
                issue_type="defaulted",
                message=(
                    f"Occurrence count {skeleton.occurrence_count!r} is not a "
                    "whole number of at least 1; one occurrence will be created"
                ),
                severity="warning",
                suggested_fix="Enter how many times the event should repeat",
            ))

        is_valid = not any(issue.severity == "error" for issue in issues)

        return is_valid, issues

    def validate(self, skeleton: EventSkeleton) -> ValidationResult:
        """
        Run the full two-stage validation pipeline.

        Returns:
            ValidationResult with all issues found
        """
        all_issues = []

        schema_valid, schema_issues = self._validate_schema(skeleton)
        all_issues.extend(schema_issues)

        # Only run stage 2 if stage 1 passes
        semantic_valid = False
        if schema_valid:
            semantic_valid, semantic_issues = self._validate_semantic(skeleton)
            all_issues.extend(semantic_issues)

        warnings = [issue.message for issue in all_issues if issue.severity == "warning"]

        return ValidationResult(
            schema_valid=schema_valid,
            semantic_valid=semantic_valid,
            is_valid=schema_valid and semantic_valid,
            issues=all_issues,
            warnings=warnings,
        )

    def validate_record(self, record: EventRecord) -> ValidationResult:
        """
        Re-check an edited record against the category rules.

        Title and time are already enforced by the record model itself.
        """
        issues = self._check_location(record.category, record.location)
        semantic_valid = not issues

        return ValidationResult(
            schema_valid=True,
            semantic_valid=semantic_valid,
            is_valid=semantic_valid,
            issues=issues,
        )

    def validate_or_raise(self, skeleton: EventSkeleton) -> ValidationResult:
        """Validate and raise EventValidationError if there are errors."""
        result = self.validate(skeleton)
        if not result.is_valid:
            raise EventValidationError(result)
        return result

    def get_user_friendly_summary(
        self,
        result: ValidationResult,
    ) -> str:
        """
        Generate a user-friendly summary of validation results.

        This is what the event form shows under the save button.
        """
        if result.is_valid and not result.warnings:
            return "✅ All checks passed!"

        lines = []

        if not result.is_valid:
            lines.append("❌ Please fix the following:")
            for issue in result.issues:
                if issue.severity == "error":
                    lines.append(f"   • {issue.message}")
                    if issue.suggested_fix:
                        lines.append(f"     💡 {issue.suggested_fix}")

        if result.warnings:
            if lines:
                lines.append("")
            lines.append("⚠️ Please note:")
            for warning in result.warnings:
                lines.append(f"   • {warning}")

        return "\n".join(lines)
