"""Validation package: two-stage checks for event definitions."""

from pawplanner.validation.validator import EventValidationError, EventValidator

__all__ = ["EventValidationError", "EventValidator"]
