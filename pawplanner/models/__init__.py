"""
Data Models Package

This package contains all Pydantic models used in Paw Planner.
All data flowing through the sync engine must conform to these schemas.
"""

from pawplanner.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from pawplanner.models.base import OwnedEntity
from pawplanner.models.changes import ChangeEvent, ChangeKind
from pawplanner.models.collections import CollectionName, decode_row
from pawplanner.models.entities import (
    AllergyRecord,
    AllergySeverity,
    Expense,
    ExpenseCategory,
    HealthRecord,
    MedicationRecord,
    Pet,
    PetType,
    ShoppingItem,
    VaccinationRecord,
    VetVisitRecord,
    health_record_adapter,
)
from pawplanner.models.event import (
    EventCategory,
    EventPatch,
    EventRecord,
    EventSkeleton,
    RepeatMode,
    RepeatTag,
    normalize_time,
)
from pawplanner.models.validation import ValidationIssue, ValidationResult

__all__ = [
    # Event models
    "EventCategory",
    "EventPatch",
    "EventRecord",
    "EventSkeleton",
    "RepeatMode",
    "RepeatTag",
    "normalize_time",
    # Entity models
    "AllergyRecord",
    "AllergySeverity",
    "Expense",
    "ExpenseCategory",
    "HealthRecord",
    "MedicationRecord",
    "OwnedEntity",
    "Pet",
    "PetType",
    "ShoppingItem",
    "VaccinationRecord",
    "VetVisitRecord",
    "health_record_adapter",
    # Sync models
    "ChangeEvent",
    "ChangeKind",
    "CollectionName",
    "decode_row",
    # Validation models
    "ValidationIssue",
    "ValidationResult",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
