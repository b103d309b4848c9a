"""
Organizer Entity Models

The non-calendar collections: pets, their health records, the shopping
list and expenses. They carry no recurrence logic but are synchronized
by the same store and session machinery as events.

DESIGN DECISION: Health records are a closed sum type. Each kind
(vaccination, medication, vet visit, allergy) is its own model carrying
only its own fields, discriminated explicitly by `record_type` rather
than by guessing from which fields happen to be present.
"""

import datetime as dt
from decimal import Decimal
from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import Field, TypeAdapter, model_validator

from pawplanner.models.base import OwnedEntity


# =============================================================================
# ENUMS
# =============================================================================

class PetType(str, Enum):
    """Supported pet types."""
    DOG = "Dog"
    CAT = "Cat"
    BIRD = "Bird"
    FISH = "Fish"
    RABBIT = "Rabbit"
    HAMSTER = "Hamster"
    OTHER = "Other"


class ExpenseCategory(str, Enum):
    """Expense categories."""
    FOOD = "Food"
    MEDICAL = "Medical"
    SUPPLIES = "Supplies"
    GROOMING = "Grooming"
    TRAINING = "Training"
    OTHER = "Other"


class AllergySeverity(str, Enum):
    MILD = "Mild"
    MODERATE = "Moderate"
    SEVERE = "Severe"


# =============================================================================
# PETS, SHOPPING, EXPENSES
# =============================================================================

class Pet(OwnedEntity):
    """A pet profile."""

    name: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Pet name (required)"
    )
    type: PetType = Field(
        default=PetType.DOG,
        description="Kind of animal"
    )
    image_url: Optional[str] = Field(
        default=None,
        description="URL of the uploaded pet photo"
    )


class ShoppingItem(OwnedEntity):
    """A shopping list entry. Either part may be blank, but not both."""

    title: str = Field(default="", max_length=200)
    content: str = Field(default="", max_length=2000)

    @model_validator(mode='after')
    def validate_not_blank(self) -> 'ShoppingItem':
        if not self.title and not self.content:
            raise ValueError("Shopping item needs a title or content")
        return self


class Expense(OwnedEntity):
    """A pet-related expense."""

    description: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="What the money was spent on"
    )
    amount: Decimal = Field(
        ...,
        gt=0,
        decimal_places=2,
        description="Amount spent"
    )
    date: dt.date = Field(
        ...,
        description="Date of the expense"
    )
    category: ExpenseCategory = Field(
        default=ExpenseCategory.FOOD,
        description="Expense category"
    )


# =============================================================================
# HEALTH RECORDS (tagged variant)
# =============================================================================

class _HealthRecordBase(OwnedEntity):
    pet_id: str = Field(
        ...,
        min_length=1,
        description="Pet this record belongs to"
    )
    notes: Optional[str] = Field(default=None, max_length=1000)


class VaccinationRecord(_HealthRecordBase):
    record_type: Literal["vaccination"] = "vaccination"
    name: str = Field(..., min_length=1, max_length=100)
    date: dt.date
    expiration_date: Optional[dt.date] = None

    @model_validator(mode='after')
    def validate_dates(self) -> 'VaccinationRecord':
        if self.expiration_date and self.expiration_date < self.date:
            raise ValueError("Expiration date cannot be before vaccination date")
        return self


class MedicationRecord(_HealthRecordBase):
    record_type: Literal["medication"] = "medication"
    name: str = Field(..., min_length=1, max_length=100)
    dosage: str = Field(..., min_length=1, max_length=100)
    frequency: str = Field(..., min_length=1, max_length=100)
    start_date: dt.date
    end_date: Optional[dt.date] = None

    @model_validator(mode='after')
    def validate_dates(self) -> 'MedicationRecord':
        if self.end_date and self.end_date < self.start_date:
            raise ValueError("End date cannot be before start date")
        return self


class VetVisitRecord(_HealthRecordBase):
    record_type: Literal["vet_visit"] = "vet_visit"
    date: dt.date
    reason: str = Field(..., min_length=1, max_length=200)
    vet_name: Optional[str] = Field(default=None, max_length=100)
    clinic_name: Optional[str] = Field(default=None, max_length=100)
    follow_up_date: Optional[dt.date] = None


class AllergyRecord(_HealthRecordBase):
    record_type: Literal["allergy"] = "allergy"
    name: str = Field(..., min_length=1, max_length=100)
    severity: AllergySeverity = AllergySeverity.MILD
    reaction: Optional[str] = Field(default=None, max_length=200)
    diagnosed_date: Optional[dt.date] = None


HealthRecord = Annotated[
    Union[VaccinationRecord, MedicationRecord, VetVisitRecord, AllergyRecord],
    Field(discriminator="record_type"),
]

health_record_adapter: TypeAdapter[HealthRecord] = TypeAdapter(HealthRecord)
