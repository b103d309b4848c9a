"""
Tests for Paw Planner

Test strategy:
1. Unit tests for individual components (models, validators)
2. Integration tests for flows (with in-memory backends)
3. No real API calls in tests (use fakes)
"""

import pytest
from datetime import date, time
from decimal import Decimal
from uuid import uuid4

from pydantic import ValidationError

from pawplanner.models import (
    AllergyRecord,
    ChangeEvent,
    ChangeKind,
    CollectionName,
    EventCategory,
    EventPatch,
    EventRecord,
    EventSkeleton,
    Expense,
    MedicationRecord,
    Pet,
    PetType,
    RepeatMode,
    RepeatTag,
    ShoppingItem,
    VaccinationRecord,
    ValidationIssue,
    ValidationResult,
    decode_row,
    health_record_adapter,
    normalize_time,
)
from pawplanner.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)


class TestTimeNormalization:
    """Tests for the HH:MM time format."""

    def test_pads_single_digit_hour(self):
        """Test that '9:05' becomes '09:05'."""
        assert normalize_time("9:05") == "09:05"

    def test_drops_seconds(self):
        """Test that seconds are discarded."""
        assert normalize_time("14:30:59") == "14:30"

    def test_twelve_hour_clock(self):
        """Test AM/PM input."""
        assert normalize_time("2:30 PM") == "14:30"
        assert normalize_time("12:00 am") == "00:00"

    def test_time_object(self):
        """Test datetime.time input."""
        assert normalize_time(time(8, 15)) == "08:15"

    def test_rejects_garbage(self):
        """Test that unparseable times are rejected."""
        with pytest.raises(ValueError):
            normalize_time("noon")
        with pytest.raises(ValueError):
            normalize_time("25:00")


class TestEventModels:
    """Tests for event-related Pydantic models."""

    def test_skeleton_defaults(self):
        """Test EventSkeleton defaults to a one-off event."""
        skeleton = EventSkeleton(
            title="Walk",
            date=date(2025, 1, 1),
            time="7:00",
            category=EventCategory.DAILY,
        )
        assert skeleton.repeat_mode == RepeatMode.NEVER
        assert skeleton.occurrence_count == 1
        assert skeleton.time == "07:00"

    def test_skeleton_strips_whitespace(self):
        """Test that whitespace is stripped from the title."""
        skeleton = EventSkeleton(
            title="  Vet Checkup  ",
            date=date(2025, 1, 1),
            time="10:00",
            category=EventCategory.VET,
        )
        assert skeleton.title == "Vet Checkup"

    def test_record_requires_title(self):
        """Test that a stored record must have a title."""
        with pytest.raises(ValidationError):
            EventRecord(
                title="",
                date=date(2025, 1, 1),
                time="10:00",
                category=EventCategory.PLAY,
            )

    def test_record_reads_stored_empty_values(self):
        """Test that stored "" and "Never" mean no location / no repeat."""
        record = EventRecord.model_validate({
            "id": "e1",
            "owner_id": "u1",
            "title": "Fetch",
            "date": "2025-01-10",
            "time": "16:00",
            "category": "Play",
            "location": "",
            "repeat": "Never",
        })
        assert record.location is None
        assert record.repeat is None
        assert record.is_forever is False

    def test_forever_record(self):
        """Test the is_forever flag."""
        record = EventRecord(
            title="Feed",
            date=date(2025, 1, 10),
            time="08:00",
            category=EventCategory.DAILY,
            repeat=RepeatTag.FOREVER,
        )
        assert record.is_forever is True

    def test_storage_dict_excludes_id(self):
        """Test that the backend-owned id is never written."""
        record = EventRecord(
            id="e1",
            owner_id="u1",
            title="Feed",
            date=date(2025, 1, 10),
            time="08:00",
            category=EventCategory.DAILY,
        )
        data = record.to_storage_dict()
        assert "id" not in data
        assert data["owner_id"] == "u1"
        assert data["date"] == "2025-01-10"
        assert data["category"] == "Daily"

    def test_location_categories(self):
        """Test which categories need a location."""
        assert EventCategory.VET.requires_location
        assert EventCategory.GROOMING.requires_location
        assert EventCategory.TRAINING.requires_location
        assert not EventCategory.DAILY.requires_location
        assert not EventCategory.PLAY.requires_location


class TestEventPatch:
    """Tests for the editable-field whitelist."""

    def test_only_set_fields_are_changes(self):
        """Test that unset fields are not sent."""
        patch = EventPatch(time="9:30")
        assert patch.changes() == {"time": "09:30"}

    def test_rejects_non_editable_fields(self):
        """Test that owner and repeat tag can't be edited."""
        with pytest.raises(ValidationError):
            EventPatch.model_validate({"owner_id": "someone-else"})
        with pytest.raises(ValidationError):
            EventPatch.model_validate({"repeat": "Forever"})

    def test_date_serialized_for_backend(self):
        """Test that dates are JSON-ready."""
        patch = EventPatch(date=date(2025, 3, 8))
        assert patch.changes() == {"date": "2025-03-08"}


class TestEntityModels:
    """Tests for pets, shopping items and expenses."""

    def test_pet_creation(self):
        """Test Pet model creation."""
        pet = Pet(name="  Rex ", type=PetType.DOG)
        assert pet.name == "Rex"
        assert pet.image_url is None

    def test_pet_requires_name(self):
        """Test that a pet must have a name."""
        with pytest.raises(ValidationError):
            Pet(name="")

    def test_shopping_item_needs_some_text(self):
        """Test that a fully blank shopping item is rejected."""
        assert ShoppingItem(title="Kibble").content == ""
        assert ShoppingItem(content="the big bag").title == ""
        with pytest.raises(ValidationError, match="title or content"):
            ShoppingItem(title="  ", content="")

    def test_expense_rejects_non_positive_amount(self):
        """Test that amounts must be greater than zero."""
        with pytest.raises(ValidationError):
            Expense(description="Food", amount=Decimal("0"), date=date(2025, 1, 1))

    def test_expense_amount_from_storage_string(self):
        """Test that a stored amount string is read back as Decimal."""
        expense = Expense.model_validate({
            "description": "Shots",
            "amount": "45.50",
            "date": "2025-02-01",
            "category": "Medical",
        })
        assert expense.amount == Decimal("45.50")


class TestHealthRecords:
    """Tests for the health record tagged union."""

    def test_discriminates_by_record_type(self):
        """Test that each record_type decodes to its own model."""
        record = health_record_adapter.validate_python({
            "record_type": "allergy",
            "pet_id": "p1",
            "name": "Chicken",
            "severity": "Severe",
        })
        assert isinstance(record, AllergyRecord)

    def test_unknown_record_type_rejected(self):
        """Test that an unknown kind is not guessed."""
        with pytest.raises(ValidationError):
            health_record_adapter.validate_python({
                "record_type": "surgery",
                "pet_id": "p1",
            })

    def test_medication_date_order(self):
        """Test that end date cannot be before start date."""
        with pytest.raises(ValidationError, match="End date cannot be before start date"):
            MedicationRecord(
                pet_id="p1",
                name="Antibiotic",
                dosage="1 tablet",
                frequency="twice daily",
                start_date=date(2025, 2, 10),
                end_date=date(2025, 2, 1),
            )

    def test_vaccination_expiration_order(self):
        """Test that expiration cannot be before the vaccination."""
        with pytest.raises(ValidationError):
            VaccinationRecord(
                pet_id="p1",
                name="Rabies",
                date=date(2025, 2, 10),
                expiration_date=date(2024, 2, 10),
            )

    def test_decode_row_uses_collection_model(self):
        """Test decode_row picks the model from the collection name."""
        record = decode_row(CollectionName.HEALTH_RECORDS, {
            "id": "h1",
            "owner_id": "u1",
            "record_type": "vaccination",
            "pet_id": "p1",
            "name": "Rabies",
            "date": "2025-02-10",
        })
        assert isinstance(record, VaccinationRecord)
        assert record.id == "h1"


class TestChangeEvent:
    """Tests for change notifications."""

    def test_inserted_takes_id_from_value(self):
        """Test the entity id comes from the value."""
        pet = Pet(id="p1", name="Rex")
        event = ChangeEvent.inserted(pet)
        assert event.kind == ChangeKind.INSERTED
        assert event.entity_id == "p1"

    def test_deleted_carries_only_id(self):
        """Test that a delete needs no value."""
        event = ChangeEvent.deleted("p1")
        assert event.value is None

    def test_update_requires_value(self):
        """Test that an update without a value is rejected."""
        with pytest.raises(ValidationError):
            ChangeEvent(kind=ChangeKind.UPDATED, entity_id="p1")

    def test_requires_id(self):
        """Test that an entity without an id can't be a change."""
        with pytest.raises(ValidationError):
            ChangeEvent.inserted(Pet(name="Rex"))


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.SESSION_OPENED,
            description="Subscribed to events",
        )
        assert event.event_type == AuditEventType.SESSION_OPENED
        assert event.severity == AuditSeverity.INFO

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEvent(
            event_type=AuditEventType.ENTITY_CREATED,
            collection="pets",
            description="pets entity created",
            details={"name": "Rex"},
        )
        log_dict = event.to_log_dict()
        assert "event_id" in log_dict
        assert log_dict["event_type"] == "entity_created"
        assert log_dict["collection"] == "pets"
        assert log_dict["details"]["name"] == "Rex"

    def test_audit_event_to_sheets_row(self):
        """Test conversion to sheets row."""
        event = AuditEvent(
            event_type=AuditEventType.ENTITY_DELETED,
            description="events entity deleted",
            is_user_action=True,
        )
        row = event.to_sheets_row()
        assert len(row) == 12  # Expected number of columns
        assert row[2] == "entity_deleted"  # event_type
        assert row[11] == "True"  # is_user_action

    def test_open_failed_stage(self):
        """Test that the failing stage picks the event type."""
        fetch = AuditEventBuilder.open_failed("events", "u1", "fetch", "timeout")
        feed = AuditEventBuilder.open_failed("events", "u1", "feed", "refused")
        assert fetch.event_type == AuditEventType.FETCH_FAILED
        assert feed.event_type == AuditEventType.FEED_OPEN_FAILED
        assert fetch.severity == AuditSeverity.ERROR

    def test_event_series_created(self):
        """Test AuditEventBuilder.event_series_created."""
        correlation_id = uuid4()

        event = AuditEventBuilder.event_series_created(
            owner_id="u1",
            repeat_mode="Weekly",
            requested=3,
            created=2,
            correlation_id=correlation_id,
        )

        assert event.event_type == AuditEventType.EVENT_SERIES_CREATED
        assert event.correlation_id == correlation_id
        assert event.details["created"] == 2
        assert event.is_user_action is True


class TestValidationResult:
    """Tests for ValidationResult model."""

    def test_validation_result_has_errors(self):
        """Test has_errors property."""
        result = ValidationResult(
            schema_valid=False,
            semantic_valid=False,
            is_valid=False,
            issues=[
                ValidationIssue(
                    field="title",
                    issue_type="missing",
                    message="Title is required",
                    severity="error",
                ),
            ],
        )
        assert result.has_errors is True
        assert result.error_count == 1
        assert result.error_messages == ["Title is required"]

    def test_validation_result_warnings_only(self):
        """Test that warnings don't count as errors."""
        result = ValidationResult(
            schema_valid=True,
            semantic_valid=True,
            is_valid=True,
            issues=[
                ValidationIssue(
                    field="occurrence_count",
                    issue_type="defaulted",
                    message="Count defaulted",
                    severity="warning",
                ),
            ],
        )
        assert result.has_errors is False
        assert result.error_count == 0

    def test_severity_restricted(self):
        """Test that severity must be a known level."""
        with pytest.raises(ValidationError):
            ValidationIssue(field="x", issue_type="y", message="z", severity="fatal")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
