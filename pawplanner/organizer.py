"""
Organizer Controllers for Paw Planner

This module ties together all the components and defines the flows
the screens use:
1. Mount / unmount / refresh a collection (session lifecycle)
2. Add, edit and remove entities (optimistic local mutations)
3. Create an event from the form (validate → expand → save each occurrence)

DESIGN DECISION: Mutations are optimistic. An edit or delete is applied
to the local store first and then sent to the backend. If the backend
rejects it, the local change is NOT reverted; the next feed event or
fetch brings the store back in line. The caller is told via
MutationError so the screen can show it.

Creating an event writes one row per occurrence, each independently.
A failure part way through leaves the earlier occurrences saved and
visible; the caller gets a BatchCreateResult listing what failed.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Generic, Optional, TypeVar, Union
from uuid import UUID

import structlog

from pawplanner.audit import AuditLogger, create_correlation_id
from pawplanner.calendar import (
    days_with_occurrences,
    expand,
    group_by_day,
    is_active_on,
    week_strip,
)
from pawplanner.config import get_settings
from pawplanner.models.changes import ChangeKind
from pawplanner.models.collections import CollectionName, decode_row
from pawplanner.models.entities import Expense, ExpenseCategory
from pawplanner.models.event import EventPatch, EventRecord, EventSkeleton
from pawplanner.models.validation import ValidationResult
from pawplanner.services.storage import (
    CollectionServiceInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsCollectionService,
    InMemoryCollectionService,
    Row,
    StorageError,
)
from pawplanner.sync import (
    CollectionStore,
    OwnerProvider,
    SessionState,
    SubscriptionSession,
)
from pawplanner.validation import EventValidationError, EventValidator

logger = structlog.get_logger(__name__)

T = TypeVar("T")

# Fields the backend owns; an edit never sends them
_PROTECTED_FIELDS = ("id", "owner_id")


class MutationError(Exception):
    """The backend rejected a create, update or delete."""

    def __init__(
        self,
        collection: str,
        action: str,
        entity_id: Optional[str],
        cause: Exception,
    ):
        self.collection = collection
        self.action = action
        self.entity_id = entity_id
        self.cause = cause
        super().__init__(f"Could not {action} {collection} entity {entity_id or ''}: {cause}")


class PartialBatchFailure(Exception):
    """Some occurrences of an event series could not be saved."""

    def __init__(self, result: "BatchCreateResult"):
        self.result = result
        dates = ", ".join(record.date.isoformat() for record, _ in result.failures)
        super().__init__(
            f"{len(result.failures)} of {result.requested} occurrences failed: {dates}"
        )


@dataclass
class BatchCreateResult:
    """Outcome of saving every record of an expanded event."""

    created: list[EventRecord] = field(default_factory=list)
    failures: list[tuple[EventRecord, Exception]] = field(default_factory=list)
    validation: Optional[ValidationResult] = None
    correlation_id: Optional[UUID] = None

    @property
    def requested(self) -> int:
        return len(self.created) + len(self.failures)

    @property
    def ok(self) -> bool:
        return not self.failures

    @property
    def failed_dates(self) -> list[date]:
        return [record.date for record, _ in self.failures]

    def raise_for_failures(self) -> "BatchCreateResult":
        if self.failures:
            raise PartialBatchFailure(self)
        return self


class CollectionController(Generic[T]):
    """
    Screen-facing handle for one collection.

    Owns a SubscriptionSession (and through it the store) and routes
    local mutations through the optimistic path.
    """

    def __init__(
        self,
        collection: CollectionName,
        service: CollectionServiceInterface,
        owner_provider: OwnerProvider,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self.collection = CollectionName(collection)
        self._service = service
        self._audit_logger = audit_logger
        self.session = SubscriptionSession(
            self.collection,
            service,
            owner_provider,
            audit_logger=audit_logger,
        )

    @property
    def store(self) -> CollectionStore:
        return self.session.store

    @property
    def snapshot(self):
        return self.store.snapshot

    @property
    def state(self) -> SessionState:
        return self.session.state

    @property
    def last_error(self) -> Optional[Exception]:
        return self.session.last_error

    async def mount(self) -> SessionState:
        """Screen gained focus."""
        return await self.session.open()

    async def unmount(self) -> None:
        """Screen lost focus or was closed."""
        await self.session.close()

    async def refresh(self) -> SessionState:
        """Pull-to-refresh: reopen the feed and refetch."""
        return await self.session.refresh()

    async def add(self, entity: T) -> T:
        """
        Create an entity for the session owner.

        The backend assigns the id, so the local insert happens once the
        write is acknowledged. A feed echo of the same row merges into
        the same entry.

        Raises:
            SessionNotOpenError: No owner was resolved
            MutationError: The backend rejected the write
        """
        owner_id = self.session.require_owner()
        data = entity.model_copy(update={"owner_id": owner_id}).to_storage_dict()

        try:
            row = await self._service.create(self.collection.value, data)
        except StorageError as e:
            await self._mutation_failed("create", None, e)
            raise MutationError(self.collection.value, "create", None, e) from e

        created = self._apply_created(row)
        if self._audit_logger:
            await self._audit_logger.log_entity_changed(
                self.collection.value, "create", created.id, owner_id
            )
        return created

    async def edit(self, entity_id: str, patch: Row) -> Optional[T]:
        """
        Apply a patch locally, then send it to the backend.

        Returns the locally patched entity (None if it wasn't in the
        snapshot).

        Raises:
            pydantic.ValidationError: The patched entity would be invalid
            MutationError: The backend rejected the update
        """
        changes = {k: v for k, v in patch.items() if k not in _PROTECTED_FIELDS}

        patched = None
        current = self.store.get(entity_id)
        if current is not None:
            merged = {**current.model_dump(mode="json"), **changes}
            patched = type(current).model_validate(merged)
            await self._check_patched(patched)
            self.store.apply_local_mutation(ChangeKind.UPDATED, patched)

        try:
            await self._service.update(self.collection.value, entity_id, changes)
        except StorageError as e:
            await self._mutation_failed("update", entity_id, e)
            raise MutationError(self.collection.value, "update", entity_id, e) from e

        if self._audit_logger:
            await self._audit_logger.log_entity_changed(
                self.collection.value, "update", entity_id, self.session.owner_id
            )
        return patched

    async def remove(self, entity_id: str) -> bool:
        """
        Remove locally, then delete on the backend.

        Returns False if the backend had no such entity.

        Raises:
            MutationError: The backend rejected the delete
        """
        self.store.apply_local_mutation(ChangeKind.DELETED, entity_id)

        try:
            deleted = await self._service.delete(self.collection.value, entity_id)
        except StorageError as e:
            await self._mutation_failed("delete", entity_id, e)
            raise MutationError(self.collection.value, "delete", entity_id, e) from e

        if deleted and self._audit_logger:
            await self._audit_logger.log_entity_changed(
                self.collection.value, "delete", entity_id, self.session.owner_id
            )
        return deleted

    async def _check_patched(self, entity: T) -> None:
        """Reject an edit before it is applied. Models validate themselves by default."""

    def _apply_created(self, row: Row) -> Any:
        created = decode_row(self.collection, row)
        self.store.apply_local_mutation(ChangeKind.INSERTED, created)
        return created

    async def _mutation_failed(
        self,
        action: str,
        entity_id: Optional[str],
        error: Exception,
    ) -> None:
        logger.error(
            "mutation_failed",
            collection=self.collection.value,
            action=action,
            entity_id=entity_id,
            error=str(error),
        )
        if self._audit_logger:
            await self._audit_logger.log_mutation_failed(
                self.collection.value,
                action,
                entity_id or "",
                str(error),
                self.session.owner_id,
            )


class EventCalendar(CollectionController[EventRecord]):
    """
    Calendar screen controller.

    Flow for a new event:
    1. Validate → two-stage validation of the form
    2. Expand → one record per occurrence (or one Forever anchor)
    3. Save → one independent write per record
    4. Report → BatchCreateResult with what failed
    """

    def __init__(
        self,
        service: CollectionServiceInterface,
        owner_provider: OwnerProvider,
        audit_logger: Optional[AuditLogger] = None,
        validator: Optional[EventValidator] = None,
        week_starts_on: int = 0,
    ):
        super().__init__(CollectionName.EVENTS, service, owner_provider, audit_logger)
        self._validator = validator or EventValidator()
        self._week_starts_on = week_starts_on

    async def create_event(
        self,
        skeleton: EventSkeleton,
        correlation_id: Optional[UUID] = None,
    ) -> BatchCreateResult:
        """
        Validate, expand and save an event definition.

        Raises:
            EventValidationError: Title or required location missing;
                nothing is written
            SessionNotOpenError: No owner was resolved
        """
        correlation_id = correlation_id or create_correlation_id()

        validation = self._validator.validate(skeleton)
        if not validation.is_valid:
            if self._audit_logger:
                await self._audit_logger.log_validation_failed(
                    self.collection.value,
                    [issue.model_dump() for issue in validation.issues],
                    correlation_id,
                )
            raise EventValidationError(validation)

        owner_id = self.session.require_owner()
        records = expand(skeleton, owner_id=owner_id)
        result = BatchCreateResult(validation=validation, correlation_id=correlation_id)

        for record in records:
            try:
                row = await self._service.create(
                    self.collection.value, record.to_storage_dict()
                )
            except StorageError as e:
                logger.warning(
                    "occurrence_save_failed",
                    date=record.date.isoformat(),
                    error=str(e),
                )
                result.failures.append((record, e))
                continue
            result.created.append(self._apply_created(row))

        logger.info(
            "event_series_created",
            title=skeleton.title,
            repeat_mode=skeleton.repeat_mode.value,
            requested=result.requested,
            created=len(result.created),
        )

        if self._audit_logger:
            await self._audit_logger.log_event_series_created(
                owner_id,
                skeleton.repeat_mode.value,
                result.requested,
                len(result.created),
                correlation_id,
            )
            if result.failures:
                await self._audit_logger.log_batch_partial_failure(
                    owner_id,
                    [d.isoformat() for d in result.failed_dates],
                    [str(e) for _, e in result.failures],
                    correlation_id,
                )

        return result

    async def _check_patched(self, record: EventRecord) -> None:
        validation = self._validator.validate_record(record)
        if not validation.is_valid:
            if self._audit_logger:
                await self._audit_logger.log_validation_failed(
                    self.collection.value,
                    [issue.model_dump() for issue in validation.issues],
                )
            raise EventValidationError(validation)

    async def edit_event(
        self,
        event_id: str,
        patch: Union[EventPatch, dict],
    ) -> Optional[EventRecord]:
        """
        Edit the whitelisted fields of one stored record.

        A Forever record is edited as a whole series; Daily/Weekly
        records are edited one occurrence at a time.

        Raises:
            EventValidationError: The edit would leave an appointment
                without a location; nothing is applied or sent
        """
        if not isinstance(patch, EventPatch):
            patch = EventPatch.model_validate(patch)
        return await self.edit(event_id, patch.changes())

    async def delete_event(self, event_id: str) -> bool:
        return await self.remove(event_id)

    def group_by_day(self, day: date) -> list[EventRecord]:
        """Occurrences on `day`, ordered by time of day."""
        return group_by_day(self.snapshot, day)

    @staticmethod
    def is_active_on(record: EventRecord, day: date) -> bool:
        return is_active_on(record, day)

    def week_strip_markers(self, anchor: date) -> dict[date, bool]:
        """Dot indicator per day of the week containing `anchor`."""
        return days_with_occurrences(
            self.snapshot, week_strip(anchor, self._week_starts_on)
        )


class ExpenseLedger(CollectionController[Expense]):
    """Expenses screen controller."""

    def __init__(
        self,
        service: CollectionServiceInterface,
        owner_provider: OwnerProvider,
        audit_logger: Optional[AuditLogger] = None,
    ):
        super().__init__(CollectionName.EXPENSES, service, owner_provider, audit_logger)

    def total(self) -> Decimal:
        return sum((expense.amount for expense in self.store), Decimal("0"))

    def total_by_category(self) -> dict[ExpenseCategory, Decimal]:
        """Spend per category, omitting categories with no expenses."""
        totals: dict[ExpenseCategory, Decimal] = {}
        for expense in self.store:
            totals[expense.category] = totals.get(expense.category, Decimal("0")) + expense.amount
        return totals


@dataclass
class OrganizerApp:
    """Every controller the screens need, sharing one backend."""

    events: EventCalendar
    pets: CollectionController
    health_records: CollectionController
    shopping_items: CollectionController
    expenses: ExpenseLedger
    service: CollectionServiceInterface
    audit_logger: AuditLogger

    @property
    def controllers(self) -> list[CollectionController]:
        return [
            self.events,
            self.pets,
            self.health_records,
            self.shopping_items,
            self.expenses,
        ]

    async def unmount_all(self) -> None:
        for controller in self.controllers:
            await controller.unmount()


def create_app_components(
    owner_provider: OwnerProvider,
    service: Optional[CollectionServiceInterface] = None,
    use_sheets: Optional[bool] = None,
) -> OrganizerApp:
    """
    Factory function to create all application components.

    Args:
        owner_provider: Async callable returning the signed-in owner id
        service: Collection backend to use. Overrides use_sheets.
        use_sheets: Whether to use Google Sheets. Defaults to the
                    configured storage backend.

    Returns:
        OrganizerApp with one controller per collection
    """
    app_settings = get_settings().app
    if use_sheets is None:
        use_sheets = app_settings.uses_google_sheets

    audit_logger = None

    if service is None and use_sheets:
        try:
            sheets_client = GoogleSheetsClient()
            service = GoogleSheetsCollectionService(sheets_client)
            audit_logger = AuditLogger(GoogleSheetsAuditStorage(sheets_client))
        except Exception as e:
            # Storage not configured - continue without it
            logger.warning("sheets_not_configured", error=str(e))
            service = None

    if service is None:
        service = InMemoryCollectionService()
    if audit_logger is None:
        audit_logger = AuditLogger()  # Local-only logging

    def controller(collection: CollectionName) -> CollectionController:
        return CollectionController(collection, service, owner_provider, audit_logger)

    return OrganizerApp(
        events=EventCalendar(
            service,
            owner_provider,
            audit_logger,
            week_starts_on=app_settings.week_starts_on,
        ),
        pets=controller(CollectionName.PETS),
        health_records=controller(CollectionName.HEALTH_RECORDS),
        shopping_items=controller(CollectionName.SHOPPING_ITEMS),
        expenses=ExpenseLedger(service, owner_provider, audit_logger),
        service=service,
        audit_logger=audit_logger,
    )
