"""
Audit Logger

DESIGN DECISION: Every session transition and every mutation outcome
is logged. This provides:
1. A trace of what reached the backend and what didn't
2. Debugging capability for feed and fetch problems
3. A record of the partial failures the user was told about

The audit logger:
- Is async so it can persist without blocking callers
- Gracefully handles failures (doesn't crash the app if logging fails)
- Supports correlation IDs to trace related events
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from pawplanner.models.audit import AuditEvent, AuditEventBuilder
from pawplanner.services.storage import AuditStorageInterface


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
    2. Audit storage (for persistence), when configured
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
        self._logger = structlog.get_logger("pawplanner.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value == "error":
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

    async def log_session_opened(
        self,
        collection: str,
        owner_id: str,
        item_count: int,
    ) -> None:
        """Log a session reaching Open."""
        await self.log(AuditEventBuilder.session_opened(collection, owner_id, item_count))

    async def log_session_closed(
        self,
        collection: str,
        owner_id: Optional[str],
    ) -> None:
        """Log a session teardown."""
        await self.log(AuditEventBuilder.session_closed(collection, owner_id))

    async def log_session_failed_closed(
        self,
        collection: str,
        reason: str,
    ) -> None:
        """Log a session that refused to open for lack of an owner."""
        await self.log(AuditEventBuilder.session_failed_closed(collection, reason))

    async def log_open_failed(
        self,
        collection: str,
        owner_id: str,
        stage: str,
        error_message: str,
    ) -> None:
        """Log a fetch or feed-open failure."""
        await self.log(
            AuditEventBuilder.open_failed(collection, owner_id, stage, error_message)
        )

    async def log_validation_failed(
        self,
        collection: str,
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log rejected form input."""
        await self.log(
            AuditEventBuilder.validation_failed(collection, issues, correlation_id)
        )

    async def log_entity_changed(
        self,
        collection: str,
        action: str,
        entity_id: str,
        owner_id: Optional[str],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a backend-accepted create, update or delete."""
        await self.log(
            AuditEventBuilder.entity_changed(
                collection, action, entity_id, owner_id, correlation_id
            )
        )

    async def log_event_series_created(
        self,
        owner_id: str,
        repeat_mode: str,
        requested: int,
        created: int,
        correlation_id: UUID,
    ) -> None:
        """Log the outcome of expanding and saving an event definition."""
        await self.log(
            AuditEventBuilder.event_series_created(
                owner_id, repeat_mode, requested, created, correlation_id
            )
        )

    async def log_batch_partial_failure(
        self,
        owner_id: str,
        failed_dates: list[str],
        errors: list[str],
        correlation_id: UUID,
    ) -> None:
        """Log occurrences that could not be saved."""
        await self.log(
            AuditEventBuilder.batch_partial_failure(
                owner_id, failed_dates, errors, correlation_id
            )
        )

    async def log_mutation_failed(
        self,
        collection: str,
        action: str,
        entity_id: str,
        error_message: str,
        owner_id: Optional[str] = None,
    ) -> None:
        """Log a backend-rejected update or delete."""
        await self.log(
            AuditEventBuilder.mutation_failed(
                collection, action, entity_id, error_message, owner_id
            )
        )

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        event = AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        )
        await self.log(event)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., creating an
    event series). Pass it through all subsequent operations.
    """
    return uuid4()
