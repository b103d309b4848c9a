"""
Audit Models for Paw Planner

Every significant sync and mutation step is logged for audit purposes.
This provides:
1. Traceability of what reached the backend and what didn't
2. Debugging information when a feed or fetch misbehaves
3. A record of partial batch failures the user was shown

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Subscription sessions
    SESSION_OPENED = "session_opened"
    SESSION_CLOSED = "session_closed"
    SESSION_FAILED_CLOSED = "session_failed_closed"
    FETCH_FAILED = "fetch_failed"
    FEED_OPEN_FAILED = "feed_open_failed"

    # Mutations
    VALIDATION_FAILED = "validation_failed"
    ENTITY_CREATED = "entity_created"
    ENTITY_UPDATED = "entity_updated"
    ENTITY_DELETED = "entity_deleted"
    EVENT_SERIES_CREATED = "event_series_created"
    BATCH_PARTIAL_FAILURE = "batch_partial_failure"
    MUTATION_FAILED = "mutation_failed"

    # System events
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - which collection and entity is this about?
    collection: Optional[str] = Field(
        default=None,
        description="Collection name (e.g., 'events', 'pets')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="Backend id of the entity this event relates to"
    )
    owner_id: Optional[str] = Field(
        default=None,
        description="Owner the session or mutation ran for"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one event series creation)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "collection": self.collection,
            "entity_id": self.entity_id,
            "owner_id": self.owner_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, collection, entity_id,
         owner_id, correlation_id, description, details_json, error_message,
         is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.collection or "",
            self.entity_id or "",
            self.owner_id or "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details, default=str) if self.details else "",
            self.error_message or "",
            str(self.is_user_action),
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.session_opened("events", owner_id, 12)
        event = AuditEventBuilder.mutation_failed("events", "update", event_id, ...)
    """

    @staticmethod
    def session_opened(
        collection: str,
        owner_id: str,
        item_count: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SESSION_OPENED,
            collection=collection,
            owner_id=owner_id,
            description=f"Subscribed to {collection} with {item_count} items",
            details={"item_count": item_count},
        )

    @staticmethod
    def session_closed(
        collection: str,
        owner_id: Optional[str],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SESSION_CLOSED,
            collection=collection,
            owner_id=owner_id,
            description=f"Closed {collection} subscription",
        )

    @staticmethod
    def session_failed_closed(
        collection: str,
        reason: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SESSION_FAILED_CLOSED,
            severity=AuditSeverity.WARNING,
            collection=collection,
            description=f"No owner available for {collection}; session not opened",
            details={"reason": reason},
        )

    @staticmethod
    def open_failed(
        collection: str,
        owner_id: str,
        stage: str,
        error_message: str,
    ) -> AuditEvent:
        event_type = (
            AuditEventType.FETCH_FAILED
            if stage == "fetch"
            else AuditEventType.FEED_OPEN_FAILED
        )
        return AuditEvent(
            event_type=event_type,
            severity=AuditSeverity.ERROR,
            collection=collection,
            owner_id=owner_id,
            description=f"Could not open {collection}: {stage} failed",
            error_message=error_message,
            details={"stage": stage},
        )

    @staticmethod
    def validation_failed(
        collection: str,
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            collection=collection,
            correlation_id=correlation_id,
            description=f"Validation failed with {len(issues)} issues",
            details={"issues": issues},
            is_user_action=True,
        )

    @staticmethod
    def entity_changed(
        collection: str,
        action: str,
        entity_id: str,
        owner_id: Optional[str],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        event_type = {
            "create": AuditEventType.ENTITY_CREATED,
            "update": AuditEventType.ENTITY_UPDATED,
            "delete": AuditEventType.ENTITY_DELETED,
        }[action]
        return AuditEvent(
            event_type=event_type,
            collection=collection,
            entity_id=entity_id,
            owner_id=owner_id,
            correlation_id=correlation_id,
            description=f"{collection} entity {action}d",
            is_user_action=True,
        )

    @staticmethod
    def event_series_created(
        owner_id: str,
        repeat_mode: str,
        requested: int,
        created: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EVENT_SERIES_CREATED,
            collection="events",
            owner_id=owner_id,
            correlation_id=correlation_id,
            description=f"Created {created} of {requested} occurrences ({repeat_mode})",
            details={
                "repeat_mode": repeat_mode,
                "requested": requested,
                "created": created,
            },
            is_user_action=True,
        )

    @staticmethod
    def batch_partial_failure(
        owner_id: str,
        failed_dates: list[str],
        errors: list[str],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BATCH_PARTIAL_FAILURE,
            severity=AuditSeverity.ERROR,
            collection="events",
            owner_id=owner_id,
            correlation_id=correlation_id,
            description=f"{len(failed_dates)} occurrences could not be saved",
            error_message="; ".join(errors),
            details={"failed_dates": failed_dates},
        )

    @staticmethod
    def mutation_failed(
        collection: str,
        action: str,
        entity_id: str,
        error_message: str,
        owner_id: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MUTATION_FAILED,
            severity=AuditSeverity.ERROR,
            collection=collection,
            entity_id=entity_id,
            owner_id=owner_id,
            description=f"Backend rejected {action} on {collection}",
            error_message=error_message,
            details={"action": action},
            is_user_action=True,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
