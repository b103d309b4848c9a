"""
In-Memory Storage Implementation

A complete backend that lives in the process. Used by the tests and for
running the organizer without any external service.

Feed callbacks are dispatched synchronously from inside the write that
caused them, so a create() delivers its insert notification before it
returns. That is the "feed arrives before the local optimistic apply"
ordering, which the collection store must tolerate anyway.
"""

from dataclasses import dataclass
from typing import Callable, Optional
from uuid import uuid4

import structlog

from pawplanner.models.audit import AuditEvent
from pawplanner.services.storage.interface import (
    AuditStorageInterface,
    CollectionServiceInterface,
    DeleteCallback,
    InsertCallback,
    NotFoundError,
    Row,
    StorageError,
    SubscriptionHandle,
    UpdateCallback,
    collection_key,
)

logger = structlog.get_logger(__name__)

# Fields the backend owns; a patch can't change them
_PROTECTED_FIELDS = ("id", "owner_id")


@dataclass
class _Subscription:
    handle: SubscriptionHandle
    on_insert: InsertCallback
    on_update: UpdateCallback
    on_delete: DeleteCallback


class InMemoryCollectionService(CollectionServiceInterface):
    """
    In-memory implementation of the collection service.

    Rows are kept per collection in insertion order.
    """

    def __init__(self, id_factory: Optional[Callable[[], str]] = None):
        self._rows: dict[str, dict[str, Row]] = {}
        self._subscriptions: dict[str, _Subscription] = {}
        self._id_factory = id_factory or (lambda: uuid4().hex)

    def _collection(self, collection: str) -> dict[str, Row]:
        return self._rows.setdefault(collection_key(collection), {})

    def subscription_count(self, collection: str, owner_id: Optional[str] = None) -> int:
        """Number of open feeds for a collection (optionally for one owner)."""
        return sum(
            1
            for sub in self._subscriptions.values()
            if sub.handle.collection == collection_key(collection)
            and (owner_id is None or sub.handle.owner_id == owner_id)
        )

    def seed(self, collection: str, rows: list[Row]) -> None:
        """Load rows directly, without notifying any feed."""
        table = self._collection(collection)
        for row in rows:
            row = dict(row)
            row.setdefault("id", self._id_factory())
            table[row["id"]] = row

    async def fetch_all(self, collection: str, owner_id: str) -> list[Row]:
        """Fetch every row owned by owner_id."""
        return [
            dict(row)
            for row in self._collection(collection).values()
            if row.get("owner_id") == owner_id
        ]

    async def subscribe(
        self,
        collection: str,
        owner_id: str,
        on_insert: InsertCallback,
        on_update: UpdateCallback,
        on_delete: DeleteCallback,
    ) -> SubscriptionHandle:
        """Register feed callbacks."""
        handle = SubscriptionHandle(
            collection=collection_key(collection),
            owner_id=owner_id,
        )
        self._subscriptions[handle.handle_id] = _Subscription(
            handle=handle,
            on_insert=on_insert,
            on_update=on_update,
            on_delete=on_delete,
        )
        logger.debug("feed_subscribed", collection=handle.collection, owner_id=owner_id)
        return handle

    async def unsubscribe(self, handle: SubscriptionHandle) -> None:
        """Drop feed callbacks."""
        if self._subscriptions.pop(handle.handle_id, None) is not None:
            logger.debug(
                "feed_unsubscribed",
                collection=handle.collection,
                owner_id=handle.owner_id,
            )

    async def create(self, collection: str, data: Row) -> Row:
        """Store a new row and notify subscribers."""
        if not data.get("owner_id"):
            raise StorageError("Cannot create a row without an owner_id")

        row = dict(data)
        row["id"] = self._id_factory()
        self._collection(collection)[row["id"]] = row

        self._notify(collection, row["owner_id"], lambda sub: sub.on_insert(dict(row)))
        return dict(row)

    async def update(self, collection: str, entity_id: str, patch: Row) -> bool:
        """Merge a patch into an existing row and notify subscribers."""
        table = self._collection(collection)
        row = table.get(entity_id)
        if row is None:
            raise NotFoundError(f"{collection} entity not found: {entity_id}")

        row.update({k: v for k, v in patch.items() if k not in _PROTECTED_FIELDS})

        self._notify(collection, row["owner_id"], lambda sub: sub.on_update(dict(row)))
        return True

    async def delete(self, collection: str, entity_id: str) -> bool:
        """Remove a row and notify subscribers."""
        row = self._collection(collection).pop(entity_id, None)
        if row is None:
            return False

        self._notify(collection, row.get("owner_id"), lambda sub: sub.on_delete(entity_id))
        return True

    def _notify(
        self,
        collection: str,
        owner_id: Optional[str],
        deliver: Callable[[_Subscription], None],
    ) -> None:
        name = collection_key(collection)
        # Copy: a callback may unsubscribe
        for sub in list(self._subscriptions.values()):
            if sub.handle.collection == name and sub.handle.owner_id == owner_id:
                deliver(sub)


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only audit log kept in a list."""

    def __init__(self):
        self.events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self.events.append(event)
        return True

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        events = sorted(self.events, key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
