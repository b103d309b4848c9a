"""
Abstract Storage Interface

DESIGN DECISION: The sync engine talks to "a collection store that
supports point fetch, point mutation and a subscribed change feed" and
nothing more. This allows us to:
1. Swap Google Sheets for a push-capable database later
2. Use in-memory storage for testing
3. Keep the merge and session logic decoupled from the backend

Rows cross this boundary as plain dicts. Decoding them into models is
the caller's job (see pawplanner.models.collections).
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable
from uuid import uuid4

from pawplanner.models.audit import AuditEvent


Row = dict[str, Any]
InsertCallback = Callable[[Row], None]
UpdateCallback = Callable[[Row], None]
DeleteCallback = Callable[[str], None]


def collection_key(collection: Any) -> str:
    """Plain collection name for a CollectionName member or a string."""
    return str(getattr(collection, "value", collection))


@dataclass(frozen=True)
class SubscriptionHandle:
    """Opaque token for one open change feed."""
    collection: str
    owner_id: str
    handle_id: str = field(default_factory=lambda: uuid4().hex)


class CollectionServiceInterface(ABC):
    """
    Abstract interface for the backend collection service.

    Any backend (Google Sheets, a realtime database, etc.)
    must implement these methods.
    """

    @abstractmethod
    async def fetch_all(self, collection: str, owner_id: str) -> list[Row]:
        """
        Fetch every row of a collection owned by owner_id.

        Eventually consistent with prior writes by the same owner.

        Raises:
            FetchError: If the fetch fails
        """
        pass

    @abstractmethod
    async def subscribe(
        self,
        collection: str,
        owner_id: str,
        on_insert: InsertCallback,
        on_update: UpdateCallback,
        on_delete: DeleteCallback,
    ) -> SubscriptionHandle:
        """
        Open a change feed for one owner's rows in a collection.

        Returns once the backend has acknowledged the feed.

        Raises:
            FeedOpenError: If the feed cannot be opened
        """
        pass

    @abstractmethod
    async def unsubscribe(self, handle: SubscriptionHandle) -> None:
        """
        Tear down a change feed. Unknown handles are ignored.
        """
        pass

    @abstractmethod
    async def create(self, collection: str, data: Row) -> Row:
        """
        Create a row.

        Returns:
            The stored row including its backend-assigned "id"

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def update(self, collection: str, entity_id: str, patch: Row) -> bool:
        """
        Apply a partial update to a row.

        Raises:
            NotFoundError: If the row doesn't exist
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def delete(self, collection: str, entity_id: str) -> bool:
        """
        Delete a row.

        Returns:
            True if a row was deleted, False if it didn't exist
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events (newest first).
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass


class FetchError(StorageError):
    """Initial bulk fetch of a collection failed."""
    pass


class FeedOpenError(StorageError):
    """Backend did not acknowledge a change feed."""
    pass
