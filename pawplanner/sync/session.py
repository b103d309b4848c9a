"""
Subscription Session

Owns the change-feed connection for one collection on one screen visit.

State machine:

    CLOSED --open()--> OPENING --fetch applied + feed acknowledged--> OPEN
    OPEN/OPENING --close()--> CLOSED
    OPEN/OPENING --open()--> (close previous feed) --> OPENING

CRITICAL: open() always tears down the previous feed before opening a
new one. Two live feeds for the same collection and owner would deliver
every change twice and leak a connection.

DESIGN DECISION: Each open()/close() bumps a generation counter. Any
fetch result, feed acknowledgement or feed callback belonging to an
older generation is discarded, so a screen that unmounts mid-fetch
never has a stale result written into its (discarded) snapshot.

Feed events received while OPENING are applied immediately and replayed
once the fetch result has been applied, so an event that raced ahead of
the fetch isn't wiped out when the fetch replaces the snapshot.
"""

from enum import Enum
from typing import Any, Awaitable, Callable, Optional

import structlog
from pydantic import ValidationError

from pawplanner.audit import AuditLogger
from pawplanner.models.changes import ChangeEvent
from pawplanner.models.collections import CollectionName, decode_row
from pawplanner.services.storage import (
    CollectionServiceInterface,
    Row,
    StorageError,
    SubscriptionHandle,
)
from pawplanner.sync.store import CollectionStore

logger = structlog.get_logger(__name__)

OwnerProvider = Callable[[], Awaitable[Optional[str]]]


class SessionState(str, Enum):
    CLOSED = "closed"
    OPENING = "opening"
    OPEN = "open"


class SessionNotOpenError(StorageError):
    """A mutation needed an owner but the session never resolved one."""
    pass


class SubscriptionSession:
    """
    One feed + fetch lifecycle for a (collection, owner) pair.

    Usage:
        async with SubscriptionSession(CollectionName.EVENTS, service, owner):
            ...  # screen mounted
    """

    def __init__(
        self,
        collection: CollectionName,
        service: CollectionServiceInterface,
        owner_provider: OwnerProvider,
        store: Optional[CollectionStore] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self.collection = CollectionName(collection)
        self.store = store if store is not None else CollectionStore(self.collection.value)
        self._service = service
        self._owner_provider = owner_provider
        self._audit_logger = audit_logger

        self._state = SessionState.CLOSED
        self._generation = 0
        self._handle: Optional[SubscriptionHandle] = None
        self._owner_id: Optional[str] = None
        self._pending: list[ChangeEvent] = []
        self.last_error: Optional[Exception] = None

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def owner_id(self) -> Optional[str]:
        """Owner resolved by the current open(), if any."""
        return self._owner_id

    @property
    def is_open(self) -> bool:
        return self._state == SessionState.OPEN

    def require_owner(self) -> str:
        if not self._owner_id:
            raise SessionNotOpenError(
                f"No owner resolved for {self.collection.value}; open the session first"
            )
        return self._owner_id

    async def __aenter__(self) -> "SubscriptionSession":
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def open(self) -> SessionState:
        """
        Open (or re-open) the session: resolve owner, open feed, fetch.

        Never raises for backend failures. On fetch or feed failure the
        session stays OPENING with last_error set and no feed until the
        next open().
        Without an owner the session fails closed with an empty snapshot.
        """
        if self._state != SessionState.CLOSED or self._handle is not None:
            await self._teardown()

        self._generation += 1
        generation = self._generation
        self._pending = []
        self.last_error = None
        self._state = SessionState.OPENING

        owner_id = await self._resolve_owner()
        if generation != self._generation:
            return self._state
        if not owner_id:
            await self._fail_closed("no owner available")
            return self._state
        self._owner_id = owner_id

        # Feed first, so nothing written during the fetch is missed
        try:
            handle = await self._service.subscribe(
                self.collection.value,
                owner_id,
                on_insert=lambda row: self._on_row(generation, row, updated=False),
                on_update=lambda row: self._on_row(generation, row, updated=True),
                on_delete=lambda entity_id: self._on_delete(generation, entity_id),
            )
        except StorageError as e:
            await self._open_failed(generation, owner_id, "feed", e)
            return self._state

        if generation != self._generation:
            # Closed or re-opened while the feed was being acknowledged
            await self._release(handle)
            return self._state
        self._handle = handle

        try:
            rows = await self._service.fetch_all(self.collection.value, owner_id)
        except StorageError as e:
            await self._open_failed(generation, owner_id, "fetch", e)
            return self._state

        if generation != self._generation:
            logger.debug("stale_fetch_discarded", collection=self.collection.value)
            return self._state

        self.store.apply_fetch(self._decode_rows(rows))
        pending, self._pending = self._pending, []
        for event in pending:
            self.store.apply_change(event)

        self._state = SessionState.OPEN
        logger.info(
            "session_opened",
            collection=self.collection.value,
            owner_id=owner_id,
            items=len(self.store),
            replayed=len(pending),
        )
        if self._audit_logger:
            await self._audit_logger.log_session_opened(
                self.collection.value, owner_id, len(self.store)
            )
        return self._state

    async def refresh(self) -> SessionState:
        """Manual refresh: close the current feed and open a new one."""
        return await self.open()

    async def close(self) -> None:
        """
        Tear down the feed and discard the snapshot (screen unmount).
        """
        owner_id = self._owner_id
        was_active = self._state != SessionState.CLOSED or self._handle is not None

        await self._teardown()
        self._owner_id = None
        self.store.clear()

        if was_active:
            logger.info("session_closed", collection=self.collection.value, owner_id=owner_id)
            if self._audit_logger:
                await self._audit_logger.log_session_closed(self.collection.value, owner_id)

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    async def _teardown(self) -> None:
        """Invalidate in-flight work and close the feed, keeping the snapshot."""
        self._generation += 1
        self._state = SessionState.CLOSED
        self._pending = []

        handle, self._handle = self._handle, None
        if handle is not None:
            await self._release(handle)

    async def _release(self, handle: SubscriptionHandle) -> None:
        try:
            await self._service.unsubscribe(handle)
        except StorageError as e:
            # The handle is dropped either way; nothing will be applied from it
            logger.warning(
                "unsubscribe_failed",
                collection=self.collection.value,
                error=str(e),
            )
            if self._audit_logger:
                await self._audit_logger.log_error(
                    error_type="unsubscribe_failed",
                    error_message=str(e),
                    details={"collection": self.collection.value, "owner_id": handle.owner_id},
                )

    async def _resolve_owner(self) -> Optional[str]:
        try:
            return await self._owner_provider()
        except Exception as e:
            logger.warning(
                "owner_lookup_failed",
                collection=self.collection.value,
                error=str(e),
            )
            return None

    async def _fail_closed(self, reason: str) -> None:
        self._state = SessionState.CLOSED
        self._owner_id = None
        self.store.clear()
        logger.warning("session_failed_closed", collection=self.collection.value, reason=reason)
        if self._audit_logger:
            await self._audit_logger.log_session_failed_closed(self.collection.value, reason)

    async def _open_failed(
        self,
        generation: int,
        owner_id: str,
        stage: str,
        error: Exception,
    ) -> None:
        if generation != self._generation:
            return
        self.last_error = error

        # A failed open keeps no feed; refresh() subscribes again
        self._pending = []
        handle, self._handle = self._handle, None
        if handle is not None:
            await self._release(handle)

        logger.error(
            "session_open_failed",
            collection=self.collection.value,
            owner_id=owner_id,
            stage=stage,
            error=str(error),
        )
        if self._audit_logger:
            await self._audit_logger.log_open_failed(
                self.collection.value, owner_id, stage, str(error)
            )

    def _decode(self, row: Row) -> Optional[Any]:
        try:
            return decode_row(self.collection, row)
        except ValidationError as e:
            logger.warning(
                "malformed_row_skipped",
                collection=self.collection.value,
                row_id=row.get("id"),
                error=str(e),
            )
            return None

    def _decode_rows(self, rows: list[Row]) -> list[Any]:
        decoded = (self._decode(row) for row in rows)
        return [item for item in decoded if item is not None and item.id]

    def _on_row(self, generation: int, row: Row, updated: bool) -> None:
        if generation != self._generation:
            return
        item = self._decode(row)
        if item is None or not item.id:
            return
        event = ChangeEvent.updated(item) if updated else ChangeEvent.inserted(item)
        self._deliver(event)

    def _on_delete(self, generation: int, entity_id: str) -> None:
        if generation != self._generation:
            return
        self._deliver(ChangeEvent.deleted(entity_id))

    def _deliver(self, event: ChangeEvent) -> None:
        if self._state == SessionState.OPENING and self._handle is not None:
            self._pending.append(event)
        self.store.apply_change(event)
