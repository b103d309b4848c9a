"""
Collection Store

The in-memory view of one collection, keyed by entity id.

Three sources write into it:
1. The initial bulk fetch (apply_fetch) - replaces everything
2. The live change feed (apply_change)
3. Optimistic local mutations from the UI (apply_local_mutation)

DESIGN DECISION: Feed events and local mutations share ONE merge rule,
applied per id:
- Inserted: upsert, the later-applied value wins, never a duplicate
- Updated: replace, or insert if the id isn't known yet
- Deleted: remove; deleting an unknown id is a no-op

There are no timestamps or vector clocks. Conflicting values for the
same id are resolved by arrival order. That is enough for the two races
that actually happen (local write then feed echo, and feed echo before
the local write is applied): both end as a single entry.

All operations are synchronous and never block.
"""

from collections.abc import Mapping
from types import MappingProxyType
from typing import Any, Callable, Generic, Iterable, Optional, TypeVar, Union

import structlog

from pawplanner.models.changes import ChangeEvent, ChangeKind

logger = structlog.get_logger(__name__)

T = TypeVar("T")

StoreListener = Callable[["CollectionStore"], None]


class CollectionStore(Generic[T]):
    """
    Ordered id -> entity map with a single merge rule.

    Iteration follows insertion order. Replacing an existing id keeps
    its position.
    """

    def __init__(self, name: str = ""):
        self.name = name
        self._items: dict[str, T] = {}
        self._listeners: list[StoreListener] = []
        self._version = 0

    # -------------------------------------------------------------------------
    # Read side
    # -------------------------------------------------------------------------

    @property
    def snapshot(self) -> Mapping[str, T]:
        """Read-only live view of the collection."""
        return MappingProxyType(self._items)

    @property
    def version(self) -> int:
        """Incremented on every applied fetch, change or clear."""
        return self._version

    def get(self, entity_id: str) -> Optional[T]:
        return self._items.get(entity_id)

    def values(self) -> list[T]:
        return list(self._items.values())

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, entity_id: object) -> bool:
        return entity_id in self._items

    def __iter__(self):
        return iter(self._items.values())

    # -------------------------------------------------------------------------
    # Write side
    # -------------------------------------------------------------------------

    def apply_fetch(self, items: Iterable[T]) -> None:
        """Replace the snapshot wholesale with a fetch result."""
        fresh: dict[str, T] = {}
        for item in items:
            fresh[self._key(item)] = item
        self._items = fresh
        self._changed()

    def apply_change(self, event: ChangeEvent) -> None:
        """Merge one change-feed event."""
        self._merge(event)

    def apply_local_mutation(self, kind: ChangeKind, value_or_id: Union[T, str]) -> None:
        """
        Merge an optimistic local mutation.

        Args:
            kind: INSERTED / UPDATED with the entity, DELETED with its id
        """
        kind = ChangeKind(kind)
        if kind == ChangeKind.DELETED:
            entity_id = value_or_id if isinstance(value_or_id, str) else self._key(value_or_id)
            event = ChangeEvent.deleted(entity_id)
        elif kind == ChangeKind.INSERTED:
            event = ChangeEvent.inserted(value_or_id)
        else:
            event = ChangeEvent.updated(value_or_id)
        self._merge(event)

    def clear(self) -> None:
        """Discard the snapshot (session closed)."""
        self._items = {}
        self._changed()

    def add_listener(self, listener: StoreListener) -> Callable[[], None]:
        """
        Call `listener(store)` after every change.

        Returns a function that removes the listener.
        """
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _merge(self, event: ChangeEvent) -> None:
        if event.kind == ChangeKind.DELETED:
            if self._items.pop(event.entity_id, None) is None:
                logger.debug("delete_ignored", collection=self.name, entity_id=event.entity_id)
                return
        else:
            # INSERTED and UPDATED are both upserts
            self._items[event.entity_id] = event.value
        self._changed()

    @staticmethod
    def _key(item: Any) -> str:
        entity_id = getattr(item, "id", None)
        if not entity_id:
            raise ValueError("Cannot store an entity without an id")
        return entity_id

    def _changed(self) -> None:
        self._version += 1
        for listener in list(self._listeners):
            listener(self)
