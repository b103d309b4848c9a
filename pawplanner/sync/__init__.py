"""Live synchronization: the per-collection store and its subscription session."""

from pawplanner.sync.session import (
    OwnerProvider,
    SessionNotOpenError,
    SessionState,
    SubscriptionSession,
)
from pawplanner.sync.store import CollectionStore, StoreListener

__all__ = [
    "CollectionStore",
    "StoreListener",
    "OwnerProvider",
    "SessionNotOpenError",
    "SessionState",
    "SubscriptionSession",
]
