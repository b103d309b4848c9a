"""Services package."""

from pawplanner.services.storage import (
    AuditStorageInterface,
    CollectionServiceInterface,
    ConnectionError,
    FeedOpenError,
    FetchError,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsCollectionService,
    InMemoryAuditStorage,
    InMemoryCollectionService,
    NotFoundError,
    StorageError,
    SubscriptionHandle,
)

__all__ = [
    "AuditStorageInterface",
    "CollectionServiceInterface",
    "ConnectionError",
    "FeedOpenError",
    "FetchError",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsCollectionService",
    "InMemoryAuditStorage",
    "InMemoryCollectionService",
    "NotFoundError",
    "StorageError",
    "SubscriptionHandle",
]
