"""
Storage Services Package

Provides the abstract collection-service interface and its backends:
an in-memory store and Google Sheets (with a polling change feed).
"""

from pawplanner.services.storage.interface import (
    AuditStorageInterface,
    CollectionServiceInterface,
    ConnectionError,
    FeedOpenError,
    FetchError,
    NotFoundError,
    Row,
    StorageError,
    SubscriptionHandle,
    collection_key,
)
from pawplanner.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryCollectionService,
)
from pawplanner.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsCollectionService,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "CollectionServiceInterface",
    "Row",
    "SubscriptionHandle",
    "collection_key",
    # Exceptions
    "ConnectionError",
    "FeedOpenError",
    "FetchError",
    "NotFoundError",
    "StorageError",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryCollectionService",
    # Google Sheets implementation
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsCollectionService",
]
