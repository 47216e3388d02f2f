"""
Storage Services Package

Provides abstract interfaces and local implementations for the stores
the core reads from and writes to.
"""

from subscription_manager.services.storage.interface import (
    AuditStorageInterface,
    KeyValueStoreInterface,
    NotFoundError,
    StorageError,
    SubscriptionStoreInterface,
)
from subscription_manager.services.storage.local import (
    FileKeyValueStore,
    InMemoryKeyValueStore,
    InMemorySubscriptionStore,
    JsonLinesAuditStorage,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "KeyValueStoreInterface",
    "SubscriptionStoreInterface",
    # Exceptions
    "NotFoundError",
    "StorageError",
    # Local implementations
    "FileKeyValueStore",
    "InMemoryKeyValueStore",
    "InMemorySubscriptionStore",
    "JsonLinesAuditStorage",
]
