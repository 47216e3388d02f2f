"""Services package."""

from subscription_manager.services.exchange_rates import (
    ExchangeRateError,
    FxRatesAPIClient,
    InvalidRateResponseError,
    RateAPIError,
    RateNetworkError,
    RateSourceInterface,
)
from subscription_manager.services.notifications import (
    InProcessNotificationCenter,
    NotificationError,
    NotificationPermission,
    NotificationRejectedError,
    NotificationSinkInterface,
)
from subscription_manager.services.storage import (
    AuditStorageInterface,
    FileKeyValueStore,
    InMemoryKeyValueStore,
    InMemorySubscriptionStore,
    JsonLinesAuditStorage,
    KeyValueStoreInterface,
    NotFoundError,
    StorageError,
    SubscriptionStoreInterface,
)

__all__ = [
    # Exchange rate source
    "ExchangeRateError",
    "FxRatesAPIClient",
    "InvalidRateResponseError",
    "RateAPIError",
    "RateNetworkError",
    "RateSourceInterface",
    # Notification sink
    "InProcessNotificationCenter",
    "NotificationError",
    "NotificationPermission",
    "NotificationRejectedError",
    "NotificationSinkInterface",
    # Storage
    "AuditStorageInterface",
    "FileKeyValueStore",
    "InMemoryKeyValueStore",
    "InMemorySubscriptionStore",
    "JsonLinesAuditStorage",
    "KeyValueStoreInterface",
    "NotFoundError",
    "StorageError",
    "SubscriptionStoreInterface",
]
