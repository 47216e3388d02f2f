"""
Abstract Storage Interface

DESIGN DECISION: We define abstract interfaces for every store the core
touches. This allows us to:
1. Keep the core independent of where subscriptions actually live
2. Use in-memory storage for testing
3. Swap the file-backed key-value store for the platform's preferences store

The interfaces are intentionally small. The core never writes
subscriptions; it only reads them.
"""

from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from subscription_manager.models.audit import AuditEvent
from subscription_manager.models.subscription import Subscription


class KeyValueStoreInterface(ABC):
    """
    Durable key-value storage for opaque blobs.

    Used by the exchange rate cache so fetched rates survive restarts.
    """

    @abstractmethod
    async def get(self, key: str) -> Optional[bytes]:
        """
        Read the blob stored under a key.

        Returns:
            The stored bytes, or None if nothing is stored
        """
        pass

    @abstractmethod
    async def set(self, key: str, value: bytes) -> None:
        """
        Store a blob under a key, replacing any previous value.

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """
        Remove a key.

        Returns:
            True if something was deleted
        """
        pass


class SubscriptionStoreInterface(ABC):
    """
    Read-only view of the persistence layer.

    The core never writes subscriptions back.
    """

    @abstractmethod
    async def list_subscriptions(
        self,
        active_only: bool = True,
    ) -> list[Subscription]:
        """
        List subscriptions.

        Args:
            active_only: Only return subscriptions with is_active set

        Returns:
            Subscriptions ordered by service name
        """
        pass

    @abstractmethod
    async def get_subscription(self, subscription_id: UUID) -> Optional[Subscription]:
        """
        Retrieve a subscription by its ID.

        Returns:
            The subscription if found, None otherwise
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
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a correlation ID (e.g., one notification refresh).

        Returns:
            List of related events in chronological order
        """
        pass

    @abstractmethod
    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a specific entity.

        Returns:
            List of events in chronological order
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass
