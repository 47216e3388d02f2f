"""
Abstract Notification Sink Interface

DESIGN DECISION: The platform notification center is an external
collaborator. The core only decides keys, fire instants and what to
cancel; delivering the notification is the sink's job.

Keys are deterministic ("{subscription_id}_{lead_time_code}"), so adding
a request under an existing key replaces the pending one.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from enum import Enum


class NotificationPermission(str, Enum):
    """Whether the user allowed the app to post notifications."""
    NOT_DETERMINED = "not_determined"
    DENIED = "denied"
    AUTHORIZED = "authorized"


class NotificationSinkInterface(ABC):
    """
    Abstract interface for the platform notification center.
    """

    @abstractmethod
    async def permission_status(self) -> NotificationPermission:
        """Current notification permission."""
        pass

    @abstractmethod
    async def request_permission(self) -> NotificationPermission:
        """
        Ask the user for permission to post notifications.

        Returns:
            The permission status after the request completed
        """
        pass

    @abstractmethod
    async def schedule(
        self,
        key: str,
        fire_at: datetime,
        title: str,
        body: str,
    ) -> None:
        """
        Schedule a one-shot notification.

        Args:
            key: Deterministic request identifier
            fire_at: When the notification should be delivered
            title: Notification title
            body: Notification body

        Raises:
            NotificationRejectedError: If the platform refuses the request
        """
        pass

    @abstractmethod
    async def cancel(self, keys: list[str]) -> None:
        """
        Remove pending notifications. Unknown keys are ignored.
        """
        pass


class NotificationError(Exception):
    """Base exception for notification sink errors."""
    pass


class NotificationRejectedError(NotificationError):
    """The platform refused to schedule a notification."""

    def __init__(self, key: str, message: str):
        self.key = key
        super().__init__(message)
