"""Notification sink package."""

from subscription_manager.services.notifications.interface import (
    NotificationError,
    NotificationPermission,
    NotificationRejectedError,
    NotificationSinkInterface,
)
from subscription_manager.services.notifications.in_process import (
    InProcessNotificationCenter,
    PendingNotification,
)

__all__ = [
    "InProcessNotificationCenter",
    "NotificationError",
    "NotificationPermission",
    "NotificationRejectedError",
    "NotificationSinkInterface",
    "PendingNotification",
]
