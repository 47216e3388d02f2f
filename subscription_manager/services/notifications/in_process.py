"""
In-Process Notification Center

Holds pending notification requests in memory, keyed the same way the
platform notification center keys them. Used for headless runs and as
the test double for the scheduler.
"""

from datetime import datetime
from typing import Optional

import structlog
from pydantic import BaseModel, ConfigDict

from subscription_manager.services.notifications.interface import (
    NotificationPermission,
    NotificationSinkInterface,
)


logger = structlog.get_logger(__name__)


class PendingNotification(BaseModel):
    """A notification request waiting to be delivered."""
    model_config = ConfigDict(frozen=True)

    key: str
    fire_at: datetime
    title: str
    body: str


class InProcessNotificationCenter(NotificationSinkInterface):
    """
    Notification sink that keeps pending requests in a dict.

    Scheduling under an existing key replaces the pending request,
    matching the platform behaviour.
    """

    def __init__(
        self,
        permission: NotificationPermission = NotificationPermission.NOT_DETERMINED,
        grant_on_request: bool = True,
    ):
        """
        Args:
            permission: Initial permission status
            grant_on_request: Outcome of request_permission() when the
                              status is still undetermined
        """
        self._permission = permission
        self._grant_on_request = grant_on_request
        self._pending: dict[str, PendingNotification] = {}

    async def permission_status(self) -> NotificationPermission:
        return self._permission

    async def request_permission(self) -> NotificationPermission:
        # The platform only asks once; later requests return the stored answer
        if self._permission == NotificationPermission.NOT_DETERMINED:
            self._permission = (
                NotificationPermission.AUTHORIZED
                if self._grant_on_request
                else NotificationPermission.DENIED
            )
            logger.info("notification_permission_answered", status=self._permission.value)
        return self._permission

    async def schedule(
        self,
        key: str,
        fire_at: datetime,
        title: str,
        body: str,
    ) -> None:
        self._pending[key] = PendingNotification(
            key=key,
            fire_at=fire_at,
            title=title,
            body=body,
        )

    async def cancel(self, keys: list[str]) -> None:
        for key in keys:
            self._pending.pop(key, None)

    def pending(self) -> list[PendingNotification]:
        """Pending requests, soonest first."""
        return sorted(self._pending.values(), key=lambda n: n.fire_at)

    def get(self, key: str) -> Optional[PendingNotification]:
        return self._pending.get(key)
