"""
Audit Logger

DESIGN DECISION: Every side effect of the core is logged.
This provides:
1. Traceability of what reminders were handed to the platform
2. A record of when display figures used a fallback exchange rate
3. The history shown in the debug log view

The audit logger:
- Is async to not block main flow
- Gracefully handles failures (doesn't crash the app if logging fails)
- Supports correlation IDs to trace related events
"""

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

import structlog

from subscription_manager.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditSeverity,
)
from subscription_manager.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. An audit store (for the in-app log view)
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("subscription_manager.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        elif event.severity == AuditSeverity.DEBUG:
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_reminder_scheduled(
        self,
        subscription_id: UUID,
        service_name: str,
        key: str,
        lead_time: str,
        fire_at: datetime,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.reminder_scheduled(
            subscription_id=subscription_id,
            service_name=service_name,
            key=key,
            lead_time=lead_time,
            fire_at=fire_at,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_reminder_skipped(
        self,
        subscription_id: UUID,
        service_name: str,
        lead_time: str,
        candidate_at: datetime,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.reminder_skipped(
            subscription_id=subscription_id,
            service_name=service_name,
            lead_time=lead_time,
            candidate_at=candidate_at,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_reminder_failed(
        self,
        subscription_id: UUID,
        service_name: str,
        key: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.reminder_failed(
            subscription_id=subscription_id,
            service_name=service_name,
            key=key,
            error_message=error_message,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_reminders_cancelled(
        self,
        subscription_id: UUID,
        keys: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.reminders_cancelled(
            subscription_id=subscription_id,
            keys=keys,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_permission_missing(
        self,
        status: str,
        subscription_id: Optional[UUID] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.permission_missing(
            status=status,
            subscription_id=subscription_id,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_notifications_refreshed(
        self,
        subscription_count: int,
        reminder_count: int,
        failure_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.notifications_refreshed(
            subscription_count=subscription_count,
            reminder_count=reminder_count,
            failure_count=failure_count,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_rate_cache_hit(
        self,
        base: str,
        target: str,
        rate: float,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.rate_cache_hit(
            base=base,
            target=target,
            rate=rate,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_rate_fetched(
        self,
        base: str,
        target: str,
        rate: float,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.rate_fetched(
            base=base,
            target=target,
            rate=rate,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_rate_fallback_used(
        self,
        base: str,
        target: str,
        rate: float,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.rate_fallback_used(
            base=base,
            target=target,
            rate=rate,
            error_message=error_message,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_rate_unavailable(
        self,
        base: str,
        target: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.rate_unavailable(
            base=base,
            target=target,
            error_message=error_message,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_rate_cache_corrupt(
        self,
        cache_key: str,
        error_message: str,
    ) -> None:
        event = AuditEventBuilder.rate_cache_corrupt(
            cache_key=cache_key,
            error_message=error_message,
        )
        await self.log(event)

    async def log_rate_cache_cleared(self, cache_key: str) -> None:
        await self.log(AuditEventBuilder.rate_cache_cleared(cache_key))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        event = AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        )
        await self.log(event)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new action (e.g., a notification refresh).
    Pass it through all subsequent operations.
    """
    return uuid4()
