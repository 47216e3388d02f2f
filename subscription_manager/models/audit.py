"""
Audit Models for Subscription Manager

Every side effect the core performs (a reminder handed to the platform,
a reminder cancelled, a rate fetched or substituted) is logged for audit
purposes. This provides:
1. Traceability of what was scheduled and why
2. Debugging information when reminders do not show up
3. A history the user can browse from the debug log view

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """
    Types of events we audit.
    """
    # Reminder scheduling
    REMINDER_SCHEDULED = "reminder_scheduled"
    REMINDER_SKIPPED = "reminder_skipped"
    REMINDER_FAILED = "reminder_failed"
    REMINDERS_CANCELLED = "reminders_cancelled"
    NOTIFICATION_PERMISSION_MISSING = "notification_permission_missing"
    NOTIFICATIONS_REFRESHED = "notifications_refreshed"

    # Exchange rates
    RATE_CACHE_HIT = "rate_cache_hit"
    RATE_FETCHED = "rate_fetched"
    RATE_FALLBACK_USED = "rate_fallback_used"
    RATE_UNAVAILABLE = "rate_unavailable"
    RATE_CACHE_CORRUPT = "rate_cache_corrupt"
    RATE_CACHE_CLEARED = "rate_cache_cleared"

    # System events
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'subscription', 'currency_pair')"
    )
    entity_id: Optional[UUID] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., all events in one refresh)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )

    # Additional data (event-specific)
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }

    def to_json_line(self) -> str:
        """Serialize as one line of the JSON-lines audit log."""
        return json.dumps(self.to_log_dict(), ensure_ascii=False, default=str)


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.reminder_scheduled(subscription_id, "Netflix", ...)
        event = AuditEventBuilder.rate_fallback_used("USD", "JPY", 150.0, reason)
    """

    @staticmethod
    def reminder_scheduled(
        subscription_id: UUID,
        service_name: str,
        key: str,
        lead_time: str,
        fire_at: datetime,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REMINDER_SCHEDULED,
            entity_type="subscription",
            entity_id=subscription_id,
            correlation_id=correlation_id,
            description=f"Reminder scheduled for {service_name} ({lead_time})",
            details={
                "key": key,
                "lead_time": lead_time,
                "fire_at": fire_at.isoformat(),
            },
        )

    @staticmethod
    def reminder_skipped(
        subscription_id: UUID,
        service_name: str,
        lead_time: str,
        candidate_at: datetime,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REMINDER_SKIPPED,
            entity_type="subscription",
            entity_id=subscription_id,
            correlation_id=correlation_id,
            description=f"Skipped past reminder for {service_name} ({lead_time})",
            details={
                "lead_time": lead_time,
                "candidate_at": candidate_at.isoformat(),
            },
        )

    @staticmethod
    def reminder_failed(
        subscription_id: UUID,
        service_name: str,
        key: str,
        error_message: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REMINDER_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="subscription",
            entity_id=subscription_id,
            correlation_id=correlation_id,
            description=f"Notification sink rejected reminder for {service_name}",
            error_message=error_message,
            details={
                "key": key,
            },
        )

    @staticmethod
    def reminders_cancelled(
        subscription_id: UUID,
        keys: list[str],
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REMINDERS_CANCELLED,
            severity=AuditSeverity.DEBUG,
            entity_type="subscription",
            entity_id=subscription_id,
            correlation_id=correlation_id,
            description=f"Cancelled {len(keys)} pending reminder keys",
            details={
                "keys": keys,
            },
        )

    @staticmethod
    def permission_missing(
        status: str,
        subscription_id: Optional[UUID] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.NOTIFICATION_PERMISSION_MISSING,
            severity=AuditSeverity.WARNING,
            entity_type="subscription" if subscription_id else None,
            entity_id=subscription_id,
            correlation_id=correlation_id,
            description="Notifications not scheduled: permission not granted",
            details={
                "permission_status": status,
            },
        )

    @staticmethod
    def notifications_refreshed(
        subscription_count: int,
        reminder_count: int,
        failure_count: int,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.NOTIFICATIONS_REFRESHED,
            severity=AuditSeverity.WARNING if failure_count else AuditSeverity.INFO,
            correlation_id=correlation_id,
            description=(
                f"Refreshed reminders for {subscription_count} subscriptions: "
                f"{reminder_count} scheduled, {failure_count} failed"
            ),
            details={
                "subscription_count": subscription_count,
                "reminder_count": reminder_count,
                "failure_count": failure_count,
            },
        )

    @staticmethod
    def rate_cache_hit(
        base: str,
        target: str,
        rate: float,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RATE_CACHE_HIT,
            severity=AuditSeverity.DEBUG,
            entity_type="currency_pair",
            correlation_id=correlation_id,
            description=f"Using cached exchange rate {base}/{target}: {rate}",
            details={
                "base": base,
                "target": target,
                "rate": rate,
            },
        )

    @staticmethod
    def rate_fetched(
        base: str,
        target: str,
        rate: float,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RATE_FETCHED,
            entity_type="currency_pair",
            correlation_id=correlation_id,
            description=f"Fetched exchange rate {base}/{target}: {rate}",
            details={
                "base": base,
                "target": target,
                "rate": rate,
            },
        )

    @staticmethod
    def rate_fallback_used(
        base: str,
        target: str,
        rate: float,
        error_message: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RATE_FALLBACK_USED,
            severity=AuditSeverity.WARNING,
            entity_type="currency_pair",
            correlation_id=correlation_id,
            description=f"Using fallback exchange rate {base}/{target}: {rate}",
            error_message=error_message,
            details={
                "base": base,
                "target": target,
                "rate": rate,
            },
        )

    @staticmethod
    def rate_unavailable(
        base: str,
        target: str,
        error_message: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RATE_UNAVAILABLE,
            severity=AuditSeverity.ERROR,
            entity_type="currency_pair",
            correlation_id=correlation_id,
            description=f"No exchange rate available for {base}/{target}",
            error_message=error_message,
            details={
                "base": base,
                "target": target,
            },
        )

    @staticmethod
    def rate_cache_corrupt(
        cache_key: str,
        error_message: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RATE_CACHE_CORRUPT,
            severity=AuditSeverity.ERROR,
            description="Failed to decode cached exchange rates",
            error_message=error_message,
            details={
                "cache_key": cache_key,
            },
        )

    @staticmethod
    def rate_cache_cleared(cache_key: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RATE_CACHE_CLEARED,
            description="Exchange rate cache cleared",
            details={
                "cache_key": cache_key,
            },
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
