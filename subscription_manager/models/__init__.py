"""
Data Models Package

This package contains all Pydantic models used in Subscription Manager.
All data flowing through the core must conform to these schemas.
"""

from subscription_manager.models.subscription import (
    BillingCycle,
    FailedReminder,
    NotificationLeadTime,
    ScheduledReminder,
    ScheduleResult,
    ScheduleStatus,
    SkippedReminder,
    Subscription,
    as_utc,
    reminder_key,
)
from subscription_manager.models.rates import (
    CachedRate,
    RateQuote,
    RateSource,
)
from subscription_manager.models.spending import (
    MonthlySpending,
    PaymentMethodSpending,
    SpendingSummary,
)
from subscription_manager.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Subscription models
    "BillingCycle",
    "FailedReminder",
    "NotificationLeadTime",
    "ScheduledReminder",
    "ScheduleResult",
    "ScheduleStatus",
    "SkippedReminder",
    "Subscription",
    "as_utc",
    "reminder_key",
    # Rate models
    "CachedRate",
    "RateQuote",
    "RateSource",
    # Spending models
    "MonthlySpending",
    "PaymentMethodSpending",
    "SpendingSummary",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
