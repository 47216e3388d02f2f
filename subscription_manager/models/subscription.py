"""
Core Data Models for Subscription Manager

These models define the schemas for everything flowing through the core:
1. Subscriptions (owned by the persistence layer, read-only here)
2. Scheduled reminders (derived, recomputed on every call, never persisted)
3. Scheduling outcomes (what was scheduled, skipped or rejected)

DESIGN DECISION: The core treats a Subscription as an immutable input
record for a single computation. Models are frozen so a computation can
never mutate the record it was given.
"""

from datetime import datetime, time, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Naive instants are taken to be UTC; aware ones are returned unchanged."""
    if value.tzinfo is None or value.utcoffset() is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class BillingCycle(str, Enum):
    """The recurrence unit of a subscription."""
    MONTHLY = "monthly"
    YEARLY = "yearly"

    @property
    def months(self) -> int:
        """Length of one cycle in calendar months."""
        return 1 if self is BillingCycle.MONTHLY else 12


class NotificationLeadTime(str, Enum):
    """
    How long before a renewal a reminder fires.

    Each lead time has a stable integer code. The code (not the name)
    is part of the reminder key handed to the notification sink, so it
    must never change for an existing member.
    """
    ONE_DAY = "one_day_before"
    THREE_DAYS = "three_days_before"
    ONE_WEEK = "one_week_before"
    TWO_WEEKS = "two_weeks_before"

    @property
    def days(self) -> int:
        return _LEAD_TIME_DAYS[self]

    @property
    def code(self) -> int:
        return _LEAD_TIME_CODES[self]

    @property
    def display_name(self) -> str:
        return _LEAD_TIME_LABELS[self]

    @property
    def timing_text(self) -> str:
        """Relative phrase used in reminder bodies ("renews tomorrow")."""
        return _LEAD_TIME_TIMING_TEXT[self]

    @classmethod
    def from_code(cls, code: int) -> "NotificationLeadTime":
        for lead_time, lead_code in _LEAD_TIME_CODES.items():
            if lead_code == code:
                return lead_time
        raise ValueError(f"Unknown lead time code: {code}")


_LEAD_TIME_DAYS = {
    NotificationLeadTime.ONE_DAY: 1,
    NotificationLeadTime.THREE_DAYS: 3,
    NotificationLeadTime.ONE_WEEK: 7,
    NotificationLeadTime.TWO_WEEKS: 14,
}

_LEAD_TIME_CODES = {
    NotificationLeadTime.ONE_DAY: 0,
    NotificationLeadTime.THREE_DAYS: 1,
    NotificationLeadTime.ONE_WEEK: 2,
    NotificationLeadTime.TWO_WEEKS: 3,
}

_LEAD_TIME_LABELS = {
    NotificationLeadTime.ONE_DAY: "1 day before",
    NotificationLeadTime.THREE_DAYS: "3 days before",
    NotificationLeadTime.ONE_WEEK: "1 week before",
    NotificationLeadTime.TWO_WEEKS: "2 weeks before",
}

_LEAD_TIME_TIMING_TEXT = {
    NotificationLeadTime.ONE_DAY: "tomorrow",
    NotificationLeadTime.THREE_DAYS: "in 3 days",
    NotificationLeadTime.ONE_WEEK: "in 1 week",
    NotificationLeadTime.TWO_WEEKS: "in 2 weeks",
}


class ScheduleStatus(str, Enum):
    """Why a scheduling call produced the reminders it did."""
    SCHEDULED = "scheduled"
    INACTIVE = "inactive"  # Subscription switched off, no-op
    PERMISSION_MISSING = "permission_missing"  # User has not allowed notifications, no-op


def reminder_key(subscription_id: UUID, lead_time: NotificationLeadTime) -> str:
    """Deterministic notification key for one (subscription, lead time) pair."""
    return f"{subscription_id}_{lead_time.code}"


# =============================================================================
# SUBSCRIPTION
# =============================================================================

class Subscription(BaseModel):
    """
    A recurring payment the user tracks.

    start_date may lie in the future; its first renewal is then the
    start date itself. A naive start_date is read as UTC.
    """
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    # Identity
    id: UUID = Field(
        default_factory=uuid4,
        description="Unique subscription ID"
    )

    service_name: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Name of the subscribed service"
    )
    amount: Decimal = Field(
        ...,
        ge=0,
        description="Amount charged per cycle, in `currency`"
    )
    currency: str = Field(
        default="JPY",
        min_length=3,
        max_length=3,
        description="ISO 4217 currency code"
    )
    exchange_rate: Optional[Decimal] = Field(
        default=None,
        gt=0,
        description="Rate to the display currency captured when the subscription was entered"
    )
    payment_method: Optional[str] = Field(
        default=None,
        max_length=100,
        description="Card, wallet or bank used to pay"
    )
    notes: Optional[str] = Field(
        default=None,
        max_length=1000,
    )

    # Recurrence
    start_date: datetime = Field(
        ...,
        description="Instant of the first billing event"
    )
    cycle: BillingCycle = BillingCycle.MONTHLY

    # Reminders
    notification_lead_times: list[NotificationLeadTime] = Field(
        default_factory=list,
        description="When to remind before each renewal"
    )
    notification_time: Optional[time] = Field(
        default=None,
        description="Wall-clock time applied to every reminder (settings default if unset)"
    )

    is_active: bool = True

    # Timestamps
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    @field_validator('currency')
    @classmethod
    def upper_case_currency(cls, v: str) -> str:
        if not v.isalpha():
            raise ValueError(f"Currency must be a 3-letter code, got {v!r}")
        return v.upper()

    @field_validator('start_date', 'created_at', 'updated_at')
    @classmethod
    def naive_instants_are_utc(cls, v: datetime) -> datetime:
        return as_utc(v)

    @field_validator('notification_lead_times')
    @classmethod
    def deduplicate_lead_times(
        cls,
        v: list[NotificationLeadTime],
    ) -> list[NotificationLeadTime]:
        """Lead times are a set; keep the first occurrence of each."""
        return list(dict.fromkeys(v))


# =============================================================================
# REMINDERS
# =============================================================================

class ScheduledReminder(BaseModel):
    """
    One reminder handed to the notification sink.

    Identity is (subscription_id, lead_time); recomputing replaces,
    never appends.
    """
    model_config = ConfigDict(frozen=True)

    subscription_id: UUID
    lead_time: NotificationLeadTime
    fire_at: datetime

    @property
    def key(self) -> str:
        return reminder_key(self.subscription_id, self.lead_time)


class SkippedReminder(BaseModel):
    """A lead time whose reminder would have fired at or before as_of."""
    model_config = ConfigDict(frozen=True)

    subscription_id: UUID
    lead_time: NotificationLeadTime
    candidate_at: datetime
    reason: str = "fire time is not in the future"


class FailedReminder(BaseModel):
    """A reminder the notification sink refused to schedule."""
    model_config = ConfigDict(frozen=True)

    reminder: ScheduledReminder
    error_message: str


class ScheduleResult(BaseModel):
    """
    Outcome of scheduling one subscription.

    `reminders` holds only the reminders the sink accepted.
    """

    subscription_id: UUID
    status: ScheduleStatus
    renewal_at: Optional[datetime] = None
    reminders: list[ScheduledReminder] = Field(default_factory=list)
    skipped: list[SkippedReminder] = Field(default_factory=list)
    failures: list[FailedReminder] = Field(default_factory=list)

    @property
    def has_failures(self) -> bool:
        return len(self.failures) > 0

    @property
    def scheduled_count(self) -> int:
        return len(self.reminders)
