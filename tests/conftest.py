"""
Shared fixtures.

Every component gets explicit settings objects so tests never depend on
the environment or a .env file.
"""

from datetime import datetime, time, timezone
from decimal import Decimal

import pytest

from subscription_manager.audit import AuditLogger
from subscription_manager.config import (
    AppSettings,
    ExchangeRateSettings,
    NotificationSettings,
)
from subscription_manager.models.audit import AuditEvent
from subscription_manager.models.subscription import (
    BillingCycle,
    NotificationLeadTime,
    Subscription,
)
from subscription_manager.services.exchange_rates import (
    RateNetworkError,
    RateSourceInterface,
)
from subscription_manager.services.notifications import (
    InProcessNotificationCenter,
    NotificationPermission,
)
from subscription_manager.services.storage import (
    AuditStorageInterface,
    InMemoryKeyValueStore,
)


class FakeRateSource(RateSourceInterface):
    """Rate source returning canned rates and counting calls."""

    def __init__(self, rates: dict[str, float] = None, error: Exception = None):
        self.rates = rates or {}
        self.error = error
        self.calls: list[tuple[str, str]] = []

    async def fetch_rate(self, base: str, target: str) -> float:
        self.calls.append((base, target))
        if self.error is not None:
            raise self.error
        return self.rates[f"{base}/{target}"]


class RecordingAuditStorage(AuditStorageInterface):
    """Keeps appended events in a list."""

    def __init__(self):
        self.events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self.events.append(event)
        return True

    async def get_events_by_correlation_id(self, correlation_id):
        return [e for e in self.events if e.correlation_id == correlation_id]

    async def get_events_by_entity(self, entity_type, entity_id):
        return [
            e for e in self.events
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]

    async def get_recent_events(self, limit=100):
        return list(reversed(self.events))[:limit]

    def of_type(self, event_type) -> list[AuditEvent]:
        return [e for e in self.events if e.event_type == event_type]


@pytest.fixture
def rate_settings() -> ExchangeRateSettings:
    return ExchangeRateSettings(
        api_base_url="https://rates.test/latest",
        cache_ttl_hours=24,
        cache_key="test.exchangeRateCache",
        fallback_rates={"USD/JPY": 150.0},
    )


@pytest.fixture
def notification_settings() -> NotificationSettings:
    return NotificationSettings(default_hour=10, default_minute=0, title="Renewal")


@pytest.fixture
def app_settings() -> AppSettings:
    return AppSettings(display_currency="JPY")


@pytest.fixture
def audit_storage() -> RecordingAuditStorage:
    return RecordingAuditStorage()


@pytest.fixture
def audit_logger(audit_storage) -> AuditLogger:
    return AuditLogger(audit_storage)


@pytest.fixture
def key_value_store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def rate_source() -> FakeRateSource:
    return FakeRateSource({"USD/JPY": 148.5, "EUR/JPY": 160.0})


@pytest.fixture
def failing_rate_source() -> FakeRateSource:
    return FakeRateSource(error=RateNetworkError("connection refused"))


@pytest.fixture
def authorized_sink() -> InProcessNotificationCenter:
    return InProcessNotificationCenter(permission=NotificationPermission.AUTHORIZED)


@pytest.fixture
def make_subscription():
    """Factory for subscriptions with sensible defaults."""

    def _make(**overrides) -> Subscription:
        fields = {
            "service_name": "Netflix",
            "amount": Decimal("1490"),
            "currency": "JPY",
            "start_date": datetime(2025, 1, 15, 9, 0, tzinfo=timezone.utc),
            "cycle": BillingCycle.MONTHLY,
            "notification_lead_times": [NotificationLeadTime.ONE_DAY],
            "notification_time": time(10, 0),
        }
        fields.update(overrides)
        return Subscription(**fields)

    return _make
