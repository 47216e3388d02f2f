"""
Tests for Subscription Manager models

Test strategy:
1. Unit tests for individual components (models, calculators, caches)
2. Integration tests for flows (with fake collaborators)
3. No real API calls in tests (fakes and httpx.MockTransport)
"""

import json
from datetime import datetime, time, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

import pytest
from pydantic import ValidationError

from subscription_manager.config import ExchangeRateSettings, validate_all_settings
from subscription_manager.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from subscription_manager.models.rates import CachedRate, RateQuote, RateSource
from subscription_manager.models.subscription import (
    BillingCycle,
    NotificationLeadTime,
    ScheduledReminder,
    Subscription,
    reminder_key,
)


class TestSubscriptionModel:
    """Tests for the Subscription record."""

    def test_subscription_defaults(self):
        """Test a minimal subscription gets sensible defaults."""
        sub = Subscription(
            service_name="Spotify",
            amount=Decimal("980"),
            start_date=datetime(2025, 1, 1, tzinfo=timezone.utc),
        )
        assert sub.currency == "JPY"
        assert sub.cycle == BillingCycle.MONTHLY
        assert sub.is_active is True
        assert sub.notification_lead_times == []
        assert sub.notification_time is None

    def test_naive_start_date_is_utc(self):
        """Test a naive start date is read as UTC."""
        sub = Subscription(
            service_name="Spotify",
            amount=Decimal("980"),
            start_date=datetime(2025, 1, 1, 9, 0),
        )
        assert sub.start_date == datetime(2025, 1, 1, 9, 0, tzinfo=timezone.utc)

    def test_aware_start_date_is_kept(self):
        """Test an aware start date keeps its offset."""
        tokyo = timezone(timedelta(hours=9))
        sub = Subscription(
            service_name="Spotify",
            amount=Decimal("980"),
            start_date=datetime(2025, 1, 1, 9, 0, tzinfo=tokyo),
        )
        assert sub.start_date.utcoffset() == timedelta(hours=9)

    def test_subscription_strips_whitespace(self):
        """Test that whitespace is stripped from the service name."""
        sub = Subscription(
            service_name="  Spotify  ",
            amount=Decimal("980"),
            start_date=datetime(2025, 1, 1),
        )
        assert sub.service_name == "Spotify"

    def test_currency_is_upper_cased(self):
        """Test that currency codes are normalised."""
        sub = Subscription(
            service_name="GitHub",
            amount=Decimal("4"),
            currency="usd",
            start_date=datetime(2025, 1, 1),
        )
        assert sub.currency == "USD"

    def test_rejects_non_alphabetic_currency(self):
        """Test that currency codes must be letters."""
        with pytest.raises(ValidationError):
            Subscription(
                service_name="GitHub",
                amount=Decimal("4"),
                currency="U5D",
                start_date=datetime(2025, 1, 1),
            )

    def test_rejects_negative_amount(self):
        """Test that negative amounts are rejected."""
        with pytest.raises(ValidationError):
            Subscription(
                service_name="Test",
                amount=Decimal("-1"),
                start_date=datetime(2025, 1, 1),
            )

    def test_rejects_non_positive_exchange_rate(self):
        """Test that a recorded exchange rate must be positive."""
        with pytest.raises(ValidationError):
            Subscription(
                service_name="Test",
                amount=Decimal("1"),
                currency="USD",
                exchange_rate=Decimal("0"),
                start_date=datetime(2025, 1, 1),
            )

    def test_lead_times_are_deduplicated(self):
        """Test that duplicate lead times collapse, keeping order."""
        sub = Subscription(
            service_name="Test",
            amount=Decimal("1"),
            start_date=datetime(2025, 1, 1),
            notification_lead_times=[
                NotificationLeadTime.ONE_WEEK,
                NotificationLeadTime.ONE_DAY,
                NotificationLeadTime.ONE_WEEK,
            ],
        )
        assert sub.notification_lead_times == [
            NotificationLeadTime.ONE_WEEK,
            NotificationLeadTime.ONE_DAY,
        ]

    def test_subscription_is_frozen(self):
        """Test that the core cannot mutate its input."""
        sub = Subscription(
            service_name="Test",
            amount=Decimal("1"),
            start_date=datetime(2025, 1, 1),
        )
        with pytest.raises(ValidationError):
            sub.amount = Decimal("2")


class TestLeadTimes:
    """Tests for NotificationLeadTime."""

    def test_days(self):
        """Test the offset of each lead time in days."""
        assert [lt.days for lt in NotificationLeadTime] == [1, 3, 7, 14]

    def test_codes_are_stable(self):
        """Test the integer codes used in reminder keys."""
        assert [lt.code for lt in NotificationLeadTime] == [0, 1, 2, 3]

    def test_from_code(self):
        """Test round trip from code back to lead time."""
        assert NotificationLeadTime.from_code(2) == NotificationLeadTime.ONE_WEEK
        with pytest.raises(ValueError):
            NotificationLeadTime.from_code(9)

    def test_timing_text(self):
        """Test relative phrases used in reminder bodies."""
        assert NotificationLeadTime.ONE_DAY.timing_text == "tomorrow"
        assert NotificationLeadTime.TWO_WEEKS.timing_text == "in 2 weeks"
        assert NotificationLeadTime.ONE_WEEK.display_name == "1 week before"

    def test_billing_cycle_months(self):
        """Test cycle lengths."""
        assert BillingCycle.MONTHLY.months == 1
        assert BillingCycle.YEARLY.months == 12


class TestReminderModels:
    """Tests for reminder identity."""

    def test_reminder_key_format(self):
        """Test key is '<subscription id>_<lead time code>'."""
        sub_id = uuid4()
        assert reminder_key(sub_id, NotificationLeadTime.THREE_DAYS) == f"{sub_id}_1"

    def test_scheduled_reminder_key(self):
        """Test reminder key matches the helper."""
        sub_id = uuid4()
        reminder = ScheduledReminder(
            subscription_id=sub_id,
            lead_time=NotificationLeadTime.TWO_WEEKS,
            fire_at=datetime(2025, 6, 1, 10, 0),
        )
        assert reminder.key == f"{sub_id}_3"


class TestRateModels:
    """Tests for cached rates and quotes."""

    def test_cached_rate_expiry_boundary(self):
        """Test an entry exactly at the TTL is still valid, one second later it is not."""
        fetched = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)
        cached = CachedRate(base_currency="usd", target_currency="jpy", rate=150.0, fetched_at=fetched)
        ttl = timedelta(hours=24)

        assert cached.base_currency == "USD"
        assert not cached.is_expired(fetched + ttl, ttl)
        assert cached.is_expired(fetched + ttl + timedelta(seconds=1), ttl)

    def test_cached_rate_rejects_non_positive_rate(self):
        """Test rates must be positive."""
        with pytest.raises(ValidationError):
            CachedRate(
                base_currency="USD",
                target_currency="JPY",
                rate=0,
                fetched_at=datetime.now(timezone.utc),
            )

    def test_quote_is_fallback(self):
        """Test fallback flag on quotes."""
        quote = RateQuote(
            base_currency="USD",
            target_currency="JPY",
            rate=150.0,
            source=RateSource.FALLBACK,
        )
        assert quote.is_fallback


class TestAuditModels:
    """Tests for audit event models."""

    def test_audit_event_creation(self):
        """Test AuditEvent creation."""
        event = AuditEvent(
            event_type=AuditEventType.REMINDER_SCHEDULED,
            description="Test event",
        )
        assert event.event_type == AuditEventType.REMINDER_SCHEDULED
        assert event.severity == AuditSeverity.INFO
        assert event.event_id is not None

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEvent(
            event_type=AuditEventType.RATE_FETCHED,
            description="Fetched",
            details={"rate": 150.0},
        )
        log_dict = event.to_log_dict()
        assert log_dict["event_type"] == "rate_fetched"
        assert log_dict["details"] == {"rate": 150.0}

    def test_audit_event_to_json_line(self):
        """Test JSON-lines serialisation is one parseable line."""
        event = AuditEventBuilder.rate_cache_cleared("cache.key")
        line = event.to_json_line()
        assert "\n" not in line
        assert json.loads(line)["event_type"] == "rate_cache_cleared"

    def test_builder_reminder_scheduled(self):
        """Test builder for scheduled reminders."""
        sub_id = uuid4()
        correlation_id = uuid4()
        event = AuditEventBuilder.reminder_scheduled(
            subscription_id=sub_id,
            service_name="Netflix",
            key=f"{sub_id}_0",
            lead_time="one_day_before",
            fire_at=datetime(2025, 6, 9, 10, 0),
            correlation_id=correlation_id,
        )
        assert event.entity_type == "subscription"
        assert event.entity_id == sub_id
        assert event.correlation_id == correlation_id
        assert event.details["key"] == f"{sub_id}_0"

    def test_builder_fallback_severity(self):
        """Test a missing rate is an error, a used fallback a warning."""
        used = AuditEventBuilder.rate_fallback_used("USD", "JPY", 150.0, "timeout")
        missing = AuditEventBuilder.rate_unavailable("GBP", "JPY", "timeout")
        assert used.severity == AuditSeverity.WARNING
        assert missing.severity == AuditSeverity.ERROR
        assert missing.event_type == AuditEventType.RATE_UNAVAILABLE


class TestSettings:
    """Tests for configuration validation."""

    def test_fallback_keys_are_normalised(self):
        """Test pair keys are upper-cased."""
        settings = ExchangeRateSettings(fallback_rates={"usd/jpy": 150.0})
        assert settings.fallback_rates == {"USD/JPY": 150.0}

    def test_fallback_rejects_bad_key(self):
        """Test malformed pair keys are rejected."""
        with pytest.raises(ValidationError):
            ExchangeRateSettings(fallback_rates={"USDJPY": 150.0})

    def test_fallback_for_inverse_pair(self):
        """Test the reverse pair is derived from a configured one."""
        settings = ExchangeRateSettings(fallback_rates={"USD/JPY": 150.0})
        assert settings.fallback_for("USD", "JPY") == 150.0
        assert settings.fallback_for("JPY", "USD") == pytest.approx(1 / 150.0)
        assert settings.fallback_for("EUR", "JPY") is None

    def test_default_notification_time(self, notification_settings):
        """Test reminders default to 10:00."""
        assert time(notification_settings.default_hour, notification_settings.default_minute) == time(10, 0)

    def test_validate_all_settings(self):
        """Test every settings group loads with defaults."""
        results = validate_all_settings()
        assert all(results[name] for name in ("exchange_rate", "notification", "storage", "app"))
