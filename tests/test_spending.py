"""Tests for spending analytics."""

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from subscription_manager.analytics import OTHER_PAYMENT_METHOD, SpendingAnalyzer
from subscription_manager.core import ExchangeRateCache
from subscription_manager.models.subscription import BillingCycle


UTC = timezone.utc
AS_OF = datetime(2025, 6, 15, 12, 0, tzinfo=UTC)


@pytest.fixture
def analyzer(rate_source, key_value_store, rate_settings, app_settings):
    cache = ExchangeRateCache(rate_source, key_value_store, settings=rate_settings)
    return SpendingAnalyzer(cache, app_settings)


@pytest.fixture
def offline_analyzer(failing_rate_source, key_value_store, rate_settings, app_settings):
    cache = ExchangeRateCache(failing_rate_source, key_value_store, settings=rate_settings)
    return SpendingAnalyzer(cache, app_settings)


@pytest.fixture
def subscriptions(make_subscription):
    return [
        make_subscription(
            service_name="Netflix",
            amount=Decimal("1490"),
            payment_method="Visa",
            start_date=datetime(2024, 3, 10, tzinfo=UTC),
        ),
        make_subscription(
            service_name="GitHub",
            amount=Decimal("4"),
            currency="USD",
            exchange_rate=Decimal("150"),
            payment_method="Visa",
            start_date=datetime(2025, 2, 1, tzinfo=UTC),
        ),
        make_subscription(
            service_name="Figma",
            amount=Decimal("120"),
            currency="EUR",
            cycle=BillingCycle.YEARLY,
            payment_method="Amex",
            start_date=datetime(2024, 11, 5, tzinfo=UTC),
        ),
        make_subscription(
            service_name="Old Gym",
            amount=Decimal("8000"),
            is_active=False,
        ),
    ]


class TestTotals:
    """Tests for monthly and yearly totals."""

    @pytest.mark.asyncio
    async def test_monthly_and_yearly_totals(self, analyzer, subscriptions):
        """Test yearly charges count a twelfth per month and inactive ones not at all."""
        summary = await analyzer.summarize(subscriptions, as_of=AS_OF)

        # 1490 + 4 * 150 + 120 * 160 / 12
        assert summary.monthly_total == Decimal("3690.00")
        assert summary.yearly_total == Decimal("44280.00")
        assert summary.active_count == 3
        assert summary.display_currency == "JPY"
        assert summary.is_complete

    @pytest.mark.asyncio
    async def test_recorded_rate_wins_over_live_rate(self, analyzer, rate_source, make_subscription):
        """Test the entry-time exchange rate is used without a lookup."""
        sub = make_subscription(
            amount=Decimal("10"),
            currency="USD",
            exchange_rate=Decimal("100"),
        )

        summary = await analyzer.summarize([sub], as_of=AS_OF)

        assert summary.monthly_total == Decimal("1000.00")
        assert rate_source.calls == []

    @pytest.mark.asyncio
    async def test_rate_looked_up_once_per_currency(self, analyzer, rate_source, make_subscription):
        """Test subscriptions sharing a currency share one lookup."""
        subs = [
            make_subscription(service_name=name, amount=Decimal("1"), currency="EUR")
            for name in ("A", "B", "C")
        ]

        summary = await analyzer.summarize(subs, as_of=AS_OF)

        assert summary.monthly_total == Decimal("480.00")
        assert rate_source.calls == [("EUR", "JPY")]

    @pytest.mark.asyncio
    async def test_yearly_total_rounds_half_up(self, analyzer, make_subscription):
        """Test a twelfth that does not divide evenly still totals the yearly amount."""
        sub = make_subscription(amount=Decimal("1000"), cycle=BillingCycle.YEARLY)

        summary = await analyzer.summarize([sub], as_of=AS_OF)

        assert summary.monthly_total == Decimal("83.33")
        assert summary.yearly_total == Decimal("1000.00")

    @pytest.mark.asyncio
    async def test_empty(self, analyzer):
        """Test no subscriptions gives zero totals and a zero history."""
        summary = await analyzer.summarize([], as_of=AS_OF)

        assert summary.monthly_total == Decimal("0")
        assert summary.by_payment_method == []
        assert len(summary.monthly_history) == 12
        assert all(m.amount == 0 for m in summary.monthly_history)


class TestConversionFailures:
    """Tests for currencies that cannot be converted."""

    @pytest.mark.asyncio
    async def test_unconvertible_currency_is_reported(self, offline_analyzer, make_subscription):
        """Test a currency with no rate is left out and listed."""
        subs = [
            make_subscription(service_name="Netflix", amount=Decimal("1490")),
            make_subscription(service_name="BBC", amount=Decimal("10"), currency="GBP"),
            make_subscription(service_name="Claude", amount=Decimal("20"), currency="USD"),
        ]

        summary = await offline_analyzer.summarize(subs, as_of=AS_OF)

        # USD falls back to 150.0, GBP has no fallback
        assert summary.monthly_total == Decimal("4490.00")
        assert summary.unconverted_currencies == ["GBP"]
        assert summary.active_count == 3
        assert not summary.is_complete

    @pytest.mark.asyncio
    async def test_without_rate_cache(self, app_settings, make_subscription):
        """Test an analyzer without a cache only handles known rates."""
        analyzer = SpendingAnalyzer(settings=app_settings)
        subs = [
            make_subscription(amount=Decimal("500")),
            make_subscription(amount=Decimal("5"), currency="USD"),
        ]

        summary = await analyzer.summarize(subs, as_of=AS_OF)

        assert summary.monthly_total == Decimal("500.00")
        assert summary.unconverted_currencies == ["USD"]


class TestBreakdowns:
    """Tests for the payment method breakdown and monthly history."""

    @pytest.mark.asyncio
    async def test_by_payment_method_sorted_descending(self, analyzer, subscriptions, make_subscription):
        """Test totals per payment method, largest first, missing method as Other."""
        subs = subscriptions + [make_subscription(service_name="Cash thing", amount=Decimal("100"))]

        summary = await analyzer.summarize(subs, as_of=AS_OF)

        assert [(p.payment_method, p.monthly_amount, p.subscription_count) for p in summary.by_payment_method] == [
            ("Visa", Decimal("2090.00"), 2),
            ("Amex", Decimal("1600.00"), 1),
            (OTHER_PAYMENT_METHOD, Decimal("100.00"), 1),
        ]

    @pytest.mark.asyncio
    async def test_monthly_history(self, analyzer, subscriptions):
        """Test monthly charges from their start month and yearly ones in their anniversary month."""
        summary = await analyzer.summarize(subscriptions, as_of=AS_OF)
        history = {m.label: m.amount for m in summary.monthly_history}

        assert list(history) == [
            "2024-07", "2024-08", "2024-09", "2024-10", "2024-11", "2024-12",
            "2025-01", "2025-02", "2025-03", "2025-04", "2025-05", "2025-06",
        ]
        assert history["2024-07"] == Decimal("1490.00")
        assert history["2024-11"] == Decimal("20690.00")
        assert history["2025-01"] == Decimal("1490.00")
        assert history["2025-02"] == Decimal("2090.00")
        assert history["2025-06"] == Decimal("2090.00")

    @pytest.mark.asyncio
    async def test_history_starts_on_first_of_month(self, analyzer):
        """Test history buckets are calendar months."""
        summary = await analyzer.summarize([], as_of=AS_OF)

        assert summary.monthly_history[0].month == date(2024, 7, 1)
        assert summary.monthly_history[-1].month == date(2025, 6, 1)
