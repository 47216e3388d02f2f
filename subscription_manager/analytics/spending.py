"""
Spending Analytics

Aggregates the active subscriptions into display figures: a monthly
equivalent total, a yearly total, a breakdown by payment method and a
12-month charge history.

DESIGN DECISION: Figures are best-effort. A subscription whose currency
cannot be converted is left out and its currency reported, rather than
failing the whole summary.

Conversion to the display currency, in order:
1. Same currency -> amount as entered
2. Exchange rate recorded when the subscription was entered
3. ExchangeRateCache (live, cached or fallback rate)
"""

from collections import defaultdict
from datetime import date, datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional
from uuid import UUID

from dateutil.relativedelta import relativedelta

from subscription_manager.config import AppSettings, get_settings
from subscription_manager.core import ExchangeRateCache, ExchangeRateUnavailableError
from subscription_manager.models.spending import (
    MonthlySpending,
    PaymentMethodSpending,
    SpendingSummary,
)
from subscription_manager.models.subscription import BillingCycle, Subscription


OTHER_PAYMENT_METHOD = "Other"
HISTORY_MONTHS = 12

_CENT = Decimal("0.01")


def _money(value: Decimal) -> Decimal:
    return value.quantize(_CENT, rounding=ROUND_HALF_UP)


def _first_of_month(value: datetime) -> date:
    return date(value.year, value.month, 1)


class SpendingAnalyzer:
    """Builds SpendingSummary objects in the display currency."""

    def __init__(
        self,
        rate_cache: Optional[ExchangeRateCache] = None,
        settings: Optional[AppSettings] = None,
    ):
        self._rate_cache = rate_cache
        self._settings = settings or get_settings().app

    @property
    def display_currency(self) -> str:
        return self._settings.display_currency

    @staticmethod
    def monthly_equivalent(subscription: Subscription, amount: Decimal) -> Decimal:
        """A yearly charge spread over twelve months."""
        if subscription.cycle == BillingCycle.YEARLY:
            return amount / 12
        return amount

    async def _rate_for(
        self,
        currency: str,
        as_of: datetime,
        rates: dict[str, Optional[Decimal]],
        correlation_id: Optional[UUID],
    ) -> Optional[Decimal]:
        if currency in rates:
            return rates[currency]

        rate = None
        if self._rate_cache is not None:
            try:
                quote = await self._rate_cache.get_rate(
                    currency,
                    self.display_currency,
                    as_of=as_of,
                    correlation_id=correlation_id,
                )
                rate = Decimal(str(quote.rate))
            except ExchangeRateUnavailableError:
                rate = None

        rates[currency] = rate
        return rate

    async def to_display_amount(
        self,
        subscription: Subscription,
        as_of: datetime,
        rates: Optional[dict[str, Optional[Decimal]]] = None,
        correlation_id: Optional[UUID] = None,
    ) -> Optional[Decimal]:
        """
        The subscription amount in the display currency.

        Returns:
            None when no rate can be resolved for the currency
        """
        if subscription.currency == self.display_currency:
            return subscription.amount
        if subscription.exchange_rate is not None:
            return subscription.amount * subscription.exchange_rate

        rate = await self._rate_for(
            subscription.currency,
            as_of,
            rates if rates is not None else {},
            correlation_id,
        )
        if rate is None:
            return None
        return subscription.amount * rate

    def _history(
        self,
        converted: list[tuple[Subscription, Decimal]],
        as_of: datetime,
    ) -> list[MonthlySpending]:
        """
        Charges per calendar month for the months up to and including as_of's.

        Monthly subscriptions are charged in every month from their start
        month on; yearly ones only in their anniversary month.
        """
        current = _first_of_month(as_of)
        history = []
        for offset in range(HISTORY_MONTHS - 1, -1, -1):
            month = current - relativedelta(months=offset)
            total = Decimal("0")
            for subscription, amount in converted:
                start_month = _first_of_month(subscription.start_date)
                if start_month > month:
                    continue
                if subscription.cycle == BillingCycle.MONTHLY:
                    total += amount
                elif subscription.start_date.month == month.month:
                    total += amount
            history.append(MonthlySpending(month=month, amount=_money(total)))
        return history

    async def summarize(
        self,
        subscriptions: Iterable[Subscription],
        as_of: Optional[datetime] = None,
        correlation_id: Optional[UUID] = None,
    ) -> SpendingSummary:
        """
        Summarise spending over the active subscriptions.

        Args:
            subscriptions: Any subscriptions; inactive ones are ignored
            as_of: Reference instant for rates and the history window
            correlation_id: Passed through to the rate lookups
        """
        as_of = as_of or datetime.now(timezone.utc)
        active = [s for s in subscriptions if s.is_active]

        rates: dict[str, Optional[Decimal]] = {}
        converted: list[tuple[Subscription, Decimal]] = []
        unconverted: set[str] = set()

        for subscription in active:
            amount = await self.to_display_amount(subscription, as_of, rates, correlation_id)
            if amount is None:
                unconverted.add(subscription.currency)
                continue
            converted.append((subscription, amount))

        monthly_total = Decimal("0")
        by_method: dict[str, Decimal] = defaultdict(Decimal)
        method_counts: dict[str, int] = defaultdict(int)

        for subscription, amount in converted:
            monthly = self.monthly_equivalent(subscription, amount)
            monthly_total += monthly

            method = (subscription.payment_method or "").strip() or OTHER_PAYMENT_METHOD
            by_method[method] += monthly
            method_counts[method] += 1

        by_payment_method = [
            PaymentMethodSpending(
                payment_method=method,
                monthly_amount=_money(amount),
                subscription_count=method_counts[method],
            )
            for method, amount in by_method.items()
        ]
        by_payment_method.sort(key=lambda p: (-p.monthly_amount, p.payment_method))

        return SpendingSummary(
            display_currency=self.display_currency,
            active_count=len(active),
            monthly_total=_money(monthly_total),
            yearly_total=_money(monthly_total * 12),
            by_payment_method=by_payment_method,
            monthly_history=self._history(converted, as_of),
            unconverted_currencies=sorted(unconverted),
        )
