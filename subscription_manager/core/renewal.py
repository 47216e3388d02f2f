"""
Renewal Date Calculation

A subscription renews every whole cycle after its start date. The next
renewal is the first of those instants strictly after `as_of`.

DESIGN DECISION: Renewals are always computed from the start date
(start + n cycles), never by stepping from the previous renewal. Stepping
drifts after a month-end clamp (Jan 31 -> Feb 29 -> Mar 29); anchoring
keeps Jan 31 -> Feb 29 -> Mar 31.

The number of elapsed cycles is estimated from the calendar months between
the two instants, so far-future `as_of` values cost the same as near ones.
"""

from datetime import datetime

from dateutil.relativedelta import relativedelta

from subscription_manager.models.subscription import BillingCycle, Subscription, as_utc


class RenewalCalculationError(ValueError):
    """Calendar arithmetic could not produce a valid renewal date."""
    pass


def _is_aware(value: datetime) -> bool:
    return value.tzinfo is not None and value.utcoffset() is not None


class RenewalCalculator:
    """
    Pure renewal-date arithmetic.

    Month-end dates clamp to the last valid day of shorter months
    (2024-01-31 + 1 month = 2024-02-29).
    """

    @staticmethod
    def advance(start_date: datetime, cycle: BillingCycle, cycles: int) -> datetime:
        """The instant `cycles` whole cycles after `start_date`."""
        try:
            return start_date + relativedelta(months=cycle.months * cycles)
        except (ValueError, OverflowError) as e:
            raise RenewalCalculationError(
                f"Cannot advance {start_date.isoformat()} by {cycles} {cycle.value} cycles: {e}"
            )

    def next_renewal(
        self,
        start_date: datetime,
        cycle: BillingCycle,
        as_of: datetime,
    ) -> datetime:
        """
        First renewal strictly after `as_of`.

        A start date that is already after `as_of` is returned unchanged.

        Raises:
            RenewalCalculationError: If the instants cannot be compared
                (one timezone-aware, one naive) or the result falls
                outside the supported calendar range
        """
        if _is_aware(start_date) != _is_aware(as_of):
            raise RenewalCalculationError(
                "start_date and as_of must both be timezone-aware or both naive"
            )

        if start_date > as_of:
            return start_date

        elapsed_months = (
            (as_of.year - start_date.year) * 12 + (as_of.month - start_date.month)
        )
        # One cycle short of the estimate is always at or before as_of
        cycles = max(elapsed_months // cycle.months - 1, 0)

        candidate = self.advance(start_date, cycle, cycles)
        while candidate <= as_of:
            cycles += 1
            candidate = self.advance(start_date, cycle, cycles)

        return candidate

    def next_renewal_for(self, subscription: Subscription, as_of: datetime) -> datetime:
        """Next renewal of a subscription. A naive `as_of` is read as UTC."""
        return self.next_renewal(subscription.start_date, subscription.cycle, as_utc(as_of))
