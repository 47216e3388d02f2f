"""
Spending Aggregation Models

Totals are best-effort display figures in the display currency.
They are NOT accounting records.
"""

from datetime import date
from decimal import Decimal

from pydantic import BaseModel, Field


class PaymentMethodSpending(BaseModel):
    """Monthly-equivalent spend for one payment method."""

    payment_method: str
    monthly_amount: Decimal = Field(..., ge=0)
    subscription_count: int = Field(..., ge=0)


class MonthlySpending(BaseModel):
    """What was charged in one calendar month."""

    month: date = Field(
        ...,
        description="First day of the month"
    )
    amount: Decimal = Field(..., ge=0)

    @property
    def label(self) -> str:
        return self.month.strftime("%Y-%m")


class SpendingSummary(BaseModel):
    """
    Aggregate spend over the active subscriptions.

    Yearly subscriptions contribute one twelfth of their amount to
    monthly_total. Subscriptions whose currency could not be converted
    are left out of every figure and their currencies listed in
    unconverted_currencies.
    """

    display_currency: str
    active_count: int = Field(..., ge=0)
    monthly_total: Decimal = Field(..., ge=0)
    yearly_total: Decimal = Field(..., ge=0)
    by_payment_method: list[PaymentMethodSpending] = Field(default_factory=list)
    monthly_history: list[MonthlySpending] = Field(default_factory=list)
    unconverted_currencies: list[str] = Field(default_factory=list)

    @property
    def is_complete(self) -> bool:
        return not self.unconverted_currencies
