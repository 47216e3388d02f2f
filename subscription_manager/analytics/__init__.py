"""Spending analytics package."""

from subscription_manager.analytics.spending import (
    OTHER_PAYMENT_METHOD,
    SpendingAnalyzer,
)

__all__ = [
    "OTHER_PAYMENT_METHOD",
    "SpendingAnalyzer",
]
