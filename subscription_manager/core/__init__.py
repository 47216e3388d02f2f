"""
Core Components

Renewal arithmetic, reminder scheduling and the exchange rate cache.
These depend on the service interfaces, never on concrete platforms.
"""

from subscription_manager.core.exchange_rates import (
    ExchangeRateCache,
    ExchangeRateUnavailableError,
)
from subscription_manager.core.notifications import NotificationScheduler
from subscription_manager.core.renewal import (
    RenewalCalculationError,
    RenewalCalculator,
)

__all__ = [
    "ExchangeRateCache",
    "ExchangeRateUnavailableError",
    "NotificationScheduler",
    "RenewalCalculationError",
    "RenewalCalculator",
]
