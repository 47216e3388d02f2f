"""Exchange rate source package."""

from subscription_manager.services.exchange_rates.client import (
    ExchangeRateError,
    ExchangeRateResponse,
    FxRatesAPIClient,
    InvalidRateResponseError,
    RateAPIError,
    RateNetworkError,
    RateSourceInterface,
)

__all__ = [
    "ExchangeRateError",
    "ExchangeRateResponse",
    "FxRatesAPIClient",
    "InvalidRateResponseError",
    "RateAPIError",
    "RateNetworkError",
    "RateSourceInterface",
]
