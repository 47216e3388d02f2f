"""
Exchange Rate Source using fxratesapi

DESIGN DECISION: The remote source is a plain "latest rates" endpoint:
    GET {api_base_url}/{BASE}
    -> {"success": true, "base": "USD", "date": "...", "rates": {"JPY": 151.2, ...}}

Any other shape is a protocol error. This client only fetches and
validates; caching and fallback live in the ExchangeRateCache, which
decides what a failure means for the caller.
"""

from abc import ABC, abstractmethod
from typing import Optional

import httpx
import structlog
from pydantic import BaseModel, ValidationError
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from subscription_manager.config import ExchangeRateSettings, get_settings


logger = structlog.get_logger(__name__)


class ExchangeRateError(Exception):
    """Base exception for exchange rate errors."""
    pass


class RateNetworkError(ExchangeRateError):
    """The rate source could not be reached."""
    pass


class InvalidRateResponseError(ExchangeRateError):
    """The rate source answered with something we cannot use."""
    pass


class RateAPIError(ExchangeRateError):
    """The rate source reported a failure (status code or success flag)."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class ExchangeRateResponse(BaseModel):
    """Payload of the latest-rates endpoint."""

    success: bool
    base: str
    date: str
    rates: dict[str, float]


class RateSourceInterface(ABC):
    """Anything that can produce a live rate for a currency pair."""

    @abstractmethod
    async def fetch_rate(self, base: str, target: str) -> float:
        """
        Fetch the current rate converting `base` into `target`.

        Raises:
            ExchangeRateError: On any failure
        """
        pass


class FxRatesAPIClient(RateSourceInterface):
    """
    HTTP client for the fxratesapi latest-rates endpoint.

    Network errors are retried; protocol and API errors are not,
    since asking again will not change the answer.
    """

    def __init__(
        self,
        settings: Optional[ExchangeRateSettings] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Args:
            settings: Rate source settings (loaded from env if None)
            http_client: Shared client; one is created per request if None
        """
        self._settings = settings or get_settings().exchange_rate
        self._http_client = http_client

    def _url_for(self, base: str) -> str:
        return f"{self._settings.api_base_url.rstrip('/')}/{base}"

    async def _get(self, url: str) -> httpx.Response:
        if self._http_client is not None:
            return await self._http_client.get(
                url,
                timeout=self._settings.request_timeout_seconds,
            )
        async with httpx.AsyncClient(timeout=self._settings.request_timeout_seconds) as client:
            return await client.get(url)

    def _parse(self, response: httpx.Response, target: str) -> float:
        if response.status_code != 200:
            raise RateAPIError(
                f"Rate source returned HTTP {response.status_code}",
                status_code=response.status_code,
            )

        try:
            payload = ExchangeRateResponse.model_validate_json(response.content)
        except ValidationError as e:
            raise InvalidRateResponseError(f"Malformed rate payload: {e}")

        if not payload.success:
            raise RateAPIError("API returned error status")

        rate = payload.rates.get(target)
        if rate is None:
            raise InvalidRateResponseError(f"No rate for {target} in response")
        if rate <= 0:
            raise InvalidRateResponseError(f"Non-positive rate for {target}: {rate}")

        return rate

    @retry(
        retry=retry_if_exception_type(RateNetworkError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def fetch_rate(self, base: str, target: str) -> float:
        """
        Fetch the latest rate for base -> target.

        Raises:
            RateNetworkError: Transport failure (after retries)
            RateAPIError: Non-200 status or success flag false
            InvalidRateResponseError: Payload did not match the protocol,
                or the response could not be read at all
        """
        url = self._url_for(base)

        try:
            response = await self._get(url)
        except httpx.TransportError as e:
            logger.warning("rate_source_unreachable", url=url, error=str(e))
            raise RateNetworkError(f"Could not reach rate source: {e}")
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            # Undecodable body, redirect loop or bad URL; not retried
            logger.warning("rate_source_unusable", url=url, error=str(e))
            raise InvalidRateResponseError(f"Unusable answer from rate source: {e}")

        rate = self._parse(response, target)
        logger.info("rate_source_answered", base=base, target=target, rate=rate)
        return rate
