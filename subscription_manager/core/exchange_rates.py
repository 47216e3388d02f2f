"""
Exchange Rate Cache

Converts foreign-currency amounts for display totals.

DESIGN DECISION: Availability over accuracy. The rate only feeds a
best-effort spending display, so a failed fetch falls back to a fixed,
configured rate instead of failing the caller.

Lookup order:
1. Same currency -> 1.0
2. Cached entry younger than the TTL -> cached rate, no network
3. Remote fetch -> stored (superseding the pair's old entry) and returned
4. Remote failure -> configured fallback rate for the pair
5. No fallback for the pair -> ExchangeRateUnavailableError

All cached entries live in one blob under a fixed key in the durable
key-value store, so the cache survives restarts.
"""

import asyncio
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import TypeAdapter, ValidationError

from subscription_manager.audit import AuditLogger
from subscription_manager.config import ExchangeRateSettings, get_settings
from subscription_manager.models.rates import CachedRate, RateQuote, RateSource
from subscription_manager.models.subscription import as_utc
from subscription_manager.services.exchange_rates import (
    ExchangeRateError,
    RateSourceInterface,
)
from subscription_manager.services.storage import (
    KeyValueStoreInterface,
    StorageError,
)


_CACHED_RATES = TypeAdapter(list[CachedRate])


class ExchangeRateUnavailableError(ExchangeRateError):
    """No live, cached or fallback rate exists for a currency pair."""

    def __init__(self, base: str, target: str, message: str):
        self.base = base
        self.target = target
        super().__init__(message)


def _as_utc(value: Optional[datetime]) -> datetime:
    """Now if unset; naive instants are taken to be UTC."""
    if value is None:
        return datetime.now(timezone.utc)
    return as_utc(value)


class ExchangeRateCache:
    """
    Time-boxed cache of currency-pair rates in front of a remote source.

    Concurrent misses for the same pair may both hit the remote source;
    the later write simply supersedes the earlier one. Writes to the
    stored blob are serialised so entries for different pairs are never lost.
    """

    def __init__(
        self,
        source: RateSourceInterface,
        store: KeyValueStoreInterface,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[ExchangeRateSettings] = None,
    ):
        self._source = source
        self._store = store
        self._audit_logger = audit_logger
        self._settings = settings or get_settings().exchange_rate
        self._write_lock = asyncio.Lock()

    @property
    def ttl(self) -> timedelta:
        return timedelta(hours=self._settings.cache_ttl_hours)

    async def _load(self) -> list[CachedRate]:
        """All stored entries, expired ones included. Unreadable blobs read as empty."""
        key = self._settings.cache_key
        try:
            blob = await self._store.get(key)
        except StorageError as e:
            if self._audit_logger:
                await self._audit_logger.log_error(
                    error_type="rate_cache_read_failed",
                    error_message=str(e),
                    details={"cache_key": key},
                )
            return []

        if blob is None:
            return []

        try:
            return _CACHED_RATES.validate_json(blob)
        except ValidationError as e:
            if self._audit_logger:
                await self._audit_logger.log_rate_cache_corrupt(
                    cache_key=key,
                    error_message=str(e),
                )
            return []

    async def _store_rate(self, entry: CachedRate, as_of: datetime) -> None:
        async with self._write_lock:
            entries = [
                cached for cached in await self._load()
                if not cached.is_expired(as_of, self.ttl)
                and not cached.matches(entry.base_currency, entry.target_currency)
            ]
            entries.append(entry)

            try:
                await self._store.set(self._settings.cache_key, _CACHED_RATES.dump_json(entries))
            except StorageError as e:
                # Lookup still succeeds with the fetched rate
                if self._audit_logger:
                    await self._audit_logger.log_error(
                        error_type="rate_cache_write_failed",
                        error_message=str(e),
                        details={"cache_key": self._settings.cache_key},
                    )

    async def get_cached_rate(
        self,
        base: str,
        target: str,
        as_of: Optional[datetime] = None,
    ) -> Optional[CachedRate]:
        """The non-expired entry for a pair, if any."""
        as_of = _as_utc(as_of)
        base, target = base.upper(), target.upper()
        for cached in await self._load():
            if cached.matches(base, target) and not cached.is_expired(as_of, self.ttl):
                return cached
        return None

    async def get_cached_rates(self, as_of: Optional[datetime] = None) -> list[CachedRate]:
        """Every non-expired entry, newest first."""
        as_of = _as_utc(as_of)
        entries = [c for c in await self._load() if not c.is_expired(as_of, self.ttl)]
        return sorted(entries, key=lambda c: c.fetched_at, reverse=True)

    async def get_rate(
        self,
        base: str,
        target: str,
        as_of: Optional[datetime] = None,
        correlation_id: Optional[UUID] = None,
    ) -> RateQuote:
        """
        Rate converting `base` into `target`.

        Args:
            base: Currency the amount is in
            target: Currency to convert to
            as_of: Current instant (now if None; naive means UTC)
            correlation_id: Ties the audit events to a larger action

        Raises:
            ExchangeRateUnavailableError: Remote fetch failed and no
                fallback rate is configured for the pair
        """
        as_of = _as_utc(as_of)
        base, target = base.upper(), target.upper()

        if base == target:
            return RateQuote(
                base_currency=base,
                target_currency=target,
                rate=1.0,
                source=RateSource.SAME_CURRENCY,
            )

        cached = await self.get_cached_rate(base, target, as_of)
        if cached is not None:
            if self._audit_logger:
                await self._audit_logger.log_rate_cache_hit(
                    base=base,
                    target=target,
                    rate=cached.rate,
                    correlation_id=correlation_id,
                )
            return RateQuote(
                base_currency=base,
                target_currency=target,
                rate=cached.rate,
                source=RateSource.CACHE,
                fetched_at=cached.fetched_at,
            )

        try:
            rate = await self._source.fetch_rate(base, target)
        except ExchangeRateError as e:
            return await self._fallback(base, target, str(e), correlation_id)

        await self._store_rate(
            CachedRate(
                base_currency=base,
                target_currency=target,
                rate=rate,
                fetched_at=as_of,
            ),
            as_of,
        )

        if self._audit_logger:
            await self._audit_logger.log_rate_fetched(
                base=base,
                target=target,
                rate=rate,
                correlation_id=correlation_id,
            )

        return RateQuote(
            base_currency=base,
            target_currency=target,
            rate=rate,
            source=RateSource.REMOTE,
            fetched_at=as_of,
        )

    async def _fallback(
        self,
        base: str,
        target: str,
        error_message: str,
        correlation_id: Optional[UUID],
    ) -> RateQuote:
        rate = self._settings.fallback_for(base, target)

        if rate is None:
            if self._audit_logger:
                await self._audit_logger.log_rate_unavailable(
                    base=base,
                    target=target,
                    error_message=error_message,
                    correlation_id=correlation_id,
                )
            raise ExchangeRateUnavailableError(
                base,
                target,
                f"No exchange rate available for {base}/{target}: {error_message}",
            )

        if self._audit_logger:
            await self._audit_logger.log_rate_fallback_used(
                base=base,
                target=target,
                rate=rate,
                error_message=error_message,
                correlation_id=correlation_id,
            )

        return RateQuote(
            base_currency=base,
            target_currency=target,
            rate=rate,
            source=RateSource.FALLBACK,
        )

    async def convert_amount(
        self,
        amount: Decimal,
        base: str,
        target: str,
        as_of: Optional[datetime] = None,
        correlation_id: Optional[UUID] = None,
    ) -> Decimal:
        """
        Convert an amount between currencies.

        Raises:
            ExchangeRateUnavailableError: See get_rate
        """
        quote = await self.get_rate(base, target, as_of, correlation_id)
        return amount * Decimal(str(quote.rate))

    async def clear_cache(self) -> None:
        """Forget every cached rate."""
        async with self._write_lock:
            await self._store.delete(self._settings.cache_key)
        if self._audit_logger:
            await self._audit_logger.log_rate_cache_cleared(self._settings.cache_key)
