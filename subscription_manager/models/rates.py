"""
Exchange Rate Models

CachedRate records are immutable: a re-fetch for the same currency pair
supersedes the old record instead of mutating it.
"""

from datetime import datetime, timedelta
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class RateSource(str, Enum):
    """Where a quoted rate came from."""
    SAME_CURRENCY = "same_currency"
    CACHE = "cache"
    REMOTE = "remote"
    FALLBACK = "fallback"


class CachedRate(BaseModel):
    """A fetched rate for one currency pair, stored in the key-value store."""
    model_config = ConfigDict(frozen=True)

    base_currency: str = Field(..., min_length=3, max_length=3)
    target_currency: str = Field(..., min_length=3, max_length=3)
    rate: float = Field(..., gt=0)
    fetched_at: datetime

    @field_validator('base_currency', 'target_currency')
    @classmethod
    def upper_case_currency(cls, v: str) -> str:
        return v.upper()

    def is_expired(self, as_of: datetime, ttl: timedelta) -> bool:
        """Expired once strictly more than `ttl` has elapsed since the fetch."""
        return as_of - self.fetched_at > ttl

    def matches(self, base: str, target: str) -> bool:
        return self.base_currency == base and self.target_currency == target


class RateQuote(BaseModel):
    """The answer to a rate lookup."""
    model_config = ConfigDict(frozen=True)

    base_currency: str
    target_currency: str
    rate: float = Field(..., gt=0)
    source: RateSource
    fetched_at: Optional[datetime] = Field(
        default=None,
        description="When the underlying rate was fetched (cache and remote only)"
    )

    @property
    def is_fallback(self) -> bool:
        return self.source == RateSource.FALLBACK
