"""Cache entry and cache diagnostics models."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any

from pydantic import Field

from styleweather.models._base import StyleBaseModel, UtcTimestamp


class CachedEntry(StyleBaseModel):
    """A value stored by :class:`~styleweather.cache.CacheStore`.

    ``ttl`` is in seconds.  An entry is valid while ``now < expires_at``.
    """

    key: str
    data: Any = None
    created_at: UtcTimestamp
    ttl: float = Field(..., gt=0)

    @property
    def expires_at(self) -> datetime:
        return self.created_at + timedelta(seconds=self.ttl)

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at


class CacheStatus(StyleBaseModel):
    """Diagnostics snapshot of the cache namespace."""

    total_entries: int = 0
    valid_entries: int = 0
    expired_entries: int = 0
    approx_size_bytes: int = 0
