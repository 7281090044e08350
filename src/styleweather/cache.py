"""TTL cache on top of the persistent key/value store.

Entries are written as :class:`~styleweather.models.cache.CachedEntry`
JSON under ``config.cache_prefix``.  Expiry is enforced lazily on read and
by :meth:`CacheStore.cleanup_expired`, which the runtime calls
periodically.  Storage failures never propagate: they are logged and the
call resolves with a safe default.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Mapping
from datetime import datetime
from typing import Any

from pydantic import ValidationError

from styleweather._constants import PREFERENCES_CACHE_KEY, SCHEDULES_CACHE_KEY
from styleweather.config import OfflineConfig
from styleweather.exceptions import TransientStorageError
from styleweather.models._base import utcnow
from styleweather.models.cache import CachedEntry, CacheStatus
from styleweather.storage import KeyValueStore

_logger = logging.getLogger(__name__)


# ------------------------------------------------------------------
# Key derivation
# ------------------------------------------------------------------


def _round_half_up(value: float, places: int) -> float:
    factor = 10**places
    return math.floor(float(value) * factor + 0.5) / factor


def _field(source: Any, *names: str) -> Any:
    """Read the first present attribute/key out of a mapping or object."""
    for name in names:
        if isinstance(source, Mapping):
            value = source.get(name)
        else:
            value = getattr(source, name, None)
        if value is not None:
            return value
    return None


def _slug(value: Any) -> str:
    if value is None:
        return "unknown"
    text = "-".join(str(value).strip().lower().split())
    return text or "unknown"


def weather_cache_key(latitude: float, longitude: float) -> str:
    """Cache key for a weather lookup.

    Coordinates are rounded half-up to two decimals (about a 1.1 km grid)
    so repeated lookups from nearly the same spot share one entry.
    """
    lat = _round_half_up(latitude, 2)
    lon = _round_half_up(longitude, 2)
    return f"weather_{lat:.2f}_{lon:.2f}"


def recommendation_cache_key(weather: Any, preferences: Any) -> str:
    """Cache key for an outfit recommendation.

    Combines a coarse weather signature (whole-degree temperature and
    condition text) with a coarse user signature (gender and style
    preference).  Both arguments may be mappings or objects.
    """
    temperature = _field(weather, "temperature", "temp")
    if isinstance(temperature, (int, float)) and not isinstance(temperature, bool):
        temp_part = str(int(_round_half_up(temperature, 0)))
    else:
        temp_part = _slug(temperature)
    condition = _slug(_field(weather, "description", "condition"))
    gender = _slug(_field(preferences, "gender"))
    style = _slug(_field(preferences, "stylePreference", "style_preference", "style"))
    return f"recommendation_{temp_part}_{condition}_{gender}_{style}"


class CacheStore:
    """Generic TTL cache scoped to one key prefix of a :class:`KeyValueStore`."""

    def __init__(
        self,
        store: KeyValueStore,
        config: OfflineConfig | None = None,
        *,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._store = store
        self._config = config or OfflineConfig()
        self._prefix = self._config.cache_prefix
        self._clock = clock

    def _storage_key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    async def _cache_keys(self) -> list[str]:
        return [k for k in await self._store.list_keys() if k.startswith(self._prefix)]

    # ------------------------------------------------------------------
    # Generic operations
    # ------------------------------------------------------------------

    async def set(self, key: str, value: Any, ttl: float | None = None) -> bool:
        """Store *value* under *key* for *ttl* seconds, replacing any previous entry."""
        effective_ttl = self._config.default_ttl if ttl is None else ttl
        try:
            entry = CachedEntry(key=key, data=value, created_at=self._clock(), ttl=effective_ttl)
            await self._store.set(self._storage_key(key), entry.to_json())
        except (TransientStorageError, ValueError):
            _logger.warning("Failed to cache data for key %s", key, exc_info=True)
            return False
        _logger.debug("Cached data for key %s (ttl=%ss)", key, effective_ttl)
        return True

    async def get(self, key: str) -> Any | None:
        """Return the cached value, or ``None`` when missing or expired.

        An expired or unreadable entry is deleted before ``None`` is
        returned, so later calls see a plain miss.
        """
        storage_key = self._storage_key(key)
        try:
            raw = await self._store.get(storage_key)
        except TransientStorageError:
            _logger.warning("Failed to read cache for key %s", key, exc_info=True)
            return None
        if raw is None:
            return None

        try:
            entry = CachedEntry.model_validate_json(raw)
        except ValidationError:
            _logger.debug("Discarding unreadable cache entry for key %s", key)
            await self._discard(storage_key)
            return None

        if entry.is_expired(self._clock()):
            _logger.debug("Cache expired for key %s", key)
            await self._discard(storage_key)
            return None

        _logger.debug("Cache hit for key %s", key)
        return entry.data

    async def _discard(self, storage_key: str) -> bool:
        try:
            await self._store.remove(storage_key)
        except TransientStorageError:
            _logger.warning("Failed to remove cache entry %s", storage_key, exc_info=True)
            return False
        return True

    async def remove(self, key: str) -> bool:
        removed = await self._discard(self._storage_key(key))
        if removed:
            _logger.debug("Removed cache for key %s", key)
        return removed

    async def clear(self) -> int:
        """Remove every entry in the cache namespace and return how many were removed."""
        try:
            keys = await self._cache_keys()
        except TransientStorageError:
            _logger.warning("Failed to list cache keys", exc_info=True)
            return 0
        removed = 0
        for storage_key in keys:
            if await self._discard(storage_key):
                removed += 1
        _logger.info("Cleared %d cache entries", removed)
        return removed

    async def _scan(self) -> list[tuple[str, int, CachedEntry | None]]:
        """Read every entry in the namespace as ``(storage_key, size, entry)``.

        ``entry`` is ``None`` for values that no longer parse.
        """
        scanned: list[tuple[str, int, CachedEntry | None]] = []
        for storage_key in await self._cache_keys():
            raw = await self._store.get(storage_key)
            if raw is None:
                continue
            try:
                entry: CachedEntry | None = CachedEntry.model_validate_json(raw)
            except ValidationError:
                entry = None
            scanned.append((storage_key, len(raw), entry))
        return scanned

    async def cleanup_expired(self) -> int:
        """Remove every expired (or unreadable) entry and return the count removed."""
        try:
            scanned = await self._scan()
        except TransientStorageError:
            _logger.warning("Failed to scan cache for expired entries", exc_info=True)
            return 0

        now = self._clock()
        removed = 0
        for storage_key, _size, entry in scanned:
            if entry is not None and not entry.is_expired(now):
                continue
            if await self._discard(storage_key):
                removed += 1
        if removed:
            _logger.info("Cleaned up %d expired cache entries", removed)
        return removed

    async def get_status(self) -> CacheStatus:
        """Count valid and expired entries and their approximate serialized size."""
        try:
            scanned = await self._scan()
        except TransientStorageError:
            _logger.warning("Failed to compute cache status", exc_info=True)
            return CacheStatus()

        now = self._clock()
        valid = sum(1 for _key, _size, entry in scanned if entry is not None and not entry.is_expired(now))
        return CacheStatus(
            total_entries=len(scanned),
            valid_entries=valid,
            expired_entries=len(scanned) - valid,
            approx_size_bytes=sum(size for _key, size, _entry in scanned),
        )

    # ------------------------------------------------------------------
    # Domain helpers
    # ------------------------------------------------------------------

    async def cache_weather(self, latitude: float, longitude: float, weather: Any) -> bool:
        return await self.set(weather_cache_key(latitude, longitude), weather, self._config.weather_ttl)

    async def get_cached_weather(self, latitude: float, longitude: float) -> Any | None:
        return await self.get(weather_cache_key(latitude, longitude))

    async def cache_recommendation(self, weather: Any, preferences: Any, recommendation: Any) -> bool:
        key = recommendation_cache_key(weather, preferences)
        return await self.set(key, recommendation, self._config.recommendation_ttl)

    async def get_cached_recommendation(self, weather: Any, preferences: Any) -> Any | None:
        return await self.get(recommendation_cache_key(weather, preferences))

    async def cache_schedules(self, schedules: list[Any]) -> bool:
        return await self.set(SCHEDULES_CACHE_KEY, schedules, self._config.schedules_ttl)

    async def get_cached_schedules(self) -> list[Any] | None:
        return await self.get(SCHEDULES_CACHE_KEY)

    async def cache_user_preferences(self, preferences: Any) -> bool:
        return await self.set(PREFERENCES_CACHE_KEY, preferences, self._config.preferences_ttl)

    async def get_cached_user_preferences(self) -> Any | None:
        return await self.get(PREFERENCES_CACHE_KEY)
