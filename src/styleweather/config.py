"""Runtime configuration for the offline layer."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from styleweather import _constants
from styleweather.exceptions import ConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


@dataclasses.dataclass(frozen=True)
class OfflineConfig:
    """Offline cache and sync configuration.

    Parameters
    ----------
    default_ttl : float
        Time-to-live in seconds for cache entries written without an
        explicit TTL.  Defaults to 30 minutes.
    weather_ttl : float
        TTL for cached weather lookups.  Defaults to 10 minutes.
    recommendation_ttl : float
        TTL for cached outfit recommendations.  Defaults to 1 hour.
    schedules_ttl : float
        TTL for the cached user schedule list.  Defaults to 24 hours.
    preferences_ttl : float
        TTL for cached user preferences.  Defaults to 7 days.
    max_retries : int
        Failed replay attempts after which a pending mutation is dropped.
    sync_item_delay : float
        Fixed pause in seconds between two replayed mutations.
    pending_refresh_interval : float
        Seconds between two pending-count refreshes of the coordinator.
    cache_sweep_interval : float
        Seconds between two sweeps of expired cache entries.
    cache_prefix : str
        Key prefix that marks the cache namespace in the key/value store.
    queue_key : str
        Key holding the serialized offline queue.  Must not start with
        ``cache_prefix``.
    storage_path : str or None
        JSON file backing the key/value store.  ``None`` keeps everything
        in memory.
    reachability_url : str or None
        URL probed to confirm internet reachability when the platform only
        reports an interface as connected.  ``None`` disables probing.
    reachability_timeout : float
        Timeout in seconds for the reachability probe.
    auto_sync : bool
        Start a sync run automatically when connectivity returns.
    """

    default_ttl: float = _constants.DEFAULT_TTL
    weather_ttl: float = _constants.WEATHER_TTL
    recommendation_ttl: float = _constants.RECOMMENDATION_TTL
    schedules_ttl: float = _constants.SCHEDULES_TTL
    preferences_ttl: float = _constants.PREFERENCES_TTL
    max_retries: int = _constants.MAX_RETRIES
    sync_item_delay: float = _constants.SYNC_ITEM_DELAY
    pending_refresh_interval: float = _constants.PENDING_REFRESH_INTERVAL
    cache_sweep_interval: float = _constants.CACHE_SWEEP_INTERVAL
    cache_prefix: str = _constants.CACHE_PREFIX
    queue_key: str = _constants.QUEUE_KEY
    storage_path: str | None = None
    reachability_url: str | None = None
    reachability_timeout: float = _constants.REACHABILITY_TIMEOUT
    auto_sync: bool = True

    def __post_init__(self) -> None:
        for name in ("default_ttl", "weather_ttl", "recommendation_ttl", "schedules_ttl", "preferences_ttl"):
            if getattr(self, name) <= 0:
                raise ConfigError(f"{name} must be positive, got {getattr(self, name)}")
        if self.max_retries < 1:
            raise ConfigError(f"max_retries must be at least 1, got {self.max_retries}")
        if self.sync_item_delay < 0:
            raise ConfigError(f"sync_item_delay must not be negative, got {self.sync_item_delay}")
        if self.pending_refresh_interval <= 0 or self.cache_sweep_interval <= 0:
            raise ConfigError("refresh and sweep intervals must be positive")
        if not self.cache_prefix:
            raise ConfigError("cache_prefix must be non-empty")
        if not self.queue_key or self.queue_key.startswith(self.cache_prefix):
            raise ConfigError(f"queue_key {self.queue_key!r} must be non-empty and outside the cache prefix")

    @classmethod
    def from_env(cls, **overrides: Any) -> OfflineConfig:
        """Create configuration from environment variables.

        Reads optional ``STYLEWEATHER_*`` variables.  Explicit keyword
        arguments override environment values.

        Parameters
        ----------
        **overrides
            Explicit field values that take precedence over env vars.

        Returns
        -------
        OfflineConfig
            Populated configuration.
        """
        env = os.environ

        _ENV_FLOAT_MAP = {
            "STYLEWEATHER_DEFAULT_TTL": "default_ttl",
            "STYLEWEATHER_WEATHER_TTL": "weather_ttl",
            "STYLEWEATHER_RECOMMENDATION_TTL": "recommendation_ttl",
            "STYLEWEATHER_SCHEDULES_TTL": "schedules_ttl",
            "STYLEWEATHER_PREFERENCES_TTL": "preferences_ttl",
            "STYLEWEATHER_SYNC_ITEM_DELAY": "sync_item_delay",
            "STYLEWEATHER_PENDING_REFRESH_INTERVAL": "pending_refresh_interval",
            "STYLEWEATHER_CACHE_SWEEP_INTERVAL": "cache_sweep_interval",
            "STYLEWEATHER_REACHABILITY_TIMEOUT": "reachability_timeout",
        }
        _ENV_STR_MAP = {
            "STYLEWEATHER_CACHE_PREFIX": "cache_prefix",
            "STYLEWEATHER_QUEUE_KEY": "queue_key",
            "STYLEWEATHER_STORAGE_PATH": "storage_path",
            "STYLEWEATHER_REACHABILITY_URL": "reachability_url",
        }

        config_kwargs: dict[str, Any] = {}
        try:
            for env_key, field_name in _ENV_FLOAT_MAP.items():
                val = env.get(env_key)
                if val is not None and field_name not in overrides:
                    config_kwargs[field_name] = float(val)

            retries_env = env.get("STYLEWEATHER_MAX_RETRIES")
            if retries_env is not None and "max_retries" not in overrides:
                config_kwargs["max_retries"] = int(retries_env)
        except ValueError as exc:
            raise ConfigError(f"Invalid numeric STYLEWEATHER_* value: {exc}") from exc

        for env_key, field_name in _ENV_STR_MAP.items():
            val = env.get(env_key)
            if val is not None and field_name not in overrides:
                config_kwargs[field_name] = val

        if "auto_sync" not in overrides:
            config_kwargs["auto_sync"] = _env_bool(env.get("STYLEWEATHER_AUTO_SYNC"), True)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
