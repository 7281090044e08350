"""Internal constants shared across the library."""

CACHE_PREFIX = "StyleWeather_Cache_"
QUEUE_KEY = "StyleWeather_OfflineQueue"

# ------------------------------------------------------------------
# Cache time-to-live defaults (seconds)
# ------------------------------------------------------------------

DEFAULT_TTL: float = 30 * 60
WEATHER_TTL: float = 10 * 60
RECOMMENDATION_TTL: float = 60 * 60
SCHEDULES_TTL: float = 24 * 3600
PREFERENCES_TTL: float = 7 * 24 * 3600

SCHEDULES_CACHE_KEY = "user_schedules"
PREFERENCES_CACHE_KEY = "user_preferences"

# ------------------------------------------------------------------
# Offline queue / sync policy
# ------------------------------------------------------------------

MAX_RETRIES = 3
SYNC_ITEM_DELAY: float = 0.1
PENDING_REFRESH_INTERVAL: float = 5 * 60
CACHE_SWEEP_INTERVAL: float = 15 * 60

REACHABILITY_TIMEOUT: float = 5.0
USER_AGENT = "StyleWeather/0.1 (+offline-sync)"
