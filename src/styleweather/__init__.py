"""styleweather - offline-first cache and mutation sync for the StyleWeather app."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("styleweather")
except PackageNotFoundError:
    __version__ = "0+local"
from styleweather.cache import CacheStore, recommendation_cache_key, weather_cache_key
from styleweather.config import OfflineConfig
from styleweather.exceptions import (
    ApplicationRejection,
    ConfigError,
    FailureKind,
    RemoteApplyError,
    StyleWeatherError,
    TransientNetworkError,
    TransientStorageError,
)
from styleweather.models import (
    ApplyResult,
    CachedEntry,
    CacheStatus,
    MutationKind,
    MutationOperation,
    NetworkState,
    PendingMutation,
    SyncReport,
    SyncRun,
    SyncState,
    SyncStatus,
    TransportType,
)
from styleweather.network import ConnectivityProvider, ConnectivitySource, HttpReachabilityProbe, NetworkMonitor
from styleweather.offline_queue import OfflineQueue
from styleweather.runtime import OfflineRuntime
from styleweather.scheduler import PeriodicTask
from styleweather.storage import InMemoryKeyValueStore, JsonFileKeyValueStore, KeyValueStore
from styleweather.sync import SyncCoordinator

__all__ = [
    "__version__",
    "ApplicationRejection",
    "ApplyResult",
    "CacheStatus",
    "CacheStore",
    "CachedEntry",
    "ConfigError",
    "ConnectivityProvider",
    "ConnectivitySource",
    "FailureKind",
    "HttpReachabilityProbe",
    "InMemoryKeyValueStore",
    "JsonFileKeyValueStore",
    "KeyValueStore",
    "MutationKind",
    "MutationOperation",
    "NetworkMonitor",
    "NetworkState",
    "OfflineConfig",
    "OfflineQueue",
    "OfflineRuntime",
    "PendingMutation",
    "PeriodicTask",
    "RemoteApplyError",
    "StyleWeatherError",
    "SyncCoordinator",
    "SyncReport",
    "SyncRun",
    "SyncState",
    "SyncStatus",
    "TransientNetworkError",
    "TransientStorageError",
    "TransportType",
    "recommendation_cache_key",
    "weather_cache_key",
]
