"""Data models for cache entries, pending mutations, connectivity and sync runs."""

from styleweather.models._base import StyleBaseModel, UtcTimestamp, parse_timestamp, utcnow
from styleweather.models.cache import CachedEntry, CacheStatus
from styleweather.models.mutation import MutationKind, MutationOperation, PendingMutation
from styleweather.models.network import UNKNOWN_NETWORK_STATE, NetworkState, TransportType
from styleweather.models.sync import ApplyResult, SyncReport, SyncRun, SyncState, SyncStatus

__all__ = [
    "ApplyResult",
    "CacheStatus",
    "CachedEntry",
    "MutationKind",
    "MutationOperation",
    "NetworkState",
    "PendingMutation",
    "StyleBaseModel",
    "SyncReport",
    "SyncRun",
    "SyncState",
    "SyncStatus",
    "TransportType",
    "UNKNOWN_NETWORK_STATE",
    "UtcTimestamp",
    "parse_timestamp",
    "utcnow",
]
