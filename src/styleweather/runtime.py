"""Composition root for the offline layer."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from typing import Any

import aiohttp

from styleweather.cache import CacheStore
from styleweather.config import OfflineConfig
from styleweather.models.cache import CacheStatus
from styleweather.models.mutation import MutationKind
from styleweather.network import ConnectivityProvider, ConnectivitySource, HttpReachabilityProbe, NetworkMonitor
from styleweather.offline_queue import OfflineQueue
from styleweather.scheduler import PeriodicTask
from styleweather.storage import InMemoryKeyValueStore, JsonFileKeyValueStore, KeyValueStore
from styleweather.sync import Handler, StatusCallback, SyncCoordinator

_logger = logging.getLogger(__name__)


class OfflineRuntime:
    """Build and run one shared instance of every offline component.

    Usage::

        async with OfflineRuntime(config, handlers={...}) as runtime:
            runtime.connectivity.report(True, reachable=True, transport_type="wifi")
            await runtime.queue.enqueue("preference", "update", {...})
    """

    def __init__(
        self,
        config: OfflineConfig | None = None,
        *,
        store: KeyValueStore | None = None,
        connectivity: ConnectivityProvider | None = None,
        handlers: Mapping[MutationKind | str, Handler] | None = None,
        on_status: StatusCallback | None = None,
        http_session: aiohttp.ClientSession | None = None,
    ) -> None:
        self._config = config or OfflineConfig()
        if store is None:
            if self._config.storage_path:
                store = JsonFileKeyValueStore(self._config.storage_path)
            else:
                store = InMemoryKeyValueStore()
        self._store = store

        self._probe: HttpReachabilityProbe | None = None
        if connectivity is None:
            if self._config.reachability_url:
                self._probe = HttpReachabilityProbe(
                    self._config.reachability_url,
                    timeout=self._config.reachability_timeout,
                    session=http_session,
                )
            connectivity = ConnectivitySource(probe=self._probe)
        self._connectivity = connectivity

        self.cache = CacheStore(store, self._config)
        self.queue = OfflineQueue(store, self._config)
        self.monitor = NetworkMonitor(connectivity)
        self.coordinator = SyncCoordinator(
            self.queue,
            self.monitor,
            self._config,
            handlers=handlers,
            on_status=on_status,
        )
        self._cache_sweep = PeriodicTask("cache-sweep", self._config.cache_sweep_interval, self.cache.cleanup_expired)

    @property
    def config(self) -> OfflineConfig:
        return self._config

    @property
    def store(self) -> KeyValueStore:
        return self._store

    @property
    def connectivity(self) -> ConnectivityProvider:
        return self._connectivity

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> OfflineRuntime:
        await self.start()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.stop()

    async def start(self) -> None:
        if isinstance(self._connectivity, ConnectivitySource):
            self._connectivity.bind_loop(asyncio.get_running_loop())
        await self.monitor.start()
        await self.coordinator.start()
        self._cache_sweep.start()
        _logger.debug("Offline runtime started")

    async def stop(self) -> None:
        await self._cache_sweep.stop()
        await self.coordinator.stop()
        await self.monitor.stop()
        if self._probe is not None:
            await self._probe.close()
        _logger.debug("Offline runtime stopped")

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    async def stats(self) -> dict[str, CacheStatus | int]:
        """Cache diagnostics plus the number of pending mutations."""
        return {
            "cache": await self.cache.get_status(),
            "pending": await self.coordinator.refresh_pending_count(),
        }

    async def reset(self) -> None:
        """Drop every cached value and every pending mutation."""
        await self.cache.clear()
        await self.coordinator.clear_offline_queue()
        _logger.info("Offline data reset")
