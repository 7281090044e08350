"""Replay of the offline queue against remote-apply handlers.

One run takes a single snapshot of the queue and replays it strictly in
order, one item at a time, with a fixed pause between items.  A success
removes the item; any failure goes through
:meth:`OfflineQueue.increment_retry`, which is the only eviction policy.
At most one run is active per coordinator (an in-memory flag, not a
cross-process lock).
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Mapping
from datetime import datetime
from typing import Any

import aiohttp

from styleweather.config import OfflineConfig
from styleweather.exceptions import (
    ApplicationRejection,
    FailureKind,
    TransientNetworkError,
    TransientStorageError,
)
from styleweather.models._base import utcnow
from styleweather.models.mutation import MutationKind, PendingMutation
from styleweather.models.network import NetworkState
from styleweather.models.sync import ApplyResult, SyncReport, SyncRun, SyncState, SyncStatus
from styleweather.network import NetworkMonitor
from styleweather.offline_queue import OfflineQueue
from styleweather.scheduler import PeriodicTask

_logger = logging.getLogger(__name__)

Handler = Callable[[PendingMutation], Awaitable[ApplyResult | bool | Mapping[str, Any]]]
StatusCallback = Callable[[SyncStatus], None]


class SyncCoordinator:
    """Drain the offline queue when connectivity allows.

    Usage::

        coordinator = SyncCoordinator(queue, monitor, config, handlers={
            MutationKind.PREFERENCE: push_preferences,
        })
        async with coordinator:
            ...  # runs on reconnect and every pending-refresh interval
    """

    def __init__(
        self,
        queue: OfflineQueue,
        monitor: NetworkMonitor,
        config: OfflineConfig | None = None,
        *,
        handlers: Mapping[MutationKind | str, Handler] | None = None,
        clock: Callable[[], datetime] = utcnow,
        on_status: StatusCallback | None = None,
    ) -> None:
        self._queue = queue
        self._monitor = monitor
        self._config = config or OfflineConfig()
        self._clock = clock
        self._on_status = on_status
        self._handlers: dict[MutationKind, Handler] = {}
        for kind, handler in (handlers or {}).items():
            self.register_handler(kind, handler)

        self._run = SyncRun()
        self._pending_count = 0
        self._was_online: bool | None = None
        self._unsubscribe: Callable[[], None] | None = None
        self._background: set[asyncio.Task[SyncReport | None]] = set()
        self._pending_refresh = PeriodicTask(
            "pending-refresh",
            self._config.pending_refresh_interval,
            self._on_refresh_tick,
        )

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> SyncCoordinator:
        await self.start()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.stop()

    async def start(self) -> None:
        """Read the pending count, follow connectivity and start the refresh timer."""
        if self._unsubscribe is not None:
            return
        await self.refresh_pending_count()
        self._unsubscribe = self._monitor.subscribe(self._on_network_state)
        self._pending_refresh.start()

    async def stop(self) -> None:
        """Stop scheduling new runs and wait for a background run to finish."""
        unsubscribe = self._unsubscribe
        self._unsubscribe = None
        if unsubscribe is not None:
            unsubscribe()
        await self._pending_refresh.stop()
        if self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def register_handler(self, kind: MutationKind | str, handler: Handler) -> None:
        """Register the remote-apply function for one mutation kind."""
        self._handlers[MutationKind(kind)] = handler

    # ------------------------------------------------------------------
    # Read-only state
    # ------------------------------------------------------------------

    @property
    def in_progress(self) -> bool:
        return self._run.in_progress

    @property
    def pending_count(self) -> int:
        return self._pending_count

    @property
    def last_sync_time(self) -> datetime | None:
        return self._run.last_sync_time

    @property
    def run(self) -> SyncRun:
        return self._run.model_copy()

    @property
    def status(self) -> SyncStatus:
        return SyncStatus(
            state=SyncState.SYNCING if self._run.in_progress else SyncState.IDLE,
            in_progress=self._run.in_progress,
            processed=self._run.processed,
            total=self._run.total,
            progress=self._run.progress,
            pending_count=self._pending_count,
            last_sync_time=self._run.last_sync_time,
        )

    def _notify_status(self) -> None:
        if self._on_status is None:
            return
        try:
            self._on_status(self.status)
        except Exception:
            _logger.warning("Sync status callback failed", exc_info=True)

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    async def refresh_pending_count(self) -> int:
        count = await self._queue.size()
        if count != self._pending_count:
            self._pending_count = count
            self._notify_status()
        return count

    async def clear_offline_queue(self) -> bool:
        cleared = await self._queue.clear()
        if cleared:
            self._pending_count = 0
            self._notify_status()
        return cleared

    async def sync_offline_queue(self) -> SyncReport | None:
        """Replay one snapshot of the queue.

        Returns ``None`` without touching anything when offline or when a
        run is already active, and also when the queue cannot be read.
        Never raises for per-item failures.
        """
        if self._monitor.is_offline:
            _logger.debug("Cannot sync: offline")
            return None
        if self._run.in_progress:
            _logger.debug("Cannot sync: a sync run is already in progress")
            return None

        # Claimed before the first await so a concurrent call sees it.
        self._run.in_progress = True
        try:
            return await self._run_once()
        finally:
            self._run.in_progress = False
            self._notify_status()

    # ------------------------------------------------------------------
    # Run internals
    # ------------------------------------------------------------------

    async def _run_once(self) -> SyncReport | None:
        started_at = self._clock()
        self._run.processed = 0
        self._run.total = 0
        self._notify_status()

        try:
            snapshot = await self._queue.snapshot()
        except TransientStorageError:
            _logger.warning("Failed to read offline queue, sync aborted", exc_info=True)
            return None

        report = SyncReport(total=len(snapshot), started_at=started_at)
        self._run.total = len(snapshot)
        if snapshot:
            _logger.info("Starting sync of %d offline items", len(snapshot))
        else:
            _logger.debug("No offline items to sync")

        delay = self._config.sync_item_delay
        for index, item in enumerate(snapshot):
            if index and delay > 0:
                await asyncio.sleep(delay)

            failure = await self._replay(item)
            if failure is None:
                if not await self._queue.remove(item.id):
                    _logger.warning("Synced item %s could not be removed from the queue", item.id)
                report.synced += 1
                _logger.debug("Successfully synced item %s", item.id)
            else:
                report.failures[item.id] = failure
                if await self._queue.increment_retry(item.id):
                    report.retried += 1
                    _logger.info("Failed to sync item %s (%s), will retry later", item.id, failure)
                elif item.retry_count + 1 >= item.max_retries:
                    report.evicted += 1
                else:
                    # Queue write failed or the item was cleared meanwhile.
                    report.unrecorded += 1
                    _logger.warning("Failed to sync item %s (%s), retry count not recorded", item.id, failure)

            self._run.processed = index + 1
            self._notify_status()

        report.finished_at = self._clock()
        self._run.last_sync_time = report.finished_at
        await self.refresh_pending_count()
        if snapshot:
            _logger.info(
                "Sync completed: %d synced, %d retried, %d dropped, %d unrecorded",
                report.synced,
                report.retried,
                report.evicted,
                report.unrecorded,
            )
        return report

    async def _replay(self, item: PendingMutation) -> FailureKind | None:
        """Apply one mutation remotely; ``None`` on success, else the failure kind."""
        handler = self._handlers.get(item.kind)
        if handler is None:
            _logger.warning("No sync handler registered for kind=%s (item %s)", item.kind, item.id)
            return FailureKind.REJECTED

        _logger.debug("Syncing offline item %s: %s %s", item.id, item.kind, item.operation)
        try:
            result = ApplyResult.coerce(await handler(item))
        except ApplicationRejection as exc:
            _logger.debug("Item %s rejected: %s", item.id, exc)
            return FailureKind.REJECTED
        except (TransientNetworkError, aiohttp.ClientError, TimeoutError, OSError) as exc:
            _logger.debug("Item %s hit a network failure: %s", item.id, exc)
            return FailureKind.NETWORK
        except Exception:
            _logger.warning("Unexpected error syncing item %s", item.id, exc_info=True)
            return FailureKind.UNEXPECTED

        if not result.success:
            _logger.debug("Item %s not applied: %s", item.id, result.message)
            return FailureKind.REJECTED
        return None

    # ------------------------------------------------------------------
    # Triggers
    # ------------------------------------------------------------------

    def _on_network_state(self, state: NetworkState) -> None:
        was_online = self._was_online
        self._was_online = state.is_online
        if state.is_online and not was_online and self._config.auto_sync:
            _logger.debug("Network is online, syncing offline items")
            self._schedule_sync()

    def _schedule_sync(self) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            _logger.debug("No running event loop; reconnect sync skipped")
            return
        task = loop.create_task(self.sync_offline_queue())
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _on_refresh_tick(self) -> None:
        pending = await self.refresh_pending_count()
        if pending > 0 and self._config.auto_sync and self._monitor.is_online and not self._run.in_progress:
            _logger.debug("Periodic refresh found %d pending items", pending)
            await self.sync_offline_queue()
