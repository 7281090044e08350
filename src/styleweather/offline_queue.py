"""Durable FIFO queue of mutations recorded while offline.

The whole queue lives under one key of the key/value store as a JSON list
of :class:`~styleweather.models.mutation.PendingMutation` records, so it
survives process restarts.  Read-modify-write cycles are serialized by an
in-process lock: an ``enqueue`` racing with a ``remove`` from a running
sync can never be lost.
"""

from __future__ import annotations

import asyncio
import json
import logging
import secrets
from collections.abc import Callable, Mapping
from datetime import datetime
from typing import Any

from pydantic import TypeAdapter, ValidationError

from styleweather._redact import redact_for_log
from styleweather.config import OfflineConfig
from styleweather.exceptions import TransientStorageError
from styleweather.models._base import utcnow
from styleweather.models.mutation import MutationKind, MutationOperation, PendingMutation
from styleweather.storage import KeyValueStore

_logger = logging.getLogger(__name__)

_LIST_ADAPTER: TypeAdapter[list[PendingMutation]] = TypeAdapter(list[PendingMutation])


def _new_mutation_id(now: datetime) -> str:
    return f"{int(now.timestamp() * 1000)}-{secrets.token_hex(4)}"


class OfflineQueue:
    """Pending mutations with per-item retry counters."""

    def __init__(
        self,
        store: KeyValueStore,
        config: OfflineConfig | None = None,
        *,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._store = store
        self._config = config or OfflineConfig()
        self._key = self._config.queue_key
        self._clock = clock
        self._lock = asyncio.Lock()

    @property
    def max_retries(self) -> int:
        return self._config.max_retries

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    async def _load(self) -> list[PendingMutation]:
        """Read and parse the queue; raises ``TransientStorageError``."""
        raw = await self._store.get(self._key)
        if not raw:
            return []
        try:
            decoded = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise TransientStorageError("Offline queue is not valid JSON", key=self._key) from exc
        if not isinstance(decoded, list):
            raise TransientStorageError("Offline queue is not a JSON list", key=self._key)

        items: list[PendingMutation] = []
        for record in decoded:
            try:
                items.append(PendingMutation.model_validate(record))
            except ValidationError:
                # A record that can no longer be replayed is dropped rather than
                # blocking every later item.
                _logger.warning("Dropping unreadable offline queue record: %s", redact_for_log(record))
        # Stable sort keeps insertion order for identical timestamps.
        items.sort(key=lambda item: item.enqueued_at)
        return items

    async def _save(self, items: list[PendingMutation]) -> None:
        payload = _LIST_ADAPTER.dump_json(items, by_alias=True).decode("utf-8")
        await self._store.set(self._key, payload)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def enqueue(
        self,
        kind: MutationKind | str,
        operation: MutationOperation | str,
        payload: Mapping[str, Any],
    ) -> PendingMutation | None:
        """Append a mutation; returns the stored record, or ``None`` if it could not be queued.

        Never raises: queueing must not block the caller.
        """
        try:
            now = self._clock()
            item = PendingMutation(
                id=_new_mutation_id(now),
                kind=MutationKind(kind),
                operation=MutationOperation(operation),
                payload=dict(payload),
                enqueued_at=now,
                retry_count=0,
                max_retries=self._config.max_retries,
            )
        except (ValueError, TypeError):
            _logger.warning("Rejected offline mutation kind=%s operation=%s", kind, operation, exc_info=True)
            return None

        async with self._lock:
            try:
                items = await self._load()
                items.append(item)
                await self._save(items)
            except (TransientStorageError, ValueError):
                _logger.warning("Failed to add item to offline queue", exc_info=True)
                return None

        _logger.debug(
            "Queued offline mutation id=%s kind=%s operation=%s payload=%s",
            item.id,
            item.kind,
            item.operation,
            redact_for_log(item.payload),
        )
        return item

    async def snapshot(self) -> list[PendingMutation]:
        """Point-in-time copy of the queue, oldest first.

        Unlike :meth:`list` this raises ``TransientStorageError`` so that a
        sync run can tell an unreadable queue from an empty one.
        """
        async with self._lock:
            return await self._load()

    async def list(self) -> list[PendingMutation]:
        """Point-in-time copy of the queue, oldest first; ``[]`` on storage failure."""
        try:
            return await self.snapshot()
        except TransientStorageError:
            _logger.warning("Failed to read offline queue", exc_info=True)
            return []

    async def size(self) -> int:
        return len(await self.list())

    async def remove(self, item_id: str) -> bool:
        """Delete the item with *item_id*; returns whether anything was removed."""
        async with self._lock:
            try:
                items = await self._load()
                remaining = [item for item in items if item.id != item_id]
                if len(remaining) == len(items):
                    return False
                await self._save(remaining)
            except TransientStorageError:
                _logger.warning("Failed to remove item %s from offline queue", item_id, exc_info=True)
                return False
        _logger.debug("Removed item %s from offline queue", item_id)
        return True

    async def increment_retry(self, item_id: str) -> bool:
        """Count one failed replay of *item_id*.

        Returns ``True`` when the item stays queued for another attempt and
        ``False`` when it must not be retried: it just reached its
        ``max_retries`` and was evicted, it is unknown, or the queue could
        not be updated.
        """
        async with self._lock:
            try:
                items = await self._load()
                index = next((i for i, item in enumerate(items) if item.id == item_id), None)
                if index is None:
                    return False

                item = items[index]
                retry_count = min(item.retry_count + 1, item.max_retries)
                if retry_count >= item.max_retries:
                    del items[index]
                    keep = False
                else:
                    items[index] = item.model_copy(update={"retry_count": retry_count})
                    keep = True
                await self._save(items)
            except TransientStorageError:
                _logger.warning("Failed to increment retry count for %s", item_id, exc_info=True)
                return False

        if not keep:
            _logger.warning(
                "Max retries (%d) reached for offline item %s kind=%s, dropping it",
                item.max_retries,
                item_id,
                item.kind,
            )
        return keep

    async def clear(self) -> bool:
        async with self._lock:
            try:
                await self._store.remove(self._key)
            except TransientStorageError:
                _logger.warning("Failed to clear offline queue", exc_info=True)
                return False
        _logger.info("Cleared offline queue")
        return True

