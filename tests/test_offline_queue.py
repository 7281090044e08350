"""Tests for the durable offline mutation queue."""

from __future__ import annotations

import asyncio
import json
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest
from pydantic import ValidationError

from styleweather.config import OfflineConfig
from styleweather.exceptions import TransientStorageError
from styleweather.models.mutation import MutationKind, MutationOperation, PendingMutation
from styleweather.offline_queue import OfflineQueue
from styleweather.storage import InMemoryKeyValueStore, JsonFileKeyValueStore


class TickingClock:
    """Advances one second on every read so enqueue order is observable."""

    def __init__(self) -> None:
        self.now = datetime(2026, 1, 1, tzinfo=UTC)

    def __call__(self) -> datetime:
        self.now += timedelta(seconds=1)
        return self.now


class BrokenStore(InMemoryKeyValueStore):
    async def get(self, key: str) -> str | None:
        raise TransientStorageError("read failed", key=key)

    async def set(self, key: str, value: str) -> None:
        raise TransientStorageError("write failed", key=key)

    async def remove(self, key: str) -> None:
        raise TransientStorageError("remove failed", key=key)


def _queue(store: InMemoryKeyValueStore | None = None, **config: object) -> OfflineQueue:
    return OfflineQueue(store or InMemoryKeyValueStore(), OfflineConfig(**config), clock=TickingClock())  # type: ignore[arg-type]


@pytest.mark.asyncio
async def test_enqueue_round_trips_and_is_fifo() -> None:
    queue = _queue()

    first = await queue.enqueue("preference", "update", {"stylePreference": "casual"})
    second = await queue.enqueue(MutationKind.SCHEDULE, MutationOperation.CREATE, {"title": "dinner", "at": "19:00"})
    third = await queue.enqueue("recommendation", "delete", {"recommendationId": "r-9", "liked": False})

    items = await queue.list()

    assert [item.id for item in items] == [first.id, second.id, third.id]  # type: ignore[union-attr]
    assert [(i.kind, i.operation) for i in items] == [
        (MutationKind.PREFERENCE, MutationOperation.UPDATE),
        (MutationKind.SCHEDULE, MutationOperation.CREATE),
        (MutationKind.RECOMMENDATION, MutationOperation.DELETE),
    ]
    assert items[1].payload == {"title": "dinner", "at": "19:00"}
    assert items[2].payload == {"recommendationId": "r-9", "liked": False}
    assert all(i.retry_count == 0 and i.max_retries == 3 for i in items)


@pytest.mark.asyncio
async def test_ids_are_unique_within_the_same_millisecond() -> None:
    fixed = datetime(2026, 1, 1, tzinfo=UTC)
    queue = OfflineQueue(InMemoryKeyValueStore(), clock=lambda: fixed)

    a = await queue.enqueue("weather", "create", {})
    b = await queue.enqueue("weather", "create", {})

    assert a is not None and b is not None
    assert a.id != b.id
    assert [i.id for i in await queue.list()] == [a.id, b.id]


@pytest.mark.asyncio
async def test_increment_retry_evicts_at_max_retries() -> None:
    queue = _queue()
    item = await queue.enqueue("schedule", "update", {"id": 4, "title": "gym"})
    assert item is not None

    assert await queue.increment_retry(item.id) is True
    assert await queue.increment_retry(item.id) is True

    (still_there,) = await queue.list()
    assert still_there.retry_count == 2

    assert await queue.increment_retry(item.id) is False
    assert await queue.list() == []


@pytest.mark.asyncio
async def test_increment_retry_respects_configured_max() -> None:
    queue = _queue(max_retries=1)
    item = await queue.enqueue("preference", "update", {"gender": "male"})
    assert item is not None

    assert await queue.increment_retry(item.id) is False
    assert await queue.size() == 0


@pytest.mark.asyncio
async def test_increment_retry_unknown_id_reports_no_retry() -> None:
    queue = _queue()
    assert await queue.increment_retry("missing") is False


@pytest.mark.asyncio
async def test_remove_and_clear() -> None:
    queue = _queue()
    a = await queue.enqueue("preference", "update", {"a": 1})
    b = await queue.enqueue("preference", "update", {"b": 2})
    assert a is not None and b is not None

    assert await queue.remove(a.id) is True
    assert await queue.remove(a.id) is False
    assert [i.id for i in await queue.list()] == [b.id]

    assert await queue.clear() is True
    assert await queue.list() == []


@pytest.mark.asyncio
async def test_enqueue_during_remove_is_not_lost() -> None:
    queue = _queue()
    a = await queue.enqueue("schedule", "create", {"title": "a"})
    assert a is not None

    _removed, added = await asyncio.gather(
        queue.remove(a.id),
        queue.enqueue("schedule", "create", {"title": "b"}),
    )

    assert added is not None
    assert [i.id for i in await queue.list()] == [added.id]


@pytest.mark.asyncio
async def test_queue_survives_restart(tmp_path: Path) -> None:
    path = tmp_path / "store.json"
    queue = OfflineQueue(JsonFileKeyValueStore(path), clock=TickingClock())
    item = await queue.enqueue("preference", "update", {"stylePreference": "formal"})
    assert item is not None
    assert await queue.increment_retry(item.id) is True

    reopened = OfflineQueue(JsonFileKeyValueStore(path))
    (restored,) = await reopened.list()

    assert restored.id == item.id
    assert restored.kind is MutationKind.PREFERENCE
    assert restored.payload == {"stylePreference": "formal"}
    assert restored.retry_count == 1
    assert restored.enqueued_at == item.enqueued_at


@pytest.mark.asyncio
async def test_reads_records_written_by_the_mobile_app() -> None:
    store = InMemoryKeyValueStore()
    legacy = [
        {
            "id": "1767225600000",
            "type": "schedule",
            "action": "create",
            "data": {"title": "brunch"},
            "timestamp": 1767225600000,
            "retryCount": 1,
        }
    ]
    await store.set("StyleWeather_OfflineQueue", json.dumps(legacy))

    (item,) = await OfflineQueue(store).list()

    assert item.kind is MutationKind.SCHEDULE
    assert item.operation is MutationOperation.CREATE
    assert item.payload == {"title": "brunch"}
    assert item.retry_count == 1
    assert item.enqueued_at == datetime(2026, 1, 1, tzinfo=UTC)


@pytest.mark.asyncio
async def test_unreadable_records_are_skipped() -> None:
    store = InMemoryKeyValueStore()
    queue = OfflineQueue(store, clock=TickingClock())
    good = await queue.enqueue("weather", "update", {"city": "Seoul"})
    assert good is not None
    raw = json.loads(await store.get("StyleWeather_OfflineQueue") or "[]")
    raw.insert(0, {"id": "bad", "kind": "laundry"})
    await store.set("StyleWeather_OfflineQueue", json.dumps(raw))

    assert [i.id for i in await queue.list()] == [good.id]


@pytest.mark.asyncio
async def test_storage_failures_never_raise_from_public_api() -> None:
    queue = OfflineQueue(BrokenStore())

    assert await queue.enqueue("preference", "update", {"x": 1}) is None
    assert await queue.list() == []
    assert await queue.size() == 0
    assert await queue.remove("any") is False
    assert await queue.increment_retry("any") is False
    assert await queue.clear() is False


@pytest.mark.asyncio
async def test_snapshot_distinguishes_unreadable_from_empty() -> None:
    store = InMemoryKeyValueStore()
    queue = OfflineQueue(store)
    assert await queue.snapshot() == []

    await store.set("StyleWeather_OfflineQueue", "{oops")
    with pytest.raises(TransientStorageError):
        await queue.snapshot()
    assert await queue.list() == []


@pytest.mark.asyncio
async def test_invalid_kind_is_rejected_without_raising() -> None:
    queue = _queue()
    assert await queue.enqueue("laundry", "create", {}) is None
    assert await queue.enqueue("schedule", "upsert", {}) is None
    assert await queue.list() == []


def test_retry_count_cannot_exceed_max_retries() -> None:
    with pytest.raises(ValidationError):
        PendingMutation(
            id="x",
            kind=MutationKind.WEATHER,
            operation=MutationOperation.CREATE,
            enqueued_at=datetime(2026, 1, 1, tzinfo=UTC),
            retry_count=4,
            max_retries=3,
        )
