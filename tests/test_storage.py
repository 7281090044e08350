"""Tests for the key/value store implementations."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from styleweather.cache import CacheStore
from styleweather.exceptions import TransientStorageError
from styleweather.offline_queue import OfflineQueue
from styleweather.storage import InMemoryKeyValueStore, JsonFileKeyValueStore


@pytest.mark.asyncio
async def test_in_memory_store_basic_operations() -> None:
    store = InMemoryKeyValueStore({"a": "1"})
    await store.set("b", "2")
    await store.remove("a")
    await store.remove("missing")

    assert await store.get("a") is None
    assert await store.get("b") == "2"
    assert await store.list_keys() == ["b"]


@pytest.mark.asyncio
async def test_json_store_missing_file_is_empty(tmp_path: Path) -> None:
    store = JsonFileKeyValueStore(tmp_path / "nested" / "store.json")

    assert await store.list_keys() == []
    assert await store.get("anything") is None


@pytest.mark.asyncio
async def test_json_store_persists_across_instances(tmp_path: Path) -> None:
    path = tmp_path / "store.json"
    first = JsonFileKeyValueStore(path)
    await first.set("StyleWeather_Cache_weather_1.00_2.00", '{"temp": 4}')
    await first.set("other", "x")
    await first.remove("other")

    second = JsonFileKeyValueStore(path)

    assert await second.get("StyleWeather_Cache_weather_1.00_2.00") == '{"temp": 4}'
    assert await second.list_keys() == ["StyleWeather_Cache_weather_1.00_2.00"]
    assert json.loads(path.read_text(encoding="utf-8")) == {"StyleWeather_Cache_weather_1.00_2.00": '{"temp": 4}'}
    assert [p.name for p in tmp_path.iterdir()] == ["store.json"]


@pytest.mark.asyncio
async def test_json_store_ignores_non_string_values(tmp_path: Path) -> None:
    path = tmp_path / "store.json"
    path.write_text(json.dumps({"good": "v", "bad": 3}), encoding="utf-8")

    store = JsonFileKeyValueStore(path)

    assert await store.list_keys() == ["good"]


@pytest.mark.asyncio
@pytest.mark.parametrize("content", ["{not json", "[1, 2]"])
async def test_json_store_unreadable_file_raises(tmp_path: Path, content: str) -> None:
    path = tmp_path / "store.json"
    path.write_text(content, encoding="utf-8")

    with pytest.raises(TransientStorageError):
        await JsonFileKeyValueStore(path).get("key")


@pytest.mark.asyncio
async def test_json_store_undecodable_file_is_a_storage_error(tmp_path: Path) -> None:
    path = tmp_path / "store.json"
    path.write_bytes(b'{"a": "\xff\xfe"}')
    store = JsonFileKeyValueStore(path)

    with pytest.raises(TransientStorageError):
        await store.get("a")

    assert await CacheStore(store).get("weather_1.00_2.00") is None
    assert await OfflineQueue(store).list() == []
    assert await OfflineQueue(store).size() == 0
