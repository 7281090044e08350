"""Persistent key/value primitives the cache and the offline queue are built on."""

from __future__ import annotations

import asyncio
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Protocol

from styleweather.exceptions import TransientStorageError

_logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    """Structural key/value interface.

    ``CacheStore`` and ``OfflineQueue`` only ever talk to this protocol, so
    an in-memory double for tests and a disk-backed store for production
    are interchangeable.  Implementations raise
    :class:`~styleweather.exceptions.TransientStorageError` on failure.
    """

    async def get(self, key: str) -> str | None:
        ...

    async def set(self, key: str, value: str) -> None:
        ...

    async def remove(self, key: str) -> None:
        ...

    async def list_keys(self) -> list[str]:
        ...


class InMemoryKeyValueStore:
    """Dict-backed store; contents are lost with the process."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> str | None:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        self._data[key] = value

    async def remove(self, key: str) -> None:
        self._data.pop(key, None)

    async def list_keys(self) -> list[str]:
        return list(self._data)


class JsonFileKeyValueStore:
    """Store every key in a single JSON object file.

    The file is read once, lazily, and rewritten atomically (temporary file
    plus ``os.replace``) after every mutation.  Blocking file I/O runs in a
    worker thread; an ``asyncio.Lock`` serializes access within the process.
    """

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self._path = Path(path)
        self._data: dict[str, str] | None = None
        self._lock = asyncio.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def _read_file(self) -> dict[str, str]:
        try:
            text = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError as exc:
            raise TransientStorageError(f"Cannot read {self._path}: {exc}") from exc
        except UnicodeDecodeError as exc:
            raise TransientStorageError(f"Store file {self._path} is not valid UTF-8") from exc

        if not text.strip():
            return {}
        try:
            loaded = json.loads(text)
        except json.JSONDecodeError as exc:
            raise TransientStorageError(f"Store file {self._path} is not valid JSON") from exc
        if not isinstance(loaded, dict):
            raise TransientStorageError(f"Store file {self._path} does not hold a JSON object")
        return {str(k): v for k, v in loaded.items() if isinstance(v, str)}

    def _write_file(self, data: dict[str, str]) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=f".{self._path.name}.", dir=self._path.parent)
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    json.dump(data, handle, separators=(",", ":"))
                os.replace(tmp_name, self._path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            raise TransientStorageError(f"Cannot write {self._path}: {exc}") from exc

    async def _loaded(self) -> dict[str, str]:
        if self._data is None:
            self._data = await asyncio.to_thread(self._read_file)
            _logger.debug("Loaded %d keys from %s", len(self._data), self._path)
        return self._data

    async def _commit(self, data: dict[str, str]) -> None:
        await asyncio.to_thread(self._write_file, dict(data))
        self._data = data

    async def get(self, key: str) -> str | None:
        async with self._lock:
            return (await self._loaded()).get(key)

    async def set(self, key: str, value: str) -> None:
        async with self._lock:
            updated = dict(await self._loaded())
            updated[key] = value
            await self._commit(updated)

    async def remove(self, key: str) -> None:
        async with self._lock:
            current = await self._loaded()
            if key not in current:
                return
            updated = dict(current)
            del updated[key]
            await self._commit(updated)

    async def list_keys(self) -> list[str]:
        async with self._lock:
            return list(await self._loaded())
