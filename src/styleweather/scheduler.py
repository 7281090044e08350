"""Periodic background jobs owned by the offline layer."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable
from typing import Any

_logger = logging.getLogger(__name__)


class PeriodicTask:
    """Run an async callback every *interval* seconds until stopped.

    The first run happens one interval after :meth:`start`.  A failing
    callback is logged and does not stop the schedule.
    """

    def __init__(self, name: str, interval: float, callback: Callable[[], Awaitable[Any]]) -> None:
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        self._name = name
        self._interval = interval
        self._callback = callback
        self._task: asyncio.Task[None] | None = None

    @property
    def name(self) -> str:
        return self._name

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.is_running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run(), name=f"styleweather:{self._name}")
        _logger.debug("Started periodic task %s every %ss", self._name, self._interval)

    async def stop(self) -> None:
        task = self._task
        self._task = None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        _logger.debug("Stopped periodic task %s", self._name)

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                await self._callback()
            except asyncio.CancelledError:
                raise
            except Exception:
                _logger.warning("Periodic task %s failed", self._name, exc_info=True)
