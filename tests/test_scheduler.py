from __future__ import annotations

import asyncio

import pytest

from styleweather.scheduler import PeriodicTask


def test_interval_must_be_positive() -> None:
    async def _noop() -> None:
        return None

    with pytest.raises(ValueError):
        PeriodicTask("noop", 0, _noop)


@pytest.mark.asyncio
async def test_runs_repeatedly_and_survives_failures() -> None:
    calls = 0

    async def _tick() -> None:
        nonlocal calls
        calls += 1
        if calls == 1:
            raise RuntimeError("first tick fails")

    task = PeriodicTask("tick", 0.01, _tick)
    task.start()
    assert task.is_running
    await asyncio.sleep(0.1)
    await task.stop()

    assert calls >= 3
    assert not task.is_running


@pytest.mark.asyncio
async def test_stop_before_first_interval_skips_callback() -> None:
    calls: list[int] = []

    async def _tick() -> None:
        calls.append(1)

    task = PeriodicTask("slow", 60, _tick)
    task.start()
    task.start()
    await task.stop()
    await task.stop()

    assert calls == []
