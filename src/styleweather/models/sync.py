"""Sync run state, status snapshots and run reports."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from styleweather.exceptions import FailureKind


class SyncState(StrEnum):
    IDLE = "idle"
    SYNCING = "syncing"


class ApplyResult(BaseModel):
    """Outcome reported by a replay handler."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    success: bool
    message: str | None = None

    @classmethod
    def coerce(cls, value: Any) -> ApplyResult:
        """Normalize a handler return value.

        Accepts an :class:`ApplyResult`, a plain ``bool`` or a mapping with a
        ``"success"`` key.  Anything else counts as a failure.
        """
        if isinstance(value, ApplyResult):
            return value
        if isinstance(value, bool):
            return cls(success=value)
        if isinstance(value, Mapping) and "success" in value:
            return cls(success=value.get("success") is True, message=_as_message(value))
        return cls(success=False, message=f"unexpected handler result: {value!r}")


def _as_message(value: Mapping[str, Any]) -> str | None:
    for key in ("message", "error"):
        text = value.get(key)
        if isinstance(text, str) and text:
            return text
    return None


class SyncRun(BaseModel):
    """Mutable, in-memory state of the current (or last) sync run."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    in_progress: bool = False
    processed: int = 0
    total: int = 0
    last_sync_time: datetime | None = None

    @property
    def progress(self) -> float:
        if self.total <= 0:
            return 0.0
        return min(1.0, self.processed / self.total)


class SyncStatus(BaseModel):
    """Read-only snapshot rendered by offline indicators."""

    model_config = ConfigDict(frozen=True)

    state: SyncState
    in_progress: bool
    processed: int
    total: int
    progress: float
    pending_count: int
    last_sync_time: datetime | None = None


class SyncReport(BaseModel):
    """Outcome of one completed sync run."""

    model_config = ConfigDict(extra="forbid")

    total: int = 0
    synced: int = 0
    retried: int = 0
    evicted: int = 0
    # Failed items whose retry count could not be written back.
    unrecorded: int = 0
    failures: dict[str, FailureKind] = Field(default_factory=dict)
    started_at: datetime
    finished_at: datetime | None = None

    @property
    def failed(self) -> int:
        return self.retried + self.evicted + self.unrecorded
