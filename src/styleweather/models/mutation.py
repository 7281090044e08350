"""Pending mutation records held by the offline queue."""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import AliasChoices, Field, model_validator

from styleweather._constants import MAX_RETRIES
from styleweather.models._base import StyleBaseModel, UtcTimestamp


class MutationKind(StrEnum):
    WEATHER = "weather"
    RECOMMENDATION = "recommendation"
    SCHEDULE = "schedule"
    PREFERENCE = "preference"


class MutationOperation(StrEnum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class PendingMutation(StyleBaseModel):
    """A mutation recorded while offline, waiting to be replayed.

    The payload must be enough, on its own, to replay the mutation: the
    queue survives process restarts and carries no other context.
    """

    id: str = Field(..., min_length=1)
    # Records written by the mobile app used type/action/data/timestamp.
    kind: MutationKind = Field(..., validation_alias=AliasChoices("kind", "type"))
    operation: MutationOperation = Field(..., validation_alias=AliasChoices("operation", "action"))
    payload: dict[str, Any] = Field(default_factory=dict, validation_alias=AliasChoices("payload", "data"))
    enqueued_at: UtcTimestamp = Field(
        ..., validation_alias=AliasChoices("enqueuedAt", "enqueued_at", "timestamp")
    )
    retry_count: int = Field(default=0, ge=0)
    max_retries: int = Field(default=MAX_RETRIES, ge=1)

    @model_validator(mode="after")
    def _check_retry_bounds(self) -> PendingMutation:
        if self.retry_count > self.max_retries:
            raise ValueError(f"retry_count {self.retry_count} exceeds max_retries {self.max_retries}")
        return self
