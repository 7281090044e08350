"""Base model and timestamp helpers for persisted records.

Every persisted record inherits from :class:`StyleBaseModel` which
provides:

* ``alias_generator=to_camel`` so records are stored with the camelCase
  keys the mobile app has always written (``retryCount``, ``createdAt``).
* ``populate_by_name`` so Python callers can keep using snake_case.
* Frozen instances; updates go through ``model_copy(update=...)``.

Timestamps are stored as timezone-aware UTC datetimes.  Legacy records
that carry epoch milliseconds are coerced by :data:`UtcTimestamp`.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict
from pydantic.alias_generators import to_camel

# Threshold to distinguish seconds from milliseconds.
_MS_THRESHOLD = 1_000_000_000_000


def utcnow() -> datetime:
    return datetime.now(UTC)


def parse_timestamp(value: Any) -> Any:
    """Coerce epoch seconds/milliseconds or naive datetimes to aware UTC datetimes.

    Strings and other values are passed through for pydantic to validate.
    """
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        ts = float(value)
        if ts >= _MS_THRESHOLD:
            ts /= 1000.0
        return datetime.fromtimestamp(ts, tz=UTC)
    return value


UtcTimestamp = Annotated[datetime, BeforeValidator(parse_timestamp)]
"""Annotated type accepting datetimes, ISO strings or epoch seconds/ms."""


class StyleBaseModel(BaseModel):
    """Base for records persisted in the key/value store."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    def to_json(self) -> str:
        """Serialize with camelCase keys, the on-disk format."""
        return self.model_dump_json(by_alias=True)

