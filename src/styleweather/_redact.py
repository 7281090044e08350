"""Helpers for safe debug logging.

Queued mutations carry user data (preferences, schedules, feedback text,
occasionally access tokens for the remote side).  Payloads are passed
through :func:`redact_for_log` before they reach a log record.
"""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from typing import Any

_MAX_DEPTH = 20

_SECRET_KEYS: frozenset[str] = frozenset(
    {
        "password",
        "token",
        "accesstoken",
        "refreshtoken",
        "idtoken",
        "apikey",
        "authorization",
        "cookie",
        "email",
        "phone",
        "phonenumber",
    }
)

# Positions are coarsened to the weather cache grid instead of hidden.
_COORDINATE_KEYS: frozenset[str] = frozenset({"latitude", "longitude", "lat", "lon", "lng"})


def _normalize_key(key: str) -> str:
    return key.lower().replace("_", "").replace("-", "")


def _coarse(value: Any) -> Any:
    if isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value):
        return round(float(value), 2)
    return "<redacted>"


def _scrub_mapping(mapping: Mapping[Any, Any], max_string: int, depth: int) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for raw_key, item in mapping.items():
        key = str(raw_key)
        norm = _normalize_key(key)
        if norm in _SECRET_KEYS:
            out[key] = "<redacted>"
        elif norm in _COORDINATE_KEYS:
            out[key] = _coarse(item)
        else:
            out[key] = redact_for_log(item, max_string=max_string, _depth=depth + 1)
    return out


def redact_for_log(value: Any, *, max_string: int = 256, _depth: int = 0) -> Any:
    """Return a copy of *value* with secrets masked and long text cut.

    Coordinates are kept at two decimals, enough to tell which cached
    weather cell a mutation refers to.
    """
    if _depth > _MAX_DEPTH:
        return "<max-depth>"
    if value is None or isinstance(value, (bool, int, float)):
        return value
    if isinstance(value, str):
        return value if len(value) <= max_string else f"{value[:max_string]}…<truncated>"
    if isinstance(value, (bytes, bytearray)):
        return f"<binary:{len(value)}b>"
    if isinstance(value, Mapping):
        return _scrub_mapping(value, max_string, _depth)
    if isinstance(value, Sequence):
        return [redact_for_log(item, max_string=max_string, _depth=_depth + 1) for item in value]
    return repr(value)
