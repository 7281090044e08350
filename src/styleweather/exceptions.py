"""Custom exception hierarchy for styleweather."""

from __future__ import annotations

from enum import StrEnum


class StyleWeatherError(Exception):
    """Base exception for all styleweather errors."""


class ConfigError(StyleWeatherError):
    """Invalid or missing configuration."""


class TransientStorageError(StyleWeatherError):
    """Read or write against the key/value store failed.

    Raised by the store implementations only. ``CacheStore`` and
    ``OfflineQueue`` catch it, log it and fall back to a safe default.
    """

    def __init__(self, message: str, *, key: str = "") -> None:
        self.key = key
        super().__init__(message)


class RemoteApplyError(StyleWeatherError):
    """A replay handler could not apply a pending mutation."""

    def __init__(self, message: str, *, mutation_id: str = "") -> None:
        self.mutation_id = mutation_id
        super().__init__(message)


class TransientNetworkError(RemoteApplyError):
    """Connectivity or timeout failure while talking to the remote side."""


class ApplicationRejection(RemoteApplyError):
    """The remote side answered but refused the mutation (e.g. validation).

    Currently consumes the same retry budget as
    :class:`TransientNetworkError`; it stays a separate class so callers can
    tell the two apart.
    """


class FailureKind(StrEnum):
    """Classification of a failed replay attempt."""

    NETWORK = "network"
    REJECTED = "rejected"
    UNEXPECTED = "unexpected"
