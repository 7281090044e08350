"""Connectivity state model."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict


class TransportType(StrEnum):
    UNKNOWN = "unknown"
    NONE = "none"
    WIFI = "wifi"
    CELLULAR = "cellular"
    ETHERNET = "ethernet"
    BLUETOOTH = "bluetooth"
    VPN = "vpn"
    OTHER = "other"

    @classmethod
    def _missing_(cls, value: object) -> TransportType:
        return cls.OTHER


class NetworkState(BaseModel):
    """Connectivity as last reported by the platform.

    ``None`` means the platform has not determined the value yet; an
    undetermined state is never considered online.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    connected: bool | None = None
    reachable: bool | None = None
    transport_type: TransportType = TransportType.UNKNOWN

    @property
    def is_online(self) -> bool:
        return self.connected is True and self.reachable is True

    @property
    def is_offline(self) -> bool:
        return not self.is_online


UNKNOWN_NETWORK_STATE = NetworkState()
