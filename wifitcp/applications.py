"""Application descriptions the scenario hands to the engine."""

from __future__ import annotations

from dataclasses import dataclass
from ipaddress import IPv4Address
from typing import Any, Protocol, Union

from . import constants as c
from .errors import ConfigurationError


class ByteCounterSource(Protocol):
    """Anything that reports a cumulative received byte count."""

    @property
    def total_rx(self) -> int: ...


@dataclass(frozen=True)
class PacketSinkSpec:
    port: int = c.SINK_PORT


@dataclass(frozen=True)
class OnOffSpec:
    """Constant bit rate TCP sender towards ``remote:port``."""

    remote: IPv4Address
    port: int
    packet_size: int
    data_rate_bps: float
    on_time: float = 1.0
    off_time: float = 0.0

    def __post_init__(self) -> None:
        if self.packet_size <= 0:
            raise ConfigurationError("packet_size must be positive")
        if self.data_rate_bps <= 0:
            raise ConfigurationError("data_rate_bps must be positive")
        if self.on_time <= 0 or self.off_time < 0:
            raise ConfigurationError("on_time must be positive and off_time non-negative")

    @property
    def interval(self) -> float:
        return self.packet_size * 8 / self.data_rate_bps


class SinkCounter:
    """Byte counter of an installed packet sink."""

    def __init__(self, applications: Any) -> None:
        self._applications = applications

    @property
    def total_rx(self) -> int:
        return int(self._applications.Get(0).GetTotalRx())


class InstalledApplication:
    """Handle to an application with no counter to read."""

    def __init__(self, applications: Any, spec: ApplicationSpec) -> None:
        self._applications = applications
        self.spec = spec


ApplicationSpec = Union[PacketSinkSpec, OnOffSpec]
