from __future__ import annotations

from enum import Enum

from .errors import ConfigurationError


class PhyRate(Enum):
    """The 802.11b DSSS rate set, named after the engine's wifi modes."""

    DSSS_1 = "DsssRate1Mbps"
    DSSS_2 = "DsssRate2Mbps"
    DSSS_5_5 = "DsssRate5_5Mbps"
    DSSS_11 = "DsssRate11Mbps"

    @property
    def bit_rate(self) -> float:
        return _BIT_RATES[self]

    @classmethod
    def from_name(cls, name: str | PhyRate) -> PhyRate:
        if isinstance(name, PhyRate):
            return name
        try:
            return cls(name)
        except ValueError:
            supported = ", ".join(rate.value for rate in cls)
            raise ConfigurationError(
                f"Unsupported physical rate {name!r}; expected one of {supported}"
            ) from None


_BIT_RATES = {
    PhyRate.DSSS_1: 1_000_000.0,
    PhyRate.DSSS_2: 2_000_000.0,
    PhyRate.DSSS_5_5: 5_500_000.0,
    PhyRate.DSSS_11: 11_000_000.0,
}


class TcpVariant(Enum):
    """Congestion control names accepted on the command line."""

    TAHOE = "TcpTahoe"
    RENO = "TcpReno"
    NEW_RENO = "TcpNewReno"
    WESTWOOD = "TcpWestwood"
    WESTWOOD_PLUS = "TcpWestwoodPlus"

    @property
    def type_id(self) -> str:
        """Socket type the engine installs for this variant."""

        return _TYPE_IDS[self]

    @classmethod
    def from_name(cls, name: str | TcpVariant) -> TcpVariant:
        """Accept ``NewReno``, ``TcpNewReno`` or ``ns3::TcpNewReno``, in any case."""

        if isinstance(name, TcpVariant):
            return name
        raw = str(name).strip()
        if raw.startswith("ns3::"):
            raw = raw[len("ns3::"):]
        if not raw.lower().startswith("tcp"):
            raw = "Tcp" + raw
        for variant in cls:
            if raw.lower() == variant.value.lower():
                return variant
        supported = ", ".join(variant.value for variant in cls)
        raise ConfigurationError(f"Unsupported TCP variant {name!r}; expected one of {supported}")


# ns-3.44 only registers NewReno, LinuxReno and WestwoodPlus among these.
# Tahoe has no socket type of its own and runs as NewReno.
_TYPE_IDS = {
    TcpVariant.TAHOE: "ns3::TcpNewReno",
    TcpVariant.RENO: "ns3::TcpLinuxReno",
    TcpVariant.NEW_RENO: "ns3::TcpNewReno",
    TcpVariant.WESTWOOD: "ns3::TcpWestwoodPlus",
    TcpVariant.WESTWOOD_PLUS: "ns3::TcpWestwoodPlus",
}


class NodeRole(Enum):
    STATION = "station"
    ACCESS_POINT = "access-point"


class SweepDimension(Enum):
    DATA_RATE = "dataRate"
    PHY_RATE = "phyRate"
