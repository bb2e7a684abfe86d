from __future__ import annotations

import re
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, Iterator, Tuple

import yaml

from . import constants as c
from .enums import PhyRate, SweepDimension, TcpVariant
from .errors import ConfigurationError

_RATE_PATTERN = re.compile(r"^\s*(\d+(?:\.\d*)?|\.\d+)(?:[eE]([-+]?\d+))?\s*([A-Za-z/]*)\s*$")
_RATE_PREFIXES = {"": 1.0, "k": 1e3, "K": 1e3, "M": 1e6, "G": 1e9}


def parse_data_rate(rate: str | float | int) -> float:
    """Convert a rate such as ``"100Mbps"`` or ``"1.5MB/s"`` to bits per second."""

    if isinstance(rate, (int, float)) and not isinstance(rate, bool):
        value = float(rate)
    else:
        match = _RATE_PATTERN.match(str(rate))
        if match is None:
            raise ConfigurationError(f"Cannot parse data rate {rate!r}")
        number, exponent, unit = match.groups()
        value = float(number) * (10 ** int(exponent) if exponent else 1)
        if unit:
            prefix, base = unit[:-3], unit[-3:]
            if base in ("bps", "b/s"):
                bits_per_unit = 1.0
            elif base in ("Bps", "B/s"):
                bits_per_unit = 8.0
            else:
                raise ConfigurationError(f"Unknown data rate unit in {rate!r}")
            if prefix not in _RATE_PREFIXES:
                raise ConfigurationError(f"Unknown data rate prefix in {rate!r}")
            value *= _RATE_PREFIXES[prefix] * bits_per_unit
    if value <= 0:
        raise ConfigurationError(f"Data rate must be positive, got {rate!r}")
    return value


@dataclass(frozen=True)
class TrialParameters:
    """Configuration of one engine run."""

    station_count: int = 50
    payload_size: int = 1024
    data_rate: str = "100Mbps"
    phy_rate: str = PhyRate.DSSS_11.value
    simulation_time: float = 1.0
    tcp_variant: str = "NewReno"
    pcap_tracing: bool = False

    def __post_init__(self) -> None:
        if isinstance(self.station_count, bool) or not isinstance(self.station_count, int):
            raise ConfigurationError("station_count must be an integer")
        if self.station_count < 1:
            raise ConfigurationError("station_count must be at least 1")
        max_payload = (
            c.MAX_MPDU_BYTES
            - c.MAC_HEADER_BYTES
            - c.FCS_BYTES
            - c.LLC_SNAP_BYTES
            - c.IPV4_HEADER_BYTES
            - c.TCP_HEADER_BYTES
        )
        if not 0 < self.payload_size <= max_payload:
            raise ConfigurationError(
                f"payload_size must be between 1 and {max_payload} bytes without fragmentation"
            )
        if self.simulation_time <= 0:
            raise ConfigurationError("simulation_time must be positive")
        parse_data_rate(self.data_rate)
        PhyRate.from_name(self.phy_rate)
        TcpVariant.from_name(self.tcp_variant)

    @property
    def data_rate_bps(self) -> float:
        return parse_data_rate(self.data_rate)

    @property
    def phy(self) -> PhyRate:
        return PhyRate.from_name(self.phy_rate)

    @property
    def tcp(self) -> TcpVariant:
        return TcpVariant.from_name(self.tcp_variant)

    @property
    def horizon(self) -> float:
        """Absolute stop time: warm-up offset plus the measurement window."""

        return self.simulation_time + c.WARMUP_OFFSET_S

    def with_overrides(self, **changes: Any) -> TrialParameters:
        return replace(self, **changes)


@dataclass(frozen=True)
class WifiConfig:
    """Physical and MAC layer settings handed to the engine."""

    phy_rate: PhyRate = PhyRate.DSSS_11
    ssid: str = c.SSID
    tx_power_dbm: float = c.TX_POWER_DBM
    tx_gain_db: float = c.TX_GAIN_DB
    rx_gain_db: float = c.RX_GAIN_DB
    rx_noise_figure_db: float = c.RX_NOISE_FIGURE_DB
    cca_threshold_dbm: float = c.CCA_THRESHOLD_DBM
    energy_detection_threshold_dbm: float = c.ENERGY_DETECTION_THRESHOLD_DBM
    frequency_hz: float = c.PROPAGATION_FREQUENCY_HZ
    fragmentation_threshold: int = c.FRAGMENTATION_THRESHOLD
    rts_cts_threshold: int = c.RTS_CTS_THRESHOLD
    active_probing: bool = False

    def __post_init__(self) -> None:
        # Every data frame goes out whole, after plain DCF contention.
        if self.fragmentation_threshold <= c.MAX_MPDU_BYTES:
            raise ConfigurationError("fragmentation must stay disabled; threshold must exceed the max MPDU")
        if self.rts_cts_threshold <= c.MAX_MPDU_BYTES:
            raise ConfigurationError("RTS/CTS must stay disabled; threshold must exceed the max MPDU")
        if self.active_probing:
            raise ConfigurationError("stations must use passive scanning")


@dataclass(frozen=True)
class LayoutSpec:
    """Grid placement plus random-direction mobility for stations."""

    min_x: float = c.GRID_MIN_X
    min_y: float = c.GRID_MIN_Y
    delta_x: float = c.GRID_DELTA_X
    delta_y: float = c.GRID_DELTA_Y
    grid_width: int = c.GRID_WIDTH
    row_first: bool = True
    bounds: Tuple[float, float, float, float] = c.MOBILITY_BOUNDS
    speed: float = c.MOBILITY_SPEED
    pause: float = c.MOBILITY_PAUSE

    def __post_init__(self) -> None:
        if self.grid_width < 1:
            raise ConfigurationError("grid_width must be at least 1")
        x_min, x_max, y_min, y_max = self.bounds
        if x_min >= x_max or y_min >= y_max:
            raise ConfigurationError("mobility bounds must describe a non-empty rectangle")
        if self.speed <= 0:
            raise ConfigurationError("speed must be positive")
        if self.pause < 0:
            raise ConfigurationError("pause must be non-negative")


@dataclass(frozen=True)
class SweepSpec:
    """An ordered grid: station counts (outer) by swept values (inner)."""

    name: str
    dimension: SweepDimension
    values: Tuple[str, ...]
    station_counts: Tuple[int, ...] = tuple(c.STATION_COUNTS)
    base: TrialParameters = field(default_factory=TrialParameters)
    output_path: Path | None = None
    seed: int = 1
    run: int = 1
    reseed_each_trial: bool = False
    workers: int = 1

    def __post_init__(self) -> None:
        if not self.values:
            raise ConfigurationError("a sweep needs at least one swept value")
        if not self.station_counts:
            raise ConfigurationError("a sweep needs at least one station count")
        if any(count < 1 for count in self.station_counts):
            raise ConfigurationError("station counts must be at least 1")
        if self.workers < 1:
            raise ConfigurationError("workers must be at least 1")
        if self.seed < 1 or self.run < 0:
            raise ConfigurationError("seed must be positive and run non-negative")

    @property
    def header(self) -> Tuple[str, str, str]:
        return ("nWifi", self.dimension.value, "throughput")

    @property
    def size(self) -> int:
        return len(self.station_counts) * len(self.values)

    def grid(self) -> Iterator[Tuple[int, str]]:
        for station_count in self.station_counts:
            for value in self.values:
                yield station_count, value

    def parameters_for(self, station_count: int, value: str) -> TrialParameters:
        """Build fresh parameters for one grid point.

        Raises ConfigurationError for an invalid combination.
        """

        if self.dimension is SweepDimension.DATA_RATE:
            return self.base.with_overrides(station_count=station_count, data_rate=value)
        return self.base.with_overrides(station_count=station_count, phy_rate=value)


def data_rate_sweep(
    output_path: Path | None = Path("dataRate.dat"), **overrides: Any
) -> SweepSpec:
    """Stations 1..50 by offered load 100..800 Mbps at the 11 Mbps PHY rate."""

    overrides.setdefault("base", TrialParameters(phy_rate=PhyRate.DSSS_11.value))
    overrides.setdefault("values", c.DATA_RATE_VALUES)
    return SweepSpec(
        name="dataRate", dimension=SweepDimension.DATA_RATE, output_path=output_path, **overrides
    )


def phy_rate_sweep(
    output_path: Path | None = Path("phyRate.dat"), **overrides: Any
) -> SweepSpec:
    """Stations 1..50 by the four DSSS rates at 100 Mbps offered load."""

    overrides.setdefault("base", TrialParameters(data_rate="100Mbps"))
    overrides.setdefault("values", c.PHY_RATE_VALUES)
    return SweepSpec(
        name="phyRate", dimension=SweepDimension.PHY_RATE, output_path=output_path, **overrides
    )


_TRIAL_FIELDS = {f.name for f in fields(TrialParameters)}


def _parse_station_counts(raw: Any) -> Tuple[int, ...]:
    if isinstance(raw, dict):
        if "start" not in raw or "stop" not in raw:
            raise ConfigurationError("sweep.stations needs 'start' and 'stop'")
        step = int(raw.get("step", 1))
        return tuple(range(int(raw["start"]), int(raw["stop"]) + 1, step))
    if isinstance(raw, list):
        return tuple(int(count) for count in raw)
    raise ConfigurationError("sweep.stations must be a list or a start/stop mapping")


def load_sweep_config(path: str | Path) -> SweepSpec:
    """Load a sweep definition from a YAML file.

    Example::

        sweep:
          dimension: phyRate
          values: [DsssRate11Mbps, DsssRate1Mbps]
          stations: {start: 1, stop: 10}
          output: phyRate.dat
        trial:
          data_rate: 100Mbps
    """

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Sweep file not found: {path}")
    with path.open("r") as handle:
        data = yaml.safe_load(handle)

    if not isinstance(data, dict):
        raise ConfigurationError(f"Sweep file must contain a YAML mapping, got {type(data).__name__}")
    if "sweep" not in data or not isinstance(data["sweep"], dict):
        raise ConfigurationError("Missing required section: 'sweep'")

    sweep: Dict[str, Any] = data["sweep"]
    trial: Dict[str, Any] = data.get("trial") or {}
    if not isinstance(trial, dict):
        raise ConfigurationError("'trial' section must be a mapping")
    unknown = set(trial) - _TRIAL_FIELDS
    if unknown:
        raise ConfigurationError(f"Unknown trial fields: {', '.join(sorted(unknown))}")

    if "dimension" not in sweep:
        raise ConfigurationError("Missing required field: sweep.dimension")
    try:
        dimension = SweepDimension(sweep["dimension"])
    except ValueError:
        raise ConfigurationError(
            f"sweep.dimension must be 'dataRate' or 'phyRate', got {sweep['dimension']!r}"
        ) from None

    defaults = c.DATA_RATE_VALUES if dimension is SweepDimension.DATA_RATE else c.PHY_RATE_VALUES
    values = tuple(str(value) for value in sweep.get("values", defaults))
    station_counts = (
        _parse_station_counts(sweep["stations"]) if "stations" in sweep else tuple(c.STATION_COUNTS)
    )
    output = sweep.get("output", f"{dimension.value}.dat")

    return SweepSpec(
        name=str(sweep.get("name", dimension.value)),
        dimension=dimension,
        values=values,
        station_counts=station_counts,
        base=TrialParameters(**trial),
        output_path=Path(output) if output else None,
        seed=int(sweep.get("seed", 1)),
        run=int(sweep.get("run", 1)),
        reseed_each_trial=bool(sweep.get("reseed_each_trial", False)),
        workers=int(sweep.get("workers", 1)),
    )
