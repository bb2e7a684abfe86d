from __future__ import annotations

from dataclasses import dataclass, field
from typing import List

from .config import SweepSpec, TrialParameters


@dataclass
class TrialResult:
    """Bytes delivered to the access point's sink during one trial."""

    parameters: TrialParameters
    bytes_received: int
    reached_time: float

    def __post_init__(self) -> None:
        if self.bytes_received < 0:
            raise ValueError("bytes_received cannot be negative")


@dataclass(frozen=True)
class OutputRecord:
    station_count: int
    value: str
    throughput: float


@dataclass(frozen=True)
class SkippedPoint:
    station_count: int
    value: str
    reason: str


@dataclass
class SweepReport:
    """Records in enumeration order plus the grid points that were skipped."""

    spec: SweepSpec
    records: List[OutputRecord] = field(default_factory=list)
    skipped: List[SkippedPoint] = field(default_factory=list)

    @property
    def completed(self) -> int:
        return len(self.records)
