from __future__ import annotations

from .results import TrialResult


def throughput_mbps(bytes_received: int, window: float) -> float:
    """Mean throughput in Mbit/s over ``window`` seconds."""

    if window <= 0:
        raise ValueError("measurement window must be positive")
    return bytes_received * 8 / (window * 1_000_000)


def reduce_throughput(result: TrialResult) -> float:
    """Throughput of a trial over its nominal measurement window.

    The window is ``simulation_time`` even though senders only start after the
    warm-up offset; no rounding is applied.
    """

    return throughput_mbps(result.bytes_received, result.parameters.simulation_time)


def format_throughput(value: float) -> str:
    return "%g" % value
