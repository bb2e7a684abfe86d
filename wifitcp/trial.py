from __future__ import annotations

import logging
from typing import Any

from .config import TrialParameters
from .errors import IncompleteTrialError
from .results import TrialResult
from .rng import SeedManager
from .scenario import Scenario, build_scenario

logger = logging.getLogger(__name__)

# Simulated time is kept in integer nanoseconds by the engine.
_CLOCK_TOLERANCE_S = 1e-9


def run_trial(scenario: Scenario, horizon: float | None = None) -> TrialResult:
    """Run the scenario to its stop time and read the sink counter once.

    The counter is read before the simulator is torn down. The simulation
    context is always released, also when the run fails.
    """

    stop = scenario.horizon if horizon is None else horizon
    context = scenario.context
    params = scenario.parameters
    try:
        logger.info(
            "trial start: nWifi=%d dataRate=%s phyRate=%s tcp=%s stop=%.3fs",
            params.station_count, params.data_rate, params.phy_rate, params.tcp_variant, stop,
        )
        reached = context.run_until(stop)
        if reached + _CLOCK_TOLERANCE_S < stop:
            raise IncompleteTrialError(f"engine stopped at {reached:.6f}s before the stop time {stop:.6f}s")
        received = context.read_counter(scenario.sink)
    finally:
        context.reset()

    logger.info("trial done: %d bytes received by %.6fs", received, reached)
    return TrialResult(parameters=params, bytes_received=received, reached_time=reached)


def run_experiment(params: TrialParameters, seeds: SeedManager | None = None, **options: Any) -> TrialResult:
    return run_trial(build_scenario(params, seeds, **options))
