"""Runs every grid point of a sweep and streams one record per point to the sinks."""

from __future__ import annotations

import logging
from concurrent.futures import ProcessPoolExecutor
from typing import Callable, Iterable, List, Sequence, Tuple

from .config import SweepSpec, TrialParameters
from .errors import ConfigurationError
from .metrics import reduce_throughput
from .output import ConsoleSink, RecordSink, TabularFileSink
from .results import OutputRecord, SkippedPoint, SweepReport, TrialResult
from .rng import SeedManager
from .trial import run_experiment

logger = logging.getLogger(__name__)

TrialFunction = Callable[[TrialParameters, SeedManager], TrialResult]


def default_sinks(spec: SweepSpec) -> List[RecordSink]:
    sinks: List[RecordSink] = []
    if spec.output_path is not None:
        sinks.append(TabularFileSink(spec.output_path))
    sinks.append(ConsoleSink())
    return sinks


def run_sweep(
    spec: SweepSpec,
    sinks: Sequence[RecordSink] | None = None,
    trial_fn: TrialFunction = run_experiment,
) -> SweepReport:
    """Run the grid in enumeration order (station count outer, swept value inner).

    A grid point whose parameters are rejected with ConfigurationError is
    logged and skipped; any other failure aborts the sweep, leaving the rows
    already written in place.
    """

    owned = sinks is None
    sinks = default_sinks(spec) if sinks is None else list(sinks)
    report = SweepReport(spec=spec)
    try:
        for sink in sinks:
            sink.write_header(spec.header)
        if spec.workers > 1:
            _run_parallel(spec, sinks, trial_fn, report)
        else:
            _run_sequential(spec, sinks, trial_fn, report)
    finally:
        if owned:
            for sink in sinks:
                sink.close()
    logger.info(
        "sweep %s finished: %d records, %d skipped", spec.name, report.completed, len(report.skipped)
    )
    return report


def _emit(sinks: Iterable[RecordSink], report: SweepReport, record: OutputRecord) -> None:
    for sink in sinks:
        sink.write_record(record)
    report.records.append(record)


def _skip(report: SweepReport, station_count: int, value: str, exc: ConfigurationError) -> None:
    logger.warning("skipping nWifi=%d %s=%s: %s", station_count, report.spec.dimension.value, value, exc)
    report.skipped.append(SkippedPoint(station_count, value, str(exc)))


def _run_sequential(
    spec: SweepSpec, sinks: Sequence[RecordSink], trial_fn: TrialFunction, report: SweepReport
) -> None:
    seeds = SeedManager(spec.seed, spec.run)
    for station_count, value in spec.grid():
        if spec.reseed_each_trial:
            seeds.reset()
        try:
            params = spec.parameters_for(station_count, value)
            result = trial_fn(params, seeds)
        except ConfigurationError as exc:
            _skip(report, station_count, value, exc)
            continue
        _emit(sinks, report, OutputRecord(station_count, value, reduce_throughput(result)))


def _run_indexed(job: Tuple[TrialFunction, TrialParameters, int, int, int]) -> TrialResult | ConfigurationError:
    trial_fn, params, seed, run, index = job
    try:
        return trial_fn(params, SeedManager(seed, run, start_index=index))
    except ConfigurationError as exc:
        return exc


def _run_parallel(
    spec: SweepSpec, sinks: Sequence[RecordSink], trial_fn: TrialFunction, report: SweepReport
) -> None:
    """Each trial runs in a worker process with the stream index it would get sequentially."""

    points = []
    jobs = []
    for station_count, value in spec.grid():
        try:
            params = spec.parameters_for(station_count, value)
        except ConfigurationError as exc:
            _skip(report, station_count, value, exc)
            continue
        index = 0 if spec.reseed_each_trial else len(jobs)
        points.append((station_count, value))
        jobs.append((trial_fn, params, spec.seed, spec.run, index))

    with ProcessPoolExecutor(max_workers=spec.workers) as executor:
        for (station_count, value), result in zip(points, executor.map(_run_indexed, jobs)):
            if isinstance(result, ConfigurationError):
                _skip(report, station_count, value, result)
                continue
            _emit(sinks, report, OutputRecord(station_count, value, reduce_throughput(result)))
