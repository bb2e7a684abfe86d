"""Throughput versus offered load: stations 1..50 by 100..800 Mbps at 11 Mbps DSSS."""

from __future__ import annotations

import argparse
from pathlib import Path
import sys

ROOT = Path(__file__).resolve().parents[1]
sys.path.append(str(ROOT))

from wifitcp.config import TrialParameters, data_rate_sweep
from wifitcp.errors import ConfigurationError
from wifitcp.logging_config import configure_logging
from wifitcp.sweep import run_sweep


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Sweep station count and application data rate")
    parser.add_argument("--output", type=Path, default=Path("dataRate.dat"), help="TSV output path")
    parser.add_argument("--payloadSize", type=int, default=1024)
    parser.add_argument("--tcpVariant", default="NewReno")
    parser.add_argument("--simulationTime", type=float, default=1.0)
    parser.add_argument("--max-stations", type=int, default=50)
    parser.add_argument("--seed", type=int, default=1)
    parser.add_argument("--run", type=int, default=1)
    parser.add_argument("--reseed-each-trial", action="store_true")
    parser.add_argument("--workers", type=int, default=1)
    parser.add_argument("--log-level", default="INFO")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    configure_logging(args.log_level)
    try:
        spec = data_rate_sweep(
            output_path=args.output,
            station_counts=tuple(range(1, args.max_stations + 1)),
            base=TrialParameters(
                payload_size=args.payloadSize,
                tcp_variant=args.tcpVariant,
                simulation_time=args.simulationTime,
            ),
            seed=args.seed,
            run=args.run,
            reseed_each_trial=args.reseed_each_trial,
            workers=args.workers,
        )
    except ConfigurationError as exc:
        raise SystemExit(f"error: {exc}") from exc
    run_sweep(spec)


if __name__ == "__main__":
    main()
