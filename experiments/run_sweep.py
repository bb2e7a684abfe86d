"""Run a sweep described by a YAML file (see experiments/sweeps/)."""

from __future__ import annotations

import argparse
from dataclasses import replace
from pathlib import Path
import sys

ROOT = Path(__file__).resolve().parents[1]
sys.path.append(str(ROOT))

from wifitcp.config import load_sweep_config
from wifitcp.errors import ConfigurationError
from wifitcp.logging_config import configure_logging
from wifitcp.sweep import run_sweep


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run a sweep from a YAML definition")
    parser.add_argument("config", type=Path, help="Sweep YAML file")
    parser.add_argument("--output", type=Path, default=None, help="Override the TSV output path")
    parser.add_argument("--workers", type=int, default=None)
    parser.add_argument("--log-level", default="INFO")
    parser.add_argument("--log-file", type=Path, default=None)
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    configure_logging(args.log_level, args.log_file)
    try:
        spec = load_sweep_config(args.config)
        overrides = {}
        if args.output is not None:
            overrides["output_path"] = args.output
        if args.workers is not None:
            overrides["workers"] = args.workers
        if overrides:
            spec = replace(spec, **overrides)
    except (ConfigurationError, FileNotFoundError) as exc:
        raise SystemExit(f"error: {exc}") from exc
    report = run_sweep(spec)
    if report.skipped:
        print(f"Skipped {len(report.skipped)} grid point(s); see the log for details", file=sys.stderr)


if __name__ == "__main__":
    main()
