"""Single-trial TCP throughput experiment over an 802.11b BSS.

``--nWifi`` stations each run one bulk TCP flow to a packet sink on the access
point. The stations start sending after a one second warm-up and the sink's
byte count at the stop time is reported as the mean throughput over
``--simulationTime`` seconds.
"""

from __future__ import annotations

import argparse
from pathlib import Path

from wifitcp.config import TrialParameters
from wifitcp.logging_config import configure_logging
from wifitcp.metrics import format_throughput, reduce_throughput
from wifitcp.rng import SeedManager
from wifitcp.trial import run_experiment


def parse_args() -> argparse.Namespace:
    defaults = TrialParameters()
    parser = argparse.ArgumentParser(description="TCP throughput over 802.11b")
    parser.add_argument("--nWifi", type=int, default=defaults.station_count, help="Number of stations")
    parser.add_argument("--payloadSize", type=int, default=defaults.payload_size, help="Payload size in bytes")
    parser.add_argument("--dataRate", default=defaults.data_rate, help="Application data rate")
    parser.add_argument(
        "--tcpVariant",
        default=defaults.tcp_variant,
        help="Transport protocol to use: TcpTahoe, TcpReno, TcpNewReno, TcpWestwood, TcpWestwoodPlus",
    )
    parser.add_argument("--phyRate", default=defaults.phy_rate, help="Physical layer bitrate")
    parser.add_argument(
        "--simulationTime", type=float, default=defaults.simulation_time, help="Simulation time in seconds"
    )
    parser.add_argument("--pcap", action="store_true", help="Enable/disable PCAP tracing")
    parser.add_argument("--pcap-dir", type=Path, default=Path("."), help="Directory for PCAP files")
    parser.add_argument("--seed", type=int, default=1, help="Random seed")
    parser.add_argument("--run", type=int, default=1, help="Run number within the seed")
    parser.add_argument("--log-level", default="WARNING")
    parser.add_argument("--log-file", type=Path, default=None)
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    configure_logging(args.log_level, args.log_file)
    try:
        params = TrialParameters(
            station_count=args.nWifi,
            payload_size=args.payloadSize,
            data_rate=args.dataRate,
            phy_rate=args.phyRate,
            simulation_time=args.simulationTime,
            tcp_variant=args.tcpVariant,
            pcap_tracing=args.pcap,
        )
        seeds = SeedManager(args.seed, args.run)
    except ValueError as exc:
        raise SystemExit(f"error: {exc}") from exc

    result = run_experiment(params, seeds, pcap_directory=args.pcap_dir)
    print(f"Throughput: {format_throughput(reduce_throughput(result))} Mbit/s")


if __name__ == "__main__":
    main()
