"""Builds the single-BSS scenario for one trial."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Sequence

import networkx as nx

from . import constants as c
from .applications import ByteCounterSource, OnOffSpec, PacketSinkSpec
from .config import LayoutSpec, TrialParameters, WifiConfig
from .engine import Node, SimulationContext
from .enums import NodeRole
from .errors import ConfigurationError
from .rng import SeedManager

logger = logging.getLogger(__name__)

# Shared by every trial that is not handed its own manager, so successive
# trials in one process draw successive random streams.
DEFAULT_SEEDS = SeedManager()


def flow_graph(access_point: Node, stations: Sequence[Node]) -> nx.DiGraph:
    """One TCP flow per station, every flow ending at the access point's sink."""

    graph = nx.DiGraph()
    graph.add_node(access_point.node_id, node=access_point)
    for station in stations:
        graph.add_node(station.node_id, node=station)
        graph.add_edge(station.node_id, access_point.node_id, port=c.SINK_PORT)
    return graph


def check_flows(graph: nx.DiGraph, access_point: Node) -> None:
    senders = [node for node in graph.nodes if node != access_point.node_id]
    if graph.out_degree(access_point.node_id) != 0:
        raise ConfigurationError("the access point must not send")
    for sender in senders:
        if list(graph.successors(sender)) != [access_point.node_id]:
            raise ConfigurationError(f"station {sender} must send exactly one flow to the access point")


@dataclass
class Scenario:
    parameters: TrialParameters
    context: SimulationContext
    access_point: Node
    stations: List[Node]
    sink: ByteCounterSource
    flows: nx.DiGraph

    @property
    def horizon(self) -> float:
        return self.parameters.horizon


def build_scenario(
    params: TrialParameters,
    seeds: SeedManager | None = None,
    layout: LayoutSpec | None = None,
    pcap_directory: Path = Path("."),
    time_limit: float | None = None,
) -> Scenario:
    """Create ``station_count`` stations and one AP, each station sending to the AP's sink.

    Opens a new simulation context; it is released by the trial runner, or
    here if construction fails.
    """

    wifi = WifiConfig(phy_rate=params.phy)
    layout = layout or LayoutSpec()
    variant = params.tcp
    seeds = seeds if seeds is not None else DEFAULT_SEEDS

    context = SimulationContext(seeds.next_streams(), time_limit=time_limit)
    try:
        context.configure_transport(params.payload_size, variant)
        stations = context.create_nodes(params.station_count, NodeRole.STATION)
        access_point = context.create_nodes(1, NodeRole.ACCESS_POINT)[0]
        context.configure_wifi(wifi, [access_point], stations)
        context.place_nodes(stations, layout)
        context.place_nodes([access_point], layout, mobile=False)
        addresses = context.assign_addresses(stations + [access_point], c.SUBNET)
        sink_address = addresses[-1]

        flows = flow_graph(access_point, stations)
        check_flows(flows, access_point)

        sink = context.install_application(
            access_point, PacketSinkSpec(port=c.SINK_PORT), 0.0, params.horizon
        )
        for source, _, port in flows.in_edges(access_point.node_id, data="port"):
            sender = OnOffSpec(
                remote=sink_address,
                port=port,
                packet_size=params.payload_size,
                data_rate_bps=params.data_rate_bps,
                on_time=1.0,
                off_time=0.0,
            )
            context.install_application(
                flows.nodes[source]["node"], sender, c.WARMUP_OFFSET_S, params.horizon
            )

        if params.pcap_tracing:
            context.enable_pcap(pcap_directory, [access_point] + stations)
    except Exception:
        context.reset()
        raise

    logger.debug(
        "scenario built: %d stations, %s, %s, %s as %s, stream index %d",
        params.station_count, params.phy_rate, params.data_rate,
        variant.value, variant.type_id, context.streams.index,
    )
    return Scenario(
        parameters=params,
        context=context,
        access_point=access_point,
        stations=stations,
        sink=sink,
        flows=flows,
    )
