"""Owned handle over the ns-3 simulator and the helpers one trial needs.

A ``SimulationContext`` seeds the simulator, builds nodes, the 802.11b BSS,
mobility, addressing and applications through the ns-3 helpers, runs the
event loop and tears it down again. ns-3 keeps its simulator, node list and
configuration defaults in process-wide singletons, so only one context may be
alive per process; ``reset()`` destroys the simulator and releases the slot.
"""

from __future__ import annotations

import ipaddress
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Sequence

from ns import ns

from . import constants as c
from .applications import (
    ApplicationSpec,
    ByteCounterSource,
    InstalledApplication,
    OnOffSpec,
    PacketSinkSpec,
    SinkCounter,
)
from .config import LayoutSpec, WifiConfig
from .enums import NodeRole, TcpVariant
from .errors import ConfigurationError, EngineContextError, EngineResourceError
from .rng import RandomStreams, SeedManager

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class Node:
    """One ns-3 node plus what the harness needs to know about it."""

    node_id: int
    role: NodeRole
    handle: Any
    device: Any = None
    address: ipaddress.IPv4Address | None = None
    has_stack: bool = False

    @property
    def is_access_point(self) -> bool:
        return self.role is NodeRole.ACCESS_POINT

    def __repr__(self) -> str:
        return f"Node({self.node_id}, {self.role.value})"


@dataclass
class _Subnet:
    helper: Any
    network: ipaddress.IPv4Network
    assigned: int = 0

    @property
    def free(self) -> int:
        return max(self.network.num_addresses - 2, 0) - self.assigned


def _container(nodes: Sequence[Node]) -> Any:
    container = ns.NodeContainer()
    for node in nodes:
        container.Add(node.handle)
    return container


def _devices(nodes: Sequence[Node]) -> Any:
    devices = ns.NetDeviceContainer()
    for node in nodes:
        devices.Add(node.device)
    return devices


def _constant(value: float) -> Any:
    return ns.StringValue(f"ns3::ConstantRandomVariable[Constant={value:g}]")


class SimulationContext:
    _active: SimulationContext | None = None

    def __init__(self, streams: RandomStreams | None = None, time_limit: float | None = None) -> None:
        if SimulationContext._active is not None:
            raise EngineContextError("another simulation context is still alive; reset() it first")
        if time_limit is not None and time_limit < 0:
            raise ValueError("time_limit must be non-negative")
        SimulationContext._active = self
        self.streams = streams if streams is not None else SeedManager().next_streams()
        self.time_limit = time_limit
        self.released = False
        self.nodes: List[Node] = []
        self._phy: Any = None
        self._subnets: Dict[str, _Subnet] = {}
        self._applications: List[Any] = []
        ns.RngSeedManager.SetSeed(self.streams.seed)
        ns.RngSeedManager.SetRun(self.streams.run)

    @classmethod
    def active(cls) -> SimulationContext | None:
        return cls._active

    def __enter__(self) -> SimulationContext:
        return self

    def __exit__(self, *exc_info) -> None:
        self.reset()

    def _check_alive(self) -> None:
        if self.released:
            raise EngineContextError("simulation context has been reset")

    @property
    def now(self) -> float:
        self._check_alive()
        return ns.Simulator.Now().GetSeconds()

    def run_until(self, stop_time: float) -> float:
        """Run the event loop up to ``stop_time``; returns the simulated time reached.

        The returned time is below ``stop_time`` only when ``time_limit`` cut
        the run short.
        """

        self._check_alive()
        now = self.now
        if stop_time < now:
            raise ValueError(f"cannot run to {stop_time}s, clock is at {now}s")
        target = stop_time if self.time_limit is None else min(stop_time, self.time_limit)
        if target < stop_time:
            logger.warning("time limit %.6fs is below the stop time %.6fs", target, stop_time)
        ns.Simulator.Stop(ns.Seconds(max(target - now, 0.0)))
        ns.Simulator.Run()
        return self.now

    # Topology

    def create_nodes(self, count: int, role: NodeRole) -> List[Node]:
        self._check_alive()
        if count < 0:
            raise ValueError("node count must be non-negative")
        if len(self.nodes) + count > c.MAX_NODES:
            raise EngineResourceError(
                f"cannot create {count} more nodes; capacity is {c.MAX_NODES}, {len(self.nodes)} in use"
            )
        container = ns.NodeContainer()
        container.Create(count)
        created = []
        for index in range(count):
            handle = container.Get(index)
            created.append(Node(int(handle.GetId()), role, handle))
        self.nodes.extend(created)
        return created

    def configure_transport(self, segment_size: int, variant: TcpVariant) -> None:
        """Set the TCP defaults picked up by every stack installed afterwards."""

        self._check_alive()
        ns.Config.SetDefault("ns3::TcpSocket::SegmentSize", ns.UintegerValue(segment_size))
        ns.Config.SetDefault(
            "ns3::TcpL4Protocol::SocketType", ns.TypeIdValue(ns.TypeId.LookupByName(variant.type_id))
        )

    def configure_wifi(self, config: WifiConfig, access_points: Sequence[Node], stations: Sequence[Node]) -> None:
        self._check_alive()
        ns.Config.SetDefault(
            "ns3::WifiRemoteStationManager::FragmentationThreshold",
            ns.StringValue(str(config.fragmentation_threshold)),
        )
        ns.Config.SetDefault(
            "ns3::WifiRemoteStationManager::RtsCtsThreshold", ns.StringValue(str(config.rts_cts_threshold))
        )

        channel_helper = ns.YansWifiChannelHelper()
        channel_helper.SetPropagationDelay("ns3::ConstantSpeedPropagationDelayModel")
        channel_helper.AddPropagationLoss(
            "ns3::FriisPropagationLossModel", "Frequency", ns.DoubleValue(config.frequency_hz)
        )
        channel = channel_helper.Create()

        phy = ns.YansWifiPhyHelper()
        phy.SetChannel(channel)
        phy.Set("TxPowerStart", ns.DoubleValue(config.tx_power_dbm))
        phy.Set("TxPowerEnd", ns.DoubleValue(config.tx_power_dbm))
        phy.Set("TxPowerLevels", ns.UintegerValue(1))
        phy.Set("TxGain", ns.DoubleValue(config.tx_gain_db))
        phy.Set("RxGain", ns.DoubleValue(config.rx_gain_db))
        phy.Set("RxNoiseFigure", ns.DoubleValue(config.rx_noise_figure_db))
        phy.Set("CcaEdThreshold", ns.DoubleValue(config.cca_threshold_dbm))
        phy.Set("RxSensitivity", ns.DoubleValue(config.energy_detection_threshold_dbm))
        phy.SetErrorRateModel("ns3::YansErrorRateModel")

        wifi = ns.WifiHelper()
        wifi.SetStandard(ns.WIFI_STANDARD_80211b)
        mode = config.phy_rate.value
        wifi.SetRemoteStationManager(
            "ns3::ConstantRateWifiManager", "DataMode", ns.StringValue(mode), "ControlMode", ns.StringValue(mode)
        )

        ssid = ns.Ssid(config.ssid)
        mac = ns.WifiMacHelper()
        mac.SetType("ns3::ApWifiMac", "Ssid", ns.SsidValue(ssid))
        ap_devices = wifi.Install(phy, mac, _container(access_points))
        mac.SetType(
            "ns3::StaWifiMac", "Ssid", ns.SsidValue(ssid), "ActiveProbing", ns.BooleanValue(config.active_probing)
        )
        sta_devices = wifi.Install(phy, mac, _container(stations))

        for devices, nodes in ((ap_devices, access_points), (sta_devices, stations)):
            for index, node in enumerate(nodes):
                node.device = devices.Get(index)
            self.streams.assign(lambda first: wifi.AssignStreams(devices, first))
        self.streams.assign(lambda first: channel_helper.AssignStreams(channel, first))
        self._phy = phy
        logger.debug(
            "BSS %r: %d access points, %d stations at %s", config.ssid, len(access_points), len(stations), mode
        )

    def place_nodes(self, nodes: Sequence[Node], layout: LayoutSpec, mobile: bool = True) -> None:
        """Put ``nodes`` on the grid in order; mobile nodes start a random-direction walk."""

        self._check_alive()
        mobility = ns.MobilityHelper()
        mobility.SetPositionAllocator(
            "ns3::GridPositionAllocator",
            "MinX", ns.DoubleValue(layout.min_x),
            "MinY", ns.DoubleValue(layout.min_y),
            "DeltaX", ns.DoubleValue(layout.delta_x),
            "DeltaY", ns.DoubleValue(layout.delta_y),
            "GridWidth", ns.UintegerValue(layout.grid_width),
            "LayoutType", ns.StringValue("RowFirst" if layout.row_first else "ColumnFirst"),
        )
        if mobile:
            x_min, x_max, y_min, y_max = layout.bounds
            mobility.SetMobilityModel(
                "ns3::RandomDirection2dMobilityModel",
                "Bounds", ns.RectangleValue(ns.Rectangle(x_min, x_max, y_min, y_max)),
                "Speed", _constant(layout.speed),
                "Pause", _constant(layout.pause),
            )
        else:
            mobility.SetMobilityModel("ns3::ConstantPositionMobilityModel")
        container = _container(nodes)
        mobility.Install(container)
        self.streams.assign(lambda first: mobility.AssignStreams(container, first))

    def position_of(self, node: Node) -> tuple[float, float]:
        self._check_alive()
        position = node.handle.GetObject[ns.MobilityModel]().GetPosition()
        return (position.x, position.y)

    def assign_addresses(self, nodes: Sequence[Node], subnet: str = c.SUBNET) -> List[ipaddress.IPv4Address]:
        """Install the internet stack where missing and number ``nodes`` in order.

        Addresses come from ``subnet`` starting at its first host, continuing
        where an earlier call on the same subnet stopped.
        """

        self._check_alive()
        missing = [node for node in nodes if node.device is None]
        if missing:
            raise EngineResourceError(f"{missing[0]!r} has no network device to address")
        pool = self._subnets.get(subnet)
        if pool is None:
            try:
                network = ipaddress.IPv4Network(subnet)
            except ValueError as exc:
                raise ConfigurationError(f"invalid subnet {subnet!r}: {exc}") from None
            helper = ns.Ipv4AddressHelper()
            helper.SetBase(ns.Ipv4Address(str(network.network_address)), ns.Ipv4Mask(str(network.netmask)))
            pool = self._subnets[subnet] = _Subnet(helper, network)
        if len(nodes) > pool.free:
            raise EngineResourceError(
                f"subnet {subnet} has {pool.free} free host addresses, {len(nodes)} requested"
            )

        bare = [node for node in nodes if not node.has_stack]
        if bare:
            stack = ns.InternetStackHelper()
            container = _container(bare)
            stack.Install(container)
            self.streams.assign(lambda first: stack.AssignStreams(container, first))
            for node in bare:
                node.has_stack = True

        # The helper hands out hosts in device order from the first one.
        pool.helper.Assign(_devices(nodes))
        addresses = []
        for offset, node in enumerate(nodes, start=pool.assigned + 1):
            node.address = pool.network.network_address + offset
            addresses.append(node.address)
        pool.assigned += len(nodes)
        ns.Ipv4GlobalRoutingHelper.PopulateRoutingTables()
        return addresses

    # Applications

    def install_application(self, node: Node, spec: ApplicationSpec, start: float, stop: float) -> Any:
        """Install and schedule an application; a sink is returned as its byte counter."""

        self._check_alive()
        if stop < start:
            raise ValueError("application stop time precedes its start time")
        if isinstance(spec, PacketSinkSpec):
            local = ns.InetSocketAddress(ns.Ipv4Address.GetAny(), spec.port).ConvertTo()
            helper = ns.PacketSinkHelper("ns3::TcpSocketFactory", local)
        elif isinstance(spec, OnOffSpec):
            remote = ns.InetSocketAddress(ns.Ipv4Address(str(spec.remote)), spec.port).ConvertTo()
            helper = ns.OnOffHelper("ns3::TcpSocketFactory", remote)
            helper.SetAttribute("OnTime", _constant(spec.on_time))
            helper.SetAttribute("OffTime", _constant(spec.off_time))
            helper.SetAttribute("PacketSize", ns.UintegerValue(spec.packet_size))
            helper.SetAttribute("DataRate", ns.DataRateValue(ns.DataRate(int(spec.data_rate_bps))))
        else:
            raise TypeError(f"unsupported application spec {type(spec).__name__}")

        applications = helper.Install(node.handle)
        applications.Start(ns.Seconds(start))
        applications.Stop(ns.Seconds(stop))
        if isinstance(spec, OnOffSpec):
            container = _container([node])
            self.streams.assign(lambda first: helper.AssignStreams(container, first))
        self._applications.append(applications)
        if isinstance(spec, PacketSinkSpec):
            return SinkCounter(applications)
        return InstalledApplication(applications, spec)

    def read_counter(self, handle: ByteCounterSource) -> int:
        self._check_alive()
        return handle.total_rx

    def enable_pcap(self, directory: Path, nodes: Sequence[Node]) -> List[Path]:
        """Trace every frame seen by the nodes' radios, with radiotap headers.

        Files are named ``AccessPoint-<node>-<device>.pcap`` and
        ``Station-<node>-<device>.pcap`` inside ``directory``.
        """

        self._check_alive()
        if self._phy is None:
            raise EngineResourceError("pcap tracing needs configure_wifi() first")
        directory = Path(directory)
        directory.mkdir(parents=True, exist_ok=True)
        self._phy.SetPcapDataLinkType(ns.WifiPhyHelper.DLT_IEEE802_11_RADIO)
        paths = []
        for prefix, members in (
            ("AccessPoint", [node for node in nodes if node.is_access_point]),
            ("Station", [node for node in nodes if not node.is_access_point]),
        ):
            if members:
                self._phy.EnablePcap(str(directory / prefix), _devices(members))
                paths.extend(directory / f"{prefix}-{node.node_id}-0.pcap" for node in members)
        return paths

    # Teardown

    def reset(self) -> None:
        """Destroy the simulator and release the process-wide slot."""

        if self.released:
            return
        self._applications.clear()
        self.nodes.clear()
        self._phy = None
        self._subnets.clear()
        ns.Simulator.Destroy()
        self.released = True
        if SimulationContext._active is self:
            SimulationContext._active = None
        logger.debug("simulation context %d released, %d streams used", self.streams.index, self.streams.used)
