import pytest

from wifitcp.config import TrialParameters
from wifitcp.engine import SimulationContext
from wifitcp.enums import TcpVariant
from wifitcp.errors import ConfigurationError, IncompleteTrialError
from wifitcp.metrics import reduce_throughput
from wifitcp.rng import SeedManager
from wifitcp.scenario import build_scenario, check_flows, flow_graph
from wifitcp.trial import run_experiment


class TestBuildScenario:
    def test_topology(self):
        scenario = build_scenario(TrialParameters(station_count=3), SeedManager())
        try:
            context = scenario.context
            assert len(scenario.stations) == 3
            assert [station.node_id for station in scenario.stations] == [0, 1, 2]
            assert scenario.access_point.node_id == 3
            assert [str(s.address) for s in scenario.stations] == [
                "192.168.1.1",
                "192.168.1.2",
                "192.168.1.3",
            ]
            assert str(scenario.access_point.address) == "192.168.1.4"
            assert context.position_of(scenario.stations[1]) == pytest.approx((5.0, 0.0))
            assert scenario.horizon == 2.0
            assert scenario.sink.total_rx == 0
        finally:
            scenario.context.reset()

    def test_access_point_sits_at_origin(self):
        scenario = build_scenario(TrialParameters(station_count=4), SeedManager())
        try:
            assert scenario.context.position_of(scenario.access_point) == pytest.approx((0.0, 0.0))
        finally:
            scenario.context.reset()

    def test_one_flow_per_station(self):
        scenario = build_scenario(TrialParameters(station_count=4), SeedManager())
        try:
            flows = scenario.flows
            ap = scenario.access_point.node_id
            assert flows.in_degree(ap) == 4
            assert flows.out_degree(ap) == 0
            assert all(flows.out_degree(station.node_id) == 1 for station in scenario.stations)
        finally:
            scenario.context.reset()

    def test_invalid_phy_rate_never_opens_a_context(self):
        with pytest.raises(ConfigurationError):
            build_scenario(TrialParameters(phy_rate="DsssRate3Mbps"))
        assert SimulationContext.active() is None


class TestFlowGraph:
    class FakeNode:
        def __init__(self, node_id):
            self.node_id = node_id

    def test_edges_point_at_access_point(self):
        ap = self.FakeNode(2)
        graph = flow_graph(ap, [self.FakeNode(0), self.FakeNode(1)])
        assert sorted(graph.edges) == [(0, 2), (1, 2)]
        assert graph.edges[0, 2]["port"] == 50000
        check_flows(graph, ap)

    def test_access_point_must_not_send(self):
        ap = self.FakeNode(1)
        graph = flow_graph(ap, [self.FakeNode(0)])
        graph.add_edge(1, 0)
        with pytest.raises(ConfigurationError, match="access point must not send"):
            check_flows(graph, ap)

    def test_station_with_two_flows(self):
        ap = self.FakeNode(2)
        graph = flow_graph(ap, [self.FakeNode(0), self.FakeNode(1)])
        graph.add_edge(0, 1)
        with pytest.raises(ConfigurationError, match="exactly one flow"):
            check_flows(graph, ap)


class TestRunTrial:
    def test_single_station_at_11mbps(self):
        params = TrialParameters(station_count=1, payload_size=1024, data_rate="100Mbps", phy_rate="DsssRate11Mbps")
        result = run_experiment(params, SeedManager())
        throughput = reduce_throughput(result)
        assert 0 < throughput < 11
        assert result.reached_time == pytest.approx(params.horizon)

    def test_offered_load_caps_throughput(self):
        params = TrialParameters(station_count=1, data_rate="1Mbps", simulation_time=1.0)
        result = run_experiment(params, SeedManager())
        assert reduce_throughput(result) <= 1.0

    def test_context_released_after_trial(self):
        run_experiment(TrialParameters(station_count=1, simulation_time=0.2), SeedManager())
        assert SimulationContext.active() is None

    def test_incomplete_trial(self):
        params = TrialParameters(station_count=1, simulation_time=0.2)
        with pytest.raises(IncompleteTrialError):
            run_experiment(params, SeedManager(), time_limit=0.5)
        assert SimulationContext.active() is None

    def test_pcap_files(self, tmp_path):
        params = TrialParameters(station_count=1, simulation_time=0.2, pcap_tracing=True)
        run_experiment(params, SeedManager(), pcap_directory=tmp_path)
        assert (tmp_path / "AccessPoint-1-0.pcap").exists()
        assert (tmp_path / "Station-0-0.pcap").exists()

    @pytest.mark.parametrize("variant", [variant.value for variant in TcpVariant])
    def test_every_variant_runs(self, variant):
        params = TrialParameters(station_count=1, simulation_time=0.3, tcp_variant=variant)
        result = run_experiment(params, SeedManager())
        assert result.bytes_received > 0
        assert SimulationContext.active() is None


class TestReproducibility:
    def test_reset_random_state_reproduces_bytes(self):
        params = TrialParameters(station_count=2, simulation_time=0.5)
        seeds = SeedManager()
        first = run_experiment(params, seeds)
        seeds.reset()
        second = run_experiment(params, seeds)
        assert first.bytes_received == second.bytes_received

    def test_without_reset_streams_advance(self):
        params = TrialParameters(station_count=2)
        seeds = SeedManager()
        first = build_scenario(params, seeds)
        first_block = first.context.streams.first_stream
        first.context.reset()
        second = build_scenario(params, seeds)
        second_block = second.context.streams.first_stream
        second.context.reset()
        assert second.context.streams.index == first.context.streams.index + 1
        assert second_block > first_block
