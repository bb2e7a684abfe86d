import io

import pytest

from wifitcp.config import data_rate_sweep, phy_rate_sweep
from wifitcp.errors import EngineResourceError
from wifitcp.output import ConsoleSink, TabularFileSink
from wifitcp.results import TrialResult
from wifitcp.sweep import run_sweep


class RecordingSink:
    def __init__(self):
        self.header = None
        self.records = []
        self.closed = False

    def write_header(self, header):
        self.header = tuple(header)

    def write_record(self, record):
        self.records.append(record)

    def close(self):
        self.closed = True


def fake_trial(params, seeds):
    return TrialResult(
        parameters=params,
        bytes_received=params.station_count * 125_000,
        reached_time=params.horizon,
    )


def indexed_trial(params, seeds):
    """Deterministic stand-in whose byte count depends on the stream index it is handed."""

    index = seeds.next_streams().index
    return TrialResult(
        parameters=params,
        bytes_received=params.station_count * 125_000 + int(params.data_rate_bps // 1_000_000) * 1_000 + index,
        reached_time=params.horizon,
    )


class TestRunSweep:
    def test_phy_rate_grid_emits_every_point_in_order(self):
        sink = RecordingSink()
        calls = []

        def trial(params, seeds):
            # Every previous point must already be written when the next trial starts.
            assert len(sink.records) == len(calls)
            calls.append((params.station_count, params.phy_rate))
            return fake_trial(params, seeds)

        report = run_sweep(phy_rate_sweep(output_path=None), [sink], trial_fn=trial)

        assert report.completed == 200
        assert len(sink.records) == 200
        assert sink.header == ("nWifi", "phyRate", "throughput")
        expected = [
            (n, rate)
            for n in range(1, 51)
            for rate in ("DsssRate11Mbps", "DsssRate5_5Mbps", "DsssRate2Mbps", "DsssRate1Mbps")
        ]
        assert [(r.station_count, r.value) for r in sink.records] == expected
        assert calls == expected

    def test_records_carry_reduced_throughput(self):
        sink = RecordingSink()
        spec = data_rate_sweep(output_path=None, station_counts=(2,), values=("100Mbps",))
        report = run_sweep(spec, [sink], trial_fn=fake_trial)
        assert report.records[0].throughput == 2.0
        assert sink.records == report.records

    def test_fresh_parameters_per_point(self):
        seen = []

        def trial(params, seeds):
            seen.append(params)
            return fake_trial(params, seeds)

        spec = data_rate_sweep(output_path=None, station_counts=(1, 2), values=("100Mbps", "200Mbps"))
        run_sweep(spec, [RecordingSink()], trial_fn=trial)
        assert len({id(params) for params in seen}) == 4
        assert [p.data_rate for p in seen] == ["100Mbps", "200Mbps", "100Mbps", "200Mbps"]

    def test_invalid_point_is_skipped(self):
        sink = RecordingSink()
        spec = phy_rate_sweep(
            output_path=None,
            station_counts=(1, 2),
            values=("DsssRate11Mbps", "DsssRate54Mbps"),
        )
        report = run_sweep(spec, [sink], trial_fn=fake_trial)
        assert [(r.station_count, r.value) for r in sink.records] == [(1, "DsssRate11Mbps"), (2, "DsssRate11Mbps")]
        assert [(s.station_count, s.value) for s in report.skipped] == [(1, "DsssRate54Mbps"), (2, "DsssRate54Mbps")]

    def test_engine_failure_aborts_but_keeps_rows(self, tmp_path):
        path = tmp_path / "phyRate.dat"

        def trial(params, seeds):
            if params.station_count == 2:
                raise EngineResourceError("no more nodes")
            return fake_trial(params, seeds)

        spec = phy_rate_sweep(output_path=path, station_counts=(1, 2, 3), values=("DsssRate11Mbps",))
        sink = TabularFileSink(path)
        with pytest.raises(EngineResourceError):
            run_sweep(spec, [sink], trial_fn=trial)
        sink.close()
        assert path.read_text() == "nWifi\tphyRate\tthroughput\n1\tDsssRate11Mbps\t1\n"

    def test_reseed_each_trial_reuses_stream_index(self):
        indices = []

        def trial(params, seeds):
            indices.append(seeds.next_streams().index)
            return fake_trial(params, seeds)

        spec = data_rate_sweep(output_path=None, station_counts=(1, 2), values=("100Mbps",), reseed_each_trial=True)
        run_sweep(spec, [RecordingSink()], trial_fn=trial)
        assert indices == [0, 0]

    def test_streams_advance_without_reseed(self):
        indices = []

        def trial(params, seeds):
            indices.append(seeds.next_streams().index)
            return fake_trial(params, seeds)

        spec = data_rate_sweep(output_path=None, station_counts=(1, 2, 3), values=("100Mbps",))
        run_sweep(spec, [RecordingSink()], trial_fn=trial)
        assert indices == [0, 1, 2]

    def test_default_sinks_write_file_and_console(self, tmp_path, capsys):
        path = tmp_path / "dataRate.dat"
        spec = data_rate_sweep(output_path=path, station_counts=(1,), values=("100Mbps", "200Mbps"))
        run_sweep(spec, trial_fn=fake_trial)
        expected = "nWifi\tdataRate\tthroughput\n1\t100Mbps\t1\n1\t200Mbps\t1\n"
        assert path.read_text() == expected
        assert capsys.readouterr().out == expected


class TestSinks:
    def test_console_sink(self):
        stream = io.StringIO()
        sink = ConsoleSink(stream)
        spec = data_rate_sweep(output_path=None, station_counts=(3,), values=("100Mbps",))
        run_sweep(spec, [sink], trial_fn=lambda params, seeds: TrialResult(params, 531_640, params.horizon))
        assert stream.getvalue() == "nWifi\tdataRate\tthroughput\n3\t100Mbps\t4.25312\n"

    def test_file_sink_flushes_each_row(self, tmp_path):
        path = tmp_path / "out" / "phyRate.dat"
        sink = TabularFileSink(path)
        sink.write_header(("nWifi", "phyRate", "throughput"))
        assert path.read_text() == "nWifi\tphyRate\tthroughput\n"
        sink.close()


class TestParallelSweep:
    def run_both(self, make_spec):
        sequential = run_sweep(make_spec(workers=1), [RecordingSink()], trial_fn=indexed_trial)
        parallel = run_sweep(make_spec(workers=2), [RecordingSink()], trial_fn=indexed_trial)
        return sequential, parallel

    def test_parallel_matches_sequential(self):
        def make_spec(workers):
            return data_rate_sweep(
                output_path=None, station_counts=(1, 2, 3), values=("100Mbps", "200Mbps"), workers=workers
            )

        sequential, parallel = self.run_both(make_spec)
        assert sequential.completed == 6
        assert parallel.records == sequential.records

    def test_parallel_matches_sequential_with_reseed(self):
        def make_spec(workers):
            return data_rate_sweep(
                output_path=None,
                station_counts=(1, 2, 3),
                values=("100Mbps", "200Mbps"),
                reseed_each_trial=True,
                workers=workers,
            )

        sequential, parallel = self.run_both(make_spec)
        assert parallel.records == sequential.records

    def test_parallel_skips_the_same_points(self):
        def make_spec(workers):
            return phy_rate_sweep(
                output_path=None,
                station_counts=(1, 2, 3),
                values=("DsssRate11Mbps", "DsssRate54Mbps"),
                workers=workers,
            )

        sequential, parallel = self.run_both(make_spec)
        assert parallel.records == sequential.records
        assert parallel.skipped == sequential.skipped
        assert len(parallel.skipped) == 3
