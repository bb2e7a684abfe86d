import pytest

from wifitcp.config import TrialParameters
from wifitcp.metrics import format_throughput, reduce_throughput, throughput_mbps
from wifitcp.results import TrialResult


def make_result(bytes_received, simulation_time=1.0):
    params = TrialParameters(simulation_time=simulation_time)
    return TrialResult(parameters=params, bytes_received=bytes_received, reached_time=params.horizon)


class TestReduceThroughput:
    def test_hundred_megabits(self):
        assert reduce_throughput(make_result(12_500_000)) == 100.0

    def test_zero_bytes(self):
        assert reduce_throughput(make_result(0)) == 0.0

    def test_uses_nominal_window(self):
        assert reduce_throughput(make_result(1_250_000, simulation_time=2.0)) == 5.0

    def test_no_rounding(self):
        assert reduce_throughput(make_result(1)) == 8e-6

    def test_invalid_window(self):
        with pytest.raises(ValueError, match="window"):
            throughput_mbps(100, 0)

    def test_negative_bytes_rejected(self):
        with pytest.raises(ValueError, match="negative"):
            make_result(-1)


class TestFormatThroughput:
    def test_integral_value(self):
        assert format_throughput(100.0) == "100"

    def test_six_significant_digits(self):
        assert format_throughput(4.2531249) == "4.25312"

    def test_zero(self):
        assert format_throughput(0.0) == "0"
