import pytest

from wifitcp.engine import SimulationContext


@pytest.fixture(autouse=True)
def release_simulation_context():
    yield
    context = SimulationContext.active()
    if context is not None:
        context.reset()
