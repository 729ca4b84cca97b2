import pytest

from spaceflight.core.config import SimulationConfig
from spaceflight.core.simulator import Simulator
from spaceflight.core.vehicle import Vehicle
from spaceflight.environment.catalog import solar_system
from spaceflight.scenarios.vehicles import circular_orbit_state, two_stage_blueprint


@pytest.fixture(scope="session")
def registry():
    return solar_system()


@pytest.fixture
def blueprint():
    return two_stage_blueprint()


@pytest.fixture
def graph(blueprint):
    return blueprint.build_graph()


@pytest.fixture
def leo_state(registry):
    return circular_orbit_state(registry.get('earth'), 400e3)


@pytest.fixture
def leo_vehicle(blueprint, leo_state):
    position, velocity = leo_state
    return Vehicle.from_blueprint('leo', blueprint, 'earth', position, velocity)


@pytest.fixture
def sim_config():
    return SimulationConfig(
        duration_seconds=20.0,
        time_step_seconds=0.1,
        output_rate_hz=10.0,
        max_workers=1,
        verbose=False,
    )


@pytest.fixture
def simulator(registry, sim_config):
    sim = Simulator(registry=registry, config=sim_config)
    yield sim
    sim.close()
