from datetime import datetime

import numpy as np
import pytest

from spaceflight.core.config import WarpParameters
from spaceflight.core.errors import ConfigurationError, InvalidWarpFactorError, UnsafeWarpContextError
from spaceflight.core.time_manager import Regime, SimulationClock
from spaceflight.core.time_warp import TimeWarpScheduler, WarpSafetyContext


def test_clock_is_monotonic():
    clock = SimulationClock()
    clock.advance(1.5)
    assert clock.elapsed_seconds == 1.5
    assert clock.step_count == 1
    with pytest.raises(ValueError):
        clock.advance(0.0)
    with pytest.raises(ValueError):
        clock.advance(-1.0)
    assert clock.elapsed_seconds == 1.5


def test_clock_julian_date():
    clock = SimulationClock(start_time=datetime(2000, 1, 1, 12, 0, 0))
    assert clock.julian_date == 2451545.0
    clock.advance(86400.0)
    assert np.isclose(clock.julian_date, 2451546.0)
    assert np.isclose(clock.modified_julian_date, 51545.5)
    assert clock.jd_to_datetime(2451546.0) == datetime(2000, 1, 2, 12, 0, 0)


def test_regime_follows_factor():
    scheduler = TimeWarpScheduler()
    assert scheduler.regime is Regime.INTEGRATED
    scheduler.request(100.0, WarpSafetyContext())
    assert scheduler.regime is Regime.ON_RAILS
    assert scheduler.clock.warp_factor == 100.0
    scheduler.drop_to_realtime("test")
    assert scheduler.regime is Regime.INTEGRATED


def test_factor_not_on_ladder():
    scheduler = TimeWarpScheduler()
    with pytest.raises(InvalidWarpFactorError):
        scheduler.request(7.0, WarpSafetyContext())
    assert scheduler.factor == 1.0


@pytest.mark.parametrize("context, reason", [
    (WarpSafetyContext(thrusting=True), "thrusting"),
    (WarpSafetyContext(in_atmosphere=True), "atmosphere"),
    (WarpSafetyContext(nearest_vehicle_m=100.0), "100 m away"),
])
def test_unsafe_context_refused(context, reason):
    scheduler = TimeWarpScheduler()
    with pytest.raises(UnsafeWarpContextError) as info:
        scheduler.request(1000.0, context)
    assert any(reason in r for r in info.value.reasons)
    assert info.value.error_code == 'UnsafeContext'
    assert scheduler.factor == 1.0
    assert scheduler.history == []


def test_realtime_always_allowed():
    scheduler = TimeWarpScheduler()
    scheduler.request(50.0, WarpSafetyContext())
    change = scheduler.request(1.0, WarpSafetyContext(thrusting=True, in_atmosphere=True))
    assert change.to_factor == 1.0
    assert scheduler.request(1.0) is None


def test_step_up_and_down_walk_the_ladder():
    scheduler = TimeWarpScheduler()
    for expected in (5.0, 10.0, 50.0):
        scheduler.step_up(WarpSafetyContext())
        assert scheduler.factor == expected
    scheduler.step_down()
    assert scheduler.factor == 10.0

    assert TimeWarpScheduler().step_down() is None

    top = TimeWarpScheduler()
    top.request(top.ladder[-1], WarpSafetyContext())
    assert top.step_up(WarpSafetyContext()) is None


def test_custom_ladder_validation():
    with pytest.raises(ConfigurationError):
        WarpParameters(ladder=(2.0, 4.0))
    with pytest.raises(ConfigurationError):
        WarpParameters(ladder=(1.0, 10.0, 5.0))

    scheduler = TimeWarpScheduler(WarpParameters(ladder=(1, 2, 4)))
    scheduler.request(4, WarpSafetyContext())
    assert scheduler.factor == 4.0
