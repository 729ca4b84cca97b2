import numpy as np
import pytest

from spaceflight.orbits.kepler import (
    OrbitalElements,
    elements_from_state,
    solve_kepler,
    specific_energy,
    sphere_of_influence,
    state_from_elements,
)

MU_EARTH = 3.986004418e14


def _round_trip(position, velocity, t0=0.0, t1=0.0):
    elements = elements_from_state(position, velocity, MU_EARTH, epoch_s=t0)
    return elements, state_from_elements(elements, MU_EARTH, t1)


def test_solve_kepler_satisfies_equation():
    for e in (0.0, 0.1, 0.5, 0.9, 0.99):
        for M in np.linspace(0.0, 2 * np.pi, 13):
            E = solve_kepler(M, e)
            assert np.isclose(E - e * np.sin(E), np.mod(M, 2 * np.pi), atol=1e-10)


@pytest.mark.parametrize("position, velocity", [
    # circular equatorial
    ([7.0e6, 0.0, 0.0], [0.0, 7546.05, 0.0]),
    # inclined eccentric
    ([7.0e6, 1.0e6, 5.0e5], [-1000.0, 7000.0, 2000.0]),
    # retrograde
    ([0.0, 8.0e6, 0.0], [7000.0, 0.0, 100.0]),
    # hyperbolic
    ([7.0e6, 0.0, 0.0], [0.0, 12000.0, 500.0]),
])
def test_state_elements_round_trip(position, velocity):
    _, (r, v) = _round_trip(position, velocity)
    assert np.allclose(r, position, rtol=0.0, atol=1e-2)
    assert np.allclose(v, velocity, rtol=0.0, atol=1e-5)


def test_circular_orbit_has_zero_eccentricity():
    r = 7.0e6
    v = np.sqrt(MU_EARTH / r)
    elements = elements_from_state([r, 0, 0], [0, v, 0], MU_EARTH)
    assert elements.eccentricity == 0.0
    assert np.isclose(elements.semi_major_axis_m, r)
    assert np.isclose(elements.inclination_rad, 0.0)


def test_retrograde_inclination():
    elements = elements_from_state([7.0e6, 0, 0], [0, -7500.0, 0], MU_EARTH)
    assert np.isclose(elements.inclination_rad, np.pi)


def test_hyperbolic_has_negative_semi_major_axis():
    elements = elements_from_state([7.0e6, 0, 0], [0, 12000.0, 0], MU_EARTH)
    assert elements.eccentricity > 1.0
    assert elements.semi_major_axis_m < 0.0
    assert elements.period(MU_EARTH) == float('inf')
    assert elements.apoapsis_m == float('inf')


def test_one_period_returns_to_start():
    position = np.array([7.0e6, 1.0e6, 5.0e5])
    velocity = np.array([-1000.0, 7000.0, 2000.0])
    elements = elements_from_state(position, velocity, MU_EARTH)
    r, v = state_from_elements(elements, MU_EARTH, elements.period(MU_EARTH))
    assert np.allclose(r, position, rtol=0.0, atol=0.1)
    assert np.allclose(v, velocity, rtol=0.0, atol=1e-4)


def test_propagation_conserves_energy():
    position = np.array([7.0e6, 0.0, 0.0])
    velocity = np.array([0.0, 8500.0, 1000.0])
    elements = elements_from_state(position, velocity, MU_EARTH)
    energy0 = specific_energy(position, velocity, MU_EARTH)
    for t in (600.0, 3600.0, 10000.0):
        r, v = state_from_elements(elements, MU_EARTH, t)
        assert np.isclose(specific_energy(r, v, MU_EARTH), energy0, rtol=1e-10)


def test_at_epoch_moves_mean_anomaly():
    elements = OrbitalElements.from_degrees(7.0e6, 0.1, 30.0)
    moved = elements.at_epoch(MU_EARTH, 1000.0)
    r1, _ = state_from_elements(elements, MU_EARTH, 1500.0)
    r2, _ = state_from_elements(moved, MU_EARTH, 1500.0)
    assert np.allclose(r1, r2, atol=1e-4)


def test_radial_and_parabolic_states_are_rejected():
    with pytest.raises(ValueError):
        elements_from_state([7.0e6, 0, 0], [1000.0, 0, 0], MU_EARTH)

    r = 7.0e6
    v_escape = np.sqrt(2 * MU_EARTH / r)
    with pytest.raises(ValueError):
        elements_from_state([r, 0, 0], [0, v_escape, 0], MU_EARTH)


def test_sphere_of_influence_of_the_moon():
    soi = sphere_of_influence(384.4e6, 7.342e22, 5.97237e24)
    assert 6.5e7 < soi < 6.7e7
