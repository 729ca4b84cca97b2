import numpy as np
import pytest

from spaceflight.dynamics.integrators import (
    LeapfrogIntegrator,
    RK4Integrator,
    RK45Integrator,
    create_integrator,
)


def _oscillator(t, y):
    """Unit harmonic oscillator in 3D plus a linearly draining extra component."""
    dy = np.zeros_like(y)
    dy[0:3] = y[3:6]
    dy[3:6] = -y[0:3]
    dy[6:] = -1.0
    return dy


def _exact(y0, t):
    r = y0[0:3] * np.cos(t) + y0[3:6] * np.sin(t)
    v = -y0[0:3] * np.sin(t) + y0[3:6] * np.cos(t)
    return np.concatenate([r, v, y0[6:] - t])


Y0 = np.array([1.0, 0.0, 0.0, 0.0, 1.0, 0.5, 10.0])


def test_rk4_advance_matches_closed_form():
    integrator = RK4Integrator(_oscillator, max_step=0.01)
    y = integrator.advance(0.0, Y0, 2 * np.pi)
    assert np.allclose(y, _exact(Y0, 2 * np.pi), atol=1e-8)


def test_rk4_advance_zero_duration_returns_copy():
    integrator = RK4Integrator(_oscillator)
    y = integrator.advance(0.0, Y0, 0.0)
    assert np.array_equal(y, Y0)
    assert y is not Y0


def test_rk45_lands_exactly_on_end_time():
    integrator = RK45Integrator(_oscillator, rtol=1e-10, atol=1e-12, dt_max=0.5)
    times, states = integrator.integrate(0.0, Y0, 3.0, dt_initial=0.1)
    assert times[-1] == pytest.approx(3.0, abs=1e-12)
    assert np.allclose(states[-1], _exact(Y0, 3.0), atol=1e-7)
    assert np.all(np.diff(times) > 0)


def test_leapfrog_bounds_energy_and_drains_extra_state():
    integrator = LeapfrogIntegrator(_oscillator, max_step=0.05)
    y = Y0.copy()
    energy0 = 0.5 * (np.dot(y[3:6], y[3:6]) + np.dot(y[0:3], y[0:3]))
    for _ in range(20):
        y = integrator.advance(0.0, y, np.pi)
    energy = 0.5 * (np.dot(y[3:6], y[3:6]) + np.dot(y[0:3], y[0:3]))
    assert abs(energy - energy0) / energy0 < 1e-3
    # linear drain is integrated exactly by the trapezoidal rule
    assert y[6] == pytest.approx(10.0 - 20 * np.pi)


def test_create_integrator_by_name():
    assert isinstance(create_integrator('rk4', _oscillator), RK4Integrator)
    assert isinstance(create_integrator('rk45', _oscillator), RK45Integrator)
    leapfrog = create_integrator('leapfrog', _oscillator, max_step=0.25)
    assert isinstance(leapfrog, LeapfrogIntegrator)
    assert leapfrog.max_step == 0.25
    with pytest.raises(ValueError):
        create_integrator('euler', _oscillator)
