"""
Numerical Integrators
=====================

Integration methods for vehicle state propagation.

All integrators work on a flat state y = [r (3), v (3), extra...] with a
derivative function f(t, y) and expose advance(t, y, duration), which
covers a whole interval in as many internal steps as they need.
"""

import math
import numpy as np
from typing import Callable, Tuple

from ..core.errors import NumericalInstabilityError

Derivative = Callable[[float, np.ndarray], np.ndarray]


class RK4Integrator:
    """
    4th order Runge-Kutta integrator.

    Classic fixed-step RK4 method for ODEs.
    """

    name = 'rk4'

    def __init__(self, derivative_func: Derivative, max_step: float = 0.5):
        """
        Initialize integrator.

        Args:
            derivative_func: Function f(t, y) returning dy/dt
            max_step: Longest internal step used by advance()
        """
        self.derivative = derivative_func
        self.max_step = max_step

    def step(self, t: float, y: np.ndarray, dt: float) -> np.ndarray:
        """
        Perform single RK4 step.

        Args:
            t: Current time
            y: Current state
            dt: Time step

        Returns:
            New state after step
        """
        k1 = self.derivative(t, y)
        k2 = self.derivative(t + 0.5*dt, y + 0.5*dt*k1)
        k3 = self.derivative(t + 0.5*dt, y + 0.5*dt*k2)
        k4 = self.derivative(t + dt, y + dt*k3)

        return y + (dt/6) * (k1 + 2*k2 + 2*k3 + k4)

    def advance(self, t: float, y: np.ndarray, duration: float) -> np.ndarray:
        """Cover [t, t + duration] in equal steps no longer than max_step."""
        if duration <= 0:
            return y.copy()
        n_steps = max(1, math.ceil(duration / self.max_step - 1e-9))
        dt = duration / n_steps
        for i in range(n_steps):
            y = self.step(t + i*dt, y, dt)
        return y


class RK45Integrator:
    """
    Runge-Kutta-Fehlberg 4(5) adaptive step integrator.

    Embedded RK method with error estimation for step control.
    """

    name = 'rk45'

    # Butcher tableau coefficients
    A = np.array([0, 1/4, 3/8, 12/13, 1, 1/2])
    B = np.array([
        [0, 0, 0, 0, 0],
        [1/4, 0, 0, 0, 0],
        [3/32, 9/32, 0, 0, 0],
        [1932/2197, -7200/2197, 7296/2197, 0, 0],
        [439/216, -8, 3680/513, -845/4104, 0],
        [-8/27, 2, -3544/2565, 1859/4104, -11/40]
    ])
    C4 = np.array([25/216, 0, 1408/2565, 2197/4104, -1/5, 0])
    C5 = np.array([16/135, 0, 6656/12825, 28561/56430, -9/50, 2/55])

    def __init__(self,
                 derivative_func: Derivative,
                 rtol: float = 1e-9,
                 atol: float = 1e-6,
                 dt_min: float = 1e-6,
                 dt_max: float = 60.0):
        """
        Initialize adaptive integrator.

        Args:
            derivative_func: Function f(t, y) returning dy/dt
            rtol: Relative tolerance
            atol: Absolute tolerance
            dt_min: Step size below which the solution is declared unstable
            dt_max: Maximum time step
        """
        self.derivative = derivative_func
        self.rtol = rtol
        self.atol = atol
        self.dt_min = dt_min
        self.dt_max = dt_max

    def step(self, t: float, y: np.ndarray, dt: float) -> Tuple[np.ndarray, float, float]:
        """
        Perform one embedded RK45 step.

        Returns:
            Tuple of (new_state, actual_dt, error_estimate)
        """
        k = np.zeros((6, len(y)))
        k[0] = self.derivative(t, y)

        for i in range(1, 6):
            y_temp = y + dt * np.sum(self.B[i, :i, np.newaxis] * k[:i], axis=0)
            k[i] = self.derivative(t + self.A[i] * dt, y_temp)

        # 4th and 5th order solutions
        y4 = y + dt * np.sum(self.C4[:, np.newaxis] * k, axis=0)
        y5 = y + dt * np.sum(self.C5[:, np.newaxis] * k, axis=0)

        error = np.linalg.norm(y5 - y4)

        return y5, dt, error

    def advance(self, t: float, y: np.ndarray, duration: float) -> np.ndarray:
        """Cover [t, t + duration] with adaptive steps, landing exactly on the end."""
        _, states = self.integrate(t, y, t + duration, dt_initial=min(duration, self.dt_max))
        return states[-1]

    def integrate(self,
                  t0: float,
                  y0: np.ndarray,
                  t_end: float,
                  dt_initial: float = 0.01) -> Tuple[np.ndarray, np.ndarray]:
        """
        Integrate with adaptive stepping.

        Returns:
            Tuple of (times, states)

        Raises:
            NumericalInstabilityError: Error estimate is non-finite or the
                step size collapses below dt_min
        """
        times = [t0]
        states = [y0.copy()]

        t = t0
        y = y0.copy()
        dt = max(dt_initial, self.dt_min)

        while t_end - t > 1e-12:
            # Don't overshoot end time
            if t + dt > t_end:
                dt = t_end - t

            y_new, _, error = self.step(t, y, dt)
            if not np.isfinite(error):
                raise NumericalInstabilityError(f"Non-finite RK45 error estimate at t={t:.3f}")

            tol = self.atol + self.rtol * max(np.linalg.norm(y), np.linalg.norm(y_new))

            if error <= tol or dt <= self.dt_min:
                if error > tol:
                    raise NumericalInstabilityError(
                        f"RK45 step size collapsed below {self.dt_min} s at t={t:.3f}"
                    )
                t += dt
                y = y_new
                times.append(t)
                states.append(y.copy())

                factor = 0.9 * (tol / error) ** 0.2 if error > 0 else 2.0
                dt = min(dt * min(factor, 5.0), self.dt_max)
            else:
                factor = 0.9 * (tol / error) ** 0.25
                dt = max(dt * max(factor, 0.1), self.dt_min)

        return np.array(times), np.array(states)


class LeapfrogIntegrator:
    """
    Kick-drift-kick leapfrog (velocity Verlet) integrator.

    Symplectic for conservative forces, so energy error stays bounded
    over long coasts. Components after the velocity are advanced with
    the trapezoidal rule.
    """

    name = 'leapfrog'

    def __init__(self, derivative_func: Derivative, max_step: float = 0.5):
        self.derivative = derivative_func
        self.max_step = max_step

    def step(self, t: float, y: np.ndarray, dt: float) -> np.ndarray:
        d0 = self.derivative(t, y)

        y_half = y.copy()
        y_half[3:6] = y[3:6] + 0.5 * dt * d0[3:6]
        y_new = y_half.copy()
        y_new[0:3] = y[0:3] + dt * y_half[3:6]
        y_new[6:] = y[6:] + dt * d0[6:]

        d1 = self.derivative(t + dt, y_new)
        y_new[3:6] = y_half[3:6] + 0.5 * dt * d1[3:6]
        y_new[6:] = y[6:] + 0.5 * dt * (d0[6:] + d1[6:])
        return y_new

    def advance(self, t: float, y: np.ndarray, duration: float) -> np.ndarray:
        if duration <= 0:
            return y.copy()
        n_steps = max(1, math.ceil(duration / self.max_step - 1e-9))
        dt = duration / n_steps
        for i in range(n_steps):
            y = self.step(t + i*dt, y, dt)
        return y


def create_integrator(name: str,
                      derivative_func: Derivative,
                      max_step: float = 0.5,
                      rtol: float = 1e-9,
                      atol: float = 1e-6):
    """
    Build an integrator by name.

    Args:
        name: 'rk4', 'rk45' or 'leapfrog'
        derivative_func: Function f(t, y) returning dy/dt
        max_step: Step cap for the fixed-step methods
        rtol, atol: Tolerances for the adaptive method
    """
    if name == 'rk4':
        return RK4Integrator(derivative_func, max_step=max_step)
    if name == 'rk45':
        return RK45Integrator(derivative_func, rtol=rtol, atol=atol)
    if name == 'leapfrog':
        return LeapfrogIntegrator(derivative_func, max_step=max_step)
    raise ValueError(f"Unknown integrator: {name}")
