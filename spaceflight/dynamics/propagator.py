"""
Vehicle Propagator
==================

Advances a vehicle through time under the gravity of its current
reference body (patched conics) and its own thrust.

Integrated mode steps the state [r, v, m] numerically; on-rails mode
evaluates the Kepler arc in closed form. After every substep the vehicle
is checked against the sphere-of-influence boundaries of its current
body and that body's children, with a hysteresis margin so a vehicle
resting on a boundary does not flip back and forth.
"""

import numpy as np
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, List, Optional

from ..core.config import PropagatorParameters
from ..core.errors import NumericalInstabilityError
from ..core.logging import get_logger
from ..environment.celestial import (
    CelestialBody,
    CelestialRegistry,
    gravitational_acceleration_at,
)
from ..geometry import quaternion as quat
from ..parts.staging import StagingEvent
from .integrators import create_integrator
from .modes import Integrated, OnRails, StateVector, to_integrated, to_on_rails

if TYPE_CHECKING:
    from ..core.vehicle import Vehicle

logger = get_logger("dynamics.propagator")

TIME_EPSILON_S = 1e-9
MAX_TRANSITIONS_PER_CHECK = 16


@dataclass(frozen=True)
class SOITransition:
    """A change of reference body."""
    vehicle_id: str
    time_s: float
    from_body: str
    to_body: str
    direction: str  # 'exit' to the parent, 'entry' into a child


@dataclass
class PropagationReport:
    """What happened to one vehicle during one step."""
    vehicle_id: str
    transitions: List[SOITransition] = field(default_factory=list)
    staging_events: List[StagingEvent] = field(default_factory=list)
    entered_atmosphere: bool = False
    fuel_burned_kg: float = 0.0
    substeps: int = 0


class Propagator:
    """
    Patched-conic propagator.

    Stateless apart from its configuration; one instance may serve many
    vehicles concurrently as long as each vehicle is stepped by one
    thread at a time.
    """

    def __init__(self, registry: CelestialRegistry, params: PropagatorParameters = None):
        """
        Initialize propagator.

        Args:
            registry: Celestial bodies (read-only)
            params: Numerical settings
        """
        self.registry = registry
        self.params = params or PropagatorParameters()

    # === Public API ===

    def step(self,
             vehicle: 'Vehicle',
             dt: float,
             on_rails: bool = False,
             until_s: Optional[float] = None) -> PropagationReport:
        """
        Advance a vehicle by dt seconds.

        Args:
            vehicle: Vehicle to advance (mutated in place)
            dt: Simulated time to cover [s]
            on_rails: Prefer closed-form propagation where the vehicle is
                unpowered and outside any atmosphere
            until_s: Absolute time to reach instead of vehicle.time_s + dt,
                so a vehicle held back by an earlier rollback catches up

        Returns:
            Report of transitions, staging and fuel use

        Raises:
            NumericalInstabilityError: The step produced non-finite or
                runaway values. The vehicle is restored to its state
                before the call and flagged.
        """
        report = PropagationReport(vehicle.vehicle_id)
        t_end = vehicle.time_s + dt if until_s is None else until_s
        if t_end - vehicle.time_s <= 0:
            return report

        saved = vehicle.checkpoint()
        try:
            self._advance(vehicle, t_end, on_rails, report)
        except NumericalInstabilityError as exc:
            vehicle.restore(saved)
            vehicle.flagged = True
            vehicle.last_error = exc.message
            logger.error(
                f"Numerical instability on {vehicle.vehicle_id}, state restored",
                extra={"vehicle_id": vehicle.vehicle_id, "time_s": vehicle.time_s},
            )
            raise NumericalInstabilityError(
                exc.message, vehicle_id=vehicle.vehicle_id, context=dict(exc.context), cause=exc
            ) from exc

        return report

    def to_on_rails(self, vehicle: 'Vehicle') -> bool:
        """
        Switch a vehicle to on-rails mode.

        Returns:
            False when the state has no usable elements and the vehicle
            stays integrated
        """
        body = self.registry.get(vehicle.current_body_id)
        try:
            vehicle.mode = to_on_rails(vehicle.mode, body.mu)
        except ValueError as exc:
            logger.debug(f"{vehicle.vehicle_id} stays integrated: {exc}")
            return False
        return True

    def to_integrated(self, vehicle: 'Vehicle'):
        vehicle.mode = to_integrated(vehicle.mode)

    # === Main loop ===

    def _advance(self, vehicle: 'Vehicle', t_end: float, on_rails: bool, report: PropagationReport):
        while t_end - vehicle.time_s > TIME_EPSILON_S:
            remaining = t_end - vehicle.time_s

            if on_rails and self._rails_permitted(vehicle) and self.to_on_rails(vehicle):
                self._rails_substep(vehicle, remaining, report)
            else:
                self.to_integrated(vehicle)
                self._integrated_substep(vehicle, remaining, report)

            report.substeps += 1
            self._check_finite(vehicle)
            self._update_reference_body(vehicle, report)

        # Land exactly on the step end
        state = vehicle.mode.state
        if state.time_s != t_end:
            snapped = StateVector(state.position, state.velocity, t_end)
            if isinstance(vehicle.mode, OnRails):
                vehicle.mode = OnRails(vehicle.mode.elements, snapped)
            else:
                vehicle.mode = Integrated(snapped)

    def _rails_permitted(self, vehicle: 'Vehicle') -> bool:
        if vehicle.is_thrusting:
            return False
        body = self.registry.get(vehicle.current_body_id)
        return not body.in_atmosphere(vehicle.position)

    # === Integrated mode ===

    def _integrated_substep(self, vehicle: 'Vehicle', remaining: float, report: PropagationReport):
        self._auto_stage(vehicle, report)

        body = self.registry.get(vehicle.current_body_id)
        agg = vehicle.aggregate()
        throttle = vehicle.throttle if agg.thrust_n > 0 else 0.0
        flow = agg.fuel_flow_kg_s * throttle

        h = min(remaining, self.params.max_substep_s)
        burning = flow > 0
        if burning:
            burn_time = agg.active_fuel_kg / flow
            if burn_time < h:
                h = burn_time  # split at burnout

        t0 = vehicle.time_s
        state = vehicle.mode.state
        y0 = np.concatenate([state.position, state.velocity, [agg.mass_kg]])

        if h > TIME_EPSILON_S:
            direction = vehicle.thrust_direction_at(state.position, state.velocity)
            derivative = self._derivative(body, agg.thrust_n * throttle, flow,
                                          direction, agg.drag_area_m2)
            name = self.params.integrator if burning else self.params.coast_integrator
            integrator = create_integrator(
                name, derivative,
                max_step=self.params.max_substep_s,
                rtol=self.params.rk45_rtol,
                atol=self.params.rk45_atol,
            )
            y1 = integrator.advance(t0, y0, h)
        else:
            y1 = y0

        if not np.all(np.isfinite(y1)):
            raise NumericalInstabilityError(
                f"Non-finite state after integrating {h:.3g} s at t={t0:.3f}",
                context={'body_id': body.body_id},
            )

        vehicle.mode = Integrated(StateVector(y1[0:3].copy(), y1[3:6].copy(), t0 + h))

        if burning:
            report.fuel_burned_kg += vehicle.graph.drain_active_fuel(flow * h)

        if vehicle.attitude_hold is not None:
            vehicle.attitude.quaternion = vehicle.orientation_at(y1[0:3], y1[3:6])
        elif np.any(vehicle.attitude.angular_velocity):
            vehicle.attitude.quaternion = quat.integrate(
                vehicle.attitude.quaternion, vehicle.attitude.angular_velocity, h)

        self._auto_stage(vehicle, report)

    def _derivative(self,
                    body: CelestialBody,
                    thrust_n: float,
                    flow_kg_s: float,
                    direction: np.ndarray,
                    drag_area_m2: float) -> Callable[[float, np.ndarray], np.ndarray]:
        """dy/dt for y = [r, v, m] with thrust fixed over the substep."""
        atmosphere = body.atmosphere if self.params.enable_drag else None

        def f(t: float, y: np.ndarray) -> np.ndarray:
            r = y[0:3]
            v = y[3:6]
            m = y[6]

            a = gravitational_acceleration_at(r, body)
            if thrust_n > 0:
                a = a + (thrust_n / m) * direction
            if atmosphere is not None:
                altitude = np.linalg.norm(r) - body.radius_m
                a = a + atmosphere.drag_acceleration(altitude, v, drag_area_m2, m)

            return np.concatenate([v, a, [-flow_kg_s]])

        return f

    def _auto_stage(self, vehicle: 'Vehicle', report: PropagationReport):
        if vehicle.staging.should_auto_stage(vehicle.throttle):
            event = vehicle.staging.advance_stage(automatic=True, time_s=vehicle.time_s)
            report.staging_events.append(event)

    # === On-rails mode ===

    def _rails_substep(self, vehicle: 'Vehicle', remaining: float, report: PropagationReport):
        body = self.registry.get(vehicle.current_body_id)
        mode: OnRails = vehicle.mode
        elements = mode.elements

        h = min(remaining, self.params.rails_max_substep_s)
        if elements.is_elliptic:
            h = min(h, self.params.rails_substep_fraction * elements.period(body.mu))

        t0 = vehicle.time_s
        t1 = t0 + h
        candidate = mode.evaluate(body.mu, t1)

        hit = t1 if self._rails_event(vehicle, body, candidate) is not None else None
        interior = self._interior_event_time(vehicle, body, mode, t0, t1)
        if interior is not None and (hit is None or interior < hit):
            hit = interior

        if hit is None:
            vehicle.mode = candidate
        else:
            # Bisect for the first time the event holds
            lo, hi = t0, hit
            while hi - lo > self.params.event_time_tolerance_s:
                mid = 0.5 * (lo + hi)
                if self._rails_event(vehicle, body, mode.evaluate(body.mu, mid)) is None:
                    lo = mid
                else:
                    hi = mid
            vehicle.mode = mode.evaluate(body.mu, hi)
            event = self._rails_event(vehicle, body, vehicle.mode)
            logger.debug(f"{vehicle.vehicle_id}: {event} at t={hi:.3f}")
            if event == 'atmosphere':
                report.entered_atmosphere = True
                self.to_integrated(vehicle)

        self._rotate_attitude(vehicle, vehicle.time_s - t0)

    def _interior_event_time(self,
                             vehicle: 'Vehicle',
                             body: CelestialBody,
                             mode: OnRails,
                             t0: float,
                             t1: float) -> Optional[float]:
        """
        Earliest time inside (t0, t1) at which an event holds although it
        may not hold at either end: periapsis below the atmosphere ceiling,
        or closest approach to a child body inside its sphere of influence.
        """
        found = []

        t_peri = self._periapsis_time(mode.elements, body.mu, t0)
        if t_peri is not None and t0 < t_peri < t1 and body.atmosphere is not None:
            if mode.elements.periapsis_m < body.radius_m + body.atmosphere.ceiling_m:
                found.append(t_peri)

        for child in self.registry.children_of(body.body_id):
            t_close = self._closest_approach_time(mode, body, child, t0, t1)
            if t_close is not None:
                found.append(t_close)

        return min(found) if found else None

    @staticmethod
    def _periapsis_time(elements, mu: float, t0: float) -> Optional[float]:
        """Next periapsis passage at or after t0 (None if an open orbit is outbound)."""
        n = elements.mean_motion(mu)
        if elements.is_elliptic:
            M0 = elements.mean_anomaly_at(mu, t0)
            return t0 + np.mod(-M0, 2 * np.pi) / n
        t_peri = elements.epoch_s - elements.mean_anomaly_rad / n
        return t_peri if t_peri >= t0 else None

    def _closest_approach_time(self,
                               mode: OnRails,
                               body: CelestialBody,
                               child: CelestialBody,
                               t0: float,
                               t1: float) -> Optional[float]:
        """Golden-section search for the closest approach inside a child's SOI."""
        soi = child.soi_radius_m
        limit = soi - self.params.soi_margin(soi)

        def distance(t):
            r_child, _ = self.registry.state_relative_to_parent(child.body_id, t)
            return float(np.linalg.norm(mode.evaluate(body.mu, t).state.position - r_child))

        # Skip children the arc cannot reach within the substep
        start = mode.evaluate(body.mu, t0).state
        end = mode.evaluate(body.mu, t1).state
        _, v_child0 = self.registry.state_relative_to_parent(child.body_id, t0)
        _, v_child1 = self.registry.state_relative_to_parent(child.body_id, t1)
        speed = max(np.linalg.norm(start.velocity - v_child0), np.linalg.norm(end.velocity - v_child1))
        if min(distance(t0), distance(t1)) - speed * (t1 - t0) > limit:
            return None

        ratio = (np.sqrt(5.0) - 1.0) / 2.0
        a, b = t0, t1
        c = b - ratio * (b - a)
        d = a + ratio * (b - a)
        fc, fd = distance(c), distance(d)
        while b - a > self.params.event_time_tolerance_s:
            if fc < fd:
                b, d, fd = d, c, fc
                c = b - ratio * (b - a)
                fc = distance(c)
            else:
                a, c, fc = c, d, fd
                d = a + ratio * (b - a)
                fd = distance(d)

        t_close = 0.5 * (a + b)
        return t_close if distance(t_close) < limit else None

    def _rails_event(self, vehicle: 'Vehicle', body: CelestialBody, mode: OnRails) -> Optional[str]:
        """Name of the event holding at the mode's state, if any."""
        r = mode.state.position
        t = mode.state.time_s

        if body.in_atmosphere(r):
            return 'atmosphere'
        if self._exit_due(body, r):
            return 'soi_exit'
        if self._entry_target(body, r, t) is not None:
            return 'soi_entry'
        return None

    def _rotate_attitude(self, vehicle: 'Vehicle', elapsed: float):
        if vehicle.attitude_hold is not None:
            vehicle.attitude.quaternion = vehicle.orientation_at(vehicle.position, vehicle.velocity)
            return
        omega = vehicle.attitude.angular_velocity
        rate = np.linalg.norm(omega)
        if rate > 0 and elapsed > 0:
            turn = quat.from_axis_angle(omega / rate, rate * elapsed)
            vehicle.attitude.quaternion = quat.normalize(quat.multiply(vehicle.attitude.quaternion, turn))

    # === Sphere-of-influence transitions ===

    def _exit_due(self, body: CelestialBody, r: np.ndarray) -> bool:
        if body.is_root:
            return False
        soi = body.soi_radius_m
        return np.linalg.norm(r) > soi + self.params.soi_margin(soi)

    def _entry_target(self, body: CelestialBody, r: np.ndarray, t: float) -> Optional[CelestialBody]:
        for child in self.registry.children_of(body.body_id):
            r_child, _ = self.registry.state_relative_to_parent(child.body_id, t)
            soi = child.soi_radius_m
            if np.linalg.norm(r - r_child) < soi - self.params.soi_margin(soi):
                return child
        return None

    def _update_reference_body(self, vehicle: 'Vehicle', report: PropagationReport):
        """Re-express the vehicle in a new body's frame if it crossed a boundary."""
        for _ in range(MAX_TRANSITIONS_PER_CHECK):
            body = self.registry.get(vehicle.current_body_id)
            state = vehicle.mode.state
            t = state.time_s

            if self._exit_due(body, state.position):
                new_body = self.registry.parent_of(body.body_id)
                r_body, v_body = self.registry.state_relative_to_parent(body.body_id, t)
                position = state.position + r_body
                velocity = state.velocity + v_body
                direction = 'exit'
            else:
                new_body = self._entry_target(body, state.position, t)
                if new_body is None:
                    return
                r_child, v_child = self.registry.state_relative_to_parent(new_body.body_id, t)
                position = state.position - r_child
                velocity = state.velocity - v_child
                direction = 'entry'

            self._switch_body(vehicle, new_body, StateVector(position, velocity, t))
            transition = SOITransition(vehicle.vehicle_id, t, body.body_id, new_body.body_id, direction)
            report.transitions.append(transition)
            logger.info(
                f"{vehicle.vehicle_id}: SOI {direction} {body.body_id} -> {new_body.body_id}",
                extra={"vehicle_id": vehicle.vehicle_id, "time_s": t},
            )

        raise NumericalInstabilityError(
            f"Reference body did not settle after {MAX_TRANSITIONS_PER_CHECK} transitions",
            context={'body_id': vehicle.current_body_id},
        )

    def _switch_body(self, vehicle: 'Vehicle', body: CelestialBody, state: StateVector):
        """Atomically replace the reference body and the state expressed in it."""
        if isinstance(vehicle.mode, OnRails):
            try:
                mode = to_on_rails(Integrated(state), body.mu)
            except ValueError:
                mode = Integrated(state)
        else:
            mode = Integrated(state)
        vehicle.current_body_id = body.body_id
        vehicle.mode = mode

    # === Health checks ===

    def _check_finite(self, vehicle: 'Vehicle'):
        r = vehicle.position
        v = vehicle.velocity
        if not (np.all(np.isfinite(r)) and np.all(np.isfinite(v))):
            raise NumericalInstabilityError("Non-finite vehicle state")
        if np.linalg.norm(r) > self.params.max_position_m:
            raise NumericalInstabilityError(
                f"Position runaway: |r| = {np.linalg.norm(r):.3e} m",
                context={'body_id': vehicle.current_body_id},
            )
        if np.linalg.norm(v) > self.params.max_speed_m_s:
            raise NumericalInstabilityError(
                f"Speed runaway: |v| = {np.linalg.norm(v):.3e} m/s",
                context={'body_id': vehicle.current_body_id},
            )
