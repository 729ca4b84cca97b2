"""
Main Simulator
==============

Central simulation engine orchestrating all components.

One call to step() is one committed simulation step:

1. Commands are applied at the step boundary (throttle, orientation,
   staging, warp). Rejected commands change nothing and are reported.
2. Every vehicle is propagated as an independent task; all tasks are
   joined before anything is committed.
3. Frame authority transfers, clock advance and snapshots are committed.
"""

import numpy as np
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple, Union

from ..dynamics.propagator import PropagationReport, Propagator, SOITransition
from ..environment.catalog import solar_system
from ..environment.celestial import CelestialRegistry
from ..geometry.frames import AttitudeHold
from ..parts.blueprint import VehicleBlueprint
from ..parts.staging import StagingEvent
from .config import SimulationConfig
from .errors import CommandError, NumericalInstabilityError, SpaceflightError
from .floating_origin import FloatingOriginManager, GridPosition
from .logging import get_logger
from .time_manager import Regime, SimulationClock
from .time_warp import TimeWarpScheduler, WarpChange, WarpSafetyContext
from .vehicle import Vehicle

logger = get_logger("core.simulator")


@dataclass
class VehicleCommand:
    """Inputs for one vehicle, sampled at a step boundary. None leaves a value unchanged."""
    throttle: Optional[float] = None
    orientation_target: Optional[Union[AttitudeHold, np.ndarray]] = None
    stage_advance: bool = False
    warp_request: Optional[float] = None


@dataclass(frozen=True, eq=False)
class VehicleSnapshot:
    """Read-only committed state of one vehicle."""
    vehicle_id: str
    time_s: float
    body_id: str
    position: np.ndarray  # relative to body_id [m]
    velocity: np.ndarray  # relative to body_id [m/s]
    orientation: np.ndarray  # quaternion [w, x, y, z]
    stage_index: int
    fuel_remaining_kg: float
    mass_kg: float
    thrust_n: float
    throttle: float
    mode: str
    in_atmosphere: bool
    flagged: bool
    origin_position: np.ndarray  # relative to the focus vehicle [m]
    grid_position: GridPosition  # relative to the root body

    @property
    def radius_m(self) -> float:
        """Distance from the reference body centre."""
        return float(np.linalg.norm(self.position))

    def to_dict(self) -> Dict:
        return {
            'vehicle_id': self.vehicle_id,
            'time_s': self.time_s,
            'body_id': self.body_id,
            'position_m': self.position.tolist(),
            'velocity_m_s': self.velocity.tolist(),
            'orientation': self.orientation.tolist(),
            'stage_index': self.stage_index,
            'fuel_remaining_kg': self.fuel_remaining_kg,
            'mass_kg': self.mass_kg,
            'thrust_n': self.thrust_n,
            'throttle': self.throttle,
            'mode': self.mode,
            'in_atmosphere': self.in_atmosphere,
            'flagged': self.flagged,
            'origin_position_m': self.origin_position.tolist(),
            'grid_cell': list(self.grid_position.cell),
        }


@dataclass
class StepResult:
    """Outcome of one committed step."""
    time_s: float
    warp_factor: float
    regime: Regime
    snapshots: Dict[str, VehicleSnapshot] = field(default_factory=dict)
    errors: List[SpaceflightError] = field(default_factory=list)
    staging_events: List[Tuple[str, StagingEvent]] = field(default_factory=list)
    transitions: List[SOITransition] = field(default_factory=list)
    warp_changes: List[WarpChange] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


class Simulator:
    """
    Spaceflight Propagation Engine.

    Integrates:
    - Patched-conic propagation (integrated and on-rails)
    - Part graphs with staging
    - Time warp with safety checks
    - Floating-origin frame bookkeeping
    """

    def __init__(self,
                 registry: CelestialRegistry = None,
                 config: SimulationConfig = None):
        """
        Initialize simulator.

        Args:
            registry: Celestial bodies (default solar system if omitted)
            config: Simulation configuration
        """
        self.config = config or SimulationConfig()
        self.registry = registry or solar_system()

        # Initialize time
        self.clock = SimulationClock(
            start_time=self.config.start_time,
            time_step=self.config.time_step_seconds,
        )
        self.warp = TimeWarpScheduler(self.config.warp, self.clock)

        self.propagator = Propagator(self.registry, self.config.propagator)
        self.origin = FloatingOriginManager(self.registry)

        # Vehicles in insertion order
        self.vehicles: Dict[str, Vehicle] = {}
        self.active_vehicle_id: Optional[str] = None
        self._snapshots: Dict[str, VehicleSnapshot] = {}

        self._executor: Optional[ThreadPoolExecutor] = None
        if self.config.max_workers > 1:
            self._executor = ThreadPoolExecutor(max_workers=self.config.max_workers,
                                                thread_name_prefix="propagate")

        # Simulation state
        self.is_running = False
        self.step_count = 0

        # Data logging
        self.history: Dict[str, List[VehicleSnapshot]] = {}
        self._last_record_time: Optional[float] = None

        # Callbacks
        self.step_callbacks: List[Callable] = []

    @property
    def time_s(self) -> float:
        return self.clock.elapsed_seconds

    # === Vehicle management ===

    def add_vehicle(self, vehicle: Vehicle) -> Vehicle:
        """
        Start tracking a vehicle.

        The vehicle's state is re-stamped to the current simulation time and
        re-expressed in the innermost body whose sphere of influence
        contains it.
        """
        if vehicle.vehicle_id in self.vehicles:
            raise ValueError(f"Vehicle id '{vehicle.vehicle_id}' already tracked")
        self.registry.get(vehicle.current_body_id)

        if vehicle.time_s != self.time_s:
            vehicle.set_state(vehicle.position, vehicle.velocity, self.time_s)
        self._settle_reference_body(vehicle)

        self.origin.claim(vehicle.vehicle_id, vehicle.current_body_id)
        self.vehicles[vehicle.vehicle_id] = vehicle
        self.history.setdefault(vehicle.vehicle_id, [])
        if self.active_vehicle_id is None:
            self.active_vehicle_id = vehicle.vehicle_id

        self._snapshots = self._build_snapshots()
        logger.info(f"Tracking {vehicle!r}")
        return vehicle

    def _settle_reference_body(self, vehicle: Vehicle):
        t = vehicle.time_s
        root_id = self.registry.root.body_id
        root_position, _ = self.origin.express(vehicle.position, None, vehicle.current_body_id, root_id, t)
        body_id = self.registry.find_reference_body(root_position, t)
        if body_id == vehicle.current_body_id:
            return
        position, velocity = self.origin.express(vehicle.position, vehicle.velocity,
                                                 vehicle.current_body_id, body_id, t)
        logger.info(f"{vehicle.vehicle_id} placed in {body_id} frame (declared {vehicle.current_body_id})")
        vehicle.set_state(position, velocity, t, body_id=body_id)

    def create_vehicle(self,
                       vehicle_id: str,
                       blueprint: Union[VehicleBlueprint, Dict],
                       body_id: str,
                       position: np.ndarray,
                       velocity: np.ndarray,
                       **kwargs) -> Vehicle:
        """Build a vehicle from a blueprint and start tracking it."""
        if not isinstance(blueprint, VehicleBlueprint):
            blueprint = VehicleBlueprint.from_dict(blueprint)
        kwargs.setdefault('auto_stage', self.config.staging.auto_stage)
        vehicle = Vehicle.from_blueprint(vehicle_id, blueprint, body_id, position, velocity,
                                         time_s=self.time_s, **kwargs)
        return self.add_vehicle(vehicle)

    def remove_vehicle(self, vehicle_id: str) -> Vehicle:
        vehicle = self._get_vehicle(vehicle_id)
        del self.vehicles[vehicle_id]
        self.origin.release(vehicle_id)
        if self.active_vehicle_id == vehicle_id:
            self.active_vehicle_id = next(iter(self.vehicles), None)
        self._snapshots.pop(vehicle_id, None)
        return vehicle

    def set_active_vehicle(self, vehicle_id: str):
        self._get_vehicle(vehicle_id)
        self.active_vehicle_id = vehicle_id

    def focus(self, vehicle_id: Optional[str]):
        """Make a vehicle the floating origin of snapshot positions."""
        if vehicle_id is not None:
            self._get_vehicle(vehicle_id)
        self.origin.set_focus(vehicle_id)
        self._snapshots = self._build_snapshots()

    def get_vehicle(self, vehicle_id: str) -> Vehicle:
        return self._get_vehicle(vehicle_id)

    def _get_vehicle(self, vehicle_id: str) -> Vehicle:
        try:
            return self.vehicles[vehicle_id]
        except KeyError:
            raise CommandError(f"Unknown vehicle '{vehicle_id}'", vehicle_id=vehicle_id,
                               error_code='UnknownVehicle') from None

    @property
    def snapshots(self) -> Dict[str, VehicleSnapshot]:
        """Last committed snapshots."""
        return dict(self._snapshots)

    # === Stepping ===

    def step(self,
             dt: float = None,
             commands: Dict[str, VehicleCommand] = None) -> StepResult:
        """
        Advance simulation by one step.

        Args:
            dt: Real-time step in seconds (scaled by the warp factor)
            commands: Per-vehicle commands applied before propagation

        Returns:
            Committed step result
        """
        dt = self.config.time_step_seconds if dt is None else dt
        if not dt > 0:
            raise ValueError(f"Step must be positive, got dt={dt}")

        errors: List[SpaceflightError] = []
        staging_events: List[Tuple[str, StagingEvent]] = []
        warp_changes: List[WarpChange] = []

        # === Commands ===

        warp_requests = []
        for vehicle_id, command in (commands or {}).items():
            try:
                vehicle = self._get_vehicle(vehicle_id)
            except CommandError as exc:
                errors.append(exc)
                continue
            self._apply_command(vehicle, command, errors, staging_events)
            if command.warp_request is not None:
                warp_requests.append((vehicle_id, command.warp_request))

        # Each request is judged against the requesting vehicle's own context
        for vehicle_id, factor in warp_requests:
            try:
                change = self.warp.request(factor, self.warp_context(vehicle_id))
            except SpaceflightError as exc:
                errors.append(exc)
                continue
            if change is not None:
                warp_changes.append(change)

        if not self.warp.is_realtime:
            thrusting = [v.vehicle_id for v in self.vehicles.values() if v.is_thrusting]
            if thrusting:
                change = self.warp.drop_to_realtime(f"thrust on {', '.join(thrusting)}")
                warp_changes.append(change)

        # === Propagation ===

        sim_dt = dt * self.warp.factor
        on_rails = self.warp.regime is Regime.ON_RAILS
        reports = self._propagate_all(sim_dt, on_rails, errors)

        # === Commit ===

        transitions: List[SOITransition] = []
        for vehicle_id, report in reports.items():
            for transition in report.transitions:
                self.origin.transfer(vehicle_id, transition.from_body, transition.to_body)
                transitions.append(transition)
            staging_events.extend((vehicle_id, event) for event in report.staging_events)
            if report.entered_atmosphere and not self.warp.is_realtime:
                warp_changes.append(self.warp.drop_to_realtime(f"{vehicle_id} entered atmosphere"))

        for vehicle in self.vehicles.values():
            self.origin.assert_authoritative(vehicle.vehicle_id, vehicle.current_body_id)

        self.clock.advance(sim_dt)
        self.step_count += 1
        self._snapshots = self._build_snapshots()

        result = StepResult(
            time_s=self.time_s,
            warp_factor=self.warp.factor,
            regime=self.warp.regime,
            snapshots=dict(self._snapshots),
            errors=errors,
            staging_events=staging_events,
            transitions=transitions,
            warp_changes=warp_changes,
        )

        self._record(result)

        for callback in self.step_callbacks:
            callback(self, result)

        return result

    def _apply_command(self,
                       vehicle: Vehicle,
                       command: VehicleCommand,
                       errors: List[SpaceflightError],
                       staging_events: List[Tuple[str, StagingEvent]]):
        if command.throttle is not None:
            if np.isfinite(command.throttle):
                vehicle.set_throttle(command.throttle)
            else:
                errors.append(CommandError(f"Invalid throttle {command.throttle}",
                                           vehicle_id=vehicle.vehicle_id))

        if command.orientation_target is not None:
            try:
                vehicle.set_orientation_target(command.orientation_target)
            except ValueError as exc:
                errors.append(CommandError(str(exc), vehicle_id=vehicle.vehicle_id, cause=exc))

        if command.stage_advance:
            try:
                event = vehicle.staging.advance_stage(time_s=self.time_s)
            except SpaceflightError as exc:
                logger.info(f"Stage command on {vehicle.vehicle_id} rejected: {exc.message}")
                errors.append(exc)
            else:
                staging_events.append((vehicle.vehicle_id, event))

    def _propagate_all(self,
                       sim_dt: float,
                       on_rails: bool,
                       errors: List[SpaceflightError]) -> Dict[str, PropagationReport]:
        """
        Propagate every vehicle to the end of the step and wait for all of them.

        Every vehicle targets the same absolute time, so one rolled back in
        an earlier step rejoins the common timeline.
        """
        reports: Dict[str, PropagationReport] = {}
        t_end = self.time_s + sim_dt

        if self._executor is None or len(self.vehicles) < 2:
            for vehicle_id, vehicle in self.vehicles.items():
                try:
                    reports[vehicle_id] = self.propagator.step(vehicle, sim_dt, on_rails, t_end)
                except NumericalInstabilityError as exc:
                    errors.append(exc)
            return reports

        futures = {
            vehicle_id: self._executor.submit(self.propagator.step, vehicle, sim_dt, on_rails, t_end)
            for vehicle_id, vehicle in self.vehicles.items()
        }
        wait(futures.values())

        for vehicle_id, future in futures.items():
            try:
                reports[vehicle_id] = future.result()
            except NumericalInstabilityError as exc:
                errors.append(exc)
        return reports

    # === Snapshots ===

    def _build_snapshots(self) -> Dict[str, VehicleSnapshot]:
        t = self.time_s

        focus_id = self.origin.focus_vehicle_id or self.active_vehicle_id
        focus = self.vehicles.get(focus_id) if focus_id is not None else None

        snapshots = {}
        for vehicle_id, vehicle in self.vehicles.items():
            body = self.registry.get(vehicle.current_body_id)
            agg = vehicle.aggregate()

            if focus is not None:
                origin_position = self.origin.relative_to_origin(
                    vehicle.current_body_id, vehicle.position,
                    focus.current_body_id, focus.position, t)
            else:
                origin_position = vehicle.position.copy()

            snapshots[vehicle_id] = VehicleSnapshot(
                vehicle_id=vehicle_id,
                time_s=vehicle.time_s,
                body_id=vehicle.current_body_id,
                position=vehicle.position.copy(),
                velocity=vehicle.velocity.copy(),
                orientation=vehicle.attitude.quaternion.copy(),
                stage_index=vehicle.stage_index,
                fuel_remaining_kg=agg.fuel_kg,
                mass_kg=agg.mass_kg,
                thrust_n=vehicle.thrust_n,
                throttle=vehicle.throttle,
                mode=vehicle.mode.name,
                in_atmosphere=body.in_atmosphere(vehicle.position),
                flagged=vehicle.flagged,
                origin_position=origin_position,
                grid_position=self.origin.grid_position(vehicle.current_body_id, vehicle.position,
                                                       vehicle.time_s),
            )
        return snapshots

    def warp_context(self, vehicle_id: str = None) -> WarpSafetyContext:
        """
        Warp safety conditions of a vehicle (the active one by default).

        Distances to other vehicles come from the last committed snapshots.
        """
        vehicle_id = vehicle_id or self.active_vehicle_id
        if vehicle_id is None:
            return WarpSafetyContext()
        vehicle = self._get_vehicle(vehicle_id)
        own = self._snapshots.get(vehicle_id)

        nearest = float('inf')
        if own is not None:
            for other_id, other in self._snapshots.items():
                if other_id == vehicle_id:
                    continue
                distance = np.linalg.norm(other.grid_position.relative_to(own.grid_position))
                nearest = min(nearest, float(distance))

        return WarpSafetyContext(
            thrusting=vehicle.is_thrusting,
            in_atmosphere=own.in_atmosphere if own is not None else False,
            nearest_vehicle_m=nearest,
            vehicle_id=vehicle_id,
        )

    def _record(self, result: StepResult):
        if not self.config.save_trajectory:
            return
        interval = 1.0 / self.config.output_rate_hz
        if self._last_record_time is None or result.time_s - self._last_record_time >= interval - 1e-9:
            for vehicle_id, snapshot in result.snapshots.items():
                self.history.setdefault(vehicle_id, []).append(snapshot)
            self._last_record_time = result.time_s

    # === Running ===

    def run(self,
            duration_seconds: float = None,
            dt: float = None,
            command_source: Callable[['Simulator'], Dict[str, VehicleCommand]] = None,
            progress_callback: Callable = None) -> Dict[str, List[VehicleSnapshot]]:
        """
        Run simulation for specified simulated duration.

        Args:
            duration_seconds: Duration (default: config duration)
            dt: Real-time step (default: config time step)
            command_source: Called before each step, returns that step's commands
            progress_callback: Called with progress (0-1)

        Returns:
            Recorded snapshot history per vehicle
        """
        duration = duration_seconds or self.config.duration_seconds
        t_end = self.time_s + duration

        self.is_running = True
        try:
            while t_end - self.time_s > 1e-9:
                commands = command_source(self) if command_source else None
                self.step(dt, commands)

                if progress_callback and self.step_count % 100 == 0:
                    progress_callback(min(1.0, 1.0 - (t_end - self.time_s) / duration))
        finally:
            self.is_running = False

        if self.config.verbose:
            print(f"Simulation complete: {self.step_count} steps, "
                  f"t = {self.time_s:.1f} s, {len(self.vehicles)} vehicles")

        return self.history

    def add_step_callback(self, callback: Callable):
        """Add callback called as callback(simulator, result) after each step."""
        self.step_callbacks.append(callback)

    def get_telemetry(self, vehicle_id: str = None) -> Dict:
        """Telemetry of a vehicle (the active one by default)."""
        vehicle_id = vehicle_id or self.active_vehicle_id
        snapshot = self._snapshots[vehicle_id]
        telemetry = snapshot.to_dict()
        telemetry['warp_factor'] = self.warp.factor
        telemetry['utc'] = self.clock.current_utc.isoformat()
        return telemetry

    def export_trajectory(self, vehicle_id: str = None, filename: str = None) -> np.ndarray:
        """
        Export recorded trajectory of a vehicle.

        Args:
            vehicle_id: Vehicle (default: active vehicle)
            filename: Optional CSV filename

        Returns:
            Array with columns time, position, velocity, mass, fuel, stage
        """
        vehicle_id = vehicle_id or self.active_vehicle_id
        history = self.history.get(vehicle_id, [])
        if not history:
            return np.array([])

        data = np.zeros((len(history), 10))
        for i, snapshot in enumerate(history):
            data[i, 0] = snapshot.time_s
            data[i, 1:4] = snapshot.position
            data[i, 4:7] = snapshot.velocity
            data[i, 7] = snapshot.mass_kg
            data[i, 8] = snapshot.fuel_remaining_kg
            data[i, 9] = snapshot.stage_index

        if filename:
            header = "time_s,x_m,y_m,z_m,vx_m_s,vy_m_s,vz_m_s,mass_kg,fuel_kg,stage"
            np.savetxt(filename, data, delimiter=',', header=header)

        return data

    # === Lifecycle ===

    def close(self):
        """Shut down the worker pool."""
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    def __enter__(self) -> 'Simulator':
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
