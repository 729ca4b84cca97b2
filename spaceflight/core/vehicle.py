"""
Vehicle State and Model
=======================

A vehicle is a part graph with a staging engine, a kinematic state
relative to its current reference body and the pilot's control inputs.
"""

import copy
import numpy as np
from dataclasses import dataclass, field
from typing import Optional, Union

from ..dynamics.modes import Integrated, OnRails, PropagationMode, StateVector
from ..geometry import quaternion as quat
from ..geometry.frames import AttitudeHold, hold_quaternion, thrust_direction
from ..parts.blueprint import VehicleBlueprint
from ..parts.graph import PartGraph, VehicleAggregate
from ..parts.staging import StagingEngine


@dataclass
class AttitudeState:
    """Vehicle attitude state."""
    # Quaternion [w, x, y, z] - scalar first, body to inertial
    quaternion: np.ndarray = field(default_factory=lambda: quat.IDENTITY.copy())
    # Angular velocity in body frame [rad/s]
    angular_velocity: np.ndarray = field(default_factory=lambda: np.zeros(3))

    def __post_init__(self):
        self.quaternion = quat.normalize(np.asarray(self.quaternion, dtype=float))
        self.angular_velocity = np.asarray(self.angular_velocity, dtype=float)

    @property
    def euler_angles_deg(self) -> np.ndarray:
        """Roll, pitch, yaw in degrees (ZYX convention)."""
        return quat.euler_angles_deg(self.quaternion)

    @property
    def rotation_matrix(self) -> np.ndarray:
        """Rotation matrix (body to inertial)."""
        return quat.to_matrix(self.quaternion)


@dataclass
class VehicleCheckpoint:
    """Last known-good state of a vehicle."""
    mode: PropagationMode
    body_id: str
    attitude: AttitudeState
    graph_state: dict
    stage_index: int
    staging_history_length: int


class Vehicle:
    """
    Complete vehicle model.

    Manages:
    - Part graph and staging
    - Kinematic state and propagation mode
    - Throttle and orientation targets
    """

    def __init__(self,
                 vehicle_id: str,
                 graph: PartGraph,
                 body_id: str,
                 position: np.ndarray,
                 velocity: np.ndarray,
                 time_s: float = 0.0,
                 attitude: AttitudeState = None,
                 auto_stage: bool = True,
                 name: str = None):
        """
        Initialize vehicle and ignite stage 0.

        Args:
            vehicle_id: Unique vehicle id
            graph: Assembled part graph
            body_id: Initial reference body
            position: Position relative to body_id [m]
            velocity: Velocity relative to body_id [m/s]
            time_s: Simulation time of the state
            attitude: Initial attitude (identity if omitted)
            auto_stage: Fire the next stage on burnout
            name: Display name
        """
        self.vehicle_id = vehicle_id
        self.name = name or vehicle_id
        self.graph = graph
        self.staging = StagingEngine(graph, auto_stage=auto_stage)

        self.current_body_id = body_id
        self.mode: PropagationMode = Integrated(StateVector.create(position, velocity, time_s))
        self.attitude = attitude or AttitudeState()

        # Control inputs
        self.throttle = 0.0
        self.attitude_hold: Optional[AttitudeHold] = None

        # Set when propagation failed and the state was rolled back
        self.flagged = False
        self.last_error: Optional[str] = None

    @classmethod
    def from_blueprint(cls,
                       vehicle_id: str,
                       blueprint: VehicleBlueprint,
                       body_id: str,
                       position: np.ndarray,
                       velocity: np.ndarray,
                       **kwargs) -> 'Vehicle':
        """Create a vehicle from a fresh copy of a blueprint."""
        kwargs.setdefault('name', blueprint.name)
        return cls(vehicle_id, blueprint.build_graph(), body_id, position, velocity, **kwargs)

    # === Kinematics ===

    @property
    def state(self) -> StateVector:
        return self.mode.state

    @property
    def position(self) -> np.ndarray:
        """Position relative to the current body [m]."""
        return self.mode.state.position

    @property
    def velocity(self) -> np.ndarray:
        """Velocity relative to the current body [m/s]."""
        return self.mode.state.velocity

    @property
    def time_s(self) -> float:
        return self.mode.state.time_s

    @property
    def on_rails(self) -> bool:
        return isinstance(self.mode, OnRails)

    def set_state(self, position: np.ndarray, velocity: np.ndarray, time_s: float, body_id: str = None):
        """Place the vehicle, leaving it in integrated mode."""
        if body_id is not None:
            self.current_body_id = body_id
        self.mode = Integrated(StateVector.create(position, velocity, time_s))

    # === Mass and propulsion ===

    def aggregate(self) -> VehicleAggregate:
        return self.graph.aggregate()

    @property
    def mass_kg(self) -> float:
        return self.graph.aggregate().mass_kg

    @property
    def fuel_kg(self) -> float:
        return self.graph.aggregate().fuel_kg

    @property
    def stage_index(self) -> int:
        return self.staging.current_stage

    @property
    def is_thrusting(self) -> bool:
        return self.throttle > 0.0 and self.graph.aggregate().thrust_n > 0.0

    @property
    def thrust_n(self) -> float:
        """Thrust currently produced."""
        return self.throttle * self.graph.aggregate().thrust_n

    # === Control ===

    def set_throttle(self, throttle: float):
        """Set throttle, clipped to [0, 1]."""
        self.throttle = float(np.clip(throttle, 0.0, 1.0))

    def set_orientation_target(self, target: Union[AttitudeHold, np.ndarray]):
        """
        Point the vehicle.

        Args:
            target: Attitude-hold mode, or a body-to-inertial quaternion
        """
        if isinstance(target, AttitudeHold):
            q = hold_quaternion(target, self.position, self.velocity)
            self.attitude_hold = target
            self.attitude.quaternion = q
        else:
            q = np.asarray(target, dtype=float)
            if q.shape != (4,) or not np.all(np.isfinite(q)) or np.linalg.norm(q) < 1e-10:
                raise ValueError("Orientation target must be a non-zero quaternion [w, x, y, z]")
            self.attitude_hold = None
            self.attitude.quaternion = quat.normalize(q)

    def orientation_at(self, position: np.ndarray, velocity: np.ndarray) -> np.ndarray:
        """Orientation for a state, resolving any attitude hold."""
        if self.attitude_hold is not None:
            try:
                return hold_quaternion(self.attitude_hold, position, velocity)
            except ValueError:
                pass  # hold undefined at this state; keep the current attitude
        return self.attitude.quaternion

    def thrust_direction_at(self, position: np.ndarray, velocity: np.ndarray) -> np.ndarray:
        """Inertial unit vector along the thrust axis."""
        return thrust_direction(self.orientation_at(position, velocity))

    # === Rollback ===

    def checkpoint(self) -> VehicleCheckpoint:
        return VehicleCheckpoint(
            mode=self.mode,
            body_id=self.current_body_id,
            attitude=copy.deepcopy(self.attitude),
            graph_state=self.graph.checkpoint(),
            stage_index=self.staging.current_stage,
            staging_history_length=len(self.staging.history),
        )

    def restore(self, checkpoint: VehicleCheckpoint):
        self.mode = checkpoint.mode
        self.current_body_id = checkpoint.body_id
        self.attitude = copy.deepcopy(checkpoint.attitude)
        self.graph.restore(checkpoint.graph_state)
        self.staging.current_stage = checkpoint.stage_index
        del self.staging.history[checkpoint.staging_history_length:]

    def __repr__(self) -> str:
        return (f"Vehicle({self.vehicle_id!r}, body={self.current_body_id!r}, "
                f"stage={self.stage_index}, mass={self.mass_kg:.1f}kg, mode={self.mode.name})")
