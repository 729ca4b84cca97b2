"""
Reference Frames
================

Body-centred inertial frames and the local-vertical/local-horizontal
(LVLH) frame of an orbiting vehicle.

Body-centred frames share axis orientation, so moving a state between two
of them is a pure translation of position and velocity.
"""

import numpy as np
from dataclasses import dataclass, field
from enum import Enum
from typing import Tuple

from . import quaternion

# Engines push along the body +Z axis
THRUST_AXIS_BODY = np.array([0.0, 0.0, 1.0])


@dataclass(frozen=True, eq=False)
class FrameTransform:
    """
    Translation between two non-rotating body-centred frames.

    ``apply`` maps a state expressed in the source frame to the target
    frame: r_target = r_source + position_offset.
    """
    position_offset: np.ndarray = field(default_factory=lambda: np.zeros(3))
    velocity_offset: np.ndarray = field(default_factory=lambda: np.zeros(3))

    def apply(self, position: np.ndarray, velocity: np.ndarray = None) -> Tuple[np.ndarray, np.ndarray]:
        """Re-express a state in the target frame."""
        new_position = np.asarray(position, dtype=float) + self.position_offset
        if velocity is None:
            return new_position, None
        return new_position, np.asarray(velocity, dtype=float) + self.velocity_offset

    def inverse(self) -> 'FrameTransform':
        return FrameTransform(-self.position_offset, -self.velocity_offset)

    def then(self, other: 'FrameTransform') -> 'FrameTransform':
        """Transform equal to applying self, then other."""
        return FrameTransform(self.position_offset + other.position_offset,
                              self.velocity_offset + other.velocity_offset)


def lvlh_matrix(position: np.ndarray, velocity: np.ndarray) -> np.ndarray:
    """
    Rotation from the inertial frame to LVLH.

    Axes: z toward the body centre (nadir), y opposite the orbit normal,
    x completing the right-handed set (along-track for circular orbits).

    Args:
        position: Position relative to the body centre
        velocity: Velocity relative to the body centre

    Returns:
        3x3 matrix whose rows are the LVLH axes in inertial coordinates
    """
    r = np.asarray(position, dtype=float)
    h = np.cross(r, velocity)

    z_axis = -r / np.linalg.norm(r)
    y_axis = -h / np.linalg.norm(h)
    x_axis = np.cross(y_axis, z_axis)

    return np.vstack([x_axis, y_axis, z_axis])


def inertial_to_lvlh(vector: np.ndarray, position: np.ndarray, velocity: np.ndarray) -> np.ndarray:
    return lvlh_matrix(position, velocity) @ np.asarray(vector, dtype=float)


def lvlh_to_inertial(vector: np.ndarray, position: np.ndarray, velocity: np.ndarray) -> np.ndarray:
    return lvlh_matrix(position, velocity).T @ np.asarray(vector, dtype=float)


class AttitudeHold(Enum):
    """Orientation targets resolved from the current orbit."""
    PROGRADE = "prograde"
    RETROGRADE = "retrograde"
    NORMAL = "normal"
    ANTINORMAL = "antinormal"
    RADIAL_OUT = "radial_out"
    RADIAL_IN = "radial_in"


def _unit(vector: np.ndarray, what: str) -> np.ndarray:
    norm = np.linalg.norm(vector)
    if not norm > 1e-12:
        raise ValueError(f"Attitude hold undefined: zero {what}")
    return vector / norm


def hold_direction(hold: AttitudeHold, position: np.ndarray, velocity: np.ndarray) -> np.ndarray:
    """
    Inertial unit vector for an attitude hold mode.

    Raises:
        ValueError: The reference vector (velocity, angular momentum or
            radius) is zero
    """
    r = np.asarray(position, dtype=float)
    v = np.asarray(velocity, dtype=float)

    if hold in (AttitudeHold.PROGRADE, AttitudeHold.RETROGRADE):
        direction = _unit(v, "velocity")
        return direction if hold is AttitudeHold.PROGRADE else -direction

    if hold in (AttitudeHold.NORMAL, AttitudeHold.ANTINORMAL):
        direction = _unit(np.cross(r, v), "angular momentum")
        return direction if hold is AttitudeHold.NORMAL else -direction

    direction = _unit(r, "radius")
    return direction if hold is AttitudeHold.RADIAL_OUT else -direction


def hold_quaternion(hold: AttitudeHold, position: np.ndarray, velocity: np.ndarray) -> np.ndarray:
    """Orientation pointing the thrust axis along the hold direction."""
    return quaternion.from_two_vectors(THRUST_AXIS_BODY, hold_direction(hold, position, velocity))


def thrust_direction(q: np.ndarray) -> np.ndarray:
    """Inertial direction of the thrust axis for orientation q."""
    return quaternion.rotate(q, THRUST_AXIS_BODY)
