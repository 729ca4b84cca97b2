"""
Quaternion Math
===============

Unit quaternions stored as numpy arrays [w, x, y, z] (scalar first).
A quaternion maps body-frame vectors into the inertial frame.
"""

import numpy as np

IDENTITY = np.array([1.0, 0.0, 0.0, 0.0])


def normalize(q: np.ndarray) -> np.ndarray:
    """Return q scaled to unit length (identity for a zero quaternion)."""
    q = np.asarray(q, dtype=float)
    norm = np.linalg.norm(q)
    if norm < 1e-12:
        return IDENTITY.copy()
    return q / norm


def multiply(q1: np.ndarray, q2: np.ndarray) -> np.ndarray:
    """Hamilton product q1 * q2."""
    w1, x1, y1, z1 = q1
    w2, x2, y2, z2 = q2
    return np.array([
        w1*w2 - x1*x2 - y1*y2 - z1*z2,
        w1*x2 + x1*w2 + y1*z2 - z1*y2,
        w1*y2 - x1*z2 + y1*w2 + z1*x2,
        w1*z2 + x1*y2 - y1*x2 + z1*w2,
    ])


def conjugate(q: np.ndarray) -> np.ndarray:
    """Quaternion conjugate (inverse for unit quaternions)."""
    return np.array([q[0], -q[1], -q[2], -q[3]])


def to_matrix(q: np.ndarray) -> np.ndarray:
    """Convert quaternion to rotation matrix (body to inertial)."""
    w, x, y, z = q

    return np.array([
        [1-2*(y*y+z*z), 2*(x*y-w*z), 2*(x*z+w*y)],
        [2*(x*y+w*z), 1-2*(x*x+z*z), 2*(y*z-w*x)],
        [2*(x*z-w*y), 2*(y*z+w*x), 1-2*(x*x+y*y)]
    ])


def rotate(q: np.ndarray, v: np.ndarray) -> np.ndarray:
    """Rotate a body-frame vector into the inertial frame."""
    return to_matrix(q) @ np.asarray(v, dtype=float)


def from_axis_angle(axis: np.ndarray, angle_rad: float) -> np.ndarray:
    """Quaternion for a rotation of angle_rad about axis."""
    axis = np.asarray(axis, dtype=float)
    axis = axis / np.linalg.norm(axis)
    half = 0.5 * angle_rad
    return np.concatenate([[np.cos(half)], np.sin(half) * axis])


def from_two_vectors(v_from: np.ndarray, v_to: np.ndarray) -> np.ndarray:
    """
    Shortest-arc rotation taking direction v_from onto direction v_to.

    Args:
        v_from: Source direction (any length)
        v_to: Target direction (any length)

    Returns:
        Unit quaternion q with rotate(q, v_from) parallel to v_to
    """
    a = np.asarray(v_from, dtype=float)
    b = np.asarray(v_to, dtype=float)
    a = a / np.linalg.norm(a)
    b = b / np.linalg.norm(b)

    d = np.dot(a, b)
    if d < -1.0 + 1e-12:
        # Antiparallel: rotate by pi about any axis orthogonal to a
        ortho = np.cross([1.0, 0.0, 0.0], a)
        if np.linalg.norm(ortho) < 1e-6:
            ortho = np.cross([0.0, 1.0, 0.0], a)
        return from_axis_angle(ortho, np.pi)

    axis = np.cross(a, b)
    return normalize(np.concatenate([[1.0 + d], axis]))


def derivative(q: np.ndarray, omega: np.ndarray) -> np.ndarray:
    """
    Quaternion kinematics equation.

    Args:
        q: Quaternion [w, x, y, z]
        omega: Angular velocity in body frame [rad/s]

    Returns:
        Quaternion derivative dq/dt
    """
    wx, wy, wz = omega

    Omega = 0.5 * np.array([
        [0, -wx, -wy, -wz],
        [wx, 0, wz, -wy],
        [wy, -wz, 0, wx],
        [wz, wy, -wx, 0]
    ])

    return Omega @ q


def integrate(q: np.ndarray, omega: np.ndarray, dt: float) -> np.ndarray:
    """Advance attitude by dt under constant body rate (RK4, renormalized)."""
    q = np.asarray(q, dtype=float)
    omega = np.asarray(omega, dtype=float)
    if not np.any(omega):
        return q.copy()

    k1 = derivative(q, omega)
    k2 = derivative(q + 0.5*dt*k1, omega)
    k3 = derivative(q + 0.5*dt*k2, omega)
    k4 = derivative(q + dt*k3, omega)

    return normalize(q + (dt/6) * (k1 + 2*k2 + 2*k3 + k4))


def euler_angles_deg(q: np.ndarray) -> np.ndarray:
    """
    Convert quaternion to Euler angles (roll, pitch, yaw) in degrees.
    Using ZYX convention.
    """
    w, x, y, z = q

    roll = np.arctan2(2 * (w * x + y * z), 1 - 2 * (x * x + y * y))

    sinp = 2 * (w * y - z * x)
    if abs(sinp) >= 1:
        pitch = np.copysign(np.pi / 2, sinp)
    else:
        pitch = np.arcsin(sinp)

    yaw = np.arctan2(2 * (w * z + x * y), 1 - 2 * (y * y + z * z))

    return np.degrees(np.array([roll, pitch, yaw]))
