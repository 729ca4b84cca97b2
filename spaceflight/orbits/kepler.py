"""
Keplerian Orbits
================

Classical orbital elements, Kepler's equation and conversions between
elements and state vectors.

Conventions:
- Hyperbolic orbits carry a negative semi-major axis.
- Equatorial orbits use RAAN = 0 (node line along +X).
- Circular orbits use argument of periapsis = 0, so the anomaly is measured
  from the node line (or from +X when also equatorial).
"""

import numpy as np
from dataclasses import dataclass, replace
from typing import Tuple

G = 6.67430e-11  # m³/(kg·s²)

TWO_PI = 2.0 * np.pi

CIRCULAR_TOLERANCE = 1e-11
EQUATORIAL_TOLERANCE = 1e-11
PARABOLIC_TOLERANCE = 1e-9


@dataclass(frozen=True)
class OrbitalElements:
    """Classical orbital elements about a central body."""
    semi_major_axis_m: float
    eccentricity: float
    inclination_rad: float = 0.0
    raan_rad: float = 0.0
    arg_periapsis_rad: float = 0.0
    mean_anomaly_rad: float = 0.0  # at epoch
    epoch_s: float = 0.0

    @classmethod
    def from_degrees(cls,
                     semi_major_axis_m: float,
                     eccentricity: float = 0.0,
                     inclination_deg: float = 0.0,
                     raan_deg: float = 0.0,
                     arg_periapsis_deg: float = 0.0,
                     mean_anomaly_deg: float = 0.0,
                     epoch_s: float = 0.0) -> 'OrbitalElements':
        """Create elements from angles in degrees."""
        return cls(
            semi_major_axis_m=semi_major_axis_m,
            eccentricity=eccentricity,
            inclination_rad=np.radians(inclination_deg),
            raan_rad=np.radians(raan_deg),
            arg_periapsis_rad=np.radians(arg_periapsis_deg),
            mean_anomaly_rad=np.radians(mean_anomaly_deg),
            epoch_s=epoch_s,
        )

    @property
    def is_elliptic(self) -> bool:
        return self.eccentricity < 1.0

    @property
    def periapsis_m(self) -> float:
        """Periapsis radius."""
        return self.semi_major_axis_m * (1.0 - self.eccentricity)

    @property
    def apoapsis_m(self) -> float:
        """Apoapsis radius (infinite for open orbits)."""
        if not self.is_elliptic:
            return float('inf')
        return self.semi_major_axis_m * (1.0 + self.eccentricity)

    def mean_motion(self, mu: float) -> float:
        """Mean motion [rad/s]."""
        return np.sqrt(mu / abs(self.semi_major_axis_m)**3)

    def period(self, mu: float) -> float:
        """Orbital period using Kepler's third law (infinite for open orbits)."""
        if not self.is_elliptic:
            return float('inf')
        return TWO_PI / self.mean_motion(mu)

    def mean_anomaly_at(self, mu: float, t: float) -> float:
        """Mean anomaly at time t."""
        M = self.mean_anomaly_rad + self.mean_motion(mu) * (t - self.epoch_s)
        if self.is_elliptic:
            M = np.mod(M, TWO_PI)
        return M

    def at_epoch(self, mu: float, t: float) -> 'OrbitalElements':
        """Same orbit with the epoch moved to t."""
        return replace(self, mean_anomaly_rad=self.mean_anomaly_at(mu, t), epoch_s=t)


def solve_kepler(M: float, e: float, tol: float = 1e-14, max_iter: int = 50) -> float:
    """
    Solve Kepler's equation M = E - e·sin(E) for the eccentric anomaly.

    Args:
        M: Mean anomaly [rad]
        e: Eccentricity (0 <= e < 1)

    Returns:
        Eccentric anomaly E [rad]
    """
    M = np.mod(M, TWO_PI)
    E = M if e < 0.8 else np.pi

    for _ in range(max_iter):
        f = E - e * np.sin(E) - M
        delta = f / (1.0 - e * np.cos(E))
        E -= delta
        if abs(delta) < tol:
            break

    return E


def solve_kepler_hyperbolic(M: float, e: float, tol: float = 1e-14, max_iter: int = 100) -> float:
    """
    Solve the hyperbolic Kepler equation M = e·sinh(F) - F.

    Args:
        M: Hyperbolic mean anomaly [rad]
        e: Eccentricity (e > 1)

    Returns:
        Hyperbolic anomaly F
    """
    F = np.sign(M) * np.log(2.0 * abs(M) / e + 1.8)

    for _ in range(max_iter):
        f = e * np.sinh(F) - F - M
        delta = f / (e * np.cosh(F) - 1.0)
        F -= delta
        if abs(delta) < tol * max(1.0, abs(F)):
            break

    return F


def true_from_mean(M: float, e: float) -> float:
    """True anomaly from mean anomaly."""
    if e < 1.0:
        E = solve_kepler(M, e)
        return 2.0 * np.arctan2(np.sqrt(1.0 + e) * np.sin(E / 2.0),
                                np.sqrt(1.0 - e) * np.cos(E / 2.0))
    F = solve_kepler_hyperbolic(M, e)
    return 2.0 * np.arctan(np.sqrt((e + 1.0) / (e - 1.0)) * np.tanh(F / 2.0))


def mean_from_true(nu: float, e: float) -> float:
    """Mean anomaly from true anomaly."""
    if e < 1.0:
        E = 2.0 * np.arctan2(np.sqrt(1.0 - e) * np.sin(nu / 2.0),
                             np.sqrt(1.0 + e) * np.cos(nu / 2.0))
        return np.mod(E - e * np.sin(E), TWO_PI)
    F = 2.0 * np.arctanh(np.sqrt((e - 1.0) / (e + 1.0)) * np.tan(nu / 2.0))
    return e * np.sinh(F) - F


def perifocal_rotation(inclination: float, raan: float, arg_periapsis: float) -> np.ndarray:
    """Rotation matrix from the perifocal (PQW) frame to the body-inertial frame."""
    R3_Omega = np.array([
        [np.cos(raan), -np.sin(raan), 0],
        [np.sin(raan), np.cos(raan), 0],
        [0, 0, 1]
    ])

    R1_i = np.array([
        [1, 0, 0],
        [0, np.cos(inclination), -np.sin(inclination)],
        [0, np.sin(inclination), np.cos(inclination)]
    ])

    R3_omega = np.array([
        [np.cos(arg_periapsis), -np.sin(arg_periapsis), 0],
        [np.sin(arg_periapsis), np.cos(arg_periapsis), 0],
        [0, 0, 1]
    ])

    return R3_Omega @ R1_i @ R3_omega


def state_from_elements(elements: OrbitalElements, mu: float, t: float) -> Tuple[np.ndarray, np.ndarray]:
    """
    Closed-form position and velocity at time t.

    Args:
        elements: Orbital elements
        mu: Gravitational parameter of the central body [m³/s²]
        t: Simulation time [s]

    Returns:
        Tuple of (position [m], velocity [m/s]) in the body-inertial frame
    """
    a = elements.semi_major_axis_m
    e = elements.eccentricity

    nu = true_from_mean(elements.mean_anomaly_at(mu, t), e)

    # Semi-latus rectum
    p = a * (1 - e**2)

    # Position and velocity in perifocal frame
    r_pqw = (p / (1 + e * np.cos(nu))) * np.array([np.cos(nu), np.sin(nu), 0])
    v_pqw = np.sqrt(mu / p) * np.array([-np.sin(nu), e + np.cos(nu), 0])

    Q = perifocal_rotation(elements.inclination_rad, elements.raan_rad,
                           elements.arg_periapsis_rad)

    return Q @ r_pqw, Q @ v_pqw


def _signed_angle(a: np.ndarray, b: np.ndarray, axis: np.ndarray) -> float:
    """Angle from a to b, positive about axis, in [0, 2π)."""
    angle = np.arctan2(np.dot(np.cross(a, b), axis), np.dot(a, b))
    return np.mod(angle, TWO_PI)


def elements_from_state(position: np.ndarray,
                        velocity: np.ndarray,
                        mu: float,
                        epoch_s: float = 0.0) -> OrbitalElements:
    """
    Calculate classical orbital elements from a state vector.

    Args:
        position: Position relative to the central body [m]
        velocity: Velocity relative to the central body [m/s]
        mu: Gravitational parameter [m³/s²]
        epoch_s: Time the state refers to

    Returns:
        OrbitalElements with the mean anomaly at epoch_s

    Raises:
        ValueError: For radial or parabolic trajectories, which have no
            usable element set
    """
    r = np.asarray(position, dtype=float)
    v = np.asarray(velocity, dtype=float)
    r_mag = np.linalg.norm(r)
    v_mag = np.linalg.norm(v)

    if r_mag == 0.0:
        raise ValueError("State at the body centre has no orbit")

    # Specific angular momentum
    h = np.cross(r, v)
    h_mag = np.linalg.norm(h)
    if h_mag < 1e-12 * r_mag * max(v_mag, 1e-12):
        raise ValueError("Radial trajectory has no orbital plane")
    h_hat = h / h_mag

    # Node vector
    n = np.cross([0.0, 0.0, 1.0], h)
    n_mag = np.linalg.norm(n)

    # Eccentricity vector
    e_vec = ((v_mag**2 - mu / r_mag) * r - np.dot(r, v) * v) / mu
    e = np.linalg.norm(e_vec)

    if abs(e - 1.0) < PARABOLIC_TOLERANCE:
        raise ValueError("Parabolic trajectory is not supported")

    energy = v_mag**2 / 2 - mu / r_mag
    a = -mu / (2 * energy)

    i = np.arccos(np.clip(h_hat[2], -1.0, 1.0))

    equatorial = n_mag < EQUATORIAL_TOLERANCE * h_mag
    if equatorial:
        raan = 0.0
        node = np.array([1.0, 0.0, 0.0])
    else:
        raan = np.mod(np.arctan2(n[1], n[0]), TWO_PI)
        node = n / n_mag

    if e < CIRCULAR_TOLERANCE:
        e = 0.0
        arg_periapsis = 0.0
        nu = _signed_angle(node, r, h_hat)
    else:
        arg_periapsis = _signed_angle(node, e_vec, h_hat)
        nu = _signed_angle(e_vec, r, h_hat)

    if e > 1.0 and nu > np.pi:
        nu -= TWO_PI

    return OrbitalElements(
        semi_major_axis_m=a,
        eccentricity=e,
        inclination_rad=i,
        raan_rad=raan,
        arg_periapsis_rad=arg_periapsis,
        mean_anomaly_rad=mean_from_true(nu, e),
        epoch_s=epoch_s,
    )


def specific_energy(position: np.ndarray, velocity: np.ndarray, mu: float) -> float:
    """Specific orbital energy [J/kg]."""
    return 0.5 * np.dot(velocity, velocity) - mu / np.linalg.norm(position)


def sphere_of_influence(semi_major_axis_m: float, mass_kg: float, parent_mass_kg: float) -> float:
    """Laplace sphere-of-influence radius a·(m/M)^(2/5)."""
    return semi_major_axis_m * (mass_kg / parent_mass_kg) ** 0.4
