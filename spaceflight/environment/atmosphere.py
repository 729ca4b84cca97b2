"""
Atmosphere Model
================

Layered exponential atmosphere with a hard ceiling.

Above the ceiling a body is treated as vacuum: warp is allowed and
on-rails propagation is valid.
"""

import numpy as np
from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class AtmosphereLayer:
    """Atmospheric layer parameters."""
    h_base_m: float  # Base altitude [m]
    h_top_m: float   # Top altitude [m]
    rho_base: float  # Base density [kg/m³]
    H: float         # Scale height [m]


@dataclass(frozen=True)
class AtmosphereModel:
    """Atmospheric density profile of one body."""
    layers: Tuple[AtmosphereLayer, ...]
    ceiling_m: float

    @classmethod
    def exponential(cls,
                    surface_density: float,
                    scale_height_m: float,
                    ceiling_m: float) -> 'AtmosphereModel':
        """Single-layer atmosphere."""
        return cls(
            layers=(AtmosphereLayer(0.0, ceiling_m, surface_density, scale_height_m),),
            ceiling_m=ceiling_m,
        )

    def contains(self, altitude_m: float) -> bool:
        """True below the ceiling."""
        return altitude_m < self.ceiling_m

    def density(self, altitude_m: float) -> float:
        """
        Calculate atmospheric density.

        Args:
            altitude_m: Altitude above the body surface [m]

        Returns:
            Atmospheric density [kg/m³]
        """
        if altitude_m >= self.ceiling_m:
            return 0.0

        if altitude_m < 0:
            return self.layers[0].rho_base

        for layer in self.layers:
            if layer.h_base_m <= altitude_m < layer.h_top_m:
                dh = altitude_m - layer.h_base_m
                return layer.rho_base * np.exp(-dh / layer.H)

        return 0.0

    def drag_acceleration(self,
                          altitude_m: float,
                          velocity: np.ndarray,
                          drag_area_m2: float,
                          mass_kg: float,
                          drag_coefficient: float = 2.2) -> np.ndarray:
        """
        Drag acceleration against the body-relative velocity.

        The atmosphere is taken as static in the body-inertial frame.
        """
        rho = self.density(altitude_m)
        v_mag = np.linalg.norm(velocity)

        if rho == 0.0 or v_mag < 1e-10 or drag_area_m2 <= 0.0:
            return np.zeros(3)

        return -0.5 * rho * drag_coefficient * drag_area_m2 / mass_kg * v_mag * velocity

