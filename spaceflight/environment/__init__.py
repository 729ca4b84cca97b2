"""
Environment Module
==================

Celestial bodies, gravity and atmospheres.
"""

from .atmosphere import AtmosphereLayer, AtmosphereModel
from .celestial import (
    CelestialBody,
    CelestialRegistry,
    gravitational_acceleration_at,
    load_catalog,
)
from .catalog import SOLAR_SYSTEM, solar_system

__all__ = [
    'AtmosphereLayer',
    'AtmosphereModel',
    'CelestialBody',
    'CelestialRegistry',
    'gravitational_acceleration_at',
    'load_catalog',
    'SOLAR_SYSTEM',
    'solar_system',
]
