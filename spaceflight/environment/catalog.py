"""
Solar System Catalog
====================

Default body catalog: the Sun, the eight planets and the Moon.

Planet orbits are heliocentric ecliptic elements (approximate J2000 values);
the Moon orbits Earth. Radii and mean orbital radii follow the values
used by the flight experiments.
"""

from typing import Dict, List

from .celestial import CelestialRegistry

SOLAR_SYSTEM: List[Dict] = [
    {
        'id': 'sun', 'name': 'Sun',
        'mass_kg': 1.98847e30, 'radius_m': 695_508_000.0,
    },
    {
        'id': 'mercury', 'name': 'Mercury', 'parent': 'sun',
        'mass_kg': 3.3011e23, 'radius_m': 2.4397e6,
        'orbit': {'semi_major_axis_m': 57.91e9, 'eccentricity': 0.2056,
                  'inclination_deg': 7.005, 'raan_deg': 48.33,
                  'arg_periapsis_deg': 29.12, 'mean_anomaly_deg': 174.8},
    },
    {
        'id': 'venus', 'name': 'Venus', 'parent': 'sun',
        'mass_kg': 4.8675e24, 'radius_m': 6.0518e6,
        'orbit': {'semi_major_axis_m': 108.21e9, 'eccentricity': 0.0068,
                  'inclination_deg': 3.395, 'raan_deg': 76.68,
                  'arg_periapsis_deg': 54.88, 'mean_anomaly_deg': 50.1},
        'atmosphere': {'surface_density': 65.0, 'scale_height_m': 15.9e3,
                       'ceiling_m': 250e3},
    },
    {
        'id': 'earth', 'name': 'Earth', 'parent': 'sun',
        'mass_kg': 5.97237e24, 'radius_m': 6.371e6,
        'orbit': {'semi_major_axis_m': 149.60e9, 'eccentricity': 0.0167,
                  'inclination_deg': 0.0, 'raan_deg': 0.0,
                  'arg_periapsis_deg': 102.94, 'mean_anomaly_deg': 357.5},
        # Simplified US Standard Atmosphere 1976 below 100 km
        'atmosphere': {'layers': [[0.0, 25e3, 1.225, 7249.0],
                                  [25e3, 100e3, 3.899e-2, 6349.0]],
                       'ceiling_m': 100e3},
    },
    {
        'id': 'moon', 'name': 'Moon', 'parent': 'earth',
        'mass_kg': 7.342e22, 'radius_m': 1.7374e6,
        'orbit': {'semi_major_axis_m': 384.4e6, 'eccentricity': 0.0549,
                  'inclination_deg': 5.145, 'raan_deg': 125.08,
                  'arg_periapsis_deg': 318.15, 'mean_anomaly_deg': 135.27},
    },
    {
        'id': 'mars', 'name': 'Mars', 'parent': 'sun',
        'mass_kg': 6.4171e23, 'radius_m': 3.3962e6,
        'orbit': {'semi_major_axis_m': 228.6e9, 'eccentricity': 0.0934,
                  'inclination_deg': 1.85, 'raan_deg': 49.56,
                  'arg_periapsis_deg': 286.5, 'mean_anomaly_deg': 19.4},
        'atmosphere': {'surface_density': 0.020, 'scale_height_m': 11.1e3,
                       'ceiling_m': 125e3},
    },
    {
        'id': 'jupiter', 'name': 'Jupiter', 'parent': 'sun',
        'mass_kg': 1.8982e27, 'radius_m': 71.492e6,
        'orbit': {'semi_major_axis_m': 778.479e9, 'eccentricity': 0.0489,
                  'inclination_deg': 1.303, 'raan_deg': 100.46,
                  'arg_periapsis_deg': 273.87, 'mean_anomaly_deg': 20.0},
        'atmosphere': {'surface_density': 0.16, 'scale_height_m': 27e3,
                       'ceiling_m': 1000e3},
    },
    {
        'id': 'saturn', 'name': 'Saturn', 'parent': 'sun',
        'mass_kg': 5.6834e26, 'radius_m': 58.232e6,
        'orbit': {'semi_major_axis_m': 1433.525e9, 'eccentricity': 0.0565,
                  'inclination_deg': 2.485, 'raan_deg': 113.67,
                  'arg_periapsis_deg': 339.39, 'mean_anomaly_deg': 317.0},
        'atmosphere': {'surface_density': 0.19, 'scale_height_m': 59.5e3,
                       'ceiling_m': 1000e3},
    },
    {
        'id': 'uranus', 'name': 'Uranus', 'parent': 'sun',
        'mass_kg': 8.6810e25, 'radius_m': 25.559e6,
        'orbit': {'semi_major_axis_m': 2870.975e9, 'eccentricity': 0.0457,
                  'inclination_deg': 0.773, 'raan_deg': 74.0,
                  'arg_periapsis_deg': 96.99, 'mean_anomaly_deg': 142.2},
        'atmosphere': {'surface_density': 0.42, 'scale_height_m': 27.7e3,
                       'ceiling_m': 1000e3},
    },
    {
        'id': 'neptune', 'name': 'Neptune', 'parent': 'sun',
        'mass_kg': 1.02413e26, 'radius_m': 24.764e6,
        'orbit': {'semi_major_axis_m': 4500e9, 'eccentricity': 0.0113,
                  'inclination_deg': 1.77, 'raan_deg': 131.78,
                  'arg_periapsis_deg': 273.19, 'mean_anomaly_deg': 256.2},
        'atmosphere': {'surface_density': 0.45, 'scale_height_m': 19.7e3,
                       'ceiling_m': 1000e3},
    },
]


def solar_system() -> CelestialRegistry:
    """Registry built from the default catalog."""
    return CelestialRegistry.from_catalog(SOLAR_SYSTEM)
