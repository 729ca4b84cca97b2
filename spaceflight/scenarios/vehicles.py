"""
Scenario Vehicles
=================

Blueprints and initial states shared by the scenarios.
"""

import numpy as np
from typing import Tuple

from ..environment.celestial import CelestialBody
from ..parts.blueprint import VehicleBlueprint
from ..parts.part import G0


def two_stage_blueprint(fuel_kg: float = 100.0,
                        fuel_flow_kg_s: float = 10.0,
                        isp_s: float = 100.0,
                        pod_mass_kg: float = 840.0,
                        tank_dry_mass_kg: float = 125.0,
                        engine_mass_kg: float = 150.0) -> VehicleBlueprint:
    """
    Command pod on top of a single engine stage.

    Stage 0 is the tank and engine, stage 1 the pod. Thrust is chosen so
    the engine burns fuel_flow_kg_s at full throttle.
    """
    return VehicleBlueprint.from_dict({
        'name': 'hopper',
        'parts': [
            {'id': 'pod', 'kind': 'command', 'dry_mass_kg': pod_mass_kg,
             'stage': 1, 'drag_area_m2': 1.5},
            {'id': 'tank', 'kind': 'tank', 'parent': 'pod', 'dry_mass_kg': tank_dry_mass_kg,
             'fuel_kg': fuel_kg, 'stage': 0},
            {'id': 'engine', 'kind': 'engine', 'parent': 'tank', 'dry_mass_kg': engine_mass_kg,
             'thrust_n': fuel_flow_kg_s * isp_s * G0, 'isp_s': isp_s, 'stage': 0},
        ],
    })


def circular_orbit_state(body: CelestialBody, altitude_m: float) -> Tuple[np.ndarray, np.ndarray]:
    """Equatorial circular orbit at an altitude, starting on the +X axis."""
    radius = body.radius_m + altitude_m
    speed = np.sqrt(body.mu / radius)
    return np.array([radius, 0.0, 0.0]), np.array([0.0, speed, 0.0])
