"""
Orbits Module
=============

Two-body Keplerian orbits.
"""

from .kepler import (
    G,
    OrbitalElements,
    elements_from_state,
    solve_kepler,
    solve_kepler_hyperbolic,
    sphere_of_influence,
    state_from_elements,
)

__all__ = [
    'G',
    'OrbitalElements',
    'elements_from_state',
    'solve_kepler',
    'solve_kepler_hyperbolic',
    'sphere_of_influence',
    'state_from_elements',
]
