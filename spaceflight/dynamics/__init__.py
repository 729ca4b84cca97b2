"""
Dynamics Module
===============

Numerical integrators and the patched-conic propagator.
"""

from .integrators import LeapfrogIntegrator, RK4Integrator, RK45Integrator, create_integrator
from .modes import Integrated, OnRails, PropagationMode, StateVector, to_integrated, to_on_rails
from .propagator import PropagationReport, Propagator, SOITransition

__all__ = [
    'LeapfrogIntegrator',
    'RK4Integrator',
    'RK45Integrator',
    'create_integrator',
    'Integrated',
    'OnRails',
    'PropagationMode',
    'StateVector',
    'to_integrated',
    'to_on_rails',
    'PropagationReport',
    'Propagator',
    'SOITransition',
]
