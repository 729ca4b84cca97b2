"""
Spaceflight Propagation Core
============================

Orbital propagation and vehicle physics for a spaceflight game.

Model:
- Patched conics: gravity of the current reference body only
- Vehicles as part graphs with staged engines, tanks and decouplers
- Integrated flight at real time, Keplerian coasts under time warp
- Body-relative positions with a floating origin

Components:
- Celestial body registry (sphere-of-influence tree)
- Part graph and staging engine
- Propagator (RK4 / RK45 / leapfrog and on-rails)
- Time-warp scheduler
- Floating-origin frame manager
"""

__version__ = "0.3.0"

from spaceflight.core.simulator import Simulator, StepResult, VehicleCommand, VehicleSnapshot
from spaceflight.core.vehicle import Vehicle
from spaceflight.core.time_manager import SimulationClock

__all__ = [
    'Simulator',
    'StepResult',
    'VehicleCommand',
    'VehicleSnapshot',
    'Vehicle',
    'SimulationClock',
]
