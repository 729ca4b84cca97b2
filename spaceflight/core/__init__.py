"""
Simulation Core Module
======================

Core simulation components.
"""

from .simulator import Simulator, StepResult, VehicleCommand, VehicleSnapshot
from .vehicle import Vehicle
from .time_manager import Regime, SimulationClock
from .time_warp import TimeWarpScheduler, WarpSafetyContext
from .floating_origin import FloatingOriginManager, GridPosition
from .config import SimulationConfig

__all__ = [
    'Simulator',
    'StepResult',
    'VehicleCommand',
    'VehicleSnapshot',
    'Vehicle',
    'Regime',
    'SimulationClock',
    'TimeWarpScheduler',
    'WarpSafetyContext',
    'FloatingOriginManager',
    'GridPosition',
    'SimulationConfig',
]
