"""
Warp Coast Scenario
===================

Time warp around a circular low orbit: warp is refused mid-burn,
granted once the engine is off, and one full orbit on rails brings the
vehicle back to where it started.
"""

import numpy as np
from typing import Dict, List, Optional
from dataclasses import dataclass

from ..core.config import create_coast_config
from ..core.errors import UnsafeWarpContextError
from ..core.simulator import Simulator, StepResult, VehicleCommand
from ..orbits.kepler import elements_from_state
from .vehicles import circular_orbit_state, two_stage_blueprint


@dataclass
class WarpCoastConfig:
    """Configuration for warp coast scenario."""
    altitude_m: float = 400e3
    warp_factor: float = 100.0
    burn_steps: int = 5
    duration_orbits: float = 1.0
    time_step_s: float = 1.0


class WarpCoastScenario:
    """
    Time-warp scenario.

    Tests:
    - Warp refused while thrusting
    - Warp granted when coasting above the atmosphere
    - On-rails propagation over a full orbit
    """

    VEHICLE_ID = 'coaster'

    def __init__(self, config: WarpCoastConfig = None):
        """Initialize warp scenario."""
        self.config = config or WarpCoastConfig()

        self.sim_config = create_coast_config()
        self.sim_config.time_step_seconds = self.config.time_step_s
        self.sim_config.verbose = False

        self.simulator: Optional[Simulator] = None
        self.results: Dict = {}
        self.warp_log: List[Dict] = []
        self.history: List = []

    def setup(self):
        """Setup scenario."""
        self.simulator = Simulator(config=self.sim_config)
        self.warp_log.clear()

        earth = self.simulator.registry.get('earth')
        position, velocity = circular_orbit_state(earth, self.config.altitude_m)
        self.simulator.create_vehicle(self.VEHICLE_ID, two_stage_blueprint(fuel_kg=500.0),
                                      'earth', position, velocity)
        self.simulator.add_step_callback(self._warp_monitor)

    def _warp_monitor(self, sim: Simulator, result: StepResult):
        for change in result.warp_changes:
            self.warp_log.append({'time_s': change.time_s, 'from': change.from_factor,
                                  'to': change.to_factor, 'reason': change.reason})
        for error in result.errors:
            self.warp_log.append({'time_s': result.time_s, 'refused': error.error_code,
                                  'reasons': list(getattr(error, 'reasons', []))})

    def run(self, progress_callback=None) -> Dict:
        """Run warp scenario."""
        if self.simulator is None:
            self.setup()

        sim = self.simulator
        vid = self.VEHICLE_ID

        # Short burn with a warp request that must be refused
        refused = None
        for i in range(self.config.burn_steps):
            command = VehicleCommand(throttle=1.0)
            if i == self.config.burn_steps - 1:
                command.warp_request = self.config.warp_factor
            result = sim.step(commands={vid: command})
            unsafe = [e for e in result.errors if isinstance(e, UnsafeWarpContextError)]
            if unsafe:
                refused = unsafe[0]

        # Engine off; now warp is safe
        sim.step(commands={vid: VehicleCommand(throttle=0.0)})
        result = sim.step(commands={vid: VehicleCommand(warp_request=self.config.warp_factor)})
        granted = result.warp_factor == self.config.warp_factor

        vehicle = sim.get_vehicle(vid)
        earth = sim.registry.get(vehicle.current_body_id)
        start_position = vehicle.position.copy()
        start_velocity = vehicle.velocity.copy()
        period = elements_from_state(start_position, start_velocity, earth.mu).period(earth.mu)

        # Coast exactly one period (the last step is shortened to land on it)
        t_end = sim.time_s + self.config.duration_orbits * period
        while t_end - sim.time_s > 1e-6:
            dt = min(self.config.time_step_s, (t_end - sim.time_s) / sim.warp.factor)
            sim.step(dt)

        self.history = sim.history[vid]
        self.results = self._analyze_results(
            refused, granted, start_position, start_velocity, period)
        return self.results

    def _analyze_results(self, refused, granted, start_position, start_velocity, period) -> Dict:
        vehicle = self.simulator.get_vehicle(self.VEHICLE_ID)
        return {
            'warp_refused_while_thrusting': refused is not None,
            'refusal_reasons': refused.reasons if refused is not None else [],
            'warp_granted_when_coasting': granted,
            'orbital_period_s': period,
            'final_mode': vehicle.mode.name,
            'position_error_m': float(np.linalg.norm(vehicle.position - start_position)),
            'velocity_error_m_s': float(np.linalg.norm(vehicle.velocity - start_velocity)),
            'warp_log': self.warp_log,
        }

    def get_summary(self) -> str:
        """Get summary."""
        if not self.results:
            return "Scenario not yet run."

        return f"""
Warp Coast Scenario Summary
===========================
Warp refused mid-burn: {self.results['warp_refused_while_thrusting']}
  Reasons: {', '.join(self.results['refusal_reasons']) or '-'}
Warp granted when coasting: {self.results['warp_granted_when_coasting']}

Orbit period: {self.results['orbital_period_s']/60:.1f} min
Closure after one orbit:
  Position error: {self.results['position_error_m']:.3e} m
  Velocity error: {self.results['velocity_error_m_s']:.3e} m/s
"""

    def plot_results(self, out_png=None):
        from .plotting import plot_history
        return plot_history(self.history, "Warp coast", out_png)
