"""
Lunar Transfer Scenario
=======================

Hohmann-style coast from low Earth orbit toward the Moon under high time
warp, ending with a patched-conic hand-off into the Moon's sphere of
influence.
"""

import numpy as np
from typing import Dict, List, Optional
from dataclasses import dataclass

from ..core.config import create_transfer_config
from ..core.simulator import Simulator, StepResult, VehicleCommand
from .vehicles import two_stage_blueprint


@dataclass
class LunarTransferConfig:
    """Configuration for lunar transfer scenario."""
    parking_altitude_m: float = 200e3
    aim_inside_moon_orbit_m: float = 20_000e3  # apoapsis short of the Moon's centre
    warp_factor: float = 10000.0
    time_step_s: float = 1.0
    extra_coast_s: float = 86400.0


class LunarTransferScenario:
    """
    Lunar transfer scenario.

    Tests:
    - On-rails coast at high warp
    - SOI entry located by bisection and re-expressed in the Moon frame
    - Frame authority transfer
    """

    VEHICLE_ID = 'courier'

    def __init__(self, config: LunarTransferConfig = None):
        """Initialize transfer scenario."""
        self.config = config or LunarTransferConfig()

        self.sim_config = create_transfer_config()
        self.sim_config.time_step_seconds = self.config.time_step_s
        self.sim_config.output_rate_hz = 1.0 / 3600.0
        self.sim_config.verbose = False

        self.simulator: Optional[Simulator] = None
        self.results: Dict = {}
        self.transitions: List[Dict] = []
        self.history: List = []
        self.transfer_time_s = 0.0

    def setup(self):
        """Setup scenario."""
        self.simulator = Simulator(config=self.sim_config)
        self.transitions.clear()

        registry = self.simulator.registry
        earth = registry.get('earth')
        mu = earth.mu

        # Transfer ellipse from the parking radius to just inside the Moon's
        # position at arrival; arrival is half a transfer period from now.
        r1 = earth.radius_m + self.config.parking_altitude_m
        r_moon, v_moon = registry.state_relative_to_parent('moon', 0.0)
        r2 = np.linalg.norm(r_moon) - self.config.aim_inside_moon_orbit_m
        for _ in range(5):
            a = 0.5 * (r1 + r2)
            self.transfer_time_s = np.pi * np.sqrt(a**3 / mu)
            r_moon, v_moon = registry.state_relative_to_parent('moon', self.transfer_time_s)
            r2 = np.linalg.norm(r_moon) - self.config.aim_inside_moon_orbit_m

        a = 0.5 * (r1 + r2)
        arrival_dir = r_moon / np.linalg.norm(r_moon)
        normal = np.cross(r_moon, v_moon)
        normal /= np.linalg.norm(normal)

        position = -r1 * arrival_dir
        speed = np.sqrt(mu * (2.0 / r1 - 1.0 / a))
        velocity = speed * np.cross(normal, -arrival_dir)

        self.simulator.create_vehicle(self.VEHICLE_ID, two_stage_blueprint(), 'earth', position, velocity)
        self.simulator.add_step_callback(self._soi_monitor)

    def _soi_monitor(self, sim: Simulator, result: StepResult):
        for transition in result.transitions:
            self.transitions.append({
                'time_s': transition.time_s,
                'from': transition.from_body,
                'to': transition.to_body,
                'direction': transition.direction,
                'authoritative': sim.origin.authoritative_body(transition.vehicle_id),
            })
            print(f"  SOI {transition.direction}: {transition.from_body} -> "
                  f"{transition.to_body} at t={transition.time_s/3600:.2f} h")

    def run(self, progress_callback=None) -> Dict:
        """Run transfer scenario."""
        if self.simulator is None:
            self.setup()

        sim = self.simulator
        print(f"Running Lunar Transfer Scenario: {self.transfer_time_s/86400:.2f} day coast")

        sim.step(commands={self.VEHICLE_ID: VehicleCommand(warp_request=self.config.warp_factor)})

        duration = self.transfer_time_s + self.config.extra_coast_s - sim.time_s
        history = sim.run(duration_seconds=duration, progress_callback=progress_callback)
        self.history = history[self.VEHICLE_ID]
        self.results = self._analyze_results(self.history)

        return self.results

    def _analyze_results(self, history) -> Dict:
        if not history:
            return {}

        moon_samples = [s for s in history if s.body_id == 'moon']
        closest = min((np.linalg.norm(s.position) for s in moon_samples), default=None)
        entry = next((t for t in self.transitions if t['to'] == 'moon'), None)

        return {
            'transfer_time_s': self.transfer_time_s,
            'moon_soi_entry_s': entry['time_s'] if entry else None,
            'final_body': history[-1].body_id,
            'closest_sampled_moon_distance_m': closest,
            'num_transitions': len(self.transitions),
            'transitions': self.transitions,
            'total_duration_s': history[-1].time_s,
        }

    def get_summary(self) -> str:
        """Get summary."""
        if not self.results:
            return "Scenario not yet run."

        entry = self.results['moon_soi_entry_s']
        entry_str = f"{entry/3600:.2f} h" if entry is not None else "not reached"

        return f"""
Lunar Transfer Scenario Summary
===============================
Transfer time (Hohmann): {self.results['transfer_time_s']/3600:.2f} h
Moon SOI entry: {entry_str}
Final reference body: {self.results['final_body']}
Transitions: {self.results['num_transitions']}
Duration: {self.results['total_duration_s']/86400:.2f} days
"""

    def plot_results(self, out_png=None):
        from .plotting import plot_history
        return plot_history(self.history, "Lunar transfer", out_png)
