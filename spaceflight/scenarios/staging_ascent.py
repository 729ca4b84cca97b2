"""
Staging Burn Scenario
=====================

Full-throttle burn of a two-stage vehicle in low orbit until the first
stage runs dry and is jettisoned.
"""

import numpy as np
from typing import Dict, List, Optional
from dataclasses import dataclass

from ..core.config import create_ascent_config
from ..core.simulator import Simulator, StepResult, VehicleCommand
from ..geometry.frames import AttitudeHold
from ..parts.part import G0
from .vehicles import circular_orbit_state, two_stage_blueprint


@dataclass
class StagingAscentConfig:
    """Configuration for staging scenario."""
    duration_s: float = 20.0
    time_step_s: float = 0.1
    altitude_m: float = 200e3
    fuel_kg: float = 100.0
    fuel_flow_kg_s: float = 10.0
    isp_s: float = 100.0
    auto_stage: bool = True


class StagingAscentScenario:
    """
    Staged burn scenario.

    Tests:
    - Fuel drain at the engine's mass flow
    - Auto-staging at burnout
    - Mass drop by the jettisoned stage
    - Delta-v against the rocket equation
    """

    VEHICLE_ID = 'hopper'

    def __init__(self, config: StagingAscentConfig = None):
        """
        Initialize staging scenario.

        Args:
            config: Scenario configuration
        """
        self.config = config or StagingAscentConfig()

        self.sim_config = create_ascent_config()
        self.sim_config.duration_seconds = self.config.duration_s
        self.sim_config.time_step_seconds = self.config.time_step_s
        self.sim_config.output_rate_hz = 1.0 / self.config.time_step_s
        self.sim_config.staging.auto_stage = self.config.auto_stage
        self.sim_config.verbose = False

        self.simulator: Optional[Simulator] = None
        self.results: Dict = {}
        self.staging_log: List[Dict] = []
        self.history: List = []

    def setup(self):
        """Setup scenario."""
        self.simulator = Simulator(config=self.sim_config)
        self.staging_log.clear()

        earth = self.simulator.registry.get('earth')
        position, velocity = circular_orbit_state(earth, self.config.altitude_m)
        blueprint = two_stage_blueprint(
            fuel_kg=self.config.fuel_kg,
            fuel_flow_kg_s=self.config.fuel_flow_kg_s,
            isp_s=self.config.isp_s,
        )
        self.simulator.create_vehicle(self.VEHICLE_ID, blueprint, 'earth', position, velocity)
        self.simulator.add_step_callback(self._staging_monitor)

    def _staging_monitor(self, sim: Simulator, result: StepResult):
        for vehicle_id, event in result.staging_events:
            self.staging_log.append({
                'vehicle_id': vehicle_id,
                'time_s': event.time_s,
                'from_stage': event.from_stage,
                'to_stage': event.to_stage,
                'detached': list(event.detached_part_ids),
                'automatic': event.automatic,
                'mass_after_kg': result.snapshots[vehicle_id].mass_kg,
            })

    def _commands(self, sim: Simulator) -> Dict[str, VehicleCommand]:
        if sim.step_count == 0:
            return {self.VEHICLE_ID: VehicleCommand(throttle=1.0,
                                                    orientation_target=AttitudeHold.PROGRADE)}
        return {}

    def run(self, progress_callback=None) -> Dict:
        """Run staging scenario."""
        if self.simulator is None:
            self.setup()

        vehicle = self.simulator.get_vehicle(self.VEHICLE_ID)
        self._initial_mass = vehicle.mass_kg
        self._initial_velocity = vehicle.velocity.copy()

        history = self.simulator.run(command_source=self._commands,
                                     progress_callback=progress_callback)
        self.history = history[self.VEHICLE_ID]
        self.results = self._analyze_results(self.history)

        return self.results

    def _analyze_results(self, history) -> Dict:
        """Analyze staging results."""
        if not history:
            return {}

        burnout_time = self.staging_log[0]['time_s'] if self.staging_log else None
        mass_before = self._initial_mass - self.config.fuel_kg
        mass_after = self.staging_log[0]['mass_after_kg'] if self.staging_log else history[-1].mass_kg

        # Ideal delta-v of the burn
        ideal_dv = self.config.isp_s * G0 * np.log(self._initial_mass / mass_before)

        return {
            'duration_s': history[-1].time_s,
            'num_samples': len(history),
            'burnout_time_s': burnout_time,
            'initial_mass_kg': self._initial_mass,
            'mass_at_burnout_kg': mass_before,
            'mass_after_staging_kg': mass_after,
            'jettisoned_mass_kg': mass_before - mass_after,
            'final_stage': history[-1].stage_index,
            'final_thrust_n': history[-1].thrust_n,
            'ideal_delta_v_m_s': ideal_dv,
            'staging_events': self.staging_log,
        }

    def get_summary(self) -> str:
        """Get human-readable summary."""
        if not self.results:
            return "Scenario not yet run."

        burnout = self.results['burnout_time_s']
        burnout_str = f"{burnout:.2f} s" if burnout is not None else "none"

        return f"""
Staging Scenario Summary
========================
Duration: {self.results['duration_s']:.1f} s
Burnout / staging: {burnout_str}

Mass:
  Initial: {self.results['initial_mass_kg']:.1f} kg
  At burnout: {self.results['mass_at_burnout_kg']:.1f} kg
  After staging: {self.results['mass_after_staging_kg']:.1f} kg

Final stage: {self.results['final_stage']}
Ideal delta-v: {self.results['ideal_delta_v_m_s']:.1f} m/s
"""

    def plot_results(self, out_png=None):
        """Plot radius, speed, mass and stage over the burn."""
        from .plotting import plot_history
        return plot_history(self.history, "Staged burn", out_png)
