"""
Simulation Configuration
========================

Tunable parameters for propagation, time warp and staging.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Tuple

from .errors import ConfigurationError

INTEGRATORS = ('rk4', 'rk45', 'leapfrog')

DEFAULT_WARP_LADDER = (1.0, 5.0, 10.0, 50.0, 100.0, 1000.0, 10000.0, 100000.0)


@dataclass
class PropagatorParameters:
    """Numerical propagation settings."""
    # Integrated mode
    integrator: str = 'rk4'  # used while thrusting
    coast_integrator: str = 'rk4'  # used for unpowered integrated steps
    max_substep_s: float = 0.5
    rk45_rtol: float = 1e-9
    rk45_atol: float = 1e-6

    # On-rails mode
    rails_substep_fraction: float = 1.0 / 64.0  # of the orbital period
    rails_max_substep_s: float = 3600.0  # cap for hyperbolic arcs
    event_time_tolerance_s: float = 1e-3

    # SOI hysteresis: margin = max(absolute, fraction * soi)
    soi_hysteresis_m: float = 1000.0
    soi_hysteresis_fraction: float = 1e-4

    # Runaway detection
    max_position_m: float = 1e14
    max_speed_m_s: float = 1e8

    enable_drag: bool = False

    def __post_init__(self):
        for name in ('integrator', 'coast_integrator'):
            value = getattr(self, name)
            if value not in INTEGRATORS:
                raise ConfigurationError(f"Unknown integrator '{value}'", config_key=name)
        if self.max_substep_s <= 0:
            raise ConfigurationError("Substep must be positive", config_key='max_substep_s')
        if not 0 < self.rails_substep_fraction <= 1:
            raise ConfigurationError("Rails substep fraction must be in (0, 1]",
                                     config_key='rails_substep_fraction')
        if self.soi_hysteresis_m < 0 or self.soi_hysteresis_fraction < 0:
            raise ConfigurationError("SOI hysteresis must be non-negative",
                                     config_key='soi_hysteresis_m')

    def soi_margin(self, soi_radius_m: float) -> float:
        """Hysteresis band half-width for an SOI boundary."""
        return max(self.soi_hysteresis_m, self.soi_hysteresis_fraction * soi_radius_m)


@dataclass
class WarpParameters:
    """Time-warp ladder and safety limits."""
    ladder: Tuple[float, ...] = DEFAULT_WARP_LADDER
    proximity_limit_m: float = 2500.0  # other vehicles closer than this block warp

    def __post_init__(self):
        self.ladder = tuple(float(f) for f in self.ladder)
        if not self.ladder or self.ladder[0] != 1.0:
            raise ConfigurationError("Warp ladder must start at 1", config_key='ladder')
        if any(b <= a for a, b in zip(self.ladder, self.ladder[1:])):
            raise ConfigurationError("Warp ladder must be strictly increasing",
                                     config_key='ladder')


@dataclass
class StagingParameters:
    """Staging policy."""
    auto_stage: bool = True


@dataclass
class SimulationConfig:
    """Complete simulation configuration."""
    # Simulation timing
    start_time: datetime = field(default_factory=lambda: datetime(2026, 1, 8, 0, 0, 0))
    duration_seconds: float = 600.0
    time_step_seconds: float = 0.1

    # Component configurations
    propagator: PropagatorParameters = field(default_factory=PropagatorParameters)
    warp: WarpParameters = field(default_factory=WarpParameters)
    staging: StagingParameters = field(default_factory=StagingParameters)

    # Execution
    max_workers: int = 4  # parallel vehicle propagation

    # Output options
    output_rate_hz: float = 1.0  # history sampling rate
    save_trajectory: bool = True
    verbose: bool = True

    def __post_init__(self):
        """Validate configuration."""
        if self.time_step_seconds <= 0:
            raise ConfigurationError("Time step must be positive", config_key='time_step_seconds')
        if self.duration_seconds <= 0:
            raise ConfigurationError("Duration must be positive", config_key='duration_seconds')
        if self.max_workers < 1:
            raise ConfigurationError("Need at least one worker", config_key='max_workers')
        if self.output_rate_hz <= 0:
            raise ConfigurationError("Output rate must be positive", config_key='output_rate_hz')


# Pre-defined configurations
def create_ascent_config() -> SimulationConfig:
    """Configuration for powered flight with staging."""
    return SimulationConfig(
        duration_seconds=60.0,
        time_step_seconds=0.1,
    )


def create_coast_config() -> SimulationConfig:
    """Configuration for long unpowered coasts under time warp."""
    return SimulationConfig(
        duration_seconds=6 * 3600.0,
        time_step_seconds=1.0,
        output_rate_hz=1.0 / 60.0,
    )


def create_transfer_config() -> SimulationConfig:
    """Configuration for interplanetary or lunar transfers."""
    config = SimulationConfig(
        duration_seconds=5 * 86400.0,
        time_step_seconds=1.0,
        output_rate_hz=1.0 / 600.0,
    )
    config.propagator.coast_integrator = 'leapfrog'
    return config
