"""
Simulation Clock
================

Monotonic simulated time, warp factor and propagation regime.
"""

from datetime import datetime, timedelta
from enum import Enum


class Regime(Enum):
    """How vehicles are propagated at the current warp factor."""
    INTEGRATED = "integrated"
    ON_RAILS = "on_rails"


class SimulationClock:
    """
    Manages simulated time.

    Provides:
    - Elapsed time and step count (never decreasing)
    - Current warp factor and the regime it implies
    - UTC and Julian date conversions
    """

    J2000_EPOCH = datetime(2000, 1, 1, 12, 0, 0)
    J2000_JD = 2451545.0

    def __init__(self,
                 start_time: datetime = None,
                 time_step: float = 0.1):
        """
        Initialize clock.

        Args:
            start_time: Calendar time of t = 0 (UTC)
            time_step: Default real-time step in seconds
        """
        self.start_time = start_time or datetime(2026, 1, 8, 0, 0, 0)
        self.time_step = time_step
        self.elapsed_seconds = 0.0
        self.step_count = 0
        self.warp_factor = 1.0

    def advance(self, dt: float) -> float:
        """
        Advance simulated time.

        Args:
            dt: Simulated seconds (already scaled by warp)

        Returns:
            Elapsed time after the step
        """
        if not dt > 0:
            raise ValueError(f"Clock can only move forward, got dt={dt}")
        self.elapsed_seconds += dt
        self.step_count += 1
        return self.elapsed_seconds

    @property
    def regime(self) -> Regime:
        """Integrated at real time, on rails under warp."""
        return Regime.INTEGRATED if self.warp_factor <= 1.0 else Regime.ON_RAILS

    @property
    def current_utc(self) -> datetime:
        return self.start_time + timedelta(seconds=self.elapsed_seconds)

    @property
    def julian_date(self) -> float:
        return self.datetime_to_jd(self.current_utc)

    @property
    def modified_julian_date(self) -> float:
        """MJD = JD - 2400000.5"""
        return self.julian_date - 2400000.5

    @classmethod
    def datetime_to_jd(cls, dt: datetime) -> float:
        """Julian Date of a (UTC) datetime."""
        return cls.J2000_JD + (dt - cls.J2000_EPOCH).total_seconds() / 86400.0

    @classmethod
    def jd_to_datetime(cls, jd: float) -> datetime:
        """Datetime of a Julian Date."""
        return cls.J2000_EPOCH + timedelta(days=jd - cls.J2000_JD)

    def __repr__(self) -> str:
        return (f"SimulationClock(utc={self.current_utc}, elapsed={self.elapsed_seconds:.3f}s, "
                f"warp={self.warp_factor:g}x)")
