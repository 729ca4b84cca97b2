"""
Time Warp
=========

Warp ladder and the safety rules for leaving real time.

Above 1x vehicles coast on rails, so warp is refused while the active
vehicle is thrusting, inside an atmosphere or close to another vehicle.
Dropping back to 1x is always allowed.
"""

from dataclasses import dataclass
from typing import List, Optional

from .config import WarpParameters
from .errors import InvalidWarpFactorError, UnsafeWarpContextError
from .logging import get_logger
from .time_manager import Regime, SimulationClock

logger = get_logger("core.time_warp")


@dataclass(frozen=True)
class WarpSafetyContext:
    """Conditions of the active vehicle at the last committed step."""
    thrusting: bool = False
    in_atmosphere: bool = False
    nearest_vehicle_m: float = float('inf')
    vehicle_id: Optional[str] = None

    def reasons(self, proximity_limit_m: float) -> List[str]:
        """Why warp is unsafe (empty when it is safe)."""
        reasons = []
        if self.thrusting:
            reasons.append("vehicle is thrusting")
        if self.in_atmosphere:
            reasons.append("vehicle is inside an atmosphere")
        if self.nearest_vehicle_m < proximity_limit_m:
            reasons.append(f"another vehicle is {self.nearest_vehicle_m:.0f} m away")
        return reasons


@dataclass(frozen=True)
class WarpChange:
    """A committed change of warp factor."""
    from_factor: float
    to_factor: float
    reason: str
    time_s: float = 0.0


class TimeWarpScheduler:
    """
    Real-time / warp-N state machine over a fixed ladder.

    The factor lives on the simulation clock so that the clock's regime
    always matches the scheduler.
    """

    def __init__(self, params: WarpParameters = None, clock: SimulationClock = None):
        self.params = params or WarpParameters()
        self.clock = clock or SimulationClock()
        self.clock.warp_factor = 1.0
        self.history: List[WarpChange] = []

    @property
    def ladder(self):
        return self.params.ladder

    @property
    def factor(self) -> float:
        return self.clock.warp_factor

    @property
    def regime(self) -> Regime:
        return self.clock.regime

    @property
    def is_realtime(self) -> bool:
        return self.factor == 1.0

    def _ladder_value(self, factor: float) -> float:
        for value in self.ladder:
            if abs(value - factor) <= 1e-9 * value:
                return value
        raise InvalidWarpFactorError(factor, self.ladder)

    def request(self, factor: float, context: WarpSafetyContext = None) -> Optional[WarpChange]:
        """
        Change the warp factor.

        Args:
            factor: Target factor (must be on the ladder)
            context: Safety conditions of the active vehicle

        Returns:
            The change, or None if already at the factor

        Raises:
            InvalidWarpFactorError: factor is not on the ladder
            UnsafeWarpContextError: factor > 1 in an unsafe context
        """
        target = self._ladder_value(float(factor))

        if target > 1.0 and context is not None:
            reasons = context.reasons(self.params.proximity_limit_m)
            if reasons:
                logger.info(f"Warp {target:g}x refused: {', '.join(reasons)}")
                raise UnsafeWarpContextError(target, reasons)

        return self._apply(target, "requested")

    def step_up(self, context: WarpSafetyContext = None) -> Optional[WarpChange]:
        """Move one rung up the ladder (no-op at the top)."""
        index = self.ladder.index(self._ladder_value(self.factor))
        if index + 1 >= len(self.ladder):
            return None
        return self.request(self.ladder[index + 1], context)

    def step_down(self) -> Optional[WarpChange]:
        """Move one rung down the ladder (no-op at 1x)."""
        index = self.ladder.index(self._ladder_value(self.factor))
        if index == 0:
            return None
        return self._apply(self.ladder[index - 1], "requested")

    def drop_to_realtime(self, reason: str) -> Optional[WarpChange]:
        """Return to 1x immediately."""
        return self._apply(1.0, reason)

    def _apply(self, target: float, reason: str) -> Optional[WarpChange]:
        if target == self.factor:
            return None
        change = WarpChange(self.factor, target, reason, self.clock.elapsed_seconds)
        self.clock.warp_factor = target
        self.history.append(change)
        logger.info(f"Warp {change.from_factor:g}x -> {target:g}x ({reason})")
        return change
