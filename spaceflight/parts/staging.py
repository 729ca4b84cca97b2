"""
Staging
=======

Ordered stage groups and the rules for firing them.

Stage 0 is ignited when the engine is created. Advancing from stage k
releases group k (engines, tanks and structure fall away with their
subtrees, decouplers drop their children, parachutes arm) and activates
group k+1. The terminal index is the highest stage number still present
on the vehicle; advancing past it raises NoStagesRemainError.
"""

from dataclasses import dataclass
from typing import List, Optional, Tuple

from ..core.errors import NoStagesRemainError
from ..core.logging import get_logger
from .graph import PartGraph
from .part import PartKind, PartStatus

logger = get_logger("parts.staging")


@dataclass(frozen=True)
class StageGroup:
    """Parts sharing one stage index."""
    index: int
    part_ids: Tuple[str, ...]

    @property
    def is_empty(self) -> bool:
        return not self.part_ids


@dataclass(frozen=True)
class StagingEvent:
    """Record of one fired stage."""
    from_stage: int
    to_stage: int
    detached_part_ids: Tuple[str, ...]
    activated_part_ids: Tuple[str, ...]
    armed_part_ids: Tuple[str, ...]
    automatic: bool = False
    time_s: Optional[float] = None


class StagingEngine:
    """
    Fires stages on a part graph.

    A failed advance restores the graph and stage index to their state
    before the call.
    """

    def __init__(self, graph: PartGraph, auto_stage: bool = True):
        """
        Bind to a graph and ignite stage 0.

        Args:
            graph: Vehicle part graph
            auto_stage: Fire the next stage when the active one burns out
        """
        self.graph = graph
        self.auto_stage = auto_stage
        self.current_stage = 0
        self.history: List[StagingEvent] = []

        ignited = self._activate(0)
        logger.debug("Stage 0 ignited", extra={"parts": list(ignited)})

    @property
    def final_stage(self) -> int:
        stages = [p.stage for p in self.graph.parts() if p.stage is not None]
        return max(stages + [self.current_stage])

    @property
    def is_terminal(self) -> bool:
        return self.current_stage >= self.final_stage

    def group(self, index: int) -> StageGroup:
        """Attached parts assigned to a stage."""
        return StageGroup(
            index=index,
            part_ids=tuple(p.part_id for p in self.graph.parts() if p.stage == index),
        )

    def groups(self) -> List[StageGroup]:
        """Stage groups 0..final_stage, empty ones included."""
        return [self.group(i) for i in range(self.final_stage + 1)]

    def should_auto_stage(self, throttle: float) -> bool:
        """True when the active stage is burning dry under throttle."""
        if not self.auto_stage or throttle <= 0 or self.is_terminal:
            return False
        agg = self.graph.aggregate()
        return agg.active_engines > 0 and agg.active_fuel_kg <= 0

    def advance_stage(self,
                      automatic: bool = False,
                      time_s: Optional[float] = None) -> StagingEvent:
        """
        Fire the current stage and activate the next.

        Args:
            automatic: Fired by burnout rather than by command
            time_s: Simulation time for the event record

        Returns:
            The staging event

        Raises:
            NoStagesRemainError: Already at the terminal stage
        """
        if self.is_terminal:
            raise NoStagesRemainError(self.current_stage)

        saved_graph = self.graph.checkpoint()
        saved_stage = self.current_stage
        try:
            detached, armed = self._release(self.current_stage)
            self.current_stage += 1
            activated = self._activate(self.current_stage)
        except Exception:
            self.graph.restore(saved_graph)
            self.current_stage = saved_stage
            raise

        event = StagingEvent(
            from_stage=saved_stage,
            to_stage=self.current_stage,
            detached_part_ids=tuple(detached),
            activated_part_ids=tuple(activated),
            armed_part_ids=tuple(armed),
            automatic=automatic,
            time_s=time_s,
        )
        self.history.append(event)

        logger.info(
            f"Stage {saved_stage} -> {self.current_stage}"
            f"{' (auto)' if automatic else ''}",
            extra={"detached": list(detached), "activated": list(activated)},
        )
        return event

    def _release(self, index: int) -> Tuple[List[str], List[str]]:
        detached: List[str] = []
        armed: List[str] = []

        for part_id in self.group(index).part_ids:
            if part_id not in self.graph:
                continue  # fell away with an earlier subtree
            part = self.graph.get(part_id)

            if part_id == self.graph.root_id or part.kind is PartKind.COMMAND:
                self.graph.set_status(part_id, PartStatus.CONSUMED)
            elif part.kind is PartKind.DECOUPLER:
                detached.extend(p.part_id for p in self.graph.detach_children(part_id))
                self.graph.set_status(part_id, PartStatus.CONSUMED)
            elif part.kind is PartKind.PARACHUTE:
                self.graph.arm(part_id)
                self.graph.set_status(part_id, PartStatus.CONSUMED)
                armed.append(part_id)
            else:
                detached.extend(p.part_id for p in self.graph.detach(part_id))

        return detached, armed

    def _activate(self, index: int) -> List[str]:
        activated = []
        for part_id in self.group(index).part_ids:
            if self.graph.get(part_id).status is PartStatus.INACTIVE:
                self.graph.set_status(part_id, PartStatus.ACTIVE)
                activated.append(part_id)
        return activated
