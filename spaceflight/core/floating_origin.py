"""
Floating Origin
===============

Frame bookkeeping for body-relative positions.

Every vehicle position is stored relative to its current body. This
module supplies the translation between any two body frames, tracks
which body frame is authoritative for each vehicle, and expresses
positions relative to a focus vehicle or as integer grid cells plus a
small local offset so nothing large ever reaches a float32 consumer.
"""

import numpy as np
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from ..environment.celestial import CelestialRegistry
from ..geometry.frames import FrameTransform
from .errors import FrameError
from .logging import get_logger

logger = get_logger("core.floating_origin")

DEFAULT_CELL_EDGE_M = 2000.0


@dataclass(frozen=True, eq=False)
class GridPosition:
    """Root-relative position as an integer cell plus an offset inside it."""
    cell: Tuple[int, int, int]
    offset: np.ndarray
    cell_edge_m: float = DEFAULT_CELL_EDGE_M

    @classmethod
    def from_position(cls, position: np.ndarray, cell_edge_m: float = DEFAULT_CELL_EDGE_M) -> 'GridPosition':
        position = np.asarray(position, dtype=float)
        cell = np.round(position / cell_edge_m)
        return cls(
            cell=tuple(int(c) for c in cell),
            offset=position - cell * cell_edge_m,
            cell_edge_m=cell_edge_m,
        )

    def translated(self, delta: np.ndarray) -> 'GridPosition':
        """Shift by a (small) vector, recentring the offset."""
        local = self.offset + np.asarray(delta, dtype=float)
        carry = np.round(local / self.cell_edge_m)
        return GridPosition(
            cell=tuple(int(c + k) for c, k in zip(self.cell, carry)),
            offset=local - carry * self.cell_edge_m,
            cell_edge_m=self.cell_edge_m,
        )

    def to_position(self) -> np.ndarray:
        return np.array(self.cell, dtype=float) * self.cell_edge_m + self.offset

    def relative_to(self, other: 'GridPosition') -> np.ndarray:
        """Vector from other to self, differencing the integer cells first."""
        cells = np.array(self.cell, dtype=np.int64) - np.array(other.cell, dtype=np.int64)
        return cells.astype(float) * self.cell_edge_m + (self.offset - other.offset)


class FloatingOriginManager:
    """
    Frame lookup and single-authority bookkeeping.

    Authority changes happen only at step commit, from one thread.
    """

    def __init__(self, registry: CelestialRegistry, cell_edge_m: float = DEFAULT_CELL_EDGE_M):
        """
        Initialize manager.

        Args:
            registry: Celestial bodies defining the frame tree
            cell_edge_m: Edge length of grid cells
        """
        self.registry = registry
        self.cell_edge_m = cell_edge_m
        self.focus_vehicle_id: Optional[str] = None
        self._authority: Dict[str, str] = {}

    # === Frame transforms ===

    def transform(self, from_body: str, to_body: str, t: float) -> FrameTransform:
        """
        Translation taking states relative to from_body to states relative to to_body.

        Walks both bodies up to their common ancestor.
        """
        if from_body == to_body:
            self.registry.get(from_body)
            return FrameTransform()

        ancestor = self.registry.common_ancestor(from_body, to_body)
        r_from, v_from = self.registry.state_relative_to_ancestor(from_body, ancestor, t)
        r_to, v_to = self.registry.state_relative_to_ancestor(to_body, ancestor, t)
        return FrameTransform(r_from - r_to, v_from - v_to)

    def express(self,
                position: np.ndarray,
                velocity: np.ndarray,
                from_body: str,
                to_body: str,
                t: float) -> Tuple[np.ndarray, np.ndarray]:
        """Re-express a state in another body's frame."""
        return self.transform(from_body, to_body, t).apply(position, velocity)

    def grid_position(self, body_id: str, position: np.ndarray, t: float) -> GridPosition:
        """Root-relative grid position of a body-relative position."""
        body_offset, _ = self.registry.state_relative_to_ancestor(body_id, self.registry.root.body_id, t)
        return GridPosition.from_position(body_offset, self.cell_edge_m).translated(position)

    # === Authority ===

    def claim(self, vehicle_id: str, body_id: str):
        """Register the initial authoritative frame of a vehicle."""
        self.registry.get(body_id)
        current = self._authority.get(vehicle_id)
        if current is not None and current != body_id:
            raise FrameError(f"Vehicle {vehicle_id} already has authoritative frame '{current}'",
                             context={'vehicle_id': vehicle_id, 'body_id': body_id})
        self._authority[vehicle_id] = body_id

    def transfer(self, vehicle_id: str, from_body: str, to_body: str):
        """
        Move a vehicle's authority to another body frame.

        Raises:
            FrameError: from_body is not the vehicle's authoritative frame
        """
        current = self.authoritative_body(vehicle_id)
        if current != from_body:
            raise FrameError(
                f"Vehicle {vehicle_id} transfer from '{from_body}' but '{current}' is authoritative",
                context={'vehicle_id': vehicle_id, 'from_body': from_body, 'to_body': to_body},
            )
        self.registry.get(to_body)
        self._authority[vehicle_id] = to_body
        logger.debug(f"Frame authority {vehicle_id}: {from_body} -> {to_body}")

    def release(self, vehicle_id: str):
        self._authority.pop(vehicle_id, None)
        if self.focus_vehicle_id == vehicle_id:
            self.focus_vehicle_id = None

    def authoritative_body(self, vehicle_id: str) -> str:
        try:
            return self._authority[vehicle_id]
        except KeyError:
            raise FrameError(f"Vehicle {vehicle_id} has no authoritative frame",
                             context={'vehicle_id': vehicle_id}) from None

    def assert_authoritative(self, vehicle_id: str, body_id: str):
        current = self.authoritative_body(vehicle_id)
        if current != body_id:
            raise FrameError(
                f"Vehicle {vehicle_id} is stored in '{body_id}' but '{current}' is authoritative",
                context={'vehicle_id': vehicle_id, 'body_id': body_id},
            )

    # === Focus ===

    def set_focus(self, vehicle_id: Optional[str]):
        if vehicle_id is not None:
            self.authoritative_body(vehicle_id)
        self.focus_vehicle_id = vehicle_id

    def relative_to_origin(self,
                           body_id: str,
                           position: np.ndarray,
                           origin_body: str,
                           origin_position: np.ndarray,
                           t: float) -> np.ndarray:
        """Position relative to the origin point (usually the focus vehicle)."""
        in_origin_frame, _ = self.transform(body_id, origin_body, t).apply(position)
        return in_origin_frame - np.asarray(origin_position, dtype=float)
