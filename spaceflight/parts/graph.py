"""
Part Graph
==========

A vehicle's parts as a tree rooted at the command part.

Parts live in an id-keyed arena with parent/children maps, so structural
checks are walks over ids. Aggregates (mass, thrust, fuel flow) are cached
and recomputed on first access after any mutation.
"""

import copy
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Tuple

from ..core.errors import (
    CycleDetectedError,
    DuplicatePartError,
    GraphError,
    RootDetachError,
    UnknownParentError,
    UnknownPartError,
)
from .part import G0, Part, PartKind, PartStatus

FUEL_EPSILON_KG = 1e-9


@dataclass(frozen=True)
class VehicleAggregate:
    """Vehicle-wide totals derived from the part graph."""
    mass_kg: float
    thrust_n: float  # available at full throttle
    fuel_flow_kg_s: float  # at full throttle
    specific_impulse_s: float
    fuel_kg: float  # attached parts that are active or pending
    active_fuel_kg: float  # fuel feeding the active stage
    drag_area_m2: float
    active_engines: int


class PartGraph:
    """
    Mutable tree of parts forming one vehicle.

    Every failed mutation raises before touching state.
    """

    def __init__(self, root: Part):
        """
        Create a graph holding only the command root.

        Args:
            root: Command part
        """
        if root.kind is not PartKind.COMMAND:
            raise GraphError("Root part must be a command part", part_id=root.part_id)

        if root.status is PartStatus.DETACHED:
            root.status = PartStatus.INACTIVE
        root.attachments = set()

        self._root_id = root.part_id
        self._parts: Dict[str, Part] = {root.part_id: root}
        self._parent: Dict[str, Optional[str]] = {root.part_id: None}
        self._children: Dict[str, List[str]] = {root.part_id: []}
        self._aggregate: Optional[VehicleAggregate] = None

    # === Structure queries ===

    @property
    def root_id(self) -> str:
        return self._root_id

    @property
    def root(self) -> Part:
        return self._parts[self._root_id]

    def __contains__(self, part_id: str) -> bool:
        return part_id in self._parts

    def __len__(self) -> int:
        return len(self._parts)

    def __iter__(self) -> Iterator[Part]:
        return iter(self.parts())

    def get(self, part_id: str) -> Part:
        try:
            return self._parts[part_id]
        except KeyError:
            raise UnknownPartError(part_id) from None

    def parent_of(self, part_id: str) -> Optional[str]:
        self.get(part_id)
        return self._parent[part_id]

    def children_of(self, part_id: str) -> Tuple[str, ...]:
        self.get(part_id)
        return tuple(self._children[part_id])

    def path_to_root(self, part_id: str) -> List[str]:
        """Ids from part_id up to the root, inclusive."""
        self.get(part_id)
        path = []
        current = part_id
        while current is not None:
            path.append(current)
            current = self._parent[current]
        return path

    def subtree(self, part_id: str) -> List[str]:
        """Ids of part_id and all its descendants (pre-order)."""
        self.get(part_id)
        result = []
        stack = [part_id]
        while stack:
            current = stack.pop()
            result.append(current)
            stack.extend(reversed(self._children[current]))
        return result

    def parts(self) -> List[Part]:
        """All attached parts, root first."""
        return [self._parts[pid] for pid in self.subtree(self._root_id)]

    # === Mutation ===

    def attach(self, part: Part, parent_id: str):
        """
        Attach a new part, or move an attached one, under parent_id.

        Raises:
            UnknownParentError: parent_id is not attached
            CycleDetectedError: the move would put a part under its own subtree
            DuplicatePartError: a different part already uses this id
        """
        part_id = part.part_id

        if parent_id not in self._parts:
            raise UnknownParentError(part_id, parent_id)

        if part_id in self._parts:
            if self._parts[part_id] is not part:
                raise DuplicatePartError(part_id)
            # Walk up from the new parent; meeting the part means a cycle
            current = parent_id
            while current is not None:
                if current == part_id:
                    raise CycleDetectedError(part_id, parent_id)
                current = self._parent[current]

            old_parent = self._parent[part_id]
            self._children[old_parent].remove(part_id)
            self._parts[old_parent].attachments.discard(part_id)
            part.attachments.discard(old_parent)
        else:
            if part.status is PartStatus.DETACHED:
                part.status = PartStatus.INACTIVE
            part.attachments = set()
            self._parts[part_id] = part
            self._children[part_id] = []

        self._parent[part_id] = parent_id
        self._children[parent_id].append(part_id)
        part.attachments.add(parent_id)
        self._parts[parent_id].attachments.add(part_id)
        self.invalidate()

    def detach(self, part_id: str) -> List[Part]:
        """
        Remove a part and its subtree.

        Returns:
            The removed parts, marked DETACHED

        Raises:
            RootDetachError: part_id is the command root
            UnknownPartError: part_id is not attached
        """
        if part_id == self._root_id:
            raise RootDetachError(part_id)
        removed_ids = self.subtree(part_id)

        parent_id = self._parent[part_id]
        self._children[parent_id].remove(part_id)
        self._parts[parent_id].attachments.discard(part_id)
        self._parts[part_id].attachments.discard(parent_id)

        removed = []
        for pid in removed_ids:
            part = self._parts.pop(pid)
            del self._parent[pid]
            del self._children[pid]
            part.status = PartStatus.DETACHED
            removed.append(part)

        self.invalidate()
        return removed

    def detach_children(self, part_id: str) -> List[Part]:
        """Detach every child subtree of a part, keeping the part itself."""
        removed = []
        for child_id in list(self.children_of(part_id)):
            removed.extend(self.detach(child_id))
        return removed

    def set_status(self, part_id: str, status: PartStatus):
        part = self.get(part_id)
        if status is PartStatus.DETACHED:
            raise GraphError("Use detach() to detach parts", part_id=part_id)
        part.status = status
        self.invalidate()

    def arm(self, part_id: str):
        self.get(part_id).armed = True
        self.invalidate()

    def set_fuel(self, part_id: str, fuel_kg: float):
        """Set a part's fuel load."""
        part = self.get(part_id)
        if not 0.0 <= fuel_kg <= part.fuel_capacity_kg:
            raise GraphError(f"Fuel {fuel_kg} kg outside [0, {part.fuel_capacity_kg}]",
                             part_id=part_id)
        part.fuel_mass_kg = float(fuel_kg)
        self.invalidate()

    def drain_active_fuel(self, amount_kg: float) -> float:
        """
        Draw fuel from active parts in proportion to their load.

        Args:
            amount_kg: Requested propellant mass

        Returns:
            Mass actually drawn (less than requested when fuel runs out)
        """
        if amount_kg <= 0:
            return 0.0

        tanks = [p for p in self._parts.values()
                 if p.status is PartStatus.ACTIVE and p.fuel_mass_kg > 0]
        total = sum(p.fuel_mass_kg for p in tanks)
        if total <= 0:
            return 0.0

        if amount_kg >= total - FUEL_EPSILON_KG:
            for p in tanks:
                p.fuel_mass_kg = 0.0
            drawn = total
        else:
            fraction = amount_kg / total
            for p in tanks:
                p.fuel_mass_kg -= p.fuel_mass_kg * fraction
            drawn = amount_kg

        self.invalidate()
        return drawn

    # === Aggregates ===

    def invalidate(self):
        """Mark cached aggregates stale."""
        self._aggregate = None

    @property
    def dirty(self) -> bool:
        return self._aggregate is None

    def aggregate(self) -> VehicleAggregate:
        """Cached vehicle totals, recomputed after any mutation."""
        if self._aggregate is None:
            self._aggregate = self._compute_aggregate()
        return self._aggregate

    def _compute_aggregate(self) -> VehicleAggregate:
        parts = list(self._parts.values())

        mass = sum(p.mass_kg for p in parts)
        fuel = sum(p.fuel_mass_kg for p in parts
                   if p.status in (PartStatus.ACTIVE, PartStatus.INACTIVE))
        active_fuel = sum(p.fuel_mass_kg for p in parts if p.status is PartStatus.ACTIVE)

        engines = [p for p in parts if p.is_engine and p.status is PartStatus.ACTIVE]
        if active_fuel > 0:
            thrust = sum(p.thrust_n for p in engines)
            flow = sum(p.fuel_flow_kg_s for p in engines)
        else:
            thrust = 0.0
            flow = 0.0

        isp = thrust / (flow * G0) if flow > 0 else 0.0

        return VehicleAggregate(
            mass_kg=mass,
            thrust_n=thrust,
            fuel_flow_kg_s=flow,
            specific_impulse_s=isp,
            fuel_kg=fuel,
            active_fuel_kg=active_fuel,
            drag_area_m2=sum(p.drag_area_m2 for p in parts),
            active_engines=len(engines),
        )

    # === Rollback support ===

    def checkpoint(self) -> dict:
        """Deep copy of the graph state."""
        return copy.deepcopy(self.__dict__)

    def restore(self, state: dict):
        """Restore a state taken with checkpoint()."""
        self.__dict__.clear()
        self.__dict__.update(copy.deepcopy(state))
        self.invalidate()
