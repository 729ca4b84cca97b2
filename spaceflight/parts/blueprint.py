"""
Vehicle Blueprints
==================

Plain-data vehicle descriptions produced by an assembly editor.

A blueprint is a list of part entries, each naming its parent:

    {
        "name": "hopper",
        "parts": [
            {"id": "pod", "kind": "command", "dry_mass_kg": 840, "stage": 1},
            {"id": "tank", "kind": "tank", "parent": "pod",
             "dry_mass_kg": 125, "fuel_kg": 100, "stage": 0},
            {"id": "engine", "kind": "engine", "parent": "tank",
             "dry_mass_kg": 150, "thrust_n": 9806.65, "isp_s": 100, "stage": 0}
        ]
    }
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Union

from ..core.errors import (
    CycleDetectedError,
    DuplicatePartError,
    GraphError,
    UnknownParentError,
)
from .graph import PartGraph
from .part import Part


def part_from_dict(entry: Mapping[str, Any]) -> Part:
    """Create a part from a blueprint entry."""
    if 'id' not in entry:
        raise GraphError("Blueprint part entry without an id")
    try:
        return Part(
            part_id=str(entry['id']),
            kind=entry.get('kind', 'structural'),
            dry_mass_kg=float(entry.get('dry_mass_kg', 0.0)),
            fuel_mass_kg=float(entry.get('fuel_kg', 0.0)),
            fuel_capacity_kg=(float(entry['fuel_capacity_kg'])
                              if 'fuel_capacity_kg' in entry else None),
            thrust_n=float(entry.get('thrust_n', 0.0)),
            isp_s=float(entry.get('isp_s', 0.0)),
            stage=int(entry['stage']) if entry.get('stage') is not None else None,
            drag_area_m2=float(entry.get('drag_area_m2', 0.0)),
        )
    except ValueError as exc:
        raise GraphError(str(exc), part_id=str(entry['id']), cause=exc) from exc


@dataclass
class VehicleBlueprint:
    """Part topology and stats for one vehicle design."""
    name: str
    parts: List[Dict[str, Any]] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'VehicleBlueprint':
        return cls(
            name=str(data.get('name', 'vehicle')),
            parts=[dict(entry) for entry in data.get('parts', [])],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {'name': self.name, 'parts': [dict(entry) for entry in self.parts]}

    def build_graph(self) -> PartGraph:
        """
        Assemble a fresh part graph.

        Returns:
            Graph rooted at the single entry without a parent

        Raises:
            GraphError: No root or several roots
            DuplicatePartError: Two entries share an id
            UnknownParentError: An entry names a parent that does not exist
            CycleDetectedError: Entries form a parent loop
        """
        entries: Dict[str, Mapping[str, Any]] = {}
        for entry in self.parts:
            part_id = str(entry.get('id'))
            if part_id in entries:
                raise DuplicatePartError(part_id)
            entries[part_id] = entry

        roots = [pid for pid, e in entries.items() if e.get('parent') is None]
        if len(roots) != 1:
            raise GraphError(f"Blueprint '{self.name}' needs exactly one root part, found {roots}")

        for part_id, entry in entries.items():
            parent_id = entry.get('parent')
            if parent_id is not None and parent_id not in entries:
                raise UnknownParentError(part_id, parent_id)

        graph = PartGraph(part_from_dict(entries[roots[0]]))

        # Attach parents before children
        pending = [pid for pid in entries if pid != roots[0]]
        while pending:
            ready = [pid for pid in pending if entries[pid]['parent'] in graph]
            if not ready:
                # Whatever is left only references itself or each other
                part_id = pending[0]
                raise CycleDetectedError(part_id, entries[part_id]['parent'])
            for part_id in ready:
                graph.attach(part_from_dict(entries[part_id]), entries[part_id]['parent'])
            pending = [pid for pid in pending if pid not in graph]

        return graph


def load_blueprint(path: Union[str, Path]) -> VehicleBlueprint:
    """Load a blueprint from a JSON file."""
    with open(path, 'r', encoding='utf-8') as f:
        return VehicleBlueprint.from_dict(json.load(f))
