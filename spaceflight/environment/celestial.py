"""
Celestial Bodies
================

Registry of gravitating bodies arranged as a tree (root = central star)
and point-mass gravity under the patched-conic approximation.

Bodies are stored in an id-keyed arena; parent and child links are ids,
never object references.
"""

import json
import numpy as np
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Tuple, Union

from ..core.errors import CatalogError, NumericalInstabilityError
from ..core.logging import get_logger
from ..orbits.kepler import G, OrbitalElements, sphere_of_influence, state_from_elements
from .atmosphere import AtmosphereLayer, AtmosphereModel

logger = get_logger("environment.celestial")


@dataclass(frozen=True, eq=False)
class CelestialBody:
    """A gravitating body. Immutable once the registry is built."""
    body_id: str
    name: str
    mass_kg: float
    radius_m: float
    parent_id: Optional[str] = None
    orbit: Optional[OrbitalElements] = None  # relative to parent
    atmosphere: Optional[AtmosphereModel] = None
    soi_radius_m: float = float('inf')

    @property
    def mu(self) -> float:
        """Gravitational parameter G·M [m³/s²]."""
        return G * self.mass_kg

    @property
    def is_root(self) -> bool:
        return self.parent_id is None

    def altitude(self, position: np.ndarray) -> float:
        """Altitude above the mean surface for a body-relative position."""
        return float(np.linalg.norm(position)) - self.radius_m

    def in_atmosphere(self, position: np.ndarray) -> bool:
        if self.atmosphere is None:
            return False
        return self.atmosphere.contains(self.altitude(position))

    def __repr__(self) -> str:
        return f"CelestialBody({self.body_id!r}, parent={self.parent_id!r}, soi={self.soi_radius_m:.3e}m)"


def gravitational_acceleration_at(position: np.ndarray, body: CelestialBody) -> np.ndarray:
    """
    Point-mass gravity of one body.

    Args:
        position: Position relative to the body centre [m]
        body: Attracting body

    Returns:
        Acceleration [m/s²], magnitude μ/|r|² directed toward the centre
    """
    r = np.asarray(position, dtype=float)
    r_mag = np.linalg.norm(r)
    if not r_mag > 0.0:
        raise NumericalInstabilityError(
            f"Gravity of {body.body_id} evaluated at zero distance",
            context={'body_id': body.body_id},
        )
    return -body.mu * r / r_mag**3


class CelestialRegistry:
    """
    Tree of celestial bodies.

    Validates the catalog, precomputes sphere-of-influence radii and
    provides closed-form ephemerides of each body relative to its parent.
    """

    def __init__(self, bodies: Iterable[CelestialBody]):
        """
        Build and validate the registry.

        Args:
            bodies: Bodies in any order; SOI radii are recomputed here

        Raises:
            CatalogError: On duplicate ids, missing parents, cycles,
                multiple roots or overlapping spheres of influence
        """
        arena: Dict[str, CelestialBody] = {}
        for body in bodies:
            if body.body_id in arena:
                raise CatalogError("Duplicate body id", body_id=body.body_id)
            arena[body.body_id] = body

        roots = [b.body_id for b in arena.values() if b.parent_id is None]
        if len(roots) != 1:
            raise CatalogError(f"Catalog needs exactly one root body, found {roots}")
        self._root_id = roots[0]

        for body in arena.values():
            if body.parent_id is None:
                continue
            if body.parent_id not in arena:
                raise CatalogError(f"Unknown parent '{body.parent_id}'", body_id=body.body_id)
            if body.orbit is None:
                raise CatalogError("Non-root body needs an orbit", body_id=body.body_id)
            if not body.orbit.is_elliptic:
                raise CatalogError("Body orbits must be closed", body_id=body.body_id)

        self._bodies = arena
        self._check_acyclic()

        self._children: Dict[str, List[str]] = {body_id: [] for body_id in arena}
        for body in arena.values():
            if body.parent_id is not None:
                self._children[body.parent_id].append(body.body_id)

        # SOI radii, parents first
        for body_id in self._breadth_first():
            body = self._bodies[body_id]
            if body.is_root:
                soi = float('inf')
            else:
                parent = self._bodies[body.parent_id]
                if body.mass_kg >= parent.mass_kg:
                    raise CatalogError("Body must be lighter than its parent", body_id=body_id)
                soi = sphere_of_influence(body.orbit.semi_major_axis_m, body.mass_kg, parent.mass_kg)
            self._bodies[body_id] = replace(body, soi_radius_m=soi)

        self._check_soi_nesting()

        logger.debug("Celestial registry built", extra={"bodies": len(self._bodies)})

    @classmethod
    def from_catalog(cls, entries: Iterable[Mapping]) -> 'CelestialRegistry':
        """Build a registry from plain catalog dictionaries."""
        return cls(body_from_dict(entry) for entry in entries)

    def _check_acyclic(self):
        for body_id in self._bodies:
            seen = set()
            current = body_id
            while current is not None:
                if current in seen:
                    raise CatalogError("Parent chain forms a cycle", body_id=body_id)
                seen.add(current)
                current = self._bodies[current].parent_id

    def _breadth_first(self) -> Iterator[str]:
        queue = [self._root_id]
        while queue:
            body_id = queue.pop(0)
            yield body_id
            queue.extend(self._children[body_id])

    def _check_soi_nesting(self):
        for parent_id, child_ids in self._children.items():
            parent = self._bodies[parent_id]
            bands = []
            for child_id in child_ids:
                child = self._bodies[child_id]
                inner = child.orbit.periapsis_m - child.soi_radius_m
                outer = child.orbit.apoapsis_m + child.soi_radius_m
                if inner <= parent.radius_m:
                    raise CatalogError("Sphere of influence reaches the parent surface",
                                       body_id=child_id)
                if outer >= parent.soi_radius_m:
                    raise CatalogError("Sphere of influence extends beyond the parent's",
                                       body_id=child_id)
                bands.append((inner, outer, child_id))

            bands.sort()
            for (_, outer_a, id_a), (inner_b, _, id_b) in zip(bands, bands[1:]):
                if inner_b <= outer_a:
                    raise CatalogError(f"Spheres of influence of '{id_a}' and '{id_b}' overlap",
                                       body_id=id_b)

    # === Lookup ===

    def get(self, body_id: str) -> CelestialBody:
        try:
            return self._bodies[body_id]
        except KeyError:
            raise CatalogError("Unknown body", body_id=body_id) from None

    def __getitem__(self, body_id: str) -> CelestialBody:
        return self.get(body_id)

    def __contains__(self, body_id: str) -> bool:
        return body_id in self._bodies

    def __iter__(self) -> Iterator[CelestialBody]:
        return iter(self._bodies.values())

    def __len__(self) -> int:
        return len(self._bodies)

    @property
    def root(self) -> CelestialBody:
        return self._bodies[self._root_id]

    def parent_of(self, body_id: str) -> Optional[CelestialBody]:
        parent_id = self.get(body_id).parent_id
        return None if parent_id is None else self._bodies[parent_id]

    def children_of(self, body_id: str) -> Tuple[CelestialBody, ...]:
        self.get(body_id)
        return tuple(self._bodies[c] for c in self._children[body_id])

    def ancestors(self, body_id: str) -> List[str]:
        """Ids from body_id up to the root, inclusive."""
        chain = []
        current = self.get(body_id).body_id
        while current is not None:
            chain.append(current)
            current = self._bodies[current].parent_id
        return chain

    def common_ancestor(self, body_a: str, body_b: str) -> str:
        chain_a = self.ancestors(body_a)
        chain_b = set(self.ancestors(body_b))
        for body_id in chain_a:
            if body_id in chain_b:
                return body_id
        return self._root_id

    # === Ephemerides ===

    def state_relative_to_parent(self, body_id: str, t: float) -> Tuple[np.ndarray, np.ndarray]:
        """
        Position and velocity of a body relative to its parent at time t.

        The root body returns zeros.
        """
        body = self.get(body_id)
        if body.is_root:
            return np.zeros(3), np.zeros(3)
        parent = self._bodies[body.parent_id]
        return state_from_elements(body.orbit, parent.mu, float(t))

    def state_relative_to_ancestor(self,
                                   body_id: str,
                                   ancestor_id: str,
                                   t: float) -> Tuple[np.ndarray, np.ndarray]:
        """Position and velocity of a body relative to one of its ancestors."""
        r = np.zeros(3)
        v = np.zeros(3)
        current = self.get(body_id).body_id
        while current != ancestor_id:
            if current is None:
                raise CatalogError(f"'{ancestor_id}' is not an ancestor", body_id=body_id)
            dr, dv = self.state_relative_to_parent(current, t)
            r += dr
            v += dv
            current = self._bodies[current].parent_id
        return r, v

    def find_reference_body(self, root_position: np.ndarray, t: float) -> str:
        """
        Innermost body whose sphere of influence contains a position.

        Args:
            root_position: Position relative to the root body [m]
            t: Simulation time

        Returns:
            Body id
        """
        current = self._root_id
        position = np.asarray(root_position, dtype=float)
        while True:
            for child_id in self._children[current]:
                r_child, _ = self.state_relative_to_parent(child_id, t)
                relative = position - r_child
                if np.linalg.norm(relative) < self._bodies[child_id].soi_radius_m:
                    current = child_id
                    position = relative
                    break
            else:
                return current


def body_from_dict(entry: Mapping) -> CelestialBody:
    """
    Create a body from a catalog entry.

    Expected keys: ``id``, ``mass_kg``, ``radius_m``; optional ``name``,
    ``parent``, ``orbit`` (semi_major_axis_m, eccentricity and angles in
    degrees) and ``atmosphere`` (surface_density, scale_height_m, ceiling_m).
    """
    try:
        body_id = entry['id']
        mass = float(entry['mass_kg'])
        radius = float(entry['radius_m'])
    except KeyError as exc:
        raise CatalogError(f"Catalog entry missing {exc}", body_id=entry.get('id')) from exc

    orbit = None
    if entry.get('orbit') is not None:
        o = entry['orbit']
        orbit = OrbitalElements.from_degrees(
            semi_major_axis_m=float(o['semi_major_axis_m']),
            eccentricity=float(o.get('eccentricity', 0.0)),
            inclination_deg=float(o.get('inclination_deg', 0.0)),
            raan_deg=float(o.get('raan_deg', 0.0)),
            arg_periapsis_deg=float(o.get('arg_periapsis_deg', 0.0)),
            mean_anomaly_deg=float(o.get('mean_anomaly_deg', 0.0)),
        )

    atmosphere = None
    if entry.get('atmosphere') is not None:
        a = entry['atmosphere']
        if 'layers' in a:
            atmosphere = AtmosphereModel(
                layers=tuple(AtmosphereLayer(*map(float, layer)) for layer in a['layers']),
                ceiling_m=float(a['ceiling_m']),
            )
        else:
            atmosphere = AtmosphereModel.exponential(
                surface_density=float(a['surface_density']),
                scale_height_m=float(a['scale_height_m']),
                ceiling_m=float(a['ceiling_m']),
            )

    return CelestialBody(
        body_id=body_id,
        name=entry.get('name', body_id),
        mass_kg=mass,
        radius_m=radius,
        parent_id=entry.get('parent'),
        orbit=orbit,
        atmosphere=atmosphere,
    )


def load_catalog(path: Union[str, Path]) -> CelestialRegistry:
    """Load a registry from a JSON catalog file (a list, or {"bodies": [...]})."""
    with open(path, 'r', encoding='utf-8') as f:
        data = json.load(f)
    entries = data['bodies'] if isinstance(data, dict) else data
    return CelestialRegistry.from_catalog(entries)
