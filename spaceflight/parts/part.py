"""
Vehicle Parts
=============

Physical parts that make up a vehicle.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Set

G0 = 9.80665  # m/s² - standard gravity for specific impulse


class PartKind(Enum):
    """Functional role of a part during staging."""
    COMMAND = "command"
    ENGINE = "engine"
    TANK = "tank"
    DECOUPLER = "decoupler"
    PARACHUTE = "parachute"
    STRUCTURAL = "structural"


class PartStatus(Enum):
    """Part lifecycle."""
    INACTIVE = "inactive"  # pending activation
    ACTIVE = "active"
    CONSUMED = "consumed"  # fired, still attached
    DETACHED = "detached"


@dataclass
class Part:
    """
    A single vehicle part.

    Mutate parts through their PartGraph so that cached aggregates are
    invalidated.
    """
    part_id: str
    kind: PartKind = PartKind.STRUCTURAL
    dry_mass_kg: float = 0.0
    fuel_mass_kg: float = 0.0
    fuel_capacity_kg: Optional[float] = None  # defaults to the initial fuel
    thrust_n: float = 0.0
    isp_s: float = 0.0
    stage: Optional[int] = None  # activation stage index
    status: PartStatus = PartStatus.INACTIVE
    attachments: Set[str] = field(default_factory=set)
    armed: bool = False
    drag_area_m2: float = 0.0

    def __post_init__(self):
        self.kind = PartKind(self.kind)
        self.status = PartStatus(self.status)
        if self.fuel_capacity_kg is None:
            self.fuel_capacity_kg = self.fuel_mass_kg

        if self.dry_mass_kg < 0 or self.fuel_mass_kg < 0:
            raise ValueError(f"Part {self.part_id}: masses must be non-negative")
        if self.fuel_mass_kg > self.fuel_capacity_kg:
            raise ValueError(f"Part {self.part_id}: fuel exceeds capacity")
        if self.thrust_n < 0:
            raise ValueError(f"Part {self.part_id}: thrust must be non-negative")
        if self.thrust_n > 0 and self.isp_s <= 0:
            raise ValueError(f"Part {self.part_id}: engine needs a positive specific impulse")
        if self.stage is not None and self.stage < 0:
            raise ValueError(f"Part {self.part_id}: stage index must be non-negative")

    @property
    def mass_kg(self) -> float:
        """Dry plus current fuel mass."""
        return self.dry_mass_kg + self.fuel_mass_kg

    @property
    def is_engine(self) -> bool:
        return self.kind is PartKind.ENGINE and self.thrust_n > 0

    @property
    def fuel_flow_kg_s(self) -> float:
        """Propellant mass flow at full throttle."""
        if not self.is_engine:
            return 0.0
        return self.thrust_n / (self.isp_s * G0)

    def __repr__(self) -> str:
        return (f"Part({self.part_id!r}, {self.kind.value}, stage={self.stage}, "
                f"{self.status.value}, mass={self.mass_kg:.1f}kg)")
