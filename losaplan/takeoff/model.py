"""Internal takeoff data model.

SlabDimensions    – rectangular slab footprint
DepthClass        – joist depth (peralte) category
JoistSpec         – one positioned joist (vigueta)
VaultPiece        – one infill block (bovedilla), standard or cut
VaultRow          – the pieces filling one bay between joists / chain
BeamStockUsage    – how joists are cut from standard beam stock
LayoutResult      – complete positioned bill of joists and vaults
MaterialPriceTable, LaborParams – comparison inputs
ConcreteTakeoff, SlabEstimate, Savings, ComparisonResult – comparison output
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


# --------------------------------------------------------------------------- #
# Enumerations
# --------------------------------------------------------------------------- #


class DepthClass(int, Enum):
    P15 = 15
    P20 = 20
    P25 = 25

    @property
    def label(self) -> str:
        return f"P-{self.value}"

    @property
    def depth_m(self) -> float:
        return self.value / 100.0

    @classmethod
    def from_str(cls, value: str | int) -> "DepthClass":
        """Parse ``"P-20"``, ``"p20"``, ``"20"`` or ``20``."""
        if isinstance(value, cls):
            return value
        normalized = str(value).strip().upper()
        if normalized.startswith("P"):
            normalized = normalized[1:]
            if normalized.startswith("-"):
                normalized = normalized[1:]
        try:
            return cls(int(normalized))
        except ValueError:
            raise ValueError(f"Unknown depth class: {value!r}") from None

    @classmethod
    def from_span(cls, clear_span: float) -> "DepthClass":
        """Select the depth class for a clear span (shortest side, m)."""
        if clear_span <= 4.0:
            return cls.P15
        if clear_span <= 5.0:
            return cls.P20
        return cls.P25


class WallType(str, Enum):
    LOAD_BEARING = "load-bearing"
    PARTITION = "partition"
    CEILING = "ceiling"
    RETAINING = "retaining"

    @classmethod
    def from_str(cls, value: str) -> "WallType":
        normalized = value.strip().lower().replace("_", "-")
        for member in cls:
            if member.value == normalized:
                return member
        raise ValueError(f"Unknown wall type: {value!r}")


# --------------------------------------------------------------------------- #
# Slab footprint
# --------------------------------------------------------------------------- #


@dataclass(frozen=True)
class SlabDimensions:
    """Rectangular slab footprint in metres."""

    length: float
    width: float

    @property
    def longest_side(self) -> float:
        return max(self.length, self.width)

    @property
    def shortest_side(self) -> float:
        """Clear span (claro) the joists have to bridge."""
        return min(self.length, self.width)

    @property
    def area(self) -> float:
        return self.length * self.width

    def to_dict(self) -> dict:
        return {"length": self.length, "width": self.width}


# --------------------------------------------------------------------------- #
# Layout elements
# --------------------------------------------------------------------------- #


@dataclass
class JoistSpec:
    """A joist spanning the short side, placed along the longest side."""

    index: int
    position: float  # offset from the slab edge along the longest side (m)
    length: float  # m
    depth_class: DepthClass

    def to_dict(self) -> dict:
        return {
            "index": self.index,
            "position": round(self.position, 4),
            "length": round(self.length, 4),
            "depth_class": self.depth_class.label,
        }


@dataclass
class VaultPiece:
    offset: float  # m from the start of the row
    width: float  # m along the row
    is_adjustment: bool = False

    @property
    def end(self) -> float:
        return self.offset + self.width

    def to_dict(self) -> dict:
        return {
            "offset": round(self.offset, 4),
            "width": round(self.width, 4),
            "is_adjustment": self.is_adjustment,
        }


@dataclass
class VaultRow:
    """Infill pieces of one bay.

    ``start``/``end`` bound the bay along the longest side; the pieces run
    across the short side and fill ``available_length``. ``closure_gap`` is a
    remainder too small for an adjustment piece (below the cut tolerance).
    """

    index: int
    start: float
    end: float
    available_length: float
    pieces: list[VaultPiece] = field(default_factory=list)
    closure_gap: float = 0.0

    @property
    def bay_width(self) -> float:
        return self.end - self.start

    @property
    def full_count(self) -> int:
        return sum(1 for p in self.pieces if not p.is_adjustment)

    @property
    def adjustment_count(self) -> int:
        return sum(1 for p in self.pieces if p.is_adjustment)

    @property
    def covered_length(self) -> float:
        return sum(p.width for p in self.pieces)

    def to_dict(self) -> dict:
        return {
            "index": self.index,
            "start": round(self.start, 4),
            "end": round(self.end, 4),
            "available_length": round(self.available_length, 4),
            "closure_gap": round(self.closure_gap, 4),
            "pieces": [p.to_dict() for p in self.pieces],
        }


@dataclass
class BeamStockUsage:
    """Standard beam stock consumed by one joist."""

    stock_length: float
    pieces_per_joist: int
    splices: int
    supplied_per_joist: float

    def to_dict(self) -> dict:
        return {
            "stock_length": self.stock_length,
            "pieces_per_joist": self.pieces_per_joist,
            "splices": self.splices,
            "supplied_per_joist": round(self.supplied_per_joist, 4),
        }


# --------------------------------------------------------------------------- #
# Layout result
# --------------------------------------------------------------------------- #


@dataclass
class LayoutResult:
    """Positioned bill of joists and vault pieces for one slab."""

    dimensions: SlabDimensions
    chain_width: float
    usable_span: float  # along the longest side
    available_length: float  # across the short side, per vault row
    spacing: float
    depth_class: DepthClass
    joists: list[JoistSpec]
    rows: list[VaultRow]
    stock: BeamStockUsage
    vault_width: float
    waste_percentage: float
    recommendations: list[str] = field(default_factory=list)

    @property
    def joist_count(self) -> int:
        return len(self.joists)

    @property
    def joist_length(self) -> float:
        return self.dimensions.shortest_side

    @property
    def vault_count(self) -> int:
        return sum(len(r.pieces) for r in self.rows)

    @property
    def adjustment_count(self) -> int:
        return sum(r.adjustment_count for r in self.rows)

    @property
    def joist_linear_m(self) -> float:
        return sum(j.length for j in self.joists)

    @property
    def supplied_beam_m(self) -> float:
        return self.stock.supplied_per_joist * self.joist_count

    @property
    def vault_volume(self) -> float:
        """Bulk volume of all vault pieces (m³)."""
        covered = sum(r.covered_length for r in self.rows)
        return covered * self.vault_width * self.depth_class.depth_m

    def to_dict(self) -> dict:
        return {
            "dimensions": self.dimensions.to_dict(),
            "depth_class": self.depth_class.label,
            "chain_width": self.chain_width,
            "usable_span": round(self.usable_span, 4),
            "available_length": round(self.available_length, 4),
            "spacing": round(self.spacing, 4),
            "joist_count": self.joist_count,
            "joist_length": round(self.joist_length, 4),
            "joist_linear_m": round(self.joist_linear_m, 4),
            "vault_count": self.vault_count,
            "adjustment_count": self.adjustment_count,
            "vault_volume_m3": round(self.vault_volume, 4),
            "stock": self.stock.to_dict(),
            "waste_percentage": round(self.waste_percentage, 2),
            "joists": [j.to_dict() for j in self.joists],
            "rows": [r.to_dict() for r in self.rows],
            "recommendations": list(self.recommendations),
        }


# --------------------------------------------------------------------------- #
# Comparison inputs
# --------------------------------------------------------------------------- #


@dataclass
class MaterialPriceTable:
    """Unit prices. Zero is a valid price and yields zero cost."""

    cement: float = 0.0  # per 50 kg bag
    sand: float = 0.0  # per m³
    gravel: float = 0.0  # per m³
    water: float = 0.0  # per m³
    joist: dict[DepthClass, float] = field(default_factory=dict)  # per linear m
    vault: float = 0.0  # per piece
    mesh: float = 0.0  # per m²

    def joist_price(self, depth_class: DepthClass) -> float:
        return self.joist.get(depth_class, 0.0)

    @classmethod
    def from_dict(cls, data: dict) -> "MaterialPriceTable":
        joist_raw = data.get("joist", {}) or {}
        return cls(
            cement=float(data.get("cement", 0.0)),
            sand=float(data.get("sand", 0.0)),
            gravel=float(data.get("gravel", 0.0)),
            water=float(data.get("water", 0.0)),
            joist={DepthClass.from_str(k): float(v) for k, v in joist_raw.items()},
            vault=float(data.get("vault", 0.0)),
            mesh=float(data.get("mesh", 0.0)),
        )


@dataclass
class LaborParams:
    workers: int = 4
    traditional_rate: float = 5.0  # m² per worker-day
    system_rate: float = 10.0  # m² per worker-day


# --------------------------------------------------------------------------- #
# Comparison output
# --------------------------------------------------------------------------- #


@dataclass
class ConcreteTakeoff:
    volume_m3: float
    cement_bags: int
    sand_m3: float
    gravel_m3: float
    water_l: float

    def to_dict(self) -> dict:
        return {
            "volume_m3": round(self.volume_m3, 4),
            "cement_bags": self.cement_bags,
            "sand_m3": round(self.sand_m3, 4),
            "gravel_m3": round(self.gravel_m3, 4),
            "water_l": round(self.water_l, 2),
        }


@dataclass
class SlabEstimate:
    """Quantities, weight, cost and duration of one construction system."""

    concrete: ConcreteTakeoff
    weight_kg: float
    concrete_cost: float
    component_cost: float
    total_cost: float
    duration_days: int
    joist_count: int = 0
    vault_count: int = 0
    mesh_m2: float = 0.0

    def to_dict(self) -> dict:
        return {
            "concrete": self.concrete.to_dict(),
            "weight_kg": round(self.weight_kg, 2),
            "concrete_cost": round(self.concrete_cost, 2),
            "component_cost": round(self.component_cost, 2),
            "total_cost": round(self.total_cost, 2),
            "duration_days": self.duration_days,
            "joist_count": self.joist_count,
            "vault_count": self.vault_count,
            "mesh_m2": round(self.mesh_m2, 3),
        }


@dataclass
class Savings:
    concrete_m3: float
    concrete_pct: float
    cost: float
    cost_pct: float
    weight_kg: float
    weight_pct: float
    days: int
    time_pct: float

    def to_dict(self) -> dict:
        return {
            "concrete_m3": round(self.concrete_m3, 4),
            "concrete_pct": round(self.concrete_pct, 1),
            "cost": round(self.cost, 2),
            "cost_pct": round(self.cost_pct, 1),
            "weight_kg": round(self.weight_kg, 2),
            "weight_pct": round(self.weight_pct, 1),
            "days": self.days,
            "time_pct": round(self.time_pct, 1),
        }


@dataclass
class ComparisonResult:
    traditional: SlabEstimate
    system: SlabEstimate
    savings: Savings
    area: float
    cost_capped: bool = False
    uncapped_system_cost: Optional[float] = None

    def to_dict(self) -> dict:
        return {
            "area": round(self.area, 4),
            "traditional": self.traditional.to_dict(),
            "system": self.system.to_dict(),
            "savings": self.savings.to_dict(),
            "cost_capped": self.cost_capped,
            "uncapped_system_cost": (
                round(self.uncapped_system_cost, 2)
                if self.uncapped_system_cost is not None
                else None
            ),
        }
