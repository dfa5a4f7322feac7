"""Client-facing budget assembly."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from losaplan.config import BudgetConfig
from losaplan.estimate.walls import WallPanelResult
from losaplan.takeoff.model import ComparisonResult
from losaplan.validate.checks import InvalidInputError


@dataclass
class ProjectInfo:
    client_name: str
    profit_margin: float = 20.0  # %
    labor_cost_per_m2: float = 0.0


@dataclass
class BudgetLine:
    kind: str  # "slab" | "wall"
    area: float
    material_cost: float
    description: str = ""


@dataclass
class Budget:
    lines: list[BudgetLine] = field(default_factory=list)
    total_area: float = 0.0
    material_cost: float = 0.0
    labor_cost: float = 0.0
    subtotal: float = 0.0
    profit: float = 0.0
    total: float = 0.0

    def to_dict(self) -> dict:
        return {
            "lines": [
                {
                    "kind": ln.kind,
                    "area": round(ln.area, 3),
                    "material_cost": round(ln.material_cost, 2),
                    "description": ln.description,
                }
                for ln in self.lines
            ],
            "total_area": round(self.total_area, 3),
            "material_cost": round(self.material_cost, 2),
            "labor_cost": round(self.labor_cost, 2),
            "subtotal": round(self.subtotal, 2),
            "profit": round(self.profit, 2),
            "total": round(self.total, 2),
        }


def line_for_slab(
    comparison: ComparisonResult,
    cfg: Optional[BudgetConfig] = None,
    description: str = "",
) -> BudgetLine:
    """Budget line for a slab; falls back to the per-m² rate when unpriced."""
    cfg = cfg or BudgetConfig()
    cost = comparison.system.total_cost
    if cost <= 0:
        cost = comparison.area * cfg.slab_rate_per_m2
    return BudgetLine("slab", comparison.area, cost, description)


def line_for_wall(
    wall: WallPanelResult,
    cfg: Optional[BudgetConfig] = None,
    material_cost: Optional[float] = None,
    description: str = "",
) -> BudgetLine:
    cfg = cfg or BudgetConfig()
    cost = material_cost if material_cost else wall.area * cfg.wall_rate_per_m2
    return BudgetLine("wall", wall.area, cost, description)


def build_budget(project: ProjectInfo, lines: list[BudgetLine]) -> Budget:
    """Sum material, labour and profit for a project's budget lines."""
    if project.profit_margin < 0:
        raise InvalidInputError(f"Profit margin must be >= 0, got {project.profit_margin}")
    if project.labor_cost_per_m2 < 0:
        raise InvalidInputError(
            f"Labor cost per m² must be >= 0, got {project.labor_cost_per_m2}"
        )
    total_area = sum(ln.area for ln in lines)
    material = sum(ln.material_cost for ln in lines)
    labor = project.labor_cost_per_m2 * total_area
    subtotal = material + labor
    profit = subtotal * project.profit_margin / 100.0
    return Budget(
        lines=list(lines),
        total_area=total_area,
        material_cost=material,
        labor_cost=labor,
        subtotal=subtotal,
        profit=profit,
        total=subtotal + profit,
    )


def format_budget_message(project: ProjectInfo, budget: Budget, currency: str = "MXN") -> str:
    """Plain-text budget summary suitable for sharing with the client."""
    kind_label = {"slab": "Slab", "wall": "Wall"}
    lines = [
        f"Budget for {project.client_name}",
        f"Total: ${budget.total:,.2f} {currency}",
        "",
        "Details:",
    ]
    for ln in budget.lines:
        label = kind_label.get(ln.kind, ln.kind)
        extra = f" {ln.description}" if ln.description else ""
        lines.append(f"- {label}{extra} ({ln.area:.2f} m²): ${ln.material_cost:,.2f}")
    lines.extend(
        [
            "",
            f"Materials: ${budget.material_cost:,.2f}",
            f"Labor: ${budget.labor_cost:,.2f}",
            f"Profit ({project.profit_margin:g}%): ${budget.profit:,.2f}",
        ]
    )
    return "\n".join(lines)
