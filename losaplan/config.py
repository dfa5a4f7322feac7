"""Global configuration and defaults for losaplan."""

from __future__ import annotations

import yaml
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional


@dataclass
class PlannerConfig:
    """Joist-and-vault layout parameters (metres unless noted)."""

    chain_width: float = 0.15  # perimeter chain (cadena) on each side
    axis_spacing: float = 0.70  # joist axis-to-axis distance
    vault_length: float = 1.22  # standard piece, measured along the joist
    vault_width: float = 0.63
    stock_lengths: tuple[float, ...] = (3.0, 4.0, 5.0, 6.0)
    lap_splice: float = 0.30
    adjustment_tolerance: float = 0.01
    waste_advisory_pct: float = 15.0
    short_span_limit: float = 3.0
    long_span_limit: float = 6.0


@dataclass
class ComparisonConfig:
    """Fixed coefficients of the traditional-vs-system comparison."""

    traditional_thickness: float = 0.10
    concrete_waste_factor: float = 1.02
    cement_bags_per_m3: float = 8.0
    sand_m3_per_m3: float = 0.5415
    gravel_m3_per_m3: float = 0.646
    water_l_per_m3: float = 237.5
    system_volume_ratio: float = 0.70
    system_cost_cap_ratio: float = 0.70
    traditional_weight_kg_m2: float = 288.0
    system_weight_kg_m2: float = 180.0
    mesh_waste_factor: float = 1.02


@dataclass
class WallConfig:
    """Structural EPS panel parameters for walls."""

    panel_width: float = 1.22
    panel_height: float = 2.44
    mortar_m3_per_m2: float = 0.02
    adjustment_tolerance: float = 0.01


@dataclass
class BudgetConfig:
    """Fallback material rates used when no computed cost is available."""

    slab_rate_per_m2: float = 450.0
    wall_rate_per_m2: float = 380.0
    currency: str = "MXN"


@dataclass
class SyncConfig:
    """Offline queue replay parameters."""

    base_url: str = "http://localhost:5000"
    timeout_sec: float = 10.0
    interval_sec: float = 30.0
    synced_log_retention_days: int = 7


@dataclass
class Config:
    """Top-level configuration."""

    planner: PlannerConfig = field(default_factory=PlannerConfig)
    comparison: ComparisonConfig = field(default_factory=ComparisonConfig)
    wall: WallConfig = field(default_factory=WallConfig)
    budget: BudgetConfig = field(default_factory=BudgetConfig)
    sync: SyncConfig = field(default_factory=SyncConfig)
    debug_output_dir: Optional[Path] = None

    @classmethod
    def from_yaml(cls, path: str | Path) -> "Config":
        """Load configuration from a YAML file."""
        with open(path, "r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh) or {}

        planner_data = dict(data.get("planner", {}))
        if "stock_lengths" in planner_data:
            planner_data["stock_lengths"] = tuple(
                sorted(float(v) for v in planner_data["stock_lengths"])
            )
        cmp_data = data.get("comparison", {})
        wall_data = data.get("wall", {})
        budget_data = data.get("budget", {})
        sync_data = data.get("sync", {})
        debug_dir = data.get("debug_output_dir")

        return cls(
            planner=PlannerConfig(**planner_data) if planner_data else PlannerConfig(),
            comparison=ComparisonConfig(**cmp_data) if cmp_data else ComparisonConfig(),
            wall=WallConfig(**wall_data) if wall_data else WallConfig(),
            budget=BudgetConfig(**budget_data) if budget_data else BudgetConfig(),
            sync=SyncConfig(**sync_data) if sync_data else SyncConfig(),
            debug_output_dir=Path(debug_dir) if debug_dir else None,
        )

    @classmethod
    def default(cls) -> "Config":
        return cls()
