"""Structural EPS panel takeoff for walls.

Panels are tiled along the wall length and up its height with the same rule
as vault rows: full panels, then one cut panel when the remainder exceeds the
cut tolerance.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from losaplan.config import WallConfig
from losaplan.layout.planner import tile_row
from losaplan.takeoff.model import VaultPiece, WallType
from losaplan.validate.checks import require_positive_dimensions

logger = logging.getLogger(__name__)


@dataclass
class WallPanelResult:
    length: float
    height: float
    wall_type: WallType
    columns: list[VaultPiece] = field(default_factory=list)
    courses: list[VaultPiece] = field(default_factory=list)
    panel_area: float = 0.0
    mortar_m3: float = 0.0

    @property
    def area(self) -> float:
        return self.length * self.height

    @property
    def panel_count(self) -> int:
        return len(self.columns) * len(self.courses)

    @property
    def cut_panel_count(self) -> int:
        full_cols = sum(1 for c in self.columns if not c.is_adjustment)
        full_courses = sum(1 for c in self.courses if not c.is_adjustment)
        return self.panel_count - full_cols * full_courses

    @property
    def supplied_area(self) -> float:
        return self.panel_count * self.panel_area

    @property
    def waste_percentage(self) -> float:
        supplied = self.supplied_area
        if supplied <= 0:
            return 0.0
        return max(0.0, (supplied - self.area) / supplied * 100.0)

    def to_dict(self) -> dict:
        return {
            "length": self.length,
            "height": self.height,
            "wall_type": self.wall_type.value,
            "area": round(self.area, 4),
            "panel_count": self.panel_count,
            "cut_panel_count": self.cut_panel_count,
            "columns": len(self.columns),
            "courses": len(self.courses),
            "mortar_m3": round(self.mortar_m3, 4),
            "waste_percentage": round(self.waste_percentage, 2),
        }


def plan_wall_panels(
    length: float,
    height: float,
    wall_type: WallType | str = WallType.LOAD_BEARING,
    options: Optional[WallConfig] = None,
) -> WallPanelResult:
    """Return the panel layout and mortar quantity for one wall."""
    cfg = options or WallConfig()
    require_positive_dimensions(length=length, height=height)
    if isinstance(wall_type, str):
        wall_type = WallType.from_str(wall_type)

    # Remainders under the tolerance are absorbed by the mortar render.
    columns, _ = tile_row(float(length), cfg.panel_width, cfg.adjustment_tolerance)
    courses, _ = tile_row(float(height), cfg.panel_height, cfg.adjustment_tolerance)
    result = WallPanelResult(
        length=float(length),
        height=float(height),
        wall_type=wall_type,
        columns=columns,
        courses=courses,
        panel_area=cfg.panel_width * cfg.panel_height,
        mortar_m3=float(length) * float(height) * cfg.mortar_m3_per_m2,
    )
    logger.debug(
        "Wall %gx%g (%s): %d panels, %d cut",
        length,
        height,
        wall_type.value,
        result.panel_count,
        result.cut_panel_count,
    )
    return result
