"""Serialisable estimate reports and calculation records."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Optional

from losaplan.takeoff.model import ComparisonResult, LayoutResult


def build_estimate_report(
    layout_errors: list[str],
    advisories: list[str],
    comparison: Optional[ComparisonResult] = None,
) -> dict[str, Any]:
    """Build a serialisable report dict."""
    return {
        "layout_errors": layout_errors,
        "advisories": advisories,
        "comparison": comparison.to_dict() if comparison is not None else None,
        "ok": len(layout_errors) == 0,
    }


def save_report(report: dict[str, Any], path: Path) -> None:
    path.write_text(json.dumps(report, indent=2, ensure_ascii=False), encoding="utf-8")


def build_calculation_record(
    project_id: int,
    layout: LayoutResult,
    comparison: ComparisonResult,
    polystyrene_density: Optional[float] = None,
) -> dict[str, Any]:
    """Return the payload persisted for a saved slab calculation.

    Built from the same result objects the preview and the report use, so
    every consumer sees identical numbers.
    """
    specs: dict[str, Any] = {
        "beamDepth": layout.depth_class.label,
        "length": layout.dimensions.length,
        "width": layout.dimensions.width,
    }
    if polystyrene_density is not None:
        specs["polystyreneDensity"] = polystyrene_density
    savings = comparison.savings
    return {
        "projectId": project_id,
        "type": "slab",
        "area": f"{layout.dimensions.area:.2f}",
        "specs": specs,
        "results": {
            "materials": {
                "beams": layout.joist_count,
                "vaults": layout.vault_count,
                "adjustmentVaults": layout.adjustment_count,
                "mesh": round(comparison.system.mesh_m2, 2),
                "concrete": f"{comparison.system.concrete.volume_m3:.2f}",
                "beamStockLength": layout.stock.stock_length,
                "wastePercentage": round(layout.waste_percentage, 2),
            },
            "comparison": {
                "concreteSaved": f"{savings.concrete_m3:.2f}",
                "weightReduced": f"{savings.weight_kg:.0f}",
                "timeSaved": savings.days,
                "costSaved": f"{savings.cost:.2f}",
                "costCapped": comparison.cost_capped,
            },
            "recommendations": list(layout.recommendations),
        },
    }
