"""Post-processing for layout results.

Converts a :class:`LayoutResult` into plan geometry (Shapely), checks piece
overlaps and writes JSON / GeoJSON for the schematic and report consumers.

Plan coordinates: ``x`` runs along the longest side, ``y`` along the short
side (the clear span), origin at the outer slab corner.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from shapely.geometry import LineString, Polygon, box, mapping
from shapely.strtree import STRtree

from losaplan.takeoff.model import LayoutResult

logger = logging.getLogger(__name__)


def joist_lines(layout: LayoutResult) -> dict[str, LineString]:
    """Return the axis of every joist, keyed ``joist_<i>``."""
    span = layout.dimensions.shortest_side
    return {
        f"joist_{j.index}": LineString([(j.position, 0.0), (j.position, span)])
        for j in layout.joists
    }


def vault_polygons(layout: LayoutResult) -> dict[str, Polygon]:
    """Return one box per vault piece, keyed ``row_<r>_piece_<p>``."""
    y0 = layout.chain_width
    polys: dict[str, Polygon] = {}
    for row in layout.rows:
        for k, piece in enumerate(row.pieces):
            polys[f"row_{row.index}_piece_{k}"] = box(
                row.start, y0 + piece.offset, row.end, y0 + piece.end
            )
    return polys


def slab_outline(layout: LayoutResult) -> Polygon:
    return box(0.0, 0.0, layout.dimensions.longest_side, layout.dimensions.shortest_side)


def check_overlaps(polygons: dict[str, Polygon], tol: float = 1e-6) -> list[str]:
    """Return a list of overlap descriptions (empty = no overlaps)."""
    issues: list[str] = []
    ids = list(polygons.keys())
    geoms = [polygons[i] for i in ids]
    tree = STRtree(geoms)
    for i, geom in enumerate(geoms):
        for j in tree.query(geom):
            j = int(j)
            if j <= i:
                continue
            inter = geom.intersection(geoms[j])
            if inter.area > tol:
                issues.append(
                    f"Overlap between '{ids[i]}' and '{ids[j]}': area={inter.area:.4f} m²"
                )
    return issues


def check_joist_clearance(
    lines: dict[str, LineString],
    polygons: dict[str, Polygon],
    tol: float = 1e-6,
) -> list[str]:
    """Return joists that cut through the interior of a vault piece."""
    issues: list[str] = []
    if not lines or not polygons:
        return issues
    ids = list(polygons.keys())
    geoms = [polygons[i] for i in ids]
    tree = STRtree(geoms)
    for jid, line in lines.items():
        for k in tree.query(line):
            inner = geoms[int(k)].buffer(-tol)
            if inner.is_empty:
                continue
            if line.intersection(inner).length > tol:
                issues.append(f"Joist '{jid}' crosses vault piece '{ids[int(k)]}'")
    return issues


def save_layout_json(layout: LayoutResult, path: Path) -> None:
    """Save the full layout (joists, rows, aggregates) as JSON."""
    path.write_text(json.dumps(layout.to_dict(), indent=2, ensure_ascii=False), encoding="utf-8")
    logger.debug("Saved layout JSON → %s", path)


def save_layout_geojson(layout: LayoutResult, path: Path) -> None:
    """Save the plan as a GeoJSON FeatureCollection for the line drawing."""
    features = [
        {
            "type": "Feature",
            "properties": {"kind": "slab", "area": round(layout.dimensions.area, 3)},
            "geometry": mapping(slab_outline(layout)),
        }
    ]
    for jid, line in joist_lines(layout).items():
        features.append(
            {
                "type": "Feature",
                "properties": {
                    "kind": "joist",
                    "id": jid,
                    "depth_class": layout.depth_class.label,
                },
                "geometry": mapping(line),
            }
        )
    adjustment_ids = {
        f"row_{row.index}_piece_{k}"
        for row in layout.rows
        for k, piece in enumerate(row.pieces)
        if piece.is_adjustment
    }
    for pid, poly in vault_polygons(layout).items():
        features.append(
            {
                "type": "Feature",
                "properties": {
                    "kind": "vault",
                    "id": pid,
                    "is_adjustment": pid in adjustment_ids,
                },
                "geometry": mapping(poly),
            }
        )
    fc = {"type": "FeatureCollection", "features": features}
    path.write_text(json.dumps(fc, indent=2, ensure_ascii=False), encoding="utf-8")
    logger.debug("Saved layout GeoJSON → %s", path)
