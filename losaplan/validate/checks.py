"""Input validation and layout consistency checks."""

from __future__ import annotations

import math

from losaplan.layout.postprocess import (
    check_joist_clearance,
    check_overlaps,
    joist_lines,
    vault_polygons,
)
from losaplan.takeoff.model import LayoutResult, MaterialPriceTable


class InvalidInputError(ValueError):
    """Input the caller has to correct before anything can be computed."""


class InvalidDimensionsError(InvalidInputError):
    """A dimension is missing, non-numeric or not strictly positive."""


class DegenerateGeometryError(InvalidInputError):
    """The slab is too small for the perimeter chain to leave any usable span."""


def require_positive_dimensions(**dims: float) -> None:
    """Raise :class:`InvalidDimensionsError` unless every value is finite and > 0."""
    for name, value in dims.items():
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise InvalidDimensionsError(
                f"Invalid dimensions: {name} must be a number, got {value!r}"
            )
        if not math.isfinite(value) or value <= 0:
            raise InvalidDimensionsError(
                f"Invalid dimensions: {name} must be > 0, got {value}"
            )


def validate_prices(prices: MaterialPriceTable) -> list[str]:
    """Return a list of price errors (negative or non-finite values)."""
    errors: list[str] = []
    scalar = {
        "cement": prices.cement,
        "sand": prices.sand,
        "gravel": prices.gravel,
        "water": prices.water,
        "vault": prices.vault,
        "mesh": prices.mesh,
    }
    for depth_class, value in prices.joist.items():
        scalar[f"joist {depth_class.label}"] = value
    for name, value in scalar.items():
        if not math.isfinite(value) or value < 0:
            errors.append(f"Price for {name} must be >= 0, got {value}")
    return errors


def validate_layout(layout: LayoutResult, tol: float = 1e-6) -> list[str]:
    """Return a list of layout-level consistency errors."""
    errors: list[str] = []

    lo = layout.chain_width
    hi = layout.dimensions.longest_side - layout.chain_width
    for joist in layout.joists:
        if not (lo + tol < joist.position < hi - tol):
            errors.append(
                f"Joist {joist.index} at {joist.position:.3f} m lies outside the usable span "
                f"({lo:.3f}–{hi:.3f} m)."
            )
        if joist.depth_class != layout.depth_class:
            errors.append(
                f"Joist {joist.index} has depth class {joist.depth_class.label}, "
                f"expected {layout.depth_class.label}."
            )

    if len(layout.rows) != layout.joist_count + 1:
        errors.append(
            f"Expected {layout.joist_count + 1} vault rows, got {len(layout.rows)}."
        )

    for row in layout.rows:
        filled = row.covered_length + row.closure_gap
        if abs(filled - row.available_length) > tol:
            errors.append(
                f"Row {row.index} pieces cover {filled:.4f} m of {row.available_length:.4f} m."
            )
        if row.adjustment_count > 1:
            errors.append(f"Row {row.index} has {row.adjustment_count} adjustment pieces.")
        cursor = 0.0
        for piece in row.pieces:
            if abs(piece.offset - cursor) > tol:
                errors.append(
                    f"Row {row.index} has a gap or overlap at {cursor:.4f} m."
                )
            cursor = piece.end

    polygons = vault_polygons(layout)
    errors.extend(check_overlaps(polygons, tol=tol))
    errors.extend(check_joist_clearance(joist_lines(layout), polygons, tol=tol))
    return errors
