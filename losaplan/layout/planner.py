"""Joist-and-vault layout planner.

Strategy
--------
1. Joists bridge the short side (the clear span) and are distributed along
   the longest side, inside the perimeter chain.
2. ``floor(usable_span / axis_spacing)`` joists are spread uniformly, so no
   joist sits on the chain boundary.
3. Every joist gets the same depth class, chosen from the clear span or
   from the dominant class of a caller-supplied distribution.
4. Each of the ``n + 1`` bays gets a vault row: full standard pieces plus at
   most one cut adjustment piece for the remainder.
5. Joists are cut from standard beam stock (spliced beyond the longest
   stock length); the off-cuts give the waste percentage.

Everything here is a pure function of its arguments.
"""

from __future__ import annotations

import logging
import math
from typing import Mapping, Optional

import numpy as np

from losaplan.config import PlannerConfig
from losaplan.takeoff.model import (
    BeamStockUsage,
    DepthClass,
    JoistSpec,
    LayoutResult,
    SlabDimensions,
    VaultPiece,
    VaultRow,
)
from losaplan.validate.checks import (
    DegenerateGeometryError,
    InvalidInputError,
    require_positive_dimensions,
)

logger = logging.getLogger(__name__)

# Absorbs binary rounding in floor/ceil of exact multiples (e.g. 2.44 / 1.22)
_EPS = 1e-9


# --------------------------------------------------------------------------- #
# Building blocks
# --------------------------------------------------------------------------- #


def depth_class_counts(
    distribution: Optional[Mapping[DepthClass | str | int, int]],
) -> dict[DepthClass, int]:
    """Merge a class → joist count mapping onto canonical depth classes.

    ``{"P-20": 2, "20": 3}`` becomes ``{DepthClass.P20: 5}``.
    """
    if distribution is None:
        return {}
    if not isinstance(distribution, Mapping):
        raise InvalidInputError(
            f"Depth distribution must map depth classes to joist counts, got {distribution!r}"
        )
    counts: dict[DepthClass, int] = {}
    for key, count in distribution.items():
        try:
            depth_class = DepthClass.from_str(key)
        except ValueError as exc:
            raise InvalidInputError(str(exc)) from None
        if isinstance(count, bool) or not isinstance(count, int) or count < 0:
            raise InvalidInputError(
                f"Joist count for {depth_class.label} must be an integer >= 0, got {count!r}"
            )
        counts[depth_class] = counts.get(depth_class, 0) + count
    return counts


def select_depth_class(
    clear_span: float,
    distribution: Optional[Mapping[DepthClass | str | int, int]] = None,
) -> DepthClass:
    """Return the single depth class applied to every joist of a slab.

    A custom *distribution* (class → joist count) overrides the span rule;
    its most frequent non-zero class wins, ties going to the deeper class.
    An empty or all-zero distribution falls back to the span rule.
    """
    nonzero = {dc: n for dc, n in depth_class_counts(distribution).items() if n > 0}
    if nonzero:
        return max(nonzero, key=lambda dc: (nonzero[dc], dc.value))
    return DepthClass.from_span(clear_span)


def count_joists(usable_span: float, axis_spacing: float) -> int:
    if usable_span <= 0:
        return 0
    return int(math.floor(usable_span / axis_spacing + _EPS))


def joist_positions(
    usable_span: float, count: int, chain_width: float
) -> tuple[float, list[float]]:
    """Return ``(spacing, positions)`` for *count* uniformly spread joists."""
    spacing = usable_span / (count + 1)
    positions = (chain_width + np.arange(1, count + 1) * spacing).tolist()
    return spacing, positions


def tile_row(
    available: float, piece_length: float, tolerance: float = 0.01
) -> tuple[list[VaultPiece], float]:
    """Fill *available* metres with standard pieces plus one cut piece.

    Returns ``(pieces, closure_gap)``. A remainder above *tolerance* becomes
    an adjustment piece; a smaller one is returned as the closure gap.
    """
    full = int(math.floor(available / piece_length + _EPS))
    pieces = [VaultPiece(offset=k * piece_length, width=piece_length) for k in range(full)]
    remainder = max(0.0, available - full * piece_length)
    if remainder > tolerance:
        pieces.append(
            VaultPiece(offset=full * piece_length, width=remainder, is_adjustment=True)
        )
        return pieces, 0.0
    return pieces, remainder


def beam_stock_usage(
    joist_length: float,
    stock_lengths: tuple[float, ...] = (3.0, 4.0, 5.0, 6.0),
    lap_splice: float = 0.30,
) -> BeamStockUsage:
    """Pick the beam stock that covers one joist.

    Up to the longest stock length a single piece of the shortest adequate
    stock is used. Longer joists are spliced from ``n`` longest pieces, each
    splice overlapping by *lap_splice*, with ``n`` the smallest count where
    ``n * stock - (n - 1) * lap_splice >= joist_length``.
    """
    stocks = sorted(stock_lengths)
    if not stocks:
        raise InvalidInputError("At least one beam stock length is required")
    longest = stocks[-1]
    if joist_length <= longest + _EPS:
        stock = next(s for s in stocks if s >= joist_length - _EPS)
        return BeamStockUsage(
            stock_length=stock, pieces_per_joist=1, splices=0, supplied_per_joist=stock
        )

    effective = longest - lap_splice
    if effective <= 0:
        raise InvalidInputError(
            f"Lap splice {lap_splice} m leaves no effective length on {longest} m stock"
        )
    pieces = max(2, int(math.ceil((joist_length - lap_splice) / effective - _EPS)))
    return BeamStockUsage(
        stock_length=longest,
        pieces_per_joist=pieces,
        splices=pieces - 1,
        supplied_per_joist=longest * pieces,
    )


def waste_percentage(stock: BeamStockUsage, joist_length: float, joist_count: int) -> float:
    """Share of supplied beam stock that does not end up as joist coverage."""
    supplied = stock.supplied_per_joist * joist_count
    if supplied <= 0:
        return 0.0
    coverage = joist_length * joist_count
    return max(0.0, (supplied - coverage) / supplied * 100.0)


# --------------------------------------------------------------------------- #
# Advisories
# --------------------------------------------------------------------------- #


def _recommendations(
    cfg: PlannerConfig,
    clear_span: float,
    joist_count: int,
    stock: BeamStockUsage,
    waste: float,
    adjustment_count: int,
    mixed_distribution: bool,
    depth_class: DepthClass,
) -> list[str]:
    recs: list[str] = []
    if joist_count == 0:
        recs.append(
            "No joist fits in the usable span; consider a solid slab or a smaller axis spacing."
        )
    if waste > cfg.waste_advisory_pct:
        recs.append(
            f"Consider adjusting dimensions to reduce beam waste ({waste:.1f}%)."
        )
    if clear_span > cfg.long_span_limit:
        recs.append(
            f"Span over {cfg.long_span_limit:g} m needs {stock.pieces_per_joist} spliced "
            f"joist pieces per joist ({stock.splices} lap splice(s) of {cfg.lap_splice:.2f} m); "
            "consider intermediate supports."
        )
    if clear_span < cfg.short_span_limit:
        recs.append(
            f"Span under {cfg.short_span_limit:g} m may be over-designed; "
            "check whether a structural panel is a better fit."
        )
    if adjustment_count > 0:
        recs.append(
            f"{adjustment_count} vault piece(s) must be cut on site to fill row remainders."
        )
    if mixed_distribution:
        recs.append(
            f"Mixed depth distribution supplied; all joists are laid out as {depth_class.label}."
        )
    return recs


# --------------------------------------------------------------------------- #
# Planner
# --------------------------------------------------------------------------- #


def _check_options(cfg: PlannerConfig) -> None:
    for name in ("axis_spacing", "vault_length", "vault_width"):
        value = getattr(cfg, name)
        if value <= 0:
            raise InvalidInputError(f"Planner option {name} must be > 0, got {value}")
    if cfg.chain_width < 0:
        raise InvalidInputError(f"Planner option chain_width must be >= 0, got {cfg.chain_width}")


def plan_layout(
    length: float,
    width: float,
    options: Optional[PlannerConfig] = None,
    depth_distribution: Optional[Mapping[DepthClass | str | int, int]] = None,
) -> LayoutResult:
    """Return the positioned joist and vault bill for a rectangular slab.

    Raises
    ------
    InvalidDimensionsError
        If *length* or *width* is not a positive number.
    DegenerateGeometryError
        If the perimeter chain leaves no usable span in either direction.
    """
    cfg = options or PlannerConfig()
    require_positive_dimensions(length=length, width=width)
    _check_options(cfg)

    dims = SlabDimensions(float(length), float(width))
    usable_span = dims.longest_side - 2 * cfg.chain_width
    available = dims.shortest_side - 2 * cfg.chain_width
    if usable_span <= 0 or available <= 0:
        raise DegenerateGeometryError(
            f"Slab {dims.length:g} x {dims.width:g} m leaves no usable span inside a "
            f"{cfg.chain_width:g} m perimeter chain"
        )

    clear_span = dims.shortest_side
    depth_class = select_depth_class(clear_span, depth_distribution)
    mixed = sum(1 for n in depth_class_counts(depth_distribution).values() if n > 0) > 1

    n = count_joists(usable_span, cfg.axis_spacing)
    spacing, positions = joist_positions(usable_span, n, cfg.chain_width)
    joists = [
        JoistSpec(index=i, position=pos, length=clear_span, depth_class=depth_class)
        for i, pos in enumerate(positions)
    ]

    bounds = [cfg.chain_width] + positions + [dims.longest_side - cfg.chain_width]
    rows: list[VaultRow] = []
    for i in range(n + 1):
        pieces, gap = tile_row(available, cfg.vault_length, cfg.adjustment_tolerance)
        rows.append(
            VaultRow(
                index=i,
                start=bounds[i],
                end=bounds[i + 1],
                available_length=available,
                pieces=pieces,
                closure_gap=gap,
            )
        )

    stock = beam_stock_usage(clear_span, cfg.stock_lengths, cfg.lap_splice)
    waste = waste_percentage(stock, clear_span, n)
    adjustments = sum(r.adjustment_count for r in rows)

    layout = LayoutResult(
        dimensions=dims,
        chain_width=cfg.chain_width,
        usable_span=usable_span,
        available_length=available,
        spacing=spacing,
        depth_class=depth_class,
        joists=joists,
        rows=rows,
        stock=stock,
        vault_width=cfg.vault_width,
        waste_percentage=waste,
        recommendations=_recommendations(
            cfg, clear_span, n, stock, waste, adjustments, mixed, depth_class
        ),
    )
    logger.debug(
        "Layout %gx%g: %d joists %s @ %.3f m, %d vault pieces (%d cut), waste %.1f%%",
        dims.length,
        dims.width,
        n,
        depth_class.label,
        spacing,
        layout.vault_count,
        adjustments,
        waste,
    )
    return layout
