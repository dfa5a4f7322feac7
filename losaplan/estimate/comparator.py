"""Traditional slab vs joist-and-vault system comparison.

The traditional baseline is computed from the footprint area alone with fixed
mix coefficients. The system uses a fixed fraction of that concrete volume,
adds joist, vault and mesh costs on top, and its total cost is capped at a
fixed fraction of the traditional total.

The cap is a business rule: the comparison always reports at least the
configured saving (30 % by default) whatever the input prices are. Weights
are per-area constants for both systems and do not depend on the layout.
"""

from __future__ import annotations

import logging
import math
from typing import Optional

from losaplan.config import ComparisonConfig
from losaplan.takeoff.model import (
    ComparisonResult,
    ConcreteTakeoff,
    LaborParams,
    LayoutResult,
    MaterialPriceTable,
    Savings,
    SlabEstimate,
)
from losaplan.validate.checks import InvalidInputError, validate_prices

logger = logging.getLogger(__name__)


def pct_of(delta: float, baseline: float) -> float:
    """Return ``delta / baseline * 100``, or 0 when the baseline is zero."""
    if baseline == 0:
        return 0.0
    return delta / baseline * 100.0


def concrete_takeoff(volume_m3: float, cfg: ComparisonConfig) -> ConcreteTakeoff:
    """Mix quantities for *volume_m3* of concrete."""
    return ConcreteTakeoff(
        volume_m3=volume_m3,
        cement_bags=int(math.ceil(volume_m3 * cfg.cement_bags_per_m3 - 1e-9)),
        sand_m3=volume_m3 * cfg.sand_m3_per_m3,
        gravel_m3=volume_m3 * cfg.gravel_m3_per_m3,
        water_l=volume_m3 * cfg.water_l_per_m3,
    )


def concrete_cost(takeoff: ConcreteTakeoff, prices: MaterialPriceTable) -> float:
    return (
        takeoff.cement_bags * prices.cement
        + takeoff.sand_m3 * prices.sand
        + takeoff.gravel_m3 * prices.gravel
        + takeoff.water_l / 1000.0 * prices.water
    )


def duration_days(area: float, workers: int, rate_m2_per_worker_day: float) -> int:
    if area <= 0:
        return 0
    return int(math.ceil(area / (workers * rate_m2_per_worker_day) - 1e-9))


def _check_labor(labor: LaborParams) -> None:
    if isinstance(labor.workers, bool) or not isinstance(labor.workers, int) or labor.workers < 1:
        raise InvalidInputError(f"Worker count must be a positive integer, got {labor.workers!r}")
    for name in ("traditional_rate", "system_rate"):
        value = getattr(labor, name)
        if value <= 0:
            raise InvalidInputError(f"Labor {name} must be > 0, got {value}")


def traditional_estimate(
    area: float,
    prices: MaterialPriceTable,
    labor: LaborParams,
    cfg: ComparisonConfig,
) -> SlabEstimate:
    volume = area * cfg.traditional_thickness * cfg.concrete_waste_factor
    takeoff = concrete_takeoff(volume, cfg)
    cost = concrete_cost(takeoff, prices)
    return SlabEstimate(
        concrete=takeoff,
        weight_kg=area * cfg.traditional_weight_kg_m2,
        concrete_cost=cost,
        component_cost=0.0,
        total_cost=cost,
        duration_days=duration_days(area, labor.workers, labor.traditional_rate),
    )


def system_estimate(
    layout: LayoutResult,
    traditional: SlabEstimate,
    prices: MaterialPriceTable,
    labor: LaborParams,
    cfg: ComparisonConfig,
) -> tuple[SlabEstimate, float, bool]:
    """Return ``(estimate, uncapped_total, capped)`` for the system slab."""
    area = layout.dimensions.area
    takeoff = concrete_takeoff(traditional.concrete.volume_m3 * cfg.system_volume_ratio, cfg)
    c_cost = concrete_cost(takeoff, prices)

    mesh_m2 = area * cfg.mesh_waste_factor
    component_cost = (
        layout.supplied_beam_m * prices.joist_price(layout.depth_class)
        + layout.vault_count * prices.vault
        + mesh_m2 * prices.mesh
    )
    uncapped = c_cost + component_cost
    cap = traditional.total_cost * cfg.system_cost_cap_ratio
    capped = uncapped > cap
    estimate = SlabEstimate(
        concrete=takeoff,
        weight_kg=area * cfg.system_weight_kg_m2,
        concrete_cost=c_cost,
        component_cost=component_cost,
        total_cost=min(uncapped, cap),
        duration_days=duration_days(area, labor.workers, labor.system_rate),
        joist_count=layout.joist_count,
        vault_count=layout.vault_count,
        mesh_m2=mesh_m2,
    )
    return estimate, uncapped, capped


def compare(
    layout: LayoutResult,
    prices: Optional[MaterialPriceTable] = None,
    labor: Optional[LaborParams] = None,
    options: Optional[ComparisonConfig] = None,
) -> ComparisonResult:
    """Compare a planned system slab against the traditional solid slab.

    Raises
    ------
    InvalidInputError
        If a price is negative or the labor parameters are not positive.
    """
    prices = prices or MaterialPriceTable()
    labor = labor or LaborParams()
    cfg = options or ComparisonConfig()

    price_errors = validate_prices(prices)
    if price_errors:
        raise InvalidInputError("; ".join(price_errors))
    _check_labor(labor)

    area = layout.dimensions.area
    trad = traditional_estimate(area, prices, labor, cfg)
    system, uncapped, capped = system_estimate(layout, trad, prices, labor, cfg)
    if capped:
        logger.info(
            "System cost %.2f capped at %.0f%% of traditional cost %.2f",
            uncapped,
            cfg.system_cost_cap_ratio * 100,
            trad.total_cost,
        )

    concrete_saved = trad.concrete.volume_m3 - system.concrete.volume_m3
    cost_saved = trad.total_cost - system.total_cost
    weight_saved = trad.weight_kg - system.weight_kg
    days_saved = trad.duration_days - system.duration_days
    savings = Savings(
        concrete_m3=concrete_saved,
        concrete_pct=pct_of(concrete_saved, trad.concrete.volume_m3),
        cost=cost_saved,
        cost_pct=pct_of(cost_saved, trad.total_cost),
        weight_kg=weight_saved,
        weight_pct=pct_of(weight_saved, trad.weight_kg),
        days=days_saved,
        time_pct=pct_of(days_saved, trad.duration_days),
    )
    logger.debug(
        "Comparison %.2f m²: concrete %.3f → %.3f m³, cost %.2f → %.2f",
        area,
        trad.concrete.volume_m3,
        system.concrete.volume_m3,
        trad.total_cost,
        system.total_cost,
    )
    return ComparisonResult(
        traditional=trad,
        system=system,
        savings=savings,
        area=area,
        cost_capped=capped,
        uncapped_system_cost=uncapped,
    )
