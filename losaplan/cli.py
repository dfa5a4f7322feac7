"""Command-line interface for losaplan.

Usage
-----
    losaplan plan --length 6 --width 4
    losaplan plan -l 6 -w 4 --depth P-20=5 --debug /tmp/debug/
    losaplan compare -l 6 -w 4 --prices prices.yaml --workers 4
    losaplan compare -l 6 -w 4 --queue queue.json --project-id 3
    losaplan wall --length 10 --height 2.5 --type partition
    losaplan budget --project project.yaml
    losaplan sync --queue queue.json --base-url http://localhost:5000
"""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Optional

import click
import yaml

from losaplan.config import Config
from losaplan.estimate.budget import (
    ProjectInfo,
    build_budget,
    format_budget_message,
    line_for_slab,
    line_for_wall,
)
from losaplan.estimate.comparator import compare
from losaplan.estimate.walls import plan_wall_panels
from losaplan.layout.planner import plan_layout
from losaplan.layout.postprocess import save_layout_geojson, save_layout_json
from losaplan.sync.manager import HttpSender, SyncContext
from losaplan.sync.queue import OfflineQueue
from losaplan.takeoff.model import LaborParams, LayoutResult, MaterialPriceTable, WallType
from losaplan.validate.checks import InvalidInputError, validate_layout
from losaplan.validate.reports import (
    build_calculation_record,
    build_estimate_report,
    save_report,
)

logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s %(name)s: %(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger("losaplan.cli")


def _parse_depth_mix(values: tuple[str, ...]) -> Optional[dict[str, int]]:
    """Parse ``("P-15=3", "P-20=5")`` into a depth distribution."""
    if not values:
        return None
    mix: dict[str, int] = {}
    for raw in values:
        key, sep, count = raw.partition("=")
        if not sep:
            raise click.BadParameter(f"expected CLASS=COUNT, got {raw!r}", param_hint="--depth")
        try:
            mix[key.strip()] = int(count)
        except ValueError:
            raise click.BadParameter(f"count must be an integer in {raw!r}", param_hint="--depth") from None
    return mix


def _load_prices(path: Optional[str]) -> MaterialPriceTable:
    if not path:
        return MaterialPriceTable()
    with open(path, "r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh) or {}
    return MaterialPriceTable.from_dict(data)


def _plan_or_exit(cfg: Config, length: float, width: float, depth: tuple[str, ...]) -> LayoutResult:
    try:
        layout = plan_layout(length, width, cfg.planner, _parse_depth_mix(depth))
    except InvalidInputError as exc:
        logger.error("%s", exc)
        raise SystemExit(1)
    errors = validate_layout(layout)
    for e in errors:
        logger.warning("Layout warning: %s", e)
    return layout


def _write_debug(cfg: Config, layout: LayoutResult, report: dict) -> None:
    if not cfg.debug_output_dir:
        return
    cfg.debug_output_dir.mkdir(parents=True, exist_ok=True)
    save_layout_json(layout, cfg.debug_output_dir / "layout.json")
    save_layout_geojson(layout, cfg.debug_output_dir / "layout.geojson")
    save_report(report, cfg.debug_output_dir / "estimate_report.json")
    logger.info("Debug outputs saved to %s", cfg.debug_output_dir)


def _echo_layout(layout: LayoutResult) -> None:
    dims = layout.dimensions
    click.echo(f"Slab {dims.length:g} x {dims.width:g} m  (clear span {dims.shortest_side:g} m)")
    click.echo(
        f"Joists: {layout.joist_count} x {layout.depth_class.label} @ {layout.spacing:.3f} m, "
        f"{layout.joist_length:g} m each (stock {layout.stock.stock_length:g} m "
        f"x{layout.stock.pieces_per_joist})"
    )
    click.echo(
        f"Vaults: {layout.vault_count} pieces in {len(layout.rows)} rows "
        f"({layout.adjustment_count} cut)"
    )
    click.echo(f"Beam waste: {layout.waste_percentage:.1f}%")
    for rec in layout.recommendations:
        click.echo(f"  * {rec}")


@click.group()
@click.option("--config", "-c", "config_path", default=None, help="YAML configuration file")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
@click.pass_context
def main(ctx: click.Context, config_path: Optional[str], verbose: bool) -> None:
    """Joist-and-vault slab takeoff and cost comparison."""
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)
    ctx.obj = Config.from_yaml(config_path) if config_path else Config.default()


@main.command()
@click.option("--length", "-l", type=float, required=True, help="Slab length (m)")
@click.option("--width", "-w", type=float, required=True, help="Slab width (m)")
@click.option("--depth", multiple=True, help="Custom depth distribution, e.g. P-20=5 (repeatable)")
@click.option("--debug", "debug_dir", default=None, help="Directory for debug outputs (layout.json, .geojson, report)")
@click.option("--json", "as_json", is_flag=True, help="Print the layout as JSON")
@click.pass_obj
def plan(
    cfg: Config,
    length: float,
    width: float,
    depth: tuple[str, ...],
    debug_dir: Optional[str],
    as_json: bool,
) -> None:
    """Plan joist and vault placement for a rectangular slab."""
    if debug_dir:
        cfg.debug_output_dir = Path(debug_dir)
    layout = _plan_or_exit(cfg, length, width, depth)
    _write_debug(cfg, layout, build_estimate_report(validate_layout(layout), layout.recommendations))
    if as_json:
        click.echo(json.dumps(layout.to_dict(), indent=2, ensure_ascii=False))
    else:
        _echo_layout(layout)


@main.command(name="compare")
@click.option("--length", "-l", type=float, required=True, help="Slab length (m)")
@click.option("--width", "-w", type=float, required=True, help="Slab width (m)")
@click.option("--depth", multiple=True, help="Custom depth distribution, e.g. P-20=5 (repeatable)")
@click.option("--prices", "prices_path", default=None, help="YAML price table")
@click.option("--workers", default=4, show_default=True, type=int, help="Crew size for the schedule estimate")
@click.option("--debug", "debug_dir", default=None, help="Directory for debug outputs")
@click.option("--queue", "queue_path", default=None, help="Queue the calculation record in this offline queue file")
@click.option("--project-id", type=int, default=None, help="Project id for the queued record")
@click.option("--json", "as_json", is_flag=True, help="Print the comparison as JSON")
@click.pass_obj
def compare_cmd(
    cfg: Config,
    length: float,
    width: float,
    depth: tuple[str, ...],
    prices_path: Optional[str],
    workers: int,
    debug_dir: Optional[str],
    queue_path: Optional[str],
    project_id: Optional[int],
    as_json: bool,
) -> None:
    """Compare a traditional slab with the joist-and-vault system."""
    if debug_dir:
        cfg.debug_output_dir = Path(debug_dir)
    if queue_path and project_id is None:
        raise click.UsageError("--project-id is required with --queue")

    layout = _plan_or_exit(cfg, length, width, depth)
    try:
        result = compare(layout, _load_prices(prices_path), LaborParams(workers=workers), cfg.comparison)
    except InvalidInputError as exc:
        logger.error("%s", exc)
        raise SystemExit(1)

    _write_debug(
        cfg, layout, build_estimate_report(validate_layout(layout), layout.recommendations, result)
    )
    if queue_path:
        record = build_calculation_record(project_id, layout, result)
        item = OfflineQueue(queue_path).add("calculation", "create", "/api/calculations", record)
        logger.info("Calculation queued as %s", item.id)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
        return
    trad, system, sav = result.traditional, result.system, result.savings
    click.echo(f"{'':<22}{'Traditional':>14}{'System':>14}")
    click.echo(f"{'Concrete (m³)':<22}{trad.concrete.volume_m3:>14.3f}{system.concrete.volume_m3:>14.3f}")
    click.echo(f"{'Cement (bags)':<22}{trad.concrete.cement_bags:>14d}{system.concrete.cement_bags:>14d}")
    click.echo(f"{'Weight (kg)':<22}{trad.weight_kg:>14.0f}{system.weight_kg:>14.0f}")
    click.echo(f"{'Cost':<22}{trad.total_cost:>14.2f}{system.total_cost:>14.2f}")
    click.echo(f"{'Duration (days)':<22}{trad.duration_days:>14d}{system.duration_days:>14d}")
    click.echo(
        f"Savings: concrete {sav.concrete_pct:.1f}%, cost {sav.cost_pct:.1f}%, "
        f"weight {sav.weight_pct:.1f}%, time {sav.time_pct:.1f}%"
    )
    if result.cost_capped:
        click.echo("  * System cost capped at the guaranteed-savings ceiling.")


@main.command()
@click.option("--length", "-l", type=float, required=True, help="Wall length (m)")
@click.option("--height", "-h", type=float, required=True, help="Wall height (m)")
@click.option("--type", "wall_type", default=WallType.LOAD_BEARING.value, show_default=True,
              type=click.Choice([t.value for t in WallType]), help="Wall usage")
@click.pass_obj
def wall(cfg: Config, length: float, height: float, wall_type: str) -> None:
    """Estimate structural panels and mortar for a wall."""
    try:
        result = plan_wall_panels(length, height, wall_type, cfg.wall)
    except InvalidInputError as exc:
        logger.error("%s", exc)
        raise SystemExit(1)
    click.echo(
        f"Wall {length:g} x {height:g} m ({result.wall_type.value}): {result.panel_count} panels "
        f"({result.cut_panel_count} cut), mortar {result.mortar_m3:.2f} m³, "
        f"waste {result.waste_percentage:.1f}%"
    )


@main.command()
@click.option("--project", "project_path", required=True, help="YAML project file with budget items")
@click.option("--json", "as_json", is_flag=True, help="Print the budget as JSON")
@click.pass_obj
def budget(cfg: Config, project_path: str, as_json: bool) -> None:
    """Build a client budget from a project file."""
    with open(project_path, "r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh) or {}

    project = ProjectInfo(
        client_name=str(data.get("client_name", "")),
        profit_margin=float(data.get("profit_margin", 20.0)),
        labor_cost_per_m2=float(data.get("labor_cost_per_m2", 0.0)),
    )
    prices = MaterialPriceTable.from_dict(data.get("prices", {}) or {})
    labor = LaborParams(workers=int(data.get("workers", 4)))

    lines = []
    try:
        for item in data.get("items", []):
            kind = item.get("type", "slab")
            description = str(item.get("description", ""))
            if kind == "slab":
                depth = item.get("depth")
                # "depth: P-20" is shorthand for a single-class distribution
                if isinstance(depth, (str, int)):
                    depth = {depth: 1}
                layout = plan_layout(item["length"], item["width"], cfg.planner, depth)
                result = compare(layout, prices, labor, cfg.comparison)
                lines.append(line_for_slab(result, cfg.budget, description))
            elif kind == "wall":
                panels = plan_wall_panels(
                    item["length"], item["height"], item.get("wall_type", "load-bearing"), cfg.wall
                )
                lines.append(line_for_wall(panels, cfg.budget, item.get("material_cost"), description))
            else:
                raise InvalidInputError(f"Unknown budget item type: {kind!r}")
        result_budget = build_budget(project, lines)
    except (InvalidInputError, KeyError) as exc:
        logger.error("Invalid project file %s: %s", project_path, exc)
        raise SystemExit(1)

    if as_json:
        click.echo(json.dumps(result_budget.to_dict(), indent=2, ensure_ascii=False))
    else:
        click.echo(format_budget_message(project, result_budget, cfg.budget.currency))


@main.command()
@click.option("--queue", "queue_path", required=True, help="Offline queue file")
@click.option("--base-url", default=None, help="Server base URL (defaults to config)")
@click.pass_obj
def sync(cfg: Config, queue_path: str, base_url: Optional[str]) -> None:
    """Replay queued records to the server once."""
    queue = OfflineQueue(queue_path)
    sender = HttpSender(base_url or cfg.sync.base_url, timeout=cfg.sync.timeout_sec)
    with SyncContext(queue, sender, retention_days=cfg.sync.synced_log_retention_days) as ctx:
        result = ctx.sync_pending()
    click.echo(f"Synced {result.success}, failed {result.failed}, pending {queue.count()}")
    if result.failed:
        raise SystemExit(1)


if __name__ == "__main__":
    main()
