"""Tests for client budget assembly."""

import pytest

from losaplan.config import BudgetConfig
from losaplan.estimate.budget import (
    BudgetLine,
    ProjectInfo,
    build_budget,
    format_budget_message,
    line_for_slab,
    line_for_wall,
)
from losaplan.estimate.comparator import compare
from losaplan.estimate.walls import plan_wall_panels
from losaplan.layout.planner import plan_layout
from losaplan.takeoff.model import MaterialPriceTable
from losaplan.validate.checks import InvalidInputError


def _lines():
    return [
        BudgetLine("slab", 20.0, 1000.0, "Roof"),
        BudgetLine("wall", 10.0, 500.0),
    ]


class TestBuildBudget:
    def test_totals(self):
        budget = build_budget(ProjectInfo("Ana", profit_margin=20.0, labor_cost_per_m2=100.0), _lines())
        assert budget.total_area == pytest.approx(30.0)
        assert budget.material_cost == pytest.approx(1500.0)
        assert budget.labor_cost == pytest.approx(3000.0)
        assert budget.subtotal == pytest.approx(4500.0)
        assert budget.profit == pytest.approx(900.0)
        assert budget.total == pytest.approx(5400.0)

    def test_empty_project(self):
        budget = build_budget(ProjectInfo("Ana"), [])
        assert budget.total == 0.0

    def test_negative_margin_rejected(self):
        with pytest.raises(InvalidInputError):
            build_budget(ProjectInfo("Ana", profit_margin=-5.0), _lines())

    def test_negative_labor_rejected(self):
        with pytest.raises(InvalidInputError):
            build_budget(ProjectInfo("Ana", labor_cost_per_m2=-1.0), _lines())

    def test_message(self):
        project = ProjectInfo("Ana", profit_margin=20.0, labor_cost_per_m2=100.0)
        msg = format_budget_message(project, build_budget(project, _lines()))
        assert msg.startswith("Budget for Ana")
        assert "Total: $5,400.00 MXN" in msg
        assert "- Slab Roof (20.00 m²): $1,000.00" in msg
        assert "Profit (20%): $900.00" in msg


class TestBudgetLines:
    def test_slab_line_uses_system_cost(self):
        prices = MaterialPriceTable(cement=100.0)
        result = compare(plan_layout(5.0, 5.0), prices)
        line = line_for_slab(result)
        assert line.kind == "slab"
        assert line.material_cost == pytest.approx(result.system.total_cost)

    def test_unpriced_slab_falls_back_to_rate(self):
        result = compare(plan_layout(5.0, 5.0))
        assert line_for_slab(result).material_cost == pytest.approx(25.0 * 450.0)
        cfg = BudgetConfig(slab_rate_per_m2=500.0)
        assert line_for_slab(result, cfg).material_cost == pytest.approx(12500.0)

    def test_wall_line_default_rate(self):
        wall = plan_wall_panels(6.0, 2.44)
        assert line_for_wall(wall).material_cost == pytest.approx(14.64 * 380.0)

    def test_wall_line_explicit_cost(self):
        wall = plan_wall_panels(6.0, 2.44)
        assert line_for_wall(wall, material_cost=999.0).material_cost == 999.0

    def test_to_dict(self):
        data = build_budget(ProjectInfo("Ana"), _lines()).to_dict()
        assert data["total"] == pytest.approx(1800.0)
        assert [ln["kind"] for ln in data["lines"]] == ["slab", "wall"]
