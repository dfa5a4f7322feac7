"""Tests for the layout planner and post-processing."""

import json

import pytest

from losaplan.config import PlannerConfig
from losaplan.layout.planner import (
    beam_stock_usage,
    count_joists,
    depth_class_counts,
    plan_layout,
    select_depth_class,
    tile_row,
    waste_percentage,
)
from losaplan.layout.postprocess import (
    check_joist_clearance,
    check_overlaps,
    joist_lines,
    save_layout_geojson,
    save_layout_json,
    vault_polygons,
)
from losaplan.takeoff.model import DepthClass
from losaplan.validate.checks import (
    DegenerateGeometryError,
    InvalidDimensionsError,
    InvalidInputError,
)


class TestDepthClass:
    @pytest.mark.parametrize(
        "span, expected",
        [
            (2.5, DepthClass.P15),
            (3.0, DepthClass.P15),
            (4.5, DepthClass.P20),
            (6.0, DepthClass.P25),
            (4.0, DepthClass.P15),
            (4.01, DepthClass.P20),
            (5.0, DepthClass.P20),
            (5.5, DepthClass.P25),
            (7.0, DepthClass.P25),
        ],
    )
    def test_from_span(self, span, expected):
        assert DepthClass.from_span(span) == expected

    def test_from_str_variants(self):
        assert DepthClass.from_str("P-20") == DepthClass.P20
        assert DepthClass.from_str("p25") == DepthClass.P25
        assert DepthClass.from_str(15) == DepthClass.P15
        assert DepthClass.from_str(DepthClass.P20) == DepthClass.P20

    def test_from_str_unknown(self):
        with pytest.raises(ValueError):
            DepthClass.from_str("P-30")

    @pytest.mark.parametrize("value", [-15, "-15", "P--20", "15-", "P-2-0"])
    def test_from_str_only_strips_prefix(self, value):
        with pytest.raises(ValueError, match="Unknown depth class"):
            DepthClass.from_str(value)

    def test_label_and_depth(self):
        assert DepthClass.P20.label == "P-20"
        assert DepthClass.P25.depth_m == pytest.approx(0.25)


class TestSelectDepthClass:
    def test_no_distribution_uses_span(self):
        assert select_depth_class(4.5) == DepthClass.P20

    def test_dominant_class_wins(self):
        assert select_depth_class(3.0, {"P-20": 5, "P-15": 3}) == DepthClass.P20

    def test_tie_goes_to_deeper_class(self):
        assert select_depth_class(3.0, {"P-15": 2, "P-25": 2}) == DepthClass.P25

    def test_all_zero_falls_back_to_span(self):
        assert select_depth_class(5.5, {"P-15": 0, "P-20": 0}) == DepthClass.P25

    def test_unknown_class_rejected(self):
        with pytest.raises(InvalidInputError):
            select_depth_class(4.0, {"P-30": 1})

    def test_negative_count_rejected(self):
        with pytest.raises(InvalidInputError):
            select_depth_class(4.0, {"P-15": -1})

    def test_non_mapping_rejected(self):
        with pytest.raises(InvalidInputError, match="Depth distribution"):
            select_depth_class(4.0, "P-20")
        with pytest.raises(InvalidInputError):
            select_depth_class(4.0, ["P-20"])

    def test_non_integer_count_rejected(self):
        with pytest.raises(InvalidInputError):
            select_depth_class(4.0, {"P-20": "3"})

    def test_aliases_merge_into_one_class(self):
        assert depth_class_counts({"P-20": 2, "20": 3, "p15": 1}) == {
            DepthClass.P20: 5,
            DepthClass.P15: 1,
        }
        assert depth_class_counts(None) == {}


class TestBuildingBlocks:
    def test_count_joists(self):
        assert count_joists(5.7, 0.70) == 8
        assert count_joists(4.7, 0.70) == 6
        assert count_joists(0.5, 0.70) == 0
        assert count_joists(1.4, 0.70) == 2

    def test_tile_row_with_adjustment(self):
        pieces, gap = tile_row(3.7, 1.22)
        assert [p.is_adjustment for p in pieces] == [False, False, False, True]
        assert pieces[-1].width == pytest.approx(0.04)
        assert gap == 0.0

    def test_tile_row_exact_multiple(self):
        pieces, gap = tile_row(2.44, 1.22)
        assert len(pieces) == 2
        assert not any(p.is_adjustment for p in pieces)
        assert gap == pytest.approx(0.0)

    def test_tile_row_remainder_below_tolerance_is_gap(self):
        pieces, gap = tile_row(2.445, 1.22)
        assert len(pieces) == 2
        assert gap == pytest.approx(0.005)

    def test_tile_row_shorter_than_one_piece(self):
        pieces, gap = tile_row(0.5, 1.22)
        assert len(pieces) == 1
        assert pieces[0].is_adjustment
        assert pieces[0].width == pytest.approx(0.5)

    def test_stock_shortest_adequate(self):
        stock = beam_stock_usage(3.5)
        assert stock.stock_length == 4.0
        assert stock.pieces_per_joist == 1
        assert stock.splices == 0

    def test_stock_spliced_beyond_longest(self):
        stock = beam_stock_usage(6.5)
        assert stock.stock_length == 6.0
        assert stock.pieces_per_joist == 2
        assert stock.splices == 1
        assert stock.supplied_per_joist == pytest.approx(12.0)

    def test_stock_three_pieces(self):
        # 2 pieces cover 11.7 m with one 0.30 m lap
        assert beam_stock_usage(11.7).pieces_per_joist == 2
        assert beam_stock_usage(11.8).pieces_per_joist == 3

    def test_waste_percentage(self):
        stock = beam_stock_usage(6.5)
        assert waste_percentage(stock, 6.5, 4) == pytest.approx(45.8333, rel=1e-4)
        assert waste_percentage(stock, 6.5, 0) == 0.0


class TestPlanLayout:
    def test_six_by_four(self):
        layout = plan_layout(6.0, 4.0)
        assert layout.depth_class == DepthClass.P15
        assert layout.usable_span == pytest.approx(5.7)
        assert layout.available_length == pytest.approx(3.7)
        assert layout.joist_count == 8
        assert layout.spacing == pytest.approx(5.7 / 9)
        assert len(layout.rows) == 9
        assert layout.vault_count == 36
        assert layout.adjustment_count == 9
        assert layout.stock.stock_length == 4.0
        assert layout.waste_percentage == pytest.approx(0.0)

    def test_five_by_five(self):
        layout = plan_layout(5.0, 5.0)
        assert layout.depth_class == DepthClass.P20
        assert layout.joist_count == 6
        assert layout.vault_count == 28
        assert layout.adjustment_count == 7
        for row in layout.rows:
            assert row.full_count == 3
            assert row.pieces[-1].width == pytest.approx(1.04)

    def test_joists_strictly_inside_chain(self):
        layout = plan_layout(6.0, 4.0)
        lo = layout.chain_width
        hi = layout.dimensions.longest_side - layout.chain_width
        for joist in layout.joists:
            assert lo < joist.position < hi
        assert layout.joists[0].position == pytest.approx(0.15 + 5.7 / 9)

    def test_spacing_never_exceeds_axis_spacing(self):
        for length, width in [(6, 4), (5, 5), (8.3, 3.1), (12, 6.5), (1.2, 1.0)]:
            layout = plan_layout(length, width)
            assert layout.spacing <= PlannerConfig().axis_spacing + 1e-9

    def test_rows_tile_usable_span(self):
        layout = plan_layout(6.0, 4.0)
        assert sum(r.bay_width for r in layout.rows) == pytest.approx(layout.usable_span)
        assert len(layout.rows) == layout.joist_count + 1

    def test_single_depth_class_for_all_joists(self):
        layout = plan_layout(9.0, 5.5)
        assert {j.depth_class for j in layout.joists} == {DepthClass.P25}

    def test_joist_length_is_clear_span(self):
        layout = plan_layout(4.0, 6.0)
        assert layout.joist_length == pytest.approx(4.0)
        assert all(j.length == pytest.approx(4.0) for j in layout.joists)

    def test_orientation_independent(self):
        a = plan_layout(6.0, 4.0)
        b = plan_layout(4.0, 6.0)
        assert a.joist_count == b.joist_count
        assert a.vault_count == b.vault_count

    def test_deterministic(self):
        assert plan_layout(7.3, 4.6) == plan_layout(7.3, 4.6)
        assert plan_layout(6.0, 4.0, depth_distribution={"P-20": 5}) == plan_layout(
            6.0, 4.0, depth_distribution={"P-20": 5}
        )

    def test_long_span_splices_and_advises(self):
        layout = plan_layout(8.0, 6.5)
        assert layout.stock.pieces_per_joist == 2
        assert layout.waste_percentage == pytest.approx(45.8333, rel=1e-4)
        recs = " ".join(layout.recommendations)
        assert "Span over 6 m" in recs
        assert "beam waste" in recs

    def test_short_span_advisory(self):
        layout = plan_layout(4.0, 2.5)
        assert any("Span under 3 m" in r for r in layout.recommendations)

    def test_cut_pieces_advisory(self):
        layout = plan_layout(6.0, 4.0)
        assert any("9 vault piece(s)" in r for r in layout.recommendations)

    def test_no_joist_fits(self):
        layout = plan_layout(0.8, 0.8)
        assert layout.joist_count == 0
        assert len(layout.rows) == 1
        assert layout.waste_percentage == 0.0
        assert any("No joist fits" in r for r in layout.recommendations)

    def test_mixed_distribution_advisory(self):
        layout = plan_layout(6.0, 4.0, depth_distribution={"P-20": 5, "P-15": 3})
        assert layout.depth_class == DepthClass.P20
        assert any("Mixed depth distribution" in r for r in layout.recommendations)

    def test_aliases_of_one_class_are_not_mixed(self):
        layout = plan_layout(6.0, 4.0, depth_distribution={"P-20": 2, "20": 3})
        assert layout.depth_class == DepthClass.P20
        assert not any("Mixed depth distribution" in r for r in layout.recommendations)

    def test_zero_count_class_is_not_mixed(self):
        layout = plan_layout(6.0, 4.0, depth_distribution={"P-20": 4, "P-25": 0})
        assert not any("Mixed depth distribution" in r for r in layout.recommendations)

    def test_custom_config(self):
        layout = plan_layout(6.0, 4.0, PlannerConfig(axis_spacing=0.60))
        assert layout.joist_count == 9

    @pytest.mark.parametrize(
        "length, width",
        [(0, 4), (-1, 4), (6, 0), (float("nan"), 4), (float("inf"), 4), ("6", 4), (True, 4)],
    )
    def test_invalid_dimensions(self, length, width):
        with pytest.raises(InvalidDimensionsError, match="Invalid dimensions"):
            plan_layout(length, width)

    @pytest.mark.parametrize("length, width", [(0.3, 5.0), (0.2, 0.2), (5.0, 0.25)])
    def test_degenerate_geometry(self, length, width):
        with pytest.raises(DegenerateGeometryError):
            plan_layout(length, width)

    def test_bad_option_rejected(self):
        with pytest.raises(InvalidInputError):
            plan_layout(6.0, 4.0, PlannerConfig(axis_spacing=0.0))

    def test_to_dict_is_json_serialisable(self):
        data = plan_layout(6.0, 4.0).to_dict()
        assert json.loads(json.dumps(data))["joist_count"] == 8
        assert data["depth_class"] == "P-15"


class TestPostprocess:
    def test_geometry_counts(self):
        layout = plan_layout(6.0, 4.0)
        assert len(joist_lines(layout)) == 8
        assert len(vault_polygons(layout)) == 36

    def test_no_overlaps_or_crossings(self):
        layout = plan_layout(6.0, 4.0)
        polys = vault_polygons(layout)
        assert check_overlaps(polys) == []
        assert check_joist_clearance(joist_lines(layout), polys) == []

    def test_overlap_detected(self):
        from shapely.geometry import box

        polys = {"a": box(0, 0, 1, 1), "b": box(0.5, 0.5, 1.5, 1.5), "c": box(1, 0, 2, 0.4)}
        issues = check_overlaps(polys)
        assert len(issues) == 1
        assert "'a'" in issues[0] and "'b'" in issues[0]

    def test_crossing_detected(self):
        from shapely.geometry import LineString, box

        issues = check_joist_clearance(
            {"joist_0": LineString([(0.5, 0), (0.5, 2)])}, {"p": box(0, 0, 1, 1)}
        )
        assert issues == ["Joist 'joist_0' crosses vault piece 'p'"]

    def test_save_json(self, tmp_path):
        out = tmp_path / "layout.json"
        save_layout_json(plan_layout(5.0, 5.0), out)
        data = json.loads(out.read_text(encoding="utf-8"))
        assert data["vault_count"] == 28

    def test_save_geojson(self, tmp_path):
        out = tmp_path / "layout.geojson"
        save_layout_geojson(plan_layout(6.0, 4.0), out)
        fc = json.loads(out.read_text(encoding="utf-8"))
        assert fc["type"] == "FeatureCollection"
        kinds = [f["properties"]["kind"] for f in fc["features"]]
        assert kinds.count("slab") == 1
        assert kinds.count("joist") == 8
        assert kinds.count("vault") == 36
        cut = [f for f in fc["features"] if f["properties"].get("is_adjustment")]
        assert len(cut) == 9
