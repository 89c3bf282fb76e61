"""
Unit tests for the cube module.
"""

import pytest
import pandas as pd
import numpy as np
import sys
import os
from itertools import product

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from cubeview.cube.schema import (
    CubeSchema, DimensionName, Axis, Measure, MeasureSpec, Level, Hierarchy
)
from cubeview.cube.facts import FactStore
from cubeview.cube.state import Cell, CubeState, DiceFilter, ValueFilter, parse_dice_filters
from cubeview.cube.actions import (
    DrillDownAction, DrillUpAction, PivotAction, SliceAction, ToggleDimensionAction,
    generate_candidate_actions
)
from cubeview.cube.engine import AggregationEngine, cells_to_frame, stable_seed
from cubeview.configs import (
    MEASURE_SPECS, PACKAGES, QUARTER_DATES, REGIONS, ROUTES,
    create_shipping_cube_schema, create_quarterly_cube_schema, create_shipping_fact_store
)


@pytest.fixture
def shipping_schema():
    return create_shipping_cube_schema()


@pytest.fixture
def quarterly_schema():
    return create_quarterly_cube_schema()


@pytest.fixture
def facts():
    return create_shipping_fact_store()


@pytest.fixture
def shipping_engine(shipping_schema, facts):
    return AggregationEngine(shipping_schema, facts)


@pytest.fixture
def quarterly_engine(quarterly_schema, facts):
    return AggregationEngine(quarterly_schema, facts)


class TestCubeSchema:
    def test_schema_creation(self, shipping_schema):
        assert shipping_schema.name == "ShippingCube"
        assert shipping_schema.dimension_names == ["source", "route", "time"]
        assert shipping_schema.measure_names == ["packages", "revenue", "growth"]

    def test_default_levels(self, shipping_schema):
        levels = shipping_schema.default_levels()
        assert levels == {
            DimensionName.SOURCE: 1,
            DimensionName.ROUTE: 1,
            DimensionName.TIME: 1,
        }
        assert shipping_schema.terminal_levels()[DimensionName.TIME] == 2

    def test_hierarchy_levels(self, shipping_schema):
        time = shipping_schema.hierarchy(DimensionName.TIME)
        assert [l.name for l in time.levels] == ["half", "quarter", "date"]
        assert time.get_level_by_name("quarter") == 1
        assert time.get_level_by_name("week") is None
        assert time.can_drill_down(1)
        assert not time.can_drill_down(2)
        assert time.can_drill_up(1)
        assert not time.can_drill_up(0)

    def test_values_at(self, shipping_schema):
        assert shipping_schema.values_at(DimensionName.SOURCE, 0) == (
            "Eastern Hemisphere", "Western Hemisphere"
        )
        assert shipping_schema.values_at(DimensionName.ROUTE, 1) == ("road", "rail", "sea", "air")
        assert len(shipping_schema.values_at(DimensionName.TIME, 2)) == 24

    def test_children_of(self, shipping_schema):
        assert shipping_schema.children_of(DimensionName.ROUTE, 0, "nonground") == ("sea", "air")
        assert shipping_schema.children_of(DimensionName.TIME, 1, "Q1") == QUARTER_DATES["Q1"]

    def test_children_of_terminal_passes_through(self, shipping_schema):
        assert shipping_schema.children_of(DimensionName.SOURCE, 1, "Asia") == ("Asia",)

    def test_children_of_unmapped_passes_through(self, shipping_schema):
        assert shipping_schema.children_of(DimensionName.SOURCE, 0, "Antarctica") == ("Antarctica",)

    def test_schema_is_immutable(self, shipping_schema):
        with pytest.raises(TypeError):
            shipping_schema.region_factors["Asia"] = 2.0
        level = shipping_schema.hierarchy(DimensionName.ROUTE).level(0)
        with pytest.raises(TypeError):
            level.aggregation_map["ground"] = ("air",)

    def test_round_trip_dict(self, shipping_schema):
        restored = CubeSchema.from_dict(shipping_schema.to_dict())
        assert restored.to_dict() == shipping_schema.to_dict()
        assert restored.measure_spec(Measure.REVENUE) == shipping_schema.measure_spec(Measure.REVENUE)


class TestHierarchyValidation:
    def test_child_missing_from_next_level(self):
        with pytest.raises(ValueError):
            Hierarchy(DimensionName.SOURCE, (
                Level("continent", ("Europe",), {"Europe": ("France", "Spain")}),
                Level("country", ("France",)),
            ))

    def test_terminal_level_with_map(self):
        with pytest.raises(ValueError):
            Hierarchy(DimensionName.SOURCE, (
                Level("country", ("France",), {"France": ("Paris",)}),
            ))

    def test_value_maps_to_itself(self):
        with pytest.raises(ValueError):
            Hierarchy(DimensionName.TIME, (
                Level("year", ("1999",), {"1999": ("1999",)}),
                Level("year_copy", ("1999",)),
            ))

    def test_duplicate_values(self):
        with pytest.raises(ValueError):
            Level("quarter", ("Q1", "Q1"))

    def test_default_level_out_of_range(self):
        with pytest.raises(ValueError):
            Hierarchy(DimensionName.ROUTE, (Level("method", ROUTES),), default_level=1)

    def test_schema_requires_all_dimensions(self):
        with pytest.raises(ValueError):
            CubeSchema(
                name="Partial",
                hierarchies={
                    DimensionName.SOURCE: Hierarchy(DimensionName.SOURCE, (Level("region", REGIONS),)),
                },
                measures=MEASURE_SPECS,
            )


class TestMeasureSpec:
    def test_parse_falls_back_to_packages(self):
        assert Measure.parse("revenue") == Measure.REVENUE
        assert Measure.parse("volume") == Measure.PACKAGES

    def test_rounding(self):
        assert MEASURE_SPECS[Measure.PACKAGES].round(12.5) == 13
        assert MEASURE_SPECS[Measure.REVENUE].round(1234) == 1230
        assert MEASURE_SPECS[Measure.REVENUE].round(1235) == 1240
        assert MEASURE_SPECS[Measure.GROWTH].round(12.36) == pytest.approx(12.4)
        assert MEASURE_SPECS[Measure.GROWTH].round(12.34) == pytest.approx(12.3)

    def test_clamp(self):
        spec = MeasureSpec(Measure.GROWTH, base=15, min_value=-5, max_value=40)
        assert spec.clamp(-12) == -5
        assert spec.clamp(55) == 40
        assert spec.clamp(10) == 10


class TestFactStore:
    def test_lookup(self, facts):
        assert facts.lookup("Africa", "Q1", Measure.PACKAGES) == 100.0
        assert facts.lookup("Europe", "Q4", Measure.REVENUE) == 10695.0
        assert facts.lookup("Asia", "Q2", Measure.GROWTH) == 23.0

    def test_lookup_unknown_category(self, facts):
        assert facts.lookup("Antarctica", "Q1", Measure.PACKAGES) is None
        assert facts.lookup("Africa", "Feb-17-99", Measure.PACKAGES) is None

    def test_missing_and_non_positive_facts(self):
        store = FactStore(["A"], ["T1", "T2", "T3"], {Measure.PACKAGES: [[None, 0, 7]]})
        assert store.lookup("A", "T1", Measure.PACKAGES) is None
        assert store.lookup("A", "T2", Measure.PACKAGES) is None
        assert store.lookup("A", "T3", Measure.PACKAGES) == 7.0
        assert store.lookup("A", "T3", Measure.REVENUE) is None

    def test_shape_mismatch(self):
        with pytest.raises(ValueError):
            FactStore(["A", "B"], ["T1"], {Measure.PACKAGES: [[1], [2], [3]]})

    def test_grids_are_read_only(self, facts):
        grid = facts.grid(Measure.PACKAGES)
        assert grid.shape == (6, 4)
        assert not grid.flags.writeable

    def test_frame_round_trip(self, facts):
        df = facts.to_frame()
        assert len(df) == 24
        assert set(df.columns) == {"source", "time", "packages", "revenue", "growth"}

        restored = FactStore.from_frame(df, routes=ROUTES)
        assert restored.sources == facts.sources
        assert restored.times == facts.times
        np.testing.assert_array_equal(restored.grid(Measure.PACKAGES), np.array(PACKAGES))


class TestSynthesis:
    def test_stable_seed(self):
        assert stable_seed("") == 0.0
        assert stable_seed("a") == 0.097
        assert stable_seed("ab") == 0.105
        assert stable_seed("x-y-z") == 0.913

    def test_stable_seed_wraps_to_32_bits(self):
        seed = stable_seed("North America-nonground-2nd half" * 4)
        assert 0 <= seed < 1

    def test_synthesize_without_factors(self, shipping_engine):
        assert shipping_engine.synthesize("x", "y", "z", Measure.PACKAGES) == 250
        assert shipping_engine.synthesize("x", "y", "z", Measure.REVENUE) == 4990
        assert shipping_engine.synthesize("x", "y", "z", Measure.GROWTH) == pytest.approx(18.7)

    def test_synthesize_is_deterministic(self, shipping_schema, facts):
        first = AggregationEngine(shipping_schema, facts)
        second = AggregationEngine(shipping_schema, facts)
        for measure in Measure:
            assert (first.synthesize("Africa", "road", "Feb-17-99", measure)
                    == second.synthesize("Africa", "road", "Feb-17-99", measure))

    def test_synthesize_within_measure_range(self, shipping_schema, shipping_engine):
        def all_values(dim):
            hierarchy = shipping_schema.hierarchy(dim)
            return [v for level in hierarchy.levels for v in level.values]

        sources = all_values(DimensionName.SOURCE)
        routes = all_values(DimensionName.ROUTE)
        times = all_values(DimensionName.TIME)
        for measure in Measure:
            spec = shipping_schema.measure_spec(measure)
            for s, r, t in product(sources, routes, times):
                value = shipping_engine.synthesize(s, r, t, measure)
                assert spec.min_value <= value <= spec.max_value


class TestAggregationEngine:
    def test_fact_at_base_grain(self, quarterly_engine):
        assert quarterly_engine.value_at("Africa", "ground", "Q1") == 100.0
        assert quarterly_engine.value_at("Africa", "sea", "Q1") == 100.0

    def test_rollup_of_facts(self, quarterly_engine):
        levels = {DimensionName.SOURCE: 0, DimensionName.ROUTE: 0, DimensionName.TIME: 0}
        assert quarterly_engine.value_at("Africa", "ground", "1st half", levels=levels) == 315.0
        assert quarterly_engine.value_at("Europe", "air", "2nd half", levels=levels) == 464.0 + 690.0

    def test_shipping_cube_synthesizes_below_quarters(self, shipping_engine):
        dates = QUARTER_DATES["Q1"]
        expected = sum(
            shipping_engine.synthesize("Africa", "road", d, Measure.PACKAGES) for d in dates
        )
        assert shipping_engine.value_at("Africa", "road", "Q1") == expected

    @pytest.mark.parametrize("measure", [Measure.PACKAGES, Measure.REVENUE])
    def test_parent_equals_sum_of_children(self, shipping_schema, facts, measure):
        engine = AggregationEngine(shipping_schema, facts)
        reference = AggregationEngine(shipping_schema, facts)
        dims = list(DimensionName)
        depths = [shipping_schema.hierarchy(d).depth for d in dims]
        terminal = tuple(d - 1 for d in depths)

        for level_key in product(*(range(d) for d in depths)):
            if level_key == terminal:
                continue
            next_key = tuple(
                level + 1 if level < last else level
                for level, last in zip(level_key, terminal)
            )
            levels = dict(zip(dims, level_key))
            next_levels = dict(zip(dims, next_key))
            for triple in product(*(shipping_schema.values_at(d, l) for d, l in levels.items())):
                expansions = [
                    shipping_schema.children_of(d, levels[d], v) if levels[d] < last else (v,)
                    for d, v, last in zip(dims, triple, terminal)
                ]
                total = sum(
                    reference.value_at(*child, measure, levels=next_levels)
                    for child in product(*expansions)
                )
                assert engine.value_at(*triple, measure, levels=levels) == total

    def test_growth_rollup(self, shipping_schema, shipping_engine):
        quarter = {DimensionName.SOURCE: 1, DimensionName.ROUTE: 1, DimensionName.TIME: 1}
        date = {DimensionName.SOURCE: 1, DimensionName.ROUTE: 1, DimensionName.TIME: 2}
        children = shipping_schema.children_of(DimensionName.TIME, 1, "Q3")
        total = sum(
            shipping_engine.value_at("Asia", "sea", d, Measure.GROWTH, levels=date)
            for d in children
        )
        assert shipping_engine.value_at("Asia", "sea", "Q3", Measure.GROWTH,
                                        levels=quarter) == pytest.approx(total)

    def test_cache(self, shipping_engine):
        shipping_engine.value_at("Asia", "air", "Q2")
        assert shipping_engine._cache
        shipping_engine.clear_cache()
        assert not shipping_engine._cache

    def test_cache_skips_unknown_categories(self, shipping_engine):
        value = shipping_engine.value_at("Atlantis", "air", "Q2")
        assert value == shipping_engine.value_at("Atlantis", "air", "Q2")
        assert not any("Atlantis" in key for key in shipping_engine._cache)
        shipping_engine.value_at("Asia", "air", "Q2")
        assert any("Asia" in key for key in shipping_engine._cache)


class TestCubeState:
    def test_state_creation(self, shipping_schema):
        state = CubeState(schema=shipping_schema)
        assert state.levels == shipping_schema.default_levels()
        assert state.measure == Measure.PACKAGES
        assert state.visible_dimensions == list(DimensionName)
        assert state.dimension_on(Axis.Z) == DimensionName.TIME

    def test_describe_levels(self, shipping_schema):
        state = CubeState(schema=shipping_schema)
        assert state.describe_levels() == (
            "source: region (2/2), route: method (2/2), time: quarter (2/3)"
        )

    def test_hierarchy_levels(self, shipping_schema):
        state = CubeState(schema=shipping_schema)
        info = state.hierarchy_levels()
        assert info["time"] == {"current_level": 1, "level_name": "quarter", "total_levels": 3}

    def test_is_visible_with_dice(self, shipping_schema):
        state = CubeState(schema=shipping_schema)
        state.dice_filters = [DiceFilter(DimensionName.SOURCE, ("Asia",))]
        asia = Cell("Asia", "road", "Q1", 1, 0, 0, 10)
        africa = Cell("Africa", "road", "Q1", 0, 0, 0, 10)
        assert state.is_visible(asia)
        assert not state.is_visible(africa)

    def test_is_visible_with_value_filter(self, shipping_schema):
        state = CubeState(schema=shipping_schema)
        state.value_filter = ValueFilter(min_value=50, max_value=100)
        assert state.is_visible(Cell("Asia", "road", "Q1", 1, 0, 0, 75))
        assert not state.is_visible(Cell("Asia", "road", "Q1", 1, 0, 0, 120))

    def test_parse_dice_filters(self):
        accepted, rejected = parse_dice_filters([
            {"dimension": "source", "values": ["Asia", "Europe"]},
            {"dimension": "planet", "values": ["Mars"]},
            {"dimension": "route", "values": "air"},
            DiceFilter(DimensionName.TIME, ("Q1",)),
        ])
        assert [f.dimension for f in accepted] == [DimensionName.SOURCE, DimensionName.TIME]
        assert accepted[0].values == ("Asia", "Europe")
        assert len(rejected) == 2

    def test_cell_round_trip(self):
        cell = Cell("Asia", "road", "Q1", 1, 0, 0, 310.0, visible=False)
        assert Cell.from_dict(cell.to_dict()) == cell


class TestOLAPActions:
    def test_drill_down_lockstep(self, shipping_schema):
        state = CubeState(schema=shipping_schema)
        action = DrillDownAction()
        assert action.is_applicable(state)
        action.apply(state)
        assert action.changed_dimensions == [DimensionName.TIME]
        assert state.levels[DimensionName.SOURCE] == 1
        assert state.levels[DimensionName.TIME] == 2
        assert not DrillDownAction().is_applicable(state)

    def test_drill_up_lockstep(self, shipping_schema):
        state = CubeState(schema=shipping_schema)
        action = DrillUpAction()
        action.apply(state)
        assert action.changed_dimensions == list(DimensionName)
        assert set(state.levels.values()) == {0}
        assert not DrillUpAction().is_applicable(state)

    def test_pivot(self, shipping_schema):
        state = CubeState(schema=shipping_schema)
        PivotAction(Axis.X, Axis.Z).apply(state)
        assert state.dimension_on(Axis.X) == DimensionName.TIME
        assert state.dimension_on(Axis.Z) == DimensionName.SOURCE
        assert not PivotAction(Axis.Y, Axis.Y).is_applicable(state)

    def test_slice_replaces_position(self, shipping_schema):
        state = CubeState(schema=shipping_schema)
        SliceAction(Axis.Y, 1).apply(state)
        SliceAction(Axis.Y, 3).apply(state)
        assert state.slice_by_axis == {Axis.Y: 3}

    def test_toggle_keeps_one_dimension(self, shipping_schema):
        state = CubeState(schema=shipping_schema)
        ToggleDimensionAction(DimensionName.SOURCE).apply(state)
        ToggleDimensionAction(DimensionName.ROUTE).apply(state)
        assert state.visible_dimensions == [DimensionName.TIME]
        assert not ToggleDimensionAction(DimensionName.TIME).is_applicable(state)
        assert ToggleDimensionAction(DimensionName.SOURCE).is_applicable(state)

    def test_generate_candidates(self, shipping_schema):
        state = CubeState(schema=shipping_schema)
        candidates = generate_candidate_actions(state)
        types = [a.action_type.value for a in candidates]
        assert types.count("drill_down") == 1
        assert types.count("drill_up") == 1
        assert types.count("pivot") == 3
        assert "reset_dice" not in types


class TestProjection:
    def test_cell_count_and_order(self, shipping_schema, shipping_engine):
        cells = shipping_engine.project(CubeState(schema=shipping_schema))
        assert len(cells) == 6 * 4 * 4
        assert (cells[0].source_value, cells[0].route_value, cells[0].time_value) == (
            "Africa", "road", "Q1"
        )
        assert cells[1].time_value == "Q2"
        assert cells[4].route_value == "rail"
        assert cells[16].source_value == "Asia"
        assert cells[16].coordinates == (1, 0, 0)
        assert all(c.visible for c in cells)

    def test_projection_uses_active_measure(self, quarterly_schema, quarterly_engine):
        state = CubeState(schema=quarterly_schema, measure=Measure.REVENUE)
        cells = quarterly_engine.project(state)
        assert cells[0].value == 1550.0

    def test_cells_to_frame(self, shipping_schema, shipping_engine):
        df = cells_to_frame(shipping_engine.project(CubeState(schema=shipping_schema)))
        assert isinstance(df, pd.DataFrame)
        assert df.shape == (96, 8)
        assert df.iloc[0]["source"] == "Africa"
