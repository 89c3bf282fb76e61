"""
Aggregation engine: computes measure values at any hierarchy level.

This module handles all numerical computations including:
- Recursive roll-up of a (source, route, time) triple down to base facts
- Deterministic synthesis of values for base cells without a fact
- Projection of a cube state into cells
"""

import logging
from itertools import product
from typing import Dict, List, Mapping, Optional, Tuple

import pandas as pd

from cubeview.cube.facts import FactStore
from cubeview.cube.schema import CubeSchema, DimensionName, Measure
from cubeview.cube.state import Cell, CubeState

logger = logging.getLogger(__name__)

LevelKey = Tuple[int, int, int]


def stable_seed(text: str) -> float:
    """
    Normalize a string to [0, 1) with a signed 32-bit rolling hash
    (h = h*31 + code unit over UTF-16 code units), |h| mod 1000 / 1000.
    """
    h = 0
    data = text.encode("utf-16-le")
    for i in range(0, len(data), 2):
        h = (h * 31 + (data[i] | (data[i + 1] << 8))) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return (abs(h) % 1000) / 1000


class AggregationEngine:
    """
    Computes values for arbitrary (source, route, time) triples.

    Values are a pure function of the triple, the measure and the level of
    each dimension, so results are memoized.
    """

    def __init__(self, schema: CubeSchema, facts: FactStore):
        """
        Args:
            schema: Cube schema (hierarchies, measure specs, factor tables)
            facts: Base facts over source x time
        """
        self.schema = schema
        self.facts = facts
        self._terminal: LevelKey = tuple(
            schema.hierarchy(dim).terminal_level for dim in DimensionName
        )
        self._cache: Dict[Tuple[str, str, str, Measure, LevelKey], float] = {}
        self._members = {
            (dim, idx): frozenset(level.values)
            for dim in DimensionName
            for idx, level in enumerate(schema.hierarchy(dim).levels)
        }

    def value_at(self, source: str, route: str, time: str,
                 measure: Measure = Measure.PACKAGES,
                 levels: Optional[Mapping[DimensionName, int]] = None) -> float:
        """
        Value of a triple whose categories belong to the given levels.

        Args:
            source, route, time: Category on each dimension
            measure: Measure to compute; unknown names fall back to packages
            levels: Dimension -> level the category belongs to.
                Defaults to the schema's default levels.
        """
        measure = Measure.parse(measure)
        if levels is None:
            levels = self.schema.default_levels()
        level_key = tuple(levels[dim] for dim in DimensionName)
        return self._value(source, route, time, measure, level_key)

    def _value(self, source: str, route: str, time: str,
               measure: Measure, level_key: LevelKey) -> float:
        key = (source, route, time, measure, level_key)
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        if level_key == self._terminal:
            value = self.base_value(source, route, time, measure)
        else:
            expansions = []
            next_key = []
            for dim, category, level in zip(DimensionName, (source, route, time), level_key):
                hierarchy = self.schema.hierarchy(dim)
                if hierarchy.can_drill_down(level):
                    expansions.append(hierarchy.level(level).children(category))
                    next_key.append(level + 1)
                else:
                    expansions.append((category,))
                    next_key.append(level)
            next_key = tuple(next_key)
            value = sum(
                self._value(s, r, t, measure, next_key)
                for s, r, t in product(*expansions)
            )

        # Memoize only categories that belong to the queried levels
        if all((dim, level) in self._members and category in self._members[(dim, level)]
               for dim, category, level in zip(DimensionName, (source, route, time), level_key)):
            self._cache[key] = value
        return value

    def base_value(self, source: str, route: str, time: str, measure: Measure) -> float:
        """Stored fact for a base cell, synthesized when absent."""
        fact = self.facts.lookup(source, time, measure)
        if fact is not None:
            return fact
        return self.synthesize(source, route, time, measure)

    def synthesize(self, source: str, route: str, time: str,
                   measure: Measure = Measure.PACKAGES) -> float:
        """
        Deterministic pseudo-value for a triple without a fact.

        value = base * region * route * time * (0.7 + 0.6 * seed), clamped to
        the measure range and rounded per measure.
        """
        spec = self.schema.measure_spec(Measure.parse(measure))
        region_factor = self.schema.region_factors.get(source, 1.0)
        route_factor = self.schema.route_factors.get(route, 1.0)
        time_factor = self.schema.time_factors.get(time, 1.0)
        random_factor = 0.7 + stable_seed(f"{source}-{route}-{time}") * 0.6

        value = spec.base * region_factor * route_factor * time_factor * random_factor
        return spec.round(spec.clamp(value))

    def project(self, state: CubeState) -> List[Cell]:
        """
        Cells for every combination of current-level values
        (source outer, route middle, time inner) with visibility applied.
        """
        sources = state.current_values(DimensionName.SOURCE)
        routes = state.current_values(DimensionName.ROUTE)
        times = state.current_values(DimensionName.TIME)
        level_key = tuple(state.levels[dim] for dim in DimensionName)

        cells = []
        for si, source in enumerate(sources):
            for ri, route in enumerate(routes):
                for ti, time in enumerate(times):
                    cell = Cell(
                        source_value=source,
                        route_value=route,
                        time_value=time,
                        source_index=si,
                        route_index=ri,
                        time_index=ti,
                        value=self._value(source, route, time, state.measure, level_key),
                    )
                    cell.visible = state.is_visible(cell)
                    cells.append(cell)

        logger.debug(f"Projected {len(cells)} cells: {len(sources)}x{len(routes)}x{len(times)}")
        return cells

    def clear_cache(self):
        """Clear the memoized values."""
        self._cache.clear()


def cells_to_frame(cells: List[Cell]) -> pd.DataFrame:
    """Tabular view of projected cells, one row per cell."""
    columns = ["source", "route", "time", "source_index", "route_index",
               "time_index", "value", "visible"]
    return pd.DataFrame([c.to_dict() for c in cells], columns=columns)
