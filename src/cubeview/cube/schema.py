"""
Cube schema definitions: dimensions, hierarchy levels and measures.

A cube schema S = <H, M, F> holds one hierarchy per dimension, the measure
specifications and the factor tables used to synthesize missing facts.
The schema is built once and never mutated; session state (the active
level of each hierarchy) lives in CubeState.
"""

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Any, Tuple

logger = logging.getLogger(__name__)


class DimensionName(Enum):
    """The three dimensions of the cube."""
    SOURCE = "source"
    ROUTE = "route"
    TIME = "time"

    @classmethod
    def parse(cls, name: Any) -> Optional["DimensionName"]:
        """Resolve a dimension from its name; None if unknown."""
        if isinstance(name, cls):
            return name
        try:
            return cls(str(name).lower())
        except ValueError:
            return None


class Axis(Enum):
    """Render axes a dimension can be pivoted onto."""
    X = "x"
    Y = "y"
    Z = "z"

    @classmethod
    def parse(cls, name: Any) -> Optional["Axis"]:
        if isinstance(name, cls):
            return name
        try:
            return cls(str(name).lower())
        except ValueError:
            return None


class Measure(Enum):
    """Supported measures."""
    PACKAGES = "packages"
    REVENUE = "revenue"
    GROWTH = "growth"

    @classmethod
    def parse(cls, name: Any) -> "Measure":
        """Resolve a measure from its name, falling back to packages."""
        if isinstance(name, cls):
            return name
        try:
            return cls(str(name).lower())
        except ValueError:
            logger.warning(f"Unknown measure {name!r}, using packages")
            return cls.PACKAGES


def _round_half_up(value: float) -> float:
    return math.floor(value + 0.5)


@dataclass(frozen=True)
class MeasureSpec:
    """
    Range and rounding rule of a measure.

    Attributes:
        measure: The measure this spec describes
        base: Base value used by synthesis before factors are applied
        min_value: Lower clamp for synthesized values
        max_value: Upper clamp for synthesized values
    """
    measure: Measure
    base: float
    min_value: float
    max_value: float

    def clamp(self, value: float) -> float:
        return max(self.min_value, min(self.max_value, value))

    def round(self, value: float):
        """Round a value the way the measure is displayed."""
        if self.measure == Measure.PACKAGES:
            return int(_round_half_up(value))
        if self.measure == Measure.REVENUE:
            return int(_round_half_up(value / 10) * 10)
        return _round_half_up(value * 10) / 10


@dataclass(frozen=True)
class Level:
    """
    A level in a dimension hierarchy.

    Attributes:
        name: Level name (e.g., 'half', 'quarter', 'date')
        values: Ordered category values at this level
        aggregation_map: Value -> children at the next more detailed level.
            None for the terminal (most detailed) level.
    """
    name: str
    values: Tuple[str, ...]
    aggregation_map: Optional[Mapping[str, Tuple[str, ...]]] = None

    def __post_init__(self):
        object.__setattr__(self, "values", tuple(self.values))
        if self.aggregation_map is not None:
            frozen = {k: tuple(v) for k, v in self.aggregation_map.items()}
            object.__setattr__(self, "aggregation_map", MappingProxyType(frozen))
        if len(set(self.values)) != len(self.values):
            raise ValueError(f"Level '{self.name}' has duplicate values")

    @property
    def is_terminal(self) -> bool:
        return self.aggregation_map is None

    def children(self, value: str) -> Tuple[str, ...]:
        """Children of value at the next level; a value without entry passes through."""
        if self.aggregation_map is None:
            return (value,)
        return self.aggregation_map.get(value, (value,))

    def index_of(self, value: str) -> int:
        """Position of value in this level, -1 if absent."""
        try:
            return self.values.index(value)
        except ValueError:
            return -1


@dataclass(frozen=True)
class Hierarchy:
    """
    Ordered levels of a dimension, from most aggregated (index 0) to most
    detailed (index len-1).

    Attributes:
        dimension: Dimension the hierarchy belongs to
        levels: Level records, navigated by index
        default_level: Level a fresh or cleared session starts at
    """
    dimension: DimensionName
    levels: Tuple[Level, ...]
    default_level: int = 0

    def __post_init__(self):
        object.__setattr__(self, "levels", tuple(self.levels))
        if not self.levels:
            raise ValueError(f"Hierarchy '{self.dimension.value}' has no levels")
        if not 0 <= self.default_level < len(self.levels):
            raise ValueError(
                f"Default level {self.default_level} out of range for "
                f"'{self.dimension.value}'"
            )
        self._validate()

    def _validate(self):
        for idx, level in enumerate(self.levels):
            if idx == len(self.levels) - 1:
                if not level.is_terminal:
                    raise ValueError(
                        f"Terminal level '{level.name}' of '{self.dimension.value}' "
                        f"must not have an aggregation map"
                    )
                continue
            if level.is_terminal:
                # No map: every value passes through to the next level unchanged
                continue
            next_values = set(self.levels[idx + 1].values)
            for value, children in level.aggregation_map.items():
                if value not in level.values:
                    raise ValueError(f"'{value}' is not a value of level '{level.name}'")
                if not children:
                    raise ValueError(f"'{value}' maps to no children")
                if value in children:
                    raise ValueError(f"'{value}' maps to itself")
                missing = [c for c in children if c not in next_values]
                if missing:
                    raise ValueError(
                        f"Children {missing} of '{value}' are not in level "
                        f"'{self.levels[idx + 1].name}'"
                    )

    @property
    def depth(self) -> int:
        return len(self.levels)

    @property
    def terminal_level(self) -> int:
        return len(self.levels) - 1

    def level(self, index: int) -> Level:
        return self.levels[index]

    def can_drill_down(self, level: int) -> bool:
        """Check if a more detailed level exists."""
        return level < len(self.levels) - 1

    def can_drill_up(self, level: int) -> bool:
        """Check if a more aggregated level exists."""
        return level > 0

    def get_level_by_name(self, name: str) -> Optional[int]:
        for idx, level in enumerate(self.levels):
            if level.name == name:
                return idx
        return None


@dataclass(frozen=True)
class CubeSchema:
    """
    Immutable cube configuration.

    Attributes:
        name: Cube name
        hierarchies: One hierarchy per dimension
        measures: Spec of every measure
        region_factors: Synthesis multipliers keyed by source category
        route_factors: Synthesis multipliers keyed by route category
        time_factors: Synthesis multipliers keyed by time category
    """
    name: str
    hierarchies: Mapping[DimensionName, Hierarchy]
    measures: Mapping[Measure, MeasureSpec]
    region_factors: Mapping[str, float] = field(default_factory=dict)
    route_factors: Mapping[str, float] = field(default_factory=dict)
    time_factors: Mapping[str, float] = field(default_factory=dict)

    def __post_init__(self):
        missing = [d.value for d in DimensionName if d not in self.hierarchies]
        if missing:
            raise ValueError(f"Schema '{self.name}' lacks hierarchies for {missing}")
        for dim, hierarchy in self.hierarchies.items():
            if hierarchy.dimension != dim:
                raise ValueError(f"Hierarchy for '{dim.value}' is registered under another dimension")
        absent = [m.value for m in Measure if m not in self.measures]
        if absent:
            raise ValueError(f"Schema '{self.name}' lacks measure specs for {absent}")
        for attr in ("hierarchies", "measures", "region_factors", "route_factors", "time_factors"):
            object.__setattr__(self, attr, MappingProxyType(dict(getattr(self, attr))))

    def hierarchy(self, dimension: DimensionName) -> Hierarchy:
        return self.hierarchies[dimension]

    def measure_spec(self, measure: Measure) -> MeasureSpec:
        return self.measures[measure]

    def values_at(self, dimension: DimensionName, level: int) -> Tuple[str, ...]:
        """Ordered category values of a dimension at a level."""
        return self.hierarchies[dimension].levels[level].values

    def children_of(self, dimension: DimensionName, level: int, value: str) -> Tuple[str, ...]:
        """Children of value at level+1; (value,) when terminal or unmapped."""
        return self.hierarchies[dimension].levels[level].children(value)

    def default_levels(self) -> Dict[DimensionName, int]:
        return {dim: self.hierarchies[dim].default_level for dim in DimensionName}

    def terminal_levels(self) -> Dict[DimensionName, int]:
        return {dim: self.hierarchies[dim].terminal_level for dim in DimensionName}

    @property
    def dimension_names(self) -> List[str]:
        return [d.value for d in DimensionName]

    @property
    def measure_names(self) -> List[str]:
        return [m.value for m in Measure]

    def to_dict(self) -> Dict[str, Any]:
        """Serialize schema to dictionary."""
        return {
            "name": self.name,
            "hierarchies": {
                dim.value: {
                    "default_level": h.default_level,
                    "levels": [
                        {
                            "name": l.name,
                            "values": list(l.values),
                            "aggregation_map": (
                                {k: list(v) for k, v in l.aggregation_map.items()}
                                if l.aggregation_map is not None else None
                            ),
                        }
                        for l in h.levels
                    ],
                }
                for dim, h in self.hierarchies.items()
            },
            "measures": {
                m.value: {"base": s.base, "min": s.min_value, "max": s.max_value}
                for m, s in self.measures.items()
            },
            "region_factors": dict(self.region_factors),
            "route_factors": dict(self.route_factors),
            "time_factors": dict(self.time_factors),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CubeSchema":
        """Deserialize schema from dictionary."""
        hierarchies = {}
        for dim_name, h in data["hierarchies"].items():
            dim = DimensionName.parse(dim_name)
            if dim is None:
                raise ValueError(f"Unknown dimension '{dim_name}'")
            hierarchies[dim] = Hierarchy(
                dimension=dim,
                levels=tuple(
                    Level(l["name"], tuple(l["values"]), l.get("aggregation_map"))
                    for l in h["levels"]
                ),
                default_level=h.get("default_level", 0),
            )
        measures = {}
        for measure_name, m in data["measures"].items():
            measure = Measure(measure_name)
            measures[measure] = MeasureSpec(measure, m["base"], m["min"], m["max"])
        return cls(
            name=data["name"],
            hierarchies=hierarchies,
            measures=measures,
            region_factors=data.get("region_factors", {}),
            route_factors=data.get("route_factors", {}),
            time_factors=data.get("time_factors", {}),
        )
