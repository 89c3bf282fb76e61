"""
Cube session state and the cells projected from it.

The state records, per session:
- the active hierarchy level of each dimension
- dice filters, slice planes and the value filter
- the pivot mapping from render axis to dimension
- the visible dimensions, the active measure and the operation history
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple

from cubeview.cube.history import OperationHistory
from cubeview.cube.schema import Axis, CubeSchema, DimensionName, Level, Measure


@dataclass
class Cell:
    """
    One cube cell at the current hierarchy levels.

    Attributes:
        source_value, route_value, time_value: Category on each dimension
        source_index, route_index, time_index: Position of the category
            within the current level of that dimension
        value: Measure value of the cell
        visible: Whether the cell passes the slice, dice and value filters
    """
    source_value: str
    route_value: str
    time_value: str
    source_index: int
    route_index: int
    time_index: int
    value: float
    visible: bool = True

    def value_of(self, dimension: DimensionName) -> str:
        if dimension is DimensionName.SOURCE:
            return self.source_value
        if dimension is DimensionName.ROUTE:
            return self.route_value
        return self.time_value

    def index_of(self, dimension: DimensionName) -> int:
        if dimension is DimensionName.SOURCE:
            return self.source_index
        if dimension is DimensionName.ROUTE:
            return self.route_index
        return self.time_index

    @property
    def coordinates(self) -> Tuple[int, int, int]:
        return (self.source_index, self.route_index, self.time_index)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source": self.source_value,
            "route": self.route_value,
            "time": self.time_value,
            "source_index": self.source_index,
            "route_index": self.route_index,
            "time_index": self.time_index,
            "value": self.value,
            "visible": self.visible,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Cell":
        return cls(
            source_value=data["source"],
            route_value=data["route"],
            time_value=data["time"],
            source_index=data.get("source_index", 0),
            route_index=data.get("route_index", 0),
            time_index=data.get("time_index", 0),
            value=data.get("value", 0),
            visible=data.get("visible", True),
        )


@dataclass
class DiceFilter:
    """An allow-list of category values on one dimension."""
    dimension: DimensionName
    values: Tuple[str, ...]

    def matches(self, cell: Cell) -> bool:
        return cell.value_of(self.dimension) in self.values

    def to_dict(self) -> Dict[str, Any]:
        return {"dimension": self.dimension.value, "values": list(self.values)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DiceFilter":
        dimension = DimensionName.parse(data.get("dimension"))
        if dimension is None:
            raise ValueError(f"Unknown dimension in dice filter: {data.get('dimension')!r}")
        values = data.get("values")
        if values is None or isinstance(values, str):
            raise ValueError(f"Dice filter on '{dimension.value}' needs a list of values")
        return cls(dimension=dimension, values=tuple(values))


@dataclass
class ValueFilter:
    """Keeps cells whose value lies within [min_value, max_value]."""
    min_value: Optional[float] = None
    max_value: Optional[float] = None

    def matches(self, cell: Cell) -> bool:
        if self.min_value is not None and cell.value < self.min_value:
            return False
        if self.max_value is not None and cell.value > self.max_value:
            return False
        return True

    def to_dict(self) -> Dict[str, Any]:
        return {"min": self.min_value, "max": self.max_value}


def identity_pivot() -> Dict[Axis, DimensionName]:
    return {
        Axis.X: DimensionName.SOURCE,
        Axis.Y: DimensionName.ROUTE,
        Axis.Z: DimensionName.TIME,
    }


@dataclass
class CubeState:
    """
    Mutable session state of one cube.

    Attributes:
        schema: Reference to the (immutable) cube schema
        levels: Dimension -> active level index
        measure: Active measure
        visible_dimensions: Dimensions shown by the renderer, never empty
        dice_filters: Conjunctive allow-lists
        slice_by_axis: Axis -> fixed position, at most one per axis
        pivot_state: Axis -> dimension rendered on it
        value_filter: Optional value range filter
        history: Bounded operation history
    """
    schema: CubeSchema
    levels: Dict[DimensionName, int] = field(default_factory=dict)
    measure: Measure = Measure.PACKAGES
    visible_dimensions: List[DimensionName] = field(
        default_factory=lambda: list(DimensionName)
    )
    dice_filters: List[DiceFilter] = field(default_factory=list)
    slice_by_axis: Dict[Axis, int] = field(default_factory=dict)
    pivot_state: Dict[Axis, DimensionName] = field(default_factory=identity_pivot)
    value_filter: Optional[ValueFilter] = None
    history: OperationHistory = field(default_factory=OperationHistory)

    def __post_init__(self):
        if not self.levels:
            self.levels = self.schema.default_levels()

    def level_of(self, dimension: DimensionName) -> int:
        """Active level index of a dimension."""
        return self.levels[dimension]

    def level(self, dimension: DimensionName) -> Level:
        return self.schema.hierarchy(dimension).level(self.levels[dimension])

    def current_values(self, dimension: DimensionName) -> Tuple[str, ...]:
        return self.schema.values_at(dimension, self.levels[dimension])

    def can_drill_down(self, dimension: DimensionName) -> bool:
        return self.schema.hierarchy(dimension).can_drill_down(self.levels[dimension])

    def can_drill_up(self, dimension: DimensionName) -> bool:
        return self.schema.hierarchy(dimension).can_drill_up(self.levels[dimension])

    def dimension_on(self, axis: Axis) -> DimensionName:
        return self.pivot_state[axis]

    def is_visible(self, cell: Cell) -> bool:
        """Slice test AND dice test AND value filter test."""
        for axis, position in self.slice_by_axis.items():
            if cell.index_of(self.pivot_state[axis]) != position:
                return False
        for dice_filter in self.dice_filters:
            if not dice_filter.matches(cell):
                return False
        if self.value_filter is not None and not self.value_filter.matches(cell):
            return False
        return True

    def hierarchy_levels(self) -> Dict[str, Dict[str, Any]]:
        """Per dimension: active level index, its name and level count."""
        return {
            dim.value: {
                "current_level": self.levels[dim],
                "level_name": self.level(dim).name,
                "total_levels": self.schema.hierarchy(dim).depth,
            }
            for dim in DimensionName
        }

    def describe_levels(self) -> str:
        """e.g. 'source: region (2/2), route: method (2/2), time: quarter (2/3)'."""
        parts = []
        for dim, info in self.hierarchy_levels().items():
            parts.append(
                f"{dim}: {info['level_name']} "
                f"({info['current_level'] + 1}/{info['total_levels']})"
            )
        return ", ".join(parts)

    def reset(self):
        """Restore slices, filters, levels and pivot; the history is emptied."""
        self.slice_by_axis = {}
        self.dice_filters = []
        self.value_filter = None
        self.levels = self.schema.default_levels()
        self.pivot_state = identity_pivot()
        self.history.clear()

    def to_dict(self) -> Dict[str, Any]:
        """JSON-compatible snapshot of the session state."""
        return {
            "drill_levels": self.hierarchy_levels(),
            "pivot_state": {axis.value: dim.value for axis, dim in self.pivot_state.items()},
            "dice_filters": [f.to_dict() for f in self.dice_filters],
            "slice_by_axis": {axis.value: pos for axis, pos in self.slice_by_axis.items()},
            "value_filter": self.value_filter.to_dict() if self.value_filter else None,
            "visible_dimensions": [d.value for d in self.visible_dimensions],
            "current_measure": self.measure.value,
            "operation_history": self.history.to_list(),
        }


def parse_dice_filters(filters: Iterable[Any]) -> Tuple[List[DiceFilter], List[Any]]:
    """
    Split raw filters into valid DiceFilter objects and rejected entries.

    Accepts DiceFilter instances or mappings with 'dimension' and 'values'.
    """
    accepted: List[DiceFilter] = []
    rejected: List[Any] = []
    for raw in filters or []:
        if isinstance(raw, DiceFilter):
            accepted.append(raw)
            continue
        try:
            accepted.append(DiceFilter.from_dict(dict(raw)))
        except (ValueError, TypeError):
            rejected.append(raw)
    return accepted, rejected
