"""
Operation engine: the public OLAP operations over a loaded cube.

Every operation mutates the CubeState through an action, records it in the
history and returns a fresh projection. Operations never raise; rejected
operations are logged and leave the state unchanged.
"""

import logging
import math
from collections.abc import Iterable as IterableABC, Mapping
from dataclasses import replace
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Union

import numpy as np

from cubeview.configs import (
    EngineConfig, create_shipping_cube_schema, create_shipping_fact_store
)
from cubeview.cube.actions import (
    OLAPAction, ClearAllAction, ClearSliceAction, DiceAction, DrillDownAction,
    DrillUpAction, PivotAction, ResetDiceAction, SelectMeasureAction,
    SliceAction, ToggleDimensionAction, ValueFilterAction,
    generate_candidate_actions
)
from cubeview.cube.engine import AggregationEngine
from cubeview.cube.facts import FactStore
from cubeview.cube.history import OperationHistory, OperationKind, OperationRecord
from cubeview.cube.schema import Axis, CubeSchema, DimensionName, Measure
from cubeview.cube.state import Cell, CubeState, parse_dice_filters
from cubeview.eval.statistics import visible_cell_statistics
from cubeview.nav.drill_through import DrillThroughResult, build_drill_through

logger = logging.getLogger(__name__)


def _finite_number(value: Any) -> float:
    """Coerce to a finite float; raises ValueError or TypeError otherwise."""
    number = float(value)
    if not math.isfinite(number):
        raise ValueError(f"Not a finite number: {value!r}")
    return number


class OLAPOperations:
    """
    Main operation engine.

    Holds the aggregation engine (read-only configuration and facts) and the
    single mutable CubeState of the session.
    """

    def __init__(self,
                 schema: Optional[CubeSchema] = None,
                 facts: Optional[FactStore] = None,
                 config: Optional[EngineConfig] = None,
                 rng: Optional[np.random.Generator] = None):
        """
        Initialize the engine; the cube is loaded when schema and facts are given.

        Args:
            schema: Cube schema
            facts: Base facts
            config: Engine configuration
            rng: Random generator used by drill-through
        """
        self.config = config or EngineConfig()
        self.rng = rng if rng is not None else np.random.default_rng()
        self.engine: Optional[AggregationEngine] = None
        self.state: Optional[CubeState] = None

        if schema is not None and facts is not None:
            self.load(schema, facts)
        logger.info("OLAP operation engine initialized")

    @classmethod
    def with_shipping_cube(cls, config: Optional[EngineConfig] = None,
                           rng: Optional[np.random.Generator] = None) -> "OLAPOperations":
        """Engine loaded with the default shipping cube."""
        return cls(create_shipping_cube_schema(), create_shipping_fact_store(),
                   config=config, rng=rng)

    def load(self, schema: CubeSchema, facts: FactStore):
        """Load a cube and start a fresh session on it."""
        self.engine = AggregationEngine(schema, facts)
        self.state = CubeState(
            schema=schema,
            history=OperationHistory(self.config.history_capacity),
        )
        logger.info(f"Cube '{schema.name}' loaded at {self.state.describe_levels()}")

    @property
    def is_loaded(self) -> bool:
        return self.state is not None

    def _require_cube(self, operation: str) -> bool:
        if self.state is None:
            logger.error(f"No cube available for operation {operation}")
            return False
        return True

    def project(self) -> List[Cell]:
        """Cells at the current levels with visibility applied."""
        if not self._require_cube("project"):
            return []
        return self.engine.project(self.state)

    def _execute(self, action: OLAPAction) -> List[Cell]:
        if not self._require_cube(action.action_type.value):
            return []
        if not action.is_applicable(self.state):
            logger.warning(action.rejection(self.state))
            return self.project()

        action.apply(self.state)
        self._record(action.action_type, action.parameters())
        cells = self.project()
        visible = sum(1 for c in cells if c.visible)
        logger.info(f"{action.describe()} completed: {visible} visible cells")
        return cells

    def _record(self, kind: OperationKind, parameters: Dict[str, Any]):
        self.state.history.append(kind, parameters)
        logger.debug(f"Operation recorded: {kind.value}")

    def slice(self, axis: Union[str, Axis], position: int = 0) -> List[Cell]:
        """Hide every cell off the plane axis == position."""
        if not self._require_cube("slice"):
            return []
        parsed = Axis.parse(axis)
        if parsed is None:
            logger.warning(f"Invalid axis for slice: {axis!r}")
            return self.project()
        try:
            number = float(position)
        except (TypeError, ValueError):
            number = math.nan
        if not number.is_integer():
            logger.warning(f"Invalid slice position: {position!r}")
            return self.project()
        position = int(number)
        return self._execute(SliceAction(parsed, position))

    def clear_slice(self, axis: Union[str, Axis]) -> List[Cell]:
        if not self._require_cube("clear_slice"):
            return []
        parsed = Axis.parse(axis)
        if parsed is None:
            logger.warning(f"Invalid axis for clear_slice: {axis!r}")
            return self.project()
        return self._execute(ClearSliceAction(parsed))

    def clear_all_slices(self) -> List[Cell]:
        return self._execute(ClearSliceAction())

    def dice(self, filters: Iterable[Any] = ()) -> List[Cell]:
        """
        Replace the dice filters.

        Args:
            filters: DiceFilter objects or mappings
                {"dimension": "source", "values": ["Asia", "Europe"]}
        """
        if not self._require_cube("dice"):
            return []
        if filters is None:
            filters = ()
        if isinstance(filters, (str, bytes, Mapping)) or not isinstance(filters, IterableABC):
            logger.warning(f"Dice filters must be a list, got {filters!r}")
            return self.project()
        accepted, rejected = parse_dice_filters(filters)
        for raw in rejected:
            logger.warning(f"Ignoring invalid dice filter: {raw!r}")
        return self._execute(DiceAction(accepted))

    def reset_dice(self) -> List[Cell]:
        return self._execute(ResetDiceAction())

    def drill_down(self) -> List[Cell]:
        return self._execute(DrillDownAction())

    def drill_up(self) -> List[Cell]:
        return self._execute(DrillUpAction())

    def pivot(self, axis1: Union[str, Axis], axis2: Union[str, Axis]) -> List[Cell]:
        """Swap the dimensions rendered on two axes."""
        if not self._require_cube("pivot"):
            return []
        first, second = Axis.parse(axis1), Axis.parse(axis2)
        if first is None or second is None:
            logger.warning(f"Invalid axis combination: {axis1}-{axis2}")
            return self.project()
        return self._execute(PivotAction(first, second))

    def apply_value_filter(self, min_value: Optional[float] = None,
                           max_value: Optional[float] = None) -> List[Cell]:
        """Hide cells whose value falls outside [min_value, max_value]."""
        if not self._require_cube("value_filter"):
            return []
        try:
            min_value = None if min_value is None else _finite_number(min_value)
            max_value = None if max_value is None else _finite_number(max_value)
        except (TypeError, ValueError):
            logger.warning(f"Invalid value range: {min_value!r} to {max_value!r}")
            return self.project()
        return self._execute(ValueFilterAction(min_value, max_value))

    def clear_value_filter(self) -> List[Cell]:
        return self._execute(ValueFilterAction())

    def toggle_dimension(self, dimension: Union[str, DimensionName]) -> List[Cell]:
        if not self._require_cube("toggle_dimension"):
            return []
        parsed = DimensionName.parse(dimension)
        if parsed is None:
            logger.warning(f"Unknown dimension: {dimension!r}")
            return self.project()
        return self._execute(ToggleDimensionAction(parsed))

    def select_measure(self, measure: Union[str, Measure]) -> List[Cell]:
        return self._execute(SelectMeasureAction(Measure.parse(measure)))

    def clear_all_operations(self) -> List[Cell]:
        """Reset slices, filters, levels and pivot; history restarts with this call."""
        return self._execute(ClearAllAction())

    def drill_through(self, cell: Union[Cell, Dict[str, Any], None] = None
                      ) -> Optional[DrillThroughResult]:
        """
        Synthetic transaction breakdown of a cell.

        Uses the first visible cell when none is given.
        """
        if not self._require_cube("drill_through"):
            return None
        if isinstance(cell, Mapping):
            try:
                cell = Cell.from_dict(dict(cell))
            except (KeyError, TypeError, ValueError):
                logger.warning(f"Invalid cell for drill-through: {cell!r}")
                return None
        if cell is None:
            cell = next((c for c in self.project() if c.visible), None)
        if cell is None:
            logger.warning("No data available for drill-through")
            return None
        if not isinstance(cell, Cell):
            logger.warning(f"Invalid cell for drill-through: {cell!r}")
            return None
        try:
            cell = replace(cell, value=_finite_number(cell.value))
        except (TypeError, ValueError):
            logger.warning(f"Invalid cell value for drill-through: {cell.value!r}")
            return None

        result = build_drill_through(self.state, cell, rng=self.rng, config=self.config)
        self._record(OperationKind.DRILL_THROUGH, {
            "cell": {
                "source": cell.source_value,
                "route": cell.route_value,
                "time": cell.time_value,
                "value": cell.value,
            },
        })
        logger.info(f"Drill-through on {result.summary}: {len(result.transactions)} transactions")
        return result

    def value_at(self, source: str, route: str, time: str,
                 measure: Union[str, Measure, None] = None) -> float:
        """Value of a triple at the current levels (active measure by default)."""
        if not self._require_cube("value_at"):
            return 0
        measure = self.state.measure if measure is None else Measure.parse(measure)
        return self.engine.value_at(source, route, time, measure, self.state.levels)

    def current_level_description(self) -> str:
        if self.state is None:
            return ""
        return self.state.describe_levels()

    def current_hierarchy_levels(self) -> Dict[str, Dict[str, Any]]:
        if self.state is None:
            return {}
        return self.state.hierarchy_levels()

    def operation_history(self) -> List[OperationRecord]:
        if self.state is None:
            return []
        return self.state.history.records()

    def available_actions(self) -> List[OLAPAction]:
        if self.state is None:
            return []
        return generate_candidate_actions(self.state)

    def get_current_statistics(self) -> Optional[Dict[str, Any]]:
        """Cell counts, statistics of visible positive values and active filters."""
        if not self._require_cube("statistics"):
            return None
        stats = visible_cell_statistics(self.project())
        stats.update({
            "drill_levels": self.state.hierarchy_levels(),
            "active_filters": len(self.state.dice_filters),
            "active_slices": len(self.state.slice_by_axis),
        })
        return stats

    def export_state(self) -> Optional[Dict[str, Any]]:
        """JSON-compatible snapshot of the session and its visible cells."""
        if not self._require_cube("export"):
            return None
        cells = self.project()
        snapshot = self.state.to_dict()
        snapshot.update({
            "timestamp": datetime.now().isoformat(),
            "visible_cells": [c.to_dict() for c in cells if c.visible],
            "total_cells": len(cells),
        })
        return snapshot
