"""
Cube module: Data structures and engine for the multidimensional cube.
"""

from cubeview.cube.schema import (
    CubeSchema, DimensionName, Axis, Measure, MeasureSpec, Level, Hierarchy
)
from cubeview.cube.facts import FactStore
from cubeview.cube.history import OperationHistory, OperationKind, OperationRecord
from cubeview.cube.state import Cell, CubeState, DiceFilter, ValueFilter
from cubeview.cube.actions import (
    OLAPAction, SliceAction, ClearSliceAction, DiceAction, ResetDiceAction,
    DrillDownAction, DrillUpAction, PivotAction, ValueFilterAction,
    ToggleDimensionAction, SelectMeasureAction, ClearAllAction,
    generate_candidate_actions
)
from cubeview.cube.engine import AggregationEngine, cells_to_frame, stable_seed

__all__ = [
    "CubeSchema", "DimensionName", "Axis", "Measure", "MeasureSpec", "Level", "Hierarchy",
    "FactStore",
    "OperationHistory", "OperationKind", "OperationRecord",
    "Cell", "CubeState", "DiceFilter", "ValueFilter",
    "OLAPAction", "SliceAction", "ClearSliceAction", "DiceAction", "ResetDiceAction",
    "DrillDownAction", "DrillUpAction", "PivotAction", "ValueFilterAction",
    "ToggleDimensionAction", "SelectMeasureAction", "ClearAllAction",
    "generate_candidate_actions",
    "AggregationEngine", "cells_to_frame", "stable_seed",
]
