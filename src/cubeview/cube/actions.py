"""
OLAP actions: state transitions over a CubeState.

An action a: S → S mutates the session state in place when applicable:
- Slice / ClearSlice: fix or release a plane on a render axis
- Dice / ResetDice: set or clear per-dimension allow-lists
- DrillDown / DrillUp: move every hierarchy one level in lockstep
- Pivot: swap the dimensions rendered on two axes
- ValueFilter, ToggleDimension, SelectMeasure, ClearAll
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from itertools import combinations
from typing import Any, Dict, List, Optional

from cubeview.cube.history import OperationKind
from cubeview.cube.schema import Axis, DimensionName, Measure
from cubeview.cube.state import CubeState, DiceFilter, ValueFilter


@dataclass
class OLAPAction(ABC):
    """
    Abstract base class for OLAP actions.

    apply() must only be called when is_applicable() holds; it mutates the
    state and every field it changes is assigned in one step.
    """

    @property
    @abstractmethod
    def action_type(self) -> OperationKind:
        """Return the operation kind recorded in the history."""
        pass

    @abstractmethod
    def is_applicable(self, state: CubeState) -> bool:
        """Check if this action can be applied to the given state."""
        pass

    @abstractmethod
    def apply(self, state: CubeState):
        """Apply this action to the state."""
        pass

    @abstractmethod
    def describe(self) -> str:
        """Return human-readable description of the action."""
        pass

    def parameters(self) -> Dict[str, Any]:
        """JSON-compatible parameters recorded in the history."""
        return {}

    def rejection(self, state: CubeState) -> str:
        """Message logged when the action is not applicable."""
        return f"{self.describe()} is not applicable"


@dataclass
class SliceAction(OLAPAction):
    """Fix a render axis to one position, replacing any slice on that axis."""
    axis: Axis
    position: int = 0

    @property
    def action_type(self) -> OperationKind:
        return OperationKind.SLICE

    def is_applicable(self, state: CubeState) -> bool:
        return True

    def apply(self, state: CubeState):
        slices = dict(state.slice_by_axis)
        slices[self.axis] = self.position
        state.slice_by_axis = slices

    def describe(self) -> str:
        return f"Slice on axis {self.axis.value} at position {self.position}"

    def parameters(self) -> Dict[str, Any]:
        return {"axis": self.axis.value, "position": self.position}


@dataclass
class ClearSliceAction(OLAPAction):
    """Remove the slice on one axis, or on every axis when axis is None."""
    axis: Optional[Axis] = None

    @property
    def action_type(self) -> OperationKind:
        return OperationKind.CLEAR_SLICE

    def is_applicable(self, state: CubeState) -> bool:
        if self.axis is None:
            return bool(state.slice_by_axis)
        return self.axis in state.slice_by_axis

    def apply(self, state: CubeState):
        if self.axis is None:
            state.slice_by_axis = {}
        else:
            state.slice_by_axis = {
                a: p for a, p in state.slice_by_axis.items() if a != self.axis
            }

    def describe(self) -> str:
        if self.axis is None:
            return "Clear all slices"
        return f"Clear slice on axis {self.axis.value}"

    def parameters(self) -> Dict[str, Any]:
        return {"axis": self.axis.value if self.axis else None}

    def rejection(self, state: CubeState) -> str:
        return "No active slice to clear"


@dataclass
class DiceAction(OLAPAction):
    """Replace the dice filters with a new set of allow-lists."""
    filters: List[DiceFilter] = field(default_factory=list)

    @property
    def action_type(self) -> OperationKind:
        return OperationKind.DICE

    def is_applicable(self, state: CubeState) -> bool:
        return True

    def apply(self, state: CubeState):
        state.dice_filters = list(self.filters)

    def describe(self) -> str:
        return f"Dice with {len(self.filters)} filters"

    def parameters(self) -> Dict[str, Any]:
        return {"filters": [f.to_dict() for f in self.filters]}


@dataclass
class ResetDiceAction(OLAPAction):
    """Clear every dice filter."""

    @property
    def action_type(self) -> OperationKind:
        return OperationKind.RESET_DICE

    def is_applicable(self, state: CubeState) -> bool:
        return True

    def apply(self, state: CubeState):
        state.dice_filters = []

    def describe(self) -> str:
        return "Reset dice"


@dataclass
class DrillDownAction(OLAPAction):
    """
    Drill-down: every dimension that has a more detailed level moves to it.
    """
    changed_dimensions: List[DimensionName] = field(default_factory=list)

    @property
    def action_type(self) -> OperationKind:
        return OperationKind.DRILL_DOWN

    def is_applicable(self, state: CubeState) -> bool:
        return any(state.can_drill_down(dim) for dim in DimensionName)

    def apply(self, state: CubeState):
        self.changed_dimensions = [d for d in DimensionName if state.can_drill_down(d)]
        state.levels = {
            dim: level + 1 if dim in self.changed_dimensions else level
            for dim, level in state.levels.items()
        }

    def describe(self) -> str:
        return "Drill down"

    def parameters(self) -> Dict[str, Any]:
        return {"changed_dimensions": [d.value for d in self.changed_dimensions]}

    def rejection(self, state: CubeState) -> str:
        return "Already at the maximum level of detail"


@dataclass
class DrillUpAction(OLAPAction):
    """
    Drill-up: every dimension that has a more aggregated level moves to it.
    """
    changed_dimensions: List[DimensionName] = field(default_factory=list)

    @property
    def action_type(self) -> OperationKind:
        return OperationKind.DRILL_UP

    def is_applicable(self, state: CubeState) -> bool:
        return any(state.can_drill_up(dim) for dim in DimensionName)

    def apply(self, state: CubeState):
        self.changed_dimensions = [d for d in DimensionName if state.can_drill_up(d)]
        state.levels = {
            dim: level - 1 if dim in self.changed_dimensions else level
            for dim, level in state.levels.items()
        }

    def describe(self) -> str:
        return "Drill up"

    def parameters(self) -> Dict[str, Any]:
        return {"changed_dimensions": [d.value for d in self.changed_dimensions]}

    def rejection(self, state: CubeState) -> str:
        return "Already at the highest summary level"


@dataclass
class PivotAction(OLAPAction):
    """Swap the dimensions rendered on two axes."""
    axis1: Axis
    axis2: Axis

    @property
    def action_type(self) -> OperationKind:
        return OperationKind.PIVOT

    def is_applicable(self, state: CubeState) -> bool:
        return self.axis1 != self.axis2

    def apply(self, state: CubeState):
        pivot = dict(state.pivot_state)
        pivot[self.axis1], pivot[self.axis2] = pivot[self.axis2], pivot[self.axis1]
        state.pivot_state = pivot

    def describe(self) -> str:
        return f"Pivot {self.axis1.value} <-> {self.axis2.value}"

    def parameters(self) -> Dict[str, Any]:
        return {"axes": [self.axis1.value, self.axis2.value]}

    def rejection(self, state: CubeState) -> str:
        return f"Invalid axis combination: {self.axis1.value}-{self.axis2.value}"


@dataclass
class ValueFilterAction(OLAPAction):
    """Keep cells within a value range; both bounds None clears the filter."""
    min_value: Optional[float] = None
    max_value: Optional[float] = None

    @property
    def action_type(self) -> OperationKind:
        return OperationKind.VALUE_FILTER

    def is_applicable(self, state: CubeState) -> bool:
        if self.min_value is not None and self.max_value is not None:
            return self.min_value <= self.max_value
        return True

    def apply(self, state: CubeState):
        if self.min_value is None and self.max_value is None:
            state.value_filter = None
        else:
            state.value_filter = ValueFilter(self.min_value, self.max_value)

    def describe(self) -> str:
        if self.min_value is None and self.max_value is None:
            return "Clear value filter"
        return f"Value filter [{self.min_value}, {self.max_value}]"

    def parameters(self) -> Dict[str, Any]:
        return {"min": self.min_value, "max": self.max_value}

    def rejection(self, state: CubeState) -> str:
        return f"Invalid value range: min {self.min_value} > max {self.max_value}"


@dataclass
class ToggleDimensionAction(OLAPAction):
    """Show or hide a dimension; the last visible one cannot be hidden."""
    dimension: DimensionName

    @property
    def action_type(self) -> OperationKind:
        return OperationKind.TOGGLE_DIMENSION

    def is_applicable(self, state: CubeState) -> bool:
        if self.dimension in state.visible_dimensions:
            return len(state.visible_dimensions) > 1
        return True

    def apply(self, state: CubeState):
        if self.dimension in state.visible_dimensions:
            state.visible_dimensions = [
                d for d in state.visible_dimensions if d != self.dimension
            ]
        else:
            state.visible_dimensions = state.visible_dimensions + [self.dimension]

    def describe(self) -> str:
        return f"Toggle dimension {self.dimension.value}"

    def parameters(self) -> Dict[str, Any]:
        return {"dimension": self.dimension.value}

    def rejection(self, state: CubeState) -> str:
        return "Cannot remove the last visible dimension"


@dataclass
class SelectMeasureAction(OLAPAction):
    """Switch the active measure."""
    measure: Measure

    @property
    def action_type(self) -> OperationKind:
        return OperationKind.SELECT_MEASURE

    def is_applicable(self, state: CubeState) -> bool:
        return True

    def apply(self, state: CubeState):
        state.measure = self.measure

    def describe(self) -> str:
        return f"Select measure {self.measure.value}"

    def parameters(self) -> Dict[str, Any]:
        return {"measure": self.measure.value}


@dataclass
class ClearAllAction(OLAPAction):
    """Reset slices, filters, levels and pivot, and empty the history."""

    @property
    def action_type(self) -> OperationKind:
        return OperationKind.CLEAR_ALL

    def is_applicable(self, state: CubeState) -> bool:
        return True

    def apply(self, state: CubeState):
        state.reset()

    def describe(self) -> str:
        return "Clear all operations"


def generate_candidate_actions(state: CubeState) -> List[OLAPAction]:
    """
    All currently applicable drill, pivot and reset actions.

    Args:
        state: Current cube state

    Returns:
        List of applicable OLAPAction objects
    """
    candidates: List[OLAPAction] = [DrillDownAction(), DrillUpAction()]
    for axis1, axis2 in combinations(list(Axis), 2):
        candidates.append(PivotAction(axis1, axis2))
    if state.dice_filters:
        candidates.append(ResetDiceAction())
    for axis in state.slice_by_axis:
        candidates.append(ClearSliceAction(axis))
    if state.value_filter is not None:
        candidates.append(ValueFilterAction())
    return [a for a in candidates if a.is_applicable(state)]
