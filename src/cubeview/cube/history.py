"""
Operation history for a cube session.

Records every applied operation as <kind, parameters, timestamp> in a
fixed-capacity ring buffer; the oldest record is evicted first.
"""

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Deque, Dict, Iterator, List, Optional


class OperationKind(Enum):
    """Types of operations recorded in the history."""
    SLICE = "slice"
    CLEAR_SLICE = "clear_slice"
    DICE = "dice"
    RESET_DICE = "reset_dice"
    DRILL_DOWN = "drill_down"
    DRILL_UP = "drill_up"
    DRILL_THROUGH = "drill_through"
    PIVOT = "pivot"
    VALUE_FILTER = "value_filter"
    TOGGLE_DIMENSION = "toggle_dimension"
    SELECT_MEASURE = "select_measure"
    CLEAR_ALL = "clear_all"


@dataclass
class OperationRecord:
    """
    A single history entry.

    Attributes:
        kind: Operation that was applied
        parameters: JSON-compatible arguments and outcome of the operation
        timestamp: When the operation was applied
    """
    kind: OperationKind
    parameters: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "operation": self.kind.value,
            "parameters": self.parameters,
            "timestamp": self.timestamp.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OperationRecord":
        return cls(
            kind=OperationKind(data["operation"]),
            parameters=data.get("parameters", {}),
            timestamp=datetime.fromisoformat(data["timestamp"]),
        )


class OperationHistory:
    """Bounded FIFO of operation records."""

    def __init__(self, capacity: int = 50):
        if capacity < 1:
            raise ValueError("History capacity must be positive")
        self.capacity = capacity
        self._records: Deque[OperationRecord] = deque(maxlen=capacity)

    def append(self, kind: OperationKind,
               parameters: Optional[Dict[str, Any]] = None) -> OperationRecord:
        record = OperationRecord(kind=kind, parameters=parameters or {})
        self._records.append(record)
        return record

    def clear(self):
        self._records.clear()

    @property
    def last(self) -> Optional[OperationRecord]:
        return self._records[-1] if self._records else None

    def records(self) -> List[OperationRecord]:
        """Copy of the records, oldest first."""
        return list(self._records)

    def to_list(self) -> List[Dict[str, Any]]:
        return [r.to_dict() for r in self._records]

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[OperationRecord]:
        return iter(list(self._records))
