"""
Drill-through: expands a cell into synthetic transaction records.

The breakdown is cosmetic detail data, so it is randomized rather than
reproducible; the amounts always sum to the cell value.
"""

import logging
import math
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional

import numpy as np
import pandas as pd

from cubeview.configs import EngineConfig
from cubeview.cube.schema import DimensionName
from cubeview.cube.state import Cell, CubeState
from cubeview.eval.statistics import get_statistics

logger = logging.getLogger(__name__)


@dataclass
class Transaction:
    """A synthetic record underlying a cell."""
    id: str
    amount: float
    date: date
    type: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "amount": self.amount,
            "date": self.date.isoformat(),
            "type": self.type,
        }


@dataclass
class DrillThroughResult:
    """
    Detail view of a single cell.

    Attributes:
        summary: 'source → route → time' path of the cell
        value: Cell value the transactions add up to
        hierarchical_breakdown: Per dimension level context of the cell
        transactions: Synthetic records
        statistics: Summary of the transaction amounts
        metadata: Generation time, coordinates and granularity
    """
    summary: str
    value: float
    hierarchical_breakdown: Dict[str, Dict[str, Any]]
    transactions: List[Transaction]
    statistics: Dict[str, Any]
    metadata: Dict[str, Any] = field(default_factory=dict)

    def transactions_frame(self) -> pd.DataFrame:
        return pd.DataFrame([t.to_dict() for t in self.transactions],
                            columns=["id", "amount", "date", "type"])

    def to_dict(self) -> Dict[str, Any]:
        return {
            "summary": self.summary,
            "value": self.value,
            "hierarchical_breakdown": self.hierarchical_breakdown,
            "transactions": [t.to_dict() for t in self.transactions],
            "statistics": self.statistics,
            "metadata": self.metadata,
        }


def random_date(rng: np.random.Generator, year: int) -> date:
    start = date(year, 1, 1)
    span = (date(year, 12, 31) - start).days
    return start + timedelta(days=int(rng.integers(0, span, endpoint=True)))


def generate_transactions(value: float,
                          rng: Optional[np.random.Generator] = None,
                          config: Optional[EngineConfig] = None,
                          count: Optional[int] = None) -> List[Transaction]:
    """
    Split a value into 2-5 transactions.

    Each of the first n-1 records takes floor(remaining * U(0.2, 0.4)) of
    the remaining balance; the last record takes the rest.

    Args:
        value: Total the amounts must add up to
        rng: Random generator; a fresh unseeded one when omitted
        config: Engine configuration (count range, fractions, year)
        count: Force the number of transactions
    """
    rng = rng if rng is not None else np.random.default_rng()
    config = config or EngineConfig()
    if count is None:
        count = int(rng.integers(config.min_transactions, config.max_transactions,
                                 endpoint=True))

    amounts: List[float] = []
    remaining = value
    for _ in range(count - 1):
        fraction = rng.uniform(config.min_fraction, config.max_fraction)
        amount = math.floor(remaining * fraction)
        amounts.append(amount)
        remaining -= amount
    # Integer leading amounts keep each subtraction exact, so the sum is value
    amounts.append(remaining)

    return [
        Transaction(
            id=f"TXN-{i + 1:03d}",
            amount=amount,
            date=random_date(rng, config.drill_through_year),
            type=config.transaction_type,
        )
        for i, amount in enumerate(amounts)
    ]


def hierarchical_breakdown(state: CubeState, cell: Cell) -> Dict[str, Dict[str, Any]]:
    """Level context of a cell on every dimension."""
    breakdown = {}
    for dim in DimensionName:
        hierarchy = state.schema.hierarchy(dim)
        level_idx = state.level_of(dim)
        level = hierarchy.level(level_idx)
        value = cell.value_of(dim)
        info = {
            "current_level": level.name,
            "current_value": value,
            "available_levels": [l.name for l in hierarchy.levels],
            "can_drill_down": hierarchy.can_drill_down(level_idx),
            "can_drill_up": hierarchy.can_drill_up(level_idx),
            "level_position": f"{level_idx + 1}/{hierarchy.depth}",
        }
        if not level.is_terminal and value in level.aggregation_map:
            info["children"] = list(level.aggregation_map[value])
        breakdown[dim.value] = info
    return breakdown


def build_drill_through(state: CubeState, cell: Cell,
                        rng: Optional[np.random.Generator] = None,
                        config: Optional[EngineConfig] = None) -> DrillThroughResult:
    """Assemble the detail view of a cell."""
    transactions = generate_transactions(cell.value, rng=rng, config=config)
    logger.debug(f"Generated {len(transactions)} transactions for value {cell.value}")
    return DrillThroughResult(
        summary=f"{cell.source_value} → {cell.route_value} → {cell.time_value}",
        value=cell.value,
        hierarchical_breakdown=hierarchical_breakdown(state, cell),
        transactions=transactions,
        statistics=get_statistics(t.amount for t in transactions),
        metadata={
            "generated_at": datetime.now().isoformat(),
            "coordinates": "({}, {}, {})".format(*cell.coordinates),
            "granularity": state.describe_levels(),
        },
    )
