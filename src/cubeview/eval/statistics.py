"""
Summary statistics over measure values.

Used for visible-cell summaries and for drill-through transaction amounts.
"""

from typing import Any, Dict, Iterable, List

import numpy as np

from cubeview.cube.state import Cell


def _plain(value):
    return value.item() if isinstance(value, np.generic) else value


def get_statistics(values: Iterable[float]) -> Dict[str, Any]:
    """
    Min, max, average, sum and count of a numeric sequence.

    Empty input yields zeros. The average is rounded to two decimals.
    """
    data = np.asarray(list(values), dtype=float)
    if data.size == 0:
        return {"min": 0, "max": 0, "avg": 0, "sum": 0, "count": 0}

    total = data.sum()
    return {
        "min": _plain(data.min()),
        "max": _plain(data.max()),
        "avg": round(float(total / data.size), 2),
        "sum": _plain(total),
        "count": int(data.size),
    }


def visible_cell_statistics(cells: List[Cell],
                            positive_only: bool = True) -> Dict[str, Any]:
    """
    Cell counts plus statistics of visible values.

    Args:
        cells: A projection
        positive_only: Drop values <= 0 from the statistics
    """
    visible = [c for c in cells if c.visible]
    values: List[float] = [c.value for c in visible]
    if positive_only:
        values = [v for v in values if v > 0]
    return {
        "total_cells": len(cells),
        "visible_cells": len(visible),
        "hidden_cells": len(cells) - len(visible),
        "statistics": get_statistics(values),
    }

