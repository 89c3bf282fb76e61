"""
Evaluation module: Statistics over cube values.
"""

from cubeview.eval.statistics import get_statistics, visible_cell_statistics

__all__ = [
    "get_statistics", "visible_cell_statistics",
]
