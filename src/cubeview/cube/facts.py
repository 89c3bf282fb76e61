"""
Fact store: the base measure grids the cube aggregates from.

Each measure has a 2D grid indexed by [source][time] over the originally
supplied categories. Route has no grid axis; it only affects synthesized
values through its factor table.
"""

import logging
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from cubeview.cube.schema import Measure

logger = logging.getLogger(__name__)


class FactStore:
    """
    Read-only measure grids over base source and time categories.

    Attributes:
        sources: Base source categories (grid rows)
        routes: Base route categories (informational, not a grid axis)
        times: Base time categories (grid columns)
    """

    def __init__(self,
                 sources: Sequence[str],
                 times: Sequence[str],
                 grids: Mapping[Measure, Sequence[Sequence[float]]],
                 routes: Sequence[str] = ()):
        """
        Args:
            sources: Row categories of every grid
            times: Column categories of every grid
            grids: Measure -> nested rows of values (NaN or None for missing)
            routes: Route categories the facts were recorded over
        """
        self.sources: Tuple[str, ...] = tuple(sources)
        self.times: Tuple[str, ...] = tuple(times)
        self.routes: Tuple[str, ...] = tuple(routes)
        self._source_index = {s: i for i, s in enumerate(self.sources)}
        self._time_index = {t: i for i, t in enumerate(self.times)}
        self._grids: Dict[Measure, np.ndarray] = {}

        shape = (len(self.sources), len(self.times))
        for measure, rows in grids.items():
            grid = np.array(
                [[np.nan if v is None else v for v in row] for row in rows],
                dtype=float,
            )
            if grid.shape != shape:
                raise ValueError(
                    f"Grid for '{Measure.parse(measure).value}' has shape {grid.shape}, "
                    f"expected {shape}"
                )
            grid.setflags(write=False)
            self._grids[Measure.parse(measure)] = grid

    @property
    def measures(self) -> List[Measure]:
        return list(self._grids.keys())

    def grid(self, measure: Measure) -> Optional[np.ndarray]:
        return self._grids.get(measure)

    def source_index(self, source: str) -> int:
        return self._source_index.get(source, -1)

    def time_index(self, time: str) -> int:
        return self._time_index.get(time, -1)

    def lookup(self, source: str, time: str, measure: Measure) -> Optional[float]:
        """
        Return the stored fact for (source, time), or None.

        A fact counts as present only when it is finite and > 0.
        """
        grid = self._grids.get(measure)
        si = self._source_index.get(source)
        ti = self._time_index.get(time)
        if grid is None or si is None or ti is None:
            return None
        value = grid[si, ti]
        if not np.isfinite(value) or value <= 0:
            return None
        return value.item()

    @classmethod
    def from_frame(cls, df: pd.DataFrame,
                   source_col: str = "source",
                   time_col: str = "time",
                   measure_cols: Optional[Sequence[str]] = None,
                   routes: Sequence[str] = ()) -> "FactStore":
        """
        Build a store from a long-format DataFrame with one row per
        (source, time) and one column per measure.

        Category order follows first appearance in the frame.
        """
        if measure_cols is None:
            measure_cols = [m.value for m in Measure if m.value in df.columns]
        sources = list(pd.unique(df[source_col]))
        times = list(pd.unique(df[time_col]))
        grids = {}
        for col in measure_cols:
            pivot = df.pivot_table(index=source_col, columns=time_col,
                                   values=col, aggfunc="sum")
            pivot = pivot.reindex(index=sources, columns=times)
            grids[Measure(col)] = pivot.to_numpy(dtype=float).tolist()
        logger.debug(f"Loaded fact store: {len(sources)}x{len(times)} for {list(measure_cols)}")
        return cls(sources=sources, times=times, grids=grids, routes=routes)

    def to_frame(self) -> pd.DataFrame:
        """Long-format DataFrame with columns source, time and one per measure."""
        records = []
        for si, source in enumerate(self.sources):
            for ti, time in enumerate(self.times):
                row = {"source": source, "time": time}
                for measure, grid in self._grids.items():
                    row[measure.value] = grid[si, ti]
                records.append(row)
        return pd.DataFrame(records)
