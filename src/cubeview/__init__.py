"""
cubeview: In-memory OLAP engine over a three-dimensional shipping cube

Computes measure values at any level of the source, route and time
hierarchies and applies slice, dice, drill and pivot operations to a
session state.
"""

__version__ = "0.1.0"

from cubeview.cube.schema import CubeSchema, DimensionName, Axis, Measure, Level, Hierarchy
from cubeview.cube.facts import FactStore
from cubeview.cube.state import Cell, CubeState, DiceFilter
from cubeview.cube.engine import AggregationEngine
from cubeview.configs import EngineConfig
from cubeview.nav.operations import OLAPOperations
from cubeview.eval.statistics import get_statistics

__all__ = [
    "CubeSchema",
    "DimensionName",
    "Axis",
    "Measure",
    "Level",
    "Hierarchy",
    "FactStore",
    "Cell",
    "CubeState",
    "DiceFilter",
    "AggregationEngine",
    "EngineConfig",
    "OLAPOperations",
    "get_statistics",
]
