"""
Navigation module: Operation engine and drill-through.
"""

from cubeview.nav.drill_through import (
    DrillThroughResult, Transaction, generate_transactions
)
from cubeview.nav.operations import OLAPOperations

__all__ = [
    "DrillThroughResult", "Transaction", "generate_transactions",
    "OLAPOperations",
]
