#!/usr/bin/env python3
"""
Example: Running an OLAP session over the shipping cube.

This script demonstrates how to:
1. Load the shipping cube into the operation engine
2. Dice, slice, pivot and drill through the cube
3. Drill through a cell into its transactions
4. Export the session state
"""

import argparse
import json
import logging
import os
import sys
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

import numpy as np

from cubeview.configs import (
    EngineConfig, create_quarterly_cube_schema, create_shipping_fact_store
)
from cubeview.cube.engine import cells_to_frame
from cubeview.nav.operations import OLAPOperations


def show(title, cells):
    df = cells_to_frame(cells)
    visible = df[df["visible"]]
    print(f"\n{title}: {len(visible)} of {len(df)} cells visible")
    if len(visible) <= 12:
        print(visible[["source", "route", "time", "value"]].to_string(index=False))


def run_demo(seed: int, quarterly: bool, output: str):
    """Run a demonstration session."""
    print("=" * 60)
    print("CubeView Demo: Shipping Cube Session")
    print("=" * 60)

    rng = np.random.default_rng(seed)
    if quarterly:
        ops = OLAPOperations(create_quarterly_cube_schema(), create_shipping_fact_store(),
                             config=EngineConfig(), rng=rng)
    else:
        ops = OLAPOperations.with_shipping_cube(rng=rng)

    print(f"\nLevels: {ops.current_level_description()}")
    show("Initial view", ops.project())

    show("Dice on Asia and Europe",
         ops.dice([{"dimension": "source", "values": ["Asia", "Europe"]}]))
    show("Slice on the first time period", ops.slice("z", 0))
    show("Pivot source <-> time", ops.pivot("x", "z"))

    ops.clear_all_slices()
    ops.reset_dice()
    show("Drill up", ops.drill_up())
    print(f"Levels: {ops.current_level_description()}")

    result = ops.drill_through()
    if result is not None:
        print(f"\nDrill-through: {result.summary} = {result.value}")
        print(result.transactions_frame().to_string(index=False))
        print(f"Statistics: {result.statistics}")

    stats = ops.get_current_statistics()
    print(f"\nVisible statistics: {stats['statistics']}")

    if output:
        with open(output, "w") as f:
            json.dump(ops.export_state(), f, indent=2)
        print(f"\nSession exported to {output}")

    print("\n" + "=" * 60)
    print("Demo complete!")
    print("=" * 60)


def main():
    parser = argparse.ArgumentParser(description="Run a CubeView demo session")
    parser.add_argument("--seed", type=int, default=42, help="Drill-through random seed")
    parser.add_argument("--quarterly", action="store_true",
                        help="Use the quarterly cube backed by recorded facts")
    parser.add_argument("--output", type=str, default=None, help="Export file (JSON)")
    parser.add_argument("--verbose", action="store_true", help="Log every operation")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s: %(message)s",
    )
    run_demo(args.seed, args.quarterly, args.output)


if __name__ == "__main__":
    main()
