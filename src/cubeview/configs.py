"""
Cube configuration: the default shipping cube and engine settings.

Shipping cube:
- Source: hemisphere → region
- Route: transport_type → method
- Time: half → quarter → date

Measures: packages, revenue, growth
"""

from dataclasses import dataclass

from cubeview.cube.schema import (
    CubeSchema, DimensionName, Hierarchy, Level, Measure, MeasureSpec
)
from cubeview.cube.facts import FactStore


@dataclass
class EngineConfig:
    """Configuration for the operation engine."""
    history_capacity: int = 50
    drill_through_year: int = 2024
    min_transactions: int = 2
    max_transactions: int = 5
    min_fraction: float = 0.2
    max_fraction: float = 0.4
    transaction_type: str = "Package Shipment"


REGIONS = ("Africa", "Asia", "Australia", "Europe", "North America", "South America")
ROUTES = ("ground", "rail", "sea", "air")
QUARTERS = ("Q1", "Q2", "Q3", "Q4")

QUARTER_DATES = {
    "Q1": ("Feb-17-99", "Mar-13-99", "Mar-05-99", "Mar-07-99", "Mar-30-99", "Feb-27-99"),
    "Q2": ("Apr-22-99", "May-31-99", "May-19-99", "Jun-20-99", "Jun-28-99", "Jun-03-99"),
    "Q3": ("Sep-07-99", "Sep-18-99", "Aug-09-99", "Sep-11-99", "Sep-30-99", "Aug-21-99"),
    "Q4": ("Dec-01-99", "Dec-22-99", "Nov-27-99", "Dec-15-99", "Dec-29-99", "Nov-30-99"),
}

# Grouped by region in the order the shipments were recorded
DATES = (
    "Feb-17-99", "Apr-22-99", "Sep-07-99", "Dec-01-99",
    "Mar-13-99", "May-31-99", "Sep-18-99", "Dec-22-99",
    "Mar-05-99", "May-19-99", "Aug-09-99", "Nov-27-99",
    "Mar-07-99", "Jun-20-99", "Sep-11-99", "Dec-15-99",
    "Mar-30-99", "Jun-28-99", "Sep-30-99", "Dec-29-99",
    "Feb-27-99", "Jun-03-99", "Aug-21-99", "Nov-30-99",
)

PACKAGES = (
    (100, 215, 160, 240),
    (310, 410, 250, 390),
    (210, 240, 300, 410),
    (500, 470, 464, 690),
    (400, 380, 420, 512),
    (600, 490, 515, 580),
)

REVENUE = (
    (1550, 3333, 2480, 3720),
    (4805, 6355, 3875, 6045),
    (3255, 3720, 4650, 6355),
    (7750, 7285, 7192, 10695),
    (6200, 5890, 6510, 7936),
    (9300, 7595, 7983, 8990),
)

GROWTH = (
    (5, 12, 8, 15),
    (18, 23, 10, 20),
    (12, 15, 18, 23),
    (25, 22, 21, 35),
    (20, 18, 22, 28),
    (30, 24, 26, 32),
)

MEASURE_SPECS = {
    Measure.PACKAGES: MeasureSpec(Measure.PACKAGES, base=200, min_value=50, max_value=800),
    Measure.REVENUE: MeasureSpec(Measure.REVENUE, base=4000, min_value=1000, max_value=12000),
    Measure.GROWTH: MeasureSpec(Measure.GROWTH, base=15, min_value=-5, max_value=40),
}

REGION_FACTORS = {
    "Africa": 0.6, "Asia": 1.4, "Australia": 0.8, "Europe": 1.3,
    "North America": 1.2, "South America": 0.9,
    "Eastern Hemisphere": 1.1, "Western Hemisphere": 1.05,
}

ROUTE_FACTORS = {
    "ground": 1.2, "road": 1.2, "rail": 1.0, "sea": 1.5, "air": 0.8,
    "nonground": 1.15, "transport_type": 1.0,
}

TIME_FACTORS = {
    "Q1": 0.9, "Q2": 1.1, "Q3": 1.3, "Q4": 1.4,
    "1st half": 1.0, "2nd half": 1.35, "half": 1.2,
    "Feb-17-99": 0.85, "Mar-13-99": 0.95, "Mar-05-99": 0.90, "Mar-07-99": 0.88,
    "Mar-30-99": 0.92, "Feb-27-99": 0.87,
    "Apr-22-99": 1.05, "May-31-99": 1.15, "May-19-99": 1.10, "Jun-20-99": 1.12,
    "Jun-28-99": 1.08, "Jun-03-99": 1.18,
    "Sep-07-99": 1.25, "Sep-18-99": 1.35, "Aug-09-99": 1.30, "Sep-11-99": 1.28,
    "Sep-30-99": 1.32, "Aug-21-99": 1.22,
    "Dec-01-99": 1.40, "Dec-22-99": 1.50, "Nov-27-99": 1.45, "Dec-15-99": 1.42,
    "Dec-29-99": 1.38, "Nov-30-99": 1.35,
}


def create_shipping_cube_schema() -> CubeSchema:
    """
    Shipping cube schema.

    Every session starts at region / method / quarter.
    """
    source = Hierarchy(
        dimension=DimensionName.SOURCE,
        levels=(
            Level("hemisphere", ("Eastern Hemisphere", "Western Hemisphere"), {
                "Eastern Hemisphere": ("Africa", "Asia", "Australia", "Europe"),
                "Western Hemisphere": ("North America", "South America"),
            }),
            Level("region", REGIONS),
        ),
        default_level=1,
    )

    route = Hierarchy(
        dimension=DimensionName.ROUTE,
        levels=(
            Level("transport_type", ("ground", "nonground"), {
                "ground": ("road", "rail"),
                "nonground": ("sea", "air"),
            }),
            Level("method", ("road", "rail", "sea", "air")),
        ),
        default_level=1,
    )

    time = Hierarchy(
        dimension=DimensionName.TIME,
        levels=(
            Level("half", ("1st half", "2nd half"), {
                "1st half": ("Q1", "Q2"),
                "2nd half": ("Q3", "Q4"),
            }),
            Level("quarter", QUARTERS, QUARTER_DATES),
            Level("date", DATES),
        ),
        default_level=1,
    )

    return CubeSchema(
        name="ShippingCube",
        hierarchies={
            DimensionName.SOURCE: source,
            DimensionName.ROUTE: route,
            DimensionName.TIME: time,
        },
        measures=MEASURE_SPECS,
        region_factors=REGION_FACTORS,
        route_factors=ROUTE_FACTORS,
        time_factors=TIME_FACTORS,
    )


def create_quarterly_cube_schema() -> CubeSchema:
    """
    Shipping cube cut at the grain of the recorded facts.

    - Source: region
    - Route: method (ground, rail, sea, air)
    - Time: half → quarter
    """
    return CubeSchema(
        name="QuarterlyShippingCube",
        hierarchies={
            DimensionName.SOURCE: Hierarchy(
                DimensionName.SOURCE, (Level("region", REGIONS),)
            ),
            DimensionName.ROUTE: Hierarchy(
                DimensionName.ROUTE, (Level("method", ROUTES),)
            ),
            DimensionName.TIME: Hierarchy(
                DimensionName.TIME,
                (
                    Level("half", ("1st half", "2nd half"), {
                        "1st half": ("Q1", "Q2"),
                        "2nd half": ("Q3", "Q4"),
                    }),
                    Level("quarter", QUARTERS),
                ),
                default_level=1,
            ),
        },
        measures=MEASURE_SPECS,
        region_factors=REGION_FACTORS,
        route_factors=ROUTE_FACTORS,
        time_factors=TIME_FACTORS,
    )


def create_shipping_fact_store() -> FactStore:
    """Base facts of the shipping cube: region x quarter."""
    return FactStore(
        sources=REGIONS,
        times=QUARTERS,
        routes=ROUTES,
        grids={
            Measure.PACKAGES: PACKAGES,
            Measure.REVENUE: REVENUE,
            Measure.GROWTH: GROWTH,
        },
    )

