"""Guidance algorithms for area search.

Guidance computes where the vehicle should fly: the ordered waypoints
that cover a search area, and an estimate of how much of it they cover.

Available patterns:
    LawnmowerPattern: Back-and-forth sweep over a square area
"""

from flight.guidance.lawnmower import LawnmowerPattern
from flight.guidance.search_pattern import (
    COVERAGE_REQUIREMENT,
    GeneratedPattern,
    SearchAreaConfig,
    SearchPattern,
)

__all__ = [
    "COVERAGE_REQUIREMENT",
    "GeneratedPattern",
    "LawnmowerPattern",
    "SearchAreaConfig",
    "SearchPattern",
]
