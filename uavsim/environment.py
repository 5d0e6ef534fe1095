"""Environment models for multirotor simulation.

Provides the gravity constant used for hover compensation and the
downward distance sources used for terrain-relative altitude hold.

Example:
    >>> from uavsim.environment import TerrainRangeFinder
    >>>
    >>> finder = TerrainRangeFinder(position_fn=lambda: vehicle.position)
    >>> if finder.in_range():
    ...     agl = finder.distance()
"""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from uavsim.checks import typechecked
from uavsim.geo import LocalPosition

# =============================================================================
# Constants
# =============================================================================

G0: float = 9.81  # Gravity magnitude [m/s^2]


# =============================================================================
# Distance Sources
# =============================================================================


@runtime_checkable
class DistanceSource(Protocol):
    """Protocol for a downward-looking distance-to-ground measurement."""

    max_range: float

    def distance(self) -> float | None:
        """Distance to ground [m], or None without a valid reading."""
        ...

    def in_range(self) -> bool:
        """True if the ground is within sensing range."""
        ...


def flat_terrain(east: float, north: float) -> float:
    """Terrain height function for a flat ground plane at zero."""
    return 0.0


@typechecked
@dataclass
class TerrainRangeFinder:
    """Downward range source over a terrain height function.

    Stands in for the range sensor: reports the vertical gap between the
    vehicle and the terrain directly below it while that gap is within
    ``max_range``.

    Attributes:
        position_fn: Callable returning the current vehicle position
        terrain_fn: Callable (east, north) -> terrain height [m]
        max_range: Maximum measurable distance [m]
    """
    position_fn: Callable[[], LocalPosition]
    terrain_fn: Callable[[float, float], float] = flat_terrain
    max_range: float = 100.0

    def _gap(self) -> float:
        pos = self.position_fn()
        return pos.up - self.terrain_fn(pos.east, pos.north)

    def in_range(self) -> bool:
        """True if the terrain below is between 0 and ``max_range``."""
        return 0.0 <= self._gap() <= self.max_range

    def distance(self) -> float | None:
        """Height above the terrain [m], or None when out of range."""
        gap = self._gap()
        if 0.0 <= gap <= self.max_range:
            return gap
        return None
