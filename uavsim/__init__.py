"""uavsim - Simulation infrastructure for multirotor flight.

This package provides the "plant" side of the simulator: geographic and
local frames, rigid body state and integration, environment models and
the step-driven simulation loop. Flight software (control, navigation,
search patterns) lives in the ``flight`` package.

Example:
    >>> from uavsim import GeoCoordinate, geo_to_local
    >>>
    >>> origin = GeoCoordinate(19.432608, -99.133209)
    >>> pos = geo_to_local(GeoCoordinate(19.4336, -99.1320), origin)
"""

__version__ = "0.1.0"

from uavsim.dynamics import RigidBodyState
from uavsim.environment import G0, DistanceSource, TerrainRangeFinder
from uavsim.geo import (
    GeoCoordinate,
    LocalPosition,
    WorldOrigin,
    geo_distance,
    geo_to_local,
    is_valid_geo,
    local_to_geo,
)
from uavsim.simulation import SimConfig, SimulationResult, Simulator

__all__ = [
    "__version__",
    # Frames
    "GeoCoordinate",
    "LocalPosition",
    "WorldOrigin",
    "geo_to_local",
    "local_to_geo",
    "geo_distance",
    "is_valid_geo",
    # Environment
    "G0",
    "DistanceSource",
    "TerrainRangeFinder",
    # Dynamics
    "RigidBodyState",
    # Simulation
    "SimConfig",
    "SimulationResult",
    "Simulator",
]
