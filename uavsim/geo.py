"""Geographic and local Cartesian frames.

Converts between latitude/longitude and a local east-up-north frame
anchored at a geographic origin. The projection is equirectangular with
no Earth curvature correction, which is adequate over the few kilometres
a multirotor mission spans.

Coordinate frames:
- Geo: (latitude, longitude) in degrees, WGS84
- Local: (east, up, north) in metres relative to the origin

Example:
    >>> from uavsim.geo import GeoCoordinate, geo_to_local, local_to_geo
    >>>
    >>> origin = GeoCoordinate(19.432608, -99.133209)
    >>> target = GeoCoordinate(19.4336, -99.1320)
    >>> pos = geo_to_local(target, origin)
    >>> back = local_to_geo(pos, origin)
"""

import math
from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray

from uavsim.checks import typechecked

# =============================================================================
# Constants
# =============================================================================

METERS_PER_DEGREE_LAT: float = 111320.0  # [m/deg]

LATITUDE_LIMITS: tuple[float, float] = (-90.0, 90.0)
LONGITUDE_LIMITS: tuple[float, float] = (-180.0, 180.0)


# =============================================================================
# Value Types
# =============================================================================


@typechecked
@dataclass(frozen=True)
class GeoCoordinate:
    """Geographic coordinate.

    Construction does not validate, so that out-of-range input can be
    carried to the boundary that rejects it. Use ``is_valid``.

    Attributes:
        latitude: Latitude [deg], valid in [-90, 90]
        longitude: Longitude [deg], valid in [-180, 180]
    """
    latitude: float
    longitude: float

    @property
    def is_valid(self) -> bool:
        """True if both components are within their geographic bounds."""
        return is_valid_geo(self)

    def __str__(self) -> str:
        return f"({self.latitude:.6f}, {self.longitude:.6f})"


@typechecked
@dataclass(frozen=True)
class LocalPosition:
    """Point in the local east-up-north frame [m].

    Attributes:
        east: Offset east of the origin [m]
        up: Height above the reference plane [m]
        north: Offset north of the origin [m]
    """
    east: float = 0.0
    up: float = 0.0
    north: float = 0.0

    @classmethod
    def from_array(cls, arr: NDArray[np.float64]) -> "LocalPosition":
        """Create from an [east, up, north] array."""
        return cls(east=float(arr[0]), up=float(arr[1]), north=float(arr[2]))

    def to_array(self) -> NDArray[np.float64]:
        """Convert to an [east, up, north] array."""
        return np.array([self.east, self.up, self.north], dtype=np.float64)

    def distance_to(self, other: "LocalPosition") -> float:
        """Straight-line distance [m]."""
        return float(np.linalg.norm(self.to_array() - other.to_array()))

    def horizontal_distance_to(self, other: "LocalPosition") -> float:
        """Distance ignoring the vertical axis [m]."""
        return math.hypot(self.east - other.east, self.north - other.north)

    def with_up(self, up: float) -> "LocalPosition":
        """Same horizontal position at a different height."""
        return LocalPosition(east=self.east, up=float(up), north=self.north)

    def lerp(self, other: "LocalPosition", t: float) -> "LocalPosition":
        """Linear interpolation toward ``other`` (t=0 -> self, t=1 -> other)."""
        return LocalPosition.from_array(
            self.to_array() + (other.to_array() - self.to_array()) * t
        )

    def __add__(self, other: "LocalPosition") -> "LocalPosition":
        return LocalPosition(
            self.east + other.east, self.up + other.up, self.north + other.north
        )

    def __sub__(self, other: "LocalPosition") -> "LocalPosition":
        return LocalPosition(
            self.east - other.east, self.up - other.up, self.north - other.north
        )

    def __str__(self) -> str:
        return f"(E {self.east:.2f}, U {self.up:.2f}, N {self.north:.2f})"


# =============================================================================
# Conversions
# =============================================================================


@typechecked
def is_valid_geo(coord: GeoCoordinate) -> bool:
    """Check latitude in [-90, 90] and longitude in [-180, 180]."""
    lat_ok = LATITUDE_LIMITS[0] <= coord.latitude <= LATITUDE_LIMITS[1]
    lon_ok = LONGITUDE_LIMITS[0] <= coord.longitude <= LONGITUDE_LIMITS[1]
    return lat_ok and lon_ok


@typechecked
def geo_to_local(coord: GeoCoordinate, origin: GeoCoordinate) -> LocalPosition:
    """Convert a geographic coordinate to the local frame of ``origin``.

    The east scale uses the cosine of the mean latitude of the two points.
    The vertical component is always zero (ground level); callers set
    the flight altitude.

    Args:
        coord: Coordinate to convert
        origin: Origin of the local frame

    Returns:
        Local position (east, 0, north) [m]
    """
    d_lat = coord.latitude - origin.latitude
    d_lon = coord.longitude - origin.longitude

    north = d_lat * METERS_PER_DEGREE_LAT
    mean_lat = math.radians(0.5 * (coord.latitude + origin.latitude))
    east = d_lon * METERS_PER_DEGREE_LAT * math.cos(mean_lat)

    return LocalPosition(east=east, up=0.0, north=north)


@typechecked
def local_to_geo(position: LocalPosition, origin: GeoCoordinate) -> GeoCoordinate:
    """Convert a local position back to a geographic coordinate.

    Inverse of ``geo_to_local``: latitude is recovered first so the same
    mean-latitude cosine can be applied to the east offset.

    Args:
        position: Local position [m] (vertical component ignored)
        origin: Origin of the local frame

    Returns:
        Geographic coordinate
    """
    latitude = origin.latitude + position.north / METERS_PER_DEGREE_LAT

    mean_lat = math.radians(0.5 * (latitude + origin.latitude))
    d_lon = position.east / (METERS_PER_DEGREE_LAT * math.cos(mean_lat))

    return GeoCoordinate(latitude=latitude, longitude=origin.longitude + d_lon)


@typechecked
def geo_distance(a: GeoCoordinate, b: GeoCoordinate) -> float:
    """Ground distance between two coordinates [m], using the projection."""
    return geo_to_local(b, a).horizontal_distance_to(LocalPosition())


# =============================================================================
# World Origin
# =============================================================================


@typechecked
@dataclass
class WorldOrigin:
    """Geographic anchor of a mission's local frame.

    Attributes:
        origin: Origin coordinate
        name: Human-readable location name
        description: Free-form description
    """
    origin: GeoCoordinate = GeoCoordinate(19.432608, -99.133209)  # Mexico City
    name: str = "Mexico City"
    description: str = "GPS origin point for world coordinate mapping"

    @property
    def is_valid(self) -> bool:
        """True if the origin coordinate is within bounds."""
        return is_valid_geo(self.origin)

    def to_local(self, coord: GeoCoordinate) -> LocalPosition:
        """Convert a coordinate to this origin's local frame."""
        return geo_to_local(coord, self.origin)

    def to_geo(self, position: LocalPosition) -> GeoCoordinate:
        """Convert a local position to a coordinate."""
        return local_to_geo(position, self.origin)

    def __str__(self) -> str:
        return f"{self.name}: {self.origin}"
