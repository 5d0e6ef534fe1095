"""Mission record consumed by the navigator.

A mission is a description plus a single geographic coordinate. Only
missions with a non-blank description and an in-bounds coordinate are
flown.
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from uavsim.checks import typechecked
from uavsim.geo import GeoCoordinate

logger = logging.getLogger(__name__)


@typechecked
@dataclass(frozen=True)
class Mission:
    """Search mission.

    Attributes:
        description: What to search for
        latitude: Target latitude [deg]
        longitude: Target longitude [deg]
    """
    description: str
    latitude: float
    longitude: float

    @property
    def geo(self) -> GeoCoordinate:
        return GeoCoordinate(self.latitude, self.longitude)

    @property
    def is_valid(self) -> bool:
        """True if the description is not blank and the coordinate is in bounds."""
        return bool(self.description.strip()) and self.geo.is_valid

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Mission":
        """Create a mission from ``{"description", "latitude", "longitude"}``.

        Raises:
            ValueError: If a field is missing or has the wrong type
        """
        try:
            return cls(
                description=str(data["description"]),
                latitude=float(data["latitude"]),
                longitude=float(data["longitude"]),
            )
        except (KeyError, TypeError, ValueError) as err:
            raise ValueError(f"Malformed mission record: {err}") from err

    def __str__(self) -> str:
        return f"Mission: {self.description} | GPS: ({self.latitude:.6f}, {self.longitude:.6f})"


@typechecked
def load_mission(path: str | Path) -> Mission | None:
    """Load and validate a mission from a JSON file.

    Returns:
        The mission, or None if the file is missing, malformed or invalid
    """
    path = Path(path)
    if not path.exists():
        logger.error("Mission file not found: %s", path)
        return None

    text = path.read_text()
    if not text.strip():
        logger.error("Mission file is empty: %s", path)
        return None

    try:
        data = json.loads(text)
        if not isinstance(data, dict):
            raise ValueError("mission file must contain a JSON object")
        mission = Mission.from_dict(data)
    except ValueError as err:
        # JSONDecodeError is a ValueError
        logger.error("Failed to parse mission %s: %s", path, err)
        return None

    if not mission.is_valid:
        logger.error("Loaded mission is invalid: %s", mission)
        return None

    logger.info("Mission loaded: %s", mission)
    return mission
