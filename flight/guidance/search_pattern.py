"""Area search pattern base.

A search pattern turns a ``SearchAreaConfig`` into an ordered list of
local waypoints plus an analytic coverage estimate. Generation and
coverage are pure; only ``execute`` has side effects: it notifies
observers and hands the waypoints to a ``WaypointQueue`` (preferred) or
directly to a ``Navigator``.

Subclasses implement ``generate_waypoints`` and ``calculate_coverage``.
"""

import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from flight.events import Event
from flight.navigation.navigator import Navigator
from flight.navigation.waypoints import WaypointQueue
from uavsim.checks import typechecked
from uavsim.geo import LocalPosition

logger = logging.getLogger(__name__)

# Coverage below this is reported as not meeting the search requirement
COVERAGE_REQUIREMENT: float = 90.0  # [%]

MIN_AREA_SIZE: float = 1.0  # [m]
MIN_STEP_DISTANCE: float = 0.1  # [m]
MIN_ALTITUDE: float = 1.0  # [m]
MIN_SENSOR_WIDTH: float = 0.1  # [m]
OVERLAP_LIMITS: tuple[float, float] = (0.0, 50.0)  # [%]


# =============================================================================
# Configuration
# =============================================================================


@typechecked
@dataclass
class SearchAreaConfig:
    """Square search area and sweep parameters.

    Direct construction accepts any value so that degenerate areas can
    be expressed; the ``set_*`` methods clamp to usable ranges.

    Attributes:
        center: Center of the area in the local frame [m]
        area_size: Side length of the square area [m]
        altitude: Search altitude [m]
        step_distance: Distance between parallel passes [m]
        overlap_percent: Overlap between adjacent passes [%]
        sensor_width: Ground footprint width of the sensor [m]
        start_from_bottom: Stack passes south to north (else north to south)
        left_to_right_first: First pass runs west to east (else east to west)
        turn_radius: Adds a turn waypoint between passes when > 0 [m]
        optimize_for_coverage: Derive the pass spacing from the sensor width
    """
    center: LocalPosition = field(default_factory=LocalPosition)
    area_size: float = 100.0
    altitude: float = 50.0
    step_distance: float = 10.0
    overlap_percent: float = 10.0
    sensor_width: float = 20.0
    start_from_bottom: bool = True
    left_to_right_first: bool = True
    turn_radius: float = 5.0
    optimize_for_coverage: bool = True

    def set_center(self, center: LocalPosition) -> None:
        self.center = center
        logger.debug("Center position set to %s", center)

    def set_area_size(self, size: float) -> None:
        self.area_size = max(MIN_AREA_SIZE, size)
        logger.debug("Area size set to %.1f m", self.area_size)

    def set_step_distance(self, distance: float) -> None:
        self.step_distance = max(MIN_STEP_DISTANCE, distance)
        logger.debug("Step distance set to %.2f m", self.step_distance)

    def set_overlap_percent(self, overlap: float) -> None:
        self.overlap_percent = min(max(overlap, OVERLAP_LIMITS[0]), OVERLAP_LIMITS[1])
        logger.debug("Overlap set to %.1f%%", self.overlap_percent)

    def set_altitude(self, altitude: float) -> None:
        self.altitude = max(MIN_ALTITUDE, altitude)
        logger.debug("Altitude set to %.1f m", self.altitude)

    def set_sensor_width(self, width: float) -> None:
        self.sensor_width = max(MIN_SENSOR_WIDTH, width)
        logger.debug("Sensor width set to %.1f m", self.sensor_width)

    def set_turn_radius(self, radius: float) -> None:
        self.turn_radius = max(0.0, radius)
        logger.debug("Turn radius set to %.1f m", self.turn_radius)

    def set_pattern_direction(self, start_from_bottom: bool, left_to_right_first: bool) -> None:
        self.start_from_bottom = start_from_bottom
        self.left_to_right_first = left_to_right_first
        logger.debug(
            "Pattern direction: start from %s, first pass %s",
            "bottom" if start_from_bottom else "top",
            "left-to-right" if left_to_right_first else "right-to-left",
        )

    def set_coverage_optimization(self, enabled: bool) -> None:
        self.optimize_for_coverage = enabled
        logger.debug("Coverage optimization %s", "enabled" if enabled else "disabled")

    @property
    def overlap_factor(self) -> float:
        """Fraction of each pass not shared with its neighbour."""
        return 1.0 - self.overlap_percent / 100.0


@dataclass
class GeneratedPattern:
    """Result of one generation call.

    Attributes:
        waypoints: Ordered waypoints in the local frame
        coverage_percent: Estimated area coverage [%], in [0, 100]
        passes: Number of parallel passes flown
    """
    waypoints: list[LocalPosition] = field(default_factory=list)
    coverage_percent: float = 0.0
    passes: int = 0

    @property
    def meets_requirement(self) -> bool:
        """True if the coverage reaches the search requirement."""
        return self.coverage_percent >= COVERAGE_REQUIREMENT

    def __len__(self) -> int:
        return len(self.waypoints)


# =============================================================================
# Search Pattern
# =============================================================================


@typechecked
class SearchPattern(ABC):
    """Base class for area search patterns.

    Attributes:
        config: Area and sweep parameters
        queue: Receives the waypoints on ``execute`` (preferred)
        navigator: Receives the waypoints when there is no queue
    """

    def __init__(
        self,
        config: SearchAreaConfig | None = None,
        queue: WaypointQueue | None = None,
        navigator: Navigator | None = None,
    ) -> None:
        self.config = config if config is not None else SearchAreaConfig()
        self.queue = queue
        self.navigator = navigator

        self._pattern = GeneratedPattern()

        self.on_waypoints_generated = Event("waypoints_generated")
        self.on_coverage_calculated = Event("coverage_calculated")

    @property
    def name(self) -> str:
        return type(self).__name__

    @abstractmethod
    def generate_waypoints(self) -> list[LocalPosition]:
        """Compute the pattern's waypoints for the current configuration."""

    @abstractmethod
    def calculate_coverage(self) -> float:
        """Estimate the covered fraction of the area [%]."""

    def pass_count(self) -> int:
        """Number of parallel passes in the generated pattern."""
        return 0

    def effective_step_distance(self) -> float:
        """Step distance reduced by the overlap [m]."""
        return self.config.step_distance * self.config.overlap_factor

    def generate(self) -> GeneratedPattern:
        """Generate waypoints and coverage and keep them as the current pattern."""
        waypoints = self.generate_waypoints()
        coverage = self.calculate_coverage() if waypoints else 0.0
        self._pattern = GeneratedPattern(
            waypoints=waypoints,
            coverage_percent=coverage,
            passes=self.pass_count() if waypoints else 0,
        )
        return self._pattern

    def execute(self) -> GeneratedPattern:
        """Generate the pattern and hand its waypoints to navigation."""
        pattern = self.generate()
        if not pattern.waypoints:
            logger.warning("[%s] No waypoints generated for search pattern", self.name)
            return pattern

        logger.info(
            "[%s] Generated %d waypoints with %.1f%% coverage",
            self.name, len(pattern.waypoints), pattern.coverage_percent,
        )
        self.on_waypoints_generated.emit(list(pattern.waypoints))
        self.on_coverage_calculated.emit(pattern.coverage_percent)

        if self.queue is not None:
            self.queue.enqueue_many(pattern.waypoints)
            logger.info("[%s] Waypoints added to navigation queue", self.name)
        elif self.navigator is not None:
            self.navigator.add_waypoints(pattern.waypoints)
            logger.info("[%s] Waypoints added directly to navigator", self.name)
        else:
            logger.error("[%s] No navigator or waypoint queue to execute the pattern", self.name)
        return pattern

    @property
    def waypoints(self) -> list[LocalPosition]:
        """Waypoints of the last generated pattern (copy)."""
        return list(self._pattern.waypoints)

    @property
    def coverage(self) -> float:
        """Coverage of the last generated pattern [%]."""
        return self._pattern.coverage_percent

    @property
    def pattern(self) -> GeneratedPattern:
        return self._pattern

    def clear(self) -> None:
        """Forget the last generated pattern."""
        self._pattern = GeneratedPattern()
        logger.debug("[%s] Waypoints cleared", self.name)


def passes_for(span: float, step: float) -> int:
    """Passes of width ``step`` needed to span ``span``."""
    return math.ceil(span / step)
