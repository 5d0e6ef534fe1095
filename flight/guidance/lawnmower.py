"""Boustrophedon (lawnmower) area search.

Sweeps a square area with parallel east-west passes stacked along the
north axis, alternating direction every pass:

    N  ^   <-----------<   pass 3
       |   >----------->   pass 2
       |   <-----------<   pass 1
       |   >----------->   pass 0
       +------------------> E

Pass spacing is the step distance reduced by the overlap, or, with
coverage optimization, the sensor footprint reduced by the overlap
(capped at 90% of the area). One extra pass is flown so the far edge is
always swept. With a positive turn radius a single smoothing waypoint is
inserted midway between the end of a pass and the start of the next.

Coverage is estimated analytically from the footprint:

    passes   = ceil(area / step)
    covered  = passes * sensor - (passes - 1) * sensor * overlap / 100
    coverage = min(100, covered / area * 100)

Example:
    >>> from flight.guidance import LawnmowerPattern, SearchAreaConfig
    >>>
    >>> pattern = LawnmowerPattern(SearchAreaConfig(area_size=100.0, sensor_width=20.0))
    >>> result = pattern.generate()
    >>> result.coverage_percent
    100.0
"""

import logging

import numpy as np

from flight.guidance.search_pattern import (
    COVERAGE_REQUIREMENT,
    GeneratedPattern,
    SearchPattern,
    passes_for,
)
from uavsim.checks import typechecked
from uavsim.geo import LocalPosition

logger = logging.getLogger(__name__)

# Optimized spacing never exceeds this fraction of the area side
MAX_STEP_FRACTION: float = 0.9


@typechecked
class LawnmowerPattern(SearchPattern):
    """Back-and-forth sweep over a square area."""

    # -------------------------------------------------------------------------
    # Geometry
    # -------------------------------------------------------------------------

    def _has_valid_geometry(self) -> bool:
        return self.config.area_size > 0 and self.config.step_distance > 0

    def optimized_step_distance(self) -> float:
        """Pass spacing derived from the sensor footprint [m]."""
        cfg = self.config
        if cfg.sensor_width <= 0:
            return self.effective_step_distance()
        step = cfg.sensor_width * cfg.overlap_factor
        return min(step, cfg.area_size * MAX_STEP_FRACTION)

    def pattern_step(self) -> float:
        """Spacing between adjacent passes [m]."""
        if self.config.optimize_for_coverage and self.config.sensor_width > 0:
            return self.optimized_step_distance()
        return self.effective_step_distance()

    def pass_count(self) -> int:
        """Passes flown, including the extra far-edge pass."""
        if not self._has_valid_geometry():
            return 0
        step = self.pattern_step()
        if step <= 0:
            return 0
        return passes_for(self.config.area_size, step) + 1

    def _pass_north(self, index: int, passes: int, south: float, north: float) -> float:
        progress = index / (passes - 1)
        if self.config.start_from_bottom:
            value = south + (north - south) * progress
        else:
            value = north + (south - north) * progress
        return float(np.clip(value, south, north))

    # -------------------------------------------------------------------------
    # Generation
    # -------------------------------------------------------------------------

    def generate_waypoints(self) -> list[LocalPosition]:
        """Compute the sweep waypoints.

        Returns an empty list (and logs an error) for a non-positive area
        size, step distance or pass spacing.
        """
        cfg = self.config
        if not self._has_valid_geometry():
            logger.error(
                "Invalid parameters: area_size=%s, step_distance=%s", cfg.area_size, cfg.step_distance
            )
            return []

        step = self.pattern_step()
        if step <= 0:
            logger.error("Invalid pass spacing %.3f m (overlap %.1f%%)", step, cfg.overlap_percent)
            return []

        passes = passes_for(cfg.area_size, step) + 1
        logger.debug(
            "Generating pattern: %d passes, %.2f m step, %.1f m area", passes, step, cfg.area_size
        )

        half = 0.5 * cfg.area_size
        west, east = cfg.center.east - half, cfg.center.east + half
        south, north = cfg.center.north - half, cfg.center.north + half
        altitude = cfg.altitude

        waypoints: list[LocalPosition] = []
        right_to_left = not cfg.left_to_right_first
        for i in range(passes):
            y = self._pass_north(i, passes, south, north)
            if right_to_left:
                start, end = LocalPosition(east, altitude, y), LocalPosition(west, altitude, y)
            else:
                start, end = LocalPosition(west, altitude, y), LocalPosition(east, altitude, y)
            waypoints.append(start)
            waypoints.append(end)

            if i < passes - 1 and cfg.turn_radius > 0:
                next_y = self._pass_north(i + 1, passes, south, north)
                # The next pass starts on the side this one ended
                next_start = LocalPosition(end.east, altitude, next_y)
                waypoints.append(end.lerp(next_start, 0.5))

            right_to_left = not right_to_left

        logger.info("Generated %d waypoints for lawnmower pattern", len(waypoints))
        return waypoints

    def calculate_coverage(self) -> float:
        """Analytic coverage estimate [%]; 0 for degenerate configurations."""
        cfg = self.config
        if not self._has_valid_geometry() or cfg.sensor_width <= 0:
            return 0.0

        step = self.pattern_step()
        if step <= 0:
            return 0.0

        passes = passes_for(cfg.area_size, step)
        total_width = passes * cfg.sensor_width
        overlap_width = (passes - 1) * cfg.sensor_width * cfg.overlap_percent / 100.0
        coverage = min(100.0, (total_width - overlap_width) / cfg.area_size * 100.0)

        if coverage < COVERAGE_REQUIREMENT:
            logger.warning(
                "Coverage (%.1f%%) below %.0f%% requirement. Consider adjusting parameters.",
                coverage, COVERAGE_REQUIREMENT,
            )
        logger.debug(
            "Coverage calculation: %.1f%% (%d passes, %.1f m effective width)",
            coverage, passes, total_width - overlap_width,
        )
        return coverage

    # -------------------------------------------------------------------------
    # Execution
    # -------------------------------------------------------------------------

    def validate_configuration(self) -> bool:
        """Check the configuration before execution.

        Non-positive area size or step distance are errors; a zero sensor
        width or a step larger than the area only warn.
        """
        cfg = self.config
        valid = True
        if cfg.area_size <= 0:
            logger.error("Area size must be greater than 0")
            valid = False
        if cfg.step_distance <= 0:
            logger.error("Step distance must be greater than 0")
            valid = False
        if cfg.sensor_width <= 0:
            logger.warning("Sensor width should be greater than 0 for coverage calculation")
        if cfg.step_distance > cfg.area_size:
            logger.warning(
                "Step distance is larger than area size; this may result in incomplete coverage"
            )
        return valid

    def execute(self) -> GeneratedPattern:
        """Validate, generate and hand the sweep to navigation."""
        if not self.validate_configuration():
            logger.error("Configuration validation failed. Pattern not executed.")
            self.clear()
            return self.pattern

        pattern = super().execute()
        if pattern.waypoints:
            if pattern.meets_requirement:
                logger.info("Pattern meets coverage requirement: %.1f%%", pattern.coverage_percent)
            else:
                logger.warning(
                    "Pattern coverage (%.1f%%) is below %.0f%% requirement",
                    pattern.coverage_percent, COVERAGE_REQUIREMENT,
                )
        return pattern
