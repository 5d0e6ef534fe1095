"""Waypoint navigation on top of the vehicle controller.

The navigator is a two-state machine::

    IDLE --go_to/add_waypoint--> NAVIGATING --reached, queue empty--> IDLE
                                     ^   |
                                     +---+ reached, next waypoint dequeued

On every logic tick while navigating it recomputes the straight-line
distance from the vehicle to the current target. Inside the reach
threshold it notifies observers, then either dequeues the next waypoint
or stops and reports completion.

Geographic targets are validated, projected into the local frame of the
configured origin and flown at the cruise altitude. Targets closer than
the minimum mission distance are flown anyway; only a warning is logged.

Example:
    >>> from flight.navigation import Navigator
    >>> from uavsim.geo import GeoCoordinate
    >>>
    >>> navigator = Navigator(vehicle)
    >>> navigator.on_navigation_completed.subscribe(lambda: print("done"))
    >>> navigator.go_to_geo(GeoCoordinate(19.4340, -99.1320))
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from enum import Enum, auto

from flight.control.vehicle import VehicleController
from flight.events import Event
from flight.navigation.mission import Mission
from flight.navigation.waypoints import Waypoint, WaypointQueue
from uavsim.checks import typechecked
from uavsim.geo import GeoCoordinate, LocalPosition, WorldOrigin

logger = logging.getLogger(__name__)

# =============================================================================
# Configuration and State
# =============================================================================


class NavigationState(Enum):
    IDLE = auto()
    NAVIGATING = auto()


@typechecked
@dataclass
class NavigatorConfig:
    """Navigator tuning.

    Attributes:
        minimum_distance: Targets closer than this trigger a warning [m]
        reach_threshold: Distance at which a target counts as reached [m]
        cruise_altitude: Altitude given to geographic targets [m]
        origin: Geographic anchor of the local frame
        progress_log_distance: Distance travelled between progress logs [m]
    """
    minimum_distance: float = 150.0
    reach_threshold: float = 5.0
    cruise_altitude: float = 50.0
    origin: WorldOrigin = field(default_factory=WorldOrigin)
    progress_log_distance: float = 10.0

    def __post_init__(self) -> None:
        if self.reach_threshold <= 0:
            raise ValueError(f"reach_threshold must be positive, got {self.reach_threshold}")
        if self.minimum_distance < 0:
            raise ValueError(f"minimum_distance must be >= 0, got {self.minimum_distance}")
        if not self.origin.is_valid:
            raise ValueError(f"Invalid origin coordinate: {self.origin.origin}")


@dataclass
class NavigationSession:
    """Progress toward the current target.

    Attributes:
        current_target: Local target, if navigating
        current_target_geo: Geographic target, if the target came from one
        distance_to_target: Straight-line distance at the last tick [m]
        is_navigating: True while a target is being flown to
    """
    current_target: LocalPosition | None = None
    current_target_geo: GeoCoordinate | None = None
    distance_to_target: float = 0.0
    is_navigating: bool = False


# =============================================================================
# Navigator
# =============================================================================


@typechecked
class Navigator:
    """Drives a vehicle through a sequence of targets.

    Attributes:
        vehicle: Controller that receives ``go_to`` commands
        queue: Pending waypoints, consumed in FIFO order
        config: Navigation tuning
    """

    def __init__(
        self,
        vehicle: VehicleController,
        queue: WaypointQueue | None = None,
        config: NavigatorConfig | None = None,
    ) -> None:
        self.vehicle = vehicle
        self.queue = queue if queue is not None else WaypointQueue()
        self.config = config if config is not None else NavigatorConfig()

        self._session = NavigationSession()
        self._last_logged_position = vehicle.position

        self.on_navigation_started = Event("navigation_started")
        self.on_target_reached = Event("target_reached")
        self.on_navigation_completed = Event("navigation_completed")
        self.on_invalid_input = Event("invalid_input")

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    @property
    def state(self) -> NavigationState:
        return NavigationState.NAVIGATING if self._session.is_navigating else NavigationState.IDLE

    @property
    def is_navigating(self) -> bool:
        return self._session.is_navigating and self._session.current_target is not None

    @property
    def session(self) -> NavigationSession:
        """Copy of the current session."""
        return replace(self._session)

    @property
    def distance_to_target(self) -> float:
        return self._session.distance_to_target

    @property
    def current_target(self) -> LocalPosition | None:
        return self._session.current_target

    @property
    def current_target_geo(self) -> GeoCoordinate | None:
        return self._session.current_target_geo

    @property
    def origin(self) -> GeoCoordinate:
        return self.config.origin.origin

    def set_origin(self, origin: GeoCoordinate) -> bool:
        """Replace the geographic origin. Out-of-bounds origins are rejected."""
        if not origin.is_valid:
            self._reject(f"Invalid GPS origin coordinates: {origin}")
            return False
        self.config.origin = replace(self.config.origin, origin=origin)
        logger.info("GPS origin set to %s", origin)
        return True

    # -------------------------------------------------------------------------
    # Targets
    # -------------------------------------------------------------------------

    def go_to_geo(self, target: GeoCoordinate) -> bool:
        """Fly to a geographic coordinate at the cruise altitude.

        Returns:
            False if the coordinate is out of bounds (nothing changes)
        """
        if not target.is_valid:
            self._reject(f"Invalid GPS coordinates: {target}")
            return False

        position = self.config.origin.to_local(target).with_up(self.config.cruise_altitude)
        logger.info("GPS target %s -> local position %s", target, position)
        return self._start(position, target)

    def go_to_local(self, position: LocalPosition) -> bool:
        """Fly to a local position."""
        return self._start(position, None)

    def _start(self, position: LocalPosition, geo: GeoCoordinate | None) -> bool:
        distance = self.vehicle.position.distance_to(position)
        if distance < self.config.minimum_distance:
            logger.warning(
                "Target distance (%.1f m) is less than minimum required (%.1f m). Proceeding anyway.",
                distance, self.config.minimum_distance,
            )

        self._session = NavigationSession(
            current_target=position,
            current_target_geo=geo,
            distance_to_target=distance,
            is_navigating=True,
        )
        self._last_logged_position = self.vehicle.position

        logger.info("En route to %s (distance: %.1f m)", position, distance)
        self.vehicle.go_to(position)
        self.on_navigation_started.emit(position)
        return True

    # -------------------------------------------------------------------------
    # Waypoints
    # -------------------------------------------------------------------------

    def add_waypoint(self, waypoint: Waypoint | LocalPosition) -> None:
        """Queue a waypoint; starts navigating if idle."""
        self.queue.enqueue(waypoint)
        if not self.is_navigating:
            self.process_queue()

    def add_waypoints(self, waypoints: Iterable[Waypoint | LocalPosition]) -> None:
        """Queue several waypoints in order; starts navigating if idle."""
        self.queue.enqueue_many(waypoints)
        if not self.is_navigating:
            self.process_queue()

    def add_geo_waypoint(self, target: GeoCoordinate) -> bool:
        """Queue a geographic waypoint at the cruise altitude."""
        if not target.is_valid:
            self._reject(f"Invalid GPS waypoint: {target}")
            return False
        position = self.config.origin.to_local(target).with_up(self.config.cruise_altitude)
        self.add_waypoint(position)
        return True

    def process_queue(self) -> bool:
        """Fly to the next queued waypoint, or stop if the queue is drained.

        Returns:
            True if a new waypoint was started
        """
        waypoint = self.queue.dequeue()
        if waypoint is None:
            self.stop()
            return False
        return self.go_to_local(waypoint.position)

    # -------------------------------------------------------------------------
    # Missions
    # -------------------------------------------------------------------------

    def handle_mission(self, mission: Mission) -> bool:
        """Start navigating to a mission's coordinate."""
        if not mission.is_valid:
            self._reject(f"Rejected invalid mission: {mission}")
            return False
        logger.info("Mission received, starting navigation to %s", mission.geo)
        return self.go_to_geo(mission.geo)

    # -------------------------------------------------------------------------
    # Cancellation
    # -------------------------------------------------------------------------

    def stop(self) -> None:
        """End the current session; the vehicle brakes and holds.

        Completion is reported only if a session was active.
        """
        was_navigating = self._session.is_navigating
        self._session = NavigationSession()
        self.vehicle.clear_target()
        if was_navigating:
            logger.info("Navigation stopped")
            self.on_navigation_completed.emit()

    def clear(self) -> None:
        """Stop and discard every queued waypoint."""
        self.stop()
        self.queue.clear()
        logger.info("Navigation cleared")

    # -------------------------------------------------------------------------
    # Ticks
    # -------------------------------------------------------------------------

    def tick_logic(self, now: float, dt: float) -> None:
        """Update distance to target and handle arrival."""
        if not self.is_navigating:
            return

        position = self.vehicle.position
        target = self._session.current_target
        self._session.distance_to_target = position.distance_to(target)

        if self._session.distance_to_target <= self.config.reach_threshold:
            logger.info(
                "Target reached: %s (distance: %.2f m)", target, self._session.distance_to_target
            )
            self.on_target_reached.emit(target)
            self.process_queue()
            return

        if position.distance_to(self._last_logged_position) > self.config.progress_log_distance:
            logger.info("En route - distance to target: %.1f m", self._session.distance_to_target)
            self._last_logged_position = position

    def tick_physics(self, dt: float) -> None:
        """Navigation has no fixed-rate work."""

    def _reject(self, reason: str) -> None:
        logger.error(reason)
        self.on_invalid_input.emit(reason)
