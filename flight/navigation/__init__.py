"""Navigation: waypoint queueing, target tracking and missions.

Available components:
    WaypointQueue: FIFO of pending targets with reach detection
    Navigator: Drives the vehicle controller through queued targets
    Mission: Description plus geographic target
"""

from flight.navigation.mission import Mission, load_mission
from flight.navigation.navigator import (
    NavigationSession,
    NavigationState,
    Navigator,
    NavigatorConfig,
)
from flight.navigation.waypoints import (
    Waypoint,
    WaypointQueue,
    dump_waypoints,
    load_waypoints,
    waypoints_from_records,
)

__all__ = [
    # Waypoints
    "Waypoint",
    "WaypointQueue",
    "load_waypoints",
    "dump_waypoints",
    "waypoints_from_records",
    # Navigator
    "Navigator",
    "NavigatorConfig",
    "NavigationSession",
    "NavigationState",
    # Missions
    "Mission",
    "load_mission",
]
