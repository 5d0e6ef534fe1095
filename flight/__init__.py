"""Flight software package - control, navigation and search for multirotors.

This package contains the algorithms that would run on the flight
computer. They are developed and tested against the simulation
infrastructure in uavsim/.

Architecture:
    The simulation (uavsim/) provides the "plant" - rigid body motion,
    frames and the tick loop. Flight software (flight/) provides the
    algorithms that command the vehicle.

    Data flow:
        pattern.execute()                # Search area -> waypoints
        navigator.tick_logic(now, dt)    # Waypoint -> vehicle target
        vehicle.tick_logic(now, dt)      # Target -> thrust commands
        vehicle.tick_physics(dt)         # Commands -> motion

Subpackages:
    control: PID controllers and the vehicle controller
    navigation: Waypoint queue, navigator and missions
    guidance: Area search patterns

Example:
    >>> from flight.control import VehicleController
    >>> from flight.guidance import LawnmowerPattern, SearchAreaConfig
    >>> from flight.navigation import Navigator
    >>> from flight.profile import FlightProfile
    >>> from uavsim.simulation import Simulator
    >>>
    >>> vehicle = VehicleController(FlightProfile())
    >>> navigator = Navigator(vehicle)
    >>> pattern = LawnmowerPattern(SearchAreaConfig(), navigator=navigator)
    >>>
    >>> vehicle.arm()
    >>> vehicle.take_off(50.0)
    >>> pattern.execute()
    >>> Simulator([vehicle, navigator]).run_until(lambda: not navigator.is_navigating)
"""

from flight.control import AltitudeHold, PIDController, VehicleController, VelocityController
from flight.events import Event, Subscription
from flight.guidance import LawnmowerPattern, SearchAreaConfig
from flight.navigation import Mission, Navigator, NavigatorConfig, WaypointQueue
from flight.profile import FlightProfile, PIDGains, Setpoints

__all__ = [
    "AltitudeHold",
    "Event",
    "FlightProfile",
    "LawnmowerPattern",
    "Mission",
    "Navigator",
    "NavigatorConfig",
    "PIDController",
    "PIDGains",
    "SearchAreaConfig",
    "Setpoints",
    "Subscription",
    "VehicleController",
    "VelocityController",
    "WaypointQueue",
]
