#!/usr/bin/env python
"""Example: Lawnmower area search flown in closed loop.

This script demonstrates the separation between:
- Simulation infrastructure (uavsim/) - the "plant" / truth model
- Flight software (flight/) - control, navigation and search

The loop follows the flight computer's cadence:
1. Physics ticks apply thrust and integrate motion
2. Logic tick: navigator checks arrival and feeds the next waypoint
3. Logic tick: vehicle controller turns the target into commands

Usage:
    uv run python scripts/area_search_mission.py
"""

import logging
from pathlib import Path

from flight.control import VehicleController
from flight.guidance import LawnmowerPattern, SearchAreaConfig
from flight.navigation import Navigator, NavigatorConfig
from flight.profile import FlightProfile
from uavsim.geo import GeoCoordinate, LocalPosition, WorldOrigin
from uavsim.simulation import SimConfig, SimulationResult, Simulator


def run_area_search():
    """Survey a 100 m square centered on the origin at 50 m."""
    print("=" * 60)
    print("AREA SEARCH MISSION")
    print("=" * 60)

    # =========================================================================
    # Mission Configuration
    # =========================================================================
    ORIGIN = GeoCoordinate(19.432608, -99.133209)
    AREA_SIZE = 100.0      # Square side [m]
    ALTITUDE = 50.0        # Survey altitude [m]
    SENSOR_WIDTH = 20.0    # Sensor swath [m]
    OVERLAP = 10.0         # Overlap between passes [%]

    profile = FlightProfile()
    vehicle = VehicleController(profile)
    navigator = Navigator(
        vehicle,
        config=NavigatorConfig(cruise_altitude=ALTITUDE, origin=WorldOrigin(ORIGIN)),
    )
    pattern = LawnmowerPattern(
        SearchAreaConfig(
            center=LocalPosition(),
            area_size=AREA_SIZE,
            altitude=ALTITUDE,
            sensor_width=SENSOR_WIDTH,
            overlap_percent=OVERLAP,
        ),
        navigator=navigator,
    )

    reached = []
    navigator.on_target_reached.subscribe(reached.append)

    sim = Simulator([vehicle, navigator], SimConfig(max_time=900.0), state_fn=vehicle.snapshot)

    print(f"\nVehicle: {profile.mass_kg:.1f} kg, hover thrust {profile.hover_thrust:.2f} N")
    print(f"Search area: {AREA_SIZE:.0f} m square at {ALTITUDE:.0f} m")

    # =========================================================================
    # Fly
    # =========================================================================
    vehicle.arm()
    vehicle.take_off(ALTITUDE)
    result = pattern.execute()

    print(f"Pattern: {result.passes} passes, {len(result)} waypoints, "
          f"{result.coverage_percent:.1f}% coverage")

    finished = sim.run_until(lambda: not navigator.is_navigating, timeout=800.0)

    # =========================================================================
    # Results
    # =========================================================================
    print("\n" + "=" * 60)
    print("RESULTS")
    print("=" * 60)
    print(f"  Completed:         {finished}")
    print(f"  Mission time:      {sim.time:.1f} s")
    print(f"  Waypoints reached: {len(reached)}/{len(result)}")
    print(f"  Final position:    {vehicle.position}")
    print(f"  Final GPS:         {navigator.config.origin.to_geo(vehicle.position)}")

    trajectory = SimulationResult.from_simulator(sim)
    print(f"  Altitude RMS (t >= 60 s): {trajectory.altitude_rms_error(ALTITUDE, after=60.0):.2f} m")

    return sim, trajectory


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s: %(message)s")

    sim, trajectory = run_area_search()

    output = Path("outputs/area_search.csv")
    output.parent.mkdir(parents=True, exist_ok=True)
    trajectory.to_dataframe().write_csv(output)
    print(f"\nTrajectory saved to: {output}")
