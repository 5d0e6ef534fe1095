"""Unit tests for the vehicle controller.

Closed-loop tests drive the controller through the Simulator so that the
logic and physics cadences interleave as they do in a mission.
"""

import logging
import math

import numpy as np
import pytest
from numpy.testing import assert_allclose

from flight.control import ControlMode, ManualInput, VehicleController
from flight.profile import FlightProfile
from uavsim.dynamics.state import RigidBodyState, axis_angle_to_quaternion
from uavsim.environment import G0, TerrainRangeFinder
from uavsim.geo import LocalPosition
from uavsim.simulation import SimConfig, SimulationResult, Simulator


def make_sim(vehicle: VehicleController) -> Simulator:
    return Simulator([vehicle], SimConfig(physics_dt=0.02, logic_dt=1.0 / 60.0), state_fn=vehicle.snapshot)


def fly(vehicle: VehicleController, duration: float) -> SimulationResult:
    sim = make_sim(vehicle)
    sim.run(duration)
    return SimulationResult.from_simulator(sim)


@pytest.fixture
def vehicle():
    return VehicleController(FlightProfile())


# =============================================================================
# Lifecycle Tests
# =============================================================================


class TestLifecycle:
    """Arm/disarm state machine and commands."""

    def test_starts_disarmed_on_ground(self, vehicle):
        assert not vehicle.armed
        assert not vehicle.in_flight
        assert not vehicle.has_target
        assert vehicle.position == LocalPosition()
        assert vehicle.mode is ControlMode.AUTO_NAV

    def test_arm_emits_once(self, vehicle):
        calls = []
        vehicle.on_armed.subscribe(lambda: calls.append("armed"))
        vehicle.arm()
        vehicle.arm()
        assert vehicle.armed
        assert calls == ["armed"]
        assert_allclose(vehicle.thrust_command, 1.2 * G0)

    def test_disarm_zeroes_commands(self, vehicle):
        calls = []
        vehicle.on_disarmed.subscribe(lambda: calls.append("disarmed"))
        vehicle.arm()
        vehicle.take_off(10.0)
        vehicle.go_to(LocalPosition(50.0, 10.0, 0.0))
        vehicle.tick_logic(0.0, 0.02)
        vehicle.tick_logic(0.1, 0.02)

        vehicle.disarm()
        assert not vehicle.armed
        assert not vehicle.in_flight
        assert vehicle.thrust_command == 0.0
        assert_allclose(vehicle.lateral_command, np.zeros(3))
        assert calls == ["disarmed"]

        vehicle.disarm()
        assert calls == ["disarmed"]

    def test_take_off_resets_controllers(self, vehicle):
        vehicle.arm()
        vehicle.take_off(20.0)
        fly(vehicle, 2.0)
        assert vehicle.altitude_hold.integral_sum != 0.0

        vehicle.take_off(30.0)
        assert vehicle.in_flight
        assert vehicle.setpoints.altitude == 30.0
        assert vehicle.altitude_hold.setpoint == 30.0
        assert vehicle.altitude_hold.integral_sum == 0.0
        assert not vehicle.altitude_hold.pid.state.initialized
        assert not vehicle.speed_controller.pid.state.initialized

    def test_take_off_while_disarmed_warns(self, vehicle, caplog):
        with caplog.at_level(logging.WARNING, logger="flight.control.vehicle"):
            vehicle.take_off(5.0)
        assert "disarmed" in caplog.text

    def test_go_to_sets_target_and_altitude(self, vehicle):
        targets = []
        vehicle.on_target_set.subscribe(targets.append)
        target = LocalPosition(10.0, 35.0, -5.0)
        vehicle.go_to(target)

        assert vehicle.has_target
        assert vehicle.target_position == target
        assert vehicle.setpoints.altitude == 35.0
        assert targets == [target]

        vehicle.clear_target()
        assert not vehicle.has_target
        assert vehicle.target_position is None

    def test_disarmed_logic_tick_is_ignored(self, vehicle):
        vehicle.go_to(LocalPosition(100.0, 0.0, 0.0))
        vehicle.tick_logic(0.0, 0.02)
        assert vehicle.thrust_command == 0.0
        assert_allclose(vehicle.lateral_command, np.zeros(3))

    def test_status_snapshot(self, vehicle):
        vehicle.arm()
        status = vehicle.status()
        assert status.armed
        assert status.position == vehicle.position
        assert status.target_position is None
        assert_allclose(status.orientation, [1.0, 0.0, 0.0, 0.0])


# =============================================================================
# Physics Tests
# =============================================================================


class TestPhysics:
    """Force application, ground contact and tilt stabilization."""

    def test_disarmed_vehicle_falls(self):
        start = RigidBodyState.at_rest(LocalPosition(up=10.0))
        vehicle = VehicleController(FlightProfile(), start)
        for _ in range(50):
            vehicle.tick_physics(0.02)
        assert vehicle.position.up < 10.0
        assert vehicle.velocity[1] < 0.0

        for _ in range(500):
            vehicle.tick_physics(0.02)
        assert vehicle.position.up == 0.0

    def test_hover_thrust_holds_on_ground(self, vehicle):
        vehicle.arm()
        for _ in range(100):
            vehicle.tick_physics(0.02)
        assert_allclose(vehicle.position.up, 0.0, atol=1e-9)

    def test_non_positive_physics_dt_ignored(self, vehicle):
        before = vehicle.snapshot()
        vehicle.tick_physics(0.0)
        assert_allclose(vehicle.snapshot().to_array(), before.to_array())

    def test_tilt_is_smoothed_not_snapped(self):
        start = RigidBodyState.at_rest(LocalPosition(up=50.0))
        vehicle = VehicleController(FlightProfile(max_tilt_deg=25.0), start)
        vehicle.set_attitude(axis_angle_to_quaternion(np.array([1.0, 0.0, 0.0]), math.radians(40.0)))

        vehicle.tick_physics(0.02)
        pitch, _ = vehicle.snapshot().tilt_angles_deg
        assert 30.0 < abs(pitch) < 40.0

        for _ in range(200):
            vehicle.tick_physics(0.02)
        pitch, roll = vehicle.snapshot().tilt_angles_deg
        assert abs(pitch) <= 25.0 + 1e-6
        assert abs(roll) <= 25.0 + 1e-6

    def test_disturbance_decays(self, vehicle):
        vehicle.apply_disturbance(np.array([0.5, 0.0, 0.0]))
        for _ in range(250):
            vehicle.tick_physics(0.02)
        assert np.linalg.norm(vehicle.snapshot().angular_velocity) < 0.01


# =============================================================================
# Closed-Loop Tests
# =============================================================================


class TestAutoNav:
    """Automatic navigation toward a target."""

    def test_take_off_converges(self, vehicle):
        vehicle.arm()
        vehicle.take_off(20.0)
        result = fly(vehicle, 120.0)

        assert result.altitude_rms_error(20.0, after=90.0) < 0.5
        assert abs(vehicle.altitude_error()) < 0.5

    def test_flies_to_target(self, vehicle):
        vehicle.arm()
        vehicle.take_off(20.0)
        sim = make_sim(vehicle)
        sim.run(20.0)

        target = LocalPosition(40.0, 20.0, -30.0)
        vehicle.go_to(target)
        sim.run(90.0)

        assert vehicle.position.horizontal_distance_to(target) < 2.0
        assert abs(vehicle.position.up - 20.0) < 1.0

    def test_lateral_command_limited(self, vehicle):
        vehicle.arm()
        vehicle.go_to(LocalPosition(1000.0, 0.0, 0.0))
        for i in range(30):
            vehicle.tick_logic(i * 0.1, 0.1)
            assert np.linalg.norm(vehicle.lateral_command) <= vehicle.profile.lateral_accel + 1e-9

    def test_dead_zone(self, vehicle):
        vehicle.arm()
        vehicle.go_to(LocalPosition(0.3, 0.0, 0.2))
        vehicle.tick_logic(0.0, 0.1)
        vehicle.tick_logic(0.1, 0.1)
        assert_allclose(vehicle.lateral_command, np.zeros(3))

    def test_thrust_within_limits(self, vehicle):
        vehicle.arm()
        vehicle.take_off(200.0)
        for i in range(20):
            vehicle.tick_logic(i * 0.1, 0.1)
            assert 0.0 <= vehicle.thrust_command <= vehicle.profile.max_vertical_thrust

    def test_velocity_error_telemetry(self, vehicle):
        assert vehicle.velocity_error() == vehicle.profile.target_speed


class TestFallback:
    """Degraded control without a flight profile."""

    def test_missing_profile_is_logged(self, caplog):
        with caplog.at_level(logging.ERROR, logger="flight.control.vehicle"):
            vehicle = VehicleController(None)
        assert "fallback" in caplog.text
        assert vehicle.altitude_hold is None
        assert vehicle.mass == 1.2
        assert vehicle.max_tilt_deg == 25.0

    def test_proportional_lateral_law(self):
        vehicle = VehicleController()
        vehicle.arm()
        vehicle.go_to(LocalPosition(100.0, 0.0, 0.0))
        vehicle.tick_logic(0.0, 0.02)
        assert_allclose(vehicle.lateral_command, [8.0, 0.0, 0.0])

        vehicle.go_to(LocalPosition(0.0, 0.0, 2.0))
        vehicle.tick_logic(0.02, 0.02)
        assert_allclose(vehicle.lateral_command, [0.0, 0.0, 4.0])

    def test_fallback_climbs_to_target(self):
        vehicle = VehicleController()
        vehicle.arm()
        vehicle.take_off(10.0)
        fly(vehicle, 40.0)
        assert abs(vehicle.position.up - 10.0) < 1.0


class TestManual:
    """Operator input mode."""

    def test_manual_commands(self):
        vehicle = VehicleController(FlightProfile(), manual_input=True)
        assert vehicle.mode is ControlMode.MANUAL
        vehicle.arm()
        vehicle.set_manual_input(ManualInput(forward=2.0, climb=0.5))
        vehicle.tick_logic(0.0, 0.02)

        # Level at yaw 0: forward is north
        assert_allclose(vehicle.lateral_command, [0.0, 0.0, 8.0], atol=1e-12)
        assert_allclose(vehicle.thrust_command, 1.2 * G0 + 1.2 * 0.5 * 3.0)

    def test_descent_thrust_never_negative(self):
        # Descent rate above g asks for negative thrust
        vehicle = VehicleController(FlightProfile(max_descent_rate=15.0), manual_input=True)
        vehicle.arm()
        vehicle.set_manual_input(ManualInput(climb=-1.0))
        vehicle.tick_logic(0.0, 0.02)
        assert vehicle.thrust_command == 0.0

    def test_yaw_input_turns_right(self):
        vehicle = VehicleController(FlightProfile(yaw_rate_deg=90.0), manual_input=True)
        vehicle.arm()
        vehicle.set_manual_input(ManualInput(yaw=1.0))
        for _ in range(50):
            vehicle.tick_physics(0.02)
        assert_allclose(vehicle.snapshot().yaw, math.pi / 2, atol=1e-6)


class TestTerrainRelative:
    """Distance source integration."""

    def test_altitude_agl_uses_distance_source(self):
        start = RigidBodyState.at_rest(LocalPosition(up=30.0))
        vehicle = VehicleController(FlightProfile(), start)
        assert vehicle.altitude_agl() == 30.0

        finder = TerrainRangeFinder(position_fn=lambda: vehicle.position, terrain_fn=lambda e, n: 12.0)
        vehicle.set_distance_source(finder)
        assert_allclose(vehicle.altitude_agl(), 18.0)
        assert vehicle.altitude_hold.using_terrain_relative
        assert_allclose(vehicle.altitude_error(), 30.0 - 18.0)
