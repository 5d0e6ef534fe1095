"""Vehicle controller: command generation and rigid body propagation.

The controller owns the vehicle's physical state and runs on both
simulation cadences:

- ``tick_logic(now, dt)`` computes the vertical thrust and lateral
  acceleration commands (manual or automatic navigation).
- ``tick_physics(dt)`` applies the held commands, gravity and drag,
  integrates one RK4 step, enforces ground contact and smoothly pulls
  the attitude back toward level when tilt exceeds the limit.

Lifecycle: Disarmed -> Armed (arm/disarm). While armed, exactly one
control mode is active per tick, selected by the ``manual_input`` flag.
Without a flight profile the controller degrades to proportional-only
laws instead of failing.

Example:
    >>> from flight.control import VehicleController
    >>> from flight.profile import FlightProfile
    >>> from uavsim.geo import LocalPosition
    >>>
    >>> vehicle = VehicleController(FlightProfile())
    >>> vehicle.arm()
    >>> vehicle.take_off(20.0)
    >>> vehicle.go_to(LocalPosition(east=200.0, up=50.0, north=0.0))
"""

import logging
import math
from dataclasses import dataclass, field
from enum import Enum, auto

import numpy as np
from numpy.typing import NDArray

from flight.control.pid import AltitudeHold, VelocityController
from flight.events import Event
from flight.profile import FlightProfile, Setpoints
from uavsim.checks import typechecked
from uavsim.dynamics.rigid_body import (
    apply_ground_contact,
    gravity_force,
    level_attitude,
    rigid_body_derivatives,
    rk4_step,
)
from uavsim.dynamics.state import (
    RigidBodyState,
    axis_angle_to_quaternion,
    project_on_horizontal,
    quaternion_multiply,
    quaternion_slerp,
)
from uavsim.environment import G0, DistanceSource
from uavsim.geo import LocalPosition

logger = logging.getLogger(__name__)

# =============================================================================
# Constants
# =============================================================================

HORIZONTAL_DEAD_ZONE: float = 0.5  # [m]
ALTITUDE_DEAD_ZONE: float = 0.5  # [m]
FALLBACK_LATERAL_GAIN: float = 2.0  # [1/s^2]
FALLBACK_CLIMB_GAIN: float = 0.5  # [1/s]
APPROACH_SPEED_GAIN: float = 0.5  # speed setpoint per metre of remaining distance [1/s]
CROSS_TRACK_DAMPING: float = 1.0  # [1/s]
TILT_RECOVERY_RATE: float = 0.05  # slerp fraction per physics tick


# =============================================================================
# Types
# =============================================================================


class ControlMode(Enum):
    """Per-tick control mode while armed."""

    MANUAL = auto()    # Operator inputs map directly to commands
    AUTO_NAV = auto()  # Commands computed toward the target position


@typechecked
@dataclass
class ManualInput:
    """Operator stick inputs, each in [-1, 1].

    Attributes:
        forward: Forward (+) / backward (-)
        right: Right (+) / left (-)
        climb: Climb (+) / descend (-)
        yaw: Yaw right (+) / left (-)
    """
    forward: float = 0.0
    right: float = 0.0
    climb: float = 0.0
    yaw: float = 0.0

    def clamped(self) -> "ManualInput":
        """Copy with every axis limited to [-1, 1]."""
        return ManualInput(*(float(np.clip(v, -1.0, 1.0))
                             for v in (self.forward, self.right, self.climb, self.yaw)))


@typechecked
@dataclass(frozen=True)
class FallbackParams:
    """Airframe parameters used when no flight profile is configured."""
    mass_kg: float = 1.2
    max_tilt_deg: float = 25.0
    max_climb_rate: float = 3.0
    max_descent_rate: float = 2.0
    lateral_accel: float = 8.0
    yaw_rate_deg: float = 90.0


@dataclass
class VehicleState:
    """Telemetry snapshot of the vehicle.

    Attributes:
        armed: Motors armed
        in_flight: Take-off commanded and not disarmed since
        position: Position [m]
        velocity: Velocity [m/s]
        orientation: Attitude quaternion [q0, q1, q2, q3]
        target_position: Navigation target, if any
        has_target: True if a target is set
        thrust_command: Vertical thrust command [N]
        lateral_command: Lateral acceleration command [m/s^2]
    """
    armed: bool
    in_flight: bool
    position: LocalPosition
    velocity: NDArray[np.float64]
    orientation: NDArray[np.float64]
    target_position: LocalPosition | None
    has_target: bool
    thrust_command: float
    lateral_command: NDArray[np.float64] = field(default_factory=lambda: np.zeros(3))


# =============================================================================
# Vehicle Controller
# =============================================================================


@typechecked
class VehicleController:
    """Flight controller and rigid body for one multirotor.

    Attributes:
        profile: Flight profile, or None for proportional fallback control
        manual_input: True selects MANUAL mode, False selects AUTO_NAV
        ground_height: Height of the ground plane [m]
        drag_coefficient: Linear aerodynamic drag [N/(m/s)]
        rate_damping: Body-rate decay coefficient [1/s]
    """

    def __init__(
        self,
        profile: FlightProfile | None = None,
        initial_state: RigidBodyState | None = None,
        *,
        manual_input: bool = False,
        distance_source: DistanceSource | None = None,
        ground_height: float = 0.0,
        drag_coefficient: float = 0.3,
        rate_damping: float = 2.0,
    ) -> None:
        self.profile = profile
        self.fallback = FallbackParams()
        self.manual_input = manual_input
        self.ground_height = ground_height
        self.drag_coefficient = drag_coefficient
        self.rate_damping = rate_damping

        mass = profile.mass_kg if profile is not None else self.fallback.mass_kg
        self._body = initial_state.copy() if initial_state is not None else RigidBodyState.at_rest(
            LocalPosition(up=ground_height), mass_kg=mass
        )
        self._body.mass = mass

        if profile is not None:
            self.altitude_hold: AltitudeHold | None = AltitudeHold(profile, distance_source)
            self.speed_controller: VelocityController | None = VelocityController(profile)
            self.setpoints = Setpoints(altitude=self._body.altitude, speed=profile.target_speed)
            # Hold the current altitude until take-off or a target says otherwise
            self.altitude_hold.setpoint = self.setpoints.altitude
        else:
            logger.error("No flight profile configured; using proportional fallback control")
            self.altitude_hold = None
            self.speed_controller = None
            self.setpoints = Setpoints(altitude=self._body.altitude, speed=0.0)
        self._distance_source = distance_source

        # Flags
        self._armed = False
        self._in_flight = False
        self._target: LocalPosition | None = None

        # Commands held between logic ticks
        self._thrust_cmd = 0.0
        self._lateral_cmd = np.zeros(3)
        self._manual = ManualInput()

        # Events
        self.on_armed = Event("vehicle_armed")
        self.on_disarmed = Event("vehicle_disarmed")
        self.on_target_set = Event("target_set")

    # -------------------------------------------------------------------------
    # Parameters
    # -------------------------------------------------------------------------

    @property
    def mass(self) -> float:
        """Vehicle mass [kg]."""
        return self._body.mass

    @property
    def hover_thrust(self) -> float:
        """Thrust that cancels gravity [N]."""
        return self.mass * G0

    @property
    def max_tilt_deg(self) -> float:
        return self.profile.max_tilt_deg if self.profile else self.fallback.max_tilt_deg

    @property
    def lateral_accel_limit(self) -> float:
        return self.profile.lateral_accel if self.profile else self.fallback.lateral_accel

    @property
    def max_climb_rate(self) -> float:
        return self.profile.max_climb_rate if self.profile else self.fallback.max_climb_rate

    @property
    def max_descent_rate(self) -> float:
        return self.profile.max_descent_rate if self.profile else self.fallback.max_descent_rate

    @property
    def yaw_rate_deg(self) -> float:
        return self.profile.yaw_rate_deg if self.profile else self.fallback.yaw_rate_deg

    @property
    def mode(self) -> ControlMode:
        """Active control mode."""
        return ControlMode.MANUAL if self.manual_input else ControlMode.AUTO_NAV

    # -------------------------------------------------------------------------
    # Commands
    # -------------------------------------------------------------------------

    def arm(self) -> None:
        """Arm the motors and clear stale controller state."""
        if self._armed:
            return
        self._armed = True
        self._reset_controllers()
        self._thrust_cmd = self.hover_thrust
        logger.info("Vehicle armed")
        self.on_armed.emit()

    def disarm(self) -> None:
        """Disarm the motors, zero every command and leave flight."""
        was_armed = self._armed
        self._armed = False
        self._in_flight = False
        self._thrust_cmd = 0.0
        self._lateral_cmd = np.zeros(3)
        if was_armed:
            logger.info("Vehicle disarmed")
            self.on_disarmed.emit()

    def take_off(self, target_altitude: float = 1.5) -> None:
        """Command a climb to ``target_altitude`` [m] and mark the vehicle in flight."""
        if not self._armed:
            logger.warning("take_off requested while disarmed; commands are ignored until armed")
        self._set_altitude_setpoint(target_altitude)
        self._in_flight = True
        self._reset_controllers()
        logger.info("Take-off to %.1f m", target_altitude)

    def go_to(self, position: LocalPosition) -> None:
        """Set the navigation target; its vertical component becomes the altitude setpoint."""
        self._target = position
        self._set_altitude_setpoint(position.up)
        logger.info("Target set to %s", position)
        self.on_target_set.emit(position)

    def clear_target(self) -> None:
        """Drop the navigation target (the vehicle brakes and holds)."""
        self._target = None

    def set_manual_input(self, manual: ManualInput) -> None:
        """Latest operator inputs (used in MANUAL mode)."""
        self._manual = manual.clamped()

    def set_distance_source(self, source: DistanceSource | None) -> None:
        """Attach a downward distance source for terrain-relative altitude."""
        self._distance_source = source
        if self.altitude_hold is not None:
            self.altitude_hold.set_distance_source(source)

    def apply_disturbance(self, body_rates: NDArray[np.float64]) -> None:
        """Add an angular velocity disturbance (e.g. a gust) [rad/s]."""
        self._body.angular_velocity = self._body.angular_velocity + body_rates

    def set_position(self, position: LocalPosition) -> None:
        """Place the vehicle at rest at ``position``."""
        self._body.position = position.to_array()
        self._body.velocity = np.zeros(3)

    def set_attitude(self, quaternion: NDArray[np.float64]) -> None:
        """Directly set vehicle attitude (for stabilization testing)."""
        self._body.quaternion = quaternion / np.linalg.norm(quaternion)

    def _set_altitude_setpoint(self, altitude: float) -> None:
        if not math.isclose(self.setpoints.altitude, altitude):
            direction = "climb" if altitude > self.setpoints.altitude else "descend"
            logger.debug("Altitude setpoint %.2f -> %.2f m (%s)",
                         self.setpoints.altitude, altitude, direction)
        self.setpoints.altitude = float(altitude)
        if self.altitude_hold is not None:
            self.altitude_hold.setpoint = altitude

    def _reset_controllers(self) -> None:
        if self.altitude_hold is not None:
            self.altitude_hold.reset()
        if self.speed_controller is not None:
            self.speed_controller.reset()

    # -------------------------------------------------------------------------
    # Logic tick
    # -------------------------------------------------------------------------

    def tick_logic(self, now: float, dt: float) -> None:
        """Compute thrust and lateral commands for the current state."""
        if not self._armed:
            return

        if self.mode is ControlMode.MANUAL:
            self._update_manual()
        else:
            self._update_auto(now)

    def _update_manual(self) -> None:
        inputs = self._manual
        fwd = self._horizontal_unit(self._body.forward)
        right = self._horizontal_unit(self._body.right)
        limit = self.lateral_accel_limit
        self._lateral_cmd = fwd * (inputs.forward * limit) + right * (inputs.right * limit)

        rate_limit = self.max_climb_rate if inputs.climb > 0 else self.max_descent_rate
        climb_accel = inputs.climb * rate_limit
        self._thrust_cmd = max(0.0, self.hover_thrust + self.mass * climb_accel)

    def _update_auto(self, now: float) -> None:
        self._lateral_cmd = self._lateral_command(now)
        self._thrust_cmd = self._vertical_command(now)

    def _lateral_command(self, now: float) -> NDArray[np.float64]:
        velocity_h = project_on_horizontal(self._body.velocity)

        if self._target is None:
            # Hold position: brake horizontal velocity
            return self._limit(-CROSS_TRACK_DAMPING * velocity_h)

        offset = project_on_horizontal(self._target.to_array() - self._body.position)
        distance = float(np.linalg.norm(offset))
        if distance <= HORIZONTAL_DEAD_ZONE:
            return np.zeros(3)

        direction = offset / distance

        if self.speed_controller is None:
            return direction * min(self.lateral_accel_limit, distance * FALLBACK_LATERAL_GAIN)

        along_speed = float(np.dot(velocity_h, direction))
        self.speed_controller.setpoint = min(self.setpoints.speed, APPROACH_SPEED_GAIN * distance)
        forward_thrust = self.speed_controller.compute(along_speed, now)

        cross_track = velocity_h - along_speed * direction
        accel = direction * (forward_thrust / self.mass) - CROSS_TRACK_DAMPING * cross_track
        return self._limit(accel)

    def _vertical_command(self, now: float) -> float:
        altitude = self._body.altitude
        error = self.setpoints.altitude - altitude

        # Climb/descend bias outside the dead-zone, continuous at its edge
        bias = 0.0
        if abs(error) > ALTITUDE_DEAD_ZONE:
            excess = math.copysign(abs(error) - ALTITUDE_DEAD_ZONE, error)
            climb = float(np.clip(excess * FALLBACK_CLIMB_GAIN,
                                  -self.max_descent_rate, self.max_climb_rate))
            bias = self.mass * climb

        if self.altitude_hold is None:
            return max(0.0, self.hover_thrust + bias)

        thrust = self.altitude_hold.compute(altitude, now)
        if self.altitude_hold.using_terrain_relative:
            # Terrain-relative error differs from the absolute one used for the bias
            return thrust
        return float(np.clip(thrust + bias, 0.0, self.profile.max_vertical_thrust))

    def _horizontal_unit(self, v: NDArray[np.float64]) -> NDArray[np.float64]:
        h = project_on_horizontal(v)
        norm = np.linalg.norm(h)
        return h / norm if norm > 1e-9 else np.zeros(3)

    def _limit(self, accel: NDArray[np.float64]) -> NDArray[np.float64]:
        magnitude = float(np.linalg.norm(accel))
        limit = self.lateral_accel_limit
        if magnitude > limit:
            return accel * (limit / magnitude)
        return accel

    # -------------------------------------------------------------------------
    # Physics tick
    # -------------------------------------------------------------------------

    def tick_physics(self, dt: float) -> None:
        """Apply forces, integrate one fixed step and enforce constraints."""
        if dt <= 0:
            return

        force = gravity_force(self.mass) - self.drag_coefficient * self._body.velocity
        if self._armed:
            force = force + self._body.up_axis * self._thrust_cmd + self._lateral_cmd * self.mass

        rate_damping = self.rate_damping
        self._body = rk4_step(
            self._body, dt, lambda s: rigid_body_derivatives(s, force, rate_damping)
        )

        apply_ground_contact(self._body, self.ground_height)
        self._clamp_tilt()

        if self._armed and self.mode is ControlMode.MANUAL and abs(self._manual.yaw) > 0.01:
            yaw_delta = math.radians(self.yaw_rate_deg) * self._manual.yaw * dt
            q_yaw = axis_angle_to_quaternion(np.array([0.0, 1.0, 0.0]), yaw_delta)
            self._body.quaternion = quaternion_multiply(q_yaw, self._body.quaternion)

    def _clamp_tilt(self) -> None:
        pitch, roll = self._body.tilt_angles_deg
        limit = self.max_tilt_deg
        if abs(pitch) > limit or abs(roll) > limit:
            target = level_attitude(self._body)
            self._body.quaternion = quaternion_slerp(self._body.quaternion, target, TILT_RECOVERY_RATE)

    # -------------------------------------------------------------------------
    # Telemetry
    # -------------------------------------------------------------------------

    @property
    def armed(self) -> bool:
        return self._armed

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    @property
    def has_target(self) -> bool:
        return self._target is not None

    @property
    def target_position(self) -> LocalPosition | None:
        return self._target

    @property
    def position(self) -> LocalPosition:
        """Current position [m]."""
        return self._body.local_position

    @property
    def velocity(self) -> NDArray[np.float64]:
        """Current velocity [m/s] (copy)."""
        return self._body.velocity.copy()

    @property
    def thrust_command(self) -> float:
        """Held vertical thrust command [N]."""
        return self._thrust_cmd

    @property
    def lateral_command(self) -> NDArray[np.float64]:
        """Held lateral acceleration command [m/s^2] (copy)."""
        return self._lateral_cmd.copy()

    def altitude_error(self) -> float:
        """Altitude setpoint minus (effective) altitude [m]."""
        if self.altitude_hold is not None:
            return self.altitude_hold.current_error(self._body.altitude)
        return self.setpoints.altitude - self._body.altitude

    def velocity_error(self) -> float:
        """Speed setpoint minus horizontal speed [m/s]."""
        if self.speed_controller is not None:
            return self.speed_controller.current_error(self._body.horizontal_speed)
        return 0.0

    def altitude_agl(self) -> float:
        """Height above ground [m], from the distance source when in range."""
        if self._distance_source is not None and self._distance_source.in_range():
            reading = self._distance_source.distance()
            if reading is not None:
                return reading
        return self._body.altitude - self.ground_height

    def snapshot(self) -> RigidBodyState:
        """Copy of the rigid body state."""
        return self._body.copy()

    def status(self) -> VehicleState:
        """Telemetry snapshot."""
        return VehicleState(
            armed=self._armed,
            in_flight=self._in_flight,
            position=self.position,
            velocity=self.velocity,
            orientation=self._body.quaternion.copy(),
            target_position=self._target,
            has_target=self.has_target,
            thrust_command=self._thrust_cmd,
            lateral_command=self.lateral_command,
        )
