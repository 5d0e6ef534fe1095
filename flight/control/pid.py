"""PID controller implementation.

Provides a general-purpose PID controller with:
- Timestamp-driven updates (dt derived from a monotonic clock)
- Neutral first output after construction/reset (no derivative spike)
- Non-positive dt rejection (duplicate or out-of-order ticks)
- Anti-windup bounded by the actuator limit
- Feed-forward baseline and output saturation

and the two airframe controllers built on it:

- ``AltitudeHold``: hover feed-forward, thrust in [0, max_vertical_thrust],
  optional terrain-relative altitude from a ``DistanceSource``.
- ``VelocityController``: forward thrust in [-max_forward_thrust, +max_forward_thrust].

Example:
    >>> from flight.control import AltitudeHold
    >>> from flight.profile import FlightProfile
    >>>
    >>> hold = AltitudeHold(FlightProfile())
    >>> hold.setpoint = 20.0
    >>> thrust = hold.compute(altitude, now=sim.time)
"""

import logging
from dataclasses import dataclass, field

import numpy as np

from flight.profile import FlightProfile, PIDGains
from uavsim.checks import typechecked
from uavsim.environment import DistanceSource

logger = logging.getLogger(__name__)

# Keeps the anti-windup bound finite when ki == 0
EPSILON: float = 0.001

# =============================================================================
# PID State
# =============================================================================


@dataclass
class PidState:
    """Mutable per-controller state.

    Attributes:
        previous_error: Error at the last accepted update
        integral_sum: Accumulated error * dt
        last_timestamp: Time of the last accepted update [s]
        initialized: False until the first compute after construction/reset
        last_output: Output returned by the last update
    """
    previous_error: float = 0.0
    integral_sum: float = 0.0
    last_timestamp: float = 0.0
    initialized: bool = False
    last_output: float = 0.0


# =============================================================================
# PID Controller
# =============================================================================


@typechecked
@dataclass
class PIDController:
    """General-purpose PID controller.

    Implements the parallel PID form with a feed-forward baseline:
        u = baseline + kp * e + ki * integral(e) + kd * de/dt

    with e = setpoint - measurement.

    Attributes:
        gains: Proportional, integral and derivative gains
        output_limits: (min, max) output limits
        baseline: Feed-forward term added before saturation
        neutral_output: Output on the first call and on rejected ticks;
            defaults to the saturated baseline
        setpoint: Target value for the measurement
    """
    gains: PIDGains = field(default_factory=PIDGains)
    output_limits: tuple[float, float] = (-1.0, 1.0)
    baseline: float = 0.0
    neutral_output: float | None = None
    setpoint: float = 0.0

    # Internal state
    state: PidState = field(default_factory=PidState, init=False, repr=False)

    def __post_init__(self) -> None:
        lo, hi = self.output_limits
        if lo > hi:
            raise ValueError(f"output_limits must be (min, max), got {self.output_limits}")
        if self.neutral_output is None:
            self.neutral_output = self._saturate(self.baseline)

    @property
    def integral_limit(self) -> float:
        """Anti-windup bound on the integral sum."""
        output_limit = max(abs(self.output_limits[0]), abs(self.output_limits[1]))
        return output_limit / (self.gains.ki + EPSILON)

    def _saturate(self, value: float) -> float:
        return float(np.clip(value, self.output_limits[0], self.output_limits[1]))

    def reset(self) -> None:
        """Reset controller state (integral, error history, initialization)."""
        self.state = PidState()

    def current_error(self, measurement: float) -> float:
        """Setpoint minus measurement, without touching controller state."""
        return self.setpoint - measurement

    def compute(self, measurement: float, now: float) -> float:
        """Compute control output.

        Args:
            measurement: Current value of the controlled quantity
            now: Monotonic time of this update [s]

        Returns:
            Saturated control output
        """
        error = self.setpoint - measurement
        state = self.state

        if not state.initialized:
            state.initialized = True
            state.last_timestamp = now
            state.previous_error = error
            state.last_output = self.neutral_output
            return state.last_output

        dt = now - state.last_timestamp
        if dt <= 0:
            logger.debug("Discarding non-positive dt %.6f", dt)
            return state.last_output

        # Proportional term
        p_term = self.gains.kp * error

        # Integral term with anti-windup
        limit = self.integral_limit
        state.integral_sum = float(np.clip(state.integral_sum + error * dt, -limit, limit))
        i_term = self.gains.ki * state.integral_sum

        # Derivative term
        d_term = self.gains.kd * (error - state.previous_error) / dt

        state.previous_error = error
        state.last_timestamp = now

        state.last_output = self._saturate(self.baseline + p_term + i_term + d_term)
        return state.last_output


# =============================================================================
# Airframe Controllers
# =============================================================================


@typechecked
class AltitudeHold:
    """Altitude controller producing total vertical thrust [N].

    The baseline is the hover thrust (mass * g), so the PID only
    corrects around equilibrium. When a distance source is attached and
    terrain-relative mode is on, an in-range reading replaces the raw
    altitude before the error is computed; otherwise the absolute
    altitude is used.
    """

    def __init__(
        self,
        profile: FlightProfile,
        distance_source: DistanceSource | None = None,
    ) -> None:
        self.profile = profile
        self.pid = PIDController(
            gains=profile.altitude_gains,
            output_limits=(0.0, profile.max_vertical_thrust),
            baseline=profile.hover_thrust,
            setpoint=profile.target_altitude,
        )
        self._distance_source = distance_source
        self._terrain_relative = distance_source is not None

    @property
    def setpoint(self) -> float:
        """Commanded altitude [m]."""
        return self.pid.setpoint

    @setpoint.setter
    def setpoint(self, value: float) -> None:
        self.pid.setpoint = float(value)

    @property
    def hover_thrust(self) -> float:
        """Neutral output [N]."""
        return self.pid.neutral_output

    @property
    def distance_source(self) -> DistanceSource | None:
        """Attached distance source, if any."""
        return self._distance_source

    def set_distance_source(self, source: DistanceSource | None) -> None:
        """Attach or detach a distance source; terrain mode follows its presence."""
        self._distance_source = source
        self._terrain_relative = source is not None

    def set_terrain_relative(self, enabled: bool) -> None:
        """Enable terrain-relative mode (only effective with a distance source)."""
        self._terrain_relative = enabled and self._distance_source is not None

    @property
    def using_terrain_relative(self) -> bool:
        """True if terrain-relative mode is active."""
        return self._terrain_relative and self._distance_source is not None

    def effective_altitude(self, altitude: float) -> float:
        """Altitude fed to the PID: terrain distance when available, else ``altitude``."""
        if self.using_terrain_relative and self._distance_source.in_range():
            reading = self._distance_source.distance()
            if reading is not None:
                return reading
        return altitude

    def compute(self, altitude: float, now: float) -> float:
        """Vertical thrust [N] for the current altitude."""
        return self.pid.compute(self.effective_altitude(altitude), now)

    def current_error(self, altitude: float) -> float:
        """Altitude error [m] (setpoint - effective altitude)."""
        return self.pid.current_error(self.effective_altitude(altitude))

    def reset(self) -> None:
        """Clear integral and error history."""
        self.pid.reset()

    @property
    def integral_sum(self) -> float:
        """Accumulated altitude error [m*s]."""
        return self.pid.state.integral_sum


@typechecked
class VelocityController:
    """Forward speed controller producing forward thrust [N]."""

    def __init__(self, profile: FlightProfile) -> None:
        self.profile = profile
        self.pid = PIDController(
            gains=profile.speed_gains,
            output_limits=(-profile.max_forward_thrust, profile.max_forward_thrust),
            baseline=0.0,
            setpoint=profile.target_speed,
        )

    @property
    def setpoint(self) -> float:
        """Commanded speed [m/s]."""
        return self.pid.setpoint

    @setpoint.setter
    def setpoint(self, value: float) -> None:
        self.pid.setpoint = float(value)

    def compute(self, speed: float, now: float) -> float:
        """Forward thrust [N] for the current speed."""
        return self.pid.compute(speed, now)

    def current_error(self, speed: float) -> float:
        """Speed error [m/s]."""
        return self.pid.current_error(speed)

    def reset(self) -> None:
        """Clear integral and error history."""
        self.pid.reset()

    @property
    def integral_sum(self) -> float:
        """Accumulated speed error [m]."""
        return self.pid.state.integral_sum
