"""Flight profile configuration.

Tuning parameters are split from runtime setpoints:

- ``FlightProfile`` holds the static tuning (mass, limits, PID gains).
  It is read by the controllers; runtime tuning produces a new profile
  with ``with_updates`` rather than mutating one shared instance.
- ``Setpoints`` holds the commanded altitude and speed; each controller
  owns its own instance.

Profiles round-trip through JSON with ``load_profile``/``save_profile``.

Example:
    >>> from flight.profile import FlightProfile, PIDGains
    >>>
    >>> profile = FlightProfile(mass_kg=1.5, altitude_gains=PIDGains(kp=2.0, ki=0.1, kd=0.8))
    >>> tuned = profile.with_updates(max_vertical_thrust=30.0)
"""

import json
import logging
from dataclasses import asdict, dataclass, field, fields, replace
from pathlib import Path
from typing import Any

from uavsim.checks import typechecked
from uavsim.environment import G0

logger = logging.getLogger(__name__)

# =============================================================================
# PID Gains
# =============================================================================


@typechecked
@dataclass(frozen=True)
class PIDGains:
    """PID controller gains.

    Attributes:
        kp: Proportional gain
        ki: Integral gain
        kd: Derivative gain
    """
    kp: float = 1.0
    ki: float = 0.0
    kd: float = 0.0


# =============================================================================
# Flight Profile
# =============================================================================


@typechecked
@dataclass(frozen=True)
class FlightProfile:
    """Tuning parameters for one airframe.

    Attributes:
        mass_kg: Vehicle mass [kg]
        max_tilt_deg: Maximum pitch/roll before stabilization [deg]
        max_climb_rate: Maximum commanded climb rate [m/s]
        max_descent_rate: Maximum commanded descent rate [m/s]
        lateral_accel: Lateral acceleration limit [m/s^2]
        yaw_rate_deg: Manual yaw rate [deg/s]
        target_altitude: Default altitude setpoint [m]
        target_speed: Default horizontal speed setpoint [m/s]
        altitude_gains: Altitude hold PID gains
        speed_gains: Forward speed PID gains
        max_vertical_thrust: Vertical thrust limit [N]
        max_forward_thrust: Forward thrust limit [N]
    """
    mass_kg: float = 1.2
    max_tilt_deg: float = 25.0
    max_climb_rate: float = 3.0
    max_descent_rate: float = 2.0
    lateral_accel: float = 8.0
    yaw_rate_deg: float = 90.0

    target_altitude: float = 20.0
    altitude_gains: PIDGains = field(default_factory=lambda: PIDGains(1.0, 0.1, 0.5))
    max_vertical_thrust: float = 20.0

    target_speed: float = 10.0
    speed_gains: PIDGains = field(default_factory=lambda: PIDGains(1.0, 0.1, 0.5))
    max_forward_thrust: float = 15.0

    def __post_init__(self) -> None:
        """Validate ranges."""
        if self.mass_kg <= 0:
            raise ValueError(f"mass_kg must be positive, got {self.mass_kg}")
        if not 0 < self.max_tilt_deg < 90:
            raise ValueError(f"max_tilt_deg must be in (0, 90), got {self.max_tilt_deg}")
        if self.max_vertical_thrust < 0:
            raise ValueError(f"max_vertical_thrust must be >= 0, got {self.max_vertical_thrust}")
        if self.max_forward_thrust < 0:
            raise ValueError(f"max_forward_thrust must be >= 0, got {self.max_forward_thrust}")
        if self.max_climb_rate < 0 or self.max_descent_rate < 0:
            raise ValueError("Climb and descent rates must be >= 0")
        if self.lateral_accel < 0:
            raise ValueError(f"lateral_accel must be >= 0, got {self.lateral_accel}")
        if self.hover_thrust > self.max_vertical_thrust:
            logger.warning(
                "Hover thrust %.2f N exceeds max_vertical_thrust %.2f N; vehicle cannot hold altitude",
                self.hover_thrust, self.max_vertical_thrust,
            )

    @property
    def hover_thrust(self) -> float:
        """Thrust that exactly cancels gravity [N]."""
        return self.mass_kg * G0

    def with_updates(self, **changes: Any) -> "FlightProfile":
        """Return a copy with the given fields replaced (validated)."""
        return replace(self, **changes)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FlightProfile":
        """Create a profile from a plain mapping.

        Gains may be given as ``{"kp": .., "ki": .., "kd": ..}`` mappings.

        Raises:
            ValueError: On unknown keys or out-of-range values
        """
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown flight profile keys: {sorted(unknown)}")

        kwargs = dict(data)
        for key in ("altitude_gains", "speed_gains"):
            if key in kwargs and isinstance(kwargs[key], dict):
                kwargs[key] = PIDGains(**kwargs[key])
        return cls(**kwargs)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-compatible mapping."""
        return asdict(self)


@typechecked
@dataclass
class Setpoints:
    """Runtime commands owned by a single controller.

    Attributes:
        altitude: Commanded altitude [m]
        speed: Commanded horizontal speed [m/s]
    """
    altitude: float = 0.0
    speed: float = 0.0

    @classmethod
    def from_profile(cls, profile: FlightProfile) -> "Setpoints":
        """Initial setpoints from a profile's defaults."""
        return cls(altitude=profile.target_altitude, speed=profile.target_speed)


# =============================================================================
# Persistence
# =============================================================================


@typechecked
def load_profile(path: str | Path) -> FlightProfile:
    """Load a flight profile from a JSON file.

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the content is not a valid profile
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Flight profile not found at {path}")

    try:
        data = json.loads(path.read_text())
    except json.JSONDecodeError as err:
        raise ValueError(f"Flight profile {path} is not valid JSON: {err}") from err

    if not isinstance(data, dict):
        raise ValueError(f"Flight profile {path} must contain a JSON object")

    profile = FlightProfile.from_dict(data)
    logger.info("Loaded flight profile from %s", path)
    return profile


@typechecked
def save_profile(profile: FlightProfile, path: str | Path) -> Path:
    """Write a flight profile to a JSON file."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(profile.to_dict(), indent=2))
    return path
