"""Control algorithms for multirotor vehicles.

Control turns setpoints and navigation targets into thrust and
lateral acceleration commands.

Available controllers:
    PIDController: Generic PID with anti-windup and feed-forward baseline
    AltitudeHold: Vertical thrust from altitude error (optional terrain mode)
    VelocityController: Forward thrust from speed error
    VehicleController: Arm/disarm state machine and rigid body propagation
"""

from flight.control.pid import (
    EPSILON,
    AltitudeHold,
    PIDController,
    PidState,
    VelocityController,
)
from flight.control.vehicle import (
    ControlMode,
    FallbackParams,
    ManualInput,
    VehicleController,
    VehicleState,
)

__all__ = [
    "EPSILON",
    "PIDController",
    "PidState",
    "AltitudeHold",
    "VelocityController",
    "VehicleController",
    "VehicleState",
    "ControlMode",
    "ManualInput",
    "FallbackParams",
]
