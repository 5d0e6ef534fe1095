"""Dynamics module for multirotor rigid body simulation.

This module provides the equations of motion and state representation
for simulating a multirotor in the local east-up-north frame.

Example:
    >>> from uavsim.dynamics import RigidBodyState, rigid_body_derivatives, rk4_step
    >>> import numpy as np
    >>>
    >>> state = RigidBodyState.at_rest(mass_kg=1.2)
    >>> force = np.array([0.0, 20.0, 0.0])
    >>> state = rk4_step(state, 0.02, lambda s: rigid_body_derivatives(s, force))
"""

from uavsim.dynamics.rigid_body import (
    apply_ground_contact,
    gravity_force,
    integrate,
    level_attitude,
    quaternion_derivative,
    rigid_body_derivatives,
    rk4_step,
)
from uavsim.dynamics.state import (
    RigidBodyState,
    StateDerivative,
    axis_angle_to_quaternion,
    normalize_quaternion,
    quaternion_conjugate,
    quaternion_multiply,
    quaternion_slerp,
    quaternion_to_dcm,
    yaw_to_quaternion,
)

__all__ = [
    # State
    "RigidBodyState",
    "StateDerivative",
    # Quaternion utilities
    "quaternion_to_dcm",
    "quaternion_multiply",
    "quaternion_conjugate",
    "quaternion_slerp",
    "normalize_quaternion",
    "axis_angle_to_quaternion",
    "yaw_to_quaternion",
    # Rigid body dynamics
    "rigid_body_derivatives",
    "quaternion_derivative",
    "gravity_force",
    "apply_ground_contact",
    "level_attitude",
    # Integration
    "integrate",
    "rk4_step",
]
