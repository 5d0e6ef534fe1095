"""Rigid body equations of motion for a multirotor.

Translational motion follows Newton's second law with forces expressed
in the local frame. Attitude is propagated kinematically from the body
rates, which decay under a simple rate damping term; torques are not
modelled (stabilization is handled by the tilt clamp in flight software).

Example:
    >>> from uavsim.dynamics import RigidBodyState, rigid_body_derivatives, rk4_step
    >>>
    >>> state = RigidBodyState.at_rest(mass_kg=1.2)
    >>> force = np.array([0.0, 1.2 * 9.81, 0.0])  # hover
    >>> new_state = rk4_step(state, 0.02, lambda s: rigid_body_derivatives(s, force))
"""

from collections.abc import Callable

import numpy as np
from numpy.typing import NDArray

from uavsim.checks import typechecked
from uavsim.dynamics.state import (
    RigidBodyState,
    StateDerivative,
    normalize_quaternion,
    project_on_horizontal,
    yaw_to_quaternion,
)
from uavsim.environment import G0

DerivativesFn = Callable[[RigidBodyState], StateDerivative]

# =============================================================================
# Rigid Body Dynamics
# =============================================================================


@typechecked
def quaternion_derivative(
    q: NDArray[np.float64],
    omega: NDArray[np.float64],
) -> NDArray[np.float64]:
    """Compute quaternion time derivative from angular velocity.

    Args:
        q: Current quaternion [q0, q1, q2, q3]
        omega: Angular velocity in body frame [rad/s]

    Returns:
        Quaternion derivative dq/dt
    """
    p, qb, r = omega  # Using qb to avoid confusion with quaternion q

    # Quaternion kinematics matrix
    omega_matrix = np.array([
        [0, -p, -qb, -r],
        [p, 0, r, -qb],
        [qb, -r, 0, p],
        [r, qb, -p, 0],
    ])

    return 0.5 * omega_matrix @ q


@typechecked
def gravity_force(mass: float, g: float = G0) -> NDArray[np.float64]:
    """Weight vector in the local frame [N]."""
    return np.array([0.0, -mass * g, 0.0])


@typechecked
def rigid_body_derivatives(
    state: RigidBodyState,
    force: NDArray[np.float64],
    rate_damping: float = 0.0,
) -> StateDerivative:
    """Compute state derivatives for translational motion and attitude kinematics.

    Args:
        state: Current vehicle state
        force: Total external force in the local frame, gravity included [N]
        rate_damping: Body-rate decay coefficient [1/s]

    Returns:
        State derivatives for integration
    """
    return StateDerivative(
        position_dot=state.velocity.copy(),
        velocity_dot=force / state.mass,
        quaternion_dot=quaternion_derivative(state.quaternion, state.angular_velocity),
        angular_velocity_dot=-rate_damping * state.angular_velocity,
    )


# =============================================================================
# Integration
# =============================================================================


@typechecked
def rk4_step(
    state: RigidBodyState,
    dt: float,
    derivatives_fn: DerivativesFn,
) -> RigidBodyState:
    """Perform one RK4 integration step.

    Args:
        state: Current state
        dt: Time step [s]
        derivatives_fn: Function that computes StateDerivative from RigidBodyState

    Returns:
        State at t + dt
    """
    y0 = state.to_array()
    t0 = state.time

    def f(t: float, y: NDArray[np.float64]) -> NDArray[np.float64]:
        s = RigidBodyState.from_array(y, t)
        return derivatives_fn(s).to_array()

    # RK4 stages
    k1 = f(t0, y0)
    k2 = f(t0 + dt/2, y0 + dt/2 * k1)
    k3 = f(t0 + dt/2, y0 + dt/2 * k2)
    k4 = f(t0 + dt, y0 + dt * k3)

    y1 = y0 + (dt / 6) * (k1 + 2*k2 + 2*k3 + k4)

    new_state = RigidBodyState.from_array(y1, t0 + dt)
    new_state.quaternion = normalize_quaternion(new_state.quaternion)

    return new_state


@typechecked
def integrate(
    initial_state: RigidBodyState,
    derivatives_fn: DerivativesFn,
    t_final: float,
    dt: float = 0.02,
    max_steps: int = 1000000,
) -> list[RigidBodyState]:
    """Integrate equations of motion over time.

    Args:
        initial_state: Initial state
        derivatives_fn: Function computing StateDerivative from RigidBodyState
        t_final: Final simulation time [s]
        dt: Time step [s]
        max_steps: Maximum number of steps

    Returns:
        List of states at each time step
    """
    states = [initial_state]
    state = initial_state.copy()

    n_steps = min(int(t_final / dt), max_steps)

    for _ in range(n_steps):
        state = rk4_step(state, dt, derivatives_fn)
        states.append(state)

        if state.time >= t_final:
            break

    return states


# =============================================================================
# Constraints
# =============================================================================


@typechecked
def apply_ground_contact(state: RigidBodyState, ground_height: float = 0.0) -> bool:
    """Keep the vehicle on or above the ground plane.

    Moves the vehicle back to ``ground_height`` and removes downward
    velocity when it has sunk below it.

    Returns:
        True if the vehicle is in contact with the ground
    """
    if state.position[1] > ground_height:
        return False
    state.position[1] = ground_height
    if state.velocity[1] < 0.0:
        state.velocity[1] = 0.0
    return True


@typechecked
def level_attitude(state: RigidBodyState) -> NDArray[np.float64]:
    """Level attitude that keeps the current heading.

    Equivalent to looking along the horizontal projection of the forward
    axis with world-up as the up vector.
    """
    fwd = project_on_horizontal(state.forward)
    if np.linalg.norm(fwd) < 1e-9:
        # Pointing straight up or down: recover heading from the up axis
        fwd = project_on_horizontal(-state.up_axis * np.sign(state.forward[1]))
    yaw = float(np.arctan2(fwd[0], fwd[2]))
    return yaw_to_quaternion(yaw)
