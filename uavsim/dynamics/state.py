"""Rigid body state representation for multirotor simulation.

The state vector contains:
- Position (3): [east, up, north] in the local frame [m]
- Velocity (3): [ve, vu, vn] in the local frame [m/s]
- Quaternion (4): [q0, q1, q2, q3] attitude (scalar-first convention)
- Angular velocity (3): body rates [rad/s]
- Mass (1): vehicle mass [kg]

Total: 14 state variables

Coordinate frames:
- Local: east-up-north, anchored at the mission origin (see uavsim.geo)
- Body: X right, Y up, Z forward

Quaternion convention:
- Scalar-first: q = [q0, q1, q2, q3] where q0 is the scalar part
- Rotates body-frame vectors into the local frame
"""

import math
from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray

from uavsim.checks import typechecked
from uavsim.geo import LocalPosition

# Body axes expressed in the body frame
BODY_RIGHT = np.array([1.0, 0.0, 0.0])
BODY_UP = np.array([0.0, 1.0, 0.0])
BODY_FORWARD = np.array([0.0, 0.0, 1.0])

WORLD_UP = np.array([0.0, 1.0, 0.0])

# =============================================================================
# Quaternion Utilities
# =============================================================================


@typechecked
def normalize_quaternion(q: NDArray[np.float64]) -> NDArray[np.float64]:
    """Normalize a quaternion to unit length."""
    norm = np.linalg.norm(q)
    if norm < 1e-10:
        return np.array([1.0, 0.0, 0.0, 0.0])
    return q / norm


@typechecked
def quaternion_multiply(q1: NDArray[np.float64], q2: NDArray[np.float64]) -> NDArray[np.float64]:
    """Multiply two quaternions (Hamilton product).

    Args:
        q1: First quaternion [q0, q1, q2, q3]
        q2: Second quaternion [q0, q1, q2, q3]

    Returns:
        Product quaternion q1 * q2
    """
    w1, x1, y1, z1 = q1
    w2, x2, y2, z2 = q2

    return np.array([
        w1*w2 - x1*x2 - y1*y2 - z1*z2,
        w1*x2 + x1*w2 + y1*z2 - z1*y2,
        w1*y2 - x1*z2 + y1*w2 + z1*x2,
        w1*z2 + x1*y2 - y1*x2 + z1*w2,
    ])


@typechecked
def quaternion_conjugate(q: NDArray[np.float64]) -> NDArray[np.float64]:
    """Compute quaternion conjugate (inverse for unit quaternions)."""
    return np.array([q[0], -q[1], -q[2], -q[3]])


@typechecked
def quaternion_to_dcm(q: NDArray[np.float64]) -> NDArray[np.float64]:
    """Convert quaternion to Direction Cosine Matrix (DCM).

    Args:
        q: Quaternion [q0, q1, q2, q3] representing rotation from frame A to B

    Returns:
        3x3 DCM that transforms vectors from frame A to frame B
    """
    q = normalize_quaternion(q)
    q0, q1, q2, q3 = q

    return np.array([
        [1 - 2*(q2**2 + q3**2), 2*(q1*q2 - q0*q3), 2*(q1*q3 + q0*q2)],
        [2*(q1*q2 + q0*q3), 1 - 2*(q1**2 + q3**2), 2*(q2*q3 - q0*q1)],
        [2*(q1*q3 - q0*q2), 2*(q2*q3 + q0*q1), 1 - 2*(q1**2 + q2**2)],
    ])


@typechecked
def axis_angle_to_quaternion(axis: NDArray[np.float64], angle: float) -> NDArray[np.float64]:
    """Quaternion for a rotation of ``angle`` [rad] about ``axis``."""
    norm = np.linalg.norm(axis)
    if norm < 1e-10:
        return np.array([1.0, 0.0, 0.0, 0.0])
    axis = axis / norm
    half = 0.5 * angle
    return np.concatenate([[math.cos(half)], math.sin(half) * axis])


@typechecked
def quaternion_slerp(
    q_from: NDArray[np.float64],
    q_to: NDArray[np.float64],
    t: float,
) -> NDArray[np.float64]:
    """Spherical linear interpolation between two attitudes.

    Takes the short path (flips ``q_to`` if the dot product is negative).

    Args:
        q_from: Start quaternion
        q_to: End quaternion
        t: Interpolation fraction in [0, 1]

    Returns:
        Interpolated unit quaternion
    """
    a = normalize_quaternion(q_from)
    b = normalize_quaternion(q_to)

    dot = float(np.dot(a, b))
    if dot < 0.0:
        b = -b
        dot = -dot

    # Nearly parallel: fall back to normalized lerp
    if dot > 0.9995:
        return normalize_quaternion(a + t * (b - a))

    theta_0 = math.acos(dot)
    theta = theta_0 * t
    sin_0 = math.sin(theta_0)

    s_a = math.sin(theta_0 - theta) / sin_0
    s_b = math.sin(theta) / sin_0
    return normalize_quaternion(s_a * a + s_b * b)


@typechecked
def yaw_to_quaternion(yaw: float) -> NDArray[np.float64]:
    """Level attitude with heading ``yaw`` [rad] (0 = north, positive toward east)."""
    return axis_angle_to_quaternion(WORLD_UP.copy(), yaw)


@typechecked
def signed_angle(
    v_from: NDArray[np.float64],
    v_to: NDArray[np.float64],
    axis: NDArray[np.float64],
) -> float:
    """Signed angle [rad] from ``v_from`` to ``v_to`` about ``axis``."""
    n_from = np.linalg.norm(v_from)
    n_to = np.linalg.norm(v_to)
    if n_from < 1e-10 or n_to < 1e-10:
        return 0.0
    a = v_from / n_from
    b = v_to / n_to
    angle = math.acos(float(np.clip(np.dot(a, b), -1.0, 1.0)))
    if np.dot(np.cross(a, b), axis) < 0.0:
        angle = -angle
    return angle


@typechecked
def project_on_horizontal(v: NDArray[np.float64]) -> NDArray[np.float64]:
    """Project a vector onto the horizontal (east-north) plane."""
    return v - np.dot(v, WORLD_UP) * WORLD_UP


# =============================================================================
# State Classes
# =============================================================================


@typechecked
@dataclass
class RigidBodyState:
    """Rigid body state in the local east-up-north frame.

    Attributes:
        position: [east, up, north] position [m]
        velocity: [ve, vu, vn] velocity [m/s]
        quaternion: [q0, q1, q2, q3] body-to-local attitude (scalar-first)
        angular_velocity: body angular rates [rad/s]
        mass: vehicle mass [kg]
        time: simulation time [s]
    """
    position: NDArray[np.float64]
    velocity: NDArray[np.float64]
    quaternion: NDArray[np.float64]
    angular_velocity: NDArray[np.float64]
    mass: float
    time: float = 0.0

    def __post_init__(self) -> None:
        """Validate and normalize state."""
        self.position = np.asarray(self.position, dtype=np.float64)
        self.velocity = np.asarray(self.velocity, dtype=np.float64)
        self.quaternion = normalize_quaternion(np.asarray(self.quaternion, dtype=np.float64))
        self.angular_velocity = np.asarray(self.angular_velocity, dtype=np.float64)

        if self.position.shape != (3,):
            raise ValueError(f"Position must be shape (3,), got {self.position.shape}")
        if self.velocity.shape != (3,):
            raise ValueError(f"Velocity must be shape (3,), got {self.velocity.shape}")
        if self.quaternion.shape != (4,):
            raise ValueError(f"Quaternion must be shape (4,), got {self.quaternion.shape}")
        if self.angular_velocity.shape != (3,):
            raise ValueError(f"Angular velocity must be shape (3,), got {self.angular_velocity.shape}")
        if self.mass <= 0:
            raise ValueError(f"Mass must be positive, got {self.mass}")

    @classmethod
    def at_rest(
        cls,
        position: LocalPosition | None = None,
        yaw_deg: float = 0.0,
        mass_kg: float = 1.2,
    ) -> "RigidBodyState":
        """Create a level, motionless state.

        Args:
            position: Initial position (defaults to the origin on the ground)
            yaw_deg: Heading [degrees] (0 = north, 90 = east)
            mass_kg: Vehicle mass [kg]
        """
        position = position or LocalPosition()
        return cls(
            position=position.to_array(),
            velocity=np.zeros(3),
            quaternion=yaw_to_quaternion(math.radians(yaw_deg)),
            angular_velocity=np.zeros(3),
            mass=float(mass_kg),
            time=0.0,
        )

    def to_array(self) -> NDArray[np.float64]:
        """Convert state to flat array for integration."""
        return np.concatenate([
            self.position,
            self.velocity,
            self.quaternion,
            self.angular_velocity,
            [self.mass],
        ])

    @classmethod
    def from_array(cls, arr: NDArray[np.float64], time: float = 0.0) -> "RigidBodyState":
        """Create state from flat array."""
        return cls(
            position=arr[0:3],
            velocity=arr[3:6],
            quaternion=arr[6:10],
            angular_velocity=arr[10:13],
            mass=float(arr[13]),
            time=time,
        )

    def copy(self) -> "RigidBodyState":
        """Create a copy of this state."""
        return RigidBodyState(
            position=self.position.copy(),
            velocity=self.velocity.copy(),
            quaternion=self.quaternion.copy(),
            angular_velocity=self.angular_velocity.copy(),
            mass=self.mass,
            time=self.time,
        )

    @property
    def dcm_body_to_local(self) -> NDArray[np.float64]:
        """DCM that transforms vectors from body to local frame."""
        return quaternion_to_dcm(self.quaternion)

    @property
    def forward(self) -> NDArray[np.float64]:
        """Body forward axis in the local frame."""
        return self.dcm_body_to_local @ BODY_FORWARD

    @property
    def right(self) -> NDArray[np.float64]:
        """Body right axis in the local frame."""
        return self.dcm_body_to_local @ BODY_RIGHT

    @property
    def up_axis(self) -> NDArray[np.float64]:
        """Body up axis (thrust direction) in the local frame."""
        return self.dcm_body_to_local @ BODY_UP

    @property
    def tilt_angles(self) -> tuple[float, float]:
        """(pitch, roll) relative to the horizontal plane [rad].

        Pitch is the angle of the forward axis out of its horizontal
        projection, measured about the right axis; roll likewise for the
        right axis about the forward axis.
        """
        fwd = self.forward
        right = self.right
        pitch = signed_angle(project_on_horizontal(fwd), fwd, right)
        roll = signed_angle(project_on_horizontal(right), right, fwd)
        return pitch, roll

    @property
    def tilt_angles_deg(self) -> tuple[float, float]:
        """(pitch, roll) relative to the horizontal plane [degrees]."""
        pitch, roll = self.tilt_angles
        return math.degrees(pitch), math.degrees(roll)

    @property
    def yaw(self) -> float:
        """Heading of the forward axis [rad] (0 = north, positive toward east)."""
        fwd = self.forward
        return math.atan2(fwd[0], fwd[2])

    @property
    def local_position(self) -> LocalPosition:
        """Position as a LocalPosition value."""
        return LocalPosition.from_array(self.position)

    @property
    def altitude(self) -> float:
        """Height above the local reference plane [m]."""
        return float(self.position[1])

    @property
    def speed(self) -> float:
        """Speed magnitude [m/s]."""
        return float(np.linalg.norm(self.velocity))

    @property
    def horizontal_speed(self) -> float:
        """Speed in the east-north plane [m/s]."""
        return math.hypot(self.velocity[0], self.velocity[2])


@typechecked
@dataclass
class StateDerivative:
    """Time derivative of the state vector.

    Attributes:
        position_dot: d(position)/dt = velocity [m/s]
        velocity_dot: d(velocity)/dt = acceleration [m/s^2]
        quaternion_dot: d(quaternion)/dt
        angular_velocity_dot: d(omega)/dt [rad/s^2]
    """
    position_dot: NDArray[np.float64]
    velocity_dot: NDArray[np.float64]
    quaternion_dot: NDArray[np.float64]
    angular_velocity_dot: NDArray[np.float64]

    def to_array(self) -> NDArray[np.float64]:
        """Convert to flat array for integration (mass is constant)."""
        return np.concatenate([
            self.position_dot,
            self.velocity_dot,
            self.quaternion_dot,
            self.angular_velocity_dot,
            [0.0],
        ])
