"""Step-driven simulation loop for multirotor flight.

The simulator owns the clock and drives two cooperative cadences:

- Physics tick: constant ``physics_dt``; participants apply forces,
  integrate motion and enforce attitude limits.
- Logic tick: variable ``dt``; participants read state, run control
  laws and evaluate navigation conditions.

Each ``step()`` advances the clock by one logic interval, runs as many
fixed physics ticks as the accumulated time allows, then runs the logic
tick with the new time. Logic therefore always sees state settled by
the physics ticks that preceded it. Nothing here blocks or spawns work.

Example:
    >>> from uavsim.simulation import Simulator, SimConfig
    >>>
    >>> sim = Simulator([vehicle, navigator], SimConfig(physics_dt=0.02))
    >>> sim.state_fn = vehicle.snapshot
    >>>
    >>> reached = sim.run_until(lambda: not navigator.is_navigating, timeout=300.0)
    >>> result = SimulationResult.from_simulator(sim)
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

import numpy as np
from numpy.typing import NDArray

from uavsim.checks import typechecked
from uavsim.dynamics.state import RigidBodyState

logger = logging.getLogger(__name__)

# =============================================================================
# Configuration
# =============================================================================


@typechecked
@dataclass
class SimConfig:
    """Simulation configuration.

    Attributes:
        physics_dt: Fixed physics step [s]
        logic_dt: Default logic step [s]
        max_time: Hard stop for run/run_until [s]
        record_history: Whether to sample ``state_fn`` after every step
    """
    physics_dt: float = 0.02
    logic_dt: float = 1.0 / 60.0
    max_time: float = 600.0
    record_history: bool = True

    def __post_init__(self) -> None:
        if self.physics_dt <= 0:
            raise ValueError(f"physics_dt must be positive, got {self.physics_dt}")
        if self.logic_dt <= 0:
            raise ValueError(f"logic_dt must be positive, got {self.logic_dt}")


# =============================================================================
# Participants
# =============================================================================


@runtime_checkable
class Tickable(Protocol):
    """Protocol for components driven by the simulation loop."""

    def tick_logic(self, now: float, dt: float) -> None:
        """Variable-rate logic update at monotonic time ``now`` [s]."""
        ...

    def tick_physics(self, dt: float) -> None:
        """Fixed-rate physics update."""
        ...


# =============================================================================
# Simulator
# =============================================================================


@typechecked
@dataclass
class Simulator:
    """Explicit two-cadence simulation loop.

    Participants are ticked in registration order on both cadences.

    Attributes:
        participants: Components implementing ``Tickable``
        config: Simulation configuration
        state_fn: Optional state provider sampled into the history
    """
    participants: list[Tickable] = field(default_factory=list)
    config: SimConfig = field(default_factory=SimConfig)
    state_fn: Callable[[], RigidBodyState] | None = None

    # Internal
    _time: float = field(default=0.0, init=False, repr=False)
    _accumulator: float = field(default=0.0, init=False, repr=False)
    _physics_ticks: int = field(default=0, init=False, repr=False)
    _history: list[RigidBodyState] = field(default_factory=list, init=False, repr=False)

    def add(self, participant: Tickable) -> None:
        """Register another participant (ticked after existing ones)."""
        self.participants.append(participant)

    @property
    def time(self) -> float:
        """Current simulation time [s]."""
        return self._time

    @property
    def physics_ticks(self) -> int:
        """Number of physics ticks run so far."""
        return self._physics_ticks

    def tick_physics(self) -> None:
        """Run one fixed physics tick on every participant."""
        dt = self.config.physics_dt
        for participant in self.participants:
            participant.tick_physics(dt)
        self._physics_ticks += 1

    def tick_logic(self, dt: float) -> None:
        """Run one logic tick on every participant at the current time."""
        for participant in self.participants:
            participant.tick_logic(self._time, dt)

    def step(self, dt: float | None = None) -> float:
        """Advance the clock by one logic interval.

        Args:
            dt: Logic step [s]; defaults to ``config.logic_dt``

        Returns:
            New simulation time [s]
        """
        dt = self.config.logic_dt if dt is None else dt
        if dt <= 0:
            logger.debug("Ignoring non-positive logic step %.6f", dt)
            return self._time

        self._accumulator += dt
        physics_dt = self.config.physics_dt
        while self._accumulator >= physics_dt:
            self.tick_physics()
            self._accumulator -= physics_dt

        self._time += dt
        self.tick_logic(dt)

        if self.config.record_history and self.state_fn is not None:
            self._history.append(self.state_fn())

        return self._time

    def _loop_step(self, dt: float | None) -> float | None:
        # A loop driven by a step that never advances the clock would not end
        if dt is not None and dt <= 0:
            logger.warning(
                "Non-positive logic step %.6f; using logic_dt %.6f", dt, self.config.logic_dt
            )
            return self.config.logic_dt
        return dt

    def run(self, duration: float, dt: float | None = None) -> float:
        """Step for ``duration`` seconds (bounded by ``max_time``).

        Returns:
            Simulation time at the end of the run [s]
        """
        dt = self._loop_step(dt)
        end = min(self._time + duration, self.config.max_time)
        while self._time < end:
            self.step(dt)
        return self._time

    def run_until(
        self,
        predicate: Callable[[], bool],
        timeout: float | None = None,
        dt: float | None = None,
    ) -> bool:
        """Step until ``predicate()`` is true.

        Args:
            predicate: Stop condition, evaluated after every step
            timeout: Maximum simulated duration [s] (defaults to ``max_time``)
            dt: Logic step [s]

        Returns:
            True if the predicate was satisfied, False on timeout
        """
        dt = self._loop_step(dt)
        limit = self.config.max_time if timeout is None else min(
            self._time + timeout, self.config.max_time
        )
        while self._time < limit:
            self.step(dt)
            if predicate():
                return True
        logger.warning("run_until timed out at t=%.2fs", self._time)
        return False

    def get_history(self) -> list[RigidBodyState]:
        """Get recorded state history."""
        return self._history.copy()

    def clear_history(self) -> None:
        """Clear recorded state history."""
        self._history = []


# =============================================================================
# Results and Analysis
# =============================================================================


@typechecked
@dataclass
class SimulationResult:
    """Results from a completed simulation.

    Provides convenient access to trajectory data.
    """
    states: list[RigidBodyState]

    @property
    def time(self) -> NDArray[np.float64]:
        """Time array [s]."""
        return np.array([s.time for s in self.states], dtype=np.float64)

    @property
    def position(self) -> NDArray[np.float64]:
        """Position history [m], shape (N, 3)."""
        return np.array([s.position for s in self.states], dtype=np.float64).reshape(-1, 3)

    @property
    def velocity(self) -> NDArray[np.float64]:
        """Velocity history [m/s], shape (N, 3)."""
        return np.array([s.velocity for s in self.states], dtype=np.float64).reshape(-1, 3)

    @property
    def altitude(self) -> NDArray[np.float64]:
        """Altitude history [m]."""
        return np.array([s.altitude for s in self.states], dtype=np.float64)

    @property
    def speed(self) -> NDArray[np.float64]:
        """Speed history [m/s]."""
        return np.array([s.speed for s in self.states], dtype=np.float64)

    @property
    def tilt_deg(self) -> NDArray[np.float64]:
        """(pitch, roll) history [deg], shape (N, 2)."""
        return np.array([s.tilt_angles_deg for s in self.states], dtype=np.float64).reshape(-1, 2)

    def altitude_rms_error(self, target: float, after: float = 0.0) -> float:
        """RMS altitude error against ``target`` for samples at t >= ``after`` [m]."""
        mask = self.time >= after
        if not np.any(mask):
            return 0.0
        err = self.altitude[mask] - target
        return float(np.sqrt(np.mean(err**2)))

    @classmethod
    def from_simulator(cls, sim: Simulator) -> "SimulationResult":
        """Create result from simulator history."""
        return cls(states=sim.get_history())

    def to_dataframe(self):
        """Convert to Polars DataFrame."""
        import polars as pl

        return pl.DataFrame({
            "time": self.time,
            "altitude": self.altitude,
            "speed": self.speed,
            "east": self.position[:, 0],
            "up": self.position[:, 1],
            "north": self.position[:, 2],
            "v_east": self.velocity[:, 0],
            "v_up": self.velocity[:, 1],
            "v_north": self.velocity[:, 2],
            "pitch_deg": self.tilt_deg[:, 0],
            "roll_deg": self.tilt_deg[:, 1],
        })
