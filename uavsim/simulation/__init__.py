"""Simulation module for multirotor flight simulation.

Provides the explicit two-cadence simulation loop (fixed physics tick,
variable logic tick) that drives flight software components.

Example:
    >>> from uavsim.simulation import Simulator, SimConfig
    >>>
    >>> sim = Simulator([vehicle, navigator], SimConfig(physics_dt=0.02))
    >>> sim.run(30.0)
"""

from uavsim.simulation.simulator import (
    SimConfig,
    SimulationResult,
    Simulator,
    Tickable,
)

__all__ = [
    "SimConfig",
    "SimulationResult",
    "Simulator",
    "Tickable",
]
