"""Pending-target store for waypoint navigation.

``WaypointQueue`` is a FIFO of waypoints with reach detection:

- ``enqueue`` appends, ``dequeue`` pops the oldest entry and makes it
  the current target, ``peek`` inspects without removing.
- ``is_reached`` compares the distance to the current target against
  the queue's own threshold (independent of the navigator's).
- ``mark_reached`` clears the current target and, with auto-advance
  enabled, immediately dequeues the next entry.

Waypoint lists persist as JSON::

    {"waypoints": [{"id": 0, "x": 0.0, "y": 50.0, "z": 10.0, "label": "A"}, ...]}

where ``x`` is east, ``y`` is up and ``z`` is north.

Example:
    >>> from flight.navigation import WaypointQueue
    >>> from uavsim.geo import LocalPosition
    >>>
    >>> queue = WaypointQueue()
    >>> queue.enqueue(LocalPosition(east=10.0, up=50.0))
    >>> target = queue.dequeue()
"""

import json
import logging
from collections import deque
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from uavsim.checks import typechecked
from uavsim.geo import LocalPosition

logger = logging.getLogger(__name__)

DEFAULT_REACH_THRESHOLD: float = 2.0  # [m]
MIN_REACH_THRESHOLD: float = 0.1  # [m]


@typechecked
@dataclass(frozen=True)
class Waypoint:
    """Navigation waypoint.

    Attributes:
        position: Target position in the local frame [m]
        label: Optional human-readable label
        id: Optional identifier
    """
    position: LocalPosition
    label: str | None = None
    id: int | None = None

    def __str__(self) -> str:
        name = self.label or (f"#{self.id}" if self.id is not None else "waypoint")
        return f"{name} {self.position}"


def _as_waypoint(item: Waypoint | LocalPosition) -> Waypoint:
    return item if isinstance(item, Waypoint) else Waypoint(item)


# =============================================================================
# Waypoint Queue
# =============================================================================


@typechecked
class WaypointQueue:
    """FIFO of waypoints with a current target and reach detection.

    Duplicates are allowed; insertion order is navigation order.

    Attributes:
        auto_advance: Dequeue the next entry when a target is marked reached
    """

    def __init__(
        self,
        waypoints: Iterable[Waypoint | LocalPosition] = (),
        reach_threshold: float = DEFAULT_REACH_THRESHOLD,
        auto_advance: bool = True,
    ) -> None:
        self._pending: deque[Waypoint] = deque(_as_waypoint(w) for w in waypoints)
        self._current: Waypoint | None = None
        self._reach_threshold = max(MIN_REACH_THRESHOLD, reach_threshold)
        self.auto_advance = auto_advance

    # -------------------------------------------------------------------------
    # Queue operations
    # -------------------------------------------------------------------------

    def enqueue(self, item: Waypoint | LocalPosition) -> None:
        """Append a waypoint at the back of the queue."""
        waypoint = _as_waypoint(item)
        self._pending.append(waypoint)
        logger.debug("Waypoint added: %s. Queue size: %d", waypoint, len(self._pending))

    def enqueue_many(self, items: Iterable[Waypoint | LocalPosition]) -> int:
        """Append several waypoints in order. Returns how many were added."""
        added = 0
        for item in items:
            self._pending.append(_as_waypoint(item))
            added += 1
        logger.info("%d waypoints added. Queue size: %d", added, len(self._pending))
        return added

    def peek(self) -> Waypoint | None:
        """Next waypoint without removing it, or None if empty."""
        return self._pending[0] if self._pending else None

    def dequeue(self) -> Waypoint | None:
        """Pop the oldest waypoint and make it the current target.

        Returns None (and clears the current target) if the queue is empty.
        """
        if not self._pending:
            self._current = None
            return None
        self._current = self._pending.popleft()
        logger.debug("Waypoint dequeued: %s. Remaining: %d", self._current, len(self._pending))
        return self._current

    def clear(self) -> None:
        """Empty the queue and clear the current target."""
        count = len(self._pending)
        self._pending.clear()
        self._current = None
        logger.info("%d waypoints cleared", count)

    # -------------------------------------------------------------------------
    # Reach detection
    # -------------------------------------------------------------------------

    @property
    def reach_threshold(self) -> float:
        """Distance at which the current target counts as reached [m]."""
        return self._reach_threshold

    def set_reach_threshold(self, threshold: float) -> None:
        """Set the reach threshold (at least 0.1 m)."""
        self._reach_threshold = max(MIN_REACH_THRESHOLD, threshold)
        logger.debug("Reach threshold set to %.2f m", self._reach_threshold)

    def is_reached(self, position: LocalPosition) -> bool:
        """True if ``position`` is within the threshold of the current target."""
        if self._current is None:
            return False
        return position.distance_to(self._current.position) <= self._reach_threshold

    def mark_reached(self, position: LocalPosition) -> Waypoint | None:
        """Clear the current target; with auto-advance, dequeue the next one.

        Returns:
            The new current target, or None
        """
        if self._current is None:
            return None
        logger.info(
            "Target reached: %s (distance: %.2f m)",
            self._current, position.distance_to(self._current.position),
        )
        self._current = None
        if self.auto_advance:
            return self.dequeue()
        return None

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    @property
    def current_target(self) -> Waypoint | None:
        """Waypoint most recently dequeued and not yet marked reached."""
        return self._current

    @property
    def count(self) -> int:
        """Number of pending (not yet dequeued) waypoints."""
        return len(self._pending)

    def has_waypoints(self) -> bool:
        """True until the queue is drained and no current target remains."""
        return bool(self._pending) or self._current is not None

    def __len__(self) -> int:
        return len(self._pending)

    def __iter__(self) -> Iterator[Waypoint]:
        return iter(list(self._pending))


# =============================================================================
# Persistence
# =============================================================================


@typechecked
def waypoints_from_records(records: Any) -> list[Waypoint]:
    """Build waypoints from decoded JSON.

    Accepts ``{"waypoints": [...]}`` or a bare list of
    ``{"x", "y", "z"}`` records with optional ``id`` and ``label``.

    Raises:
        ValueError: If the structure or a record is malformed
    """
    if isinstance(records, dict):
        if "waypoints" not in records:
            raise ValueError("Waypoint document has no 'waypoints' list")
        records = records["waypoints"]
    if not isinstance(records, list):
        raise ValueError(f"Expected a list of waypoints, got {type(records).__name__}")

    waypoints = []
    for index, record in enumerate(records):
        if not isinstance(record, dict):
            raise ValueError(f"Waypoint {index} is not an object")
        try:
            position = LocalPosition(
                east=float(record["x"]),
                up=float(record["y"]),
                north=float(record["z"]),
            )
        except (KeyError, TypeError, ValueError) as err:
            raise ValueError(f"Waypoint {index} is malformed: {err}") from err
        wp_id = record.get("id")
        label = record.get("label")
        waypoints.append(Waypoint(
            position=position,
            label=str(label) if label is not None else None,
            id=int(wp_id) if wp_id is not None else None,
        ))
    return waypoints


@typechecked
def load_waypoints(path: str | Path) -> list[Waypoint]:
    """Load a waypoint list from a JSON file.

    A missing file is not an error: it is logged and yields an empty list.

    Raises:
        ValueError: If the file exists but is not a valid waypoint document
    """
    path = Path(path)
    if not path.exists():
        logger.warning("Waypoint file not found: %s", path)
        return []

    try:
        data = json.loads(path.read_text())
    except json.JSONDecodeError as err:
        raise ValueError(f"Waypoint file {path} is not valid JSON: {err}") from err

    waypoints = waypoints_from_records(data)
    logger.info("%d waypoints loaded from %s", len(waypoints), path)
    return waypoints


@typechecked
def dump_waypoints(path: str | Path, waypoints: Iterable[Waypoint | LocalPosition]) -> Path:
    """Write waypoints to a JSON file in the ``{"waypoints": [...]}`` format."""
    records = []
    for index, item in enumerate(waypoints):
        wp = _as_waypoint(item)
        records.append({
            "id": wp.id if wp.id is not None else index,
            "x": wp.position.east,
            "y": wp.position.up,
            "z": wp.position.north,
            "label": wp.label,
        })
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps({"waypoints": records}, indent=2))
    return path
