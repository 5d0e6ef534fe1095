"""Unit tests for the waypoint queue and waypoint persistence."""

import json
import logging

import pytest

from flight.navigation.waypoints import (
    Waypoint,
    WaypointQueue,
    dump_waypoints,
    load_waypoints,
    waypoints_from_records,
)
from uavsim.geo import LocalPosition

A = LocalPosition(0.0, 50.0, 0.0)
B = LocalPosition(100.0, 50.0, 0.0)
C = LocalPosition(100.0, 50.0, 100.0)


class TestQueueOrder:
    """FIFO behaviour and drain semantics."""

    def test_fifo_order(self):
        queue = WaypointQueue()
        for p in (A, B, C):
            queue.enqueue(p)

        assert [queue.dequeue().position for _ in range(3)] == [A, B, C]

    def test_has_waypoints_until_drained(self):
        queue = WaypointQueue([A, B, C])
        queue.dequeue()
        queue.dequeue()
        assert queue.has_waypoints()

        queue.dequeue()
        # Queue empty but the last target is still current
        assert queue.count == 0
        assert queue.has_waypoints()

        assert queue.dequeue() is None
        assert queue.current_target is None
        assert not queue.has_waypoints()

    def test_single_target_pending_until_reached(self):
        queue = WaypointQueue([A])
        queue.dequeue()
        assert queue.has_waypoints()

        queue.mark_reached(A)
        assert not queue.has_waypoints()

    def test_peek_does_not_remove(self):
        queue = WaypointQueue([A, B])
        assert queue.peek().position == A
        assert queue.count == 2
        assert queue.current_target is None

    def test_empty_queue(self):
        queue = WaypointQueue()
        assert queue.peek() is None
        assert queue.dequeue() is None
        assert not queue.has_waypoints()

    def test_duplicates_allowed(self):
        queue = WaypointQueue()
        queue.enqueue_many([A, A, B])
        assert len(queue) == 3
        assert [w.position for w in queue] == [A, A, B]

    def test_clear(self):
        queue = WaypointQueue([A, B])
        queue.dequeue()
        queue.clear()
        assert queue.count == 0
        assert queue.current_target is None
        assert not queue.has_waypoints()

    def test_labels_are_kept(self):
        queue = WaypointQueue()
        queue.enqueue(Waypoint(A, label="start", id=7))
        wp = queue.dequeue()
        assert wp.label == "start"
        assert wp.id == 7


class TestReachDetection:
    """Reach threshold and mark_reached."""

    def test_default_threshold(self):
        queue = WaypointQueue([A])
        queue.dequeue()
        assert queue.reach_threshold == 2.0
        assert queue.is_reached(LocalPosition(1.5, 50.0, 0.0))
        assert not queue.is_reached(LocalPosition(2.5, 50.0, 0.0))

    def test_no_current_target_is_never_reached(self):
        assert not WaypointQueue([A]).is_reached(A)

    def test_threshold_has_minimum(self):
        queue = WaypointQueue()
        queue.set_reach_threshold(0.0)
        assert queue.reach_threshold == 0.1
        queue.set_reach_threshold(8.0)
        assert queue.reach_threshold == 8.0

    def test_mark_reached_auto_advances(self):
        queue = WaypointQueue([A, B])
        queue.dequeue()
        nxt = queue.mark_reached(A)
        assert nxt.position == B
        assert queue.current_target.position == B

    def test_mark_reached_without_auto_advance(self):
        queue = WaypointQueue([A, B], auto_advance=False)
        queue.dequeue()
        assert queue.mark_reached(A) is None
        assert queue.current_target is None
        assert queue.count == 1

    def test_mark_last_target_drains(self):
        queue = WaypointQueue([A])
        queue.dequeue()
        assert queue.mark_reached(A) is None
        assert not queue.has_waypoints()


class TestPersistence:
    """JSON waypoint lists."""

    def test_round_trip(self, tmp_path):
        waypoints = [Waypoint(A, label="a", id=1), Waypoint(B), C]
        path = dump_waypoints(tmp_path / "route.json", waypoints)
        loaded = load_waypoints(path)

        assert [w.position for w in loaded] == [A, B, C]
        assert loaded[0].label == "a"
        assert loaded[0].id == 1
        assert loaded[1].label is None
        assert loaded[2].id == 2

    def test_y_is_vertical(self):
        [wp] = waypoints_from_records({"waypoints": [{"x": 1, "y": 2, "z": 3}]})
        assert wp.position == LocalPosition(east=1.0, up=2.0, north=3.0)

    def test_bare_list(self):
        assert len(waypoints_from_records([{"x": 0, "y": 0, "z": 0}] * 3)) == 3

    def test_missing_file_is_empty(self, tmp_path, caplog):
        with caplog.at_level(logging.WARNING, logger="flight.navigation.waypoints"):
            assert load_waypoints(tmp_path / "nope.json") == []
        assert "not found" in caplog.text

    @pytest.mark.parametrize(
        "content",
        [
            "{broken",
            json.dumps({"points": []}),
            json.dumps({"waypoints": [{"x": 1, "y": 2}]}),
            json.dumps({"waypoints": ["a"]}),
            json.dumps(42),
        ],
    )
    def test_malformed_content_raises(self, tmp_path, content):
        path = tmp_path / "route.json"
        path.write_text(content)
        with pytest.raises(ValueError):
            load_waypoints(path)

    def test_loaded_waypoints_feed_queue(self, tmp_path):
        path = dump_waypoints(tmp_path / "route.json", [A, B])
        queue = WaypointQueue(load_waypoints(path))
        assert queue.count == 2
