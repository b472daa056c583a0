"""Tests for the route progress split."""
import pytest

from tour_navigator.models import LatLng, Waypoint
from tour_navigator.core.geo import resample
from tour_navigator.core.progress import nearest_sample, split_progress, visited_floor


def _straight_path():
    # ~333 m due east along the equator, sampled every 5 m
    return resample([LatLng(lat=0, lng=0), LatLng(lat=0, lng=0.003)], 5.0)


class TestNearestSample:
    def test_finds_closest(self):
        path = _straight_path()
        idx, dist = nearest_sample(path, LatLng(lat=0, lng=0.0015))
        assert path[idx].lng == pytest.approx(0.0015, abs=0.00003)
        assert dist < 3.0

    def test_start_beyond_path(self):
        assert nearest_sample([LatLng(lat=0, lng=0)], LatLng(lat=0, lng=0), start=5) == (-1, float("inf"))


class TestVisitedFloor:
    def test_no_visits_is_zero(self):
        assert visited_floor(_straight_path(), [Waypoint(name="A", lat=0, lng=0.002)]) == 0

    def test_highest_visited(self):
        path = _straight_path()
        wps = [
            Waypoint(name="A", lat=0, lng=0.001, visited=True),
            Waypoint(name="B", lat=0, lng=0.002, visited=True),
            Waypoint(name="C", lat=0, lng=0.003),
        ]
        floor = visited_floor(path, wps)
        assert path[floor].lng == pytest.approx(0.002, abs=0.00003)


class TestSplitProgress:
    def test_no_position_everything_remaining(self):
        path = _straight_path()
        split = split_progress(path, [], None)
        assert split.completed == []
        assert split.remaining == path
        assert split.snap_index == -1

    def test_short_path_everything_remaining(self):
        split = split_progress([LatLng(lat=0, lng=0)], [], LatLng(lat=0, lng=0))
        assert split.completed == []
        assert split.remaining == [LatLng(lat=0, lng=0)]

    def test_split_at_snap_point(self):
        path = _straight_path()
        pos = LatLng(lat=0.00001, lng=0.00152)
        split = split_progress(path, [], pos)
        assert split.completed[0] == path[0]
        assert split.remaining[-1] == path[-1]
        assert split.completed[-1] == split.snapped_point
        assert split.remaining[0] == split.snapped_point
        assert split.snapped_point.lat == pytest.approx(0.0)
        assert split.snapped_point.lng == pytest.approx(0.00152)
        # snap point appears once on each side, never duplicated within a side
        assert len(split.completed) + len(split.remaining) in (len(path) + 1, len(path) + 2)
        assert split.closest_index >= 0

    def test_far_position_has_no_closest_index(self):
        split = split_progress(_straight_path(), [], LatLng(lat=0.01, lng=0.0015))
        assert split.closest_index == -1
        assert split.snapped_point is not None

    def test_snap_index_monotonic_along_forward_walk(self):
        path = _straight_path()
        indices = []
        for i in range(0, 31):
            split = split_progress(path, [], LatLng(lat=0.00002, lng=i * 0.0001))
            indices.append(split.snap_index)
        assert indices == sorted(indices)

    def test_never_snaps_before_visited_floor(self):
        # Out-and-back path: passes the same spot twice
        out_and_back = resample(
            [LatLng(lat=0, lng=0), LatLng(lat=0, lng=0.002), LatLng(lat=0.00001, lng=0)], 5.0,
        )
        turn = Waypoint(name="Turnaround", lat=0, lng=0.002, visited=True)
        split = split_progress(out_and_back, [turn], LatLng(lat=0, lng=0.001))
        assert split.floor_index > 0
        assert split.snap_index >= split.floor_index
        # the point at 0.001 on the way back is past the turnaround
        assert len(split.completed) > len(out_and_back) // 2
