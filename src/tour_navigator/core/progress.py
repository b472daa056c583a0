"""Route progress: split the route polyline into completed and remaining parts."""

from collections.abc import Sequence
from typing import Optional

import numpy as np

from tour_navigator.models import LatLng, Waypoint
from .geo import distance_meters, distances_to, project_onto_segment
from .models import ProgressSplit

DEFAULT_PROGRESS_THRESHOLD_M = 30.0


def nearest_sample(path: Sequence[LatLng], point, start: int = 0) -> tuple[int, float]:
    """Index of and distance to the path sample nearest ``point``, searching from ``start``."""
    if start >= len(path):
        return -1, float("inf")
    dists = distances_to(path[start:], point)
    i = int(np.argmin(dists))
    return start + i, float(dists[i])


def visited_floor(path: Sequence[LatLng], waypoints: Sequence[Waypoint]) -> int:
    """Path index of the highest visited waypoint.

    Each visited waypoint is looked up at or after the previous one's
    sample, so the floor only moves forward as waypoints are visited in
    order, even where the route passes a spot twice.
    """
    floor = 0
    for wp in waypoints:
        if not wp.visited:
            continue
        idx, _ = nearest_sample(path, wp, start=floor)
        if idx >= 0:
            floor = idx
    return floor


def split_progress(
    path: Sequence[LatLng],
    waypoints: Sequence[Waypoint],
    position: Optional[LatLng],
    threshold_m: float = DEFAULT_PROGRESS_THRESHOLD_M,
) -> ProgressSplit:
    """Split ``path`` at the position's snap point.

    Only segments at or after the visited floor are candidates, so progress
    never jumps back onto route already walked.
    """
    if position is None or len(path) < 2:
        return ProgressSplit(completed=[], remaining=list(path))

    floor = min(visited_floor(path, waypoints), len(path) - 2)

    best_i = floor
    best_point = path[floor]
    best_dist = float("inf")
    for i in range(floor, len(path) - 1):
        proj = project_onto_segment(position, path[i], path[i + 1])
        d = distance_meters(position, proj.point)
        if d < best_dist:
            best_i, best_point, best_dist = i, proj.point, d

    completed = list(path[:best_i + 1])
    if completed[-1] != best_point:
        completed.append(best_point)
    remaining = list(path[best_i + 1:])
    if remaining[0] != best_point:
        remaining.insert(0, best_point)

    closest_index, closest_dist = nearest_sample(path, position, start=floor)
    if closest_dist >= threshold_m:
        closest_index = -1

    return ProgressSplit(
        completed=completed,
        remaining=remaining,
        snap_index=best_i,
        snapped_point=best_point,
        closest_index=closest_index,
        floor_index=floor,
    )
