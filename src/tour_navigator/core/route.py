"""Route model: change detection, recompute gating and optimized reordering."""

import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import Optional

from tour_navigator.models import Waypoint
from tour_navigator.state import NavigationParams, NavigationSession, RouteCache
from .directions import DirectionsError
from .geo import decode_polyline, resample
from .models import DirectionsResult, RouteOutcome

logger = logging.getLogger(__name__)

DirectionsProvider = Callable[[Sequence[Waypoint]], Awaitable[DirectionsResult]]


def points_equal(a: Sequence[Waypoint], b: Sequence[Waypoint]) -> bool:
    """Exact (lat, lng, name) equality, pairwise. A change detector, not geography."""
    if len(a) != len(b):
        return False
    return all(
        p.lat == q.lat and p.lng == q.lng and p.name == q.name
        for p, q in zip(a, b)
    )


def should_recompute(
    current: Sequence[Waypoint],
    last_calculated: Sequence[Waypoint],
    is_calculating: bool,
    is_navigating: bool,
) -> bool:
    return (
        len(current) >= 2
        and not is_calculating
        and not is_navigating
        and not points_equal(current, last_calculated)
    )


def full_order(waypoint_order: Sequence[int], count: int) -> list[int]:
    """Expand the provider's intermediate-stop order to indices over all points."""
    if count < 2:
        return list(range(count))
    middle = [i + 1 for i in waypoint_order]
    if sorted(middle) != list(range(1, count - 1)):
        raise ValueError(f"waypoint_order {list(waypoint_order)} is not a permutation of {count - 2} stops")
    return [0] + middle + [count - 1]


def _find_current(wp: Waypoint, current: Sequence[Waypoint]) -> Optional[Waypoint]:
    for c in current:
        if c.id == wp.id:
            return c
    for c in current:
        if c.key == wp.key:
            return c
    return None


def apply_optimized_order(
    snapshot: Sequence[Waypoint], waypoint_order: Sequence[int], current: Sequence[Waypoint],
) -> list[Waypoint]:
    """Reorder ``snapshot`` by the provider's order, keeping current content/visited."""
    reordered = []
    for i in full_order(waypoint_order, len(snapshot)):
        wp = snapshot[i]
        live = _find_current(wp, current)
        if live is not None:
            wp = wp.model_copy(update={"content": live.content, "visited": live.visited})
        reordered.append(wp)
    return reordered


async def recompute_route(
    waypoints: list[Waypoint],
    route: RouteCache,
    navigation: NavigationSession,
    provider: DirectionsProvider,
    params: Optional[NavigationParams] = None,
    live: Optional[Callable[[], list[Waypoint]]] = None,
) -> tuple[list[Waypoint], RouteOutcome]:
    """Run the gated route computation.

    Returns the waypoint list to hold afterwards and what happened. The
    input list is never mutated. ``live`` returns the session's waypoints
    as they are after the provider call; if they no longer match what was
    sent, the optimized order is discarded so edits made meanwhile survive.
    """
    params = params or NavigationParams()
    live = live or (lambda: waypoints)
    if len(waypoints) < 2:
        route.clear_path()
        route.last_calculated = []
        return waypoints, RouteOutcome()
    if not should_recompute(waypoints, route.last_calculated, route.is_calculating, navigation.is_navigating):
        return waypoints, RouteOutcome(samples=len(route.path))

    snapshot = [wp.model_copy() for wp in waypoints]
    route.is_calculating = True
    try:
        result = await provider(snapshot)
        order = full_order(result.waypoint_order, len(snapshot))
    except (DirectionsError, ValueError) as exc:
        logger.warning("Route calculation failed: %s", exc)
        route.clear_path()
        return live(), RouteOutcome(error=str(exc))
    finally:
        route.is_calculating = False
        route.last_calculated = snapshot

    route.path = resample(decode_polyline(result.overview_polyline), params.resample_interval_m)
    route.distance_m = sum(leg.distance_m for leg in result.legs)
    route.duration_s = sum(leg.duration_s for leg in result.legs)
    outcome = RouteOutcome(
        computed=True,
        samples=len(route.path),
        distance_m=route.distance_m,
        duration_s=route.duration_s,
    )

    current = live()
    if not points_equal(current, snapshot):
        logger.info("Waypoints changed during route calculation; optimized order discarded")
        return current, outcome

    logger.info(
        "Route computed: %d samples, %.0f m, order %s",
        len(route.path), route.distance_m, order,
    )
    if order == list(range(len(snapshot))):
        return current, outcome

    reordered = apply_optimized_order(snapshot, result.waypoint_order, current)
    # The change detector tracks the order we now hold
    route.last_calculated = [wp.model_copy() for wp in reordered]
    outcome.reordered = True
    return reordered, outcome
