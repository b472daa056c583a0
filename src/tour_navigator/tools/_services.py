"""Shared glue between tools and the session: backend access, polling, routing."""

import logging

from ..state import state
from ..core.backend import TourBackend
from ..core.directions import fetch_walking_route
from ..core.models import RouteOutcome
from ..core.reconcile import ContentPoller, content_incomplete, merge_tour_content
from ..core.route import recompute_route
from ..models import Tour

logger = logging.getLogger(__name__)


def get_backend() -> TourBackend:
    return TourBackend()


def apply_remote_tour(tour: Tour) -> bool:
    """Merge a fetched tour into the session. Returns True when content is complete."""
    state.waypoints = merge_tour_content(state.waypoints, tour.waypoints, state.params.match_epsilon_deg)
    return not content_incomplete(state.waypoints)


def ensure_polling() -> bool:
    """Start the content poller for the current tour if content is still incomplete."""
    if not state.tour_id or not content_incomplete(state.waypoints):
        return False
    tour_id = state.tour_id
    backend = get_backend()
    poller = ContentPoller(
        fetch=lambda: backend.get_tour(tour_id),
        apply=apply_remote_tour,
        is_blocked=lambda: state.is_processing_submission,
        interval_s=state.params.poll_interval_s,
    )
    return state.tasks.start_polling(poller)


async def refresh_route() -> RouteOutcome:
    """Recompute the route if the waypoint ordering changed since the last computation."""
    waypoints, outcome = await recompute_route(
        state.waypoints, state.route, state.navigation, fetch_walking_route,
        params=state.params, live=lambda: state.waypoints,
    )
    state.waypoints = waypoints
    return outcome
