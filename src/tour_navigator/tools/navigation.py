"""Navigation tools: start/stop the walk, feed positions, report progress."""

import json
import logging

from gpxpy.gpx import GPXException
from mcp.server.fastmcp import FastMCP
from mcp.types import ToolAnnotations

from ..state import state, PositionMode
from ..core import navigation as nav
from ..core.geo import distance_meters
from ..core.gpx import parse_gpx_track, replay_track
from ..core.models import PositionUpdate
from ..core.progress import split_progress
from . import _services
from ._prereqs import require_state

logger = logging.getLogger(__name__)


def apply_fix(fix: nav.PositionFix) -> PositionUpdate:
    """Feed one fix through the state machine using the session's params and audio cue."""
    return nav.on_position_update(
        state.waypoints, state.navigation, fix, params=state.params, audio=state.audio,
    )


def _describe(update: PositionUpdate) -> str:
    if not update.accepted:
        return f"Position ignored: {update.reason}."

    lines = []
    arrival = update.arrival
    if arrival is not None:
        lines.append(f"Arrived at stop {arrival.index + 1} '{arrival.waypoint_name}'.")
        if arrival.audio_path:
            lines.append(f"Playing audio: {arrival.audio_path}")
        if arrival.completed:
            lines.append("Tour complete!")
        else:
            lines.append("You can ask_question about this stop.")

    target = nav.current_target(state.waypoints, state.navigation)
    if target is not None:
        if arrival is None and update.distance_to_target_m is not None:
            lines.append(f"{update.distance_to_target_m:.0f} m to '{target.name}'.")
        else:
            lines.append(f"Next stop: '{target.name}'.")

    split = split_progress(
        state.route.path, state.waypoints, state.navigation.current_position,
        threshold_m=state.params.progress_threshold_m,
    )
    if split.snapped_point is not None:
        lines.append(f"Route progress: {len(split.completed)} walked / {len(split.remaining)} ahead.")
    return "\n".join(lines) or "Position recorded."


def register_navigation_tools(mcp: FastMCP):

    @mcp.tool(annotations=ToolAnnotations(readOnlyHint=False, destructiveHint=False, openWorldHint=True))
    async def start_navigation(mode: str | None = None) -> str:
        """Start walking the tour.

        Runs a last route computation if stops changed, then resets progress.
        **Requires:** at least 1 stop whose main content is ready (save_tour
        and wait for content, see get_status).
        **Next:** report_position / simulate_click / watch_gpx_track.

        Args:
            mode: "real" or "simulated". Default: keep the current mode.
        """
        try:
            require_state(state, waypoints=1, idle=True)
            new_mode = PositionMode(mode) if mode else None
        except ValueError as e:
            return f"Error: {e}"
        if not nav.can_start(state.waypoints):
            return "Error: Tour content is not ready yet. Check get_status and try again."

        outcome = await _services.refresh_route()
        if outcome.error:
            logger.warning("Starting navigation without a route: %s", outcome.error)

        try:
            nav.start_navigation(state.waypoints, state.navigation, mode=new_mode)
        except ValueError as e:
            return f"Error: {e}"
        first = state.waypoints[0]
        msg = (
            f"Navigation started in {state.navigation.mode.value} mode. "
            f"First stop: '{first.name}'. Route has {len(state.route.path)} samples."
        )
        if outcome.error:
            msg += f" (Route unavailable: {outcome.error})"
        return msg

    @mcp.tool(annotations=ToolAnnotations(readOnlyHint=False, destructiveHint=False))
    def set_position_mode(mode: str) -> str:
        """Choose where positions come from: "real" (GPS reports) or "simulated" (map clicks).

        Fixes from the other source are ignored. Switching drops the last position.
        """
        try:
            new_mode = PositionMode(mode)
        except ValueError:
            return "Error: mode must be 'real' or 'simulated'."
        if new_mode == PositionMode.SIMULATED:
            state.tasks.cancel_watch()
        nav.set_mode(state.navigation, new_mode)
        return f"Position mode: {new_mode.value}."

    @mcp.tool(annotations=ToolAnnotations(readOnlyHint=False, destructiveHint=False))
    def report_position(lat: float, lng: float) -> str:
        """Report a real geolocation fix.

        Args:
            lat: Latitude in degrees.
            lng: Longitude in degrees.
        """
        return _describe(apply_fix(nav.real_fix(lat, lng)))

    @mcp.tool(annotations=ToolAnnotations(readOnlyHint=False, destructiveHint=False))
    def simulate_click(lat: float, lng: float) -> str:
        """Simulate being at a clicked map coordinate.

        Args:
            lat: Latitude in degrees.
            lng: Longitude in degrees.
        """
        return _describe(apply_fix(nav.simulated_fix(lat, lng)))

    @mcp.tool(annotations=ToolAnnotations(readOnlyHint=False, destructiveHint=False))
    async def watch_gpx_track(file_path: str, interval_s: float = 1.0) -> str:
        """Replay a recorded GPX track as a live GPS feed (switches to real mode).

        Replaces any running watch. The watch ends on stop_navigation,
        clear_tour or when the track runs out.

        Args:
            file_path: Absolute path to a .gpx file with a track.
            interval_s: Seconds between fixes (default 1).
        """
        try:
            require_state(state, navigating=True)
            points = parse_gpx_track(file_path)
        except (OSError, ValueError, GPXException) as e:
            return f"Error: {e}"
        if not points:
            return "Error: GPX file has no track points."
        if interval_s < 0:
            return "Error: interval_s must be >= 0."

        nav.set_mode(state.navigation, PositionMode.REAL)
        state.tasks.watch_positions(
            replay_track(points, interval_s),
            lambda p: apply_fix(nav.real_fix(p.lat, p.lng)),
        )
        return f"Watching {len(points)} track point(s), one every {interval_s:g}s."

    @mcp.tool(annotations=ToolAnnotations(readOnlyHint=False, destructiveHint=False))
    def stop_navigation() -> str:
        """Stop navigating. Visited flags are kept; start_navigation resets them."""
        state.tasks.cancel_watch()
        nav.stop_navigation(state.navigation)
        visited = sum(wp.visited for wp in state.waypoints)
        return f"Navigation stopped. {visited}/{len(state.waypoints)} stop(s) visited."

    @mcp.tool(annotations=ToolAnnotations(readOnlyHint=True))
    def get_progress() -> str:
        """Return walked/remaining route split, next stop and distance to it."""
        navigation = state.navigation
        position = navigation.current_position
        split = split_progress(
            state.route.path, state.waypoints, position,
            threshold_m=state.params.progress_threshold_m,
        )
        target = nav.current_target(state.waypoints, navigation)
        data = {
            "status": navigation.status.value,
            "mode": navigation.mode.value,
            "visited": [wp.name for wp in state.waypoints if wp.visited],
            "next_stop": target.name if target else None,
            "distance_to_next_m": (
                round(distance_meters(position, target), 1) if target and position else None
            ),
            "completed_samples": len(split.completed),
            "remaining_samples": len(split.remaining),
            "snap_index": split.snap_index,
            "closest_index": split.closest_index,
            "snapped_point": (
                {"lat": split.snapped_point.lat, "lng": split.snapped_point.lng}
                if split.snapped_point else None
            ),
        }
        return json.dumps(data, indent=2)
