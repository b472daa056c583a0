"""Routing tools: optimize_route, get_route."""

import json
import logging

from mcp.server.fastmcp import FastMCP
from mcp.types import ToolAnnotations

from ..state import state
from ..core.geo import encode_polyline
from . import _services
from ._prereqs import require_state

logger = logging.getLogger(__name__)


def register_route_tools(mcp: FastMCP):

    @mcp.tool(annotations=ToolAnnotations(readOnlyHint=False, destructiveHint=False, openWorldHint=True))
    async def optimize_route() -> str:
        """Compute the walking route and let the provider reorder intermediate stops.

        The first and last stops stay fixed. Nothing is requested when the stop
        list is unchanged since the last computation, while a computation is
        already running, or during navigation.

        **Requires:** at least 2 stops, navigation not active.
        **Next:** get_route to inspect, save_tour to generate content.
        """
        try:
            require_state(state, waypoints=2, idle=True)
        except ValueError as e:
            return f"Error: {e}"
        if state.route.is_calculating:
            return "A route calculation is already in progress."

        outcome = await _services.refresh_route()
        if outcome.error:
            return f"Error: route calculation failed ({outcome.error}). The route was cleared."
        if not outcome.computed:
            return f"Route unchanged ({len(state.route.path)} samples)."

        order = "; ".join(f"{i + 1}. {wp.name}" for i, wp in enumerate(state.waypoints))
        lines = [
            f"Route computed: {outcome.samples} samples, "
            f"{outcome.distance_m / 1000:.2f} km, about {outcome.duration_s / 60:.0f} min on foot.",
        ]
        if outcome.reordered:
            lines.append(f"Stops were reordered for a shorter walk: {order}")
        else:
            lines.append(f"Order kept: {order}")
        return "\n".join(lines)

    @mcp.tool(annotations=ToolAnnotations(readOnlyHint=True))
    def get_route(include_polyline: bool = False) -> str:
        """Return the cached route: sample count, distance, duration and staleness.

        Args:
            include_polyline: Also return the path as an encoded polyline.
        """
        route = state.route
        summary = state.summary()["route"]
        data = {
            "samples": summary["samples"],
            "distance_m": summary["distance_m"],
            "duration_s": summary["duration_s"],
            "calculating": route.is_calculating,
            "stale": summary["stale"],
            "computed_for": [wp.name for wp in route.last_calculated],
        }
        if include_polyline:
            data["polyline"] = encode_polyline(route.path)
        return json.dumps(data, indent=2)
