"""Tour building tools: add, search, move, reorder, remove and import waypoints."""

import logging

import httpx
from gpxpy.gpx import GPXException
from mcp.server.fastmcp import FastMCP
from mcp.types import ToolAnnotations

from ..state import state
from ..models import Waypoint
from ..core.geocode import reverse_geocode_name, search_places
from ..core.gpx import parse_gpx_waypoints
from ._prereqs import require_state

logger = logging.getLogger(__name__)


def _listing() -> str:
    return "; ".join(f"{i + 1}. {wp.name}" for i, wp in enumerate(state.waypoints)) or "(empty)"


def _append(waypoint: Waypoint) -> str:
    state.waypoints = [*state.waypoints, waypoint]
    state.pending_place_candidates = []
    return (
        f"Added stop {len(state.waypoints)}: '{waypoint.name}' "
        f"({waypoint.lat:.5f}, {waypoint.lng:.5f}). Tour: {_listing()}"
    )


def _check_index(index: int) -> int:
    """Convert a 1-based stop number to a list index."""
    n = len(state.waypoints)
    if index < 1 or index > n:
        raise ValueError(f"Invalid stop {index}. Choose a number between 1 and {n}.")
    return index - 1


def register_waypoint_tools(mcp: FastMCP):

    @mcp.tool(annotations=ToolAnnotations(readOnlyHint=False, destructiveHint=False, openWorldHint=True))
    async def add_waypoint(lat: float, lng: float, name: str | None = None) -> str:
        """Add a stop at a coordinate (the equivalent of clicking the map).

        Without a name, the point is named by reverse geocoding; if that fails
        it gets a coordinate placeholder name and is still added.
        **Next:** add more stops, then optimize_route or save_tour.

        Args:
            lat: Latitude in degrees.
            lng: Longitude in degrees.
            name: Optional display name for the stop.
        """
        try:
            require_state(state, idle=True)
        except ValueError as e:
            return f"Error: {e}"
        if not name:
            name = await reverse_geocode_name(lat, lng)
        try:
            waypoint = Waypoint(name=name, lat=lat, lng=lng)
        except ValueError as e:
            return f"Error: {e}"
        return _append(waypoint)

    @mcp.tool(annotations=ToolAnnotations(readOnlyHint=False, destructiveHint=False, openWorldHint=True))
    async def add_place(query: str, limit: int = 5) -> str:
        """Search for a place by name and add it as a stop.

        - 1 result: added automatically.
        - 2+ results: returns a numbered list. Present it to the user, wait for
          them to pick a number, then call select_place_result.

        Args:
            query: Place name, e.g. "Carmel Market, Tel Aviv".
            limit: Maximum number of candidates (1-10, default 5).
        """
        try:
            require_state(state, idle=True)
        except ValueError as e:
            return f"Error: {e}"
        limit = max(1, min(10, limit))
        try:
            candidates = await search_places(query, limit=limit)
        except httpx.HTTPStatusError as exc:
            return f"Error: place search returned HTTP {exc.response.status_code}."
        except httpx.HTTPError as exc:
            return f"Error contacting place search: {exc}"

        if not candidates:
            return f"No places found for '{query}'. Try a more specific name."
        if len(candidates) == 1:
            c = candidates[0]
            return _append(Waypoint(name=c.name, lat=c.lat, lng=c.lng))

        state.pending_place_candidates = candidates
        lines = [f"Found {len(candidates)} place(s) for '{query}':"]
        for i, c in enumerate(candidates, 1):
            lines.append(f"{i}. {c.display_name} ({c.place_type}) at {c.lat:.5f}, {c.lng:.5f}")
        lines.append(
            f"Ask the user which number (1-{len(candidates)}) they want, "
            "then call select_place_result with that number."
        )
        return "\n".join(lines)

    @mcp.tool(annotations=ToolAnnotations(readOnlyHint=False, destructiveHint=False))
    def select_place_result(number: int) -> str:
        """Add the place search candidate the user picked.

        **Requires:** add_place returned multiple candidates.

        Args:
            number: 1-based index of the chosen candidate.
        """
        if not state.pending_place_candidates:
            return "Error: No place search results pending. Call add_place first."
        n = len(state.pending_place_candidates)
        if number < 1 or number > n:
            return f"Error: Invalid selection {number}. Choose a number between 1 and {n}."
        c = state.pending_place_candidates[number - 1]
        return _append(Waypoint(name=c.name, lat=c.lat, lng=c.lng))

    @mcp.tool(annotations=ToolAnnotations(readOnlyHint=False, destructiveHint=False))
    def move_waypoint(index: int, lat: float, lng: float) -> str:
        """Move a stop to a new coordinate (marker drag). Content and name are kept.

        Args:
            index: 1-based stop number.
            lat/lng: New position in degrees.
        """
        try:
            require_state(state, idle=True)
            i = _check_index(index)
            moved = state.waypoints[i].model_copy(update={"lat": lat, "lng": lng})
            Waypoint.model_validate(moved.model_dump())
        except ValueError as e:
            return f"Error: {e}"
        state.waypoints = [moved if j == i else wp for j, wp in enumerate(state.waypoints)]
        return f"Moved stop {index} '{moved.name}' to {lat:.5f}, {lng:.5f}."

    @mcp.tool(annotations=ToolAnnotations(readOnlyHint=False, destructiveHint=False))
    def reorder_waypoint(from_index: int, to_index: int) -> str:
        """Move a stop to another position in the visiting order (list drag).

        Args:
            from_index: 1-based current position.
            to_index: 1-based target position.
        """
        try:
            require_state(state, idle=True)
            src = _check_index(from_index)
            dst = _check_index(to_index)
        except ValueError as e:
            return f"Error: {e}"
        waypoints = list(state.waypoints)
        waypoints.insert(dst, waypoints.pop(src))
        state.waypoints = waypoints
        return f"Tour order: {_listing()}"

    @mcp.tool(annotations=ToolAnnotations(readOnlyHint=False, destructiveHint=True))
    def remove_waypoint(index: int) -> str:
        """Remove a stop from the tour.

        Args:
            index: 1-based stop number.
        """
        try:
            require_state(state, idle=True)
            i = _check_index(index)
        except ValueError as e:
            return f"Error: {e}"
        removed = state.waypoints[i]
        state.waypoints = [wp for j, wp in enumerate(state.waypoints) if j != i]
        return f"Removed '{removed.name}'. Tour: {_listing()}"

    @mcp.tool(annotations=ToolAnnotations(readOnlyHint=False, destructiveHint=True))
    def clear_tour() -> str:
        """Clear the workspace: stops, route, navigation, and any polling or position watch."""
        state.reset_tour()
        return "Tour cleared."

    @mcp.tool(annotations=ToolAnnotations(readOnlyHint=False, destructiveHint=False))
    def import_gpx_waypoints(file_path: str) -> str:
        """Append the waypoints (or route points) of a GPX file as stops.

        Args:
            file_path: Absolute path to a .gpx file.
        """
        try:
            require_state(state, idle=True)
            imported = parse_gpx_waypoints(file_path)
        except (OSError, ValueError, GPXException) as e:
            return f"Error: {e}"
        if not imported:
            return "Error: GPX file has no waypoints or route points."
        state.waypoints = [*state.waypoints, *imported]
        return f"Imported {len(imported)} stop(s). Tour: {_listing()}"
