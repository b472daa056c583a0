"""Export tool: export_gpx."""

from pathlib import Path

from mcp.server.fastmcp import FastMCP
from mcp.types import ToolAnnotations

from ..state import state
from ..core.gpx import export_tour_gpx
from ._prereqs import require_state


def register_export_tools(mcp: FastMCP):

    @mcp.tool(annotations=ToolAnnotations(readOnlyHint=False, destructiveHint=True))
    def export_gpx(output_path: str) -> str:
        """Export the tour as GPX: stops as waypoints and a route, the walking path as a track.

        **Requires:** at least 1 stop. Run optimize_route first to include the path.

        Args:
            output_path: File path for the .gpx file.
        """
        try:
            require_state(state, waypoints=1)
        except ValueError as e:
            return f"Error: {e}"
        if Path(output_path).suffix.lower() != ".gpx":
            output_path = f"{output_path}.gpx"
        try:
            result = export_tour_gpx(state.tour_name, state.waypoints, state.route.path, output_path)
        except OSError as e:
            return f"Error: Could not write {output_path}: {e}"
        return (
            f"Exported GPX to {result['filepath']}: {result['waypoints']} stop(s), "
            f"{result['track_points']} track point(s)."
        )
