"""Parameter tool: set_navigation_params."""

from pydantic import ValidationError
from mcp.server.fastmcp import FastMCP
from mcp.types import ToolAnnotations

from ..state import state, NavigationParams


def register_params_tools(mcp: FastMCP):

    @mcp.tool(annotations=ToolAnnotations(readOnlyHint=False, destructiveHint=False))
    def set_navigation_params(
        arrival_threshold_m: float | None = None,
        progress_threshold_m: float | None = None,
        poll_interval_s: float | None = None,
        resample_interval_m: float | None = None,
        match_epsilon_deg: float | None = None,
    ) -> str:
        """Adjust navigation tuning. Only provided values change.

        Args:
            arrival_threshold_m: Distance that counts as arriving at a stop (default 30).
            progress_threshold_m: Max distance to the route for a progress match (default 30).
            poll_interval_s: Seconds between content polls (default 7).
            resample_interval_m: Route sample spacing; applies to the next route (default 5).
            match_epsilon_deg: Coordinate tolerance for matching backend stops (default 0.0001).
        """
        updates = {
            k: v for k, v in {
                "arrival_threshold_m": arrival_threshold_m,
                "progress_threshold_m": progress_threshold_m,
                "poll_interval_s": poll_interval_s,
                "resample_interval_m": resample_interval_m,
                "match_epsilon_deg": match_epsilon_deg,
            }.items() if v is not None
        }
        try:
            params = NavigationParams.model_validate({**state.params.model_dump(), **updates})
        except ValidationError as e:
            return f"Error: {e.errors()[0]['loc'][0]}: {e.errors()[0]['msg']}"
        state.params = params
        p = state.params
        return (
            f"Navigation params: arrival {p.arrival_threshold_m:g} m, "
            f"progress {p.progress_threshold_m:g} m, poll every {p.poll_interval_s:g}s, "
            f"samples every {p.resample_interval_m:g} m, match tolerance {p.match_epsilon_deg:g} deg."
        )
