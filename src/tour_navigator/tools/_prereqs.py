"""Prerequisite checking helpers for MCP tools."""


def require_state(
    state, *, waypoints: int = 0, saved: bool = False, idle: bool = False, navigating: bool = False,
) -> None:
    """Raise ValueError with a descriptive message if required state is not set.

    Usage in a tool:
        try:
            require_state(state, waypoints=2, idle=True)
        except ValueError as e:
            return f"Error: {e}"
    """
    if len(state.waypoints) < waypoints:
        noun = "waypoint" if waypoints == 1 else "waypoints"
        raise ValueError(
            f"Add at least {waypoints} {noun} first with add_waypoint, add_place or import_gpx_waypoints."
        )
    if saved and not state.tour_id:
        raise ValueError("Save the tour first with save_tour, or open one with load_tour.")
    if idle and state.navigation.is_navigating:
        raise ValueError("Navigation is active. Call stop_navigation first.")
    if navigating and not state.navigation.is_navigating:
        raise ValueError("Navigation is not active. Call start_navigation first.")
