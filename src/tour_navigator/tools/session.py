"""Session persistence tools: save_session, load_session."""

import json
import logging
from pathlib import Path

from pydantic import ValidationError
from mcp.server.fastmcp import FastMCP
from mcp.types import ToolAnnotations

from ..state import state, NavigationParams, PositionMode
from ..models import Waypoint
from . import _services

logger = logging.getLogger(__name__)


def _default_path() -> Path:
    return Path.home() / ".cache" / "tour-navigator" / "session.json"


def register_session_tools(mcp: FastMCP):

    @mcp.tool(annotations=ToolAnnotations(readOnlyHint=False, destructiveHint=True))
    def save_session(path: str | None = None) -> str:
        """Save the workspace to a JSON file for later resumption.

        Saves tour metadata, stops (with their content and visited flags),
        navigation params and position mode. Does NOT save the route or the
        navigation session (optimize_route / start_navigation after loading).
        **Next:** load_session in a future session to restore this tour.

        Args:
            path: Where to save. Default: ~/.cache/tour-navigator/session.json
        """
        save_path = Path(path) if path else _default_path()
        save_path.parent.mkdir(parents=True, exist_ok=True)

        data: dict = {
            "tour": {
                "tour_id": state.tour_id,
                "name": state.tour_name,
                "guide_personality": state.guide_personality,
                "user_preferences": state.user_preferences,
            },
            "waypoints": [wp.model_dump() for wp in state.waypoints],
            "params": state.params.model_dump(),
            "mode": state.navigation.mode.value,
        }

        with open(save_path, "w") as f:
            json.dump(data, f, indent=2)

        logger.info("Session saved to %s", save_path)
        return f"Session saved to {save_path}"

    @mcp.tool(annotations=ToolAnnotations(readOnlyHint=False, destructiveHint=False))
    def load_session(path: str | None = None) -> str:
        """Load a previously saved workspace from a JSON file.

        Replaces the current tour. Stops any navigation, watch or polling; the
        route is recomputed on the next optimize_route or start_navigation.

        Args:
            path: Path to load from. Default: ~/.cache/tour-navigator/session.json
        """
        load_path = Path(path) if path else _default_path()

        if not load_path.exists():
            return f"Error: Session file not found at {load_path}"

        try:
            with open(load_path) as f:
                data = json.load(f)
            waypoints = [Waypoint.model_validate(w) for w in data.get("waypoints", [])]
            params = NavigationParams(**data.get("params", {}))
            mode = PositionMode(data.get("mode", PositionMode.SIMULATED.value))
        except json.JSONDecodeError as e:
            return f"Error: Invalid session file: {e}"
        except (ValidationError, ValueError, TypeError) as e:
            return f"Error: Session file has invalid contents: {e}"

        state.reset_tour()
        tour = data.get("tour") or {}
        state.tour_id = tour.get("tour_id", "")
        state.tour_name = tour.get("name", "")
        state.guide_personality = tour.get("guide_personality", "")
        state.user_preferences = tour.get("user_preferences", "")
        state.waypoints = waypoints
        state.params = params
        state.navigation.mode = mode

        restored = [f"{len(waypoints)} stop(s)", "params", f"{mode.value} mode"]
        if state.tour_id:
            restored.insert(0, f"tour {state.tour_id}")
        msg = f"Session restored from {load_path}. Restored: {', '.join(restored)}."
        if _services.ensure_polling():
            msg += " Polling for pending content."
        return msg
