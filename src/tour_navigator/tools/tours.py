"""Tour backend tools: list, load and save tours, ask follow-up questions."""

import logging

from mcp.server.fastmcp import FastMCP
from mcp.types import ToolAnnotations

from ..state import state
from ..core.backend import BackendError
from ..core.reconcile import add_follow_up_placeholder, content_incomplete
from . import _services
from ._prereqs import require_state

logger = logging.getLogger(__name__)


def _content_status() -> str:
    ready = sum(wp.content_complete for wp in state.waypoints)
    return f"{ready}/{len(state.waypoints)} stop(s) have their content ready"


def register_tour_tools(mcp: FastMCP):

    @mcp.tool(annotations=ToolAnnotations(readOnlyHint=True, openWorldHint=True))
    async def list_tours() -> str:
        """List the tours stored on the backend.

        **Next:** load_tour with one of the listed ids.
        """
        try:
            tours = await _services.get_backend().list_tours()
        except BackendError as e:
            return f"Error: {e}"
        if not tours:
            return "No tours saved yet."
        lines = [f"{len(tours)} tour(s):"]
        for t in tours:
            lines.append(f"- {t.id}: {t.name or '(unnamed)'} ({len(t.waypoints)} stops)")
        return "\n".join(lines)

    @mcp.tool(annotations=ToolAnnotations(readOnlyHint=False, destructiveHint=True, openWorldHint=True))
    async def load_tour(tour_id: str) -> str:
        """Open a saved tour, replacing the current workspace.

        Content still being generated is polled in the background.
        **Next:** get_status to watch content, then start_navigation.

        Args:
            tour_id: Id from list_tours.
        """
        try:
            tour = await _services.get_backend().get_tour(tour_id)
        except BackendError as e:
            return f"Error: {e}"

        state.reset_tour()
        state.tour_id = tour.id
        state.tour_name = tour.name
        state.guide_personality = tour.guide_personality
        state.user_preferences = tour.user_preferences
        state.waypoints = list(tour.waypoints)
        logger.info("Loaded tour %s with %d waypoint(s)", tour.id, len(tour.waypoints))

        polling = _services.ensure_polling()
        msg = f"Loaded '{tour.name or tour.id}' with {len(tour.waypoints)} stop(s); {_content_status()}."
        if polling:
            msg += " Polling for the rest."
        return msg

    @mcp.tool(annotations=ToolAnnotations(readOnlyHint=False, destructiveHint=False, openWorldHint=True))
    async def save_tour(
        name: str | None = None,
        guide_personality: str | None = None,
        user_preferences: str | None = None,
    ) -> str:
        """Save the tour to the backend, which generates content for each stop.

        Creates the tour on first save, updates it afterwards. Background polling
        is paused while the save is in flight.
        **Requires:** at least 1 stop, navigation not active.

        Args:
            name: Tour name (keeps the current one if omitted).
            guide_personality: How the guide should sound, e.g. "cheerful historian".
            user_preferences: What the walker cares about, e.g. "street food, architecture".
        """
        try:
            require_state(state, waypoints=1, idle=True)
        except ValueError as e:
            return f"Error: {e}"
        if state.is_processing_submission:
            return "Error: A save is already in progress."

        if name is not None:
            state.tour_name = name
        if guide_personality is not None:
            state.guide_personality = guide_personality
        if user_preferences is not None:
            state.user_preferences = user_preferences

        state.is_processing_submission = True
        state.tasks.stop_polling()
        try:
            saved = await _services.get_backend().save_tour(state.as_tour())
            state.tour_id = saved.id
            _services.apply_remote_tour(saved)
        except BackendError as e:
            return f"Error: {e}"
        finally:
            state.is_processing_submission = False

        logger.info("Saved tour %s", state.tour_id)
        polling = _services.ensure_polling()
        msg = f"Tour saved as {state.tour_id}; {_content_status()}."
        if polling:
            msg += " Content is being generated; polling for updates."
        return msg

    @mcp.tool(annotations=ToolAnnotations(readOnlyHint=False, destructiveHint=False, openWorldHint=True))
    async def ask_question(question: str) -> str:
        """Ask a follow-up question about the stop you just arrived at.

        The answer is generated in the background and appears in the stop's content.
        **Requires:** a saved tour and a recent arrival during navigation.

        Args:
            question: The question, e.g. "Who designed this building?".
        """
        question = question.strip()
        if not question:
            return "Error: The question is empty."
        try:
            require_state(state, saved=True)
        except ValueError as e:
            return f"Error: {e}"
        waypoint = state.find_waypoint(state.navigation.active_follow_up_waypoint_id)
        if waypoint is None:
            return "Error: No stop to ask about. Questions open when you arrive at a stop."

        state.navigation.pending_question = question
        try:
            receipt = await _services.get_backend().post_follow_up_question(
                state.tour_id, waypoint.name, question,
            )
        except BackendError as e:
            state.navigation.pending_question = ""
            return f"Error: Question was not accepted: {e}"
        state.navigation.pending_question = ""

        # A content poll may have replaced the waypoint objects during the request
        waypoint = state.find_waypoint(waypoint.id)
        if waypoint is None:
            return "Error: The stop was removed while the question was being sent."
        nugget = next(
            (n for n in waypoint.content if receipt.nugget_id and n.id == receipt.nugget_id), None,
        )
        if nugget is None:
            nugget = add_follow_up_placeholder(
                waypoint, question, nugget_id=receipt.nugget_id, nugget=receipt.nugget,
            )
        if nugget.ready:
            return f"Answer for '{waypoint.name}': {nugget.answer}"
        _services.ensure_polling()
        return f"Question about '{waypoint.name}' accepted; the answer will appear in its content."

    @mcp.tool(annotations=ToolAnnotations(readOnlyHint=False, destructiveHint=False, openWorldHint=True))
    async def refresh_content() -> str:
        """Fetch the saved tour once and merge any newly generated content.

        **Requires:** a saved tour.
        """
        try:
            require_state(state, saved=True)
        except ValueError as e:
            return f"Error: {e}"
        if state.is_processing_submission:
            return "Error: A save is in progress; try again shortly."
        try:
            tour = await _services.get_backend().get_tour(state.tour_id)
        except BackendError as e:
            return f"Error: {e}"
        if state.is_processing_submission:
            return "Error: A save started meanwhile; result dropped."
        _services.apply_remote_tour(tour)
        if content_incomplete(state.waypoints):
            _services.ensure_polling()
        return f"Content refreshed: {_content_status()}."
