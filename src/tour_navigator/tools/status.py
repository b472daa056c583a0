"""Status tool: get_status."""

import json
from mcp.server.fastmcp import FastMCP
from mcp.types import ToolAnnotations

from ..state import state


def register_status_tools(mcp: FastMCP):

    @mcp.tool(annotations=ToolAnnotations(readOnlyHint=True))
    def get_status() -> str:
        """Return a summary of the current tour.

        Shows the stops and whether their content is ready, the cached route,
        the navigation session, the audio cue and which background tasks run.
        """
        return json.dumps(state.summary(), indent=2)
