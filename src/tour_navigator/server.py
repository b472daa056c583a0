"""MCP server for tour-navigator.

Registers all tools and the session resource, and runs via stdio transport.
"""

import json
import logging
import sys

from mcp.server.fastmcp import FastMCP

from .config import settings
from .state import state
from .tools.waypoints import register_waypoint_tools
from .tools.route import register_route_tools
from .tools.navigation import register_navigation_tools
from .tools.tours import register_tour_tools
from .tools.params import register_params_tools
from .tools.session import register_session_tools
from .tools.export import register_export_tools
from .tools.status import register_status_tools

mcp = FastMCP(
    "tour-navigator",
    instructions=(
        "Build walking tours, have a guide generate audio content for each stop, "
        "and navigate them with real or simulated positions"
    ),
)

# Register all tool groups
register_waypoint_tools(mcp)
register_route_tools(mcp)
register_navigation_tools(mcp)
register_tour_tools(mcp)
register_params_tools(mcp)
register_session_tools(mcp)
register_export_tools(mcp)
register_status_tools(mcp)


@mcp.resource("state://session")
def session_state() -> str:
    """Current tour, route, navigation and task state as JSON."""
    return json.dumps(state.summary(), indent=2)


def main():
    # stdout carries the MCP stdio transport
    logging.basicConfig(
        stream=sys.stderr,
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
