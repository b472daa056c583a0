"""MCP server smoke test: verifies the server starts and responds to initialize."""

import sys
import pytest
from mcp.client.stdio import stdio_client, StdioServerParameters
from mcp import ClientSession


@pytest.mark.anyio
async def test_mcp_server_initializes():
    """Server starts and responds to MCP initialize with correct name."""
    params = StdioServerParameters(
        command=sys.executable,
        args=["-m", "tour_navigator"],
    )
    async with stdio_client(params) as (read, write):
        async with ClientSession(read, write) as session:
            result = await session.initialize()

            assert result.serverInfo.name == "tour-navigator"


@pytest.mark.anyio
async def test_mcp_server_exposes_expected_tools():
    """Server exposes the expected MCP tools."""
    params = StdioServerParameters(
        command=sys.executable,
        args=["-m", "tour_navigator"],
    )
    async with stdio_client(params) as (read, write):
        async with ClientSession(read, write) as session:
            await session.initialize()
            tools = await session.list_tools()

        tool_names = {t.name for t in tools.tools}
        assert "add_waypoint" in tool_names
        assert "add_place" in tool_names
        assert "optimize_route" in tool_names
        assert "save_tour" in tool_names
        assert "start_navigation" in tool_names
        assert "simulate_click" in tool_names
        assert "ask_question" in tool_names
        assert "get_status" in tool_names
