"""Walking tour builder and navigator exposed as an MCP server."""
