"""Service layer for the MemoSpace MCP server."""
