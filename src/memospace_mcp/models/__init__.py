"""Data models for the MemoSpace MCP server."""
