"""MCP server for MemoSpace."""
