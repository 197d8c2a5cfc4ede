"""
MemoSpace MCP - a personal knowledge base exposed as an MCP server.
Notes are filed under a hierarchical category tree and connected by typed
links, with graph-view positions persisted alongside them.

This version uses synchronous operations.
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("memospace-mcp")
except PackageNotFoundError:
    __version__ = "0.3.0"
