#!/usr/bin/env python
"""Main entry point for the MemoSpace MCP server."""
import argparse
import logging
import os
import sys
from pathlib import Path

from memospace_mcp.config import STORAGE_BACKENDS, config
from memospace_mcp.exceptions import StorageError
from memospace_mcp.observability import configure_logging
from memospace_mcp.server.mcp_server import MemoSpaceMcpServer
from memospace_mcp.storage import create_blob_store


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="MemoSpace MCP Server")
    parser.add_argument(
        "--data-dir",
        help="Directory for the JSON collection files",
        type=str,
        default=os.environ.get("MEMOSPACE_DATA_DIR"),
    )
    parser.add_argument(
        "--database-path",
        help="SQLite database file path (sqlite storage only)",
        type=str,
        default=os.environ.get("MEMOSPACE_DATABASE_PATH"),
    )
    parser.add_argument(
        "--storage",
        help="Storage backend",
        choices=STORAGE_BACKENDS,
        default=None,
    )
    parser.add_argument(
        "--log-level",
        help="Logging level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=os.environ.get("MEMOSPACE_LOG_LEVEL", "INFO"),
    )
    return parser.parse_args(argv)


def update_config(args):
    """Update the global config with command line arguments."""
    if args.data_dir:
        config.data_dir = Path(args.data_dir)
    if args.database_path:
        config.database_path = Path(args.database_path)
    if args.storage:
        config.storage_backend = args.storage


def main():
    """Run the MemoSpace MCP server."""
    args = parse_args()
    update_config(args)

    log_level = getattr(logging, args.log_level.upper(), logging.INFO)
    try:
        configure_logging(level=log_level, console=True)
    except OSError as e:
        logging.basicConfig(level=log_level)
        logging.getLogger(__name__).warning(f"Failed to configure file logging: {e}")

    logger = logging.getLogger(__name__)

    try:
        store = create_blob_store(config)
    except (StorageError, OSError) as e:
        logger.error(f"Failed to open storage: {e}")
        sys.exit(1)

    try:
        logger.info(f"Starting MemoSpace MCP server ({config.storage_backend} storage)")
        server = MemoSpaceMcpServer(store=store)
        server.run()
    except Exception as e:
        logger.error(f"Error running server: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
