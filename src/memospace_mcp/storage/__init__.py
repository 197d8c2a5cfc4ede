"""Storage layer for the MemoSpace MCP server."""
import logging
from typing import Optional

from memospace_mcp.config import MemoSpaceConfig
from memospace_mcp.config import config as default_config
from memospace_mcp.models.db_models import init_db
from memospace_mcp.storage.base import BlobStore, Collection, Repository
from memospace_mcp.storage.category_repository import CategoryRepository
from memospace_mcp.storage.json_store import JsonFileStore
from memospace_mcp.storage.link_repository import LinkRepository
from memospace_mcp.storage.note_repository import NoteRepository
from memospace_mcp.storage.sqlite_store import SqliteBlobStore
from memospace_mcp.storage.ui_state_repository import UIStateRepository

logger = logging.getLogger(__name__)


def create_blob_store(cfg: Optional[MemoSpaceConfig] = None) -> BlobStore:
    """Build the blob store selected by ``storage_backend``."""
    cfg = cfg or default_config
    if cfg.storage_backend == "sqlite":
        logger.info(f"Using SQLite storage at {cfg.get_absolute_path(cfg.database_path)}")
        return SqliteBlobStore(init_db(cfg.get_db_url()))
    logger.info(f"Using JSON file storage at {cfg.get_data_dir()}")
    return JsonFileStore(cfg.get_data_dir())


__all__ = [
    "BlobStore",
    "Collection",
    "Repository",
    "JsonFileStore",
    "SqliteBlobStore",
    "NoteRepository",
    "CategoryRepository",
    "LinkRepository",
    "UIStateRepository",
    "create_blob_store",
]
