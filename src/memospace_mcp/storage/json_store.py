"""Blob store backed by one JSON file per collection."""
import json
import logging
import os
from pathlib import Path
from typing import Dict, Optional, Union

from memospace_mcp.exceptions import CorruptStoreError, ErrorCode, StorageError
from memospace_mcp.storage.base import BlobStore, Collection, Document

logger = logging.getLogger(__name__)

# File names kept compatible with existing data directories
FILE_NAMES: Dict[Collection, str] = {
    Collection.NOTES: "notes.json",
    Collection.CATEGORIES: "categories.json",
    Collection.LINKS: "note_links.json",
    Collection.UI_STATE: "ui_state.json",
}


class JsonFileStore(BlobStore):
    """Stores each collection as a pretty-printed JSON file in ``data_dir``.

    Writes go to a temporary sibling file that is then renamed over the
    target, so a crash mid-write leaves the previous document intact.
    """

    def __init__(self, data_dir: Union[str, Path]):
        """Initialize the store.

        Args:
            data_dir: Directory for the collection files. Created if missing.
        """
        self.data_dir = Path(data_dir)
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(
                f"Failed to create data directory: {e}",
                operation="init",
                code=ErrorCode.STORAGE_WRITE_FAILED,
                original_error=e,
            )
        logger.info(f"JsonFileStore initialized at {self.data_dir}")

    def path_for(self, collection: Collection) -> Path:
        """Get the file backing a collection."""
        return self.data_dir / FILE_NAMES[collection]

    def exists(self, collection: Collection) -> bool:
        return self.path_for(collection).exists()

    def load(self, collection: Collection) -> Optional[Document]:
        file_path = self.path_for(collection)
        if not file_path.exists():
            return None

        try:
            with open(file_path, "r", encoding="utf-8") as f:
                raw = f.read()
        except OSError as e:
            raise StorageError(
                f"Failed to read {collection.value} file: {e}",
                operation="load",
                collection=collection.value,
                code=ErrorCode.STORAGE_READ_FAILED,
                original_error=e,
            )

        try:
            document = json.loads(raw)
        except json.JSONDecodeError as e:
            raise CorruptStoreError(
                f"Failed to parse {collection.value} file: {e}",
                collection=collection.value,
                original_error=e,
            )
        if not isinstance(document, dict):
            raise CorruptStoreError(
                f"Failed to parse {collection.value} file: expected a JSON object",
                collection=collection.value,
            )
        return document

    def save(self, collection: Collection, document: Document) -> None:
        file_path = self.path_for(collection)
        temp_file = file_path.with_suffix(".tmp")
        try:
            content = json.dumps(document, indent=2, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise StorageError(
                f"Failed to serialize {collection.value}: {e}",
                operation="save",
                collection=collection.value,
                code=ErrorCode.STORAGE_WRITE_FAILED,
                original_error=e,
            )

        try:
            with open(temp_file, "w", encoding="utf-8") as f:
                f.write(content)
            os.replace(temp_file, file_path)
        except OSError as e:
            try:
                temp_file.unlink()
            except OSError:
                pass  # Temp file never created or already gone
            raise StorageError(
                f"Failed to write {collection.value} file: {e}",
                operation="save",
                collection=collection.value,
                code=ErrorCode.STORAGE_WRITE_FAILED,
                original_error=e,
            )
        logger.debug(f"Saved {collection.value} to {file_path}")
