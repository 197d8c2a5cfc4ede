"""Blob store backed by a single SQLite table."""
import datetime
import json
import logging
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from memospace_mcp.exceptions import CorruptStoreError, ErrorCode, StorageError
from memospace_mcp.models.db_models import DBDocument, get_session_factory, init_db
from memospace_mcp.storage.base import BlobStore, Collection, Document

logger = logging.getLogger(__name__)


class SqliteBlobStore(BlobStore):
    """Stores each collection document as one row of the ``documents`` table.

    Each ``save`` is its own transaction, matching the one-document-at-a-time
    contract of the file store.
    """

    def __init__(self, engine: Optional[Any] = None):
        """Initialize the store.

        Args:
            engine: SQLAlchemy engine. If None, one is created from config.
        """
        try:
            self.engine = engine or init_db()
        except SQLAlchemyError as e:
            raise StorageError(
                f"Failed to open database: {e}",
                operation="init",
                code=ErrorCode.STORAGE_READ_FAILED,
                original_error=e,
            )
        self.session_factory = get_session_factory(self.engine)
        logger.info("SqliteBlobStore initialized")

    def exists(self, collection: Collection) -> bool:
        try:
            with self.session_factory() as session:
                return session.get(DBDocument, collection.value) is not None
        except SQLAlchemyError as e:
            raise StorageError(
                f"Failed to query {collection.value}: {e}",
                operation="exists",
                collection=collection.value,
                code=ErrorCode.STORAGE_READ_FAILED,
                original_error=e,
            )

    def load(self, collection: Collection) -> Optional[Document]:
        try:
            with self.session_factory() as session:
                body = session.scalar(
                    select(DBDocument.body).where(DBDocument.name == collection.value)
                )
        except SQLAlchemyError as e:
            raise StorageError(
                f"Failed to read {collection.value}: {e}",
                operation="load",
                collection=collection.value,
                code=ErrorCode.STORAGE_READ_FAILED,
                original_error=e,
            )
        if body is None:
            return None

        try:
            document = json.loads(body)
        except json.JSONDecodeError as e:
            raise CorruptStoreError(
                f"Failed to parse {collection.value} document: {e}",
                collection=collection.value,
                original_error=e,
            )
        if not isinstance(document, dict):
            raise CorruptStoreError(
                f"Failed to parse {collection.value} document: expected a JSON object",
                collection=collection.value,
            )
        return document

    def save(self, collection: Collection, document: Document) -> None:
        try:
            body = json.dumps(document, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise StorageError(
                f"Failed to serialize {collection.value}: {e}",
                operation="save",
                collection=collection.value,
                code=ErrorCode.STORAGE_WRITE_FAILED,
                original_error=e,
            )

        try:
            with self.session_factory() as session:
                db_document = session.get(DBDocument, collection.value)
                if db_document is None:
                    session.add(DBDocument(name=collection.value, body=body))
                else:
                    db_document.body = body
                    db_document.updated_at = datetime.datetime.now()
                session.commit()
        except SQLAlchemyError as e:
            raise StorageError(
                f"Failed to write {collection.value}: {e}",
                operation="save",
                collection=collection.value,
                code=ErrorCode.STORAGE_WRITE_FAILED,
                original_error=e,
            )
        logger.debug(f"Saved {collection.value} document")
