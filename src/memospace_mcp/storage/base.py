"""Base classes for the storage layer."""
import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Dict, Generic, List, Optional, Tuple, TypeVar

logger = logging.getLogger(__name__)

Document = Dict[str, Any]


class Collection(str, Enum):
    """Logical names of the persisted documents."""

    NOTES = "notes"
    CATEGORIES = "categories"
    LINKS = "links"
    UI_STATE = "ui_state"


class BlobStore(ABC):
    """Durable store of whole JSON documents keyed by collection name.

    Implementations load and save a document in one piece. ``save`` either
    replaces the stored document completely or raises ``StorageError``;
    there is no partial write and no cross-collection transaction.
    """

    @abstractmethod
    def load(self, collection: Collection) -> Optional[Document]:
        """Load a collection document.

        Returns:
            The decoded document, or None if the collection was never saved.

        Raises:
            StorageError: If the underlying read fails.
            CorruptStoreError: If the stored bytes are not a JSON object.
        """
        pass

    @abstractmethod
    def save(self, collection: Collection, document: Document) -> None:
        """Replace a collection document.

        Raises:
            StorageError: If the underlying write fails.
        """
        pass

    @abstractmethod
    def exists(self, collection: Collection) -> bool:
        """Check whether a collection has ever been saved."""
        pass


T = TypeVar("T")


class Repository(ABC, Generic[T]):
    """Loads and saves one collection of items through a blob store.

    Every call reads the whole collection; there is no cache. A collection
    that was never saved is persisted empty on first load.
    """

    collection: Collection

    def __init__(self, store: BlobStore):
        self.store = store

    @abstractmethod
    def _decode(self, document: Document) -> Tuple[List[T], bool]:
        """Decode a stored document.

        Returns:
            The items and whether they were migrated and need re-saving.
        """
        pass

    @abstractmethod
    def _encode(self, items: List[T]) -> Document:
        """Encode items into a collection document."""
        pass

    def load_all(self) -> List[T]:
        """Load every item in storage order, migrating if needed."""
        document = self.store.load(self.collection)
        if document is None:
            logger.info(f"No {self.collection.value} collection found, creating empty one")
            self.save_all([])
            return []

        items, changed = self._decode(document)
        if changed:
            logger.info(f"Persisting migrated {self.collection.value} collection")
            self.save_all(items)
        return items

    def save_all(self, items: List[T]) -> None:
        """Replace the stored collection with ``items``."""
        self.store.save(self.collection, self._encode(items))
