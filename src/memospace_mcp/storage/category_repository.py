"""Repository for the categories collection."""
import logging
from typing import List, Tuple

from pydantic import ValidationError as PydanticValidationError

from memospace_mcp.exceptions import CorruptStoreError
from memospace_mcp.models.schema import CategoriesDocument, Category, to_document
from memospace_mcp.storage.base import BlobStore, Collection, Document, Repository
from memospace_mcp.storage.migrations import migrate_categories

logger = logging.getLogger(__name__)


class CategoryRepository(Repository[Category]):
    """Categories in storage order, with cached fields backfilled on load."""

    collection = Collection.CATEGORIES

    def __init__(self, store: BlobStore):
        super().__init__(store)
        logger.info("CategoryRepository initialized")

    def _decode(self, document: Document) -> Tuple[List[Category], bool]:
        try:
            categories = CategoriesDocument.model_validate(document).categories
        except PydanticValidationError as e:
            raise CorruptStoreError(
                "Failed to parse categories",
                collection=self.collection.value,
                original_error=e,
            )
        return categories, migrate_categories(categories)

    def _encode(self, items: List[Category]) -> Document:
        return to_document(CategoriesDocument(categories=items))
