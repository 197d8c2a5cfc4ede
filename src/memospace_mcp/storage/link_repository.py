"""Repository for the note links collection."""
import logging
from typing import List, Tuple

from pydantic import ValidationError as PydanticValidationError

from memospace_mcp.exceptions import CorruptStoreError
from memospace_mcp.models.schema import LinksDocument, NoteLink, to_document
from memospace_mcp.storage.base import BlobStore, Collection, Document, Repository

logger = logging.getLogger(__name__)


class LinkRepository(Repository[NoteLink]):
    """Typed links between notes, in storage order."""

    collection = Collection.LINKS

    def __init__(self, store: BlobStore):
        super().__init__(store)
        logger.info("LinkRepository initialized")

    def _decode(self, document: Document) -> Tuple[List[NoteLink], bool]:
        try:
            return LinksDocument.model_validate(document).links, False
        except PydanticValidationError as e:
            raise CorruptStoreError(
                "Failed to parse note links",
                collection=self.collection.value,
                original_error=e,
            )

    def _encode(self, items: List[NoteLink]) -> Document:
        return to_document(LinksDocument(links=items))
