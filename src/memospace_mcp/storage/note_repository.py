"""Repository for the notes collection."""
import logging
from typing import List, Tuple

from memospace_mcp.models.schema import Note, NotesDocument, to_document
from memospace_mcp.storage.base import BlobStore, Collection, Document, Repository
from memospace_mcp.storage.migrations import backfill_titles, decode_notes

logger = logging.getLogger(__name__)


class NoteRepository(Repository[Note]):
    """Notes in storage order.

    Loading runs the schema migration chain and backfills empty titles;
    either change is written back in the current schema straight away.
    """

    collection = Collection.NOTES

    def __init__(self, store: BlobStore):
        super().__init__(store)
        logger.info("NoteRepository initialized")

    def _decode(self, document: Document) -> Tuple[List[Note], bool]:
        decoded = decode_notes(document)
        titles_changed = backfill_titles(decoded.notes)
        if titles_changed:
            logger.info("Backfilled missing note titles")
        return decoded.notes, decoded.migrated or titles_changed

    def _encode(self, items: List[Note]) -> Document:
        return to_document(NotesDocument(notes=items))
