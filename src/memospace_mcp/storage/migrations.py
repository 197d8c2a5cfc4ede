"""Backward-compatible decoding of persisted collections.

Note documents are decoded by trying each known schema in order, newest
first; the first decoder that accepts the whole document wins. Decoders
are pure functions of the loaded document and signal rejection with
``DecodeFailure``. Category documents only need their cached fields
backfilled.
"""
import datetime
import logging
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Sequence, Tuple

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from memospace_mcp.exceptions import CorruptStoreError
from memospace_mcp.models.schema import Category, GraphPosition, Note, NotesDocument, utc_now
from memospace_mcp.storage.base import Collection, Document
from memospace_mcp.utils import derive_simple_title

logger = logging.getLogger(__name__)

CURRENT_SCHEMA = "current"


class DecodeFailure(Exception):
    """A decoder does not recognise the document."""


class _UntitledNote(BaseModel):
    """Notes saved before titles existed."""

    id: str
    content: str
    category_path: List[str]
    timestamp: datetime.datetime = Field(default_factory=utc_now)
    tags: List[str] = Field(default_factory=list)
    ai_confidence: Optional[float] = None
    title: Optional[str] = None
    position: Optional[GraphPosition] = None


class _SingleCategoryNote(BaseModel):
    """Oldest schema: one flat category string per note."""

    id: str
    content: str
    category: str
    timestamp: datetime.datetime = Field(default_factory=utc_now)
    tags: List[str] = Field(default_factory=list)


def _raw_notes(document: Document) -> List[Any]:
    notes = document.get("notes")
    if not isinstance(notes, list):
        raise DecodeFailure("document has no 'notes' array")
    return notes


def decode_current(document: Document) -> List[Note]:
    """Decode the current schema."""
    try:
        return NotesDocument.model_validate(document).notes
    except PydanticValidationError as e:
        raise DecodeFailure(f"{e.error_count()} validation error(s)") from e


def _from_untitled(old: _UntitledNote) -> Note:
    return Note(
        id=old.id,
        title=old.title if old.title else derive_simple_title(old.content),
        content=old.content,
        category_path=old.category_path,
        timestamp=old.timestamp,
        tags=old.tags,
        ai_confidence=old.ai_confidence,
        position=old.position,
    )


def _from_single_category(old: _SingleCategoryNote) -> Note:
    return Note(
        id=old.id,
        title=derive_simple_title(old.content),
        content=old.content,
        category_path=[old.category],
        timestamp=old.timestamp,
        tags=old.tags,
        ai_confidence=None,
        position=None,
    )


def decode_untitled(document: Document) -> List[Note]:
    """Decode notes that carry ``category_path`` but no title.

    Titles are derived from content. A document that mixes titled and
    untitled notes also lands here, so titles and positions that are
    present are kept. Notes still in the single-category schema are
    converted one by one.
    """
    migrated = []
    for raw in _raw_notes(document):
        try:
            migrated.append(_from_untitled(_UntitledNote.model_validate(raw)))
            continue
        except PydanticValidationError as e:
            untitled_error = e
        try:
            migrated.append(_from_single_category(_SingleCategoryNote.model_validate(raw)))
        except PydanticValidationError:
            raise DecodeFailure(
                f"{untitled_error.error_count()} validation error(s)"
            ) from untitled_error
    return migrated


def decode_single_category(document: Document) -> List[Note]:
    """Decode the oldest schema, wrapping ``category`` into a one-segment path."""
    migrated = []
    for raw in _raw_notes(document):
        try:
            old = _SingleCategoryNote.model_validate(raw)
        except PydanticValidationError as e:
            raise DecodeFailure(f"{e.error_count()} validation error(s)") from e
        migrated.append(_from_single_category(old))
    return migrated


NoteDecoder = Callable[[Document], List[Note]]

# Newest first; order matters
NOTE_DECODERS: Sequence[Tuple[str, NoteDecoder]] = (
    (CURRENT_SCHEMA, decode_current),
    ("untitled", decode_untitled),
    ("single_category", decode_single_category),
)


@dataclass
class DecodedNotes:
    """Outcome of decoding a notes document."""

    notes: List[Note]
    schema: str

    @property
    def migrated(self) -> bool:
        """True if the document was written in an older schema."""
        return self.schema != CURRENT_SCHEMA


def decode_notes(
    document: Document, decoders: Sequence[Tuple[str, NoteDecoder]] = NOTE_DECODERS
) -> DecodedNotes:
    """Decode a notes document with the first decoder that accepts it.

    Raises:
        CorruptStoreError: If no decoder accepts the document.
    """
    failures = []
    for schema, decoder in decoders:
        try:
            notes = decoder(document)
        except DecodeFailure as e:
            failures.append(f"{schema}: {e}")
            continue
        if schema != CURRENT_SCHEMA:
            logger.info(f"Decoded {len(notes)} notes from legacy '{schema}' schema")
        return DecodedNotes(notes=notes, schema=schema)

    logger.error(f"Notes document matches no known schema: {'; '.join(failures)}")
    raise CorruptStoreError(
        "Failed to parse notes (no known schema matched)",
        collection=Collection.NOTES.value,
        attempts=failures,
    )


def backfill_titles(notes: List[Note]) -> bool:
    """Give every untitled note a derived title.

    Returns:
        True if any note changed.
    """
    changed = False
    for note in notes:
        if not note.title:
            note.title = derive_simple_title(note.content)
            changed = True
    return changed


def migrate_categories(categories: List[Category]) -> bool:
    """Backfill ``full_path`` and fix ``level`` on categories from older stores.

    Returns:
        True if any category changed.
    """
    changed = False
    for category in categories:
        if category.refresh_derived():
            changed = True
    if changed:
        logger.info("Migrated category records to current format")
    return changed
