"""Service layer for notes."""
import logging
from typing import List, Optional, Sequence, Tuple

from memospace_mcp.config import config
from memospace_mcp.exceptions import (
    InconsistentHierarchyError,
    NoteNotFoundError,
    ValidationError,
)
from memospace_mcp.models import hierarchy
from memospace_mcp.models.schema import GraphPosition, Note
from memospace_mcp.services.category_service import CategoryService
from memospace_mcp.services.title_service import TitleService
from memospace_mcp.storage.note_repository import NoteRepository

logger = logging.getLogger(__name__)


def _find(notes: Sequence[Note], note_id: str) -> Note:
    for note in notes:
        if note.id == note_id:
            return note
    raise NoteNotFoundError(note_id)


class NoteService:
    """Operations on notes.

    Saving a note files it under an existing category path, creating any
    missing categories along the way. Every mutation that can change the
    number of notes under a path ends with a recount.
    """

    def __init__(
        self,
        notes: NoteRepository,
        categories: CategoryService,
        titles: Optional[TitleService] = None,
        default_category: Optional[str] = None,
    ):
        self.notes = notes
        self.categories = categories
        self.titles = titles or TitleService()
        self.default_category = default_category or config.default_category

    def _ensure_category_path(self, path: List[str]) -> None:
        """Create whatever part of ``path`` is missing, root first."""
        try:
            if self.categories.validate_path(path):
                return
        except InconsistentHierarchyError as e:
            logger.warning(f"Repairing category hierarchy: {e.message}")

        for i in range(1, len(path) + 1):
            prefix = path[:i]
            if self.categories.get_by_path(prefix) is None:
                self.categories.create(prefix[-1], prefix[:-1])

    def save(
        self,
        content: str,
        category_path: Optional[Sequence[str]] = None,
        custom_title: Optional[str] = None,
    ) -> Note:
        """Save a new note.

        Args:
            content: Note body.
            category_path: Where to file the note; the default category
                when None or empty.
            custom_title: Explicit title; blank values are ignored.

        Raises:
            ValidationError: If the category path has a blank segment.
        """
        path = list(category_path) if category_path else [self.default_category]
        if not hierarchy.is_valid_path(path):
            raise ValidationError(
                "Category path segments cannot be empty",
                field="category_path",
                value=path,
            )

        title = self.titles.resolve_title(content, custom_title)
        self._ensure_category_path(path)

        note = Note(title=title, content=content, category_path=path)
        notes = self.notes.load_all()
        notes.append(note)
        self.notes.save_all(notes)
        logger.info(f"Saved note {note.id} under {hierarchy.render(path)}")

        self.categories.recount_notes()
        return note

    def update(self, note_id: str, content: str, title: Optional[str] = None) -> Note:
        """Replace a note's content and title.

        Without a non-blank ``title`` the title is derived from the new
        content as on save.

        Raises:
            NoteNotFoundError: If the note does not exist.
        """
        notes = self.notes.load_all()
        note = _find(notes, note_id)

        note.content = content
        note.title = self.titles.resolve_title(content, title)
        self.notes.save_all(notes)
        logger.info(f"Updated note {note_id}")

        self.categories.recount_notes()
        return note

    def delete(self, note_id: str) -> None:
        """Delete a note; deleting an unknown id is not an error.

        Links that reference the note are left in place.
        """
        notes = self.notes.load_all()
        remaining = [note for note in notes if note.id != note_id]
        self.notes.save_all(remaining)
        if len(remaining) == len(notes):
            logger.debug(f"Delete of unknown note {note_id} ignored")
        else:
            logger.info(f"Deleted note {note_id}")
        self.categories.recount_notes()

    def get(self, note_id: str) -> Optional[Note]:
        for note in self.notes.load_all():
            if note.id == note_id:
                return note
        return None

    def list_notes(self) -> List[Note]:
        return self.notes.load_all()

    def list_by_category(self, path: Sequence[str]) -> List[Note]:
        """Notes filed under ``path`` or any of its descendants."""
        return [
            note for note in self.notes.load_all()
            if hierarchy.is_ancestor_or_self(path, note.category_path)
        ]

    def set_position(self, note_id: str, x: float, y: float) -> Note:
        """Place a note in the graph view.

        Raises:
            NoteNotFoundError: If the note does not exist.
        """
        notes = self.notes.load_all()
        note = _find(notes, note_id)
        note.position = GraphPosition(x=x, y=y, z_index=None)
        self.notes.save_all(notes)
        return note

    def list_positions(self) -> List[Tuple[str, GraphPosition]]:
        """(note id, position) for every placed note, in storage order."""
        return [
            (note.id, note.position)
            for note in self.notes.load_all()
            if note.position is not None
        ]
