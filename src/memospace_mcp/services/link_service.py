"""Service layer for typed links between notes."""
import logging
from typing import List, Optional, Union

from memospace_mcp.exceptions import (
    DuplicateLinkError,
    LinkNotFoundError,
    SourceNotFoundError,
    TargetNotFoundError,
)
from memospace_mcp.models.schema import LinkColor, LinkType, NoteLink
from memospace_mcp.storage.link_repository import LinkRepository
from memospace_mcp.storage.note_repository import NoteRepository

logger = logging.getLogger(__name__)


class LinkService:
    """Creates and removes links, at most one per type and note pair."""

    def __init__(self, links: LinkRepository, notes: NoteRepository):
        self.links = links
        self.notes = notes

    def create(
        self,
        source_id: str,
        target_id: str,
        link_type: Union[str, LinkType],
        label: Optional[str] = None,
        color: Optional[Union[str, LinkColor]] = None,
        directional: Optional[bool] = None,
    ) -> NoteLink:
        """Link two notes.

        Args:
            source_id: ID of the source note.
            target_id: ID of the target note.
            link_type: Fixed type name, or any other string for a custom type.
            label: Optional free-text label.
            color: Color name; unknown names are dropped.
            directional: Whether the view draws an arrow.

        Raises:
            SourceNotFoundError: If the source note does not exist.
            TargetNotFoundError: If the target note does not exist.
            DuplicateLinkError: If the pair already has a link of this type,
                in either direction.
        """
        note_ids = {note.id for note in self.notes.load_all()}
        if source_id not in note_ids:
            raise SourceNotFoundError(source_id)
        if target_id not in note_ids:
            raise TargetNotFoundError(target_id)

        if not isinstance(link_type, LinkType):
            link_type = LinkType.parse(link_type)
        if not isinstance(color, LinkColor):
            color = LinkColor.from_name(color)

        links = self.links.load_all()
        for existing in links:
            if existing.link_type == link_type and existing.connects(source_id, target_id):
                raise DuplicateLinkError(source_id, target_id, link_type.name)

        link = NoteLink(
            source_id=source_id,
            target_id=target_id,
            link_type=link_type,
            label=label,
            color=color,
            directional=directional,
        )
        links.append(link)
        self.links.save_all(links)
        logger.info(f"Created {link_type.name} link {source_id} -> {target_id}")
        return link

    def delete(self, link_id: str) -> None:
        """Remove a link.

        Raises:
            LinkNotFoundError: If the link does not exist.
        """
        links = self.links.load_all()
        remaining = [link for link in links if link.id != link_id]
        if len(remaining) == len(links):
            raise LinkNotFoundError(link_id)
        self.links.save_all(remaining)
        logger.info(f"Deleted link {link_id}")

    def list_all(self) -> List[NoteLink]:
        return self.links.load_all()

    def list_for_note(self, note_id: str) -> List[NoteLink]:
        """Links with the note at either end."""
        return [link for link in self.links.load_all() if link.touches(note_id)]
