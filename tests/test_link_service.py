"""Tests for the link service."""
import pytest

from memospace_mcp.exceptions import (
    DuplicateLinkError,
    LinkNotFoundError,
    NoteNotFoundError,
    SourceNotFoundError,
    TargetNotFoundError,
)
from memospace_mcp.models.schema import LinkColor, LinkKind, LinkType


@pytest.fixture
def notes(note_service):
    return [note_service.save(f"note {i}") for i in range(3)]


class TestCreate:
    def test_create_with_all_options(self, link_service, notes):
        n1, n2, _ = notes
        link = link_service.create(
            n1.id, n2.id, "Supports", label="backs up", color="purple", directional=True
        )

        assert link.source_id == n1.id
        assert link.target_id == n2.id
        assert link.link_type.kind is LinkKind.SUPPORTS
        assert link.label == "backs up"
        assert link.color is LinkColor.PURPLE
        assert link.directional is True
        assert link_service.list_all() == [link]

    def test_unknown_type_is_custom(self, link_service, notes):
        n1, n2, _ = notes
        link = link_service.create(n1.id, n2.id, "Inspires")
        assert link.link_type == LinkType(kind=LinkKind.CUSTOM, custom="Inspires")

    def test_unknown_color_is_dropped(self, link_service, notes):
        n1, n2, _ = notes
        assert link_service.create(n1.id, n2.id, "Related", color="green").color is None

    def test_missing_source(self, link_service, notes):
        with pytest.raises(SourceNotFoundError) as exc_info:
            link_service.create("missing", notes[0].id, "Related")
        assert isinstance(exc_info.value, NoteNotFoundError)

    def test_missing_target(self, link_service, notes):
        with pytest.raises(TargetNotFoundError):
            link_service.create(notes[0].id, "missing", "Related")
        assert link_service.list_all() == []


class TestUniqueness:
    def test_reverse_duplicate_is_rejected(self, link_service, notes):
        n1, n2, _ = notes
        link_service.create(n1.id, n2.id, "Related")
        with pytest.raises(DuplicateLinkError) as exc_info:
            link_service.create(n2.id, n1.id, "Related")
        assert exc_info.value.message == "Link of this type already exists between these notes"

    def test_other_type_on_same_pair_is_allowed(self, link_service, notes):
        n1, n2, _ = notes
        link_service.create(n1.id, n2.id, "Related")
        link = link_service.create(n1.id, n2.id, "Reference")
        assert len(link_service.list_all()) == 2
        assert link.source_id == n1.id

    def test_custom_types_compare_by_label(self, link_service, notes):
        n1, n2, _ = notes
        link_service.create(n1.id, n2.id, "Inspires")
        link_service.create(n1.id, n2.id, "Blocks")
        with pytest.raises(DuplicateLinkError):
            link_service.create(n2.id, n1.id, "Inspires")

    def test_stored_direction_is_kept(self, link_service, notes):
        n1, n2, _ = notes
        link_service.create(n2.id, n1.id, "FollowUp")
        stored = link_service.list_all()[0]
        assert (stored.source_id, stored.target_id) == (n2.id, n1.id)


class TestDeleteAndList:
    def test_delete(self, link_service, notes):
        n1, n2, _ = notes
        link = link_service.create(n1.id, n2.id, "Related")
        link_service.delete(link.id)
        assert link_service.list_all() == []

    def test_delete_unknown(self, link_service):
        with pytest.raises(LinkNotFoundError):
            link_service.delete("missing")

    def test_list_for_note(self, link_service, notes):
        n1, n2, n3 = notes
        a = link_service.create(n1.id, n2.id, "Related")
        b = link_service.create(n3.id, n1.id, "Reference")
        link_service.create(n2.id, n3.id, "Supports")

        assert link_service.list_for_note(n1.id) == [a, b]
        assert link_service.list_for_note("missing") == []
