"""Tests for error injection and failure handling.

Storage failures are injected at chosen points of multi-collection
operations to pin down what has already been written when they fail.
"""
import pytest

from memospace_mcp.exceptions import (
    CategoryNotFoundError,
    CorruptStoreError,
    DuplicateLinkError,
    ErrorCode,
    ExternalServiceError,
    HierarchyError,
    InconsistentHierarchyError,
    LinkNotFoundError,
    MemoSpaceError,
    NoteNotFoundError,
    NotFoundError,
    ParentNotFoundError,
    SourceNotFoundError,
    StorageError,
    TargetNotFoundError,
    ValidationError,
)
from memospace_mcp.services.category_service import CategoryService
from memospace_mcp.services.note_service import NoteService
from memospace_mcp.services.title_service import TitleService
from memospace_mcp.storage import CategoryRepository, Collection, NoteRepository
from tests.fakes import FakeTitleGenerator


class TestExceptionHierarchy:
    def test_base_exception_to_dict(self):
        exc = MemoSpaceError("Test error", code=ErrorCode.VALIDATION_FAILED, details={"key": "v"})
        assert exc.to_dict() == {
            "error": "MemoSpaceError",
            "code": 7001,
            "code_name": "VALIDATION_FAILED",
            "message": "Test error",
            "details": {"key": "v"},
        }

    def test_str_includes_code_and_details(self):
        exc = NoteNotFoundError("abc123")
        assert str(exc) == "[NOTE_NOT_FOUND] Note with ID 'abc123' not found (id=abc123)"

    def test_str_without_details(self):
        assert str(MemoSpaceError("plain")) == "[VALIDATION_FAILED] plain"

    @pytest.mark.parametrize(
        "exc,parent,code",
        [
            (NoteNotFoundError("n"), NotFoundError, ErrorCode.NOTE_NOT_FOUND),
            (CategoryNotFoundError("c"), NotFoundError, ErrorCode.CATEGORY_NOT_FOUND),
            (LinkNotFoundError("l"), NotFoundError, ErrorCode.LINK_NOT_FOUND),
            (SourceNotFoundError("n"), NoteNotFoundError, ErrorCode.SOURCE_NOTE_NOT_FOUND),
            (TargetNotFoundError("n"), NoteNotFoundError, ErrorCode.TARGET_NOTE_NOT_FOUND),
            (ParentNotFoundError(["A"]), HierarchyError, ErrorCode.PARENT_NOT_FOUND),
            (
                InconsistentHierarchyError(["A", "B"], ["A"]),
                HierarchyError,
                ErrorCode.INCONSISTENT_HIERARCHY,
            ),
            (CorruptStoreError("bad"), StorageError, ErrorCode.STORE_CORRUPTED),
        ],
    )
    def test_hierarchy_and_codes(self, exc, parent, code):
        assert isinstance(exc, parent)
        assert isinstance(exc, MemoSpaceError)
        assert exc.code == code

    def test_inconsistent_hierarchy_details(self):
        exc = InconsistentHierarchyError(["A", "B"], ["A"])
        assert exc.details == {"path": "['A', 'B']", "missing": "['A']"}

    def test_duplicate_link_details(self):
        exc = DuplicateLinkError("n1", "n2", "Related")
        assert exc.code == ErrorCode.DUPLICATE_LINK
        assert exc.details["link_type"] == "Related"

    def test_storage_error_truncates_original(self):
        exc = StorageError("failed", original_error=OSError("x" * 500))
        assert len(exc.details["original_error"]) == 200

    def test_external_service_error_service(self):
        exc = ExternalServiceError("down")
        assert exc.details == {"service": "title_generator"}


@pytest.fixture
def services(memory_store):
    notes = NoteRepository(memory_store)
    categories = CategoryService(CategoryRepository(memory_store), notes)
    note_service = NoteService(
        notes, categories, titles=TitleService(FakeTitleGenerator()), default_category="General"
    )
    return categories, note_service


class TestPartialFailures:
    def test_validation_failure_writes_nothing(self, services, memory_store):
        categories, _ = services
        with pytest.raises(ValidationError):
            categories.create("")
        assert memory_store.save_log == []

    def test_rename_note_write_failure_keeps_categories(self, services, memory_store):
        categories, note_service = services
        note = note_service.save("x", ["A", "B"])
        b = categories.get_by_path(["A", "B"])

        memory_store.fail_save.add(Collection.NOTES)
        with pytest.raises(StorageError):
            categories.rename(b.id, "B2")

        assert categories.get_by_path(["A", "B2"]) is not None
        assert note_service.get(note.id).category_path == ["A", "B"]

    def test_delete_note_write_failure_keeps_categories_removed(self, services, memory_store):
        categories, note_service = services
        note = note_service.save("x", ["A"])
        a = categories.get_by_path(["A"])

        memory_store.fail_save.add(Collection.NOTES)
        with pytest.raises(StorageError):
            categories.delete(a.id)

        assert categories.list_categories() == []
        assert note_service.get(note.id) is not None

    def test_recount_repairs_after_failure(self, services, memory_store):
        categories, note_service = services
        note_service.save("x", ["A"])

        memory_store.fail_save.add(Collection.CATEGORIES)
        with pytest.raises(StorageError):
            note_service.save("y", ["A"])
        memory_store.fail_save.clear()

        assert categories.get_by_path(["A"]).note_count == 1
        categories.recount_notes()
        assert categories.get_by_path(["A"]).note_count == 2

    def test_read_failure_propagates(self, services, memory_store):
        categories, _ = services
        memory_store.fail_load.add(Collection.CATEGORIES)
        with pytest.raises(StorageError) as exc_info:
            categories.list_categories()
        assert exc_info.value.code == ErrorCode.STORAGE_READ_FAILED

    def test_corrupt_notes_block_note_operations(self, services, memory_store):
        _, note_service = services
        memory_store.documents[Collection.NOTES] = {"notes": [{"id": "only-id"}]}
        with pytest.raises(CorruptStoreError):
            note_service.list_notes()
