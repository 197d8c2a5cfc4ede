"""Custom exceptions for the MemoSpace MCP server.

Provides a structured exception hierarchy with error codes and
machine-readable error information. Every operation surfaces failures
through these classes; the MCP layer renders them as plain messages.
"""
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence


class ErrorCode(Enum):
    """Error codes for machine-readable error identification."""

    # Lookup errors (1xxx)
    NOTE_NOT_FOUND = 1001
    CATEGORY_NOT_FOUND = 1002
    LINK_NOT_FOUND = 1003
    SOURCE_NOTE_NOT_FOUND = 1004
    TARGET_NOTE_NOT_FOUND = 1005

    # Hierarchy errors (2xxx)
    PARENT_NOT_FOUND = 2001
    INCONSISTENT_HIERARCHY = 2002

    # Uniqueness errors (3xxx)
    DUPLICATE_PATH = 3001
    DUPLICATE_LINK = 3002

    # Storage errors (4xxx)
    STORAGE_READ_FAILED = 4001
    STORAGE_WRITE_FAILED = 4002
    STORE_CORRUPTED = 4003

    # External service errors (5xxx)
    EXTERNAL_SERVICE_FAILED = 5001
    EXTERNAL_SERVICE_TIMEOUT = 5002

    # Validation errors (7xxx)
    VALIDATION_FAILED = 7001


def _format_path(path: Optional[Sequence[str]]) -> str:
    return "[" + ", ".join(repr(segment) for segment in (path or [])) + "]"


class MemoSpaceError(Exception):
    """Base exception for all MemoSpace errors.

    Attributes:
        message: Human-readable error message
        code: Machine-readable error code
        details: Additional context about the error
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.VALIDATION_FAILED,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to a dictionary for serialization."""
        return {
            "error": self.__class__.__name__,
            "code": self.code.value,
            "code_name": self.code.name,
            "message": self.message,
            "details": self.details,
        }

    def __str__(self) -> str:
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"[{self.code.name}] {self.message} ({detail_str})"
        return f"[{self.code.name}] {self.message}"


class NotFoundError(MemoSpaceError):
    """Raised when a note, category or link id is not present."""

    entity = "Entity"

    def __init__(
        self,
        entity_id: str,
        message: Optional[str] = None,
        code: ErrorCode = ErrorCode.VALIDATION_FAILED,
    ):
        super().__init__(
            message or f"{self.entity} with ID '{entity_id}' not found",
            code=code,
            details={"id": entity_id},
        )
        self.entity_id = entity_id


class NoteNotFoundError(NotFoundError):
    """Raised when a note cannot be found."""

    entity = "Note"

    def __init__(
        self,
        note_id: str,
        message: Optional[str] = None,
        code: ErrorCode = ErrorCode.NOTE_NOT_FOUND,
    ):
        super().__init__(note_id, message, code=code)
        self.note_id = note_id


class SourceNotFoundError(NoteNotFoundError):
    """Raised when the source note of a new link does not exist."""

    def __init__(self, note_id: str):
        super().__init__(
            note_id,
            f"Source note with ID '{note_id}' not found",
            code=ErrorCode.SOURCE_NOTE_NOT_FOUND,
        )


class TargetNotFoundError(NoteNotFoundError):
    """Raised when the target note of a new link does not exist."""

    def __init__(self, note_id: str):
        super().__init__(
            note_id,
            f"Target note with ID '{note_id}' not found",
            code=ErrorCode.TARGET_NOTE_NOT_FOUND,
        )


class CategoryNotFoundError(NotFoundError):
    """Raised when a category id is unknown."""

    entity = "Category"

    def __init__(self, category_id: str, message: Optional[str] = None):
        super().__init__(category_id, message, code=ErrorCode.CATEGORY_NOT_FOUND)
        self.category_id = category_id


class LinkNotFoundError(NotFoundError):
    """Raised when a link id is unknown."""

    entity = "Link"

    def __init__(self, link_id: str, message: Optional[str] = None):
        super().__init__(link_id, message, code=ErrorCode.LINK_NOT_FOUND)
        self.link_id = link_id


class HierarchyError(MemoSpaceError):
    """Raised when a referenced ancestor category path is missing."""

    def __init__(
        self,
        message: str,
        path: Optional[Sequence[str]] = None,
        code: ErrorCode = ErrorCode.PARENT_NOT_FOUND,
    ):
        details = {}
        if path is not None:
            details["path"] = _format_path(path)
        super().__init__(message, code=code, details=details)
        self.path = list(path) if path is not None else None


class ParentNotFoundError(HierarchyError):
    """Raised when creating a category under a parent path that does not exist."""

    def __init__(self, parent_path: Sequence[str]):
        super().__init__(
            f"Parent category {_format_path(parent_path)} does not exist",
            path=parent_path,
            code=ErrorCode.PARENT_NOT_FOUND,
        )


class InconsistentHierarchyError(HierarchyError):
    """Raised when a category exists but one of its ancestors does not."""

    def __init__(self, path: Sequence[str], missing: Sequence[str]):
        super().__init__(
            f"Parent path {_format_path(missing)} of {_format_path(path)} does not exist",
            path=path,
            code=ErrorCode.INCONSISTENT_HIERARCHY,
        )
        self.missing = list(missing)
        self.details["missing"] = _format_path(missing)


class DuplicatePathError(MemoSpaceError):
    """Raised when a category path is already taken."""

    def __init__(self, path: Sequence[str]):
        super().__init__(
            f"Category with path {_format_path(path)} already exists",
            code=ErrorCode.DUPLICATE_PATH,
            details={"path": _format_path(path)},
        )
        self.path = list(path)


class DuplicateLinkError(MemoSpaceError):
    """Raised when a link of the same type already joins two notes."""

    def __init__(self, source_id: str, target_id: str, link_type: str):
        super().__init__(
            "Link of this type already exists between these notes",
            code=ErrorCode.DUPLICATE_LINK,
            details={
                "source_id": source_id,
                "target_id": target_id,
                "link_type": link_type,
            },
        )
        self.source_id = source_id
        self.target_id = target_id
        self.link_type = link_type


class StorageError(MemoSpaceError):
    """Raised for storage/persistence errors."""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        collection: Optional[str] = None,
        code: ErrorCode = ErrorCode.STORAGE_READ_FAILED,
        original_error: Optional[Exception] = None,
    ):
        details = {}
        if operation:
            details["operation"] = operation
        if collection:
            details["collection"] = collection
        if original_error:
            details["original_error"] = str(original_error)[:200]

        super().__init__(message, code=code, details=details)
        self.operation = operation
        self.collection = collection
        self.original_error = original_error


class CorruptStoreError(StorageError):
    """Raised when a persisted document cannot be decoded under any known schema.

    Attributes:
        attempts: Per-decoder failure descriptions, in the order tried
    """

    def __init__(
        self,
        message: str,
        collection: Optional[str] = None,
        attempts: Optional[List[str]] = None,
        original_error: Optional[Exception] = None,
    ):
        super().__init__(
            message,
            operation="decode",
            collection=collection,
            code=ErrorCode.STORE_CORRUPTED,
            original_error=original_error,
        )
        self.attempts: List[str] = list(attempts) if attempts else []
        if self.attempts:
            self.details["attempts"] = len(self.attempts)


class ExternalServiceError(MemoSpaceError):
    """Raised when the title generation service is unreachable or misbehaves.

    Always recovered from by the caller; never returned to clients.
    """

    def __init__(
        self,
        message: str,
        service: str = "title_generator",
        code: ErrorCode = ErrorCode.EXTERNAL_SERVICE_FAILED,
        original_error: Optional[Exception] = None,
    ):
        details: Dict[str, Any] = {"service": service}
        if original_error:
            details["original_error"] = str(original_error)[:200]
        super().__init__(message, code=code, details=details)
        self.service = service
        self.original_error = original_error


class ValidationError(MemoSpaceError):
    """Raised for general validation errors."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        code: ErrorCode = ErrorCode.VALIDATION_FAILED,
    ):
        details = {}
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = str(value)[:100]

        super().__init__(message, code=code, details=details)
        self.field = field
        self.value = value
