"""Data models for the MemoSpace MCP server.

Field names mirror the persisted JSON documents, so the models double as
the wire schema for the blob store.
"""

import datetime
import uuid
from datetime import timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_serializer, model_validator

from memospace_mcp.models import hierarchy

EPOCH = datetime.datetime(1970, 1, 1, tzinfo=timezone.utc)


def utc_now() -> datetime.datetime:
    """Get current UTC time as timezone-aware datetime."""
    return datetime.datetime.now(timezone.utc)


def ensure_timezone_aware(dt_value: Optional[datetime.datetime]) -> datetime.datetime:
    """Ensure a datetime is timezone-aware, treating naive datetimes as UTC.

    Older stores may carry naive timestamps; they are assumed to be UTC.
    """
    if dt_value is None:
        return utc_now()
    if dt_value.tzinfo is None:
        return dt_value.replace(tzinfo=timezone.utc)
    return dt_value


def generate_id() -> str:
    """Generate an opaque unique identifier."""
    return str(uuid.uuid4())


class LinkKind(str, Enum):
    """Named link variants; CUSTOM carries a free-form label."""

    RELATED = "Related"
    REFERENCE = "Reference"
    FOLLOW_UP = "FollowUp"
    CONTRADICTS = "Contradicts"
    SUPPORTS = "Supports"
    CUSTOM = "Custom"


class LinkType(BaseModel):
    """Type of a link between two notes.

    Either one of the fixed kinds or ``Custom`` with an arbitrary label.
    Serialized as ``"Related"`` or ``{"Custom": "<label>"}``. Two link
    types are equal when their kinds match and, for custom types, their
    labels match.
    """

    kind: LinkKind
    custom: Optional[str] = None

    model_config = {"frozen": True}

    @classmethod
    def parse(cls, value: str) -> "LinkType":
        """Map a type name to a fixed kind, falling back to a custom type."""
        for kind in LinkKind:
            if kind is not LinkKind.CUSTOM and kind.value == value:
                return cls(kind=kind)
        return cls(kind=LinkKind.CUSTOM, custom=value)

    @model_validator(mode="before")
    @classmethod
    def _from_wire(cls, data: Any) -> Any:
        if isinstance(data, str):
            parsed = cls.parse(data)
            return {"kind": parsed.kind, "custom": parsed.custom}
        if isinstance(data, dict) and set(data) == {"Custom"}:
            return {"kind": LinkKind.CUSTOM, "custom": data["Custom"]}
        return data

    @model_validator(mode="after")
    def _check_payload(self) -> "LinkType":
        if self.kind is LinkKind.CUSTOM and self.custom is None:
            raise ValueError("Custom link type requires a label")
        if self.kind is not LinkKind.CUSTOM and self.custom is not None:
            raise ValueError(f"{self.kind.value} link type takes no label")
        return self

    @model_serializer
    def _to_wire(self) -> Any:
        if self.kind is LinkKind.CUSTOM:
            return {"Custom": self.custom}
        return self.kind.value

    @property
    def name(self) -> str:
        """Human-readable type name."""
        return self.custom if self.kind is LinkKind.CUSTOM else self.kind.value

    def __str__(self) -> str:
        return self.name


class LinkColor(str, Enum):
    """Palette available for links in the graph view."""

    PURPLE = "Purple"
    YELLOW = "Yellow"

    @classmethod
    def from_name(cls, value: Optional[str]) -> Optional["LinkColor"]:
        """Look up a color by name; unknown names yield None."""
        if not value:
            return None
        for color in cls:
            if color.value.lower() == value.strip().lower():
                return color
        return None


class GraphPosition(BaseModel):
    """Position of a note in the graph view."""

    x: float
    y: float
    z_index: Optional[int] = None


class Note(BaseModel):
    """A note filed under a category path."""

    id: str = Field(default_factory=generate_id, description="Unique ID of the note")
    title: str = Field(..., description="Title of the note")
    content: str = Field(..., description="Content of the note")
    category_path: List[str] = Field(..., description="Category path, root first")
    timestamp: datetime.datetime = Field(
        default_factory=utc_now, description="When the note was created (UTC)"
    )
    tags: List[str] = Field(default_factory=list, description="Tags (persisted only)")
    ai_confidence: Optional[float] = Field(
        default=None, description="Legacy categorization confidence"
    )
    position: Optional[GraphPosition] = Field(
        default=None, description="Position in the graph view"
    )

    model_config = {"validate_assignment": True}

    @field_validator("timestamp")
    @classmethod
    def _aware_timestamp(cls, v: datetime.datetime) -> datetime.datetime:
        return ensure_timezone_aware(v)


class Category(BaseModel):
    """A node in the category tree.

    ``full_path``, ``level`` and ``note_count`` are caches derived from
    ``path`` and the note collection; the category service keeps them in
    step.
    """

    id: str = Field(default_factory=generate_id, description="Unique ID of the category")
    name: str = Field(..., description="Leaf segment of the path")
    parent_id: Optional[str] = Field(default=None, description="ID of the parent category")
    full_path: str = Field(default="", description="Cached display path")
    path: List[str] = Field(..., description="Path from the root, root first")
    level: int = Field(default=0, description="Depth in the tree (root = 0)")
    note_count: int = Field(default=0, description="Notes under this path, cumulative")
    created_at: datetime.datetime = Field(
        default_factory=utc_now, description="When the category was created (UTC)"
    )
    color: Optional[str] = Field(default=None, description="Optional display color")

    model_config = {"validate_assignment": True}

    @field_validator("created_at")
    @classmethod
    def _aware_created_at(cls, v: datetime.datetime) -> datetime.datetime:
        return ensure_timezone_aware(v)

    @property
    def display_path(self) -> str:
        """Rendered path computed from ``path`` rather than the cache."""
        return hierarchy.render(self.path)

    def refresh_derived(self) -> bool:
        """Recompute ``level`` and ``full_path`` from ``path``.

        Returns:
            True if either cached field changed.
        """
        changed = False
        expected_level = hierarchy.level(self.path)
        if self.level != expected_level:
            self.level = expected_level
            changed = True
        expected_full_path = hierarchy.render(self.path)
        if self.full_path != expected_full_path:
            self.full_path = expected_full_path
            changed = True
        return changed


class NoteLink(BaseModel):
    """A typed link between two notes."""

    id: str = Field(default_factory=generate_id, description="Unique ID of the link")
    source_id: str = Field(..., description="ID of the source note")
    target_id: str = Field(..., description="ID of the target note")
    link_type: LinkType = Field(..., description="Type of link")
    label: Optional[str] = Field(default=None, description="Optional free-text label")
    color: Optional[LinkColor] = Field(default=None, description="Optional link color")
    directional: Optional[bool] = Field(
        default=None, description="Whether the view draws an arrow"
    )
    created_at: datetime.datetime = Field(
        default_factory=utc_now, description="When the link was created (UTC)"
    )

    model_config = {"validate_assignment": True}

    @field_validator("created_at")
    @classmethod
    def _aware_created_at(cls, v: datetime.datetime) -> datetime.datetime:
        return ensure_timezone_aware(v)

    def connects(self, first_id: str, second_id: str) -> bool:
        """True if this link joins the two notes, in either direction."""
        return {self.source_id, self.target_id} == {first_id, second_id}

    def touches(self, note_id: str) -> bool:
        """True if the note is either endpoint."""
        return note_id in (self.source_id, self.target_id)


class GraphViewport(BaseModel):
    """Last camera position of the graph view."""

    x: float = 0.0
    y: float = 0.0
    zoom: float = 0.8


class UIState(BaseModel):
    """Process-wide UI state."""

    graph_viewport: GraphViewport = Field(default_factory=GraphViewport)


# Collection documents, one per blob-store entry


class NotesDocument(BaseModel):
    notes: List[Note] = Field(default_factory=list)


class CategoriesDocument(BaseModel):
    categories: List[Category] = Field(default_factory=list)


class LinksDocument(BaseModel):
    links: List[NoteLink] = Field(default_factory=list)


class UIStateDocument(BaseModel):
    ui_state: UIState = Field(default_factory=UIState)


def to_document(model: BaseModel) -> Dict[str, Any]:
    """Dump a collection document to JSON-compatible primitives."""
    return model.model_dump(mode="json")
