"""MCP server implementation for MemoSpace."""

import json
import logging
import uuid
from typing import Any, List, Optional

from mcp.server.fastmcp import FastMCP

from memospace_mcp.config import config
from memospace_mcp.exceptions import MemoSpaceError, ValidationError
from memospace_mcp.models.schema import GraphViewport
from memospace_mcp.observability import metrics, timed_operation
from memospace_mcp.services.category_service import CategoryService
from memospace_mcp.services.link_service import LinkService
from memospace_mcp.services.note_service import NoteService
from memospace_mcp.services.title_service import TitleService
from memospace_mcp.storage import (
    BlobStore,
    CategoryRepository,
    LinkRepository,
    NoteRepository,
    UIStateRepository,
    create_blob_store,
)

logger = logging.getLogger(__name__)

MAX_CONTENT_LENGTH = 1_000_000  # 1 MB


def _validate_content(content: str) -> None:
    if len(content) > MAX_CONTENT_LENGTH:
        raise ValidationError(
            f"Content exceeds maximum length of {MAX_CONTENT_LENGTH} characters",
            field="content",
        )


def _to_json(payload: Any) -> str:
    """Render a model, a list of models or plain data as JSON text."""
    if hasattr(payload, "model_dump"):
        payload = payload.model_dump(mode="json")
    elif isinstance(payload, list):
        payload = [
            item.model_dump(mode="json") if hasattr(item, "model_dump") else item
            for item in payload
        ]
    return json.dumps(payload, indent=2, ensure_ascii=False)


class MemoSpaceMcpServer:
    """MCP server for MemoSpace."""

    def __init__(
        self,
        store: Optional[BlobStore] = None,
        title_service: Optional[TitleService] = None,
    ):
        """Initialize the MCP server.

        Args:
            store: Blob store shared by all repositories. When None, the
                backend selected in config is created.
            title_service: Title policy for saved notes. When None, one is
                built from config.
        """
        self.mcp = FastMCP(config.server_name)
        self.store = store or create_blob_store()

        note_repository = NoteRepository(self.store)
        self.category_service = CategoryService(
            CategoryRepository(self.store), note_repository
        )
        self.note_service = NoteService(
            note_repository,
            self.category_service,
            titles=title_service or TitleService.from_config(config),
        )
        self.link_service = LinkService(LinkRepository(self.store), note_repository)
        self.ui_state = UIStateRepository(self.store)

        self._register_tools()
        logger.info("MemoSpace MCP server initialized")

    def format_error_response(self, error: Exception) -> str:
        """Turn an exception into the text returned to the client.

        Domain errors keep their message; anything else is reduced to a
        reference id that points at the full log entry.
        """
        error_id = uuid.uuid4().hex[:8]

        if isinstance(error, MemoSpaceError):
            logger.error(
                f"[{error.code.name}] [{error_id}]: {error.message}",
                extra={"error_details": error.details},
            )
            return f"Error: {error.message}"
        elif isinstance(error, ValueError):
            logger.error(f"Validation error [{error_id}]: {error}")
            return f"Error: Invalid input (ref: {error_id})"
        elif isinstance(error, OSError):
            logger.error(f"File system error [{error_id}]: {error}", exc_info=True)
            return f"Error: A file system error occurred (ref: {error_id})"
        else:
            logger.error(f"Unexpected error [{error_id}]: {error}", exc_info=True)
            return f"Error: An unexpected error occurred (ref: {error_id})"

    def _register_tools(self) -> None:
        """Register MCP tools."""
        self._register_note_tools()
        self._register_category_tools()
        self._register_link_tools()
        self._register_view_tools()

    def _register_note_tools(self) -> None:
        @self.mcp.tool(name="ms_save_note")
        def ms_save_note(
            content: str,
            category_path: Optional[List[str]] = None,
            title: Optional[str] = None,
        ) -> str:
            """Save a new note.
            Args:
                content: Note body
                category_path: Category segments, root first (default: ["General"]).
                    Missing categories are created.
                title: Explicit title; generated from the content when omitted
            """
            with timed_operation("ms_save_note") as op:
                try:
                    _validate_content(content)
                    note = self.note_service.save(content, category_path, title)
                    op["note_id"] = note.id
                    return _to_json(note)
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="ms_update_note")
        def ms_update_note(note_id: str, content: str, title: Optional[str] = None) -> str:
            """Replace the content of a note.
            Args:
                note_id: ID of the note
                content: New content
                title: New title; regenerated from the content when omitted
            """
            with timed_operation("ms_update_note", note_id=note_id):
                try:
                    _validate_content(content)
                    return _to_json(self.note_service.update(note_id, content, title))
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="ms_delete_note")
        def ms_delete_note(note_id: str) -> str:
            """Delete a note. Deleting an unknown ID succeeds.
            Args:
                note_id: ID of the note
            """
            with timed_operation("ms_delete_note", note_id=note_id):
                try:
                    self.note_service.delete(note_id)
                    return f"Note {note_id} deleted"
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="ms_get_note")
        def ms_get_note(note_id: str) -> str:
            """Get a note by ID.
            Args:
                note_id: ID of the note
            """
            with timed_operation("ms_get_note", note_id=note_id) as op:
                try:
                    note = self.note_service.get(note_id)
                    op["found"] = note is not None
                    if note is None:
                        return f"Note not found: {note_id}"
                    return _to_json(note)
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="ms_list_notes")
        def ms_list_notes() -> str:
            """List all notes in storage order."""
            with timed_operation("ms_list_notes") as op:
                try:
                    notes = self.note_service.list_notes()
                    op["result_count"] = len(notes)
                    return _to_json(notes)
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="ms_list_notes_by_category")
        def ms_list_notes_by_category(category_path: List[str]) -> str:
            """List notes filed under a category or any of its subcategories.
            Args:
                category_path: Category segments, root first
            """
            with timed_operation("ms_list_notes_by_category") as op:
                try:
                    notes = self.note_service.list_by_category(category_path)
                    op["result_count"] = len(notes)
                    return _to_json(notes)
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="ms_set_note_position")
        def ms_set_note_position(note_id: str, x: float, y: float) -> str:
            """Place a note in the graph view.
            Args:
                note_id: ID of the note
                x: Horizontal position
                y: Vertical position
            """
            with timed_operation("ms_set_note_position", note_id=note_id):
                try:
                    note = self.note_service.set_position(note_id, x, y)
                    return _to_json(note.position)
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="ms_list_note_positions")
        def ms_list_note_positions() -> str:
            """List the graph positions of all placed notes."""
            with timed_operation("ms_list_note_positions") as op:
                try:
                    positions = self.note_service.list_positions()
                    op["result_count"] = len(positions)
                    return _to_json(
                        [
                            {"note_id": note_id, **position.model_dump(mode="json")}
                            for note_id, position in positions
                        ]
                    )
                except Exception as e:
                    return self.format_error_response(e)

    def _register_category_tools(self) -> None:
        @self.mcp.tool(name="ms_list_categories")
        def ms_list_categories() -> str:
            """List all categories in storage order."""
            with timed_operation("ms_list_categories") as op:
                try:
                    categories = self.category_service.list_categories()
                    op["result_count"] = len(categories)
                    return _to_json(categories)
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="ms_get_category")
        def ms_get_category(category_id: str) -> str:
            """Get a category by ID.
            Args:
                category_id: ID of the category
            """
            with timed_operation("ms_get_category", category_id=category_id):
                try:
                    category = self.category_service.get_by_id(category_id)
                    if category is None:
                        return f"Category not found: {category_id}"
                    return _to_json(category)
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="ms_get_category_hierarchy")
        def ms_get_category_hierarchy() -> str:
            """List all categories ordered by depth, then name."""
            with timed_operation("ms_get_category_hierarchy"):
                try:
                    return _to_json(self.category_service.get_hierarchy())
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="ms_create_category")
        def ms_create_category(name: str, parent_path: Optional[List[str]] = None) -> str:
            """Create a category.
            Args:
                name: Name of the new category
                parent_path: Path of an existing parent; omit for a top-level category
            """
            with timed_operation("ms_create_category", name=name[:30]) as op:
                try:
                    category = self.category_service.create(name, parent_path)
                    op["category_id"] = category.id
                    return _to_json(category)
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="ms_rename_category")
        def ms_rename_category(category_id: str, new_name: str) -> str:
            """Rename a category; subcategories and notes follow.
            Args:
                category_id: ID of the category
                new_name: New name
            """
            with timed_operation("ms_rename_category", category_id=category_id):
                try:
                    return _to_json(self.category_service.rename(category_id, new_name))
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="ms_delete_category")
        def ms_delete_category(category_id: str) -> str:
            """Delete a category with all of its subcategories and notes.
            Args:
                category_id: ID of the category
            """
            with timed_operation("ms_delete_category", category_id=category_id):
                try:
                    self.category_service.delete(category_id)
                    return f"Category {category_id} deleted"
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="ms_validate_category_path")
        def ms_validate_category_path(category_path: List[str]) -> str:
            """Check whether a category path and all of its ancestors exist.
            Args:
                category_path: Category segments, root first
            """
            with timed_operation("ms_validate_category_path"):
                try:
                    valid = self.category_service.validate_path(category_path)
                    return json.dumps({"valid": valid})
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="ms_find_categories")
        def ms_find_categories(query: str) -> str:
            """Find categories by name (exact, then prefix, then substring matches).
            Args:
                query: Case-insensitive search text
            """
            with timed_operation("ms_find_categories", query=query[:30]) as op:
                try:
                    categories = self.category_service.find_fuzzy(query)
                    op["result_count"] = len(categories)
                    return _to_json(categories)
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="ms_rebuild_hierarchy")
        def ms_rebuild_hierarchy() -> str:
            """Repair cached category fields and note counts."""
            with timed_operation("ms_rebuild_hierarchy"):
                try:
                    categories = self.category_service.rebuild_hierarchy()
                    return f"Rebuilt hierarchy of {len(categories)} categories"
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="ms_recount_notes")
        def ms_recount_notes() -> str:
            """Recompute the note count of every category."""
            with timed_operation("ms_recount_notes"):
                try:
                    categories = self.category_service.recount_notes()
                    return f"Recounted notes for {len(categories)} categories"
                except Exception as e:
                    return self.format_error_response(e)

    def _register_link_tools(self) -> None:
        @self.mcp.tool(name="ms_create_link")
        def ms_create_link(
            source_id: str,
            target_id: str,
            link_type: str = "Related",
            label: Optional[str] = None,
            color: Optional[str] = None,
            directional: Optional[bool] = None,
        ) -> str:
            """Link two notes.
            Args:
                source_id: ID of the source note
                target_id: ID of the target note
                link_type: Related, Reference, FollowUp, Contradicts, Supports,
                    or any other text for a custom type
                label: Optional label shown on the link
                color: Optional color (purple or yellow)
                directional: Whether the link is drawn as an arrow
            """
            with timed_operation("ms_create_link", source_id=source_id, target_id=target_id) as op:
                try:
                    link = self.link_service.create(
                        source_id,
                        target_id,
                        link_type,
                        label=label,
                        color=color,
                        directional=directional,
                    )
                    op["link_id"] = link.id
                    return _to_json(link)
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="ms_delete_link")
        def ms_delete_link(link_id: str) -> str:
            """Delete a link.
            Args:
                link_id: ID of the link
            """
            with timed_operation("ms_delete_link", link_id=link_id):
                try:
                    self.link_service.delete(link_id)
                    return f"Link {link_id} deleted"
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="ms_list_links")
        def ms_list_links(note_id: Optional[str] = None) -> str:
            """List links, optionally only those touching one note.
            Args:
                note_id: Only return links with this note at either end
            """
            with timed_operation("ms_list_links") as op:
                try:
                    if note_id:
                        links = self.link_service.list_for_note(note_id)
                    else:
                        links = self.link_service.list_all()
                    op["result_count"] = len(links)
                    return _to_json(links)
                except Exception as e:
                    return self.format_error_response(e)

    def _register_view_tools(self) -> None:
        @self.mcp.tool(name="ms_get_viewport")
        def ms_get_viewport() -> str:
            """Get the saved graph viewport."""
            with timed_operation("ms_get_viewport"):
                try:
                    return _to_json(self.ui_state.get_viewport())
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="ms_save_viewport")
        def ms_save_viewport(x: float, y: float, zoom: float) -> str:
            """Save the graph viewport.
            Args:
                x: Horizontal offset
                y: Vertical offset
                zoom: Zoom factor
            """
            with timed_operation("ms_save_viewport"):
                try:
                    if zoom <= 0:
                        raise ValidationError("Zoom must be positive", field="zoom", value=zoom)
                    viewport = self.ui_state.save_viewport(GraphViewport(x=x, y=y, zoom=zoom))
                    return _to_json(viewport)
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="ms_status")
        def ms_status() -> str:
            """Report collection sizes and server metrics."""
            with timed_operation("ms_status"):
                try:
                    status = {
                        "version": config.server_version,
                        "storage_backend": type(self.store).__name__,
                        "notes": len(self.note_service.list_notes()),
                        "categories": len(self.category_service.list_categories()),
                        "links": len(self.link_service.list_all()),
                        "metrics": metrics.get_summary(),
                        "operations": metrics.get_metrics(),
                    }
                    return json.dumps(status, indent=2)
                except Exception as e:
                    return self.format_error_response(e)

    def run(self) -> None:
        """Run the MCP server."""
        self.mcp.run()
