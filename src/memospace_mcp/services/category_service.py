"""Service layer for the category tree.

Keeps the category collection consistent with itself (unique paths,
existing parents, cached display fields) and with the notes filed under
it (paths rewritten on rename, notes removed on delete, cumulative note
counts).
"""
import logging
from typing import List, Optional, Sequence

from memospace_mcp.exceptions import (
    CategoryNotFoundError,
    DuplicatePathError,
    InconsistentHierarchyError,
    ParentNotFoundError,
    ValidationError,
)
from memospace_mcp.models import hierarchy
from memospace_mcp.models.schema import EPOCH, Category, utc_now
from memospace_mcp.observability import traced
from memospace_mcp.storage.category_repository import CategoryRepository
from memospace_mcp.storage.note_repository import NoteRepository

logger = logging.getLogger(__name__)

# Fuzzy match ranks, best first
_EXACT, _PREFIX, _SUBSTRING = 0, 1, 2


def _find_by_path(categories: Sequence[Category], path: Sequence[str]) -> Optional[Category]:
    target = list(path)
    for category in categories:
        if category.path == target:
            return category
    return None


def _find_by_id(categories: Sequence[Category], category_id: str) -> Category:
    for category in categories:
        if category.id == category_id:
            return category
    raise CategoryNotFoundError(category_id)


class CategoryService:
    """Operations on the category tree."""

    def __init__(self, categories: CategoryRepository, notes: NoteRepository):
        self.categories = categories
        self.notes = notes

    def list_categories(self) -> List[Category]:
        """All categories in storage order."""
        return self.categories.load_all()

    def get_by_id(self, category_id: str) -> Optional[Category]:
        for category in self.categories.load_all():
            if category.id == category_id:
                return category
        return None

    def get_by_path(self, path: Sequence[str]) -> Optional[Category]:
        return _find_by_path(self.categories.load_all(), path)

    def get_hierarchy(self) -> List[Category]:
        """All categories ordered by depth, then name."""
        return sorted(self.categories.load_all(), key=lambda c: (c.level, c.name))

    def create(self, name: str, parent_path: Optional[Sequence[str]] = None) -> Category:
        """Create a category under ``parent_path`` (None or empty for a root).

        Raises:
            ValidationError: If the name is blank.
            ParentNotFoundError: If the parent path does not exist.
            DuplicatePathError: If the resulting path is taken.
        """
        if not name or not name.strip():
            raise ValidationError("Category name cannot be empty", field="name", value=name)

        categories = self.categories.load_all()
        parent_path = list(parent_path or [])

        parent_id = None
        if parent_path:
            parent = _find_by_path(categories, parent_path)
            if parent is None:
                raise ParentNotFoundError(parent_path)
            parent_id = parent.id

        path = parent_path + [name]
        if _find_by_path(categories, path) is not None:
            raise DuplicatePathError(path)

        category = Category(
            name=name,
            parent_id=parent_id,
            path=path,
            full_path=hierarchy.render(path),
            level=hierarchy.level(path),
        )
        categories.append(category)
        self.categories.save_all(categories)
        logger.info(f"Created category {category.full_path} ({category.id})")
        return category

    def rename(self, category_id: str, new_name: str) -> Category:
        """Rename a category, moving its subtree and notes to the new path.

        Raises:
            CategoryNotFoundError: If the id is unknown.
            ValidationError: If the new name is blank.
            DuplicatePathError: If the new path, or the rewritten path of a
                descendant, is already taken by another category.
        """
        categories = self.categories.load_all()
        category = _find_by_id(categories, category_id)
        if not new_name or not new_name.strip():
            raise ValidationError(
                "Category name cannot be empty", field="new_name", value=new_name
            )

        old_path = list(category.path)
        new_path = old_path[:-1] + [new_name]
        if new_path == old_path:
            return category

        moving = [c for c in categories if hierarchy.is_ancestor_or_self(old_path, c.path)]
        moving_ids = {c.id for c in moving}
        staying = {tuple(c.path) for c in categories if c.id not in moving_ids}
        for candidate in moving:
            target = hierarchy.replace_prefix(candidate.path, old_path, new_path)
            if tuple(target) in staying:
                raise DuplicatePathError(target)

        category.name = new_name
        for candidate in moving:
            candidate.path = hierarchy.replace_prefix(candidate.path, old_path, new_path)
            candidate.refresh_derived()
        self.categories.save_all(categories)

        notes = self.notes.load_all()
        moved = 0
        for note in notes:
            if hierarchy.is_ancestor_or_self(old_path, note.category_path):
                note.category_path = hierarchy.replace_prefix(
                    note.category_path, old_path, new_path
                )
                moved += 1
        self.notes.save_all(notes)

        logger.info(
            f"Renamed category {hierarchy.render(old_path)} to "
            f"{hierarchy.render(new_path)} ({moved} notes moved)"
        )
        return category

    def delete(self, category_id: str) -> None:
        """Delete a category, its descendants and every note filed under it.

        Raises:
            CategoryNotFoundError: If the id is unknown.
        """
        categories = self.categories.load_all()
        path = _find_by_id(categories, category_id).path

        remaining = [c for c in categories if not hierarchy.is_ancestor_or_self(path, c.path)]
        self.categories.save_all(remaining)

        notes = self.notes.load_all()
        kept_notes = [n for n in notes if not hierarchy.is_ancestor_or_self(path, n.category_path)]
        self.notes.save_all(kept_notes)

        logger.info(
            f"Deleted category {hierarchy.render(path)}: "
            f"{len(categories) - len(remaining)} categories, "
            f"{len(notes) - len(kept_notes)} notes"
        )
        self.recount_notes()

    @traced("recount_notes")
    def recount_notes(self) -> List[Category]:
        """Recompute every ``note_count``, counting notes in descendants too."""
        categories = self.categories.load_all()
        notes = self.notes.load_all()
        for category in categories:
            category.note_count = sum(
                1 for note in notes if hierarchy.is_ancestor_or_self(category.path, note.category_path)
            )
        self.categories.save_all(categories)
        return categories

    @traced("rebuild_hierarchy")
    def rebuild_hierarchy(self) -> List[Category]:
        """Recompute every cached field from ``path`` and persist.

        Also relinks ``parent_id`` to the category at the parent path and
        stamps categories that never had a creation time. Running it twice
        leaves the store unchanged.
        """
        categories = self.categories.load_all()
        by_path = {tuple(c.path): c for c in categories}
        repaired = 0
        for category in categories:
            changed = category.refresh_derived()

            parent = by_path.get(tuple(category.path[:-1])) if len(category.path) > 1 else None
            parent_id = parent.id if parent else None
            if category.parent_id != parent_id:
                category.parent_id = parent_id
                changed = True

            if category.created_at == EPOCH:
                category.created_at = utc_now()
                changed = True
            if changed:
                repaired += 1

        self.categories.save_all(categories)
        logger.info(f"Rebuilt category hierarchy ({repaired} of {len(categories)} repaired)")
        return self.recount_notes()

    def validate_path(self, path: Sequence[str]) -> bool:
        """Check that ``path`` and all of its ancestors exist.

        Returns:
            False if the path is empty or unknown, True if the path and every
            ancestor exist.

        Raises:
            InconsistentHierarchyError: If the path exists but an ancestor
                does not.
        """
        if not path:
            return False
        categories = self.categories.load_all()
        if _find_by_path(categories, path) is None:
            return False
        for prefix in hierarchy.strict_prefixes(path):
            if _find_by_path(categories, prefix) is None:
                raise InconsistentHierarchyError(path, prefix)
        return True

    def find_fuzzy(self, query: str) -> List[Category]:
        """Case-insensitive name search.

        Exact matches rank first, then prefix matches, then other substring
        matches; ties sort alphabetically by name.
        """
        needle = query.lower()
        ranked = []
        for category in self.categories.load_all():
            name = category.name.lower()
            if name == needle:
                rank = _EXACT
            elif name.startswith(needle):
                rank = _PREFIX
            elif needle in name:
                rank = _SUBSTRING
            else:
                continue
            ranked.append((rank, category.name, category))
        ranked.sort(key=lambda item: (item[0], item[1]))
        return [category for _, _, category in ranked]
