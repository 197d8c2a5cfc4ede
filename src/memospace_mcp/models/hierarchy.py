"""Category path semantics.

A category path is an ordered sequence of segment names from the root of
the tree down to a node, e.g. ``["Technical", "Python", "Flask"]``. The
same representation classifies notes. Everything here is pure: no I/O and
no failure modes beyond the empty-path edge case, which is never a valid
category path.
"""
from typing import List, Optional, Sequence

PATH_SEPARATOR = " → "


def is_ancestor_or_self(ancestor: Sequence[str], path: Sequence[str]) -> bool:
    """Return True if ``path`` is ``ancestor`` extended by zero or more segments."""
    if len(ancestor) > len(path):
        return False
    return list(path[: len(ancestor)]) == list(ancestor)


def is_strict_ancestor(ancestor: Sequence[str], path: Sequence[str]) -> bool:
    """Return True if ``path`` lies strictly below ``ancestor``."""
    return len(path) > len(ancestor) and is_ancestor_or_self(ancestor, path)


def level(path: Sequence[str]) -> int:
    """Depth of a path; roots are level 0."""
    return max(len(path) - 1, 0)


def render(path: Sequence[str]) -> str:
    """Display form of a path, e.g. ``"Technical → Python"``."""
    return PATH_SEPARATOR.join(path)


def parent(path: Sequence[str]) -> Optional[List[str]]:
    """Path of the parent category, or None for the empty path.

    A root path yields an empty list (the tree root has no category).
    """
    if not path:
        return None
    return list(path[:-1])


def strict_prefixes(path: Sequence[str]) -> List[List[str]]:
    """Every proper, non-empty prefix of ``path``, root first."""
    return [list(path[:i]) for i in range(1, len(path))]


def replace_prefix(
    path: Sequence[str], old_prefix: Sequence[str], new_prefix: Sequence[str]
) -> List[str]:
    """Swap ``old_prefix`` for ``new_prefix`` at the head of ``path``.

    Paths that do not start with ``old_prefix`` come back unchanged.
    """
    if not is_ancestor_or_self(old_prefix, path):
        return list(path)
    return list(new_prefix) + list(path[len(old_prefix):])


def is_valid_path(path: Sequence[str]) -> bool:
    """A usable category path has at least one segment and no blank ones."""
    return bool(path) and all(segment.strip() for segment in path)
