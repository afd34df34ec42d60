"""Project-root containment checks for filesystem tools."""

from __future__ import annotations

import os
from pathlib import Path


def is_path_safe(project_root: str | os.PathLike[str], requested_path: str) -> bool:
    """Return True if `requested_path` stays inside `project_root`.

    Pure and lexical: `..` segments are collapsed, absolute paths are taken
    as-is, and the result must not climb out of the root. No filesystem access.
    """

    root = os.path.abspath(project_root)
    target = os.path.abspath(os.path.join(root, requested_path))
    try:
        rel = os.path.relpath(target, root)
    except ValueError:
        # Different drive on Windows.
        return False

    if os.path.isabs(rel):
        return False
    return rel.split(os.sep, 1)[0] != os.pardir


def is_resolved_path_safe(project_root: str | os.PathLike[str], requested_path: str) -> bool:
    """Like `is_path_safe`, but with symlinks resolved on both sides.

    Touches the filesystem (realpath), so call it only after `is_path_safe`.
    """

    root = os.path.realpath(project_root)
    target = os.path.realpath(os.path.join(os.path.abspath(project_root), requested_path))
    return is_path_safe(root, target)


def resolve_in_root(project_root: str | os.PathLike[str], requested_path: str) -> Path | None:
    """Return the absolute target path, or None if it escapes the root."""

    if not is_path_safe(project_root, requested_path):
        return None
    if not is_resolved_path_safe(project_root, requested_path):
        return None
    return Path(os.path.abspath(os.path.join(os.path.abspath(project_root), requested_path)))
