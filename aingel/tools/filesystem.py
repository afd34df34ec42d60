"""File tools: read, write, list and search inside the project root.

Every path goes through the sandbox before the filesystem is touched.
"""

from __future__ import annotations

import glob
import os
import re
from pathlib import Path
from typing import Any

from .runtime import ToolRejected, require_str
from .sandbox import is_path_safe, is_resolved_path_safe, resolve_in_root

EXCLUDED_DIRS = frozenset({"node_modules", ".git"})
MAX_SEARCH_RESULTS = 100
DEFAULT_SEARCH_GLOB = "**/*"


def _safe_target(root: Path, path: str) -> Path:
    target = resolve_in_root(root, path)
    if target is None:
        raise ToolRejected("path_traversal", "Error: Path traversal not allowed")
    return target


def iter_project_files(root: Path, pattern: str) -> list[str]:
    """Files (not directories) under `root` matching a glob, relative, sorted.

    Dependency and version-control directories are always skipped, as is
    anything the pattern reaches outside the root, directly or through a
    symlinked file or directory.
    """

    out: set[str] = set()
    for match in glob.iglob(pattern, root_dir=root, recursive=True):
        if not is_path_safe(root, match) or not is_resolved_path_safe(root, match):
            continue
        full = os.path.join(root, match)
        if not os.path.isfile(full):
            continue
        rel = Path(os.path.relpath(full, root))
        if EXCLUDED_DIRS.intersection(rel.parts):
            continue
        out.add(rel.as_posix())
    return sorted(out)


async def read_file(arguments: dict[str, Any], root: Path) -> str:
    path = require_str(arguments, "path")
    target = _safe_target(root, path)
    if not target.is_file():
        raise ToolRejected("not_found", f"Error: File not found: {path}")
    return target.read_text(encoding="utf-8")


async def write_file(arguments: dict[str, Any], root: Path) -> str:
    path = require_str(arguments, "path")
    content = require_str(arguments, "content")
    target = _safe_target(root, path)

    target.parent.mkdir(parents=True, exist_ok=True)
    existed = target.exists()
    target.write_text(content, encoding="utf-8", newline="")
    return f"File updated: {path}" if existed else f"File created: {path}"


async def list_files(arguments: dict[str, Any], root: Path) -> str:
    pattern = require_str(arguments, "pattern")
    files = iter_project_files(root, pattern)
    if not files:
        return "No files found matching pattern"
    return "\n".join(files)


async def search_files(arguments: dict[str, Any], root: Path) -> str:
    pattern = require_str(arguments, "pattern")
    glob_pattern = arguments.get("glob_pattern")
    if not isinstance(glob_pattern, str) or not glob_pattern:
        glob_pattern = DEFAULT_SEARCH_GLOB

    try:
        regex = re.compile(pattern, re.IGNORECASE)
    except re.error as e:
        raise ToolRejected("invalid_arguments", f"Error: Invalid search pattern: {e}") from e

    results: list[str] = []
    for rel in iter_project_files(root, glob_pattern):
        try:
            text = (root / rel).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError):
            continue
        if "\x00" in text:
            continue

        for lineno, line in enumerate(text.split("\n"), start=1):
            if regex.search(line):
                results.append(f"{rel}:{lineno}: {line.strip()}")
                if len(results) >= MAX_SEARCH_RESULTS:
                    return "\n".join(results)

    if not results:
        return "No matches found"
    return "\n".join(results)
