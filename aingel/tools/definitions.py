from __future__ import annotations

from aingel.core.types import ToolDefinition, ToolParameter

READ_FILE = ToolDefinition(
    name="read_file",
    description="Read the contents of a file",
    parameters=(ToolParameter("path", "string", "File path relative to project root"),),
)

WRITE_FILE = ToolDefinition(
    name="write_file",
    description=(
        "Write content to a file. Creates the file and parent directories if they don't exist. "
        "Overwrites existing files."
    ),
    parameters=(
        ToolParameter("path", "string", "File path relative to project root"),
        ToolParameter("content", "string", "Content to write to the file"),
    ),
)

LIST_FILES = ToolDefinition(
    name="list_files",
    description="List files matching a glob pattern in the project directory",
    parameters=(ToolParameter("pattern", "string", 'Glob pattern (e.g., "**/*.py", "src/**/*")'),),
)

SEARCH_FILES = ToolDefinition(
    name="search_files",
    description="Search for text or regex pattern in files",
    parameters=(
        ToolParameter("pattern", "string", "Search pattern (regex supported, case-insensitive)"),
        ToolParameter(
            "glob_pattern",
            "string",
            'Optional glob pattern to filter files (default: "**/*")',
            required=False,
        ),
    ),
)

RUN_COMMAND = ToolDefinition(
    name="run_command",
    description="Execute a shell command in the project directory. Requires user confirmation.",
    parameters=(ToolParameter("command", "string", "Shell command to execute"),),
)

TOOL_DEFINITIONS: tuple[ToolDefinition, ...] = (READ_FILE, WRITE_FILE, LIST_FILES, SEARCH_FILES, RUN_COMMAND)


def get_tool_definitions(names: list[str] | None = None) -> list[ToolDefinition]:
    """Return catalog entries, optionally restricted to `names` (catalog order).

    Raises:
        KeyError: if a name is not in the catalog.
    """

    if names is None:
        return list(TOOL_DEFINITIONS)

    known = {d.name: d for d in TOOL_DEFINITIONS}
    for name in names:
        if name not in known:
            raise KeyError(f"unknown tool definition: {name}")
    wanted = set(names)
    return [d for d in TOOL_DEFINITIONS if d.name in wanted]
