"""Sandboxed project tools and their dispatcher."""

from __future__ import annotations

from aingel.config.model import ToolsConfig

from . import filesystem
from .definitions import TOOL_DEFINITIONS, get_tool_definitions
from .runtime import ToolDispatcher, ToolHandler, ToolRejected
from .sandbox import is_path_safe, resolve_in_root
from .shell import CommandRunner, ConfirmCommand, always_confirm

__all__ = [
    "TOOL_DEFINITIONS",
    "CommandRunner",
    "ConfirmCommand",
    "ToolDispatcher",
    "ToolHandler",
    "ToolRejected",
    "always_confirm",
    "build_dispatcher",
    "get_tool_definitions",
    "is_path_safe",
    "resolve_in_root",
]


def build_dispatcher(*, confirm: ConfirmCommand, tools_cfg: ToolsConfig | None = None) -> ToolDispatcher:
    """Create a dispatcher with the five project tools registered."""

    cfg = tools_cfg or ToolsConfig()
    if cfg.auto_approve:
        confirm = always_confirm

    dispatcher = ToolDispatcher(enabled=cfg.enabled, whitelist=cfg.whitelist)
    dispatcher.register("read_file", filesystem.read_file)
    dispatcher.register("write_file", filesystem.write_file)
    dispatcher.register("list_files", filesystem.list_files)
    dispatcher.register("search_files", filesystem.search_files)
    dispatcher.register(
        "run_command",
        CommandRunner(confirm=confirm, timeout_s=cfg.command_timeout_s, max_output_bytes=cfg.max_output_bytes),
    )
    return dispatcher
