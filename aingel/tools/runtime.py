from __future__ import annotations

import time
from pathlib import Path
from typing import Any, Awaitable, Callable, Iterable

from aingel.core.types import ToolResult
from aingel.observability import get_logger


class ToolRejected(RuntimeError):
    """Structured tool rejection.

    Handlers raise this for expected failures (unsafe path, missing file,
    cancelled command...). `message` is what the model gets to see.
    """

    def __init__(self, error_type: str, message: str) -> None:
        super().__init__(message)
        self.error_type = error_type
        self.message = message


ToolHandler = Callable[[dict[str, Any], Path], Awaitable[str]]


def require_str(arguments: dict[str, Any], key: str) -> str:
    value = arguments.get(key)
    if not isinstance(value, str):
        raise ToolRejected("invalid_arguments", f"Error: Missing required argument: {key}")
    return value


class ToolDispatcher:
    """Executes named tools against a project root.

    `execute` never raises: every failure becomes `ToolResult(success=False)`.
    """

    def __init__(self, *, enabled: bool = True, whitelist: Iterable[str] = ()) -> None:
        self._enabled = enabled
        self._whitelist = set(whitelist)
        self._handlers: dict[str, ToolHandler] = {}
        self._log = get_logger(__name__)

    def register(self, name: str, handler: ToolHandler) -> None:
        self._handlers[name] = handler

    @property
    def names(self) -> list[str]:
        """Names the model may call (registered and permitted)."""

        if not self._enabled:
            return []
        return [n for n in self._handlers if not self._whitelist or n in self._whitelist]

    async def execute(
        self,
        name: str,
        arguments: dict[str, Any],
        project_root: str | Path,
        *,
        tool_call_id: str | None = None,
    ) -> ToolResult:
        if not self._enabled:
            return ToolResult(success=False, result="Error: Tools are disabled", error_type="tools_disabled")

        if self._whitelist and name not in self._whitelist:
            return ToolResult(success=False, result=f"Error: Tool not allowed: {name}", error_type="not_allowed")

        handler = self._handlers.get(name)
        if handler is None:
            return ToolResult(success=False, result=f"Unknown tool: {name}", error_type="unknown_tool")

        t0 = time.perf_counter()
        try:
            out = await handler(arguments, Path(project_root))
        except ToolRejected as e:
            self._log.info("tool_rejected", tool_call_id=tool_call_id, tool=name, error_type=e.error_type)
            return ToolResult(success=False, result=e.message, error_type=e.error_type)
        except Exception as e:  # noqa: BLE001
            self._log.exception("tool_error", tool_call_id=tool_call_id, tool=name)
            return ToolResult(success=False, result=f"Tool execution error: {e}", error_type=type(e).__name__)

        self._log.info(
            "tool_ok",
            tool_call_id=tool_call_id,
            tool=name,
            latency_ms=round((time.perf_counter() - t0) * 1000, 2),
            result_len=len(out),
        )
        return ToolResult(success=True, result=out)
