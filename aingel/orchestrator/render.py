from __future__ import annotations

from typing import Protocol

from aingel.core.types import ToolCallRecord, ToolResult


class TurnRenderer(Protocol):
    """Presentation hooks the orchestrator calls while a turn unfolds."""

    def on_model_start(self) -> None: ...

    def on_content(self, text: str) -> None: ...

    def on_model_end(self, *, content: str, tool_calls: int) -> None: ...

    def on_tool_start(self, call: ToolCallRecord) -> None: ...

    def on_tool_result(self, call: ToolCallRecord, result: ToolResult) -> None: ...

    def on_empty(self) -> None: ...

    def on_error(self, error: Exception) -> None: ...


class NullRenderer:
    """Renders nothing."""

    def on_model_start(self) -> None:
        pass

    def on_content(self, text: str) -> None:
        pass

    def on_model_end(self, *, content: str, tool_calls: int) -> None:
        pass

    def on_tool_start(self, call: ToolCallRecord) -> None:
        pass

    def on_tool_result(self, call: ToolCallRecord, result: ToolResult) -> None:
        pass

    def on_empty(self) -> None:
        pass

    def on_error(self, error: Exception) -> None:
        pass
