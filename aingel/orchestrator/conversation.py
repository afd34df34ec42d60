from __future__ import annotations

from pathlib import Path
from typing import Sequence

from aingel.core.types import Message, ToolCallRecord

ASSISTANT_NAME = "Aingel"

INTERRUPTED_TOOL_RESULT = "Error: Tool call was interrupted before it produced a result"


def build_system_prompt(project_root: str | Path) -> str:
    return f"""You are {ASSISTANT_NAME}, a helpful coding assistant. You are working in the project directory: {project_root}

You have access to these tools:
- read_file: Read file contents
- write_file: Create or update files
- list_files: List files matching a glob pattern
- search_files: Search for text/regex in files
- run_command: Execute shell commands (requires user confirmation)

Always use relative paths from the project root. Be concise and helpful."""


class Conversation:
    """Append-only message history for one interactive session.

    Enforces the tool-call linkage rule: a tool message may only follow the
    assistant message that requested it, and must answer one of its
    still-unanswered call ids.
    """

    def __init__(self, system_prompt: str) -> None:
        self._system_prompt = system_prompt
        self._messages: list[Message] = []
        self._pending_ids: list[str] = []
        self.reset()

    @property
    def messages(self) -> list[Message]:
        return self._messages

    @property
    def pending_tool_call_ids(self) -> list[str]:
        return list(self._pending_ids)

    def __len__(self) -> int:
        return len(self._messages)

    def reset(self) -> None:
        """Drop everything except the system prompt."""

        self._messages.clear()
        self._pending_ids.clear()
        self._messages.append(Message(role="system", content=self._system_prompt))

    def add_user(self, content: str) -> None:
        self._ensure_no_pending()
        self._messages.append(Message(role="user", content=content))

    def add_assistant(self, content: str) -> None:
        self._ensure_no_pending()
        self._messages.append(Message(role="assistant", content=content))

    def add_tool_calls(self, content: str | None, tool_calls: Sequence[ToolCallRecord]) -> None:
        if not tool_calls:
            raise ValueError("assistant tool-call message needs at least one tool call")
        self._ensure_no_pending()
        self._messages.append(Message(role="assistant", content=content or None, tool_calls=list(tool_calls)))
        self._pending_ids = [tc.id for tc in tool_calls]

    def add_tool_result(self, tool_call_id: str, content: str) -> None:
        if tool_call_id not in self._pending_ids:
            raise ValueError(f"tool result {tool_call_id!r} does not answer a pending tool call")
        self._pending_ids.remove(tool_call_id)
        self._messages.append(Message(role="tool", content=content, tool_call_id=tool_call_id))

    def resolve_pending(self, content: str = INTERRUPTED_TOOL_RESULT) -> int:
        """Answer any unanswered tool calls so the history stays well-formed."""

        count = 0
        for tool_call_id in list(self._pending_ids):
            self.add_tool_result(tool_call_id, content)
            count += 1
        return count

    def _ensure_no_pending(self) -> None:
        if self._pending_ids:
            raise ValueError(f"unanswered tool calls: {', '.join(self._pending_ids)}")
