from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Literal, Union

Role = Literal["system", "user", "assistant", "tool"]


@dataclass(frozen=True, slots=True)
class ToolCallRecord:
    """A tool call requested by the model (stable structure across turns).

    `arguments` is the raw JSON text exactly as the server streamed it.
    """

    id: str
    name: str
    arguments: str = ""

    def parse_arguments(self) -> dict[str, Any]:
        """Decode `arguments` into a mapping.

        Raises:
            ValueError: if the text is not a JSON object.
        """

        parsed = json.loads(self.arguments) if self.arguments.strip() else {}
        if not isinstance(parsed, dict):
            raise ValueError("tool args must be a JSON object")
        return parsed

    def to_wire(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": "function",
            "function": {"name": self.name, "arguments": self.arguments},
        }


@dataclass(slots=True)
class Message:
    role: Role
    content: str | None = None
    tool_calls: list[ToolCallRecord] | None = None
    tool_call_id: str | None = None

    def to_wire(self) -> dict[str, Any]:
        """Build the OpenAI-compatible chat message dict."""

        out: dict[str, Any] = {"role": self.role, "content": self.content}
        if self.tool_calls:
            out["tool_calls"] = [tc.to_wire() for tc in self.tool_calls]
        if self.tool_call_id is not None:
            out["tool_call_id"] = self.tool_call_id
        return out


@dataclass(frozen=True, slots=True)
class ContentEvent:
    """A streamed text fragment."""

    text: str


@dataclass(frozen=True, slots=True)
class ToolCallsEvent:
    """A completed batch of tool calls, in the order the model emitted them."""

    tool_calls: tuple[ToolCallRecord, ...]


StreamEvent = Union[ContentEvent, ToolCallsEvent]


@dataclass(frozen=True, slots=True)
class ToolParameter:
    name: str
    type: str
    description: str
    required: bool = True


@dataclass(frozen=True, slots=True)
class ToolDefinition:
    """Read-only catalog entry describing a callable capability."""

    name: str
    description: str
    parameters: tuple[ToolParameter, ...] = field(default_factory=tuple)

    @property
    def required(self) -> list[str]:
        return [p.name for p in self.parameters if p.required]

    def to_openai(self) -> dict[str, Any]:
        """Return the OpenAI-compatible `tools[]` entry."""

        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": {
                    "type": "object",
                    "properties": {
                        p.name: {"type": p.type, "description": p.description} for p in self.parameters
                    },
                    "required": self.required,
                },
            },
        }


@dataclass(frozen=True, slots=True)
class ToolResult:
    success: bool
    result: str
    error_type: str | None = None
