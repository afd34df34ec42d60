from __future__ import annotations

import json
from typing import Any, AsyncIterator, Iterable, Sequence

from aingel.core.types import Message, StreamEvent, ToolDefinition
from aingel.llm.client import ChatStreamClient


def chunk(
    *,
    content: str | None = None,
    tool_calls: list[dict[str, Any]] | None = None,
    finish_reason: str | None = None,
) -> dict[str, Any]:
    """Build one OpenAI-style streaming chunk."""

    delta: dict[str, Any] = {}
    if content is not None:
        delta["content"] = content
    if tool_calls is not None:
        delta["tool_calls"] = tool_calls
    return {
        "id": "chatcmpl-1",
        "object": "chat.completion.chunk",
        "created": 0,
        "model": "test-model",
        "choices": [{"index": 0, "delta": delta, "finish_reason": finish_reason}],
    }


def tc_fragment(index: int, *, id: str | None = None, name: str | None = None, arguments: str | None = None) -> dict[str, Any]:
    frag: dict[str, Any] = {"index": index}
    if id is not None:
        frag["id"] = id
        frag["type"] = "function"
    fn: dict[str, Any] = {}
    if name is not None:
        fn["name"] = name
    if arguments is not None:
        fn["arguments"] = arguments
    if fn:
        frag["function"] = fn
    return frag


def sse_body(payloads: Iterable[dict[str, Any]], *, done: bool = True) -> str:
    lines = [f"data: {json.dumps(p, ensure_ascii=False)}\n\n" for p in payloads]
    if done:
        lines.append("data: [DONE]\n\n")
    return "".join(lines)


async def aiter_list(items: Iterable[Any]) -> AsyncIterator[Any]:
    for item in items:
        yield item


class ScriptedChatClient(ChatStreamClient):
    """Replays canned model steps; an Exception step is raised instead."""

    def __init__(self, steps: Sequence[Sequence[StreamEvent] | Exception]) -> None:
        super().__init__(base_url="http://scripted.invalid/v1", model="scripted-model")
        self._steps = list(steps)
        self.calls: list[dict[str, Any]] = []

    async def stream(
        self,
        history: Sequence[Message],
        tools: Sequence[ToolDefinition] | None = None,
    ) -> AsyncIterator[StreamEvent]:
        self.calls.append(
            {
                "history": history,
                "snapshot": [m.to_wire() for m in history],
                "tools": [t.name for t in tools or []],
            }
        )
        step = self._steps.pop(0)
        if isinstance(step, Exception):
            raise step
        for event in step:
            yield event


class RecordingConfirm:
    def __init__(self, answer: bool) -> None:
        self.answer = answer
        self.commands: list[str] = []

    async def __call__(self, command: str) -> bool:
        self.commands.append(command)
        return self.answer
