"""Streaming tool-call accumulator.

OpenAI-compatible streaming delivers each tool call piecewise: the id and
name usually arrive in the first fragment, the JSON arguments trickle in over
many more. Fragments are keyed by their integer `index`.

Merge rules per index:
- id: overwritten by any non-empty value
- name: overwritten by any non-empty value
- arguments: appended in arrival order, never overwritten

Each record is emitted at most once per stream.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, AsyncIterable, AsyncIterator

from aingel.core.types import ContentEvent, StreamEvent, ToolCallRecord, ToolCallsEvent
from aingel.observability import get_logger

TOOL_CALLS_FINISH_REASON = "tool_calls"


@dataclass(slots=True)
class _AccumulatedToolCall:
    index: int
    id: str = ""
    name: str = ""
    arguments: str = ""
    last_json_error: str | None = None

    def freeze(self) -> ToolCallRecord:
        # Some servers never send an id; tool messages still need one to link to.
        return ToolCallRecord(id=self.id or f"call_{self.index}", name=self.name, arguments=self.arguments)


class ToolCallAccumulator:
    """Turn decoded chat-completion chunks into ordered `StreamEvent`s."""

    def __init__(self) -> None:
        self._calls: dict[int, _AccumulatedToolCall] = {}
        self._emitted: set[int] = set()
        self._log = get_logger(__name__)

    def feed(self, payload: dict[str, Any]) -> list[StreamEvent]:
        """Consume one decoded chunk; return the events it produced, in order."""

        choices = payload.get("choices")
        if not isinstance(choices, list) or not choices:
            return []
        choice = choices[0]
        if not isinstance(choice, dict):
            return []

        events: list[StreamEvent] = []
        delta = choice.get("delta")
        if isinstance(delta, dict):
            content = delta.get("content")
            if isinstance(content, str) and content:
                events.append(ContentEvent(text=content))

            fragments = delta.get("tool_calls")
            if isinstance(fragments, list) and fragments:
                self.add_delta(fragments)

        if choice.get("finish_reason") == TOOL_CALLS_FINISH_REASON:
            pending = self._take_pending()
            if pending:
                events.append(ToolCallsEvent(tool_calls=pending))

        return events

    def add_delta(self, fragments: list[Any]) -> None:
        for tc in fragments:
            if not isinstance(tc, dict):
                continue

            index = tc.get("index", 0)
            if not isinstance(index, int) or isinstance(index, bool):
                continue

            acc = self._calls.get(index)
            if acc is None:
                acc = self._calls[index] = _AccumulatedToolCall(index=index)

            tc_id = tc.get("id")
            if isinstance(tc_id, str) and tc_id:
                acc.id = tc_id

            fn = tc.get("function") or {}
            if not isinstance(fn, dict):
                continue

            name = fn.get("name")
            if isinstance(name, str) and name:
                acc.name = name

            args = fn.get("arguments")
            if isinstance(args, str) and args:
                acc.arguments += args
                self._check_json(acc)

    def finish(self) -> list[StreamEvent]:
        """Flush at end of stream, for servers that omit the finish signal."""

        pending = [self._calls[i] for i in sorted(self._calls) if i not in self._emitted]
        if not any(acc.name for acc in pending):
            return []
        return [ToolCallsEvent(tool_calls=self._take_pending())]

    def _take_pending(self) -> tuple[ToolCallRecord, ...]:
        out: list[ToolCallRecord] = []
        for index in sorted(self._calls):
            if index in self._emitted:
                continue
            self._emitted.add(index)
            out.append(self._calls[index].freeze())
        return tuple(out)

    def _check_json(self, acc: _AccumulatedToolCall) -> None:
        try:
            json.loads(acc.arguments)
            acc.last_json_error = None
        except json.JSONDecodeError as e:
            acc.last_json_error = f"{e.msg} (pos={e.pos})"

        self._log.debug(
            "tool_call_accumulate",
            index=acc.index,
            tool_call_id=acc.id,
            tool_name=acc.name,
            arguments_len=len(acc.arguments),
            last_json_error=acc.last_json_error,
        )


async def accumulate(payloads: AsyncIterable[dict[str, Any]]) -> AsyncIterator[StreamEvent]:
    """Re-expose decoded payloads as a lazy sequence of `StreamEvent`s."""

    acc = ToolCallAccumulator()
    async for payload in payloads:
        for event in acc.feed(payload):
            yield event
    for event in acc.finish():
        yield event
