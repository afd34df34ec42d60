"""Server-sent-event decoder for OpenAI-compatible streaming responses.

Network reads never line up with event boundaries, so the decoder keeps a
single carry-over buffer: every fragment is appended, complete lines are
processed, and the trailing partial line waits for the next fragment.

Malformed lines are dropped; they must never abort the whole stream.
"""

from __future__ import annotations

import codecs
import json
from typing import Any, AsyncIterable, AsyncIterator, Iterable, Iterator

from aingel.observability import get_logger

DATA_PREFIX = "data:"
DONE_SENTINEL = "[DONE]"

_log = get_logger(__name__)


class SseDecoder:
    """Incremental `data:` line decoder (one instance per stream)."""

    def __init__(self) -> None:
        self._buffer = ""
        self._utf8 = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._done = False

    @property
    def done(self) -> bool:
        """True once the `[DONE]` sentinel was seen."""

        return self._done

    def feed(self, fragment: str | bytes) -> list[dict[str, Any]]:
        """Consume one network fragment and return the payloads it completed."""

        if isinstance(fragment, (bytes, bytearray)):
            fragment = self._utf8.decode(bytes(fragment))

        self._buffer += fragment
        lines = self._buffer.split("\n")
        self._buffer = lines.pop()

        out: list[dict[str, Any]] = []
        for line in lines:
            payload = self._decode_line(line)
            if payload is not None:
                out.append(payload)
        return out

    def close(self) -> list[dict[str, Any]]:
        """Flush the decoder at end of stream.

        A final line without a trailing newline is still decoded.
        """

        tail = self._buffer + self._utf8.decode(b"", final=True)
        self._buffer = ""
        payload = self._decode_line(tail)
        return [payload] if payload is not None else []

    def _decode_line(self, line: str) -> dict[str, Any] | None:
        trimmed = line.strip()
        if not trimmed or not trimmed.startswith(DATA_PREFIX):
            return None

        data = trimmed[len(DATA_PREFIX) :].lstrip()
        if data == DONE_SENTINEL:
            self._done = True
            return None

        try:
            payload = json.loads(data)
        except json.JSONDecodeError as e:
            _log.debug("sse_line_malformed", error=f"{e.msg} (pos={e.pos})", line_len=len(data))
            return None

        if not isinstance(payload, dict):
            _log.debug("sse_line_not_object", kind=type(payload).__name__)
            return None
        return payload


def decode_sse(fragments: Iterable[str | bytes]) -> Iterator[dict[str, Any]]:
    """Decode a synchronous sequence of fragments."""

    decoder = SseDecoder()
    for fragment in fragments:
        yield from decoder.feed(fragment)
    yield from decoder.close()


async def adecode_sse(fragments: AsyncIterable[str | bytes]) -> AsyncIterator[dict[str, Any]]:
    """Decode an async sequence of fragments; pulls one fragment at a time."""

    decoder = SseDecoder()
    async for fragment in fragments:
        for payload in decoder.feed(fragment):
            yield payload
    for payload in decoder.close():
        yield payload
