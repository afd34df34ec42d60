"""LLM integration: SSE decoding, tool-call accumulation, and the chat client."""

from __future__ import annotations

from .client import ChatStreamClient, build_request_body
from .sse import SseDecoder, adecode_sse, decode_sse
from .tool_call_accumulator import ToolCallAccumulator, accumulate

__all__ = [
    "ChatStreamClient",
    "SseDecoder",
    "ToolCallAccumulator",
    "accumulate",
    "adecode_sse",
    "build_request_body",
    "decode_sse",
]
