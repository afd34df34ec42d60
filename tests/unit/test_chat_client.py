from __future__ import annotations

import asyncio
import json
from typing import Any, Callable

import httpx
import pytest

from aingel.config.model import LlmConfig
from aingel.core.errors import ConfigError, ModelNotSelectedError, TransportError
from aingel.core.types import ContentEvent, Message, StreamEvent, ToolCallRecord, ToolCallsEvent
from aingel.llm.client import ChatStreamClient
from aingel.tools.definitions import TOOL_DEFINITIONS
from helpers import chunk, sse_body, tc_fragment

HISTORY = [Message(role="system", content="sys"), Message(role="user", content="hi")]


def _client(handler: Callable[[httpx.Request], Any], *, model: str | None = "m1") -> ChatStreamClient:
    return ChatStreamClient(
        base_url="http://llm.test:1234/v1",
        model=model,
        transport=httpx.MockTransport(handler),
    )


def _collect(client: ChatStreamClient, **kwargs: Any) -> list[StreamEvent]:
    async def go() -> list[StreamEvent]:
        return [e async for e in client.stream(HISTORY, **kwargs)]

    return asyncio.run(go())


def test_stream_without_model_is_a_config_error() -> None:
    client = _client(lambda request: httpx.Response(200), model=None)

    with pytest.raises(ModelNotSelectedError) as ei:
        _collect(client)
    assert isinstance(ei.value, ConfigError)


def test_request_body_with_tools() -> None:
    seen: dict[str, Any] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, text=sse_body([chunk(content="ok")]))

    _collect(_client(handler), tools=TOOL_DEFINITIONS)

    body = seen["body"]
    assert seen["path"] == "/v1/chat/completions"
    assert body["model"] == "m1"
    assert body["stream"] is True
    assert body["messages"] == [{"role": "system", "content": "sys"}, {"role": "user", "content": "hi"}]
    assert body["tool_choice"] == "auto"
    assert [t["function"]["name"] for t in body["tools"]] == [
        "read_file",
        "write_file",
        "list_files",
        "search_files",
        "run_command",
    ]
    assert body["tools"][3]["function"]["parameters"]["required"] == ["pattern"]


def test_request_body_without_tools_omits_tool_choice() -> None:
    seen: dict[str, Any] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, text=sse_body([]))

    _collect(_client(handler), tools=[])
    assert "tools" not in seen["body"]
    assert "tool_choice" not in seen["body"]


def test_assistant_tool_call_history_is_serialized() -> None:
    seen: dict[str, Any] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, text=sse_body([]))

    client = _client(handler)
    history = HISTORY + [
        Message(role="assistant", content=None, tool_calls=[ToolCallRecord(id="c1", name="read_file", arguments="{}")]),
        Message(role="tool", content="data", tool_call_id="c1"),
    ]

    async def go() -> None:
        async for _ in client.stream(history):
            pass

    asyncio.run(go())
    assistant, tool = seen["body"]["messages"][2:]
    assert assistant == {
        "role": "assistant",
        "content": None,
        "tool_calls": [{"id": "c1", "type": "function", "function": {"name": "read_file", "arguments": "{}"}}],
    }
    assert tool == {"role": "tool", "content": "data", "tool_call_id": "c1"}


def test_streamed_events_from_fragmented_body() -> None:
    body = sse_body(
        [
            chunk(content="Reading "),
            chunk(content="now."),
            chunk(tool_calls=[tc_fragment(0, id="call_1", name="read_file", arguments='{"pa')]),
            chunk(tool_calls=[tc_fragment(0, arguments='th": "README.md"}')]),
            chunk(finish_reason="tool_calls"),
        ]
    ).encode("utf-8")

    async def body_stream():
        for i in range(0, len(body), 7):
            yield body[i : i + 7]

    client = _client(lambda request: httpx.Response(200, content=body_stream()))
    events = _collect(client)

    assert events == [
        ContentEvent("Reading "),
        ContentEvent("now."),
        ToolCallsEvent(tool_calls=(ToolCallRecord(id="call_1", name="read_file", arguments='{"path": "README.md"}'),)),
    ]


def test_error_status_raises_transport_error_with_body() -> None:
    client = _client(lambda request: httpx.Response(500, text="model crashed"))

    with pytest.raises(TransportError) as ei:
        _collect(client)
    assert ei.value.status == 500
    assert ei.value.body == "model crashed"
    assert "500" in str(ei.value)


def test_network_failure_raises_transport_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(TransportError):
        _collect(_client(handler))


def test_each_stream_call_is_one_request() -> None:
    count = {"n": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        count["n"] += 1
        return httpx.Response(200, text=sse_body([chunk(content="x")]))

    client = _client(handler)
    _collect(client)
    _collect(client)
    assert count["n"] == 2


def test_list_models_and_connection_check() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/v1/models"
        return httpx.Response(
            200,
            json={
                "object": "list",
                "data": [
                    {"id": "qwen-coder", "object": "model", "created": 0, "owned_by": "me"},
                    {"id": "llama", "object": "model", "created": 0, "owned_by": "me"},
                ],
            },
        )

    client = _client(handler)
    assert asyncio.run(client.list_models()) == ["qwen-coder", "llama"]
    assert asyncio.run(client.test_connection()) is True


def test_connection_check_fails_on_error_status() -> None:
    client = _client(lambda request: httpx.Response(503, json={"error": "down"}))

    with pytest.raises(TransportError):
        asyncio.run(client.list_models())
    assert asyncio.run(client.test_connection()) is False


def test_from_config_and_set_model() -> None:
    client = ChatStreamClient.from_config(LlmConfig(host="10.0.0.5", port=4321))
    assert client.base_url == "http://10.0.0.5:4321/v1"
    assert client.model is None

    client.set_model("m2")
    assert client.model == "m2"
