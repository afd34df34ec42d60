"""OpenAI-compatible chat client (LM Studio and friends).

- `stream()` posts to `/chat/completions` with `stream=True` and decodes the raw
  server-sent events itself (SseDecoder -> ToolCallAccumulator), so partial
  tool calls from loosely compatible servers are still recovered.
- `list_models()` goes through the `openai` SDK.

One `stream()` call is exactly one network round trip; multi-step tool loops
belong to the orchestrator.
"""

from __future__ import annotations

import time
from typing import Any, AsyncIterator, Sequence

import httpx
import openai
from pydantic import SecretStr

from aingel.config.model import LlmConfig
from aingel.core.errors import ModelNotSelectedError, TransportError
from aingel.core.types import ContentEvent, Message, StreamEvent, ToolCallsEvent, ToolDefinition
from aingel.observability import get_logger

from .sse import adecode_sse
from .tool_call_accumulator import accumulate


def build_request_body(
    *,
    model: str,
    history: Sequence[Message],
    tools: Sequence[ToolDefinition] | None = None,
) -> dict[str, Any]:
    body: dict[str, Any] = {
        "model": model,
        "messages": [m.to_wire() for m in history],
        "stream": True,
    }
    if tools:
        body["tools"] = [t.to_openai() for t in tools]
        body["tool_choice"] = "auto"
    return body


class ChatStreamClient:
    """Streaming chat-completions client for one server."""

    def __init__(
        self,
        *,
        base_url: str,
        api_key: SecretStr | str = "lm-studio",
        model: str | None = None,
        timeout_s: float = 300.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key if isinstance(api_key, SecretStr) else SecretStr(api_key)
        self._model = model
        self._timeout = httpx.Timeout(timeout_s, connect=10.0)
        self._transport = transport
        self._log = get_logger(__name__)

    @classmethod
    def from_config(cls, cfg: LlmConfig, *, transport: httpx.AsyncBaseTransport | None = None) -> "ChatStreamClient":
        return cls(
            base_url=cfg.base_url,
            api_key=cfg.api_key,
            model=cfg.model,
            timeout_s=cfg.timeout_s,
            transport=transport,
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def model(self) -> str | None:
        return self._model

    def set_model(self, model: str) -> None:
        self._model = model

    def _http_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self._timeout, transport=self._transport)

    async def list_models(self) -> list[str]:
        """Return the ids of the models the server currently serves."""

        async with self._http_client() as http:
            client = openai.AsyncOpenAI(
                api_key=self._api_key.get_secret_value(),
                base_url=self._base_url,
                http_client=http,
                max_retries=0,
            )
            try:
                page = await client.models.list()
            except openai.APIStatusError as e:
                raise TransportError(
                    f"Failed to list models: {e.status_code}", status=e.status_code, body=e.response.text
                ) from e
            except openai.APIError as e:
                raise TransportError(f"Failed to list models: {e}") from e

        return [m.id for m in page.data]

    async def test_connection(self) -> bool:
        try:
            await self.list_models()
        except TransportError as e:
            self._log.warning("connection_test_failed", base_url=self._base_url, error=str(e))
            return False
        return True

    async def stream(
        self,
        history: Sequence[Message],
        tools: Sequence[ToolDefinition] | None = None,
    ) -> AsyncIterator[StreamEvent]:
        """Stream one model turn as `ContentEvent`s and `ToolCallsEvent`s.

        Raises:
            ModelNotSelectedError: if no model was set.
            TransportError: on a non-success status or a network failure.
        """

        if not self._model:
            raise ModelNotSelectedError()

        body = build_request_body(model=self._model, history=history, tools=tools)
        headers = {"Authorization": f"Bearer {self._api_key.get_secret_value()}"}

        self._log.info(
            "chat_stream_start",
            model=self._model,
            messages=len(body["messages"]),
            tools=len(body.get("tools", [])),
        )
        t0 = time.perf_counter()
        content_chars = 0
        tool_calls = 0

        try:
            async with self._http_client() as http:
                async with http.stream(
                    "POST", f"{self._base_url}/chat/completions", json=body, headers=headers
                ) as response:
                    if not response.is_success:
                        error_text = (await response.aread()).decode("utf-8", errors="replace")
                        raise TransportError(
                            f"Chat request failed: {response.status_code} {response.reason_phrase}",
                            status=response.status_code,
                            body=error_text,
                        )

                    async for event in accumulate(adecode_sse(response.aiter_bytes())):
                        if isinstance(event, ContentEvent):
                            content_chars += len(event.text)
                        elif isinstance(event, ToolCallsEvent):
                            tool_calls += len(event.tool_calls)
                        yield event
        except httpx.HTTPError as e:
            raise TransportError(f"Chat request failed: {e}") from e

        self._log.info(
            "chat_stream_done",
            latency_ms=round((time.perf_counter() - t0) * 1000, 2),
            content_chars=content_chars,
            tool_calls=tool_calls,
        )
