from __future__ import annotations

import sys
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Sequence, cast

from langgraph.graph import END, START, StateGraph

from aingel.core.errors import AingelError
from aingel.core.types import ContentEvent, Message, ToolCallRecord, ToolCallsEvent, ToolDefinition, ToolResult
from aingel.llm.client import ChatStreamClient
from aingel.observability import add_error, bind_context, get_logger, set_state
from aingel.observability.context import ACT, AWAIT_INPUT, IDLE, STREAM
from aingel.observability.ids import new_session_id, new_trace_id
from aingel.tools.runtime import ToolDispatcher

from .conversation import Conversation, build_system_prompt
from .graph_state import TurnState
from .render import NullRenderer, TurnRenderer


@dataclass(slots=True)
class TurnOutput:
    assistant_text: str
    tool_results: list[ToolResult] = field(default_factory=list)
    outcome: str = "content"
    error: str | None = None


class TurnOrchestrator:
    """Drives one session: model turn -> tools -> model turn ... until done.

    Built on a two-node LangGraph loop (`model` <-> `tools`). The history is
    owned here and shared by every step of every turn.
    """

    def __init__(
        self,
        *,
        client: ChatStreamClient,
        dispatcher: ToolDispatcher,
        project_root: str | Path,
        tools: Sequence[ToolDefinition] | None = None,
        renderer: TurnRenderer | None = None,
        system_prompt: str | None = None,
        recursion_limit: int = sys.maxsize,
    ) -> None:
        self._client = client
        self._dispatcher = dispatcher
        self._project_root = Path(project_root)
        self._tools = list(tools or [])
        self._renderer: TurnRenderer = renderer or NullRenderer()
        self._conversation = Conversation(system_prompt or build_system_prompt(self._project_root))
        self._recursion_limit = recursion_limit

        self._session_id = new_session_id()
        self._turn_id = 0
        self._log = get_logger("aingel.orchestrator")
        self._graph = self._build_graph()
        set_state(AWAIT_INPUT)

    @property
    def history(self) -> list[Message]:
        return self._conversation.messages

    @property
    def conversation(self) -> Conversation:
        return self._conversation

    @property
    def project_root(self) -> Path:
        return self._project_root

    def reset(self) -> None:
        self._conversation.reset()
        set_state(AWAIT_INPUT)

    async def run_turn(self, user_text: str) -> TurnOutput:
        """Handle one user message through to the model's final answer.

        Configuration and transport errors are reported to the renderer and
        returned as `outcome="error"`; the failed model step leaves no trace
        in the history.
        """

        self._turn_id += 1
        bind_context(trace_id=new_trace_id(), session_id=self._session_id, turn_id=self._turn_id)

        self._conversation.add_user(user_text)
        t0 = time.perf_counter()

        try:
            out_state = cast(
                TurnState,
                await self._graph.ainvoke(
                    {"content": "", "tool_calls": [], "model_steps": 0, "tool_results": []},
                    config={"recursion_limit": self._recursion_limit},
                ),
            )
        except AingelError as e:
            add_error(str(e))
            self._log.warning("turn_failed", error_type=type(e).__name__, error=str(e))
            self._renderer.on_error(e)
            return TurnOutput(assistant_text="", outcome="error", error=str(e))
        finally:
            interrupted = self._conversation.resolve_pending()
            if interrupted:
                self._log.warning("tool_calls_interrupted", count=interrupted)
            set_state(IDLE)

        outcome = str(out_state.get("outcome", "empty"))
        if outcome == "empty":
            self._renderer.on_empty()

        self._log.info(
            "turn_done",
            latency_ms=round((time.perf_counter() - t0) * 1000, 2),
            model_steps=out_state.get("model_steps", 0),
            tool_results=len(out_state.get("tool_results", [])),
            outcome=outcome,
        )
        return TurnOutput(
            assistant_text=str(out_state.get("content", "")),
            tool_results=list(out_state.get("tool_results", [])),
            outcome=outcome,
        )

    def _build_graph(self):
        async def model_node(state: TurnState) -> dict[str, Any]:
            set_state(STREAM)
            self._renderer.on_model_start()

            parts: list[str] = []
            tool_calls: list[ToolCallRecord] = []
            async for event in self._client.stream(self._conversation.messages, self._tools):
                if isinstance(event, ContentEvent):
                    self._renderer.on_content(event.text)
                    parts.append(event.text)
                elif isinstance(event, ToolCallsEvent):
                    tool_calls.extend(event.tool_calls)

            content = "".join(parts)
            self._renderer.on_model_end(content=content, tool_calls=len(tool_calls))

            if tool_calls:
                self._conversation.add_tool_calls(content or None, tool_calls)
                outcome = "tool_calls"
            elif content:
                self._conversation.add_assistant(content)
                outcome = "content"
            else:
                outcome = "empty"

            return {"content": content, "tool_calls": tool_calls, "model_steps": 1, "outcome": outcome}

        def route(state: TurnState) -> str:
            return "tools" if state.get("tool_calls") else END

        async def tools_node(state: TurnState) -> dict[str, Any]:
            set_state(ACT)
            results: list[ToolResult] = []

            # Sequential and in emitted order: each tool message must follow its call.
            for call in state.get("tool_calls", []):
                self._renderer.on_tool_start(call)
                try:
                    arguments = call.parse_arguments()
                except ValueError as e:
                    self._log.warning("tool_args_invalid", tool_call_id=call.id, tool=call.name, error=str(e))
                    arguments = {}

                result = await self._dispatcher.execute(
                    call.name, arguments, self._project_root, tool_call_id=call.id
                )
                self._renderer.on_tool_result(call, result)
                self._conversation.add_tool_result(call.id, result.result)
                results.append(result)

            return {"tool_calls": [], "tool_results": results}

        builder = StateGraph(TurnState)
        builder.add_node("model", model_node)
        builder.add_node("tools", tools_node)

        builder.add_edge(START, "model")
        builder.add_conditional_edges("model", route, ["tools", END])
        builder.add_edge("tools", "model")

        return builder.compile()
