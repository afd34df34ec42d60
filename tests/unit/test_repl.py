from __future__ import annotations

import asyncio
import io
import threading
from pathlib import Path
from typing import Callable, Iterable

import httpx
import pytest

from aingel.config.model import AppConfig
from aingel.core.errors import TransportError
from aingel.core.types import ContentEvent, ToolCallRecord, ToolCallsEvent, ToolResult
from aingel.llm.client import ChatStreamClient
from aingel.orchestrator import TurnOrchestrator
from aingel.runtime import ConsoleRenderer, Repl, make_console_confirm, run_session, select_model
from aingel.runtime.console import preview, read_line
from aingel.tools import build_dispatcher
from helpers import RecordingConfirm, ScriptedChatClient


def scripted_input(lines: Iterable[str]) -> Callable[[str], str]:
    pending = list(lines)

    def read(prompt: str) -> str:
        if not pending:
            raise EOFError
        return pending.pop(0)

    return read


def _repl(steps: list, project: Path, lines: Iterable[str]) -> tuple[Repl, TurnOrchestrator, io.StringIO]:
    out = io.StringIO()
    client = ScriptedChatClient(steps)
    orch = TurnOrchestrator(
        client=client,
        dispatcher=build_dispatcher(confirm=RecordingConfirm(True)),
        project_root=project,
        renderer=ConsoleRenderer(out=out),
        system_prompt="sys",
    )
    return Repl(orch, client, input_fn=scripted_input(lines), out=out), orch, out


def test_run_loop_handles_turns_and_commands_until_eof(project: Path) -> None:
    repl, orch, out = _repl(
        [[ContentEvent("Hi there!")], [ContentEvent("Second.")]],
        project,
        ["hello", "", "/history", "/model", "again", "/clear", "/history"],
    )

    asyncio.run(repl.run())

    text = out.getvalue()
    assert "  Aingel: Hi there!\n\n" in text
    assert "  Aingel: Second.\n\n" in text
    assert "Messages in history: 3" in text
    assert "Current model: scripted-model" in text
    assert "Conversation cleared." in text
    assert "Messages in history: 1" in text
    assert len(orch.history) == 1


def test_quit_command_stops_the_loop(project: Path) -> None:
    repl, orch, out = _repl([], project, ["/quit", "never sent"])

    asyncio.run(repl.run())

    assert "Goodbye!" in out.getvalue()
    assert len(orch.history) == 1


def test_unknown_and_help_commands(project: Path) -> None:
    repl, _, out = _repl([], project, [])

    assert repl.handle_command("/frobnicate") is True
    assert repl.handle_command("/help") is True
    assert repl.handle_command("/EXIT") is False

    text = out.getvalue()
    assert "Unknown command: frobnicate. Type /help for available commands." in text
    assert "/clear" in text


def test_failed_turn_does_not_end_session(project: Path) -> None:
    repl, orch, out = _repl(
        [TransportError("Chat request failed: 502 Bad Gateway"), [ContentEvent("Back.")]],
        project,
        ["first", "second"],
    )

    asyncio.run(repl.run())

    text = out.getvalue()
    assert "Error: Chat request failed: 502 Bad Gateway" in text
    assert "Aingel: Back." in text
    assert [m.role for m in orch.history] == ["system", "user", "user", "assistant"]


def test_renderer_shows_tool_activity_and_empty_turns(project: Path) -> None:
    (project / "big.txt").write_text("x" * 500, encoding="utf-8")
    repl, _, out = _repl(
        [
            [ToolCallsEvent((ToolCallRecord(id="c1", name="read_file", arguments='{"path": "big.txt"}'),))],
            [],
        ],
        project,
        ["read it"],
    )

    asyncio.run(repl.run())

    text = out.getvalue()
    assert "[Tool: read_file]" in text
    assert "  " + "x" * 200 + "...\n" in text
    assert "(no response)" in text


def test_preview_truncates_long_text() -> None:
    assert preview("abc", 5) == "abc"
    assert preview("abcdef", 3) == "abc..."
    assert preview("abcdef", 0) == "abcdef"


def test_console_renderer_error_line() -> None:
    out = io.StringIO()
    ConsoleRenderer(out=out).on_error(RuntimeError("boom"))
    ConsoleRenderer(out=out).on_tool_result(
        ToolCallRecord(id="c", name="list_files"), ToolResult(success=True, result="a.py\nb.py")
    )
    assert out.getvalue() == "\n  Error: boom\n\n  a.py\n  b.py\n"


def test_console_confirm_answers() -> None:
    async def ask(answer: str) -> bool:
        return await make_console_confirm(lambda prompt: answer)("rm -rf build")

    assert asyncio.run(ask("y")) is True
    assert asyncio.run(ask(" YES ")) is True
    assert asyncio.run(ask("n")) is False
    assert asyncio.run(ask("")) is False

    def eof(prompt: str) -> str:
        raise EOFError

    assert asyncio.run(make_console_confirm(eof)("ls")) is False


def _models_client(handler, *, model: str | None = None) -> ChatStreamClient:
    return ChatStreamClient(base_url="http://llm.test:1234/v1", model=model, transport=httpx.MockTransport(handler))


def test_select_model_picks_first_listed() -> None:
    client = _models_client(
        lambda request: httpx.Response(
            200,
            json={"object": "list", "data": [{"id": "coder", "object": "model", "created": 0, "owned_by": "x"}]},
        )
    )
    out = io.StringIO()

    assert asyncio.run(select_model(client, out=out)) is True
    assert client.model == "coder"
    assert "Connected! Model: coder" in out.getvalue()


def test_select_model_keeps_configured_model() -> None:
    client = _models_client(
        lambda request: httpx.Response(200, json={"object": "list", "data": []}), model="pinned"
    )
    assert asyncio.run(select_model(client, out=io.StringIO())) is True
    assert client.model == "pinned"


def test_select_model_reports_failures() -> None:
    out = io.StringIO()
    down = _models_client(lambda request: httpx.Response(500, json={"error": "x"}))
    assert asyncio.run(select_model(down, out=out)) is False
    assert "Failed to connect" in out.getvalue()

    out = io.StringIO()
    empty = _models_client(lambda request: httpx.Response(200, json={"object": "list", "data": []}))
    assert asyncio.run(select_model(empty, out=out)) is False
    assert "No models found" in out.getvalue()


def test_run_session_rejects_missing_folder(tmp_path: Path) -> None:
    out = io.StringIO()
    code = asyncio.run(run_session(AppConfig(), tmp_path / "missing", out=out))
    assert code == 1
    assert "Folder not found" in out.getvalue()


def test_read_line_uses_a_daemon_thread() -> None:
    seen: list[bool] = []

    def answer(prompt: str) -> str:
        seen.append(threading.current_thread().daemon)
        return prompt.upper()

    assert asyncio.run(read_line(answer, "hi")) == "HI"
    assert seen == [True]

    def eof(prompt: str) -> str:
        raise EOFError

    with pytest.raises(EOFError):
        asyncio.run(read_line(eof, "> "))
