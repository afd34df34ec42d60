"""Console I/O: streaming renderer and the run_command confirmation prompt."""

from __future__ import annotations

import asyncio
import sys
import threading
from typing import Callable, TextIO

from aingel.core.types import ToolCallRecord, ToolResult
from aingel.tools.shell import ConfirmCommand

InputFn = Callable[[str], str]


def preview(text: str, limit: int) -> str:
    if limit > 0 and len(text) > limit:
        return text[:limit] + "..."
    return text


class ConsoleRenderer:
    """Writes model output to a text stream as it arrives."""

    def __init__(self, *, out: TextIO | None = None, preview_chars: int = 200) -> None:
        self._out = out or sys.stdout
        self._preview_chars = preview_chars

    def _write(self, text: str) -> None:
        self._out.write(text)
        self._out.flush()

    def on_model_start(self) -> None:
        self._write("\n  Aingel: ")

    def on_content(self, text: str) -> None:
        self._write(text)

    def on_model_end(self, *, content: str, tool_calls: int) -> None:
        if tool_calls:
            self._write("\n")
        elif content:
            self._write("\n\n")

    def on_tool_start(self, call: ToolCallRecord) -> None:
        self._write(f"\n  [Tool: {call.name}]\n")

    def on_tool_result(self, call: ToolCallRecord, result: ToolResult) -> None:
        shown = preview(result.result, self._preview_chars).replace("\n", "\n  ")
        self._write(f"  {shown}\n")

    def on_empty(self) -> None:
        self._write("(no response)\n\n")

    def on_error(self, error: Exception) -> None:
        self._write(f"\n  Error: {error}\n\n")


async def read_line(input_fn: InputFn, prompt: str) -> str:
    """Await one blocking console read.

    The read runs on a daemon thread, so a prompt nobody answers never holds
    up interpreter shutdown after Ctrl-C.
    """

    loop = asyncio.get_running_loop()
    future: asyncio.Future[str] = loop.create_future()

    def settle(line: str | None, error: Exception | None) -> None:
        if future.done():
            return
        if error is not None:
            future.set_exception(error)
        else:
            future.set_result(line or "")

    def worker() -> None:
        try:
            line, error = input_fn(prompt), None
        except Exception as e:  # noqa: BLE001
            line, error = None, e
        if not loop.is_closed():
            loop.call_soon_threadsafe(settle, line, error)

    threading.Thread(target=worker, name="aingel-input", daemon=True).start()
    return await future


def make_console_confirm(input_fn: InputFn = input) -> ConfirmCommand:
    """Build a confirmation capability that asks on the console."""

    async def confirm(command: str) -> bool:
        try:
            answer = await read_line(input_fn, f"\n  Execute command: {command}\n  Confirm? (y/n): ")
        except EOFError:
            return False
        return answer.strip().lower() in {"y", "yes"}

    return confirm
