from __future__ import annotations

import sys
from typing import TextIO

from aingel.llm.client import ChatStreamClient
from aingel.observability import get_logger, set_state
from aingel.observability.context import AWAIT_INPUT
from aingel.orchestrator.graph_orchestrator import TurnOrchestrator

from .console import InputFn, read_line

HELP_TEXT = """
  Available commands:
    /quit, /exit, /q  - Exit Aingel
    /clear            - Clear conversation history
    /model            - Show current model
    /history          - Show message count
    /help             - Show this help
"""


class Repl:
    """Read a line, run a turn, repeat."""

    def __init__(
        self,
        orchestrator: TurnOrchestrator,
        client: ChatStreamClient,
        *,
        input_fn: InputFn = input,
        out: TextIO | None = None,
    ) -> None:
        self._orchestrator = orchestrator
        self._client = client
        self._input = input_fn
        self._out = out or sys.stdout
        self._log = get_logger("aingel.repl")

    def _print(self, text: str) -> None:
        self._out.write(text + "\n")
        self._out.flush()

    async def run(self) -> None:
        self._print("\n  Ready! Type your message or /help for commands.\n")
        while True:
            set_state(AWAIT_INPUT)
            try:
                line = await read_line(self._input, "  You: ")
            except EOFError:
                self._print("")
                break

            text = line.strip()
            if not text:
                continue

            if text.startswith("/"):
                if not self.handle_command(text):
                    break
                continue

            try:
                await self._orchestrator.run_turn(text)
            except Exception as e:  # noqa: BLE001
                self._log.exception("repl_turn_crashed")
                self._print(f"\n  Error: {e}\n")

    def handle_command(self, command: str) -> bool:
        """Run a slash command; return False when the session should end."""

        parts = command[1:].split()
        cmd = parts[0].lower() if parts else ""

        if cmd in {"quit", "exit", "q"}:
            self._print("\n  Goodbye!\n")
            return False
        if cmd == "clear":
            self._orchestrator.reset()
            self._print("  Conversation cleared.\n")
        elif cmd == "model":
            self._print(f"  Current model: {self._client.model}\n")
        elif cmd == "history":
            self._print(f"  Messages in history: {len(self._orchestrator.history)}\n")
        elif cmd == "help":
            self._print(HELP_TEXT)
        else:
            self._print(f"  Unknown command: {cmd}. Type /help for available commands.\n")
        return True
