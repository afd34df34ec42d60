"""Interactive runtime: console rendering, confirmation prompt, REPL, startup."""

from __future__ import annotations

from .console import ConsoleRenderer, make_console_confirm
from .lifecycle import run_session, select_model
from .repl import Repl

__all__ = ["ConsoleRenderer", "Repl", "make_console_confirm", "run_session", "select_model"]
