"""Per-turn observability context carried through contextvars.

Every log record is stamped with the current snapshot, so nodes and tools
never have to pass trace ids around explicitly.
"""

from __future__ import annotations

from contextvars import ContextVar
from dataclasses import dataclass, replace

# Orchestrator states as they appear in log records.
AWAIT_INPUT = "AWAIT_INPUT"
STREAM = "STREAM"
ACT = "ACT"
IDLE = "IDLE"


@dataclass(frozen=True, slots=True)
class TurnContext:
    trace_id: str | None = None
    session_id: str | None = None
    turn_id: int | None = None
    state: str | None = None
    errors: tuple[str, ...] = ()


_current: ContextVar[TurnContext] = ContextVar("aingel_turn_context", default=TurnContext())


def bind_context(*, trace_id: str, session_id: str, turn_id: int) -> None:
    """Start a new turn; errors from the previous turn are dropped."""

    _current.set(replace(_current.get(), trace_id=trace_id, session_id=session_id, turn_id=turn_id, errors=()))


def set_state(state: str) -> None:
    _current.set(replace(_current.get(), state=state))


def current_state() -> str | None:
    return _current.get().state


def add_error(message: str) -> None:
    ctx = _current.get()
    _current.set(replace(ctx, errors=ctx.errors + (message,)))


def snapshot() -> dict[str, object]:
    ctx = _current.get()
    out: dict[str, object] = {
        k: v
        for k, v in (
            ("trace_id", ctx.trace_id),
            ("session_id", ctx.session_id),
            ("turn_id", ctx.turn_id),
            ("state", ctx.state),
        )
        if v is not None
    }
    if ctx.errors:
        out["errors"] = list(ctx.errors)
    return out
