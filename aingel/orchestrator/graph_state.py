from __future__ import annotations

import operator
from typing import Annotated
from typing_extensions import TypedDict

from aingel.core.types import ToolCallRecord, ToolResult


class TurnState(TypedDict, total=False):
    """Transient per-turn state.

    The message history itself lives on the orchestrator, never in here.
    """

    # Latest model step
    content: str
    tool_calls: list[ToolCallRecord]

    # Accumulated over the whole turn
    model_steps: Annotated[int, operator.add]
    tool_results: Annotated[list[ToolResult], operator.add]

    # "tool_calls" | "content" | "empty"
    outcome: str
