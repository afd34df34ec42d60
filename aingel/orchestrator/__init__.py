"""Turn orchestration (model <-> tools loop) and conversation history."""

from __future__ import annotations

from .conversation import Conversation, build_system_prompt
from .graph_orchestrator import TurnOrchestrator, TurnOutput
from .render import NullRenderer, TurnRenderer

__all__ = [
    "Conversation",
    "NullRenderer",
    "TurnOrchestrator",
    "TurnOutput",
    "TurnRenderer",
    "build_system_prompt",
]
