"""Session assembly and startup.

Wires configuration, the chat client, the tool dispatcher and the
orchestrator together, then hands control to the REPL.
"""

from __future__ import annotations

import sys
from dataclasses import replace
from pathlib import Path
from typing import TextIO

from aingel.config.model import AppConfig
from aingel.core.errors import TransportError
from aingel.llm.client import ChatStreamClient
from aingel.observability import get_logger
from aingel.orchestrator.graph_orchestrator import TurnOrchestrator
from aingel.tools import build_dispatcher, get_tool_definitions

from .console import ConsoleRenderer, InputFn, make_console_confirm
from .repl import Repl


async def select_model(client: ChatStreamClient, *, out: TextIO) -> bool:
    """Check the server and make sure a model is set (first listed by default)."""

    out.write(f"  Connecting to {client.base_url} ...\n")
    try:
        models = await client.list_models()
    except TransportError as e:
        out.write(f"\n  Failed to connect: {e}\n")
        out.write("  Make sure the server is running and reachable.\n")
        return False

    if client.model is None:
        if not models:
            out.write("\n  No models found. Load a model before starting Aingel.\n")
            return False
        client.set_model(models[0])

    out.write(f"  Connected! Model: {client.model}\n")
    return True


async def run_session(
    cfg: AppConfig,
    project_root: Path,
    *,
    auto_approve: bool = False,
    input_fn: InputFn = input,
    out: TextIO | None = None,
) -> int:
    out = out or sys.stdout
    log = get_logger("aingel.lifecycle")

    if not project_root.is_dir():
        out.write(f"\n  Folder not found: {project_root}\n")
        return 1

    client = ChatStreamClient.from_config(cfg.llm)
    if not await select_model(client, out=out):
        return 1

    tools_cfg = replace(cfg.tools, auto_approve=True) if auto_approve else cfg.tools
    dispatcher = build_dispatcher(confirm=make_console_confirm(input_fn), tools_cfg=tools_cfg)
    orchestrator = TurnOrchestrator(
        client=client,
        dispatcher=dispatcher,
        project_root=project_root,
        tools=get_tool_definitions(dispatcher.names),
        renderer=ConsoleRenderer(out=out, preview_chars=tools_cfg.preview_chars),
        system_prompt=cfg.session.system_prompt,
    )

    out.write(f"  Working directory: {project_root}\n")
    log.info("session_start", project_root=str(project_root), model=client.model, tools=dispatcher.names)

    await Repl(orchestrator, client, input_fn=input_fn, out=out).run()
    return 0
