from __future__ import annotations

import argparse
import asyncio
import sys
from dataclasses import replace
from pathlib import Path

from aingel.config import load_config
from aingel.config.model import AppConfig
from aingel.observability.logging import configure_logging, get_logger
from aingel.runtime.lifecycle import run_session

from .errors import ConfigError


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="aingel", description="Aingel - local LLM code assistant")
    p.add_argument("folder", nargs="?", default=None, help="project folder (default: current directory)")
    p.add_argument("--config", default=None, help="YAML config path (default: configs/app.yaml if present)")
    p.add_argument("--host", default=None, help="LLM server host")
    p.add_argument("--port", type=int, default=None, help="LLM server port")
    p.add_argument("--model", default=None, help="model id (default: first model the server lists)")
    p.add_argument("--log-level", default="WARNING", help="log level")
    p.add_argument("-y", "--yes", action="store_true", help="run commands without asking for confirmation")
    return p


def _apply_overrides(cfg: AppConfig, args: argparse.Namespace) -> AppConfig:
    llm = cfg.llm
    if args.host:
        llm = replace(llm, host=args.host)
    if args.port is not None:
        llm = replace(llm, port=args.port)
    if args.model:
        llm = replace(llm, model=args.model)
    return replace(cfg, llm=llm)


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    configure_logging(level=args.log_level)
    log = get_logger("aingel.cli")

    try:
        cfg = _apply_overrides(load_config(args.config), args)
    except ConfigError as e:
        print(f"  Config error: {e}", file=sys.stderr)
        return 2

    project_root = Path(args.folder).expanduser().resolve() if args.folder else Path.cwd()
    log.info("cli_start", base_url=cfg.llm.base_url, project_root=str(project_root))

    try:
        return asyncio.run(run_session(cfg, project_root, auto_approve=args.yes))
    except KeyboardInterrupt:
        print("\n  Goodbye!")
        return 130
