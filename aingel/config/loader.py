"""Configuration loader (YAML-first + strict env expansion).

- YAML is the primary source of truth.
- Environment variables are for secrets and machine-specific overrides.

Env expansion syntax:
  - `${ENV_VAR}` inside YAML string values.
  - Expansion is strict: missing or empty env values raise ConfigError.

A `.env` file in the working directory is loaded automatically when present.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

import yaml
from dotenv import load_dotenv

from aingel.core.errors import ConfigError

from .model import AppConfig

DEFAULT_CONFIG_PATH = Path("configs/app.yaml")

_ENV_PLACEHOLDER_RE = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")


@dataclass(frozen=True, slots=True)
class _UnresolvedEnvRef:
    var_name: str
    key_path: str
    reason: str  # "missing" | "empty"


def _load_yaml(path: Path) -> Any:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    return yaml.safe_load(text)


def _expand_env_in_obj(obj: Any, *, key_path: str, unresolved: list[_UnresolvedEnvRef]) -> Any:
    if isinstance(obj, str):

        def repl(match: re.Match[str]) -> str:
            name = match.group(1)
            value = os.getenv(name)
            if value is None or value == "":
                unresolved.append(
                    _UnresolvedEnvRef(var_name=name, key_path=key_path, reason="missing" if value is None else "empty")
                )
                return match.group(0)
            return value

        return _ENV_PLACEHOLDER_RE.sub(repl, obj)

    if isinstance(obj, Mapping):
        return {
            str(k): _expand_env_in_obj(v, key_path=f"{key_path}.{k}" if key_path else str(k), unresolved=unresolved)
            for k, v in obj.items()
        }

    if isinstance(obj, list):
        return [
            _expand_env_in_obj(v, key_path=f"{key_path}[{i}]", unresolved=unresolved) for i, v in enumerate(obj)
        ]

    return obj


def load_raw_config(path: Path, *, required: bool = True, load_dotenv_file: bool = True) -> dict[str, Any]:
    """Read one YAML file and expand ${ENV_VAR} placeholders.

    When `required` is false a missing file yields an empty mapping so the
    built-in defaults apply.

    Raises:
        ConfigError: If the file is missing (and required), YAML is invalid,
            or env expansion is unresolved.
    """

    if load_dotenv_file:
        load_dotenv(Path.cwd() / ".env", override=False)

    if not path.exists():
        if required:
            raise ConfigError("config file does not exist", path=str(path))
        return {}

    try:
        raw = _load_yaml(path)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Failed to read YAML config: {e}", path=str(path)) from e

    if raw is None:
        raw = {}
    if not isinstance(raw, Mapping):
        raise ConfigError("Top-level YAML must be a mapping", path=str(path))

    unresolved: list[_UnresolvedEnvRef] = []
    expanded = _expand_env_in_obj(raw, key_path="", unresolved=unresolved)

    if unresolved:
        lines = ["Unresolved environment variables in config:"]
        for ref in unresolved:
            lines.append(f"- {ref.var_name} ({ref.reason}) at {ref.key_path or '<root>'}")
        raise ConfigError("\n".join(lines), path=str(path))

    return expanded


def _apply_env_overrides(raw: dict[str, Any]) -> dict[str, Any]:
    llm = raw.get("llm")
    if llm is None:
        llm = {}
    if not isinstance(llm, Mapping):
        raise ConfigError("must be a mapping", path="llm")
    llm = dict(llm)

    host = os.getenv("LLM_HOST")
    if host:
        llm["host"] = host
    port = os.getenv("LLM_PORT")
    if port:
        try:
            llm["port"] = int(port)
        except ValueError as e:
            raise ConfigError(f"LLM_PORT must be an integer, got {port!r}", path="llm.port") from e

    return {**raw, "llm": llm}


def load_config(path: str | Path | None = None, *, load_dotenv_file: bool = True) -> AppConfig:
    """Load the application config: YAML, then LLM_HOST/LLM_PORT overrides.

    Without an explicit `path`, `configs/app.yaml` is used when it exists.
    """

    config_path = Path(path) if path is not None else DEFAULT_CONFIG_PATH
    raw = load_raw_config(config_path, required=path is not None, load_dotenv_file=load_dotenv_file)
    return AppConfig.from_mapping(_apply_env_overrides(raw))
