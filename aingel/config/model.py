from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

from pydantic import SecretStr

from aingel.core.errors import ConfigError


def _section(raw: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = raw.get(key)
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ConfigError("must be a mapping", path=key)
    return value


def _as_int(value: Any, *, path: str) -> int:
    if isinstance(value, bool):
        raise ConfigError("must be an integer", path=path)
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"must be an integer, got {value!r}", path=path) from e


def _as_float(value: Any, *, path: str) -> float:
    if isinstance(value, bool):
        raise ConfigError("must be a number", path=path)
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"must be a number, got {value!r}", path=path) from e


def _as_bool(value: Any, *, path: str) -> bool:
    if not isinstance(value, bool):
        raise ConfigError(f"must be true or false, got {value!r}", path=path)
    return value


def _as_optional_str(value: Any, *, path: str) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ConfigError("must be a string", path=path)
    return value.strip() or None


@dataclass(frozen=True)
class LlmConfig:
    host: str = "localhost"
    port: int = 1234
    # LM Studio ignores the key, but the OpenAI SDK insists on one.
    api_key: SecretStr = field(default_factory=lambda: SecretStr("lm-studio"))
    model: str | None = None
    timeout_s: float = 300.0

    @property
    def base_url(self) -> str:
        return f"http://{self.host}:{self.port}/v1"


@dataclass(frozen=True)
class ToolsConfig:
    enabled: bool = True
    whitelist: list[str] = field(default_factory=list)
    command_timeout_s: float = 60.0
    max_output_bytes: int = 1024 * 1024
    auto_approve: bool = False
    preview_chars: int = 200


@dataclass(frozen=True)
class SessionConfig:
    system_prompt: str | None = None


@dataclass(frozen=True)
class AppConfig:
    llm: LlmConfig = field(default_factory=LlmConfig)
    tools: ToolsConfig = field(default_factory=ToolsConfig)
    session: SessionConfig = field(default_factory=SessionConfig)

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> "AppConfig":
        llm_raw = _section(raw, "llm")
        host = llm_raw.get("host", LlmConfig.host)
        if not isinstance(host, str) or not host.strip():
            raise ConfigError("must be a non-empty string", path="llm.host")

        port = _as_int(llm_raw.get("port", LlmConfig.port), path="llm.port")
        if not 0 < port < 65536:
            raise ConfigError(f"must be a valid TCP port, got {port}", path="llm.port")

        api_key = _as_optional_str(llm_raw.get("api_key"), path="llm.api_key")

        llm = LlmConfig(
            host=host.strip(),
            port=port,
            api_key=SecretStr(api_key) if api_key else SecretStr("lm-studio"),
            model=_as_optional_str(llm_raw.get("model"), path="llm.model"),
            timeout_s=_as_float(llm_raw.get("timeout_s", LlmConfig.timeout_s), path="llm.timeout_s"),
        )

        tools_raw = _section(raw, "tools")
        whitelist = tools_raw.get("whitelist", [])
        if whitelist is None:
            whitelist = []
        if not isinstance(whitelist, list) or not all(isinstance(x, str) for x in whitelist):
            raise ConfigError("must be a list of strings", path="tools.whitelist")

        tools = ToolsConfig(
            enabled=_as_bool(tools_raw.get("enabled", ToolsConfig.enabled), path="tools.enabled"),
            whitelist=list(whitelist),
            command_timeout_s=_as_float(
                tools_raw.get("command_timeout_s", ToolsConfig.command_timeout_s), path="tools.command_timeout_s"
            ),
            max_output_bytes=_as_int(
                tools_raw.get("max_output_bytes", ToolsConfig.max_output_bytes), path="tools.max_output_bytes"
            ),
            auto_approve=_as_bool(tools_raw.get("auto_approve", ToolsConfig.auto_approve), path="tools.auto_approve"),
            preview_chars=_as_int(tools_raw.get("preview_chars", ToolsConfig.preview_chars), path="tools.preview_chars"),
        )
        if tools.command_timeout_s <= 0:
            raise ConfigError("must be > 0", path="tools.command_timeout_s")
        if tools.max_output_bytes < 1:
            raise ConfigError("must be >= 1", path="tools.max_output_bytes")

        session_raw = _section(raw, "session")
        session = SessionConfig(
            system_prompt=_as_optional_str(session_raw.get("system_prompt"), path="session.system_prompt"),
        )

        return cls(llm=llm, tools=tools, session=session)
