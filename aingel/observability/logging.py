"""Structured JSON logging.

Every record carries the observability context snapshot
(trace_id/session_id/turn_id/state/errors) plus any keyword fields passed to
`KVLogger`. Output goes to stderr so it never interleaves with rendered model
text on stdout.
"""

from __future__ import annotations

import json
import logging
import sys
from typing import Any, MutableMapping

from .context import snapshot

# Attributes every LogRecord has; anything else on a record is a caller field.
_RECORD_ATTRS = frozenset(logging.makeLogRecord({}).__dict__) | {"message", "asctime"}

# Keywords the stdlib logger understands itself.
_LOGGING_KWARGS = frozenset({"exc_info", "stack_info", "stacklevel", "extra"})


def _jsonable(value: Any) -> Any:
    try:
        json.dumps(value)
    except (TypeError, ValueError):
        return repr(value)
    return value


class JsonFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:  # noqa: A003
        payload: dict[str, Any] = {
            "ts": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **snapshot(),
        }
        payload.update(
            (k, _jsonable(v)) for k, v in record.__dict__.items() if k not in _RECORD_ATTRS and not k.startswith("_")
        )
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


class KVLogger(logging.LoggerAdapter):
    """Logger adapter that turns keyword arguments into structured fields.

        log.info("tool_ok", tool="read_file", latency_ms=3.2)
    """

    def __init__(self, logger: logging.Logger) -> None:
        super().__init__(logger, {})

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> tuple[Any, MutableMapping[str, Any]]:
        fields = {k: kwargs.pop(k) for k in list(kwargs) if k not in _LOGGING_KWARGS}
        extra = dict(kwargs.get("extra") or {})
        extra.update(fields)
        kwargs["extra"] = extra
        return msg, kwargs


_configured = False


def configure_logging(level: str = "WARNING", *, force: bool = False) -> None:
    """Install the JSON stderr handler on the root logger (idempotent)."""

    global _configured
    root = logging.getLogger()
    root.setLevel(level.upper())
    if _configured and not force:
        return

    handler = logging.StreamHandler(stream=sys.stderr)
    handler.setFormatter(JsonFormatter())
    root.handlers.clear()
    root.addHandler(handler)
    _configured = True


def get_logger(name: str = "aingel") -> KVLogger:
    return KVLogger(logging.getLogger(name))
