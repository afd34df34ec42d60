"""`run_command`: confirmed, time-boxed, output-bounded shell execution."""

from __future__ import annotations

import asyncio
import os
import signal
import sys
from pathlib import Path
from typing import Any, Awaitable, Callable

from aingel.observability import get_logger

from .runtime import ToolRejected, require_str

ConfirmCommand = Callable[[str], Awaitable[bool]]

DEFAULT_TIMEOUT_S = 60.0
DEFAULT_MAX_OUTPUT_BYTES = 1024 * 1024
_READ_CHUNK = 64 * 1024


class _OutputLimitExceeded(Exception):
    def __init__(self, stream_name: str) -> None:
        super().__init__(f"{stream_name} maxBuffer length exceeded")


async def always_confirm(command: str) -> bool:
    _ = command
    return True


async def _drain(stream: asyncio.StreamReader, sink: bytearray, *, limit: int, stream_name: str) -> None:
    while True:
        chunk = await stream.read(_READ_CHUNK)
        if not chunk:
            return
        sink.extend(chunk)
        if len(sink) > limit:
            raise _OutputLimitExceeded(stream_name)


def _kill(proc: asyncio.subprocess.Process) -> None:
    """Kill the shell and everything it started.

    The shell may already have exited while background children still hold
    the pipes, so the whole process group is signalled regardless.
    """

    try:
        if sys.platform != "win32":
            # The shell leads its own session; its pid is the group id.
            os.killpg(proc.pid, signal.SIGKILL)
        elif proc.returncode is None:
            proc.kill()
    except ProcessLookupError:
        pass


class CommandRunner:
    """Tool handler for `run_command`.

    The command only runs after `confirm(command)` answers yes.
    """

    def __init__(
        self,
        *,
        confirm: ConfirmCommand,
        timeout_s: float = DEFAULT_TIMEOUT_S,
        max_output_bytes: int = DEFAULT_MAX_OUTPUT_BYTES,
    ) -> None:
        self._confirm = confirm
        self._timeout_s = timeout_s
        self._max_output_bytes = max_output_bytes
        self._log = get_logger(__name__)

    async def __call__(self, arguments: dict[str, Any], root: Path) -> str:
        command = require_str(arguments, "command")
        if not await self._confirm(command):
            self._log.info("command_cancelled", command=command)
            raise ToolRejected("cancelled", "Command cancelled by user")

        proc = await asyncio.create_subprocess_shell(
            command,
            cwd=str(root),
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            start_new_session=sys.platform != "win32",
        )

        stdout_buf = bytearray()
        stderr_buf = bytearray()
        readers = [
            asyncio.ensure_future(_drain(proc.stdout, stdout_buf, limit=self._max_output_bytes, stream_name="stdout")),
            asyncio.ensure_future(_drain(proc.stderr, stderr_buf, limit=self._max_output_bytes, stream_name="stderr")),
        ]
        exited = asyncio.ensure_future(proc.wait())

        failure: str | None = None
        error_type = "command_failed"
        try:
            await asyncio.wait_for(asyncio.gather(*readers, exited), timeout=self._timeout_s)
        except asyncio.TimeoutError:
            failure = f"Command timed out after {self._timeout_s:g}s: {command}"
            error_type = "timeout"
        except _OutputLimitExceeded as e:
            failure = f"{e}: {command}"
            error_type = "output_limit"
        finally:
            if failure is not None or proc.returncode is None:
                _kill(proc)
            for task in (*readers, exited):
                task.cancel()
            await asyncio.gather(*readers, exited, return_exceptions=True)
            await proc.wait()

        stdout = stdout_buf.decode("utf-8", errors="replace")
        stderr = stderr_buf.decode("utf-8", errors="replace")

        if failure is None and proc.returncode != 0:
            failure = f"Command exited with code {proc.returncode}: {command}"

        if failure is not None:
            self._log.info("command_failed", command=command, error_type=error_type, returncode=proc.returncode)
            raise ToolRejected(error_type, f"Command failed: {failure}\n{stderr}")

        output = stdout + (f"\nStderr:\n{stderr}" if stderr else "")
        return output or "Command completed (no output)"
