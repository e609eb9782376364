"""Async subprocess helpers with timeout and cancellation-safe cleanup."""

from __future__ import annotations

import asyncio
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Sequence

_LINE_SPLIT_RE = re.compile(rb"[\r\n]")
_READ_CHUNK_SIZE = 4096


@dataclass
class CommandResult:
    """Result of a subprocess execution."""

    returncode: int
    stdout: bytes
    stderr: bytes


class CommandTimeoutError(RuntimeError):
    """Raised when a subprocess exceeds the configured timeout."""


async def terminate_process(
    process: asyncio.subprocess.Process,
    *,
    terminate_grace_seconds: float = 3.0,
) -> None:
    """Terminate a subprocess and escalate to kill if needed."""
    if process.returncode is not None:
        return

    try:
        process.terminate()
    except ProcessLookupError:
        return

    try:
        await asyncio.wait_for(process.wait(), timeout=terminate_grace_seconds)
        return
    except (asyncio.TimeoutError, ProcessLookupError):
        pass

    try:
        process.kill()
    except ProcessLookupError:
        return

    try:
        await process.wait()
    except ProcessLookupError:
        pass


async def _read_stream_lines(
    stream: asyncio.StreamReader,
    on_line: Callable[[str], None],
) -> bytes:
    """Read a stream to EOF, calling on_line for each \\r- or \\n-terminated line."""
    collected = bytearray()
    pending = b""
    while True:
        chunk = await stream.read(_READ_CHUNK_SIZE)
        if not chunk:
            break
        collected.extend(chunk)
        parts = _LINE_SPLIT_RE.split(pending + chunk)
        pending = parts.pop()
        for part in parts:
            if part:
                on_line(part.decode("utf-8", errors="replace"))
    if pending:
        on_line(pending.decode("utf-8", errors="replace"))
    return bytes(collected)


async def _communicate_streaming(
    process: asyncio.subprocess.Process,
    on_stderr_line: Callable[[str], None],
) -> tuple[bytes, bytes]:
    stdout, stderr = await asyncio.gather(
        process.stdout.read(),
        _read_stream_lines(process.stderr, on_stderr_line),
    )
    await process.wait()
    return stdout, stderr


async def run_command(
    cmd: Sequence[str],
    *,
    cwd: str | Path | None = None,
    timeout_seconds: float | None = None,
    on_stderr_line: Callable[[str], None] | None = None,
) -> CommandResult:
    """Run a command and capture both stdout/stderr safely.

    When on_stderr_line is given, stderr is also delivered line by line while
    the command runs (ffmpeg writes its progress there).
    """
    process = await asyncio.create_subprocess_exec(
        *cmd,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
        cwd=str(cwd) if cwd is not None else None,
    )

    try:
        if on_stderr_line is None:
            communicate_task = process.communicate()
        else:
            communicate_task = _communicate_streaming(process, on_stderr_line)
        if timeout_seconds is None:
            stdout, stderr = await communicate_task
        else:
            stdout, stderr = await asyncio.wait_for(communicate_task, timeout=timeout_seconds)
        return CommandResult(returncode=process.returncode or 0, stdout=stdout, stderr=stderr)
    except asyncio.TimeoutError as exc:
        await terminate_process(process)
        raise CommandTimeoutError(
            f"Command timed out after {timeout_seconds:.1f}s: {' '.join(cmd)}"
        ) from exc
    except asyncio.CancelledError:
        await terminate_process(process)
        raise
