"""
ffmpeg transcoding engine and its process-wide, lazily loaded handle.

The engine owns a single working-storage directory. Every job stages its
inputs there under fixed names, so jobs must run one at a time; callers
serialise on ``engine.job_lock``.
"""

from __future__ import annotations

import asyncio
import logging
import os
import re
import shutil
import uuid
from enum import Enum
from pathlib import Path
from typing import Callable, Protocol, Sequence

from ..config import settings
from ..errors import EngineInitError, StagingError, TranscodeError
from ..utils.subprocess_runner import CommandTimeoutError, run_command

logger = logging.getLogger("uvicorn.error")

_TIME_MARKER_RE = re.compile(r"time=\s*(\d+):(\d{2}):(\d{2}(?:\.\d+)?)")
_LOG_TAIL_LINES = 20


class EngineState(str, Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"
    FAILED = "failed"


class TranscodeEngine(Protocol):
    """What the job runner needs from a transcoding engine."""

    job_lock: asyncio.Lock

    async def load(self) -> None: ...

    def write_file(self, name: str, data: bytes | Path) -> None: ...

    def read_file(self, name: str) -> bytes: ...

    def delete_file(self, name: str) -> None: ...

    def list_files(self) -> list[str]: ...

    async def run(
        self,
        args: Sequence[str],
        *,
        on_time: Callable[[float], None] | None = None,
    ) -> None: ...


def parse_time_marker(line: str) -> float | None:
    """Elapsed output time (seconds) from an ffmpeg progress line, if present."""
    match = _TIME_MARKER_RE.search(line)
    if not match:
        return None
    hours, minutes, seconds = match.groups()
    return int(hours) * 3600 + int(minutes) * 60 + float(seconds)


class FFmpegEngine:
    """ffmpeg binary plus a private working directory used as its file namespace."""

    def __init__(
        self,
        binary: str = "ffmpeg",
        work_root: Path | None = None,
        timeout_seconds: float | None = None,
    ):
        self.binary = binary
        self.work_root = work_root or settings.work_dir
        self.timeout_seconds = timeout_seconds
        self.working_dir: Path | None = None
        self.job_lock = asyncio.Lock()

    async def load(self) -> None:
        """Check the binary answers and create the working directory."""
        if shutil.which(self.binary) is None and not Path(self.binary).is_file():
            raise EngineInitError(f"ffmpeg binary not found: {self.binary}")

        try:
            result = await run_command([self.binary, "-hide_banner", "-version"], timeout_seconds=30)
        except (OSError, CommandTimeoutError) as exc:
            raise EngineInitError(f"Could not start ffmpeg: {exc}") from exc
        if result.returncode != 0:
            raise EngineInitError(
                f"ffmpeg -version failed: {result.stderr.decode(errors='replace').strip()}"
            )

        working_dir = self.work_root / f"engine-{os.getpid()}-{uuid.uuid4().hex[:8]}"
        working_dir.mkdir(parents=True, exist_ok=True)
        self.working_dir = working_dir
        version_line = result.stdout.decode(errors="replace").splitlines()[:1]
        logger.info("Transcoding engine ready (%s) in %s", " ".join(version_line), working_dir)

    def _path(self, name: str) -> Path:
        if self.working_dir is None:
            raise EngineInitError("Transcoding engine is not loaded")
        if not name or "/" in name or "\\" in name or name in {".", ".."}:
            raise StagingError(f"Invalid working-storage name: {name!r}")
        return self.working_dir / name

    def write_file(self, name: str, data: bytes | Path) -> None:
        destination = self._path(name)
        if isinstance(data, Path):
            shutil.copyfile(data, destination)
        else:
            destination.write_bytes(data)

    def read_file(self, name: str) -> bytes:
        return self._path(name).read_bytes()

    def delete_file(self, name: str) -> None:
        self._path(name).unlink()

    def list_files(self) -> list[str]:
        if self.working_dir is None or not self.working_dir.exists():
            return []
        return sorted(p.name for p in self.working_dir.iterdir())

    async def run(
        self,
        args: Sequence[str],
        *,
        on_time: Callable[[float], None] | None = None,
    ) -> None:
        """Run ffmpeg inside the working directory; raise TranscodeError on failure."""
        if self.working_dir is None:
            raise EngineInitError("Transcoding engine is not loaded")

        def handle_line(line: str) -> None:
            if on_time is None:
                return
            elapsed = parse_time_marker(line)
            if elapsed is not None:
                on_time(elapsed)

        try:
            result = await run_command(
                [self.binary, *args],
                cwd=self.working_dir,
                timeout_seconds=self.timeout_seconds,
                on_stderr_line=handle_line,
            )
        except CommandTimeoutError as exc:
            raise TranscodeError(str(exc)) from exc
        except OSError as exc:
            raise TranscodeError(f"Could not start ffmpeg: {exc}") from exc

        if result.returncode != 0:
            log_tail = "\n".join(
                result.stderr.decode(errors="replace").strip().splitlines()[-_LOG_TAIL_LINES:]
            )
            raise TranscodeError(
                f"ffmpeg exited with code {result.returncode}",
                returncode=result.returncode,
                log_tail=log_tail,
            )

    def dispose(self) -> None:
        if self.working_dir is not None and self.working_dir.exists():
            shutil.rmtree(self.working_dir, ignore_errors=True)
        self.working_dir = None


class EngineProvider:
    """
    Lazily loads one shared engine.

    Concurrent callers of ``get()`` await the same in-flight load. A failed
    load clears the memo, so the next call starts over; a loaded engine is
    reused for every later job.
    """

    def __init__(self, factory: Callable[[], TranscodeEngine]):
        self._factory = factory
        self._engine: TranscodeEngine | None = None
        self._pending: asyncio.Future | None = None
        self.state = EngineState.UNINITIALIZED

    async def get(self) -> TranscodeEngine:
        if self.state is EngineState.READY and self._engine is not None:
            return self._engine

        if self._pending is None:
            self.state = EngineState.INITIALIZING
            self._pending = asyncio.ensure_future(self._initialize())

        # Shielded: one impatient caller must not cancel the shared load
        return await asyncio.shield(self._pending)

    async def _initialize(self) -> TranscodeEngine:
        engine = self._factory()
        try:
            await engine.load()
        except Exception as exc:
            self.state = EngineState.FAILED
            self._engine = None
            self._pending = None
            logger.error("Transcoding engine failed to load: %s", exc)
            if isinstance(exc, EngineInitError):
                raise
            raise EngineInitError(f"Transcoding engine failed to load: {exc}") from exc

        self._engine = engine
        self.state = EngineState.READY
        self._pending = None
        return engine

    def shutdown(self) -> None:
        """Forget the engine and remove its working storage."""
        engine = self._engine
        self._engine = None
        self._pending = None
        self.state = EngineState.UNINITIALIZED
        dispose = getattr(engine, "dispose", None)
        if dispose is not None:
            dispose()


engine_provider = EngineProvider(
    lambda: FFmpegEngine(
        settings.ffmpeg_binary,
        settings.work_dir,
        timeout_seconds=settings.transcode_timeout,
    )
)
