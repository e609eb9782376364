"""Tests for the ffmpeg engine helpers and the single-flight engine provider."""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from clipcraft.errors import EngineInitError, StagingError
from clipcraft.services.transcode_engine import (
    EngineProvider,
    EngineState,
    FFmpegEngine,
    parse_time_marker,
)


class _CountingEngine:
    def __init__(self, *, fail: bool = False) -> None:
        self.fail = fail
        self.job_lock = asyncio.Lock()

    async def load(self) -> None:
        await asyncio.sleep(0.01)
        if self.fail:
            raise RuntimeError("ffmpeg -version failed")


def test_concurrent_get_calls_share_one_load() -> None:
    """Five callers during initialisation trigger a single load."""
    created: list[_CountingEngine] = []

    def factory() -> _CountingEngine:
        engine = _CountingEngine()
        created.append(engine)
        return engine

    provider = EngineProvider(factory)

    async def scenario():
        return await asyncio.gather(*(provider.get() for _ in range(5)))

    engines = asyncio.run(scenario())

    assert len(created) == 1
    assert all(engine is created[0] for engine in engines)
    assert provider.state is EngineState.READY


def test_ready_engine_is_reused() -> None:
    """Later calls return the memoised engine without loading again."""
    calls = 0

    def factory() -> _CountingEngine:
        nonlocal calls
        calls += 1
        return _CountingEngine()

    provider = EngineProvider(factory)

    async def scenario():
        first = await provider.get()
        second = await provider.get()
        return first, second

    first, second = asyncio.run(scenario())

    assert first is second
    assert calls == 1


def test_failed_load_is_reported_and_retried_on_next_call() -> None:
    """A failure reaches every waiter, then the next get() starts over."""
    attempts: list[_CountingEngine] = []

    def factory() -> _CountingEngine:
        engine = _CountingEngine(fail=not attempts)
        attempts.append(engine)
        return engine

    provider = EngineProvider(factory)

    async def scenario():
        results = await asyncio.gather(provider.get(), provider.get(), return_exceptions=True)
        state_after_failure = provider.state
        engine = await provider.get()
        return results, state_after_failure, engine

    results, state_after_failure, engine = asyncio.run(scenario())

    assert all(isinstance(result, EngineInitError) for result in results)
    assert state_after_failure is EngineState.FAILED
    assert engine is attempts[1]
    assert provider.state is EngineState.READY


def test_parse_time_marker_reads_ffmpeg_progress() -> None:
    """time=HH:MM:SS.xx in a stats line becomes seconds."""
    line = "frame=  240 fps=60 q=28.0 size=512kB time=00:01:02.50 bitrate=67.1kbits/s speed=2x"

    assert parse_time_marker(line) == pytest.approx(62.5)
    assert parse_time_marker("Press [q] to stop") is None


def test_engine_storage_is_scoped_to_its_working_dir(tmp_path: Path) -> None:
    """Files round-trip by name and names cannot escape the directory."""
    engine = FFmpegEngine(work_root=tmp_path)
    engine.working_dir = tmp_path / "engine"
    engine.working_dir.mkdir()

    engine.write_file("subtitles.srt", b"1\n")
    assert engine.read_file("subtitles.srt") == b"1\n"
    assert engine.list_files() == ["subtitles.srt"]
    engine.delete_file("subtitles.srt")
    assert engine.list_files() == []

    with pytest.raises(StagingError):
        engine.write_file("../escape.txt", b"x")


def test_unloaded_engine_refuses_file_access(tmp_path: Path) -> None:
    """Using storage before load() is an initialisation error."""
    engine = FFmpegEngine(work_root=tmp_path)

    with pytest.raises(EngineInitError):
        engine.read_file("output.mp4")


def test_missing_binary_fails_to_load(tmp_path: Path) -> None:
    """A binary that is not installed surfaces as EngineInitError."""
    provider = EngineProvider(lambda: FFmpegEngine("definitely-not-ffmpeg-xyz", tmp_path))

    with pytest.raises(EngineInitError):
        asyncio.run(provider.get())
    assert provider.state is EngineState.FAILED
