"""Runs one render plan on the shared engine: stage, execute, extract, clean up."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable

from ..errors import StagingError
from .render_plan import RenderPlan
from .transcode_engine import EngineProvider, TranscodeEngine, engine_provider

logger = logging.getLogger("uvicorn.error")


class TranscodeJobState(str, Enum):
    IDLE = "idle"
    STAGING_INPUTS = "staging_inputs"
    EXECUTING = "executing"
    EXTRACTING = "extracting"
    CLEANING_UP = "cleaning_up"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass
class TranscodeJob:
    plan: RenderPlan
    label: str = "clip"
    state: TranscodeJobState = TranscodeJobState.IDLE
    history: list[TranscodeJobState] = field(default_factory=list)
    staged_names: list[str] = field(default_factory=list)

    def advance(self, state: TranscodeJobState) -> None:
        self.history.append(state)
        self.state = state
        logger.info("Transcode job %s: %s", self.label, state.value)


class TranscodeJobRunner:
    """Executes transcode jobs one at a time on the provider's engine."""

    def __init__(self, provider: EngineProvider | None = None):
        self.provider = provider or engine_provider

    async def run(
        self,
        job: TranscodeJob,
        on_progress: Callable[[float], None] | None = None,
    ) -> bytes:
        """
        Render the job and return the output file's bytes.

        Every file written into working storage is removed again before this
        returns or raises, even when staging, execution or extraction fails.
        on_progress receives the fraction (0-1) of the clip rendered so far.
        """
        engine = await self.provider.get()
        async with engine.job_lock:
            return await self._run_locked(engine, job, on_progress)

    async def _run_locked(
        self,
        engine: TranscodeEngine,
        job: TranscodeJob,
        on_progress: Callable[[float], None] | None,
    ) -> bytes:
        plan = job.plan
        total = plan.trim.duration

        def handle_time(elapsed: float) -> None:
            if on_progress is not None and total > 0:
                on_progress(min(1.0, elapsed / total))

        succeeded = False
        try:
            job.advance(TranscodeJobState.STAGING_INPUTS)
            for staged in plan.staged_files:
                data = staged.content if staged.content is not None else staged.source
                if data is None:
                    raise StagingError(f"Nothing to stage for {staged.name}")
                # Recorded before the write so a partially written file is still cleaned up
                job.staged_names.append(staged.name)
                try:
                    engine.write_file(staged.name, data)
                except OSError as exc:
                    raise StagingError(f"Could not stage {staged.name}: {exc}") from exc

            job.advance(TranscodeJobState.EXECUTING)
            await engine.run(plan.to_args(), on_time=handle_time)

            job.advance(TranscodeJobState.EXTRACTING)
            output = engine.read_file(plan.output_name)
            succeeded = True
            if on_progress is not None:
                on_progress(1.0)
            return output
        finally:
            job.advance(TranscodeJobState.CLEANING_UP)
            self._cleanup(engine, job)
            job.advance(TranscodeJobState.SUCCEEDED if succeeded else TranscodeJobState.FAILED)

    @staticmethod
    def _cleanup(engine: TranscodeEngine, job: TranscodeJob) -> None:
        names = [*job.staged_names, job.plan.output_name]
        for name in names:
            try:
                engine.delete_file(name)
            except FileNotFoundError:
                continue
            except Exception as exc:
                logger.warning("Failed to remove %s after transcode job %s: %s", name, job.label, exc)
        job.staged_names.clear()
