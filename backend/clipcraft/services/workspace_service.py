"""In-memory store for clip generation runs and their uploaded files."""

from __future__ import annotations

import asyncio
import logging
import re
import shutil
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import AsyncIterator

from ..config import settings
from ..models import Clip, ProcessingConfig, ProcessingProgress, ProcessingStatus
from .clip_generation import ClipGenerationService

logger = logging.getLogger("uvicorn.error")

_RUN_ID_RE = re.compile(r"[a-zA-Z0-9_-]+$")


def _validate_run_id(run_id: str) -> None:
    """Reject run IDs that could escape the uploads directory."""
    if not run_id or not _RUN_ID_RE.fullmatch(run_id):
        raise ValueError(
            f"Invalid run id: must be non-empty alphanumeric/hyphen/underscore, got {run_id!r}"
        )


@dataclass
class Run:
    """One uploaded video, its frozen config and everything generated for it."""

    id: str
    run_dir: Path
    video_path: Path
    config: ProcessingConfig
    topic: str
    events: list[ProcessingProgress] = field(default_factory=list)
    clips: list[Clip] = field(default_factory=list)
    task: asyncio.Task | None = None
    _changed: asyncio.Condition = field(default_factory=asyncio.Condition, repr=False)

    @property
    def status(self) -> ProcessingStatus:
        return self.events[-1].status if self.events else ProcessingStatus.IDLE

    def find_clip(self, clip_id: str) -> tuple[int, Clip] | None:
        """(1-based display position, clip) for the given id."""
        for index, clip in enumerate(self.clips, start=1):
            if clip.id == clip_id:
                return index, clip
        return None

    async def record(self, event: ProcessingProgress) -> None:
        async with self._changed:
            self.events.append(event)
            if event.status is ProcessingStatus.DONE and event.clips is not None:
                self.clips = list(event.clips)
            self._changed.notify_all()

    async def follow(self) -> AsyncIterator[ProcessingProgress]:
        """Every event of the run, replaying past ones, until the terminal event."""
        index = 0
        while True:
            async with self._changed:
                await self._changed.wait_for(lambda: len(self.events) > index)
                pending = self.events[index:]
            for event in pending:
                index += 1
                yield event
                if event.status.is_terminal:
                    return


class WorkspaceService:
    """Keeps runs for the lifetime of the process; nothing is persisted."""

    _runs: dict[str, Run] = {}

    @staticmethod
    def new_run_id() -> str:
        return uuid.uuid4().hex[:12]

    @staticmethod
    def get_run_dir(run_id: str) -> Path:
        _validate_run_id(run_id)
        return settings.uploads_dir / run_id

    @classmethod
    def register(
        cls,
        run_id: str,
        *,
        video_path: Path,
        config: ProcessingConfig,
        topic: str,
    ) -> Run:
        run = Run(
            id=run_id,
            run_dir=cls.get_run_dir(run_id),
            video_path=video_path,
            config=config,
            topic=topic,
        )
        cls._runs[run_id] = run
        return run

    @classmethod
    def get(cls, run_id: str) -> Run | None:
        return cls._runs.get(run_id)

    @classmethod
    def start(cls, run: Run, service: ClipGenerationService) -> asyncio.Task:
        """Run the pipeline in the background, recording every event on the run."""

        async def _drive() -> None:
            async for event in service.generate(run.video_path, run.config, topic=run.topic):
                await run.record(event)
            logger.info("Run %s finished with status=%s", run.id, run.status.value)

        run.task = asyncio.create_task(_drive())
        return run.task

    @classmethod
    def remove_clip(cls, run_id: str, clip_id: str) -> bool:
        run = cls.get(run_id)
        if run is None:
            return False
        found = run.find_clip(clip_id)
        if found is None:
            return False
        run.clips = [clip for clip in run.clips if clip.id != clip_id]
        return True

    @classmethod
    def delete(cls, run_id: str) -> bool:
        """Forget a run and remove its uploaded files."""
        run_dir = cls.get_run_dir(run_id)
        run = cls._runs.pop(run_id, None)
        if run is not None and run.task is not None and not run.task.done():
            run.task.cancel()
        if run_dir.exists():
            shutil.rmtree(run_dir, ignore_errors=True)
        return run is not None

    @classmethod
    def clear(cls) -> None:
        for run_id in list(cls._runs):
            cls.delete(run_id)
