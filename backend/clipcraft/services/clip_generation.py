"""Clip generation pipeline: analysis, selection, hooks and caption shaping."""

from __future__ import annotations

import asyncio
import logging
import re
from pathlib import Path
from typing import AsyncIterator

from ..config import settings
from ..errors import ClipCraftError, VideoTooShortError
from ..models import (
    AnalysisMode,
    CandidateClip,
    Clip,
    ProcessingConfig,
    ProcessingProgress,
    ProcessingStatus,
)
from ..utils.timing import lines_in_window, scenes_in_window, timeframe_bounds
from .caption_chunker import chunk_captions
from .caption_styles import get_style
from .clip_selector import select_from_scenes, select_from_transcript
from .frame_sampler import FrameSamplerService
from .gemini_service import GeminiService

logger = logging.getLogger("uvicorn.error")


def video_topic(filename: str) -> str:
    """Human-readable topic guessed from an upload's file name."""
    stem = Path(filename).stem
    return re.sub(r"[_]+", " ", stem).strip() or "video"


class ClipGenerationService:
    """
    Turns one uploaded video into ranked, hooked, captioned clips.

    The analysis collaborator and the frame sampler are injected so the
    pipeline can run against fakes; by default they are the Gemini REST
    wrapper and the ffmpeg-based sampler.
    """

    HOOK_EXCERPT_CHARS = 200

    def __init__(self, analyzer=GeminiService, sampler=FrameSamplerService):
        self.analyzer = analyzer
        self.sampler = sampler

    async def generate(
        self,
        video_path: Path,
        config: ProcessingConfig,
        *,
        topic: str | None = None,
    ) -> AsyncIterator[ProcessingProgress]:
        """
        Run the pipeline.

        Yields:
            ProcessingProgress updates; the last one is always terminal
            (``done`` with the clips, or ``error`` with message and kind).
        """
        source = config.source_language
        target = config.target_language
        topic = topic or video_topic(video_path.name)

        try:
            yield ProcessingProgress(
                status=ProcessingStatus.TRANSCRIBING,
                message="Reading video...",
                progress=5,
            )
            duration = await self.sampler.get_duration(video_path)
            if duration < settings.min_video_duration:
                raise VideoTooShortError(
                    f"Video is too short ({duration:.1f}s); at least "
                    f"{settings.min_video_duration:.0f}s is needed"
                )
            window_start, window_end = timeframe_bounds(duration, config.processing_timeframe)
            frames = await self.sampler.sample_frames(video_path, duration)

            yield ProcessingProgress(
                status=ProcessingStatus.TRANSCRIBING,
                message=f"Generating transcript in {target.value}...",
                progress=10,
            )
            if config.analysis_mode is AnalysisMode.SCENES:
                scenes = await asyncio.to_thread(
                    self.analyzer.analyze_video_content,
                    frames,
                    duration,
                    topic,
                    source,
                    target,
                    config.clip_length.window,
                )
                scenes = scenes_in_window(scenes, window_start, window_end)
                yield ProcessingProgress(
                    status=ProcessingStatus.ANALYZING,
                    message="Analyzing for engaging moments...",
                    progress=40,
                )
                candidates = select_from_scenes(scenes, config)
            else:
                lines = await asyncio.to_thread(
                    self.analyzer.generate_transcript,
                    topic,
                    source,
                    target,
                    frames=frames,
                    duration=duration,
                )
                lines = lines_in_window(lines, window_start, window_end)
                yield ProcessingProgress(
                    status=ProcessingStatus.ANALYZING,
                    message="Analyzing for engaging moments...",
                    progress=40,
                )
                candidates = select_from_transcript(lines, config)

            yield ProcessingProgress(
                status=ProcessingStatus.GENERATING,
                message="Creating short clips...",
                progress=70,
            )
            clips: list[Clip] = []
            for index, candidate in enumerate(candidates):
                clips.append(await self._build_clip(candidate, config))
                yield ProcessingProgress(
                    status=ProcessingStatus.GENERATING,
                    message=f"Created clip {index + 1} of {len(candidates)}",
                    progress=70 + (index + 1) / len(candidates) * 30,
                )

            logger.info("Generated %d clip(s) from %s", len(clips), video_path.name)
            yield ProcessingProgress(
                status=ProcessingStatus.DONE,
                message="Your clips are ready!",
                progress=100,
                clips=clips,
            )

        except ClipCraftError as exc:
            logger.warning("Clip generation for %s failed (%s): %s", video_path.name, exc.kind, exc)
            yield self.error_event(exc)
        except Exception as exc:
            logger.exception("Clip generation for %s failed unexpectedly", video_path.name)
            yield self.error_event(exc)

    async def _build_clip(self, candidate: CandidateClip, config: ProcessingConfig) -> Clip:
        style = get_style(config.template)
        excerpt = candidate.text[: self.HOOK_EXCERPT_CHARS]
        hook = await asyncio.to_thread(self.analyzer.generate_hook, excerpt, config.target_language)

        if style.word_highlight:
            transcript = chunk_captions(candidate.lines, config.words_per_caption)
        else:
            transcript = list(candidate.lines)

        return Clip(
            start_time=candidate.start,
            end_time=candidate.end,
            hook=hook,
            transcript=transcript,
            caption_style=style,
        )

    @staticmethod
    def error_event(exc: Exception) -> ProcessingProgress:
        message = str(exc) or exc.__class__.__name__
        return ProcessingProgress(
            status=ProcessingStatus.ERROR,
            message=f"Error: {message}",
            progress=0,
            error=message,
            error_kind=getattr(exc, "kind", "error"),
        )
