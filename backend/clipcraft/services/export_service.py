from __future__ import annotations

import io
import logging
import unicodedata
import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, Callable, Sequence

from ..models import Clip, ProcessingConfig
from ..utils.fonts import font_family, resolve_font_path
from .frame_sampler import FrameSamplerService
from .render_plan import build_render_plan
from .transcode_runner import TranscodeJob, TranscodeJobRunner

logger = logging.getLogger("uvicorn.error")


@dataclass
class ManifestEntry:
    relative_path: str
    inline_content: bytes


class ExportService:
    """Renders clips to MP4 through the shared transcode runner."""

    SLUG_MAX_LENGTH = 60

    def __init__(
        self,
        runner: TranscodeJobRunner | None = None,
        font_resolver: Callable[[], Path] = resolve_font_path,
        has_audio: Callable[[Path], Awaitable[bool]] = FrameSamplerService.has_audio_stream,
    ):
        self.runner = runner or TranscodeJobRunner()
        self.font_resolver = font_resolver
        self.has_audio = has_audio

    @classmethod
    def sanitize_slug(cls, value: str) -> str:
        """Lowercase words joined by underscores; letters of any script are kept."""
        value = unicodedata.normalize("NFC", value)
        # Combining marks stay: Devanagari vowel signs are category M
        kept = "".join(
            ch if ch.isalnum() or unicodedata.category(ch).startswith("M") else " "
            for ch in value
        )
        cleaned = "_".join(kept.split())
        cleaned = cleaned[: cls.SLUG_MAX_LENGTH].strip("_")
        return cleaned.lower() or "clip"

    @classmethod
    def clip_filename(cls, index: int, clip: Clip) -> str:
        """Archive name for the clip at 1-based display position `index`."""
        return f"{index:02d}_{cls.sanitize_slug(clip.hook)}.mp4"

    async def export_clip(
        self,
        source_path: Path,
        clip: Clip,
        config: ProcessingConfig,
        on_progress: Callable[[float], None] | None = None,
    ) -> bytes:
        font_path = self.font_resolver()
        source_has_audio = True
        if config.uses_background_music:
            source_has_audio = await self.has_audio(source_path)
            if not source_has_audio:
                logger.info("Source has no audio track; clip %s uses the music bed alone", clip.id)
        plan = build_render_plan(
            clip,
            config,
            source_path=source_path,
            font_path=font_path,
            font_family=font_family(font_path),
            source_has_audio=source_has_audio,
        )
        job = TranscodeJob(plan=plan, label=clip.id)
        return await self.runner.run(job, on_progress)

    async def build_manifest(
        self,
        source_path: Path,
        clips: Sequence[Clip],
        config: ProcessingConfig,
    ) -> list[ManifestEntry]:
        """
        Render every clip, in display order.

        The first failing clip aborts the batch: its error propagates and no
        partial archive is produced.
        """
        entries: list[ManifestEntry] = []
        for index, clip in enumerate(clips, start=1):
            logger.info("Exporting clip %d/%d (%s)", index, len(clips), clip.id)
            content = await self.export_clip(source_path, clip, config)
            entries.append(ManifestEntry(self.clip_filename(index, clip), content))
        return entries

    async def export_batch(
        self,
        source_path: Path,
        clips: Sequence[Clip],
        config: ProcessingConfig,
    ) -> bytes:
        """Zip archive (bytes) holding one MP4 per clip."""
        entries = await self.build_manifest(source_path, clips, config)
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as zf:
            for entry in entries:
                zf.writestr(entry.relative_path, entry.inline_content)
        return buffer.getvalue()
