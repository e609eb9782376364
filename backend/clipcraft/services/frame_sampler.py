from __future__ import annotations

import base64
import json
import logging
from io import BytesIO
from pathlib import Path

from PIL import Image

from ..config import settings
from ..errors import InputValidationError
from ..utils.subprocess_runner import CommandTimeoutError, run_command

logger = logging.getLogger("uvicorn.error")


class FrameSamplerService:
    """Probes source videos and samples downscaled frames for content analysis."""

    FFPROBE_TIMEOUT_SECONDS = 30
    FRAME_TIMEOUT_SECONDS = 60
    JPEG_QUALITY = 80

    @staticmethod
    async def get_duration(video_path: Path) -> float:
        """
        Get the container duration using ffprobe.

        Raises:
            InputValidationError: If the file cannot be probed as media
        """
        cmd = [
            settings.ffprobe_binary,
            "-v", "quiet",
            "-print_format", "json",
            "-show_format",
            str(video_path),
        ]
        try:
            result = await run_command(cmd, timeout_seconds=FrameSamplerService.FFPROBE_TIMEOUT_SECONDS)
        except (CommandTimeoutError, FileNotFoundError) as exc:
            raise InputValidationError(f"Could not probe video: {exc}") from exc

        if result.returncode != 0:
            raise InputValidationError(f"Not a readable video file: {video_path.name}")

        try:
            data = json.loads(result.stdout.decode())
            return float(data["format"]["duration"])
        except (ValueError, KeyError, TypeError) as exc:
            raise InputValidationError(f"Video has no usable duration: {video_path.name}") from exc

    @staticmethod
    async def has_audio_stream(video_path: Path) -> bool:
        """True when ffprobe finds at least one audio stream in the file."""
        cmd = [
            settings.ffprobe_binary,
            "-v", "error",
            "-select_streams", "a",
            "-show_entries", "stream=index",
            "-of", "json",
            str(video_path),
        ]
        try:
            result = await run_command(cmd, timeout_seconds=FrameSamplerService.FFPROBE_TIMEOUT_SECONDS)
        except (CommandTimeoutError, FileNotFoundError) as exc:
            raise InputValidationError(f"Could not probe video: {exc}") from exc

        if result.returncode != 0:
            raise InputValidationError(f"Not a readable video file: {video_path.name}")

        try:
            streams = json.loads(result.stdout.decode() or "{}").get("streams", [])
        except ValueError as exc:
            raise InputValidationError(f"Unreadable stream list for {video_path.name}") from exc
        return bool(streams)

    @staticmethod
    def sample_timestamps(duration: float, count: int) -> list[float]:
        """Evenly spaced timestamps, centred in each of `count` equal slices."""
        if duration <= 0 or count <= 0:
            return []
        step = duration / count
        return [step * (i + 0.5) for i in range(count)]

    @staticmethod
    def encode_frame(image_bytes: bytes, max_width: int) -> str:
        """Downscale to max_width (keeping aspect) and return base64 JPEG."""
        with Image.open(BytesIO(image_bytes)) as image:
            image = image.convert("RGB")
            if image.width > max_width:
                height = max(1, round(image.height * max_width / image.width))
                image = image.resize((max_width, height), Image.LANCZOS)
            buffer = BytesIO()
            image.save(buffer, format="JPEG", quality=FrameSamplerService.JPEG_QUALITY)
        return base64.b64encode(buffer.getvalue()).decode("ascii")

    @classmethod
    async def grab_frame(cls, video_path: Path, timestamp: float) -> bytes | None:
        cmd = [
            settings.ffmpeg_binary,
            "-v", "error",
            "-ss", f"{timestamp:.3f}",
            "-i", str(video_path),
            "-frames:v", "1",
            "-f", "image2pipe",
            "-vcodec", "png",
            "-",
        ]
        try:
            result = await run_command(cmd, timeout_seconds=cls.FRAME_TIMEOUT_SECONDS)
        except (CommandTimeoutError, FileNotFoundError) as exc:
            logger.warning("Frame grab at %.2fs failed: %s", timestamp, exc)
            return None
        if result.returncode != 0 or not result.stdout:
            logger.warning(
                "Frame grab at %.2fs failed: %s",
                timestamp,
                result.stderr.decode(errors="replace").strip(),
            )
            return None
        return result.stdout

    @classmethod
    async def sample_frames(
        cls,
        video_path: Path,
        duration: float,
        count: int | None = None,
        max_width: int | None = None,
    ) -> list[str]:
        """Base64 JPEG frames sampled evenly across the video; unreadable frames are skipped."""
        count = count or settings.frame_sample_count
        max_width = max_width or settings.frame_max_width

        frames: list[str] = []
        for timestamp in cls.sample_timestamps(duration, count):
            raw = await cls.grab_frame(video_path, timestamp)
            if raw is None:
                continue
            frames.append(cls.encode_frame(raw, max_width))

        if not frames:
            raise InputValidationError("Could not read any frames from the video")
        logger.info("Sampled %d/%d frames from %s", len(frames), count, video_path.name)
        return frames
