"""
Builds the single-pass ffmpeg job that renders one clip.

The builder is pure: it only describes inputs, files to stage, the filter
graph and encode settings. Nothing touches the filesystem or the engine
until the plan is handed to the transcode runner.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path

from ..models import Clip, ProcessingConfig, TimedLine, VideoLayout
from .subtitle_formatter import format_srt

SOURCE_NAME = "input.mp4"
WATERMARK_NAME = "watermark.png"
MUSIC_NAME = "music.mp3"
SUBTITLES_NAME = "subtitles.srt"
FONT_NAME = "font.ttf"
OUTPUT_NAME = "output.mp4"

PORTRAIT_SIZE = (1080, 1920)
SQUARE_SIZE = (1080, 1080)

CAPTION_FONT_SIZE = 64
CAPTION_MARGIN_V = 40
HOOK_FONT_SIZE = 80
CTA_FONT_SIZE = 60
WATERMARK_WIDTH = 200
WATERMARK_MARGIN = 20
SOURCE_AUDIO_GAIN = 0.8
MUSIC_GAIN = 0.2

_HEX_COLOR_RE = re.compile(r"#?([0-9a-fA-F]{6}|[0-9a-fA-F]{3})")


@dataclass(frozen=True)
class InputSpec:
    name: str
    options: tuple[str, ...] = ()

    def to_args(self) -> list[str]:
        return [*self.options, "-i", self.name]


@dataclass(frozen=True)
class StagedFile:
    """A file the runner must place in working storage before execution."""

    name: str
    source: Path | None = None
    content: bytes | None = None


@dataclass(frozen=True)
class TrimWindow:
    start: float
    end: float

    @property
    def duration(self) -> float:
        return self.end - self.start

    def to_args(self) -> list[str]:
        # Input options: the decoder seeks, so every filter sees the trimmed timeline
        return ["-ss", f"{self.start:.3f}", "-t", f"{self.duration:.3f}"]


@dataclass(frozen=True)
class EncodeParams:
    preset: str = "veryfast"
    video_codec: str = "libx264"
    audio_codec: str = "aac"
    pixel_format: str = "yuv420p"
    extra: tuple[str, ...] = ("-movflags", "+faststart")

    def to_args(self) -> list[str]:
        return [
            "-preset", self.preset,
            "-c:v", self.video_codec,
            "-c:a", self.audio_codec,
            "-pix_fmt", self.pixel_format,
            *self.extra,
        ]


@dataclass(frozen=True)
class RenderPlan:
    """Data-only description of one transcode job."""

    inputs: tuple[InputSpec, ...]
    trim: TrimWindow
    filter_complex: str
    video_map: str
    audio_map: str
    encode: EncodeParams
    staged_files: tuple[StagedFile, ...]
    output_name: str = OUTPUT_NAME
    video_filters: tuple[str, ...] = field(default=(), compare=False)

    def to_args(self) -> list[str]:
        """Engine argument list, without the ffmpeg binary itself."""
        args = ["-y", "-hide_banner"]
        for index, spec in enumerate(self.inputs):
            if index == 0:
                args.extend(self.trim.to_args())
            args.extend(spec.to_args())
        args.extend(["-filter_complex", self.filter_complex])
        args.extend(["-map", self.video_map, "-map", self.audio_map])
        args.extend(self.encode.to_args())
        args.append(self.output_name)
        return args


def to_ass_color(hex_color: str) -> str:
    """Convert #RRGGBB into the subtitle renderer's &HBBGGRR order."""
    match = _HEX_COLOR_RE.fullmatch(hex_color.strip())
    if not match:
        raise ValueError(f"Not a hex RGB color: {hex_color!r}")
    digits = match.group(1)
    if len(digits) == 3:
        digits = "".join(ch * 2 for ch in digits)
    rr, gg, bb = digits[0:2], digits[2:4], digits[4:6]
    return f"&H{bb}{gg}{rr}".upper()


# Characters each parser level treats as special
_DRAWTEXT_SPECIAL = "\\%"
_OPTION_SPECIAL = "\\':"
_GRAPH_SPECIAL = "\\'[],;"


def _backslash_escape(value: str, special: str) -> str:
    return "".join(f"\\{ch}" if ch in special else ch for ch in value)


def escape_filter_text(text: str) -> str:
    """
    Escape text for an unquoted drawtext ``text=`` option inside -filter_complex.

    ffmpeg unescapes the value three times: the filtergraph parser, then the
    filter's option parser, then drawtext's own text expansion. Each level is
    escaped in reverse order. Newlines are folded to spaces.
    """
    flat = text.replace("\r", " ").replace("\n", " ")
    value = _backslash_escape(flat, _DRAWTEXT_SPECIAL)
    value = _backslash_escape(value, _OPTION_SPECIAL)
    return _backslash_escape(value, _GRAPH_SPECIAL)


def layout_filters(layout: VideoLayout) -> list[str]:
    """Crop (if any) and scale for the target layout."""
    filters: list[str] = []
    if layout is VideoLayout.FILL:
        filters.append("crop=ih*9/16:ih")
    elif layout is VideoLayout.SQUARE:
        filters.append("crop=ih:ih")

    width, height = SQUARE_SIZE if layout is VideoLayout.SQUARE else PORTRAIT_SIZE
    filters.append(f"scale={width}:{height}")
    return filters


def caption_force_style(clip: Clip, font_family: str | None = None) -> str:
    """libass style override; `font_family` names the staged font file and wins over the template font."""
    style = clip.caption_style
    family = re.sub(r"[,:;'\[\]\\=]", "", font_family or style.font).strip() or style.font
    has_shadow = bool(style.text_shadow) and style.text_shadow != "none"
    outline_color = "#000000" if has_shadow else style.text_color
    return ",".join(
        [
            f"FontName={family}",
            f"FontSize={CAPTION_FONT_SIZE}",
            f"PrimaryColour={to_ass_color(style.text_color)}",
            "BorderStyle=1",
            "Outline=2",
            f"OutlineColour={to_ass_color(outline_color)}",
            "Shadow=1",
            "Alignment=2",  # bottom center
            f"MarginV={CAPTION_MARGIN_V}",
        ]
    )


def clip_relative_lines(clip: Clip) -> list[TimedLine]:
    """Clip transcript shifted so 0s is the clip start, clamped to the clip."""
    shifted: list[TimedLine] = []
    for line in clip.transcript:
        start = max(0.0, line.start - clip.start_time)
        end = min(clip.duration, line.end - clip.start_time)
        if end <= start:
            continue
        shifted.append(TimedLine(text=line.text, start=start, end=end, emoji=line.emoji))
    return shifted


def build_render_plan(
    clip: Clip,
    config: ProcessingConfig,
    *,
    source_path: Path,
    font_path: Path,
    font_family: str | None = None,
    source_has_audio: bool = True,
) -> RenderPlan:
    """
    Describe the ffmpeg job for one clip.

    Input order is fixed: source video (0), watermark (if configured),
    background music (last, only when enabled and present). The video chain
    runs crop -> scale -> captions -> hook title -> call to action, then the
    watermark is overlaid on the chain's output.

    `font_family` is the family name inside `font_path`, used for captions.
    With background music and `source_has_audio` False the music plays alone.
    """
    if clip.end_time <= clip.start_time:
        raise ValueError(f"Clip {clip.id} has an empty time range")

    inputs = [InputSpec(SOURCE_NAME)]
    staged = [StagedFile(SOURCE_NAME, source=source_path)]

    watermark_index: int | None = None
    if config.watermark_path is not None:
        watermark_index = len(inputs)
        inputs.append(InputSpec(WATERMARK_NAME))
        staged.append(StagedFile(WATERMARK_NAME, source=config.watermark_path))

    music_index: int | None = None
    if config.uses_background_music:
        music_index = len(inputs)
        inputs.append(InputSpec(MUSIC_NAME))
        staged.append(StagedFile(MUSIC_NAME, source=config.background_music_path))

    srt = format_srt(clip_relative_lines(clip))
    staged.append(StagedFile(SUBTITLES_NAME, content=srt.encode("utf-8")))
    staged.append(StagedFile(FONT_NAME, source=font_path))

    video_filters = layout_filters(config.layout)
    video_filters.append(
        f"subtitles={SUBTITLES_NAME}:fontsdir=.:force_style='{caption_force_style(clip, font_family)}'"
    )
    if config.hook_title and clip.hook.strip():
        video_filters.append(
            f"drawtext=fontfile={FONT_NAME}:text={escape_filter_text(clip.hook.strip())}"
            f":x=(w-text_w)/2:y=(h*0.2):fontsize={HOOK_FONT_SIZE}:fontcolor=white"
            ":shadowcolor=black:shadowx=2:shadowy=2"
        )
    if config.uses_cta:
        video_filters.append(
            f"drawtext=fontfile={FONT_NAME}:text={escape_filter_text(config.cta_text.strip())}"
            f":x=(w-text_w)/2:y=(h*0.8):fontsize={CTA_FONT_SIZE}:fontcolor=white"
            ":box=1:boxcolor=black@0.5:boxborderw=10"
        )

    graph = [f"[0:v]{','.join(video_filters)}[v]"]
    video_map = "[v]"

    if watermark_index is not None:
        graph.append(
            f"[{watermark_index}:v]scale={WATERMARK_WIDTH}:-1[wm];"
            f"{video_map}[wm]overlay=W-w-{WATERMARK_MARGIN}:H-h-{WATERMARK_MARGIN}[v_wm]"
        )
        video_map = "[v_wm]"

    audio_map = "0:a?"
    if music_index is not None and source_has_audio:
        # duration=first: the mix ends with the (trimmed) source audio
        graph.append(
            f"[0:a]volume={SOURCE_AUDIO_GAIN}[a0];[{music_index}:a]volume={MUSIC_GAIN}[a1];"
            "[a0][a1]amix=inputs=2:duration=first[a_mix]"
        )
        audio_map = "[a_mix]"
    elif music_index is not None:
        # Silent source: the bed alone, cut to the clip length
        graph.append(
            f"[{music_index}:a]volume={MUSIC_GAIN},atrim=duration={clip.duration:.3f}[a_mix]"
        )
        audio_map = "[a_mix]"

    return RenderPlan(
        inputs=tuple(inputs),
        trim=TrimWindow(clip.start_time, clip.end_time),
        filter_complex=";".join(graph),
        video_map=video_map,
        audio_map=audio_map,
        encode=EncodeParams(),
        staged_files=tuple(staged),
        video_filters=tuple(video_filters),
    )
