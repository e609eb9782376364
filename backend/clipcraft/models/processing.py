from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .clip import Clip


class ClipLength(str, Enum):
    """Preferred clip length band."""

    UNDER_30 = "<30"
    FROM_30_TO_60 = "30-60"
    FROM_60_TO_90 = "60-90"
    ORIGINAL = "original"

    @property
    def window(self) -> tuple[float, float]:
        """(min, max) clip duration in seconds."""
        return _LENGTH_WINDOWS[self]

    @property
    def target(self) -> float:
        """Duration the length-fit score is measured against."""
        return _LENGTH_TARGETS[self]


_LENGTH_WINDOWS: dict[ClipLength, tuple[float, float]] = {
    ClipLength.UNDER_30: (10.0, 30.0),
    ClipLength.FROM_30_TO_60: (30.0, 60.0),
    ClipLength.FROM_60_TO_90: (60.0, 90.0),
    # Scenes keep their own length; this window only drives transcript segmentation
    ClipLength.ORIGINAL: (15.0, 90.0),
}

_LENGTH_TARGETS: dict[ClipLength, float] = {
    ClipLength.UNDER_30: 20.0,
    ClipLength.FROM_30_TO_60: 45.0,
    ClipLength.FROM_60_TO_90: 75.0,
    ClipLength.ORIGINAL: 45.0,
}


class VideoLayout(str, Enum):
    """Aspect/crop policy for the rendered clip."""

    AUTO = "auto"
    FILL = "fill"
    FIT = "fit"
    SQUARE = "square"


class Language(str, Enum):
    ENGLISH = "English"
    HINDI = "Hindi"
    SPANISH = "Spanish"
    FRENCH = "French"


class AnalysisMode(str, Enum):
    """Where clip candidates come from."""

    SCENES = "scenes"  # Scored scenes from the analysis model, ranked by virality
    TRANSCRIPT = "transcript"  # Flat transcript, segmented and keyword-scored locally


class ProcessingConfig(BaseModel):
    """Run parameters chosen by the user. Immutable for the duration of one run."""

    model_config = ConfigDict(frozen=True)

    clip_length: ClipLength = ClipLength.FROM_30_TO_60
    layout: VideoLayout = VideoLayout.FIT
    template: str = "hormozi1"
    source_language: Language = Language.ENGLISH
    target_language: Language = Language.ENGLISH
    analysis_mode: AnalysisMode = AnalysisMode.SCENES

    # Percent of the source video to consider, [start, end]
    processing_timeframe: tuple[float, float] = (0.0, 100.0)
    max_clips: int = Field(default=6, ge=1, le=20)

    # Feature toggles
    hook_title: bool = True
    call_to_action: bool = True
    cta_text: str = "Take a look at my other videos"
    background_music: bool = False
    background_music_path: Path | None = None
    watermark_path: Path | None = None
    words_per_caption: int = Field(default=4, ge=1, le=8)

    @field_validator("template")
    @classmethod
    def validate_template(cls, value: str) -> str:
        from ..services.caption_styles import get_style

        if get_style(value) is None:
            raise ValueError(f"Unknown caption template: {value}")
        return value

    @field_validator("processing_timeframe")
    @classmethod
    def validate_timeframe(cls, value: tuple[float, float]) -> tuple[float, float]:
        start, end = value
        if not 0.0 <= start < end <= 100.0:
            raise ValueError("Processing timeframe must satisfy 0 <= start < end <= 100")
        return value

    @field_validator("watermark_path", "background_music_path")
    @classmethod
    def validate_asset_path(cls, value: Path | None) -> Path | None:
        if value is not None and not value.is_file():
            raise ValueError(f"Asset file not found: {value}")
        return value

    @property
    def uses_background_music(self) -> bool:
        # An asset without the toggle is kept on the config but never mixed
        return self.background_music and self.background_music_path is not None

    @property
    def uses_cta(self) -> bool:
        return self.call_to_action and bool(self.cta_text.strip())


class ProcessingStatus(str, Enum):
    """Status of a clip generation run."""

    IDLE = "idle"
    TRANSCRIBING = "transcribing"
    ANALYZING = "analyzing"
    GENERATING = "generating"
    DONE = "done"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (ProcessingStatus.DONE, ProcessingStatus.ERROR)


class ProcessingProgress(BaseModel):
    """Progress update for a clip generation run."""

    status: ProcessingStatus
    message: str = ""
    progress: float = 0.0  # 0 to 100
    clips: list[Clip] | None = None
    error: str | None = None
    error_kind: str | None = None
