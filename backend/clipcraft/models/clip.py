from pydantic import BaseModel, ConfigDict, Field
import uuid

from .transcript import TimedLine


class CaptionStyle(BaseModel):
    """A named caption preset. Chosen once per run and never mutated."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    font: str = "Inter"
    text_color: str = "#FFFFFF"
    background_color: str = "transparent"
    highlight_color: str = "#7B61FF"
    text_shadow: str | None = None
    font_weight: int = 700
    # Word-by-word highlight templates need the chunked (karaoke) transcript
    word_highlight: bool = False


class CandidateClip(BaseModel):
    """A scored run of transcript lines considered for selection."""

    model_config = ConfigDict(frozen=True)

    lines: list[TimedLine]
    score: float = 0.0

    @property
    def start(self) -> float:
        return self.lines[0].start

    @property
    def end(self) -> float:
        return self.lines[-1].end

    @property
    def duration(self) -> float:
        return self.end - self.start

    @property
    def text(self) -> str:
        return " ".join(line.text for line in self.lines)


class Clip(BaseModel):
    """A final short-form clip shown to the user and handed to rendering."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: f"clip-{uuid.uuid4().hex[:12]}")
    start_time: float
    end_time: float
    hook: str
    transcript: list[TimedLine] = Field(default_factory=list)
    caption_style: CaptionStyle

    @property
    def duration(self) -> float:
        return self.end_time - self.start_time
