from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class _WireModel(BaseModel):
    """Accepts both snake_case and the analysis collaborator's camelCase keys."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class Word(_WireModel):
    """A spoken word with timing."""

    text: str
    start: float
    end: float


class TimedLine(_WireModel):
    """A transcript line with timing and optional word-level timings."""

    text: str
    start: float  # seconds
    end: float  # seconds
    emoji: str | None = None
    words: list[Word] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_span(self) -> "TimedLine":
        if self.end < self.start:
            raise ValueError(f"Line ends before it starts ({self.start} > {self.end})")
        return self

    @property
    def duration(self) -> float:
        return self.end - self.start


class Scene(_WireModel):
    """A scored segment produced by the content-analysis collaborator."""

    start_time: float = Field(alias="startTime")
    end_time: float = Field(alias="endTime")
    topic: str = ""
    summary: str = ""
    virality_score: float = Field(default=1.0, alias="viralityScore")
    reasoning: str = ""
    transcript: list[TimedLine] = Field(default_factory=list)

    @field_validator("virality_score")
    @classmethod
    def clamp_virality(cls, value: float) -> float:
        # Collaborator occasionally answers 0 or 11
        return min(10.0, max(1.0, value))

    @property
    def duration(self) -> float:
        return self.end_time - self.start_time


class SceneList(_WireModel):
    """Top-level shape of a scene analysis response."""

    scenes: list[Scene] = Field(default_factory=list)


class TranscriptResponse(_WireModel):
    """Top-level shape of a flat transcript response."""

    transcript: list[TimedLine] = Field(default_factory=list)
