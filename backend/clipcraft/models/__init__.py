from .transcript import Word, TimedLine, Scene, SceneList, TranscriptResponse
from .clip import CaptionStyle, CandidateClip, Clip
from .processing import (
    AnalysisMode,
    ClipLength,
    Language,
    ProcessingConfig,
    ProcessingProgress,
    ProcessingStatus,
    VideoLayout,
)

__all__ = [
    "Word", "TimedLine", "Scene", "SceneList", "TranscriptResponse",
    "CaptionStyle", "CandidateClip", "Clip",
    "AnalysisMode", "ClipLength", "Language", "ProcessingConfig",
    "ProcessingProgress", "ProcessingStatus", "VideoLayout",
]
