from .caption_styles import get_style, list_styles
from .clip_generation import ClipGenerationService
from .export_service import ExportService
from .frame_sampler import FrameSamplerService
from .gemini_service import GeminiService
from .render_plan import RenderPlan, build_render_plan
from .transcode_engine import EngineProvider, EngineState, FFmpegEngine, engine_provider
from .transcode_runner import TranscodeJob, TranscodeJobRunner, TranscodeJobState
from .workspace_service import Run, WorkspaceService

__all__ = [
    "get_style", "list_styles",
    "ClipGenerationService", "ExportService", "FrameSamplerService", "GeminiService",
    "RenderPlan", "build_render_plan",
    "EngineProvider", "EngineState", "FFmpegEngine", "engine_provider",
    "TranscodeJob", "TranscodeJobRunner", "TranscodeJobState",
    "Run", "WorkspaceService",
]
