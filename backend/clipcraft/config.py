from pydantic_settings import BaseSettings, SettingsConfigDict
from pathlib import Path


PROJECT_ROOT = Path(__file__).resolve().parents[2]
BACKEND_ROOT = Path(__file__).resolve().parents[1]


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_prefix="CLIPCRAFT_",
        env_file=(PROJECT_ROOT / ".env", BACKEND_ROOT / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Paths
    data_dir: Path = BACKEND_ROOT / "data"
    uploads_dir: Path = BACKEND_ROOT / "data" / "uploads"
    # Root of the transcoding engine's working storage (one subdir per process)
    work_dir: Path = BACKEND_ROOT / "data" / "work"

    # CORS
    cors_origins: list[str] = ["http://localhost:5173", "http://127.0.0.1:5173"]

    # Transcoding engine
    ffmpeg_binary: str = "ffmpeg"
    ffprobe_binary: str = "ffprobe"
    transcode_timeout: float | None = 1800.0  # seconds per clip, None disables
    font_path: Path | None = None  # Caption/title font; system fonts are searched when unset

    # Input validation
    min_video_duration: float = 10.0  # seconds

    # Frame sampling for content analysis
    frame_sample_count: int = 24
    frame_max_width: int = 512

    # Gemini
    gemini_api_key: str | None = None
    gemini_model: str = "gemini-2.5-pro"
    gemini_light_model: str = "gemini-2.5-flash"
    gemini_timeout: int = 300  # seconds (read timeout for Gemini API; connect=10)


settings = Settings()
