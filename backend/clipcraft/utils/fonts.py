"""Locates the font file burned-in captions and titles are drawn with."""

import logging
from pathlib import Path

from PIL import ImageFont

from ..config import settings
from ..errors import StagingError

logger = logging.getLogger("uvicorn.error")

FONT_CANDIDATES = [
    # Arch Linux / common paths
    "/usr/share/fonts/noto/NotoSans-Bold.ttf",
    "/usr/share/fonts/TTF/Impact.ttf",
    "/usr/share/fonts/gnu-free/FreeSansBold.otf",
    # Ubuntu / Debian paths
    "/usr/share/fonts/truetype/noto/NotoSans-Bold.ttf",
    "/usr/share/fonts/truetype/msttcorefonts/Impact.ttf",
    "/usr/share/fonts/truetype/liberation/LiberationSans-Bold.ttf",
    "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf",
    # macOS
    "/System/Library/Fonts/Supplemental/Arial Bold.ttf",
    "/Library/Fonts/Arial Bold.ttf",
]


def resolve_font_path(preferred: Path | None = None) -> Path:
    """Configured font if set, else the first installed system font."""
    configured = preferred or settings.font_path
    if configured is not None:
        if not configured.is_file():
            raise StagingError(f"Configured font not found: {configured}")
        return configured

    for candidate in FONT_CANDIDATES:
        path = Path(candidate)
        if path.is_file():
            return path

    raise StagingError("No caption font found; set CLIPCRAFT_FONT_PATH")


def font_family(path: Path) -> str | None:
    """
    Family name stored in a font file, e.g. "DejaVu Sans".

    libass matches subtitle fonts by this name. Returns None when the file
    cannot be read.
    """
    try:
        family, _style = ImageFont.truetype(str(path), size=12).getname()
    except OSError as exc:
        logger.warning("Could not read font family from %s: %s", path, exc)
        return None
    return family or None
