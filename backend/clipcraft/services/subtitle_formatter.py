"""SRT caption documents for burn-in."""

from __future__ import annotations

import re
from typing import Iterable

from ..models import TimedLine

_TIMESTAMP_RE = re.compile(r"(\d+):(\d{2}):(\d{2})[,.](\d{3})")
_CUE_TIMING_RE = re.compile(
    r"^\s*(\d+:\d{2}:\d{2}[,.]\d{3})\s*-->\s*(\d+:\d{2}:\d{2}[,.]\d{3})"
)


def format_timestamp(seconds: float) -> str:
    """Format seconds as an SRT timestamp (HH:MM:SS,mmm)."""
    total_ms = max(0, int(round(seconds * 1000)))
    hours, rest = divmod(total_ms, 3_600_000)
    minutes, rest = divmod(rest, 60_000)
    secs, millis = divmod(rest, 1000)
    return f"{hours:02d}:{minutes:02d}:{secs:02d},{millis:03d}"


def parse_timestamp(value: str) -> float:
    """Parse an SRT timestamp back into seconds."""
    match = _TIMESTAMP_RE.fullmatch(value.strip())
    if not match:
        raise ValueError(f"Invalid SRT timestamp: {value!r}")
    hours, minutes, secs, millis = (int(part) for part in match.groups())
    return hours * 3600 + minutes * 60 + secs + millis / 1000


def format_srt(lines: Iterable[TimedLine]) -> str:
    """
    Build an SRT document, one cue per line.

    The whole line text is shown for the cue's duration; word-level styling
    comes from the chunked transcript, not from the document.
    """
    blocks = []
    for index, line in enumerate(lines, start=1):
        text = line.text.strip()
        blocks.append(
            f"{index}\n{format_timestamp(line.start)} --> {format_timestamp(line.end)}\n{text}\n"
        )
    return "\n".join(blocks)


def parse_srt(content: str) -> list[TimedLine]:
    """Parse an SRT document into timed lines (cue numbers are ignored)."""
    lines: list[TimedLine] = []
    for block in re.split(r"\r?\n\s*\r?\n", content.strip()):
        rows = [row for row in block.splitlines() if row.strip()]
        timing_index = next(
            (i for i, row in enumerate(rows) if _CUE_TIMING_RE.match(row)), None
        )
        if timing_index is None:
            continue
        start, end = _CUE_TIMING_RE.match(rows[timing_index]).groups()
        text = "\n".join(rows[timing_index + 1 :])
        lines.append(TimedLine(text=text, start=parse_timestamp(start), end=parse_timestamp(end)))
    return lines
