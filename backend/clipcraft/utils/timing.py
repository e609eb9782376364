"""Timing utilities for transcript and scene processing.

Contains shared helpers for clamping timestamps and restricting a run to
the user-selected part of the source video.
"""

from typing import Sequence

from ..models import Scene, TimedLine


def clamp(value: float, low: float, high: float) -> float:
    """Clamp value into [low, high]."""
    return max(low, min(high, value))


def timeframe_bounds(duration: float, timeframe: tuple[float, float]) -> tuple[float, float]:
    """Convert a (start%, end%) timeframe into absolute seconds.

    Args:
        duration: Source video duration in seconds
        timeframe: Start and end as percentages of the duration (0-100)

    Returns:
        (start_seconds, end_seconds)

    Example:
        A 200s video with timeframe (25, 50) yields (50.0, 100.0).
    """
    start_pct, end_pct = timeframe
    return duration * start_pct / 100.0, duration * end_pct / 100.0


def lines_in_window(lines: Sequence[TimedLine], start: float, end: float) -> list[TimedLine]:
    """Lines lying entirely inside [start, end], in their original order."""
    return [line for line in lines if line.start >= start and line.end <= end]


def scenes_in_window(scenes: Sequence[Scene], start: float, end: float) -> list[Scene]:
    """Scenes restricted to [start, end].

    Scenes straddling a bound keep only the transcript lines inside the
    window; scenes left without any line are dropped.
    """
    kept: list[Scene] = []
    for scene in scenes:
        transcript = lines_in_window(scene.transcript, start, end)
        if not transcript:
            continue
        if len(transcript) == len(scene.transcript):
            kept.append(scene)
        else:
            kept.append(
                scene.model_copy(
                    update={
                        "transcript": transcript,
                        "start_time": max(scene.start_time, transcript[0].start),
                        "end_time": min(scene.end_time, transcript[-1].end),
                    }
                )
            )
    return kept
