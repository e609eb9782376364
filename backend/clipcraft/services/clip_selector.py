"""
Candidate scoring and top-K clip selection.

Two candidate sources are supported:
- scenes from the analysis model, ranked by their virality score;
- groups cut from a flat transcript by the segmenter, ranked by a local
  keyword/length score.
"""

from __future__ import annotations

import logging
from typing import Callable, Sequence

from ..errors import NoClipWorthyContentError
from ..models import CandidateClip, ClipLength, ProcessingConfig, Scene, TimedLine
from .scene_segmenter import group_duration, segment_transcript

logger = logging.getLogger("uvicorn.error")


# Attention-grabbing terms (English, Spanish, Hindi). Multi-word entries match as phrases.
HOOK_KEYWORDS: tuple[str, ...] = (
    "amazing", "secret", "best", "hack", "tip", "reveal", "shocking",
    "insane", "crazy", "believe", "watch this",
    "increíble", "secreto", "mejor", "truco", "revelar", "impactante",
    "loco", "creer", "mira esto",
    "अद्भुत", "रहस्य", "सबसे अच्छा", "टिप", "खुलासा", "चौंकाने वाला",
    "पागल", "विश्वास", "यह देखो",
)

KEYWORD_WEIGHT = 5.0
KEYWORD_FACTOR = 0.5
LINE_COUNT_FACTOR = 0.2
LENGTH_FIT_FACTOR = 0.3


def count_keyword_hits(text: str, keywords: Sequence[str] = HOOK_KEYWORDS) -> int:
    """Number of vocabulary terms present in the text (case-insensitive)."""
    lower = text.lower()
    return sum(1 for keyword in keywords if keyword in lower)


def length_fit(duration: float, target_duration: float) -> float:
    """1.0 for a perfect fit, decreasing linearly; negative for very poor fits."""
    return 1 - abs(duration - target_duration) / target_duration


def score_group(
    lines: Sequence[TimedLine],
    target_duration: float,
    keyword_weight: float = KEYWORD_WEIGHT,
) -> float:
    text = " ".join(line.text for line in lines)
    hits = count_keyword_hits(text)
    return (
        KEYWORD_FACTOR * hits * keyword_weight
        + LINE_COUNT_FACTOR * len(lines)
        + LENGTH_FIT_FACTOR * length_fit(group_duration(lines), target_duration)
    )


def select_top(
    candidates: Sequence[CandidateClip],
    k: int,
    key: Callable[[CandidateClip], float] = lambda c: c.score,
) -> list[CandidateClip]:
    """
    Return the K best candidates, best first.

    ``sorted`` is stable, so ties keep their input (chronological) order.
    """
    if k <= 0:
        return []
    return sorted(candidates, key=key, reverse=True)[:k]


def select_from_transcript(
    lines: Sequence[TimedLine],
    config: ProcessingConfig,
) -> list[CandidateClip]:
    """Segment a flat transcript, score each group and keep the top K."""
    min_duration, max_duration = config.clip_length.window
    target = config.clip_length.target

    groups = segment_transcript(lines, min_duration, max_duration)
    logger.info(
        "Segmented %d transcript lines into %d group(s) for window %.0f-%.0fs",
        len(lines), len(groups), min_duration, max_duration,
    )
    if not groups:
        raise NoClipWorthyContentError(
            f"No part of the transcript forms a {min_duration:.0f}-{max_duration:.0f}s clip"
        )

    candidates = [CandidateClip(lines=group, score=score_group(group, target)) for group in groups]
    return select_top(candidates, config.max_clips)


def select_from_scenes(
    scenes: Sequence[Scene],
    config: ProcessingConfig,
) -> list[CandidateClip]:
    """
    Rank analysed scenes by virality and keep the top K.

    Scenes are first filtered to the configured length band. When no scene
    fits the band the whole scene pool is ranked instead of returning nothing.
    """
    pool = [
        CandidateClip(lines=list(scene.transcript), score=scene.virality_score)
        for scene in scenes
        if scene.transcript
    ]
    if not pool:
        raise NoClipWorthyContentError()
    pool.sort(key=lambda c: c.start)

    if config.clip_length is ClipLength.ORIGINAL:
        in_band = pool
    else:
        min_duration, max_duration = config.clip_length.window
        in_band = [c for c in pool if min_duration <= c.duration <= max_duration]
        if not in_band:
            logger.warning(
                "No scene fits %.0f-%.0fs; ranking all %d scene(s) instead",
                min_duration, max_duration, len(pool),
            )
            in_band = pool

    return select_top(in_band, config.max_clips)
