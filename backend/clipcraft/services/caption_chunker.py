"""Regroups word timings into fixed-size caption chunks for word-highlight templates."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from ..models import TimedLine, Word
from ..utils.timing import clamp


@dataclass
class _PlacedWord:
    text: str
    start: float
    end: float
    emoji: str | None


def _line_words(line: TimedLine) -> list[_PlacedWord]:
    """Words of one line, clamped into the line's span."""
    if line.words:
        placed = []
        for word in line.words:
            start = clamp(word.start, line.start, line.end)
            end = clamp(word.end, start, line.end)
            placed.append(_PlacedWord(word.text.strip(), start, end, line.emoji))
        return [w for w in placed if w.text]

    # No word timings: spread the line's words evenly across it
    tokens = line.text.split()
    if not tokens:
        return []
    step = line.duration / len(tokens)
    return [
        _PlacedWord(token, line.start + i * step, line.start + (i + 1) * step, line.emoji)
        for i, token in enumerate(tokens)
    ]


def chunk_captions(lines: Sequence[TimedLine], words_per_caption: int) -> list[TimedLine]:
    """
    Rebuild a transcript as captions of ``words_per_caption`` words each.

    Each chunk takes its timing from its first and last word and inherits the
    emoji of the first word's line. The last chunk may be shorter.
    """
    if words_per_caption < 1:
        raise ValueError(f"words_per_caption must be >= 1, got {words_per_caption}")

    words = [w for line in lines for w in _line_words(line)]
    # Stable: words that share a start keep transcript order
    words.sort(key=lambda w: w.start)

    chunks: list[TimedLine] = []
    for i in range(0, len(words), words_per_caption):
        chunk = words[i : i + words_per_caption]
        first, last = chunk[0], chunk[-1]
        chunks.append(
            TimedLine(
                text=" ".join(w.text for w in chunk),
                start=first.start,
                end=last.end,
                emoji=first.emoji,
                words=[Word(text=w.text, start=w.start, end=w.end) for w in chunk],
            )
        )
    return chunks
