"""Tests for regrouping word timings into caption chunks."""

from __future__ import annotations

import pytest

from clipcraft.models import TimedLine, Word
from clipcraft.services.caption_chunker import chunk_captions


def _words(*spans: tuple[str, float, float]) -> list[Word]:
    return [Word(text=text, start=start, end=end) for text, start, end in spans]


def test_seven_words_in_chunks_of_three() -> None:
    """Chunk sizes are 3, 3, 1 and times come from first/last word."""
    line = TimedLine(
        text="one two three four five six seven",
        start=0.0,
        end=7.0,
        emoji="🔥",
        words=_words(*[(w, i, i + 1) for i, w in enumerate("one two three four five six seven".split())]),
    )

    chunks = chunk_captions([line], words_per_caption=3)

    assert [len(c.words) for c in chunks] == [3, 3, 1]
    assert [c.text for c in chunks] == ["one two three", "four five six", "seven"]
    assert [(c.start, c.end) for c in chunks] == [(0, 3), (3, 6), (6, 7)]
    assert all(c.emoji == "🔥" for c in chunks)


def test_word_times_are_clamped_into_their_line() -> None:
    """Words reported outside their parent line are pulled inside it."""
    line = TimedLine(
        text="early late",
        start=10.0,
        end=12.0,
        words=_words(("early", 9.0, 10.5), ("late", 11.5, 14.0)),
    )

    (chunk,) = chunk_captions([line], words_per_caption=4)

    assert chunk.start == 10.0
    assert chunk.end == 12.0
    assert chunk.words[0].start == 10.0
    assert chunk.words[1].end == 12.0


def test_emoji_comes_from_the_first_words_line() -> None:
    """A chunk spanning two lines carries the first line's emoji."""
    first = TimedLine(text="a b", start=0, end=2, emoji="😀", words=_words(("a", 0, 1), ("b", 1, 2)))
    second = TimedLine(text="c d", start=2, end=4, emoji="🚀", words=_words(("c", 2, 3), ("d", 3, 4)))

    chunks = chunk_captions([first, second], words_per_caption=3)

    assert [c.text for c in chunks] == ["a b c", "d"]
    assert [c.emoji for c in chunks] == ["😀", "🚀"]


def test_lines_without_words_are_spread_evenly() -> None:
    """Missing word timings are interpolated across the line."""
    line = TimedLine(text="alpha beta gamma delta", start=4.0, end=8.0)

    chunks = chunk_captions([line], words_per_caption=2)

    assert [c.text for c in chunks] == ["alpha beta", "gamma delta"]
    assert [(c.start, c.end) for c in chunks] == [(4.0, 6.0), (6.0, 8.0)]


def test_invalid_chunk_size_is_rejected() -> None:
    """At least one word per caption is required."""
    with pytest.raises(ValueError):
        chunk_captions([], words_per_caption=0)


def test_empty_transcript_gives_no_chunks() -> None:
    """No words, no captions."""
    assert chunk_captions([], words_per_caption=4) == []
