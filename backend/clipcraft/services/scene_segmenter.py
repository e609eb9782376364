"""Groups a flat transcript into contiguous runs bounded by a duration window."""

from __future__ import annotations

from typing import Sequence

from ..models import TimedLine


def group_duration(lines: Sequence[TimedLine]) -> float:
    """Span of a group: last line's end minus first line's start."""
    if not lines:
        return 0.0
    return lines[-1].end - lines[0].start


def segment_transcript(
    lines: Sequence[TimedLine],
    min_duration: float,
    max_duration: float,
) -> list[list[TimedLine]]:
    """
    Split a chronologically ordered transcript into disjoint line groups.

    Lines are accumulated greedily. When the next line would push the running
    group past ``max_duration``:
    - a group that already reaches ``min_duration`` is emitted and the next
      group starts empty;
    - a group that is still too short loses its oldest half, repeatedly,
      until the line fits (halve-and-retry).

    The final group is emitted only if it reaches ``min_duration``. A line that
    is longer than ``max_duration`` on its own never ends up in a group.

    Args:
        lines: Transcript lines sorted by start time
        min_duration: Shortest acceptable group, in seconds
        max_duration: Longest acceptable group, in seconds

    Returns:
        Groups ordered by start time. Empty when nothing reaches min_duration;
        callers are expected to apply their own fallback.
    """
    if min_duration > max_duration:
        raise ValueError(f"min_duration ({min_duration}) exceeds max_duration ({max_duration})")

    groups: list[list[TimedLine]] = []
    current: list[TimedLine] = []

    for line in lines:
        if line.duration > max_duration:
            # Cannot fit in any group; it also breaks contiguity
            if group_duration(current) >= min_duration:
                groups.append(current)
            current = []
            continue

        if current and line.end - current[0].start > max_duration:
            if group_duration(current) >= min_duration:
                groups.append(current)
                current = []
            else:
                while current and line.end - current[0].start > max_duration:
                    current = current[len(current) // 2 :] if len(current) > 1 else []

        current.append(line)

    if current and group_duration(current) >= min_duration:
        groups.append(current)

    return groups
