"""Timeline layout engine and time mapping.

Layout is a pure function of the ordered segment list and is recomputed on
every read; there is no cache to invalidate after an edit.
"""

from __future__ import annotations

from collections.abc import Sequence

from captionsync.timeline.models import ClipLayout, Segment


def total_duration(segments: Sequence[Segment]) -> float:
    return sum(s.effective_duration for s in segments)


def compute_layout(segments: Sequence[Segment]) -> list[ClipLayout]:
    """Place each segment on the global timeline, in segment order.

    Returns an empty list when the total effective duration is zero.
    """
    total = total_duration(segments)
    if total <= 0:
        return []

    layout = []
    cursor = 0.0
    for seg in segments:
        dur = seg.effective_duration
        layout.append(ClipLayout(
            segment_id=seg.id,
            timeline_start=cursor,
            width=dur / total * 100,
            left=cursor / total * 100,
        ))
        cursor += dur
    return layout


def to_global_time(layout: Sequence[ClipLayout], index: int, local_time: float) -> float:
    """Segment-local time of segment *index* → global timeline time."""
    if not 0 <= index < len(layout):
        return local_time
    return layout[index].timeline_start + local_time


def from_global_time(layout: Sequence[ClipLayout], global_time: float) -> tuple[int, float] | None:
    """Global timeline time → ``(segment index, local time)``.

    The owner is the last entry starting at or before *global_time*; times
    before zero belong to the first segment.
    """
    if not layout:
        return None
    index = 0
    for i, entry in enumerate(layout):
        if entry.timeline_start <= global_time:
            index = i
        else:
            break
    return index, global_time - layout[index].timeline_start


def media_time(segment: Segment, local_time: float) -> float:
    """Position in the source media for a segment-local time."""
    return segment.trim_start + local_time
