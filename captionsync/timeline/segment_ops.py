"""Segment edit operations: split, trim, delete, add, activate, seek.

Each operation returns a new EditorState. When a precondition fails the
input state is returned unchanged (same object), so callers can detect a
no-op with ``new is old``.
"""

from __future__ import annotations

from dataclasses import replace

from captionsync.timeline.layout import from_global_time
from captionsync.timeline.models import MediaSource, Segment, new_id
from captionsync.timeline.state import EditorState
from captionsync.utils.logging import debug

DEFAULT_SPLIT_EPSILON = 0.05


def split_segment(state: EditorState, t: float,
                  epsilon: float = DEFAULT_SPLIT_EPSILON) -> EditorState:
    """Split the active segment at local time *t* into two adjacent segments.

    Captions starting at or after *t* move to the new second segment, shifted
    so their times stay relative to its start.
    """
    seg = state.active_segment
    if seg is None:
        return state
    if not epsilon < t < seg.effective_duration - epsilon:
        debug(f"split_segment: {t:.3f}s outside ({epsilon}, {seg.effective_duration - epsilon:.3f})")
        return state

    first = replace(seg, trim_end=seg.original_duration - (seg.trim_start + t))
    second = replace(seg, id=new_id("seg"), trim_start=seg.trim_start + t)

    captions = []
    for cap in state.captions:
        if cap.segment_id == seg.id and cap.start_time >= t:
            cap = replace(cap.shifted(-t), segment_id=second.id)
        captions.append(cap)

    i = state.active_index
    segments = state.segments[:i] + [first, second] + state.segments[i + 1:]
    return replace(state, segments=segments, captions=captions)


def trim_segment_start(state: EditorState, t: float) -> EditorState:
    """Cut the first *t* seconds of the active segment."""
    seg = state.active_segment
    if seg is None or t <= 0:
        return state
    new_trim_start = seg.trim_start + t
    if new_trim_start >= seg.original_duration - seg.trim_end:
        debug(f"trim_segment_start: {t:.3f}s would leave nothing of {seg.id}")
        return state

    captions = []
    for cap in state.captions:
        if cap.segment_id == seg.id:
            cap = cap.shifted(-t)
            if cap.end_time <= 0:
                continue
        captions.append(cap)

    segments = list(state.segments)
    segments[state.active_index] = replace(seg, trim_start=new_trim_start)
    return replace(state, segments=segments, captions=captions, local_time=0.0)


def trim_segment_end(state: EditorState, t: float) -> EditorState:
    """Make local time *t* the new end of the active segment.

    Captions ending after *t* are dropped, including ones that straddle it.
    """
    seg = state.active_segment
    if seg is None or t <= 0:
        return state
    new_trim_end = seg.original_duration - (seg.trim_start + t)
    if new_trim_end < 0:
        debug(f"trim_segment_end: {t:.3f}s is past the end of {seg.id}")
        return state

    captions = [
        c for c in state.captions
        if not (c.segment_id == seg.id and c.end_time > t)
    ]
    segments = list(state.segments)
    segments[state.active_index] = replace(seg, trim_end=new_trim_end)
    return replace(state, segments=segments, captions=captions, local_time=0.0)


def delete_segment(state: EditorState, index: int) -> EditorState:
    """Remove segment *index* and its captions. The last segment can't be deleted."""
    if len(state.segments) <= 1 or not 0 <= index < len(state.segments):
        return state
    seg = state.segments[index]
    segments = state.segments[:index] + state.segments[index + 1:]
    captions = [c for c in state.captions if c.segment_id != seg.id]

    active = state.active_index
    if active >= index:
        active = max(0, active - 1)
    selected = state.selected_caption_id
    if selected is not None and not any(c.id == selected for c in captions):
        selected = None
    return replace(state, segments=segments, captions=captions,
                   active_index=active, selected_caption_id=selected)


def add_segment(state: EditorState, media: MediaSource,
                segment_id: str | None = None) -> EditorState:
    """Append an untrimmed segment for *media* at the end of the timeline."""
    if media.duration <= 0:
        debug(f"add_segment: {media.name} has no duration")
        return state
    seg = Segment(id=segment_id or new_id("seg"), original_duration=media.duration, media=media)
    segments = state.segments + [seg]
    if not state.segments:
        return replace(state, segments=segments, active_index=0, local_time=0.0)
    return replace(state, segments=segments)


def activate_segment(state: EditorState, index: int) -> EditorState:
    if not 0 <= index < len(state.segments) or index == state.active_index:
        return state
    return replace(state, active_index=index, local_time=0.0)


def seek(state: EditorState, t: float) -> EditorState:
    """Move the playhead inside the active segment, clamped to its bounds."""
    seg = state.active_segment
    if seg is None:
        return state
    t = min(max(0.0, t), seg.effective_duration)
    if t == state.local_time:
        return state
    return replace(state, local_time=t)


def nudge(state: EditorState, delta: float) -> EditorState:
    return seek(state, state.local_time + delta)


def seek_global(state: EditorState, global_time: float) -> EditorState:
    """Move the playhead to a global timeline position (e.g. a timeline click)."""
    hit = from_global_time(state.layout, global_time)
    if hit is None:
        return state
    index, local = hit
    local = min(max(0.0, local), state.segments[index].effective_duration)
    if index == state.active_index and local == state.local_time:
        return state
    return replace(state, active_index=index, local_time=local)
