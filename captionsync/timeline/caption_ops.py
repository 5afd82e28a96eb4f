"""Caption edit operations: split, add, update, shift, delete, select, merge.

Same contract as the segment operations: a new EditorState on success, the
input state object itself when the edit doesn't apply.

Word timestamps are not validated against their caption's range; keeping
them nested and non-overlapping is up to whoever produces them.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from dataclasses import replace

from captionsync.timeline.models import Caption, new_id
from captionsync.timeline.state import EditorState
from captionsync.utils.logging import debug

DEFAULT_CAPTION_GAP = 0.1
DEFAULT_CAPTION_DURATION = 2.0
DEFAULT_CAPTION_TEXT = "New Caption"

_RANGE_EPSILON = 1e-6


def split_caption(state: EditorState, split_point: float) -> EditorState:
    """Split the active segment's caption under *split_point* at a word boundary.

    The word containing *split_point* starts the second half. Word ranges are
    half-open here, so a point on a word boundary belongs to the word that
    starts there. Without such a word the split falls after the last word,
    which leaves the second half empty and makes this a no-op.
    """
    seg = state.active_segment
    if seg is None:
        return state
    index = next(
        (i for i, c in enumerate(state.captions)
         if c.segment_id == seg.id and c.strictly_contains(split_point)),
        -1,
    )
    if index == -1:
        return state

    original = state.captions[index]
    word_index = next(
        (i for i, w in enumerate(original.words) if w.start_time <= split_point < w.end_time),
        len(original.words),
    )
    first_words = original.words[:word_index]
    second_words = original.words[word_index:]
    if not first_words or not second_words:
        debug(f"split_caption: {split_point:.3f}s leaves an empty half in {original.id}")
        return state

    first = replace(
        original, id=new_id("cap"), end_time=split_point,
        text=" ".join(w.text for w in first_words), words=list(first_words),
    )
    second = replace(
        original, id=new_id("cap"), start_time=split_point,
        text=" ".join(w.text for w in second_words), words=list(second_words),
    )
    captions = state.captions[:index] + [first, second] + state.captions[index + 1:]
    selected = state.selected_caption_id
    if selected == original.id:
        selected = first.id
    return replace(state, captions=captions, selected_caption_id=selected)


def add_caption(state: EditorState, *,
                gap: float = DEFAULT_CAPTION_GAP,
                duration: float = DEFAULT_CAPTION_DURATION,
                text: str = DEFAULT_CAPTION_TEXT) -> EditorState:
    """Append a placeholder caption to the active segment.

    It starts *gap* seconds after the segment's last caption, or at the
    playhead when the segment has no captions yet.
    """
    seg = state.active_segment
    if seg is None:
        return state
    existing = state.captions_for(seg.id)
    start = existing[-1].end_time + gap if existing else state.local_time
    caption = Caption(
        id=new_id("cap"),
        segment_id=seg.id,
        text=text,
        start_time=round(start, 2),
        end_time=round(start + duration, 2),
    )
    return replace(state, captions=state.captions + [caption])


def update_caption_text(state: EditorState, caption_id: str, text: str) -> EditorState:
    """Replace a caption's text; timings and words are left as they are."""
    cap = state.find_caption(caption_id)
    if cap is None or cap.text == text:
        return state
    return _replace_caption(state, replace(cap, text=text))


def update_caption_timing(state: EditorState, caption_id: str,
                          start_time: float | None = None,
                          end_time: float | None = None) -> EditorState:
    cap = state.find_caption(caption_id)
    if cap is None:
        return state
    start = cap.start_time if start_time is None else start_time
    end = cap.end_time if end_time is None else end_time
    if not (math.isfinite(start) and math.isfinite(end)) or start < 0 or start >= end:
        debug(f"update_caption_timing: rejected [{start}, {end}] for {caption_id}")
        return state
    if start == cap.start_time and end == cap.end_time:
        return state
    return _replace_caption(state, replace(cap, start_time=start, end_time=end))


def shift_captions(state: EditorState, segment_id: str, offset: float,
                   caption_ids: Iterable[str] | None = None) -> EditorState:
    """Move captions of *segment_id* (optionally only *caption_ids*) by *offset* seconds.

    Times are clamped at zero, word times included.
    """
    if offset == 0 or state.segment_index(segment_id) == -1:
        return state
    only = set(caption_ids) if caption_ids is not None else None
    changed = False
    captions = []
    for cap in state.captions:
        if cap.segment_id == segment_id and (only is None or cap.id in only):
            cap = _clamped(cap.shifted(offset))
            changed = True
        captions.append(cap)
    if not changed:
        return state
    return replace(state, captions=captions)


def delete_caption(state: EditorState, caption_id: str) -> EditorState:
    captions = [c for c in state.captions if c.id != caption_id]
    if len(captions) == len(state.captions):
        return state
    selected = None if state.selected_caption_id == caption_id else state.selected_caption_id
    return replace(state, captions=captions, selected_caption_id=selected)


def select_caption(state: EditorState, caption_id: str) -> EditorState:
    """Select a caption and move the playhead to its start on its segment."""
    cap = state.find_caption(caption_id)
    if cap is None:
        return state
    index = state.segment_index(cap.segment_id)
    if index == -1:
        return state
    return replace(state, selected_caption_id=cap.id, active_index=index,
                   local_time=cap.start_time)


def merge_generated_captions(state: EditorState, segment_id: str,
                             generated: Sequence[Caption]) -> EditorState:
    """Replace *segment_id*'s captions with freshly generated ones.

    Generated times are positions in the source media. They are moved into
    the segment's local time using the segment as it is now, and captions
    not fully inside its kept range are dropped, like the ones a trim cuts.

    Results for a segment deleted while generation was running are dropped.
    Captions of other segments, including edits made in the meantime, are
    kept as they are.
    """
    index = state.segment_index(segment_id)
    if index == -1:
        debug(f"merge_generated_captions: segment {segment_id} no longer exists")
        return state
    seg = state.segments[index]
    duration = seg.effective_duration

    incoming = []
    for cap in generated:
        cap = replace(cap, segment_id=segment_id).shifted(-seg.trim_start)
        if cap.start_time < -_RANGE_EPSILON or cap.end_time > duration + _RANGE_EPSILON:
            continue
        incoming.append(cap)
    if len(incoming) < len(generated):
        debug(f"merge_generated_captions: {len(generated) - len(incoming)} captions "
              f"outside {segment_id}")
    incoming.sort(key=lambda c: c.start_time)
    kept = [c for c in state.captions if c.segment_id != segment_id]
    return replace(state, captions=kept + incoming)


def _replace_caption(state: EditorState, caption: Caption) -> EditorState:
    captions = [caption if c.id == caption.id else c for c in state.captions]
    return replace(state, captions=captions)


def _clamped(cap: Caption) -> Caption:
    return replace(
        cap,
        start_time=max(0.0, cap.start_time),
        end_time=max(0.0, cap.end_time),
        words=[replace(w, start_time=max(0.0, w.start_time), end_time=max(0.0, w.end_time))
               for w in cap.words],
    )
