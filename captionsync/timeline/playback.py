"""Playback sync: active caption and karaoke word for a playback time."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from captionsync.timeline.layout import media_time, to_global_time
from captionsync.timeline.models import Caption
from captionsync.timeline.state import EditorState


@dataclass
class PlaybackCue:
    local_time: float
    global_time: float
    media_time: float = 0.0  # position in the source file
    caption: Caption | None = None
    word_index: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "local_time": self.local_time,
            "global_time": self.global_time,
            "media_time": self.media_time,
            "caption": self.caption.to_dict() if self.caption else None,
            "word_index": self.word_index,
        }


def find_active_caption(captions: Sequence[Caption], segment_id: str, t: float) -> Caption | None:
    """First caption of *segment_id* whose closed range contains *t*."""
    for cap in captions:
        if cap.segment_id == segment_id and cap.contains(t):
            return cap
    return None


def find_active_word(caption: Caption, t: float) -> int | None:
    for i, word in enumerate(caption.words):
        if word.contains(t):
            return i
    return None


def resolve_playback(state: EditorState, t: float | None = None) -> PlaybackCue:
    """Resolve what is on screen at local time *t* (default: the playhead)."""
    t = state.local_time if t is None else t
    global_time = to_global_time(state.layout, state.active_index, t)
    seg = state.active_segment
    if seg is None:
        return PlaybackCue(local_time=t, global_time=global_time)

    caption = find_active_caption(state.captions, seg.id, t)
    word_index = None
    if caption is not None and state.settings.karaoke_enabled:
        word_index = find_active_word(caption, t)
    return PlaybackCue(local_time=t, global_time=global_time, media_time=media_time(seg, t),
                       caption=caption, word_index=word_index)
