"""EditorState: the single state container every edit operation works on.

Edit operations take a state and return a new one (or the very same object
when their preconditions fail). Layout and the global playhead are derived
on read.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from captionsync.timeline.layout import compute_layout, to_global_time, total_duration
from captionsync.timeline.models import Caption, ClipLayout, Segment
from captionsync.timeline.settings import CaptionSettings, text_stroke_css


@dataclass
class EditorState:
    segments: list[Segment] = field(default_factory=list)
    captions: list[Caption] = field(default_factory=list)
    active_index: int = 0
    local_time: float = 0.0  # playback position inside the active segment
    settings: CaptionSettings = field(default_factory=CaptionSettings)
    project_id: str | None = None
    selected_caption_id: str | None = None
    loading: bool = False
    error: str | None = None

    @property
    def active_segment(self) -> Segment | None:
        if 0 <= self.active_index < len(self.segments):
            return self.segments[self.active_index]
        return None

    @property
    def layout(self) -> list[ClipLayout]:
        return compute_layout(self.segments)

    @property
    def duration(self) -> float:
        return total_duration(self.segments)

    @property
    def global_time(self) -> float:
        return to_global_time(self.layout, self.active_index, self.local_time)

    def segment_index(self, segment_id: str) -> int:
        for i, seg in enumerate(self.segments):
            if seg.id == segment_id:
                return i
        return -1

    def captions_for(self, segment_id: str) -> list[Caption]:
        return [c for c in self.captions if c.segment_id == segment_id]

    def find_caption(self, caption_id: str) -> Caption | None:
        return next((c for c in self.captions if c.id == caption_id), None)

    def to_dict(self) -> dict:
        return {
            "project_id": self.project_id,
            "segments": [s.to_dict() for s in self.segments],
            "captions": [c.to_dict() for c in self.captions],
            "layout": [entry.to_dict() for entry in self.layout],
            "active_index": self.active_index,
            "local_time": self.local_time,
            "global_time": self.global_time,
            "duration": self.duration,
            "settings": self.settings.to_dict(),
            "text_stroke_css": text_stroke_css(self.settings),
            "selected_caption_id": self.selected_caption_id,
            "loading": self.loading,
            "error": self.error,
        }
