"""Timeline data model: words, captions, media sources, segments, layout.

All times on words and captions are segment-local seconds: 0 is the first
visible frame of the (trimmed) segment they belong to.

Records are treated as immutable by the edit operations: an edit builds new
records with ``dataclasses.replace`` instead of mutating existing ones.
Persisted dicts use the camelCase keys of the stored project format.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any


def new_id(prefix: str = "") -> str:
    uid = uuid.uuid4().hex[:10]
    return f"{prefix}_{uid}" if prefix else uid


# ── Captions ─────────────────────────────────────────────────────────────────

@dataclass
class Word:
    text: str
    start_time: float
    end_time: float

    def shifted(self, offset: float) -> Word:
        return replace(self, start_time=self.start_time + offset, end_time=self.end_time + offset)

    def contains(self, t: float) -> bool:
        return self.start_time <= t <= self.end_time

    def to_dict(self) -> dict[str, Any]:
        return {"text": self.text, "startTime": self.start_time, "endTime": self.end_time}

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> Word:
        return cls(
            text=d.get("text", ""),
            start_time=float(d.get("startTime", 0.0)),
            end_time=float(d.get("endTime", 0.0)),
        )


@dataclass
class Caption:
    """A caption line with optional word-level timing for karaoke highlighting."""
    id: str
    segment_id: str
    text: str
    start_time: float
    end_time: float
    words: list[Word] = field(default_factory=list)

    def contains(self, t: float) -> bool:
        return self.start_time <= t <= self.end_time

    def strictly_contains(self, t: float) -> bool:
        return self.start_time < t < self.end_time

    def shifted(self, offset: float) -> Caption:
        """Copy with caption and word times moved by *offset* seconds."""
        return replace(
            self,
            start_time=self.start_time + offset,
            end_time=self.end_time + offset,
            words=[w.shifted(offset) for w in self.words],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "segmentId": self.segment_id,
            "text": self.text,
            "startTime": self.start_time,
            "endTime": self.end_time,
            "words": [w.to_dict() for w in self.words],
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> Caption:
        return cls(
            id=d.get("id") or new_id("cap"),
            segment_id=d.get("segmentId", ""),
            text=d.get("text", ""),
            start_time=float(d.get("startTime", 0.0)),
            end_time=float(d.get("endTime", 0.0)),
            words=[Word.from_dict(w) for w in d.get("words", [])],
        )


# ── Media & segments ─────────────────────────────────────────────────────────

@dataclass
class MediaSource:
    """Playable media handle as reported by the media probe."""
    name: str
    mime_type: str = "video/mp4"
    duration: float = 0.0
    size: int = 0
    width: int = 0
    height: int = 0
    path: Path | None = None


@dataclass
class Segment:
    """A trimmed view over a media source (a clip on the timeline)."""
    id: str
    original_duration: float
    trim_start: float = 0.0
    trim_end: float = 0.0
    media: MediaSource | None = None
    name: str = ""
    mime_type: str = ""

    def __post_init__(self) -> None:
        if self.media is not None:
            self.name = self.name or self.media.name
            self.mime_type = self.mime_type or self.media.mime_type

    @property
    def effective_duration(self) -> float:
        return self.original_duration - self.trim_start - self.trim_end

    def to_dict(self) -> dict[str, Any]:
        """Serializable subset; the binary media is never persisted."""
        return {
            "id": self.id,
            "name": self.name,
            "type": self.mime_type,
            "originalDuration": self.original_duration,
            "trimStart": self.trim_start,
            "trimEnd": self.trim_end,
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> Segment:
        return cls(
            id=d["id"],
            name=d.get("name", ""),
            mime_type=d.get("type", ""),
            original_duration=float(d.get("originalDuration", 0.0)),
            trim_start=float(d.get("trimStart", 0.0)),
            trim_end=float(d.get("trimEnd", 0.0)),
        )


@dataclass
class ClipLayout:
    """Placement of one segment on the global timeline (derived, never stored)."""
    segment_id: str
    timeline_start: float
    width: float  # % of total duration
    left: float   # % offset from timeline start

    def to_dict(self) -> dict[str, Any]:
        return {
            "segment_id": self.segment_id,
            "timeline_start": self.timeline_start,
            "width": self.width,
            "left": self.left,
        }
