"""Project snapshot: the persisted form of an editing session.

Segments are stored without their media: on reload the user re-supplies the
files, which are matched to segments by position and checked by name only.
"""

from __future__ import annotations

import json
import time
from dataclasses import dataclass, field, replace
from typing import Any

from captionsync.timeline.models import Caption, MediaSource, Segment
from captionsync.timeline.settings import CaptionSettings
from captionsync.timeline.state import EditorState


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class Project:
    id: str
    segments: list[Segment] = field(default_factory=list)
    captions: list[Caption] = field(default_factory=list)
    settings: CaptionSettings = field(default_factory=CaptionSettings)
    last_modified: int = 0

    @property
    def name(self) -> str:
        return self.segments[0].name if self.segments else self.id

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "segments": [s.to_dict() for s in self.segments],
            "captions": [c.to_dict() for c in self.captions],
            "settings": self.settings.to_dict(),
            "lastModified": self.last_modified,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2, ensure_ascii=False)

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> Project:
        return cls(
            id=d["id"],
            segments=[Segment.from_dict(s) for s in d.get("segments", [])],
            captions=[Caption.from_dict(c) for c in d.get("captions", [])],
            settings=CaptionSettings.from_dict(d.get("settings", {})),
            last_modified=int(d.get("lastModified", d.get("lastModifiedTimestamp", 0))),
        )


def build_snapshot(state: EditorState, timestamp: int | None = None) -> Project | None:
    """Snapshot the persistent part of *state*; None before a project exists."""
    if state.project_id is None:
        return None
    return Project(
        id=state.project_id,
        segments=list(state.segments),
        captions=list(state.captions),
        settings=state.settings,
        last_modified=now_ms() if timestamp is None else timestamp,
    )


# ── Restore ──────────────────────────────────────────────────────────────────

@dataclass
class ReloadWarning:
    segment_id: str
    expected: str
    got: str

    @property
    def message(self) -> str:
        return f"Segment {self.segment_id} was '{self.expected}' but '{self.got}' was supplied"

    def to_dict(self) -> dict[str, str]:
        return {"segment_id": self.segment_id, "expected": self.expected,
                "got": self.got, "message": self.message}


def check_media(project: Project, media: list[MediaSource]) -> list[ReloadWarning]:
    """Compare re-supplied files with the stored segment names, by position."""
    return [
        ReloadWarning(segment_id=seg.id, expected=seg.name, got=m.name)
        for seg, m in zip(project.segments, media)
        if seg.name and m.name != seg.name
    ]


def restore_state(project: Project, media: list[MediaSource]) -> EditorState:
    """Rebuild an editor state from *project*, attaching *media* by position.

    Segments without a supplied file are left without media.
    """
    segments = [
        replace(seg, media=media[i] if i < len(media) else None)
        for i, seg in enumerate(project.segments)
    ]
    return EditorState(
        segments=segments,
        captions=list(project.captions),
        settings=project.settings,
        project_id=project.id,
    )
