"""Caption generation interface: all backends implement this contract.

A backend takes a media source and returns its captions, each with
word-level timestamps in seconds from the start of the source file. The
session moves them into the segment's local time when it merges them.
Backends raise ``TranscriptionError`` on any failure.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from captionsync.timeline.models import Caption, MediaSource


class CaptionGenerator(ABC):
    name: str = "base"

    @abstractmethod
    async def generate(self, media: MediaSource, segment_id: str) -> list[Caption]:
        ...

    def check_available(self) -> tuple[bool, str]:
        return True, "OK"
