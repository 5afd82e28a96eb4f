"""Exceptions raised across captionsync."""

from __future__ import annotations


class CaptionSyncError(Exception):
    """Base class for all captionsync errors."""


class TranscriptionError(CaptionSyncError):
    """The caption-generation service failed or returned unusable data."""


class MediaProbeError(CaptionSyncError):
    """A media file could not be probed for its duration."""


class ProjectNotFoundError(CaptionSyncError):
    def __init__(self, project_id: str):
        super().__init__(f"Project not found: {project_id}")
        self.project_id = project_id
