"""Pydantic schemas for API request models."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field

from captionsync.timeline.settings import (
    AspectRatio,
    CaptionAnimation,
    FontStyle,
    SettingsPatch,
    TextAlign,
    TextDecoration,
    TextTransform,
)


# ── Enums ─────────────────────────────────────────────────────────────────────

class ToggleEnum(str, Enum):
    text_shadow_enabled = "text_shadow_enabled"
    text_background_enabled = "text_background_enabled"
    text_stroke_enabled = "text_stroke_enabled"
    karaoke_enabled = "karaoke_enabled"


# ── Requests ──────────────────────────────────────────────────────────────────

class TimeRequest(BaseModel):
    """A segment-local time; omitted means the current playhead."""
    t: float | None = None


class TickRequest(BaseModel):
    t: float = Field(..., ge=0.0)


class IndexRequest(BaseModel):
    index: int = Field(..., ge=0)


class NudgeRequest(BaseModel):
    forward: bool = True


class CaptionTextUpdate(BaseModel):
    text: str


class CaptionTimingUpdate(BaseModel):
    start_time: float | None = None
    end_time: float | None = None


class ShiftRequest(BaseModel):
    offset: float
    segment_id: str | None = None
    caption_ids: list[str] | None = None


class PlaybackRateRequest(BaseModel):
    rate: float


class SettingsUpdate(BaseModel):
    font_family: str | None = None
    font_size: int | None = Field(default=None, gt=0)
    text_color: str | None = None
    font_weight: int | None = Field(default=None, ge=100, le=900)
    font_style: FontStyle | None = None
    text_decoration: TextDecoration | None = None
    text_transform: TextTransform | None = None
    letter_spacing: float | None = None
    line_height: float | None = Field(default=None, gt=0)
    text_align: TextAlign | None = None
    caption_max_width: int | None = Field(default=None, gt=0, le=100)
    text_shadow_enabled: bool | None = None
    text_background_enabled: bool | None = None
    text_background_color: str | None = None
    text_stroke_enabled: bool | None = None
    text_stroke_color: str | None = None
    text_stroke_width: int | None = Field(default=None, ge=0)
    canvas_aspect_ratio: AspectRatio | None = None
    caption_animation: CaptionAnimation | None = None
    karaoke_enabled: bool | None = None
    karaoke_color: str | None = None

    def to_patch(self) -> SettingsPatch:
        return SettingsPatch(**self.model_dump())
