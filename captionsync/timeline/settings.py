"""Caption style settings, style presets and the explicit settings merge.

Every setting is a typed field. Presets and user edits are expressed as a
``SettingsPatch`` (all fields optional) and applied with ``merge_settings``,
so a renamed setting breaks loudly instead of silently being ignored.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields, replace
from typing import Any, Literal

FontStyle = Literal["normal", "italic"]
TextDecoration = Literal["none", "underline"]
TextTransform = Literal["none", "uppercase", "lowercase", "capitalize"]
TextAlign = Literal["left", "center", "right"]
AspectRatio = Literal["16:9", "9:16", "1:1"]
CaptionAnimation = Literal["none", "fade", "pop", "slide"]

FONTS: dict[str, str] = {
    "Manrope": "'Manrope', sans-serif",
    "Inter": "'Inter', sans-serif",
    "Poppins": "'Poppins', sans-serif",
    "Roboto": "'Roboto', sans-serif",
    "Montserrat": "'Montserrat', sans-serif",
}

PLAYBACK_RATES = (0.5, 1.0, 1.5, 2.0)


@dataclass
class CaptionSettings:
    # Style
    font_family: str = FONTS["Manrope"]
    font_size: int = 48
    text_color: str = "#FFFFFF"
    font_weight: int = 700
    font_style: FontStyle = "normal"
    text_decoration: TextDecoration = "none"
    text_transform: TextTransform = "none"
    letter_spacing: float = 0.0
    line_height: float = 1.2
    # Layout
    text_align: TextAlign = "center"
    caption_max_width: int = 90  # percent of frame width
    text_shadow_enabled: bool = True
    text_background_enabled: bool = False
    text_background_color: str = "rgba(0, 0, 0, 0.5)"
    text_stroke_enabled: bool = False
    text_stroke_color: str = "#000000"
    text_stroke_width: int = 2
    # Format
    canvas_aspect_ratio: AspectRatio = "16:9"
    # Animate
    caption_animation: CaptionAnimation = "fade"
    karaoke_enabled: bool = True
    karaoke_color: str = "#2563eb"
    # Playback
    playback_rate: float = 1.0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> CaptionSettings:
        # Only pick known fields
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in d.items() if k in known})


@dataclass
class SettingsPatch:
    font_family: str | None = None
    font_size: int | None = None
    text_color: str | None = None
    font_weight: int | None = None
    font_style: FontStyle | None = None
    text_decoration: TextDecoration | None = None
    text_transform: TextTransform | None = None
    letter_spacing: float | None = None
    line_height: float | None = None
    text_align: TextAlign | None = None
    caption_max_width: int | None = None
    text_shadow_enabled: bool | None = None
    text_background_enabled: bool | None = None
    text_background_color: str | None = None
    text_stroke_enabled: bool | None = None
    text_stroke_color: str | None = None
    text_stroke_width: int | None = None
    canvas_aspect_ratio: AspectRatio | None = None
    caption_animation: CaptionAnimation | None = None
    karaoke_enabled: bool | None = None
    karaoke_color: str | None = None
    playback_rate: float | None = None


def merge_settings(settings: CaptionSettings, patch: SettingsPatch) -> CaptionSettings:
    """Return *settings* with every non-None field of *patch* applied."""
    return CaptionSettings(
        font_family=_pick(patch.font_family, settings.font_family),
        font_size=_pick(patch.font_size, settings.font_size),
        text_color=_pick(patch.text_color, settings.text_color),
        font_weight=_pick(patch.font_weight, settings.font_weight),
        font_style=_pick(patch.font_style, settings.font_style),
        text_decoration=_pick(patch.text_decoration, settings.text_decoration),
        text_transform=_pick(patch.text_transform, settings.text_transform),
        letter_spacing=_pick(patch.letter_spacing, settings.letter_spacing),
        line_height=_pick(patch.line_height, settings.line_height),
        text_align=_pick(patch.text_align, settings.text_align),
        caption_max_width=_pick(patch.caption_max_width, settings.caption_max_width),
        text_shadow_enabled=_pick(patch.text_shadow_enabled, settings.text_shadow_enabled),
        text_background_enabled=_pick(patch.text_background_enabled, settings.text_background_enabled),
        text_background_color=_pick(patch.text_background_color, settings.text_background_color),
        text_stroke_enabled=_pick(patch.text_stroke_enabled, settings.text_stroke_enabled),
        text_stroke_color=_pick(patch.text_stroke_color, settings.text_stroke_color),
        text_stroke_width=_pick(patch.text_stroke_width, settings.text_stroke_width),
        canvas_aspect_ratio=_pick(patch.canvas_aspect_ratio, settings.canvas_aspect_ratio),
        caption_animation=_pick(patch.caption_animation, settings.caption_animation),
        karaoke_enabled=_pick(patch.karaoke_enabled, settings.karaoke_enabled),
        karaoke_color=_pick(patch.karaoke_color, settings.karaoke_color),
        playback_rate=_pick(patch.playback_rate, settings.playback_rate),
    )


def _pick(new: Any, old: Any) -> Any:
    return old if new is None else new


TOGGLE_FLAGS = (
    "text_shadow_enabled", "text_background_enabled", "text_stroke_enabled", "karaoke_enabled",
)


def toggle(settings: CaptionSettings, flag: str) -> CaptionSettings:
    if flag not in TOGGLE_FLAGS:
        raise ValueError(f"Not a toggleable setting: {flag}")
    return replace(settings, **{flag: not getattr(settings, flag)})


def text_stroke_css(settings: CaptionSettings) -> str:
    """CSS text-shadow emulating an outline stroke."""
    if not settings.text_stroke_enabled:
        return "none"
    w = settings.text_stroke_width
    c = settings.text_stroke_color
    return f"-{w}px -{w}px 0 {c}, {w}px -{w}px 0 {c}, -{w}px {w}px 0 {c}, {w}px {w}px 0 {c}"


# ── Presets ──────────────────────────────────────────────────────────────────

STYLE_PRESETS: dict[str, SettingsPatch] = {
    "Social Pop": SettingsPatch(
        font_size=56, font_weight=800, text_color="#FFFFFF",
        text_stroke_enabled=True, text_stroke_color="#000000", text_stroke_width=3,
        caption_animation="pop", karaoke_enabled=True, karaoke_color="#FFFF00",
    ),
    "Cinematic": SettingsPatch(
        font_size=36, font_family=FONTS["Roboto"], font_weight=400, text_color="#FFFFFF",
        text_shadow_enabled=True, text_background_enabled=False, text_stroke_enabled=False,
        caption_animation="fade", karaoke_enabled=False, text_align="center",
    ),
    "Minimal": SettingsPatch(
        font_size=24, font_family=FONTS["Inter"], font_weight=500, text_color="#FFFFFF",
        text_shadow_enabled=False, text_background_enabled=False, text_stroke_enabled=False,
        caption_animation="fade", karaoke_enabled=False,
    ),
}


def apply_preset(settings: CaptionSettings, name: str) -> CaptionSettings:
    """Apply a named preset. Unknown names leave *settings* unchanged."""
    patch = STYLE_PRESETS.get(name)
    if patch is None:
        return settings
    return merge_settings(settings, patch)


def reset_styles(settings: CaptionSettings) -> CaptionSettings:
    """Restore style defaults; the playback rate is not a style and is kept."""
    return CaptionSettings(playback_rate=settings.playback_rate)
