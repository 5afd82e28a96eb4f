"""Configuration management with YAML support and pydantic models."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field


class EditorConfig(BaseModel):
    split_epsilon: float = Field(default=0.05, ge=0.0)
    new_caption_gap: float = 0.1
    new_caption_duration: float = Field(default=2.0, gt=0.0)
    new_caption_text: str = "New Caption"
    nudge_seconds: float = 2.0
    max_undo: int = Field(default=80, ge=1)
    transcribe_all_segments: bool = False  # False = only the first loaded segment is captioned


class AutosaveConfig(BaseModel):
    enabled: bool = True
    delay_sec: float = Field(default=1.0, gt=0.0)


class StoreConfig(BaseModel):
    backend: str = "json"  # json | memory
    path: str = "data/projects.json"


class TranscriptionConfig(BaseModel):
    backend: str = "openai_whisper"
    model: str = "whisper-1"
    language: str = "auto"


class AppConfig(BaseModel):
    editor: EditorConfig = EditorConfig()
    autosave: AutosaveConfig = AutosaveConfig()
    store: StoreConfig = StoreConfig()
    transcription: TranscriptionConfig = TranscriptionConfig()


def load_config(path: str | Path | None = None) -> AppConfig:
    if path is None:
        path = os.environ.get("CAPTIONSYNC_CONFIG") or None
    if path is None:
        candidates = [Path("config.yaml"), Path("config.yml"), Path("captionsync.yaml")]
        for c in candidates:
            if c.exists():
                path = c
                break
    if path is not None:
        p = Path(path)
        if p.exists():
            with open(p) as f:
                data = yaml.safe_load(f) or {}
            return AppConfig(**data)
    return AppConfig()


def merge_overrides(cfg: AppConfig, overrides: dict[str, Any]) -> AppConfig:
    """Apply dotted-key overrides (``"autosave.delay_sec": 0.2``) on top of *cfg*."""
    data = cfg.model_dump()
    for key, val in overrides.items():
        if val is None:
            continue
        parts = key.split(".")
        d = data
        for p in parts[:-1]:
            d = d.setdefault(p, {})
        d[parts[-1]] = val
    return AppConfig(**data)


# Environment variables applied on top of the YAML file. ``main.py`` sets them
# from its command-line flags.
ENV_OVERRIDES = {
    "CAPTIONSYNC_STORE_BACKEND": "store.backend",
    "CAPTIONSYNC_STORE_PATH": "store.path",
    "CAPTIONSYNC_AUTOSAVE_DELAY": "autosave.delay_sec",
    "CAPTIONSYNC_WHISPER_MODEL": "transcription.model",
}


def env_overrides(environ: dict[str, str] | None = None) -> dict[str, Any]:
    """Dotted-key overrides for every ``ENV_OVERRIDES`` variable that is set."""
    environ = os.environ if environ is None else environ
    return {key: environ[var] for var, key in ENV_OVERRIDES.items() if environ.get(var)}


DEFAULT_CONFIG_YAML = """\
# captionsync configuration

editor:
  split_epsilon: 0.05        # seconds kept clear of a segment's edges when splitting
  new_caption_gap: 0.1       # gap after the last caption when adding one
  new_caption_duration: 2.0
  new_caption_text: "New Caption"
  nudge_seconds: 2.0
  max_undo: 80
  transcribe_all_segments: false

autosave:
  enabled: true
  delay_sec: 1.0             # quiescence window before a snapshot is written

store:
  backend: json              # json | memory
  path: data/projects.json

transcription:
  backend: openai_whisper
  model: whisper-1
  language: auto             # de | en | auto
"""
