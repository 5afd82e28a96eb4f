"""Media probing with ffprobe and human-readable media info."""

from __future__ import annotations

import json
import math
import mimetypes
import subprocess
from pathlib import Path
from typing import Any

from captionsync.errors import MediaProbeError
from captionsync.timeline.models import MediaSource
from captionsync.utils.logging import debug, error


def probe_media(path: Path, name: str | None = None) -> MediaSource:
    """Probe a media file with ffprobe for duration and frame size.

    An unreadable file yields a zero-duration source, which the editor
    refuses to add as a segment. A missing file raises MediaProbeError.
    """
    if not path.exists():
        raise MediaProbeError(f"Media file not found: {path}")

    media = MediaSource(
        name=name or path.name,
        mime_type=mimetypes.guess_type(name or path.name)[0] or "application/octet-stream",
        size=path.stat().st_size,
        path=path,
    )
    cmd = [
        "ffprobe", "-v", "quiet", "-print_format", "json",
        "-show_format", "-show_streams", str(path),
    ]
    try:
        r = subprocess.run(cmd, capture_output=True, text=True, timeout=30, check=True)
        data = json.loads(r.stdout)
    except (OSError, subprocess.SubprocessError, ValueError) as e:
        error(f"ffprobe failed for {path.name}: {e}")
        return media

    fmt = data.get("format", {})
    for s in data.get("streams", []):
        if s.get("codec_type") == "video":
            media.width = int(s.get("width", 0))
            media.height = int(s.get("height", 0))
            media.duration = float(s.get("duration") or fmt.get("duration") or 0)
            break
    if media.duration <= 0:
        media.duration = float(fmt.get("duration") or 0)
    debug(f"Probed {media.name}: {media.duration:.2f}s {media.width}x{media.height}")
    return media


# ── Display helpers ──────────────────────────────────────────────────────────

def format_duration(seconds: float) -> str:
    minutes = int(seconds // 60)
    secs = int(seconds % 60)
    return f"{minutes:02d}:{secs:02d}"


def format_file_size(size: int) -> str:
    value = float(max(size, 0))
    for unit in ("B", "KB", "MB"):
        if value < 1024:
            return f"{round(value, 1):g} {unit}"
        value /= 1024
    return f"{round(value, 1):g} GB"


def aspect_ratio(width: int, height: int) -> str:
    if width <= 0 or height <= 0:
        return ""
    r = math.gcd(width, height)
    return f"{width // r}:{height // r}"


def describe_media(media: MediaSource) -> dict[str, Any]:
    return {
        "name": media.name,
        "resolution": f"{media.width}x{media.height}",
        "aspect_ratio": aspect_ratio(media.width, media.height),
        "duration": format_duration(media.duration),
        "size": format_file_size(media.size),
    }
