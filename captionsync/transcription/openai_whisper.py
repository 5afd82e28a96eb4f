"""OpenAI Whisper caption backend (verbose_json with word + segment timestamps)."""

from __future__ import annotations

import asyncio
import os
import time
from typing import Any

from captionsync.errors import TranscriptionError
from captionsync.timeline.models import Caption, MediaSource, Word, new_id
from captionsync.transcription.base import CaptionGenerator
from captionsync.utils.logging import debug, error, info


class OpenAIWhisperGenerator(CaptionGenerator):
    name = "openai_whisper"

    def __init__(self, api_key: str | None = None, model: str = "whisper-1",
                 language: str = "auto"):
        self.api_key = api_key or os.environ.get("OPENAI_API_KEY", "")
        self.model = model
        self.language = language

    def check_available(self) -> tuple[bool, str]:
        if not self.api_key:
            return False, "OPENAI_API_KEY not set"
        try:
            import openai  # noqa: F401
            return True, "OK"
        except ImportError:
            return False, "openai package not installed (pip install openai)"

    async def generate(self, media: MediaSource, segment_id: str) -> list[Caption]:
        ok, msg = self.check_available()
        if not ok:
            raise TranscriptionError(f"OpenAI Whisper not available: {msg}")
        if media.path is None:
            raise TranscriptionError(f"No file on disk for {media.name}")
        data = await asyncio.to_thread(self._transcribe, media)
        return captions_from_verbose_json(data, segment_id)

    def _transcribe(self, media: MediaSource) -> dict[str, Any]:
        from openai import OpenAI, OpenAIError

        info(f"Transcribing with OpenAI Whisper: {media.name}")
        client = OpenAI(api_key=self.api_key)

        start_time = time.time()
        try:
            with open(media.path, "rb") as f:
                params: dict[str, Any] = {
                    "model": self.model,
                    "file": f,
                    "response_format": "verbose_json",
                    "timestamp_granularities": ["word", "segment"],
                }
                if self.language != "auto":
                    params["language"] = self.language
                response = client.audio.transcriptions.create(**params)
        except (OSError, OpenAIError) as e:
            error(f"OpenAI Whisper failed for {media.name}: {e}")
            raise TranscriptionError(
                "Failed to transcribe video. The service may not have been able to process the audio."
            ) from e

        debug(f"OpenAI Whisper response in {time.time() - start_time:.1f}s")
        return response.model_dump() if hasattr(response, "model_dump") else dict(response)


def captions_from_verbose_json(data: dict[str, Any], segment_id: str) -> list[Caption]:
    """Group Whisper's flat word list under its segments, one caption per segment.

    Malformed responses raise TranscriptionError.
    """
    try:
        raw_segments = data.get("segments") or []
        raw_words = data.get("words") or []

        captions = []
        word_idx = 0
        for seg in raw_segments:
            seg_start = float(seg.get("start", 0))
            seg_end = float(seg.get("end", 0))
            text = (seg.get("text") or "").strip()
            if not text or seg_end <= seg_start:
                continue

            words: list[Word] = []
            while word_idx < len(raw_words):
                w = raw_words[word_idx]
                w_start = float(w.get("start", 0))
                if w_start >= seg_end:
                    break
                if w_start >= seg_start:
                    words.append(Word(
                        text=(w.get("word") or "").strip(),
                        start_time=w_start,
                        end_time=float(w.get("end", 0)),
                    ))
                word_idx += 1

            captions.append(Caption(
                id=new_id("cap"), segment_id=segment_id, text=text,
                start_time=seg_start, end_time=seg_end, words=words,
            ))
    except (AttributeError, TypeError, ValueError) as e:
        error(f"Unexpected Whisper response: {e}")
        raise TranscriptionError("Failed to transcribe video. The response was malformed.") from e
    return sorted(captions, key=lambda c: c.start_time)
