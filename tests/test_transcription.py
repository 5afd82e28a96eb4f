"""Tests for the OpenAI Whisper caption backend and its response parsing."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest

from captionsync.errors import TranscriptionError
from captionsync.timeline.models import MediaSource
from captionsync.transcription.openai_whisper import (
    OpenAIWhisperGenerator,
    captions_from_verbose_json,
)

VERBOSE_JSON = {
    "text": "Hello world. Bye now.",
    "segments": [
        {"start": 0.0, "end": 1.5, "text": " Hello world."},
        {"start": 1.5, "end": 1.5, "text": " "},
        {"start": 2.0, "end": 3.0, "text": " Bye now."},
    ],
    "words": [
        {"word": "Hello", "start": 0.0, "end": 0.6},
        {"word": "world.", "start": 0.7, "end": 1.4},
        {"word": "Bye", "start": 2.0, "end": 2.4},
        {"word": "now.", "start": 2.5, "end": 3.0},
    ],
}


class TestVerboseJson:
    def test_groups_words_under_segments(self):
        caps = captions_from_verbose_json(VERBOSE_JSON, "seg_a")
        assert [c.text for c in caps] == ["Hello world.", "Bye now."]
        assert [w.text for w in caps[0].words] == ["Hello", "world."]
        assert [w.text for w in caps[1].words] == ["Bye", "now."]
        assert (caps[1].start_time, caps[1].end_time) == (2.0, 3.0)

    def test_empty_response(self):
        assert captions_from_verbose_json({}, "s") == []

    @pytest.mark.parametrize("data", [
        {"segments": [{"start": None, "end": 1.0, "text": "x"}]},
        {"segments": [{"start": 0.0, "end": 1.0, "text": "x"}],
         "words": [{"word": "x", "start": "soon", "end": 1.0}]},
        {"segments": ["not a dict"]},
        ["not", "a", "dict"],
    ])
    def test_malformed_response(self, data):
        with pytest.raises(TranscriptionError):
            captions_from_verbose_json(data, "s")


class TestOpenAIWhisper:
    def test_unavailable_without_key(self, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        ok, msg = OpenAIWhisperGenerator().check_available()
        assert ok is False
        assert "OPENAI_API_KEY" in msg

    def test_key_from_env(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        assert OpenAIWhisperGenerator().api_key == "sk-test"

    @pytest.mark.asyncio
    async def test_generate_without_key(self, monkeypatch, media):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        with pytest.raises(TranscriptionError):
            await OpenAIWhisperGenerator().generate(media, "seg_a")

    @pytest.mark.asyncio
    async def test_generate_without_file(self, media):
        gen = OpenAIWhisperGenerator(api_key="sk-test")
        with pytest.raises(TranscriptionError, match="No file"):
            await gen.generate(media, "seg_a")

    @pytest.mark.asyncio
    async def test_generate(self, tmp_path):
        video = tmp_path / "clip.mp4"
        video.write_bytes(b"\x00" * 16)
        media = MediaSource(name="clip.mp4", duration=3.0, path=video)
        gen = OpenAIWhisperGenerator(api_key="sk-test", language="en")
        with patch.object(OpenAIWhisperGenerator, "_transcribe", return_value=VERBOSE_JSON) as m:
            caps = await gen.generate(media, "seg_a")
        m.assert_called_once_with(media)
        assert [c.text for c in caps] == ["Hello world.", "Bye now."]
        assert all(c.segment_id == "seg_a" for c in caps)

    def test_transcribe_request(self, tmp_path):
        video = tmp_path / "clip.mp4"
        video.write_bytes(b"\x00" * 16)
        media = MediaSource(name="clip.mp4", duration=3.0, path=Path(video))
        gen = OpenAIWhisperGenerator(api_key="sk-test", model="whisper-1", language="de")
        with patch("openai.OpenAI") as client_cls:
            client_cls.return_value.audio.transcriptions.create.return_value.model_dump.return_value = VERBOSE_JSON
            data = gen._transcribe(media)
        assert data == VERBOSE_JSON
        kwargs = client_cls.return_value.audio.transcriptions.create.call_args.kwargs
        assert kwargs["response_format"] == "verbose_json"
        assert kwargs["timestamp_granularities"] == ["word", "segment"]
        assert kwargs["language"] == "de"

    def test_transcribe_missing_file(self, tmp_path):
        media = MediaSource(name="gone.mp4", duration=3.0, path=tmp_path / "gone.mp4")
        gen = OpenAIWhisperGenerator(api_key="sk-test")
        with pytest.raises(TranscriptionError):
            gen._transcribe(media)
