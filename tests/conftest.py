"""Shared test fixtures.

Provides:
- A one-segment editor state (10 s clip, caption "hi there" at 2-4 s)
- A recording in-memory project store
- A fake caption generator
- FastAPI TestClient with isolated uploads, an in-memory store and a stub probe
"""

from __future__ import annotations

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from captionsync.errors import TranscriptionError
from captionsync.project.store import MemoryProjectStore
from captionsync.timeline.models import Caption, MediaSource, Segment, Word
from captionsync.timeline.state import EditorState
from captionsync.transcription.base import CaptionGenerator


# ── Seed data ────────────────────────────────────────────────────────────────

def make_caption(segment_id: str = "seg_a", cap_id: str = "cap_a") -> Caption:
    return Caption(
        id=cap_id,
        segment_id=segment_id,
        text="hi there",
        start_time=2.0,
        end_time=4.0,
        words=[Word("hi", 2.0, 3.0), Word("there", 3.0, 4.0)],
    )


@pytest.fixture
def media():
    return MediaSource(name="clip.mp4", duration=10.0, size=1_572_864, width=1920, height=1080)


@pytest.fixture
def sample_state(media):
    """One 10 s segment with a single two-word caption, project already created."""
    return EditorState(
        segments=[Segment(id="seg_a", original_duration=10.0, media=media)],
        captions=[make_caption()],
        project_id="proj_test",
    )


# ── Collaborators ────────────────────────────────────────────────────────────

class RecordingStore(MemoryProjectStore):
    def __init__(self) -> None:
        super().__init__()
        self.upserts = []

    def upsert(self, project) -> None:
        self.upserts.append(project)
        super().upsert(project)


class FakeGenerator(CaptionGenerator):
    name = "fake"

    def __init__(self, captions: list[Caption] | None = None, exc: Exception | None = None):
        self.captions = captions or []
        self.exc = exc
        self.calls: list[str] = []
        self.before_return = None

    async def generate(self, media, segment_id):
        self.calls.append(segment_id)
        if self.before_return is not None:
            self.before_return()
        if self.exc is not None:
            raise self.exc
        return [Caption(id=c.id, segment_id=segment_id, text=c.text,
                        start_time=c.start_time, end_time=c.end_time, words=list(c.words))
                for c in self.captions]


@pytest.fixture
def store():
    return RecordingStore()


@pytest.fixture
def fake_generator():
    return FakeGenerator(captions=[
        Caption(id="gen_2", segment_id="", text="second line", start_time=5.0, end_time=6.0,
                words=[Word("second", 5.0, 5.5), Word("line", 5.5, 6.0)]),
        Caption(id="gen_1", segment_id="", text="first line", start_time=1.0, end_time=2.0,
                words=[Word("first", 1.0, 1.5), Word("line", 1.5, 2.0)]),
    ])


@pytest.fixture
def failing_generator():
    return FakeGenerator(exc=TranscriptionError("Failed to transcribe video."))


@pytest.fixture
def crashing_generator():
    return FakeGenerator(exc=RuntimeError("boom"))


@pytest.fixture
def session(sample_state, fake_generator):
    from captionsync.timeline.session import EditorSession
    return EditorSession(state=sample_state, generator=fake_generator, session_id="sess_test")


# ── API ──────────────────────────────────────────────────────────────────────

def fake_probe(path: Path, name: str | None = None) -> MediaSource:
    """Stand-in for ffprobe: every file lasts 10 s, files named empty* have no duration."""
    name = name or path.name
    return MediaSource(
        name=name,
        duration=0.0 if name.startswith("empty") else 10.0,
        size=path.stat().st_size,
        width=1920,
        height=1080,
        path=path,
    )


@pytest.fixture
def _patch_api(tmp_path, monkeypatch):
    """Route module globals pointed at tmp_path, an in-memory store and no generator."""
    import captionsync.api.routes as routes
    from captionsync.utils.config import AppConfig, AutosaveConfig, StoreConfig

    api_store = RecordingStore()
    monkeypatch.setattr(routes, "UPLOAD_DIR", tmp_path / "uploads")
    monkeypatch.setattr(routes, "_config", AppConfig(
        store=StoreConfig(backend="memory"),
        autosave=AutosaveConfig(delay_sec=60.0),
    ))
    monkeypatch.setattr(routes, "_store", api_store)
    monkeypatch.setattr(routes, "create_generator", lambda cfg: None)
    monkeypatch.setattr(routes, "probe_media", fake_probe)

    yield api_store

    for scheduler in routes._autosavers.values():
        scheduler.stop()
    routes._autosavers.clear()
    routes._sessions.clear()


@pytest.fixture
def client(_patch_api, tmp_path, monkeypatch):
    """FastAPI TestClient with patched route globals."""
    import captionsync.utils.logging as log_mod
    monkeypatch.setenv("LOG_LEVEL", "WARNING")
    monkeypatch.setattr(log_mod, "LOG_DIR", tmp_path / "logs")
    from main import app
    with TestClient(app, raise_server_exceptions=False) as c:
        yield c


@pytest.fixture
def api_store(_patch_api):
    return _patch_api
