"""Editor API routes: sessions, segments, captions, settings and projects.

Each editor session lives in memory for the lifetime of the server process
and, when autosave is enabled, persists itself through the project store.
Edits answer with ``changed`` (False when the edit was rejected as a no-op)
and the full editor state.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any

from fastapi import APIRouter, File, Form, HTTPException, UploadFile

from captionsync.api.models import (
    CaptionTextUpdate,
    CaptionTimingUpdate,
    NudgeRequest,
    PlaybackRateRequest,
    SettingsUpdate,
    ShiftRequest,
    TickRequest,
    TimeRequest,
    ToggleEnum,
)
from captionsync.errors import MediaProbeError, ProjectNotFoundError
from captionsync.media.probe import describe_media, probe_media
from captionsync.project.autosave import AutosaveScheduler
from captionsync.project.snapshot import Project, check_media, restore_state
from captionsync.project.store import ProjectStore, create_store
from captionsync.timeline.session import EditorSession
from captionsync.timeline.settings import FONTS, PLAYBACK_RATES, STYLE_PRESETS
from captionsync.timeline.state import EditorState
from captionsync.transcription.base import CaptionGenerator
from captionsync.utils.config import AppConfig, env_overrides, load_config, merge_overrides
from captionsync.utils.logging import info, set_session_id, warn

router = APIRouter(prefix="/api", tags=["editor"])

UPLOAD_DIR = Path("data/uploads")

_config: AppConfig | None = None
_store: ProjectStore | None = None
_sessions: dict[str, EditorSession] = {}
_autosavers: dict[str, AutosaveScheduler] = {}
_tasks: set[asyncio.Task] = set()


def get_config() -> AppConfig:
    global _config
    if _config is None:
        _config = merge_overrides(load_config(), env_overrides())
    return _config


def get_store() -> ProjectStore:
    global _store
    if _store is None:
        cfg = get_config()
        _store = create_store(cfg.store.backend, cfg.store.path)
    return _store


def create_generator(cfg: AppConfig) -> CaptionGenerator | None:
    if cfg.transcription.backend == "openai_whisper":
        from captionsync.transcription.openai_whisper import OpenAIWhisperGenerator
        return OpenAIWhisperGenerator(model=cfg.transcription.model,
                                      language=cfg.transcription.language)
    warn(f"Unknown transcription backend: {cfg.transcription.backend}")
    return None


def load_project(project_id: str) -> Project:
    project = get_store().get(project_id)
    if project is None:
        raise ProjectNotFoundError(project_id)
    return project


# ── Helpers ───────────────────────────────────────────────────────────────────

def _open_session(state: EditorState | None = None) -> EditorSession:
    cfg = get_config()
    session = EditorSession(state=state, config=cfg.editor, generator=create_generator(cfg))
    _sessions[session.id] = session
    if cfg.autosave.enabled:
        scheduler = AutosaveScheduler(session, get_store(), delay=cfg.autosave.delay_sec)
        scheduler.start()
        _autosavers[session.id] = scheduler
    info(f"Session opened: {session.id}")
    return session


def _session(sid: str) -> EditorSession:
    session = _sessions.get(sid)
    if session is None:
        raise HTTPException(404, "Session not found")
    set_session_id(sid)
    return session


def _require_caption(session: EditorSession, cid: str) -> None:
    if session.state.find_caption(cid) is None:
        raise HTTPException(404, "Caption not found")


def _result(session: EditorSession, changed: bool) -> dict[str, Any]:
    return {"changed": changed, "state": session.state.to_dict()}


async def _save_upload(file: UploadFile) -> Path:
    UPLOAD_DIR.mkdir(parents=True, exist_ok=True)
    name = Path(file.filename or "upload").name
    dest = UPLOAD_DIR / name
    if dest.exists():
        stem, suffix, i = dest.stem, dest.suffix, 1
        while dest.exists():
            dest = UPLOAD_DIR / f"{stem}_{i}{suffix}"
            i += 1
    dest.write_bytes(await file.read())
    return dest


async def _probe_upload(file: UploadFile):
    dest = await _save_upload(file)
    try:
        return probe_media(dest, name=Path(file.filename or dest.name).name)
    except MediaProbeError as e:
        raise HTTPException(422, str(e)) from e


def _spawn(coro) -> None:
    task = asyncio.create_task(coro)
    _tasks.add(task)
    task.add_done_callback(_tasks.discard)


# ── Sessions ──────────────────────────────────────────────────────────────────

@router.post("/sessions")
async def api_create_session():
    session = _open_session()
    return {"session_id": session.id, "state": session.state.to_dict()}


@router.get("/sessions/{sid}")
async def api_get_session(sid: str):
    return _session(sid).state.to_dict()


@router.delete("/sessions/{sid}")
async def api_close_session(sid: str):
    _session(sid)
    scheduler = _autosavers.pop(sid, None)
    saved = False
    if scheduler is not None:
        saved = scheduler.flush()
        scheduler.stop()
    _sessions.pop(sid, None)
    info(f"Session closed: {sid}")
    return {"closed": True, "saved": saved}


@router.post("/sessions/{sid}/undo")
async def api_undo(sid: str):
    session = _session(sid)
    return _result(session, session.undo())


@router.post("/sessions/{sid}/redo")
async def api_redo(sid: str):
    session = _session(sid)
    return _result(session, session.redo())


# ── Segments ──────────────────────────────────────────────────────────────────

@router.post("/sessions/{sid}/segments")
async def api_add_segment(sid: str, file: UploadFile = File(...)):
    """Upload a media file and append it to the timeline."""
    session = _session(sid)
    media = await _probe_upload(file)
    seg = session.load_media(media)
    if seg is None:
        raise HTTPException(422, f"Could not read a duration from {media.name}")
    generating = session.generator is not None and session.needs_captions(seg.id)
    if generating:
        _spawn(session.generate_captions(seg.id))
    return {
        "segment": seg.to_dict(),
        "media": describe_media(media),
        "generating": generating,
        "state": session.state.to_dict(),
    }


@router.get("/sessions/{sid}/segments/{index}/media")
async def api_segment_media(sid: str, index: int):
    session = _session(sid)
    if not 0 <= index < len(session.state.segments):
        raise HTTPException(404, "Segment not found")
    media = session.state.segments[index].media
    if media is None:
        raise HTTPException(404, "Segment has no media attached")
    return describe_media(media)


@router.post("/sessions/{sid}/segments/split")
async def api_split_segment(sid: str, req: TimeRequest):
    session = _session(sid)
    return _result(session, session.split_segment(req.t))


@router.post("/sessions/{sid}/segments/trim-start")
async def api_trim_start(sid: str, req: TimeRequest):
    session = _session(sid)
    return _result(session, session.trim_start(req.t))


@router.post("/sessions/{sid}/segments/trim-end")
async def api_trim_end(sid: str, req: TimeRequest):
    session = _session(sid)
    return _result(session, session.trim_end(req.t))


@router.delete("/sessions/{sid}/segments/{index}")
async def api_delete_segment(sid: str, index: int):
    session = _session(sid)
    return _result(session, session.delete_segment(index))


@router.post("/sessions/{sid}/segments/{index}/activate")
async def api_activate_segment(sid: str, index: int):
    session = _session(sid)
    return _result(session, session.activate_segment(index))


@router.post("/sessions/{sid}/segments/{segment_id}/generate")
async def api_generate_captions(sid: str, segment_id: str):
    """Run caption generation for a segment and wait for the result."""
    session = _session(sid)
    if session.state.segment_index(segment_id) == -1:
        raise HTTPException(404, "Segment not found")
    return _result(session, await session.generate_captions(segment_id))


# ── Timeline / playback ───────────────────────────────────────────────────────

@router.get("/sessions/{sid}/layout")
async def api_layout(sid: str):
    state = _session(sid).state
    return {
        "duration": state.duration,
        "global_time": state.global_time,
        "layout": [entry.to_dict() for entry in state.layout],
    }


@router.post("/sessions/{sid}/playback/tick")
async def api_tick(sid: str, req: TickRequest):
    return _session(sid).tick(req.t).to_dict()


@router.post("/sessions/{sid}/playback/seek")
async def api_seek(sid: str, req: TickRequest):
    session = _session(sid)
    return _result(session, session.seek(req.t))


@router.post("/sessions/{sid}/playback/seek-global")
async def api_seek_global(sid: str, req: TickRequest):
    session = _session(sid)
    return _result(session, session.seek_global(req.t))


@router.post("/sessions/{sid}/playback/nudge")
async def api_nudge(sid: str, req: NudgeRequest):
    session = _session(sid)
    return _result(session, session.nudge(req.forward))


# ── Captions ──────────────────────────────────────────────────────────────────

@router.post("/sessions/{sid}/captions")
async def api_add_caption(sid: str):
    session = _session(sid)
    return _result(session, session.add_caption())


@router.post("/sessions/{sid}/captions/split")
async def api_split_caption(sid: str, req: TimeRequest):
    session = _session(sid)
    return _result(session, session.split_caption(req.t))


@router.post("/sessions/{sid}/captions/shift")
async def api_shift_captions(sid: str, req: ShiftRequest):
    session = _session(sid)
    if req.segment_id is not None and session.state.segment_index(req.segment_id) == -1:
        raise HTTPException(404, "Segment not found")
    changed = session.shift_captions(req.offset, segment_id=req.segment_id,
                                     caption_ids=req.caption_ids)
    return _result(session, changed)


@router.put("/sessions/{sid}/captions/{cid}/text")
async def api_caption_text(sid: str, cid: str, req: CaptionTextUpdate):
    session = _session(sid)
    _require_caption(session, cid)
    return _result(session, session.update_caption_text(cid, req.text))


@router.put("/sessions/{sid}/captions/{cid}/timing")
async def api_caption_timing(sid: str, cid: str, req: CaptionTimingUpdate):
    session = _session(sid)
    _require_caption(session, cid)
    return _result(session, session.update_caption_timing(cid, req.start_time, req.end_time))


@router.delete("/sessions/{sid}/captions/{cid}")
async def api_delete_caption(sid: str, cid: str):
    session = _session(sid)
    _require_caption(session, cid)
    return _result(session, session.delete_caption(cid))


@router.post("/sessions/{sid}/captions/{cid}/select")
async def api_select_caption(sid: str, cid: str):
    session = _session(sid)
    _require_caption(session, cid)
    return _result(session, session.select_caption(cid))


# ── Settings ──────────────────────────────────────────────────────────────────

@router.get("/presets")
async def api_presets():
    return {"presets": list(STYLE_PRESETS), "fonts": FONTS, "playback_rates": list(PLAYBACK_RATES)}


@router.patch("/sessions/{sid}/settings")
async def api_update_settings(sid: str, req: SettingsUpdate):
    session = _session(sid)
    return _result(session, session.update_settings(req.to_patch()))


@router.post("/sessions/{sid}/settings/preset/{name}")
async def api_apply_preset(sid: str, name: str):
    session = _session(sid)
    return _result(session, session.apply_preset(name))


@router.post("/sessions/{sid}/settings/reset")
async def api_reset_styles(sid: str):
    session = _session(sid)
    return _result(session, session.reset_styles())


@router.post("/sessions/{sid}/settings/toggle/{flag}")
async def api_toggle(sid: str, flag: ToggleEnum):
    session = _session(sid)
    return _result(session, session.toggle(flag.value))


@router.put("/sessions/{sid}/settings/playback-rate")
async def api_playback_rate(sid: str, req: PlaybackRateRequest):
    session = _session(sid)
    if req.rate not in PLAYBACK_RATES:
        raise HTTPException(400, f"Unsupported playback rate: {req.rate}")
    return _result(session, session.set_playback_rate(req.rate))


# ── Projects ──────────────────────────────────────────────────────────────────

@router.get("/projects")
async def api_list_projects():
    return [
        {
            "id": p.id,
            "name": p.name,
            "segments": len(p.segments),
            "captions": len(p.captions),
            "lastModified": p.last_modified,
        }
        for p in get_store().list()
    ]


@router.get("/projects/{pid}")
async def api_get_project(pid: str):
    try:
        return load_project(pid).to_dict()
    except ProjectNotFoundError as e:
        raise HTTPException(404, str(e)) from e


@router.post("/projects/{pid}/open")
async def api_open_project(
    pid: str,
    files: list[UploadFile] = File(default=[]),
    confirm: bool = Form(False),
):
    """Reopen a stored project, re-attaching its media files by position.

    Files whose names differ from the stored segments answer 409 with the
    mismatches unless ``confirm`` is set.
    """
    try:
        project = load_project(pid)
    except ProjectNotFoundError as e:
        raise HTTPException(404, str(e)) from e

    media = [await _probe_upload(f) for f in files]
    warnings = check_media(project, media)
    if warnings and not confirm:
        raise HTTPException(409, {"warnings": [w.to_dict() for w in warnings]})
    for w in warnings:
        warn(w.message)

    session = _open_session(restore_state(project, media))
    info(f"Project reopened: {pid} in session {session.id}")
    return {
        "session_id": session.id,
        "warnings": [w.to_dict() for w in warnings],
        "state": session.state.to_dict(),
    }
