"""EditorSession: owns the EditorState, dispatches edits, keeps undo history.

Every edit goes through ``apply``: the operation gets the current state and
returns the next one. A returned state that *is* the current one means the
edit was rejected; nothing is recorded and nobody is notified.

Listeners are called after each accepted change with ``(old, new)``. The
autosave scheduler is one of them; it is never called from the edit
operations themselves.
"""

from __future__ import annotations

import asyncio
from collections import deque
from collections.abc import Callable
from dataclasses import replace
from typing import Any

from captionsync.errors import TranscriptionError
from captionsync.timeline import caption_ops, segment_ops
from captionsync.timeline.models import MediaSource, Segment, new_id
from captionsync.timeline.playback import PlaybackCue, resolve_playback
from captionsync.timeline.settings import (
    PLAYBACK_RATES,
    TOGGLE_FLAGS,
    SettingsPatch,
    apply_preset,
    merge_settings,
    reset_styles,
    toggle,
)
from captionsync.timeline.state import EditorState
from captionsync.transcription.base import CaptionGenerator
from captionsync.utils.config import EditorConfig
from captionsync.utils.logging import debug, error, info, warn

Listener = Callable[[EditorState, EditorState], None]


class EditorSession:
    def __init__(self, state: EditorState | None = None,
                 config: EditorConfig | None = None,
                 generator: CaptionGenerator | None = None,
                 session_id: str | None = None):
        self.id = session_id or new_id()
        self.config = config or EditorConfig()
        self.generator = generator
        self._state = state or EditorState()
        self._listeners: list[Listener] = []
        self._undo: deque[EditorState] = deque(maxlen=self.config.max_undo)
        self._redo: deque[EditorState] = deque(maxlen=self.config.max_undo)

    @property
    def state(self) -> EditorState:
        return self._state

    # ── Dispatch ────────────────────────────────────────────────────────────

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def apply(self, op: Callable[..., EditorState], *args: Any,
              record: bool = True, **kwargs: Any) -> bool:
        """Run an edit operation. Returns False when it was rejected as a no-op."""
        old = self._state
        new = op(old, *args, **kwargs)
        if new is old:
            debug(f"[{self.id}] {op.__name__}: no-op")
            return False
        if record:
            self._undo.append(old)
            self._redo.clear()
        self._set_state(new)
        return True

    def _set_state(self, new: EditorState) -> None:
        old = self._state
        self._state = new
        for listener in list(self._listeners):
            listener(old, new)

    def undo(self) -> bool:
        if not self._undo:
            return False
        self._redo.append(self._state)
        self._set_state(self._restored(self._undo.pop()))
        return True

    def redo(self) -> bool:
        if not self._redo:
            return False
        self._undo.append(self._state)
        self._set_state(self._restored(self._redo.pop()))
        return True

    def _restored(self, snapshot: EditorState) -> EditorState:
        # Generation status belongs to the present, not to the snapshot
        return replace(snapshot, loading=self._state.loading, error=self._state.error,
                       project_id=self._state.project_id or snapshot.project_id)

    # ── Segments ────────────────────────────────────────────────────────────

    def load_media(self, media: MediaSource) -> Segment | None:
        """Append *media* as a new segment; the first one also starts the project."""
        seg_id = new_id("seg")
        if not self.apply(segment_ops.add_segment, media, seg_id):
            warn(f"[{self.id}] Could not add {media.name}: no duration")
            return None
        if self._state.project_id is None:
            project_id = new_id("proj")
            self._set_state(replace(self._state, project_id=project_id))
            info(f"[{self.id}] Project created: {project_id} ({media.name})")
        info(f"[{self.id}] Segment added: {seg_id} ({media.name}, {media.duration:.1f}s)")
        return self._state.segments[self._state.segment_index(seg_id)]

    def needs_captions(self, segment_id: str) -> bool:
        """Only the first segment is transcribed unless configured otherwise."""
        index = self._state.segment_index(segment_id)
        return index == 0 or (index > 0 and self.config.transcribe_all_segments)

    def split_segment(self, t: float | None = None) -> bool:
        t = self._state.local_time if t is None else t
        return self.apply(segment_ops.split_segment, t, epsilon=self.config.split_epsilon)

    def trim_start(self, t: float | None = None) -> bool:
        t = self._state.local_time if t is None else t
        return self.apply(segment_ops.trim_segment_start, t)

    def trim_end(self, t: float | None = None) -> bool:
        t = self._state.local_time if t is None else t
        return self.apply(segment_ops.trim_segment_end, t)

    def delete_segment(self, index: int) -> bool:
        ok = self.apply(segment_ops.delete_segment, index)
        if not ok and len(self._state.segments) <= 1:
            warn(f"[{self.id}] A project needs at least one segment")
        return ok

    def activate_segment(self, index: int) -> bool:
        return self.apply(segment_ops.activate_segment, index, record=False)

    def seek(self, t: float) -> bool:
        return self.apply(segment_ops.seek, t, record=False)

    def seek_global(self, global_time: float) -> bool:
        return self.apply(segment_ops.seek_global, global_time, record=False)

    def nudge(self, forward: bool = True) -> bool:
        step = self.config.nudge_seconds
        return self.apply(segment_ops.nudge, step if forward else -step, record=False)

    def tick(self, t: float) -> PlaybackCue:
        """Playback time update from the active segment's player."""
        self.apply(segment_ops.seek, t, record=False)
        return resolve_playback(self._state)

    # ── Captions ────────────────────────────────────────────────────────────

    def split_caption(self, t: float | None = None) -> bool:
        t = self._state.local_time if t is None else t
        return self.apply(caption_ops.split_caption, t)

    def add_caption(self) -> bool:
        return self.apply(
            caption_ops.add_caption,
            gap=self.config.new_caption_gap,
            duration=self.config.new_caption_duration,
            text=self.config.new_caption_text,
        )

    def update_caption_text(self, caption_id: str, text: str) -> bool:
        return self.apply(caption_ops.update_caption_text, caption_id, text)

    def update_caption_timing(self, caption_id: str, start_time: float | None = None,
                              end_time: float | None = None) -> bool:
        return self.apply(caption_ops.update_caption_timing, caption_id, start_time, end_time)

    def shift_captions(self, offset: float, segment_id: str | None = None,
                       caption_ids: list[str] | None = None) -> bool:
        if segment_id is None:
            seg = self._state.active_segment
            if seg is None:
                return False
            segment_id = seg.id
        return self.apply(caption_ops.shift_captions, segment_id, offset, caption_ids)

    def delete_caption(self, caption_id: str) -> bool:
        return self.apply(caption_ops.delete_caption, caption_id)

    def select_caption(self, caption_id: str) -> bool:
        return self.apply(caption_ops.select_caption, caption_id, record=False)

    async def generate_captions(self, segment_id: str) -> bool:
        """Ask the caption generator for *segment_id* and merge the result.

        Edits made while the request is outstanding are kept; the result is
        merged into whatever the state is when it arrives, against the
        segment's trims at that moment. Any failure sets ``state.error`` and
        leaves captions untouched; ``state.loading`` is always cleared.
        """
        index = self._state.segment_index(segment_id)
        if index == -1:
            return False
        media = self._state.segments[index].media
        if self.generator is None or media is None:
            warn(f"[{self.id}] Caption generation unavailable for {segment_id}")
            return False

        self._set_state(replace(self._state, loading=True, error=None))
        try:
            captions = await self.generator.generate(media, segment_id)
        except TranscriptionError as e:
            warn(f"[{self.id}] Caption generation failed: {e}")
            self._set_state(replace(self._state, loading=False, error=str(e)))
            return False
        except asyncio.CancelledError:
            self._set_state(replace(self._state, loading=False))
            raise
        except Exception as e:
            error(f"[{self.id}] Caption generation crashed: {type(e).__name__}: {e}")
            self._set_state(replace(self._state, loading=False,
                                    error="Failed to generate captions."))
            return False

        merged = self.apply(caption_ops.merge_generated_captions, segment_id, captions)
        self._set_state(replace(self._state, loading=False))
        if merged:
            info(f"[{self.id}] {len(captions)} captions generated for {segment_id}")
        return merged

    # ── Settings ────────────────────────────────────────────────────────────

    def update_settings(self, patch: SettingsPatch) -> bool:
        return self.apply(_with_settings, lambda s: merge_settings(s, patch))

    def apply_preset(self, name: str) -> bool:
        return self.apply(_with_settings, lambda s: apply_preset(s, name))

    def reset_styles(self) -> bool:
        return self.apply(_with_settings, reset_styles)

    def toggle(self, flag: str) -> bool:
        if flag not in TOGGLE_FLAGS:
            return False
        return self.apply(_with_settings, lambda s: toggle(s, flag))

    def set_playback_rate(self, rate: float) -> bool:
        if rate not in PLAYBACK_RATES:
            return False
        return self.update_settings(SettingsPatch(playback_rate=rate))


def _with_settings(state: EditorState, fn: Callable) -> EditorState:
    settings = fn(state.settings)
    if settings == state.settings:
        return state
    return replace(state, settings=settings)
