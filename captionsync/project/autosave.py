"""Debounced autosave: an observer that persists the session after edits settle.

Each change to the project id, segments, captions or settings (re)arms a
single timer on the event loop; the snapshot is taken when the timer fires,
so a burst of edits results in one save of the final state. Playback-only
changes (playhead, selection, loading flags) don't arm it.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable

from captionsync.project.snapshot import build_snapshot
from captionsync.project.store import ProjectStore
from captionsync.timeline.session import EditorSession
from captionsync.timeline.state import EditorState
from captionsync.utils.logging import debug

DEFAULT_DELAY_SEC = 1.0


def persistent_changed(old: EditorState, new: EditorState) -> bool:
    return (
        old.project_id != new.project_id
        or old.segments is not new.segments
        or old.captions is not new.captions
        or old.settings is not new.settings
    )


class AutosaveScheduler:
    def __init__(self, session: EditorSession, store: ProjectStore,
                 delay: float = DEFAULT_DELAY_SEC):
        self.session = session
        self.store = store
        self.delay = delay
        self.saves = 0
        self._handle: asyncio.TimerHandle | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._unsubscribe: Callable[[], None] | None = None

    @property
    def active(self) -> bool:
        return self._unsubscribe is not None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def start(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        """Begin observing the session. Must run on (or be given) the event loop."""
        if self.active:
            return
        self._loop = loop or asyncio.get_running_loop()
        self._unsubscribe = self.session.subscribe(self._on_change)

    def stop(self) -> None:
        """Stop observing; a pending save is cancelled, not flushed."""
        self.cancel()
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def flush(self) -> bool:
        """Save now if a save is pending. Returns whether one was written."""
        if self._handle is None:
            return False
        self.cancel()
        return self._save()

    def _on_change(self, old: EditorState, new: EditorState) -> None:
        if not persistent_changed(old, new):
            return
        self.cancel()
        self._handle = self._loop.call_later(self.delay, self._fire)

    def _fire(self) -> None:
        self._handle = None
        self._save()

    def _save(self) -> bool:
        project = build_snapshot(self.session.state)
        if project is None:
            debug(f"[{self.session.id}] autosave skipped: no project yet")
            return False
        self.store.upsert(project)
        self.saves += 1
        debug(f"[{self.session.id}] autosaved {project.id}")
        return True
