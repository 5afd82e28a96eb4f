"""Tests for EditorSession: dispatch, undo/redo, listeners and caption generation."""

from __future__ import annotations

import pytest

from captionsync.timeline.models import MediaSource
from captionsync.timeline.session import EditorSession
from captionsync.timeline.settings import SettingsPatch
from captionsync.utils.config import EditorConfig


class TestDispatch:
    def test_noop_reports_false(self, session):
        before = session.state
        assert session.split_segment(0.01) is False
        assert session.state is before
        assert session.undo() is False

    def test_listeners_get_old_and_new(self, session):
        seen = []
        unsubscribe = session.subscribe(lambda old, new: seen.append((old, new)))
        old = session.state
        assert session.split_segment(5.0)
        assert seen == [(old, session.state)]

        unsubscribe()
        session.split_segment(2.0)
        assert len(seen) == 1

    def test_noop_does_not_notify(self, session):
        seen = []
        session.subscribe(lambda old, new: seen.append(new))
        session.delete_segment(0)
        assert seen == []

    def test_split_uses_playhead(self, session):
        session.seek(4.0)
        assert session.split_segment()
        assert session.state.segments[0].effective_duration == 4.0


class TestUndoRedo:
    def test_undo_redo(self, session):
        session.split_segment(5.0)
        assert len(session.state.segments) == 2
        assert session.undo()
        assert len(session.state.segments) == 1
        assert session.redo()
        assert len(session.state.segments) == 2
        assert session.redo() is False

    def test_new_edit_clears_redo(self, session):
        session.add_caption()
        session.undo()
        session.update_caption_text("cap_a", "yo")
        assert session.redo() is False

    def test_playback_moves_are_not_recorded(self, session):
        session.seek(3.0)
        session.nudge()
        assert session.state.local_time == 5.0
        assert session.undo() is False

    def test_history_is_bounded(self, sample_state):
        session = EditorSession(state=sample_state, config=EditorConfig(max_undo=2))
        for text in ["a", "b", "c"]:
            session.update_caption_text("cap_a", text)
        assert session.undo() and session.undo()
        assert session.undo() is False
        assert session.state.captions[0].text == "a"

    def test_undo_keeps_project_id(self, media):
        session = EditorSession()
        session.load_media(media)
        project_id = session.state.project_id
        session.undo()
        assert session.state.segments == []
        assert session.state.project_id == project_id


class TestSegments:
    def test_load_first_media_creates_project(self, media):
        session = EditorSession()
        seg = session.load_media(media)
        assert seg is not None
        assert seg.media is media
        assert session.state.project_id.startswith("proj_")
        assert session.needs_captions(seg.id)

    def test_second_media_is_not_captioned_by_default(self, session, media):
        seg = session.load_media(media)
        assert session.state.project_id == "proj_test"
        assert session.needs_captions(seg.id) is False

    def test_transcribe_all_segments(self, sample_state, media):
        session = EditorSession(state=sample_state,
                                config=EditorConfig(transcribe_all_segments=True))
        seg = session.load_media(media)
        assert session.needs_captions(seg.id)
        assert session.needs_captions("missing") is False

    def test_media_without_duration(self):
        session = EditorSession()
        assert session.load_media(MediaSource(name="x.mp4", duration=0.0)) is None
        assert session.state.project_id is None

    def test_delete_only_segment(self, session):
        assert session.delete_segment(0) is False
        assert len(session.state.segments) == 1

    def test_tick(self, session):
        cue = session.tick(3.5)
        assert session.state.local_time == 3.5
        assert cue.caption.id == "cap_a"
        assert cue.word_index == 1

    def test_shift_defaults_to_active_segment(self, session):
        assert session.shift_captions(1.0)
        assert session.state.captions[0].start_time == 3.0

    def test_seek_global(self, session, media):
        session.load_media(media)
        assert session.seek_global(15.0)
        assert session.state.active_index == 1
        assert session.state.local_time == 5.0


class TestSettings:
    def test_update_and_noop(self, session):
        assert session.update_settings(SettingsPatch(font_size=60))
        assert session.update_settings(SettingsPatch(font_size=60)) is False

    def test_preset_reset(self, session):
        assert session.apply_preset("Minimal")
        assert session.apply_preset("Unknown") is False
        assert session.reset_styles()
        assert session.reset_styles() is False

    def test_toggle(self, session):
        assert session.toggle("karaoke_enabled")
        assert session.state.settings.karaoke_enabled is False
        assert session.toggle("font_size") is False

    def test_playback_rate(self, session):
        assert session.set_playback_rate(1.5)
        assert session.state.settings.playback_rate == 1.5
        assert session.set_playback_rate(3.0) is False


class TestGeneration:
    @pytest.mark.asyncio
    async def test_success(self, session, fake_generator):
        assert await session.generate_captions("seg_a")
        assert fake_generator.calls == ["seg_a"]
        assert [c.text for c in session.state.captions] == ["first line", "second line"]
        assert all(c.segment_id == "seg_a" for c in session.state.captions)
        assert session.state.loading is False
        assert session.state.error is None

    @pytest.mark.asyncio
    async def test_loading_flag_while_running(self, session, fake_generator):
        seen = []
        fake_generator.before_return = lambda: seen.append(session.state.loading)
        await session.generate_captions("seg_a")
        assert seen == [True]

    @pytest.mark.asyncio
    async def test_failure_sets_error(self, sample_state, failing_generator):
        session = EditorSession(state=sample_state, generator=failing_generator)
        assert await session.generate_captions("seg_a") is False
        assert session.state.error == "Failed to transcribe video."
        assert session.state.loading is False
        assert session.state.captions == sample_state.captions

    @pytest.mark.asyncio
    async def test_unexpected_failure_clears_loading(self, sample_state, crashing_generator):
        session = EditorSession(state=sample_state, generator=crashing_generator)
        assert await session.generate_captions("seg_a") is False
        assert session.state.loading is False
        assert session.state.error == "Failed to generate captions."
        assert session.state.captions == sample_state.captions

    @pytest.mark.asyncio
    async def test_second_half_of_split_gets_local_times(self, session):
        assert session.split_segment(5.0)
        second = session.state.segments[1].id
        assert await session.generate_captions(second)
        [cap] = session.state.captions_for(second)
        assert cap.text == "second line"
        assert (cap.start_time, cap.end_time) == (0.0, 1.0)
        assert [(w.start_time, w.end_time) for w in cap.words] == [(0.0, 0.5), (0.5, 1.0)]

    @pytest.mark.asyncio
    async def test_first_half_of_split_drops_captions_past_its_end(self, session):
        assert session.split_segment(5.0)
        assert await session.generate_captions("seg_a")
        assert [c.text for c in session.state.captions_for("seg_a")] == ["first line"]

    @pytest.mark.asyncio
    async def test_trim_during_generation_uses_live_segment(self, session, fake_generator):
        fake_generator.before_return = lambda: session.trim_start(1.0)
        assert await session.generate_captions("seg_a")
        caps = session.state.captions_for("seg_a")
        assert [(c.start_time, c.end_time) for c in caps] == [(0.0, 1.0), (4.0, 5.0)]

    @pytest.mark.asyncio
    async def test_result_for_deleted_segment_dropped(self, session, fake_generator, media):
        session.load_media(media)
        second = session.state.segments[1].id
        fake_generator.before_return = lambda: session.delete_segment(1)
        assert await session.generate_captions(second) is False
        assert session.state.captions_for(second) == []
        assert [c.id for c in session.state.captions] == ["cap_a"]

    @pytest.mark.asyncio
    async def test_edits_during_generation_are_kept(self, session, fake_generator, media):
        session.load_media(media)
        fake_generator.before_return = lambda: session.update_settings(SettingsPatch(font_size=10))
        await session.generate_captions("seg_a")
        assert session.state.settings.font_size == 10
        assert len(session.state.segments) == 2

    @pytest.mark.asyncio
    async def test_unknown_segment_or_no_generator(self, sample_state):
        session = EditorSession(state=sample_state)
        assert await session.generate_captions("seg_a") is False
        assert await session.generate_captions("missing") is False
