"""
Tests for transport maths, clip scheduling and the playback controller.
"""
import numpy as np
import pytest

from audiostudio.core.config import PlaybackState
from audiostudio.core.playback import (
    PlaybackController, TickDriver, TransportState, Viewport,
    advance, follow_scroll, halt, position_at, schedule_clips, start_transport
)
from audiostudio.core.track import Track

TEST_SR = 8000


def _ramp(frames=TEST_SR):
    return (np.arange(frames, dtype=np.float32) / frames * 0.5).astype(np.float32)


class TestTransport:
    """Tests for the pure transport functions."""

    def test_start_anchors_position(self):
        transport = start_transport(TransportState(position=4.0), now=10.0)
        assert transport.is_playing
        assert (transport.anchor_time, transport.anchor_position) == (10.0, 4.0)

    def test_position_follows_clock(self):
        transport = start_transport(TransportState(position=4.0), now=10.0)
        assert position_at(transport, 12.5) == pytest.approx(6.5)

    def test_irregular_ticks_do_not_drift(self):
        transport = start_transport(TransportState(), now=0.0)
        now = 0.0
        for step in (0.016, 0.033, 0.001, 0.05, 0.017) * 20:
            now += step
            transport = advance(transport, now, 60.0)
        assert transport.position == pytest.approx(now)

    def test_end_of_timeline_stops_and_rewinds(self):
        transport = start_transport(TransportState(position=59.0), now=0.0)
        transport = advance(transport, 1.0, 60.0)
        assert transport.state is PlaybackState.STOPPED
        assert transport.position == 0.0

    def test_advance_ignores_stopped(self):
        transport = TransportState(position=3.0)
        assert advance(transport, 100.0, 60.0) is transport

    def test_pause_keeps_position(self):
        transport = start_transport(TransportState(position=1.0), now=5.0)
        paused = halt(transport, 7.0)
        assert paused.state is PlaybackState.STOPPED
        assert paused.position == pytest.approx(3.0)

    def test_stop_rewinds(self):
        transport = start_transport(TransportState(position=1.0), now=5.0)
        assert halt(transport, 7.0, rewind=True).position == 0.0


class TestScheduleClips:
    """Tests for computing voices from a playhead."""

    def test_clip_under_playhead_starts_immediately(self, make_clip):
        clip = make_clip(start=5.0, duration=3.0)
        (voice,) = schedule_clips([Track(id=1, clips=(clip,))], playhead=7.0, anchor_time=100.0)
        assert voice.offset == pytest.approx(2.0)
        assert voice.when == pytest.approx(100.0)
        assert voice.length == pytest.approx(1.0)

    def test_future_clip_waits(self, make_clip):
        clip = make_clip(start=10.0, duration=3.0)
        (voice,) = schedule_clips([Track(id=1, clips=(clip,))], playhead=7.0, anchor_time=100.0)
        assert voice.offset == 0.0
        assert voice.when == pytest.approx(103.0)
        assert voice.length == pytest.approx(3.0)

    def test_finished_clip_skipped(self, make_clip):
        clip = make_clip(start=1.0, duration=3.0)
        assert schedule_clips([Track(id=1, clips=(clip,))], playhead=4.0, anchor_time=0.0) == []

    def test_undecoded_clip_skipped(self, make_clip):
        clip = make_clip(start=0.0, duration=3.0, decoded=False)
        assert schedule_clips([Track(id=1, clips=(clip,))], playhead=0.0, anchor_time=0.0) == []

    def test_voices_carry_track(self, make_clip):
        tracks = [Track(id=1, clips=(make_clip(),)), Track(id=2, clips=(make_clip(), make_clip(start=2.0)))]
        voices = schedule_clips(tracks, playhead=0.0, anchor_time=0.0)
        assert [v.track_id for v in voices] == [1, 2, 2]


class TestFollowScroll:
    """Tests for keeping the playhead in view."""

    def test_inside_view_unchanged(self):
        assert follow_scroll(5.0, scroll_left=0.0, viewport_width=900.0) == 0.0

    def test_scrolls_right(self):
        # playhead at 700px, right margin starts at 600px
        assert follow_scroll(7.0, scroll_left=0.0, viewport_width=900.0) == pytest.approx(100.0)

    def test_scrolls_left_not_below_zero(self):
        assert follow_scroll(1.0, scroll_left=500.0, viewport_width=900.0) == 0.0

    def test_zero_width(self):
        assert follow_scroll(100.0, scroll_left=12.0, viewport_width=0.0) == 12.0


class TestPlaybackController:
    """Tests for live playback through the engine."""

    def test_initial_state(self, engine, make_project):
        controller = PlaybackController(engine, make_project((1, [], None)))
        assert controller.state is PlaybackState.STOPPED
        assert controller.position == 0.0

    def test_play_renders_clip_samples(self, engine, make_clip, make_project):
        samples = _ramp()
        project = make_project((1, [make_clip(samples)], None))
        controller = PlaybackController(engine, project)
        assert controller.play()
        out = engine.render_block(TEST_SR)
        assert np.array_equal(out[:, 0], samples)
        assert np.array_equal(out[:, 1], samples)

    def test_play_from_playhead_uses_offset(self, engine, make_clip, make_project):
        samples = _ramp()
        project = make_project((1, [make_clip(samples)], None))
        controller = PlaybackController(engine, project)
        controller.seek(0.5)
        controller.play()
        out = engine.render_block(100)
        assert np.array_equal(out[:, 0], samples[4000:4100])

    def test_future_clip_starts_on_time(self, engine, make_clip, make_project):
        project = make_project((1, [make_clip(start=0.25)], None))
        controller = PlaybackController(engine, project)
        engine.render_block(333)
        controller.play()
        out = engine.render_block(TEST_SR)
        assert np.all(out[:2000] == 0.0)
        assert np.allclose(out[2000:], 0.25)

    def test_overlapping_clips_sum(self, engine, make_clip, make_project):
        project = make_project((1, [make_clip(), make_clip()], None))
        PlaybackController(engine, project).play()
        assert engine.render_block(10)[0, 0] == pytest.approx(0.5)

    def test_play_while_playing(self, engine, make_project):
        controller = PlaybackController(engine, make_project((1, [], None)))
        assert controller.play()
        assert not controller.play()

    def test_pause_silences_and_keeps_position(self, engine, make_clip, make_project):
        project = make_project((1, [make_clip()], None))
        controller = PlaybackController(engine, project)
        controller.play()
        engine.render_block(2000)
        controller.pause()
        assert engine.active_voice_count == 0
        assert controller.position == pytest.approx(0.25)
        assert not np.any(engine.render_block(1000))

    def test_resume_after_pause(self, engine, make_clip, make_project):
        samples = _ramp()
        controller = PlaybackController(engine, make_project((1, [make_clip(samples)], None)))
        controller.play()
        engine.render_block(2000)
        controller.pause()
        engine.render_block(500)
        controller.play()
        assert np.array_equal(engine.render_block(10)[:, 0], samples[2000:2010])

    def test_stop_rewinds_and_silences(self, engine, make_clip, make_project):
        controller = PlaybackController(engine, make_project((1, [make_clip()], None)))
        controller.play()
        engine.render_block(2000)
        controller.stop()
        assert controller.position == 0.0
        assert engine.bus_count == 0
        assert not np.any(engine.render_block(1000))

    def test_tick_reports_position(self, engine, make_project):
        positions = []
        controller = PlaybackController(engine, make_project((1, [], None)), on_position_changed=positions.append)
        controller.play()
        engine.render_block(4000)
        controller.tick()
        assert positions == [pytest.approx(0.5)]

    def test_tick_at_end_stops(self, engine, make_clip, make_project):
        states = []
        controller = PlaybackController(engine, make_project((1, [make_clip()], None)), on_state_changed=states.append)
        controller.play()
        transport = controller.tick(now=engine.current_time + 60.0)
        assert transport.state is PlaybackState.STOPPED
        assert controller.position == 0.0
        assert engine.active_voice_count == 0
        assert states == [PlaybackState.PLAYING, PlaybackState.STOPPED]

    def test_seek_while_playing_stays_playing(self, engine, make_clip, make_project):
        samples = _ramp()
        states, positions = [], []
        controller = PlaybackController(
            engine, make_project((1, [make_clip(samples)], None)),
            on_position_changed=positions.append, on_state_changed=states.append,
        )
        controller.play()
        engine.render_block(1000)
        controller.seek(0.5)
        assert states == [PlaybackState.PLAYING]
        assert positions == [0.5]
        assert controller.is_playing
        assert np.array_equal(engine.render_block(10)[:, 0], samples[4000:4010])

    def test_play_releases_samples_of_deleted_clips(self, engine, make_clip, make_project):
        clips = [make_clip() for _ in range(3)]
        project = make_project((1, clips, None))
        controller = PlaybackController(engine, project)
        controller.play()
        assert engine.cached_buffer_count == 3
        controller.stop()
        for clip in clips:
            project = project.delete_clip(clip.id)
        controller.project = project
        controller.play()
        assert engine.cached_buffer_count == 0

    def test_tick_scrolls_viewport(self, engine, make_project):
        viewport = Viewport(scroll_left=0.0, width=900.0)
        controller = PlaybackController(engine, make_project((1, [], None)), viewport=viewport)
        controller.play()
        controller.tick(now=engine.current_time + 7.0)
        assert viewport.scroll_left == pytest.approx(100.0)

    def test_muted_track_is_silent(self, engine, make_clip, make_project):
        project = make_project((1, [make_clip()], {"is_muted": True}))
        PlaybackController(engine, project).play()
        assert engine.bus_count == 0
        assert not np.any(engine.render_block(100))

    def test_solo_excludes_others(self, engine, make_clip, make_project):
        project = make_project(
            (1, [make_clip()], None),
            (2, [make_clip(np.full(TEST_SR, 0.1, dtype=np.float32))], {"is_soloed": True}),
        )
        PlaybackController(engine, project).play()
        assert engine.render_block(10)[0, 0] == pytest.approx(0.1)

    def test_track_chain_applied(self, engine, make_clip, make_project):
        project = make_project((1, [make_clip()], {"input_gain": 0.4}))
        PlaybackController(engine, project).play()
        assert engine.render_block(10)[0, 0] == pytest.approx(0.125)

    def test_shortened_clip_truncates(self, engine, make_clip, make_project):
        project = make_project((1, [make_clip(duration=0.5)], None))
        PlaybackController(engine, project).play()
        out = engine.render_block(TEST_SR)
        assert np.allclose(out[:4000, 0], 0.25)
        assert not np.any(out[4000:])

    def test_lengthened_clip_plays_silence(self, engine, make_clip, make_project):
        project = make_project((1, [make_clip(duration=2.0)], None))
        PlaybackController(engine, project).play()
        out = engine.render_block(2 * TEST_SR)
        assert not np.any(out[TEST_SR:])


class TestTickDriver:
    """Tests for the background tick thread."""

    def test_exits_when_transport_stops(self, engine, make_project):
        controller = PlaybackController(engine, make_project((1, [], None)))
        driver = TickDriver(controller, interval=0.001)
        driver.start()
        driver._thread.join(timeout=1.0)
        assert not driver.is_running
        driver.stop()
