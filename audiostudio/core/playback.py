"""
Playback controller for PyAudioStudio.

Transport maths is kept in pure functions (`start_transport`, `advance`,
`schedule_clips`) that take the clock value as an argument; the controller
wires them to an AudioEngine and to position/state callbacks.
"""
from __future__ import annotations
import logging
import threading
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Iterable, Optional

from .config import TIMELINE_CONFIG, PlaybackState
from .effects import build_chain
from .errors import ClipNotFoundError
from .graph import realize_chain
from .project import playable_tracks
from .types import PositionCallback, StateCallback

if TYPE_CHECKING:
    from .audio_engine import AudioEngine
    from .project import Project
    from .track import Track

logger = logging.getLogger("PyAudioStudio")


@dataclass(frozen=True, slots=True)
class TransportState:
    """Play state plus the (clock, position) pair playback was anchored at."""
    state: PlaybackState = PlaybackState.STOPPED
    position: float = 0.0
    anchor_time: float = 0.0
    anchor_position: float = 0.0

    @property
    def is_playing(self) -> bool:
        return self.state is PlaybackState.PLAYING


def start_transport(transport: TransportState, now: float) -> TransportState:
    """Enter PLAYING, anchoring the current position at clock time `now`."""
    return TransportState(PlaybackState.PLAYING, transport.position, now, transport.position)


def position_at(transport: TransportState, now: float) -> float:
    if not transport.is_playing:
        return transport.position
    return transport.anchor_position + (now - transport.anchor_time)


def advance(transport: TransportState, now: float, timeline_duration: float) -> TransportState:
    """
    One transport tick. Position is recomputed from the anchor rather than
    accumulated, so irregular tick spacing does not drift. Reaching the end
    of the timeline stops and rewinds to 0.
    """
    if not transport.is_playing:
        return transport
    position = position_at(transport, now)
    if position >= timeline_duration:
        return TransportState(PlaybackState.STOPPED, 0.0)
    return replace(transport, position=position)


def halt(transport: TransportState, now: float, rewind: bool = False) -> TransportState:
    """Leave PLAYING; keep the playhead (pause) or rewind to 0 (stop)."""
    position = 0.0 if rewind else position_at(transport, now)
    return TransportState(PlaybackState.STOPPED, max(0.0, position))


@dataclass(frozen=True, slots=True)
class ScheduledVoice:
    clip_id: str
    track_id: int
    when: float      # engine clock time the clip starts sounding
    offset: float    # seconds into the clip
    length: float    # seconds of the clip window left to play


def schedule_clips(tracks: Iterable["Track"], playhead: float, anchor_time: float) -> list[ScheduledVoice]:
    """
    Voices for every decoded clip whose window ends after the playhead.
    Clips already finished, or without decoded audio, are skipped.
    """
    voices = []
    for track in tracks:
        for clip in track.clips:
            if not clip.is_decoded or clip.end <= playhead:
                continue
            offset = max(0.0, playhead - clip.start)
            voices.append(ScheduledVoice(
                clip_id=clip.id,
                track_id=track.id,
                when=anchor_time + max(0.0, clip.start - playhead),
                offset=offset,
                length=clip.duration - offset,
            ))
    return voices


@dataclass
class Viewport:
    """Horizontal scroll state of the timeline view, in pixels."""
    scroll_left: float = 0.0
    width: float = 0.0


def follow_scroll(
    position: float,
    scroll_left: float,
    viewport_width: float,
    pixels_per_second: float = TIMELINE_CONFIG.pixels_per_second,
) -> float:
    """New scroll offset keeping the playhead a third of a view away from either edge."""
    if viewport_width <= 0:
        return scroll_left
    playhead_px = position * pixels_per_second
    margin = viewport_width * TIMELINE_CONFIG.scroll_margin_fraction
    if playhead_px > scroll_left + viewport_width - margin:
        return playhead_px - viewport_width + margin
    if playhead_px < scroll_left + margin:
        return max(0.0, playhead_px - margin)
    return scroll_left


class PlaybackController:
    """
    Drives live playback of a Project snapshot through an AudioEngine.
    Every play() rebuilds chains and voices from scratch.
    """

    def __init__(
        self,
        engine: "AudioEngine",
        project: "Project",
        on_position_changed: Optional[PositionCallback] = None,
        on_state_changed: Optional[StateCallback] = None,
        viewport: Optional[Viewport] = None,
    ) -> None:
        """
        Initialize playback controller.

        Args:
            engine: Audio context voices are scheduled on
            project: Project snapshot to play
            on_position_changed: Callback for position updates (seconds)
            on_state_changed: Callback for state changes
            viewport: Timeline view to auto-scroll while playing
        """
        self.engine = engine
        self.project = project
        self.viewport = viewport
        self._transport = TransportState()
        self._on_position_changed = on_position_changed
        self._on_state_changed = on_state_changed
        self._lock = threading.RLock()

    @property
    def transport(self) -> TransportState:
        return self._transport

    @property
    def state(self) -> PlaybackState:
        return self._transport.state

    @property
    def is_playing(self) -> bool:
        return self._transport.is_playing

    @property
    def position(self) -> float:
        """Playhead in seconds."""
        return self._transport.position

    def _set_transport(self, transport: TransportState) -> None:
        previous = self._transport
        self._transport = transport
        if previous.state is not transport.state and self._on_state_changed:
            self._on_state_changed(transport.state)
        if previous.position != transport.position and self._on_position_changed:
            self._on_position_changed(transport.position)

    def play(self) -> bool:
        """
        Start playback from the current playhead.

        Returns:
            True if playback started
        """
        with self._lock:
            if self.is_playing:
                return False
            self._set_transport(self._schedule_from(self._transport.position))
            return True

    def _schedule_from(self, playhead: float) -> TransportState:
        """Rebuild buses and voices for a pass starting at `playhead`; returns the anchored transport."""
        # Nothing from an earlier pass may keep sounding
        self.engine.disconnect_all()
        self.engine.release_unused(c.buffer for c in self.project.clips if c.is_decoded)
        anchor = self.engine.current_time
        tracks = playable_tracks(self.project.tracks)

        buses = {}
        for track in tracks:
            processor = realize_chain(build_chain(track.mixer), self.engine.sample_rate)
            buses[track.id] = self.engine.connect_track(track.id, processor)

        voices = schedule_clips(tracks, playhead, anchor)
        for voice in voices:
            try:
                clip = self.project.find_clip(voice.clip_id)
                self.engine.schedule(buses[voice.track_id], clip, voice.when, voice.offset, voice.length)
            except (ClipNotFoundError, ValueError, RuntimeError) as e:
                logger.error("Could not schedule clip %s: %s", voice.clip_id, e)

        undecoded = sum(1 for t in tracks for c in t.clips if not c.is_decoded)
        if undecoded:
            logger.warning("Skipped %d clips without decoded audio", undecoded)

        logger.info("Playback started at %.3fs (%d tracks, %d voices)", playhead, len(tracks), len(voices))
        return start_transport(TransportState(position=playhead), anchor)

    def tick(self, now: Optional[float] = None) -> TransportState:
        """
        Advance the transport to clock time `now` (engine clock by default).
        Order: recompute position, follow scroll, end-of-timeline check.
        """
        with self._lock:
            if not self.is_playing:
                return self._transport
            if now is None:
                now = self.engine.current_time

            position = position_at(self._transport, now)
            if self.viewport is not None:
                self.viewport.scroll_left = follow_scroll(position, self.viewport.scroll_left, self.viewport.width)

            transport = advance(self._transport, now, self.project.timeline_duration)
            if not transport.is_playing:
                self.engine.disconnect_all()
                logger.info("Reached end of timeline")
            self._set_transport(transport)
            return transport

    def pause(self, now: Optional[float] = None) -> None:
        """Stop sound and keep the playhead where it is."""
        with self._lock:
            if now is None:
                now = self.engine.current_time
            self.engine.disconnect_all()
            self._set_transport(halt(self._transport, now))
            logger.info("Playback paused at %.3fs", self._transport.position)

    def stop(self) -> None:
        """Stop sound and rewind to 0."""
        with self._lock:
            self.engine.disconnect_all()
            self._set_transport(halt(self._transport, 0.0, rewind=True))
            logger.info("Playback stopped")

    def toggle_play_pause(self) -> None:
        """Toggle between play and pause states."""
        if self.is_playing:
            self.pause()
        else:
            self.play()

    def seek(self, seconds: float) -> None:
        """
        Move the playhead (clamped to the timeline). While playing, playback
        is re-anchored at the new position without leaving PLAYING.
        """
        with self._lock:
            position = max(0.0, min(float(seconds), self.project.timeline_duration))
            if self.is_playing:
                self._set_transport(self._schedule_from(position))
            else:
                self._set_transport(TransportState(PlaybackState.STOPPED, position))

    def cleanup(self) -> None:
        """Silence playback and drop callbacks."""
        self._on_position_changed = None
        self._on_state_changed = None
        self.engine.disconnect_all()
        self._transport = TransportState()


class TickDriver:
    """Calls `controller.tick()` from a background timer thread."""

    def __init__(self, controller: PlaybackController, interval: float = TIMELINE_CONFIG.tick_interval_s) -> None:
        self.controller = controller
        self.interval = interval
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="transport-tick", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._stop.set()
        if self._thread is not None:
            if self._thread is not threading.current_thread():
                self._thread.join(timeout=1.0)
            self._thread = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _run(self) -> None:
        while not self._stop.wait(self.interval):
            if not self.controller.tick().is_playing:
                break
