"""
Studio: the application-level orchestrator.

Holds the current Project snapshot, the clip clipboard and the selected track,
and owns the audio engine, the playback controller and the offline renderer.
Every edit swaps in a new Project and hands it to the playback controller.
"""
from __future__ import annotations
import logging
import os
from dataclasses import replace
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional

from .audio_engine import AudioEngine
from .clip import Clip, ClipPayload
from .errors import TrackNotFoundError
from .ingest import generate_clip
from .persistence import load_project, save_project
from .playback import PlaybackController, TickDriver
from .project import Project, new_clip_id
from .render import Renderer

logger = logging.getLogger("PyAudioStudio")


class Studio:
    """Editing session around one project."""

    def __init__(
        self,
        project: Optional[Project] = None,
        engine: Optional[AudioEngine] = None,
        renderer: Optional[Renderer] = None,
        live: bool = True,
    ) -> None:
        """
        Args:
            project: Starting project (a fresh one by default)
            engine: Audio context; a default 48 kHz engine when omitted
            renderer: Offline renderer; a default 48 kHz renderer when omitted
            live: Open the output device on first play and run the transport
                tick on a background thread while playing
        """
        self.engine = engine or AudioEngine()
        self.renderer = renderer or Renderer()
        self._project = project or Project.new()
        self.playback = PlaybackController(self.engine, self._project)
        self.live = live
        self.ticker = TickDriver(self.playback) if live else None
        self.clipboard: Optional[Clip] = None
        self.selected_track_id: Optional[int] = self._project.tracks[0].id if self._project.tracks else None

    @property
    def project(self) -> Project:
        return self._project

    def _commit(self, project: Project) -> Project:
        self._project = project
        self.playback.project = project
        return project

    # --- Project ---

    def new_project(self) -> Project:
        """Reset to a fresh project with the initial tracks."""
        self.stop()
        self.clipboard = None
        project = self._commit(Project.new())
        self.selected_track_id = project.tracks[0].id
        logger.info("New project")
        return project

    def rename_project(self, name: str) -> Project:
        return self._commit(self._project.renamed(name))

    def save(self, path: str | os.PathLike) -> Path:
        return save_project(self._project, path)

    def load(self, path: str | os.PathLike) -> Project:
        self.stop()
        project = self._commit(load_project(path))
        self.selected_track_id = project.tracks[0].id if project.tracks else None
        return project

    # --- Tracks ---

    def add_track(self, kind: str = "Voice") -> Project:
        return self._commit(self._project.add_track(kind))

    def rename_track(self, track_id: int, name: str) -> Project:
        return self._commit(self._project.rename_track(track_id, name))

    def select_track(self, track_id: int) -> None:
        self._project.get_track(track_id)
        self.selected_track_id = track_id

    def update_settings(self, track_id: int, patch: Mapping[str, Any]) -> Project:
        """Partial mixer update; takes effect at the next chain build."""
        return self._commit(self._project.update_settings(track_id, patch))

    # --- Clips ---

    def add_generated_clip(self, track_id: int, name: str, payload: ClipPayload) -> Clip:
        """
        Decode a generator payload and append it after the track's last clip.
        A DecodeError propagates and leaves the project unchanged.
        """
        self._project.get_track(track_id)
        clip = generate_clip(track_id, name, payload)
        project = self._commit(self._project.append_clip(track_id, clip))
        return project.find_clip(clip.id)

    def add_generated_clips(self, track_id: int, items: Iterable[tuple[str, ClipPayload]]) -> list[Clip]:
        """Decode several payloads, then place them back to back. All or nothing."""
        self._project.get_track(track_id)
        clips = [generate_clip(track_id, name, payload) for name, payload in items]
        project = self._commit(self._project.append_clips(track_id, clips))
        return [project.find_clip(c.id) for c in clips]

    def move_clip(self, clip_id: str, start: float) -> Project:
        return self._commit(self._project.move_clip(clip_id, start))

    def resize_clip(self, clip_id: str, duration: float) -> Project:
        return self._commit(self._project.resize_clip(clip_id, duration))

    def delete_clip(self, clip_id: str) -> Project:
        return self._commit(self._project.delete_clip(clip_id))

    def copy_clip(self, clip_id: str) -> None:
        self.clipboard = self._project.find_clip(clip_id)

    def cut_clip(self, clip_id: str) -> Project:
        self.copy_clip(clip_id)
        return self.delete_clip(clip_id)

    def paste_clip(self, track_id: Optional[int] = None, start: Optional[float] = None) -> Optional[Clip]:
        """
        Paste the clipboard as a new clip; defaults to the selected track at
        the playhead.
        """
        if self.clipboard is None:
            return None
        if track_id is None:
            track_id = self.selected_track_id
        if track_id is None:
            raise TrackNotFoundError(track_id)
        if start is None:
            start = self.playback.position
        clip = replace(self.clipboard, id=new_clip_id(), track_id=track_id, start=max(0.0, start))
        self._commit(self._project.insert_clip(track_id, clip))
        return clip

    # --- Transport ---

    def play(self) -> bool:
        """Start the transport; False when already playing or the device will not open."""
        if self.live and not self.engine.is_running and not self.engine.start():
            logger.warning("Output device unavailable; transport stays stopped")
            return False
        started = self.playback.play()
        if started and self.ticker is not None:
            self.ticker.start()
        return started

    def pause(self) -> None:
        self._stop_ticker()
        self.playback.pause()

    def stop(self) -> None:
        self._stop_ticker()
        self.playback.stop()

    def _stop_ticker(self) -> None:
        if self.ticker is not None:
            self.ticker.stop()

    # --- Export ---

    def render(self) -> bytes:
        return self.renderer.render(self._project)

    def export(self, directory: str | os.PathLike = ".") -> Path:
        return self.renderer.export(self._project, directory)

    def close(self) -> None:
        self._stop_ticker()
        self.playback.cleanup()
        self.renderer.close()
        self.engine.close()
