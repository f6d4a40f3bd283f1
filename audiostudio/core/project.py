"""
Project abstraction for PyAudioStudio.
A Project is an immutable snapshot: every edit returns a new Project, so the
scheduler and the renderer can hold on to the value they were handed.
"""
from __future__ import annotations
import math
import uuid
from dataclasses import dataclass, replace
from typing import Any, Callable, Iterable, Mapping, Optional

from .clip import Clip
from .config import EXPORT_CONFIG, TIMELINE_CONFIG, TRACK_PRESETS
from .errors import ClipNotFoundError, TrackNotFoundError
from .mixer import DEFAULT_MIXER_SETTINGS
from .track import Track


def new_clip_id() -> str:
    return f"clip-{uuid.uuid4().hex}"


def playable_tracks(tracks: Iterable[Track]) -> list[Track]:
    """Tracks that should be heard: the soloed ones if any, else the unmuted ones."""
    tracks = list(tracks)
    if any(t.is_soloed for t in tracks):
        return [t for t in tracks if t.is_soloed]
    return [t for t in tracks if not t.is_muted]


@dataclass(frozen=True)
class Project:
    """
    Represents an audio project: a name and an ordered sequence of tracks.
    Transport state lives in the playback controller, not here.
    """
    name: str = TRACK_PRESETS.default_project_name
    tracks: tuple[Track, ...] = ()

    @classmethod
    def new(cls, name: str = TRACK_PRESETS.default_project_name) -> "Project":
        """Fresh project with one track of each initial kind."""
        project = cls(name=name)
        for kind in TRACK_PRESETS.initial_kinds:
            project = project.add_track(kind)
        return project

    # --- Queries ---

    @property
    def clips(self) -> list[Clip]:
        return [c for t in self.tracks for c in t.clips]

    @property
    def content_end(self) -> float:
        """End of the furthest clip window in seconds."""
        return max([t.end for t in self.tracks] or [0.0])

    @property
    def timeline_duration(self) -> float:
        """Visible timeline length: at least a minute, rounded up to whole minutes."""
        longest = max(TIMELINE_CONFIG.min_duration_s, self.content_end)
        step = TIMELINE_CONFIG.round_to_s
        return math.ceil(longest / step) * step

    @property
    def export_duration(self) -> float:
        """Offline render length in seconds (never shorter than the floor)."""
        return max(EXPORT_CONFIG.min_duration_s, self.content_end)

    @property
    def has_solo(self) -> bool:
        return any(t.is_soloed for t in self.tracks)

    def get_track(self, track_id: int) -> Track:
        for track in self.tracks:
            if track.id == track_id:
                return track
        raise TrackNotFoundError(track_id)

    def find_clip(self, clip_id: str) -> Clip:
        for track in self.tracks:
            clip = track.get_clip(clip_id)
            if clip is not None:
                return clip
        raise ClipNotFoundError(clip_id)

    # --- Track edits ---

    def next_track_id(self) -> int:
        return max([t.id for t in self.tracks] or [0]) + 1

    def add_track(self, kind: str = "Voice", name: Optional[str] = None) -> "Project":
        """Append a track of the given kind ("Voice", "Music" or "SFX")."""
        color = TRACK_PRESETS.colors.get(kind, TRACK_PRESETS.colors["Voice"])
        if name is None:
            count = sum(1 for t in self.tracks if t.name.startswith(kind))
            name = f"{kind} {count + 1}"
        track = Track(id=self.next_track_id(), name=name, color=color, mixer=DEFAULT_MIXER_SETTINGS)
        return replace(self, tracks=self.tracks + (track,))

    def rename_track(self, track_id: int, name: str) -> "Project":
        return self._map_track(track_id, lambda t: t.renamed(name))

    def update_settings(self, track_id: int, patch: Mapping[str, Any]) -> "Project":
        """Merge a partial mixer update into one track."""
        return self._map_track(track_id, lambda t: t.with_settings(patch))

    def renamed(self, name: str) -> "Project":
        return replace(self, name=name)

    # --- Clip edits ---

    def append_clip(self, track_id: int, clip: Clip) -> "Project":
        """Place a new clip right after the last clip on the track."""
        return self.append_clips(track_id, [clip])

    def append_clips(self, track_id: int, clips: Iterable[Clip]) -> "Project":
        """Place clips one after another, starting at the end of the track."""
        track = self.get_track(track_id)
        cursor = max(0.0, track.end)
        placed = []
        for clip in clips:
            placed.append(replace(clip, track_id=track_id, start=cursor))
            cursor += clip.duration
        return self._map_track(track_id, lambda t: t.with_clips(t.clips + tuple(placed)))

    def insert_clip(self, track_id: int, clip: Clip) -> "Project":
        """Add a clip at its own start time (used by paste)."""
        clip = replace(clip, track_id=track_id)
        return self._map_track(track_id, lambda t: t.with_clips(t.clips + (clip,)))

    def move_clip(self, clip_id: str, start: float) -> "Project":
        return self._map_clip(clip_id, lambda c: c.moved(start))

    def resize_clip(self, clip_id: str, duration: float) -> "Project":
        return self._map_clip(clip_id, lambda c: c.resized(duration))

    def delete_clip(self, clip_id: str) -> "Project":
        self.find_clip(clip_id)
        return replace(self, tracks=tuple(
            t.with_clips(tuple(c for c in t.clips if c.id != clip_id)) for t in self.tracks
        ))

    # --- Helpers ---

    def _map_track(self, track_id: int, fn: Callable[[Track], Track]) -> "Project":
        self.get_track(track_id)
        return replace(self, tracks=tuple(fn(t) if t.id == track_id else t for t in self.tracks))

    def _map_clip(self, clip_id: str, fn: Callable[[Clip], Clip]) -> "Project":
        self.find_clip(clip_id)
        return replace(self, tracks=tuple(
            t.with_clips(tuple(fn(c) if c.id == clip_id else c for c in t.clips)) for t in self.tracks
        ))
