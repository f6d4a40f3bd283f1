from __future__ import annotations
from dataclasses import dataclass, field, replace
from typing import Any, Mapping, Optional

from .clip import Clip
from .mixer import MixerSettings, DEFAULT_MIXER_SETTINGS


@dataclass(frozen=True)
class Track:
    """
    Represents a single track: its clips and the mixer settings that
    drive its effects chain. Clips may overlap; overlapping audio is summed.
    """
    id: int
    name: str = "Track"
    color: str = "#3b82f6"
    clips: tuple[Clip, ...] = ()
    mixer: MixerSettings = field(default_factory=lambda: DEFAULT_MIXER_SETTINGS)

    @property
    def is_muted(self) -> bool:
        return self.mixer.is_muted

    @property
    def is_soloed(self) -> bool:
        return self.mixer.is_soloed

    @property
    def end(self) -> float:
        """End of the last clip window in seconds (0 for an empty track)."""
        return max([c.end for c in self.clips] or [0.0])

    def get_clip(self, clip_id: str) -> Optional[Clip]:
        for clip in self.clips:
            if clip.id == clip_id:
                return clip
        return None

    def with_clips(self, clips: tuple[Clip, ...]) -> "Track":
        return replace(self, clips=tuple(clips))

    def with_settings(self, patch: Mapping[str, Any]) -> "Track":
        return replace(self, mixer=self.mixer.merged(patch))

    def renamed(self, name: str) -> "Track":
        return replace(self, name=name)

    def __repr__(self) -> str:
        return f"Track(id={self.id}, name={self.name!r}, clips={len(self.clips)}, end={self.end:.2f}s)"
